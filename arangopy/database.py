# Copyright DataStax, Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from __future__ import annotations

import logging
from typing import Any, Sequence
from urllib.parse import quote

from arangopy.authentication import TokenProvider, coerce_token_provider
from arangopy.constants import CallerType
from arangopy.cursor import Cursor
from arangopy.exceptions import ArangoResponseException, _TimeoutContext
from arangopy.settings.defaults import (
    DATABASE_PATH_TEMPLATE,
    DEFAULT_AUTH_HEADER,
    HTTP_STATUS_CREATED,
    HTTP_STATUS_NOT_FOUND,
    HTTP_STATUS_OK,
    RESOURCE_KIND_CURSOR,
    RESOURCE_KIND_DOCUMENT,
    RESOURCE_PATH_MAP,
)
from arangopy.utils.api_commander import APICommander, ArangoResponse
from arangopy.utils.api_options import (
    APIOptions,
    FullAPIOptions,
    default_api_options,
)
from arangopy.utils.request_tools import READ_ONLY_HTTP_METHODS, HttpMethod
from arangopy.utils.row_decoding import RowTargetType
from arangopy.utils.unset import _UNSET, UnsetType

logger = logging.getLogger(__name__)


def _quote_identifier(identifier: str) -> str:
    # each segment is escaped on its own: "/" separates collection and key
    return "/".join(quote(segment, safe="") for segment in identifier.split("/"))


class Database:
    """
    A database on an ArangoDB server, the entry point to run queries and
    read documents. All requests of cursors and documents bound to this object
    go through it.

    This class is not meant to be directly instantiated by the user: use
    `ArangoClient.get_database` instead.

    Args:
        api_endpoint: the base URL of the server, e.g. "http://localhost:8529".
        token: an access token (string) for bearer authentication, or a
            TokenProvider (such as `UsernamePasswordTokenProvider`).
            None for unauthenticated access.
        api_options: a complete specification of the API Options for this instance.

    Example:
        >>> from arangopy import ArangoClient
        >>> from arangopy.authentication import UsernamePasswordTokenProvider
        >>> database = ArangoClient().get_database(
        ...     "http://localhost:8529",
        ...     name="shop",
        ...     token=UsernamePasswordTokenProvider("root", "openSesame"),
        ... )
    """

    def __init__(
        self,
        api_endpoint: str,
        *,
        token: str | TokenProvider | None = None,
        api_options: FullAPIOptions | None = None,
    ) -> None:
        self.api_endpoint = api_endpoint.strip("/")
        self.token_provider = coerce_token_provider(token)
        self.api_options = api_options or default_api_options()
        self._api_commander = self._get_api_commander()

    def __repr__(self) -> str:
        return (
            f'{self.__class__.__name__}(api_endpoint="{self.api_endpoint}", '
            f'name="{self.name}", token={self.token_provider})'
        )

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, Database):
            return all(
                [
                    self.api_endpoint == other.api_endpoint,
                    self.token_provider == other.token_provider,
                    self.api_options == other.api_options,
                ]
            )
        else:
            return False

    def _get_api_commander(self) -> APICommander:
        auth_token = self.token_provider.get_token()
        base_headers: dict[str, str | None] = {
            **{DEFAULT_AUTH_HEADER: auth_token},
            **self.api_options.extra_headers,
        }
        return APICommander(
            api_endpoint=self.api_endpoint,
            path=DATABASE_PATH_TEMPLATE.format(database_name=self.name),
            headers=base_headers,
            callers=self.api_options.callers,
            redacted_header_names=self.api_options.redacted_header_names,
        )

    def _timeout_context(self) -> _TimeoutContext:
        request_ms = self.api_options.timeout_options.request_timeout_ms
        return _TimeoutContext(
            request_ms=request_ms,
            nominal_ms=request_ms,
            label="request_timeout_ms",
        )

    @property
    def name(self) -> str:
        """The name of this database."""

        return self.api_options.database_name

    def send(
        self,
        resource_kind: str,
        identifier: str,
        http_method: str,
        headers: dict[str, str | None] | None = None,
        payload: dict[str, Any] | None = None,
        request_params: dict[str, Any] | None = None,
    ) -> ArangoResponse:
        """
        Issue a request about a resource (such as a cursor or a document)
        and return the response, whatever its status code.

        Args:
            resource_kind: "cursor" or "document".
            identifier: the identifier of the resource within its kind,
                e.g. a cursor id or a "<collection>/<key>" document id.
                Each "/"-separated segment is percent-encoded in the URL.
                An empty identifier addresses the resource kind as a whole.
            http_method: the HTTP verb of the request.
            headers: additional headers for this request only.
            payload: a JSON-serializable dictionary to send as body.
            request_params: query parameters for the request.

        Returns:
            an ArangoResponse with the status code and the decoded body.

        Raises:
            ValueError: for an unknown resource kind.
        """

        if resource_kind not in RESOURCE_PATH_MAP:
            raise ValueError(f"Unknown resource kind: '{resource_kind}'.")
        resource_path = RESOURCE_PATH_MAP[resource_kind]
        additional_path = (
            f"{resource_path}/{_quote_identifier(identifier)}"
            if identifier
            else resource_path
        )
        return self._api_commander.request(
            http_method=http_method,
            payload=payload,
            additional_path=additional_path,
            request_params=request_params or {},
            extra_headers=headers,
            timeout_context=self._timeout_context(),
        )

    def get(
        self,
        resource_kind: str,
        identifier: str,
        http_method: str = HttpMethod.GET,
        headers: dict[str, str | None] | None = None,
        payload: dict[str, Any] | None = None,
        request_params: dict[str, Any] | None = None,
    ) -> ArangoResponse:
        """
        The read-only counterpart of `send`: only GET and HEAD are admitted.
        See `send` for the parameters.
        """

        if http_method.upper() not in READ_ONLY_HTTP_METHODS:
            raise ValueError(
                f"Method '{http_method}' is not admitted for a read-only request."
            )
        return self.send(
            resource_kind,
            identifier,
            http_method.upper(),
            headers=headers,
            payload=payload,
            request_params=request_params,
        )

    def cursor(
        self,
        cursor_id: str | None = None,
        *,
        row_type: RowTargetType[Any] | None = None,
    ) -> Cursor[Any]:
        """
        Create a Cursor bound to this database, optionally pointing to an
        existing server-side cursor id (e.g. to delete it, or to resume
        reading it from its next batch).

        Args:
            cursor_id: the server-side id of an existing cursor.
            row_type: the default decoding target for the rows.

        Returns:
            a Cursor.
        """

        cursor: Cursor[Any] = Cursor(self, row_type=row_type)
        if cursor_id:
            cursor._apply_response({"id": cursor_id, "hasMore": True})
        return cursor

    def query(
        self,
        query: str,
        bind_vars: dict[str, Any] | None = None,
        *,
        count: bool = False,
        batch_size: int | None = None,
        full_count: bool | None = None,
        ttl: int | None = None,
        cache: bool | None = None,
        row_type: RowTargetType[Any] | None = None,
    ) -> Cursor[Any]:
        """
        Run an AQL query, opening a cursor over its results.

        Args:
            query: the AQL query string.
            bind_vars: values for the bind parameters in the query.
            count: whether the server should compute the total number of rows,
                then available as `cursor.count`.
            batch_size: maximum number of rows per batch.
            full_count: whether to compute the number of rows disregarding
                the last top-level LIMIT, then available as `cursor.full_count`.
            ttl: time-to-live of the server-side cursor, in seconds.
            cache: whether the query results cache may be used.
            row_type: the default decoding target for the rows. See
                `arangopy.utils.row_decoding.decode_row` for the admitted values.

        Returns:
            a Cursor loaded with the first batch of results.

        Raises:
            ArangoResponseException: if the server does not create the cursor.

        Example:
            >>> cursor = database.query(
            ...     "FOR u IN users FILTER u.age > @age RETURN u",
            ...     bind_vars={"age": 30},
            ...     count=True,
            ... )
            >>> cursor.count
            3
        """

        options = {
            k: v
            for k, v in {
                "fullCount": full_count,
            }.items()
            if v is not None
        }
        payload = {
            k: v
            for k, v in {
                "query": query,
                "bindVars": bind_vars,
                "count": count,
                "batchSize": batch_size,
                "ttl": ttl,
                "cache": cache,
                "options": options or None,
            }.items()
            if v is not None
        }
        logger.info(f"opening cursor for query in '{self.name}'")
        response = self.send(
            RESOURCE_KIND_CURSOR,
            "",
            HttpMethod.POST,
            payload=payload,
        )
        if response.status_code != HTTP_STATUS_CREATED:
            raise ArangoResponseException.from_response(
                command=payload,
                raw_response=response.body,
                status_code=response.status_code,
            )
        cursor: Cursor[Any] = Cursor(self, row_type=row_type)
        cursor._apply_response(response.body)
        logger.info(f"finished opening cursor '{cursor.id}' in '{self.name}'")
        return cursor

    def get_document(self, document_id: str) -> dict[str, Any] | None:
        """
        Read a document by its id.

        Args:
            document_id: the document id, of the form "<collection>/<key>".

        Returns:
            the document as a dictionary, or None if not found.

        Raises:
            ArangoResponseException: for responses other than found/not found.
        """

        response = self.get(RESOURCE_KIND_DOCUMENT, document_id)
        if response.status_code == HTTP_STATUS_OK:
            return response.body
        elif response.status_code == HTTP_STATUS_NOT_FOUND:
            return None
        else:
            raise ArangoResponseException.from_response(
                command=None,
                raw_response=response.body,
                status_code=response.status_code,
            )


class ArangoClient:
    """
    A client for connecting to ArangoDB servers, spawning Database objects.

    Args:
        callers: a list of caller identities, i.e. pairs (name, version),
            to add to the User-Agent header of all requests.
        api_options: a specification, complete or partial, of the API Options
            to override the defaults inherited by all spawned databases.

    Example:
        >>> from arangopy import ArangoClient
        >>> from arangopy.utils.api_options import APIOptions, TimeoutOptions
        >>> client = ArangoClient(
        ...     api_options=APIOptions(
        ...         timeout_options=TimeoutOptions(request_timeout_ms=5000),
        ...     ),
        ... )
        >>> database = client.get_database("http://localhost:8529", name="shop")
    """

    def __init__(
        self,
        *,
        callers: Sequence[CallerType] | UnsetType = _UNSET,
        api_options: APIOptions | None = None,
    ) -> None:
        self.api_options = (
            default_api_options()
            .with_override(api_options)
            .with_override(APIOptions(callers=callers))
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(database_name={self.api_options.database_name})"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, ArangoClient):
            return self.api_options == other.api_options
        else:
            return False

    def get_database(
        self,
        api_endpoint: str,
        *,
        name: str | None = None,
        token: str | TokenProvider | None = None,
        api_options: APIOptions | None = None,
    ) -> Database:
        """
        Get a Database object from this client, for doing data-related work.

        Args:
            api_endpoint: the base URL of the server, e.g. "http://localhost:8529".
            name: the database name. If omitted, the client's setting is used
                ("_system" by default).
            token: an access token for bearer authentication, or a TokenProvider.
            api_options: further API Options overriding those of the client.

        Returns:
            a Database object.
        """

        _name_options = APIOptions(database_name=name) if name is not None else None
        resulting_api_options = self.api_options.with_override(
            api_options
        ).with_override(_name_options)
        return Database(
            api_endpoint,
            token=token,
            api_options=resulting_api_options,
        )
