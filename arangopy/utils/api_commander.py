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

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Sequence, cast

import httpx

from arangopy import __version__
from arangopy.constants import CallerType
from arangopy.exceptions import (
    UnexpectedArangoResponseException,
    _TimeoutContext,
    to_arango_timeout_exception,
)
from arangopy.settings.defaults import (
    DEFAULT_REDACTED_HEADER_NAMES,
    FIXED_SECRET_PLACEHOLDER,
)
from arangopy.utils.request_tools import (
    HttpMethod,
    compose_user_agent,
    log_httpx_request,
    log_httpx_response,
    to_httpx_timeout,
)

logger = logging.getLogger(__name__)

ARANGOPY_CALLER: CallerType = ("arangopy", __version__)


@dataclass
class ArangoResponse:
    """
    The outcome of a request to the database: the HTTP status code,
    which the caller interprets, and the JSON-decoded body.

    Attributes:
        status_code: the HTTP status code of the response.
        body: the decoded JSON body. An empty dict if the body was empty, or if
            an error response carried a body that is not a JSON object.
    """

    status_code: int
    body: Dict[str, Any] = field(default_factory=dict)

    def status(self) -> int:
        return self.status_code


class APICommander:
    client = httpx.Client()

    def __init__(
        self,
        *,
        api_endpoint: str,
        path: str,
        headers: dict[str, str | None] = {},
        callers: Sequence[CallerType] = [],
        redacted_header_names: Iterable[str] | None = None,
    ) -> None:
        self.api_endpoint = api_endpoint.rstrip("/")
        self.path = path.lstrip("/")
        self.headers = headers
        self.callers = callers
        self.redacted_header_names = set(redacted_header_names or [])
        self.upper_full_redacted_header_names = {
            header_name.upper()
            for header_name in (
                self.redacted_header_names | DEFAULT_REDACTED_HEADER_NAMES
            )
        }

        full_user_agent_string = compose_user_agent(
            list(self.callers) + [ARANGOPY_CALLER]
        )
        self.caller_header: dict[str, str] = (
            {"User-Agent": full_user_agent_string} if full_user_agent_string else {}
        )
        self.full_headers: dict[str, str] = {
            k: v
            for k, v in {
                **{
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
                **self.caller_header,
                **self.headers,
            }.items()
            if v is not None
        }
        self._loggable_headers = self._redact_headers(self.full_headers)
        self.full_path = ("/".join([self.api_endpoint, self.path])).rstrip("/")

    def __repr__(self) -> str:
        pieces = [
            f"api_endpoint={self.api_endpoint}",
            f"path={self.path}",
            f"callers={self.callers}",
        ]
        inner_desc = ", ".join(pieces)
        return f"{self.__class__.__name__}({inner_desc})"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, APICommander):
            return all(
                [
                    self.api_endpoint == other.api_endpoint,
                    self.path == other.path,
                    self.headers == other.headers,
                    self.callers == other.callers,
                    self.redacted_header_names == other.redacted_header_names,
                ]
            )
        else:
            return False

    def _copy(
        self,
        api_endpoint: str | None = None,
        path: str | None = None,
        headers: dict[str, str | None] | None = None,
        callers: Sequence[CallerType] | None = None,
        redacted_header_names: Iterable[str] | None = None,
    ) -> APICommander:
        # some care in allowing e.g. {} to override (but not None):
        return APICommander(
            api_endpoint=(
                api_endpoint if api_endpoint is not None else self.api_endpoint
            ),
            path=path if path is not None else self.path,
            headers=headers if headers is not None else self.headers,
            callers=callers if callers is not None else self.callers,
            redacted_header_names=(
                redacted_header_names
                if redacted_header_names is not None
                else self.redacted_header_names
            ),
        )

    def _redact_headers(self, headers: dict[str, str]) -> dict[str, str]:
        return {
            k: v
            if k.upper() not in self.upper_full_redacted_header_names
            else FIXED_SECRET_PLACEHOLDER
            for k, v in headers.items()
        }

    def _compose_request_url(self, additional_path: str | None) -> str:
        if additional_path:
            return "/".join([self.full_path.rstrip("/"), additional_path.lstrip("/")])
        else:
            return self.full_path

    @staticmethod
    def _encode_payload(payload: dict[str, Any] | None) -> str | None:
        if payload is not None:
            return json.dumps(
                payload,
                allow_nan=False,
                separators=(",", ":"),
                ensure_ascii=False,
            )
        else:
            return None

    @staticmethod
    def _raw_response_to_json(
        raw_response: httpx.Response,
        payload: dict[str, Any] | None,
    ) -> dict[str, Any]:
        # an empty body (e.g. for HEAD requests) is a legitimate, empty response
        if not raw_response.content:
            return {}
        try:
            parsed = json.loads(raw_response.text)
        except ValueError:
            parsed = None
        if isinstance(parsed, dict):
            return cast(Dict[str, Any], parsed)
        # error statuses are interpreted by the callers: a body that is not
        # a JSON object (e.g. an HTML page from a proxy) is dropped
        if not raw_response.is_success:
            logger.debug(
                f"Discarding non-JSON body of a response with status "
                f"{raw_response.status_code}."
            )
            return {}
        if payload is not None:
            command_desc = "/".join(sorted(payload.keys()))
        else:
            command_desc = "(none)"
        raise UnexpectedArangoResponseException(
            text=(
                f"Unparseable response from API (status {raw_response.status_code}"
                f", payload keys: {command_desc})."
            ),
            raw_response={
                "raw_response": raw_response.text,
            },
        )

    def raw_request(
        self,
        *,
        http_method: str = HttpMethod.POST,
        payload: dict[str, Any] | None = None,
        additional_path: str | None = None,
        request_params: dict[str, Any] = {},
        extra_headers: dict[str, str | None] | None = None,
        timeout_context: _TimeoutContext | None = None,
    ) -> httpx.Response:
        """
        Issue an HTTP request and return the raw response. HTTP error statuses
        are not raised upon: they are left to the caller to interpret.
        """
        request_url = self._compose_request_url(additional_path)
        _timeout_context = timeout_context or _TimeoutContext(request_ms=None)
        encoded_payload = self._encode_payload(payload)
        request_headers = self.full_headers
        loggable_headers = self._loggable_headers
        if extra_headers:
            request_headers = {
                k: v
                for k, v in {**self.full_headers, **extra_headers}.items()
                if v is not None
            }
            loggable_headers = self._redact_headers(request_headers)
        log_httpx_request(
            http_method=http_method,
            full_url=request_url,
            request_params=request_params,
            redacted_request_headers=loggable_headers,
            encoded_payload=encoded_payload,
            timeout_context=_timeout_context,
        )
        httpx_timeout_s = to_httpx_timeout(_timeout_context)

        try:
            raw_response = self.client.request(
                method=http_method,
                url=request_url,
                content=encoded_payload.encode()
                if encoded_payload is not None
                else None,
                params=request_params,
                timeout=httpx_timeout_s,
                headers=request_headers,
            )
        except httpx.TimeoutException as timeout_exc:
            raise to_arango_timeout_exception(
                timeout_exc, timeout_context=_timeout_context
            )

        log_httpx_response(response=raw_response)
        return raw_response

    def request(
        self,
        *,
        http_method: str = HttpMethod.POST,
        payload: dict[str, Any] | None = None,
        additional_path: str | None = None,
        request_params: dict[str, Any] = {},
        extra_headers: dict[str, str | None] | None = None,
        timeout_context: _TimeoutContext | None = None,
    ) -> ArangoResponse:
        raw_response = self.raw_request(
            http_method=http_method,
            payload=payload,
            additional_path=additional_path,
            request_params=request_params,
            extra_headers=extra_headers,
            timeout_context=timeout_context,
        )
        return ArangoResponse(
            status_code=raw_response.status_code,
            body=self._raw_response_to_json(raw_response, payload=payload),
        )
