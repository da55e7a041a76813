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

from dataclasses import dataclass
from typing import Any


class ArangoException(Exception):
    """
    Any exception occurred while issuing requests to the database
    and specific to it, such as:
      - the API returns an error body where a result was expected,
      - a cursor batch could not be fetched,
    but not, for instance,
      - a network error while sending an HTTP request to the API.
    """

    pass


@dataclass
class ArangoResponseException(ArangoException):
    """
    The database answered a request with a status that the client does not
    interpret as a meaningful outcome, typically accompanied by an inline error
    in the response body.

    Attributes:
        text: a text message about the exception.
        command: the payload to the API that led to the response.
        raw_response: the full response body from the API.
        status_code: the HTTP status code of the response.
        error_num: the server-side error number ("errorNum"), if any.
        error_message: the server-side error message ("errorMessage"), if any.
    """

    text: str | None
    command: dict[str, Any] | None
    raw_response: dict[str, Any]
    status_code: int | None
    error_num: int | None
    error_message: str | None

    def __init__(
        self,
        text: str | None,
        *,
        command: dict[str, Any] | None,
        raw_response: dict[str, Any],
        status_code: int | None,
        error_num: int | None = None,
        error_message: str | None = None,
    ) -> None:
        super().__init__(text)
        self.text = text
        self.command = command
        self.raw_response = raw_response
        self.status_code = status_code
        self.error_num = error_num
        self.error_message = error_message

    def __str__(self) -> str:
        return self.text or ""

    @staticmethod
    def from_response(
        *,
        command: dict[str, Any] | None,
        raw_response: dict[str, Any],
        status_code: int | None,
    ) -> ArangoResponseException:
        """Parse a raw response from the API into this exception."""

        _raw_response = raw_response or {}
        error_message = _raw_response.get("errorMessage")
        error_num = _raw_response.get("errorNum")
        pieces = [
            pc
            for pc in (
                f"{error_message}" if error_message else None,
                f"errorNum={error_num}" if error_num is not None else None,
                f"HTTP status {status_code}" if status_code is not None else None,
            )
            if pc
        ]
        text = ", ".join(pieces) if pieces else "Unexpected response from the API."

        return ArangoResponseException(
            text,
            command=command,
            raw_response=_raw_response,
            status_code=status_code,
            error_num=error_num,
            error_message=error_message,
        )


@dataclass
class ArangoTimeoutException(ArangoException):
    """
    A request to the database timed out.

    Attributes:
        text: a textual description of the error
        timeout_type: this denotes the phase of the HTTP request when the event
            occurred ("connect", "read", "write", "pool") or "generic" if there is
            not a specific request associated to the exception.
        endpoint: if the timeout is tied to a specific request, this is the
            URL that the request was targeting.
        raw_payload:  if the timeout is tied to a specific request, this is the
            associated payload (as a string).
    """

    text: str
    timeout_type: str
    endpoint: str | None
    raw_payload: str | None

    def __init__(
        self,
        text: str,
        *,
        timeout_type: str,
        endpoint: str | None,
        raw_payload: str | None,
    ) -> None:
        super().__init__(text)
        self.text = text
        self.timeout_type = timeout_type
        self.endpoint = endpoint
        self.raw_payload = raw_payload


@dataclass
class CursorException(ArangoException):
    """
    A cursor operation failed, for instance because the next batch of results
    could not be retrieved from the server.

    Attributes:
        text: a text message about the exception.
        cursor_state: a string description of the current state
            of the cursor. See the documentation for Cursor.
        status_code: the HTTP status code of the failed batch request,
            if the failure comes from one.
    """

    text: str
    cursor_state: str
    status_code: int | None

    def __init__(
        self,
        text: str,
        *,
        cursor_state: str,
        status_code: int | None = None,
    ) -> None:
        super().__init__(text)
        self.text = text
        self.cursor_state = cursor_state
        self.status_code = status_code


@dataclass
class UnexpectedArangoResponseException(ArangoException):
    """
    The API response is malformed in that it cannot be parsed, does not have
    expected field(s), or they are of the wrong type.

    Attributes:
        text: a text message about the exception.
        raw_response: the response returned by the API in the form of a dict.
    """

    text: str
    raw_response: dict[str, Any] | None

    def __init__(
        self,
        text: str,
        raw_response: dict[str, Any] | None,
    ) -> None:
        super().__init__(text)
        self.text = text
        self.raw_response = raw_response


class RowDecodingException(ArangoException, TypeError):
    """
    A result row could not be decoded into the requested target type,
    because the shape of the stored record does not match it.

    Attributes:
        text: a text message about the exception.
        target: the type (or callable) the row was being decoded into.
        raw_row: the row as received from the API.
    """

    def __init__(self, text: str, *, target: Any, raw_row: Any) -> None:
        super().__init__(text)
        self.text = text
        self.target = target
        self.raw_row = raw_row


class DocumentIdException(ArangoException, ValueError):
    """
    A document identifier is not of the form "<collection>/<key>".
    """

    pass


class DocumentPreconditionException(ArangoException):
    """
    A document operation was attempted without the local state it needs
    (such as the document id or revision). No request is issued in this case.
    """

    pass
