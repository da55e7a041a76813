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

import httpx

from arangopy.constants import CallerType
from arangopy.exceptions import _TimeoutContext

logger = logging.getLogger(__name__)

# response bodies longer than this are cut in the debug log
LOGGED_BODY_MAX_LENGTH = 2048


def log_httpx_request(
    http_method: str,
    full_url: str,
    request_params: dict[str, Any] | None,
    redacted_request_headers: dict[str, str],
    encoded_payload: str | None,
    timeout_context: _TimeoutContext,
) -> None:
    """
    Log, at debug level, a request about to be sent to the database,
    such as opening a query cursor or reading a document.

    Args:
        http_method: the HTTP verb of the request (e.g. "PUT" for a cursor batch).
        full_url: the URL of the request, e.g.
            "http://localhost:8529/_db/_system/_api/cursor/1234".
        request_params: query parameters of the request (e.g. the "rev" of
            a document revision check).
        redacted_request_headers: headers with secret values already masked.
            They are logged as they are.
        encoded_payload: the JSON body sent with the request, if any.
        timeout_context: the timeout applied to the request.
    """
    logger.debug(f"ArangoDB request: {http_method} {full_url}")
    if request_params:
        logger.debug(f"  query parameters: {request_params}")
    if redacted_request_headers:
        logger.debug(f"  headers: {redacted_request_headers}")
    if encoded_payload is not None:
        logger.debug(f"  body: {encoded_payload}")
    if timeout_context.request_ms:
        logger.debug(f"  timeout: {timeout_context.request_ms} ms")
    else:
        logger.debug("  timeout: none")


def log_httpx_response(response: httpx.Response) -> None:
    """
    Log, at debug level, the status and body of a response from the database.
    Error statuses are logged here as well, since the callers interpret them.
    """
    logger.debug(
        f"ArangoDB response: {response.status_code} {response.reason_phrase} "
        f"to {response.request.method} {response.request.url}"
    )
    body_text = response.text
    if len(body_text) > LOGGED_BODY_MAX_LENGTH:
        body_text = f"{body_text[:LOGGED_BODY_MAX_LENGTH]}... ({len(body_text)} chars)"
    if body_text:
        logger.debug(f"  body: {body_text}")


class HttpMethod:
    """
    The HTTP verbs the client issues: GET and HEAD read documents, POST opens
    a query cursor, PUT fetches the next batch of a cursor, DELETE drops it.
    """

    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


READ_ONLY_HTTP_METHODS = {HttpMethod.GET, HttpMethod.HEAD}


def to_httpx_timeout(timeout_context: _TimeoutContext) -> httpx.Timeout | None:
    """
    The httpx timeout for a single request. An unset or zero `request_ms`
    means that the request waits indefinitely.
    """
    if not timeout_context.request_ms:
        return None
    return httpx.Timeout(timeout_context.request_ms / 1000)


def compose_user_agent(callers: Sequence[CallerType]) -> str | None:
    """
    Build the User-Agent header value out of a sequence of (name, version) pairs,
    skipping entries without a name. Returns None if nothing is left.
    """
    ua_pieces: list[str] = []
    for caller_name, caller_version in callers:
        if not caller_name:
            continue
        if caller_version:
            ua_pieces.append(f"{caller_name}/{caller_version}")
        else:
            ua_pieces.append(caller_name)
    return " ".join(ua_pieces) or None
