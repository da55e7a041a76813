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

"""
Shared fixtures for the unit tests: a scripted stand-in for the Database
(to verify which requests the cursor and document objects issue) and
Database objects pointed at a local HTTP server.
"""

from __future__ import annotations

from typing import Any, Iterable

import pytest
from pytest_httpserver import HTTPServer

from arangopy import ArangoClient, Database
from arangopy.utils.api_commander import ArangoResponse

SAMPLE_ROWS = [
    {"_key": "r0", "name": "alice", "age": 31},
    {"_key": "r1", "name": "bob", "age": 42},
    {"_key": "r2", "name": "carol", "age": 27},
]


class ScriptedDatabase:
    """
    Answers `send`/`get` with a predefined sequence of responses,
    recording each call. An unexpected call fails the test.
    """

    def __init__(self, responses: Iterable[ArangoResponse] = ()) -> None:
        self.responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    def _answer(
        self,
        resource_kind: str,
        identifier: str,
        http_method: str,
        headers: dict[str, str | None] | None = None,
        payload: dict[str, Any] | None = None,
        request_params: dict[str, Any] | None = None,
    ) -> ArangoResponse:
        self.calls.append(
            {
                "resource_kind": resource_kind,
                "identifier": identifier,
                "http_method": http_method,
                "request_params": request_params,
            }
        )
        if not self.responses:
            raise AssertionError(
                f"Unexpected request: {http_method} {resource_kind}/{identifier}"
            )
        return self.responses.pop(0)

    def send(self, *args: Any, **kwargs: Any) -> ArangoResponse:
        return self._answer(*args, **kwargs)

    def get(self, *args: Any, **kwargs: Any) -> ArangoResponse:
        return self._answer(*args, **kwargs)


@pytest.fixture
def scripted_database() -> ScriptedDatabase:
    return ScriptedDatabase()


@pytest.fixture
def http_database(httpserver: HTTPServer) -> Database:
    return ArangoClient().get_database(
        httpserver.url_for("/"),
        token="t0k3n",
    )
