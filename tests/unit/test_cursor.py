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
from dataclasses import dataclass
from typing import Any

import pytest

from arangopy import Cursor, CursorState
from arangopy.exceptions import CursorException, RowDecodingException
from arangopy.utils.api_commander import ArangoResponse

from ..conftest import SAMPLE_ROWS, ScriptedDatabase


@dataclass
class Person:
    name: str
    age: int


def _loaded_cursor(
    database: ScriptedDatabase,
    rows: list[Any] = SAMPLE_ROWS,
    *,
    cursor_id: str = "",
    has_more: bool = False,
    **extra_fields: Any,
) -> Cursor[Any]:
    cursor: Cursor[Any] = Cursor(database)  # type: ignore[arg-type]
    cursor._apply_response(
        {
            "id": cursor_id,
            "result": rows,
            "hasMore": has_more,
            "count": len(rows),
            **extra_fields,
        }
    )
    return cursor


class TestCursorConstruction:
    @pytest.mark.describe("test of cursor construction requiring a database")
    def test_cursor_needs_database(self) -> None:
        with pytest.raises(ValueError):
            Cursor(None)

    @pytest.mark.describe("test of a new cursor having zero-valued fields")
    def test_cursor_zero_values(self, scripted_database: ScriptedDatabase) -> None:
        cursor: Cursor[Any] = Cursor(scripted_database)  # type: ignore[arg-type]
        assert cursor.id == ""
        assert cursor.batch == []
        assert cursor.index == 0
        assert cursor.has_more is False
        assert cursor.count == 0
        assert cursor.full_count == 0
        assert cursor.errored is False
        assert cursor.error_code == 0
        assert cursor.state == CursorState.IDLE
        assert cursor.database is scripted_database

    @pytest.mark.describe("test of cursor accessors reading the response fields")
    def test_cursor_accessors(self, scripted_database: ScriptedDatabase) -> None:
        cursor = _loaded_cursor(
            scripted_database,
            cursor_id="c1",
            has_more=True,
            extra={
                "stats": {
                    "writesExecuted": 1,
                    "writesIgnored": 2,
                    "scannedFull": 3,
                    "scannedIndex": 4,
                    "filtered": 5,
                    "executionTime": 0.25,
                    "fullCount": 99,
                },
                "warnings": [],
            },
            cached=True,
            error=False,
            code=201,
        )
        assert cursor.id == "c1"
        assert cursor.count == 3
        assert cursor.full_count == 99
        assert cursor.has_more is True
        assert cursor.errored is False
        assert cursor.error_code == 201
        assert cursor.cached is True
        assert cursor.stats.scanned_index == 4
        assert cursor.stats.execution_time == 0.25
        assert cursor.stats.as_dict()["writesIgnored"] == 2
        assert cursor.buffered_count == 3
        assert scripted_database.calls == []

    @pytest.mark.describe("test of count surviving responses that omit it")
    def test_cursor_partial_response(self, scripted_database: ScriptedDatabase) -> None:
        cursor = _loaded_cursor(scripted_database, cursor_id="c1", has_more=True)
        cursor._apply_response({"id": "c1", "result": [{"a": 1}], "hasMore": False})
        assert cursor.count == 3
        assert cursor.batch == [{"a": 1}]
        assert cursor.has_more is False

    @pytest.mark.describe("test of query warnings being logged")
    def test_cursor_warnings_logged(
        self,
        scripted_database: ScriptedDatabase,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        with caplog.at_level(logging.WARNING):
            cursor = _loaded_cursor(
                scripted_database,
                extra={"warnings": [{"code": 1562, "message": "division by zero"}]},
            )
        assert cursor.warnings == [{"code": 1562, "message": "division by zero"}]
        assert "division by zero" in caplog.text


class TestCursorFetchNext:
    @pytest.mark.describe("test of fetch_next reading a single batch without requests")
    def test_fetch_next_single_batch(
        self, scripted_database: ScriptedDatabase
    ) -> None:
        cursor = _loaded_cursor(scripted_database)
        results = [cursor.fetch_next() for _ in range(4)]
        assert results == [
            (True, SAMPLE_ROWS[0]),
            (True, SAMPLE_ROWS[1]),
            (True, SAMPLE_ROWS[2]),
            (False, None),
        ]
        assert cursor.consumed == 3
        assert cursor.state == CursorState.CLOSED
        assert scripted_database.calls == []

    @pytest.mark.describe("test of fetch_next refilling the batch from the server")
    def test_fetch_next_refill(self, scripted_database: ScriptedDatabase) -> None:
        scripted_database.responses = [
            ArangoResponse(
                status_code=200,
                body={"id": "c1", "result": [{"n": 3}], "hasMore": False},
            ),
        ]
        cursor = _loaded_cursor(
            scripted_database,
            [{"n": 1}, {"n": 2}],
            cursor_id="c1",
            has_more=True,
        )
        rows = []
        while True:
            found, row = cursor.fetch_next()
            if not found:
                break
            rows.append(row)
        assert rows == [{"n": 1}, {"n": 2}, {"n": 3}]
        assert scripted_database.calls == [
            {
                "resource_kind": "cursor",
                "identifier": "c1",
                "http_method": "PUT",
                "request_params": None,
            }
        ]
        assert cursor.count == 2

    @pytest.mark.describe("test of fetch_next raising with the status of a failed refill")
    def test_fetch_next_refill_failure(
        self, scripted_database: ScriptedDatabase
    ) -> None:
        scripted_database.responses = [
            ArangoResponse(
                status_code=404,
                body={
                    "error": True,
                    "errorMessage": "cursor not found",
                    "code": 404,
                    "errorNum": 1600,
                },
            ),
        ]
        cursor = _loaded_cursor(
            scripted_database, [{"n": 1}], cursor_id="c1", has_more=True
        )
        assert cursor.fetch_next() == (True, {"n": 1})
        with pytest.raises(CursorException) as exc_info:
            cursor.fetch_next()
        assert exc_info.value.status_code == 404
        assert "404" in str(exc_info.value)
        assert cursor.errored is True
        assert cursor.error_code == 404
        assert cursor.error_num == 1600
        assert cursor.error_message == "cursor not found"

    @pytest.mark.describe("test of fetch_next decoding into a target type")
    def test_fetch_next_row_type(self, scripted_database: ScriptedDatabase) -> None:
        cursor = _loaded_cursor(scripted_database)
        assert cursor.fetch_next(Person) == (True, Person(name="alice", age=31))

    @pytest.mark.describe("test of fetch_next surfacing decoding mismatches")
    def test_fetch_next_decoding_mismatch(
        self, scripted_database: ScriptedDatabase
    ) -> None:
        cursor = _loaded_cursor(scripted_database, ["not-an-object", {"n": 1}])
        with pytest.raises(RowDecodingException):
            cursor.fetch_next(Person)
        # the position does not move past an undecodable row
        assert cursor.index == 0
        assert cursor.fetch_next() == (True, "not-an-object")


class TestCursorIteration:
    @pytest.mark.describe("test of iterating over a cursor across batches")
    def test_cursor_iteration(self, scripted_database: ScriptedDatabase) -> None:
        scripted_database.responses = [
            ArangoResponse(
                status_code=200,
                body={"id": "c1", "result": [], "hasMore": True},
            ),
            ArangoResponse(
                status_code=200,
                body={"id": "c1", "result": [{"n": 2}, {"n": 3}], "hasMore": False},
            ),
        ]
        cursor = _loaded_cursor(
            scripted_database, [{"n": 1}], cursor_id="c1", has_more=True
        )
        assert [row["n"] for row in cursor] == [1, 2, 3]
        assert len(scripted_database.calls) == 2
        assert cursor.state == CursorState.CLOSED
        assert list(cursor) == []

    @pytest.mark.describe("test of cursor row_type applying to iteration")
    def test_cursor_iteration_row_type(
        self, scripted_database: ScriptedDatabase
    ) -> None:
        cursor: Cursor[Person] = Cursor(
            scripted_database,  # type: ignore[arg-type]
            row_type=Person,
        )
        cursor._apply_response({"result": SAMPLE_ROWS, "hasMore": False})
        assert [person.name for person in cursor] == ["alice", "bob", "carol"]

    @pytest.mark.describe("test of has_next, to_list and for_each")
    def test_cursor_consumption_helpers(
        self, scripted_database: ScriptedDatabase
    ) -> None:
        cursor = _loaded_cursor(scripted_database)
        assert cursor.has_next() is True
        seen: list[str] = []

        def _collect(row: dict[str, Any]) -> bool:
            seen.append(row["name"])
            return row["name"] != "alice"

        cursor.for_each(_collect)
        assert seen == ["alice"]
        assert cursor.state == CursorState.STARTED
        assert cursor.to_list(lambda row: row["age"]) == [42, 27]
        assert cursor.has_next() is False
        assert cursor.to_list() == []


class TestCursorFetchBatch:
    @pytest.mark.describe("test of fetch_batch rejecting a non-sequence container")
    def test_fetch_batch_not_a_sequence(
        self, scripted_database: ScriptedDatabase
    ) -> None:
        cursor = _loaded_cursor(scripted_database, cursor_id="c1", has_more=True)
        for container in ({}, "text", (1, 2), None):
            with pytest.raises(TypeError):
                cursor.fetch_batch(container)  # type: ignore[arg-type]
        assert scripted_database.calls == []

    @pytest.mark.describe("test of fetch_batch reading one batch at a time")
    def test_fetch_batch_one_at_a_time(
        self, scripted_database: ScriptedDatabase
    ) -> None:
        scripted_database.responses = [
            ArangoResponse(
                status_code=200,
                body={"id": "c1", "result": [{"n": 3}], "hasMore": False},
            ),
        ]
        cursor = _loaded_cursor(
            scripted_database,
            [{"n": 1}, {"n": 2}],
            cursor_id="c1",
            has_more=True,
        )
        out: list[Any] = ["stale"]
        cursor.fetch_batch(out)
        # the next batch is fetched but not decoded into the container
        assert out == [{"n": 1}, {"n": 2}]
        assert len(scripted_database.calls) == 1
        assert cursor.batch == [{"n": 3}]
        assert cursor.has_more is False

        cursor.fetch_batch(out)
        assert out == [{"n": 3}]
        assert len(scripted_database.calls) == 1

    @pytest.mark.describe("test of fetch_batch marking the batch as read")
    def test_fetch_batch_moves_read_position(
        self, scripted_database: ScriptedDatabase
    ) -> None:
        cursor = _loaded_cursor(scripted_database, [{"n": 1}, {"n": 2}])
        out: list[Any] = []
        cursor.fetch_batch(out)
        assert cursor.index == 2
        assert cursor.fetch_next() == (False, None)
        assert scripted_database.calls == []

        scripted_database.responses = [
            ArangoResponse(
                status_code=200,
                body={"id": "c1", "result": [{"n": 3}], "hasMore": False},
            ),
        ]
        refilled_cursor = _loaded_cursor(
            scripted_database, [{"n": 1}], cursor_id="c1", has_more=True
        )
        refilled_cursor.fetch_batch(out)
        assert out == [{"n": 1}]
        assert refilled_cursor.index == 0
        assert refilled_cursor.fetch_next() == (True, {"n": 3})

    @pytest.mark.describe("test of fetch_batch decoding into a target type")
    def test_fetch_batch_row_type(self, scripted_database: ScriptedDatabase) -> None:
        cursor = _loaded_cursor(scripted_database)
        people: list[Person] = []
        cursor.fetch_batch(people, Person)
        assert people == [
            Person(name="alice", age=31),
            Person(name="bob", age=42),
            Person(name="carol", age=27),
        ]
        with pytest.raises(RowDecodingException):
            cursor.fetch_batch([], int)


class TestCursorLegacyReaders:
    @pytest.mark.describe("test of fetch_one reporting exhaustion one call late")
    def test_fetch_one_off_by_one(self, scripted_database: ScriptedDatabase) -> None:
        # known quirk of this legacy reader, kept for compatibility:
        # the call past the last row still reports success, without a row.
        cursor = _loaded_cursor(scripted_database)
        with pytest.warns(DeprecationWarning):
            results = [cursor.fetch_one() for _ in range(5)]
        assert results == [
            (True, SAMPLE_ROWS[0]),
            (True, SAMPLE_ROWS[1]),
            (True, SAMPLE_ROWS[2]),
            (True, None),
            (False, None),
        ]
        assert sum(1 for found, _ in results if found) == 4
        assert scripted_database.calls == []

    @pytest.mark.describe("test of fetch_one refilling without reading a row")
    def test_fetch_one_refill(self, scripted_database: ScriptedDatabase) -> None:
        scripted_database.responses = [
            ArangoResponse(
                status_code=200,
                body={"id": "c1", "result": [{"n": 2}], "hasMore": False},
            ),
        ]
        cursor = _loaded_cursor(
            scripted_database, [{"n": 1}], cursor_id="c1", has_more=True
        )
        with pytest.warns(DeprecationWarning):
            assert cursor.fetch_one() == (True, {"n": 1})
            assert cursor.fetch_one() == (True, None)
            # batch refill: success is reported, no row read on this call
            assert cursor.fetch_one() == (True, None)
            assert cursor.index == 0
            assert cursor.fetch_one() == (True, {"n": 2})
        assert len(scripted_database.calls) == 1

    @pytest.mark.describe("test of fetch_one reporting failures as False")
    def test_fetch_one_failures(self, scripted_database: ScriptedDatabase) -> None:
        scripted_database.responses = [
            ArangoResponse(status_code=404, body={"error": True, "code": 404}),
        ]
        cursor = _loaded_cursor(
            scripted_database, [{"n": 1}], cursor_id="c1", has_more=True
        )
        with pytest.warns(DeprecationWarning):
            assert cursor.fetch_one(str) == (False, None)
            assert cursor.fetch_one() == (True, None)
            assert cursor.fetch_one() == (False, None)
        assert cursor.errored is True

    @pytest.mark.describe("test of advance moving the position without reading")
    def test_advance(self, scripted_database: ScriptedDatabase) -> None:
        cursor = _loaded_cursor(scripted_database)
        with pytest.warns(DeprecationWarning):
            steps = [cursor.advance() for _ in range(4)]
        assert steps == [False, False, True, False]
        assert cursor.index == 3
        assert cursor.consumed == 0
        assert scripted_database.calls == []


class TestCursorDelete:
    @pytest.mark.describe("test of delete on a cursor without id")
    def test_delete_no_id(self, scripted_database: ScriptedDatabase) -> None:
        cursor = _loaded_cursor(scripted_database)
        assert cursor.delete() is False
        assert scripted_database.calls == []

    @pytest.mark.describe("test of delete acknowledged by the server")
    def test_delete_accepted(self, scripted_database: ScriptedDatabase) -> None:
        scripted_database.responses = [
            ArangoResponse(
                status_code=202, body={"id": "c1", "error": False, "code": 202}
            ),
        ]
        cursor = _loaded_cursor(scripted_database, cursor_id="c1", has_more=True)
        assert cursor.delete() is True
        assert scripted_database.calls[0]["http_method"] == "DELETE"
        assert scripted_database.calls[0]["identifier"] == "c1"
        assert cursor.state == CursorState.CLOSED
        assert cursor.id == ""
        # the server-side cursor is gone: no further requests
        assert cursor.delete() is False
        assert cursor.fetch_next() == (False, None)
        assert len(scripted_database.calls) == 1

    @pytest.mark.describe("test of delete on a cursor the server does not know")
    def test_delete_not_found(self, scripted_database: ScriptedDatabase) -> None:
        scripted_database.responses = [
            ArangoResponse(
                status_code=404,
                body={"error": True, "code": 404, "errorNum": 1600},
            ),
        ]
        cursor = _loaded_cursor(scripted_database, cursor_id="c1", has_more=True)
        assert cursor.delete() is False
        assert cursor.state == CursorState.CLOSED

    @pytest.mark.describe("test of delete with an unexpected status")
    def test_delete_unexpected(self, scripted_database: ScriptedDatabase) -> None:
        scripted_database.responses = [
            ArangoResponse(status_code=500, body={"error": True, "code": 500}),
        ]
        cursor = _loaded_cursor(scripted_database, cursor_id="c1", has_more=True)
        assert cursor.delete() is False
        assert cursor.id == "c1"
        assert cursor.state != CursorState.CLOSED

    @pytest.mark.describe("test of cursor as context manager")
    def test_context_manager(self, scripted_database: ScriptedDatabase) -> None:
        scripted_database.responses = [
            ArangoResponse(status_code=202, body={"id": "c1", "code": 202}),
        ]
        with _loaded_cursor(
            scripted_database, cursor_id="c1", has_more=True
        ) as cursor:
            assert cursor.fetch_next()[0] is True
        assert cursor.state == CursorState.CLOSED
        assert [call["http_method"] for call in scripted_database.calls] == [
            "DELETE"
        ]

        with _loaded_cursor(scripted_database) as cursor2:
            cursor2.to_list()
        assert len(scripted_database.calls) == 1
