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
from collections.abc import MutableSequence
from dataclasses import dataclass
from enum import Enum
from types import TracebackType
from typing import TYPE_CHECKING, Any, Callable, Generic, TypeVar, cast

import deprecation
import httpx

from arangopy import __version__
from arangopy.exceptions import ArangoException, CursorException
from arangopy.settings.defaults import (
    ADVANCE_DEPRECATION_NOTICE,
    FETCH_ONE_DEPRECATION_NOTICE,
    HTTP_STATUS_ACCEPTED,
    HTTP_STATUS_NOT_FOUND,
    HTTP_STATUS_OK,
    RESOURCE_KIND_CURSOR,
)
from arangopy.utils.api_commander import ArangoResponse
from arangopy.utils.request_tools import HttpMethod
from arangopy.utils.row_decoding import RowTargetType, decode_row, decode_rows

if TYPE_CHECKING:
    from arangopy.database import Database

T = TypeVar("T")

logger = logging.getLogger(__name__)


class CursorState(Enum):
    """
    This enum expresses the possible states for a `Cursor`.

    Values:
        IDLE: no row has been read yet (alive=T, started=F)
        STARTED: reading has started, *can* still yield rows (alive=T, started=T)
        CLOSED: exhausted or deleted. Won't return more rows (alive=F)
    """

    IDLE = "idle"
    STARTED = "started"
    CLOSED = "closed"


@dataclass
class CursorStats:
    """
    Execution statistics of the query behind a cursor, as reported by the server.

    Attributes:
        writes_executed: number of modification operations executed.
        writes_ignored: number of modification operations ignored.
        scanned_full: number of documents read through full collection scans.
        scanned_index: number of documents read through indexes.
        filtered: number of documents removed by filter conditions.
        execution_time: query execution time in seconds.
        full_count: number of result rows disregarding the last top-level LIMIT,
            only populated if the query was opened with `full_count=True`.
    """

    writes_executed: int = 0
    writes_ignored: int = 0
    scanned_full: int = 0
    scanned_index: int = 0
    filtered: int = 0
    execution_time: float = 0.0
    full_count: int = 0

    @classmethod
    def _from_dict(cls, raw_dict: dict[str, Any]) -> CursorStats:
        return CursorStats(
            writes_executed=raw_dict.get("writesExecuted") or 0,
            writes_ignored=raw_dict.get("writesIgnored") or 0,
            scanned_full=raw_dict.get("scannedFull") or 0,
            scanned_index=raw_dict.get("scannedIndex") or 0,
            filtered=raw_dict.get("filtered") or 0,
            execution_time=raw_dict.get("executionTime") or 0.0,
            full_count=raw_dict.get("fullCount") or 0,
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "writesExecuted": self.writes_executed,
            "writesIgnored": self.writes_ignored,
            "scannedFull": self.scanned_full,
            "scannedIndex": self.scanned_index,
            "filtered": self.filtered,
            "executionTime": self.execution_time,
            "fullCount": self.full_count,
        }


class Cursor(Generic[T]):
    """
    A cursor over the results of a query, as returned by `Database.query`.

    The server returns results in batches: the cursor holds the current batch
    in a local buffer and transparently asks the server for the next one
    when the buffer is consumed and the server reports more results available.
    Iterating over the cursor yields each row once, decoded according to the
    `row_type` chosen when opening the query (plain dictionaries by default).

    A cursor is meant for sequential use by a single owner: concurrent reads
    from several threads must be serialized by the caller.

    Args:
        database: the Database this cursor reads from. Required.
        row_type: the default decoding target for the rows. See
            `arangopy.utils.row_decoding.decode_row` for the admitted values.

    Example:
        >>> cursor = database.query(
        ...     "FOR u IN users FILTER u.age > @age RETURN u.name",
        ...     bind_vars={"age": 30},
        ...     batch_size=2,
        ... )
        >>> for name in cursor:
        ...     print(name)
        ...
        alice
        bob
        carol
    """

    _database: Database
    _row_type: RowTargetType[T] | None
    _id: str
    _batch: list[Any]
    _index: int
    _max: int
    _has_more: bool
    _count: int
    _stats: CursorStats
    _warnings: list[Any]
    _cached: bool
    _errored: bool
    _error_message: str
    _code: int
    _error_num: int
    _time: float
    _state: CursorState
    _consumed: int
    _batches_retrieved: int

    def __init__(
        self,
        database: Database | None,
        *,
        row_type: RowTargetType[T] | None = None,
    ) -> None:
        if database is None:
            raise ValueError("A database is required to create a cursor.")
        self._database = database
        self._row_type = row_type
        self._id = ""
        self._batch = []
        self._index = 0
        self._max = 0
        self._has_more = False
        self._count = 0
        self._stats = CursorStats()
        self._warnings = []
        self._cached = False
        self._errored = False
        self._error_message = ""
        self._code = 0
        self._error_num = 0
        self._time = 0.0
        self._state = CursorState.IDLE
        self._consumed = 0
        self._batches_retrieved = 0

    def __repr__(self) -> str:
        return (
            f'{self.__class__.__name__}("{self._id}", '
            f"{self._state.value}, "
            f"consumed so far: {self._consumed})"
        )

    def __iter__(self) -> Cursor[T]:
        return self

    def __next__(self) -> T:
        found, row = self.fetch_next()
        if not found:
            raise StopIteration
        return cast(T, row)

    def __enter__(self) -> Cursor[T]:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: TracebackType | None = None,
    ) -> None:
        # the server drops exhausted cursors by itself
        if self._id and self._has_more:
            self.delete()

    def _apply_response(self, response_body: dict[str, Any]) -> None:
        """
        Update the cursor with a response body from the server. Only the fields
        present in the body are overwritten: e.g. the count, which only comes
        with the first response, survives subsequent batch fetches.
        """

        if "id" in response_body:
            self._id = response_body["id"] or ""
        if "result" in response_body:
            self._batch = list(response_body["result"] or [])
            self._max = len(self._batch)
        if "hasMore" in response_body:
            self._has_more = bool(response_body["hasMore"])
        if "count" in response_body:
            self._count = response_body["count"] or 0
        if "extra" in response_body:
            extra = response_body["extra"] or {}
            if "stats" in extra:
                self._stats = CursorStats._from_dict(extra["stats"] or {})
            if "warnings" in extra:
                self._warnings = list(extra["warnings"] or [])
                for warning in self._warnings:
                    logger.warning(f"The query returned a warning: {warning}")
        if "cached" in response_body:
            self._cached = bool(response_body["cached"])
        if "error" in response_body:
            self._errored = bool(response_body["error"])
        if "errorMessage" in response_body:
            self._error_message = response_body["errorMessage"] or ""
        if "code" in response_body:
            self._code = response_body["code"] or 0
        if "errorNum" in response_body:
            self._error_num = response_body["errorNum"] or 0
        if "time" in response_body:
            self._time = response_body["time"] or 0.0

    def _request_next_batch(self) -> ArangoResponse:
        """
        Ask the server for the next batch and apply the response, whatever its
        status code (an error response echoes the error into the cursor).
        On success the read position goes back to the start of the new batch.
        """

        logger.info(f"fetching next batch for cursor '{self._id}'")
        response = self._database.send(
            RESOURCE_KIND_CURSOR,
            self._id,
            HttpMethod.PUT,
        )
        self._apply_response(response.body)
        if response.status_code == HTTP_STATUS_OK:
            self._index = 0
            self._batches_retrieved += 1
        logger.info(
            f"finished fetching next batch for cursor '{self._id}' "
            f"(status {response.status_code})"
        )
        return response

    def _try_ensure_fill_buffer(self) -> bool:
        """
        Make sure the buffer has an unread row, fetching new batches as needed.

        Returns:
            True if a row is available, False if the cursor is exhausted.

        Raises:
            CursorException: if the server answers a batch request with an
                unexpected status code.
        """

        while self._index >= len(self._batch):
            if not self._has_more or self._state == CursorState.CLOSED:
                self._state = CursorState.CLOSED
                return False
            response = self._request_next_batch()
            if response.status_code != HTTP_STATUS_OK:
                raise CursorException(
                    text=(
                        "Cursor batch request returned status code of "
                        f"{response.status_code}"
                    ),
                    cursor_state=self._state.value,
                    status_code=response.status_code,
                )
        return True

    def _close(self) -> None:
        self._state = CursorState.CLOSED
        self._id = ""
        self._has_more = False
        self._batch = []
        self._index = 0
        self._max = 0

    @property
    def database(self) -> Database:
        """The Database this cursor reads from."""

        return self._database

    @property
    def id(self) -> str:
        """
        The server-side identifier of the cursor. An empty string means that
        there is no server-side cursor to talk to: either the whole result fit
        in the first batch, or the cursor has been deleted.
        """

        return self._id

    @property
    def state(self) -> CursorState:
        """
        The current state of this cursor.

        Returns:
            a value in `arangopy.cursor.CursorState`.
        """

        return self._state

    @property
    def batch(self) -> list[Any]:
        """A copy of the current batch of raw rows, read and unread alike."""

        return list(self._batch)

    @property
    def index(self) -> int:
        """The read position within the current batch."""

        return self._index

    @property
    def consumed(self) -> int:
        """The number of rows successfully read by `fetch_next`/iteration so far."""

        return self._consumed

    @property
    def buffered_count(self) -> int:
        """
        The number of rows in the local buffer still to be read. Reading this
        property never triggers requests to the server.
        """

        return max(len(self._batch) - self._index, 0)

    @property
    def count(self) -> int:
        """
        The total number of rows in the result, as reported when the query was
        opened. This is zero unless the query was opened with `count=True`.
        """

        return self._count

    @property
    def full_count(self) -> int:
        """
        The number of rows the query would have produced without its last
        top-level LIMIT (from the execution statistics).
        """

        return self._stats.full_count

    @property
    def has_more(self) -> bool:
        """Whether the server holds further batches for this cursor."""

        return self._has_more

    @property
    def errored(self) -> bool:
        """Whether the last response from the server reported an error."""

        return self._errored

    @property
    def error_code(self) -> int:
        """The status code echoed in the last response body from the server."""

        return self._code

    @property
    def error_message(self) -> str:
        return self._error_message

    @property
    def error_num(self) -> int:
        return self._error_num

    @property
    def stats(self) -> CursorStats:
        return self._stats

    @property
    def warnings(self) -> list[Any]:
        return list(self._warnings)

    @property
    def cached(self) -> bool:
        return self._cached

    @property
    def time(self) -> float:
        return self._time

    def delete(self) -> bool:
        """
        Delete the cursor on the server, freeing the associated resources,
        and drop the local buffer.

        If the cursor has no server-side identifier, this is a no-op and no
        request is issued. Once the server confirms the deletion (or reports the
        cursor as already gone) the cursor is closed and further calls are no-ops.

        Returns:
            True if the server acknowledged the deletion (HTTP 202),
            False otherwise (no server-side cursor, not found, unexpected status).
        """

        if not self._id:
            return False
        cursor_id = self._id
        logger.info(f"deleting cursor '{cursor_id}'")
        response = self._database.send(
            RESOURCE_KIND_CURSOR,
            cursor_id,
            HttpMethod.DELETE,
        )
        self._apply_response(response.body)
        if response.status_code == HTTP_STATUS_ACCEPTED:
            self._close()
            logger.info(f"finished deleting cursor '{cursor_id}'")
            return True
        elif response.status_code == HTTP_STATUS_NOT_FOUND:
            self._close()
            logger.info(f"cursor '{cursor_id}' not found on server")
            return False
        else:
            logger.warning(
                f"deleting cursor '{cursor_id}' returned unexpected status "
                f"code {response.status_code}"
            )
            self._id = cursor_id
            return False

    def fetch_batch(
        self,
        out: MutableSequence[Any],
        row_type: RowTargetType[Any] | None = None,
    ) -> None:
        """
        Decode the whole current batch into the provided list, replacing its
        contents. If the server holds more results, the next batch is then
        requested and stored in the cursor, *without* being decoded into `out`:
        call this method again to read it.

        The whole batch counts as read: the read position moves to the end of
        the batch, so a following `fetch_next` (or iteration) does not return
        these rows again. If a new batch was fetched, the position is at its
        start instead.

        Args:
            out: a mutable sequence (such as a list) receiving the decoded rows.
            row_type: the decoding target for the rows. Defaults to the
                `row_type` of the cursor.

        Raises:
            TypeError: if `out` is not a mutable sequence. No request is issued.
            RowDecodingException: if a row does not match the decoding target.
        """

        if not isinstance(out, MutableSequence):
            raise TypeError(
                "Container must be a mutable sequence (such as a list), "
                f"not '{type(out).__name__}'."
            )
        _row_type = row_type if row_type is not None else self._row_type
        out[:] = decode_rows(self._batch, _row_type)
        self._index = len(self._batch)
        if self._batch:
            self._state = CursorState.STARTED

        if self._has_more:
            response = self._request_next_batch()
            if response.status_code != HTTP_STATUS_OK:
                logger.warning(
                    f"fetching next batch for cursor '{self._id}' returned "
                    f"status code {response.status_code}"
                )

    @deprecation.deprecated(  # type: ignore[misc]
        deprecated_in="0.1.0",
        removed_in="1.0.0",
        current_version=__version__,
        details=FETCH_ONE_DEPRECATION_NOTICE,
    )
    def fetch_one(
        self, row_type: RowTargetType[Any] | None = None
    ) -> tuple[bool, Any]:
        """
        Legacy row-by-row reader.

        This method reports exhaustion of a batch one call late: the call
        following the last row of a batch returns `(True, None)`. Likewise, after
        fetching a new batch from the server it returns `(True, None)` without
        reading a row. Failures are reported as `(False, None)` and logged.

        Args:
            row_type: the decoding target for the row. Defaults to the
                `row_type` of the cursor.

        Returns:
            a pair (flag, row). The flag is False once the cursor is exhausted
            or on failure; the row is None whenever no row was read.
        """

        _row_type = row_type if row_type is not None else self._row_type
        if self._index > self._max:
            if self._has_more:
                try:
                    response = self._request_next_batch()
                except (httpx.HTTPError, ArangoException) as exc:
                    logger.warning(f"fetching next batch failed: {exc}")
                    return (False, None)
                return (response.status_code == HTTP_STATUS_OK, None)
            else:
                self._state = CursorState.CLOSED
                return (False, None)

        if self._index >= len(self._batch):
            # one position past the last row: nothing to read there
            self._index += 1
            return (True, None)
        raw_row = self._batch[self._index]
        self._index += 1
        self._state = CursorState.STARTED
        try:
            row = decode_row(raw_row, _row_type)
        except ArangoException as exc:
            logger.warning(f"decoding row failed: {exc}")
            return (False, None)
        return (True, row)

    def fetch_next(
        self, row_type: RowTargetType[Any] | None = None
    ) -> tuple[bool, Any]:
        """
        Read the next row, fetching the next batch from the server if the
        current one has been fully read.

        Args:
            row_type: the decoding target for the row. Defaults to the
                `row_type` of the cursor.

        Returns:
            a pair (flag, row): (True, row) if a row was read,
            (False, None) if the cursor is exhausted.

        Raises:
            CursorException: if a batch request returns a status other than 200.
                The exception carries the status code.
            RowDecodingException: if the row does not match the decoding target.
                The read position is not advanced in that case.
        """

        _row_type = row_type if row_type is not None else self._row_type
        if not self._try_ensure_fill_buffer():
            return (False, None)
        row = decode_row(self._batch[self._index], _row_type)
        self._index += 1
        self._consumed += 1
        self._state = CursorState.STARTED
        return (True, row)

    @deprecation.deprecated(  # type: ignore[misc]
        deprecated_in="0.1.0",
        removed_in="1.0.0",
        current_version=__version__,
        details=ADVANCE_DEPRECATION_NOTICE,
    )
    def advance(self) -> bool:
        """
        Legacy position mover: move the read position by one step towards the
        length of the batch as of the last fetch, without reading any row.

        Returns:
            True if this step reached the end of the batch, False otherwise
            (including when the position was already at the end).
        """

        if self._index == self._max:
            return False
        self._index += 1
        return self._index == self._max

    def has_next(self) -> bool:
        """
        Whether the cursor actually has more rows to return.

        This method can trigger the fetch of a new batch, if the current one
        has been fully read.

        Returns:
            True if there is at least one further row available to read.
        """

        return self._try_ensure_fill_buffer()

    def to_list(self, row_type: RowTargetType[Any] | None = None) -> list[Any]:
        """
        Read all remaining rows of the cursor into a list.

        Rows read earlier are not part of the result. For large results, a lazy
        iteration over the cursor is to be preferred.

        Args:
            row_type: the decoding target for the rows. Defaults to the
                `row_type` of the cursor.

        Returns:
            a list with the remaining rows.
        """

        rows: list[Any] = []
        while True:
            found, row = self.fetch_next(row_type)
            if not found:
                return rows
            rows.append(row)

    def for_each(
        self,
        function: Callable[[Any], bool | None],
        row_type: RowTargetType[Any] | None = None,
    ) -> None:
        """
        Read the remaining rows of the cursor, invoking a callback on each of them.

        The callback's return value is discarded, except when it is the boolean
        `False`: this stops the method early, leaving the cursor partly read.

        Args:
            function: a callback whose only parameter is a decoded row.
            row_type: the decoding target for the rows. Defaults to the
                `row_type` of the cursor.
        """

        while True:
            found, row = self.fetch_next(row_type)
            if not found:
                return
            if function(row) is False:
                return
