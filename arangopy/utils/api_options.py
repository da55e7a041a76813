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

from dataclasses import dataclass, field, fields
from typing import Any, Sequence, TypeVar

from arangopy.constants import CallerType
from arangopy.settings.defaults import (
    DEFAULT_DATABASE_NAME,
    DEFAULT_REQUEST_TIMEOUT_MS,
)
from arangopy.utils.unset import _UNSET, UnsetType

AO = TypeVar("AO", bound="_BaseOptions")


class _BaseOptions:
    def with_override(self: AO, other: Any) -> AO:
        """
        Return a new options object, obtained by replacing the fields of this one
        with all fields of `other` that are not unset.

        Args:
            other: an options object of the same (or a non-full) kind, or None.

        Returns:
            a new options object of the same class as this one.
        """

        if other is None:
            return self
        overridden = {
            fld.name: (
                getattr(other, fld.name)
                if not isinstance(getattr(other, fld.name, _UNSET), UnsetType)
                else getattr(self, fld.name)
            )
            for fld in fields(self)  # type: ignore[arg-type]
        }
        return self.__class__(**overridden)


@dataclass
class TimeoutOptions(_BaseOptions):
    """
    The group of settings for the API Options concerning the configured timeouts.

    All timeout values are integers expressed in milliseconds. A timeout of zero
    signifies that no timeout is imposed at all on that kind of operation.

    Attributes:
        request_timeout_ms: the timeout imposed on a single HTTP request.
            Each batch fetch of a cursor is a separate request. Defaults to 30 s.
    """

    request_timeout_ms: int | UnsetType = _UNSET


@dataclass
class FullTimeoutOptions(TimeoutOptions):
    """
    The fully-resolved counterpart of `TimeoutOptions`, with no unset fields.
    See `TimeoutOptions` for the meaning of the attributes.
    """

    request_timeout_ms: int

    def __init__(self, *, request_timeout_ms: int) -> None:
        self.request_timeout_ms = request_timeout_ms


@dataclass
class APIOptions(_BaseOptions):
    """
    A description of the options about how to interact with the database.
    Options left unset are inherited from the object that spawns the
    one being configured (e.g. a Database inherits from the ArangoClient).

    Attributes:
        callers: a list of caller identities, i.e. pairs (name, version), which
            end up in the User-Agent header of every request.
        database_name: the name of the database to work against.
        timeout_options: a `TimeoutOptions` object.
        redacted_header_names: names of additional headers whose values should
            never be written to the logs. The auth header is always redacted.
        extra_headers: additional headers sent with every request.
    """

    callers: Sequence[CallerType] | UnsetType = _UNSET
    database_name: str | UnsetType = _UNSET
    timeout_options: TimeoutOptions | UnsetType = _UNSET
    redacted_header_names: Sequence[str] | UnsetType = _UNSET
    extra_headers: dict[str, str | None] | UnsetType = _UNSET


@dataclass
class FullAPIOptions(APIOptions):
    """
    The fully-resolved counterpart of `APIOptions`, as held by clients and
    databases. See `APIOptions` for the meaning of the attributes.
    """

    callers: Sequence[CallerType]
    database_name: str
    timeout_options: FullTimeoutOptions
    redacted_header_names: Sequence[str]
    extra_headers: dict[str, str | None] = field(default_factory=dict)

    def __init__(
        self,
        *,
        callers: Sequence[CallerType],
        database_name: str,
        timeout_options: FullTimeoutOptions,
        redacted_header_names: Sequence[str],
        extra_headers: dict[str, str | None],
    ) -> None:
        self.callers = callers
        self.database_name = database_name
        self.timeout_options = timeout_options
        self.redacted_header_names = redacted_header_names
        self.extra_headers = extra_headers

    def with_override(self, other: APIOptions | None) -> FullAPIOptions:
        if other is None:
            return self
        timeout_options: FullTimeoutOptions
        if isinstance(other.timeout_options, TimeoutOptions):
            timeout_options = self.timeout_options.with_override(
                other.timeout_options
            )
        else:
            timeout_options = self.timeout_options
        return FullAPIOptions(
            callers=(
                other.callers
                if not isinstance(other.callers, UnsetType)
                else self.callers
            ),
            database_name=(
                other.database_name
                if not isinstance(other.database_name, UnsetType)
                else self.database_name
            ),
            timeout_options=timeout_options,
            redacted_header_names=(
                other.redacted_header_names
                if not isinstance(other.redacted_header_names, UnsetType)
                else self.redacted_header_names
            ),
            extra_headers=(
                {**self.extra_headers, **other.extra_headers}
                if not isinstance(other.extra_headers, UnsetType)
                else self.extra_headers
            ),
        )


def default_api_options() -> FullAPIOptions:
    return FullAPIOptions(
        callers=[],
        database_name=DEFAULT_DATABASE_NAME,
        timeout_options=FullTimeoutOptions(
            request_timeout_ms=DEFAULT_REQUEST_TIMEOUT_MS,
        ),
        redacted_header_names=[],
        extra_headers={},
    )
