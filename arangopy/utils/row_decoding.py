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
Decoding of result rows into caller-chosen target types.

Every row goes through a JSON encode/decode step before being shaped into the
target: this detaches the returned value from the cursor's buffer and makes
sure only JSON-representable content ever reaches the caller.
"""

from __future__ import annotations

import dataclasses
import json
from typing import Any, Callable, Type, TypeVar, Union, cast

from arangopy.exceptions import RowDecodingException

T = TypeVar("T")

RowTargetType = Union[Type[T], Callable[[Any], T]]

# plain JSON-compatible types a row can be checked against
_PLAIN_TARGETS: tuple[type, ...] = (dict, list, str, int, float, bool)


def _describe_target(target: Any) -> str:
    return getattr(target, "__name__", None) or repr(target)


def _check_plain_shape(value: Any, target: type) -> bool:
    if target is bool:
        return isinstance(value, bool)
    if target is int:
        return isinstance(value, int) and not isinstance(value, bool)
    if target is float:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    return isinstance(value, target)


def _decode_dataclass(value: Any, target: type, raw_row: Any) -> Any:
    if not isinstance(value, dict):
        raise RowDecodingException(
            f"Cannot decode a row of type '{type(value).__name__}' "
            f"into '{_describe_target(target)}': an object is required.",
            target=target,
            raw_row=raw_row,
        )
    init_fields = {fld.name for fld in dataclasses.fields(target) if fld.init}
    init_kwargs = {k: v for k, v in value.items() if k in init_fields}
    try:
        return target(**init_kwargs)
    except TypeError as exc:
        raise RowDecodingException(
            f"Cannot decode row into '{_describe_target(target)}': {exc}",
            target=target,
            raw_row=raw_row,
        ) from exc


def encode_row(row: Any) -> str:
    """Encode a row into its JSON text form."""

    return json.dumps(row, allow_nan=False, separators=(",", ":"), ensure_ascii=False)


def decode_row(raw_row: Any, target: RowTargetType[T] | None = None) -> T:
    """
    Decode a single row, as found in a cursor batch, into the requested target.

    Args:
        raw_row: the row as received from the API.
        target: what the row is to be decoded into. If omitted, the plain
            JSON-decoded value is returned. It can be one of `dict`, `list`, `str`,
            `int`, `float`, `bool` (in which case the row must have that shape),
            a dataclass (in which case the row must be an object providing all
            required fields: keys not matching a field are ignored), a class with
            a `from_dict` classmethod, or any callable accepting the decoded value.

    Returns:
        the decoded row.

    Raises:
        RowDecodingException: if the row shape does not match the target.
    """

    try:
        value = json.loads(encode_row(raw_row))
    except (TypeError, ValueError) as exc:
        raise RowDecodingException(
            f"Row cannot be encoded as JSON: {exc}",
            target=target,
            raw_row=raw_row,
        ) from exc

    if target is None:
        return cast(T, value)
    if isinstance(target, type) and target in _PLAIN_TARGETS:
        if not _check_plain_shape(value, target):
            raise RowDecodingException(
                f"Cannot decode a row of type '{type(value).__name__}' "
                f"into '{_describe_target(target)}'.",
                target=target,
                raw_row=raw_row,
            )
        return cast(T, value)
    if isinstance(target, type) and dataclasses.is_dataclass(target):
        return cast(T, _decode_dataclass(value, target, raw_row))

    from_dict = getattr(target, "from_dict", None)
    decoder: Callable[[Any], Any] = from_dict if callable(from_dict) else target
    if isinstance(target, type) and from_dict is not None and not isinstance(
        value, dict
    ):
        raise RowDecodingException(
            f"Cannot decode a row of type '{type(value).__name__}' "
            f"into '{_describe_target(target)}': an object is required.",
            target=target,
            raw_row=raw_row,
        )
    try:
        return cast(T, decoder(value))
    except RowDecodingException:
        raise
    except (TypeError, ValueError, KeyError) as exc:
        raise RowDecodingException(
            f"Cannot decode row into '{_describe_target(target)}': {exc}",
            target=target,
            raw_row=raw_row,
        ) from exc


def decode_rows(
    raw_rows: list[Any], target: RowTargetType[T] | None = None
) -> list[T]:
    return [decode_row(raw_row, target) for raw_row in raw_rows]
