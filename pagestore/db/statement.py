"""Prepared statement: one SQL text and its positional parameter slots."""

from __future__ import annotations

from typing import Any, Optional, Union

from pagestore.db.errors import SQLITE_RANGE, SQLITE_TOOBIG, Phase, StoreError

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

# SQLITE_MAX_LENGTH default
MAX_LENGTH = 1_000_000_000

SQLValue = Union[str, int, bytes, None]


class Statement:
    """Parameter slots for a single SQL text.

    Slots are filled in strictly increasing 1-based column order with no
    gaps. Text and blob values are copied into the statement, so callers may
    reuse or mutate their buffers after binding.
    """

    def __init__(self, sql: str):
        self.sql = sql
        self._slots: list[SQLValue] = []

    def __repr__(self) -> str:
        return f"Statement({self.sql!r}, bound={len(self._slots)})"

    @property
    def parameters(self) -> tuple[SQLValue, ...]:
        return tuple(self._slots)

    @property
    def bound_count(self) -> int:
        return len(self._slots)

    # -- bind primitives -------------------------------------------------------

    def bind_text(self, column: int, value: str) -> None:
        data = str.__str__(value)
        if len(data.encode("utf-8")) > MAX_LENGTH:
            raise StoreError(Phase.BIND, SQLITE_TOOBIG, f"text too long for column {column}")
        self._put(column, data)

    def bind_int64(self, column: int, value: int) -> None:
        if not INT64_MIN <= value <= INT64_MAX:
            raise StoreError(Phase.BIND, SQLITE_RANGE, f"{value} does not fit a 64-bit integer")
        self._put(column, int(value))

    def bind_blob(self, column: int, value: Union[bytes, bytearray, memoryview]) -> None:
        data = bytes(value)
        if len(data) > MAX_LENGTH:
            raise StoreError(Phase.BIND, SQLITE_TOOBIG, f"blob too long for column {column}")
        self._put(column, data)

    def bind_null(self, column: int) -> None:
        self._put(column, None)

    # -- internal --------------------------------------------------------------

    def _put(self, column: int, value: Optional[Any]) -> None:
        expected = len(self._slots) + 1
        if column != expected:
            raise StoreError(
                Phase.BIND,
                SQLITE_RANGE,
                f"column {column} bound out of order, expected {expected}",
            )
        self._slots.append(value)
