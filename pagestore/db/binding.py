"""
Bindable values.

A bindable value knows how to attach itself to a positional parameter slot
of a :class:`~pagestore.db.statement.Statement`. Adapters exist for the
scalar types a page record is made of; ``None`` binds NULL, so an optional
value binds exactly like the value it wraps when present.

Domain types can join in two ways, neither of which touches the executor:

- subclass the :class:`Bindable` protocol explicitly and implement
  ``bind(statement, column)``, or
- register an adapter: ``@bind_value.register`` on a function taking
  ``(value, statement, column)``.
"""

from __future__ import annotations

import math
import uuid
from datetime import datetime
from functools import singledispatch
from typing import Any, Iterable, Protocol, runtime_checkable

from pagestore.db.statement import Statement
from pagestore.models.page import AbsoluteURL, as_utc


@runtime_checkable
class Bindable(Protocol):
    def bind(self, statement: Statement, column: int) -> None: ...


@singledispatch
def bind_value(value: Any, statement: Statement, column: int) -> None:
    # only explicit subclasses opt in; a stray bind() method does not
    if Bindable in type(value).__mro__:
        value.bind(statement, column)
        return
    raise TypeError(
        f"cannot bind {type(value).__name__!r} to column {column}; "
        "subclass Bindable or register an adapter with bind_value.register"
    )


@bind_value.register(type(None))
def _bind_none(value: None, statement: Statement, column: int) -> None:
    statement.bind_null(column)


@bind_value.register(str)
def _bind_str(value: str, statement: Statement, column: int) -> None:
    statement.bind_text(column, value)


@bind_value.register(int)
def _bind_int(value: int, statement: Statement, column: int) -> None:
    statement.bind_int64(column, value)


@bind_value.register(bytes)
@bind_value.register(bytearray)
@bind_value.register(memoryview)
def _bind_bytes(value: bytes, statement: Statement, column: int) -> None:
    statement.bind_blob(column, value)


@bind_value.register(AbsoluteURL)
def _bind_url(value: AbsoluteURL, statement: Statement, column: int) -> None:
    bind_value(str(value), statement, column)


@bind_value.register(datetime)
def _bind_datetime(value: datetime, statement: Statement, column: int) -> None:
    # whole seconds since the epoch, sub-second precision dropped
    bind_value(math.floor(as_utc(value).timestamp()), statement, column)


@bind_value.register(uuid.UUID)
def _bind_uuid(value: uuid.UUID, statement: Statement, column: int) -> None:
    bind_value(str(value), statement, column)


def bind_all(statement: Statement, params: Iterable[Any]) -> Statement:
    """Bind *params* to columns 1, 2, 3, ... in order, stopping at the first failure."""
    for column, param in enumerate(params, start=1):
        bind_value(param, statement, column)
    return statement
