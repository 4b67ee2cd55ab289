"""Structured store errors and translation from ``sqlite3`` exceptions."""

from __future__ import annotations

import sqlite3
import traceback
from enum import Enum
from pathlib import Path
from typing import Optional

# Primary SQLite result codes (sqlite3.h).
SQLITE_OK = 0
SQLITE_ERROR = 1
SQLITE_INTERNAL = 2
SQLITE_PERM = 3
SQLITE_ABORT = 4
SQLITE_BUSY = 5
SQLITE_LOCKED = 6
SQLITE_NOMEM = 7
SQLITE_READONLY = 8
SQLITE_INTERRUPT = 9
SQLITE_IOERR = 10
SQLITE_CORRUPT = 11
SQLITE_NOTFOUND = 12
SQLITE_FULL = 13
SQLITE_CANTOPEN = 14
SQLITE_PROTOCOL = 15
SQLITE_EMPTY = 16
SQLITE_SCHEMA = 17
SQLITE_TOOBIG = 18
SQLITE_CONSTRAINT = 19
SQLITE_MISMATCH = 20
SQLITE_MISUSE = 21
SQLITE_NOLFS = 22
SQLITE_AUTH = 23
SQLITE_FORMAT = 24
SQLITE_RANGE = 25
SQLITE_NOTADB = 26
SQLITE_NOTICE = 27
SQLITE_WARNING = 28
SQLITE_ROW = 100
SQLITE_DONE = 101

# Mirrors sqlite3_errstr() for the primary codes.
_ERRSTR: dict[int, str] = {
    SQLITE_OK: "not an error",
    SQLITE_ERROR: "SQL logic error",
    SQLITE_PERM: "access permission denied",
    SQLITE_ABORT: "query aborted",
    SQLITE_BUSY: "database is locked",
    SQLITE_LOCKED: "database table is locked",
    SQLITE_NOMEM: "out of memory",
    SQLITE_READONLY: "attempt to write a readonly database",
    SQLITE_INTERRUPT: "interrupted",
    SQLITE_IOERR: "disk I/O error",
    SQLITE_CORRUPT: "database disk image is malformed",
    SQLITE_NOTFOUND: "unknown operation",
    SQLITE_FULL: "database or disk is full",
    SQLITE_CANTOPEN: "unable to open database file",
    SQLITE_PROTOCOL: "locking protocol",
    SQLITE_SCHEMA: "database schema has changed",
    SQLITE_TOOBIG: "string or blob too big",
    SQLITE_CONSTRAINT: "constraint failed",
    SQLITE_MISMATCH: "datatype mismatch",
    SQLITE_MISUSE: "bad parameter or other API misuse",
    SQLITE_AUTH: "authorization denied",
    SQLITE_RANGE: "column index out of range",
    SQLITE_NOTADB: "file is not a database",
    SQLITE_NOTICE: "notification message",
    SQLITE_WARNING: "warning message",
    SQLITE_ROW: "another row available",
    SQLITE_DONE: "no more rows available",
}

_BINDING_MESSAGES = ("Incorrect number of bindings", "Error binding parameter")


def errstr(code: int) -> str:
    """Human-readable text for a (possibly extended) result code."""
    if code in (SQLITE_ROW, SQLITE_DONE):
        return _ERRSTR[code]
    return _ERRSTR.get(code & 0xFF, "unknown error")


class Phase(str, Enum):
    OPEN = "open"
    PREPARE = "prepare"
    BIND = "bind"
    STEP = "step"
    FINALIZE = "finalize"


class StoreError(Exception):
    """A failure reported by the store.

    Carries the call site that hit the failure, the native result code (the
    extended code where SQLite reports one), the ``sqlite3_errstr`` text for
    that code and the native detail message.
    """

    def __init__(
        self,
        phase: Phase,
        code: int,
        detail: Optional[str] = None,
        location: Optional[str] = None,
    ):
        self.phase = phase
        self.code = code
        self.status = errstr(code)
        self.detail = detail or self.status
        self.location = location or call_site(skip=1)
        super().__init__(f"{phase.value} failed at {self.location}: [{code}] {self.status}: {self.detail}")

    @property
    def primary_code(self) -> int:
        return self.code & 0xFF

    @property
    def is_constraint_violation(self) -> bool:
        return self.primary_code == SQLITE_CONSTRAINT

    @classmethod
    def from_sqlite(cls, exc: sqlite3.Error, phase: Optional[Phase] = None) -> "StoreError":
        """Translate a ``sqlite3`` exception raised while running *phase*.

        When *phase* is omitted it is inferred from the exception: sqlite3
        prepares, binds and steps inside a single ``execute`` call.
        """
        code = getattr(exc, "sqlite_errorcode", None)
        if code is None:
            code = SQLITE_RANGE if _is_binding_error(exc) else SQLITE_MISUSE
        return cls(
            phase=phase or classify(exc),
            code=code,
            detail=str(exc) or None,
            location=_raise_site(exc),
        )


def classify(exc: sqlite3.Error) -> Phase:
    if isinstance(exc, sqlite3.IntegrityError):
        return Phase.STEP
    code = getattr(exc, "sqlite_errorcode", None)
    if code is None:
        return Phase.BIND if _is_binding_error(exc) else Phase.PREPARE
    if code & 0xFF == SQLITE_ERROR:
        # syntax errors, missing or duplicate schema objects
        return Phase.PREPARE
    return Phase.STEP


def call_site(skip: int = 0) -> str:
    """``file:line`` of the caller, *skip* frames further up."""
    frame = traceback.extract_stack(limit=skip + 2)[0]
    return f"{Path(frame.filename).name}:{frame.lineno}"


def _raise_site(exc: BaseException) -> str:
    frames = traceback.extract_tb(exc.__traceback__)
    if not frames:
        return call_site(skip=2)
    frame = frames[-1]
    return f"{Path(frame.filename).name}:{frame.lineno}"


def _is_binding_error(exc: sqlite3.Error) -> bool:
    message = str(exc)
    return any(message.startswith(prefix) for prefix in _BINDING_MESSAGES)
