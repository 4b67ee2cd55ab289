"""Database layer — typed SQLite persistence with serialized access."""

from pagestore.db.binding import Bindable, bind_all, bind_value
from pagestore.db.database import Database, open_connection
from pagestore.db.errors import Phase, StoreError
from pagestore.db.page_repo import PageRepository
from pagestore.db.schema import PAGE_TABLE, SCHEMA_DDL
from pagestore.db.statement import Statement
from pagestore.db.store import PageStore

__all__ = [
    "Bindable",
    "bind_all",
    "bind_value",
    "Database",
    "open_connection",
    "Phase",
    "StoreError",
    "PageRepository",
    "PAGE_TABLE",
    "SCHEMA_DDL",
    "Statement",
    "PageStore",
]
