"""Page table definition — the single source of column names and order.

The DDL and every statement that touches ``PageData`` are generated from
:data:`PAGE_TABLE`, so column lists and bound-parameter order cannot drift
apart.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Column:
    name: str  # column name in SQLite
    attr: str  # attribute on Page
    sql_type: str
    nullable: bool = False
    primary_key: bool = False

    def ddl(self) -> str:
        parts = [self.name, self.sql_type]
        if self.primary_key:
            parts.append("PRIMARY KEY")
        if not self.nullable:
            parts.append("NOT NULL")
        return " ".join(parts)


@dataclass(frozen=True)
class Table:
    name: str
    columns: tuple[Column, ...]
    # order in which a full row is written
    insert_order: tuple[str, ...]

    def __post_init__(self) -> None:
        names = [c.name for c in self.columns]
        if sorted(names) != sorted(self.insert_order):
            raise ValueError(f"insert order {self.insert_order} does not cover columns {names}")

    @property
    def key(self) -> Column:
        return next(c for c in self.columns if c.primary_key)

    def column(self, name: str) -> Column:
        for c in self.columns:
            if c.name == name:
                return c
        raise KeyError(name)

    @property
    def insert_columns(self) -> tuple[Column, ...]:
        return tuple(self.column(name) for name in self.insert_order)

    @property
    def value_columns(self) -> tuple[Column, ...]:
        """Non-key columns, in insert order."""
        return tuple(c for c in self.insert_columns if not c.primary_key)

    # -- SQL generation --------------------------------------------------------

    def create_sql(self) -> str:
        body = ",\n    ".join(c.ddl() for c in self.columns)
        return f"CREATE TABLE {self.name} (\n    {body}\n)"

    def insert_sql(self) -> str:
        names = ", ".join(c.name for c in self.insert_columns)
        marks = ", ".join("?" for _ in self.insert_columns)
        return f"INSERT INTO {self.name} ({names}) VALUES ({marks})"

    def update_sql(self) -> str:
        assignments = ", ".join(f"{c.name} = ?" for c in self.value_columns)
        return f"UPDATE {self.name} SET {assignments} WHERE {self.key.name} = ?"

    def select_sql(self, where_key: bool = False) -> str:
        names = ", ".join(c.name for c in self.columns)
        sql = f"SELECT {names} FROM {self.name}"
        if where_key:
            sql += f" WHERE {self.key.name} = ?"
        return sql

    def delete_sql(self) -> str:
        return f"DELETE FROM {self.name} WHERE {self.key.name} = ?"

    # -- parameter extraction --------------------------------------------------

    def insert_params(self, obj: Any) -> list[Any]:
        return [getattr(obj, c.attr) for c in self.insert_columns]

    def update_params(self, obj: Any) -> list[Any]:
        return [getattr(obj, c.attr) for c in self.value_columns] + [getattr(obj, self.key.attr)]

    def fields(self, row: dict[str, Any]) -> dict[str, Any]:
        """Re-key a fetched row from column names to attribute names."""
        return {c.attr: row[c.name] for c in self.columns if c.name in row}


PAGE_TABLE = Table(
    name="PageData",
    columns=(
        Column("id", "id", "TEXT", primary_key=True),
        Column("lastUpdated", "last_updated", "INTEGER"),
        Column("url", "url", "TEXT"),
        Column("title", "title", "TEXT"),
        Column("fullText", "full_text", "TEXT", nullable=True),
        Column("snapshot", "snapshot", "BLOB", nullable=True),
    ),
    insert_order=("id", "title", "url", "lastUpdated", "fullText", "snapshot"),
)

SCHEMA_DDL = PAGE_TABLE.create_sql()
