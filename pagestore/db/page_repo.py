"""Repository for the ``PageData`` table."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from pagestore.db.database import Database
from pagestore.db.schema import PAGE_TABLE
from pagestore.models.page import Page, PageLike, page_id_of

logger = logging.getLogger(__name__)


class PageRepository:
    """Single-Responsibility repository for page persistence."""

    def __init__(self, db: Database):
        self._db = db

    @property
    def db(self) -> Database:
        return self._db

    def setup(self, exist_ok: bool = False) -> bool:
        return self._db.setup(exist_ok=exist_ok)

    # -- Create ----------------------------------------------------------------

    def insert(self, page: Page) -> Page:
        self._db.execute(PAGE_TABLE.insert_sql(), PAGE_TABLE.insert_params(page))
        logger.debug(f"Inserted page {page.id}: {page.url}")
        return page

    def insert_many(self, pages: Iterable[Page]) -> int:
        """Insert all *pages* atomically; nothing is written if one fails."""
        sql = PAGE_TABLE.insert_sql()
        count = 0
        with self._db.transaction():
            for page in pages:
                self._db.execute(sql, PAGE_TABLE.insert_params(page))
                count += 1
        logger.debug(f"Inserted {count} pages")
        return count

    # -- Read ------------------------------------------------------------------

    def get(self, page: PageLike) -> Optional[Page]:
        row = self._db.fetchone(PAGE_TABLE.select_sql(where_key=True), (page_id_of(page),))
        return Page.from_fields(PAGE_TABLE.fields(row)) if row else None

    def list_pages(self) -> list[Page]:
        """All pages, most recently updated first."""
        rows = self._db.fetchall(
            f"{PAGE_TABLE.select_sql()} ORDER BY lastUpdated DESC, rowid ASC"
        )
        return [Page.from_fields(PAGE_TABLE.fields(r)) for r in rows]

    def count(self) -> int:
        row = self._db.fetchone(f"SELECT COUNT(*) AS n FROM {PAGE_TABLE.name}")
        return row["n"] if row else 0

    # -- Update ----------------------------------------------------------------

    def update(self, page: Page) -> bool:
        """Overwrite every stored field of *page*; False if it was never inserted."""
        changed = self._db.execute(PAGE_TABLE.update_sql(), PAGE_TABLE.update_params(page))
        return changed > 0

    # -- Delete ----------------------------------------------------------------

    def delete(self, page: PageLike) -> bool:
        changed = self._db.execute(PAGE_TABLE.delete_sql(), (page_id_of(page),))
        return changed > 0
