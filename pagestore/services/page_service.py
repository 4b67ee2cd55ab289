"""
Page service: what the browser shell calls when the user submits a URL,
takes a snapshot, or a page finishes loading new content.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Optional

from pagestore.db.store import PageStore
from pagestore.models.page import AbsoluteURL, Page, PageLike

logger = logging.getLogger(__name__)


class PageNotFoundError(LookupError):
    """Raised when updating a page that was never stored."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PageService:
    """Blocking convenience layer over a :class:`PageStore`."""

    def __init__(self, store: PageStore, clock: Callable[[], datetime] = _utcnow):
        self._store = store
        self._clock = clock

    def submit(self, url_text: str) -> Page:
        """Parse *url_text*, create a fresh page for it and persist it.

        Raises ``ValueError`` for text that is not an absolute URL.
        """
        page = Page(url=AbsoluteURL.parse(url_text), last_updated=self._clock())
        self._store.insert(page).result()
        logger.info(f"Added page {page.id} for {page.url}")
        return page

    def pages(self) -> list[Page]:
        return self._store.list_pages().result()

    def get(self, page: PageLike) -> Optional[Page]:
        return self._store.get(page).result()

    def record_content(
        self,
        page: Page,
        *,
        title: Optional[str] = None,
        full_text: Optional[str] = None,
    ) -> Page:
        changes = {}
        if title is not None:
            changes["title"] = title
        if full_text is not None:
            changes["full_text"] = full_text
        if not changes:
            return page
        return self._save(replace(page, last_updated=self._clock(), **changes))

    def record_snapshot(self, page: Page, image: bytes) -> Page:
        """Attach encoded snapshot bytes to *page*."""
        updated = self._save(replace(page, snapshot=bytes(image), last_updated=self._clock()))
        logger.info(f"Stored {len(image)} byte snapshot for page {page.id}")
        return updated

    def remove(self, page: PageLike) -> bool:
        return self._store.delete(page).result()

    def _save(self, page: Page) -> Page:
        if not self._store.update(page).result():
            raise PageNotFoundError(f"Page {page.id} is not stored")
        return page
