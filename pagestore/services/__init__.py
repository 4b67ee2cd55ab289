"""Service layer built on the page store."""

from pagestore.services.page_service import PageNotFoundError, PageService

__all__ = ["PageNotFoundError", "PageService"]
