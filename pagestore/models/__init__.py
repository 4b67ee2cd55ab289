"""Domain models for the browser's persisted pages."""

from pagestore.models.page import NO_TITLE, AbsoluteURL, Page, page_id_of

__all__ = ["NO_TITLE", "AbsoluteURL", "Page", "page_id_of"]
