"""Page domain model — one browser tab's metadata and cached content."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Union
from urllib.parse import urlsplit

NO_TITLE = "No title"

_HOST_SCHEMES = {"http", "https", "ftp", "ws", "wss"}


@dataclass(frozen=True)
class AbsoluteURL:
    """A syntactically valid absolute URI, kept in the form it was given."""

    value: str

    def __post_init__(self) -> None:
        try:
            parts = urlsplit(self.value)
        except ValueError as e:
            raise ValueError(f"Invalid URL {self.value!r}: {e}") from e
        if not parts.scheme:
            raise ValueError(f"Not an absolute URL (missing scheme): {self.value!r}")
        if parts.scheme.lower() in _HOST_SCHEMES and not parts.netloc:
            raise ValueError(f"Not an absolute URL (missing host): {self.value!r}")
        if any(ch.isspace() for ch in self.value):
            raise ValueError(f"URL must not contain whitespace: {self.value!r}")

    @classmethod
    def parse(cls, text: str) -> "AbsoluteURL":
        return cls(text.strip())

    @property
    def scheme(self) -> str:
        return urlsplit(self.value).scheme.lower()

    @property
    def host(self) -> str:
        return urlsplit(self.value).hostname or ""

    def __str__(self) -> str:
        return self.value


def _now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC; aware ones are converted to it."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass
class Page:
    """A page record as persisted in the ``PageData`` table."""

    url: AbsoluteURL
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    title: str = NO_TITLE
    full_text: Optional[str] = None
    last_updated: datetime = field(default_factory=_now)
    snapshot: Optional[bytes] = None

    def __post_init__(self) -> None:
        if isinstance(self.url, str):
            self.url = AbsoluteURL.parse(self.url)
        if isinstance(self.id, str):
            self.id = uuid.UUID(self.id)
        if isinstance(self.snapshot, (bytearray, memoryview)):
            self.snapshot = bytes(self.snapshot)
        self.last_updated = as_utc(self.last_updated)

    @classmethod
    def from_fields(cls, fields: dict[str, Any]) -> "Page":
        """Build a page from stored values keyed by attribute name."""
        return cls(
            id=uuid.UUID(fields["id"]),
            url=AbsoluteURL(fields["url"]),
            title=fields["title"],
            full_text=fields.get("full_text"),
            last_updated=datetime.fromtimestamp(fields["last_updated"], tz=timezone.utc),
            snapshot=fields.get("snapshot"),
        )


PageLike = Union[Page, uuid.UUID, str]


def page_id_of(page: PageLike) -> uuid.UUID:
    if isinstance(page, Page):
        return page.id
    if isinstance(page, uuid.UUID):
        return page
    return uuid.UUID(page)
