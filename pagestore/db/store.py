"""
Serialized access to the page database.

:class:`PageStore` starts one worker thread that opens the connection and
then runs submitted operations one at a time, in submission order. The
connection never leaves that thread. Every operation returns a
:class:`concurrent.futures.Future`; asyncio callers can ``await`` it through
:meth:`PageStore.run` or :func:`asyncio.wrap_future`.

Cancelling a future before the worker reaches it drops the operation. Once
the worker has dequeued it, cancellation is no longer possible and the
statement always runs to a clean finalize.
"""

from __future__ import annotations

import asyncio
import logging
import queue
import threading
from concurrent.futures import Future
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, TypeVar, Union

from pagestore.config import Settings, get_settings
from pagestore.db.database import open_connection
from pagestore.db.page_repo import PageRepository
from pagestore.models.page import Page, PageLike

logger = logging.getLogger(__name__)

T = TypeVar("T")

_STOP = object()


class PageStore:
    """Single-owner access boundary around one :class:`Database`.

    Usage:
        with PageStore("pages.db") as store:
            store.setup(exist_ok=True).result()
            store.insert(Page(url="https://www.objc.io")).result()
    """

    def __init__(
        self,
        path: Optional[Union[Path, str]] = None,
        settings: Optional[Settings] = None,
        *,
        name: str = "pagestore-worker",
    ):
        self._settings = settings or get_settings()
        self.path = path if path is not None else self._settings.DATABASE_PATH
        self._queue: queue.Queue = queue.Queue()
        self._lock = threading.Lock()
        self._closed = False

        opened: Future = Future()
        self._thread = threading.Thread(target=self._worker, args=(opened,), name=name, daemon=True)
        self._thread.start()
        try:
            opened.result()
        except Exception:
            self._closed = True
            self._thread.join()
            raise

    # -- worker ----------------------------------------------------------------

    def _worker(self, opened: Future) -> None:
        try:
            db = open_connection(self.path, self._settings)
        except Exception as e:
            opened.set_exception(e)
            return
        repo = PageRepository(db)
        opened.set_result(None)

        try:
            while True:
                item = self._queue.get()
                if item is _STOP:
                    break
                future, fn = item
                if not future.set_running_or_notify_cancel():
                    logger.debug("Skipped operation cancelled before it started")
                    continue
                try:
                    result = fn(repo)
                except Exception as e:
                    logger.debug(f"Operation failed: {e}")
                    future.set_exception(e)
                else:
                    future.set_result(result)
        finally:
            db.close()

    # -- submission ------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    def submit(self, fn: Callable[[PageRepository], T]) -> "Future[T]":
        """Queue *fn* to run against the repository on the worker thread."""
        future: Future = Future()
        with self._lock:
            if self._closed:
                raise RuntimeError("cannot submit to a closed PageStore")
            self._queue.put((future, fn))
        return future

    async def run(self, fn: Callable[[PageRepository], T]) -> T:
        return await asyncio.wrap_future(self.submit(fn))

    def close(self, wait: bool = True) -> None:
        """Stop accepting work; queued operations still run before the connection closes."""
        with self._lock:
            if not self._closed:
                self._closed = True
                self._queue.put(_STOP)
        if wait and threading.current_thread() is not self._thread:
            self._thread.join()

    def __enter__(self) -> "PageStore":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # -- page operations -------------------------------------------------------

    def setup(self, exist_ok: Optional[bool] = None) -> "Future[bool]":
        if exist_ok is None:
            exist_ok = self._settings.SETUP_EXIST_OK
        return self.submit(lambda repo: repo.setup(exist_ok=exist_ok))

    # Pages are copied on the calling thread; edits made after submitting are not stored.

    def insert(self, page: Page) -> "Future[Page]":
        stored = replace(page)

        def op(repo: PageRepository) -> Page:
            repo.insert(stored)
            return page

        return self.submit(op)

    def insert_many(self, pages: Iterable[Page]) -> "Future[int]":
        batch = [replace(p) for p in pages]
        return self.submit(lambda repo: repo.insert_many(batch))

    def get(self, page: PageLike) -> "Future[Optional[Page]]":
        return self.submit(lambda repo: repo.get(page))

    def list_pages(self) -> "Future[list[Page]]":
        return self.submit(lambda repo: repo.list_pages())

    def count(self) -> "Future[int]":
        return self.submit(lambda repo: repo.count())

    def update(self, page: Page) -> "Future[bool]":
        stored = replace(page)
        return self.submit(lambda repo: repo.update(stored))

    def delete(self, page: PageLike) -> "Future[bool]":
        return self.submit(lambda repo: repo.delete(page))
