"""Tests for serialized access through PageStore.

A real temp SQLite file backs every store; concurrency tests drive it from
a thread pool and from asyncio tasks.
"""

from __future__ import annotations

import asyncio
import tempfile
import threading
import unittest
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from pagestore.db.database import Database
from pagestore.db.errors import SQLITE_CANTOPEN, Phase, StoreError
from pagestore.db.page_repo import PageRepository
from pagestore.db.store import PageStore
from pagestore.models.page import Page


def _page(n: int = 0) -> Page:
    return Page(
        url=f"https://example.com/{n}",
        title=f"Page {n}",
        full_text="x" * n or None,
        snapshot=bytes([n % 256]) * n or None,
    )


class _StoreCase(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "pages.db"
        self.store = PageStore(self.path)
        self.store.setup().result(timeout=10)

    def tearDown(self):
        self.store.close()
        self._tmp.cleanup()


# ===========================================================================
# 1. Basic operations
# ===========================================================================

class TestPageStoreOperations(_StoreCase):
    def test_insert_and_get(self):
        page = _page(3)
        self.assertIs(self.store.insert(page).result(timeout=10), page)
        fetched = self.store.get(page.id).result(timeout=10)
        self.assertEqual(fetched.url, page.url)
        self.assertEqual(fetched.snapshot, page.snapshot)

    def test_update_delete_count(self):
        page = _page(1)
        self.store.insert(page).result(timeout=10)
        page.title = "Renamed"
        self.assertTrue(self.store.update(page).result(timeout=10))
        self.assertEqual(self.store.list_pages().result(timeout=10)[0].title, "Renamed")
        self.assertTrue(self.store.delete(page).result(timeout=10))
        self.assertEqual(self.store.count().result(timeout=10), 0)

    def test_insert_many(self):
        self.assertEqual(self.store.insert_many(_page(i) for i in range(10)).result(timeout=10), 10)
        self.assertEqual(self.store.count().result(timeout=10), 10)

    def test_errors_come_back_through_future(self):
        page = _page(2)
        self.store.insert(page).result(timeout=10)
        with self.assertRaises(StoreError) as ctx:
            self.store.insert(page).result(timeout=10)
        self.assertEqual(ctx.exception.phase, Phase.STEP)
        # the worker survives a failed operation
        self.assertEqual(self.store.count().result(timeout=10), 1)

    def test_setup_twice(self):
        with self.assertRaises(StoreError):
            self.store.setup(exist_ok=False).result(timeout=10)
        self.assertFalse(self.store.setup(exist_ok=True).result(timeout=10))

    def test_operations_run_on_worker_thread(self):
        name = self.store.submit(lambda repo: threading.current_thread().name).result(timeout=10)
        self.assertEqual(name, "pagestore-worker")
        self.assertNotEqual(name, threading.current_thread().name)


# ===========================================================================
# 2. Serialization and ordering
# ===========================================================================

class TestSerialization(_StoreCase):
    def test_concurrent_inserts_all_land(self):
        pages = [_page(i) for i in range(200)]
        with ThreadPoolExecutor(max_workers=8) as pool:
            futures = list(pool.map(self.store.insert, pages))
        for f in futures:
            f.result(timeout=10)

        self.assertEqual(self.store.count().result(timeout=10), len(pages))
        stored = {p.id: p for p in self.store.list_pages().result(timeout=10)}
        for page in pages:
            got = stored[page.id]
            self.assertEqual(got.url, page.url)
            self.assertEqual(got.title, page.title)
            self.assertEqual(got.full_text, page.full_text)
            self.assertEqual(got.snapshot, page.snapshot)

    def test_no_two_operations_overlap(self):
        active = []
        overlaps = []
        lock = threading.Lock()

        def op(repo: PageRepository) -> None:
            with lock:
                active.append(1)
                if len(active) > 1:
                    overlaps.append(len(active))
            repo.count()
            with lock:
                active.pop()

        with ThreadPoolExecutor(max_workers=8) as pool:
            futures = [pool.submit(self.store.submit, op) for _ in range(100)]
            for f in futures:
                f.result(timeout=10).result(timeout=10)
        self.assertEqual(overlaps, [])

    def test_submission_order_is_kept(self):
        seen: list[int] = []
        futures = [self.store.submit(lambda repo, i=i: seen.append(i)) for i in range(50)]
        for f in futures:
            f.result(timeout=10)
        self.assertEqual(seen, list(range(50)))

    def test_insert_then_get_from_same_caller(self):
        page = _page(5)
        self.store.insert(page)
        self.assertIsNotNone(self.store.get(page.id).result(timeout=10))


# ===========================================================================
# 3. Cancellation
# ===========================================================================

class TestCancellation(_StoreCase):
    def test_cancel_before_dequeue_drops_operation(self):
        gate = threading.Event()
        blocker = self.store.submit(lambda repo: gate.wait(10))
        pending = self.store.insert(_page(1))

        self.assertTrue(pending.cancel())
        gate.set()
        blocker.result(timeout=10)

        self.assertTrue(pending.cancelled())
        self.assertEqual(self.store.count().result(timeout=10), 0)

    def test_cancel_after_dequeue_is_not_honored(self):
        started = threading.Event()
        gate = threading.Event()
        page = _page(2)

        def slow_insert(repo: PageRepository) -> Page:
            started.set()
            gate.wait(10)
            return repo.insert(page)

        future = self.store.submit(slow_insert)
        self.assertTrue(started.wait(10))
        self.assertFalse(future.cancel())
        gate.set()

        self.assertIs(future.result(timeout=10), page)
        self.assertEqual(self.store.count().result(timeout=10), 1)


# ===========================================================================
# 4. Submitted pages
# ===========================================================================

class TestSubmittedPagesAreCopied(_StoreCase):
    def _hold_worker(self) -> threading.Event:
        gate = threading.Event()
        self.store.submit(lambda repo: gate.wait(10))
        return gate

    def test_edits_after_insert_are_not_stored(self):
        page = _page(1)
        page.title = "submitted"
        gate = self._hold_worker()
        future = self.store.insert(page)
        page.title = "edited later"
        gate.set()

        self.assertIs(future.result(timeout=10), page)
        self.assertEqual(self.store.get(page.id).result(timeout=10).title, "submitted")

    def test_edits_after_update_are_not_stored(self):
        page = _page(1)
        self.store.insert(page).result(timeout=10)
        page.title = "renamed"
        gate = self._hold_worker()
        future = self.store.update(page)
        page.title = "edited later"
        page.snapshot = b"later"
        gate.set()

        self.assertTrue(future.result(timeout=10))
        stored = self.store.get(page.id).result(timeout=10)
        self.assertEqual(stored.title, "renamed")
        self.assertEqual(stored.snapshot, bytes([1]))

    def test_edits_after_insert_many_are_not_stored(self):
        pages = [_page(i) for i in range(1, 4)]
        gate = self._hold_worker()
        future = self.store.insert_many(pages)
        for p in pages:
            p.title = "edited later"
        gate.set()

        self.assertEqual(future.result(timeout=10), 3)
        titles = sorted(p.title for p in self.store.list_pages().result(timeout=10))
        self.assertEqual(titles, ["Page 1", "Page 2", "Page 3"])


# ===========================================================================
# 5. Lifecycle
# ===========================================================================

class TestLifecycle(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "pages.db"

    def tearDown(self):
        self._tmp.cleanup()

    def test_open_failure_raised_from_constructor(self):
        with self.assertRaises(StoreError) as ctx:
            PageStore(Path(self._tmp.name) / "missing" / "pages.db")
        self.assertEqual(ctx.exception.phase, Phase.OPEN)
        self.assertEqual(ctx.exception.primary_code, SQLITE_CANTOPEN)

    def test_close_drains_queue(self):
        store = PageStore(self.path)
        store.setup()
        futures = [store.insert(_page(i)) for i in range(20)]
        store.close()
        self.assertTrue(all(f.done() for f in futures))
        with Database(self.path) as db:
            self.assertEqual(PageRepository(db).count(), 20)

    def test_submit_after_close(self):
        store = PageStore(self.path)
        store.close()
        self.assertTrue(store.closed)
        with self.assertRaises(RuntimeError):
            store.count()
        store.close()  # idempotent

    def test_context_manager(self):
        with PageStore(self.path) as store:
            store.setup().result(timeout=10)
        self.assertTrue(store.closed)


# ===========================================================================
# 6. asyncio callers
# ===========================================================================

class TestAsyncCallers(_StoreCase):
    def test_gathered_inserts(self):
        pages = [_page(i) for i in range(30)]

        async def main() -> list[Page]:
            return await asyncio.gather(
                *(self.store.run(lambda repo, p=p: repo.insert(p)) for p in pages)
            )

        inserted = asyncio.run(main())
        self.assertEqual([p.id for p in inserted], [p.id for p in pages])
        self.assertEqual(self.store.count().result(timeout=10), 30)

    def test_awaiting_errors(self):
        page = _page(1)
        self.store.insert(page).result(timeout=10)

        async def main() -> None:
            await self.store.run(lambda repo: repo.insert(page))

        with self.assertRaises(StoreError):
            asyncio.run(main())


if __name__ == "__main__":
    unittest.main()
