"""Bounded pool of browser pages for crawl fan-out.

Pages are created lazily up to ``max_pages``. When the pool is exhausted,
``acquire`` callers queue in FIFO order and ``release`` hands the page straight
to the longest-waiting caller without marking it available in between.

All pool state is mutated only from the event loop thread and never across an
``await``, so no lock is needed. A multi-threaded caller would have to guard
``acquire``/``release`` with a mutex.

Usage:
    pool = PagePool(session.new_page, max_pages=4)
    async with pool.lease() as page:
        await page.goto(url)
        ...
    await pool.close()
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from contextlib import asynccontextmanager, suppress
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from ..errors import PagePoolError

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = logging.getLogger(__name__)

PageFactory = Callable[[], Awaitable[Any]]


@dataclass
class PooledPage:
    """A page handle managed by the pool."""

    page: Any
    in_use: bool = False
    lease_count: int = 0


@dataclass
class _PoolState:
    entries: dict[int, PooledPage] = field(default_factory=dict)  # id(page) -> entry
    available: deque[PooledPage] = field(default_factory=deque)
    # Futures resolve to a page, or to None when a creation slot was reserved for them
    waiters: deque[asyncio.Future] = field(default_factory=deque)
    creating: int = 0


class PagePool:
    """Async pool of pages, capped at ``max_pages`` live handles."""

    def __init__(self, factory: PageFactory, max_pages: int = 1) -> None:
        if max_pages < 1:
            raise ValueError(f"max_pages must be >= 1, got {max_pages}")
        self.max_pages = max_pages
        self._factory = factory
        self._state = _PoolState()
        self._closed = False

    @property
    def total(self) -> int:
        """Live handles plus handles currently being created."""
        return len(self._state.entries) + self._state.creating

    async def acquire(self) -> Any:
        """Return a page no other caller owns, waiting if the pool is exhausted.

        No deadline is applied here; wrap the call in ``asyncio.wait_for`` if one
        is needed. A caller cancelled while queued never receives a page.
        """
        state = self._state
        if self._closed:
            raise PagePoolError("Page pool is closed")

        if state.available:
            return self._checkout(state.available.popleft())

        if self.total < self.max_pages:
            return self._checkout(await self._create())

        waiter = asyncio.get_running_loop().create_future()
        state.waiters.append(waiter)
        logger.debug("[PagePool] Pool exhausted, %d waiting", len(state.waiters))
        try:
            page = await waiter
        except asyncio.CancelledError:
            with suppress(ValueError):
                state.waiters.remove(waiter)
            # Resolved before the cancellation landed: pass the handoff on
            if waiter.done() and not waiter.cancelled():
                if waiter.result() is not None:
                    self.release(waiter.result())
                else:
                    state.creating -= 1
                    self._wake_for_slot()
            raise

        if page is not None:
            return page
        # Woken with a creation slot already reserved for this caller
        if self._closed:
            state.creating -= 1
            raise PagePoolError("Page pool is closed")
        return self._checkout(await self._create(reserved=True))

    async def _create(self, reserved: bool = False) -> PooledPage:
        state = self._state
        if not reserved:
            state.creating += 1
        try:
            page = await self._factory()
        except BaseException:
            state.creating -= 1
            self._wake_for_slot()
            raise
        state.creating -= 1
        pooled = PooledPage(page=page)
        state.entries[id(page)] = pooled
        logger.debug("[PagePool] Created page %d/%d", len(state.entries), self.max_pages)
        return pooled

    def _checkout(self, pooled: PooledPage) -> Any:
        pooled.in_use = True
        pooled.lease_count += 1
        return pooled.page

    def _next_waiter(self) -> asyncio.Future | None:
        waiters = self._state.waiters
        while waiters:
            waiter = waiters.popleft()
            if not waiter.done():
                return waiter
        return None

    def _wake_for_slot(self) -> None:
        waiter = self._next_waiter()
        if waiter is not None:
            # Reserve the slot so a newer acquire cannot take it first
            self._state.creating += 1
            waiter.set_result(None)

    def release(self, page: Any) -> None:
        """Return ``page`` to the pool.

        Raises:
            PagePoolError: if the page is not checked out from this pool.
        """
        pooled = self._state.entries.get(id(page))
        if pooled is None or pooled.page is not page:
            raise PagePoolError("Released a page that was not acquired from this pool")
        if not pooled.in_use:
            raise PagePoolError("Page released more than once")

        waiter = self._next_waiter()
        if waiter is not None:
            # Direct handoff: stays in use, lease passes to the oldest waiter
            pooled.lease_count += 1
            waiter.set_result(page)
            return

        pooled.in_use = False
        self._state.available.append(pooled)

    @asynccontextmanager
    async def lease(self) -> AsyncGenerator[Any, None]:
        """Acquire a page and release it on exit, exceptions included."""
        page = await self.acquire()
        try:
            yield page
        finally:
            self.release(page)

    async def close(self) -> None:
        """Close every page and fail any queued waiters."""
        self._closed = True
        state = self._state
        while state.waiters:
            waiter = state.waiters.popleft()
            if not waiter.done():
                waiter.set_exception(PagePoolError("Page pool is closed"))
        for pooled in list(state.entries.values()):
            with suppress(Exception):
                await pooled.page.close()
        state.entries.clear()
        state.available.clear()
        logger.debug("[PagePool] Closed")

    def stats(self) -> dict:
        """Get pool statistics."""
        entries = self._state.entries.values()
        return {
            "max_pages": self.max_pages,
            "total": len(self._state.entries),
            "available": len(self._state.available),
            "in_use": sum(1 for p in entries if p.in_use),
            "waiting": sum(1 for w in self._state.waiters if not w.done()),
        }
