from __future__ import annotations

import asyncio
import logging
from typing import Any

from ...adapters.page_pool import PagePool
from ...adapters.playwright import BrowserSession
from ...config.settings import settings
from ..ir.model import AutomationConfig
from .indexing import ROOT_INDEX
from .interpreter import BranchFailure, RunReport, StepInterpreter

logger = logging.getLogger(__name__)

__all__ = ["BranchFailure", "RunReport", "run_automation", "schedule_close"]


def schedule_close(session: Any, keep_open_after: bool | int) -> asyncio.Task | None:
    """Close ``session`` per ``keepOpenAfter``.

    Returns None when the caller should close immediately, otherwise a task
    that closes the session after N ms (int) or once the browser disconnects
    (``True``).
    """
    if keep_open_after is True:

        async def _close_when_disconnected() -> None:
            try:
                await session.wait_closed()
            finally:
                await session.close()

        logger.info("Leaving browser open until it is closed")
        return asyncio.create_task(_close_when_disconnected())

    if not isinstance(keep_open_after, bool) and keep_open_after > 0:

        async def _close_later() -> None:
            try:
                await asyncio.sleep(keep_open_after / 1000)
            finally:
                await session.close()

        logger.info("Closing browser in %d ms", keep_open_after)
        return asyncio.create_task(_close_later())

    return None


async def run_automation(
    config: AutomationConfig, session: BrowserSession | None = None
) -> RunReport:
    """Launch the browser, open ``config.url`` and run every top-level step.

    Step failures outside crawl branches abort the run; the session is closed
    before the error propagates. On success the session is closed before
    returning unless ``keep_open_after`` defers it, in which case the deferred
    close task is returned as ``RunReport.pending_close``.
    """
    session = session or BrowserSession(
        headless=config.headless,
        engine=settings.browser_engine,
        default_timeout=config.default_timeout,
        default_navigation_timeout=config.default_navigation_timeout,
    )
    report = RunReport()
    pool: PagePool | None = None
    succeeded = False

    try:
        await session.start()
        page = await session.new_page()
        pool = PagePool(session.new_page, max_pages=config.max_pages)
        interpreter = StepInterpreter(pool, report)

        logger.info("Opening %s", config.url)
        await page.goto(config.url)
        await interpreter.run_steps(page, config.steps, ROOT_INDEX)
        succeeded = True
    finally:
        if pool is not None:
            await pool.close()
        if not succeeded:
            await session.close()

    report.pending_close = schedule_close(session, config.keep_open_after)
    if report.pending_close is None:
        await session.close()
    logger.info(
        "Run complete: %d steps executed, %d files written, %d crawl failures",
        len(report.execution_log),
        len(report.outputs),
        len(report.failures),
    )
    return report
