"""Step interpreter.

Executes a plan's step tree against Playwright pages. Leaf steps call the page
directly; ``repeat`` recurses sequentially with a derived iteration index;
``crawl`` fans out over discovered links, one pooled page per link, and
isolates each link's failures from its siblings and from the parent step.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Awaitable, Callable
from urllib.parse import urljoin, urlparse

from ...errors import StepError, StepwrightError
from ...runtime.storage import ensure_parent, render_path, write_json
from ...telemetry import get_tracer
from ..extractor.extract import extract_data
from ..extractor.spec import links_spec
from ..ir.model import (
    Click,
    Crawl,
    Go,
    Repeat,
    Scrape,
    Screenshot,
    Step,
    Type,
    Wait,
    action_name,
    target_of,
)
from ..wait.conditions import wait_for
from .indexing import ROOT_INDEX, IterationIndex

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ...adapters.page_pool import PagePool

logger = logging.getLogger(__name__)

CRAWLABLE_SCHEMES = frozenset({"http", "https", "file", "data"})

_STRUCTURAL = (Repeat, Crawl)


@dataclass
class BranchFailure:
    """A crawl branch that raised; recorded instead of propagated."""

    link: str
    index: str
    error: str


@dataclass
class RunReport:
    execution_log: list[str] = field(default_factory=list)
    outputs: list[Path] = field(default_factory=list)
    failures: list[BranchFailure] = field(default_factory=list)
    pending_close: asyncio.Task | None = None


def resolve_link(base_url: str | None, raw: Any) -> str | None:
    """Absolute URL for a discovered link, or None if it cannot be crawled.

    Relative links are resolved against ``base_url``. Links whose scheme is not
    http(s), file or data (javascript:, mailto:, ...) and http(s) links
    without a host are rejected.
    """
    if not isinstance(raw, str) or not raw.strip():
        return None
    candidate = raw.strip()
    # urljoin maps a host-less "https:" back onto the base URL
    own = urlparse(candidate)
    if own.scheme in ("http", "https") and not own.netloc:
        return None
    url = urljoin(base_url, candidate) if base_url else candidate
    parsed = urlparse(url)
    if parsed.scheme not in CRAWLABLE_SCHEMES:
        return None
    if parsed.scheme in ("http", "https") and not parsed.netloc:
        return None
    return url


async def _gather_or_cancel(*aws: Awaitable[Any]) -> list[Any]:
    """Run awaitables together; if one fails, cancel the rest before raising."""
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class StepInterpreter:
    """Runs steps against a page, leasing extra pages from ``pool`` for crawls."""

    def __init__(self, pool: PagePool, report: RunReport | None = None) -> None:
        self.pool = pool
        self.report = report or RunReport()
        self._tracer = get_tracer()
        self._handlers: dict[type, Callable[[Any, Any, IterationIndex], Awaitable[None]]] = {
            Click: self._click,
            Type: self._type,
            Go: self._go,
            Wait: self._wait,
            Scrape: self._scrape,
            Screenshot: self._screenshot,
            Repeat: self._repeat,
            Crawl: self._crawl,
        }

    async def run_steps(
        self, page: Any, steps: Sequence[Step], index: IterationIndex = ROOT_INDEX
    ) -> None:
        """Execute ``steps`` in declared order."""
        for step in steps:
            await self.execute(page, step, index)

    async def execute(self, page: Any, step: Step, index: IterationIndex = ROOT_INDEX) -> None:
        """Execute one step and, for repeat/crawl, all of its descendants."""
        action = action_name(step)
        handler = self._handlers[type(step)]
        self.report.execution_log.append(action)
        logger.debug("Step %s at index %s", action, index)

        with self._tracer.start_as_current_span(
            f"step.{action}", attributes={"stepwright.index": str(index)}
        ):
            if isinstance(step, _STRUCTURAL):
                await handler(page, step, index)
                return
            try:
                await handler(page, step, index)
            except StepwrightError:
                raise
            except Exception as e:
                raise StepError(action, str(index), e) from e

    # === Leaf steps ===

    async def _click(self, page: Any, step: Click, index: IterationIndex) -> None:
        click = page.locator(target_of(step.selector, step.xpath)).first.click()
        if step.wait is None:
            await click
            return
        # Wait is scheduled first so it observes whatever the click triggers
        await _gather_or_cancel(wait_for(page, step.wait), click)

    async def _type(self, page: Any, step: Type, index: IterationIndex) -> None:
        locator = page.locator(target_of(step.selector, step.xpath)).first
        await locator.press_sequentially(step.text, delay=step.delay)

    async def _go(self, page: Any, step: Go, index: IterationIndex) -> None:
        kwargs: dict[str, Any] = {}
        if step.wait_until is not None:
            kwargs["wait_until"] = step.wait_until
        if step.timeout is not None:
            kwargs["timeout"] = step.timeout

        if step.to == "back":
            await page.go_back(**kwargs)
        elif step.to == "forward":
            await page.go_forward(**kwargs)
        else:
            await page.goto(urljoin(page.url, step.to), **kwargs)

    async def _wait(self, page: Any, step: Wait, index: IterationIndex) -> None:
        await wait_for(page, step.condition)

    async def _screenshot(self, page: Any, step: Screenshot, index: IterationIndex) -> None:
        path = await asyncio.to_thread(ensure_parent, render_path(step.path, index))
        await page.screenshot(path=str(path), full_page=step.full_page)
        self.report.outputs.append(path)
        logger.info("Screenshot -> %s", path)

    async def _scrape(self, page: Any, step: Scrape, index: IterationIndex) -> None:
        records = await extract_data(page, step.data)
        path = await write_json(render_path(step.path, index), records)
        self.report.outputs.append(path)
        logger.info("Scraped %d records -> %s", len(records), path)

    # === Structural steps ===

    async def _repeat(self, page: Any, step: Repeat, index: IterationIndex) -> None:
        for iteration in range(1, step.times + 1):
            await self.run_steps(page, step.sub_steps, index.child(iteration))

    async def _crawl(self, page: Any, step: Crawl, index: IterationIndex) -> None:
        try:
            records = await extract_data(page, links_spec(step.selector, step.xpath, step.attribute))
        except Exception as e:
            raise StepError("crawl", str(index), e) from e

        base_url = page.url
        branches = []
        # Positions follow discovery order so indices trace back to the element
        for position, record in enumerate(records, start=1):
            raw = record.get("links")
            if not raw:
                continue
            link = resolve_link(base_url, raw)
            if link is None:
                logger.warning("Skipping uncrawlable link %r (index %s)", raw, index.child(position))
                continue
            branches.append(self._crawl_branch(link, step.sub_steps, index.child(position)))

        logger.info("Crawling %d links from %s", len(branches), base_url)
        if branches:
            await asyncio.gather(*branches)

    async def _crawl_branch(
        self, link: str, sub_steps: Sequence[Step], index: IterationIndex
    ) -> None:
        try:
            async with self.pool.lease() as branch_page:
                await branch_page.goto(link)
                await self.run_steps(branch_page, sub_steps, index)
        except Exception as e:
            logger.warning("Crawl branch %s (index %s) failed: %s", link, index, e)
            logger.debug("Crawl branch traceback", exc_info=True)
            self.report.failures.append(BranchFailure(link=link, index=str(index), error=str(e)))
