"""Config document -> automation plan IR.

Every configuration problem (schema errors, unknown wait kinds, malformed
extraction specs, nested crawls) is raised here as a ``ConfigError``, before
any browser is launched.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ...api.dto import (
    AutomationConfigDocument,
    ClickStep,
    CrawlStep,
    GoStep,
    RepeatStep,
    ScrapeStep,
    ScreenshotStep,
    TypeStep,
    WaitDocument,
    WaitStep,
)
from ...config.settings import settings
from ...errors import ConfigError
from ..extractor.spec import parse_extraction_spec
from ..ir.model import (
    DEFAULT_REPEAT_TIMES,
    AutomationConfig,
    Click,
    Crawl,
    Go,
    Repeat,
    Scrape,
    Screenshot,
    Step,
    Type,
    Wait,
    WaitCondition,
    WaitKind,
)
from ..wait.conditions import check_condition, parse_wait_kind

logger = logging.getLogger(__name__)


def load_config(path: str | Path) -> AutomationConfig:
    """Read a JSON config document from ``path`` and build the plan."""
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to read config {path}: {e}") from e
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config {path} is not valid JSON: {e}") from e
    return parse_config(data, source=str(path))


def parse_config(data: Any, source: str | None = None) -> AutomationConfig:
    """Validate a config mapping and build the plan."""
    where = source or "config"
    if not isinstance(data, dict):
        raise ConfigError(f"{where}: top level must be an object, got {type(data).__name__}")
    try:
        doc = AutomationConfigDocument.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"{where}: invalid config\n{e}") from e
    try:
        return build_plan(doc, source=source)
    except ConfigError as e:
        raise type(e)(f"{where}: {e}") from e


def build_plan(doc: AutomationConfigDocument, source: str | None = None) -> AutomationConfig:
    steps = _build_steps(doc.steps, "steps", in_crawl=False)
    config = AutomationConfig(
        url=doc.url,
        steps=steps,
        headless=settings.headless if doc.headless is None else doc.headless,
        default_timeout=doc.default_timeout,
        default_navigation_timeout=doc.default_navigation_timeout,
        max_pages=doc.max_pages,
        keep_open_after=doc.keep_open_after,
        source=source,
    )
    logger.debug("Built plan with %d top-level steps from %s", len(steps), source or "mapping")
    return config


def _build_steps(docs: list[Any], where: str, in_crawl: bool) -> tuple[Step, ...]:
    return tuple(_build_step(d, f"{where}[{n}]", in_crawl) for n, d in enumerate(docs))


def _build_step(doc: Any, where: str, in_crawl: bool) -> Step:  # noqa: PLR0911
    if isinstance(doc, ClickStep):
        wait = None
        if doc.wait is not None:
            wait = _build_condition(doc.wait, f"{where}.wait")
        elif doc.wait_for:
            wait = _condition(WaitCondition(kind=_kind(doc.wait_for, where)), f"{where}.waitFor")
        return Click(selector=doc.selector, xpath=doc.xpath, wait=wait)

    if isinstance(doc, TypeStep):
        return Type(text=doc.text, selector=doc.selector, xpath=doc.xpath, delay=doc.delay)

    if isinstance(doc, GoStep):
        return Go(to=doc.to, wait_until=doc.wait_until, timeout=doc.timeout)

    if isinstance(doc, WaitStep):
        return Wait(condition=_build_condition(doc, where))

    if isinstance(doc, ScrapeStep):
        return Scrape(data=parse_extraction_spec(doc.data, f"{where}.data"), path=doc.path)

    if isinstance(doc, ScreenshotStep):
        return Screenshot(path=doc.path, full_page=doc.full_page)

    if isinstance(doc, RepeatStep):
        times = abs(doc.times) or DEFAULT_REPEAT_TIMES
        sub_steps = _build_steps(doc.sub_steps, f"{where}.subSteps", in_crawl)
        return Repeat(sub_steps=sub_steps, times=times)

    if isinstance(doc, CrawlStep):
        if in_crawl:
            raise ConfigError(f"{where}: crawl steps cannot be nested inside another crawl")
        sub_steps = _build_steps(doc.sub_steps, f"{where}.subSteps", in_crawl=True)
        return Crawl(
            selector=doc.selector, xpath=doc.xpath, attribute=doc.attribute, sub_steps=sub_steps
        )

    raise ConfigError(f"{where}: unsupported step {type(doc).__name__}")


def _kind(label: str, where: str) -> WaitKind:
    try:
        return parse_wait_kind(label)
    except ConfigError as e:
        raise type(e)(f"{where}: {e}") from e


def _condition(condition: WaitCondition, where: str) -> WaitCondition:
    try:
        return check_condition(condition)
    except ConfigError as e:
        raise type(e)(f"{where}: {e}") from e


def _build_condition(doc: WaitDocument, where: str) -> WaitCondition:
    state = doc.state
    if state is None:
        if doc.visible:
            state = "visible"
        elif doc.hidden:
            state = "hidden"
    condition = WaitCondition(
        kind=_kind(doc.for_, where),
        selector=doc.selector,
        xpath=doc.xpath,
        state=state,
        timeout=doc.timeout,
        wait_until=doc.wait_until,
        url=doc.url,
        function=doc.function,
        args=tuple(doc.args),
        polling=doc.polling,
    )
    return _condition(condition, where)
