"""Automation plan IR.

Built once from a validated config document and never mutated while the run
executes. Child step sequences are tuples so a plan tree can be shared freely
between concurrent crawl branches.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from ..extractor.spec import ExtractionSpec

DEFAULT_REPEAT_TIMES = 10


class WaitKind(str, Enum):
    NAVIGATION = "navigation"
    NETWORK_IDLE = "networkIdle"
    SELECTOR = "selector"
    XPATH = "xpath"
    TIMEOUT = "timeout"
    REQUEST = "request"
    RESPONSE = "response"
    FUNCTION = "function"


@dataclass(frozen=True)
class WaitCondition:
    kind: WaitKind
    selector: str | None = None
    xpath: str | None = None
    state: str | None = None  # attached|detached|visible|hidden
    timeout: float | None = None  # ms
    wait_until: str | None = None  # load|domcontentloaded|networkidle|commit
    url: str | None = None  # request/response matcher
    function: str | None = None
    args: tuple[Any, ...] = ()
    polling: float | str | None = None  # ms or "raf"


@dataclass(frozen=True)
class Click:
    selector: str | None = None
    xpath: str | None = None
    wait: WaitCondition | None = None


@dataclass(frozen=True)
class Type:
    text: str
    selector: str | None = None
    xpath: str | None = None
    delay: float = 0  # ms between key presses


@dataclass(frozen=True)
class Go:
    to: str  # "back", "forward" or a URL
    wait_until: str | None = None
    timeout: float | None = None


@dataclass(frozen=True)
class Wait:
    condition: WaitCondition


@dataclass(frozen=True)
class Scrape:
    data: ExtractionSpec
    path: str  # may contain $i


@dataclass(frozen=True)
class Screenshot:
    path: str  # may contain $i
    full_page: bool = False


@dataclass(frozen=True)
class Repeat:
    sub_steps: tuple[Step, ...] = ()
    times: int = DEFAULT_REPEAT_TIMES


@dataclass(frozen=True)
class Crawl:
    selector: str | None = None
    xpath: str | None = None
    attribute: str = "href"
    sub_steps: tuple[Step, ...] = ()


Step = Union[Click, Type, Go, Wait, Scrape, Screenshot, Repeat, Crawl]

ACTION_NAMES: dict[type, str] = {
    Click: "click",
    Type: "type",
    Go: "go",
    Wait: "wait",
    Scrape: "scrape",
    Screenshot: "screenshot",
    Repeat: "repeat",
    Crawl: "crawl",
}


def action_name(step: Step) -> str:
    return ACTION_NAMES[type(step)]


def target_of(selector: str | None, xpath: str | None) -> str:
    """Playwright selector for a selector-or-xpath pair."""
    if selector:
        return selector
    if xpath:
        return f"xpath={xpath}"
    raise ValueError("Either selector or xpath is required")


@dataclass(frozen=True)
class AutomationConfig:
    url: str
    steps: tuple[Step, ...] = ()
    headless: bool = True
    default_timeout: float | None = None  # ms
    default_navigation_timeout: float | None = None  # ms
    max_pages: int = 1
    keep_open_after: bool | int = False
    source: str | None = field(default=None, compare=False)  # path the config was loaded from
