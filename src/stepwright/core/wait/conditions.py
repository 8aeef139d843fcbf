"""Translate declarative wait descriptions into Playwright wait primitives.

Each ``WaitKind`` maps to exactly one primitive in ``PRIMITIVES``. The table is
checked for completeness when this module is imported.
"""

from __future__ import annotations

import re
from typing import Any, Awaitable, Callable

from ...errors import WaitConditionError
from ..ir.model import WaitCondition, WaitKind

KIND_ALIASES: dict[str, WaitKind] = {
    "navigation": WaitKind.NAVIGATION,
    "networkIdle": WaitKind.NETWORK_IDLE,
    "network-idle": WaitKind.NETWORK_IDLE,
    "networkidle": WaitKind.NETWORK_IDLE,
    "selector": WaitKind.SELECTOR,
    "xpath": WaitKind.XPATH,
    "timeout": WaitKind.TIMEOUT,
    "request": WaitKind.REQUEST,
    "response": WaitKind.RESPONSE,
    "function": WaitKind.FUNCTION,
    "custom-function": WaitKind.FUNCTION,
}

LOAD_STATES = ("load", "domcontentloaded", "networkidle")
SELECTOR_STATES = ("attached", "detached", "visible", "hidden")

# kind -> option that must be present
_REQUIRED_OPTIONS: dict[WaitKind, str] = {
    WaitKind.SELECTOR: "selector",
    WaitKind.XPATH: "xpath",
    WaitKind.TIMEOUT: "timeout",
    WaitKind.REQUEST: "url",
    WaitKind.RESPONSE: "url",
    WaitKind.FUNCTION: "function",
}


def parse_wait_kind(label: str) -> WaitKind:
    try:
        return KIND_ALIASES[label]
    except (KeyError, TypeError):
        known = ", ".join(sorted(KIND_ALIASES))
        raise WaitConditionError(f"Unknown wait condition {label!r} (expected one of: {known})") from None


def check_condition(condition: WaitCondition) -> WaitCondition:
    """Raise WaitConditionError if the condition lacks an option its kind needs."""
    required = _REQUIRED_OPTIONS.get(condition.kind)
    if required and getattr(condition, required) in (None, ""):
        raise WaitConditionError(f"Wait for {condition.kind.value} requires '{required}'")
    if condition.state is not None and condition.state not in SELECTOR_STATES:
        raise WaitConditionError(
            f"Unknown element state {condition.state!r} (expected one of: {', '.join(SELECTOR_STATES)})"
        )
    if condition.timeout is not None and condition.timeout < 0:
        raise WaitConditionError("Wait timeout must be >= 0")
    if condition.url and condition.url.startswith("re:"):
        try:
            re.compile(condition.url[3:])
        except re.error as e:
            raise WaitConditionError(f"Invalid url pattern {condition.url!r}: {e}") from e
    return condition


def url_pattern(pattern: str) -> str | re.Pattern[str]:
    """Playwright URL matcher for a wait: ``re:`` prefixed regex, otherwise a glob."""
    if pattern.startswith("re:"):
        return re.compile(pattern[3:])
    return pattern


async def _wait_for_navigation(page: Any, condition: WaitCondition) -> None:
    await page.wait_for_event(
        "framenavigated",
        predicate=lambda frame: frame == page.main_frame,
        timeout=condition.timeout,
    )
    state = condition.wait_until or "load"
    if state in LOAD_STATES:
        await page.wait_for_load_state(state, timeout=condition.timeout)


def _wait_for_network_idle(page: Any, condition: WaitCondition) -> Awaitable[Any]:
    return page.wait_for_load_state("networkidle", timeout=condition.timeout)


def _wait_for_selector(page: Any, condition: WaitCondition) -> Awaitable[Any]:
    return page.wait_for_selector(condition.selector, state=condition.state, timeout=condition.timeout)


def _wait_for_xpath(page: Any, condition: WaitCondition) -> Awaitable[Any]:
    return page.wait_for_selector(
        f"xpath={condition.xpath}", state=condition.state, timeout=condition.timeout
    )


def _wait_for_timeout(page: Any, condition: WaitCondition) -> Awaitable[Any]:
    return page.wait_for_timeout(condition.timeout)


async def _wait_for_request(page: Any, condition: WaitCondition) -> Any:
    async with page.expect_request(
        url_pattern(condition.url or ""), timeout=condition.timeout
    ) as info:
        pass
    return await info.value


async def _wait_for_response(page: Any, condition: WaitCondition) -> Any:
    async with page.expect_response(
        url_pattern(condition.url or ""), timeout=condition.timeout
    ) as info:
        pass
    return await info.value


def _wait_for_function(page: Any, condition: WaitCondition) -> Awaitable[Any]:
    kwargs: dict[str, Any] = {"timeout": condition.timeout}
    if condition.args:
        # Playwright passes a single argument; several are sent as one list
        kwargs["arg"] = condition.args[0] if len(condition.args) == 1 else list(condition.args)
    if condition.polling is not None:
        kwargs["polling"] = condition.polling
    return page.wait_for_function(condition.function, **kwargs)


PRIMITIVES: dict[WaitKind, Callable[[Any, WaitCondition], Awaitable[Any]]] = {
    WaitKind.NAVIGATION: _wait_for_navigation,
    WaitKind.NETWORK_IDLE: _wait_for_network_idle,
    WaitKind.SELECTOR: _wait_for_selector,
    WaitKind.XPATH: _wait_for_xpath,
    WaitKind.TIMEOUT: _wait_for_timeout,
    WaitKind.REQUEST: _wait_for_request,
    WaitKind.RESPONSE: _wait_for_response,
    WaitKind.FUNCTION: _wait_for_function,
}

_unmapped = set(WaitKind) - set(PRIMITIVES)
if _unmapped:
    raise RuntimeError(f"Wait kinds without a primitive: {sorted(k.value for k in _unmapped)}")


def wait_for(page: Any, condition: WaitCondition) -> Awaitable[Any]:
    """Start waiting for ``condition`` on ``page``; await the result to suspend."""
    return PRIMITIVES[condition.kind](page, condition)
