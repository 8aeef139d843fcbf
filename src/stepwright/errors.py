"""Exception hierarchy for stepwright.

Configuration problems are raised before a browser is launched; step failures
propagate out of sequential execution; crawl branch failures are caught by the
interpreter and only recorded.
"""

from __future__ import annotations


class StepwrightError(Exception):
    """Base class for all stepwright errors."""


class ConfigError(StepwrightError, ValueError):
    """The automation config could not be loaded or is invalid."""


class ExtractionSpecError(ConfigError):
    """An extraction spec node is malformed."""


class WaitConditionError(ConfigError):
    """A wait description names an unknown kind or lacks required options."""


class PagePoolError(StepwrightError, RuntimeError):
    """A page was released twice or was never issued by the pool."""


class StepError(StepwrightError):
    """A step failed while executing against the browser."""

    def __init__(self, action: str, index: str, cause: BaseException) -> None:
        super().__init__(f"{action} step failed at index {index}: {cause}")
        self.action = action
        self.index = index
        self.cause = cause
