"""Root logger configuration for the command line."""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | int = "INFO") -> None:
    """Install a single stderr handler on the root logger.

    Calling this more than once replaces the previous handler instead of
    stacking duplicates.
    """
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level}")
        level = resolved

    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_stepwright", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._stepwright = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(level)

    # asyncio reports every slow callback at DEBUG
    logging.getLogger("asyncio").setLevel(max(level, logging.WARNING))
