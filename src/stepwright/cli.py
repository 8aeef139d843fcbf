"""
Command line interface for stepwright
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from .config.settings import settings
from .core.executor.runner import run_automation
from .core.planner.plan_builder import load_config
from .errors import ConfigError, StepwrightError
from .logging_setup import configure_logging
from .telemetry import init_telemetry, shutdown_telemetry

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stepwright",
        description="Run a declarative browser automation config",
    )
    parser.add_argument("config", help="Path to the JSON automation config")
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        help=f"Logging level (default: {settings.log_level})",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Shortcut for --log-level DEBUG",
    )
    return parser


async def _run(config_path: str) -> int:
    config = load_config(config_path)
    logger.info("Loaded %s: %d steps, maxPages=%d", config_path, len(config.steps), config.max_pages)

    report = await run_automation(config)
    for failure in report.failures:
        logger.warning("Crawl failure at %s (%s): %s", failure.index, failure.link, failure.error)

    if report.pending_close is not None:
        await report.pending_close
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        configure_logging("DEBUG" if args.verbose else args.log_level)
    except ValueError as e:
        parser.error(str(e))

    init_telemetry()
    try:
        return asyncio.run(_run(args.config))
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except StepwrightError as e:
        logger.debug("Run failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        # Driver failures outside a step, e.g. the browser could not be launched
        logger.error("Run failed: %s", e, exc_info=True)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130
    finally:
        shutdown_telemetry()


if __name__ == "__main__":
    sys.exit(main())
