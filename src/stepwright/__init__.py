"""stepwright: run declarative browser automation configs with Playwright."""

from __future__ import annotations

__version__ = "0.1.0"
