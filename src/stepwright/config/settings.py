from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return val.lower() in {"1", "true", "yes", "on"}


@dataclass
class Settings:
    headless: bool = _env_bool("HEADLESS", True)
    browser_engine: str = os.getenv("BROWSER_ENGINE", "chromium")  # chromium|firefox|webkit
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    otel_enabled: bool = _env_bool("OTEL_ENABLED", False)
    otel_service_name: str = os.getenv("OTEL_SERVICE_NAME", "stepwright")
    otel_exporter_otlp_endpoint: str = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "")


settings = Settings()
