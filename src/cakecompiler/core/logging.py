"""
Logging setup for host applications.

The packaged `config/logging.yaml` is a plain dictConfig mapping. `configure_logging`
stamps `settings.app.log_level` onto the root logger, the `cakecompiler` logger and every
handler that declares a level, then applies it. The engine never calls this on import.
"""

from __future__ import annotations

import copy
import logging.config
from typing import Any

from cakecompiler.config.settings import Settings, get_logging_config, get_settings

PACKAGE_LOGGER = "cakecompiler"


def _with_level(config: dict[str, Any], level: str) -> dict[str, Any]:
    stamped = copy.deepcopy(config)
    stamped.setdefault("root", {})["level"] = level
    for handler in stamped.get("handlers", {}).values():
        if "level" in handler:
            handler["level"] = level
    package = stamped.get("loggers", {}).get(PACKAGE_LOGGER)
    if package is not None:
        package["level"] = level
    return stamped


def configure_logging(settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    logging.config.dictConfig(_with_level(get_logging_config(), settings.app.log_level.upper()))
