"""
Central logging configuration for dashboard_calendar.

Keeps the package's own diagnostics visible while suppressing verbose DEBUG
output from the HTTP server, HTTP client and event loop libraries.
"""

import logging
import os
from typing import Optional

DEBUG_ENV = "DASHBOARD_DEBUG"
LOG_LEVEL_ENV = "DASHBOARD_LOG_LEVEL"

_TRUTHY = ("1", "true", "yes", "on")

PACKAGE_MODULES = [
    "dashboard_calendar",
    "dashboard_calendar.aggregator",
    "dashboard_calendar.event_expander",
    "dashboard_calendar.recurrence",
    "dashboard_calendar.day_splitter",
    "dashboard_calendar.ics_fetcher",
    "dashboard_calendar.ics_parser",
    "dashboard_calendar.config",
    "dashboard_calendar.server",
]

# Third-party loggers and the level they are held at
THIRD_PARTY_LEVELS: dict[str, int] = {
    "aiohttp.access": logging.WARNING,
    "aiohttp.server": logging.WARNING,
    "aiohttp.web": logging.INFO,
    "aiohttp.web_log": logging.WARNING,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "asyncio": logging.WARNING,
    "icalendar": logging.INFO,
}


def env_debug_enabled() -> bool:
    return os.getenv(DEBUG_ENV, "").strip().lower() in _TRUTHY


def configure_logging(debug_mode: bool = False, force_debug: Optional[bool] = None) -> None:
    """
    Configure logger levels for dashboard_calendar and its libraries.

    Args:
        debug_mode: Whether to enable debug logging for dashboard_calendar modules
        force_debug: Override debug mode setting (None to use env var detection)

    Environment Variables:
        DASHBOARD_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        DASHBOARD_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    env_log_level = os.getenv(LOG_LEVEL_ENV, "").strip().upper()

    if force_debug is not None:
        final_debug = force_debug
    elif env_debug_enabled():
        final_debug = True
    else:
        final_debug = debug_mode

    root_level = logging.DEBUG if final_debug else logging.INFO
    if env_log_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
        root_level = getattr(logging, env_log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)

    # Keep the colored handler installed by _init_logging
    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("[%(asctime)s] %(levelname)s - %(name)s - %(message)s"))
        root_logger.addHandler(handler)

    logger_config = dict(THIRD_PARTY_LEVELS)
    package_level = logging.DEBUG if final_debug else logging.INFO
    for module in PACKAGE_MODULES:
        logger_config[module] = package_level

    for logger_name, level in logger_config.items():
        logging.getLogger(logger_name).setLevel(level)

    if final_debug:
        root_logger.info("Debug logging enabled for dashboard_calendar modules")
    else:
        root_logger.debug("Production logging configuration applied")


def get_logging_status() -> dict[str, str]:
    """
    Get current logging configuration status.

    Returns:
        Dictionary mapping logger names to their current levels
    """
    status = {"root": logging.getLevelName(logging.getLogger().level)}
    for logger_name in ["dashboard_calendar", "aiohttp.access", "aiohttp.server", "httpx", "asyncio"]:
        status[logger_name] = logging.getLevelName(logging.getLogger(logger_name).level)
    return status
