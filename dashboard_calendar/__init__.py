"""dashboard_calendar - calendar occurrence aggregation for a home dashboard.

Fetches ICS subscription calendars, expands recurring and multi-day events
into day-bounded instances inside a viewing window and serves them as JSON.
"""

__version__ = "1.0.0"

from typing import Optional


def _init_logging(level_name: Optional[str]) -> None:
    """Initialize root logging to stream colorized output to the console.

    Honors the DASHBOARD_DEBUG environment variable (truthy values: "1",
    "true", "yes", "on"), which forces DEBUG verbosity.
    """
    import logging
    import os
    import sys

    from colorlog import ColoredFormatter

    debug_env = os.environ.get("DASHBOARD_DEBUG", "")
    if debug_env.strip().lower() in ("1", "true", "yes", "on"):
        level_name = "DEBUG"

    root = logging.getLogger()
    # Avoid duplicate output when called more than once
    if not root.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        # HH:MM:SS  LEVEL   logger.name: message, only the level colorized
        fmt = "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s %(name)s: %(message)s"
        log_colors = {
            "DEBUG": "cyan",
            "INFO": "green",
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "bold_red",
        }
        handler.setFormatter(ColoredFormatter(fmt, datefmt="%H:%M:%S", log_colors=log_colors))
        root.addHandler(handler)

    level = logging.INFO
    if isinstance(level_name, str):
        level = getattr(logging, level_name.upper(), logging.INFO)
        if not isinstance(level, int):
            level = logging.INFO
    root.setLevel(level)
    logging.getLogger(__name__).debug("Logging initialized at level %s", logging.getLevelName(level))


def run_server(args: Optional[object] = None) -> None:
    """Load configuration and start the dashboard calendar server.

    Args:
        args: Optional command line namespace with ``port``, ``host``,
            ``config``, ``debug`` and ``dump`` attributes

    Behavior:
    - Initialize console logging early using DASHBOARD_LOG_LEVEL (env) if present.
    - Load .env defaults, the config file and environment overrides.
    - Apply command line overrides (port, host, debug).
    - With ``dump`` set: aggregate once, print the JSON payload and return.
    - Otherwise: run the HTTP server until interrupted.
    """
    import json
    import logging
    import os

    _init_logging(os.environ.get("DASHBOARD_LOG_LEVEL"))
    logger = logging.getLogger(__name__)

    from .config import CalendarStore, ConfigManager, apply_overrides
    from .server import run_dump, start_server

    config_path = getattr(args, "config", None)
    config = ConfigManager().load_full_config(config_path)
    # The store persists only what is in the file, never env or CLI overrides
    store = CalendarStore(config_path)

    overrides: dict = {}
    port = getattr(args, "port", None)
    if port is not None:
        overrides["server_port"] = int(port)
        logger.debug("Applied command line port override: %d", int(port))
    host = getattr(args, "host", None)
    if host:
        overrides["server_bind"] = host
    if getattr(args, "debug", False):
        overrides["log_level"] = "DEBUG"

    config = apply_overrides(config, overrides)
    logging.getLogger().setLevel(getattr(logging, config.log_level, logging.INFO))

    if getattr(args, "dump", False):
        payload = run_dump(store)
        print(json.dumps(payload, indent=2, ensure_ascii=False))
        return

    start_server(config, store)
