"""dashboard_calendar.config

Configuration for the calendar dashboard service.

- `DashboardConfig` holds the calendar source lists plus window, fetch and
  server settings; `from_dict` coerces and bounds-checks values.
- `load_config()`/`save_config()` read and write YAML (.yaml/.yml) or JSON.
- `CalendarStore` owns a config file and persists every add/delete of a
  calendar source.
- `ConfigManager` loads `.env` defaults and environment overrides.
"""

from __future__ import annotations

import json
import logging
import os
import time
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .models import CalendarKind, CalendarSource

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "DASHBOARD_CONFIG"
DEFAULT_CONFIG_FILENAME = "config.json"

KIND_ORDER = (CalendarKind.GOOGLE.value, CalendarKind.ICLOUD.value)

PathLike = Union[str, Path]


def _empty_calendars() -> dict[str, list[CalendarSource]]:
    return {kind: [] for kind in KIND_ORDER}


@dataclass
class DashboardConfig:
    """Typed configuration for dashboard_calendar.

    Fields:
        calendars: calendar sources per kind ("google", "icloud")
        lookback_days: days before today included in the window (0..365)
        lookahead_months: months after today included in the window (1..24)
        fetch_concurrency: simultaneous feed downloads (1..16)
        fetch_timeout_seconds: per-request read timeout (1..300)
        max_occurrences_per_rule: recurrence enumeration cap (1..10000)
        server_bind: host to bind the HTTP server to
        server_port: port for the HTTP server
        log_level: logging level name
    """

    calendars: dict[str, list[CalendarSource]] = field(default_factory=_empty_calendars)
    lookback_days: int = 7
    lookahead_months: int = 2
    fetch_concurrency: int = 4
    fetch_timeout_seconds: int = 30
    max_occurrences_per_rule: int = 500
    server_bind: str = "0.0.0.0"  # nosec: B104 - dashboard is served on the LAN; configurable
    server_port: int = 3000
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> DashboardConfig:
        """Create a config from a plain mapping, applying defaults and validation.

        Numeric values are coerced to int and clamped to their allowed range,
        logging a warning whenever a value is replaced. Invalid calendar
        entries and unknown calendar kinds are skipped with a warning.
        """
        if data is None:
            data = {}

        def _coerce_int(key: str, default: int, minimum: int, maximum: int) -> int:
            raw = data.get(key, default)
            try:
                value = int(raw)
            except (TypeError, ValueError):
                logger.warning("Config %s=%r is not an int; using default %d", key, raw, default)
                return default
            if value < minimum:
                logger.warning("Config %s=%d below minimum; coercing to %d", key, value, minimum)
                return minimum
            if value > maximum:
                logger.warning("Config %s=%d above maximum; coercing to %d", key, value, maximum)
                return maximum
            return value

        server_bind = data.get("server_bind") or "0.0.0.0"  # nosec: B104
        log_level = str(data.get("log_level") or "INFO").upper()

        return cls(
            calendars=_calendars_from_raw(data.get("calendars")),
            lookback_days=_coerce_int("lookback_days", 7, 0, 365),
            lookahead_months=_coerce_int("lookahead_months", 2, 1, 24),
            fetch_concurrency=_coerce_int("fetch_concurrency", 4, 1, 16),
            fetch_timeout_seconds=_coerce_int("fetch_timeout_seconds", 30, 1, 300),
            max_occurrences_per_rule=_coerce_int("max_occurrences_per_rule", 500, 1, 10000),
            server_bind=str(server_bind),
            server_port=_coerce_int("server_port", 3000, 1, 65535),
            log_level=log_level,
        )

    def to_dict(self) -> dict[str, Any]:
        """Plain mapping suitable for JSON/YAML serialization."""
        return {
            "calendars": {
                kind: [source.model_dump(exclude={"kind"}) for source in sources]
                for kind, sources in self.calendars.items()
            },
            "lookback_days": self.lookback_days,
            "lookahead_months": self.lookahead_months,
            "fetch_concurrency": self.fetch_concurrency,
            "fetch_timeout_seconds": self.fetch_timeout_seconds,
            "max_occurrences_per_rule": self.max_occurrences_per_rule,
            "server_bind": self.server_bind,
            "server_port": self.server_port,
            "log_level": self.log_level,
        }

    def all_sources(self) -> list[CalendarSource]:
        """Every configured source, google calendars first, then icloud."""
        return [source for kind in KIND_ORDER for source in self.calendars.get(kind, [])]


def _calendars_from_raw(raw: Any) -> dict[str, list[CalendarSource]]:
    calendars = _empty_calendars()
    if raw is None:
        return calendars
    if not isinstance(raw, dict):
        logger.warning("Config `calendars` is not a mapping; ignoring")
        return calendars

    for kind, entries in raw.items():
        if kind not in calendars:
            logger.warning("Unknown calendar kind %r in config; ignoring", kind)
            continue
        if not isinstance(entries, list):
            logger.warning("Config calendars.%s is not a list; ignoring", kind)
            continue
        for entry in entries:
            if not isinstance(entry, dict):
                logger.warning("Skipping calendars.%s entry %r: not a mapping", kind, entry)
                continue
            values = {**entry, "kind": kind}
            if values.get("id") is not None:
                values["id"] = str(values["id"])
            try:
                calendars[kind].append(CalendarSource(**values))
            except ValidationError as e:
                logger.warning("Skipping invalid calendars.%s entry %r: %s", kind, entry, e)
    return calendars


def _is_yaml(path: Path) -> bool:
    return path.suffix.lower() in (".yaml", ".yml")


def _load_yaml_or_json(path: Path) -> Any:
    """Load a mapping from a YAML or JSON file, chosen by file suffix.

    Raises:
        ConfigError: If the file cannot be read or parsed
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Unable to read config file {path}: {e}") from e

    try:
        if _is_yaml(path):
            loaded = yaml.safe_load(text)
        else:
            loaded = json.loads(text) if text.strip() else None
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigError(f"Unable to parse config file {path}: {e}") from e

    # Empty files mean "all defaults"
    return {} if loaded is None else loaded


def default_config_path() -> Path:
    """Config path from DASHBOARD_CONFIG, else ./config.json."""
    env_path = os.environ.get(CONFIG_PATH_ENV)
    if env_path:
        return Path(env_path)
    return Path.cwd() / DEFAULT_CONFIG_FILENAME


def load_config(path: Optional[PathLike] = None) -> DashboardConfig:
    """Load configuration from a YAML/JSON file.

    Args:
        path: Optional path to the config file; see default_config_path()

    Returns:
        DashboardConfig with values from file (or defaults)

    Behavior:
    - If the file is missing: returns DashboardConfig() with defaults.
    - If the file exists but top-level is not a mapping: raises ConfigError.
    """
    p = Path(path) if path else default_config_path()
    logger.debug("Attempting to load config from %s", p)
    if not p.exists():
        logger.info("Config file %s not found; using defaults", p)
        return DashboardConfig()

    raw = _load_yaml_or_json(p)
    if not isinstance(raw, dict):
        logger.warning("Config file %s parsed but top-level is not a mapping: %r", p, raw)
        raise ConfigError("Config file must contain a mapping at top level")
    cfg = DashboardConfig.from_dict(raw)
    logger.info("Loaded configuration from %s", p)
    logger.debug("Configuration values: %s", cfg)
    return cfg


def save_config(config: DashboardConfig, path: PathLike) -> None:
    """Write configuration to path, as YAML or JSON depending on its suffix.

    Raises:
        ConfigError: If the file cannot be written
    """
    p = Path(path)
    data = config.to_dict()
    if _is_yaml(p):
        text = yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
    else:
        text = json.dumps(data, indent=2, ensure_ascii=False) + "\n"

    try:
        if p.parent and not p.parent.exists():
            p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(text, encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Unable to write config file {p}: {e}") from e
    logger.info("Configuration saved to %s", p)


class CalendarStore:
    """Persistent store of calendar sources backed by a config file."""

    def __init__(self, path: Optional[PathLike] = None, config: Optional[DashboardConfig] = None):
        """Initialize the store.

        Args:
            path: Config file; see default_config_path()
            config: Already loaded config; read from path when omitted
        """
        self.path = Path(path) if path else default_config_path()
        self.config = config if config is not None else load_config(self.path)

    def sources(self) -> list[CalendarSource]:
        return self.config.all_sources()

    def list_sources(self) -> dict[str, list[dict[str, Any]]]:
        """Sources per kind in their wire shape."""
        return {
            kind: [source.model_dump(exclude={"kind"}) for source in self.config.calendars.get(kind, [])]
            for kind in KIND_ORDER
        }

    def add_calendar(
        self, kind: str, name: Optional[str], url: str, color: Optional[str] = None
    ) -> CalendarSource:
        """Add an enabled calendar source and persist the config.

        The new source id is the current epoch time in milliseconds.

        Raises:
            ConfigError: If kind is unknown, url is empty or a field is malformed
        """
        kind = self._validate_kind(kind)
        if not url or not str(url).strip():
            raise ConfigError("Calendar url is required")
        url = str(url).strip()

        existing_ids = {source.id for source in self.sources()}
        new_id = int(time.time() * 1000)
        while str(new_id) in existing_ids:
            new_id += 1

        name = str(name).strip() if name is not None else ""
        try:
            source = CalendarSource(
                id=str(new_id),
                name=name or url,
                url=url,
                color=color or None,
                enabled=True,
                kind=kind,
            )
        except ValidationError as e:
            raise ConfigError(f"Invalid calendar definition: {e}") from e
        self.config.calendars.setdefault(kind, []).append(source)
        save_config(self.config, self.path)
        logger.info("Added %s calendar %r (id=%s)", kind, source.name, source.id)
        return source

    def delete_calendar(self, kind: str, calendar_id: str) -> bool:
        """Remove a calendar source by id and persist the config.

        Returns:
            True if a source was removed

        Raises:
            ConfigError: If kind is unknown
        """
        kind = self._validate_kind(kind)
        before = self.config.calendars.get(kind, [])
        after = [source for source in before if source.id != calendar_id]
        self.config.calendars[kind] = after
        save_config(self.config, self.path)

        removed = len(after) != len(before)
        if removed:
            logger.info("Deleted %s calendar id=%s", kind, calendar_id)
        else:
            logger.debug("No %s calendar with id=%s to delete", kind, calendar_id)
        return removed

    @staticmethod
    def _validate_kind(kind: str) -> str:
        try:
            return CalendarKind(str(kind).lower()).value
        except ValueError as e:
            raise ConfigError(f"Unknown calendar type: {kind!r}") from e


class ConfigManager:
    """Manages configuration from environment variables and .env files."""

    def __init__(self, env_file_path: Optional[Path] = None):
        """Initialize configuration manager.

        Args:
            env_file_path: Optional path to .env file (defaults to .env in current directory)
        """
        self.env_file_path = env_file_path or Path.cwd() / ".env"

    def load_env_file(self) -> list[str]:
        """Load .env file and set environment variables.

        Only sets variables that are not already in the environment.

        Returns:
            List of environment variable keys that were loaded from .env file
        """
        if not self.env_file_path.exists():
            logger.debug("No .env file found at %s", self.env_file_path)
            return []

        try:
            content = self.env_file_path.read_text(encoding="utf-8")
        except OSError:
            logger.debug(
                "Failed to read .env file for defaults (continuing): %s",
                self.env_file_path,
                exc_info=True,
            )
            return []

        set_keys = []
        for raw_line in content.splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, val = line.split("=", 1)
            key = key.strip()
            if key.startswith("export "):
                key = key[len("export ") :].strip()
            val = val.strip().strip('"').strip("'")

            if key and key not in os.environ:
                os.environ[key] = val
                set_keys.append(key)

        if set_keys:
            logger.debug("Loaded .env defaults for keys: %s", ", ".join(set_keys))
        return set_keys

    def build_config_from_env(self) -> dict[str, Any]:
        """Build configuration overrides from environment variables.

        Recognizes:
        - DASHBOARD_PORT or PORT -> 'server_port' (int)
        - DASHBOARD_HOST -> 'server_bind'
        - DASHBOARD_LOG_LEVEL -> 'log_level'

        Returns:
            Mapping of DashboardConfig field names to override values
        """
        cfg: dict[str, Any] = {}

        host = os.environ.get("DASHBOARD_HOST")
        if host:
            cfg["server_bind"] = host

        port = os.environ.get("DASHBOARD_PORT") or os.environ.get("PORT")
        if port:
            try:
                cfg["server_port"] = int(port)
            except ValueError:
                logger.warning("Invalid DASHBOARD_PORT=%r; ignoring", port)

        log_level = os.environ.get("DASHBOARD_LOG_LEVEL")
        if log_level:
            cfg["log_level"] = log_level.upper()

        return cfg

    def load_full_config(self, path: Optional[PathLike] = None) -> DashboardConfig:
        """Load .env defaults, then the config file, then apply env overrides."""
        self.load_env_file()
        return apply_overrides(load_config(path), self.build_config_from_env())


def apply_overrides(config: DashboardConfig, overrides: dict[str, Any]) -> DashboardConfig:
    """Copy of config with the given fields replaced; unknown keys are ignored."""
    known = {key: value for key, value in overrides.items() if hasattr(config, key)}
    for key in set(overrides) - set(known):
        logger.warning("Ignoring unknown config override %r", key)
    return replace(config, **known) if known else config
