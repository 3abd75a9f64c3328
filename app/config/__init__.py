"""Update check configuration loaded from JSON resources."""

from __future__ import annotations

import json
from dataclasses import dataclass
from importlib import resources
from math import isfinite
from pathlib import Path
from typing import Any, Mapping

from shared.storefront import (
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RETRY_COUNT,
    LOOKUP_URL,
    MIN_REQUEST_TIMEOUT,
    normalize_country,
)

_CONFIG_RESOURCE = "updeto.json"
_APP_CONFIG_CACHE: AppConfig | None = None

_DEFAULT_VERBOSITY = "info"
_VERBOSITIES = {"disabled", "error", "warning", "info", "verbose"}


@dataclass(frozen=True)
class LookupConfig:
    """Settings for the App Store lookup request."""

    endpoint: str = LOOKUP_URL
    timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT
    retry_count: int = DEFAULT_RETRY_COUNT
    retry_delay_seconds: float = 0.0
    retry_missing_status: bool = False
    country: str | None = None


@dataclass(frozen=True)
class LoggingConfig:
    verbosity: str = _DEFAULT_VERBOSITY


@dataclass(frozen=True)
class AppConfig:
    """Structured configuration values for update checks."""

    lookup: LookupConfig
    logging: LoggingConfig


def get_app_config() -> AppConfig:
    """Return the cached configuration."""

    global _APP_CONFIG_CACHE
    if _APP_CONFIG_CACHE is None:
        _APP_CONFIG_CACHE = load_app_config()
    return _APP_CONFIG_CACHE


def reset_app_config_cache() -> None:
    """Reset the cached configuration for subsequent reloads."""

    global _APP_CONFIG_CACHE
    _APP_CONFIG_CACHE = None


def load_app_config(path: str | Path | None = None) -> AppConfig:
    """Load configuration from ``path`` or the bundled JSON resource."""

    data = _read_config_data(path)
    lookup_section = data.get("lookup") if isinstance(data, Mapping) else None
    logging_section = data.get("logging") if isinstance(data, Mapping) else None
    return AppConfig(
        lookup=_parse_lookup_section(lookup_section),
        logging=_parse_logging_section(logging_section),
    )


def get_lookup_config() -> LookupConfig:
    """Convenience accessor for the lookup configuration."""

    return get_app_config().lookup


def _read_config_data(path: str | Path | None) -> Mapping[str, Any]:
    if path is not None:
        return _load_json_from_path(Path(path).expanduser())
    return _load_default_config_data()


def _load_json_from_path(path: Path) -> Mapping[str, Any]:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError:
        return {}
    return _parse_json(raw)


def _load_default_config_data() -> Mapping[str, Any]:
    try:
        resource = resources.files(__package__).joinpath(_CONFIG_RESOURCE)
        raw = resource.read_text(encoding="utf-8")
    except (FileNotFoundError, OSError):
        return {}
    return _parse_json(raw)


def _parse_json(raw: str) -> Mapping[str, Any]:
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return {}
    if isinstance(parsed, Mapping):
        return parsed
    return {}


def _parse_lookup_section(section: Mapping[str, Any] | None) -> LookupConfig:
    if not isinstance(section, Mapping):
        return LookupConfig()
    endpoint = section.get("endpoint")
    if not isinstance(endpoint, str) or not endpoint.strip():
        endpoint = LOOKUP_URL
    return LookupConfig(
        endpoint=endpoint.strip(),
        timeout_seconds=max(
            MIN_REQUEST_TIMEOUT,
            _coerce_non_negative_float(section.get("timeout_seconds"), default=DEFAULT_REQUEST_TIMEOUT),
        ),
        retry_count=_coerce_non_negative_int(section.get("retry_count"), default=DEFAULT_RETRY_COUNT),
        retry_delay_seconds=_coerce_non_negative_float(section.get("retry_delay_seconds"), default=0.0),
        retry_missing_status=section.get("retry_missing_status") is True,
        country=_coerce_country(section.get("country")),
    )


def _parse_logging_section(section: Mapping[str, Any] | None) -> LoggingConfig:
    if not isinstance(section, Mapping):
        return LoggingConfig()
    verbosity = section.get("verbosity")
    if isinstance(verbosity, str) and verbosity.strip().lower() in _VERBOSITIES:
        return LoggingConfig(verbosity=verbosity.strip().lower())
    return LoggingConfig()


def coerce_non_negative_int(value: Any, *, default: int) -> int:
    """Parse ``value`` as an integer ``>= 0``, returning ``default`` otherwise."""

    return _coerce_non_negative_int(value, default=default)


def coerce_non_negative_float(value: Any, *, default: float) -> float:
    """Parse ``value`` as a finite float ``>= 0``, returning ``default`` otherwise."""

    return _coerce_non_negative_float(value, default=default)


def _coerce_non_negative_int(value: Any, *, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not isfinite(value):
            return default
        candidate = int(value)
    elif isinstance(value, str):
        try:
            candidate = int(float(value))
        except (ValueError, OverflowError):
            return default
    else:
        return default
    if candidate < 0:
        return default
    return candidate


def _coerce_non_negative_float(value: Any, *, default: float) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        candidate = float(value)
    elif isinstance(value, str):
        try:
            candidate = float(value.strip())
        except ValueError:
            return default
    else:
        return default
    if not isfinite(candidate) or candidate < 0:
        return default
    return candidate


def _coerce_country(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    return normalize_country(value)
