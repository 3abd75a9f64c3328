"""App Store lookup defaults shared by the configuration and update layers."""

from __future__ import annotations

LOOKUP_URL = "https://itunes.apple.com/lookup"

DEFAULT_REQUEST_TIMEOUT = 15.0
MIN_REQUEST_TIMEOUT = 1.0
DEFAULT_RETRY_COUNT = 0


def normalize_country(country: str | None) -> str | None:
    """Return ``country`` trimmed and upper-cased, or ``None`` when blank."""

    if country is None:
        return None
    trimmed = country.strip()
    if not trimmed:
        return None
    return trimmed.upper()


__all__ = [
    "DEFAULT_REQUEST_TIMEOUT",
    "DEFAULT_RETRY_COUNT",
    "LOOKUP_URL",
    "MIN_REQUEST_TIMEOUT",
    "normalize_country",
]
