"""Constants shared across the update check modules."""

from __future__ import annotations

from shared.storefront import (
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RETRY_COUNT,
    LOOKUP_URL,
    MIN_REQUEST_TIMEOUT,
)

APP_STORE_URL_TEMPLATE = "itms-apps://apple.com/app/id{app_id}"

# Status reported when the transport produced no readable HTTP status.
MISSING_STATUS_CODE = -1

COUNTRY_ENV = "UPDETO_COUNTRY"
TIMEOUT_ENV = "UPDETO_TIMEOUT"
RETRY_COUNT_ENV = "UPDETO_RETRY_COUNT"

__all__ = [
    "APP_STORE_URL_TEMPLATE",
    "COUNTRY_ENV",
    "DEFAULT_REQUEST_TIMEOUT",
    "DEFAULT_RETRY_COUNT",
    "LOOKUP_URL",
    "MIN_REQUEST_TIMEOUT",
    "MISSING_STATUS_CODE",
    "RETRY_COUNT_ENV",
    "TIMEOUT_ENV",
]
