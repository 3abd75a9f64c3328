"""Public API for the update check package."""

from __future__ import annotations

from services.update.builder import build_provider, build_update_checker, schedule_update_check
from services.update.constants import (
    APP_STORE_URL_TEMPLATE,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RETRY_COUNT,
    LOOKUP_URL,
    MIN_REQUEST_TIMEOUT,
    MISSING_STATUS_CODE,
)
from services.update.lookup import LookupClient, build_lookup_url, decode_lookup_payload
from services.update.models import (
    BadServerResponseError,
    DecodingError,
    LookupQuery,
    LookupRecord,
    LookupResponse,
    LookupResult,
    NetworkError,
    UpdateInfo,
    UpdetoError,
    build_app_store_url,
    normalize_country,
)
from services.update.providers import (
    AppStoreProvider,
    ErrorAwareUpdateInfoProvider,
    ErrorAwareUpdateProvider,
    ProviderCapability,
    UpdateInfoProvider,
    UpdateProvider,
    capabilities_of,
)
from services.update.service import PendingCheck, Updeto
from services.update.versioning import VersionOrder, compare_versions

__all__ = [
    "APP_STORE_URL_TEMPLATE",
    "DEFAULT_REQUEST_TIMEOUT",
    "DEFAULT_RETRY_COUNT",
    "LOOKUP_URL",
    "MIN_REQUEST_TIMEOUT",
    "MISSING_STATUS_CODE",
    "AppStoreProvider",
    "BadServerResponseError",
    "DecodingError",
    "ErrorAwareUpdateInfoProvider",
    "ErrorAwareUpdateProvider",
    "LookupClient",
    "LookupQuery",
    "LookupRecord",
    "LookupResponse",
    "LookupResult",
    "NetworkError",
    "PendingCheck",
    "ProviderCapability",
    "UpdateInfo",
    "UpdateInfoProvider",
    "UpdateProvider",
    "Updeto",
    "UpdetoError",
    "VersionOrder",
    "build_app_store_url",
    "build_lookup_url",
    "build_provider",
    "build_update_checker",
    "capabilities_of",
    "compare_versions",
    "decode_lookup_payload",
    "normalize_country",
    "schedule_update_check",
]
