"""Data models used by the update check."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple

from services.update.constants import (
    APP_STORE_URL_TEMPLATE,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RETRY_COUNT,
    MIN_REQUEST_TIMEOUT,
    MISSING_STATUS_CODE,
)
from shared.storefront import normalize_country


def build_app_store_url(app_id: str | None) -> str | None:
    if not app_id:
        return None
    return APP_STORE_URL_TEMPLATE.format(app_id=app_id)


class LookupResult(Enum):
    """Outcome of comparing the installed version with the store version."""

    UPDATED = "updated"
    OUTDATED = "outdated"
    DEVELOPMENT_OR_BETA = "development_or_beta"
    NO_RESULTS = "no_results"

    @property
    def description(self) -> str:
        return _RESULT_DESCRIPTIONS[self]


_RESULT_DESCRIPTIONS = {
    LookupResult.UPDATED: "The app is currently the latest version",
    LookupResult.OUTDATED: "The app has an update available",
    LookupResult.DEVELOPMENT_OR_BETA: "The app version is either from a development or beta build.",
    LookupResult.NO_RESULTS: "The query produced no results, please check the bundle id provided is correct.",
}


@dataclass(frozen=True)
class LookupQuery:
    """Parameters of a single lookup request."""

    bundle_id: str
    installed_version: str
    country: str | None = None
    timeout: float = DEFAULT_REQUEST_TIMEOUT
    retry_count: int = DEFAULT_RETRY_COUNT

    def __post_init__(self) -> None:
        object.__setattr__(self, "country", normalize_country(self.country))
        object.__setattr__(self, "timeout", max(MIN_REQUEST_TIMEOUT, float(self.timeout)))
        object.__setattr__(self, "retry_count", max(0, int(self.retry_count)))

    def params(self) -> list[tuple[str, str]]:
        params = [("bundleId", self.bundle_id)]
        if self.country is not None:
            params.append(("country", self.country))
        return params


@dataclass(frozen=True)
class LookupRecord:
    """A single catalog entry returned by the lookup endpoint."""

    version: str
    bundle_id: str
    app_id: str


@dataclass(frozen=True)
class LookupResponse:
    """Decoded lookup payload."""

    result_count: int
    results: Tuple[LookupRecord, ...] = field(default_factory=tuple)

    @property
    def first(self) -> LookupRecord | None:
        return self.results[0] if self.results else None


@dataclass(frozen=True)
class UpdateInfo:
    """Rich metadata describing the outcome of an update check."""

    result: LookupResult
    installed_version: str
    store_version: str | None
    app_id: str | None
    app_store_url: str | None
    bundle_id: str
    country: str | None

    @property
    def is_update_available(self) -> bool:
        return self.result is LookupResult.OUTDATED

    @classmethod
    def no_results(
        cls, bundle_id: str, installed_version: str, country: str | None = None
    ) -> "UpdateInfo":
        return cls(
            result=LookupResult.NO_RESULTS,
            installed_version=installed_version,
            store_version=None,
            app_id=None,
            app_store_url=None,
            bundle_id=bundle_id,
            country=normalize_country(country),
        )


class UpdetoError(Exception):
    """Base class for failures surfaced by the detailed check variants."""

    @property
    def is_retryable(self) -> bool:
        return False

    def _identity(self) -> tuple:
        return ()

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._identity() == other._identity()  # type: ignore[attr-defined]

    def __hash__(self) -> int:
        return hash((type(self), self._identity()))


class NetworkError(UpdetoError):
    """Transport-level failure such as DNS, connection or timeout errors."""

    def __init__(self, cause: BaseException) -> None:
        super().__init__(f"Network error: {cause}")
        self.cause = cause
        self.__cause__ = cause

    @property
    def is_retryable(self) -> bool:
        return True

    def _identity(self) -> tuple:
        return (type(self.cause), self.cause.args)


class BadServerResponseError(UpdetoError):
    """The server answered with a non-success status, or with no status at all."""

    def __init__(self, status_code: int) -> None:
        super().__init__(f"Bad server response (status {status_code})")
        self.status_code = status_code

    @property
    def is_retryable(self) -> bool:
        return self.status_code >= 500

    @property
    def is_missing_status(self) -> bool:
        return self.status_code == MISSING_STATUS_CODE

    def _identity(self) -> tuple:
        return (self.status_code,)


class DecodingError(UpdetoError):
    """The lookup payload could not be decoded."""

    def __init__(self, detail: str = "Lookup payload could not be decoded") -> None:
        super().__init__(detail)


__all__ = [
    "BadServerResponseError",
    "DecodingError",
    "LookupQuery",
    "LookupRecord",
    "LookupResponse",
    "LookupResult",
    "NetworkError",
    "UpdateInfo",
    "UpdetoError",
    "build_app_store_url",
    "normalize_country",
]
