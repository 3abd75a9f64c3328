"""Update provider protocols and the built-in App Store provider."""

from __future__ import annotations

import logging
import threading
from enum import Flag, auto
from typing import Protocol, runtime_checkable

from app.version import default_country_code, get_app_version, get_bundle_id
from services.update.constants import DEFAULT_REQUEST_TIMEOUT, DEFAULT_RETRY_COUNT, MIN_REQUEST_TIMEOUT
from services.update.lookup import LookupClient
from services.update.models import (
    LookupQuery,
    LookupResult,
    UpdateInfo,
    UpdetoError,
    build_app_store_url,
    normalize_country,
)
from shared.result import Result


_LOGGER = logging.getLogger(__name__)


@runtime_checkable
class UpdateProvider(Protocol):
    """Protocol every update provider implements.

    Custom providers (a private distribution server, a staging catalog, ...)
    only need this base tier; richer tiers are optional and the facade
    synthesises whatever they leave out.
    """

    bundle_id: str
    installed_version: str
    app_id: str

    @property
    def app_store_url(self) -> str | None:
        """Deep link for the app, present once ``app_id`` is known."""

    def check_status(self) -> LookupResult:
        """Return the update status, collapsing every failure into ``NO_RESULTS``."""


@runtime_checkable
class ErrorAwareUpdateProvider(UpdateProvider, Protocol):
    def check_status_detailed(self) -> Result[LookupResult, UpdetoError]:
        """Return the update status or the error that prevented it."""


@runtime_checkable
class UpdateInfoProvider(UpdateProvider, Protocol):
    def check_info(self) -> UpdateInfo:
        """Return rich metadata, collapsing every failure into a no-results envelope."""


@runtime_checkable
class ErrorAwareUpdateInfoProvider(UpdateProvider, Protocol):
    def check_info_detailed(self) -> Result[UpdateInfo, UpdetoError]:
        """Return rich metadata or the error that prevented it."""


class ProviderCapability(Flag):
    """Operations a provider supports."""

    NONE = 0
    STATUS = auto()
    STATUS_DETAILED = auto()
    INFO = auto()
    INFO_DETAILED = auto()
    # Operations accept a ``cancel_event`` keyword that stops pending retries.
    CANCELLABLE = auto()


_OPERATION_CAPABILITIES = (
    ("check_status", ProviderCapability.STATUS),
    ("check_status_detailed", ProviderCapability.STATUS_DETAILED),
    ("check_info", ProviderCapability.INFO),
    ("check_info_detailed", ProviderCapability.INFO_DETAILED),
)


def capabilities_of(provider: object) -> ProviderCapability:
    """Return the capabilities ``provider`` declares or, failing that, exposes."""

    declared = getattr(provider, "capabilities", None)
    if isinstance(declared, ProviderCapability):
        return declared

    capabilities = ProviderCapability.NONE
    for name, capability in _OPERATION_CAPABILITIES:
        if callable(getattr(provider, name, None)):
            capabilities |= capability
    return capabilities


class AppStoreProvider:
    """Check for updates against the iTunes lookup endpoint."""

    capabilities = (
        ProviderCapability.STATUS
        | ProviderCapability.STATUS_DETAILED
        | ProviderCapability.INFO
        | ProviderCapability.INFO_DETAILED
        | ProviderCapability.CANCELLABLE
    )

    def __init__(
        self,
        bundle_id: str,
        installed_version: str,
        *,
        country: str | None = None,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        retry_count: int = DEFAULT_RETRY_COUNT,
        app_id: str = "",
        client: LookupClient | None = None,
    ) -> None:
        self._bundle_id = bundle_id
        self._installed_version = installed_version
        self._client = client or LookupClient()
        self._app_id_lock = threading.Lock()
        self._app_id = app_id
        self.country = country
        self.request_timeout = request_timeout
        self.retry_count = retry_count

    @classmethod
    def from_environment(cls, **overrides: object) -> "AppStoreProvider":
        """Build a provider from the host application's metadata.

        Bundle id, installed version and country come from :mod:`app.version`
        unless passed explicitly in ``overrides``.
        """

        bundle_id = overrides.pop("bundle_id", None) or get_bundle_id()
        installed_version = overrides.pop("installed_version", None) or get_app_version()
        if "country" not in overrides:
            overrides["country"] = default_country_code()
        return cls(str(bundle_id), str(installed_version), **overrides)  # type: ignore[arg-type]

    @property
    def bundle_id(self) -> str:
        return self._bundle_id

    @property
    def installed_version(self) -> str:
        return self._installed_version

    @property
    def client(self) -> LookupClient:
        return self._client

    @property
    def country(self) -> str | None:
        return self._country

    @country.setter
    def country(self, value: str | None) -> None:
        self._country = normalize_country(value)

    @property
    def request_timeout(self) -> float:
        return self._request_timeout

    @request_timeout.setter
    def request_timeout(self, value: float) -> None:
        self._request_timeout = max(MIN_REQUEST_TIMEOUT, float(value))

    @property
    def retry_count(self) -> int:
        return self._retry_count

    @retry_count.setter
    def retry_count(self, value: int) -> None:
        self._retry_count = max(0, int(value))

    @property
    def app_id(self) -> str:
        with self._app_id_lock:
            return self._app_id

    @app_id.setter
    def app_id(self, value: str) -> None:
        with self._app_id_lock:
            self._app_id = value

    @property
    def app_store_url(self) -> str | None:
        return build_app_store_url(self.app_id)

    def build_query(self) -> LookupQuery:
        return LookupQuery(
            bundle_id=self._bundle_id,
            installed_version=self._installed_version,
            country=self._country,
            timeout=self._request_timeout,
            retry_count=self._retry_count,
        )

    def check_info_detailed(
        self, *, cancel_event: threading.Event | None = None
    ) -> Result[UpdateInfo, UpdetoError]:
        result = self._client.lookup(self.build_query(), cancel_event=cancel_event)
        if result.is_ok():
            info = result.unwrap()
            if info.app_id:
                _LOGGER.debug("Caching App Store id %s for %s", info.app_id, self._bundle_id)
                self.app_id = info.app_id
        return result

    def check_info(self, *, cancel_event: threading.Event | None = None) -> UpdateInfo:
        return self.check_info_detailed(cancel_event=cancel_event).unwrap_or(self._no_results_info())

    def check_status_detailed(
        self, *, cancel_event: threading.Event | None = None
    ) -> Result[LookupResult, UpdetoError]:
        return self.check_info_detailed(cancel_event=cancel_event).map(lambda info: info.result)

    def check_status(self, *, cancel_event: threading.Event | None = None) -> LookupResult:
        return self.check_status_detailed(cancel_event=cancel_event).unwrap_or(LookupResult.NO_RESULTS)

    def _no_results_info(self) -> UpdateInfo:
        return UpdateInfo.no_results(self._bundle_id, self._installed_version, self._country)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(bundle_id={self._bundle_id!r}, "
            f"installed_version={self._installed_version!r}, country={self._country!r})"
        )


__all__ = [
    "AppStoreProvider",
    "ErrorAwareUpdateInfoProvider",
    "ErrorAwareUpdateProvider",
    "ProviderCapability",
    "UpdateInfoProvider",
    "UpdateProvider",
    "capabilities_of",
]
