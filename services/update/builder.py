"""Helpers for constructing and scheduling update checks."""

from __future__ import annotations

import logging
import os
import threading
from typing import Callable

from app.config import (
    AppConfig,
    LookupConfig,
    coerce_non_negative_float,
    coerce_non_negative_int,
    get_app_config,
)
from services.update.constants import COUNTRY_ENV, RETRY_COUNT_ENV, TIMEOUT_ENV
from services.update.lookup import LookupClient
from services.update.models import UpdateInfo, UpdetoError
from services.update.providers import AppStoreProvider
from services.update.service import Dispatch, Updeto
from shared.logging_config import ensure_app_logging, set_file_log_verbosity
from shared.result import Result


_LOGGER = logging.getLogger(__name__)


def _lookup_settings_from_env(lookup: LookupConfig) -> dict[str, object]:
    settings: dict[str, object] = {
        "country": lookup.country,
        "request_timeout": lookup.timeout_seconds,
        "retry_count": lookup.retry_count,
    }

    country = os.environ.get(COUNTRY_ENV)
    if country is not None:
        settings["country"] = country

    timeout = os.environ.get(TIMEOUT_ENV)
    if timeout is not None:
        settings["request_timeout"] = coerce_non_negative_float(timeout, default=lookup.timeout_seconds)

    retry_count = os.environ.get(RETRY_COUNT_ENV)
    if retry_count is not None:
        settings["retry_count"] = coerce_non_negative_int(retry_count, default=lookup.retry_count)

    return settings


def build_provider(config: AppConfig | None = None, **overrides: object) -> AppStoreProvider:
    """Construct an :class:`AppStoreProvider` from configuration and environment.

    Precedence, lowest first: the JSON configuration, the host locale for the
    country, ``UPDETO_*`` environment variables, then ``overrides``.
    """

    config = config or get_app_config()
    lookup = config.lookup
    client = LookupClient(
        lookup.endpoint,
        retry_delay=lookup.retry_delay_seconds,
        retry_missing_status=lookup.retry_missing_status,
    )

    settings = _lookup_settings_from_env(lookup)
    if settings["country"] is None:
        settings.pop("country")
    settings["client"] = client
    settings.update(overrides)
    return AppStoreProvider.from_environment(**settings)


def build_update_checker(
    config: AppConfig | None = None,
    *,
    configure_logging: bool = False,
    dispatch: Dispatch | None = None,
    **overrides: object,
) -> Updeto:
    """Construct an :class:`Updeto` facade backed by the App Store provider."""

    config = config or get_app_config()
    if configure_logging:
        ensure_app_logging()
        set_file_log_verbosity(config.logging.verbosity)

    provider = build_provider(config, **overrides)
    _LOGGER.debug("Built update checker for %r", provider)
    return Updeto(provider, dispatch=dispatch)


def _run_update_check(
    checker: Updeto,
    on_result: Callable[[Result[UpdateInfo, UpdetoError]], None],
    on_complete: Callable[[], None] | None,
) -> None:
    result = checker.check_info_detailed()
    try:
        if result.is_ok():
            info = result.unwrap()
            if info.is_update_available:
                _LOGGER.info(
                    "Update available: %s -> %s", info.installed_version, info.store_version
                )
        else:
            _LOGGER.warning("Update check failed: %s", result.error)
        on_result(result)
    finally:
        if on_complete:
            on_complete()


def schedule_update_check(
    on_result: Callable[[Result[UpdateInfo, UpdetoError]], None],
    *,
    checker: Updeto | None = None,
    enabled: bool = True,
    on_complete: Callable[[], None] | None = None,
) -> threading.Thread | None:
    """Run one detailed update check on a daemon thread and report its result."""

    if not enabled:
        _LOGGER.debug("Update check disabled by caller")
        return None

    checker = checker or build_update_checker()
    thread = threading.Thread(
        target=_run_update_check,
        args=(checker, on_result, on_complete),
        name="updeto-check",
        daemon=True,
    )
    thread.start()
    return thread


__all__ = [
    "build_provider",
    "build_update_checker",
    "schedule_update_check",
]
