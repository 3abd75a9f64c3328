"""HTTP client for the App Store lookup endpoint."""

from __future__ import annotations

import json
import logging
import threading
import time
from collections.abc import Mapping
from http.client import HTTPException
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from services.update.constants import LOOKUP_URL, MISSING_STATUS_CODE
from services.update.models import (
    BadServerResponseError,
    DecodingError,
    LookupQuery,
    LookupRecord,
    LookupResponse,
    NetworkError,
    UpdateInfo,
    UpdetoError,
    build_app_store_url,
)
from services.update.versioning import compare_versions
from shared.result import Result


_LOGGER = logging.getLogger(__name__)


def build_lookup_url(endpoint: str, query: LookupQuery) -> str:
    separator = "&" if "?" in endpoint else "?"
    return f"{endpoint}{separator}{urlencode(query.params())}"


def decode_lookup_payload(raw: bytes | str) -> LookupResponse:
    """Decode a lookup payload, raising :class:`DecodingError` on any mismatch."""

    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise DecodingError(f"Lookup payload is not valid JSON: {exc}") from exc

    if not isinstance(data, Mapping):
        raise DecodingError("Lookup payload is not a JSON object")

    result_count = data.get("resultCount")
    if not _is_int(result_count):
        raise DecodingError("Lookup payload is missing an integer resultCount")

    results = data.get("results")
    if not isinstance(results, list):
        raise DecodingError("Lookup payload is missing the results list")

    records = tuple(_decode_record(entry) for entry in results)
    return LookupResponse(result_count=result_count, results=records)


def _decode_record(entry: object) -> LookupRecord:
    if not isinstance(entry, Mapping):
        raise DecodingError("Lookup result is not a JSON object")
    version = entry.get("version")
    bundle_id = entry.get("bundleId")
    track_id = entry.get("trackId")
    if not isinstance(version, str) or not isinstance(bundle_id, str):
        raise DecodingError("Lookup result is missing version or bundleId")
    if not _is_int(track_id):
        raise DecodingError("Lookup result is missing an integer trackId")
    return LookupRecord(version=version, bundle_id=bundle_id, app_id=str(track_id))


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class LookupClient:
    """Issue lookup requests, classify failures and apply the retry policy.

    ``retry_missing_status`` decides whether a response without a readable
    HTTP status (reported as status ``-1``) is retried like a server error.
    ``retry_delay`` is an optional pause, in seconds, between attempts.
    """

    def __init__(
        self,
        endpoint: str = LOOKUP_URL,
        *,
        retry_delay: float = 0.0,
        retry_missing_status: bool = False,
    ) -> None:
        self._endpoint = endpoint
        self._retry_delay = max(0.0, float(retry_delay))
        self._retry_missing_status = bool(retry_missing_status)

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def lookup(
        self,
        query: LookupQuery,
        *,
        cancel_event: threading.Event | None = None,
    ) -> Result[UpdateInfo, UpdetoError]:
        url = build_lookup_url(self._endpoint, query)
        total_attempts = 1 + query.retry_count
        attempt = 0

        while True:
            attempt += 1
            _LOGGER.debug("Lookup attempt %d/%d: %s", attempt, total_attempts, url)
            try:
                payload = self._fetch(url, query.timeout)
                response = decode_lookup_payload(payload)
            except UpdetoError as exc:
                if attempt >= total_attempts or not self._should_retry(exc):
                    self._log_failure(exc, attempt)
                    return Result.err(exc)
                _LOGGER.debug("Lookup attempt %d failed with %s; retrying", attempt, exc)
                if self._wait_before_retry(cancel_event):
                    _LOGGER.info("Lookup for %s cancelled after %d attempt(s)", query.bundle_id, attempt)
                    return Result.err(exc)
                continue

            return Result.ok(self._build_info(query, response))

    def _fetch(self, url: str, timeout: float) -> bytes:
        request = Request(url, headers={"Accept": "application/json"}, method="GET")
        try:
            with urlopen(request, timeout=timeout) as response:  # nosec - fixed HTTPS lookup endpoint
                status = _read_status(response)
                if status is None:
                    raise BadServerResponseError(MISSING_STATUS_CODE)
                if not 200 <= status < 300:
                    raise BadServerResponseError(status)
                return response.read()
        except HTTPError as exc:
            code = exc.code if _is_int(exc.code) else MISSING_STATUS_CODE
            raise BadServerResponseError(code) from exc
        except (URLError, HTTPException, OSError) as exc:
            raise NetworkError(exc) from exc

    def _should_retry(self, error: UpdetoError) -> bool:
        if isinstance(error, BadServerResponseError) and error.is_missing_status:
            return self._retry_missing_status
        return error.is_retryable

    def _wait_before_retry(self, cancel_event: threading.Event | None) -> bool:
        """Pause before the next attempt; return ``True`` when cancelled."""

        if cancel_event is None:
            if self._retry_delay:
                time.sleep(self._retry_delay)
            return False
        if self._retry_delay:
            return cancel_event.wait(self._retry_delay)
        return cancel_event.is_set()

    def _build_info(self, query: LookupQuery, response: LookupResponse) -> UpdateInfo:
        record = response.first
        if record is None:
            _LOGGER.info("Lookup for %s returned no results", query.bundle_id)
            return UpdateInfo.no_results(query.bundle_id, query.installed_version, query.country)

        result = compare_versions(record.version, query.installed_version).lookup_result
        _LOGGER.info(
            "Lookup for %s: store version %s, installed %s -> %s",
            query.bundle_id,
            record.version,
            query.installed_version,
            result.value,
        )
        return UpdateInfo(
            result=result,
            installed_version=query.installed_version,
            store_version=record.version,
            app_id=record.app_id,
            app_store_url=build_app_store_url(record.app_id),
            bundle_id=query.bundle_id,
            country=query.country,
        )

    def _log_failure(self, error: UpdetoError, attempt: int) -> None:
        if attempt > 1:
            _LOGGER.warning("Lookup failed after %d attempts: %s", attempt, error)
        else:
            _LOGGER.warning("Lookup failed: %s", error)


def _read_status(response: object) -> int | None:
    for attribute in ("status", "code"):
        status = getattr(response, attribute, None)
        if _is_int(status):
            return status
    return None


__all__ = [
    "LookupClient",
    "build_lookup_url",
    "decode_lookup_payload",
]
