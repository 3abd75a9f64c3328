from __future__ import annotations

import threading
from urllib.parse import parse_qs, urlparse

import pytest

from services.update import (
    BadServerResponseError,
    DecodingError,
    LookupClient,
    LookupQuery,
    LookupResult,
    NetworkError,
    build_lookup_url,
    decode_lookup_payload,
)
from tests.unit.update_service_test_utils import (
    FakeResponse,
    connection_error,
    http_error,
    install_transport,
    json_response,
)


def _query(**overrides) -> LookupQuery:
    settings = {"bundle_id": "com.example.app", "installed_version": "1.0"}
    settings.update(overrides)
    return LookupQuery(**settings)


def _params(url: str) -> dict[str, list[str]]:
    return parse_qs(urlparse(url).query)


def test_lookup_url_carries_bundle_id_and_upper_cased_country(monkeypatch: pytest.MonkeyPatch) -> None:
    transport = install_transport(monkeypatch, json_response())

    LookupClient().lookup(_query(country="us"))

    (url,) = transport.urls
    assert url.startswith("https://itunes.apple.com/lookup?")
    assert _params(url) == {"bundleId": ["com.example.app"], "country": ["US"]}


@pytest.mark.parametrize("country", [None, "", "   "])
def test_lookup_url_omits_blank_country(monkeypatch: pytest.MonkeyPatch, country: str | None) -> None:
    transport = install_transport(monkeypatch, json_response())

    LookupClient().lookup(_query(country=country))

    assert _params(transport.urls[0]) == {"bundleId": ["com.example.app"]}


def test_build_lookup_url_appends_to_existing_query_string() -> None:
    url = build_lookup_url("https://example.test/lookup?entity=software", _query(country="gb"))

    assert url == "https://example.test/lookup?entity=software&bundleId=com.example.app&country=GB"


def test_lookup_passes_floored_timeout_to_transport(monkeypatch: pytest.MonkeyPatch) -> None:
    transport = install_transport(monkeypatch, json_response())

    LookupClient().lookup(_query(timeout=0.2))

    assert transport.requests[0][1] == 1.0


def test_lookup_uses_custom_endpoint(monkeypatch: pytest.MonkeyPatch) -> None:
    transport = install_transport(monkeypatch, json_response())
    client = LookupClient("https://catalog.example.test/lookup")

    client.lookup(_query())

    assert client.endpoint == "https://catalog.example.test/lookup"
    assert transport.urls[0].startswith("https://catalog.example.test/lookup?bundleId=")


def test_empty_results_report_no_results(monkeypatch: pytest.MonkeyPatch) -> None:
    install_transport(monkeypatch, json_response())

    info = LookupClient().lookup(_query(country="de")).unwrap()

    assert info.result is LookupResult.NO_RESULTS
    assert info.store_version is None
    assert info.app_id is None
    assert info.app_store_url is None
    assert info.bundle_id == "com.example.app"
    assert info.installed_version == "1.0"
    assert info.country == "DE"


def test_newer_store_version_reports_outdated_with_metadata(monkeypatch: pytest.MonkeyPatch) -> None:
    install_transport(monkeypatch, json_response(("2.0.0", "com.example.app", 1234567890)))

    result = LookupClient().lookup(_query())

    assert result.is_ok()
    info = result.unwrap()
    assert info.result is LookupResult.OUTDATED
    assert info.is_update_available
    assert info.store_version == "2.0.0"
    assert info.app_id == "1234567890"
    assert info.app_store_url == "itms-apps://apple.com/app/id1234567890"


def test_older_store_version_reports_development_or_beta(monkeypatch: pytest.MonkeyPatch) -> None:
    install_transport(monkeypatch, json_response(("0.9", "com.example.app", 42)))

    info = LookupClient().lookup(_query()).unwrap()

    assert info.result is LookupResult.DEVELOPMENT_OR_BETA
    assert not info.is_update_available


def test_only_first_result_is_considered(monkeypatch: pytest.MonkeyPatch) -> None:
    install_transport(
        monkeypatch,
        json_response(("1.0", "com.example.app", 1), ("9.0", "com.example.other", 2)),
    )

    info = LookupClient().lookup(_query()).unwrap()

    assert info.result is LookupResult.UPDATED
    assert info.app_id == "1"


def test_malformed_payload_is_a_decoding_error_and_not_retried(monkeypatch: pytest.MonkeyPatch) -> None:
    transport = install_transport(monkeypatch, FakeResponse(b"<html>oops</html>"))

    result = LookupClient().lookup(_query(retry_count=3))

    assert result.is_err()
    assert isinstance(result.error, DecodingError)
    assert len(transport.requests) == 1


def test_server_error_is_retried_until_success(monkeypatch: pytest.MonkeyPatch) -> None:
    transport = install_transport(
        monkeypatch,
        http_error(500),
        json_response(("1.0", "com.example.app", 7)),
    )

    result = LookupClient().lookup(_query(retry_count=1))

    assert len(transport.requests) == 2
    assert result.unwrap().result is LookupResult.UPDATED


def test_non_success_status_without_exception_is_a_bad_response(monkeypatch: pytest.MonkeyPatch) -> None:
    install_transport(monkeypatch, json_response(status=503))

    result = LookupClient().lookup(_query())

    assert result.error == BadServerResponseError(503)


def test_client_error_is_not_retried(monkeypatch: pytest.MonkeyPatch) -> None:
    transport = install_transport(monkeypatch, http_error(404), json_response())

    result = LookupClient().lookup(_query(retry_count=1))

    assert len(transport.requests) == 1
    assert result.error == BadServerResponseError(404)
    assert not result.error.is_retryable


def test_network_errors_are_retried_until_attempts_run_out(monkeypatch: pytest.MonkeyPatch) -> None:
    transport = install_transport(monkeypatch, connection_error())

    result = LookupClient().lookup(_query(retry_count=2))

    assert len(transport.requests) == 3
    assert isinstance(result.error, NetworkError)
    assert result.error.is_retryable


def test_socket_timeouts_are_network_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    install_transport(monkeypatch, TimeoutError("timed out"))

    result = LookupClient().lookup(_query())

    assert result.error == NetworkError(TimeoutError("timed out"))


def test_missing_status_is_not_retried_by_default(monkeypatch: pytest.MonkeyPatch) -> None:
    transport = install_transport(monkeypatch, FakeResponse(b"{}", status=None))

    result = LookupClient().lookup(_query(retry_count=2))

    assert len(transport.requests) == 1
    assert result.error == BadServerResponseError(-1)
    assert result.error.is_missing_status


def test_missing_status_can_be_retried(monkeypatch: pytest.MonkeyPatch) -> None:
    transport = install_transport(
        monkeypatch,
        FakeResponse(b"{}", status=None),
        json_response(("1.0", "com.example.app", 7)),
    )

    result = LookupClient(retry_missing_status=True).lookup(_query(retry_count=1))

    assert len(transport.requests) == 2
    assert result.is_ok()


def test_cancel_event_stops_pending_retries(monkeypatch: pytest.MonkeyPatch) -> None:
    transport = install_transport(monkeypatch, http_error(502))
    cancel_event = threading.Event()
    cancel_event.set()

    result = LookupClient().lookup(_query(retry_count=5), cancel_event=cancel_event)

    assert len(transport.requests) == 1
    assert result.error == BadServerResponseError(502)


def test_retry_delay_pauses_between_attempts(monkeypatch: pytest.MonkeyPatch) -> None:
    install_transport(monkeypatch, connection_error())
    sleeps: list[float] = []
    monkeypatch.setattr("services.update.lookup.time.sleep", sleeps.append)

    LookupClient(retry_delay=0.25).lookup(_query(retry_count=2))

    assert sleeps == [0.25, 0.25]


def test_decode_lookup_payload_reads_records() -> None:
    response = decode_lookup_payload(
        b'{"resultCount": 1, "results": [{"version": "3.1", "bundleId": "com.example.app", "trackId": 99}]}'
    )

    assert response.result_count == 1
    assert response.first is not None
    assert response.first.version == "3.1"
    assert response.first.app_id == "99"


def test_decode_lookup_payload_ignores_unknown_fields() -> None:
    response = decode_lookup_payload(
        '{"resultCount": 0, "results": [], "unexpected": true}'
    )

    assert response.first is None


@pytest.mark.parametrize(
    "payload",
    [
        b"[]",
        b'{"results": []}',
        b'{"resultCount": "1", "results": []}',
        b'{"resultCount": 1}',
        b'{"resultCount": 1, "results": [{"version": "1.0", "bundleId": "com.example.app"}]}',
        b'{"resultCount": 1, "results": [{"version": "1.0", "bundleId": "com.example.app", "trackId": true}]}',
        b'{"resultCount": 1, "results": [{"version": 1, "bundleId": "com.example.app", "trackId": 1}]}',
    ],
)
def test_decode_lookup_payload_rejects_mismatched_shapes(payload: bytes) -> None:
    with pytest.raises(DecodingError):
        decode_lookup_payload(payload)


def test_errors_compare_by_kind_and_payload() -> None:
    assert BadServerResponseError(500) == BadServerResponseError(500)
    assert BadServerResponseError(500) != BadServerResponseError(502)
    assert DecodingError("first") == DecodingError("second")
    assert NetworkError(OSError("reset")) != NetworkError(OSError("refused"))
    assert BadServerResponseError(500) != DecodingError()
