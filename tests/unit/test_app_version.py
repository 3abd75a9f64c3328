from __future__ import annotations

import subprocess

import pytest

from app import version as app_version
from app.version import default_country_code, get_app_version, get_bundle_id


def _reset_cache() -> None:
    get_app_version.cache_clear()  # type: ignore[attr-defined]


def _without_packaged_version(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(app_version, "_version_from_file", lambda: None)


def test_get_app_version_prefers_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("UPDETO_APP_VERSION", "v1.2.3")
    monkeypatch.setattr(app_version, "_version_from_file", lambda: "9.9.9")
    _reset_cache()

    assert get_app_version() == "1.2.3"


def test_get_app_version_falls_back_to_version_file(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(app_version, "_read_resource", lambda name: "4.5.6" if name == "VERSION" else None)
    _reset_cache()

    assert get_app_version() == "4.5.6"


def test_get_app_version_uses_latest_git_tag(monkeypatch: pytest.MonkeyPatch) -> None:
    _without_packaged_version(monkeypatch)
    monkeypatch.setattr(app_version.subprocess, "check_output", lambda *args, **kwargs: "V3.0.1\n")
    _reset_cache()

    assert get_app_version() == "3.0.1"


def test_get_app_version_defaults_to_zero(monkeypatch: pytest.MonkeyPatch) -> None:
    def _no_git(*args, **kwargs):
        raise subprocess.CalledProcessError(128, args[0])

    _without_packaged_version(monkeypatch)
    monkeypatch.setattr(app_version.subprocess, "check_output", _no_git)
    _reset_cache()

    assert get_app_version() == "0"


def test_get_app_version_is_cached(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("UPDETO_APP_VERSION", "1.0")
    _reset_cache()
    first = get_app_version()

    monkeypatch.setenv("UPDETO_APP_VERSION", "2.0")

    assert get_app_version() == first == "1.0"


def test_get_bundle_id_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("UPDETO_BUNDLE_ID", "  com.example.host  ")

    assert get_bundle_id() == "com.example.host"


def test_get_bundle_id_is_empty_without_metadata(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(app_version, "_read_resource", lambda name: None)

    assert get_bundle_id() == ""


@pytest.mark.parametrize(
    ("lang", "expected"),
    [
        ("en_US.UTF-8", "US"),
        ("pt-br", "BR"),
        ("de_DE@euro", "DE"),
        ("C", None),
        ("POSIX", None),
    ],
)
def test_default_country_code_reads_region_from_locale(
    monkeypatch: pytest.MonkeyPatch, lang: str, expected: str | None
) -> None:
    monkeypatch.setattr(app_version.locale, "getlocale", lambda: (None, None))
    monkeypatch.delenv("LC_ALL", raising=False)
    monkeypatch.delenv("LC_MESSAGES", raising=False)
    monkeypatch.setenv("LANG", lang)

    assert default_country_code() == expected


def test_default_country_code_prefers_active_locale(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(app_version.locale, "getlocale", lambda: ("fr_CA", "UTF-8"))
    monkeypatch.setenv("LANG", "en_GB.UTF-8")

    assert default_country_code() == "CA"
