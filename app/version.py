from __future__ import annotations

"""Host application metadata used to build a default update check."""

from functools import lru_cache
import locale
import os
import re
import subprocess
from importlib import resources

_FALLBACK_VERSION = "0"
_APP_VERSION_ENV = "UPDETO_APP_VERSION"
_BUNDLE_ID_ENV = "UPDETO_BUNDLE_ID"
_REGION_PATTERN = re.compile(r"^[A-Za-z]{2,3}[_-]([A-Za-z]{2})(?:[._@].*)?$")


def _read_resource(name: str) -> str | None:
    try:
        text = resources.files(__package__).joinpath(name).read_text(encoding="utf-8")
    except (FileNotFoundError, ModuleNotFoundError):
        return None
    value = text.strip()
    return value or None


def _version_from_env() -> str | None:
    env_version = os.environ.get(_APP_VERSION_ENV)
    if not env_version:
        return None
    return _normalize(env_version)


def _version_from_file() -> str | None:
    return _read_resource("VERSION")


def _version_from_git() -> str | None:
    try:
        output = subprocess.check_output(
            ["git", "describe", "--tags", "--abbrev=0"],
            stderr=subprocess.DEVNULL,
            text=True,
        )
    except (OSError, subprocess.CalledProcessError):
        return None
    return _normalize(output.strip()) or None


def _normalize(raw_version: str) -> str:
    version = raw_version.strip()
    if version[:1] in {"v", "V"}:
        version = version[1:]
    return version


@lru_cache(maxsize=1)
def get_app_version() -> str:
    """Return the installed application version.

    The order of precedence is:
    1. The ``UPDETO_APP_VERSION`` environment variable.
    2. An embedded ``VERSION`` file packaged next to this module.
    3. The latest tag reported by ``git describe``.
    4. ``"0"``, so every published version counts as newer.
    """

    for resolver in (_version_from_env, _version_from_file, _version_from_git):
        version = resolver()
        if version:
            return version
    return _FALLBACK_VERSION


def get_bundle_id() -> str:
    """Return the bundle identifier from ``UPDETO_BUNDLE_ID`` or a ``BUNDLE_ID`` file."""

    env_bundle = os.environ.get(_BUNDLE_ID_ENV, "").strip()
    if env_bundle:
        return env_bundle
    return _read_resource("BUNDLE_ID") or ""


def default_country_code() -> str | None:
    """Return the storefront region implied by the process locale, if any."""

    candidates: list[str | None] = []
    try:
        candidates.append(locale.getlocale()[0])
    except ValueError:
        pass
    candidates.extend(os.environ.get(name) for name in ("LC_ALL", "LC_MESSAGES", "LANG"))

    for candidate in candidates:
        if not candidate:
            continue
        match = _REGION_PATTERN.match(candidate.strip())
        if match:
            return match.group(1).upper()
    return None


__all__ = ["default_country_code", "get_app_version", "get_bundle_id"]
