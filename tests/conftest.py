from __future__ import annotations

import sys
from pathlib import Path

import pytest


def _ensure_project_root_on_path() -> None:
    """Guarantee the repository root is discoverable for absolute imports."""

    root = Path(__file__).resolve().parent.parent
    root_str = str(root)
    if root_str not in sys.path:
        sys.path.insert(0, root_str)


_ensure_project_root_on_path()


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory):
    """Keep host metadata and log output from leaking into tests."""

    for name in (
        "UPDETO_BUNDLE_ID",
        "UPDETO_APP_VERSION",
        "UPDETO_COUNTRY",
        "UPDETO_TIMEOUT",
        "UPDETO_RETRY_COUNT",
        "UPDETO_LOG_FILE",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("UPDETO_LOG_DIR", str(tmp_path_factory.mktemp("logs")))

    from app.config import reset_app_config_cache
    from app.version import get_app_version

    reset_app_config_cache()
    get_app_version.cache_clear()
    yield
    reset_app_config_cache()
    get_app_version.cache_clear()
