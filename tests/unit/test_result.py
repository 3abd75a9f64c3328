from __future__ import annotations

import pytest

from services.update import DecodingError
from shared.result import Result


def test_ok_result_exposes_value() -> None:
    result: Result[int, str] = Result.ok(3)

    assert result.is_ok()
    assert not result.is_err()
    assert result.unwrap() == 3
    assert result.unwrap_or(0) == 3
    assert result.map(lambda value: value * 2) == Result.ok(6)


def test_err_result_passes_error_through_map() -> None:
    result: Result[int, str] = Result.err("offline")

    assert result.is_err()
    assert result.unwrap_or(0) == 0
    assert result.map(lambda value: value * 2).error == "offline"


def test_unwrap_raises_exception_errors() -> None:
    with pytest.raises(DecodingError):
        Result.err(DecodingError()).unwrap()


def test_unwrap_wraps_non_exception_errors() -> None:
    with pytest.raises(RuntimeError, match="offline"):
        Result.err("offline").unwrap()
