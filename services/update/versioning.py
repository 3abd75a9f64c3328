"""Helpers for comparing store and installed versions."""

from __future__ import annotations

import re
from enum import Enum

from services.update.models import LookupResult


__all__ = [
    "VersionOrder",
    "compare_versions",
    "component_key",
    "pad_components",
]

_VERSION_DELIMITER = "."
_RUN_PATTERN = re.compile(r"\d+|\D+")

# Token ranks inside one component: text < end of component < digits.
_TEXT_RANK = 0
_END_RANK = 1
_DIGIT_RANK = 2
_END_TOKEN: tuple = (_END_RANK,)


class VersionOrder(Enum):
    """Position of the store version relative to the installed version."""

    BEFORE = -1
    SAME = 0
    AFTER = 1

    @property
    def lookup_result(self) -> LookupResult:
        if self is VersionOrder.SAME:
            return LookupResult.UPDATED
        if self is VersionOrder.AFTER:
            return LookupResult.OUTDATED
        return LookupResult.DEVELOPMENT_OR_BETA


def pad_components(store_version: str, installed_version: str) -> tuple[list[str], list[str]]:
    """Split both versions on ``.`` and right-pad the shorter one with ``"0"``."""

    store_components = store_version.split(_VERSION_DELIMITER)
    installed_components = installed_version.split(_VERSION_DELIMITER)
    difference = len(store_components) - len(installed_components)
    if difference > 0:
        installed_components.extend(["0"] * difference)
    elif difference < 0:
        store_components.extend(["0"] * -difference)
    return store_components, installed_components


def component_key(component: str) -> tuple[tuple, ...]:
    """Return the sort key of a single dotted component.

    The component is split into digit and text runs.  Digit runs compare by
    numeric value without converting to ``int`` (leading zeros are dropped, then
    the shorter run is smaller), text runs compare case-insensitively.  Every
    key ends with an end-of-component marker that sorts after text and before
    digits, so ``"0b1"`` is before ``"0"``.  An empty component counts as ``"0"``.
    """

    tokens: list[tuple] = []
    for run in _RUN_PATTERN.findall(component or "0"):
        if run.isascii() and run.isdigit():
            digits = run.lstrip("0")
            tokens.append((_DIGIT_RANK, len(digits), digits))
        else:
            tokens.append((_TEXT_RANK, run.lower()))
    tokens.append(_END_TOKEN)
    return tuple(tokens)


def compare_versions(store_version: str, installed_version: str) -> VersionOrder:
    """Compare ``store_version`` against ``installed_version``.

    Both versions are padded to the same number of components, so ``"1.2"``
    and ``"1.2.0"`` are the same version.  Components are then compared
    pairwise with :func:`component_key`: numeric components by value
    (``"1.9"`` is before ``"1.10"``), and a component whose digits are followed
    by text orders before the bare number (``"1.0b1"`` is before ``"1.0"``).
    Every pair uses the same key, which keeps the ordering transitive.
    """

    store_components, installed_components = pad_components(store_version, installed_version)
    for store_part, installed_part in zip(store_components, installed_components):
        store_key = component_key(store_part)
        installed_key = component_key(installed_part)
        if store_key != installed_key:
            return VersionOrder.AFTER if store_key > installed_key else VersionOrder.BEFORE
    return VersionOrder.SAME
