from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from totalbuilder.core.errors import UnknownUnitSetError
from totalbuilder.core.types import UnitSet

_BUILTIN_UNIT_SETS: dict[str, UnitSet] = {
    "lsd": UnitSet(
        name="lsd",
        description="pre-decimal British currency, in pence",
        values=MappingProxyType({"pound": 240, "shilling": 20, "penny": 1}),
    ),
    "time": UnitSet(
        name="time",
        description="elapsed time, in seconds",
        values=MappingProxyType(
            {"week": 604800, "day": 86400, "hour": 3600, "minute": 60, "second": 1}
        ),
    ),
    "avoirdupois": UnitSet(
        name="avoirdupois",
        description="avoirdupois weight, in drams",
        values=MappingProxyType({"stone": 3584, "pound": 256, "ounce": 16, "dram": 1}),
    ),
    "us_coins": UnitSet(
        name="us_coins",
        description="US coinage, in cents",
        values=MappingProxyType(
            {"dollar": 100, "quarter": 25, "dime": 10, "nickel": 5, "penny": 1}
        ),
    ),
}


def available_unit_sets() -> list[str]:
    return sorted(_BUILTIN_UNIT_SETS)


def get_unit_set(name: str) -> UnitSet:
    key = str(name or "").strip().lower()
    unit_set = _BUILTIN_UNIT_SETS.get(key)
    if unit_set is None:
        raise UnknownUnitSetError(name)
    return unit_set


def resolve_unit_set(name: str, extra: Mapping[str, UnitSet] | None = None) -> UnitSet:
    """Look up a unit set, preferring configured sets over the built-ins."""
    key = str(name or "").strip().lower()
    if extra:
        for extra_name, unit_set in extra.items():
            if extra_name.strip().lower() == key:
                return unit_set
    return get_unit_set(name)
