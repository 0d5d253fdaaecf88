from __future__ import annotations

import logging
import math
import numbers
from collections.abc import Mapping

from totalbuilder.core.errors import (
    InvalidCountError,
    InvalidTotalError,
    InvalidValueMapError,
    UnknownUnitError,
)
from totalbuilder.core.types import (
    REMAINDER_KEY,
    CountSet,
    Decomposition,
    StockBuild,
    ValueMap,
)

_builder_logger = logging.getLogger("totalbuilder.core")


def validate_value_map(value_map: ValueMap) -> dict[str, int]:
    """Check a value map and return it as a plain dict.

    Unit values must be distinct positive integers and unit names non-empty
    strings other than the reserved remainder key.
    """
    if not isinstance(value_map, Mapping):
        raise InvalidValueMapError("value map must be a mapping of unit name to value")
    if len(value_map) == 0:
        raise InvalidValueMapError("value map must define at least one unit")
    seen_values: dict[int, str] = {}
    checked: dict[str, int] = {}
    for name, value in value_map.items():
        if not isinstance(name, str) or not name.strip():
            raise InvalidValueMapError(f"unit names must be non-empty strings, got {name!r}")
        if name == REMAINDER_KEY:
            raise InvalidValueMapError(f"unit name {REMAINDER_KEY!r} is reserved")
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidValueMapError(f"unit {name}: value must be an integer, got {value!r}")
        if value <= 0:
            raise InvalidValueMapError(f"unit {name}: value must be positive")
        if value in seen_values:
            raise InvalidValueMapError(
                f"units {seen_values[value]} and {name} share the value {value}"
            )
        seen_values[value] = name
        checked[name] = value
    return checked


def _validate_total(total: int) -> int:
    if isinstance(total, bool) or not isinstance(total, int):
        raise InvalidTotalError(f"total must be an integer, got {total!r}")
    if total < 0:
        raise InvalidTotalError(f"total must be non-negative, got {total}")
    return total


def _units_by_value_desc(value_map: dict[str, int]) -> list[str]:
    # sorted() is stable, so equal values would keep insertion order.
    return sorted(value_map, key=lambda name: value_map[name], reverse=True)


def decompose(value_map: ValueMap, total: int) -> Decomposition:
    """Build ``total`` out of the valued units in ``value_map``.

    Takes as many of the largest unit as fit, then moves on to the next
    smaller one, visiting each unit once. Whatever cannot be built is
    reported as the remainder. This never searches for an exact answer:
    ``{"kroener": 30, "talen": 7}`` with 49 gives one kroener, two talen and
    a remainder of 5, not seven talen.
    """
    values = validate_value_map(value_map)
    remaining = _validate_total(total)
    if remaining == 0:
        return Decomposition()

    counts: dict[str, int] = {}
    for name in _units_by_value_desc(values):
        value = values[name]
        if value > remaining:
            continue
        counts[name] = remaining // value
        remaining -= counts[name] * value

    if remaining != 0:
        _builder_logger.debug("decompose total=%s left remainder=%s", total, remaining)
        return Decomposition(counts=counts, remainder=remaining)
    return Decomposition(counts=counts)


def total(value_map: ValueMap, count_set: CountSet | Decomposition) -> numbers.Real:
    """Return the total value of the units in ``count_set``.

    A ``Decomposition`` may be passed directly; only its counts are summed.
    """
    values = validate_value_map(value_map)
    counts = count_set.counts if isinstance(count_set, Decomposition) else count_set
    result: numbers.Real = 0
    for name, count in counts.items():
        if name not in values:
            raise UnknownUnitError(name)
        if isinstance(count, bool) or not isinstance(count, numbers.Real):
            raise InvalidCountError(f"unit {name}: count must be numeric, got {count!r}")
        result += count * values[name]
    return result


def canonicalize(value_map: ValueMap, count_set: CountSet) -> Decomposition:
    """Re-express a set of unit counts as the greedy decomposition of its total."""
    summed = total(value_map, count_set)
    if not isinstance(summed, int):
        if not math.isfinite(summed) or summed != int(summed):
            raise InvalidTotalError(f"counts total to a non-whole amount: {summed}")
        summed = int(summed)
    return decompose(value_map, summed)


def decompose_from_stock(
    value_map: ValueMap,
    total: int,
    stock: Mapping[str, int],
) -> StockBuild:
    """Build ``total`` using only the units available in ``stock``.

    Same single descending pass as ``decompose``, but a unit is never used
    more times than the stock holds. Units missing from ``stock`` have none
    available.
    """
    values = validate_value_map(value_map)
    remaining = _validate_total(total)
    available: dict[str, int] = {}
    for name, count in stock.items():
        if name not in values:
            raise UnknownUnitError(name)
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            raise InvalidCountError(
                f"unit {name}: stock count must be a non-negative integer, got {count!r}"
            )
        available[name] = count

    counts: dict[str, int] = {}
    for name in _units_by_value_desc(values):
        value = values[name]
        on_hand = available.get(name, 0)
        if remaining == 0:
            break
        if value > remaining or on_hand <= 0:
            continue
        used = min(remaining // value, on_hand)
        counts[name] = used
        available[name] = on_hand - used
        remaining -= used * value

    leftover = {name: count for name, count in available.items() if count > 0}
    if remaining != 0:
        _builder_logger.debug(
            "decompose_from_stock total=%s stock exhausted remainder=%s", total, remaining
        )
        return StockBuild(counts=counts, remainder=remaining, leftover_stock=leftover)
    return StockBuild(counts=counts, leftover_stock=leftover)
