from __future__ import annotations

import numbers
from collections.abc import Mapping
from dataclasses import dataclass, field

REMAINDER_KEY = "_remainder"

ValueMap = Mapping[str, int]
CountSet = Mapping[str, numbers.Real]


@dataclass(frozen=True, slots=True)
class Decomposition:
    counts: dict[str, int] = field(default_factory=dict)
    remainder: int | None = None


@dataclass(frozen=True, slots=True)
class StockBuild:
    counts: dict[str, int] = field(default_factory=dict)
    remainder: int | None = None
    leftover_stock: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class UnitSet:
    name: str
    description: str
    values: Mapping[str, int]


def decomposition_as_mapping(decomposition: Decomposition | StockBuild) -> dict[str, int]:
    """Flatten a decomposition into one mapping, remainder under ``REMAINDER_KEY``."""
    flat = dict(decomposition.counts)
    if decomposition.remainder is not None:
        flat[REMAINDER_KEY] = decomposition.remainder
    return flat
