from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from totalbuilder.core.builder import validate_value_map
from totalbuilder.core.errors import InvalidValueMapError
from totalbuilder.core.types import UnitSet
from totalbuilder.logging_setup import DEFAULT_LOG_LEVEL_NAME, normalize_log_level_name

DEFAULT_HOME_DIR = "~/.totalbuilder"


@dataclass(slots=True)
class ProgramConfig:
    home_dir: str
    app_log_level: str
    app_log_level_was_missing: bool = False
    unit_sets: dict[str, UnitSet] = field(default_factory=dict)


def _req(mapping: dict[str, Any], key: str) -> Any:
    if key not in mapping:
        raise ValueError(f"Missing required field: {key}")
    return mapping[key]


def _parse_unit_set(name: str, row: Any) -> UnitSet:
    if not isinstance(row, dict):
        raise ValueError(f"unit_sets.{name} must be a mapping")
    raw_values = _req(row, "values")
    if not isinstance(raw_values, dict):
        raise ValueError(f"unit_sets.{name}.values must be a mapping")
    values: dict[str, int] = {}
    for unit, value in raw_values.items():
        if isinstance(value, bool):
            raise ValueError(f"unit_sets.{name}.values.{unit} must be an integer")
        try:
            values[str(unit)] = int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"unit_sets.{name}.values.{unit} must be an integer") from exc
        if values[str(unit)] != value:
            raise ValueError(f"unit_sets.{name}.values.{unit} must be an integer")
    try:
        validate_value_map(values)
    except InvalidValueMapError as exc:
        raise ValueError(f"unit_sets.{name}: {exc}") from exc
    return UnitSet(
        name=name,
        description=str(row.get("description", "")).strip(),
        values=MappingProxyType(values),
    )


def parse_program_config(raw: dict[str, Any]) -> ProgramConfig:
    app = raw.get("app", {})
    if app is None:
        app = {}
    if not isinstance(app, dict):
        raise ValueError("app must be a mapping")
    home_dir = str(app.get("home_dir") or DEFAULT_HOME_DIR).strip()
    raw_log_level = app.get("log_level")
    log_level_was_missing = raw_log_level is None or not str(raw_log_level).strip()
    app_log_level = (
        DEFAULT_LOG_LEVEL_NAME if log_level_was_missing else normalize_log_level_name(raw_log_level)
    )

    rows = raw.get("unit_sets", {})
    if rows is None:
        rows = {}
    if not isinstance(rows, dict):
        raise ValueError("unit_sets must be a mapping")
    unit_sets: dict[str, UnitSet] = {}
    for set_name, row in rows.items():
        name = str(set_name).strip()
        if not name:
            raise ValueError("unit_sets names must be non-empty")
        unit_sets[name] = _parse_unit_set(name, row)

    return ProgramConfig(
        home_dir=home_dir,
        app_log_level=app_log_level,
        app_log_level_was_missing=log_level_was_missing,
        unit_sets=unit_sets,
    )
