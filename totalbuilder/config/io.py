from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from totalbuilder.config.models import ProgramConfig, parse_program_config

_config_logger = logging.getLogger("totalbuilder.config")


def load_yaml(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"YAML file could not be parsed: {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"YAML file must parse to a mapping: {path}")
    return data


def write_yaml(path: Path, data: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, sort_keys=False)


def load_program_config(path: Path) -> ProgramConfig:
    """Load the program config, falling back to defaults when the file is absent.

    A config without ``app.log_level`` gets the default level written back.
    """
    if not path.exists():
        _config_logger.debug("program config %s not found; using defaults", path)
        return parse_program_config({})
    raw = load_yaml(path)
    config = parse_program_config(raw)
    if config.app_log_level_was_missing:
        app = raw.get("app")
        if not isinstance(app, dict):
            app = {}
            raw["app"] = app
        app["log_level"] = config.app_log_level
        write_yaml(path, raw)
    return config
