from __future__ import annotations

import argparse
import json
import logging
import math
from pathlib import Path

from concurrent_log_handler import ConcurrentRotatingFileHandler

from totalbuilder.config.io import load_program_config
from totalbuilder.config.models import ProgramConfig
from totalbuilder.core.builder import canonicalize, decompose, decompose_from_stock, total
from totalbuilder.core.errors import TotalBuilderError, UnknownUnitError
from totalbuilder.core.types import UnitSet, decomposition_as_mapping
from totalbuilder.core.units import available_unit_sets, get_unit_set, resolve_unit_set
from totalbuilder.logging_setup import attach_file_logging

_CLI_SERVICE_NAME = "totalbuilder"
_cli_file_log_handler: ConcurrentRotatingFileHandler | None = None
_cli_logger = logging.getLogger("totalbuilder.cli")


def _initialize_cli_file_logging(home_dir: str, *, log_level: str | None) -> None:
    global _cli_file_log_handler
    _cli_file_log_handler = attach_file_logging(
        service_name=_CLI_SERVICE_NAME,
        home_dir=home_dir,
        log_level=log_level,
        handler=_cli_file_log_handler,
    )


def _default_program_config_path() -> str:
    home_default = Path("~/.totalbuilder/config/program.yaml").expanduser()
    if home_default.exists():
        return str(home_default)
    return "config/program.yaml"


def _parse_number(raw: str) -> int | float:
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        number = float(raw)
    except ValueError as exc:
        raise ValueError(f"not a number: {raw!r}") from exc
    if not math.isfinite(number):
        raise ValueError(f"not a finite number: {raw!r}")
    return number


def _parse_assignments(pairs: list[str], *, integers_only: bool = False) -> dict[str, int | float]:
    """Parse ``UNIT=COUNT`` command-line pairs into a mapping."""
    parsed: dict[str, int | float] = {}
    for pair in pairs:
        unit, sep, raw_count = pair.partition("=")
        unit = unit.strip()
        if not sep or not unit:
            raise ValueError(f"expected UNIT=COUNT, got {pair!r}")
        count = _parse_number(raw_count.strip())
        if integers_only and not isinstance(count, int):
            raise ValueError(f"{unit}: count must be an integer")
        parsed[unit] = parsed.get(unit, 0) + count
    return parsed


def _resolve(program: ProgramConfig, units: str) -> UnitSet:
    return resolve_unit_set(units, program.unit_sets)


def _emit(payload: dict) -> None:
    print(json.dumps(payload, indent=2, sort_keys=False))


def _decompose(*, program: ProgramConfig, units: str, amount: int) -> int:
    unit_set = _resolve(program, units)
    result = decompose(unit_set.values, amount)
    _emit(
        {
            "units": unit_set.name,
            "total": amount,
            "counts": result.counts,
            "remainder": result.remainder,
            "flat": decomposition_as_mapping(result),
        }
    )
    return 0


def _total(*, program: ProgramConfig, units: str, assignments: list[str]) -> int:
    unit_set = _resolve(program, units)
    counts = _parse_assignments(assignments)
    _emit({"units": unit_set.name, "counts": counts, "total": total(unit_set.values, counts)})
    return 0


def _canonicalize(*, program: ProgramConfig, units: str, assignments: list[str]) -> int:
    unit_set = _resolve(program, units)
    counts = _parse_assignments(assignments)
    result = canonicalize(unit_set.values, counts)
    _emit(
        {
            "units": unit_set.name,
            "input": counts,
            "counts": result.counts,
            "remainder": result.remainder,
        }
    )
    return 0


def _stock_build(*, program: ProgramConfig, units: str, stock: list[str], amount: int) -> int:
    unit_set = _resolve(program, units)
    parsed_stock = {
        unit: int(count) for unit, count in _parse_assignments(stock, integers_only=True).items()
    }
    result = decompose_from_stock(unit_set.values, amount, parsed_stock)
    _emit(
        {
            "units": unit_set.name,
            "total": amount,
            "counts": result.counts,
            "remainder": result.remainder,
            "leftover_stock": result.leftover_stock,
        }
    )
    return 0


def _unit_sets(*, program: ProgramConfig) -> int:
    rows = []
    for name in available_unit_sets():
        unit_set = get_unit_set(name)
        rows.append(
            {
                "name": unit_set.name,
                "source": "builtin",
                "description": unit_set.description,
                "values": dict(unit_set.values),
            }
        )
    for unit_set in program.unit_sets.values():
        rows.append(
            {
                "name": unit_set.name,
                "source": "config",
                "description": unit_set.description,
                "values": dict(unit_set.values),
            }
        )
    _emit({"unit_sets": rows})
    return 0


def _validate(program_path: Path) -> int:
    program = load_program_config(program_path)
    for unit_set in program.unit_sets.values():
        if unit_set.name.lower() in available_unit_sets():
            _cli_logger.warning("configured unit set %s shadows a built-in set", unit_set.name)
    print("config validation ok")
    return 0


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Build totals out of valued units")
    parser.add_argument("--program-config", default=_default_program_config_path())
    sub = parser.add_subparsers(dest="command", required=True)

    p_decompose = sub.add_parser("decompose")
    p_decompose.add_argument("--units", required=True)
    p_decompose.add_argument("total", type=int)

    p_total = sub.add_parser("total")
    p_total.add_argument("--units", required=True)
    p_total.add_argument("counts", nargs="*", metavar="UNIT=COUNT")

    p_canonicalize = sub.add_parser("canonicalize")
    p_canonicalize.add_argument("--units", required=True)
    p_canonicalize.add_argument("counts", nargs="*", metavar="UNIT=COUNT")

    p_stock = sub.add_parser("stock-build")
    p_stock.add_argument("--units", required=True)
    p_stock.add_argument("--stock", action="append", default=[], metavar="UNIT=COUNT")
    p_stock.add_argument("total", type=int)

    sub.add_parser("unit-sets")
    sub.add_parser("config-validate")

    args = parser.parse_args(argv)
    program_path = Path(args.program_config)
    try:
        if args.command == "config-validate":
            raise SystemExit(_validate(program_path))
        program = load_program_config(program_path)
        _initialize_cli_file_logging(program.home_dir, log_level=program.app_log_level)
        if program.app_log_level_was_missing and program_path.exists():
            _cli_logger.warning(
                "program config missing app.log_level; wrote default INFO to %s", program_path
            )
        if args.command == "decompose":
            code = _decompose(program=program, units=args.units, amount=args.total)
        elif args.command == "total":
            code = _total(program=program, units=args.units, assignments=args.counts)
        elif args.command == "canonicalize":
            code = _canonicalize(program=program, units=args.units, assignments=args.counts)
        elif args.command == "stock-build":
            code = _stock_build(
                program=program, units=args.units, stock=args.stock, amount=args.total
            )
        elif args.command == "unit-sets":
            code = _unit_sets(program=program)
        else:
            raise ValueError(f"unsupported command: {args.command}")
    except UnknownUnitError as exc:
        _cli_logger.error("unknown unit %s", exc.unit)
        _emit({"error": "unknown_unit", "detail": str(exc)})
        code = 2
    except TotalBuilderError as exc:
        _cli_logger.error("%s", exc)
        _emit({"error": "invalid_input", "kind": type(exc).__name__, "detail": str(exc)})
        code = 2
    except ValueError as exc:
        _emit({"error": "invalid_input", "detail": str(exc)})
        code = 2
    raise SystemExit(code)


if __name__ == "__main__":
    main()
