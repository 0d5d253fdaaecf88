from __future__ import annotations

import json
from pathlib import Path

import pytest

import totalbuilder.cli.main as cli_mod
from totalbuilder.cli.main import (
    _canonicalize,
    _decompose,
    _parse_assignments,
    _stock_build,
    _total,
    _unit_sets,
    main,
)
from totalbuilder.config.models import parse_program_config
from tests.logging_helpers import detach_file_logging


@pytest.fixture
def program_path(tmp_path: Path):
    path = tmp_path / "program.yaml"
    path.write_text(
        "\n".join(
            [
                "app:",
                f'  home_dir: "{tmp_path / "home"}"',
                '  log_level: "INFO"',
                "unit_sets:",
                "  kroener:",
                "    values:",
                "      kroener: 30",
                "      talen: 7",
            ]
        ),
        encoding="utf-8",
    )
    yield path
    detach_file_logging(cli_module=cli_mod)


def _program():
    return parse_program_config(
        {"unit_sets": {"kroener": {"values": {"kroener": 30, "talen": 7}}}}
    )


def test_parse_assignments() -> None:
    assert _parse_assignments(["pound=3", "penny=2.5", "pound=1"]) == {
        "pound": 4,
        "penny": 2.5,
    }
    with pytest.raises(ValueError, match="expected UNIT=COUNT"):
        _parse_assignments(["pound"])
    with pytest.raises(ValueError, match="not a number"):
        _parse_assignments(["pound=lots"])
    with pytest.raises(ValueError, match="must be an integer"):
        _parse_assignments(["pound=1.5"], integers_only=True)


def test_decompose_command_outputs_counts(capsys) -> None:
    code = _decompose(program=_program(), units="lsd", amount=952)
    assert code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["counts"] == {"pound": 3, "shilling": 11, "penny": 12}
    assert payload["remainder"] is None
    assert payload["flat"] == payload["counts"]


def test_decompose_command_uses_configured_unit_set(capsys) -> None:
    _decompose(program=_program(), units="kroener", amount=49)
    payload = json.loads(capsys.readouterr().out)
    assert payload["counts"] == {"kroener": 1, "talen": 2}
    assert payload["remainder"] == 5
    assert payload["flat"]["_remainder"] == 5


def test_total_command(capsys) -> None:
    code = _total(program=_program(), units="lsd", assignments=["pound=3", "shilling=21", "penny=98"])
    assert code == 0
    assert json.loads(capsys.readouterr().out)["total"] == 1238


def test_canonicalize_command(capsys) -> None:
    _canonicalize(
        program=_program(), units="lsd", assignments=["pound=18", "shilling=6", "penny=40"]
    )
    payload = json.loads(capsys.readouterr().out)
    assert payload["counts"] == {"pound": 18, "shilling": 8}


def test_stock_build_command(capsys) -> None:
    _stock_build(program=_program(), units="us_coins", stock=["quarter=2", "penny=40"], amount=87)
    payload = json.loads(capsys.readouterr().out)
    assert payload["counts"] == {"quarter": 2, "penny": 37}
    assert payload["leftover_stock"] == {"penny": 3}


def test_unit_sets_command_lists_builtin_and_configured(capsys) -> None:
    _unit_sets(program=_program())
    rows = json.loads(capsys.readouterr().out)["unit_sets"]
    sources = {row["name"]: row["source"] for row in rows}
    assert sources["lsd"] == "builtin"
    assert sources["kroener"] == "config"


def test_main_decompose_writes_log_file(program_path: Path, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["--program-config", str(program_path), "decompose", "--units", "time", "39102"])
    assert excinfo.value.code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["counts"] == {"hour": 10, "minute": 51, "second": 42}
    assert (program_path.parent / "home" / "logs" / "totalbuilder.log").exists()


def test_main_unknown_unit_exits_with_error(program_path: Path, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["--program-config", str(program_path), "total", "--units", "lsd", "ghost=5"])
    assert excinfo.value.code == 2
    payload = json.loads(capsys.readouterr().out)
    assert payload["error"] == "unknown_unit"
    assert "ghost" in payload["detail"]


def test_main_unknown_unit_set_exits_with_error(program_path: Path, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["--program-config", str(program_path), "decompose", "--units", "zorkmids", "5"])
    assert excinfo.value.code == 2
    payload = json.loads(capsys.readouterr().out)
    assert payload["kind"] == "UnknownUnitSetError"


def test_main_config_validate(program_path: Path, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["--program-config", str(program_path), "config-validate"])
    assert excinfo.value.code == 0
    assert "config validation ok" in capsys.readouterr().out


def test_main_config_validate_rejects_bad_unit_set(tmp_path: Path, capsys) -> None:
    path = tmp_path / "program.yaml"
    path.write_text(
        "app:\n  log_level: INFO\nunit_sets:\n  bad:\n    values:\n      a: 0\n",
        encoding="utf-8",
    )
    with pytest.raises(SystemExit) as excinfo:
        main(["--program-config", str(path), "config-validate"])
    assert excinfo.value.code == 2
    assert "unit_sets.bad" in json.loads(capsys.readouterr().out)["detail"]


@pytest.mark.parametrize("raw", ["nan", "inf", "-inf"])
def test_parse_assignments_rejects_non_finite_counts(raw: str) -> None:
    with pytest.raises(ValueError, match="not a finite number"):
        _parse_assignments([f"pound={raw}"])


def test_main_total_with_nan_count_emits_json_error(program_path: Path, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["--program-config", str(program_path), "total", "--units", "lsd", "pound=nan"])
    assert excinfo.value.code == 2
    payload = json.loads(capsys.readouterr().out)
    assert payload["error"] == "invalid_input"
    assert "finite" in payload["detail"]


def test_main_malformed_yaml_emits_json_error(tmp_path: Path, capsys) -> None:
    path = tmp_path / "program.yaml"
    path.write_text("app: [unclosed\n", encoding="utf-8")
    with pytest.raises(SystemExit) as excinfo:
        main(["--program-config", str(path), "decompose", "--units", "lsd", "10"])
    assert excinfo.value.code == 2
    payload = json.loads(capsys.readouterr().out)
    assert payload["error"] == "invalid_input"
    assert str(path) in payload["detail"]


def test_unit_sets_command_values_are_plain_json(capsys) -> None:
    _unit_sets(program=_program())
    rows = json.loads(capsys.readouterr().out)["unit_sets"]
    by_name = {row["name"]: row["values"] for row in rows}
    assert by_name["lsd"] == {"pound": 240, "shilling": 20, "penny": 1}
    assert by_name["kroener"] == {"kroener": 30, "talen": 7}
