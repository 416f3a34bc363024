from __future__ import annotations

from pathlib import Path

from address_mapper.cli import main as cli_main
from address_mapper.cli.__main__ import EXIT_FATAL, EXIT_PARTIAL_FAILURE, EXIT_SUCCESS_ALL

"""Exit code contract: 0 all ok, 1 fatal or rejected admin change, 2 partial failure."""


def test_exit_code_values():
    assert (EXIT_SUCCESS_ALL, EXIT_FATAL, EXIT_PARTIAL_FAILURE) == (0, 1, 2)


def test_exit_code_fatal_startup(temp_workdir: Path, capsys):
    # config/mapper.yml 無し
    code = cli_main(["process", "input"])
    assert code == EXIT_FATAL
    assert "ERROR config:" in capsys.readouterr().out


def test_exit_code_all_success(temp_workdir: Path, write_config: Path, excel_factory, capsys):
    excel_factory(temp_workdir / "input" / "a.xlsx", ["Username", "AddressStreet"], [["alice", "x"]])
    excel_factory(temp_workdir / "input" / "b.xlsx", ["Username", "AddressStreet"], [["bob", "y"]])
    assert cli_main(["process", "input"]) == EXIT_SUCCESS_ALL
    assert "SUMMARY files=2/2 success=2 failed=0" in capsys.readouterr().out


def test_exit_code_no_inputs_is_success(temp_workdir: Path, write_config: Path, capsys):
    assert cli_main(["process", "input"]) == EXIT_SUCCESS_ALL
    assert "SUMMARY files=0/0 success=0 failed=0 rows=0" in capsys.readouterr().out


def test_exit_code_partial_failure(temp_workdir: Path, write_config: Path, excel_factory, capsys):
    excel_factory(temp_workdir / "input" / "ok.xlsx", ["Username", "AddressStreet"], [["alice", "x"]])
    excel_factory(temp_workdir / "input" / "bad.xlsx", ["Username"], [["bob"]])
    assert cli_main(["process", "input"]) == EXIT_PARTIAL_FAILURE


def test_exit_code_all_failed_is_partial(temp_workdir: Path, write_config: Path, excel_factory, capsys):
    excel_factory(temp_workdir / "input" / "bad.xlsx", ["Username"], [["bob"]])
    assert cli_main(["process", "input"]) == EXIT_PARTIAL_FAILURE


def test_exit_code_rejected_admin_change(temp_workdir: Path, write_config: Path, capsys):
    assert cli_main(["exclusions", "add", "   "]) == EXIT_FATAL
    assert "ERROR exclusions: Valid username is required" in capsys.readouterr().out
