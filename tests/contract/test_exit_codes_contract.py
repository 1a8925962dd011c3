from __future__ import annotations

from pathlib import Path

import pytest

from asset_hierarchy.cli import EXIT_DEFECTS, EXIT_FATAL, EXIT_SUCCESS
from asset_hierarchy.cli import main as cli_main

"""Exit code contract: 0 clean, 2 defects remain, 1 fatal."""

CLEAN_CSV = "asset_id,name,parent_id,location\nSITE,Main Site,,L0\nAREA-1,Area One,SITE,L1\n"


def test_exit_code_constants():
    assert (EXIT_SUCCESS, EXIT_FATAL, EXIT_DEFECTS) == (0, 1, 2)


def test_exit_code_fatal_missing_config(temp_workdir: Path, capsys):
    # config/import.yml 無し → exit 1
    code = cli_main([])
    assert code == 1
    assert "ERROR config:" in capsys.readouterr().out


def test_exit_code_fatal_missing_source(write_config: Path, capsys):
    code = cli_main([])
    assert code == 1
    assert "ERROR read:" in capsys.readouterr().out


def test_exit_code_fatal_parse_error(write_config: Path, temp_workdir: Path, capsys):
    (temp_workdir / "data" / "assets.csv").write_text(
        "asset_id,name,parent_id,location\nA,a,,L0\n,b,A,L1\n", encoding="utf-8"
    )
    code = cli_main([])
    assert code == 1
    assert "ERROR parse:" in capsys.readouterr().out
    logs = list((temp_workdir / "logs").glob("defects-*.log"))
    assert len(logs) == 1
    assert '"row": -1' in logs[0].read_text(encoding="utf-8")


def test_exit_code_defects(write_config: Path, write_csv: Path):
    assert cli_main([]) == 2


def test_exit_code_clean(write_config: Path, temp_workdir: Path):
    (temp_workdir / "data" / "assets.csv").write_text(CLEAN_CSV, encoding="utf-8")
    assert cli_main([]) == 0
    assert list((temp_workdir / "logs").glob("defects-*.log")) == []


@pytest.mark.parametrize("payload", [b"not a workbook", b"PK\x03\x04truncated"])
def test_exit_code_fatal_corrupt_workbook(write_config: Path, temp_workdir: Path, capsys, payload):
    broken = temp_workdir / "data" / "broken.xlsx"
    broken.write_bytes(payload)
    code = cli_main(["--file", str(broken)])
    assert code == 1
    assert "ERROR read:" in capsys.readouterr().out
    logs = list((temp_workdir / "logs").glob("defects-*.log"))
    assert len(logs) == 1
    assert '"defect_type": "READ_ERROR"' in logs[0].read_text(encoding="utf-8")
