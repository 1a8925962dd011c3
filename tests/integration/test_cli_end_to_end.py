from __future__ import annotations

import json
from pathlib import Path

from asset_hierarchy.cli import main as cli_main

"""CLI end to end: validate -> auto-fix -> export -> re-validate the export."""


def test_auto_fixed_output_revalidates(write_config: Path, write_csv: Path, temp_workdir: Path, capsys):
    fixed = temp_workdir / "data" / "fixed.csv"
    assert cli_main(["--auto-fix", "--output", str(fixed)]) == 2
    capsys.readouterr()

    # 自動修正後に残るのは missing name のみ
    code = cli_main(["--file", str(fixed)])
    out = capsys.readouterr().out
    assert code == 2
    assert "SUMMARY assets=7 valid=6 duplicates=0 orphans=0 cycles=0 missing_names=1 has_errors=true" in out

    text = fixed.read_text(encoding="utf-8").replace("MOTOR-1,,PUMP-1", "MOTOR-1,Motor 1,PUMP-1")
    fixed.write_text(text, encoding="utf-8")
    assert cli_main(["--file", str(fixed)]) == 0


def test_defect_log_written_per_run(write_config: Path, write_csv: Path, temp_workdir: Path):
    cli_main([])
    logs = list((temp_workdir / "logs").glob("defects-*.log"))
    assert len(logs) == 1
    records = [json.loads(x) for x in logs[0].read_text(encoding="utf-8").splitlines()]
    assert {r["defect_type"] for r in records} == {"ORPHAN", "CYCLE", "MISSING_NAME"}
    assert sorted(r["row"] for r in records) == [4, 5, 6, 7]
    assert all(r["file"] == "assets.csv" for r in records)


def test_parents_first_output_from_config(write_config: Path, temp_workdir: Path):
    text = write_config.read_text(encoding="utf-8").replace(
        "sort_parents_first: false", "sort_parents_first: true"
    )
    write_config.write_text(text, encoding="utf-8")
    (temp_workdir / "data" / "assets.csv").write_text(
        "asset_id,name,parent_id,location\nLEAF,Leaf,MID,L2\nMID,Mid,TOP,L1\nTOP,Top,,L0\n",
        encoding="utf-8",
    )
    out = temp_workdir / "sorted.csv"
    assert cli_main(["--output", str(out)]) == 0
    assert out.read_text(encoding="utf-8") == (
        "asset_id,name,parent_id,location\nTOP,Top,,L0\nMID,Mid,TOP,L1\nLEAF,Leaf,MID,L2\n"
    )
