from __future__ import annotations

import re
from pathlib import Path

from asset_hierarchy.cli import main as cli_main

"""SUMMARY line format contract."""

SUMMARY_RE = re.compile(
    r"^SUMMARY assets=\d+ valid=\d+ duplicates=\d+ orphans=\d+ cycles=\d+ "
    r"missing_names=\d+ has_errors=(true|false)$"
)


def test_summary_line_printed_once_and_matches_format(write_config: Path, write_csv: Path, capsys):
    cli_main([])
    lines = [x for x in capsys.readouterr().out.splitlines() if x.startswith("SUMMARY")]
    assert len(lines) == 1
    assert SUMMARY_RE.match(lines[0])
    assert lines[0] == (
        "SUMMARY assets=7 valid=3 duplicates=0 orphans=1 cycles=1 missing_names=1 has_errors=true"
    )


def test_summary_after_auto_fix(write_config: Path, write_csv: Path, capsys):
    cli_main(["--auto-fix"])
    line = next(x for x in capsys.readouterr().out.splitlines() if x.startswith("SUMMARY"))
    assert line == (
        "SUMMARY assets=7 valid=6 duplicates=0 orphans=0 cycles=0 missing_names=1 has_errors=true"
    )
