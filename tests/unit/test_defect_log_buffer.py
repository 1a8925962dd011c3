from __future__ import annotations
import json
import re
from pathlib import Path

from asset_hierarchy.logging.defect_log import DefectLogBuffer, records_from_result
from asset_hierarchy.models import AssetRecord, DefectRecord
from asset_hierarchy.services.validator import validate_assets


def _asset(row: int, asset_id: str, parent_id: str | None = None, name: str = "n") -> AssetRecord:
    return AssetRecord(row=row, id=asset_id, name=name, parent_id=parent_id, raw_columns=())


def test_records_from_result_one_per_implicated_row():
    result = validate_assets([
        _asset(1, "A"), _asset(2, "A"),
        _asset(3, "B", "MISSING"),
        _asset(4, "C", "D"), _asset(5, "D", "C"),
        _asset(6, "E", name=" "),
    ])
    records = records_from_result("assets.csv", result)
    by_type: dict[str, list[int]] = {}
    for r in records:
        by_type.setdefault(r.defect_type, []).append(r.row)
    assert by_type == {
        "DUPLICATE_ID": [1, 2],
        "ORPHAN": [3],
        "CYCLE": [4, 5],
        "MISSING_NAME": [6],
    }
    assert all(r.file == "assets.csv" for r in records)
    assert "MISSING" in next(r for r in records if r.defect_type == "ORPHAN").message


def test_flush_writes_json_lines(temp_workdir: Path):
    buf = DefectLogBuffer()
    buf.append(DefectRecord.create("a.csv", 1, "ORPHAN", "x"))
    buf.append_file_error("a.csv", "PARSE_ERROR", "bad id column")
    assert len(buf) == 2
    path = buf.flush()
    assert path is not None and path.exists()
    assert path.parent == Path("./logs")
    assert re.fullmatch(r"defects-\d{8}-\d{6}\.log", path.name)
    lines = path.read_text(encoding="utf-8").splitlines()
    assert [json.loads(x)["row"] for x in lines] == [1, -1]
    assert len(buf) == 0


def test_flush_empty_creates_no_file(tmp_path: Path):
    logs = tmp_path / "logs"
    buf = DefectLogBuffer(logs_dir=logs)
    assert buf.flush() is None
    assert not logs.exists()


def test_flush_appends_to_same_file(tmp_path: Path):
    buf = DefectLogBuffer(logs_dir=tmp_path)
    buf.append_file_error("a.csv", "READ_ERROR", "first")
    p1 = buf.flush()
    buf.append_file_error("a.csv", "READ_ERROR", "second")
    p2 = buf.flush()
    assert p1 == p2
    assert len(p1.read_text(encoding="utf-8").splitlines()) == 2
