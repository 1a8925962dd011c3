from __future__ import annotations

from pathlib import Path

import pandas as pd  # type: ignore

from asset_hierarchy.config.loader import load_config
from asset_hierarchy.services.repair import RepairSession
from asset_hierarchy.services.validator import validate_assets
from asset_hierarchy.tabular.reader import read_csv_text, read_table_file

"""End-to-end repair workflow: file -> session -> fixes -> upload-ready CSV.

After every defect is resolved the exported CSV must parse back into a
hierarchy with unique ids, resolvable parents and no cycles.
"""

DUPLICATE_CSV = """asset_id,name,parent_id
PLANT,Plant,
LINE-1,Line 1,PLANT
LINE-1,Line 1 (copy),PLANT
CELL-1,Cell 1,LINE-1
"""


def _assert_structurally_sound(csv_text: str, mapping) -> None:
    table = read_csv_text(csv_text)
    session = RepairSession.from_table(table.headers, table.rows, mapping)
    assets = session.active_assets
    ids = [a.id for a in assets]
    assert len(ids) == len(set(ids))
    assert all(a.parent_id in set(ids) for a in assets if a.parent_id)
    assert validate_assets(assets).cycles == []
    assert not session.validation_result.has_errors


def test_fix_everything_then_export(write_config: Path, write_csv: Path):
    cfg = load_config(write_config)
    table = read_table_file(write_csv)
    session = RepairSession.from_table(table.headers, table.rows, cfg.mapping_for(table.headers))
    result = session.validation_result
    assert result.has_errors

    group = result.orphan_groups[0]
    session.bulk_remove_orphan_parents(group)
    session.break_all_cycles()
    missing = session.validation_result.missing_names[0]
    result = session.update_asset_name(missing.row, "Motor 1")

    assert not result.has_errors
    assert result.valid_assets == result.total_assets == 7
    assert session.modified_rows == {4, 5, 7}

    csv_text = session.get_modified_csv()
    _assert_structurally_sound(csv_text, cfg.mapping_for(table.headers))

    session.reset_to_original()
    assert session.get_modified_csv() == write_csv.read_text(encoding="utf-8").rstrip("\n")


def test_fix_via_parent_reassignment(write_config: Path, write_csv: Path):
    cfg = load_config(write_config)
    table = read_table_file(write_csv)
    session = RepairSession.from_table(table.headers, table.rows, cfg.mapping_for(table.headers))

    options = {o.id for o in session.get_valid_parent_options(exclude_row=4)}
    assert "PUMP-2" not in options and "AREA-1" in options
    session.change_parent_id(4, "AREA-1")
    session.change_parent_id(5, "SITE")
    session.update_asset_name(7, "Motor 1")
    assert not session.validation_result.has_errors

    sorted_csv = session.get_modified_csv(sort_parents_first=True)
    lines = sorted_csv.splitlines()
    order = [line.split(",")[0] for line in lines[1:]]
    assert order.index("SITE") < order.index("AREA-1") < order.index("PUMP-1") < order.index("MOTOR-1")
    assert order.index("LOOP-A") < order.index("LOOP-B")


def test_duplicate_resolution_workflow(temp_workdir: Path):
    f = temp_workdir / "data" / "dups.csv"
    f.write_text(DUPLICATE_CSV, encoding="utf-8")
    cfg_path = temp_workdir / "config" / "import.yml"
    cfg_path.write_text("source_file: data/dups.csv\nallow_duplicate_ids: true\n", encoding="utf-8")
    cfg = load_config(cfg_path)
    table = read_table_file(f)
    mapping = cfg.mapping_for(table.headers)
    session = RepairSession.from_table(table.headers, table.rows, mapping)

    dup = session.validation_result.duplicates[0]
    assert dup.id == "LINE-1" and dup.rows == [2, 3]

    # 2 行目を残し 3 行目を新 ID へ。子は明示的に付け替える
    session.change_asset_id(3, "LINE-2")
    children = session.get_children_of_asset("LINE-1")
    assert [c.row for c in children] == [4]
    session.reassign_children_to_parent([c.row for c in children], "LINE-2")
    assert not session.validation_result.has_errors
    _assert_structurally_sound(session.get_modified_csv(), mapping)


def test_duplicate_resolution_by_delete(temp_workdir: Path):
    f = temp_workdir / "data" / "dups.csv"
    f.write_text(DUPLICATE_CSV, encoding="utf-8")
    table = read_table_file(f)
    cfg_path = temp_workdir / "config" / "import.yml"
    cfg_path.write_text("source_file: data/dups.csv\nallow_duplicate_ids: true\n", encoding="utf-8")
    mapping = load_config(cfg_path).mapping_for(table.headers)
    session = RepairSession.from_table(table.headers, table.rows, mapping)

    session.delete_row(3)
    assert not session.validation_result.has_errors
    assert "Line 1 (copy)" not in session.get_modified_csv()
    session.undelete_row(3)
    assert session.validation_result.has_errors


def test_fix_operations_are_idempotent(write_config: Path, write_csv: Path):
    cfg = load_config(write_config)
    table = read_table_file(write_csv)
    session = RepairSession.from_table(table.headers, table.rows, cfg.mapping_for(table.headers))
    first = session.remove_parent_id(4)
    second = session.remove_parent_id(4)
    assert first == second
    assert session.get_modified_csv() == session.get_modified_csv()


def _make_excel(path: Path, rows: list[list[object]]) -> Path:
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        pd.DataFrame(rows).to_excel(writer, sheet_name="Assets", header=False, index=False)
    return path


def test_excel_source_exports_csv(temp_workdir: Path):
    suffix = ".xlsx"
    excel = _make_excel(temp_workdir / "data" / f"assets{suffix}", [
        ["asset_id", "name", "parent_id"],
        ["R", "Root", None],
        ["C", "Child", "Ghost"],
    ])
    cfg_path = temp_workdir / "config" / "import.yml"
    cfg_path.write_text(f"source_file: data/assets{suffix}\n", encoding="utf-8")
    table = read_table_file(excel)
    session = RepairSession.from_table(table.headers, table.rows, load_config(cfg_path).mapping_for(table.headers))
    assert session.validation_result.orphan_count == 1
    session.bulk_remove_all_orphan_parents()
    assert session.get_modified_csv() == "asset_id,name,parent_id\nR,Root,\nC,Child,"
