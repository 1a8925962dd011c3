from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from ..models.defect_record import FILE_LEVEL_ROW, DefectRecord
from ..models.validation_result import ValidationResult

"""Defect log generation & buffering.

- JSON Lines, fixed key set (no extra keys)
- one file per run: ``logs/defects-YYYYMMDD-HHMMSS.log`` (UTC), created lazily
- records are buffered and written on flush()
"""

__all__ = [
    "DefectLogBuffer",
    "DefectRecord",
    "records_from_result",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


def records_from_result(file: str, result: ValidationResult) -> list[DefectRecord]:
    """Flatten a defect report into one record per implicated row."""
    records: list[DefectRecord] = []
    for dup in result.duplicates:
        for row in dup.rows:
            records.append(DefectRecord.create(
                file, row, "DUPLICATE_ID",
                f"id '{dup.id}' appears on rows {dup.rows}",
            ))
    for group in result.orphan_groups:
        for orphan in group.orphans:
            records.append(DefectRecord.create(
                file, orphan.row, "ORPHAN",
                f"asset '{orphan.asset_id}' references missing parent '{group.missing_parent_id}'",
            ))
    for cycle in result.cycles:
        for row in cycle.rows:
            records.append(DefectRecord.create(
                file, row, "CYCLE", f"{cycle.cycle_id}: {cycle.path_label}",
            ))
    for missing in result.missing_names:
        records.append(DefectRecord.create(
            file, missing.row, "MISSING_NAME", f"asset '{missing.asset_id}' has no name",
        ))
    return records


class DefectLogBuffer:
    """In-memory buffer of defect records; flush() appends JSON Lines.

    Single writer, no locking.
    """
    def __init__(self, logs_dir: Path | None = None) -> None:
        self._records: list[DefectRecord] = []
        self._file_path: Path | None = None
        self._logs_dir = logs_dir or LOGS_DIR

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self._logs_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"defects-{stamp}.log"
        return self._file_path

    def append(self, record: DefectRecord) -> None:
        self._records.append(record)

    def extend(self, records: list[DefectRecord]) -> None:
        self._records.extend(records)

    def append_file_error(self, file: str, defect_type: str, message: str) -> None:
        self.append(DefectRecord.create(file, FILE_LEVEL_ROW, defect_type, message))

    def __len__(self) -> int:
        return len(self._records)

    def flush(self) -> Path | None:
        """Write buffered records; returns the log path, or None if nothing was written."""
        if not self._records:
            return None  # 空ならファイルを作らない
        fp = self.file_path
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
