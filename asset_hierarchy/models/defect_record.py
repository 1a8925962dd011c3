from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""DefectRecord model for the defect log.

Defect records are serialised as JSON Lines with a fixed key set. ``row=-1``
is the sentinel for file-level records (parse failures, read errors) where no
single row can be blamed.
"""

__all__ = [
    "DefectRecord",
    "FILE_LEVEL_ROW",
]

FILE_LEVEL_ROW = -1


@dataclass(frozen=True)
class DefectRecord:
    """Structured defect record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Source file name being imported
        row: Asset row number (1-based). -1 for file-level records
        defect_type: Classification in UPPER_SNAKE_CASE (DUPLICATE_ID, ORPHAN, ...)
        message: Human readable description
    """
    timestamp: str
    file: str
    row: int
    defect_type: str
    message: str

    @staticmethod
    def create(file: str, row: int, defect_type: str, message: str) -> DefectRecord:
        """Create a new DefectRecord stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return DefectRecord(
            timestamp=ts,
            file=file,
            row=row,
            defect_type=defect_type,
            message=message,
        )

    def to_json_line(self) -> str:
        # 追加キー阻止: dataclass -> dict して json.dumps
        return json.dumps(asdict(self), ensure_ascii=False)
