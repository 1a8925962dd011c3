from __future__ import annotations

from dataclasses import dataclass, field, replace

"""AssetRecord model for the asset hierarchy importer.

AssetRecord represents a single data row of the imported hierarchy after
parsing. Records are immutable: the repair session swaps in updated copies
so the original snapshot can never be touched by an edit.
"""

__all__ = [
    "AssetRecord",
]


@dataclass(frozen=True)
class AssetRecord:
    """One row of the imported asset hierarchy.

    The row number is the 1-based position among non-blank data rows (header
    excluded) and stays the primary key for the whole import session.
    """
    row: int  # 1-based, never reassigned
    id: str  # resolved identifier (primary / secondary / tertiary column)
    name: str
    parent_id: str | None
    raw_columns: tuple[str, ...]  # 元データそのまま (CSV 再出力用)
    # CSV 入力時の元レコード文字列。編集された行は None
    source_line: str | None = field(default=None, compare=False, repr=False)

    @property
    def is_root(self) -> bool:
        return not self.parent_id

    def with_changes(self, **changes: object) -> AssetRecord:
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)  # type: ignore[arg-type]
