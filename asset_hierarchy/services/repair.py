from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from ..models.asset_record import AssetRecord
from ..models.column_mapping import ColumnMapping, find_alias_column
from ..models.validation_result import OrphanGroup, ValidationResult
from ..tabular.reader import write_csv_text
from .annotate import AnnotatedAsset, annotate_assets, parents_first
from .parser import ParsedTable, parse_table
from .validator import validate_assets

"""Repair session: interactive fix-and-revalidate state machine.

The session owns one immutable original snapshot and one working copy, keyed
by the stable row number. Every fix operation replaces records in the working
copy, records the touched rows, and revalidates the full active set before
returning the new ValidationResult.

- soft delete only (deleted-row set); rows are never physically removed
- modified_rows only grows until reset_to_original()
- unknown rows are ignored (no-op) rather than raising
- changing an id never retargets children; callers redirect them explicitly
  with reassign_children_to_parent()
"""

__all__ = [
    "ChildAssetInfo",
    "ParentOption",
    "RepairSession",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParentOption:
    """Candidate parent for a parent picker."""
    id: str
    name: str
    row: int


@dataclass(frozen=True)
class ChildAssetInfo:
    """Active child of an asset (used when resolving duplicates)."""
    row: int
    id: str
    name: str
    parent_id: str


class RepairSession:
    """Holds the working copy of one import and applies fixes to it.

    Args:
        headers: Header row of the source table (used for CSV output and for
            locating the columns edits are written back into)
        assets: Parsed asset records (the original snapshot)
        field_columns: Optional logical field -> column index map recorded at
            parse time. Fields without an entry fall back to the header alias
            lookup.
        header_line: Original header record text (CSV input only), written
            back as is by get_modified_csv()
    """

    def __init__(
        self,
        headers: Sequence[str],
        assets: Sequence[AssetRecord],
        field_columns: dict[str, int] | None = None,
        header_line: str | None = None,
    ) -> None:
        self.headers: tuple[str, ...] = tuple(headers)
        self._header_line = header_line
        self._original: tuple[AssetRecord, ...] = tuple(sorted(assets, key=lambda a: a.row))
        rows = [a.row for a in self._original]
        if len(rows) != len(set(rows)):
            raise ValueError("asset row numbers must be unique")
        self._field_columns = {k: v for k, v in (field_columns or {}).items() if v >= 0}
        self._assets: dict[int, AssetRecord] = {a.row: a for a in self._original}
        self._modified_rows: set[int] = set()
        self._deleted_rows: set[int] = set()
        self.is_validating = False
        self._result: ValidationResult = self._revalidate()

    @classmethod
    def from_parsed(cls, parsed: ParsedTable) -> RepairSession:
        return cls(parsed.headers, parsed.assets, parsed.field_columns, parsed.header_line)

    @classmethod
    def from_table(
        cls,
        headers: Sequence[str],
        rows: Sequence[Sequence[str]],
        mapping: ColumnMapping,
        *,
        source_lines: Sequence[str] | None = None,
    ) -> RepairSession:
        """Parse raw rows and open a session on the result (may raise AssetParseError)."""
        return cls.from_parsed(parse_table(rows, headers, mapping, source_lines=source_lines))

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def validation_result(self) -> ValidationResult:
        return self._result

    @property
    def assets(self) -> list[AssetRecord]:
        """Working copy in row order, deleted rows included."""
        return list(self._assets.values())

    @property
    def active_assets(self) -> list[AssetRecord]:
        return [a for a in self._assets.values() if a.row not in self._deleted_rows]

    @property
    def original_assets(self) -> list[AssetRecord]:
        return list(self._original)

    @property
    def modified_rows(self) -> frozenset[int]:
        return frozenset(self._modified_rows)

    @property
    def deleted_rows(self) -> frozenset[int]:
        return frozenset(self._deleted_rows)

    @property
    def has_changes(self) -> bool:
        return bool(self._modified_rows or self._deleted_rows)

    def get_asset(self, row: int) -> AssetRecord | None:
        return self._assets.get(row)

    def _revalidate(self) -> ValidationResult:
        self.is_validating = True
        try:
            self._result = validate_assets(self.active_assets)
        finally:
            self.is_validating = False
        logger.debug(
            "revalidated: total=%d valid=%d has_errors=%s",
            self._result.total_assets, self._result.valid_assets, self._result.has_errors,
        )
        return self._result

    # ------------------------------------------------------------------
    # Core edit primitive
    # ------------------------------------------------------------------
    def _column_for(self, field: str) -> int:
        idx = self._field_columns.get(field, -1)
        if idx < 0:
            idx = find_alias_column(self.headers, field)
        return idx

    def _write_cell(self, raw: tuple[str, ...], field: str, value: str) -> tuple[str, ...]:
        idx = self._column_for(field)
        if idx < 0:
            logger.warning("no '%s' column in header row; edit is not written back to the CSV", field)
            return raw
        cells = list(raw)
        if idx >= len(cells):
            cells.extend([""] * (idx + 1 - len(cells)))
        cells[idx] = value
        return tuple(cells)

    def _apply(self, rows: Iterable[int], field: str, value: str | None) -> ValidationResult:
        """Set one field on each known row, track them as modified, revalidate."""
        touched: list[int] = []
        for row in rows:
            asset = self._assets.get(row)
            if asset is None:
                logger.debug("ignoring %s edit for unknown row %s", field, row)
                continue
            raw = self._write_cell(asset.raw_columns, field, value or "")
            self._assets[row] = asset.with_changes(**{field: value}, raw_columns=raw, source_line=None)
            touched.append(row)
        if not touched:
            return self._result
        self._modified_rows.update(touched)
        return self._revalidate()

    # ------------------------------------------------------------------
    # Orphans
    # ------------------------------------------------------------------
    def remove_parent_id(self, row: int) -> ValidationResult:
        """Make one row a root asset."""
        return self._apply([row], "parent_id", None)

    def change_parent_id(self, row: int, new_parent_id: str | None) -> ValidationResult:
        """Point one row at a new parent (blank clears the parent)."""
        value = (new_parent_id or "").strip() or None
        return self._apply([row], "parent_id", value)

    def bulk_remove_orphan_parents(self, orphan_group: OrphanGroup) -> ValidationResult:
        return self._apply(orphan_group.rows, "parent_id", None)

    def bulk_remove_all_orphan_parents(self) -> ValidationResult:
        rows = [row for group in self._result.orphan_groups for row in group.rows]
        return self._apply(rows, "parent_id", None)

    def get_valid_parent_options(self, exclude_row: int) -> list[ParentOption]:
        """Active assets usable as a parent for ``exclude_row``, sorted by name.

        Rows pending deletion in the caller's own UI state are not known here;
        the caller filters those out.
        """
        options = [
            ParentOption(id=a.id, name=a.name, row=a.row)
            for a in self.active_assets
            if a.row != exclude_row and a.id
        ]
        return sorted(options, key=lambda o: (o.name.casefold(), o.row))

    # ------------------------------------------------------------------
    # Cycles
    # ------------------------------------------------------------------
    def break_cycle_at_row(self, row: int) -> ValidationResult:
        return self._apply([row], "parent_id", None)

    def break_all_cycles(self) -> ValidationResult:
        """Cut every reported cycle at its first row."""
        rows = [cycle.rows[0] for cycle in self._result.cycles if cycle.rows]
        return self._apply(rows, "parent_id", None)

    # ------------------------------------------------------------------
    # Duplicates / missing names
    # ------------------------------------------------------------------
    def get_children_of_asset(
        self, asset_id: str, exclude_rows: Iterable[int] = ()
    ) -> list[ChildAssetInfo]:
        excluded = set(exclude_rows)
        return [
            ChildAssetInfo(row=a.row, id=a.id, name=a.name, parent_id=a.parent_id or "")
            for a in self.active_assets
            if a.parent_id == asset_id and a.row not in excluded
        ]

    def change_asset_id(self, row: int, new_id: str) -> ValidationResult:
        """Rename a row's id. Children keep their old parent reference.

        Raises:
            ValueError: ``new_id`` is blank (every asset needs an id)
        """
        value = (new_id or "").strip()
        if not value:
            raise ValueError(f"asset id for row {row} must not be blank")
        return self._apply([row], "id", value)

    def update_asset_name(self, row: int, new_name: str) -> ValidationResult:
        return self._apply([row], "name", new_name.strip())

    def reassign_children_to_parent(
        self, child_rows: Iterable[int], new_parent_id: str | None
    ) -> ValidationResult:
        """Redirect a set of rows to ``new_parent_id`` (None makes them roots)."""
        value = (new_parent_id or "").strip() or None
        return self._apply(list(child_rows), "parent_id", value)

    def delete_row(self, row: int) -> ValidationResult:
        """Soft-delete a row; it drops out of validation and parent targets."""
        if row not in self._assets:
            logger.debug("ignoring delete for unknown row %s", row)
            return self._result
        self._deleted_rows.add(row)
        return self._revalidate()

    def undelete_row(self, row: int) -> ValidationResult:
        if row not in self._deleted_rows:
            return self._result
        self._deleted_rows.discard(row)
        return self._revalidate()

    # ------------------------------------------------------------------
    # Utilities
    # ------------------------------------------------------------------
    def reset_to_original(self) -> ValidationResult:
        """Discard every edit and deletion, restoring the original snapshot."""
        self._assets = {a.row: a for a in self._original}
        self._modified_rows.clear()
        self._deleted_rows.clear()
        return self._revalidate()

    def annotated_assets(self) -> list[AnnotatedAsset]:
        return annotate_assets(self.assets, self._result, self._modified_rows, self._deleted_rows)

    def get_modified_csv(self, *, sort_parents_first: bool = False) -> str:
        """Serialise active rows (edits merged) back into the source column layout.

        Rows keep input order unless ``sort_parents_first`` is set, in which
        case parents are emitted before their children. Rows never edited
        since parse keep their original record text (quoting included).
        """
        active = self.active_assets
        if sort_parents_first:
            active = parents_first(active)
        header = self._header_line if self._header_line is not None else self.headers
        return write_csv_text(
            header,
            [a.source_line if a.source_line is not None else a.raw_columns for a in active],
        )
