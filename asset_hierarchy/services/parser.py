from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from ..models.asset_record import AssetRecord
from ..models.column_mapping import ColumnMapping

"""Row parser: raw table rows + column mapping -> ordered AssetRecord list.

Identifier column selection (evaluated once over the whole input, not per row):
  primary id column -> secondary id column -> tertiary (location) column.
The first level holding any value is used for every row; it must then be
fully populated (and unique unless the mapping allows duplicates).

Parent references may point at an id or, failing that, at a name. On name
collisions the last occurrence in input order wins. Anything else is kept as
is and surfaces later as an orphan.
"""

__all__ = [
    "AssetParseError",
    "ColumnMappingError",
    "IdentifierColumnError",
    "ParsedTable",
    "parse_assets",
    "parse_table",
]

logger = logging.getLogger(__name__)


class AssetParseError(Exception):
    """Parse-time structural failure; fatal to the import attempt."""


class ColumnMappingError(AssetParseError):
    """Mapping is malformed (required field unmapped or header not present)."""


class IdentifierColumnError(AssetParseError):
    """No identifier column satisfies the fallback rule."""


@dataclass(frozen=True)
class ParsedTable:
    """Parse output plus the column layout it was parsed with."""
    headers: tuple[str, ...]
    assets: list[AssetRecord]
    id_level: str  # "id" | "secondary_id" | "tertiary_id"
    # 論理フィールド -> 実際に使用した列 index (書き戻しに利用)
    field_columns: dict[str, int] = field(default_factory=dict)
    header_line: str | None = None  # CSV 入力時のヘッダ行の元テキスト


def _column_index(headers: Sequence[str], column: str) -> int:
    """Exact header match first, then trimmed case-insensitive match."""
    for idx, header in enumerate(headers):
        if header == column:
            return idx
    wanted = column.strip().lower()
    for idx, header in enumerate(headers):
        if header.strip().lower() == wanted:
            return idx
    return -1


def _cell(row: Sequence[str], idx: int) -> str:
    if idx < 0 or idx >= len(row):
        return ""
    value = row[idx]
    return "" if value is None else str(value).strip()


def _is_blank(row: Sequence[str]) -> bool:
    return all(not (cell or "").strip() for cell in row)


def _select_identifier_column(
    rows: list[Sequence[str]],
    headers: Sequence[str],
    mapping: ColumnMapping,
) -> tuple[str, int]:
    candidates = mapping.identifier_columns
    if not candidates:
        raise ColumnMappingError("no identifier column mapped (id / secondary_id / tertiary_id)")

    for level, header in candidates:
        idx = _column_index(headers, header)
        if idx < 0:
            # 主キー列が未存在ならマッピング誤り、フォールバック列は任意扱い
            if level == "id":
                raise ColumnMappingError(f"id column '{header}' not found in header row")
            logger.debug("identifier fallback column '%s' (%s) not present, skipping", header, level)
            continue
        values = [_cell(r, idx) for r in rows]
        if not any(values):
            logger.debug("identifier column '%s' (%s) is empty, falling back", header, level)
            continue

        missing = [pos + 1 for pos, v in enumerate(values) if not v]
        if missing:
            raise IdentifierColumnError(
                f"identifier column '{header}' is missing values on rows {missing[:10]}"
            )
        if not mapping.allow_duplicate_ids:
            seen: dict[str, int] = {}
            dups: list[str] = []
            for v in values:
                seen[v] = seen.get(v, 0) + 1
                if seen[v] == 2:
                    dups.append(v)
            if dups:
                raise IdentifierColumnError(
                    f"identifier column '{header}' has duplicate values: {dups[:10]}"
                )
        return level, idx

    raise IdentifierColumnError(
        "no identifier column has values: "
        + ", ".join(header for _, header in candidates)
    )


def parse_table(
    rows: Sequence[Sequence[str]],
    headers: Sequence[str],
    mapping: ColumnMapping,
    *,
    source_lines: Sequence[str] | None = None,
) -> ParsedTable:
    """Parse data rows (header excluded) into asset records.

    Args:
        rows: Data rows, header excluded. Blank rows are skipped and do not
            consume a row number.
        headers: Header row
        mapping: Column mapping (name required, at least one id level)
        source_lines: Original record text, header first, one entry per
            element of ``rows`` after it (see TableData.source_lines)

    Returns:
        ParsedTable with assets in input order

    Raises:
        ColumnMappingError: malformed mapping
        IdentifierColumnError: no column satisfies the identifier fallback
    """
    if source_lines is not None and len(source_lines) != len(rows) + 1:
        raise ValueError(
            f"source_lines has {len(source_lines)} entries for {len(rows)} data rows plus header"
        )
    header_line = source_lines[0] if source_lines is not None else None
    if not mapping.name:
        raise ColumnMappingError("name column must be mapped")
    name_idx = _column_index(headers, mapping.name)
    if name_idx < 0:
        raise ColumnMappingError(f"name column '{mapping.name}' not found in header row")
    parent_idx = -1
    if mapping.parent_id:
        parent_idx = _column_index(headers, mapping.parent_id)
        if parent_idx < 0:
            raise ColumnMappingError(f"parent_id column '{mapping.parent_id}' not found in header row")

    kept = [pos for pos, r in enumerate(rows) if r is not None and not _is_blank(r)]
    data_rows = [rows[pos] for pos in kept]
    if not data_rows:
        return ParsedTable(
            headers=tuple(headers), assets=[], id_level="id",
            field_columns={"name": name_idx, "parent_id": parent_idx},
            header_line=header_line,
        )

    id_level, id_idx = _select_identifier_column(data_rows, headers, mapping)

    ids = [_cell(r, id_idx) for r in data_rows]
    names = [_cell(r, name_idx) for r in data_rows]
    id_set = set(ids)
    # 名前 -> id (同名は後勝ち)
    id_by_name: dict[str, str] = {}
    for asset_id, name in zip(ids, names, strict=True):
        if name:
            id_by_name[name] = asset_id

    assets: list[AssetRecord] = []
    resolved_by_name = 0
    for pos, raw in enumerate(data_rows):
        parent_raw = _cell(raw, parent_idx) if parent_idx >= 0 else ""
        parent_id: str | None
        if not parent_raw:
            parent_id = None
        elif parent_raw in id_set:
            parent_id = parent_raw
        elif parent_raw in id_by_name:
            parent_id = id_by_name[parent_raw]
            resolved_by_name += 1
        else:
            parent_id = parent_raw
        assets.append(AssetRecord(
            row=pos + 1,
            id=ids[pos],
            name=names[pos],
            parent_id=parent_id,
            raw_columns=tuple("" if c is None else str(c) for c in raw),
            source_line=source_lines[kept[pos] + 1] if source_lines is not None else None,
        ))

    logger.debug(
        "parsed %d assets (id column level=%s, parent refs resolved by name=%d)",
        len(assets), id_level, resolved_by_name,
    )
    return ParsedTable(
        headers=tuple(headers),
        assets=assets,
        id_level=id_level,
        field_columns={"id": id_idx, "name": name_idx, "parent_id": parent_idx},
        header_line=header_line,
    )


def parse_assets(
    rows: Sequence[Sequence[str]],
    headers: Sequence[str],
    mapping: ColumnMapping,
) -> list[AssetRecord]:
    """Convenience wrapper returning only the asset records."""
    return parse_table(rows, headers, mapping).assets
