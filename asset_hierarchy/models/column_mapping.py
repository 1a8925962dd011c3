from __future__ import annotations

from dataclasses import dataclass

"""Column mapping configuration for the asset hierarchy importer.

Maps logical asset fields onto header text of the uploaded table, and holds the
header alias table used both for guessing mappings and for writing edits back
into the source column layout.
"""

__all__ = [
    "ColumnMapping",
    "FIELD_ALIASES",
    "find_alias_column",
]


# Logical field -> accepted header aliases (case-insensitive)
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "parent_id": ("parent_id", "parent id", "parentid", "parent"),
    "id": ("id", "asset_id", "assetid", "asset id", "identifier"),
    "name": ("name", "asset_name", "assetname", "asset name", "title"),
    # フォールバック識別子列 (auto-guess 専用)
    "secondary_id": (
        "cmms_internal_id", "cmms internal id", "cmms_id", "cmms id", "cmmsid", "internal_id",
    ),
    "tertiary_id": (
        "functional_location", "functional location", "func_loc", "func loc", "floc", "location",
    ),
}


def find_alias_column(headers: list[str] | tuple[str, ...], field: str) -> int:
    """Return the index of the first header matching one of the field aliases.

    Unknown field names fall back to matching the field name itself.
    Returns -1 when no header matches.
    """
    aliases = FIELD_ALIASES.get(field.lower(), (field.lower(),))
    for idx, header in enumerate(headers):
        if header.strip().lower() in aliases:
            return idx
    return -1


@dataclass(frozen=True)
class ColumnMapping:
    """Which header feeds each logical asset field.

    ``id`` is the primary identifier column; ``secondary_id`` and
    ``tertiary_id`` are consulted in order when the primary column carries no
    values at all.
    """
    name: str
    id: str | None = None
    parent_id: str | None = None
    secondary_id: str | None = None
    tertiary_id: str | None = None
    allow_duplicate_ids: bool = False  # True: 重複 ID を解析エラーにせず欠陥として報告

    @property
    def identifier_columns(self) -> list[tuple[str, str]]:
        """(level, header) pairs in fallback order, skipping unmapped levels."""
        levels = [("id", self.id), ("secondary_id", self.secondary_id), ("tertiary_id", self.tertiary_id)]
        return [(level, header) for level, header in levels if header]

    @classmethod
    def guess(cls, headers: list[str] | tuple[str, ...], *, allow_duplicate_ids: bool = False) -> ColumnMapping | None:
        """Guess a mapping from header text using the alias table.

        Returns None when no name column can be found.
        """
        found: dict[str, str] = {}
        for field in FIELD_ALIASES:
            idx = find_alias_column(headers, field)
            if idx >= 0:
                found[field] = headers[idx]
        if "name" not in found:
            return None
        return cls(
            name=found["name"],
            id=found.get("id"),
            parent_id=found.get("parent_id"),
            secondary_id=found.get("secondary_id"),
            tertiary_id=found.get("tertiary_id"),
            allow_duplicate_ids=allow_duplicate_ids,
        )
