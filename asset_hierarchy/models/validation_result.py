from __future__ import annotations

from dataclasses import dataclass, field

"""Validation result models for the asset hierarchy importer.

These structures form the defect report produced by the structural validator.
A report is always rebuilt from scratch after a mutation, never patched.
"""

__all__ = [
    "CycleInfo",
    "DuplicateInfo",
    "MissingNameInfo",
    "OrphanGroup",
    "OrphanInfo",
    "ValidationResult",
]


@dataclass(frozen=True)
class DuplicateInfo:
    """Rows sharing one identifier value (rows and names in row order)."""
    id: str
    rows: list[int]
    names: list[str]


@dataclass(frozen=True)
class OrphanInfo:
    """A single asset whose parent id matches no existing asset."""
    row: int
    asset_id: str
    asset_name: str
    missing_parent_id: str


@dataclass(frozen=True)
class OrphanGroup:
    """All orphans pointing at the same missing parent id."""
    missing_parent_id: str
    orphans: list[OrphanInfo]

    @property
    def rows(self) -> list[int]:
        return [o.row for o in self.orphans]


@dataclass(frozen=True)
class CycleInfo:
    """A closed parent-reference loop, members listed in walk order.

    The closing edge back to the first member is implicit; ``path_label``
    renders it for display only.
    """
    cycle_id: str
    asset_ids: list[str]
    rows: list[int]
    asset_names: list[str]

    @property
    def path_label(self) -> str:
        if not self.asset_ids:
            return ""
        return " → ".join([*self.asset_ids, self.asset_ids[0]])


@dataclass(frozen=True)
class MissingNameInfo:
    """An asset whose name is empty or whitespace only."""
    row: int
    asset_id: str
    parent_id: str | None


@dataclass(frozen=True)
class ValidationResult:
    """Complete defect report for one asset collection.

    ``has_errors`` gates the upload: nothing may be submitted while it is True.
    """
    total_assets: int
    valid_assets: int
    duplicates: list[DuplicateInfo] = field(default_factory=list)
    orphan_groups: list[OrphanGroup] = field(default_factory=list)
    cycles: list[CycleInfo] = field(default_factory=list)
    missing_names: list[MissingNameInfo] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.duplicates or self.orphan_groups or self.cycles or self.missing_names)

    @property
    def orphan_count(self) -> int:
        return sum(len(g.orphans) for g in self.orphan_groups)

    @property
    def total_error_count(self) -> int:
        """Cycles + orphan rows + duplicate rows + missing names."""
        return (
            len(self.cycles)
            + self.orphan_count
            + sum(len(d.rows) for d in self.duplicates)
            + len(self.missing_names)
        )

    def implicated_rows(self) -> set[int]:
        """Rows appearing in at least one defect category."""
        rows: set[int] = set()
        for dup in self.duplicates:
            rows.update(dup.rows)
        for group in self.orphan_groups:
            rows.update(group.rows)
        for cycle in self.cycles:
            rows.update(cycle.rows)
        rows.update(m.row for m in self.missing_names)
        return rows
