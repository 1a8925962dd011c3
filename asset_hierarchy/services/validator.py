from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace

from ..models.asset_record import AssetRecord
from ..models.validation_result import (
    CycleInfo,
    DuplicateInfo,
    MissingNameInfo,
    OrphanGroup,
    OrphanInfo,
    ValidationResult,
)

"""Structural validator for parsed asset hierarchies.

Pure functions, no side effects: asset collection -> defect report.
Callers pass the *active* assets only (soft-deleted rows already removed).

Defect categories:
- duplicates     : two or more rows sharing one id (exact, case-sensitive)
- orphans        : parent id matching no asset id, grouped by the missing id
- cycles         : parent chains that loop back on themselves
- missing names  : empty / whitespace-only names
"""

__all__ = [
    "detect_cycles",
    "detect_duplicates",
    "detect_missing_names",
    "detect_orphans",
    "validate_assets",
]


def _by_row(assets: Sequence[AssetRecord]) -> list[AssetRecord]:
    return sorted(assets, key=lambda a: a.row)


def detect_duplicates(assets: Sequence[AssetRecord]) -> list[DuplicateInfo]:
    """Group assets by exact id and report every group of size >= 2.

    Groups are ordered largest first, ties by first row.
    """
    occurrences: dict[str, list[AssetRecord]] = {}
    for asset in _by_row(assets):
        occurrences.setdefault(asset.id, []).append(asset)

    duplicates = [
        DuplicateInfo(
            id=asset_id,
            rows=[a.row for a in members],
            names=[a.name for a in members],
        )
        for asset_id, members in occurrences.items()
        if len(members) > 1
    ]
    duplicates.sort(key=lambda d: (-len(d.rows), d.rows[0]))
    return duplicates


def detect_orphans(assets: Sequence[AssetRecord]) -> list[OrphanGroup]:
    """Find assets whose parent id matches no asset id.

    Orphans referencing the same missing id are clustered into one group so a
    whole group can be fixed at once. Groups are ordered largest first, ties
    by first appearance.
    """
    valid_ids = {a.id for a in assets}
    by_missing: dict[str, list[OrphanInfo]] = {}
    for asset in _by_row(assets):
        if asset.parent_id and asset.parent_id not in valid_ids:
            by_missing.setdefault(asset.parent_id, []).append(OrphanInfo(
                row=asset.row,
                asset_id=asset.id,
                asset_name=asset.name,
                missing_parent_id=asset.parent_id,
            ))

    groups = [OrphanGroup(missing_parent_id=k, orphans=v) for k, v in by_missing.items()]
    # dict は挿入順なので sort は安定 -> 同数なら初出順
    groups.sort(key=lambda g: -len(g.orphans))
    return groups


def detect_cycles(assets: Sequence[AssetRecord]) -> list[CycleInfo]:
    """Detect parent-reference cycles by walking each asset's parent chain.

    Each walk keeps its own visited sequence. Revisiting a node already in the
    current walk closes a cycle made of every node from the first occurrence of
    that node to the end of the walk. Nodes finished by an earlier walk are not
    walked again, and each cycle is reported once (keyed by its node set).

    When an id is duplicated, the first-seen (lowest row) asset is the one the
    id resolves to.
    """
    ordered = _by_row(assets)
    by_id: dict[str, AssetRecord] = {}
    for asset in ordered:
        by_id.setdefault(asset.id, asset)

    finished: set[str] = set()
    seen_cycles: set[frozenset[str]] = set()
    cycles: list[CycleInfo] = []

    for start in ordered:
        if start.id in finished:
            continue
        path: list[str] = []
        position: dict[str, int] = {}
        current: str | None = start.id
        while current is not None and current in by_id and current not in finished:
            if current in position:
                members = path[position[current]:]
                key = frozenset(members)
                if key not in seen_cycles:
                    seen_cycles.add(key)
                    cycles.append(CycleInfo(
                        cycle_id=f"cycle-{len(cycles) + 1}",
                        asset_ids=list(members),
                        rows=[by_id[m].row for m in members],
                        asset_names=[by_id[m].name for m in members],
                    ))
                break
            position[current] = len(path)
            path.append(current)
            current = by_id[current].parent_id or None
        finished.update(path)

    return cycles


def detect_missing_names(assets: Sequence[AssetRecord]) -> list[MissingNameInfo]:
    """Report assets whose name is empty after trimming, in row order."""
    return [
        MissingNameInfo(row=a.row, asset_id=a.id, parent_id=a.parent_id)
        for a in _by_row(assets)
        if not (a.name or "").strip()
    ]


def validate_assets(assets: Sequence[AssetRecord]) -> ValidationResult:
    """Run all structural checks and return a combined defect report.

    Cheap enough to call after every edit (spreadsheet-scale inputs).
    """
    duplicates = detect_duplicates(assets)
    orphan_groups = detect_orphans(assets)
    cycles = detect_cycles(assets)
    missing_names = detect_missing_names(assets)

    result = ValidationResult(
        total_assets=len(assets),
        valid_assets=0,
        duplicates=duplicates,
        orphan_groups=orphan_groups,
        cycles=cycles,
        missing_names=missing_names,
    )
    # 複数カテゴリに該当する行も 1 回だけ数える
    return replace(result, valid_assets=len(assets) - len(result.implicated_rows()))
