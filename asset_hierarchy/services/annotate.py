from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from ..models.asset_record import AssetRecord
from ..models.validation_result import ValidationResult

"""Per-row annotation and ordering helpers for asset tables.

- annotate_assets: attach defect flags / messages / modified / deleted state
- parents_first: order assets so every parent precedes its children
"""

__all__ = [
    "AnnotatedAsset",
    "annotate_assets",
    "parents_first",
]


@dataclass(frozen=True)
class AnnotatedAsset:
    asset: AssetRecord
    is_duplicate: bool = False
    is_orphan: bool = False
    in_cycle: bool = False
    has_missing_name: bool = False
    is_modified: bool = False
    is_deleted: bool = False
    error_messages: list[str] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.error_messages)


def annotate_assets(
    assets: Sequence[AssetRecord],
    result: ValidationResult,
    modified_rows: Iterable[int] = (),
    deleted_rows: Iterable[int] = (),
) -> list[AnnotatedAsset]:
    """Attach defect information from ``result`` to every asset row.

    Deleted rows are annotated too (flagged ``is_deleted``) but never carry
    defect messages since they are excluded from validation.
    """
    modified = set(modified_rows)
    deleted = set(deleted_rows)

    duplicate_by_row = {row: d for d in result.duplicates for row in d.rows}
    orphan_by_row = {o.row: g for g in result.orphan_groups for o in g.orphans}
    cycle_by_row = {row: c for c in result.cycles for row in c.rows}
    missing_rows = {m.row for m in result.missing_names}

    annotated: list[AnnotatedAsset] = []
    for asset in assets:
        messages: list[str] = []
        dup = duplicate_by_row.get(asset.row)
        if dup is not None:
            messages.append(f"Duplicate ID: appears on rows {', '.join(str(r) for r in dup.rows)}")
        group = orphan_by_row.get(asset.row)
        if group is not None:
            messages.append(f'Orphan: parent "{group.missing_parent_id}" not found')
        cycle = cycle_by_row.get(asset.row)
        if cycle is not None:
            messages.append(f"In cycle: {cycle.path_label}")
        if asset.row in missing_rows:
            messages.append("Missing name: asset name is required")

        annotated.append(AnnotatedAsset(
            asset=asset,
            is_duplicate=dup is not None,
            is_orphan=group is not None,
            in_cycle=cycle is not None,
            has_missing_name=asset.row in missing_rows,
            is_modified=asset.row in modified,
            is_deleted=asset.row in deleted,
            error_messages=messages,
        ))
    return annotated


def parents_first(assets: Sequence[AssetRecord]) -> list[AssetRecord]:
    """Order assets so that parents always appear before their children.

    Roots (no parent, or parent not present) keep their input order at the
    front; the rest follow with their ancestors pulled in first. A cycle is cut
    where the walk meets a node already on the stack.
    """
    by_id: dict[str, AssetRecord] = {}
    for a in assets:
        by_id.setdefault(a.id, a)

    added: set[int] = set()
    result: list[AssetRecord] = []

    for a in assets:
        if not a.parent_id or a.parent_id not in by_id:
            added.add(a.row)
            result.append(a)

    for a in assets:
        if a.row in added:
            continue
        # 祖先を辿ってから逆順に追加 (再帰なし)
        chain: list[AssetRecord] = []
        on_chain: set[int] = set()
        node: AssetRecord | None = a
        while node is not None and node.row not in added and node.row not in on_chain:
            chain.append(node)
            on_chain.add(node.row)
            node = by_id.get(node.parent_id) if node.parent_id else None
        for item in reversed(chain):
            added.add(item.row)
            result.append(item)
    return result
