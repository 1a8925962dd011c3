#!/usr/bin/env python3
"""Synthetic asset hierarchy generator for manual and performance runs.

Builds a site -> area -> equipment -> component tree and then injects a chosen
number of defects:
- duplicates: a later row re-uses an earlier row's id
- orphans: parent id pointing at an id that does not exist
- cycles: two-node parent loops
- missing names: blank name cell

Output is CSV (.csv) or Excel (.xlsx), header row first, columns
asset_id,name,parent_id,location.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

import numpy as np
import pandas as pd

COLUMNS = ["asset_id", "name", "parent_id", "location"]
LEVELS = ["SITE", "AREA", "EQ", "CMP"]


def generate_hierarchy(
    rows: int,
    *,
    duplicates: int = 0,
    orphans: int = 0,
    cycles: int = 0,
    missing_names: int = 0,
    seed: int = 42,
) -> pd.DataFrame:
    """Generate a hierarchy DataFrame (all cells str) with injected defects.

    Args:
        rows: Total data rows (>= 1). Row 0 is always the single site root.
        duplicates: Rows whose id is overwritten with an earlier row's id
        orphans: Rows whose parent is replaced by a non-existent id
        cycles: Number of two-node parent loops
        missing_names: Rows whose name is blanked
        seed: Random seed for reproducible data

    Returns:
        DataFrame with COLUMNS, one row per asset
    """
    np.random.seed(seed)

    ids: list[str] = []
    parents: list[str] = []
    depth: list[int] = []
    candidates: list[int] = []  # 子を持てる行 (最下層以外)
    for i in range(rows):
        if i == 0:
            level, parent_id = 0, ""
        else:
            parent = candidates[np.random.randint(0, len(candidates))]
            level, parent_id = depth[parent] + 1, ids[parent]
        ids.append(f"{LEVELS[level]}-{i}")
        parents.append(parent_id)
        depth.append(level)
        if level < len(LEVELS) - 1:
            candidates.append(i)

    names = [f"{LEVELS[d].title()} {i}" for i, d in enumerate(depth)]
    locations = [f"FL-{d}-{i:06d}" for i, d in enumerate(depth)]

    # 欠陥対象行はルート以外から重複なしで抽選
    needed = duplicates + orphans + 2 * cycles + missing_names
    if needed > rows - 1:
        raise ValueError(f"not enough rows ({rows}) to inject {needed} defects")
    picked = (np.random.permutation(rows - 1)[:needed] + 1).tolist()
    untouched = sorted(set(range(rows)) - set(picked))

    for _ in range(duplicates):
        row = picked.pop()
        sources = [j for j in untouched if j < row]
        old, new = ids[row], ids[sources[np.random.randint(0, len(sources))]]
        ids[row] = new
        # 子は重複 id (= 先に出現した行) にぶら下げ直す
        parents = [new if p == old else p for p in parents]
    for n in range(orphans):
        parents[picked.pop()] = f"MISSING-{n}"
    for _ in range(cycles):
        a, b = picked.pop(), picked.pop()
        parents[a], parents[b] = ids[b], ids[a]
    for _ in range(missing_names):
        names[picked.pop()] = ""

    return pd.DataFrame({
        "asset_id": ids,
        "name": names,
        "parent_id": parents,
        "location": locations,
    }, columns=COLUMNS)


def write_dataset(df: pd.DataFrame, output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    suffix = output_path.suffix.lower()
    if suffix == ".csv":
        df.to_csv(output_path, index=False, lineterminator="\n")
    elif suffix == ".xlsx":
        with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
            df.to_excel(writer, sheet_name="Assets", index=False)
    else:
        raise ValueError(f"unsupported output type: {output_path.suffix}")
    print(f"Created dataset: {output_path}")
    print(f"  Rows: {len(df):,}")


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Generate synthetic asset hierarchy datasets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Clean 10k-row hierarchy
  %(prog)s data/assets.csv --rows 10000

  # Excel file with a few defects of every kind
  %(prog)s data/assets.xlsx --rows 500 --duplicates 3 --orphans 5 --cycles 2 --missing-names 4
        """,
    )
    parser.add_argument("output", type=Path, help="Output file (.csv or .xlsx)")
    parser.add_argument("--rows", type=int, default=10_000, help="Number of data rows (default: 10,000)")
    parser.add_argument("--duplicates", type=int, default=0)
    parser.add_argument("--orphans", type=int, default=0)
    parser.add_argument("--cycles", type=int, default=0)
    parser.add_argument("--missing-names", type=int, default=0)
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    args = parser.parse_args()

    if args.rows <= 0:
        print("Error: --rows must be positive", file=sys.stderr)
        return 1

    try:
        df = generate_hierarchy(
            args.rows,
            duplicates=args.duplicates,
            orphans=args.orphans,
            cycles=args.cycles,
            missing_names=args.missing_names,
            seed=args.seed,
        )
        write_dataset(df, args.output)
    except (ValueError, OSError) as e:
        print(f"Error generating dataset: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
