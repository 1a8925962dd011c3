from __future__ import annotations

import csv
import io
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

import pandas as pd

"""Tabular reader / writer for asset hierarchy uploads.

- CSV: standard ``csv`` module, fixed ``,`` dialect (no sniffing)
- Excel (.xlsx / .xls): pandas + openpyxl, first sheet only, every cell as text
- First row is the header row, remaining rows are data rows (blank rows kept
  here; the parser decides what to skip)

Cells are returned verbatim so the repair session can re-serialise them.
"""

__all__ = [
    "TableData",
    "TableHeaderError",
    "UnsupportedFileTypeError",
    "format_csv_row",
    "read_csv_text",
    "read_table_file",
    "write_csv_text",
]

CSV_SUFFIXES = {".csv"}
EXCEL_SUFFIXES = {".xlsx", ".xls"}


class TableHeaderError(Exception):
    """Raised when the header row is missing or empty."""


class UnsupportedFileTypeError(Exception):
    """Raised for files that are neither CSV nor Excel."""


@dataclass
class TableData:
    headers: list[str]
    rows: list[list[str]]  # データ行 (ヘッダ除く)
    # CSV のみ: レコードごとの元テキスト (先頭はヘッダ行、改行は除去)
    source_lines: list[str] | None = None


def _split_header(
    all_rows: list[list[str]], source: str, source_lines: list[str] | None = None
) -> TableData:
    if not all_rows or not any(cell.strip() for cell in all_rows[0]):
        raise TableHeaderError(f"'{source}' lacks a header row")
    return TableData(
        headers=list(all_rows[0]),
        rows=[list(r) for r in all_rows[1:]],
        source_lines=source_lines,
    )


def read_csv_text(text: str, *, source: str = "<text>") -> TableData:
    """Parse CSV text into header + data rows.

    Quoted fields may contain delimiters, escaped quotes and line breaks.
    A leading BOM is dropped. The exact text of every record (header
    included, terminator stripped) is kept in ``source_lines`` so untouched
    rows can be written back unchanged.
    """
    if text.startswith("\ufeff"):
        text = text[1:]
    lines = io.StringIO(text, newline="").readlines()
    reader = csv.reader(lines)
    records: list[list[str]] = []
    source_lines: list[str] = []
    consumed = 0
    for row in reader:
        records.append(row)
        # 引用内改行で複数の物理行にまたがるレコードもまとめて保持
        source_lines.append("".join(lines[consumed:reader.line_num]).rstrip("\r\n"))
        consumed = reader.line_num
    return _split_header(records, source, source_lines)


def read_excel_rows(path: Path, sheet: str | int = 0) -> list[list[str]]:
    """Read one worksheet as a grid of strings.

    Parameters
    ----------
    path: Excel ファイルパス
    sheet: シート名 or インデックス (既定: 先頭シート)
    """
    # ヘッダなしで生読み、全セルを文字列として扱う (NA 変換なし)
    df = pd.read_excel(path, sheet_name=sheet, header=None, dtype=str, keep_default_na=False)
    df = df.fillna("")
    return [[str(v) for v in raw] for raw in df.itertuples(index=False, name=None)]


def read_table_file(path: Path) -> TableData:
    """Read a CSV or Excel file returning header + data rows."""
    suffix = path.suffix.lower()
    if suffix in CSV_SUFFIXES:
        text = path.read_bytes().decode("utf-8-sig")
        return read_csv_text(text, source=path.name)
    if suffix in EXCEL_SUFFIXES:
        return _split_header(read_excel_rows(path), path.name)
    raise UnsupportedFileTypeError(
        f"unsupported file type '{path.suffix}': please upload a CSV or Excel file"
    )


def format_csv_row(cells: Sequence[str]) -> str:
    """One CSV record with minimal quoting and no line terminator."""
    buf = io.StringIO(newline="")
    csv.writer(buf, lineterminator="\n", quoting=csv.QUOTE_MINIMAL).writerow(list(cells))
    return buf.getvalue()[:-1]


def write_csv_text(
    headers: Sequence[str] | str,
    rows: Sequence[Sequence[str] | str],
) -> str:
    """Serialise header + rows as CSV text.

    Minimal quoting (only cells containing ``,`` / ``"`` / line breaks), ``\\n``
    line endings, no trailing newline. A ``str`` in place of a cell sequence
    is taken as an already formatted record and emitted as is.
    """
    records = [headers, *rows]
    return "\n".join(r if isinstance(r, str) else format_csv_row(r) for r in records)
