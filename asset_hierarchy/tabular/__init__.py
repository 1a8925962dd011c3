from .reader import (
    TableData,
    TableHeaderError,
    UnsupportedFileTypeError,
    format_csv_row,
    read_csv_text,
    read_table_file,
    write_csv_text,
)

__all__ = [
    "TableData",
    "TableHeaderError",
    "UnsupportedFileTypeError",
    "format_csv_row",
    "read_csv_text",
    "read_table_file",
    "write_csv_text",
]
