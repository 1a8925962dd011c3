from .parser import AssetParseError, ColumnMappingError, IdentifierColumnError, parse_assets, parse_table
from .repair import RepairSession
from .validator import validate_assets

__all__ = [
    "AssetParseError",
    "ColumnMappingError",
    "IdentifierColumnError",
    "RepairSession",
    "parse_assets",
    "parse_table",
    "validate_assets",
]
