"""Asset hierarchy importer: parse, validate and repair asset trees before upload."""

from .models import AssetRecord, ColumnMapping, ValidationResult
from .services import AssetParseError, RepairSession, parse_assets, parse_table, validate_assets

__version__ = "0.1.0"

__all__ = [
    "AssetParseError",
    "AssetRecord",
    "ColumnMapping",
    "RepairSession",
    "ValidationResult",
    "parse_assets",
    "parse_table",
    "validate_assets",
]
