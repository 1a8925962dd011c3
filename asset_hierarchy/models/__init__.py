"""Domain models for the asset hierarchy importer.

This package contains the record, mapping and defect report types shared by
the parser, validator and repair session.
"""

from .asset_record import AssetRecord
from .column_mapping import FIELD_ALIASES, ColumnMapping
from .defect_record import DefectRecord
from .validation_result import (
    CycleInfo,
    DuplicateInfo,
    MissingNameInfo,
    OrphanGroup,
    OrphanInfo,
    ValidationResult,
)

__all__ = [
    # Input models
    "AssetRecord",
    "ColumnMapping",
    "FIELD_ALIASES",
    # Defect report models
    "CycleInfo",
    "DuplicateInfo",
    "MissingNameInfo",
    "OrphanGroup",
    "OrphanInfo",
    "ValidationResult",
    # Logging
    "DefectRecord",
]
