from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.column_mapping import ColumnMapping

"""Config loader.

Responsibilities:
- Load YAML config (default: config/import.yml)
- Validate against the packaged JSON schema (config_schema.json)
- Apply defaults (duplicate ids rejected, input row order kept, upload endpoints)
- Environment override: ASSET_UPLOAD_URL replaces upload.base_url
"""

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "ConfigError",
    "ImportConfig",
    "UploadConfig",
    "load_config",
]

SCHEMA_PATH = Path(__file__).parent / "config_schema.json"
DEFAULT_CONFIG_PATH = Path("config/import.yml")

DEFAULT_UPLOAD_PATH = "/api/asset-hierarchy/upload-csv"
DEFAULT_STATUS_PATH = "/api/asset-hierarchy/upload-status/{upload_id}"


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class UploadConfig:
    base_url: str | None = None
    upload_path: str = DEFAULT_UPLOAD_PATH
    status_path: str = DEFAULT_STATUS_PATH
    poll_interval_sec: float = 2.0
    timeout_sec: float = 300.0


@dataclass(frozen=True)
class ImportConfig:
    source_file: str
    column_mappings: ColumnMapping | None  # None -> ヘッダから自動推定
    allow_duplicate_ids: bool = False
    sort_parents_first: bool = False
    upload: UploadConfig = field(default_factory=UploadConfig)

    def mapping_for(self, headers: list[str]) -> ColumnMapping | None:
        """Configured mapping, or one guessed from ``headers``."""
        if self.column_mappings is not None:
            return self.column_mappings
        return ColumnMapping.guess(headers, allow_duplicate_ids=self.allow_duplicate_ids)


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing / not valid JSON, or config violates it
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> ImportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config root must be a mapping")

    _validate_config_schema(data)

    allow_dups = bool(data.get("allow_duplicate_ids", False))
    mapping_raw = data.get("column_mappings")
    mapping = None
    if mapping_raw is not None:
        mapping = ColumnMapping(
            name=mapping_raw["name"],
            id=mapping_raw.get("id"),
            parent_id=mapping_raw.get("parent_id"),
            secondary_id=mapping_raw.get("secondary_id"),
            tertiary_id=mapping_raw.get("tertiary_id"),
            allow_duplicate_ids=allow_dups,
        )

    upload_raw = data.get("upload", {})
    upload = UploadConfig(
        # 環境変数 (.env 含む) が最優先
        base_url=os.getenv("ASSET_UPLOAD_URL") or upload_raw.get("base_url"),
        upload_path=upload_raw.get("upload_path", DEFAULT_UPLOAD_PATH),
        status_path=upload_raw.get("status_path", DEFAULT_STATUS_PATH),
        poll_interval_sec=float(upload_raw.get("poll_interval_sec", 2.0)),
        timeout_sec=float(upload_raw.get("timeout_sec", 300.0)),
    )
    return ImportConfig(
        source_file=data["source_file"],
        column_mappings=mapping,
        allow_duplicate_ids=allow_dups,
        sort_parents_first=bool(data.get("sort_parents_first", False)),
        upload=upload,
    )
