# Shared pytest fixtures
from __future__ import annotations
import tempfile
from pathlib import Path
import pytest

from asset_hierarchy.logging.init import reset_logging


SAMPLE_CSV = """asset_id,name,parent_id,location
SITE,Main Site,,L0
AREA-1,Area One,SITE,L1
PUMP-1,Pump 1,AREA-1,L2
PUMP-2,Pump 2,AREA-9,L3
LOOP-A,Loop A,LOOP-B,L4
LOOP-B,Loop B,LOOP-A,L5
MOTOR-1,,PUMP-1,L6
"""


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.delenv("ASSET_UPLOAD_URL", raising=False)
        yield p


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def sample_csv_text() -> str:
    return SAMPLE_CSV


@pytest.fixture()
def sample_config_yaml() -> str:
    return """source_file: ./data/assets.csv
column_mappings:
  id: asset_id
  name: name
  parent_id: parent_id
  tertiary_id: location
allow_duplicate_ids: false
sort_parents_first: false
upload:
  base_url: http://importer.test
  poll_interval_sec: 0.01
  timeout_sec: 1
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def write_csv(temp_workdir: Path, sample_csv_text: str) -> Path:
    f = temp_workdir / "data" / "assets.csv"
    f.write_text(sample_csv_text, encoding="utf-8")
    return f
