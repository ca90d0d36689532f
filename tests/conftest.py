# Shared pytest fixtures
from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from estate_ingest.logging.init import reset_logging


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: estate
sales:
  asset_id: asset-001
  location: Ngoma Business Center
  currency: UGX
  sale_type_rules: standard
  bulk_default_unit_price: 20000
  table: sales
assets:
  default_condition: GOOD
  default_status: ACTIVE
  table: assets
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "ingest.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def sales_csv() -> str:
    return (
        "date,category,description,quantity,unitPrice,totalAmount,paymentMethod,paymentStatus\n"
        "2025-10-20,SHOP,,1,120000,120000,,\n"
        "2025-10-20,CHARCOAL,,30,,600000,,\n"
        "2025-10-21,MOBILE_MONEY,,,,45000,,\n"
    )


@pytest.fixture()
def daily_report() -> str:
    return """20/10/25
Shop sales: 120,000
Salon sales: nil
MM sales: 45000
Charcoal(30bags): 600000
Shop exp: 15000

21/10/25
Cinema sales: 30,000
"""


@pytest.fixture()
def clean_logging():
    reset_logging()
    yield
    reset_logging()
