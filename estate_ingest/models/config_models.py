from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the ingestion pipeline.

Built by ``estate_ingest.config.loader`` from config/ingest.yml, or from
built-in defaults when no file is given.
"""

__all__ = [
    "DatabaseConfig",
    "SalesSettings",
    "AssetSettings",
    "IngestConfig",
]


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Used as fallback when environment variables are not set.
    Environment variables take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class SalesSettings:
    """Defaults applied when building sale payloads."""
    asset_id: str | None = None  # asset the sales are booked against
    location: str = "Ngoma Business Center"
    currency: str = "UGX"
    sale_type_rules: str = "standard"  # key of derivation.SALE_TYPE_RULE_SETS
    bulk_default_unit_price: int = 20000  # used when a bulk label has quantity 0
    table: str = "sales"


@dataclass(frozen=True)
class AssetSettings:
    default_condition: str = "GOOD"
    default_status: str = "ACTIVE"
    table: str = "assets"


@dataclass(frozen=True)
class IngestConfig:
    """Root configuration object."""
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    sales: SalesSettings = field(default_factory=SalesSettings)
    assets: AssetSettings = field(default_factory=AssetSettings)
