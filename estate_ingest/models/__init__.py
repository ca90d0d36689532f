"""Domain models for the ingestion pipeline."""

from .categories import (
    AssetCategory,
    AssetCondition,
    AssetStatus,
    PaymentMethod,
    PaymentStatus,
    SaleCategory,
    TransactionType,
)
from .config_models import AssetSettings, DatabaseConfig, IngestConfig, SalesSettings
from .error_record import ErrorRecord
from .finding import Finding, Severity
from .import_outcome import ImportOutcome
from .parsed_batch import BatchSummary, InputFormat, ParsedBatch
from .row_record import RowRecord

__all__ = [
    # Configuration models
    "AssetSettings",
    "DatabaseConfig",
    "IngestConfig",
    "SalesSettings",
    # Vocabularies
    "AssetCategory",
    "AssetCondition",
    "AssetStatus",
    "PaymentMethod",
    "PaymentStatus",
    "SaleCategory",
    "TransactionType",
    # Processing models
    "BatchSummary",
    "ErrorRecord",
    "Finding",
    "ImportOutcome",
    "InputFormat",
    "ParsedBatch",
    "RowRecord",
    "Severity",
]
