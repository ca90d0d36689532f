"""Bulk data ingestion pipeline for estate/business records.

Parses pasted tabular text or free-form daily reports into row records,
validates them, supports operator corrections and imports the result.
"""

__version__ = "0.3.0"
