from __future__ import annotations

from decimal import Decimal
from unittest.mock import Mock

import pytest
from psycopg2 import sql

from estate_ingest.db.store import SAVEPOINT, CommitMetrics, MemoryRecordStore, PostgresRecordStore
from estate_ingest.errors import CommitError

ROLLBACK = sql.SQL("ROLLBACK TO SAVEPOINT {}").format(SAVEPOINT)
RELEASE = sql.SQL("RELEASE SAVEPOINT {}").format(SAVEPOINT)
BEGIN = sql.SQL("SAVEPOINT {}").format(SAVEPOINT)


class DummyCursor:
    """Records executed statements; statements with params are the data queries."""

    def __init__(self, fetched=None, fail_data_queries: bool = False) -> None:
        self.executed: list[tuple[object, object]] = []
        self.fetched = fetched
        self.fail_data_queries = fail_data_queries
        self.connection = Mock()

    def execute(self, query, params=None):
        self.executed.append((query, params))
        if params is not None and self.fail_data_queries:
            raise RuntimeError('duplicate key value violates unique constraint "sales_pkey"')

    def fetchone(self):
        return self.fetched

    @property
    def control_statements(self):
        return [q for q, p in self.executed if p is None]


PAYLOAD = {"asset_id": "a1", "sale_date": "2025-10-20", "category": "SHOP", "sale_price": Decimal(100)}
KEY = ("asset_id", "sale_date", "category", "sale_price")


def test_find_duplicate_true_when_row_found():
    cur = DummyCursor(fetched=(1,))
    store = PostgresRecordStore(cur, "sales", KEY)
    assert store.find_duplicate(PAYLOAD) is True
    query, params = cur.executed[1]
    assert params == ["a1", "2025-10-20", "SHOP", Decimal(100)]
    assert cur.control_statements == [BEGIN, RELEASE]


def test_find_duplicate_false_when_nothing_found():
    cur = DummyCursor(fetched=None)
    assert PostgresRecordStore(cur, "sales", KEY).find_duplicate(PAYLOAD) is False


def test_find_duplicate_failure_raises_commit_error():
    cur = DummyCursor(fail_data_queries=True)
    with pytest.raises(CommitError, match="duplicate check failed"):
        PostgresRecordStore(cur, "sales", KEY).find_duplicate(PAYLOAD)
    assert cur.control_statements == [BEGIN, ROLLBACK]


def test_insert_commits_each_row():
    cur = DummyCursor()
    store = PostgresRecordStore(cur, "public.sales", KEY)
    store.insert(PAYLOAD)
    _, params = cur.executed[1]
    assert params == list(PAYLOAD.values())
    assert cur.control_statements == [BEGIN, RELEASE]
    cur.connection.commit.assert_called_once()


def test_insert_without_per_row_commit():
    cur = DummyCursor()
    PostgresRecordStore(cur, "sales", KEY, commit_each_row=False).insert(PAYLOAD)
    cur.connection.commit.assert_not_called()


def test_failed_insert_rolls_back_to_savepoint():
    cur = DummyCursor(fail_data_queries=True)
    store = PostgresRecordStore(cur, "sales", KEY)
    with pytest.raises(CommitError) as e:
        store.insert(PAYLOAD)
    assert "sales_pkey" in str(e.value)
    assert cur.control_statements == [BEGIN, ROLLBACK]
    cur.connection.commit.assert_not_called()


def test_insert_reports_metrics_even_on_failure():
    metrics: list[CommitMetrics] = []
    cur = DummyCursor(fail_data_queries=True)
    store = PostgresRecordStore(cur, "sales", KEY, metrics_callback=metrics.append)
    with pytest.raises(CommitError):
        store.insert(PAYLOAD)
    assert len(metrics) == 1
    assert metrics[0].table == "sales"
    assert metrics[0].elapsed_seconds >= 0


def test_key_columns_required():
    with pytest.raises(ValueError):
        PostgresRecordStore(DummyCursor(), "sales", ())


def test_memory_store_duplicates():
    store = MemoryRecordStore(KEY, existing=[PAYLOAD])
    assert store.find_duplicate(dict(PAYLOAD))
    other = dict(PAYLOAD, sale_price=Decimal(200))
    assert not store.find_duplicate(other)
    store.insert(other)
    assert store.find_duplicate(other)
    assert len(store.records) == 2
