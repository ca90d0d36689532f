from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Protocol

from psycopg2 import sql

from ..errors import CommitError

"""Record stores: the duplicate-probe and commit collaborators of an import.

PostgresRecordStore writes one row per INSERT, each inside its own SAVEPOINT,
so a failing row is rolled back on its own and the rest of the batch keeps
going. MemoryRecordStore keeps payloads in a list; it backs dry runs and
tests (same role as the cursor=None mock mode of the importer CLI).
"""

__all__ = [
    "RecordStore",
    "CommitMetrics",
    "PostgresRecordStore",
    "MemoryRecordStore",
]

logger = logging.getLogger(__name__)

SAVEPOINT = sql.Identifier("estate_ingest_row")


class RecordStore(Protocol):
    def find_duplicate(self, payload: Mapping[str, Any]) -> bool: ...

    def insert(self, payload: Mapping[str, Any]) -> None: ...


@dataclass(frozen=True)
class CommitMetrics:
    """Timing of a single INSERT."""
    table: str
    elapsed_seconds: float
    start_time: float  # time.time()
    end_time: float


class PostgresRecordStore:
    """psycopg2-backed store for one table.

    Parameters
    ----------
    cursor: psycopg2 cursor (transaction handled by the caller's connection)
    table: target table, optionally schema-qualified ("public.sales")
    key_columns: payload columns compared by the duplicate probe
        (NULL-safe, IS NOT DISTINCT FROM)
    commit_each_row: commit the connection after every inserted row so an
        interrupted batch keeps the rows already imported
    metrics_callback: optional callback receiving CommitMetrics per INSERT
    """

    def __init__(
        self,
        cursor: Any,
        table: str,
        key_columns: Sequence[str],
        *,
        commit_each_row: bool = True,
        metrics_callback: Callable[[CommitMetrics], None] | None = None,
    ) -> None:
        if not key_columns:
            raise ValueError("key_columns must not be empty")
        self._cursor = cursor
        self.table = table
        self.key_columns = tuple(key_columns)
        self.commit_each_row = commit_each_row
        self.metrics_callback = metrics_callback
        self._table_sql = sql.Identifier(*table.split("."))

    @contextmanager
    def _savepoint(self) -> Iterator[None]:
        self._cursor.execute(sql.SQL("SAVEPOINT {}").format(SAVEPOINT))
        try:
            yield
        except Exception:
            self._cursor.execute(sql.SQL("ROLLBACK TO SAVEPOINT {}").format(SAVEPOINT))
            raise
        self._cursor.execute(sql.SQL("RELEASE SAVEPOINT {}").format(SAVEPOINT))

    def find_duplicate(self, payload: Mapping[str, Any]) -> bool:
        conditions = sql.SQL(" AND ").join(
            sql.SQL("{} IS NOT DISTINCT FROM %s").format(sql.Identifier(c)) for c in self.key_columns
        )
        query = sql.SQL("SELECT 1 FROM {} WHERE {} LIMIT 1").format(self._table_sql, conditions)
        params = [payload.get(c) for c in self.key_columns]
        try:
            with self._savepoint():
                self._cursor.execute(query, params)
                found = self._cursor.fetchone()
        except Exception as e:
            raise CommitError(f"duplicate check failed: {e}") from e
        return found is not None

    def insert(self, payload: Mapping[str, Any]) -> None:
        columns = list(payload.keys())
        query = sql.SQL("INSERT INTO {} ({}) VALUES ({})").format(
            self._table_sql,
            sql.SQL(", ").join(sql.Identifier(c) for c in columns),
            sql.SQL(", ").join(sql.Placeholder() for _ in columns),
        )
        start_time = time.time()
        try:
            with self._savepoint():
                self._cursor.execute(query, [payload[c] for c in columns])
        except Exception as e:
            raise CommitError(str(e).strip() or e.__class__.__name__) from e
        finally:
            end_time = time.time()
            if self.metrics_callback is not None:
                self.metrics_callback(
                    CommitMetrics(
                        table=self.table,
                        elapsed_seconds=end_time - start_time,
                        start_time=start_time,
                        end_time=end_time,
                    )
                )
        if self.commit_each_row:
            self._cursor.connection.commit()


class MemoryRecordStore:
    """In-memory store. ``records`` holds every inserted payload in order."""

    def __init__(
        self,
        key_columns: Sequence[str],
        existing: Sequence[Mapping[str, Any]] | None = None,
    ) -> None:
        self.key_columns = tuple(key_columns)
        self.records: list[dict[str, Any]] = [dict(r) for r in (existing or [])]

    def find_duplicate(self, payload: Mapping[str, Any]) -> bool:
        return any(all(r.get(c) == payload.get(c) for c in self.key_columns) for r in self.records)

    def insert(self, payload: Mapping[str, Any]) -> None:
        self.records.append(dict(payload))
        logger.debug("memory store: inserted record #%d", len(self.records))
