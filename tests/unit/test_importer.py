from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import Mock

import pytest

from estate_ingest.errors import CommitError
from estate_ingest.logging.error_log import ErrorLogBuffer
from estate_ingest.models.row_record import RowRecord
from estate_ingest.services.importer import CancellationToken, execute_import, format_row_error


def _rows(n: int) -> list[RowRecord]:
    return [RowRecord(source_line=i + 2, values={"id": str(i + 1)}) for i in range(n)]


def _payload(row: RowRecord) -> dict[str, str]:
    return {"id": row.get("id")}


def test_duplicate_row_is_skipped_without_commit():
    rows = _rows(5)
    find_duplicate = Mock(side_effect=lambda p: p["id"] == "3")
    commit = Mock()

    outcome = execute_import(rows, build_payload=_payload, find_duplicate=find_duplicate, commit=commit)

    assert outcome.imported == 4
    assert outcome.skipped == 1
    assert outcome.failed == 0
    committed = [c.args[0]["id"] for c in commit.call_args_list]
    assert committed == ["1", "2", "4", "5"]


@pytest.mark.parametrize("failing", [set(), {"2"}, {"1", "4"}, {"1", "2", "3", "4"}])
def test_counts_are_conserved(failing: set[str]):
    rows = _rows(4)

    def commit(payload):
        if payload["id"] in failing:
            raise CommitError("constraint violated")

    outcome = execute_import(
        rows, build_payload=_payload, find_duplicate=lambda p: p["id"] == "3", commit=commit
    )
    assert outcome.imported + outcome.skipped + outcome.failed == len(rows)
    assert not outcome.cancelled


def test_failures_are_recorded_and_loop_continues():
    rows = _rows(3)

    def commit(payload):
        if payload["id"] == "2":
            raise CommitError("duplicate key value violates unique constraint")

    outcome = execute_import(rows, build_payload=_payload, find_duplicate=lambda p: False, commit=commit)
    assert outcome.imported == 2
    assert outcome.failed == 1
    assert outcome.errors == ["Row 3: duplicate key value violates unique constraint"]
    assert outcome.has_failures


def test_payload_and_probe_errors_count_as_failed():
    rows = _rows(3)

    def build(row):
        if row.get("id") == "1":
            raise ValueError("invalid date 'x'")
        return _payload(row)

    def probe(payload):
        if payload["id"] == "2":
            raise CommitError("duplicate check failed: timeout")
        return False

    commit = Mock()
    outcome = execute_import(rows, build_payload=build, find_duplicate=probe, commit=commit)
    assert (outcome.imported, outcome.skipped, outcome.failed) == (1, 0, 2)
    assert commit.call_count == 1
    assert outcome.errors[0] == "Row 2: invalid date 'x'"


def test_failures_go_to_error_log(temp_workdir: Path):
    buf = ErrorLogBuffer()

    def commit(payload):
        raise CommitError("boom")

    execute_import(
        _rows(2),
        build_payload=_payload,
        find_duplicate=lambda p: False,
        commit=commit,
        error_log=buf,
        source="sales.csv",
        domain="sales",
    )
    path = buf.flush()
    records = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert [r["row"] for r in records] == [2, 3]
    assert {r["error_type"] for r in records} == {"COMMIT_ERROR"}
    assert {(r["source"], r["domain"]) for r in records} == {("sales.csv", "sales")}


def test_cancellation_stops_before_next_row_and_keeps_counts():
    rows = _rows(5)
    token = CancellationToken()
    committed: list[str] = []

    def commit(payload):
        committed.append(payload["id"])
        if len(committed) == 2:
            token.cancel()

    outcome = execute_import(
        rows, build_payload=_payload, find_duplicate=lambda p: False, commit=commit, cancel_token=token
    )
    assert committed == ["1", "2"]
    assert outcome.cancelled
    assert outcome.imported == 2
    assert outcome.unprocessed == 3
    assert outcome.processed + outcome.unprocessed == len(rows)


def test_progress_is_advanced_per_row():
    progress = Mock()
    execute_import(_rows(3), build_payload=_payload, find_duplicate=lambda p: False, commit=lambda p: None,
                   progress=progress)
    assert progress.advance.call_count == 3
    progress.advance.assert_called_with(imported=3, skipped=0, failed=0)


def test_empty_batch():
    outcome = execute_import([], build_payload=_payload, find_duplicate=lambda p: False, commit=lambda p: None)
    assert outcome.processed == 0
    assert outcome.errors == []


def test_format_row_error():
    assert format_row_error(7, ValueError("bad")) == "Row 7: bad"
    assert format_row_error(7, KeyError()) == "Row 7: KeyError"
    assert format_row_error(7, "") == "Row 7: Unknown error"
