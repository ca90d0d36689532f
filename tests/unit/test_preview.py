from __future__ import annotations

from estate_ingest.domains import SALES
from estate_ingest.models.parsed_batch import InputFormat, ParsedBatch
from estate_ingest.services.preview import batch_frame, findings_frame, render_preview
from estate_ingest.services.session import IngestSession

CSV = (
    "date,category,totalAmount,quantity\n"
    "2025-10-20,SHOP,100,\n"
    "2025-10-20,BOGUS,200,\n"
    "2025-10-20,SALON,300,0\n"
)


def _batch() -> ParsedBatch:
    return IngestSession(SALES).load_text(CSV)


def test_batch_frame_status_per_row():
    frame = batch_frame(_batch())
    assert list(frame["line"]) == [2, 3, 4]
    assert list(frame["status"]) == ["ok", "error", "warning"]
    assert frame.columns[0] == "line"
    assert list(frame.columns[-2:]) == ["status", "issues"]
    assert frame.loc[1, "issues"].startswith("category: Category must be one of")


def test_findings_frame():
    frame = findings_frame(_batch().findings)
    assert list(frame.columns) == ["row", "field", "message", "severity"]
    assert list(frame["severity"]) == ["error", "warning"]


def test_render_preview_limits_rows():
    text = render_preview(_batch(), max_rows=1)
    assert "SHOP" in text
    assert "BOGUS" not in text


def test_render_preview_empty():
    assert render_preview(ParsedBatch(format=InputFormat.TABULAR, rows=[])) == "(no rows)"
