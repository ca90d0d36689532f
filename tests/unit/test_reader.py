from __future__ import annotations

from datetime import datetime
from pathlib import Path
from zipfile import ZipFile

import pandas as pd
import pytest

from estate_ingest.errors import ParseError
from estate_ingest.models.parsed_batch import InputFormat
from estate_ingest.parsing.freeform import parse_freeform
from estate_ingest.parsing.reader import load_source, read_text, read_workbook


def _make_workbook(path: Path, rows: list[list[object]]) -> Path:
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        pd.DataFrame(rows).to_excel(writer, sheet_name="Sales", header=False, index=False)
    return path


def test_read_workbook_rows_and_lines(tmp_path: Path):
    path = _make_workbook(
        tmp_path / "sales.xlsx",
        [
            ["date", "category", "totalAmount"],
            [datetime(2025, 10, 20), "SHOP", 120000],
            [None, None, None],
            ["2025-10-21", "SALON", 2500.5],
        ],
    )
    result = read_workbook(path)
    assert result.format is InputFormat.TABULAR
    assert result.header_fields == ["date", "category", "totalAmount"]
    assert [r.source_line for r in result.rows] == [2, 4]
    assert result.rows[0].values == {"date": "2025-10-20", "category": "SHOP", "totalAmount": "120000"}
    assert result.rows[1].get("totalAmount") == "2500.5"


def test_load_source_dispatches_on_suffix(tmp_path: Path, sales_csv: str, daily_report: str):
    csv_path = tmp_path / "sales.csv"
    csv_path.write_text(sales_csv, encoding="utf-8")
    assert load_source(csv_path).format is InputFormat.TABULAR

    report = tmp_path / "report.txt"
    report.write_text(daily_report, encoding="utf-8")
    result = load_source(report, parse_freeform)
    assert result.format is InputFormat.FREEFORM
    assert len(result.rows) == 5


def test_read_text_strips_bom(tmp_path: Path):
    path = tmp_path / "bom.csv"
    path.write_bytes("\ufeffdate,category\n".encode("utf-8"))
    assert read_text(path).startswith("date")


def test_missing_files_raise_parse_error(tmp_path: Path):
    with pytest.raises(ParseError, match="file not found"):
        read_text(tmp_path / "nope.csv")
    with pytest.raises(ParseError, match="file not found"):
        read_workbook(tmp_path / "nope.xlsx")


def test_corrupt_workbook_raises_parse_error(tmp_path: Path):
    path = tmp_path / "broken.xlsx"
    path.write_bytes(b"not a zip file")
    with pytest.raises(ParseError):
        read_workbook(path)


def test_zip_without_workbook_raises_parse_error(tmp_path: Path):
    path = tmp_path / "x.xlsx"
    with ZipFile(path, "w") as archive:
        archive.writestr("hello.txt", "hello")
    with pytest.raises(ParseError, match="unreadable workbook"):
        read_workbook(path)
