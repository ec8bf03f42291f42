"""Unit tests for TabularReader."""

import openpyxl
import pytest

from reportflow.core.errors import ValidationError
from reportflow.infrastructure.importers import TabularReader


def test_read_csv_normalizes_headers(tmp_path):
    path = tmp_path / "papers.csv"
    path.write_text("Title,Year,Contact Email\nQuantum dots,2023,a@b.io\n,,\nLasers,2024,\n", encoding="utf-8")

    rows = TabularReader().read(path)

    assert rows == [
        {"title": "Quantum dots", "year": "2023", "contact_email": "a@b.io"},
        {"title": "Lasers", "year": "2024", "contact_email": ""},
    ]


def test_read_csv_with_bom(tmp_path):
    path = tmp_path / "papers.csv"
    path.write_bytes("\ufeffTitle\nOptics\n".encode("utf-8"))
    assert TabularReader().read(path) == [{"title": "Optics"}]


def test_read_xlsx(tmp_path):
    path = tmp_path / "papers.xlsx"
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.append(["Title", "Year"])
    ws.append(["Quantum dots", 2023])
    ws.append([None, None])
    ws.append(["Lasers", 2024])
    wb.save(path)

    rows = TabularReader().read(path)

    assert rows == [
        {"title": "Quantum dots", "year": 2023},
        {"title": "Lasers", "year": 2024},
    ]


def test_read_empty_file(tmp_path):
    path = tmp_path / "empty.csv"
    path.write_text("", encoding="utf-8")
    assert TabularReader().read(path) == []


def test_unsupported_extension(tmp_path):
    path = tmp_path / "papers.txt"
    path.write_text("Title\nx\n", encoding="utf-8")
    with pytest.raises(ValidationError) as exc_info:
        TabularReader().read(path)
    assert ".txt" in exc_info.value.message


def test_allowed_extensions_restrict_formats(tmp_path):
    path = tmp_path / "papers.csv"
    path.write_text("Title\nx\n", encoding="utf-8")
    with pytest.raises(ValidationError):
        TabularReader(allowed_extensions=[".xlsx"]).read(path)


def test_corrupt_workbook(tmp_path):
    path = tmp_path / "broken.xlsx"
    path.write_bytes(b"not a zip file")
    with pytest.raises(ValidationError):
        TabularReader().read(path)
