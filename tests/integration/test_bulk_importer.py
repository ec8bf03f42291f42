"""Integration tests for bulk record import."""

import openpyxl
import pytest
import pytest_asyncio

from reportflow.core.errors import (
    DuplicateValueError,
    ModelNotFoundError,
    ValidationError,
    WindowClosedError,
)
from reportflow.domain.entities import Caller

HEADER = "Title,Year,Contact Email,DOI\n"


@pytest_asyncio.fixture
async def papers(ctx, publication_fields, open_window) -> str:
    return await ctx.schemas.create_schema("papers", publication_fields)


def write_csv(tmp_path, body: str, name: str = "upload.csv"):
    path = tmp_path / name
    path.write_text(HEADER + body, encoding="utf-8")
    return path


@pytest.mark.asyncio
async def test_import_csv(ctx, submitter, papers, tmp_path):
    path = write_csv(
        tmp_path,
        "Optics,2023,a@b.io,10.1/a\nLasers,2024,c@d.io,10.1/b\n,,,\n",
    )

    count = await ctx.importer.bulk_upload(submitter, "papers", path)

    assert count == 2
    assert not path.exists()
    page = await ctx.records.find("papers")
    assert page.total_count == 2
    record = next(r for r in page.records if r.data["title"] == "Optics")
    assert record.data["year"] == 2023
    assert record.submitted_by == submitter.id
    assert record.college == submitter.college
    assert record.department == submitter.department
    assert record.submitted is False


@pytest.mark.asyncio
async def test_import_xlsx(ctx, submitter, papers, tmp_path):
    path = tmp_path / "upload.xlsx"
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.append(["Title", "Year", "Contact Email", "DOI", "Extra column"])
    ws.append(["Optics", 2023, "a@b.io", "10.1/a", "ignored"])
    wb.save(path)

    assert await ctx.importer.bulk_upload(submitter, "papers", path) == 1
    assert not path.exists()
    record = (await ctx.records.find("papers")).records[0]
    assert "extra_column" not in record.data


@pytest.mark.asyncio
async def test_partial_row_rejects_whole_file(ctx, submitter, papers, tmp_path):
    path = write_csv(
        tmp_path,
        "Optics,2023,a@b.io,10.1/a\nLasers,,,10.1/b\nPrisms,2022,,\n",
    )

    with pytest.raises(ValidationError) as exc_info:
        await ctx.importer.bulk_upload(submitter, "papers", path)

    assert exc_info.value.details["row"] == 2
    assert exc_info.value.details["missing"] == ["year", "contact_email"]
    assert "year, contact_email" in exc_info.value.message
    assert not path.exists()
    assert await ctx.records.count("papers") == 0


@pytest.mark.asyncio
async def test_duplicate_unique_value_rolls_back(ctx, submitter, papers, tmp_path):
    path = write_csv(tmp_path, "Optics,2023,a@b.io,10.1/a\nLasers,2024,c@d.io,10.1/a\n")

    with pytest.raises(DuplicateValueError):
        await ctx.importer.bulk_upload(submitter, "papers", path)

    assert not path.exists()
    assert await ctx.records.count("papers") == 0


@pytest.mark.asyncio
async def test_invalid_cell_type(ctx, submitter, papers, tmp_path):
    path = write_csv(tmp_path, "Optics,next year,a@b.io,10.1/a\n")

    with pytest.raises(ValidationError):
        await ctx.importer.bulk_upload(submitter, "papers", path)
    assert not path.exists()


@pytest.mark.asyncio
async def test_empty_and_unsupported_files(ctx, submitter, papers, tmp_path):
    empty = write_csv(tmp_path, "")
    with pytest.raises(ValidationError):
        await ctx.importer.bulk_upload(submitter, "papers", empty)
    assert not empty.exists()

    text_file = tmp_path / "upload.txt"
    text_file.write_text("whatever", encoding="utf-8")
    with pytest.raises(ValidationError):
        await ctx.importer.bulk_upload(submitter, "papers", text_file)
    assert not text_file.exists()


@pytest.mark.asyncio
async def test_unknown_table_removes_file(ctx, submitter, open_window, tmp_path):
    path = write_csv(tmp_path, "Optics,2023,a@b.io,10.1/a\n")
    with pytest.raises(ModelNotFoundError):
        await ctx.importer.bulk_upload(submitter, "missing", path)
    assert not path.exists()


@pytest.mark.asyncio
async def test_window_closed(ctx, submitter, publication_fields, tmp_path):
    await ctx.schemas.create_schema("papers", publication_fields)
    path = write_csv(tmp_path, "Optics,2023,a@b.io,10.1/a\n")

    with pytest.raises(WindowClosedError):
        await ctx.importer.bulk_upload(submitter, "papers", path)
    assert not path.exists()


@pytest.mark.asyncio
async def test_authority_import_ignores_window(ctx, publication_fields, tmp_path):
    await ctx.schemas.create_schema("papers", publication_fields)
    path = write_csv(tmp_path, "Optics,2023,a@b.io,10.1/a\n")

    assert await ctx.importer.bulk_upload(Caller.authority("admin"), "papers", path) == 1


@pytest.mark.asyncio
async def test_author_typed_table_name(ctx, submitter, publication_fields, open_window, tmp_path):
    assert await ctx.schemas.create_schema("Annual Report", publication_fields) == "annual_report"

    record = await ctx.workflow.create(submitter, "Annual Report", {"title": "Optics", "year": 2023})
    assert record.table.table_name == "annual_report"

    path = write_csv(tmp_path, "Lasers,2024,c@d.io,10.1/b\nMasers,2022,e@f.io,10.1/c\n")
    assert await ctx.importer.bulk_upload(submitter, "Annual Report", path) == 2

    page = await ctx.records.find("Annual Report")
    assert page.total_count == 3
    assert (await ctx.records.find_one(" annual  REPORT ", record.id)).data["title"] == "Optics"
    assert await ctx.workflow.submit(submitter, "Annual Report") == {"annual_report": 3}
