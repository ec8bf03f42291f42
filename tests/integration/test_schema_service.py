"""Integration tests for schema registration, redefinition and deletion."""

import asyncio

import pytest

from reportflow.application import create_app_context
from reportflow.core.errors import (
    ConflictError,
    ModelNotFoundError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from reportflow.domain.entities import SYSTEM_FIELDS, RecordStatus


@pytest.mark.asyncio
async def test_create_schema_registers_table(ctx, publication_fields):
    table_name = await ctx.schemas.create_schema("Research Papers", publication_fields)

    assert table_name == "research_papers"
    assert "research_papers" in ctx.registry
    handle = ctx.registry.resolve("research_papers")
    assert handle.physical_name == "tbl_research_papers"
    assert handle.descriptor.author_field_names == ["title", "year", "contact_email", "doi"]


@pytest.mark.asyncio
async def test_raw_schema_round_trip(ctx, publication_fields):
    await ctx.schemas.create_schema("Research Papers", publication_fields)

    schemas = await ctx.schemas.list_schemas()
    assert len(schemas) == 1
    raw = schemas[0]
    assert raw.table_name == "research_papers"
    assert [f["FieldName"] for f in raw.fields] == ["Title", "Year", "Contact Email", "DOI"]
    assert raw.fields[0]["FieldRequired"] == "true"
    assert raw.fields[3]["FieldUnique"] == "true"
    assert raw.system_fields == [spec.name for spec in SYSTEM_FIELDS]

    fetched = await ctx.schemas.get_schema(raw.schema_id)
    assert fetched.to_dict() == raw.to_dict()


@pytest.mark.asyncio
async def test_get_schema_by_author_typed_name(ctx, publication_fields):
    await ctx.schemas.create_schema("Research Papers", publication_fields)

    raw = await ctx.schemas.get_schema_by_name("research   PAPERS")

    assert raw.table_name == "research_papers"
    assert raw.to_dict() == (await ctx.schemas.get_schema(raw.schema_id)).to_dict()


@pytest.mark.asyncio
async def test_duplicate_name_conflicts(ctx, publication_fields):
    await ctx.schemas.create_schema("Research Papers", publication_fields)

    with pytest.raises(ConflictError):
        await ctx.schemas.create_schema("  research   PAPERS ", publication_fields)


@pytest.mark.asyncio
async def test_concurrent_duplicate_creates(ctx, publication_fields):
    results = await asyncio.gather(
        ctx.schemas.create_schema("papers", publication_fields),
        ctx.schemas.create_schema("papers", publication_fields),
        return_exceptions=True,
    )

    successes = [r for r in results if r == "papers"]
    conflicts = [r for r in results if isinstance(r, ConflictError)]
    assert len(successes) == 1
    assert len(conflicts) == 1
    assert len(await ctx.schemas.list_schemas()) == 1


@pytest.mark.asyncio
async def test_create_schema_validation(ctx):
    with pytest.raises(ValidationError):
        await ctx.schemas.create_schema("papers", [])
    with pytest.raises(ValidationError):
        await ctx.schemas.create_schema("papers", [{"FieldName": "Status", "FieldType": "Text"}])
    with pytest.raises(ValidationError):
        await ctx.schemas.create_schema("papers", [{"FieldName": "When", "FieldType": "Date"}])
    assert await ctx.schemas.list_schemas() == []


@pytest.mark.asyncio
async def test_get_unknown_schema(ctx):
    with pytest.raises(NotFoundError):
        await ctx.schemas.get_schema("does-not-exist")
    with pytest.raises(NotFoundError):
        await ctx.schemas.delete_schema("does-not-exist")
    with pytest.raises(NotFoundError):
        await ctx.schemas.update_schema(
            "does-not-exist", "papers", [{"FieldName": "Title", "FieldType": "Text"}]
        )
    with pytest.raises(NotFoundError):
        await ctx.schemas.get_schema_by_name("Missing Table")
    assert await ctx.schemas.list_schemas() == []


@pytest.mark.asyncio
async def test_delete_schema_cascades(ctx, submitter, publication_fields, open_window):
    await ctx.schemas.create_schema("papers", publication_fields)
    await ctx.workflow.create(submitter, "papers", {"title": "Optics", "year": 2024})
    schema_id = ctx.registry.resolve("papers").schema_id

    result = await ctx.schemas.delete_schema(schema_id)

    assert result == {"schema_id": schema_id, "table_name": "papers", "records_deleted": 1}
    assert "papers" not in ctx.registry
    with pytest.raises(ModelNotFoundError):
        await ctx.records.find("papers")
    with pytest.raises(NotFoundError):
        await ctx.schemas.get_schema(schema_id)

    # The name is free again and the new table starts empty
    await ctx.schemas.create_schema("papers", publication_fields)
    assert (await ctx.records.find("papers")).total_count == 0
    assert ctx.registry.lock_count == 0


@pytest.mark.asyncio
async def test_update_schema_renames_and_drops_records(ctx, submitter, publication_fields, open_window):
    await ctx.schemas.create_schema("papers", publication_fields)
    await ctx.workflow.create(submitter, "papers", {"title": "Optics", "year": 2024})
    schema_id = ctx.registry.resolve("papers").schema_id

    new_name = await ctx.schemas.update_schema(
        schema_id,
        "Journal Papers",
        [
            {"FieldName": "Title", "FieldType": "Text", "FieldRequired": "true"},
            {"FieldName": "Impact Factor", "FieldType": "Number"},
        ],
    )

    assert new_name == "journal_papers"
    assert "papers" not in ctx.registry
    handle = ctx.registry.resolve("journal_papers")
    assert handle.schema_id == schema_id
    assert handle.descriptor.author_field_names == ["title", "impact_factor"]
    assert (await ctx.records.find("journal_papers")).total_count == 0

    raw = await ctx.schemas.get_schema(schema_id)
    assert raw.table_name == "journal_papers"
    assert [f["FieldName"] for f in raw.fields] == ["Title", "Impact Factor"]


@pytest.mark.asyncio
async def test_update_schema_conflicting_name(ctx, publication_fields):
    await ctx.schemas.create_schema("papers", publication_fields)
    await ctx.schemas.create_schema("projects", publication_fields)
    schema_id = ctx.registry.resolve("papers").schema_id

    with pytest.raises(ConflictError):
        await ctx.schemas.update_schema(schema_id, "projects", publication_fields)
    assert "papers" in ctx.registry


@pytest.mark.asyncio
async def test_concurrent_renames_leave_one_table(ctx, publication_fields):
    await ctx.schemas.create_schema("papers", publication_fields)
    schema_id = ctx.registry.resolve("papers").schema_id

    results = await asyncio.gather(
        ctx.schemas.update_schema(schema_id, "articles", publication_fields),
        ctx.schemas.update_schema(schema_id, "reports", publication_fields),
    )

    assert sorted(results) == ["articles", "reports"]
    raw = await ctx.schemas.get_schema(schema_id)
    assert raw.table_name in results
    assert ctx.registry.names() == [raw.table_name]
    assert (await ctx.records.find(raw.table_name)).total_count == 0
    for name in ("papers", *results):
        if name != raw.table_name:
            with pytest.raises(ModelNotFoundError):
                await ctx.records.find(name)
    assert ctx.registry.lock_count == 0


@pytest.mark.asyncio
async def test_update_schema_checks_access_key(settings, publication_fields):
    settings.schema_access_key = "s3cret"
    ctx = await create_app_context(settings, configure_logs=False)
    try:
        await ctx.schemas.create_schema("papers", publication_fields)
        schema_id = ctx.registry.resolve("papers").schema_id

        with pytest.raises(UnauthorizedError):
            await ctx.schemas.update_schema(schema_id, "papers", publication_fields, access_key="wrong")
        with pytest.raises(UnauthorizedError):
            await ctx.schemas.update_schema(schema_id, "papers", publication_fields)

        assert await ctx.schemas.update_schema(
            schema_id, "papers", publication_fields, access_key="s3cret"
        ) == "papers"
    finally:
        await ctx.close()


@pytest.mark.asyncio
async def test_rehydrate_restores_registry(settings, submitter, publication_fields):
    settings.enforce_submission_window = False
    first = await create_app_context(settings, configure_logs=False)
    try:
        await first.schemas.create_schema("papers", publication_fields)
        await first.workflow.create(submitter, "papers", {"title": "Optics", "year": 2024})
    finally:
        await first.close()

    second = await create_app_context(settings, configure_logs=False)
    try:
        assert second.registry.names() == ["papers"]
        page = await second.records.find("papers")
        assert page.total_count == 1
        assert page.records[0].status == RecordStatus.PENDING
    finally:
        await second.close()
