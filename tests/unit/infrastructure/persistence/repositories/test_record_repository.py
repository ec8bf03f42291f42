from unittest.mock import AsyncMock, MagicMock

import pytest

from reportflow.core.errors import ValidationError
from reportflow.domain.entities import (
    FieldSpec,
    FieldType,
    RecordStatus,
    SchemaDescriptor,
    StorageType,
    TableHandle,
)
from reportflow.infrastructure.persistence.repositories.record_repository import RecordRepository


@pytest.fixture
def mock_session():
    return AsyncMock()


@pytest.fixture
def repository(mock_session):
    return RecordRepository(mock_session)


@pytest.fixture
def handle():
    descriptor = SchemaDescriptor.build(
        "schema-1",
        "papers",
        [
            FieldSpec("title", StorageType.TEXT, required=True, source_type=FieldType.TEXT),
            FieldSpec("year", StorageType.NUMBER, source_type=FieldType.NUMBER),
        ],
    )
    return TableHandle(table_name="papers", physical_name="tbl_papers", descriptor=descriptor)


@pytest.mark.asyncio
async def test_insert_record(repository, mock_session, handle):
    await repository.insert_record(
        handle, "rec_123", {"title": "Test", "year": 2024, "submitted": False}
    )

    mock_session.execute.assert_called_once()
    args = mock_session.execute.call_args[0]
    assert 'INSERT INTO "tbl_papers"' in str(args[0])

    params = args[1]
    values = list(params.values())
    assert values[0] == "rec_123"
    assert values[1] == 1  # version
    assert "Test" in values
    assert 0 in values[4:]  # Boolean converted to int
    assert isinstance(values[2], str)  # ISO timestamp


@pytest.mark.asyncio
async def test_get_by_id(repository, mock_session, handle):
    mock_result = MagicMock()
    mock_result.mappings.return_value.fetchone.return_value = {
        "id": "rec_123",
        "version": 3,
        "created_at": "2024-01-01T00:00:00+00:00",
        "updated_at": "2024-01-02T00:00:00+00:00",
        "title": "Test",
        "year": 2024.0,
        "status": "requestedForApproval",
        "submitted": 1,
        "submitted_by": "user-1",
        "college": "College A",
        "department": "Physics",
        "moderator_comment": None,
        "super_admin_comment": None,
        "reviewed_moderator": "mod-1",
        "go_as_per_moderator": 1,
    }
    mock_session.execute.return_value = mock_result

    record = await repository.get_by_id(handle, "rec_123")

    assert record.id == "rec_123"
    assert record.data == {"title": "Test", "year": 2024.0}
    assert record.status == RecordStatus.REQUESTED_FOR_APPROVAL
    assert record.submitted is True
    assert record.go_as_per_moderator is True
    assert record.moderator_comment == ""
    assert record.version == 3
    assert record.created_at.year == 2024
    assert record.table is handle


@pytest.mark.asyncio
async def test_get_by_id_not_found(repository, mock_session, handle):
    mock_result = MagicMock()
    mock_result.mappings.return_value.fetchone.return_value = None
    mock_session.execute.return_value = mock_result

    assert await repository.get_by_id(handle, "missing") is None


def test_build_where(repository, handle):
    clause, params = repository.build_where(
        handle,
        {"submitted_by": "user-1", "submitted": True, "department": ["Physics", "Chemistry"]},
    )
    assert clause == '"submitted_by" = :f0 AND "submitted" = :f1 AND "department" IN (:f2_0, :f2_1)'
    assert params == {"f0": "user-1", "f1": 1, "f2_0": "Physics", "f2_1": "Chemistry"}


def test_build_where_empty_membership_matches_nothing(repository, handle):
    clause, params = repository.build_where(handle, {"department": []})
    assert clause == "1 = 0"
    assert params == {}


def test_build_where_null(repository, handle):
    clause, _ = repository.build_where(handle, {"reviewed_moderator": None})
    assert clause == '"reviewed_moderator" IS NULL'


def test_build_where_rejects_unknown_column(repository, handle):
    with pytest.raises(ValidationError):
        repository.build_where(handle, {"nope": 1})


@pytest.mark.asyncio
async def test_update_record_with_version(repository, mock_session, handle):
    mock_result = MagicMock()
    mock_result.mappings.return_value.fetchone.return_value = None
    mock_session.execute.return_value = mock_result

    result = await repository.update_record(
        handle, "rec_123", {"status": "approved"}, expected_version=2
    )

    assert result is None
    sql = str(mock_session.execute.call_args[0][0])
    params = mock_session.execute.call_args[0][1]
    assert '"version" = "version" + 1' in sql
    assert '"version" = :expected_version' in sql
    assert "RETURNING *" in sql
    assert params["expected_version"] == 2
    assert params["s0"] == "approved"


@pytest.mark.asyncio
async def test_update_where_copies_column(repository, mock_session, handle):
    mock_result = MagicMock()
    mock_result.rowcount = 4
    mock_session.execute.return_value = mock_result

    count = await repository.update_where(
        handle,
        {"department": "Physics"},
        {"status": "rejected", "super_admin_comment": ""},
        copy_columns={"super_admin_comment": "moderator_comment"},
    )

    assert count == 4
    sql = str(mock_session.execute.call_args[0][0])
    assert "COALESCE(NULLIF(:s1, ''), \"moderator_comment\")" in sql


@pytest.mark.asyncio
async def test_delete_record(repository, mock_session, handle):
    mock_result = MagicMock()
    mock_result.rowcount = 1
    mock_session.execute.return_value = mock_result

    assert await repository.delete_record(handle, "rec_123") is True
    assert 'DELETE FROM "tbl_papers"' in str(mock_session.execute.call_args[0][0])


@pytest.mark.asyncio
async def test_find_all_orders_newest_first_by_insertion(repository, mock_session, handle):
    count_result = MagicMock()
    count_result.scalar_one.return_value = 0
    rows_result = MagicMock()
    rows_result.mappings.return_value.fetchall.return_value = []
    mock_session.execute.side_effect = [count_result, rows_result]

    records, total = await repository.find_all(handle, skip=10, limit=10)

    assert (records, total) == ([], 0)
    sql = str(mock_session.execute.call_args_list[1][0][0])
    assert 'ORDER BY "created_at" DESC, rowid DESC' in sql
    assert mock_session.execute.call_args_list[1][0][1] == {"limit": 10, "skip": 10}
