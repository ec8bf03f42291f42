"""Repository for dynamic record operations.

Provides CRUD operations for dynamic record tables using raw SQL,
since tables are created at runtime and not mapped to ORM models.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from reportflow.core.errors import ValidationError
from reportflow.core.logging import get_logger
from reportflow.domain.entities import (
    BOOKKEEPING_COLUMNS,
    DynamicRecord,
    RecordStatus,
    StorageType,
    TableHandle,
)

logger = get_logger(__name__)

COLLECTION_TYPES = (list, tuple, set, frozenset)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


class RecordRepository:
    """Repository for dynamic record database operations.

    Uses raw SQL since record tables are dynamically created
    and not mapped to SQLAlchemy ORM models.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository with a database session.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session

    @staticmethod
    def to_sql_value(handle: TableHandle, column: str, value: Any) -> Any:
        spec = handle.fields.get(column)
        if spec is not None and spec.storage_type == StorageType.BOOLEAN and isinstance(value, bool):
            return 1 if value else 0
        if isinstance(value, datetime):
            return value.isoformat()
        return value

    @staticmethod
    def to_record(handle: TableHandle, row: dict[str, Any]) -> DynamicRecord:
        """Convert a table row into a DynamicRecord."""
        fields = handle.fields
        data: dict[str, Any] = {}
        for spec in fields.values():
            if spec.system:
                continue
            value = row.get(spec.name)
            if spec.storage_type == StorageType.BOOLEAN and value is not None:
                value = bool(value)
            data[spec.name] = value

        return DynamicRecord(
            table=handle,
            id=row["id"],
            data=data,
            status=RecordStatus(row.get("status") or RecordStatus.PENDING.value),
            submitted=bool(row.get("submitted")),
            submitted_by=row.get("submitted_by"),
            college=row.get("college") or "",
            department=row.get("department") or "",
            moderator_comment=row.get("moderator_comment") or "",
            super_admin_comment=row.get("super_admin_comment") or "",
            reviewed_moderator=row.get("reviewed_moderator"),
            go_as_per_moderator=bool(row.get("go_as_per_moderator")),
            version=int(row.get("version") or 1),
            created_at=_parse_timestamp(row.get("created_at")),
            updated_at=_parse_timestamp(row.get("updated_at")),
        )

    def build_where(
        self, handle: TableHandle, filters: dict[str, Any] | None
    ) -> tuple[str, dict[str, Any]]:
        """Build a WHERE clause from equality and membership filters.

        Scalar values match by equality, collections by membership and
        None by IS NULL.

        Raises:
            ValidationError: If a filter names an unknown column.
        """
        clauses: list[str] = []
        params: dict[str, Any] = {}

        for i, (column, value) in enumerate((filters or {}).items()):
            if column not in handle.fields and column not in BOOKKEEPING_COLUMNS:
                raise ValidationError(
                    f"Cannot filter on unknown field '{column}'",
                    details={"field": column, "table_name": handle.table_name},
                )

            if value is None:
                clauses.append(f'"{column}" IS NULL')
            elif isinstance(value, COLLECTION_TYPES):
                values = list(value)
                if not values:
                    clauses.append("1 = 0")
                    continue
                names = []
                for j, item in enumerate(values):
                    name = f"f{i}_{j}"
                    params[name] = self.to_sql_value(handle, column, item)
                    names.append(f":{name}")
                clauses.append(f'"{column}" IN ({", ".join(names)})')
            else:
                name = f"f{i}"
                params[name] = self.to_sql_value(handle, column, value)
                clauses.append(f'"{column}" = :{name}')

        return (" AND ".join(clauses) if clauses else "1 = 1"), params

    async def insert_record(
        self, handle: TableHandle, record_id: str, values: dict[str, Any]
    ) -> None:
        """Insert a new record into a table.

        Args:
            handle: The table handle.
            record_id: The generated record ID.
            values: Validated field values, system fields included.
        """
        now = _utcnow()
        sql_values = {
            "id": record_id,
            "version": 1,
            "created_at": now.isoformat(),
            "updated_at": now.isoformat(),
        }
        for column, value in values.items():
            sql_values[column] = self.to_sql_value(handle, column, value)

        columns = ", ".join(f'"{k}"' for k in sql_values)
        placeholders = ", ".join(f":p{i}" for i in range(len(sql_values)))
        params = {f"p{i}": v for i, v in enumerate(sql_values.values())}

        insert_sql = f'INSERT INTO "{handle.physical_name}" ({columns}) VALUES ({placeholders})'

        logger.debug("Inserting record", table_name=handle.table_name, record_id=record_id)
        await self.session.execute(text(insert_sql), params)

    async def get_by_id(self, handle: TableHandle, record_id: str) -> DynamicRecord | None:
        """Get a record by ID."""
        result = await self.session.execute(
            text(f'SELECT * FROM "{handle.physical_name}" WHERE "id" = :record_id'),
            {"record_id": record_id},
        )
        row = result.mappings().fetchone()
        if row is None:
            return None
        return self.to_record(handle, dict(row))

    async def count(self, handle: TableHandle, filters: dict[str, Any] | None = None) -> int:
        where_clause, params = self.build_where(handle, filters)
        result = await self.session.execute(
            text(f'SELECT COUNT(*) FROM "{handle.physical_name}" WHERE {where_clause}'),
            params,
        )
        return int(result.scalar_one())

    async def find_all(
        self,
        handle: TableHandle,
        filters: dict[str, Any] | None = None,
        skip: int = 0,
        limit: int | None = None,
    ) -> tuple[list[DynamicRecord], int]:
        """Find records with filtering and pagination, newest first.

        Returns:
            A tuple containing (list of records, total count).
        """
        where_clause, params = self.build_where(handle, filters)
        total_count = await self.count(handle, filters)

        select_sql = (
            f'SELECT * FROM "{handle.physical_name}" WHERE {where_clause} '
            'ORDER BY "created_at" DESC, rowid DESC'
        )
        if limit is not None:
            select_sql += " LIMIT :limit OFFSET :skip"
            params = {**params, "limit": limit, "skip": skip}

        result = await self.session.execute(text(select_sql), params)
        records = [self.to_record(handle, dict(row)) for row in result.mappings().fetchall()]
        return records, total_count

    async def update_record(
        self,
        handle: TableHandle,
        record_id: str,
        values: dict[str, Any],
        expected_version: int | None = None,
    ) -> DynamicRecord | None:
        """Update an existing record and bump its version.

        Returns:
            The updated record, or None when no row matched the ID
            (and the expected version, when given).
        """
        sql_values = {
            column: self.to_sql_value(handle, column, value) for column, value in values.items()
        }
        sql_values["updated_at"] = _utcnow().isoformat()

        set_parts = [f'"{column}" = :s{i}' for i, column in enumerate(sql_values)]
        set_parts.append('"version" = "version" + 1')
        params: dict[str, Any] = {f"s{i}": v for i, v in enumerate(sql_values.values())}
        params["record_id"] = record_id

        where = '"id" = :record_id'
        if expected_version is not None:
            where += ' AND "version" = :expected_version'
            params["expected_version"] = expected_version

        result = await self.session.execute(
            text(
                f'UPDATE "{handle.physical_name}" SET {", ".join(set_parts)} '
                f"WHERE {where} RETURNING *"
            ),
            params,
        )
        row = result.mappings().fetchone()
        if row is None:
            return None
        return self.to_record(handle, dict(row))

    async def update_where(
        self,
        handle: TableHandle,
        filters: dict[str, Any],
        values: dict[str, Any],
        copy_columns: dict[str, str] | None = None,
    ) -> int:
        """Apply the same change to every matching record.

        Args:
            handle: The table handle.
            filters: Row filters (see build_where).
            values: Column values to set.
            copy_columns: Target column to source column copies applied
                when the target value given in ``values`` is empty.

        Returns:
            Number of updated rows.
        """
        where_clause, params = self.build_where(handle, filters)
        copy_columns = copy_columns or {}

        set_parts = []
        for i, (column, value) in enumerate(values.items()):
            name = f"s{i}"
            params[name] = self.to_sql_value(handle, column, value)
            if column in copy_columns:
                source = copy_columns[column]
                set_parts.append(f'"{column}" = COALESCE(NULLIF(:{name}, \'\'), "{source}")')
            else:
                set_parts.append(f'"{column}" = :{name}')
        set_parts.append('"version" = "version" + 1')
        set_parts.append('"updated_at" = :updated_at')
        params["updated_at"] = _utcnow().isoformat()

        result = await self.session.execute(
            text(f'UPDATE "{handle.physical_name}" SET {", ".join(set_parts)} WHERE {where_clause}'),
            params,
        )
        return result.rowcount or 0

    async def delete_record(self, handle: TableHandle, record_id: str) -> bool:
        """Delete a record. Returns True if a row was removed."""
        result = await self.session.execute(
            text(f'DELETE FROM "{handle.physical_name}" WHERE "id" = :record_id'),
            {"record_id": record_id},
        )
        return bool(result.rowcount)
