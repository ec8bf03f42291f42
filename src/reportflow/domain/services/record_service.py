"""Dynamic record store.

Generic CRUD and query surface over every registered table. Tables are
resolved through the registry and every write is validated against the
table's field specs.
"""

import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from reportflow.core.config import Settings, get_settings
from reportflow.core.errors import (
    DuplicateValueError,
    NotFoundError,
    ServerError,
    StaleRecordError,
    ValidationError,
)
from reportflow.core.logging import get_logger
from reportflow.domain.entities import (
    Caller,
    DynamicRecord,
    RecordPage,
    Role,
    SubmissionContext,
    TableHandle,
)
from reportflow.domain.services.record_validator import RecordValidationError, RecordValidator
from reportflow.infrastructure.persistence.registry import Registry
from reportflow.infrastructure.persistence.repositories import RecordRepository
from reportflow.schemas import Pagination

logger = get_logger(__name__)

# System fields stamped from the submission context on create
IDENTITY_FIELDS = ("submitted_by", "college", "department")

# System fields that may change after a record is created
MUTABLE_SYSTEM_FIELDS = (
    "status",
    "submitted",
    "moderator_comment",
    "super_admin_comment",
    "reviewed_moderator",
    "go_as_per_moderator",
)


def _raise_validation(handle: TableHandle, errors: list[RecordValidationError]) -> None:
    error_messages = [f"{e.field}: {e.message}" for e in errors]
    raise ValidationError(
        f"Validation failed: {'; '.join(error_messages)}",
        details={"table_name": handle.table_name, "errors": [e.__dict__ for e in errors]},
    )


class RecordStore:
    """Service for dynamic record operations."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        registry: Registry,
        settings: Settings | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.registry = registry
        self.settings = settings or get_settings()

    @asynccontextmanager
    async def transaction(self, handle: TableHandle) -> AsyncIterator[AsyncSession]:
        """Open a session that commits on success.

        Unique violations become DuplicateValueError, other storage
        failures are logged and become ServerError.
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise DuplicateValueError(
                    f"A record with the same unique value already exists in '{handle.table_name}'",
                    details={"table_name": handle.table_name},
                ) from e
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(
                    "Record storage operation failed",
                    table_name=handle.table_name,
                    error=str(e),
                )
                raise ServerError("Record storage operation failed") from e

    @staticmethod
    def scope_filter(caller: Caller) -> dict[str, Any]:
        """Filters restricting a listing to what the caller may see."""
        if caller.role == Role.SUBMITTER:
            return {"submitted_by": caller.id}
        if caller.role == Role.MODERATOR:
            return {
                "college": caller.colleges,
                "department": caller.departments,
                "submitted": True,
            }
        return {}

    def prepare(
        self, handle: TableHandle, record: dict[str, Any], context: SubmissionContext
    ) -> dict[str, Any]:
        """Stamp the submission context onto a new record and validate it.

        ``college`` and ``department`` given in the record take precedence
        over the context; ``submitted_by`` always comes from the context.
        """
        data = dict(record)
        data["submitted_by"] = context.submitted_by
        if RecordValidator.is_blank(data.get("college")):
            data["college"] = context.college
        if RecordValidator.is_blank(data.get("department")):
            data["department"] = context.department

        processed, errors = RecordValidator.validate_and_apply_defaults(
            data, handle.fields, writable_system_fields=IDENTITY_FIELDS
        )
        if errors:
            _raise_validation(handle, errors)
        return processed

    async def create(
        self, table_name: str, record: dict[str, Any], context: SubmissionContext
    ) -> DynamicRecord:
        """Create a record in a table.

        Raises:
            ModelNotFoundError: If the table is not registered.
            ValidationError: If the record does not match the table.
            DuplicateValueError: If a unique field value is taken.
        """
        handle = self.registry.resolve(table_name)
        processed = self.prepare(handle, record, context)
        record_id = str(uuid.uuid4())

        async with self.transaction(handle) as session:
            repository = RecordRepository(session)
            await repository.insert_record(handle, record_id, processed)
            created = await repository.get_by_id(handle, record_id)

        logger.info(
            "Record created",
            table_name=handle.table_name,
            record_id=record_id,
            submitted_by=context.submitted_by,
        )
        return created

    async def insert_many(
        self,
        table_name: str,
        rows: list[dict[str, Any]],
        context: SubmissionContext,
    ) -> list[str]:
        """Insert several records in one transaction.

        Either every row is inserted or none is.

        Returns:
            The new record IDs, in row order.
        """
        handle = self.registry.resolve(table_name)

        prepared = []
        for index, row in enumerate(rows):
            try:
                prepared.append(self.prepare(handle, row, context))
            except ValidationError as e:
                e.details["row"] = index + 1
                raise

        record_ids = [str(uuid.uuid4()) for _ in prepared]
        async with self.transaction(handle) as session:
            repository = RecordRepository(session)
            for record_id, values in zip(record_ids, prepared):
                await repository.insert_record(handle, record_id, values)

        logger.info(
            "Records inserted",
            table_name=handle.table_name,
            count=len(record_ids),
            submitted_by=context.submitted_by,
        )
        return record_ids

    async def find(
        self,
        table_name: str,
        filters: dict[str, Any] | None = None,
        pagination: Pagination | None = None,
    ) -> RecordPage:
        """List records matching equality or membership filters, newest first.

        Raises:
            ModelNotFoundError: If the table is not registered.
            ValidationError: If a filter names an unknown field.
        """
        handle = self.registry.resolve(table_name)
        pagination = pagination or Pagination(limit=self.settings.default_page_size)

        async with self.session_factory() as session:
            records, total = await RecordRepository(session).find_all(
                handle, filters, skip=pagination.offset, limit=pagination.limit
            )

        return RecordPage(
            records=records,
            current_page=pagination.page,
            total_count=total,
            limit=pagination.limit,
        )

    async def find_all(
        self, table_name: str, filters: dict[str, Any] | None = None
    ) -> list[DynamicRecord]:
        """List every matching record without paging."""
        handle = self.registry.resolve(table_name)
        async with self.session_factory() as session:
            records, _ = await RecordRepository(session).find_all(handle, filters)
        return records

    async def find_one(self, table_name: str, record_id: str) -> DynamicRecord:
        """Get a record by ID.

        Raises:
            ModelNotFoundError: If the table is not registered.
            NotFoundError: If the record does not exist.
        """
        handle = self.registry.resolve(table_name)
        async with self.session_factory() as session:
            record = await RecordRepository(session).get_by_id(handle, record_id)
        if record is None:
            raise NotFoundError(
                f"Record '{record_id}' not found",
                details={"table_name": handle.table_name, "record_id": record_id},
            )
        return record

    async def count(self, table_name: str, filters: dict[str, Any] | None = None) -> int:
        handle = self.registry.resolve(table_name)
        async with self.session_factory() as session:
            return await RecordRepository(session).count(handle, filters)

    async def update(
        self,
        table_name: str,
        record_id: str,
        patch: dict[str, Any],
        expected_version: int | None = None,
    ) -> DynamicRecord:
        """Merge a partial patch into a record and bump its version.

        Author fields and the workflow system fields may be patched; the
        identity fields cannot change. Workflow legality is not checked here.

        Raises:
            NotFoundError: If the record does not exist.
            StaleRecordError: If expected_version no longer matches.
            ValidationError: If the patch does not match the table.
        """
        handle = self.registry.resolve(table_name)
        processed, errors = RecordValidator.validate_and_apply_defaults(
            patch, handle.fields, partial=True, writable_system_fields=MUTABLE_SYSTEM_FIELDS
        )
        if errors:
            _raise_validation(handle, errors)
        if not processed:
            raise ValidationError(
                "No fields to update", details={"table_name": handle.table_name}
            )

        async with self.transaction(handle) as session:
            repository = RecordRepository(session)
            updated = await repository.update_record(
                handle, record_id, processed, expected_version=expected_version
            )
            if updated is None:
                if await repository.get_by_id(handle, record_id) is None:
                    raise NotFoundError(
                        f"Record '{record_id}' not found",
                        details={"table_name": handle.table_name, "record_id": record_id},
                    )
                raise StaleRecordError(
                    f"Record '{record_id}' was modified by someone else",
                    details={
                        "table_name": handle.table_name,
                        "record_id": record_id,
                        "expected_version": expected_version,
                    },
                )

        logger.info(
            "Record updated",
            table_name=handle.table_name,
            record_id=record_id,
            version=updated.version,
            fields=sorted(processed),
        )
        return updated

    async def update_many(
        self,
        table_name: str,
        filters: dict[str, Any],
        values: dict[str, Any],
        copy_columns: dict[str, str] | None = None,
    ) -> int:
        """Apply the same system field change to every matching record.

        Returns:
            Number of updated records.
        """
        handle = self.registry.resolve(table_name)
        async with self.transaction(handle) as session:
            updated = await RecordRepository(session).update_where(
                handle, filters, values, copy_columns=copy_columns
            )

        logger.info(
            "Records updated",
            table_name=handle.table_name,
            count=updated,
            fields=sorted(values),
        )
        return updated

    async def delete(self, table_name: str, record_id: str) -> None:
        """Delete a record.

        Raises:
            NotFoundError: If the record does not exist.
        """
        handle = self.registry.resolve(table_name)
        async with self.transaction(handle) as session:
            deleted = await RecordRepository(session).delete_record(handle, record_id)
            if not deleted:
                raise NotFoundError(
                    f"Record '{record_id}' not found",
                    details={"table_name": handle.table_name, "record_id": record_id},
                )

        logger.info("Record deleted", table_name=handle.table_name, record_id=record_id)
