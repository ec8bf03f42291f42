"""Schema service for registering, redefining and removing report tables.

Each schema change writes the raw and normalized descriptors and runs the
table DDL in one transaction, then updates the registry once the
transaction has committed.
"""

import json
import secrets
import uuid
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from reportflow.core.config import Settings, get_settings
from reportflow.core.errors import (
    ConflictError,
    NotFoundError,
    ServerError,
    UnauthorizedError,
)
from reportflow.core.logging import get_logger
from reportflow.domain.entities import (
    RawSchemaDescriptor,
    SchemaDescriptor,
    TableHandle,
    normalize_name,
)
from reportflow.domain.services.schema_validator import SchemaValidator
from reportflow.infrastructure.persistence.models import RawSchemaModel, SchemaModel
from reportflow.infrastructure.persistence.registry import Registry
from reportflow.infrastructure.persistence.repositories import (
    RecordRepository,
    SchemaRepository,
)
from reportflow.infrastructure.persistence.table_builder import TableBuilder

logger = get_logger(__name__)


class SchemaService:
    """Service for schema store business logic."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        registry: Registry,
        table_builder: TableBuilder | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            session_factory: Factory for the sessions each call opens.
            registry: Registry of live tables kept in sync with the store.
            table_builder: DDL builder for the physical tables.
            settings: Application settings.
        """
        self.session_factory = session_factory
        self.registry = registry
        self.settings = settings or get_settings()
        self.table_builder = table_builder or TableBuilder(prefix=self.settings.table_prefix)

    def build_handle(self, descriptor: SchemaDescriptor) -> TableHandle:
        return TableHandle(
            table_name=descriptor.table_name,
            physical_name=self.table_builder.physical_name(descriptor.table_name),
            descriptor=descriptor,
        )

    @staticmethod
    def descriptor_from_model(model: SchemaModel) -> SchemaDescriptor:
        return SchemaDescriptor.from_json_fields(model.id, model.table_name, json.loads(model.fields))

    @staticmethod
    def raw_from_model(model: RawSchemaModel) -> RawSchemaDescriptor:
        return RawSchemaDescriptor(
            id=model.id,
            schema_id=model.schema_id,
            table_name=model.table_name,
            fields=json.loads(model.schema_definition),
        )

    def verify_access_key(self, access_key: str | None) -> None:
        """Check a schema administration key.

        Raises:
            UnauthorizedError: If a key is configured and does not match.
        """
        expected = self.settings.schema_access_key
        if expected is None:
            return
        if access_key is None or not secrets.compare_digest(access_key, expected):
            raise UnauthorizedError("Invalid schema access key")

    async def create_schema(self, table_name: str, fields: list[Any]) -> str:
        """Register a new table.

        Args:
            table_name: Table name as typed by the author.
            fields: Field descriptors (dicts or FieldDescriptor models).

        Returns:
            The normalized table name.

        Raises:
            ValidationError: If the name or a descriptor is invalid.
            ConflictError: If the table already exists.
        """
        normalized, descriptors, specs = SchemaValidator.validate(table_name, fields)

        async with self.registry.lock(normalized):
            if normalized in self.registry:
                raise ConflictError(
                    f"Table '{normalized}' already exists", details={"table_name": normalized}
                )

            schema_id = str(uuid.uuid4())
            descriptor = SchemaDescriptor.build(schema_id, normalized, specs)

            async with self.session_factory() as session:
                repository = SchemaRepository(session)
                if await repository.table_name_exists(normalized):
                    raise ConflictError(
                        f"Table '{normalized}' already exists", details={"table_name": normalized}
                    )

                schema = SchemaModel(
                    id=schema_id,
                    table_name=normalized,
                    fields=json.dumps(descriptor.to_json_fields()),
                )
                raw = RawSchemaModel(
                    id=str(uuid.uuid4()),
                    schema_id=schema_id,
                    table_name=normalized,
                    schema_definition=json.dumps([d.to_raw() for d in descriptors]),
                )
                try:
                    await repository.create(schema, raw)
                    await self.table_builder.create_table(session, descriptor)
                    await session.commit()
                except IntegrityError as e:
                    await session.rollback()
                    raise ConflictError(
                        f"Table '{normalized}' already exists", details={"table_name": normalized}
                    ) from e
                except SQLAlchemyError as e:
                    await session.rollback()
                    logger.error("Schema creation failed", table_name=normalized, error=str(e))
                    raise ServerError("Failed to create table") from e

            self.registry.register(self.build_handle(descriptor))

        logger.info(
            "Schema created",
            schema_id=schema_id,
            table_name=normalized,
            field_count=len(specs),
        )
        return normalized

    async def current_table_name(self, schema_id: str) -> str:
        """Read a schema's table name without locking it.

        Raises:
            NotFoundError: If the schema does not exist.
        """
        async with self.session_factory() as session:
            existing = await SchemaRepository(session).get_by_id(schema_id)
            if existing is None:
                raise NotFoundError(
                    f"Schema '{schema_id}' not found", details={"schema_id": schema_id}
                )
            return existing.table_name

    async def update_schema(
        self,
        schema_id: str,
        table_name: str,
        fields: list[Any],
        access_key: str | None = None,
    ) -> str:
        """Redefine an existing table, possibly under a new name.

        The old physical table is dropped together with its records and a
        new one is created from the new descriptors.

        Returns:
            The normalized (new) table name.

        Raises:
            UnauthorizedError: If the access key does not match.
            NotFoundError: If the schema does not exist.
            ConflictError: If the new name belongs to another table.
            ValidationError: If the name or a descriptor is invalid.
        """
        self.verify_access_key(access_key)
        normalized, descriptors, specs = SchemaValidator.validate(table_name, fields)
        old_name = await self.current_table_name(schema_id)

        while True:
            locked = {old_name, normalized}
            async with self.registry.lock_many(locked):
                async with self.session_factory() as session:
                    repository = SchemaRepository(session)
                    schema = await repository.get_by_id(schema_id)
                    if schema is None:
                        raise NotFoundError(
                            f"Schema '{schema_id}' not found", details={"schema_id": schema_id}
                        )
                    if schema.table_name not in locked:
                        # Renamed while waiting for the locks
                        old_name = schema.table_name
                        continue
                    old_name = schema.table_name

                    if normalized != old_name and (
                        normalized in self.registry
                        or await repository.table_name_exists(normalized)
                    ):
                        raise ConflictError(
                            f"Table '{normalized}' already exists",
                            details={"table_name": normalized},
                        )

                    descriptor = SchemaDescriptor.build(schema_id, normalized, specs)
                    schema.table_name = normalized
                    schema.fields = json.dumps(descriptor.to_json_fields())
                    schema.raw.table_name = normalized
                    schema.raw.schema_definition = json.dumps([d.to_raw() for d in descriptors])

                    try:
                        await repository.update(schema)
                        await self.table_builder.drop_table(session, old_name)
                        await self.table_builder.create_table(session, descriptor)
                        await session.commit()
                    except IntegrityError as e:
                        await session.rollback()
                        raise ConflictError(
                            f"Table '{normalized}' already exists",
                            details={"table_name": normalized},
                        ) from e
                    except SQLAlchemyError as e:
                        await session.rollback()
                        logger.error("Schema update failed", schema_id=schema_id, error=str(e))
                        raise ServerError("Failed to update table") from e

                self.registry.deregister(old_name)
                self.registry.register(self.build_handle(descriptor))
            break

        logger.info(
            "Schema updated",
            schema_id=schema_id,
            old_table_name=old_name,
            table_name=normalized,
            field_count=len(specs),
        )
        return normalized

    async def delete_schema(self, schema_id: str) -> dict[str, Any]:
        """Delete a table, its descriptors and every record in it.

        Returns:
            Summary with schema_id, table_name and records_deleted.

        Raises:
            NotFoundError: If the schema does not exist.
        """
        table_name = await self.current_table_name(schema_id)

        while True:
            async with self.registry.lock(table_name):
                async with self.session_factory() as session:
                    repository = SchemaRepository(session)
                    schema = await repository.get_by_id(schema_id)
                    if schema is None:
                        raise NotFoundError(
                            f"Schema '{schema_id}' not found", details={"schema_id": schema_id}
                        )
                    if schema.table_name != table_name:
                        # Renamed while waiting for the lock
                        table_name = schema.table_name
                        continue

                    handle = self.build_handle(self.descriptor_from_model(schema))
                    try:
                        records_deleted = await RecordRepository(session).count(handle)
                        await repository.delete(schema)
                        await self.table_builder.drop_table(session, table_name)
                        await session.commit()
                    except SQLAlchemyError as e:
                        await session.rollback()
                        logger.error("Schema deletion failed", schema_id=schema_id, error=str(e))
                        raise ServerError("Failed to delete table") from e

                self.registry.deregister(table_name)
            break

        logger.info(
            "Schema deleted",
            schema_id=schema_id,
            table_name=table_name,
            records_deleted=records_deleted,
        )
        return {
            "schema_id": schema_id,
            "table_name": table_name,
            "records_deleted": records_deleted,
        }

    async def list_schemas(self) -> list[RawSchemaDescriptor]:
        """List every table in its author-facing form."""
        async with self.session_factory() as session:
            raws = await SchemaRepository(session).list_raw()
            return [self.raw_from_model(raw) for raw in raws]

    async def get_schema(self, schema_id: str) -> RawSchemaDescriptor:
        """Get one table in its author-facing form.

        Raises:
            NotFoundError: If the schema does not exist.
        """
        async with self.session_factory() as session:
            raw = await SchemaRepository(session).get_raw_by_schema_id(schema_id)
            if raw is None:
                raise NotFoundError(
                    f"Schema '{schema_id}' not found", details={"schema_id": schema_id}
                )
            return self.raw_from_model(raw)

    async def get_schema_by_name(self, table_name: str) -> RawSchemaDescriptor:
        """Get one table by its (author-typed or normalized) name."""
        normalized = normalize_name(table_name)
        async with self.session_factory() as session:
            schema = await SchemaRepository(session).get_by_table_name(normalized)
            if schema is None:
                raise NotFoundError(
                    f"Table '{normalized}' not found", details={"table_name": normalized}
                )
            return self.raw_from_model(schema.raw)

    async def rehydrate(self) -> int:
        """Rebuild the registry from the schema store.

        Physical tables missing from the database are recreated empty.

        Returns:
            Number of registered tables.
        """
        async with self.session_factory() as session:
            schemas = await SchemaRepository(session).list_all()
            descriptors = [self.descriptor_from_model(schema) for schema in schemas]
            for descriptor in descriptors:
                await self.table_builder.create_table(session, descriptor)
            await session.commit()

        self.registry.clear()
        for descriptor in descriptors:
            self.registry.register(self.build_handle(descriptor))

        logger.info("Registry rehydrated", table_count=len(descriptors))
        return len(descriptors)
