"""Repository for schema store operations.

Provides CRUD operations for the normalized and raw schema tables.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from reportflow.infrastructure.persistence.models import RawSchemaModel, SchemaModel


class SchemaRepository:
    """Repository for schema store database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository with a database session.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session

    async def create(self, schema: SchemaModel, raw: RawSchemaModel) -> SchemaModel:
        """Create a normalized schema together with its raw companion."""
        schema.raw = raw
        self.session.add(schema)
        await self.session.flush()
        return schema

    async def get_by_id(self, schema_id: str) -> SchemaModel | None:
        result = await self.session.execute(
            select(SchemaModel).where(SchemaModel.id == schema_id)
        )
        return result.scalar_one_or_none()

    async def get_by_table_name(self, table_name: str) -> SchemaModel | None:
        result = await self.session.execute(
            select(SchemaModel).where(SchemaModel.table_name == table_name)
        )
        return result.scalar_one_or_none()

    async def table_name_exists(self, table_name: str) -> bool:
        result = await self.session.execute(
            select(SchemaModel.id).where(SchemaModel.table_name == table_name).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def list_all(self) -> list[SchemaModel]:
        result = await self.session.execute(select(SchemaModel).order_by(SchemaModel.table_name))
        return list(result.scalars().all())

    async def list_raw(self) -> list[RawSchemaModel]:
        result = await self.session.execute(
            select(RawSchemaModel).order_by(RawSchemaModel.table_name)
        )
        return list(result.scalars().all())

    async def get_raw_by_schema_id(self, schema_id: str) -> RawSchemaModel | None:
        result = await self.session.execute(
            select(RawSchemaModel).where(RawSchemaModel.schema_id == schema_id)
        )
        return result.scalar_one_or_none()

    async def update(self, schema: SchemaModel) -> SchemaModel:
        await self.session.flush()
        return schema

    async def delete(self, schema: SchemaModel) -> None:
        """Delete a schema; the raw companion is deleted with it."""
        await self.session.delete(schema)
        await self.session.flush()
