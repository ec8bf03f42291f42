"""Dynamic table builder for creating physical tables from schema descriptors.

Generates DDL and creates or drops the tables backing registered schemas.
"""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncSession

from reportflow.core.logging import get_logger
from reportflow.domain.entities import FieldSpec, SchemaDescriptor, StorageType

logger = get_logger(__name__)


# SQL type mapping for each storage type
STORAGE_TYPE_TO_SQL = {
    StorageType.TEXT: "TEXT",
    StorageType.NUMBER: "REAL",
    StorageType.BOOLEAN: "INTEGER",  # 0/1 for SQLite compatibility
    StorageType.REFERENCE: "TEXT",
}

# Bookkeeping columns added ahead of every field column
BOOKKEEPING_COLUMN_DEFS = [
    ("id", "TEXT PRIMARY KEY"),
    ("version", "INTEGER NOT NULL DEFAULT 1"),
    ("created_at", "DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP"),
    ("updated_at", "DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP"),
]


class TableBuilder:
    """Builds and creates physical database tables from schema descriptors."""

    def __init__(self, prefix: str = "tbl_") -> None:
        self.prefix = prefix

    def physical_name(self, table_name: str) -> str:
        """Physical table name for a normalized table name.

        Prefixed to keep dynamic tables apart from the fixed tables.
        """
        return f"{self.prefix}{table_name.lower()}"

    @staticmethod
    def format_default(default: Any) -> str:
        if isinstance(default, bool):
            return f"DEFAULT {1 if default else 0}"
        if isinstance(default, str):
            escaped = default.replace("'", "''")
            return f"DEFAULT '{escaped}'"
        return f"DEFAULT {default}"

    @classmethod
    def build_column_def(cls, spec: FieldSpec) -> str:
        """Build the column definition for a single field.

        Required fields are enforced by the record validator, not by the
        column, so that a required author field may be left empty on
        rows inserted before it was declared.
        """
        parts = [f'"{spec.name}"', STORAGE_TYPE_TO_SQL.get(spec.storage_type, "TEXT")]

        if spec.default is not None:
            parts.append(cls.format_default(spec.default))

        if spec.unique:
            parts.append("UNIQUE")

        return " ".join(parts)

    def build_create_table_ddl(self, descriptor: SchemaDescriptor) -> str:
        """Build the complete CREATE TABLE statement."""
        physical = self.physical_name(descriptor.table_name)

        column_defs = [f'"{col}" {col_type}' for col, col_type in BOOKKEEPING_COLUMN_DEFS]
        for spec in descriptor.fields.values():
            column_defs.append(self.build_column_def(spec))

        columns_sql = ",\n  ".join(column_defs)
        return f'CREATE TABLE IF NOT EXISTS "{physical}" (\n  {columns_sql}\n);'

    def build_index_ddl(self, descriptor: SchemaDescriptor) -> list[str]:
        """Build CREATE INDEX statements for the columns the workflow filters on."""
        physical = self.physical_name(descriptor.table_name)
        indexed = ["submitted_by", "status", "department"]
        return [
            f'CREATE INDEX IF NOT EXISTS "idx_{physical}_{column}" ON "{physical}"("{column}");'
            for column in indexed
        ]

    async def create_table(
        self, conn: AsyncSession | AsyncConnection, descriptor: SchemaDescriptor
    ) -> str:
        """Create the physical table and its indexes.

        Runs on the caller's session or connection so that the DDL commits
        together with the schema store rows.

        Returns:
            The physical table name.
        """
        physical = self.physical_name(descriptor.table_name)
        create_table_ddl = self.build_create_table_ddl(descriptor)

        logger.info("Creating record table", table_name=descriptor.table_name, physical_name=physical)

        await conn.execute(text(create_table_ddl))
        logger.debug("Table created", physical_name=physical, ddl=create_table_ddl)

        for index_ddl in self.build_index_ddl(descriptor):
            await conn.execute(text(index_ddl))
            logger.debug("Index created", ddl=index_ddl)

        return physical

    async def drop_table(self, conn: AsyncSession | AsyncConnection, table_name: str) -> None:
        """Drop the physical table of a schema, and every record in it."""
        physical = self.physical_name(table_name)
        ddl = f'DROP TABLE IF EXISTS "{physical}";'
        await conn.execute(text(ddl))
        logger.info("Record table dropped", table_name=table_name, physical_name=physical)
