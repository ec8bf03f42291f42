"""SQLAlchemy models for the schema store.

Every report table is described by a normalized row (``table_schemas``)
and an author-facing row (``raw_table_schemas``) linked by ``schema_id``.
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from reportflow.infrastructure.persistence.database import Base


class SchemaModel(Base):
    """Normalized, storage-facing schema descriptor.

    Attributes:
        id: Primary key (UUID string).
        table_name: Normalized table name.
        fields: JSON list of field specs, system fields included.
        created_at: Timestamp when the schema was created.
        updated_at: Timestamp when the schema was last updated.
    """

    __tablename__ = "table_schemas"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, comment="Schema ID (UUID)")
    table_name: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
        index=True,
        comment="Normalized table name",
    )
    fields: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="JSON list of normalized field specs",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    raw: Mapped["RawSchemaModel"] = relationship(
        back_populates="schema",
        cascade="all, delete-orphan",
        uselist=False,
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Schema(id={self.id}, table_name={self.table_name})>"


class RawSchemaModel(Base):
    """Author-facing schema descriptor, 1:1 with SchemaModel."""

    __tablename__ = "raw_table_schemas"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    schema_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("table_schemas.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    table_name: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    schema_definition: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="JSON list of field descriptors as declared by the author",
    )

    schema: Mapped[SchemaModel] = relationship(back_populates="raw")

    def __repr__(self) -> str:
        return f"<RawSchema(id={self.id}, table_name={self.table_name})>"
