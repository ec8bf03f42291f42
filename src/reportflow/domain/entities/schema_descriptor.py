"""Schema descriptors for runtime-defined report tables.

A table is described twice: the raw descriptor keeps the author's own
vocabulary (field type names, placeholders) and the normalized descriptor
maps every field onto a storage type. System fields are appended to every
normalized descriptor and cannot be declared by authors.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from reportflow.domain.entities.status import RecordStatus


class FieldType(str, Enum):
    """Field types available to table authors."""

    TEXT = "Text"
    NUMBER = "Number"
    EMAIL = "Email"
    FILE = "File"


class StorageType(str, Enum):
    """Field types as stored in a record table."""

    TEXT = "Text"
    NUMBER = "Number"
    BOOLEAN = "Boolean"
    REFERENCE = "Reference"


FIELD_TYPE_TO_STORAGE = {
    FieldType.TEXT: StorageType.TEXT,
    FieldType.NUMBER: StorageType.NUMBER,
    FieldType.EMAIL: StorageType.TEXT,
    FieldType.FILE: StorageType.TEXT,  # retrieval handle of the stored blob
}


@dataclass(frozen=True)
class FieldSpec:
    """Normalized definition of one column of a record table.

    Attributes:
        name: Normalized field name (also the column name).
        storage_type: How the value is stored.
        required: Whether a value must be present on create.
        unique: Whether values must be unique across the table.
        default: Value applied when the field is absent on create.
        choices: Allowed values, if the field is an enumeration.
        system: True for fields appended by ReportFlow itself.
        source_type: The author-facing type the field was declared with.
    """

    name: str
    storage_type: StorageType
    required: bool = False
    unique: bool = False
    default: Any = None
    choices: tuple[str, ...] | None = None
    system: bool = False
    source_type: FieldType | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "storage_type": self.storage_type.value,
            "required": self.required,
            "unique": self.unique,
            "default": self.default,
            "choices": list(self.choices) if self.choices is not None else None,
            "system": self.system,
            "source_type": self.source_type.value if self.source_type else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FieldSpec":
        choices = data.get("choices")
        source_type = data.get("source_type")
        return cls(
            name=data["name"],
            storage_type=StorageType(data["storage_type"]),
            required=bool(data.get("required", False)),
            unique=bool(data.get("unique", False)),
            default=data.get("default"),
            choices=tuple(choices) if choices is not None else None,
            system=bool(data.get("system", False)),
            source_type=FieldType(source_type) if source_type else None,
        )


SYSTEM_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec(
        name="status",
        storage_type=StorageType.TEXT,
        default=RecordStatus.PENDING.value,
        choices=tuple(s.value for s in RecordStatus),
        system=True,
    ),
    FieldSpec(name="submitted", storage_type=StorageType.BOOLEAN, default=False, system=True),
    FieldSpec(name="submitted_by", storage_type=StorageType.REFERENCE, system=True),
    FieldSpec(name="college", storage_type=StorageType.TEXT, default="", system=True),
    FieldSpec(name="department", storage_type=StorageType.TEXT, default="", system=True),
    FieldSpec(name="moderator_comment", storage_type=StorageType.TEXT, default="", system=True),
    FieldSpec(name="super_admin_comment", storage_type=StorageType.TEXT, default="", system=True),
    FieldSpec(name="reviewed_moderator", storage_type=StorageType.REFERENCE, system=True),
    FieldSpec(
        name="go_as_per_moderator", storage_type=StorageType.BOOLEAN, default=False, system=True
    ),
)

SYSTEM_FIELD_NAMES = frozenset(f.name for f in SYSTEM_FIELDS)

# Columns every record table carries besides the system fields
BOOKKEEPING_COLUMNS = frozenset({"id", "version", "created_at", "updated_at"})

RESERVED_FIELD_NAMES = SYSTEM_FIELD_NAMES | BOOKKEEPING_COLUMNS


# Pattern a normalized table or field name must match
NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")

WHITESPACE_RUN = re.compile(r"\s+")


def normalize_name(name: str) -> str:
    """Trim, collapse whitespace runs to underscores and lower-case."""
    return WHITESPACE_RUN.sub("_", name.strip()).lower()


@dataclass
class SchemaDescriptor:
    """Normalized, storage-facing description of a table.

    ``fields`` holds the author fields in declaration order followed by
    the system fields.
    """

    id: str
    table_name: str
    fields: dict[str, FieldSpec]

    @classmethod
    def build(cls, schema_id: str, table_name: str, author_fields: list[FieldSpec]) -> "SchemaDescriptor":
        """Create a descriptor from author fields, appending the system fields.

        Later author fields replace earlier ones with the same name.
        """
        fields: dict[str, FieldSpec] = {}
        for spec in author_fields:
            fields[spec.name] = spec
        for spec in SYSTEM_FIELDS:
            fields[spec.name] = spec
        return cls(id=schema_id, table_name=table_name, fields=fields)

    @property
    def author_fields(self) -> list[FieldSpec]:
        return [spec for spec in self.fields.values() if not spec.system]

    @property
    def author_field_names(self) -> list[str]:
        return [spec.name for spec in self.author_fields]

    def to_json_fields(self) -> list[dict[str, Any]]:
        return [spec.to_dict() for spec in self.fields.values()]

    @classmethod
    def from_json_fields(
        cls, schema_id: str, table_name: str, data: list[dict[str, Any]]
    ) -> "SchemaDescriptor":
        specs = [FieldSpec.from_dict(item) for item in data]
        return cls.build(schema_id, table_name, [s for s in specs if not s.system])


@dataclass
class RawSchemaDescriptor:
    """Author-facing companion of a SchemaDescriptor.

    Attributes:
        id: Raw descriptor ID.
        schema_id: ID of the normalized descriptor it belongs to.
        table_name: Normalized table name.
        fields: Field descriptors as the author declared them.
        system_fields: Names of the system fields appended to the table.
    """

    id: str
    schema_id: str
    table_name: str
    fields: list[dict[str, Any]]
    system_fields: list[str] = field(
        default_factory=lambda: [spec.name for spec in SYSTEM_FIELDS]
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "schema_id": self.schema_id,
            "table_name": self.table_name,
            "fields": list(self.fields),
            "system_fields": list(self.system_fields),
        }
