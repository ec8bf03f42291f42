"""Schema validation service for table names and field descriptors.

Normalizes author-supplied table and field names and turns field
descriptors into normalized field specs. Supported author field types:
Text, Number, Email, File.
"""

from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from reportflow.core.errors import ValidationError
from reportflow.domain.entities import (
    FIELD_TYPE_TO_STORAGE,
    NAME_PATTERN,
    RESERVED_FIELD_NAMES,
    FieldSpec,
    normalize_name,
)
from reportflow.schemas import FieldDescriptor


@dataclass
class SchemaValidationError:
    """A single schema validation error."""

    field: str
    message: str
    code: str


class SchemaValidator:
    """Validator for table definitions.

    Validates table names and field descriptors and builds the
    normalized field specs stored with a schema.
    """

    MAX_NAME_LENGTH = 64
    MAX_FIELD_NAME_LENGTH = 64

    @classmethod
    def validate_table_name(cls, name: str) -> list[SchemaValidationError]:
        """Validate an already normalized table name."""
        errors = []

        if not name:
            errors.append(
                SchemaValidationError(
                    field="table_name",
                    message="Table name is required",
                    code="name_required",
                )
            )
            return errors

        if len(name) > cls.MAX_NAME_LENGTH:
            errors.append(
                SchemaValidationError(
                    field="table_name",
                    message=f"Table name must be at most {cls.MAX_NAME_LENGTH} characters",
                    code="name_too_long",
                )
            )

        if not NAME_PATTERN.match(name):
            errors.append(
                SchemaValidationError(
                    field="table_name",
                    message="Table name must start with a letter and contain only letters, digits, spaces and underscores",
                    code="name_invalid_format",
                )
            )

        return errors

    @classmethod
    def validate_field_name(cls, name: str, field_index: int) -> list[SchemaValidationError]:
        """Validate an already normalized field name."""
        errors = []
        field_path = f"fields[{field_index}].FieldName"

        if len(name) > cls.MAX_FIELD_NAME_LENGTH:
            errors.append(
                SchemaValidationError(
                    field=field_path,
                    message=f"Field name must be at most {cls.MAX_FIELD_NAME_LENGTH} characters",
                    code="field_name_too_long",
                )
            )

        if not NAME_PATTERN.match(name):
            errors.append(
                SchemaValidationError(
                    field=field_path,
                    message="Field name must start with a letter and contain only letters, digits, spaces and underscores",
                    code="field_name_invalid_format",
                )
            )

        if name in RESERVED_FIELD_NAMES:
            errors.append(
                SchemaValidationError(
                    field=field_path,
                    message=f"Field name '{name}' is reserved and cannot be used",
                    code="field_name_reserved",
                )
            )

        return errors

    @classmethod
    def parse_descriptors(
        cls, descriptors: list[Any] | None
    ) -> tuple[list[FieldDescriptor], list[SchemaValidationError]]:
        """Parse raw field descriptors into FieldDescriptor models."""
        errors: list[SchemaValidationError] = []
        parsed: list[FieldDescriptor] = []

        if not descriptors or not isinstance(descriptors, list):
            errors.append(
                SchemaValidationError(
                    field="fields",
                    message="At least one field descriptor is required",
                    code="fields_empty",
                )
            )
            return parsed, errors

        for i, item in enumerate(descriptors):
            if isinstance(item, FieldDescriptor):
                parsed.append(item)
                continue
            try:
                parsed.append(FieldDescriptor.model_validate(item))
            except PydanticValidationError as e:
                for err in e.errors():
                    location = ".".join(str(part) for part in err["loc"])
                    errors.append(
                        SchemaValidationError(
                            field=f"fields[{i}].{location}" if location else f"fields[{i}]",
                            message=err["msg"],
                            code="field_descriptor_invalid",
                        )
                    )

        return parsed, errors

    @classmethod
    def build_field_specs(
        cls, descriptors: list[FieldDescriptor]
    ) -> tuple[list[FieldSpec], list[SchemaValidationError]]:
        """Normalize descriptors into field specs.

        Duplicate normalized names are kept in order; the schema descriptor
        keeps the last one.
        """
        errors: list[SchemaValidationError] = []
        specs: list[FieldSpec] = []

        for i, descriptor in enumerate(descriptors):
            name = normalize_name(descriptor.field_name)
            name_errors = cls.validate_field_name(name, i)
            if name_errors:
                errors.extend(name_errors)
                continue
            specs.append(
                FieldSpec(
                    name=name,
                    storage_type=FIELD_TYPE_TO_STORAGE[descriptor.field_type],
                    required=descriptor.field_required,
                    unique=descriptor.field_unique,
                    source_type=descriptor.field_type,
                )
            )

        return specs, errors

    @classmethod
    def validate(
        cls, table_name: str, descriptors: list[Any] | None
    ) -> tuple[str, list[FieldDescriptor], list[FieldSpec]]:
        """Validate a complete table definition.

        Returns:
            Tuple of (normalized table name, parsed descriptors, field specs).

        Raises:
            ValidationError: If the name or any descriptor is invalid.
        """
        normalized = normalize_name(table_name or "")
        errors = cls.validate_table_name(normalized)

        parsed, parse_errors = cls.parse_descriptors(descriptors)
        errors.extend(parse_errors)

        specs: list[FieldSpec] = []
        if not parse_errors:
            specs, spec_errors = cls.build_field_specs(parsed)
            errors.extend(spec_errors)

        if errors:
            error_messages = [f"{e.field}: {e.message}" for e in errors]
            raise ValidationError(
                f"Validation failed: {'; '.join(error_messages)}",
                details={"errors": [e.__dict__ for e in errors]},
            )

        return normalized, parsed, specs
