"""Record validation service for validating record data against table schemas.

Ensures record data conforms to a table's field specs before every write.
Values are checked against the storage type, and Email/File fields get the
extra checks their author-facing type implies.
"""

import re
from dataclasses import dataclass
from typing import Any, Iterable

from reportflow.domain.entities import FieldSpec, FieldType, StorageType

# Email validation pattern (simplified but effective)
EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")

TRUE_STRINGS = frozenset({"true", "yes", "1"})
FALSE_STRINGS = frozenset({"false", "no", "0"})


@dataclass
class RecordValidationError:
    """A single record validation error."""

    field: str
    message: str
    code: str


class RecordValidator:
    """Validator for record data against table field specs.

    Validates field types, required fields, and applies default values.
    """

    @classmethod
    def validate_text(cls, value: Any, field_name: str) -> RecordValidationError | None:
        """Validate a text field value."""
        if not isinstance(value, str):
            return RecordValidationError(
                field=field_name,
                message=f"Expected text value, got {type(value).__name__}",
                code="invalid_type",
            )
        return None

    @classmethod
    def validate_number(cls, value: Any, field_name: str) -> RecordValidationError | None:
        """Validate a number field value."""
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            return RecordValidationError(
                field=field_name,
                message=f"Expected number value, got {type(value).__name__}",
                code="invalid_type",
            )
        return None

    @classmethod
    def validate_boolean(cls, value: Any, field_name: str) -> RecordValidationError | None:
        """Validate a boolean field value."""
        if not isinstance(value, bool):
            return RecordValidationError(
                field=field_name,
                message=f"Expected boolean value, got {type(value).__name__}",
                code="invalid_type",
            )
        return None

    @classmethod
    def validate_reference(cls, value: Any, field_name: str) -> RecordValidationError | None:
        """Validate a reference field value.

        References are identity strings owned by an external collaborator.
        """
        if not isinstance(value, str):
            return RecordValidationError(
                field=field_name,
                message=f"Expected reference ID (string), got {type(value).__name__}",
                code="invalid_type",
            )

        if not value.strip():
            return RecordValidationError(
                field=field_name,
                message="Reference ID cannot be empty",
                code="empty_reference",
            )

        return None

    @classmethod
    def validate_email(cls, value: Any, field_name: str) -> RecordValidationError | None:
        """Validate an email field value."""
        error = cls.validate_text(value, field_name)
        if error:
            return error

        if not EMAIL_PATTERN.match(value):
            return RecordValidationError(
                field=field_name,
                message="Invalid email format",
                code="invalid_email_format",
            )

        return None

    @classmethod
    def validate_file(cls, value: Any, field_name: str) -> RecordValidationError | None:
        """Validate a file field value: the retrieval handle of a stored blob."""
        error = cls.validate_text(value, field_name)
        if error:
            return error

        if not value.strip():
            return RecordValidationError(
                field=field_name,
                message="File handle cannot be empty",
                code="empty_file_handle",
            )

        return None

    @classmethod
    def validate_field_value(cls, value: Any, spec: FieldSpec) -> RecordValidationError | None:
        """Validate a single field value against its spec.

        Args:
            value: The value to validate.
            spec: The field spec from the table descriptor.

        Returns:
            RecordValidationError if invalid, None if valid.
        """
        if spec.source_type == FieldType.EMAIL:
            error = cls.validate_email(value, spec.name)
        elif spec.source_type == FieldType.FILE:
            error = cls.validate_file(value, spec.name)
        else:
            validators = {
                StorageType.TEXT: cls.validate_text,
                StorageType.NUMBER: cls.validate_number,
                StorageType.BOOLEAN: cls.validate_boolean,
                StorageType.REFERENCE: cls.validate_reference,
            }
            error = validators[spec.storage_type](value, spec.name)

        if error is None and spec.choices is not None and value not in spec.choices:
            error = RecordValidationError(
                field=spec.name,
                message=f"Value must be one of: {', '.join(spec.choices)}",
                code="invalid_choice",
            )

        return error

    @classmethod
    def coerce_value(cls, value: Any, spec: FieldSpec) -> Any:
        """Convert a spreadsheet cell into the field's storage type.

        Values that cannot be converted are returned unchanged so that
        validation reports them.
        """
        if value is None:
            return None

        if spec.storage_type == StorageType.NUMBER:
            if isinstance(value, str):
                text = value.strip().replace(",", "")
                try:
                    number = float(text)
                except ValueError:
                    return value
                return int(number) if number.is_integer() else number
            return value

        if spec.storage_type == StorageType.BOOLEAN:
            if isinstance(value, str):
                lowered = value.strip().lower()
                if lowered in TRUE_STRINGS:
                    return True
                if lowered in FALSE_STRINGS:
                    return False
            return value

        # Text and reference columns: numbers read from sheets become text
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        if isinstance(value, str):
            return value.strip()
        return value

    @staticmethod
    def is_blank(value: Any) -> bool:
        return value is None or (isinstance(value, str) and not value.strip())

    @classmethod
    def validate_and_apply_defaults(
        cls,
        data: dict[str, Any],
        fields: dict[str, FieldSpec],
        partial: bool = False,
        writable_system_fields: Iterable[str] = (),
    ) -> tuple[dict[str, Any], list[RecordValidationError]]:
        """Validate record data against field specs and apply default values.

        Args:
            data: The record data to validate.
            fields: The table's field specs (author and system).
            partial: If True, only validate fields present in data (for patches).
            writable_system_fields: System fields the caller may set directly.

        Returns:
            Tuple of (processed_data, errors).
        """
        errors: list[RecordValidationError] = []
        processed_data: dict[str, Any] = {}
        writable = set(writable_system_fields)

        for field_name in data:
            spec = fields.get(field_name)
            if spec is None:
                errors.append(
                    RecordValidationError(
                        field=field_name,
                        message=f"Unknown field '{field_name}' not defined in table schema",
                        code="unknown_field",
                    )
                )
            elif spec.system and field_name not in writable:
                errors.append(
                    RecordValidationError(
                        field=field_name,
                        message=f"System field '{field_name}' cannot be set directly",
                        code="system_field",
                    )
                )

        for spec in fields.values():
            field_name = spec.name
            settable = not spec.system or field_name in writable

            if settable and field_name in data:
                value = data[field_name]

                if cls.is_blank(value) and spec.required:
                    errors.append(
                        RecordValidationError(
                            field=field_name,
                            message=f"Required field '{field_name}' cannot be empty",
                            code="required_empty",
                        )
                    )
                elif cls.is_blank(value):
                    processed_data[field_name] = None
                else:
                    error = cls.validate_field_value(value, spec)
                    if error:
                        errors.append(error)
                    else:
                        processed_data[field_name] = value
            elif not partial:
                if spec.required:
                    errors.append(
                        RecordValidationError(
                            field=field_name,
                            message=f"Required field '{field_name}' is missing",
                            code="required_missing",
                        )
                    )
                elif spec.default is not None:
                    processed_data[field_name] = spec.default

        return processed_data, errors
