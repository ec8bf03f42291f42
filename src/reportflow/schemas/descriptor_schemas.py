"""Pydantic schemas for table field descriptors."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from reportflow.domain.entities import FieldType


def _parse_flag(value: Any) -> Any:
    """Accept the string flags used by table authors ("true"/"false")."""
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "yes", "1"):
            return True
        if lowered in ("false", "no", "0", ""):
            return False
    return value


class FieldDescriptor(BaseModel):
    """One author-declared field of a report table."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    field_name: str = Field(
        ...,
        alias="FieldName",
        min_length=1,
        max_length=64,
        description="Field name as typed by the author",
    )
    field_type: FieldType = Field(
        ...,
        alias="FieldType",
        description="Field type: Text, Number, Email, File",
    )
    field_required: bool = Field(default=False, alias="FieldRequired")
    field_unique: bool = Field(default=False, alias="FieldUnique")
    placeholder: str = Field(default="", description="Hint text shown to submitters")

    @field_validator("field_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Field name must not be blank")
        return v

    @field_validator("field_type", mode="before")
    @classmethod
    def normalize_type(cls, v: Any) -> Any:
        """Match field types case-insensitively."""
        if isinstance(v, str):
            for field_type in FieldType:
                if field_type.value.lower() == v.strip().lower():
                    return field_type
        return v

    @field_validator("field_required", "field_unique", mode="before")
    @classmethod
    def parse_flags(cls, v: Any) -> Any:
        return _parse_flag(v)

    @field_validator("placeholder", mode="before")
    @classmethod
    def default_placeholder(cls, v: Any) -> Any:
        return "" if v is None else v

    def to_raw(self) -> dict[str, str]:
        """Author-facing form, as kept by the raw schema store."""
        return {
            "FieldName": self.field_name,
            "FieldType": self.field_type.value,
            "FieldRequired": "true" if self.field_required else "false",
            "FieldUnique": "true" if self.field_unique else "false",
            "placeholder": self.placeholder,
        }
