"""Bulk import of records from uploaded CSV and XLSX files."""

from pathlib import Path
from typing import Any

from reportflow.core.config import Settings, get_settings
from reportflow.core.errors import ValidationError
from reportflow.core.logging import LoggingContext, get_logger
from reportflow.domain.entities import Caller, Role, TableHandle, normalize_name
from reportflow.domain.services.record_service import RecordStore
from reportflow.domain.services.record_validator import RecordValidator
from reportflow.domain.services.timeline_service import TimelineService
from reportflow.infrastructure.importers import TabularReader

logger = get_logger(__name__)


class BulkImporter:
    """Validates an uploaded file against a table and inserts every row."""

    def __init__(
        self,
        records: RecordStore,
        timeline: TimelineService,
        reader: TabularReader | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.records = records
        self.timeline = timeline
        self.settings = settings or get_settings()
        self.reader = reader or TabularReader(self.settings.allowed_import_extensions)

    @staticmethod
    def find_missing(rows: list[dict[str, Any]], required: list[str]) -> tuple[int, list[str]] | None:
        """Find the first row lacking a value for any required field.

        Returns:
            Tuple of (1-based row number, missing field names), or None.
        """
        for index, row in enumerate(rows):
            missing = [name for name in required if RecordValidator.is_blank(row.get(name))]
            if missing:
                return index + 1, missing
        return None

    @staticmethod
    def coerce_row(handle: TableHandle, row: dict[str, Any]) -> dict[str, Any]:
        """Keep the author columns of a row, converted to their storage types."""
        coerced = {}
        for spec in handle.descriptor.author_fields:
            if spec.name in row:
                coerced[spec.name] = RecordValidator.coerce_value(row[spec.name], spec)
        return coerced

    async def bulk_upload(self, caller: Caller, table_name: str, file_path: str | Path) -> int:
        """Insert every row of a file into a table in one transaction.

        Every author field must have a value in every row. The file is
        deleted whether or not the import succeeds.

        Returns:
            Number of inserted records.

        Raises:
            ModelNotFoundError: If the table is not registered.
            ValidationError: If the file is unreadable, empty or a row is
                missing a field.
            WindowClosedError: If a submitter uploads outside the window.
        """
        path = Path(file_path)
        with LoggingContext(table_name=normalize_name(table_name), submitted_by=caller.id):
            try:
                count = await self.import_rows(caller, table_name, path)
            finally:
                path.unlink(missing_ok=True)

            logger.info("File imported", file=path.name, count=count)
        return count

    async def import_rows(self, caller: Caller, table_name: str, path: Path) -> int:
        if caller.role == Role.SUBMITTER and self.settings.enforce_submission_window:
            await self.timeline.check_window()

        handle = self.records.registry.resolve(table_name)
        required = handle.descriptor.author_field_names

        rows = self.reader.read(path)
        if not rows:
            raise ValidationError(
                "Uploaded file contains no rows", details={"table_name": handle.table_name}
            )

        offending = self.find_missing(rows, required)
        if offending is not None:
            row_number, missing = offending
            raise ValidationError(
                f"Row {row_number} is missing required fields: {', '.join(missing)}",
                details={
                    "table_name": handle.table_name,
                    "row": row_number,
                    "missing": missing,
                },
            )

        prepared = [self.coerce_row(handle, row) for row in rows]
        record_ids = await self.records.insert_many(handle.table_name, prepared, caller.context())
        return len(record_ids)
