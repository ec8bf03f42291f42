"""Readers turning uploaded CSV and XLSX files into row dicts.

Header cells are normalized the same way as field names and fully blank
rows are skipped.
"""

import csv
from pathlib import Path
from typing import Any

import openpyxl

from reportflow.core.errors import ValidationError
from reportflow.core.logging import get_logger
from reportflow.domain.entities import normalize_name

logger = get_logger(__name__)

SUPPORTED_EXTENSIONS = (".csv", ".xlsx")


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class TabularReader:
    """Reads the first sheet of a spreadsheet or a CSV file."""

    def __init__(self, allowed_extensions: list[str] | tuple[str, ...] = SUPPORTED_EXTENSIONS) -> None:
        self.allowed_extensions = tuple(
            ext for ext in allowed_extensions if ext in SUPPORTED_EXTENSIONS
        )

    def read(self, file_path: str | Path) -> list[dict[str, Any]]:
        """Read a file into a list of row dicts keyed by normalized header.

        Raises:
            ValidationError: If the extension is not supported or the file
                cannot be parsed.
        """
        path = Path(file_path)
        extension = path.suffix.lower()
        if extension not in self.allowed_extensions:
            raise ValidationError(
                f"Unsupported file type '{extension or path.name}'",
                details={"allowed": list(self.allowed_extensions)},
            )

        try:
            if extension == ".csv":
                header, rows = self.read_csv(path)
            else:
                header, rows = self.read_xlsx(path)
        except (OSError, UnicodeDecodeError, csv.Error) as e:
            raise ValidationError(f"Could not read '{path.name}': {e}") from e

        records = self.to_records(header, rows)
        logger.debug("File parsed", file=path.name, rows=len(records))
        return records

    @staticmethod
    def read_csv(path: Path) -> tuple[list[Any], list[list[Any]]]:
        with path.open(newline="", encoding="utf-8-sig") as f:
            reader = csv.reader(f)
            header = next(reader, [])
            return header, [row for row in reader]

    @staticmethod
    def read_xlsx(path: Path) -> tuple[list[Any], list[list[Any]]]:
        try:
            wb = openpyxl.load_workbook(path, read_only=True, data_only=True)
        except Exception as e:
            # openpyxl raises a mix of zipfile and parser errors for bad files
            raise ValidationError(f"Could not read '{path.name}' as a workbook") from e
        try:
            ws = wb.worksheets[0]
            values = [list(row) for row in ws.iter_rows(values_only=True)]
        finally:
            wb.close()
        if not values:
            return [], []
        return values[0], values[1:]

    @staticmethod
    def to_records(header: list[Any], rows: list[list[Any]]) -> list[dict[str, Any]]:
        columns = [normalize_name(str(cell)) if not _is_blank(cell) else None for cell in header]

        records = []
        for row in rows:
            if all(_is_blank(cell) for cell in row):
                continue
            record = {}
            for column, cell in zip(columns, row):
                if column is not None:
                    record[column] = cell
            records.append(record)
        return records
