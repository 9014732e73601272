"""Bulk student import from CSV or spreadsheet uploads.

Rows are validated and inserted one at a time; each successful row is
committed on its own, so a bad row never undoes a good one.
"""

from __future__ import annotations

import csv
import io
import logging
import sqlite3
import time
import zipfile
from dataclasses import dataclass, field
from typing import Callable, Optional

import pandas as pd
import psycopg
from openpyxl.utils.exceptions import InvalidFileException
from xlrd import XLRDError
from xlrd.compdoc import CompDocError

import models
from app.errors import FileDecodeError, RowError, UnsupportedFormatError
from app.schemas import coerce_date
from config.settings import get_settings

logger = logging.getLogger(__name__)

TEMPLATE_HEADER = (
    "code",
    "name",
    "email",
    "phone",
    "address",
    "birth_date",
    "birth_place",
    "enrollment_year",
    "gradeId",
    "specialtyId",
)
TEMPLATE_EXAMPLE = (
    "STU001",
    "John Doe",
    "john@example.com",
    "0555554544",
    "Algiers address",
    "2000-01-15",
    "Algiers",
    "2023-09-01",
    "2",
    "3",
)
REQUIRED_FIELDS = (
    "code",
    "name",
    "email",
    "phone",
    "address",
    "birth_date",
    "birth_place",
    "enrollment_year",
    "specialtyId",
    "gradeId",
)
FIRST_DATA_ROW = 2


@dataclass
class ImportResult:
    success_count: int = 0
    failed_count: int = 0
    errors: list[RowError] = field(default_factory=list)

    def record_success(self) -> None:
        self.success_count += 1

    def record_failure(self, row: int, field_name: str, message: str) -> None:
        self.failed_count += 1
        self.errors.append(RowError(row=row, field=field_name, message=message))

    def to_dict(self) -> dict[str, object]:
        return {
            "success": self.success_count,
            "failed": self.failed_count,
            "errors": [error.to_dict() for error in self.errors],
        }


def normalize_header(name: object) -> str:
    """Strip a leading byte-order mark and surrounding whitespace."""
    text = str(name)
    if text.startswith("\ufeff"):
        text = text[1:]
    return text.strip()


def _clean_cell(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and pd.isna(value):
        return ""
    return str(value).strip()


def _decode_csv(data: bytes) -> pd.DataFrame:
    return pd.read_csv(
        io.BytesIO(data),
        dtype=str,
        keep_default_na=False,
        encoding="utf-8",
        skip_blank_lines=True,
    )


def _spreadsheet_decoder(engine: str) -> Callable[[bytes], pd.DataFrame]:
    def decode(data: bytes) -> pd.DataFrame:
        return pd.read_excel(
            io.BytesIO(data),
            sheet_name=0,
            dtype=str,
            keep_default_na=False,
            engine=engine,
        )

    return decode


_DECODERS: dict[str, Callable[[bytes], pd.DataFrame]] = {
    "csv": _decode_csv,
    "xlsx": _spreadsheet_decoder("openpyxl"),
    "xls": _spreadsheet_decoder("xlrd"),
}


def file_extension(file_name: str) -> str:
    if not file_name or "." not in file_name:
        return ""
    return file_name.rsplit(".", 1)[1].lower()


def decode_rows(file_name: str, data: bytes) -> list[dict[str, str]]:
    """Decode an upload into ordered ``{header: cell}`` rows.

    Raises:
        UnsupportedFormatError: The extension has no decoder.
        FileDecodeError: The bytes could not be read as that format.
    """
    ext = file_extension(file_name)
    decoder = _DECODERS.get(ext)
    if decoder is None:
        raise UnsupportedFormatError(f"Unsupported file format: {ext or file_name!r}")
    if not data:
        raise FileDecodeError(f"Could not read {file_name}: the file is empty.")

    try:
        frame = decoder(data)
    except (
        ValueError,
        KeyError,
        zipfile.BadZipFile,
        InvalidFileException,
        XLRDError,
        CompDocError,
    ) as exc:
        raise FileDecodeError(f"Could not read {file_name}: {exc}") from exc

    headers = [normalize_header(column) for column in frame.columns]
    return [
        {header: _clean_cell(value) for header, value in zip(headers, values)}
        for values in frame.itertuples(index=False, name=None)
    ]


def _parse_reference_id(value: str) -> Optional[int]:
    try:
        number = float(value)
    except ValueError:
        return None
    if not number.is_integer() or number < 1:
        return None
    return int(number)


def _reference_checks(prefetch: bool) -> tuple[Callable[[int], bool], Callable[[int], bool]]:
    if prefetch:
        grade_ids = models.list_grade_ids()
        specialty_ids = models.list_specialty_ids()
        return grade_ids.__contains__, specialty_ids.__contains__
    return models.grade_exists, models.specialty_exists


def _import_row(
    row_number: int,
    row: dict[str, str],
    result: ImportResult,
    grade_exists: Callable[[int], bool],
    specialty_exists: Callable[[int], bool],
) -> None:
    missing = [name for name in REQUIRED_FIELDS if not row.get(name)]
    if missing:
        result.record_failure(
            row_number, "required", f"Missing required fields: {', '.join(missing)}"
        )
        return

    grade_id = _parse_reference_id(row["gradeId"])
    if grade_id is None or not grade_exists(grade_id):
        result.record_failure(row_number, "grade", f'Grade with id "{row["gradeId"]}" not found')
        return

    specialty_id = _parse_reference_id(row["specialtyId"])
    if specialty_id is None or not specialty_exists(specialty_id):
        result.record_failure(
            row_number, "specialty", f'Specialty with id "{row["specialtyId"]}" not found'
        )
        return

    try:
        birth_date = coerce_date(row["birth_date"])
    except ValueError as exc:
        result.record_failure(row_number, "database", f"Invalid birth_date: {exc}")
        return
    try:
        enrollment_year = coerce_date(row["enrollment_year"], allow_year=True)
    except ValueError as exc:
        result.record_failure(row_number, "database", f"Invalid enrollment_year: {exc}")
        return

    try:
        models.create_student(
            code=row["code"],
            name=row["name"],
            email=row["email"],
            phone=row["phone"],
            address=row["address"],
            birth_date=birth_date,
            birth_place=row["birth_place"],
            enrollment_year=enrollment_year,
            grade_id=grade_id,
            specialty_id=specialty_id,
        )
    except (models.DuplicateRecordError, sqlite3.Error, psycopg.Error) as exc:
        result.record_failure(row_number, "database", str(exc) or "Failed to create student")
        return

    result.record_success()


def import_bulk(
    file_name: str,
    data: bytes,
    *,
    deadline: Optional[float] = None,
) -> ImportResult:
    """Import students from an uploaded file, collecting a per-row report.

    Only file-level problems raise; every row-level problem becomes a
    ``RowError`` and processing moves on to the next row. Once ``deadline``
    (a ``time.monotonic()`` instant) passes, each remaining row is reported
    as failed under ``deadline`` instead of being attempted.
    """
    settings = get_settings()
    if file_extension(file_name) not in _DECODERS:
        raise UnsupportedFormatError(f"Unsupported file format: {file_name!r}")
    max_bytes = settings.MAX_IMPORT_SIZE_MB * 1024 * 1024
    if len(data) > max_bytes:
        raise FileDecodeError(f"File exceeds the {settings.MAX_IMPORT_SIZE_MB} MB import limit.")

    rows = decode_rows(file_name, data)
    grade_exists, specialty_exists = _reference_checks(settings.IMPORT_PREFETCH_LOOKUPS)

    result = ImportResult()
    for index, row in enumerate(rows):
        row_number = index + FIRST_DATA_ROW
        if deadline is not None and time.monotonic() > deadline:
            result.record_failure(
                row_number, "deadline", "Import deadline passed before this row was processed."
            )
            continue
        _import_row(row_number, row, result, grade_exists, specialty_exists)

    logger.info(
        "Imported %s: %d succeeded, %d failed",
        file_name,
        result.success_count,
        result.failed_count,
    )
    for error in result.errors:
        logger.debug("Row %d failed (%s): %s", error.row, error.field, error.message)
    return result


def build_template() -> bytes:
    """Return the CSV import template: header plus one example row."""
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(TEMPLATE_HEADER)
    writer.writerow(TEMPLATE_EXAMPLE)
    return output.getvalue().encode("utf-8")
