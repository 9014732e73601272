import io

import pandas as pd
import pytest

import models
from app.errors import FileDecodeError, UnsupportedFormatError
from app.services.student_import import (
    TEMPLATE_HEADER,
    build_template,
    import_bulk,
    normalize_header,
)


def _row(catalog, code, **overrides):
    row = {
        "code": code,
        "name": "Karim Haddad",
        "email": f"{code.lower()}@example.com",
        "phone": "0555554544",
        "address": "Bab Ezzouar, Algiers",
        "birth_date": "2000-01-15",
        "birth_place": "Oran",
        "enrollment_year": "2023-09-01",
        "gradeId": str(catalog["grades"]["L2"]),
        "specialtyId": str(catalog["specialties"]["Web"]),
    }
    row.update(overrides)
    return row


def _csv(rows) -> bytes:
    frame = pd.DataFrame(rows, columns=list(TEMPLATE_HEADER))
    return frame.to_csv(index=False).encode("utf-8")


def _xlsx(rows) -> bytes:
    buffer = io.BytesIO()
    pd.DataFrame(rows, columns=list(TEMPLATE_HEADER)).to_excel(buffer, index=False, engine="openpyxl")
    return buffer.getvalue()


def test_mixed_file_reports_each_row(catalog):
    data = _csv(
        [
            _row(catalog, "IMP001", email=""),
            _row(catalog, "IMP002", gradeId="999"),
            _row(catalog, "IMP003"),
        ]
    )

    result = import_bulk("students.csv", data)

    assert result.success_count == 1
    assert result.failed_count == 2
    assert [(error.row, error.field) for error in result.errors] == [(2, "required"), (3, "grade")]
    assert "email" in result.errors[0].message
    assert models.count_students() == 1
    assert models.get_student_id_by_code("IMP003") is not None
    assert models.get_student_id_by_code("IMP001") is None


def test_counts_always_add_up(catalog):
    rows = [
        _row(catalog, "CNT001"),
        _row(catalog, "CNT002", specialtyId="abc"),
        _row(catalog, "CNT003", birth_date="not-a-date"),
        _row(catalog, "CNT004"),
    ]

    result = import_bulk("students.csv", _csv(rows))

    assert result.success_count + result.failed_count == len(rows)
    assert {error.field for error in result.errors} == {"specialty", "database"}
    assert result.to_dict()["success"] == 2


def test_byte_order_mark_header_is_recognized(catalog):
    data = "\ufeff".encode("utf-8") + _csv([_row(catalog, "BOM001")])

    result = import_bulk("students.csv", data)

    assert result.success_count == 1
    assert result.errors == []


def test_normalize_header_strips_bom_and_whitespace():
    assert normalize_header("\ufeff code ") == "code"
    assert normalize_header(" gradeId") == "gradeId"


def test_duplicate_code_is_a_database_failure(catalog):
    data = _csv([_row(catalog, "DUP001"), _row(catalog, "DUP001", name="Someone Else")])

    result = import_bulk("students.csv", data)

    assert result.success_count == 1
    assert len(result.errors) == 1
    assert result.errors[0].row == 3
    assert result.errors[0].field == "database"


def test_xlsx_upload_is_decoded(catalog):
    data = _xlsx([_row(catalog, "XLS001"), _row(catalog, "XLS002", gradeId="2.0")])

    result = import_bulk("Students.XLSX", data)

    assert result.success_count == 2
    assert result.failed_count == 0


def test_year_only_enrollment_maps_to_january_first(catalog):
    import_bulk("students.csv", _csv([_row(catalog, "YR0001", enrollment_year="2021")]))

    student = models.get_student_by_code("YR0001")
    assert student["enrollment_year"] == "2021-01-01"
    assert student["birth_date"] == "2000-01-15"


def test_prefetched_lookups_give_same_outcome(catalog, monkeypatch):
    monkeypatch.setenv("IMPORT_PREFETCH_LOOKUPS", "true")
    data = _csv([_row(catalog, "PRE001"), _row(catalog, "PRE002", gradeId="999")])

    result = import_bulk("students.csv", data)

    assert result.success_count == 1
    assert [(error.row, error.field) for error in result.errors] == [(3, "grade")]


def test_passed_deadline_marks_remaining_rows(catalog):
    data = _csv([_row(catalog, "DL0001"), _row(catalog, "DL0002")])

    result = import_bulk("students.csv", data, deadline=0.0)

    assert result.success_count == 0
    assert [error.field for error in result.errors] == ["deadline", "deadline"]
    assert models.count_students() == 0


def test_header_only_file_imports_nothing(catalog):
    result = import_bulk("students.csv", _csv([]))

    assert result.to_dict() == {"success": 0, "failed": 0, "errors": []}


def test_empty_file_is_a_decode_error(app):
    with pytest.raises(FileDecodeError):
        import_bulk("students.csv", b"")


@pytest.mark.parametrize("file_name", ["students.xlsx", "students.xls"])
def test_corrupt_spreadsheet_is_a_decode_error(app, file_name):
    with pytest.raises(FileDecodeError):
        import_bulk(file_name, b"this is not a workbook")


def test_legacy_xls_is_read_with_xlrd(app, monkeypatch):
    engines = []
    real_read_excel = pd.read_excel

    def recording_read_excel(*args, **kwargs):
        engines.append(kwargs.get("engine"))
        return real_read_excel(*args, **kwargs)

    monkeypatch.setattr(pd, "read_excel", recording_read_excel)

    with pytest.raises(FileDecodeError) as excinfo:
        import_bulk("legacy.xls", b"this is not a workbook")

    assert engines == ["xlrd"]
    assert "corrupt" in str(excinfo.value).lower()


@pytest.mark.parametrize("file_name", ["empty.xls", "empty.xlsx"])
def test_empty_spreadsheet_is_a_decode_error(app, file_name):
    with pytest.raises(FileDecodeError):
        import_bulk(file_name, b"")


def test_unsupported_extension_is_rejected(app):
    with pytest.raises(UnsupportedFormatError):
        import_bulk("students.txt", b"code,name\n")


def test_oversized_file_is_rejected(catalog, monkeypatch):
    monkeypatch.setenv("MAX_IMPORT_SIZE_MB", "0")

    with pytest.raises(FileDecodeError):
        import_bulk("students.csv", _csv([_row(catalog, "BIG001")]))


def test_template_has_header_and_example_row():
    lines = build_template().decode("utf-8").splitlines()

    assert lines[0] == ",".join(TEMPLATE_HEADER)
    assert lines[1].startswith("STU001,John Doe,")
    assert len(lines) == 2
