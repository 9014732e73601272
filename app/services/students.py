"""Student profile operations."""

from __future__ import annotations

import logging
import math

import models
from app.errors import ConflictError, InvalidReferenceError, NotFoundError
from app.schemas import StudentInfoRequest, UpdateStudentActivitiesRequest
from app.services.assessments import list_student_assessments
from app.services.reconciler import OwnerKind, load_associations
from config.settings import get_settings

logger = logging.getLogger(__name__)


def _check_catalog_refs(request: StudentInfoRequest) -> None:
    if not models.grade_exists(request.grade_id):
        raise InvalidReferenceError("grade", [request.grade_id])
    if not models.specialty_exists(request.specialty_id):
        raise InvalidReferenceError("specialty", [request.specialty_id])


def index_students(page: int = 1, query: str = "") -> dict[str, object]:
    page_size = get_settings().STUDENTS_PAGE_SIZE
    page = max(page, 1)
    rows, total = models.list_students_page(page=page, page_size=page_size, query=query.strip())
    students = [
        {
            "code": row["code"],
            "name": row["name"],
            "email": row["email"],
            "grade": {"name": row["grade_name"]},
            "specialty": {"name": row["specialty_name"]},
        }
        for row in rows
    ]
    return {
        "students": students,
        "meta": {
            "currentPage": page,
            "perPage": page_size,
            "total": total,
            "lastPage": math.ceil(total / page_size) if page_size else 0,
        },
    }


def show_student(code: str) -> dict[str, object]:
    """Return a student with activities, direct skills, and assessments (newest first)."""
    row = models.get_student_by_code(code)
    if row is None:
        raise NotFoundError(f"Student {code!r} not found.")
    student_id = int(row["id"])  # type: ignore[arg-type]
    return {
        "id": student_id,
        "code": row["code"],
        "name": row["name"],
        "email": row["email"],
        "phone": row["phone"],
        "address": row["address"],
        "birth_date": row["birth_date"],
        "birth_place": row["birth_place"],
        "enrollment_year": row["enrollment_year"],
        "gradeId": row["grade_id"],
        "specialtyId": row["specialty_id"],
        "grade": {"name": row["grade_name"]},
        "specialty": {"name": row["specialty_name"]},
        "activities": models.list_student_activities(student_id),
        "skills": load_associations(OwnerKind.STUDENT, student_id),
        "assessments": list_student_assessments(student_id),
    }


def create_student(request: StudentInfoRequest) -> dict[str, object]:
    _check_catalog_refs(request)
    try:
        models.create_student(**request.to_fields())
    except models.DuplicateRecordError as exc:
        raise ConflictError(str(exc)) from exc
    logger.info("Created student %s", request.code)
    return show_student(request.code)


def update_student(code: str, request: StudentInfoRequest) -> dict[str, object]:
    _check_catalog_refs(request)
    try:
        updated = models.update_student(code, **request.to_fields())
    except models.DuplicateRecordError as exc:
        raise ConflictError(str(exc)) from exc
    if not updated:
        raise NotFoundError(f"Student {code!r} not found.")
    return show_student(request.code)


def delete_student(code: str) -> None:
    if not models.delete_student(code):
        raise NotFoundError(f"Student {code!r} not found.")
    logger.info("Deleted student %s", code)


def update_student_activities(
    code: str, request: UpdateStudentActivitiesRequest
) -> list[dict[str, object]]:
    """Replace the student's activity set with ``request.activity_ids``."""
    student_id = models.get_student_id_by_code(code)
    if student_id is None:
        raise NotFoundError(f"Student {code!r} not found.")

    wanted = list(dict.fromkeys(request.activity_ids))
    with models.transaction() as cur:
        missing = models.find_missing_ids(cur, "activities", wanted)
        if missing:
            raise InvalidReferenceError("activity", missing)
        current = models.fetch_student_activity_ids(cur, student_id)
        models.detach_activities(cur, student_id, sorted(current - set(wanted)))
        for activity_id in wanted:
            if activity_id not in current:
                models.attach_activity(cur, student_id, activity_id)

    return models.list_student_activities(student_id)
