"""Evaluations, ratings, and direct student skills."""

from __future__ import annotations

import logging
import sqlite3

import psycopg

import models
from app.errors import InvalidReferenceError, NotFoundError, TransactionFailedError
from app.schemas import (
    CreateAssessmentRequest,
    UpdateAssessmentRequest,
    UpdateStudentSkillsRequest,
)
from app.services.reconciler import (
    OwnerKind,
    collapse_duplicates,
    load_associations,
    reconcile,
)

logger = logging.getLogger(__name__)


def assessment_payload(row: dict[str, object]) -> dict[str, object]:
    assessment_id = int(row["id"])  # type: ignore[arg-type]
    return {
        "id": assessment_id,
        "studentId": row["student_id"],
        "kind": row["kind"],
        "comment": row["comment"],
        "createdAt": row["created_at"],
        "updatedAt": row["updated_at"],
        "skills": load_associations(OwnerKind.ASSESSMENT, assessment_id),
    }


def _require_assessment(kind: str, assessment_id: int) -> dict[str, object]:
    row = models.get_assessment(assessment_id)
    if row is None or row["kind"] != kind:
        raise NotFoundError(f"{kind.capitalize()} {assessment_id} not found.")
    return row


def get_assessment(kind: str, assessment_id: int) -> dict[str, object]:
    return assessment_payload(_require_assessment(kind, assessment_id))


def create_assessment(kind: str, request: CreateAssessmentRequest) -> dict[str, object]:
    """Create an evaluation or rating with its initial skill scores."""
    student_id = models.get_student_id_by_code(request.code)
    if student_id is None:
        raise NotFoundError(f"Student {request.code!r} not found.")

    entries = collapse_duplicates(request.entries)
    try:
        with models.transaction() as cur:
            missing = models.find_missing_ids(cur, "skills", (e.skill_id for e in entries))
            if missing:
                raise InvalidReferenceError("skill", missing)
            assessment_id = models.insert_assessment(
                cur, student_id=student_id, kind=kind, comment=request.comment
            )
            for entry in entries:
                models.upsert_association(
                    cur,
                    models.ASSESSMENT_SKILLS,
                    assessment_id,
                    entry.skill_id,
                    entry.score,
                )
    except (sqlite3.Error, psycopg.Error) as exc:
        logger.exception("Creating %s for student %s rolled back", kind, request.code)
        raise TransactionFailedError(f"Failed to create {kind}.") from exc

    logger.info("Created %s %s for student %s", kind, assessment_id, request.code)
    return get_assessment(kind, assessment_id)


def update_assessment(
    kind: str, assessment_id: int, request: UpdateAssessmentRequest
) -> dict[str, object]:
    """Reconcile an assessment's skill scores and comment against the request."""
    _require_assessment(kind, assessment_id)
    reconcile(
        OwnerKind.ASSESSMENT,
        assessment_id,
        request.entries,
        comment=request.comment,
    )
    return get_assessment(kind, assessment_id)


def delete_assessment(kind: str, assessment_id: int) -> dict[str, object]:
    """Delete an assessment; its skill scores go with it. Returns the last state."""
    snapshot = get_assessment(kind, assessment_id)
    if not models.delete_assessment(assessment_id):
        raise NotFoundError(f"{kind.capitalize()} {assessment_id} not found.")
    return snapshot


def update_student_skills(code: str, request: UpdateStudentSkillsRequest) -> dict[str, object]:
    """Reconcile the skill set attached directly to a student."""
    student_id = models.get_student_id_by_code(code)
    if student_id is None:
        raise NotFoundError(f"Student {code!r} not found.")
    result = reconcile(OwnerKind.STUDENT, student_id, request.entries)
    return {"code": code, "skills": result.associations}


def list_student_assessments(student_id: int) -> list[dict[str, object]]:
    return [assessment_payload(row) for row in models.list_assessments_for_student(student_id)]
