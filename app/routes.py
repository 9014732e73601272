from __future__ import annotations

from typing import Optional

from flask import Blueprint, Response, jsonify, request
from flask_login import login_required, login_user, logout_user

from app.errors import InvalidReferenceError, ServiceError, ValidationError
from app.schemas import (
    CreateActivityRequest,
    CreateAssessmentRequest,
    CreateSkillRequest,
    LoginRequest,
    StudentInfoRequest,
    UpdateAssessmentRequest,
    UpdateStudentActivitiesRequest,
    UpdateStudentSkillsRequest,
)
from app.security import authenticate
from app.services import assessments, catalog, student_import, students

bp = Blueprint("core", __name__)

# kind -> JSON key carrying its skill scores
_ASSESSMENT_ROUTES = {
    "evaluations": ("evaluation", "skillEvaluations"),
    "ratings": ("rating", "skillRatings"),
}


def _envelope(success: bool, message: str, data: Optional[object] = None, status: int = 200):
    body: dict[str, object] = {"success": success, "message": message, "status": status}
    if data is not None:
        body["data"] = data
    return jsonify(body), status


def _json_payload() -> dict:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


@bp.errorhandler(ServiceError)
def handle_service_error(exc: ServiceError):
    data: Optional[dict[str, object]] = None
    if isinstance(exc, ValidationError):
        data = {"errors": exc.errors}
    elif isinstance(exc, InvalidReferenceError):
        data = {"entity": exc.entity, "missingIds": exc.missing_ids}
    return _envelope(False, exc.message, data, exc.status_code)


@bp.get("/health")
def health():
    return jsonify({"status": "ok", "service": "skilltrack"}), 200


@bp.post("/api/auth/login")
def api_login():
    credentials = LoginRequest.from_payload(_json_payload())
    admin = authenticate(credentials.username, credentials.password)
    if admin is None:
        return _envelope(False, "Invalid credentials.", status=401)
    login_user(admin)
    return _envelope(True, "Logged in.", {"id": admin.id, "username": admin.username})


@bp.post("/api/auth/logout")
@login_required
def api_logout():
    logout_user()
    return _envelope(True, "Logged out.")


# --- students ---


@bp.get("/api/students")
@login_required
def api_list_students():
    page = request.args.get("page", 1, type=int)
    query = request.args.get("q", "", type=str)
    return _envelope(True, "Students retrieved.", students.index_students(page=page, query=query))


@bp.post("/api/students")
@login_required
def api_create_student():
    student = students.create_student(StudentInfoRequest.from_payload(_json_payload()))
    return _envelope(True, "Student created.", student, 201)


@bp.get("/api/students/template")
@login_required
def api_student_template():
    response = Response(student_import.build_template(), mimetype="text/csv")
    response.headers["Content-Disposition"] = 'attachment; filename="student_template.csv"'
    return response


@bp.post("/api/students/import")
@login_required
def api_import_students():
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        raise ValidationError({"file": "A file upload is required."})
    result = student_import.import_bulk(upload.filename, upload.read())
    message = (
        f"Import completed: {result.success_count} success, {result.failed_count} failed"
    )
    return _envelope(True, message, result.to_dict())


@bp.get("/api/students/<code>")
@login_required
def api_show_student(code: str):
    return _envelope(True, "Student retrieved.", students.show_student(code))


@bp.put("/api/students/<code>")
@login_required
def api_update_student(code: str):
    student = students.update_student(code, StudentInfoRequest.from_payload(_json_payload()))
    return _envelope(True, "Student updated.", student)


@bp.delete("/api/students/<code>")
@login_required
def api_delete_student(code: str):
    students.delete_student(code)
    return _envelope(True, "Student deleted.")


@bp.put("/api/students/<code>/skills")
@login_required
def api_update_student_skills(code: str):
    payload = UpdateStudentSkillsRequest.from_payload(_json_payload())
    return _envelope(True, "Skills updated.", assessments.update_student_skills(code, payload))


@bp.put("/api/students/<code>/activities")
@login_required
def api_update_student_activities(code: str):
    payload = UpdateStudentActivitiesRequest.from_payload(_json_payload())
    activities = students.update_student_activities(code, payload)
    return _envelope(True, "Activities updated.", {"code": code, "activities": activities})


# --- evaluations & ratings ---


def _resolve_kind(collection: str) -> tuple[str, str]:
    # The URL converter only lets known collections through.
    return _ASSESSMENT_ROUTES[collection]


@bp.post("/api/<any(evaluations, ratings):collection>")
@login_required
def api_create_assessment(collection: str):
    kind, entries_key = _resolve_kind(collection)
    payload = CreateAssessmentRequest.from_payload(_json_payload(), entries_key)
    created = assessments.create_assessment(kind, payload)
    return _envelope(True, f"{kind.capitalize()} created.", created, 201)


@bp.get("/api/<any(evaluations, ratings):collection>/<int:assessment_id>")
@login_required
def api_show_assessment(collection: str, assessment_id: int):
    kind, _ = _resolve_kind(collection)
    return _envelope(
        True, f"{kind.capitalize()} retrieved.", assessments.get_assessment(kind, assessment_id)
    )


@bp.put("/api/<any(evaluations, ratings):collection>/<int:assessment_id>")
@login_required
def api_update_assessment(collection: str, assessment_id: int):
    kind, entries_key = _resolve_kind(collection)
    payload = UpdateAssessmentRequest.from_payload(_json_payload(), entries_key)
    updated = assessments.update_assessment(kind, assessment_id, payload)
    return _envelope(True, f"{kind.capitalize()} updated.", updated)


@bp.delete("/api/<any(evaluations, ratings):collection>/<int:assessment_id>")
@login_required
def api_delete_assessment(collection: str, assessment_id: int):
    kind, _ = _resolve_kind(collection)
    deleted = assessments.delete_assessment(kind, assessment_id)
    return _envelope(True, f"{kind.capitalize()} deleted.", deleted)


# --- catalog ---


@bp.get("/api/skills")
@login_required
def api_list_skills():
    return _envelope(True, "Skills retrieved.", catalog.list_skills())


@bp.post("/api/skills")
@login_required
def api_create_skill():
    skill = catalog.create_skill(CreateSkillRequest.from_payload(_json_payload()))
    return _envelope(True, "Skill created.", skill, 201)


@bp.get("/api/activities")
@login_required
def api_list_activities():
    return _envelope(True, "Activities retrieved.", catalog.list_activities())


@bp.post("/api/activities")
@login_required
def api_create_activity():
    activity = catalog.create_activity(CreateActivityRequest.from_payload(_json_payload()))
    return _envelope(True, "Activity created.", activity, 201)


@bp.get("/api/specialties")
@login_required
def api_list_specialties():
    return _envelope(True, "Specialties retrieved.", catalog.list_specialties_with_grades())
