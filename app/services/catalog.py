"""Skills, activities, and the academic catalog."""

from __future__ import annotations

import models
from app.errors import ConflictError
from app.schemas import CreateActivityRequest, CreateSkillRequest


def list_skills() -> list[dict[str, object]]:
    return models.list_skills()


def create_skill(request: CreateSkillRequest) -> dict[str, object]:
    if models.get_skill_by_name(request.name) is not None:
        raise ConflictError("A skill with this name already exists.")
    try:
        return models.create_skill(
            name=request.name, description=request.description, type=request.type
        )
    except models.DuplicateRecordError as exc:
        raise ConflictError(str(exc)) from exc


def list_activities() -> list[dict[str, object]]:
    return models.list_activities()


def create_activity(request: CreateActivityRequest) -> dict[str, object]:
    return models.create_activity(
        name=request.name, description=request.description, type=request.type
    )


def list_specialties_with_grades() -> list[dict[str, object]]:
    return models.list_specialties_with_grades()
