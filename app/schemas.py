"""Validated request payloads, one dataclass per operation."""

from __future__ import annotations

import datetime
import re
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

import pandas as pd

from app.errors import ValidationError
from app.services.reconciler import UNCHANGED, AssociationInput
from models import ACTIVITY_TYPES, SCORE_MAX, SCORE_MIN, SKILL_TYPES

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_PHONE_RE = re.compile(r"^\+?[1-9]\d{7,14}$")
_YEAR_RE = re.compile(r"^\d{4}$")


def _text(payload: Mapping[str, Any], key: str) -> str:
    value = payload.get(key)
    if value is None:
        return ""
    return str(value).strip()


def _parse_positive_int(value: object, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be a positive integer.")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    try:
        result = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise ValueError(f"{field_name} must be a positive integer.")
    if isinstance(value, str) and value.strip() != str(result):
        raise ValueError(f"{field_name} must be a positive integer.")
    if result < 1:
        raise ValueError(f"{field_name} must be a positive integer.")
    return result


def _parse_score(value: object, field_name: str) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{field_name} must be a number.")
    score = float(value)
    if score < SCORE_MIN or score > SCORE_MAX:
        raise ValueError(f"{field_name} must be between 0 and 100.")
    return score


def coerce_date(value: object, *, allow_year: bool = False) -> datetime.date:
    """Parse an ISO date (or anything pandas reads as a timestamp) into a date.

    With ``allow_year`` a bare four-digit year maps to 1 January of that year.
    """
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    text = str(value or "").strip()
    if not text:
        raise ValueError("date is empty")
    if allow_year and _YEAR_RE.match(text):
        return datetime.date(int(text), 1, 1)
    try:
        return datetime.date.fromisoformat(text)
    except ValueError:
        pass
    try:
        stamp = pd.Timestamp(text)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"unrecognized date {text!r}") from exc
    if pd.isna(stamp):
        raise ValueError(f"unrecognized date {text!r}")
    return stamp.date()


def parse_association_entries(
    raw: object, field_name: str, errors: dict[str, str]
) -> list[AssociationInput]:
    """Parse ``[{skillId, score?}, ...]``; a missing ``score`` key keeps the stored score."""
    if raw is None:
        return []
    if not isinstance(raw, list):
        errors[field_name] = f"{field_name} must be a list."
        return []

    entries: list[AssociationInput] = []
    for index, item in enumerate(raw):
        prefix = f"{field_name}[{index}]"
        if not isinstance(item, Mapping):
            errors[prefix] = "Each entry must be an object with a skillId."
            continue
        try:
            skill_id = _parse_positive_int(item.get("skillId"), "skillId")
        except ValueError as exc:
            errors[f"{prefix}.skillId"] = str(exc)
            continue
        if "score" not in item:
            entries.append(AssociationInput(skill_id=skill_id, keep_score=True))
            continue
        try:
            score = _parse_score(item.get("score"), "score")
        except ValueError as exc:
            errors[f"{prefix}.score"] = str(exc)
            continue
        entries.append(AssociationInput(skill_id=skill_id, score=score))
    return entries


def _parse_comment(payload: Mapping[str, Any], errors: dict[str, str]) -> Optional[str]:
    comment = payload.get("comment")
    if comment is not None and not isinstance(comment, str):
        errors["comment"] = "comment must be a string or null."
        return None
    return comment


@dataclass(frozen=True)
class CreateAssessmentRequest:
    code: str
    comment: Optional[str]
    entries: list[AssociationInput] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], entries_key: str) -> "CreateAssessmentRequest":
        errors: dict[str, str] = {}
        code = _text(payload, "code")
        if not code:
            errors["code"] = "Student code is required."
        comment = _parse_comment(payload, errors)
        entries = parse_association_entries(payload.get(entries_key), entries_key, errors)
        if errors:
            raise ValidationError(errors)
        return cls(code=code, comment=comment, entries=entries)


@dataclass(frozen=True)
class UpdateAssessmentRequest:
    comment: object
    entries: list[AssociationInput] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], entries_key: str) -> "UpdateAssessmentRequest":
        errors: dict[str, str] = {}
        comment: object = UNCHANGED
        if "comment" in payload:
            comment = _parse_comment(payload, errors)
        if entries_key not in payload:
            errors[entries_key] = f"{entries_key} is required."
        entries = parse_association_entries(payload.get(entries_key), entries_key, errors)
        if errors:
            raise ValidationError(errors)
        return cls(comment=comment, entries=entries)


@dataclass(frozen=True)
class UpdateStudentSkillsRequest:
    entries: list[AssociationInput] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "UpdateStudentSkillsRequest":
        errors: dict[str, str] = {}
        if "skills" in payload:
            entries = parse_association_entries(payload.get("skills"), "skills", errors)
        else:
            raw_ids = payload.get("skillIds") or []
            entries = []
            if not isinstance(raw_ids, list):
                errors["skillIds"] = "skillIds must be a list of integers."
                raw_ids = []
            for index, raw_id in enumerate(raw_ids):
                try:
                    skill_id = _parse_positive_int(raw_id, "skillId")
                except ValueError as exc:
                    errors[f"skillIds[{index}]"] = str(exc)
                    continue
                entries.append(AssociationInput(skill_id=skill_id, keep_score=True))
        if errors:
            raise ValidationError(errors)
        return cls(entries=entries)


@dataclass(frozen=True)
class UpdateStudentActivitiesRequest:
    activity_ids: list[int] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "UpdateStudentActivitiesRequest":
        raw_ids = payload.get("activityIds") or []
        if not isinstance(raw_ids, list):
            raise ValidationError({"activityIds": "activityIds must be a list of integers."})
        errors: dict[str, str] = {}
        ids: list[int] = []
        for index, raw_id in enumerate(raw_ids):
            try:
                ids.append(_parse_positive_int(raw_id, "activityId"))
            except ValueError as exc:
                errors[f"activityIds[{index}]"] = str(exc)
        if errors:
            raise ValidationError(errors)
        return cls(activity_ids=ids)


@dataclass(frozen=True)
class StudentInfoRequest:
    code: str
    name: str
    email: str
    phone: str
    address: str
    birth_date: datetime.date
    birth_place: str
    enrollment_year: datetime.date
    grade_id: int
    specialty_id: int

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "StudentInfoRequest":
        errors: dict[str, str] = {}

        code = _text(payload, "code")
        name = _text(payload, "name")
        email = _text(payload, "email")
        phone = _text(payload, "phone")
        address = _text(payload, "address")
        birth_place = _text(payload, "birth_place")

        if not code:
            errors["code"] = "Code is required."
        if len(name) < 2:
            errors["name"] = "Name must be at least 2 characters."
        if not _EMAIL_RE.match(email):
            errors["email"] = "Invalid email address."
        if not _PHONE_RE.match(phone):
            errors["phone"] = "Invalid phone number."
        if len(address) < 2 or len(address) > 90:
            errors["address"] = "Address must be between 2 and 90 characters."
        if len(birth_place) < 2:
            errors["birth_place"] = "Birth place is required."

        birth_date: Optional[datetime.date] = None
        try:
            birth_date = coerce_date(payload.get("birth_date"))
        except ValueError:
            errors["birth_date"] = "Birth date must be a YYYY-MM-DD date."

        enrollment_year: Optional[datetime.date] = None
        if len(_text(payload, "enrollment_year")) < 4:
            errors["enrollment_year"] = "Enrollment year is required."
        else:
            try:
                enrollment_year = coerce_date(payload.get("enrollment_year"), allow_year=True)
            except ValueError:
                errors["enrollment_year"] = "Enrollment year must be a year or a date."

        ids: dict[str, int] = {}
        for key, label in (("gradeId", "Grade"), ("specialtyId", "Specialty")):
            try:
                ids[key] = _parse_positive_int(payload.get(key), key)
            except ValueError:
                errors[key] = f"{label} is required."

        if errors:
            raise ValidationError(errors)

        return cls(
            code=code,
            name=name,
            email=email,
            phone=phone,
            address=address,
            birth_date=birth_date,  # type: ignore[arg-type]
            birth_place=birth_place,
            enrollment_year=enrollment_year,  # type: ignore[arg-type]
            grade_id=ids["gradeId"],
            specialty_id=ids["specialtyId"],
        )

    def to_fields(self) -> dict[str, object]:
        return {
            "code": self.code,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "birth_date": self.birth_date,
            "birth_place": self.birth_place,
            "enrollment_year": self.enrollment_year,
            "grade_id": self.grade_id,
            "specialty_id": self.specialty_id,
        }


@dataclass(frozen=True)
class CreateSkillRequest:
    name: str
    description: str
    type: str

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "CreateSkillRequest":
        errors: dict[str, str] = {}
        name = _text(payload, "name")
        description = _text(payload, "description")
        skill_type = _text(payload, "type").upper()
        if not 2 <= len(name) <= 50:
            errors["name"] = "name must be between 2 and 50 characters."
        if not 5 <= len(description) <= 255:
            errors["description"] = "Description must be between 5 and 255 characters."
        if skill_type not in SKILL_TYPES:
            errors["type"] = "type must be SOFT or HARD."
        if errors:
            raise ValidationError(errors)
        return cls(name=name, description=description, type=skill_type)


@dataclass(frozen=True)
class CreateActivityRequest:
    name: str
    description: str
    type: str

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "CreateActivityRequest":
        errors: dict[str, str] = {}
        name = _text(payload, "name")
        description = _text(payload, "description")
        activity_type = _text(payload, "type").upper()
        if not 1 <= len(name) <= 255:
            errors["name"] = "Name is required."
        if not description:
            errors["description"] = "Description is required."
        if activity_type not in ACTIVITY_TYPES:
            errors["type"] = f"type must be one of {', '.join(ACTIVITY_TYPES)}."
        if errors:
            raise ValidationError(errors)
        return cls(name=name, description=description, type=activity_type)


@dataclass(frozen=True)
class LoginRequest:
    username: str
    password: str

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "LoginRequest":
        errors: dict[str, str] = {}
        username = _text(payload, "username")
        password = payload.get("password")
        password = password if isinstance(password, str) else ""
        if len(username) < 5:
            errors["username"] = "Username must be at least 5 characters long."
        if len(password) < 6:
            errors["password"] = "Password must be at least 6 characters long."
        if errors:
            raise ValidationError(errors)
        return cls(username=username, password=password)
