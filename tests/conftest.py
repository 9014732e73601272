import datetime
from collections.abc import Iterator

import pytest

import models
from app import create_app
from app.security import hash_password
from models import reset_engine

ADMIN_USERNAME = "registrar"
ADMIN_PASSWORD = "registrar-pass"


@pytest.fixture()
def app(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", "sqlite+pysqlite:///:memory:")
    monkeypatch.delenv("IMPORT_PREFETCH_LOOKUPS", raising=False)
    monkeypatch.delenv("STUDENTS_PAGE_SIZE", raising=False)
    monkeypatch.delenv("MAX_IMPORT_SIZE_MB", raising=False)

    reset_engine()

    application = create_app()
    application.config.update(TESTING=True)

    yield application

    reset_engine()


@pytest.fixture()
def client(app) -> Iterator:
    with app.test_client() as client:
        yield client


@pytest.fixture()
def app_context(app):
    with app.app_context():
        yield


@pytest.fixture()
def catalog(app) -> dict[str, dict[str, int]]:
    """Seed a small academic catalog and return the ids by name."""
    grades = {name: models.ensure_grade(name) for name in ("L1", "L2", "M1")}
    specialties = {name: models.ensure_specialty(name) for name in ("SI", "Web")}
    for specialty_id in specialties.values():
        for grade_id in grades.values():
            models.link_specialty_grade(specialty_id, grade_id)

    skills = {}
    for name, skill_type in (
        ("Communication", "SOFT"),
        ("Teamwork", "SOFT"),
        ("Python", "HARD"),
        ("SQL", "HARD"),
    ):
        skill = models.create_skill(name=name, description=f"{name} skill", type=skill_type)
        skills[name] = skill["id"]

    activities = {}
    for name, activity_type in (("Hackathon", "EVENT"), ("Summer internship", "INTERNSHIP")):
        activity = models.create_activity(
            name=name, description=f"{name} description", type=activity_type
        )
        activities[name] = activity["id"]

    return {
        "grades": grades,
        "specialties": specialties,
        "skills": skills,
        "activities": activities,
    }


@pytest.fixture()
def make_student(catalog):
    def _make(code: str = "STU001", **overrides) -> int:
        fields = {
            "code": code,
            "name": "Amina Benali",
            "email": f"{code.lower()}@example.com",
            "phone": "+213555123456",
            "address": "12 Rue Didouche, Algiers",
            "birth_date": datetime.date(2001, 3, 14),
            "birth_place": "Algiers",
            "enrollment_year": datetime.date(2022, 9, 1),
            "grade_id": catalog["grades"]["L1"],
            "specialty_id": catalog["specialties"]["SI"],
        }
        fields.update(overrides)
        return models.create_student(**fields)

    return _make


@pytest.fixture()
def admin_client(client, app):
    models.create_admin(username=ADMIN_USERNAME, password_hash=hash_password(ADMIN_PASSWORD))
    response = client.post(
        "/api/auth/login",
        json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD},
    )
    assert response.status_code == 200
    return client
