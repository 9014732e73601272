#!/usr/bin/env python3
"""
Seed the SkillTrack database with its reference data.

Creates the schema, then adds the default admin account, the grade and
specialty lists with every specialty/grade pairing, and a starter skill
catalog. Safe to run more than once.
"""

import sys
from pathlib import Path

project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv  # noqa: E402

load_dotenv(project_root / ".env", override=True)

import models  # noqa: E402
from app.security import hash_password  # noqa: E402

DEFAULT_ADMIN = ("admin", "admin1234")

GRADES = ("L1", "L2", "L3", "M1", "M2", "Alumni")

SPECIALTIES = (
    "SI",
    "SSI",
    "GTR",
    "CyberSec",
    "Web",
    "E-commerce",
    "Finance",
    "MBA",
    "Management",
    "Psychology",
    "Educational Sciences",
    "DDA",
    "Public Law",
)

SOFT_SKILLS = (
    "Communication",
    "Teamwork",
    "Problem Solving",
    "Adaptability",
    "Leadership",
    "Creativity",
    "Time Management",
    "Critical Thinking",
    "Emotional Intelligence",
    "Conflict Resolution",
)

HARD_SKILLS = (
    "Python",
    "JavaScript",
    "SQL",
    "Data Analysis",
    "Machine Learning",
    "Cybersecurity",
    "Linux Administration",
    "Docker",
    "AWS",
    "Network Security",
)


def seed_admin() -> None:
    username, password = DEFAULT_ADMIN
    if models.get_admin_by_username(username) is not None:
        print(f"   admin '{username}' already present")
        return
    models.create_admin(username=username, password_hash=hash_password(password))
    print(f"   created admin '{username}'")


def seed_catalog() -> None:
    grade_ids = [models.ensure_grade(name) for name in GRADES]
    specialty_ids = [models.ensure_specialty(name) for name in SPECIALTIES]
    for specialty_id in specialty_ids:
        for grade_id in grade_ids:
            models.link_specialty_grade(specialty_id, grade_id)
    print(f"   {len(grade_ids)} grades, {len(specialty_ids)} specialties")


def seed_skills() -> None:
    created = 0
    for skill_type, names in (("SOFT", SOFT_SKILLS), ("HARD", HARD_SKILLS)):
        for name in names:
            if models.get_skill_by_name(name) is not None:
                continue
            models.create_skill(
                name=name,
                description=f"{name} ({skill_type.lower()} skill)",
                type=skill_type,
            )
            created += 1
    print(f"   {created} skills created")


def main() -> int:
    print("Seeding SkillTrack reference data")
    models.init_db()
    seed_admin()
    seed_catalog()
    seed_skills()
    print("Done.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
