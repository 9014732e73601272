"""Data access layer for SkillTrack without external ORM dependencies."""

from __future__ import annotations

import datetime
import os
import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Optional, Sequence
from urllib.parse import urlparse

import psycopg
from flask_login import UserMixin
from psycopg import errors as pg_errors
from psycopg.rows import dict_row

from config.settings import get_settings

_connection: Optional[object] = None
_backend: Optional[str] = None  # "sqlite" or "postgres"
# One connection per process; callers on different threads must not interleave on it.
_lock = threading.RLock()

SCORE_MIN = 0.0
SCORE_MAX = 100.0

SKILL_TYPES = ("SOFT", "HARD")
ACTIVITY_TYPES = ("INTERNSHIP", "EVENT", "WORKSHOP", "SPORT")
ASSESSMENT_KINDS = ("evaluation", "rating")


class DuplicateRecordError(ValueError):
    """Raised when an insert or update violates a unique constraint."""


class Admin(UserMixin):
    """Flask-Login compatible administrator wrapper."""

    def __init__(
        self,
        *,
        id: int,
        username: str,
        password_hash: str,
        created_at: object,
    ) -> None:
        self.id = id
        self.username = username
        self.password_hash = password_hash
        self.created_at = created_at

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<Admin id={self.id} username={self.username!r}>"


@dataclass(frozen=True)
class AssociationTable:
    """Where an owner's skill associations live."""

    owner_table: str
    table: str
    owner_column: str
    has_comment: bool


ASSESSMENT_SKILLS = AssociationTable(
    owner_table="assessments",
    table="assessment_skills",
    owner_column="assessment_id",
    has_comment=True,
)
STUDENT_SKILLS = AssociationTable(
    owner_table="students",
    table="student_skills",
    owner_column="student_id",
    has_comment=False,
)


def _resolve_default_sqlite_path() -> str:
    root_dir = os.path.dirname(os.path.dirname(__file__))
    return os.path.join(root_dir, "skilltrack_dev.sqlite")


def _normalize_sqlite_path(database_url: str) -> str:
    parsed = urlparse(database_url)
    path = parsed.path or ""
    if path.startswith("/"):
        path = path[1:]
    if path in {"", ":memory:"}:
        return ":memory:"
    if parsed.netloc:
        path = os.path.join(parsed.netloc, path)
    return path or _resolve_default_sqlite_path()


def get_connection():
    """Return a singleton database connection."""
    global _connection, _backend
    with _lock:
        if _connection is None:
            _connection, _backend = _connect()
        return _connection


def _connect() -> tuple[object, str]:
    settings = get_settings()
    database_url = settings.DATABASE_URL or f"sqlite:///{_resolve_default_sqlite_path()}"

    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql://", 1)

    if database_url.startswith("sqlite"):
        db_path = _normalize_sqlite_path(database_url)
        conn = sqlite3.connect(db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn, "sqlite"
    return psycopg.connect(database_url, row_factory=dict_row), "postgres"


def get_backend() -> Optional[str]:
    return _backend


def reset_engine() -> None:
    """Reset the current database connection (used in tests)."""
    global _connection, _backend
    with _lock:
        if _connection is not None:
            _connection.close()
        _connection = None
        _backend = None


def _q(query: str) -> str:
    if _backend == "sqlite":
        return query.replace("%s", "?")
    return query


def _execute(cur, query: str, params: Sequence[Any] = ()) -> None:
    cur.execute(_q(query), tuple(params))


def _fetchone(cur) -> Optional[dict]:
    row = cur.fetchone()
    if row is None:
        return None
    return dict(row)


def _fetchall(cur) -> list[dict]:
    return [dict(row) for row in cur.fetchall()]


def _insert_returning_id(cur, query: str, params: Sequence[Any]) -> int:
    if _backend == "postgres":
        _execute(cur, f"{query} RETURNING id", params)
        return int(cur.fetchone()["id"])
    _execute(cur, query, params)
    return int(cur.lastrowid)


def _placeholders(count: int) -> str:
    return ", ".join(["%s"] * count)


def _is_unique_violation(exc: BaseException) -> bool:
    if isinstance(exc, pg_errors.UniqueViolation):
        return True
    return isinstance(exc, sqlite3.IntegrityError) and "UNIQUE" in str(exc)


@contextmanager
def transaction() -> Iterator[Any]:
    """Yield a cursor whose statements commit together or not at all.

    The process-wide lock is held until commit or rollback, so another
    thread's statements never land inside this transaction.
    """
    with _lock:
        conn = get_connection()
        cur = conn.cursor()
        try:
            yield cur
            conn.commit()
        except BaseException:
            conn.rollback()
            raise
        finally:
            cur.close()


def _query_one(query: str, params: Sequence[Any] = ()) -> Optional[dict]:
    with _lock:
        conn = get_connection()
        cur = conn.cursor()
        try:
            _execute(cur, query, params)
            return _fetchone(cur)
        finally:
            cur.close()


def _query_all(query: str, params: Sequence[Any] = ()) -> list[dict]:
    with _lock:
        conn = get_connection()
        cur = conn.cursor()
        try:
            _execute(cur, query, params)
            return _fetchall(cur)
        finally:
            cur.close()


_SCHEMA: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS admins (
        id {pk},
        username VARCHAR(64) UNIQUE NOT NULL,
        password_hash VARCHAR(255) NOT NULL,
        created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS grades (
        id {pk},
        name VARCHAR(64) UNIQUE NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS specialties (
        id {pk},
        name VARCHAR(128) UNIQUE NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS specialty_grades (
        specialty_id INTEGER NOT NULL REFERENCES specialties(id) ON DELETE CASCADE,
        grade_id INTEGER NOT NULL REFERENCES grades(id) ON DELETE CASCADE,
        PRIMARY KEY (specialty_id, grade_id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS skills (
        id {pk},
        name VARCHAR(50) UNIQUE NOT NULL,
        description VARCHAR(255) NOT NULL DEFAULT '',
        type VARCHAR(8) NOT NULL CHECK (type IN ('SOFT', 'HARD'))
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS activities (
        id {pk},
        name VARCHAR(255) NOT NULL,
        description TEXT NOT NULL,
        type VARCHAR(16) NOT NULL CHECK (type IN ('INTERNSHIP', 'EVENT', 'WORKSHOP', 'SPORT'))
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS students (
        id {pk},
        code VARCHAR(64) UNIQUE NOT NULL,
        name VARCHAR(255) NOT NULL,
        email VARCHAR(255) NOT NULL,
        phone VARCHAR(32) NOT NULL,
        address VARCHAR(255) NOT NULL,
        birth_date DATE NOT NULL,
        birth_place VARCHAR(255) NOT NULL,
        enrollment_year DATE NOT NULL,
        grade_id INTEGER NOT NULL REFERENCES grades(id),
        specialty_id INTEGER NOT NULL REFERENCES specialties(id),
        created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS student_activities (
        student_id INTEGER NOT NULL REFERENCES students(id) ON DELETE CASCADE,
        activity_id INTEGER NOT NULL REFERENCES activities(id) ON DELETE CASCADE,
        PRIMARY KEY (student_id, activity_id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS assessments (
        id {pk},
        student_id INTEGER NOT NULL REFERENCES students(id) ON DELETE CASCADE,
        kind VARCHAR(16) NOT NULL CHECK (kind IN ('evaluation', 'rating')),
        comment TEXT NULL,
        created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
    );
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_assessments_student
    ON assessments (student_id, created_at);
    """,
    """
    CREATE TABLE IF NOT EXISTS assessment_skills (
        assessment_id INTEGER NOT NULL REFERENCES assessments(id) ON DELETE CASCADE,
        skill_id INTEGER NOT NULL REFERENCES skills(id) ON DELETE RESTRICT,
        score {real} NULL CHECK (score IS NULL OR (score >= 0 AND score <= 100)),
        PRIMARY KEY (assessment_id, skill_id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS student_skills (
        student_id INTEGER NOT NULL REFERENCES students(id) ON DELETE CASCADE,
        skill_id INTEGER NOT NULL REFERENCES skills(id) ON DELETE RESTRICT,
        score {real} NULL CHECK (score IS NULL OR (score >= 0 AND score <= 100)),
        PRIMARY KEY (student_id, skill_id)
    );
    """,
)


def init_db() -> None:
    """Create every table if it does not already exist."""
    get_connection()
    if _backend == "postgres":
        types = {"pk": "SERIAL PRIMARY KEY", "real": "DOUBLE PRECISION"}
    else:
        types = {"pk": "INTEGER PRIMARY KEY AUTOINCREMENT", "real": "REAL"}
    with transaction() as cur:
        for statement in _SCHEMA:
            cur.execute(statement.format(**types))


def _iso(value: object) -> object:
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    return value


def _param(value: object) -> object:
    if _backend == "sqlite":
        return _iso(value)
    return value


def _serialize_row(row: Optional[dict]) -> Optional[dict]:
    if row is None:
        return None
    return {key: _iso(value) for key, value in row.items()}


def clamp_score(score: Optional[float]) -> Optional[float]:
    """Clamp a score into the storable range; ``None`` stays unscored."""
    if score is None:
        return None
    return max(SCORE_MIN, min(SCORE_MAX, float(score)))


# --- admins ---


def _row_to_admin(row: Optional[dict]) -> Optional[Admin]:
    if not row:
        return None
    return Admin(
        id=row["id"],
        username=row["username"],
        password_hash=row["password_hash"],
        created_at=row.get("created_at"),
    )


def get_admin_by_id(admin_id: int) -> Optional[Admin]:
    return _row_to_admin(_query_one("SELECT * FROM admins WHERE id = %s", (admin_id,)))


def get_admin_by_username(username: str) -> Optional[Admin]:
    if not username:
        return None
    return _row_to_admin(
        _query_one("SELECT * FROM admins WHERE username = %s", (username,))
    )


def create_admin(*, username: str, password_hash: str) -> Admin:
    try:
        with transaction() as cur:
            new_id = _insert_returning_id(
                cur,
                "INSERT INTO admins (username, password_hash) VALUES (%s, %s)",
                (username, password_hash),
            )
    except (sqlite3.IntegrityError, pg_errors.UniqueViolation) as exc:
        raise DuplicateRecordError("Username already in use.") from exc

    admin = get_admin_by_id(new_id)
    if admin is None:
        raise RuntimeError("Failed to retrieve created admin.")
    return admin


# --- academic catalog ---


def _get_or_create_named(table: str, name: str) -> int:
    row = _query_one(f"SELECT id FROM {table} WHERE name = %s", (name,))
    if row is not None:
        return int(row["id"])
    with transaction() as cur:
        return _insert_returning_id(cur, f"INSERT INTO {table} (name) VALUES (%s)", (name,))


def ensure_grade(name: str) -> int:
    """Return the id of the named grade, creating it if needed."""
    return _get_or_create_named("grades", name)


def ensure_specialty(name: str) -> int:
    """Return the id of the named specialty, creating it if needed."""
    return _get_or_create_named("specialties", name)


def link_specialty_grade(specialty_id: int, grade_id: int) -> None:
    with transaction() as cur:
        _execute(
            cur,
            """
            INSERT INTO specialty_grades (specialty_id, grade_id)
            VALUES (%s, %s)
            ON CONFLICT (specialty_id, grade_id) DO NOTHING
            """,
            (specialty_id, grade_id),
        )


def grade_exists(grade_id: int) -> bool:
    return _query_one("SELECT id FROM grades WHERE id = %s", (grade_id,)) is not None


def specialty_exists(specialty_id: int) -> bool:
    return (
        _query_one("SELECT id FROM specialties WHERE id = %s", (specialty_id,))
        is not None
    )


def list_grade_ids() -> set[int]:
    return {int(row["id"]) for row in _query_all("SELECT id FROM grades")}


def list_specialty_ids() -> set[int]:
    return {int(row["id"]) for row in _query_all("SELECT id FROM specialties")}


def list_specialties_with_grades() -> list[dict[str, object]]:
    """Return specialties ordered by name, each with the grades it is offered in."""
    specialties = _query_all("SELECT id, name FROM specialties ORDER BY name, id")
    pairs = _query_all(
        """
        SELECT sg.specialty_id, g.id, g.name
        FROM specialty_grades sg
        JOIN grades g ON g.id = sg.grade_id
        ORDER BY g.id
        """
    )
    grades_by_specialty: dict[int, list[dict[str, object]]] = {}
    for pair in pairs:
        grades_by_specialty.setdefault(pair["specialty_id"], []).append(
            {"id": pair["id"], "name": pair["name"]}
        )
    return [
        {
            "id": specialty["id"],
            "name": specialty["name"],
            "grades": grades_by_specialty.get(specialty["id"], []),
        }
        for specialty in specialties
    ]


# --- skills & activities ---


def list_skills() -> list[dict[str, object]]:
    return _query_all("SELECT id, name, description, type FROM skills ORDER BY name, id")


def get_skill_by_name(name: str) -> Optional[dict[str, object]]:
    """Case-insensitive lookup used to keep skill names unique."""
    return _query_one(
        "SELECT id, name, description, type FROM skills WHERE LOWER(name) = LOWER(%s)",
        (name,),
    )


def create_skill(*, name: str, description: str, type: str) -> dict[str, object]:
    try:
        with transaction() as cur:
            new_id = _insert_returning_id(
                cur,
                "INSERT INTO skills (name, description, type) VALUES (%s, %s, %s)",
                (name, description, type),
            )
    except (sqlite3.IntegrityError, pg_errors.UniqueViolation) as exc:
        raise DuplicateRecordError("A skill with this name already exists.") from exc
    return {"id": new_id, "name": name, "description": description, "type": type}


def list_activities() -> list[dict[str, object]]:
    return _query_all(
        "SELECT id, name, description, type FROM activities ORDER BY name, id"
    )


def create_activity(*, name: str, description: str, type: str) -> dict[str, object]:
    with transaction() as cur:
        new_id = _insert_returning_id(
            cur,
            "INSERT INTO activities (name, description, type) VALUES (%s, %s, %s)",
            (name, description, type),
        )
    return {"id": new_id, "name": name, "description": description, "type": type}


def find_missing_ids(cur, table: str, ids: Iterable[int]) -> list[int]:
    """Return the subset of ``ids`` with no row in ``table``, sorted."""
    wanted = sorted(set(ids))
    if not wanted:
        return []
    _execute(
        cur,
        f"SELECT id FROM {table} WHERE id IN ({_placeholders(len(wanted))})",
        wanted,
    )
    found = {int(row["id"]) for row in _fetchall(cur)}
    return [item for item in wanted if item not in found]


# --- students ---

_STUDENT_COLUMNS = (
    "code",
    "name",
    "email",
    "phone",
    "address",
    "birth_date",
    "birth_place",
    "enrollment_year",
    "grade_id",
    "specialty_id",
)


def create_student(**fields: object) -> int:
    """Insert a student row and commit it on its own; returns the new id."""
    values = [_param(fields[column]) for column in _STUDENT_COLUMNS]
    try:
        with transaction() as cur:
            return _insert_returning_id(
                cur,
                f"""
                INSERT INTO students ({", ".join(_STUDENT_COLUMNS)})
                VALUES ({_placeholders(len(_STUDENT_COLUMNS))})
                """,
                values,
            )
    except (sqlite3.IntegrityError, pg_errors.IntegrityError) as exc:
        if _is_unique_violation(exc):
            raise DuplicateRecordError(
                f"Student with code {fields['code']!r} already exists."
            ) from exc
        raise


def update_student(current_code: str, /, **fields: object) -> bool:
    """Overwrite the profile of the student with ``current_code``; False when absent."""
    values = [_param(fields[column]) for column in _STUDENT_COLUMNS]
    assignments = ", ".join(f"{column} = %s" for column in _STUDENT_COLUMNS)
    try:
        with transaction() as cur:
            _execute(
                cur,
                f"""
                UPDATE students
                SET {assignments}, updated_at = CURRENT_TIMESTAMP
                WHERE code = %s
                """,
                [*values, current_code],
            )
            return cur.rowcount > 0
    except (sqlite3.IntegrityError, pg_errors.IntegrityError) as exc:
        if _is_unique_violation(exc):
            raise DuplicateRecordError(
                f"Student with code {fields['code']!r} already exists."
            ) from exc
        raise


def delete_student(code: str) -> bool:
    """Delete a student and, via CASCADE, everything it owns."""
    with transaction() as cur:
        _execute(cur, "DELETE FROM students WHERE code = %s", (code,))
        return cur.rowcount > 0


def get_student_by_code(code: str) -> Optional[dict[str, object]]:
    row = _query_one(
        """
        SELECT st.*, g.name AS grade_name, sp.name AS specialty_name
        FROM students st
        JOIN grades g ON g.id = st.grade_id
        JOIN specialties sp ON sp.id = st.specialty_id
        WHERE st.code = %s
        """,
        (code,),
    )
    return _serialize_row(row)


def get_student_id_by_code(code: str) -> Optional[int]:
    row = _query_one("SELECT id FROM students WHERE code = %s", (code,))
    return int(row["id"]) if row else None


def count_students() -> int:
    row = _query_one("SELECT COUNT(*) AS total FROM students")
    return int(row["total"]) if row else 0


def _student_search_clause(query: str) -> tuple[str, list[object]]:
    if not query:
        return "", []
    pattern = f"%{query.lower()}%"
    clause = """
        WHERE LOWER(st.code) LIKE %s
           OR LOWER(st.name) LIKE %s
           OR LOWER(st.email) LIKE %s
           OR EXISTS (
                SELECT 1
                FROM student_activities sa
                JOIN activities a ON a.id = sa.activity_id
                WHERE sa.student_id = st.id AND LOWER(a.name) LIKE %s
           )
    """
    return clause, [pattern, pattern, pattern, pattern]


def list_students_page(
    *, page: int, page_size: int, query: str = ""
) -> tuple[list[dict[str, object]], int]:
    """Return one page of students (newest id first) and the filtered total."""
    clause, params = _student_search_clause(query)
    offset = (max(page, 1) - 1) * page_size
    rows = _query_all(
        f"""
        SELECT st.code, st.name, st.email,
               g.name AS grade_name, sp.name AS specialty_name
        FROM students st
        JOIN grades g ON g.id = st.grade_id
        JOIN specialties sp ON sp.id = st.specialty_id
        {clause}
        ORDER BY st.id DESC
        LIMIT %s OFFSET %s
        """,
        [*params, page_size, offset],
    )
    total_row = _query_one(
        f"SELECT COUNT(*) AS total FROM students st {clause}",
        params,
    )
    return rows, int(total_row["total"]) if total_row else 0


def list_student_activities(student_id: int) -> list[dict[str, object]]:
    return _query_all(
        """
        SELECT a.id, a.name, a.description, a.type
        FROM student_activities sa
        JOIN activities a ON a.id = sa.activity_id
        WHERE sa.student_id = %s
        ORDER BY a.name, a.id
        """,
        (student_id,),
    )


def fetch_student_activity_ids(cur, student_id: int) -> set[int]:
    _execute(
        cur,
        "SELECT activity_id FROM student_activities WHERE student_id = %s",
        (student_id,),
    )
    return {int(row["activity_id"]) for row in _fetchall(cur)}


def detach_activities(cur, student_id: int, activity_ids: Sequence[int]) -> None:
    if not activity_ids:
        return
    _execute(
        cur,
        f"""
        DELETE FROM student_activities
        WHERE student_id = %s AND activity_id IN ({_placeholders(len(activity_ids))})
        """,
        [student_id, *activity_ids],
    )


def attach_activity(cur, student_id: int, activity_id: int) -> None:
    _execute(
        cur,
        """
        INSERT INTO student_activities (student_id, activity_id)
        VALUES (%s, %s)
        ON CONFLICT (student_id, activity_id) DO NOTHING
        """,
        (student_id, activity_id),
    )


# --- assessments ---


def insert_assessment(cur, *, student_id: int, kind: str, comment: Optional[str]) -> int:
    return _insert_returning_id(
        cur,
        "INSERT INTO assessments (student_id, kind, comment) VALUES (%s, %s, %s)",
        (student_id, kind, comment),
    )


def get_assessment(assessment_id: int) -> Optional[dict[str, object]]:
    row = _query_one(
        """
        SELECT a.id, a.student_id, a.kind, a.comment, a.created_at, a.updated_at,
               st.code AS student_code
        FROM assessments a
        JOIN students st ON st.id = a.student_id
        WHERE a.id = %s
        """,
        (assessment_id,),
    )
    return _serialize_row(row)


def list_assessments_for_student(student_id: int) -> list[dict[str, object]]:
    """Return a student's assessments, most recent first."""
    rows = _query_all(
        """
        SELECT id, student_id, kind, comment, created_at, updated_at
        FROM assessments
        WHERE student_id = %s
        ORDER BY created_at DESC, id DESC
        """,
        (student_id,),
    )
    return [_serialize_row(row) for row in rows]


def delete_assessment(assessment_id: int) -> bool:
    with transaction() as cur:
        _execute(cur, "DELETE FROM assessments WHERE id = %s", (assessment_id,))
        return cur.rowcount > 0


# --- skill associations ---


def touch_owner(cur, owner: AssociationTable, owner_id: int) -> bool:
    """Bump the owner's ``updated_at``.

    The write takes the owner's row lock on PostgreSQL (the database write
    lock on SQLite), so concurrent reconciliations of one owner serialize
    for the rest of the transaction.
    """
    _execute(
        cur,
        f"UPDATE {owner.owner_table} SET updated_at = CURRENT_TIMESTAMP WHERE id = %s",
        (owner_id,),
    )
    return cur.rowcount > 0


def fetch_association_scores(
    cur, owner: AssociationTable, owner_id: int
) -> dict[int, Optional[float]]:
    _execute(
        cur,
        f"SELECT skill_id, score FROM {owner.table} WHERE {owner.owner_column} = %s",
        (owner_id,),
    )
    return {int(row["skill_id"]): row["score"] for row in _fetchall(cur)}


def delete_associations(
    cur, owner: AssociationTable, owner_id: int, skill_ids: Sequence[int]
) -> None:
    if not skill_ids:
        return
    _execute(
        cur,
        f"""
        DELETE FROM {owner.table}
        WHERE {owner.owner_column} = %s
          AND skill_id IN ({_placeholders(len(skill_ids))})
        """,
        [owner_id, *skill_ids],
    )


def upsert_association(
    cur,
    owner: AssociationTable,
    owner_id: int,
    skill_id: int,
    score: Optional[float],
    *,
    keep_score: bool = False,
) -> None:
    """Write one (owner, skill) association keyed by its composite identity.

    With ``keep_score`` an existing row is left untouched and a new row is
    created unscored.
    """
    if keep_score:
        conflict = "DO NOTHING"
        score = None
    else:
        conflict = "DO UPDATE SET score = excluded.score"
    _execute(
        cur,
        f"""
        INSERT INTO {owner.table} ({owner.owner_column}, skill_id, score)
        VALUES (%s, %s, %s)
        ON CONFLICT ({owner.owner_column}, skill_id) {conflict}
        """,
        (owner_id, skill_id, clamp_score(score)),
    )


def update_owner_comment(
    cur, owner: AssociationTable, owner_id: int, comment: Optional[str]
) -> None:
    if not owner.has_comment:
        raise ValueError(f"{owner.owner_table} rows carry no comment.")
    _execute(
        cur,
        f"UPDATE {owner.owner_table} SET comment = %s WHERE id = %s",
        (comment, owner_id),
    )


def get_owner_comment(owner: AssociationTable, owner_id: int) -> Optional[str]:
    if not owner.has_comment:
        return None
    row = _query_one(
        f"SELECT comment FROM {owner.owner_table} WHERE id = %s", (owner_id,)
    )
    return row["comment"] if row else None


def list_associations(owner: AssociationTable, owner_id: int) -> list[dict[str, object]]:
    """Return the owner's associations joined with skill metadata, by skill name."""
    return _query_all(
        f"""
        SELECT a.skill_id, a.score, s.name, s.description, s.type
        FROM {owner.table} a
        JOIN skills s ON s.id = a.skill_id
        WHERE a.{owner.owner_column} = %s
        ORDER BY s.name, s.id
        """,
        (owner_id,),
    )
