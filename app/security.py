"""Password hashing and admin authentication for SkillTrack."""

from __future__ import annotations

from typing import Optional

import bcrypt

from models import Admin, get_admin_by_username


def hash_password(plaintext: str) -> str:
    """Return a bcrypt hash for the provided password."""
    if not plaintext:
        raise ValueError("Password must be provided.")

    hashed = bcrypt.hashpw(plaintext.encode("utf-8"), bcrypt.gensalt())
    return hashed.decode("utf-8")


def verify_password(plaintext: str, password_hash: str) -> bool:
    """Verify that the supplied plaintext password matches a stored hash."""
    if not password_hash:
        return False

    try:
        return bcrypt.checkpw(
            plaintext.encode("utf-8"),
            password_hash.encode("utf-8"),
        )
    except ValueError:
        # Malformed stored hash.
        return False


def authenticate(username: str, password: str) -> Optional[Admin]:
    admin = get_admin_by_username(username)
    if admin is None or not verify_password(password, admin.password_hash):
        return None
    return admin
