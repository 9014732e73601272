from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify
from flask_login import LoginManager

from config.settings import get_settings
from models import get_admin_by_id, init_db, reset_engine

_ENV_LOADED = False


def _ensure_env_loaded() -> None:
    global _ENV_LOADED
    if _ENV_LOADED:
        return

    base_dir = Path(__file__).resolve().parent.parent
    env_path = base_dir / ".env"
    if env_path.exists():
        load_dotenv(env_path, override=True)
    else:
        load_dotenv(override=True)

    _ENV_LOADED = True


login_manager = LoginManager()
login_manager.session_protection = "basic"


@login_manager.user_loader
def load_user(user_id: str) -> Optional[object]:
    try:
        return get_admin_by_id(int(user_id))
    except (TypeError, ValueError):
        return None


@login_manager.unauthorized_handler
def unauthorized():
    return (
        jsonify({"success": False, "message": "Authentication required.", "status": 401}),
        401,
    )


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app() -> Flask:
    _ensure_env_loaded()

    # Drop any connection opened under a previous DATABASE_URL.
    reset_engine()

    settings = get_settings()
    _configure_logging(settings.LOG_LEVEL)

    app = Flask(__name__)
    app.config["SECRET_KEY"] = settings.SECRET_KEY
    app.config["SESSION_COOKIE_HTTPONLY"] = True
    app.config["SESSION_COOKIE_SAMESITE"] = "Lax"
    app.config["MAX_CONTENT_LENGTH"] = (settings.MAX_IMPORT_SIZE_MB + 1) * 1024 * 1024

    login_manager.init_app(app)
    init_db()

    from .routes import bp as core_bp

    app.register_blueprint(core_bp)

    return app
