import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() not in {"0", "false", "off", "no"}


@dataclass(frozen=True)
class Settings:
    SECRET_KEY: str
    DATABASE_URL: str | None
    STUDENTS_PAGE_SIZE: int
    MAX_IMPORT_SIZE_MB: int
    IMPORT_PREFETCH_LOOKUPS: bool
    LOG_LEVEL: str


def get_settings() -> Settings:
    return Settings(
        SECRET_KEY=os.getenv("SECRET_KEY", "dev-insecure-key"),
        DATABASE_URL=os.getenv("DATABASE_URL"),
        STUDENTS_PAGE_SIZE=int(os.getenv("STUDENTS_PAGE_SIZE", "10")),
        MAX_IMPORT_SIZE_MB=int(os.getenv("MAX_IMPORT_SIZE_MB", "10")),
        IMPORT_PREFETCH_LOOKUPS=_env_bool("IMPORT_PREFETCH_LOOKUPS", False),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
