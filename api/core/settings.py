"""
Environment-backed settings.

Values are read on every call so tests (and a restarted worker) can change
them through the environment without import-order surprises.
"""

from __future__ import annotations

import os

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
DEFAULT_JWT_SECRET = "dev-change-this-secret"


def env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def page_size_default() -> int:
    value = env_int("PAGE_SIZE_DEFAULT", DEFAULT_PAGE_SIZE)
    return value if value > 0 else DEFAULT_PAGE_SIZE


def page_size_max() -> int:
    value = env_int("PAGE_SIZE_MAX", MAX_PAGE_SIZE)
    return value if value > 0 else MAX_PAGE_SIZE


def store_timeout_s() -> float | None:
    """
    Per-call deadline for core store statements. 0 disables it.
    """
    value = env_float("STORE_TIMEOUT_S", 10.0)
    return value if value > 0 else None


def db_pool_min_size() -> int:
    return env_int("DB_POOL_MIN_SIZE", 1)


def db_pool_max_size() -> int:
    return env_int("DB_POOL_MAX_SIZE", 5)


def db_command_timeout_s() -> float:
    return env_float("DB_COMMAND_TIMEOUT_S", 30.0)


def jwt_secret() -> str:
    # In production, set JWT_SECRET in environment.
    return os.environ.get("JWT_SECRET", DEFAULT_JWT_SECRET).strip() or DEFAULT_JWT_SECRET


def jwt_algorithm() -> str:
    return os.environ.get("JWT_ALG", "HS256").strip() or "HS256"


def access_token_expire_minutes() -> int:
    return env_int("ACCESS_TOKEN_EXPIRE_MIN", 15)


def cursor_secret() -> str:
    return os.environ.get("CURSOR_SECRET", "").strip() or jwt_secret()


def log_level() -> str:
    return os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO"


def cors_origins() -> list[str]:
    raw = os.environ.get("CORS_ORIGINS", "").strip()
    if not raw:
        return ["http://localhost:5173", "http://127.0.0.1:5173"]
    return [origin.strip() for origin in raw.split(",") if origin.strip()]
