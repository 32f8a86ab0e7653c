from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv


# Load backend/.env if it exists so local environment variables (e.g. DATABASE_URL)
# are available without needing to export them manually.
BASE_DIR = Path(__file__).resolve().parents[2]
env_path = BASE_DIR / ".env"
if env_path.exists():
    load_dotenv(env_path)


def _int_env(key: str, default: int) -> int:
    try:
        return int(os.getenv(key, str(default)))
    except Exception:
        return default


def _float_env(key: str, default: float) -> float:
    try:
        return float(os.getenv(key, str(default)))
    except Exception:
        return default


def _bool_env(key: str) -> bool:
    return os.getenv(key, "").strip().lower() in ("1", "true", "yes", "on")


class Settings:
    PROJECT_NAME = "Portfolio API"
    VERSION = "1.0.0"
    API_V1_STR = "/api"

    DATABASE_URL = os.getenv("DATABASE_URL") or None
    DB_CONNECT_TIMEOUT = _float_env("DB_CONNECT_TIMEOUT", 5.0)

    HOST = os.getenv("HOST", "0.0.0.0")
    PORT = _int_env("PORT", 5000)

    ENVIRONMENT = os.getenv("ENVIRONMENT", "development").strip().lower()
    # Vercel sets VERCEL=1 on every invocation.
    SERVERLESS = _bool_env("SERVERLESS") or bool(os.getenv("VERCEL"))
    # Honour X-Forwarded-For only when running behind a trusted proxy.
    TRUST_PROXY = _bool_env("TRUST_PROXY")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    _cors_origins = os.getenv("CORS_ORIGINS", "*")
    FRONTEND_URL = os.getenv("FRONTEND_URL", "").strip() or None

    # If wildcard is present, treat as allow-all
    if "*" in _cors_origins:
        CORS_ORIGINS = ["*"]
    else:
        CORS_ORIGINS = [o.strip() for o in _cors_origins.split(",") if o.strip()]
        if FRONTEND_URL:
            CORS_ORIGINS.append(FRONTEND_URL)

    MAX_BODY_BYTES = _int_env("MAX_BODY_BYTES", 10 * 1024)

    RATE_LIMIT_MAX = _int_env("RATE_LIMIT_MAX", 100)
    RATE_LIMIT_WINDOW_SECONDS = _int_env("RATE_LIMIT_WINDOW_SECONDS", 15 * 60)
    CONTACT_RATE_LIMIT_MAX = min(10, max(5, _int_env("CONTACT_RATE_LIMIT_MAX", 5)))
    CONTACT_RATE_LIMIT_WINDOW_SECONDS = _int_env("CONTACT_RATE_LIMIT_WINDOW_SECONDS", 60 * 60)

    EMAIL_FROM = os.getenv("EMAIL_FROM", "").strip() or None
    SENDGRID_API_KEY = os.getenv("SENDGRID_API_KEY", "").strip() or None
    ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "").strip() or EMAIL_FROM

    def __init__(self, **overrides) -> None:
        for key, value in overrides.items():
            if not hasattr(type(self), key):
                raise AttributeError(f"Unknown setting: {key}")
            setattr(self, key, value)

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"


settings = Settings()
