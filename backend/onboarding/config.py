# backend/onboarding/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/onboarding.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///onboarding.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Skip placeholder rows for document types that are already MISSING.
    # False restores the legacy create-unconditionally behavior.
    ONBOARDING_DEDUPE_DOCUMENT_REQUESTS = _env_flag("ONBOARDING_DEDUPE_DOCUMENT_REQUESTS", True)

    # Attempts for status writes that lose an optimistic-lock race
    ONBOARDING_STATUS_RETRY_ATTEMPTS = int(os.environ.get("ONBOARDING_STATUS_RETRY_ATTEMPTS", "3"))

    # Channels used when a document request names none
    ONBOARDING_NOTIFY_CHANNELS_DEFAULT = [
        c.strip().upper()
        for c in os.environ.get("ONBOARDING_NOTIFY_CHANNELS_DEFAULT", "EMAIL").split(",")
        if c.strip()
    ]

    SESSION_ABSOLUTE_TIMEOUT_HOURS = int(os.environ.get("SESSION_ABSOLUTE_TIMEOUT_HOURS", "24"))
    SESSION_IDLE_TIMEOUT_MINUTES = int(os.environ.get("SESSION_IDLE_TIMEOUT_MINUTES", "120"))

    CORS_ALLOWED_ORIGINS = [
        o.strip()
        for o in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if o.strip()
    ]
