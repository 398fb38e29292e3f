# backend/cargodesk/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored next to the instance by default
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///cargodesk.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Booking identifiers: P-20250609-0001, or P-OPR-20250609-0001 when enabled
    BOOKING_ID_INCLUDE_OPERATOR_CODE = _env_bool("BOOKING_ID_INCLUDE_OPERATOR_CODE", False)
    BOOKING_SEQUENCE_PAD = int(os.environ.get("BOOKING_SEQUENCE_PAD", "4"))

    CORS_ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if origin.strip()
    ]

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # bcrypt cost factor (tests lower this)
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))
