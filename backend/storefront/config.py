# backend/storefront/config.py
from __future__ import annotations
import os


def _env_list(name: str, default: str) -> list[str]:
    raw = os.environ.get(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/storefront.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location (e.g. postgresql://...)
        "sqlite:///storefront.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Signing key for access/refresh tokens; falls back to SECRET_KEY
    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", SECRET_KEY)
    ACCESS_TOKEN_TTL_MINUTES = int(os.environ.get("ACCESS_TOKEN_TTL_MINUTES", "15"))
    REFRESH_TOKEN_TTL_DAYS = int(os.environ.get("REFRESH_TOKEN_TTL_DAYS", "7"))
    REFRESH_COOKIE_SECURE = os.environ.get("REFRESH_COOKIE_SECURE", "false").lower() == "true"

    # Role granted to a user when their vendor application is approved
    VENDOR_ELEVATED_ROLE = os.environ.get("VENDOR_ELEVATED_ROLE", "admin")

    CORS_ALLOWED_ORIGINS = _env_list(
        "CORS_ALLOWED_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000",
    )

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Used by `flask users create-superadmin` when options are omitted
    SUPER_USER_EMAIL = os.environ.get("SUPER_USER_EMAIL")
    SUPER_USER_PASSWORD = os.environ.get("SUPER_USER_PASSWORD")


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    JWT_SECRET_KEY = "test-jwt-secret-key-with-enough-length"
    ACCESS_TOKEN_TTL_MINUTES = 15
    REFRESH_TOKEN_TTL_DAYS = 7
    REFRESH_COOKIE_SECURE = False
    LOG_LEVEL = "DEBUG"
