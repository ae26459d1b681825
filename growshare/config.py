"""Application configuration helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Type


class BaseConfig:
    """Base configuration shared across environments."""

    PROJECT_ROOT = Path(__file__).resolve().parent.parent
    SECRET_KEY = os.getenv("FLASK_SECRET_KEY", "dev-secret-change-me")
    DATABASE_URL = os.getenv("DATABASE_URL") or f"sqlite:///{PROJECT_ROOT / 'growshare.db'}"
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    WTF_CSRF_ENABLED = False

    # Headers forwarded by the identity provider gateway.
    IDENTITY_SUBJECT_HEADER = os.getenv("IDENTITY_SUBJECT_HEADER", "X-Auth-Subject")
    IDENTITY_CLAIM_HEADERS = {
        "email": "X-Auth-Email",
        "username": "X-Auth-Username",
        "first_name": "X-Auth-First-Name",
        "last_name": "X-Auth-Last-Name",
    }

    AVAILABILITY_HORIZON_DAYS = int(os.getenv("AVAILABILITY_HORIZON_DAYS", "365"))
    LEADERBOARD_LIMIT = 20
    ACTIVITY_PAGE_SIZE = 20


class DevelopmentConfig(BaseConfig):
    """Configuration tweaks for local development."""

    DEBUG = True
    TESTING = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")


class TestingConfig(BaseConfig):
    """In-memory database configuration for pytest."""

    DEBUG = False
    TESTING = True
    DATABASE_URL = "sqlite:///:memory:"


class ProductionConfig(BaseConfig):
    """Production hardened configuration."""

    DEBUG = False
    TESTING = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")


def get_config() -> Type[BaseConfig]:
    """Return the configuration class based on FLASK_ENV."""

    env = os.getenv("FLASK_ENV", "development").lower()
    if env == "production":
        return ProductionConfig
    if env == "testing":
        return TestingConfig
    return DevelopmentConfig
