"""
E-Filing Workflow Service
Configuration classes for the app factory.

Environment variables:
    APP_ENV                development | testing | production
    DATABASE_URL           PostgreSQL URL (required in production)
    TEST_DATABASE_URL      overrides the in-memory SQLite test database
    SECRET_KEY             required in production
    CORS_ORIGINS           comma-separated origins, "*" for any
    RATELIMIT_STORAGE_URI  memory:// (default) or redis://host:6379/0
    LOG_LEVEL              DEBUG | INFO | WARNING ...
"""

import os
import secrets

basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))

_SQLITE_DEV = f"sqlite:///{os.path.join(basedir, 'instance', 'efiling_dev.db')}"
_SQLITE_TEST = "sqlite:///:memory:"

# Random per process; sessions do not survive a dev restart
_DEV_SECRET = secrets.token_hex(32)


def _database_url(default=None):
    """DATABASE_URL with the ``postgres://`` scheme SQLAlchemy 2.0 rejects rewritten."""
    raw = os.getenv("DATABASE_URL", "")
    if not raw:
        return default
    if raw.startswith("postgres://"):
        return "postgresql://" + raw[len("postgres://"):]
    return raw


class Config:
    """Settings shared by every environment."""

    SECRET_KEY = os.getenv("SECRET_KEY", _DEV_SECRET)
    DEBUG = False
    TESTING = False
    LOG_LEVEL = os.getenv("LOG_LEVEL")

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True, "pool_recycle": 300}

    # Shared counter store when several workers serve the API
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_HEADERS_ENABLED = True

    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    # Routing payloads are a few ids and a remark
    MAX_CONTENT_LENGTH = 256 * 1024


class DevelopmentConfig(Config):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _database_url(_SQLITE_DEV)


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", _SQLITE_TEST)
    SQLALCHEMY_ENGINE_OPTIONS = {}
    RATELIMIT_ENABLED = False


class ProductionConfig(Config):
    """PostgreSQL only; refuses to start without a database URL and a stable secret."""

    SQLALCHEMY_DATABASE_URI = _database_url()
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 300,
        "pool_timeout": 20,
        # row locks taken by routing commands must not wait forever
        "connect_args": {"options": "-c statement_timeout=30000 -c lock_timeout=10000"},
    }

    def __init__(self):
        if not self.SQLALCHEMY_DATABASE_URI:
            raise RuntimeError("DATABASE_URL environment variable is required in production")
        if not os.getenv("SECRET_KEY"):
            raise RuntimeError("SECRET_KEY environment variable must be set in production")


config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
