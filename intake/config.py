"""
Site Intake
Configuration classes for the Flask application factory.

Usage:
    config_name = os.getenv("APP_ENV", "development")
    app.config.from_object(config[config_name])

Every knob can be set from the environment; see the class attributes for
names and defaults.
"""

import os
import secrets

basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))

_SQLITE_DEV = f"sqlite:///{os.path.join(basedir, 'instance', 'site_intake_dev.db')}"
_SQLITE_TEST = "sqlite:///:memory:"

# Development only; production refuses to start without SECRET_KEY
_DEV_SECRET = secrets.token_hex(32)

WORKFLOW_POLICIES = ("permissive", "strict")
COLLECTION_REPLACE_POLICIES = ("last_write_wins", "versioned")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_choice(name: str, choices: tuple) -> str:
    value = os.getenv(name, choices[0]).strip().lower()
    if value not in choices:
        raise RuntimeError(f"{name} must be one of: {', '.join(choices)} (got {value!r})")
    return value


def _database_url(fallback=None):
    # Railway/Heroku hand out postgres:// which SQLAlchemy 2 no longer accepts
    raw = os.getenv("DATABASE_URL", "")
    return raw.replace("postgres://", "postgresql://", 1) if raw else fallback


class Config:
    """Settings shared by every environment."""

    SECRET_KEY = os.getenv("SECRET_KEY", _DEV_SECRET)
    DEBUG = False
    TESTING = False

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True, "pool_recycle": 300}

    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    # memory:// is per process; point at redis:// when running several workers
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    # Per-blueprint buckets, read by intake.middleware.rate_limiter
    RATELIMIT_AI = os.getenv("RATELIMIT_AI", "20/minute")
    RATELIMIT_INTAKE = os.getenv("RATELIMIT_INTAKE", "300/minute")
    RATELIMIT_ADMIN = os.getenv("RATELIMIT_ADMIN", "120/minute")

    # ── Intake session ───────────────────────────────────────────────────
    DEFAULT_VERTICAL = os.getenv("DEFAULT_VERTICAL", "home_services")
    AUTOSAVE_DEBOUNCE_SECONDS = float(os.getenv("AUTOSAVE_DEBOUNCE_SECONDS", "1.0"))
    SAVE_INDICATOR_SECONDS = float(os.getenv("SAVE_INDICATOR_SECONDS", "0.8"))

    # ── Workflow / storage policies ──────────────────────────────────────
    WORKFLOW_POLICY = _env_choice("WORKFLOW_POLICY", WORKFLOW_POLICIES)
    COLLECTION_REPLACE_POLICY = _env_choice("COLLECTION_REPLACE_POLICY", COLLECTION_REPLACE_POLICIES)

    # ── Copy generation ──────────────────────────────────────────────────
    LLM_DEFAULT_CHAT_MODEL = os.getenv("LLM_DEFAULT_CHAT_MODEL", "claude-sonnet-4-5-20250929")
    AI_GENERATION_MAX_TOKENS = int(os.getenv("AI_GENERATION_MAX_TOKENS", "1024"))
    # Answer from the local stub when the configured provider has no API key
    AI_STUB_FALLBACK = _env_bool("AI_STUB_FALLBACK", "true")


class DevelopmentConfig(Config):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _database_url(_SQLITE_DEV)


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", _SQLITE_TEST)
    SQLALCHEMY_ENGINE_OPTIONS = {}
    RATELIMIT_ENABLED = False
    LLM_DEFAULT_CHAT_MODEL = "local-stub"
    AI_STUB_FALLBACK = True
    WORKFLOW_POLICY = "permissive"
    COLLECTION_REPLACE_POLICY = "last_write_wins"


class ProductionConfig(Config):
    """Validated on instantiation: DATABASE_URL and SECRET_KEY are mandatory."""

    SQLALCHEMY_DATABASE_URI = _database_url()
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")
    # A missing provider key is a generation failure, not stub copy
    AI_STUB_FALLBACK = _env_bool("AI_STUB_FALLBACK", "false")

    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 300,
        "pool_timeout": 20,
        "connect_args": {"options": "-c statement_timeout=30000"},
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
