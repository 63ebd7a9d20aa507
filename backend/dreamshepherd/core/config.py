"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from datetime import timedelta
from typing import Final

from dotenv import load_dotenv

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'


# Loads .env in development (no-op when missing)
load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: bool, optional
        Value returned when the variable is unset. Defaults to ``False``.

    Returns
    -------
    bool
        ``True`` if the value resembles ``{"1", "true", "yes", "y", "on"}``
        ignoring case; otherwise ``False`` or ``default`` when missing.
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def env_int(name: str, default: int) -> int:
    """Parse an integer from an environment variable, falling back to ``default``."""
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    return int(val)


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for registering API blueprints.
    SECRET_KEY: str
        Flask secret used for session signing.
    JWT_SECRET_KEY: str
        Key used by ``flask-jwt-extended`` for signing access and refresh tokens.
    JWT_ENCODE_ISSUER / JWT_DECODE_ISSUER: str
        ``iss`` claim written into and required from every token.
    JWT_ENCODE_AUDIENCE / JWT_DECODE_AUDIENCE: str
        ``aud`` claim written into and required from every token.
    JWT_ACCESS_TOKEN_EXPIRES / JWT_REFRESH_TOKEN_EXPIRES: timedelta
        Token lifetimes (15 minutes and 7 days by default).
    SQLALCHEMY_DATABASE_URI: str
        Database connection string for accounts and dreams.
    REDIS_URL: str | None
        When set, intro sessions live in Redis; otherwise in process memory.
    INTRO_SESSION_TTL_DAYS: int
        Lifetime of an intro session record.
    INTRO_DEFAULT_REMINDER_DAYS: int
        Offset used when an intro capture does not pick a reminder time.
    CLIENT_BASE_URL: str
        Front-end origin used to build the "continue your dream" link.
    LOGIN_MAX_ATTEMPTS / LOGIN_LOCKOUT_MINUTES: int
        Consecutive failed logins before the account locks, and lock length.
    PASSWORD_RESET_MINUTES / EMAIL_VERIFICATION_HOURS: int
        Lifetime of single-use opaque tokens.
    ARGON2_MEMORY_COST / ARGON2_TIME_COST / ARGON2_PARALLELISM: int
        Argon2id cost parameters (KiB, iterations, lanes).
    REFRESH_COOKIE_NAME / REFRESH_COOKIE_PATH / REFRESH_COOKIE_SECURE
        Transport settings of the HTTP-only refresh cookie.
    UPGRADE_SESSION_DELETE_ATTEMPTS: int
        Retries when discarding an intro session after a committed upgrade.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).
    CORS_ORIGINS: str
        Comma-separated list of allowed origins for CORS.

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    API_BASE_PREFIX = "/api"

    # Secrets / security
    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME_flask_secret_key_for_local_dev_only")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "CHANGE_ME_jwt_signing_key_for_local_dev_only")
    JWT_TOKEN_LOCATION = ["headers"]
    JWT_ENCODE_ISSUER = os.getenv("JWT_ISSUER", "dreamshepherd")
    JWT_DECODE_ISSUER = JWT_ENCODE_ISSUER
    JWT_ENCODE_AUDIENCE = os.getenv("JWT_AUDIENCE", "dreamshepherd-api")
    JWT_DECODE_AUDIENCE = JWT_ENCODE_AUDIENCE
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(minutes=env_int("ACCESS_TOKEN_MINUTES", 15))
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(days=env_int("REFRESH_TOKEN_DAYS", 7))

    # DB
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)

    # Intro sessions
    REDIS_URL = os.getenv("REDIS_URL") or None
    INTRO_SESSION_TTL_DAYS = env_int("INTRO_SESSION_TTL_DAYS", 30)
    INTRO_DEFAULT_REMINDER_DAYS = env_int("INTRO_DEFAULT_REMINDER_DAYS", 2)
    CLIENT_BASE_URL = os.getenv("CLIENT_BASE_URL", "http://localhost:5173")

    # Accounts
    LOGIN_MAX_ATTEMPTS = env_int("LOGIN_MAX_ATTEMPTS", 5)
    LOGIN_LOCKOUT_MINUTES = env_int("LOGIN_LOCKOUT_MINUTES", 120)
    PASSWORD_RESET_MINUTES = env_int("PASSWORD_RESET_MINUTES", 10)
    EMAIL_VERIFICATION_HOURS = env_int("EMAIL_VERIFICATION_HOURS", 24)
    UPGRADE_SESSION_DELETE_ATTEMPTS = env_int("UPGRADE_SESSION_DELETE_ATTEMPTS", 3)

    # Password hashing (argon2id)
    ARGON2_MEMORY_COST = env_int("ARGON2_MEMORY_COST", 65536)
    ARGON2_TIME_COST = env_int("ARGON2_TIME_COST", 3)
    ARGON2_PARALLELISM = env_int("ARGON2_PARALLELISM", 1)

    # Refresh cookie
    REFRESH_COOKIE_NAME = os.getenv("REFRESH_COOKIE_NAME", "refreshToken")
    REFRESH_COOKIE_PATH = os.getenv("REFRESH_COOKIE_PATH", "/api/v1/auth")
    REFRESH_COOKIE_SECURE = env_bool("REFRESH_COOKIE_SECURE", False)

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging & CORS
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173")

    # Flask built-ins
    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development.

    Notes
    -----
    Enables debug mode by default and honors ``SQLALCHEMY_ECHO`` for verbose
    SQL logging when requested.
    """

    DEBUG = env_bool("FLASK_DEBUG", True)
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    CORS_MAX_AGE = 600  # 10 minutes


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Forces ``TESTING`` mode and disables debug logs.
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Keeps intro sessions in memory and lowers the argon2 cost.
    """

    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    REDIS_URL = None
    ARGON2_MEMORY_COST = 1024
    ARGON2_TIME_COST = 1
    PROPAGATE_EXCEPTIONS = True


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments.

    Notes
    -----
    Keeps debug and SQL echoing disabled and always marks the refresh cookie
    as ``Secure``.
    """

    DEBUG = False
    SQLALCHEMY_ECHO = False
    PROPAGATE_EXCEPTIONS = False
    REFRESH_COOKIE_SECURE = True


# Map names -> classes (simple, explicit)
CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Returns
    -------
    type[BaseConfig]
        Class to pass to :meth:`flask.Config.from_object`.

    Notes
    -----
    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)
