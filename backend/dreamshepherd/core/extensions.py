"""Global Flask extension instances and initialization helpers."""

from __future__ import annotations

import logging
from datetime import timedelta

import redis  # type: ignore[import-untyped]
from flask import Flask, current_app
from flask_jwt_extended import JWTManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy import MetaData

log = logging.getLogger(__name__)

# Global naming convention for all constraints
convention = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)

# Global singletons (import-safe)
db: SQLAlchemy = SQLAlchemy(session_options={"autoflush": False}, metadata=metadata)
migrate = Migrate(render_as_batch=True)
jwt = JWTManager()

INTRO_STORE_KEY = "intro_session_store"
CREDENTIAL_STORE_KEY = "credential_store"
TOKEN_PROVIDER_KEY = "token_provider"


def init_app(app: Flask) -> None:
    """Initialize SQLAlchemy, migrations, JWT and the identity adapters.

    Parameters
    ----------
    app: flask.Flask
        Application used to bind extension instances. This call imports the
        :mod:`dreamshepherd.models` package to ensure SQLAlchemy metadata is
        ready for migrations, then registers the intro session store, the
        credential store and the token provider under ``app.extensions``.
    """
    db.init_app(app)

    # Ensure models are imported so Alembic sees metadata
    from dreamshepherd import models as _models  # noqa: F401

    migrate.init_app(app, db)
    jwt.init_app(app)

    _init_redis(app)
    _init_identity_adapters(app)


def _init_redis(app: Flask) -> None:
    redis_url = app.config.get("REDIS_URL")
    if not redis_url:
        app.extensions.pop("redis_client", None)
        return

    client = redis.Redis.from_url(redis_url)
    try:
        client.ping()
    except RedisError as exc:
        raise RuntimeError(f"Failed to connect to Redis at {redis_url!r}") from exc
    app.extensions["redis_client"] = client


def _init_identity_adapters(app: Flask) -> None:
    from dreamshepherd.infra.jwt.flask_jwt_token_provider import JWTTokenProvider
    from dreamshepherd.infra.redis.redis_session_store import RedisIntroSessionStore
    from dreamshepherd.services._shared.ports import InMemoryIntroSessionStore
    from dreamshepherd.services.credentials.dto import Argon2Params
    from dreamshepherd.services.credentials.service import CredentialStore

    ttl_days = int(app.config.get("INTRO_SESSION_TTL_DAYS", 30))
    if ttl_days < 1:
        raise ValueError(f"INTRO_SESSION_TTL_DAYS must be at least 1, got {ttl_days}")
    ttl = timedelta(days=ttl_days)
    client = app.extensions.get("redis_client")
    if client is not None:
        app.extensions[INTRO_STORE_KEY] = RedisIntroSessionStore(r=client, ttl=ttl)
    else:
        if not app.config.get("TESTING"):
            log.warning(
                "REDIS_URL not set; intro sessions are kept in process memory",
                extra={"event": "intro_store.in_memory"},
            )
        app.extensions[INTRO_STORE_KEY] = InMemoryIntroSessionStore(ttl=ttl)

    app.extensions[CREDENTIAL_STORE_KEY] = CredentialStore(
        params=Argon2Params(
            memory_cost=int(app.config.get("ARGON2_MEMORY_COST", 65536)),
            time_cost=int(app.config.get("ARGON2_TIME_COST", 3)),
            parallelism=int(app.config.get("ARGON2_PARALLELISM", 1)),
        )
    )
    app.extensions[TOKEN_PROVIDER_KEY] = JWTTokenProvider()


def get_intro_store():
    """Return the intro session store registered on the current app."""
    return current_app.extensions[INTRO_STORE_KEY]


def get_credential_store():
    """Return the credential store registered on the current app."""
    return current_app.extensions[CREDENTIAL_STORE_KEY]


def get_token_provider():
    """Return the token provider registered on the current app."""
    return current_app.extensions[TOKEN_PROVIDER_KEY]
