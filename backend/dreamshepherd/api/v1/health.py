"""Health check endpoint."""

from __future__ import annotations

from flask import Blueprint, current_app
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from dreamshepherd.api.deps import json_response, timing
from dreamshepherd.core.extensions import db

bp = Blueprint("health", __name__)


@bp.get("/health")
@timing
def healthcheck():
    """Return application, database and session store health information."""

    db_status = "ok"
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError:  # pragma: no cover - depends on DB backend
        current_app.logger.exception("healthcheck.db_error")
        db_status = "fail"

    client = current_app.extensions.get("redis_client")
    if client is None:
        store_status = "memory"
    else:
        try:
            client.ping()
            store_status = "ok"
        except RedisError:  # pragma: no cover - depends on Redis availability
            current_app.logger.exception("healthcheck.redis_error")
            store_status = "fail"

    version = current_app.config.get("APP_VERSION", "dev")
    commit = current_app.config.get("APP_COMMIT", "unknown")
    payload = {
        "status": "ok" if db_status == "ok" and store_status != "fail" else "degraded",
        "db": db_status,
        "session_store": store_status,
        "version": version,
        "commit": commit,
    }
    return json_response(payload)
