"""Intro session endpoints (anonymous visitors, addressed by bearer token in the path)."""

from __future__ import annotations

from flask import Blueprint, request

from dreamshepherd.api.deps import intro_service, json_response, timing, upgrade_service
from dreamshepherd.schemas import (
    IntroCaptureSchema,
    IntroSessionSchema,
    IntroUpdateSchema,
    UpgradePreviewSchema,
)

bp = Blueprint("intro", __name__, url_prefix="/auth/intro")

capture_schema = IntroCaptureSchema()
update_schema = IntroUpdateSchema()
session_schema = IntroSessionSchema()
preview_schema = UpgradePreviewSchema()


@bp.post("")
@timing
def capture():
    """Capture an intro session; re-capturing with the same email updates it."""

    dto = capture_schema.load(request.get_json(silent=True) or {})
    result = intro_service().capture(dto)
    body = {"data": session_schema.dump(result.session), "created": result.created}
    return json_response(body, status=201 if result.created else 200)


@bp.get("/<string:token>")
@timing
def get_session(token: str):
    """Return the live intro session and record the visit."""

    session = intro_service().get(token)
    return json_response({"data": session_schema.dump(session)})


@bp.put("/<string:token>")
@timing
def update_session(token: str):
    """Edit title, vision or reminder of an intro session."""

    dto = update_schema.load(request.get_json(silent=True) or {})
    session = intro_service().update(token, dto)
    return json_response({"data": session_schema.dump(session)})


@bp.get("/<string:token>/upgrade-preview")
@timing
def upgrade_preview(token: str):
    """Report whether the session can be upgraded right now (no side effects)."""

    preview = upgrade_service().get_upgrade_preview(token)
    return json_response({"data": preview_schema.dump(preview)})


@bp.post("/<string:token>/upgrade-prompt")
@timing
def upgrade_prompt(token: str):
    """Record that the upgrade prompt was shown."""

    upgrade_service().mark_upgrade_prompt_shown(token)
    return "", 204
