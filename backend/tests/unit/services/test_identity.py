"""Unit tests for caller identity resolution (anonymous / intro / dreamer)."""

from __future__ import annotations

from datetime import timedelta

import pytest

from dreamshepherd.api import deps
from dreamshepherd.core.extensions import get_token_provider
from dreamshepherd.services._shared.errors import AuthError, AuthFailure
from dreamshepherd.services.accounts.dto import RegisterIn
from dreamshepherd.services.auth.dto import TokenSubject
from dreamshepherd.services.auth.identity import (
    AnonymousIdentity,
    DreamerIdentity,
    IntroIdentity,
    resolve_identity,
)
from dreamshepherd.services.intro.dto import IntroCaptureIn


@pytest.fixture()
def resolve():
    def _resolve(bearer=None, intro_token=None):
        return resolve_identity(
            tokens=deps.token_service(),
            intro=deps.intro_service(),
            bearer=bearer,
            intro_token=intro_token,
        )

    return _resolve


@pytest.fixture()
def access_token() -> str:
    account = deps.account_service().register(
        RegisterIn(email="who@example.com", password="long-enough")
    )
    return deps.token_service().issue_access_token(TokenSubject.from_account(account))


@pytest.fixture()
def intro_token() -> str:
    return deps.intro_service().capture(IntroCaptureIn(title="Wander")).session.token


def test_anonymous_without_credentials(resolve):
    identity = resolve()
    assert isinstance(identity, AnonymousIdentity)
    assert identity.kind == "anonymous"


def test_intro_session(resolve, intro_token):
    identity = resolve(intro_token=intro_token)
    assert isinstance(identity, IntroIdentity)
    assert identity.session.title == "Wander"


def test_bearer_wins_over_intro_token(resolve, access_token, intro_token):
    identity = resolve(bearer=access_token, intro_token=intro_token)
    assert isinstance(identity, DreamerIdentity)
    assert identity.kind == "dreamer"
    assert identity.account.email == "who@example.com"


def test_revoked_bearer_falls_back_to_intro(resolve, access_token, intro_token):
    account_id = deps.token_service().authenticate(access_token).id
    deps.account_service().revoke_all_sessions(account_id)
    assert isinstance(resolve(bearer=access_token, intro_token=intro_token), IntroIdentity)


def test_garbage_credentials_degrade_to_anonymous(resolve):
    assert isinstance(resolve(bearer="garbage", intro_token="f" * 64), AnonymousIdentity)


def test_expired_bearer_is_reported(resolve, intro_token):
    expired = get_token_provider().create_access_token(
        identity="1", additional_claims={"rv": 0}, expires_delta=timedelta(seconds=-5)
    )
    with pytest.raises(AuthError) as exc:
        resolve(bearer=expired, intro_token=intro_token)
    assert exc.value.reason is AuthFailure.EXPIRED
