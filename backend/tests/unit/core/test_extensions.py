"""Unit tests for adapter wiring at application start-up."""

from __future__ import annotations

import os

import pytest

from dreamshepherd.core.config import TestingConfig
from dreamshepherd.factory import create_app
from dreamshepherd.services.intro.dto import IntroPolicy


class ZeroTTLConfig(TestingConfig):
    INTRO_SESSION_TTL_DAYS = 0


def test_zero_intro_session_ttl_is_rejected():
    os.environ.pop("DATABASE_URL", None)
    with pytest.raises(ValueError, match="INTRO_SESSION_TTL_DAYS"):
        create_app(ZeroTTLConfig)


def test_intro_policy_requires_positive_ttl():
    with pytest.raises(ValueError):
        IntroPolicy(ttl_days=0)
