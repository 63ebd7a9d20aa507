"""Pytest fixtures building an isolated application per test.

Every test gets a fresh app (in-memory SQLite, in-memory intro session
store, cheap argon2 parameters) with an application context pushed and the
schema created, so data never leaks between cases.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from typing import Any

import pytest
from flask import Flask

from dreamshepherd.core.config import TestingConfig
from dreamshepherd.core.extensions import db as _db
from dreamshepherd.factory import create_app


@pytest.fixture()
def app() -> Generator[Flask, None, None]:
    """Create a Flask application configured for testing.

    Yields
    ------
    flask.Flask
        Application with :class:`TestingConfig` applied, an app context
        pushed and all tables created.
    """
    # Ensure env-based config does not leak into tests
    os.environ.pop("DATABASE_URL", None)
    application = create_app(TestingConfig)
    application.logger.setLevel("WARNING")
    with application.app_context():
        _db.create_all()
        yield application
        _db.session.remove()
        _db.drop_all()


@pytest.fixture()
def db(app: Flask):
    """Database extension bound to the testing application."""
    return _db


@pytest.fixture()
def session(db):
    """Scoped session shared by the application code and the factories."""
    return db.session


@pytest.fixture()
def client(app: Flask) -> Any:
    """Return a Flask test client (keeps cookies between requests)."""
    return app.test_client()


@pytest.fixture(scope="session")
def faker():
    """Provide a :class:`faker.Faker` instance seeded for deterministic tests."""
    from faker import Faker

    fk = Faker()
    Faker.seed(1337)
    return fk


# -- Hook up Factory Boy to the scoped session ---------------------------------
@pytest.fixture(autouse=True)
def _factories_session(app, session):
    """Wire Factory Boy's session helper to the application session."""
    from tests.factories import SQLAlchemySession

    SQLAlchemySession.set(session)
    yield
    SQLAlchemySession.set(None)
