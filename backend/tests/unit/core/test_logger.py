"""Unit tests for the logging utility."""

from __future__ import annotations

import json
import logging

from dreamshepherd.core.logger import JSONFormatter, configure_logging
from tests.helpers.http import API


def test_configure_logging_sets_level() -> None:
    """``configure_logging`` should set the root logger level."""

    # Act
    configure_logging("DEBUG")

    # Assert
    assert logging.getLogger().level == logging.DEBUG


def test_json_formatter_keeps_whitelisted_extras() -> None:
    record = logging.LogRecord(
        "dreamshepherd.test", logging.INFO, __file__, 1, "hello %s", ("x",), None
    )
    record.event = "account.registered"
    record.dreamer_id = 7
    record.password = "never-logged"

    payload = json.loads(JSONFormatter().format(record))

    assert payload["message"] == "hello x"
    assert payload["event"] == "account.registered"
    assert payload["dreamer_id"] == 7
    assert "password" not in payload


def test_request_id_is_echoed(client) -> None:
    response = client.get(f"{API}/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"
