import logging

import pytest
import structlog
from structlog.testing import LogCapture

from keuthlie import app as app_module
from keuthlie.logging import _add_correlation_id


@pytest.fixture
def captured(monkeypatch):
    cap = LogCapture()
    monkeypatch.setattr(
        app_module,
        "logger",
        structlog.wrap_logger(
            structlog.ReturnLogger(),
            processors=[_add_correlation_id, cap],
            wrapper_class=structlog.make_filtering_bound_logger(logging.INFO),
        ),
    )
    return cap


def _access_lines(cap):
    return [entry for entry in cap.entries if entry["event"] == "request_completed"]


def test_every_request_gets_one_access_line(client, captured):
    client.post(
        "/api/v0/auth/verifyToken",
        json={"token": "garbage"},
        headers={"X-Request-ID": "req-access-1"},
    )
    (line,) = _access_lines(captured)
    assert line["method"] == "POST"
    assert line["path"] == "/api/v0/auth/verifyToken"
    assert line["status_code"] == 401
    assert isinstance(line["latency_ms"], float)
    assert line["latency_ms"] >= 0
    assert line["correlation_id"] == "req-access-1"


def test_access_line_reports_validation_status(client, captured):
    client.post("/api/v0/auth/register/email", json={"email": "a@example.com"})
    (line,) = _access_lines(captured)
    assert line["status_code"] == 400


def test_security_headers_present(client):
    response = client.post("/api/v0/auth/verifyToken", json={"token": "garbage"})
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["Cache-Control"] == "no-store"
