from __future__ import annotations

import logging

import pytest
from fastapi.testclient import TestClient

from app.main import app


client = TestClient(app)


def test_echoes_incoming_request_id():
    resp = client.get("/health", headers={"X-Request-ID": "req-abc-123"})

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID") == "req-abc-123"


def test_generates_request_id_and_duration():
    resp = client.get("/health")

    assert resp.headers.get("X-Request-ID")
    assert float(resp.headers["X-Request-Duration-ms"]) >= 0


def test_error_responses_carry_request_id():
    resp = client.post(
        "/v1/attempts/check",
        json={"identifier": "x@y.com", "action": "login"},
        headers={"X-Request-ID": "req-denied"},
    )

    assert resp.status_code == 403
    assert resp.headers.get("X-Request-ID") == "req-denied"


def test_logs_completed_request(caplog: pytest.LogCaptureFixture):
    caplog.set_level(logging.INFO, logger="app.core.middleware")

    client.get("/health", headers={"X-Request-ID": "req-logged"})

    records = [r for r in caplog.records if r.getMessage() == "request.completed"]
    assert records
    assert records[-1].status_code == 200
    assert records[-1].path == "/health"
