"""
Tests for request logging and per-request log context.
"""

import pytest
import structlog
from fastapi.testclient import TestClient
from starlette.requests import Request

from unstick.core.recovery.service import get_recovery_service
from unstick.main import app
from unstick.middleware import logging_middleware


class RecordingLogger:
    def __init__(self):
        self.events = []

    def _record(self, level):
        def log(event, **kw):
            self.events.append((level, event, kw))
        return log

    def __getattr__(self, level):
        return self._record(level)


class Payload:
    def __init__(self, data):
        self.data = data

    def to_dict(self):
        return self.data


class ContextCapturingService:
    """Records the structlog context each call runs under."""

    def __init__(self):
        self.contexts = []

    async def diagnose(self, account_id):
        self.contexts.append(structlog.contextvars.get_contextvars())
        return Payload({"profileId": account_id})

    async def heal(self, account_id, fee_rate_gwei=None, should_stop=None):
        self.contexts.append(structlog.contextvars.get_contextvars())
        return Payload({"profileId": account_id})


@pytest.fixture
def access_log(monkeypatch):
    recorder = RecordingLogger()
    monkeypatch.setattr(logging_middleware, "logger", recorder)
    return recorder


@pytest.fixture
def service():
    service = ContextCapturingService()
    app.dependency_overrides[get_recovery_service] = lambda: service
    yield service
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)


def test_diagnose_runs_with_profile_and_request_id_bound(client, service, access_log):
    resp = client.get("/unstick", params={"profileId": "mm-1"}, headers={"x-request-id": "req-42"})

    assert resp.status_code == 200
    assert resp.headers["x-request-id"] == "req-42"
    assert service.contexts[0]["profile_id"] == "mm-1"
    assert service.contexts[0]["request_id"] == "req-42"

    [(level, event, fields)] = access_log.events
    assert (level, event) == ("info", "http_request")
    assert fields["path"] == "/unstick"
    assert fields["status"] == 200


def test_heal_binds_profile_from_body(client, service, access_log):
    resp = client.post("/unstick", json={"profileId": " mm-2 "})

    assert resp.status_code == 200
    assert service.contexts[0]["profile_id"] == "mm-2"
    assert len(service.contexts[0]["request_id"]) == 8


def test_client_errors_logged_as_warning(client, service, access_log):
    resp = client.get("/unstick/nope")

    assert resp.status_code == 404
    [(level, _, fields)] = access_log.events
    assert level == "warning"
    assert fields["status"] == 404


def test_health_checks_are_not_access_logged(client, access_log):
    resp = client.get("/healthz")

    assert resp.status_code == 200
    assert "x-request-id" in resp.headers
    assert access_log.events == []


def test_request_context_ignores_blank_profile():
    request = Request({
        "type": "http",
        "method": "GET",
        "path": "/unstick",
        "query_string": b"profileId=%20%20",
        "headers": [],
    })

    context = logging_middleware.request_context(request)

    assert "profile_id" not in context
    assert len(context["request_id"]) == 8
