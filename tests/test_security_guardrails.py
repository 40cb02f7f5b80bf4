import logging

from unipilot.core.jwt_auth import create_token, decode_token
from unipilot.core.logging import SecretRedactionFilter, redact_secrets


def test_redact_secrets_masks_sensitive_values():
    raw = (
        "authorization=Bearer abc123 "
        "x-api-key=gateway-secret "
        "token=my-token password=my-password"
    )
    masked = redact_secrets(raw)
    assert "abc123" not in masked
    assert "gateway-secret" not in masked
    assert "my-token" not in masked
    assert "my-password" not in masked
    assert "[REDACTED]" in masked


def test_redaction_filter_rewrites_log_records():
    record = logging.LogRecord(
        "unipilot.test", logging.INFO, __file__, 1, "login password=%s", ("hunter2",), None
    )
    assert SecretRedactionFilter().filter(record) is True
    assert "hunter2" not in record.getMessage()


def test_token_round_trip_carries_student_id():
    payload = decode_token(create_token(42, email="student@example.edu"))
    assert payload["sub"] == "42"
    assert decode_token("garbage") is None


def test_expired_token_has_no_student():
    from datetime import timedelta

    from unipilot.core.jwt_auth import student_id_from_token

    assert student_id_from_token(create_token(7)) == 7
    assert student_id_from_token(create_token(7, expires_in=timedelta(seconds=-5))) is None


def test_gateway_auth_enabled_path_requires_api_key(client, auth, monkeypatch):
    from unipilot.core.settings import settings

    monkeypatch.setattr(settings, "gateway_auth_enabled", True)
    monkeypatch.setattr(settings, "gateway_api_key", "test-key")

    blocked = client.get("/student/courses", headers=auth)
    assert blocked.status_code == 401
    assert "missing x-api-key" in str(blocked.json())

    health = client.get("/health")
    assert health.status_code == 200

    allowed = client.get("/student/courses", headers={**auth, "x-api-key": "test-key"})
    assert allowed.status_code == 200


def test_unhandled_errors_return_envelope(client, auth, monkeypatch):
    from fastapi.testclient import TestClient

    from unipilot.main import app
    from unipilot.storage.repositories import SqlCourseRepository

    async def boom(self, student_id):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(SqlCourseRepository, "list_for_student", boom)
    no_raise = TestClient(app, raise_server_exceptions=False)
    response = no_raise.get("/student/courses", headers=auth)
    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == "internal_error"
    assert "database unavailable" not in str(body)
