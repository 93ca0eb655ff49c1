from datetime import datetime, timedelta, timezone

import jwt
import pytest
from flask import Flask, g, jsonify

from movie_catalog.auth import Identity, authenticate, issue_token, parse_duration, require_auth
from movie_catalog.errors import AuthenticationError, AuthorizationError

SECRET = "unit-test-secret-that-is-long-enough-for-hs256"


@pytest.mark.parametrize("raw, expected", [
    ("1d", 86400),
    ("12h", 43200),
    ("30m", 1800),
    ("45s", 45),
    ("3600", 3600),
    (120, 120),
    ("soon", 86400),
    (None, 86400),
    ("0", 86400),
])
def test_parse_duration(raw, expected):
    assert parse_duration(raw) == expected


def test_authenticate_round_trip():
    token = issue_token("abc123", "admin", SECRET, "1h")
    identity = authenticate(f"Bearer {token}", SECRET)
    assert identity == Identity(user_id="abc123", role="admin")


def test_authenticate_requires_bearer_header():
    with pytest.raises(AuthenticationError) as excinfo:
        authenticate(None, SECRET)
    assert excinfo.value.message == "No token, authorization denied"

    with pytest.raises(AuthenticationError):
        authenticate("Token abc", SECRET)


def test_authenticate_rejects_bad_signature():
    token = issue_token("abc123", "user", "another-secret-that-is-long-enough-for-hs256")
    with pytest.raises(AuthenticationError) as excinfo:
        authenticate(f"Bearer {token}", SECRET)
    assert excinfo.value.status_code == 401
    assert excinfo.value.message == "Token is not valid"


def test_authenticate_rejects_expired_token():
    past = datetime.now(timezone.utc) - timedelta(hours=2)
    token = jwt.encode({"id": "abc123", "role": "user", "iat": past, "exp": past + timedelta(hours=1)}, SECRET, algorithm="HS256")
    with pytest.raises(AuthenticationError):
        authenticate(f"Bearer {token}", SECRET)


def test_authenticate_enforces_required_role():
    token = issue_token("abc123", "user", SECRET)
    with pytest.raises(AuthorizationError) as excinfo:
        authenticate(f"Bearer {token}", SECRET, required_role="admin")
    assert excinfo.value.status_code == 403


@pytest.fixture
def guarded_client():
    app = Flask(__name__)
    app.config["JWT_SECRET"] = SECRET

    @app.route("/me")
    @require_auth()
    def me():
        return jsonify({"id": g.identity.user_id, "role": g.identity.role})

    @app.route("/admin")
    @require_auth("admin")
    def admin_only():
        return jsonify({"ok": True})

    return app.test_client()


def test_require_auth_attaches_identity(guarded_client):
    token = issue_token("u1", "user", SECRET)
    response = guarded_client.get("/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    assert response.get_json() == {"id": "u1", "role": "user"}


def test_require_auth_rejects_missing_token(guarded_client):
    response = guarded_client.get("/me")
    assert response.status_code == 401
    assert response.get_json() == {"error": "No token, authorization denied"}


def test_require_auth_role_mismatch_is_forbidden(guarded_client):
    token = issue_token("u1", "user", SECRET)
    response = guarded_client.get("/admin", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 403
    assert response.get_json() == {"error": "Forbidden"}

    admin_token = issue_token("u2", "admin", SECRET)
    assert guarded_client.get("/admin", headers={"Authorization": f"Bearer {admin_token}"}).status_code == 200
