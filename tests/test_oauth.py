from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlparse

import pytest
from jose import jwt

from extensions import db
from models import User
from services import oauth_service


class FakeResponse:
    def __init__(self, status_code, payload):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        return self._payload


@pytest.fixture
def provider(monkeypatch):
    """Stub the provider token and profile endpoints."""
    calls = {"post": [], "get": []}
    state = {
        "token": FakeResponse(200, {"access_token": "provider-token"}),
        "profile": FakeResponse(200, {"id": "42", "email": "Grace.Hopper@example.com", "name": "Grace Hopper"}),
    }

    def fake_post(url, data=None, timeout=None):
        calls["post"].append((url, data))
        return state["token"]

    def fake_get(url, headers=None, timeout=None):
        calls["get"].append((url, headers))
        return state["profile"]

    monkeypatch.setattr(oauth_service.requests, "post", fake_post)
    monkeypatch.setattr(oauth_service.requests, "get", fake_get)
    return {"calls": calls, "responses": state}


def _tamper(token):
    header, payload, signature = token.split(".")
    claims = payload[:-4] + ("AAAA" if not payload.endswith("AAAA") else "BBBB")
    return ".".join([header, claims, signature])


def _issue_state(client):
    response = client.get("/api/v1/auth/google/state")
    assert response.status_code == 200
    return response.get_json()["state"]


def test_valid_state_signs_in_and_creates_user(app, client, provider):
    state = _issue_state(client)
    response = client.get("/api/v1/auth/google/callback", query_string={"code": "abc", "state": state})

    assert response.status_code == 200, response.get_json()
    body = response.get_json()
    assert body["access_token"] and body["refresh_token"]
    assert body["user"]["username"] == "grace.hopper"
    assert provider["calls"]["post"][0][1]["code"] == "abc"

    with app.app_context():
        user = User.query.filter_by(email="grace.hopper@example.com").one()
        assert user.is_social and user.is_verified
        assert user.role_name == "User"


def test_state_is_single_use(client, provider):
    state = _issue_state(client)
    assert client.get("/api/v1/auth/google/callback", query_string={"code": "abc", "state": state}).status_code == 200

    replay = client.get("/api/v1/auth/google/callback", query_string={"code": "abc", "state": state})
    assert replay.status_code == 403


def test_tampered_state_is_forbidden(client, provider):
    state = _issue_state(client)
    response = client.get("/api/v1/auth/google/callback", query_string={"code": "abc", "state": _tamper(state)})

    assert response.status_code == 403
    assert "access_token" not in response.get_json()
    assert provider["calls"]["post"] == []


def test_expired_state_is_forbidden(app, client, provider):
    past = datetime.now(timezone.utc) - timedelta(minutes=5)
    expired = jwt.encode(
        {"type": "oauth_state", "nonce": "n", "exp": int(past.timestamp())},
        app.config["JWT_SECRET"],
        algorithm="HS256",
    )
    response = client.get("/api/v1/auth/google/callback", query_string={"code": "abc", "state": expired})
    assert response.status_code == 403


def test_state_not_issued_by_this_server_is_forbidden(app, client, provider):
    future = datetime.now(timezone.utc) + timedelta(minutes=5)
    foreign = jwt.encode(
        {"type": "oauth_state", "nonce": "n", "exp": int(future.timestamp())},
        app.config["JWT_SECRET"],
        algorithm="HS256",
    )
    response = client.get("/api/v1/auth/google/callback", query_string={"code": "abc", "state": foreign})
    assert response.status_code == 403


def test_failed_code_exchange_is_unauthorized(client, provider):
    provider["responses"]["token"] = FakeResponse(400, {"error": "invalid_grant"})
    state = _issue_state(client)

    response = client.get("/api/v1/auth/google/callback", query_string={"code": "abc", "state": state})
    assert response.status_code == 401


def test_profile_failure_is_bad_gateway(client, provider):
    provider["responses"]["profile"] = FakeResponse(500, {})
    state = _issue_state(client)

    response = client.get("/api/v1/auth/google/callback", query_string={"code": "abc", "state": state})
    assert response.status_code == 502


def test_profile_without_email_is_unprocessable(client, provider):
    provider["responses"]["profile"] = FakeResponse(200, {"id": "1", "name": "No Email"})
    state = _issue_state(client)

    response = client.get("/api/v1/auth/google/callback", query_string={"code": "abc", "state": state})
    assert response.status_code == 422


def test_existing_account_is_reused(app, client, register, provider):
    register(email="grace.hopper@example.com", fullname="Grace Hopper")
    state = _issue_state(client)

    response = client.get("/api/v1/auth/google/callback", query_string={"code": "abc", "state": state})
    assert response.status_code == 200
    with app.app_context():
        assert User.query.filter_by(email="grace.hopper@example.com").count() == 1
        assert not db.session.query(User).filter_by(email="grace.hopper@example.com").one().is_social


def test_login_redirects_to_provider(client):
    google = client.get("/api/v1/google/login")
    assert google.status_code == 302
    location = urlparse(google.headers["Location"])
    assert location.netloc == "accounts.google.com"
    assert parse_qs(location.query)["response_type"] == ["code"]

    facebook = client.get("/api/v1/fb/auth")
    assert facebook.status_code == 302
    assert urlparse(facebook.headers["Location"]).netloc == "www.facebook.com"


def test_facebook_callback_uses_shared_flow(client, provider):
    state = _issue_state(client)
    response = client.get("/api/v1/fb/callback", query_string={"code": "fb-code", "state": state})

    assert response.status_code == 200
    assert provider["calls"]["get"][0][0].startswith("https://graph.facebook.com/me")


def test_mobile_token_login_verifies_with_provider(app, client, provider):
    response = client.post(
        "/api/v1/google/user/login",
        json={"access_token": "device-token", "expo_push_token": "ExponentPushToken[abc]"},
    )

    assert response.status_code == 200, response.get_json()
    assert response.get_json()["access_token"]
    assert provider["calls"]["get"][0][1] == {"Authorization": "Bearer device-token"}
    assert provider["calls"]["post"] == []
    with app.app_context():
        user = User.query.filter_by(email="grace.hopper@example.com").one()
        assert user.is_social
        assert user.expo_push_token == "ExponentPushToken[abc]"


def test_mobile_token_login_rejects_bad_tokens(client, provider):
    assert client.post("/api/v1/facebook/user/login", json={}).status_code == 400

    provider["responses"]["profile"] = FakeResponse(401, {"error": "invalid token"})
    response = client.post("/api/v1/facebook/user/login", json={"access_token": "revoked"})
    assert response.status_code == 502
    assert "access_token" not in response.get_json()
