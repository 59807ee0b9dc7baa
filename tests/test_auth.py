import pytest

from conftest import DEFAULT_PASSWORD, login_headers
from extensions import db
from models import AuditLog, User
from services import auth_service


def test_signup_returns_public_profile(client):
    response = client.post(
        "/api/v1/auth/signup",
        json={"fullname": "Ada Obi", "email": "Ada@Example.com", "password": DEFAULT_PASSWORD, "telephone": "0800"},
    )
    assert response.status_code == 201
    user = response.get_json()["user"]
    assert user["email"] == "ada@example.com"
    assert user["username"] == "ada"
    assert user["role"] == "User"
    assert "password_hash" not in user


def test_duplicate_email_conflicts(client, register):
    register()
    response = client.post(
        "/api/v1/auth/signup",
        json={"fullname": "Other", "email": "ada@example.com", "username": "other", "password": DEFAULT_PASSWORD},
    )
    assert response.status_code == 409


def test_weak_password_is_rejected(client):
    response = client.post(
        "/api/v1/auth/signup", json={"fullname": "Ada", "email": "ada@example.com", "password": "lettersonly"}
    )
    assert response.status_code == 400
    assert "password" in response.get_json()["errors"]


def test_missing_fields_report_form_errors(client):
    response = client.post("/api/v1/auth/signup", json={"email": "not-an-email"})
    assert response.status_code == 400
    errors = response.get_json()["errors"]
    assert {"fullname", "email", "password"} <= set(errors)


def test_login_with_wrong_password_is_unauthorized(app, client, register):
    register()
    response = client.post("/api/v1/auth/login", json={"email": "ada@example.com", "password": "Wrong12345"})
    assert response.status_code == 401
    with app.app_context():
        assert AuditLog.query.filter_by(action_type="LOGIN_FAILED").count() == 1


def test_login_marks_user_online_and_stores_push_token(app, client, register):
    register()
    response = client.post(
        "/api/v1/auth/login",
        json={"email": "ada@example.com", "password": DEFAULT_PASSWORD, "expo_push_token": "ExponentPushToken[xyz]"},
    )
    body = response.get_json()
    assert body["token_type"] == "Bearer"
    assert body["expires_in"] == 15 * 60
    with app.app_context():
        user = User.query.filter_by(email="ada@example.com").one()
        assert user.is_online
        assert user.expo_push_token == "ExponentPushToken[xyz]"


def test_repeated_failed_logins_are_throttled(app, client, register):
    register()
    app.extensions["rate_limiters"]["login"].limit = 3
    statuses = [
        client.post("/api/v1/auth/login", json={"email": "ada@example.com", "password": "Wrong12345"}).status_code
        for _ in range(4)
    ]
    assert statuses == [401, 401, 401, 429]


def test_logout_revokes_access_token(client, auth_headers):
    assert client.get("/api/v1/me", headers=auth_headers).status_code == 200
    assert client.post("/api/v1/auth/logout", headers=auth_headers).status_code == 200
    assert client.get("/api/v1/me", headers=auth_headers).status_code == 401


def test_refresh_rotates_token(client, register):
    register()
    tokens = client.post("/api/v1/auth/login", json={"email": "ada@example.com", "password": DEFAULT_PASSWORD}).get_json()

    refreshed = client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert refreshed.status_code == 200
    new_access = refreshed.get_json()["access_token"]
    assert client.get("/api/v1/me", headers={"Authorization": f"Bearer {new_access}"}).status_code == 200

    replay = client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert replay.status_code == 401


def test_access_token_cannot_refresh(client, auth_headers):
    access = auth_headers["Authorization"].split()[1]
    assert client.post("/api/v1/auth/refresh", json={"refresh_token": access}).status_code == 401


def test_garbage_bearer_token_is_unauthorized(client):
    response = client.get("/api/v1/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_password_reset_flow(client, register, monkeypatch):
    register()
    sent = {}

    def fake_send(recipient, link, expires_minutes):
        sent["recipient"] = recipient
        sent["link"] = link

    monkeypatch.setattr(auth_service, "send_password_reset_email", fake_send)
    assert client.post("/api/v1/password/forgot", json={"email": "ada@example.com"}).status_code == 200
    assert sent["recipient"] == "ada@example.com"
    assert "/reset-password/" in sent["link"]

    token = sent["link"].rsplit("/", 1)[1]
    new_password = "N3wPassword!"
    reset = client.post(
        f"/api/v1/password/reset/{token}", json={"password": new_password, "confirm_password": new_password}
    )
    assert reset.status_code == 200

    again = client.post(
        f"/api/v1/password/reset/{token}", json={"password": new_password, "confirm_password": new_password}
    )
    assert again.status_code == 401
    login_headers(client, "ada@example.com", new_password)


def test_forgot_password_reports_mail_failure(client, register):
    register()
    response = client.post("/api/v1/password/forgot", json={"email": "ada@example.com"})
    assert response.status_code == 502


def test_forgot_password_for_unknown_email(client):
    response = client.post("/api/v1/password/forgot", json={"email": "ghost@example.com"})
    assert response.status_code == 404


def test_profile_update(client, auth_headers):
    response = client.put("/api/v1/me", json={"fullname": "Ada Lovelace", "username": "lovelace"}, headers=auth_headers)
    assert response.status_code == 200
    assert response.get_json()["user"]["username"] == "lovelace"


def test_push_token_must_be_an_expo_token(client, auth_headers):
    bad = client.post("/api/v1/user/push-token", json={"token": "abc"}, headers=auth_headers)
    assert bad.status_code == 400
    good = client.post("/api/v1/user/push-token", json={"token": "ExpoPushToken[123]"}, headers=auth_headers)
    assert good.status_code == 200


def test_delete_user_removes_account(app, client, auth_headers, submit_report):
    submit_report(auth_headers)
    response = client.delete("/api/v1/delete/user", headers=auth_headers)
    assert response.status_code == 200
    with app.app_context():
        assert db.session.query(User).filter_by(email="ada@example.com").count() == 0
    assert client.get("/api/v1/me", headers=auth_headers).status_code == 401


@pytest.mark.parametrize("path", ["/api/v1/users/all", "/api/v1/users/online"])
def test_admin_listings_are_forbidden_to_users(client, auth_headers, path):
    assert client.get(path, headers=auth_headers).status_code == 403


def test_admin_can_block_and_promote(app, client, admin_headers, register):
    victim = register(email="spam@example.com", fullname="Spam Bot")
    with app.app_context():
        victim_id = User.query.filter_by(email="spam@example.com").one().id

    promoted = client.put(f"/api/v1/users/{victim_id}/role", json={"role": "Admin"}, headers=admin_headers)
    assert promoted.get_json()["user"]["role"] == "Admin"

    blocked = client.post(f"/api/v1/users/block/{victim_id}", headers=admin_headers)
    assert blocked.status_code == 200
    assert client.get("/api/v1/me", headers=victim).status_code == 401
    denied = client.post("/api/v1/auth/login", json={"email": "spam@example.com", "password": DEFAULT_PASSWORD})
    assert denied.status_code == 403


def test_users_can_flag_each_other(app, client, auth_headers, register):
    register(email="troll@example.com", fullname="Troll")
    with app.app_context():
        troll_id = User.query.filter_by(email="troll@example.com").one().id

    assert client.post(f"/api/v1/users/report/{troll_id}", headers=auth_headers).status_code == 200
    with app.app_context():
        assert db.session.get(User, troll_id).is_queried
