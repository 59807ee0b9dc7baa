import io

import pytest
from PIL import Image

from app import create_app
from extensions import db

DEFAULT_PASSWORD = "Passw0rd123"


@pytest.fixture
def app(tmp_path):
    """Create a test Flask application backed by in-memory SQLite."""
    test_app = create_app("testing", overrides={"MEDIA_ROOT": str(tmp_path / "media")})
    yield test_app
    with test_app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def register(client):
    """Sign a user up, log them in, and return their bearer headers."""

    def _register(email="ada@example.com", fullname="Ada Obi", password=DEFAULT_PASSWORD, **extra):
        payload = {"fullname": fullname, "email": email, "password": password, **extra}
        response = client.post("/api/v1/auth/signup", json=payload)
        assert response.status_code == 201, response.get_json()
        return login_headers(client, email, password)

    return _register


def login_headers(client, email, password):
    response = client.post("/api/v1/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.get_json()
    return {"Authorization": f"Bearer {response.get_json()['access_token']}"}


@pytest.fixture
def auth_headers(register):
    return register()


@pytest.fixture
def admin_headers(app, client):
    return login_headers(client, app.config["DEFAULT_ADMIN_EMAIL"], app.config["DEFAULT_ADMIN_PASSWORD"])


def png_bytes(size=(64, 48), color=(200, 30, 30)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def submit_report(client):
    """Post a report as multipart form data and return the response."""

    def _submit(headers, files=None, **fields):
        data = {
            "description": "Pothole on Main St",
            "latitude": "6.5",
            "longitude": "3.4",
            "category": "Road",
            "state_name": "Lagos",
            "lga_name": "Ikeja",
        }
        data.update(fields)
        data = {key: value for key, value in data.items() if value is not None}
        if files:
            data["mediaFiles"] = [(io.BytesIO(payload), name) for name, payload in files]
        return client.post("/api/v1/user/report", data=data, headers=headers, content_type="multipart/form-data")

    return _submit
