import io

from conftest import png_bytes


def test_post_with_image_is_published(client, auth_headers):
    response = client.post(
        "/api/v1/posts/create",
        data={
            "title": "Road repairs",
            "post_category": "Infrastructure",
            "post_description": "Ikeja road works start Monday.",
            "image": (io.BytesIO(png_bytes()), "cover.png"),
        },
        headers=auth_headers,
        content_type="multipart/form-data",
    )
    assert response.status_code == 201, response.get_json()
    post = response.get_json()["post"]
    assert post["image"].endswith(".jpg")

    publications = client.get("/api/v1/all/publications").get_json()["publications"]
    assert [p["id"] for p in publications] == [post["id"]]
    assert client.get(f"/api/v1/publication/{post['id']}").get_json()["publication"]["title"] == "Road repairs"

    mine = client.get(f"/api/v1/all/posts/{post['user_id']}", headers=auth_headers).get_json()["posts"]
    assert len(mine) == 1


def test_post_requires_fields(client, auth_headers):
    response = client.post("/api/v1/posts/create", json={"title": "Only a title"}, headers=auth_headers)
    assert response.status_code == 400
    assert {"post_category", "post_description"} <= set(response.get_json()["errors"])


def test_missing_publication_is_not_found(client):
    assert client.get("/api/v1/publication/nope").status_code == 404


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.get_json()["database"] is True
    assert response.headers["X-Content-Type-Options"] == "nosniff"
