import pytest


@pytest.fixture
def report_id(auth_headers, submit_report):
    response = submit_report(auth_headers)
    assert response.status_code == 201
    return response.get_json()["report"]["id"]


def test_double_upvote_counts_once(client, register, report_id):
    voter = register(email="voter@example.com")
    first = client.put(f"/api/v1/report/upvote/{report_id}", headers=voter)
    second = client.put(f"/api/v1/report/upvote/{report_id}", headers=voter)

    assert first.status_code == 200
    assert second.status_code == 200
    assert second.get_json()["message"] == "report already upvoted"
    assert second.get_json()["upvotes"] == 1


def test_downvote_after_downvote_is_rejected(client, register, report_id):
    voter = register(email="voter@example.com")
    assert client.put(f"/api/v1/report/downvote/{report_id}", headers=voter).status_code == 200

    again = client.put(f"/api/v1/report/downvote/{report_id}", headers=voter)
    assert again.status_code == 409
    assert again.get_json()["error"] == "user has already downvoted"

    counts = client.get(f"/api/v1/report/votecounts/{report_id}", headers=voter).get_json()
    assert counts == {"upvotes": 0, "downvotes": 1}


def test_downvote_after_upvote_is_rejected(client, register, report_id):
    voter = register(email="voter@example.com")
    client.put(f"/api/v1/report/upvote/{report_id}", headers=voter)

    response = client.put(f"/api/v1/report/downvote/{report_id}", headers=voter)
    assert response.status_code == 409

    counts = client.get(f"/api/v1/report/votecounts/{report_id}", headers=voter).get_json()
    assert counts == {"upvotes": 1, "downvotes": 0}


def test_votes_from_different_users_accumulate(client, register, report_id):
    for index in range(3):
        headers = register(email=f"voter{index}@example.com")
        client.put(f"/api/v1/report/upvote/{report_id}", headers=headers)

    report = client.get(f"/api/v1/incident_reports/{report_id}").get_json()["report"]
    assert report["upvote_count"] == 3


def test_voting_on_missing_report_is_not_found(client, auth_headers):
    assert client.put("/api/v1/report/upvote/does-not-exist", headers=auth_headers).status_code == 404
    assert client.put("/api/v1/report/downvote/does-not-exist", headers=auth_headers).status_code == 404


def test_voting_requires_authentication(client, report_id):
    response = client.put(f"/api/v1/report/upvote/{report_id}")
    assert response.status_code == 401
    assert response.get_json() == {"error": "Unauthorized"}
