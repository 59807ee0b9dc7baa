from datetime import datetime, timedelta, timezone

import pytest

from extensions import db
from models import IncidentReport, Notification, ReportType, Reward
from services import notification_service


@pytest.fixture
def report(auth_headers, submit_report):
    response = submit_report(auth_headers, hospital_name="General Hospital", sub_report_type="Pothole")
    assert response.status_code == 201, response.get_json()
    return response.get_json()["report"]


def test_submission_stores_classification_and_details(app, report):
    assert report["report_status"] == "pending"
    assert report["details"] == {"hospital_name": "General Hospital"}
    with app.app_context():
        report_type = ReportType.query.filter_by(report_id=report["id"]).one()
        assert report_type.category == "Road"
        assert [s.sub_report_type for s in report_type.sub_reports] == ["Pothole"]


def test_invalid_latitude_is_rejected(app, auth_headers, submit_report):
    response = submit_report(auth_headers, latitude="north")
    assert response.status_code == 400
    assert "latitude" in response.get_json()["errors"]
    with app.app_context():
        assert IncidentReport.query.count() == 0


def test_missing_location_earns_no_location_points(auth_headers, submit_report):
    response = submit_report(auth_headers, latitude=None, longitude=None)
    assert response.status_code == 201
    assert response.get_json()["report"]["reward_point"] == 10


def test_location_is_geocoded_when_names_are_missing(auth_headers, submit_report, monkeypatch):
    from services import report_service

    monkeypatch.setattr(report_service, "reverse_geocode", lambda lat, lng: {"state": "Lagos", "lga": "Eti-Osa"})
    response = submit_report(auth_headers, state_name="", lga_name="")
    body = response.get_json()["report"]
    assert body["state_name"] == "Lagos"
    assert body["lga_name"] == "Eti-Osa"


def test_geocoding_failure_does_not_block_submission(auth_headers, submit_report):
    response = submit_report(auth_headers, state_name="", lga_name="")
    assert response.status_code == 201
    assert response.get_json()["report"]["state_name"] is None


def test_public_listings_and_counts(client, report):
    listing = client.get("/api/v1/incident_reports?page=1").get_json()
    assert [r["id"] for r in listing["reports"]] == [report["id"]]

    assert len(client.get("/api/v1/incident_reports/state/Lagos").get_json()["reports"]) == 1
    assert len(client.get("/api/v1/incident_reports/lga/Ikeja").get_json()["reports"]) == 1
    assert client.get("/api/v1/incident_reports?page=2").get_json()["reports"] == []

    assert client.get("/api/v1/report/count/overall").get_json()["count"] == 1
    assert client.get("/api/v1/report/count/state/Lagos").get_json()["count"] == 1
    assert client.get("/api/v1/report/count/lga/Ikeja").get_json()["count"] == 1
    assert client.get("/api/v1/states").get_json()["states"] == ["Lagos"]
    assert client.get("/api/v1/lgas/lagos").get_json()["lgas"] == ["Ikeja"]


def test_unknown_report_is_not_found(client):
    response = client.get("/api/v1/incident_reports/missing")
    assert response.status_code == 404
    assert response.get_json() == {"error": "report not found"}


def test_filters_return_applied_values(client, auth_headers, report):
    response = client.get("/api/v1/reports/filters?category=Road&state=Lagos", headers=auth_headers)
    body = response.get_json()
    assert body["filters"] == ["Road", "Lagos"]
    assert len(body["reports"]) == 1

    none = client.get("/api/v1/reports/filters?category=Health", headers=auth_headers).get_json()
    assert none["reports"] == []


def test_user_reports_listing(client, auth_headers, report):
    response = client.get("/api/v1/user/reports", headers=auth_headers)
    assert [r["id"] for r in response.get_json()["reports"]] == [report["id"]]


def test_bookmarking_twice_conflicts(client, auth_headers, report):
    assert client.post(f"/api/v1/user/bookmark/{report['id']}", headers=auth_headers).status_code == 201
    assert client.post(f"/api/v1/user/bookmark/{report['id']}", headers=auth_headers).status_code == 409

    saved = client.get("/api/v1/user/bookmarked/report", headers=auth_headers).get_json()["reports"]
    assert [r["id"] for r in saved] == [report["id"]]


def test_only_owner_or_admin_can_delete(client, register, admin_headers, auth_headers, submit_report, report):
    stranger = register(email="stranger@example.com")
    assert client.delete(f"/api/v1/incident-report/{report['id']}", headers=stranger).status_code == 403
    assert client.delete(f"/api/v1/incident-report/{report['id']}", headers=auth_headers).status_code == 200

    other = submit_report(auth_headers, latitude="8.0").get_json()["report"]
    assert client.delete(f"/api/v1/incident-report/{other['id']}", headers=admin_headers).status_code == 200


def test_approval_credits_reward_and_is_final(app, client, admin_headers, auth_headers, report):
    with app.app_context():
        balance_before = Reward.query.one().balance

    approved = client.put(f"/api/v1/approve/{report['id']}/report", headers=admin_headers)
    assert approved.status_code == 200
    assert approved.get_json()["report"]["report_status"] == "approved"
    with app.app_context():
        assert Reward.query.one().balance == balance_before + report["reward_point"]

    assert client.put(f"/api/v1/reject/{report['id']}/report", headers=admin_headers).status_code == 409
    assert client.put(f"/api/v1/accept/{report['id']}/report", headers=admin_headers).status_code == 200


def test_rejected_report_cannot_be_accepted(client, admin_headers, report):
    assert client.put(f"/api/v1/reject/{report['id']}/report", headers=admin_headers).status_code == 200
    assert client.put(f"/api/v1/accept/{report['id']}/report", headers=admin_headers).status_code == 409


def test_moderation_requires_admin(client, auth_headers, report):
    assert client.put(f"/api/v1/approve/{report['id']}/report", headers=auth_headers).status_code == 403


def test_followers_are_notified_on_status_change(app, client, register, admin_headers, report, monkeypatch):
    sent = []
    monkeypatch.setattr(
        notification_service,
        "send_push_notification",
        lambda token, title, body, data=None: sent.append((token, data)),
    )
    follower = register(email="follower@example.com")
    client.post("/api/v1/user/push-token", json={"token": "ExponentPushToken[follower]"}, headers=follower)
    followed = client.post(f"/api/v1/reports/follow/{report['id']}", json={"follow_text": "Watching"}, headers=follower)
    assert followed.status_code == 201

    listed = client.get(f"/api/v1/reports/followers/{report['id']}", headers=follower).get_json()["followers"]
    assert len(listed) == 1

    client.put(f"/api/v1/approve/{report['id']}/report", headers=admin_headers)
    assert sent == [("ExponentPushToken[follower]", {"report_id": report["id"], "status": "approved"})]
    with app.app_context():
        assert Notification.query.one().delivered


def test_follow_requires_text(client, auth_headers, report):
    response = client.post(f"/api/v1/reports/follow/{report['id']}", json={}, headers=auth_headers)
    assert response.status_code == 400


def test_reward_failure_rolls_back_the_report(app, auth_headers, submit_report, monkeypatch):
    from sqlalchemy.exc import SQLAlchemyError

    from repositories import rewards as reward_repo

    def failing_save(*args, **kwargs):
        raise SQLAlchemyError("disk full")

    monkeypatch.setattr(reward_repo, "save_reward", failing_save)
    response = submit_report(auth_headers)

    assert response.status_code == 500
    assert response.get_json() == {"error": "unable to save report"}
    with app.app_context():
        assert IncidentReport.query.count() == 0
        assert Reward.query.count() == 0


def test_state_listing_by_time_range(client, auth_headers, report):
    now = datetime.now(timezone.utc)
    window = {
        "start": (now - timedelta(hours=1)).isoformat(),
        "end": (now + timedelta(hours=1)).isoformat().replace("+00:00", "Z"),
    }
    inside = client.get("/api/v1/reports/state/Lagos", query_string=window, headers=auth_headers)
    assert inside.status_code == 200
    assert [r["id"] for r in inside.get_json()["reports"]] == [report["id"]]

    earlier = {"start": "2020-01-01T00:00:00", "end": "2020-01-02T00:00:00"}
    assert client.get("/api/v1/reports/state/Lagos", query_string=earlier, headers=auth_headers).get_json()["reports"] == []


def test_state_listing_rejects_bad_timestamps(client, auth_headers):
    missing = client.get("/api/v1/reports/state/Lagos", query_string={"start": "yesterday"}, headers=auth_headers)
    assert missing.status_code == 400
    assert "start" in missing.get_json()["errors"]

    reversed_window = {"start": "2024-02-01T00:00:00", "end": "2024-01-01T00:00:00"}
    response = client.get("/api/v1/reports/state/Lagos", query_string=reversed_window, headers=auth_headers)
    assert response.status_code == 400


def test_block_request_flags_the_report(app, client, auth_headers, report):
    response = client.put(f"/api/v1/incident-report/block-request/{report['id']}", headers=auth_headers)
    assert response.status_code == 200
    assert response.get_json()["report"]["block_request"] is True

    again = client.put(f"/api/v1/incident-report/block-request/{report['id']}", headers=auth_headers)
    assert again.status_code == 200
    with app.app_context():
        assert db.session.get(IncidentReport, report["id"]).block_request is True


def test_block_request_needs_login_and_a_known_report(client, auth_headers):
    assert client.put("/api/v1/incident-report/block-request/abc").status_code == 401
    assert client.put("/api/v1/incident-report/block-request/abc", headers=auth_headers).status_code == 404


def test_admin_analytics(client, admin_headers, auth_headers, submit_report):
    assert submit_report(auth_headers).status_code == 201
    assert submit_report(auth_headers, latitude="9.0", longitude="7.4", state_name="Abuja", category="Health").status_code == 201
    assert submit_report(auth_headers, latitude="9.1", longitude="7.5", state_name="Abuja", category="Health").status_code == 201

    assert client.get("/api/v1/today/report", headers=admin_headers).get_json() == {"count": 3}

    states = client.get("/api/v1/report-percentage-by-state", headers=admin_headers).get_json()["states"]
    assert states == [
        {"state": "Abuja", "count": 2, "percentage": 66.67},
        {"state": "Lagos", "count": 1, "percentage": 33.33},
    ]

    categories = client.get("/api/v1/top/report/categories", headers=admin_headers).get_json()["categories"]
    assert categories == [{"category": "Health", "count": 2}, {"category": "Road", "count": 1}]

    assert client.get("/api/v1/today/report", headers=auth_headers).status_code == 403
