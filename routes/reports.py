"""Incident report submission, listings, moderation, votes, bookmarks and follows."""
from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from services import media_service, report_service, vote_service
from utils.decorators import admin_required
from .forms import FollowForm, MediaUploadForm, ReportForm, form_error_response

reports_bp = Blueprint("reports", __name__)


def _page() -> int:
    return request.args.get("page", 1, type=int)


def _serialize(reports) -> list[dict]:
    return [r.public_payload() for r in reports]


def _detail_fields() -> dict:
    source = request.form if request.form else (request.get_json(silent=True) or {})
    return {key: str(source.get(key)).strip() for key in report_service.DETAIL_FIELDS if source.get(key)}


@reports_bp.route("/user/report", methods=["POST"])
@login_required
def submit_report():
    form = ReportForm()
    if not form.validate_on_submit():
        return form_error_response(form)
    data = {name: field.data for name, field in form._fields.items() if name != "media_files"}
    data.update(_detail_fields())
    report = report_service.submit_report(current_user, data, form.media_files.data or [])
    return jsonify({"message": "report submitted", "report": report.public_payload()}), 201


@reports_bp.route("/user/report/media", methods=["POST"])
@login_required
def upload_report_media():
    form = MediaUploadForm()
    if not form.validate_on_submit():
        return form_error_response(form)
    report, rows = media_service.add_media_to_latest_report(current_user, form.media_files.data or [])
    return jsonify(
        {
            "message": "media uploaded",
            "report_id": report.id,
            "reward_point": report.reward_point,
            "media": [m.public_payload() for m in rows],
        }
    ), 201


@reports_bp.route("/user/reports", methods=["GET"])
@login_required
def my_reports():
    page = _page()
    return jsonify({"reports": _serialize(report_service.list_for_user(current_user.id, page)), "page": page})


@reports_bp.route("/incident_reports", methods=["GET"])
def list_reports():
    page = _page()
    return jsonify({"reports": _serialize(report_service.list_reports(page)), "page": page})


@reports_bp.route("/incident_reports/state/<state>", methods=["GET"])
def reports_by_state(state):
    page = _page()
    return jsonify({"reports": _serialize(report_service.list_by_state(state, page)), "page": page})


@reports_bp.route("/reports/state/<state>", methods=["GET"])
@login_required
def reports_by_state_between(state):
    page = _page()
    reports = report_service.list_by_state_between(state, request.args.get("start"), request.args.get("end"), page)
    return jsonify({"reports": _serialize(reports), "page": page})


@reports_bp.route("/incident_reports/lga/<lga>", methods=["GET"])
def reports_by_lga(lga):
    page = _page()
    return jsonify({"reports": _serialize(report_service.list_by_lga(lga, page)), "page": page})


@reports_bp.route("/incident_reports/report_type/<report_type>", methods=["GET"])
def reports_by_type(report_type):
    page = _page()
    return jsonify({"reports": _serialize(report_service.list_by_report_type(report_type, page)), "page": page})


@reports_bp.route("/incident_reports/<report_id>", methods=["GET"])
def get_report(report_id):
    report = report_service.get_report(report_id)
    payload = report.public_payload()
    payload["media"] = [m.public_payload() for m in media_service.media_for_report(report.id)]
    return jsonify({"report": payload})


@reports_bp.route("/incident-report/<report_id>", methods=["DELETE"])
@login_required
def delete_report(report_id):
    report_service.delete_report(report_id, current_user)
    return jsonify({"message": "report deleted"})


@reports_bp.route("/incident-report/block-request/<report_id>", methods=["PUT"])
@login_required
def request_block(report_id):
    report = report_service.request_block(report_id, current_user)
    return jsonify({"message": "block request recorded", "report": report.public_payload()})


@reports_bp.route("/report/count/lga/<lga>", methods=["GET"])
def count_by_lga(lga):
    return jsonify({"lga": lga, "count": report_service.counts(lga=lga)})


@reports_bp.route("/report/count/state/<state>", methods=["GET"])
def count_by_state(state):
    return jsonify({"state": state, "count": report_service.counts(state=state)})


@reports_bp.route("/report/count/overall", methods=["GET"])
def count_overall():
    return jsonify({"count": report_service.counts()})


@reports_bp.route("/today/report", methods=["GET"])
@admin_required
def count_today():
    return jsonify({"count": report_service.today_count()})


@reports_bp.route("/report-percentage-by-state", methods=["GET"])
@admin_required
def percentage_by_state():
    return jsonify({"states": report_service.state_percentages()})


@reports_bp.route("/top/report/categories", methods=["GET"])
@admin_required
def top_categories():
    return jsonify({"categories": report_service.top_categories()})


@reports_bp.route("/states", methods=["GET"])
def states():
    return jsonify({"states": report_service.state_names()})


@reports_bp.route("/lgas/<state>", methods=["GET"])
def lgas(state):
    return jsonify({"state": state, "lgas": report_service.lga_names(state)})


@reports_bp.route("/reports/filters", methods=["GET"])
@login_required
def filter_reports():
    reports, applied = report_service.filter_reports(
        request.args.get("category", ""),
        request.args.get("state", ""),
        request.args.get("lga", ""),
    )
    return jsonify({"reports": _serialize(reports), "filters": applied})


@reports_bp.route("/user/bookmark/<report_id>", methods=["POST"])
@login_required
def bookmark(report_id):
    report_service.bookmark_report(current_user, report_id)
    return jsonify({"message": "report bookmarked"}), 201


@reports_bp.route("/user/bookmarked/report", methods=["GET"])
@login_required
def bookmarked():
    return jsonify({"reports": _serialize(report_service.bookmarked_reports(current_user))})


@reports_bp.route("/report/upvote/<report_id>", methods=["PUT"])
@login_required
def upvote(report_id):
    created = vote_service.upvote(current_user.id, report_id)
    message = "report upvoted" if created else "report already upvoted"
    return jsonify({"message": message, **vote_service.vote_counts(report_id)})


@reports_bp.route("/report/downvote/<report_id>", methods=["PUT"])
@login_required
def downvote(report_id):
    vote_service.downvote(current_user.id, report_id)
    return jsonify({"message": "report downvoted", **vote_service.vote_counts(report_id)})


@reports_bp.route("/report/votecounts/<report_id>", methods=["GET"])
@login_required
def vote_counts(report_id):
    return jsonify(vote_service.vote_counts(report_id))


@reports_bp.route("/reports/follow/<report_id>", methods=["POST"])
@login_required
def follow(report_id):
    form = FollowForm()
    if not form.validate_on_submit():
        return form_error_response(form)
    report_service.follow_report(current_user, report_id, form.follow_text.data, form.follow_media.data)
    return jsonify({"message": "report followed"}), 201


@reports_bp.route("/reports/followers/<report_id>", methods=["GET"])
@login_required
def followers(report_id):
    users = report_service.followers(report_id)
    return jsonify({"followers": [{"id": u.id, "username": u.username, "fullname": u.fullname} for u in users]})


@reports_bp.route("/approve/<report_id>/report", methods=["PUT"])
@admin_required
def approve(report_id):
    report = report_service.approve_report(report_id)
    return jsonify({"message": "report approved", "report": report.public_payload()})


@reports_bp.route("/reject/<report_id>/report", methods=["PUT"])
@admin_required
def reject(report_id):
    report = report_service.reject_report(report_id)
    return jsonify({"message": "report rejected", "report": report.public_payload()})


@reports_bp.route("/accept/<report_id>/report", methods=["PUT"])
@admin_required
def accept(report_id):
    report = report_service.accept_report(report_id)
    return jsonify({"message": "report accepted", "report": report.public_payload()})
