"""Incident report submission, retrieval, moderation and engagement.

Submission runs the spam guard first, then stores media, then writes the report
together with its classification, location rows, media rows and reward in one
transaction. Any database failure during that write rolls everything back and
surfaces as :class:`ReportSubmissionError`.
"""
import math
from datetime import datetime, timezone

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.datastructures import FileStorage

from extensions import db
from models import IncidentReport, User
from repositories import reports as report_repo
from services import ConflictError, NotFoundError, PermissionDeniedError, RateLimitExceeded, ServiceError, ValidationFailed
from services import media_service, notification_service, reward_service
from services.auth_service import log_action
from utils.geocoding import GeocodingError, reverse_geocode

SPAM_MESSAGE = "Your account is under review for spam. Please wait for 3 hours."

# Category-specific free fields kept in IncidentReport.details.
DETAIL_FIELDS: tuple[str, ...] = (
    "hospital_name",
    "hospital_address",
    "department",
    "department_head_name",
    "accident_cause",
    "road_name",
    "school_name",
    "vice_principal",
    "outage_length",
    "airport_name",
    "airline_name",
    "terminal",
    "queue_time",
    "country",
)


class ReportSubmissionError(ServiceError):
    """Raised when a report and its reward cannot be persisted together."""

    status_code = 500


class AlreadyBookmarkedError(ConflictError):
    """Raised when a user bookmarks the same report twice."""


class InvalidStatusTransition(ConflictError):
    """Raised when a moderation action does not apply to the report's status."""


def _spam_limiter():
    return current_app.extensions["rate_limiters"]["reports"]


def check_spam(user_id: str, latitude, longitude) -> str:
    """Count a submission attempt and return its limiter key."""
    key = f"{user_id}:{latitude}:{longitude}"
    if not _spam_limiter().hit(key):
        current_app.logger.warning("report_spam_blocked", extra={"user_id": user_id})
        raise RateLimitExceeded(SPAM_MESSAGE)
    return key


def _finite_or_none(value):
    if value is None:
        return None
    return value if math.isfinite(value) else None


def _resolve_location(latitude, longitude, state_name: str, lga_name: str) -> tuple[str, str]:
    if state_name or lga_name or latitude is None or longitude is None:
        return state_name, lga_name
    try:
        resolved = reverse_geocode(latitude, longitude)
    except GeocodingError as exc:
        current_app.logger.warning("geocode_failed", extra={"reason": str(exc)})
        return state_name, lga_name
    return resolved.get("state") or "", resolved.get("lga") or ""


def submit_report(user: User, data: dict, uploads: list[FileStorage] | None = None) -> IncidentReport:
    """Create a report for ``user`` from validated form ``data``.

    ``data`` carries ``latitude``/``longitude`` as floats or None and the text
    fields as strings. Category-specific fields listed in ``DETAIL_FIELDS`` are
    stored in ``details``.
    """
    spam_key = check_spam(user.id, data.get("latitude"), data.get("longitude"))
    try:
        return _create_report(user, data, uploads or [])
    except ServiceError:
        # Rejected submissions do not count towards the spam limit.
        _spam_limiter().release(spam_key)
        raise


def _create_report(user: User, data: dict, uploads: list[FileStorage]) -> IncidentReport:
    processed = media_service.process_uploads(uploads)

    latitude = _finite_or_none(data.get("latitude"))
    longitude = _finite_or_none(data.get("longitude"))
    state_name, lga_name = _resolve_location(
        latitude,
        longitude,
        (data.get("state_name") or "").strip(),
        (data.get("lga_name") or "").strip(),
    )
    description = (data.get("description") or "").strip()
    points = reward_service.calculate_points(description, latitude, longitude, len(processed))

    report = IncidentReport(
        user_id=user.id,
        user_username=user.username,
        user_fullname=user.fullname,
        description=description,
        latitude=latitude,
        longitude=longitude,
        category=(data.get("category") or "").strip() or None,
        state_name=state_name or None,
        lga_name=lga_name or None,
        landmark=(data.get("landmark") or "").strip() or None,
        report_type_name=(data.get("report_type") or "").strip() or None,
        sub_report_type=(data.get("sub_report_type") or "").strip() or None,
        rating=(data.get("rating") or "").strip() or None,
        date_of_incidence=(data.get("date_of_incidence") or "").strip() or None,
        time_of_incidence=datetime.utcnow(),
        details={key: data[key] for key in DETAIL_FIELDS if data.get(key)},
        report_status="pending",
        reward_point=points,
    )

    try:
        report_repo.add(report)
        report_repo.add_classification(report, report.category, report.rating, report.sub_report_type)
        report_repo.add_location(report, report.state_name, report.lga_name)
        media_service.attach_media(report, user.id, processed)
        reward_service.award_submission(user.id, report.id, points)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("report_submission_failed", extra={"user_id": user.id})
        raise ReportSubmissionError("unable to save report") from exc

    current_app.logger.info(
        "report_submitted",
        extra={"user_id": user.id, "report_id": report.id, "points": points, "media": len(processed)},
    )
    return report


def get_report(report_id: str) -> IncidentReport:
    report = report_repo.get(report_id)
    if report is None:
        raise NotFoundError("report not found")
    return report


def _page_size() -> int:
    return int(current_app.config.get("REPORTS_PAGE_SIZE", 20))


def list_reports(page) -> list[IncidentReport]:
    return report_repo.list_recent(page, _page_size())


def list_by_state(state: str, page) -> list[IncidentReport]:
    return report_repo.list_by_state(state, page, _page_size())


def parse_timestamp(value: str | None, field: str) -> datetime:
    """Parse an ISO 8601 timestamp into naive UTC, the way report times are stored."""
    text = (value or "").strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise ValidationFailed(f"invalid {field}", {field: ["Expected an ISO 8601 timestamp."]}) from exc
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def list_by_state_between(state: str, start: str | None, end: str | None, page) -> list[IncidentReport]:
    start_at = parse_timestamp(start, "start")
    end_at = parse_timestamp(end, "end")
    if end_at < start_at:
        raise ValidationFailed("end must not be before start", {"end": ["Must be on or after start."]})
    return report_repo.list_by_state_between(state, start_at, end_at, page, _page_size())


def list_by_lga(lga: str, page) -> list[IncidentReport]:
    return report_repo.list_by_lga(lga, page, _page_size())


def list_by_report_type(report_type: str, page) -> list[IncidentReport]:
    return report_repo.list_by_report_type(report_type, page, _page_size())


def list_for_user(user_id: str, page) -> list[IncidentReport]:
    return report_repo.list_by_user(user_id, page, _page_size())


def filter_reports(category: str = "", state: str = "", lga: str = ""):
    return report_repo.filter_reports(category.strip(), state.strip(), lga.strip())


def counts(lga: str | None = None, state: str | None = None) -> int:
    if lga is not None:
        return report_repo.count_by_lga(lga)
    if state is not None:
        return report_repo.count_by_state(state)
    return report_repo.count_overall()


def state_names() -> list[str]:
    return report_repo.state_names()


def lga_names(state: str) -> list[str]:
    return report_repo.lga_names_for_state(state)


def today_count() -> int:
    start = datetime.utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
    return report_repo.count_since(start)


def state_percentages() -> list[dict]:
    rows = report_repo.counts_by_state()
    total = sum(count for _, count in rows)
    return [
        {"state": name, "count": count, "percentage": round(count * 100 / total, 2)}
        for name, count in rows
    ]


def top_categories(limit: int = 10) -> list[dict]:
    return [{"category": name, "count": count} for name, count in report_repo.top_categories(limit)]


def request_block(report_id: str, user: User) -> IncidentReport:
    """Flag a report for moderator review. Repeated requests leave the flag set."""
    report = get_report(report_id)
    report.block_request = True
    log_action("REPORT_BLOCK_REQUESTED", user, context=f"report:{report.id}")
    db.session.commit()
    current_app.logger.info("report_block_requested", extra={"report_id": report.id, "user_id": user.id})
    return report


def delete_report(report_id: str, actor: User) -> None:
    report = get_report(report_id)
    if report.user_id != actor.id and not actor.is_admin:
        raise PermissionDeniedError("you can only delete your own reports")
    try:
        report_repo.delete(report)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("report_delete_failed", extra={"report_id": report_id})
        raise ServiceError("unable to delete report", 500) from exc
    current_app.logger.info("report_deleted", extra={"report_id": report_id, "actor_id": actor.id})


def _transition(report_id: str, target: str, allowed_from: tuple[str, ...]) -> IncidentReport:
    report = get_report(report_id)
    if report.report_status not in allowed_from:
        raise InvalidStatusTransition(f"cannot mark a {report.report_status} report as {target}")
    previous = report.report_status
    report.report_status = target
    try:
        if target == "approved":
            reward_service.credit_approval(report)
        followers = report_repo.followers(report.id)
        notification_service.notify_users(
            followers,
            "Report status updated",
            f"A report you follow is now {target}.",
            {"report_id": report.id, "status": target},
        )
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("report_status_failed", extra={"report_id": report_id, "status": target})
        raise ServiceError("unable to update report status", 500) from exc
    current_app.logger.info(
        "report_status_changed",
        extra={"report_id": report.id, "from": previous, "to": target},
    )
    return report


def approve_report(report_id: str) -> IncidentReport:
    return _transition(report_id, "approved", ("pending",))


def reject_report(report_id: str) -> IncidentReport:
    return _transition(report_id, "rejected", ("pending",))


def accept_report(report_id: str) -> IncidentReport:
    return _transition(report_id, "accepted", ("pending", "approved"))


def bookmark_report(user: User, report_id: str):
    report = get_report(report_id)
    if report_repo.find_bookmark(user.id, report.id):
        raise AlreadyBookmarkedError("report already bookmarked")
    try:
        bookmark = report_repo.add_bookmark(user.id, report.id)
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise AlreadyBookmarkedError("report already bookmarked") from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("bookmark_failed", extra={"user_id": user.id, "report_id": report_id})
        raise ServiceError("unable to bookmark report", 500) from exc
    return bookmark


def bookmarked_reports(user: User) -> list[IncidentReport]:
    return report_repo.bookmarked_reports(user.id)


def follow_report(user: User, report_id: str, follow_text: str, follow_media: FileStorage | None = None):
    report = get_report(report_id)
    media_url = None
    if follow_media is not None and (follow_media.filename or "").strip():
        processed = media_service.process_uploads([follow_media])
        media_url = processed[0].get("full_size_url") if processed else None
    try:
        follow = report_repo.add_follow(user.id, report.id, follow_text.strip(), media_url)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("follow_failed", extra={"user_id": user.id, "report_id": report_id})
        raise ServiceError("unable to follow report", 500) from exc
    current_app.logger.info("report_followed", extra={"user_id": user.id, "report_id": report.id})
    return follow


def followers(report_id: str) -> list[User]:
    report = get_report(report_id)
    return report_repo.followers(report.id)
