"""Upvote and downvote bookkeeping for incident reports."""
from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from extensions import db
from repositories import reports as report_repo
from repositories import votes as vote_repo
from services import ConflictError, NotFoundError, ServiceError

UPVOTE = "upvote"
DOWNVOTE = "downvote"


class DuplicateVoteError(ConflictError):
    """Raised when a user votes again where a repeat vote is not allowed."""


def _report_or_404(report_id: str):
    report = report_repo.get(report_id)
    if report is None:
        raise NotFoundError("report not found")
    return report


def upvote(user_id: str, report_id: str) -> bool:
    """Upvote a report. Returns False when the user had already upvoted it."""
    report = _report_or_404(report_id)
    if vote_repo.find_vote(user_id, report.id, UPVOTE):
        return False
    try:
        vote_repo.add_vote(user_id, report.id, UPVOTE)
        report.upvote_count = vote_repo.count(report.id, UPVOTE)
        db.session.commit()
    except IntegrityError:
        # A concurrent request inserted the same upvote first.
        db.session.rollback()
        return False
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("upvote_failed", extra={"user_id": user_id, "report_id": report_id})
        raise ServiceError("unable to record vote", 500) from exc
    current_app.logger.info("report_upvoted", extra={"user_id": user_id, "report_id": report.id})
    return True


def downvote(user_id: str, report_id: str) -> None:
    """Downvote a report; any earlier vote by the same user is an error."""
    report = _report_or_404(report_id)
    if vote_repo.any_vote(user_id, report.id):
        raise DuplicateVoteError("user has already downvoted")
    try:
        vote_repo.add_vote(user_id, report.id, DOWNVOTE)
        report.downvote_count = vote_repo.count(report.id, DOWNVOTE)
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise DuplicateVoteError("user has already downvoted") from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("downvote_failed", extra={"user_id": user_id, "report_id": report_id})
        raise ServiceError("unable to record vote", 500) from exc
    current_app.logger.info("report_downvoted", extra={"user_id": user_id, "report_id": report.id})


def vote_counts(report_id: str) -> dict:
    report = _report_or_404(report_id)
    return {
        "upvotes": vote_repo.count(report.id, UPVOTE),
        "downvotes": vote_repo.count(report.id, DOWNVOTE),
    }
