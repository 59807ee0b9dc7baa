from extensions import db
from models import Vote


def find_vote(user_id: str, report_id: str, vote_type: str) -> Vote | None:
    return Vote.query.filter_by(user_id=user_id, report_id=report_id, vote_type=vote_type).first()


def any_vote(user_id: str, report_id: str) -> Vote | None:
    return Vote.query.filter_by(user_id=user_id, report_id=report_id).first()


def add_vote(user_id: str, report_id: str, vote_type: str) -> Vote:
    vote = Vote(user_id=user_id, report_id=report_id, vote_type=vote_type)
    db.session.add(vote)
    db.session.flush()
    return vote


def count(report_id: str, vote_type: str) -> int:
    return Vote.query.filter_by(report_id=report_id, vote_type=vote_type).count()


def delete_for_user(user_id: str) -> int:
    return Vote.query.filter_by(user_id=user_id).delete(synchronize_session=False)
