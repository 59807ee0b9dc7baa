"""Reward scoring and balance accrual."""
import math

from flask import current_app

from models import IncidentReport, Reward
from repositories import rewards as reward_repo

NEW_ENTRY = "New entry"
ANOTHER_ENTRY = "Another entry"
REPORT_APPROVED = "Report approved"

MEDIA_POINTS = 10
DESCRIPTION_POINTS = 10
LOCATION_POINTS = 10
FIRST_REWARD_BALANCE = 10


def has_location(latitude, longitude) -> bool:
    if latitude is None or longitude is None:
        return False
    try:
        return math.isfinite(float(latitude)) and math.isfinite(float(longitude))
    except (TypeError, ValueError):
        return False


def calculate_points(description: str | None, latitude, longitude, media_count: int) -> int:
    """Score a submission by completeness: media, description, and location."""
    points = max(int(media_count or 0), 0) * MEDIA_POINTS
    if description and description.strip():
        points += DESCRIPTION_POINTS
    if has_location(latitude, longitude):
        points += LOCATION_POINTS
    return points


def award_submission(user_id: str, report_id: str, points: int) -> Reward:
    """Record the reward for a new report inside the caller's transaction.

    A user without a positive balance receives a "New entry" reward whose balance
    is seeded at ``FIRST_REWARD_BALANCE``. Later submissions add their points to
    the running balance as "Another entry".
    """
    if not reward_repo.has_previous_reports(user_id):
        reward = reward_repo.save_reward(user_id, report_id, NEW_ENTRY, points, balance=FIRST_REWARD_BALANCE)
    else:
        reward = reward_repo.save_reward(user_id, report_id, ANOTHER_ENTRY, points)
    current_app.logger.info(
        "reward_awarded",
        extra={"user_id": user_id, "report_id": report_id, "reward_type": reward.reward_type, "points": points},
    )
    return reward


def credit_approval(report: IncidentReport) -> Reward:
    return reward_repo.save_reward(report.user_id, report.id, REPORT_APPROVED, int(report.reward_point or 0))


def total_balance() -> int:
    return reward_repo.sum_all_balances()


def list_rewards() -> list[Reward]:
    return reward_repo.list_all()


def user_balance(user_id: str) -> int:
    return reward_repo.user_balance(user_id)
