from sqlalchemy import func

from extensions import db
from models import Reward


def get_for_user(user_id: str) -> Reward | None:
    return Reward.query.filter_by(user_id=user_id).first()


def has_previous_reports(user_id: str) -> bool:
    """True when the user already holds a reward with a positive balance."""
    return Reward.query.filter(Reward.user_id == user_id, Reward.balance > 0).first() is not None


def save_reward(user_id: str, report_id: str | None, reward_type: str, points: int, balance: int | None = None) -> Reward:
    """Upsert the user's running reward record.

    Points always accumulate. ``balance`` assigns the balance outright when given;
    otherwise the balance grows by ``points``.
    """
    reward = get_for_user(user_id)
    if reward is None:
        reward = Reward(
            user_id=user_id,
            incident_report_id=report_id,
            reward_type=reward_type,
            point=points,
            balance=balance if balance is not None else points,
        )
        db.session.add(reward)
        db.session.flush()
        return reward

    reward.point = (reward.point or 0) + points
    if balance is not None:
        reward.balance = balance
    else:
        reward.balance = (reward.balance or 0) + points
    reward.reward_type = reward_type
    if report_id:
        reward.incident_report_id = report_id
    db.session.add(reward)
    db.session.flush()
    return reward


def sum_all_balances() -> int:
    return int(db.session.query(func.coalesce(func.sum(Reward.balance), 0)).scalar() or 0)


def list_all() -> list[Reward]:
    return Reward.query.order_by(Reward.balance.desc()).all()


def user_balance(user_id: str) -> int:
    reward = get_for_user(user_id)
    return int(reward.balance) if reward else 0
