from flask import current_app

from models import User
from repositories import posts as post_repo
from utils.push import PushDeliveryError, is_valid_push_token, send_push_notification


def notify_user(user: User, title: str, body: str, data: dict | None = None):
    """Stage a Notification row and try to push it to the user's device.

    Push delivery is best effort; failures are logged and the row is kept with
    ``delivered=False``. The caller commits.
    """
    delivered = False
    if is_valid_push_token(user.expo_push_token):
        try:
            send_push_notification(user.expo_push_token, title, body, data)
            delivered = True
        except PushDeliveryError as exc:
            current_app.logger.warning("push_failed", extra={"user_id": user.id, "reason": str(exc)})
    return post_repo.add_notification(user.id, title, body, data, delivered=delivered)


def notify_users(users: list[User], title: str, body: str, data: dict | None = None) -> int:
    sent = 0
    for user in users:
        if notify_user(user, title, body, data).delivered:
            sent += 1
    current_app.logger.info("notifications_dispatched", extra={"recipients": len(users), "delivered": sent})
    return sent
