"""Profile maintenance and administrative user management."""
from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from extensions import db
from models import ROLE_NAMES, User
from repositories import media as media_repo
from repositories import posts as post_repo
from repositories import reports as report_repo
from repositories import users as user_repo
from repositories import votes as vote_repo
from services import ConflictError, NotFoundError, ServiceError, ValidationFailed
from services.auth_service import log_action
from utils.push import is_valid_push_token


def get_user(user_id: str) -> User:
    user = user_repo.find_by_id(user_id)
    if user is None:
        raise NotFoundError("user not found")
    return user


def update_profile(user: User, fullname: str | None = None, username: str | None = None, telephone: str | None = None) -> User:
    if username and username != user.username:
        if user_repo.find_by_username(username):
            raise ConflictError("username already exists")
        user.username = username
    if telephone and telephone != user.telephone:
        if user_repo.telephone_exists(telephone):
            raise ConflictError("telephone already exists")
        user.telephone = telephone
    if fullname:
        user.fullname = fullname
    try:
        log_action("PROFILE_UPDATED", user)
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError("unable to update profile with the provided details") from exc
    return user


def set_push_token(user: User, token: str) -> User:
    if not is_valid_push_token(token):
        raise ValidationFailed("invalid push token", {"token": ["Expected an Expo push token."]})
    user.expo_push_token = token
    db.session.commit()
    return user


def flag_user(reporter: User, user_id: str) -> User:
    """Mark an account as queried so moderators can review it."""
    user = get_user(user_id)
    user.is_queried = True
    log_action("USER_REPORTED", reporter, context=f"user:{user.id}")
    db.session.commit()
    current_app.logger.info("user_flagged", extra={"user_id": user.id, "reporter_id": reporter.id})
    return user


def block_user(admin: User, user_id: str) -> User:
    user = get_user(user_id)
    if user.id == admin.id:
        raise ValidationFailed("admins cannot block themselves")
    user.is_blocked = True
    user.is_online = False
    log_action("USER_BLOCKED", admin, context=f"user:{user.id}")
    db.session.commit()
    current_app.logger.info("user_blocked", extra={"user_id": user.id, "admin_id": admin.id})
    return user


def set_role(admin: User, user_id: str, role_name: str) -> User:
    if role_name not in ROLE_NAMES:
        raise ValidationFailed("unknown role", {"role": [f"Expected one of: {', '.join(ROLE_NAMES)}"]})
    user = get_user(user_id)
    role = user_repo.find_role(role_name)
    if role is None:
        raise NotFoundError("role not found")
    user.role = role
    log_action("ROLE_CHANGED", admin, context=f"user:{user.id}:{role_name}")
    db.session.commit()
    return user


def delete_user(user: User, access_token: str | None = None) -> None:
    """Delete the account and everything it owns."""
    user_id = user.id
    try:
        vote_repo.delete_for_user(user_id)
        report_repo.delete_engagement_for_user(user_id)
        media_repo.delete_for_user(user_id)
        post_repo.delete_for_user(user_id)
        for report in user.reports.all():
            report_repo.delete(report)
        if access_token:
            user_repo.blacklist_token(access_token)
        db.session.delete(user)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("user_delete_failed", extra={"user_id": user_id})
        raise ServiceError("unable to delete user", 500) from exc
    current_app.logger.info("user_deleted", extra={"user_id": user_id})


def all_users() -> list[User]:
    return user_repo.list_all()


def online_count() -> int:
    return user_repo.count_online()
