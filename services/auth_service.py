"""Credential sign-up and login, token refresh and revocation, and password reset."""
from datetime import datetime

from flask import current_app, has_request_context, request
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from extensions import db
from models import User
from repositories import users as user_repo
from services import AuthenticationError, ConflictError, PermissionDeniedError, RateLimitExceeded, ServiceError, ValidationFailed
from utils.email_service import EmailDeliveryError, send_password_reset_email, send_welcome_email
from utils.security import hash_value, password_meets_policy
from utils.tokens import (
    ACCESS_TOKEN_TYPE,
    PASSWORD_RESET_TOKEN_TYPE,
    REFRESH_TOKEN_TYPE,
    TokenError,
    create_password_reset_token,
    create_token_pair,
    decode_token,
)


def log_action(action: str, user: User | None, context: str | None = None):
    ip_address = None
    user_agent = None
    if has_request_context():
        ip_address = request.headers.get("X-Forwarded-For", request.remote_addr)
        user_agent = request.headers.get("User-Agent")
    return user_repo.record_audit(user.id if user else None, action, ip_address, user_agent, context)


def _check_password(password: str) -> None:
    ok, reason = password_meets_policy(password)
    if not ok:
        raise ValidationFailed(reason, {"password": [reason]})


def signup(fullname: str, username: str, email: str, password: str, telephone: str | None = None) -> User:
    email = email.lower().strip()
    username = (username or "").strip() or email.split("@", 1)[0]
    telephone = (telephone or "").strip() or None

    if user_repo.email_exists(email):
        raise ConflictError("email already exists")
    if telephone and user_repo.telephone_exists(telephone):
        raise ConflictError("telephone already exists")
    if user_repo.find_by_username(username):
        raise ConflictError("username already exists")
    _check_password(password)

    role = user_repo.find_role("User")
    if role is None:
        raise ServiceError("default role is missing", 500)

    user = User(fullname=fullname.strip(), username=username, email=email, telephone=telephone, role=role)
    user.set_password(password)
    try:
        user_repo.add_user(user)
        log_action("SIGNUP", user)
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError("unable to register with the provided details") from exc

    current_app.logger.info("user_signed_up", extra={"user_id": user.id})
    try:
        send_welcome_email(user.email, user.fullname)
    except EmailDeliveryError as exc:
        current_app.logger.warning("welcome_email_failed", extra={"user_id": user.id, "reason": str(exc)})
    return user


def _login_limiter():
    return current_app.extensions["rate_limiters"]["login"]


def login(email: str, password: str, expo_push_token: str | None = None) -> tuple[User, dict]:
    email = email.lower().strip()
    if not _login_limiter().hit(email):
        raise RateLimitExceeded("too many login attempts, try again later")

    user = user_repo.find_by_email(email)
    if not user or not user.check_password(password):
        log_action("LOGIN_FAILED", user, context=email)
        db.session.commit()
        raise AuthenticationError("invalid email or password")
    if user.is_blocked:
        raise PermissionDeniedError("this account has been blocked")

    user.is_online = True
    user.last_login_at = datetime.utcnow()
    if expo_push_token:
        user.expo_push_token = expo_push_token.strip()
    log_action("LOGIN", user)
    db.session.commit()
    _login_limiter().reset(email)

    current_app.logger.info("user_logged_in", extra={"user_id": user.id})
    return user, create_token_pair(user)


def resolve_access_token(token: str) -> User | None:
    """Return the active user for a bearer access token, or None."""
    try:
        claims = decode_token(token, ACCESS_TOKEN_TYPE)
    except TokenError:
        return None
    if user_repo.is_blacklisted(token):
        return None
    user = user_repo.find_by_id(claims.get("id"))
    if user is None or user.is_blocked:
        return None
    return user


def refresh(refresh_token: str) -> dict:
    try:
        claims = decode_token(refresh_token, REFRESH_TOKEN_TYPE)
    except TokenError as exc:
        raise AuthenticationError(str(exc)) from exc
    if user_repo.is_blacklisted(refresh_token):
        raise AuthenticationError("Token revoked")
    user = user_repo.find_by_id(claims.get("id"))
    if user is None or user.is_blocked:
        raise AuthenticationError("user not found")

    user_repo.blacklist_token(refresh_token)
    db.session.commit()
    return create_token_pair(user)


def logout(user: User, access_token: str | None) -> None:
    if access_token:
        user_repo.blacklist_token(access_token)
    user.is_online = False
    log_action("LOGOUT", user)
    db.session.commit()
    current_app.logger.info("user_logged_out", extra={"user_id": user.id})


def forgot_password(email: str) -> None:
    user = user_repo.find_by_email(email)
    if user is None:
        raise ServiceError("user not found", 404)

    token = create_password_reset_token(user.email)
    user.reset_token_hash = hash_value(token)
    log_action("PASSWORD_RESET_REQUESTED", user)
    db.session.commit()

    base_url = current_app.config.get("BASE_URL", "").rstrip("/")
    link = f"{base_url}/reset-password/{token}"
    try:
        send_password_reset_email(user.email, link, int(current_app.config.get("PASSWORD_RESET_MINUTES", 60)))
    except EmailDeliveryError as exc:
        current_app.logger.error("reset_email_failed", extra={"user_id": user.id, "reason": str(exc)})
        raise ServiceError("unable to send password reset email", 502) from exc


def reset_password(token: str, new_password: str) -> User:
    try:
        claims = decode_token(token, PASSWORD_RESET_TOKEN_TYPE)
    except TokenError as exc:
        raise AuthenticationError(str(exc)) from exc

    user = user_repo.find_by_reset_token(token)
    if user is None or user.email.lower() != str(claims.get("email", "")).lower():
        raise AuthenticationError("Invalid or already used reset token")
    _check_password(new_password)

    user.set_password(new_password)
    user.reset_token_hash = None
    try:
        log_action("PASSWORD_RESET", user)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("password_reset_failed", extra={"user_id": user.id})
        raise ServiceError("unable to reset password", 500) from exc
    return user
