"""Google and Facebook sign-in through the OAuth 2.0 authorization-code flow.

The callback walks a fixed sequence: verify state, exchange the code for a
provider access token, fetch the provider profile, find or create the local
user, then issue an application token pair. Each step has its own error type
so the HTTP layer can answer with a precise status.
"""
from datetime import datetime
from urllib.parse import urlencode

import requests
from flask import current_app

from extensions import db
from models import User
from repositories import users as user_repo
from services import PermissionDeniedError, ServiceError
from services.auth_service import log_action
from utils.security import generate_token
from utils.tokens import TokenError, create_token_pair

PROVIDERS = {
    "google": {
        "auth_url": "https://accounts.google.com/o/oauth2/auth",
        "token_url": "https://oauth2.googleapis.com/token",
        "profile_url": "https://www.googleapis.com/oauth2/v2/userinfo",
        "scopes": [
            "https://www.googleapis.com/auth/userinfo.email",
            "https://www.googleapis.com/auth/userinfo.profile",
        ],
        "config_prefix": "GOOGLE",
    },
    "facebook": {
        "auth_url": "https://www.facebook.com/v18.0/dialog/oauth",
        "token_url": "https://graph.facebook.com/v18.0/oauth/access_token",
        "profile_url": "https://graph.facebook.com/me?fields=id,name,email",
        "scopes": ["email"],
        "config_prefix": "FACEBOOK",
    },
}


class OAuthStateError(ServiceError):
    """Raised when the state parameter is missing, tampered, expired or unknown."""

    status_code = 403


class OAuthExchangeError(ServiceError):
    """Raised when the provider refuses to exchange the authorization code."""

    status_code = 401


class OAuthProfileError(ServiceError):
    """Raised when the provider profile cannot be fetched."""

    status_code = 502


class IncompleteProfileError(ServiceError):
    """Raised when the provider profile lacks an email or a name."""

    status_code = 422


def _provider(name: str) -> dict:
    try:
        return PROVIDERS[name]
    except KeyError as exc:
        raise ServiceError(f"unknown provider: {name}", 404) from exc


def _credentials(name: str) -> dict:
    prefix = _provider(name)["config_prefix"]
    config = current_app.config
    return {
        "client_id": config.get(f"{prefix}_CLIENT_ID", ""),
        "client_secret": config.get(f"{prefix}_CLIENT_SECRET", ""),
        "redirect_uri": config.get(f"{prefix}_REDIRECT_URL", ""),
    }


def state_store():
    return current_app.extensions["oauth_states"]


def issue_state() -> str:
    return state_store().issue()


def authorization_url(provider: str, state: str | None = None) -> str:
    settings = _provider(provider)
    creds = _credentials(provider)
    params = {
        "client_id": creds["client_id"],
        "redirect_uri": creds["redirect_uri"],
        "response_type": "code",
        "scope": " ".join(settings["scopes"]) if provider == "google" else ",".join(settings["scopes"]),
        "state": state or issue_state(),
    }
    if provider == "google":
        params["access_type"] = "offline"
    return f"{settings['auth_url']}?{urlencode(params)}"


def verify_state(state: str | None) -> dict:
    if not state:
        raise OAuthStateError("missing state")
    try:
        return state_store().verify(state)
    except TokenError as exc:
        current_app.logger.warning("oauth_state_rejected", extra={"reason": str(exc)})
        raise OAuthStateError("invalid or expired state") from exc


def exchange_code(provider: str, code: str | None) -> str:
    if not code:
        raise OAuthExchangeError("missing authorization code")
    settings = _provider(provider)
    creds = _credentials(provider)
    payload = {
        "code": code,
        "client_id": creds["client_id"],
        "client_secret": creds["client_secret"],
        "redirect_uri": creds["redirect_uri"],
        "grant_type": "authorization_code",
    }
    try:
        response = requests.post(settings["token_url"], data=payload, timeout=10)
    except requests.RequestException as exc:
        raise OAuthExchangeError("code exchange failed") from exc
    if response.status_code != 200:
        raise OAuthExchangeError(f"code exchange failed with status {response.status_code}")
    try:
        token = response.json().get("access_token")
    except ValueError as exc:
        raise OAuthExchangeError("code exchange returned an unreadable body") from exc
    if not token:
        raise OAuthExchangeError("provider returned no access token")
    return token


def fetch_profile(provider: str, access_token: str) -> dict:
    settings = _provider(provider)
    try:
        response = requests.get(
            settings["profile_url"],
            headers={"Authorization": f"Bearer {access_token}"},
            timeout=10,
        )
    except requests.RequestException as exc:
        raise OAuthProfileError("profile request failed") from exc
    if response.status_code != 200:
        raise OAuthProfileError(f"profile request failed with status {response.status_code}")
    try:
        profile = response.json()
    except ValueError as exc:
        raise OAuthProfileError("profile response not JSON-decodable") from exc

    email = (profile.get("email") or "").strip().lower()
    name = (profile.get("name") or "").strip()
    if not email or not name:
        raise IncompleteProfileError("provider profile is missing email or name")
    picture = profile.get("picture")
    if isinstance(picture, dict):
        picture = (picture.get("data") or {}).get("url")
    return {"email": email, "name": name, "id": str(profile.get("id") or ""), "picture": picture}


def find_or_create_user(profile: dict) -> User:
    user = user_repo.find_by_email(profile["email"])
    if user is not None:
        return user

    role = user_repo.find_role("User")
    if role is None:
        raise ServiceError("default role is missing", 500)
    user = User(
        fullname=profile["name"],
        username=user_repo.unique_username(profile["email"].split("@", 1)[0]),
        email=profile["email"],
        thumbnail_url=profile.get("picture"),
        is_social=True,
        is_verified=True,
        role=role,
    )
    user.set_password(generate_token(32))
    user_repo.add_user(user)
    current_app.logger.info("social_user_created", extra={"user_id": user.id})
    return user


def _sign_in(provider: str, profile: dict, push_token: str | None = None) -> User:
    user = find_or_create_user(profile)
    if user.is_blocked:
        db.session.rollback()
        raise PermissionDeniedError("this account has been blocked")
    user.is_online = True
    user.last_login_at = datetime.utcnow()
    if push_token:
        user.expo_push_token = push_token
    log_action("SOCIAL_LOGIN", user, context=provider)
    db.session.commit()
    current_app.logger.info("social_login", extra={"user_id": user.id, "provider": provider})
    return user


def complete_sign_in(provider: str, code: str | None, state: str | None) -> tuple[User, dict]:
    verify_state(state)
    access_token = exchange_code(provider, code)
    profile = fetch_profile(provider, access_token)
    user = _sign_in(provider, profile)
    state_store().consume(state)
    return user, create_token_pair(user)


def sign_in_with_token(provider: str, access_token: str, push_token: str | None = None) -> tuple[User, dict]:
    """Sign in a mobile client that already holds a provider access token.

    The token is checked by fetching the profile from the provider, so a
    revoked or forged token fails with :class:`OAuthProfileError`.
    """
    profile = fetch_profile(provider, access_token)
    user = _sign_in(provider, profile, push_token)
    return user, create_token_pair(user)
