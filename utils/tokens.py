"""JWT issuance and validation for access, refresh, reset, and OAuth state tokens."""
import threading
import time
import uuid
from datetime import datetime, timedelta, timezone

from flask import current_app
from jose import ExpiredSignatureError, JWTError, jwt

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"
PASSWORD_RESET_TOKEN_TYPE = "password_reset_token"
OAUTH_STATE_TOKEN_TYPE = "oauth_state"


class TokenError(Exception):
    """Raised when a token is malformed, expired, or of the wrong type."""


def _secret() -> str:
    secret = current_app.config.get("JWT_SECRET")
    if not secret:
        raise TokenError("JWT secret is not configured")
    return secret


def _algorithm() -> str:
    return current_app.config.get("JWT_ALGORITHM", "HS256")


def _encode(claims: dict, lifetime: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = dict(claims)
    payload["iat"] = int(now.timestamp())
    payload["exp"] = int((now + lifetime).timestamp())
    payload.setdefault("jti", uuid.uuid4().hex)
    return jwt.encode(payload, _secret(), algorithm=_algorithm())


def decode_token(token: str, expected_type: str | None = None) -> dict:
    if not token:
        raise TokenError("Token missing")
    try:
        claims = jwt.decode(token, _secret(), algorithms=[_algorithm()])
    except ExpiredSignatureError as exc:
        raise TokenError("Token expired") from exc
    except JWTError as exc:
        raise TokenError("Invalid token") from exc
    if expected_type and claims.get("type") != expected_type:
        raise TokenError("Unexpected token type")
    return claims


def _user_claims(user) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "role": user.role_name,
        "is_admin": user.is_admin,
    }


def create_token_pair(user) -> dict:
    access_lifetime = timedelta(minutes=int(current_app.config.get("ACCESS_TOKEN_MINUTES", 15)))
    refresh_lifetime = timedelta(days=int(current_app.config.get("REFRESH_TOKEN_DAYS", 7)))
    claims = _user_claims(user)
    return {
        "access_token": _encode({**claims, "type": ACCESS_TOKEN_TYPE}, access_lifetime),
        "refresh_token": _encode({**claims, "type": REFRESH_TOKEN_TYPE}, refresh_lifetime),
        "token_type": "Bearer",
        "expires_in": int(access_lifetime.total_seconds()),
    }


def create_password_reset_token(email: str) -> str:
    lifetime = timedelta(minutes=int(current_app.config.get("PASSWORD_RESET_MINUTES", 60)))
    return _encode({"email": email, "type": PASSWORD_RESET_TOKEN_TYPE}, lifetime)


def create_state_token() -> str:
    lifetime = timedelta(minutes=int(current_app.config.get("OAUTH_STATE_MINUTES", 60)))
    return _encode({"type": OAUTH_STATE_TOKEN_TYPE, "nonce": uuid.uuid4().hex}, lifetime)


def bearer_token_from_header(header_value: str | None) -> str | None:
    if not header_value:
        return None
    parts = header_value.strip().split(None, 1)
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1].strip() or None
    return None


class OAuthStateStore:
    """Process-local registry of issued OAuth state tokens.

    A state is consumable once. Entries vanish on restart, so a callback racing a
    deploy fails with an invalid state.
    """

    def __init__(self, clock=time.time):
        self._states: dict[str, float] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def issue(self) -> str:
        token = create_state_token()
        claims = decode_token(token, OAUTH_STATE_TOKEN_TYPE)
        with self._lock:
            self._purge_locked()
            self._states[token] = float(claims["exp"])
        return token

    def verify(self, token: str) -> dict:
        """Validate signature and expiry and confirm the state was issued here."""
        claims = decode_token(token, OAUTH_STATE_TOKEN_TYPE)
        with self._lock:
            if token not in self._states:
                raise TokenError("Unknown state")
        return claims

    def consume(self, token: str) -> None:
        with self._lock:
            self._states.pop(token, None)

    def _purge_locked(self) -> None:
        now = self._clock()
        for key in [k for k, exp in self._states.items() if exp <= now]:
            self._states.pop(key, None)

    def __contains__(self, token: str) -> bool:
        with self._lock:
            return token in self._states
