"""Expo push notification client."""
import requests
from flask import current_app

EXPO_TOKEN_PREFIXES = ("ExponentPushToken[", "ExpoPushToken[")


class PushDeliveryError(Exception):
    """Raised when the push gateway rejects or cannot receive a message."""


def is_valid_push_token(token: str | None) -> bool:
    return bool(token) and token.startswith(EXPO_TOKEN_PREFIXES) and token.endswith("]")


def send_push_notification(token: str, title: str, body: str, data: dict | None = None) -> dict:
    if not is_valid_push_token(token):
        raise PushDeliveryError("Invalid Expo push token")

    message = {
        "to": token,
        "sound": "default",
        "title": title,
        "body": body,
        "data": {key: str(value) for key, value in (data or {}).items()},
    }
    url = current_app.config.get("EXPO_PUSH_URL")
    try:
        response = requests.post(
            url,
            json=message,
            headers={"Accept": "application/json", "Content-Type": "application/json"},
            timeout=10,
        )
    except requests.RequestException as exc:
        raise PushDeliveryError(f"Push gateway unreachable: {exc}") from exc

    if response.status_code != 200:
        raise PushDeliveryError(f"Push gateway returned {response.status_code}")
    try:
        payload = response.json()
    except ValueError as exc:
        raise PushDeliveryError("Push gateway response not JSON-decodable") from exc

    ticket = payload.get("data") if isinstance(payload, dict) else None
    if isinstance(ticket, dict) and ticket.get("status") == "error":
        raise PushDeliveryError(ticket.get("message") or "Push ticket rejected")
    return payload
