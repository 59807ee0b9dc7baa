"""Google and Facebook OAuth redirect, callback and mobile token endpoints."""
from flask import Blueprint, jsonify, redirect, request

from services import oauth_service
from .forms import SocialTokenForm, form_error_response

oauth_bp = Blueprint("oauth", __name__)


def _callback(provider: str):
    user, tokens = oauth_service.complete_sign_in(provider, request.args.get("code"), request.args.get("state"))
    return jsonify({"message": "login successful", "user": user.public_payload(), **tokens})


def _token_login(provider: str):
    form = SocialTokenForm()
    if not form.validate_on_submit():
        return form_error_response(form)
    user, tokens = oauth_service.sign_in_with_token(provider, form.access_token.data.strip(), form.expo_push_token.data)
    return jsonify({"message": "login successful", "user": user.public_payload(), **tokens})


@oauth_bp.route("/google/login", methods=["GET"])
def google_login():
    return redirect(oauth_service.authorization_url("google"), code=302)


@oauth_bp.route("/auth/google/state", methods=["GET"])
def google_state():
    state = oauth_service.issue_state()
    return jsonify({"state": state, "authorization_url": oauth_service.authorization_url("google", state)})


@oauth_bp.route("/auth/google/callback", methods=["GET"])
def google_callback():
    return _callback("google")


@oauth_bp.route("/google/user/login", methods=["POST"])
def google_token_login():
    return _token_login("google")


@oauth_bp.route("/fb/auth", methods=["GET"])
def facebook_login():
    return redirect(oauth_service.authorization_url("facebook"), code=302)


@oauth_bp.route("/fb/callback", methods=["GET"])
def facebook_callback():
    return _callback("facebook")


@oauth_bp.route("/facebook/user/login", methods=["POST"])
def facebook_token_login():
    return _token_login("facebook")
