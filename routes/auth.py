"""Credential authentication, password reset, and account self-service."""
from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from services import auth_service, user_service
from utils.tokens import bearer_token_from_header
from .forms import (
    ForgotPasswordForm,
    LoginForm,
    ProfileForm,
    PushTokenForm,
    RefreshForm,
    ResetPasswordForm,
    SignupForm,
    form_error_response,
)

auth_bp = Blueprint("auth", __name__)


def _current_token() -> str | None:
    return bearer_token_from_header(request.headers.get("Authorization"))


@auth_bp.route("/auth/signup", methods=["POST"])
def signup():
    form = SignupForm()
    if not form.validate_on_submit():
        return form_error_response(form)
    user = auth_service.signup(
        fullname=form.fullname.data,
        username=form.username.data,
        email=form.email.data,
        password=form.password.data,
        telephone=form.telephone.data,
    )
    return jsonify({"message": "signup successful", "user": user.public_payload()}), 201


@auth_bp.route("/auth/login", methods=["POST"])
def login():
    form = LoginForm()
    if not form.validate_on_submit():
        return form_error_response(form)
    user, tokens = auth_service.login(form.email.data, form.password.data, form.expo_push_token.data)
    return jsonify({"message": "login successful", "user": user.public_payload(), **tokens})


@auth_bp.route("/auth/refresh", methods=["POST"])
def refresh():
    form = RefreshForm()
    if not form.validate_on_submit():
        return form_error_response(form)
    return jsonify(auth_service.refresh(form.refresh_token.data))


@auth_bp.route("/auth/logout", methods=["POST"])
@login_required
def logout():
    auth_service.logout(current_user, _current_token())
    return jsonify({"message": "logout successful"})


@auth_bp.route("/password/forgot", methods=["POST"])
def forgot_password():
    form = ForgotPasswordForm()
    if not form.validate_on_submit():
        return form_error_response(form)
    auth_service.forgot_password(form.email.data)
    return jsonify({"message": "password reset link sent"})


@auth_bp.route("/password/reset/<token>", methods=["POST"])
def reset_password(token):
    form = ResetPasswordForm()
    if not form.validate_on_submit():
        return form_error_response(form)
    auth_service.reset_password(token, form.password.data)
    return jsonify({"message": "password reset successful"})


@auth_bp.route("/me", methods=["GET"])
@login_required
def me():
    return jsonify({"user": current_user.public_payload()})


@auth_bp.route("/me", methods=["PUT"])
@login_required
def edit_me():
    form = ProfileForm()
    if not form.validate_on_submit():
        return form_error_response(form)
    user = user_service.update_profile(
        current_user,
        fullname=(form.fullname.data or "").strip() or None,
        username=(form.username.data or "").strip() or None,
        telephone=(form.telephone.data or "").strip() or None,
    )
    return jsonify({"message": "profile updated", "user": user.public_payload()})


@auth_bp.route("/user/push-token", methods=["POST"])
@login_required
def register_push_token():
    form = PushTokenForm()
    if not form.validate_on_submit():
        return form_error_response(form)
    user_service.set_push_token(current_user, form.token.data.strip())
    return jsonify({"message": "push token saved"})


@auth_bp.route("/delete/user", methods=["DELETE"])
@login_required
def delete_user():
    user_service.delete_user(current_user._get_current_object(), _current_token())
    return jsonify({"message": "user deleted"})
