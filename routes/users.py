"""User moderation: flagging, blocking, role assignment and listings."""
from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from services import user_service
from utils.decorators import admin_required
from .forms import RoleForm, form_error_response

users_bp = Blueprint("users", __name__)


@users_bp.route("/users/report/<user_id>", methods=["POST"])
@login_required
def report_user(user_id):
    user_service.flag_user(current_user, user_id)
    return jsonify({"message": "user reported"})


@users_bp.route("/users/block/<user_id>", methods=["POST"])
@admin_required
def block_user(user_id):
    user = user_service.block_user(current_user, user_id)
    return jsonify({"message": "user blocked", "user": user.public_payload()})


@users_bp.route("/users/<user_id>/role", methods=["PUT"])
@admin_required
def set_role(user_id):
    form = RoleForm()
    if not form.validate_on_submit():
        return form_error_response(form)
    user = user_service.set_role(current_user, user_id, form.role.data)
    return jsonify({"message": "role updated", "user": user.public_payload()})


@users_bp.route("/users/all", methods=["GET"])
@admin_required
def all_users():
    return jsonify({"users": [u.public_payload() for u in user_service.all_users()]})


@users_bp.route("/users/online", methods=["GET"])
@admin_required
def online_users():
    return jsonify({"online": user_service.online_count()})
