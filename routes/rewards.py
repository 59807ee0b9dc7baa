from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from services import reward_service
from utils.decorators import admin_required

rewards_bp = Blueprint("rewards", __name__)


@rewards_bp.route("/get/user/balance", methods=["GET"])
@login_required
def user_balance():
    return jsonify({"user_id": current_user.id, "balance": reward_service.user_balance(current_user.id)})


@rewards_bp.route("/count/all/rewards", methods=["GET"])
@admin_required
def total_rewards():
    return jsonify({"total_balance": reward_service.total_balance()})


@rewards_bp.route("/rewards/list", methods=["GET"])
@admin_required
def list_rewards():
    return jsonify({"rewards": [r.public_payload() for r in reward_service.list_rewards()]})
