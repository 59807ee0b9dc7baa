"""Blueprint registration, health check, and local media serving."""
from flask import Blueprint, abort, current_app, jsonify, send_from_directory
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from .auth import auth_bp
from .oauth import oauth_bp
from .posts import posts_bp
from .reports import reports_bp
from .rewards import rewards_bp
from .users import users_bp

main_bp = Blueprint("main", __name__)

API_PREFIX = "/api/v1"
API_BLUEPRINTS = (auth_bp, oauth_bp, reports_bp, rewards_bp, users_bp, posts_bp)


@main_bp.route("/health", methods=["GET"])
def health():
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        current_app.logger.exception("health_check_failed")
        return jsonify({"status": "degraded", "database": False}), 503
    return jsonify({"status": "ok", "database": True})


@main_bp.route("/media/<path:filename>", methods=["GET"])
def media(filename):
    if current_app.config.get("AWS_BUCKET"):
        abort(404)
    return send_from_directory(current_app.config["MEDIA_ROOT"], filename)


def register_blueprints(app) -> None:
    app.register_blueprint(main_bp)
    for blueprint in API_BLUEPRINTS:
        app.register_blueprint(blueprint, url_prefix=API_PREFIX)


__all__ = ["main_bp", "auth_bp", "oauth_bp", "reports_bp", "rewards_bp", "users_bp", "posts_bp", "register_blueprints"]
