"""Flask application factory for the CitizenX incident reporting API."""
import logging
import os
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify, request
from sqlalchemy import create_engine, text
from sqlalchemy.engine.url import make_url
from sqlalchemy.exc import OperationalError
from werkzeug.exceptions import HTTPException

from extensions import db, login_manager, migrate
from services import ServiceError, ValidationFailed
from utils.logger import init_logging
from utils.security import SlidingWindowRateLimiter, apply_security_headers
from utils.tokens import OAuthStateStore, bearer_token_from_header

ERROR_MESSAGES = {
    400: "Bad request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not found",
    405: "Method not allowed",
    413: "Payload too large",
    429: "Too many requests",
    500: "Internal server error",
}


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ServiceError)
    def service_error(error: ServiceError):
        log = app.logger.error if error.status_code >= 500 else app.logger.warning
        log(
            "service_error",
            extra={"path": request.path, "status": error.status_code, "error": error.message},
        )
        body = {"error": error.message}
        if isinstance(error, ValidationFailed) and error.errors:
            body["errors"] = error.errors
        return jsonify(body), error.status_code

    def _http_error(error: HTTPException):
        status = error.code or 500
        if status >= 500:
            db.session.rollback()
            app.logger.exception("%s %s", status, ERROR_MESSAGES.get(status, "Server error"))
        else:
            app.logger.warning(
                "%s %s", status, ERROR_MESSAGES.get(status, "Error"), extra={"path": request.path, "method": request.method}
            )
        return jsonify({"error": ERROR_MESSAGES.get(status, error.name)}), status

    for code in ERROR_MESSAGES:
        app.register_error_handler(code, _http_error)


def ensure_default_roles_and_admin(app: Flask) -> None:
    """Ensure the User and Admin roles exist and seed the configured admin account."""
    from models import Role, User  # Local import to avoid circular dependency

    default_roles = [
        ("User", "Default role for citizens filing reports"),
        ("Admin", "Moderator with full privileges"),
    ]
    role_cache: dict[str, Role] = {}
    for name, description in default_roles:
        role_cache[name] = Role.get_or_create(name, description=description)

    admin_email = (app.config.get("DEFAULT_ADMIN_EMAIL") or "").lower().strip()
    admin_password = app.config.get("DEFAULT_ADMIN_PASSWORD") or ""
    if not admin_email or not admin_password:
        return

    admin_role = role_cache["Admin"]
    admin_user = User.query.filter_by(email=admin_email).first()
    if admin_user:
        if admin_user.role != admin_role or admin_user.is_blocked:
            admin_user.role = admin_role
            admin_user.is_blocked = False
            db.session.commit()
        return

    admin_user = User(
        fullname="System Administrator",
        username="admin",
        email=admin_email,
        role=admin_role,
        is_verified=True,
    )
    admin_user.set_password(admin_password)
    db.session.add(admin_user)
    db.session.commit()


def _create_postgres_database(url) -> None:
    maintenance = create_engine(
        url.set(database=os.getenv("POSTGRES_DB_ADMIN", "postgres")),
        isolation_level="AUTOCOMMIT",
    )
    try:
        with maintenance.connect() as conn:
            found = conn.execute(
                text("SELECT 1 FROM pg_database WHERE datname = :name"), {"name": url.database}
            ).scalar()
            if not found:
                conn.execute(text(f'CREATE DATABASE "{url.database}"'))
    except OperationalError as exc:
        # The real connection error surfaces on the first query.
        logging.getLogger(__name__).warning("database bootstrap skipped: %s", exc)
    finally:
        maintenance.dispose()


def ensure_database_exists(database_uri: str) -> None:
    """Prepare the SQLite directory or create the PostgreSQL database if missing."""
    url = make_url(database_uri)
    if url.drivername.startswith("sqlite"):
        if url.database and url.database != ":memory:":
            os.makedirs(os.path.dirname(url.database) or ".", exist_ok=True)
    elif url.drivername.startswith("postgres"):
        _create_postgres_database(url)


def init_rate_limiters(app: Flask) -> None:
    app.extensions["rate_limiters"] = {
        "reports": SlidingWindowRateLimiter(
            int(app.config.get("SPAM_REPORT_LIMIT", 5)),
            int(app.config.get("SPAM_WINDOW_SECONDS", 120)),
        ),
        "login": SlidingWindowRateLimiter(
            int(app.config.get("LOGIN_ATTEMPT_LIMIT", 10)),
            int(app.config.get("LOGIN_WINDOW_SECONDS", 300)),
        ),
    }
    app.extensions["oauth_states"] = OAuthStateStore()


def create_app(config_name: Optional[str] = None, overrides: Optional[dict] = None) -> Flask:
    """Application factory with environment-aware configuration."""
    load_dotenv()

    app = Flask(__name__, instance_relative_config=True)

    from config import DevelopmentConfig, ProductionConfig, TestingConfig

    config_key = (config_name or os.getenv("FLASK_CONFIG") or os.getenv("FLASK_ENV") or "production").lower()
    config_map = {
        "development": DevelopmentConfig,
        "dev": DevelopmentConfig,
        "production": ProductionConfig,
        "prod": ProductionConfig,
        "testing": TestingConfig,
        "test": TestingConfig,
    }
    config_class = config_map.get(config_key, ProductionConfig)
    app.config.from_object(config_class())
    if overrides:
        app.config.update(overrides)

    ensure_database_exists(app.config["SQLALCHEMY_DATABASE_URI"])
    os.makedirs(app.instance_path, exist_ok=True)
    os.makedirs(app.config["MEDIA_ROOT"], exist_ok=True)

    logger = init_logging(app)
    app.logger = logger

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    login_manager.session_protection = None
    init_rate_limiters(app)

    @login_manager.user_loader
    def load_user(user_id):
        from repositories.users import find_by_id

        return find_by_id(user_id)

    @login_manager.request_loader
    def load_user_from_request(req):
        from services.auth_service import resolve_access_token

        token = bearer_token_from_header(req.headers.get("Authorization"))
        if not token:
            return None
        return resolve_access_token(token)

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({"error": "Unauthorized"}), 401

    from routes import register_blueprints

    register_blueprints(app)
    register_error_handlers(app)

    @app.after_request
    def _after_request(response):
        return apply_security_headers(response, force_https=app.config.get("PREFERRED_URL_SCHEME") == "https")

    with app.app_context():
        db.create_all()
        ensure_default_roles_and_admin(app)

    return app
