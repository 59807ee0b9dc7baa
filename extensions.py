"""Extension singletons bound to the app inside ``create_app``."""
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
migrate = Migrate()
# Resolves bearer tokens into current_user; no session logins.
login_manager = LoginManager()
