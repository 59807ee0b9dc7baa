"""Environment-aware configuration for the reporting API."""
import os


def _postgres_url() -> str | None:
    host = os.getenv("POSTGRES_HOST")
    if not host:
        return None
    user = os.getenv("POSTGRES_USER", "postgres")
    password = os.getenv("POSTGRES_PASSWORD", "")
    name = os.getenv("POSTGRES_DB", "citizenx")
    port = os.getenv("POSTGRES_PORT", "5432")
    return f"postgresql+psycopg2://{user}:{password}@{host}:{port}/{name}"


class BaseConfig:
    def __init__(self) -> None:
        # Defaults for local dev: SQLite db and non-empty secrets. Override via env for production.
        self.SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key-change-me")
        self.JWT_SECRET = os.getenv("JWT_SECRET", self.SECRET_KEY)
        self.JWT_ALGORITHM = "HS256"
        db_url = os.getenv("DATABASE_URL") or _postgres_url()
        if db_url:
            self.SQLALCHEMY_DATABASE_URI = db_url
        else:
            self.SQLALCHEMY_DATABASE_URI = os.getenv(
                "SQLITE_URL",
                f"sqlite:///{os.path.join(os.getcwd(), 'instance', 'citizenx.db')}",
            )
        self.SQLALCHEMY_TRACK_MODIFICATIONS = False
        self.SQLALCHEMY_ENGINE_OPTIONS = {
            "pool_size": int(os.getenv("DB_POOL_SIZE", 10)),
            "max_overflow": int(os.getenv("DB_MAX_OVERFLOW", 20)),
            "pool_timeout": int(os.getenv("DB_POOL_TIMEOUT", 30)),
            "pool_recycle": int(os.getenv("DB_POOL_RECYCLE", 1800)),
        }
        self.ACCESS_TOKEN_MINUTES = int(os.getenv("ACCESS_TOKEN_MINUTES", 15))
        self.REFRESH_TOKEN_DAYS = int(os.getenv("REFRESH_TOKEN_DAYS", 7))
        self.PASSWORD_RESET_MINUTES = int(os.getenv("PASSWORD_RESET_MINUTES", 60))
        self.OAUTH_STATE_MINUTES = int(os.getenv("OAUTH_STATE_MINUTES", 60))
        self.GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID", "")
        self.GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET", "")
        self.GOOGLE_REDIRECT_URL = os.getenv("GOOGLE_REDIRECT_URL", "")
        self.FACEBOOK_CLIENT_ID = os.getenv("FACEBOOK_CLIENT_ID", "")
        self.FACEBOOK_CLIENT_SECRET = os.getenv("FACEBOOK_CLIENT_SECRET", "")
        self.FACEBOOK_REDIRECT_URL = os.getenv("FACEBOOK_REDIRECT_URL", "")
        self.GOOGLE_MAPS_API_KEY = os.getenv("GOOGLE_MAPS_API_KEY", "")
        self.AWS_REGION = os.getenv("AWS_REGION", "us-east-1")
        self.AWS_BUCKET = os.getenv("AWS_BUCKET", "")
        self.MEDIA_ROOT = os.getenv("MEDIA_ROOT", os.path.join(os.getcwd(), "instance", "media"))
        self.MEDIA_BASE_URL = os.getenv("MEDIA_BASE_URL", "/media")
        self.FFMPEG_BINARY = os.getenv("FFMPEG_BINARY", "ffmpeg")
        self.MAX_IMAGE_UPLOAD_BYTES = int(os.getenv("MAX_IMAGE_UPLOAD_BYTES", 10 * 1024 * 1024))
        self.MAX_VIDEO_UPLOAD_BYTES = int(os.getenv("MAX_VIDEO_UPLOAD_BYTES", 100 * 1024 * 1024))
        self.MAX_AUDIO_UPLOAD_BYTES = int(os.getenv("MAX_AUDIO_UPLOAD_BYTES", 50 * 1024 * 1024))
        self.MAX_CONTENT_LENGTH = int(os.getenv("MAX_REQUEST_BYTES", 256 * 1024 * 1024))
        self.MAIL_SERVER = os.getenv("MAIL_SERVER", "")
        self.MAIL_PORT = int(os.getenv("MAIL_PORT", 25))
        self.MAIL_USERNAME = os.getenv("MAIL_USERNAME", "")
        self.MAIL_PASSWORD = os.getenv("MAIL_PASSWORD", "")
        self.MAIL_USE_TLS = os.getenv("MAIL_USE_TLS", "true").lower() == "true"
        self.MAIL_USE_SSL = os.getenv("MAIL_USE_SSL", "false").lower() == "true"
        self.MAIL_DEFAULT_SENDER = os.getenv("MAIL_DEFAULT_SENDER", os.getenv("EMAIL_FROM", ""))
        self.BASE_URL = os.getenv("BASE_URL", "http://localhost:3002")
        self.EXPO_PUSH_URL = os.getenv("EXPO_PUSH_URL", "https://exp.host/--/api/v2/push/send")
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self.LOG_DIR = os.getenv("LOG_DIR", os.path.join(os.getcwd(), "logs"))
        self.LOG_TO_FILE = os.getenv("LOG_TO_FILE", "true").lower() == "true"
        self.DEFAULT_ADMIN_EMAIL = os.getenv("DEFAULT_ADMIN_EMAIL", "admin@citizenx.ng")
        self.DEFAULT_ADMIN_PASSWORD = os.getenv("DEFAULT_ADMIN_PASSWORD", "")
        self.REPORTS_PAGE_SIZE = int(os.getenv("REPORTS_PAGE_SIZE", 20))
        self.SPAM_REPORT_LIMIT = int(os.getenv("SPAM_REPORT_LIMIT", 5))
        self.SPAM_WINDOW_SECONDS = int(os.getenv("SPAM_WINDOW_SECONDS", 120))
        self.LOGIN_ATTEMPT_LIMIT = int(os.getenv("LOGIN_ATTEMPT_LIMIT", 10))
        self.LOGIN_WINDOW_SECONDS = int(os.getenv("LOGIN_WINDOW_SECONDS", 300))


class DevelopmentConfig(BaseConfig):
    def __init__(self) -> None:
        super().__init__()
        self.DEBUG = True
        self.ENV = "development"


class ProductionConfig(BaseConfig):
    def __init__(self) -> None:
        super().__init__()
        self.DEBUG = False
        self.ENV = "production"
        self.PREFERRED_URL_SCHEME = os.getenv("PREFERRED_URL_SCHEME", "https")


class TestingConfig(BaseConfig):
    def __init__(self) -> None:
        super().__init__()
        self.TESTING = True
        self.DEBUG = False
        self.SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
        # In-memory SQLite runs on a static pool that rejects QueuePool sizing options.
        self.SQLALCHEMY_ENGINE_OPTIONS = {}
        self.JWT_SECRET = "test-jwt-secret"
        self.LOG_TO_FILE = False
        self.LOG_LEVEL = "WARNING"
        self.DEFAULT_ADMIN_EMAIL = "admin@example.com"
        self.DEFAULT_ADMIN_PASSWORD = "AdminPass123"
        self.AWS_BUCKET = ""
        self.MAIL_SERVER = ""
        self.GOOGLE_MAPS_API_KEY = ""
