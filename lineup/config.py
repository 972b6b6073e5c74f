import os


class BaseConfig:

    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key-change-me")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-jwt-secret-change-me-before-deploying")
    JWT_EXPIRES_DAYS = int(os.getenv("JWT_EXPIRES_DAYS", "10"))

    SQLALCHEMY_DATABASE_URI = os.getenv("DB_URI", "sqlite:///./lineup.db")
    SQLALCHEMY_ECHO = os.getenv("SQLALCHEMY_ECHO", "false").lower() in ("1", "true", "yes")

    REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    REDIS_EVENTS_CHANNEL = os.getenv("REDIS_EVENTS_CHANNEL", "lineup:events")

    SOCKETIO_ASYNC_MODE = os.getenv("SOCKETIO_ASYNC_MODE", "eventlet")
    SOCKETIO_MESSAGE_QUEUE = os.getenv("SOCKETIO_MESSAGE_QUEUE", None)

    # calendar day used for daily order tokens; None means the server's local zone
    TOKEN_TIMEZONE = os.getenv("TOKEN_TIMEZONE", None)

    DEFAULT_PAGE_SIZE = int(os.getenv("DEFAULT_PAGE_SIZE", "50"))

    ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@khana-lineup.com")
    ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin_2026")

    ENVIRONMENT = os.getenv("FLASK_ENV", "development")


class DevelopmentConfig(BaseConfig):
    DEBUG = True


class ProductionConfig(BaseConfig):
    DEBUG = False
    ENVIRONMENT = "production"


class TestingConfig(BaseConfig):
    TESTING = True
    DEBUG = False
    ENVIRONMENT = "testing"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ECHO = False
    REDIS_URL = None
    SOCKETIO_ASYNC_MODE = "threading"
    SOCKETIO_MESSAGE_QUEUE = None
    TOKEN_TIMEZONE = "UTC"
    JWT_SECRET_KEY = "testing-jwt-secret-key-of-32-bytes-or-more"
