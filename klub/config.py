import os

basedir = os.path.abspath(os.path.dirname(__file__))

DEFAULT_SECRET_KEY = 'dev-secret-key-change-in-prod'


def _env_bool(name, default=False):
    raw = os.environ.get(name)
    if raw is None:
        return default
    return str(raw).strip().lower() in {'1', 'true', 'yes', 'on'}


def _env_int(name, default):
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def _normalize_database_url(raw_url):
    if not raw_url:
        return raw_url
    if raw_url.startswith('postgres://'):
        return raw_url.replace('postgres://', 'postgresql://', 1)
    return raw_url


class BaseConfig:
    SECRET_KEY = os.environ.get('JWT_SECRET') or os.environ.get('SECRET_KEY', DEFAULT_SECRET_KEY)
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_SORT_KEYS = False
    JWT_EXPIRATION_HOURS = _env_int('JWT_EXPIRATION_HOURS', 24)
    PASSWORD_RESET_TOKEN_TTL_MINUTES = _env_int('PASSWORD_RESET_TOKEN_TTL_MINUTES', 15)
    FRONTEND_URL = os.environ.get('FRONTEND_URL', 'http://localhost:3000')
    CORS_ALLOWED_ORIGINS = os.environ.get('CORS_ALLOWED_ORIGINS', '*')
    SOCKETIO_ASYNC_MODE = os.environ.get('SOCKETIO_ASYNC_MODE', 'threading')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    PROPAGATE_ERROR_DETAILS = _env_bool('DEBUG_ERRORS', False)

    SMTP_HOST = os.environ.get('SMTP_HOST', '')
    SMTP_PORT = _env_int('SMTP_PORT', 587)
    SMTP_USER = os.environ.get('SMTP_USER', '')
    SMTP_PASSWORD = os.environ.get('SMTP_PASSWORD') or os.environ.get('SMTP_PASS', '')
    SMTP_TIMEOUT_SECONDS = _env_int('SMTP_TIMEOUT_SECONDS', 20)
    MAIL_FROM = os.environ.get('MAIL_FROM', 'no-reply@klub.local')
    MAIL_SUPPRESS_SEND = _env_bool('MAIL_SUPPRESS_SEND', False)

    REMINDERS_ENABLED = _env_bool('REMINDERS_ENABLED', True)
    REMINDER_INTERVAL_SECONDS = _env_int('REMINDER_INTERVAL_SECONDS', 3600)
    REMINDER_WINDOW_HOURS = _env_int('REMINDER_WINDOW_HOURS', 48)


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    PROPAGATE_ERROR_DETAILS = _env_bool('DEBUG_ERRORS', True)
    SQLALCHEMY_DATABASE_URI = _normalize_database_url(
        os.environ.get(
            'DATABASE_URL',
            'sqlite:///' + os.path.join(basedir, '..', 'klub_dev.db')
        )
    )


class TestingConfig(BaseConfig):
    TESTING = True
    SECRET_KEY = 'testing-secret-key'
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    MAIL_SUPPRESS_SEND = True
    REMINDERS_ENABLED = False
    PROPAGATE_ERROR_DETAILS = False


class ProductionConfig(BaseConfig):
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = _normalize_database_url(os.environ.get('DATABASE_URL'))


config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
}
