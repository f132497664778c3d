# circular_portal/config.py
import os
from datetime import timedelta
from dotenv import load_dotenv

# Package directory (circular_portal/) and the project root one level up
CONFIG_FILE_DIR = os.path.abspath(os.path.dirname(__file__))
PROJECT_ROOT = os.path.dirname(CONFIG_FILE_DIR)

dotenv_path = os.path.join(PROJECT_ROOT, '.env')
if os.path.exists(dotenv_path):
    load_dotenv(dotenv_path)

DEFAULT_SECRET_KEY = 'change_this_default_secret_key_circular_portal'
DEFAULT_JWT_SECRET_KEY = 'change_this_default_jwt_secret_key_circular_portal'


def _env_bool(name, default='false'):
    return os.environ.get(name, default).lower() in ('true', '1', 't', 'yes')


class Config:
    """Base configuration."""
    SECRET_KEY = os.environ.get('SECRET_KEY', DEFAULT_SECRET_KEY)
    DEBUG = False
    TESTING = False
    APP_BASE_URL = os.environ.get('APP_BASE_URL', 'http://localhost:5000')
    API_VERSION = "1.0.0"

    # 'orm' uses Flask-SQLAlchemy models, 'sql' uses raw parameterized SQL on SQL_DATABASE_PATH
    STORAGE_BACKEND = os.environ.get('STORAGE_BACKEND', 'orm').lower()

    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        'sqlite:///' + os.path.join(PROJECT_ROOT, 'instance', 'circular_portal.sqlite3')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = False
    SQL_DATABASE_PATH = os.environ.get('SQL_DATABASE_PATH', os.path.join(PROJECT_ROOT, 'instance', 'circular_portal_sql.sqlite3'))

    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY', DEFAULT_JWT_SECRET_KEY)
    JWT_TOKEN_LOCATION = ['cookies', 'headers']
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=24)
    JWT_COOKIE_SECURE = False
    JWT_COOKIE_SAMESITE = 'Lax'
    JWT_ACCESS_COOKIE_PATH = '/api/'
    JWT_COOKIE_CSRF_PROTECT = True
    JWT_CSRF_METHODS = ['POST', 'PUT', 'PATCH', 'DELETE']
    JWT_CSRF_IN_COOKIES = True

    # --- Email Configuration ---
    # Without MAIL_SERVER outgoing mail is only logged.
    MAIL_SERVER = os.environ.get('MAIL_SERVER')
    MAIL_PORT = int(os.environ.get('MAIL_PORT', 587))
    MAIL_USE_TLS = _env_bool('MAIL_USE_TLS', 'true')
    MAIL_USE_SSL = _env_bool('MAIL_USE_SSL', 'false')
    MAIL_USERNAME = os.environ.get('MAIL_USERNAME')
    MAIL_PASSWORD = os.environ.get('MAIL_PASSWORD')
    MAIL_DEFAULT_SENDER = os.environ.get('MAIL_DEFAULT_SENDER', 'noreply@circularcomputing.com')
    MAIL_SUPPRESS_SEND = _env_bool('MAIL_SUPPRESS_SEND', 'false')
    ADMIN_EMAIL = os.environ.get('ADMIN_EMAIL')

    # --- RMA notifications ---
    # Used only when the admin settings carry no webhook URL
    RMA_WEBHOOK_URL = os.environ.get('RMA_WEBHOOK_URL')
    RMA_WEBHOOK_TIMEOUT = int(os.environ.get('RMA_WEBHOOK_TIMEOUT', 10))

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()
    LOG_FILE = os.environ.get('LOG_FILE', None)

    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', "http://localhost:5173,http://127.0.0.1:5173")

    RATELIMIT_STORAGE_URI = os.environ.get('RATELIMIT_STORAGE_URI', "memory://")
    RATELIMIT_STRATEGY = "fixed-window"
    RATELIMIT_HEADERS_ENABLED = True
    AUTH_RATELIMITS = "20 per minute;200 per hour"
    ADMIN_API_RATELIMITS = "600 per hour"
    DATA_API_RATELIMITS = "120 per minute"

    CONTENT_SECURITY_POLICY = {
        'default-src': ['\'self\''],
        'img-src': ['\'self\'', 'data:', 'https:'],
        'script-src': ['\'self\''],
        'style-src': ['\'self\'', '\'unsafe-inline\''],
        'connect-src': ['\'self\''],
        'frame-ancestors': ['\'none\'']
    }
    TALISMAN_FORCE_HTTPS = False

    INITIAL_ADMIN_USERNAME = os.environ.get('INITIAL_ADMIN_USERNAME', 'admin')
    INITIAL_ADMIN_EMAIL = os.environ.get('INITIAL_ADMIN_EMAIL')
    INITIAL_ADMIN_PASSWORD = os.environ.get('INITIAL_ADMIN_PASSWORD')


class DevelopmentConfig(Config):
    DEBUG = True
    LOG_LEVEL = 'DEBUG'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DEV_DATABASE_URL') or \
        'sqlite:///' + os.path.join(PROJECT_ROOT, 'instance', 'dev_circular_portal.sqlite3')
    JWT_COOKIE_CSRF_PROTECT = False


class TestingConfig(Config):
    TESTING = True
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.environ.get('TEST_DATABASE_URL', 'sqlite:///:memory:')
    SQL_DATABASE_PATH = os.path.join(PROJECT_ROOT, 'instance', 'test_circular_portal_sql.sqlite3')
    STORAGE_BACKEND = 'orm'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(minutes=5)
    JWT_COOKIE_CSRF_PROTECT = False
    RATELIMIT_ENABLED = False
    MAIL_SERVER = None
    MAIL_SUPPRESS_SEND = True
    ADMIN_EMAIL = 'ops@example.com'
    RMA_WEBHOOK_URL = None
    INITIAL_ADMIN_EMAIL = 'test_admin@example.com'
    INITIAL_ADMIN_PASSWORD = 'test_password123'


class ProductionConfig(Config):
    DEBUG = False
    TESTING = False
    JWT_COOKIE_SECURE = True
    JWT_COOKIE_SAMESITE = 'Strict'
    TALISMAN_FORCE_HTTPS = True
    CORS_ORIGINS = os.environ.get('PROD_CORS_ORIGINS', Config.CORS_ORIGINS)


config_by_name = dict(
    development=DevelopmentConfig,
    testing=TestingConfig,
    production=ProductionConfig,
    default=DevelopmentConfig
)


def get_config_by_name(config_name_str=None):
    """
    Retrieves a configuration instance by name and creates the directories
    its database and log paths point into.
    """
    if config_name_str is None:
        config_name_str = os.getenv('FLASK_ENV', 'default')

    SelectedConfigClass = config_by_name.get(config_name_str.lower())
    if not SelectedConfigClass:
        print(f"Warning: Config name '{config_name_str}' not found. Using default.")
        SelectedConfigClass = config_by_name['default']

    config_instance = SelectedConfigClass()

    if isinstance(config_instance, ProductionConfig):
        if config_instance.SECRET_KEY == DEFAULT_SECRET_KEY:
            raise ValueError("Production SECRET_KEY is not set or is using the default value.")
        if config_instance.JWT_SECRET_KEY == DEFAULT_JWT_SECRET_KEY:
            raise ValueError("Production JWT_SECRET_KEY is not set or is using the default value.")

    if config_instance.STORAGE_BACKEND not in ('orm', 'sql'):
        raise ValueError(f"Unknown STORAGE_BACKEND '{config_instance.STORAGE_BACKEND}'. Expected 'orm' or 'sql'.")

    uri = config_instance.SQLALCHEMY_DATABASE_URI
    paths_to_create = [
        os.path.dirname(uri.replace('sqlite:///', ''))
            if uri.startswith('sqlite:///') and not uri.endswith(':memory:')
            else None,
        os.path.dirname(config_instance.SQL_DATABASE_PATH) if config_instance.SQL_DATABASE_PATH else None,
        os.path.dirname(config_instance.LOG_FILE) if config_instance.LOG_FILE else None
    ]
    for path in paths_to_create:
        if path:
            try:
                os.makedirs(path, exist_ok=True)
            except OSError as e:
                print(f"Warning: Could not create directory {path}: {e}")

    return config_instance
