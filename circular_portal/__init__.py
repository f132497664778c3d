# circular_portal/__init__.py
import os
import logging
from logging.handlers import RotatingFileHandler
from flask import Flask, g, jsonify
from flask_cors import CORS
from flask_jwt_extended import JWTManager, verify_jwt_in_request, get_jwt_identity, get_jwt
from flask_talisman import Talisman
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from pydantic import ValidationError

from .config import get_config_by_name
from .models.base import db
from .audit_log_service import AuditLogService
from .utils import validation_error_response

# Initialize extensions without app object yet
migrate = Migrate()
jwt = JWTManager()
limiter = Limiter(key_func=get_remote_address)
talisman = Talisman()

LOG_FORMAT = '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'


def _configure_logging(app):
    log_level_str = app.config.get('LOG_LEVEL', 'INFO').upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    if not app.debug and not app.testing:
        log_file = app.config.get('LOG_FILE')
        if log_file:
            log_dir = os.path.dirname(log_file)
            if log_dir and not os.path.exists(log_dir):
                os.makedirs(log_dir, exist_ok=True)
            handler = RotatingFileHandler(log_file, maxBytes=1024 * 1024 * 100, backupCount=20)
        else:
            handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler.setLevel(log_level)
        if not app.logger.handlers: app.logger.addHandler(handler)
        app.logger.setLevel(log_level)
    elif app.debug:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        if not app.logger.handlers: app.logger.addHandler(stream_handler)
        app.logger.setLevel(logging.DEBUG)


def _register_jwt_handlers():
    @jwt.unauthorized_loader
    def missing_token_callback(reason):
        return jsonify(message=f"Authentication required: {reason}", success=False), 401

    @jwt.invalid_token_loader
    def invalid_token_callback(reason):
        return jsonify(message=f"Invalid session token: {reason}", success=False), 401

    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return jsonify(message="Session has expired. Please log in again.", success=False), 401


def create_app(config_name=None, config_overrides=None):
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'default')

    app_config = get_config_by_name(config_name)

    project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    app = Flask(__name__, instance_path=os.path.join(project_root, 'instance'))
    app.config.from_object(app_config)
    if config_overrides:
        app.config.update(config_overrides)

    try:
        os.makedirs(app.instance_path, exist_ok=True)
    except OSError as e:
        print(f"Could not create instance folder {app.instance_path}: {e}")

    _configure_logging(app)
    app.logger.info(f"Circular Portal API starting with config: {config_name}")
    app.logger.info(f"Database URI: {app.config['SQLALCHEMY_DATABASE_URI']}")

    # Initialize extensions with app object
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    limiter.init_app(app)
    _register_jwt_handlers()

    talisman_config = {
        'content_security_policy': app.config.get('CONTENT_SECURITY_POLICY'),
        'force_https': app.config.get('TALISMAN_FORCE_HTTPS', False),
        'strict_transport_security': app.config.get('TALISMAN_FORCE_HTTPS', False),
        'session_cookie_secure': app.config.get('JWT_COOKIE_SECURE', False),
        'session_cookie_samesite': app.config.get('JWT_COOKIE_SAMESITE', 'Lax'),
        'frame_options': 'DENY',
        'referrer_policy': 'strict-origin-when-cross-origin',
    }
    talisman.init_app(app, **talisman_config)

    CORS(app, resources={r"/api/*": {"origins": app.config.get("CORS_ORIGINS", "*").split(',')}}, supports_credentials=True)
    app.logger.info(f"CORS configured for origins: {app.config.get('CORS_ORIGINS', '*')}")

    # Import models so Flask-Migrate and create_all can find them
    from . import models  # noqa: F401
    from .storage import create_storage
    from .services.scoring_service import ScoringService
    from .services.rma_notification_service import RmaNotificationService

    app.storage = create_storage(app)
    app.audit_log_service = AuditLogService(app.storage, app=app)
    app.scoring_service = ScoringService(app.storage, app=app)
    app.rma_notification_service = RmaNotificationService(app.storage, app=app)
    app.logger.info("Storage and services initialized and attached to app.")

    # Register Blueprints
    from .auth import auth_bp
    app.register_blueprint(auth_bp)
    limiter.limit(app.config.get('AUTH_RATELIMITS', "20 per minute;200 per hour"))(auth_bp)

    from .users import users_bp
    app.register_blueprint(users_bp)

    from .orders import orders_bp, delivery_timeline_bp
    app.register_blueprint(orders_bp)
    app.register_blueprint(delivery_timeline_bp)

    from .rma import rma_bp, rma_requests_bp, warranty_bp
    app.register_blueprint(rma_bp)
    app.register_blueprint(rma_requests_bp)
    app.register_blueprint(warranty_bp)

    from .impact import impact_bp
    app.register_blueprint(impact_bp)

    from .content import content_bp
    app.register_blueprint(content_bp)

    from .gamification import gamification_bp
    app.register_blueprint(gamification_bp)

    from .admin_api import admin_api_bp
    app.register_blueprint(admin_api_bp)
    limiter.limit(app.config.get('ADMIN_API_RATELIMITS', "600 per hour"))(admin_api_bp)

    from .data_api import data_api_bp
    app.register_blueprint(data_api_bp)
    limiter.limit(app.config.get('DATA_API_RATELIMITS', "120 per minute"))(data_api_bp)

    app.logger.info("Blueprints registered.")

    from .database import register_db_commands
    register_db_commands(app)

    @app.before_request
    def load_user_from_token_if_present():
        g.current_user_id = None
        g.current_user_role = None
        g.is_admin = False
        try:
            verify_jwt_in_request(optional=True)
            current_user_identity = get_jwt_identity()
            if current_user_identity:
                g.current_user_id = int(current_user_identity)
                claims = get_jwt()
                if claims:
                    g.current_user_role = claims.get('role')
                    g.is_admin = bool(claims.get('is_admin'))
        except Exception:
            # Protected routes re-verify the token and report the failure themselves
            pass

    @app.route('/')
    @app.route('/api')
    def api_root():
        return jsonify({
            "message": "Welcome to the Circular Portal API!",
            "version": app.config.get("API_VERSION", "1.0.0"),
        })

    # --- Error Handlers ---
    @app.errorhandler(ValidationError)
    def pydantic_validation_error(error): return validation_error_response(error)
    @app.errorhandler(400)
    def bad_request_error(error): return jsonify(message=str(error.description if hasattr(error, 'description') else "Bad Request"), success=False), 400
    @app.errorhandler(401)
    def unauthorized_error(error): return jsonify(message=str(error.description if hasattr(error, 'description') else "Unauthorized"), success=False), 401
    @app.errorhandler(403)
    def forbidden_error(error): return jsonify(message=str(error.description if hasattr(error, 'description') else "Forbidden"), success=False), 403
    @app.errorhandler(404)
    def not_found_error(error): return jsonify(message=str(error.description if hasattr(error, 'description') else "Resource not found"), success=False), 404
    @app.errorhandler(405)
    def method_not_allowed_error(error): return jsonify(message="Method not allowed", success=False), 405
    @app.errorhandler(429)
    def ratelimit_handler(e): return jsonify(message=f"Rate limit exceeded: {e.description}", success=False), 429
    @app.errorhandler(500)
    def internal_server_error(error):
        app.logger.error(f"Internal Server Error: {error}", exc_info=True)
        return jsonify(message="An internal server error occurred. Please try again later.", success=False), 500

    return app
