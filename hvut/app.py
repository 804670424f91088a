"""
Flask application for the HVUT pricing and filing API
"""
import json
import logging
import firebase_admin
from firebase_admin import credentials
from flask import Flask, jsonify, request
from flask_cors import CORS

from hvut.config import Config
from hvut.errors import ValidationError, RegistryLookupError
from hvut.models import init_database, test_database_connection
from hvut.routes import register_routes
from hvut.services.audit_service import init_audit_logging, log_error_event
from hvut.utils.safe_print import safe_print, safe_format_status

logger = logging.getLogger(__name__)


def _current_user_email():
    user = getattr(request, 'user', None) or {}
    return user.get('email', 'anonymous')


def init_firebase():
    """Initialize Firebase Admin once per process, when credentials are configured"""
    if firebase_admin._apps:
        return True
    if not Config.FIREBASE_ADMIN_KEY_JSON:
        logger.warning("Firebase credentials not found; authenticated routes will reject every token")
        return False
    firebase_cred_dict = json.loads(Config.FIREBASE_ADMIN_KEY_JSON)
    cred = credentials.Certificate(firebase_cred_dict)
    firebase_admin.initialize_app(cred)
    return True


def register_error_handlers(app):

    @app.errorhandler(ValidationError)
    def handle_validation_error(error):
        return jsonify(error.to_dict()), 400

    @app.errorhandler(RegistryLookupError)
    def handle_registry_error(error):
        log_error_event(_current_user_email(), "REGISTRY_LOOKUP_ERROR", error.message, request.path)
        return jsonify({"error": "registry_lookup_failed", "message": error.message}), error.status_code


def create_app():
    """Application factory"""
    app = Flask(__name__)
    app.config.from_object(Config)

    # Initialize CORS
    CORS(app, **Config.CORS_CONFIG)

    # Initialize Firebase Admin
    init_firebase()

    # Initialize database
    init_database()

    # Initialize audit logging
    init_audit_logging()

    # Register all routes
    register_routes(app)
    register_error_handlers(app)

    return app


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    safe_print(safe_format_status("info", f"Starting Flask development server (env: {Config.FLASK_ENV})"))
    safe_print(safe_format_status("info", f"Database: {Config.DATABASE_URL[:50]}"))

    success, message = test_database_connection()
    safe_print(safe_format_status("success" if success else "error", message))

    create_app().run(host="0.0.0.0", port=5000, debug=Config.FLASK_ENV == 'development')
