"""Authentication decorators for Flask routes"""
from functools import wraps
from flask import request, jsonify, make_response
from firebase_admin import auth
from hvut.services.audit_service import log_error_event


def verify_firebase_token(f):
    """Decorator to verify the Firebase ID token and expose it as request.user"""
    @wraps(f)
    def wrapper(*args, **kwargs):
        if request.method == "OPTIONS":
            return make_response("", 200)

        auth_header = request.headers.get('Authorization', '')
        if not auth_header.startswith('Bearer '):
            return jsonify({
                "error": "Authorization header missing",
                "message": "Please sign in to save or pay for a filing."
            }), 401

        token = auth_header.split('Bearer ')[1]
        try:
            decoded = auth.verify_id_token(token)
        except Exception as e:
            # firebase_admin raises several unrelated exception types for bad tokens
            log_error_event("anonymous", "INVALID_TOKEN", str(e), request.path)
            return jsonify({"error": "Invalid token", "details": str(e)}), 403

        request.user = decoded
        return f(*args, **kwargs)
    return wrapper
