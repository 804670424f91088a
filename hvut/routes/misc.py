"""Miscellaneous routes (health check)"""
import datetime
from flask import Blueprint, jsonify
from hvut import __version__
from hvut.config import Config
from hvut.models import test_database_connection

misc_bp = Blueprint('misc', __name__)


@misc_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint"""
    db_ok, db_message = test_database_connection()
    return jsonify({
        "status": "healthy" if db_ok else "degraded",
        "version": __version__,
        "tax_year": Config.TAX_YEAR,
        "database": db_message,
        "timestamp": datetime.datetime.utcnow().isoformat()
    }), 200 if db_ok else 503
