"""Carrier registry lookup routes"""
from flask import Blueprint, request, jsonify
from hvut.services.registry_lookup import lookup_carrier
from hvut.utils.auth_decorators import verify_firebase_token

registry_bp = Blueprint('registry', __name__)


@registry_bp.route('/carrier', methods=['GET'])
@verify_firebase_token
def carrier():
    """Prefill business details from the FMCSA registry by USDOT number"""
    found = lookup_carrier(request.args.get('usdot'))
    if found is None:
        return jsonify({
            "error": "Carrier not found for this USDOT. Please enter your business details below."
        }), 404
    return jsonify({"carrier": found})
