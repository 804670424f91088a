"""Filing and draft routes (Firebase-authenticated)"""
import logging
from flask import Blueprint, request, jsonify
from hvut.config import Config
from hvut.errors import ValidationError
from hvut.filing import vehicles_from_dicts
from hvut.routes.pricing import price_filing
from hvut.services.filing_intelligence import (
    detect_duplicate_filing, format_amendment_summary, format_incomplete_filing,
    get_filing_progress, get_incomplete_filings,
)
from hvut.services.filing_store import FilingStore, FILING_STATUSES
from hvut.utils.auth_decorators import verify_firebase_token
from hvut.utils.calculations import calculate_vehicle_statistics

logger = logging.getLogger(__name__)

filings_bp = Blueprint('filings', __name__)


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _intent_and_vehicles(data, fallback_intent=None, fallback_vehicles=None):
    intent = data.get('intent', fallback_intent) or {}
    vehicles = data.get('vehicles', fallback_vehicles) or []
    if not isinstance(intent, dict):
        raise ValidationError("Filing intent must be an object", "intent")
    if not isinstance(vehicles, list):
        raise ValidationError("Vehicles must be a list", "vehicles")
    if not all(isinstance(v, dict) for v in vehicles):
        raise ValidationError("Each vehicle must be an object", "vehicles")
    return dict(intent), vehicles


def _price_or_none(intent, vehicles, status):
    """
    Price a filing for storage. Drafts may be incomplete, so their validation
    errors are returned alongside instead of rejecting the save.
    """
    try:
        return price_filing(intent, vehicles, intent.get('locale')).to_dict(), None
    except ValidationError as e:
        if status != 'draft':
            raise
        return None, e.to_dict()


def _detail(filing):
    """Filing record plus resume progress and derived summaries"""
    payload = dict(filing)
    payload['progress'] = get_filing_progress(filing)
    payload['amendment_summary'] = format_amendment_summary(filing)
    try:
        payload['vehicle_statistics'] = calculate_vehicle_statistics(vehicles_from_dicts(filing['vehicles']))
    except ValidationError:
        payload['vehicle_statistics'] = None
    return payload


@filings_bp.route('', methods=['POST'])
@verify_firebase_token
def create_filing():
    """Create a filing or draft; 409 when it duplicates an incomplete filing"""
    user_uid = request.user['uid']
    data = _json_body()

    intent, vehicles = _intent_and_vehicles(data)
    intent.setdefault('tax_year', Config.TAX_YEAR)
    if data.get('locale') is not None:
        intent['locale'] = data['locale']
    status = data.get('status', 'draft')
    if status not in FILING_STATUSES:
        raise ValidationError(f"Unknown filing status '{status}'", "status")

    candidate = {
        'filing_type': intent.get('filing_type', 'standard'),
        'amendment_type': intent.get('amendment_type'),
        'tax_year': intent['tax_year'],
        'business_id': data.get('business_id'),
        'vehicle_ids': [str(v.get('id') or v.get('vin')) for v in vehicles],
        'amendment_details': intent.get('amendment') or {},
    }
    duplicate = detect_duplicate_filing(candidate, FilingStore.list_for_user(user_uid))
    if duplicate:
        return jsonify({
            "error": "duplicate_filing",
            "message": "You already have an incomplete filing for these vehicles. Resume it instead.",
            "existing_filing_id": duplicate['id'],
        }), 409

    pricing, pricing_errors = _price_or_none(intent, vehicles, status)
    filing = FilingStore.create(
        user_uid=user_uid,
        intent=intent,
        vehicles=vehicles,
        pricing=pricing,
        status=status,
        business_id=data.get('business_id'),
        workflow_type=data.get('workflow_type', 'manual'),
        tax_year=intent['tax_year'],
    )
    payload = _detail(filing)
    payload['pricing_errors'] = pricing_errors
    return jsonify(payload), 201


@filings_bp.route('', methods=['GET'])
@verify_firebase_token
def list_filings():
    """All filings for the signed-in user"""
    filings = FilingStore.list_for_user(request.user['uid'])
    return jsonify({"filings": filings, "count": len(filings)})


@filings_bp.route('/incomplete', methods=['GET'])
@verify_firebase_token
def incomplete_filings():
    """Resumable filings, grouped, with display summaries"""
    grouped = get_incomplete_filings(FilingStore.list_for_user(request.user['uid']))
    return jsonify({
        "filings": [format_incomplete_filing(f) for f in grouped['all']],
        "counts": {
            "all": len(grouped['all']),
            "standard": len(grouped['standard']),
            "amendment": len(grouped['amendment']),
            "refund": len(grouped['refund']),
            "action_required": len(grouped['action_required']),
        },
        "by_tax_year": {
            str(year): [f['id'] for f in filings] for year, filings in grouped['by_tax_year'].items()
        },
    })


@filings_bp.route('/<filing_id>', methods=['GET'])
@verify_firebase_token
def get_filing(filing_id):
    filing = FilingStore.get(filing_id, request.user['uid'])
    if not filing:
        return jsonify({"error": "Filing not found"}), 404
    return jsonify(_detail(filing))


@filings_bp.route('/<filing_id>', methods=['PATCH'])
@verify_firebase_token
def update_filing(filing_id):
    """Update a filing and re-price it from its intent and vehicles"""
    user_uid = request.user['uid']
    filing = FilingStore.get(filing_id, user_uid)
    if not filing:
        return jsonify({"error": "Filing not found"}), 404

    data = _json_body()
    changes = {}
    for name in ('status', 'business_id', 'workflow_type'):
        if name in data:
            changes[name] = data[name]
    if changes.get('status', filing['status']) not in FILING_STATUSES:
        raise ValidationError(f"Unknown filing status '{changes['status']}'", "status")

    intent, vehicles = _intent_and_vehicles(data, filing['intent'], filing['vehicles'])
    if 'intent' in data:
        intent.setdefault('tax_year', filing['tax_year'] or Config.TAX_YEAR)
    if 'locale' in data:
        intent['locale'] = data['locale']
    if intent != filing['intent']:
        changes['intent'] = intent
    if 'vehicles' in data:
        changes['vehicles'] = vehicles

    pricing, pricing_errors = _price_or_none(intent, vehicles, changes.get('status', filing['status']))
    changes['pricing'] = pricing

    updated = FilingStore.update(filing_id, user_uid, **changes)
    logger.info("Filing %s re-priced: grand_total=%s", filing_id, pricing and pricing['grand_total'])
    payload = _detail(updated)
    payload['pricing_errors'] = pricing_errors
    return jsonify(payload)


@filings_bp.route('/<filing_id>', methods=['DELETE'])
@verify_firebase_token
def delete_filing(filing_id):
    if not FilingStore.delete(filing_id, request.user['uid']):
        return jsonify({"error": "Filing not found"}), 404
    return jsonify({"deleted": True, "id": filing_id})
