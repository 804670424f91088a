"""Pricing routes: filing quotes and the published rate tables"""
from flask import Blueprint, request, jsonify
from hvut.config import Config
from hvut.errors import ValidationError
from hvut.filing import FilingIntent
from hvut.pricing import PricingConfig, calculate_filing_cost
from hvut.tax_tables import WEIGHT_RATES, LOGGING_RATES
from hvut.utils.calculations import proration_table

pricing_bp = Blueprint('pricing', __name__)


def price_filing(intent_data, vehicles_data, locale_data=None):
    """Parse a stored or submitted filing and price it with the deployment's config"""
    if intent_data is not None and not isinstance(intent_data, dict):
        raise ValidationError("Filing intent must be an object", "intent")
    if vehicles_data is not None and not isinstance(vehicles_data, list):
        raise ValidationError("Vehicles must be a list", "vehicles")
    if locale_data is not None and not isinstance(locale_data, dict):
        raise ValidationError("Locale must be an object", "locale")

    intent = FilingIntent.from_dict(intent_data or {}, tax_year=Config.TAX_YEAR)
    return calculate_filing_cost(intent, vehicles_data or [], locale_data, PricingConfig.from_config())


@pricing_bp.route('/calculate', methods=['POST'])
def calculate():
    """Quote a filing: {intent, vehicles, locale} -> {success, breakdown}"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")

    breakdown = price_filing(data.get('intent'), data.get('vehicles'), data.get('locale'))
    return jsonify({"success": True, "breakdown": breakdown.to_dict()})


@pricing_bp.route('/rates', methods=['GET'])
def rates():
    """Annual rates, the proration table and service fees"""
    is_logging = request.args.get('logging', 'false').lower() == 'true'
    config = PricingConfig.from_config()
    return jsonify({
        "tax_year": Config.TAX_YEAR,
        "weight_rates": dict(WEIGHT_RATES),
        "logging_rates": dict(LOGGING_RATES),
        "logging": is_logging,
        "proration": proration_table(is_logging),
        "service_fees": {
            "standard_rate": config.standard_rate,
            "bulk_tiers": [{"min_vehicles": count, "per_vehicle_fee": fee} for count, fee in config.bulk_tiers],
            "amendment_fee": config.amendment_fee,
            "refund_fee": config.refund_fee,
            "suspended_only_fee": config.suspended_only_fee,
        },
    })
