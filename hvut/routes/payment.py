"""Payment routes for Stripe integration"""
from datetime import datetime
import stripe
from flask import Blueprint, request, jsonify
from hvut.config import Config
from hvut.errors import ValidationError
from hvut.routes.pricing import price_filing
from hvut.services.audit_service import log_filing_action, log_error_event
from hvut.services.filing_store import FilingStore
from hvut.services.payment_tracking_service import PaymentTrackingService
from hvut.utils.auth_decorators import verify_firebase_token

payment_bp = Blueprint('payment', __name__)

DEV_MODE_PREFIX = 'dev_mode_'


@payment_bp.route('/config', methods=['GET'])
def get_stripe_config():
    """Get Stripe publishable key for frontend"""
    if Config.stripe_configured():
        return jsonify({
            'publishableKey': Config.STRIPE_PUBLISHABLE_KEY,
            'dev_mode': False
        })
    # Development config when Stripe is not configured
    return jsonify({
        'publishableKey': 'pk_dev_mode_testing',
        'dev_mode': True
    })


@payment_bp.route('/create-payment-intent', methods=['POST'])
@verify_firebase_token
def create_payment_intent():
    """Create a payment intent for a filing's freshly computed grand total"""
    user_uid = request.user['uid']
    data = request.get_json(silent=True) or {}
    filing_id = data.get('filing_id')
    if not filing_id:
        raise ValidationError("filing_id is required", "filing_id")

    filing = FilingStore.get(filing_id, user_uid)
    if not filing:
        return jsonify({"error": "Filing not found"}), 404

    # Never charge a cached total: pricing is recomputed from the canonical inputs
    breakdown = price_filing(filing['intent'], filing['vehicles'], filing['intent'].get('locale'))
    FilingStore.update(filing_id, user_uid, pricing=breakdown.to_dict())
    amount_cents = int(round(breakdown.grand_total * 100))
    if amount_cents <= 0:
        return jsonify({"error": "Nothing to charge for this filing", "grand_total": breakdown.grand_total}), 400

    if Config.stripe_configured():
        stripe.api_key = Config.STRIPE_SECRET_KEY
        try:
            intent = stripe.PaymentIntent.create(
                amount=amount_cents,
                currency='usd',
                metadata={
                    'user_uid': user_uid,
                    'filing_id': filing_id,
                    'form_type': '2290'
                }
            )
        except stripe.StripeError as e:
            log_error_event(request.user.get('email', 'unknown'), "STRIPE_ERROR", str(e), request.path)
            return jsonify({"error": "Payment provider error", "details": str(e)}), 502

        # Will be updated when payment succeeds
        PaymentTrackingService.record_payment_intent(
            payment_intent_id=intent.id,
            user_uid=user_uid,
            amount_cents=amount_cents,
            filing_id=filing_id,
            status='pending'
        )
        log_filing_action("PAYMENT_INTENT_CREATED",
            f"Stripe payment intent {intent.id} created for filing {filing_id} by user {user_uid}")

        return jsonify({
            'client_secret': intent.client_secret,
            'payment_intent_id': intent.id,
            'amount': amount_cents,
            'breakdown': breakdown.to_dict(),
            'dev_mode': False
        })

    # Development mode - create a fake payment intent
    dev_payment_id = f"{DEV_MODE_PREFIX}{user_uid}_{int(datetime.now().timestamp())}"
    PaymentTrackingService.record_payment_intent(
        payment_intent_id=dev_payment_id,
        user_uid=user_uid,
        amount_cents=amount_cents,
        filing_id=filing_id,
        status='pending'
    )
    log_filing_action("DEV_PAYMENT_INTENT_CREATED",
        f"Dev mode payment intent {dev_payment_id} created for filing {filing_id} by user {user_uid}")

    return jsonify({
        'client_secret': dev_payment_id,
        'payment_intent_id': dev_payment_id,
        'amount': amount_cents,
        'breakdown': breakdown.to_dict(),
        'dev_mode': True
    })


@payment_bp.route('/confirm', methods=['POST'])
@verify_firebase_token
def confirm_payment():
    """Record the final payment status; on success the filing is submitted"""
    user_uid = request.user['uid']
    data = request.get_json(silent=True) or {}
    payment_intent_id = data.get('payment_intent_id')
    if not payment_intent_id:
        raise ValidationError("payment_intent_id is required", "payment_intent_id")

    payment = PaymentTrackingService.get_payment(payment_intent_id, user_uid)
    if not payment:
        return jsonify({"error": "Payment not found"}), 404
    if payment['used_for_submission']:
        return jsonify({"error": "Payment has already been used for a submission"}), 409

    if payment_intent_id.startswith(DEV_MODE_PREFIX):
        status = 'succeeded'
    else:
        stripe.api_key = Config.STRIPE_SECRET_KEY
        try:
            status = stripe.PaymentIntent.retrieve(payment_intent_id).status
        except stripe.StripeError as e:
            log_error_event(request.user.get('email', 'unknown'), "STRIPE_ERROR", str(e), request.path)
            return jsonify({"error": "Payment provider error", "details": str(e)}), 502

    PaymentTrackingService.update_status(payment_intent_id, user_uid, status)
    if status != 'succeeded':
        return jsonify({'success': False, 'status': status, 'filing_id': payment['filing_id']})

    FilingStore.update(payment['filing_id'], user_uid, status='submitted')
    PaymentTrackingService.mark_used_for_submission(payment_intent_id, user_uid)

    return jsonify({
        'success': True,
        'status': status,
        'filing_id': payment['filing_id'],
        'amount_received': payment['amount_cents'],
        'dev_mode': payment_intent_id.startswith(DEV_MODE_PREFIX)
    })


@payment_bp.route('/history', methods=['GET'])
@verify_firebase_token
def payment_history():
    """Payments made by the signed-in user"""
    return jsonify({"payments": PaymentTrackingService.get_user_payments(request.user['uid'])})
