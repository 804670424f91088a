"""Payment tracking service: links gateway payment intents to filings"""
import datetime
from hvut.models import SessionLocal, PaymentIntent
from hvut.services.audit_service import log_filing_action


def _payment_to_dict(payment):
    return {
        'payment_intent_id': payment.payment_intent_id,
        'filing_id': payment.filing_id,
        'amount_cents': payment.amount_cents,
        'status': payment.status,
        'used_for_submission': payment.used_for_submission == 'true',
        'created_at': payment.created_at.isoformat() if payment.created_at else None
    }


class PaymentTrackingService:

    @staticmethod
    def record_payment_intent(payment_intent_id, user_uid, amount_cents, filing_id=None, status='pending'):
        """Record a new payment intent, or update the status of a known one"""
        db = SessionLocal()
        try:
            existing = db.query(PaymentIntent).filter(
                PaymentIntent.payment_intent_id == payment_intent_id
            ).first()

            if existing:
                existing.status = status
                existing.updated_at = datetime.datetime.utcnow()
                db.commit()
                db.refresh(existing)
                return _payment_to_dict(existing)

            payment_record = PaymentIntent(
                payment_intent_id=payment_intent_id,
                user_uid=user_uid,
                filing_id=filing_id,
                amount_cents=amount_cents,
                status=status
            )
            db.add(payment_record)
            db.commit()
            db.refresh(payment_record)

            log_filing_action("PAYMENT_INTENT_RECORDED",
                f"Payment {payment_intent_id} for filing {filing_id} ({amount_cents} cents) by user {user_uid}")
            return _payment_to_dict(payment_record)

        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    @staticmethod
    def update_status(payment_intent_id, user_uid, status):
        """Set the gateway status of a payment; None when unknown"""
        db = SessionLocal()
        try:
            payment_record = db.query(PaymentIntent).filter(
                PaymentIntent.payment_intent_id == payment_intent_id,
                PaymentIntent.user_uid == user_uid
            ).first()
            if not payment_record:
                return None

            payment_record.status = status
            payment_record.updated_at = datetime.datetime.utcnow()
            db.commit()
            db.refresh(payment_record)
            return _payment_to_dict(payment_record)

        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    @staticmethod
    def mark_used_for_submission(payment_intent_id, user_uid):
        """Mark a payment as used for its filing's submission"""
        db = SessionLocal()
        try:
            payment_record = db.query(PaymentIntent).filter(
                PaymentIntent.payment_intent_id == payment_intent_id,
                PaymentIntent.user_uid == user_uid
            ).first()

            if payment_record:
                payment_record.used_for_submission = 'true'
                payment_record.updated_at = datetime.datetime.utcnow()
                db.commit()

                log_filing_action("PAYMENT_USED_SUBMISSION",
                    f"Payment {payment_intent_id} marked as used for filing {payment_record.filing_id} by user {user_uid}")
                return True
            return False

        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    @staticmethod
    def get_payment(payment_intent_id, user_uid):
        db = SessionLocal()
        try:
            payment_record = db.query(PaymentIntent).filter(
                PaymentIntent.payment_intent_id == payment_intent_id,
                PaymentIntent.user_uid == user_uid
            ).first()
            return _payment_to_dict(payment_record) if payment_record else None
        finally:
            db.close()

    @staticmethod
    def get_user_payments(user_uid):
        """Get all payments for a user"""
        db = SessionLocal()
        try:
            payments = db.query(PaymentIntent).filter(
                PaymentIntent.user_uid == user_uid
            ).order_by(PaymentIntent.created_at.desc()).all()
            return [_payment_to_dict(p) for p in payments]
        finally:
            db.close()
