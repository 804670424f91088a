"""Filing store: CRUD for filing and draft records keyed by opaque IDs"""
import datetime
import json
from hvut.models import SessionLocal, Filing
from hvut.services.audit_service import log_filing_action

FILING_STATUSES = ('draft', 'submitted', 'processing', 'action_required', 'completed')

_UPDATABLE = ('status', 'business_id', 'workflow_type', 'intent', 'vehicles', 'pricing')


def _loads(value, default):
    if not value:
        return default
    return json.loads(value)


def filing_to_dict(filing):
    """Plain record for a Filing row"""
    intent = _loads(filing.intent_data, {})
    vehicles = _loads(filing.vehicles_data, [])
    return {
        'id': filing.id,
        'user_uid': filing.user_uid,
        'status': filing.status,
        'filing_type': filing.filing_type,
        'amendment_type': filing.amendment_type,
        'tax_year': filing.tax_year,
        'business_id': filing.business_id,
        'workflow_type': filing.workflow_type,
        'intent': intent,
        'amendment_details': intent.get('amendment') or {},
        'vehicles': vehicles,
        'vehicle_ids': [str(v.get('id') or v.get('vin')) for v in vehicles],
        'pricing': _loads(filing.pricing_data, None),
        'created_at': filing.created_at.isoformat() if filing.created_at else None,
        'updated_at': filing.updated_at.isoformat() if filing.updated_at else None,
    }


class FilingStore:

    @staticmethod
    def create(user_uid, intent, vehicles, pricing=None, status='draft', business_id=None,
               workflow_type='manual', tax_year=None):
        """Create a filing or draft record"""
        if status not in FILING_STATUSES:
            raise ValueError(f"Unknown filing status '{status}'")
        db = SessionLocal()
        try:
            filing = Filing(
                user_uid=user_uid,
                status=status,
                filing_type=intent.get('filing_type', 'standard'),
                amendment_type=intent.get('amendment_type'),
                tax_year=tax_year or intent.get('tax_year'),
                business_id=business_id,
                workflow_type=workflow_type,
                intent_data=json.dumps(intent),
                vehicles_data=json.dumps(vehicles or []),
                pricing_data=json.dumps(pricing) if pricing is not None else None,
            )
            db.add(filing)
            db.commit()
            db.refresh(filing)

            log_filing_action("FILING_CREATED", f"Filing {filing.id} ({filing.filing_type}) created for user {user_uid}")
            return filing_to_dict(filing)

        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    @staticmethod
    def get(filing_id, user_uid=None):
        """Get a filing; scoped to user_uid when given"""
        db = SessionLocal()
        try:
            query = db.query(Filing).filter(Filing.id == filing_id)
            if user_uid is not None:
                query = query.filter(Filing.user_uid == user_uid)
            filing = query.first()
            return filing_to_dict(filing) if filing else None
        finally:
            db.close()

    @staticmethod
    def update(filing_id, user_uid, **changes):
        """Update status, business, intent, vehicles or cached pricing"""
        unknown = set(changes) - set(_UPDATABLE)
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        if 'status' in changes and changes['status'] not in FILING_STATUSES:
            raise ValueError(f"Unknown filing status '{changes['status']}'")

        db = SessionLocal()
        try:
            filing = db.query(Filing).filter(
                Filing.id == filing_id,
                Filing.user_uid == user_uid
            ).first()
            if not filing:
                return None

            if 'intent' in changes:
                intent = changes['intent']
                filing.intent_data = json.dumps(intent)
                filing.filing_type = intent.get('filing_type', filing.filing_type)
                filing.amendment_type = intent.get('amendment_type')
                filing.tax_year = intent.get('tax_year', filing.tax_year)
            if 'vehicles' in changes:
                filing.vehicles_data = json.dumps(changes['vehicles'] or [])
            if 'pricing' in changes:
                pricing = changes['pricing']
                filing.pricing_data = json.dumps(pricing) if pricing is not None else None
            for name in ('status', 'business_id', 'workflow_type'):
                if name in changes:
                    setattr(filing, name, changes[name])

            filing.updated_at = datetime.datetime.utcnow()
            db.commit()
            db.refresh(filing)

            log_filing_action("FILING_UPDATED",
                f"Filing {filing_id} updated ({', '.join(sorted(changes))}) by user {user_uid}")
            return filing_to_dict(filing)

        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    @staticmethod
    def delete(filing_id, user_uid):
        """Delete a filing; False when it does not exist for this user"""
        db = SessionLocal()
        try:
            filing = db.query(Filing).filter(
                Filing.id == filing_id,
                Filing.user_uid == user_uid
            ).first()
            if not filing:
                return False
            db.delete(filing)
            db.commit()

            log_filing_action("FILING_DELETED", f"Filing {filing_id} deleted by user {user_uid}")
            return True

        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    @staticmethod
    def list_for_user(user_uid):
        """All filings for a user, newest first"""
        db = SessionLocal()
        try:
            filings = db.query(Filing).filter(
                Filing.user_uid == user_uid
            ).order_by(Filing.created_at.desc()).all()
            return [filing_to_dict(f) for f in filings]
        finally:
            db.close()
