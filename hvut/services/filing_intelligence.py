"""
Filing intelligence: incomplete-filing detection, duplicate detection,
resume progress and display summaries.
Works on the plain filing records returned by FilingStore.
"""
from hvut.utils.validation import mileage_limit

INCOMPLETE_STATUSES = ('submitted', 'processing', 'action_required')

STATUS_LABELS = {
    'draft': 'Draft',
    'submitted': 'In Progress',
    'processing': 'Processing',
    'action_required': 'Action Required',
    'completed': 'Completed',
}

AMENDMENT_TYPE_CONFIG = {
    'vin_correction': {
        'label': 'VIN Correction',
        'short_label': 'VIN',
        'description': 'Correct an incorrect Vehicle Identification Number',
        'deadline': 'No specific deadline',
        'cost': 'No additional tax due',
    },
    'weight_increase': {
        'label': 'Taxable Gross Weight Increase',
        'short_label': 'Weight',
        'description': 'Report when your vehicle moved to a higher weight category during the tax period',
        'deadline': 'Due the last day of the month following the weight increase',
        'cost': 'Additional tax will be calculated',
    },
    'mileage_exceeded': {
        'label': 'Mileage Use Limit Exceeded',
        'short_label': 'Mileage',
        'description': 'Report when a suspended vehicle exceeded the 5,000 mile limit (7,500 for agricultural vehicles)',
        'deadline': 'Report the month mileage was exceeded',
        'cost': 'Full tax will be calculated',
    },
}

DEFAULT_AMENDMENT_CONFIG = {
    'label': 'Amendment',
    'short_label': 'AMD',
    'description': 'General amendment',
    'deadline': 'Varies by type',
    'cost': 'Varies by type',
}


def amendment_type_config(amendment_type):
    """Display labels for an amendment type"""
    return dict(AMENDMENT_TYPE_CONFIG.get(amendment_type, DEFAULT_AMENDMENT_CONFIG))


def is_incomplete_filing(filing):
    """True when a filing can be resumed"""
    if not filing:
        return False
    if filing.get('status') == 'draft':
        return True
    has_basic_data = bool(filing.get('business_id') or filing.get('vehicle_ids'))
    return filing.get('status') in INCOMPLETE_STATUSES and has_basic_data


def _same_vehicles(left, right):
    return bool(left) and bool(right) and len(left) == len(right) and set(left) == set(right)


def _amendment_key(filing):
    details = filing.get('amendment_details') or {}
    if filing.get('amendment_type') == 'vin_correction':
        return details.get('original_vin')
    return details.get('vehicle_id')


def detect_duplicate_filing(new_filing, existing_filings):
    """
    Find an incomplete filing that the new one would duplicate.

    Standard filings match on tax year, business and vehicle set; amendments on
    type, tax year and the amended VIN or vehicle; refunds on tax year and
    vehicle set. Returns the existing filing or None.
    """
    if not new_filing or not existing_filings:
        return None

    filing_type = new_filing.get('filing_type')
    tax_year = new_filing.get('tax_year')
    vehicle_ids = new_filing.get('vehicle_ids') or []

    for filing in existing_filings:
        if not is_incomplete_filing(filing):
            continue
        if filing.get('filing_type') != filing_type or filing.get('tax_year') != tax_year:
            continue

        if filing_type == 'standard':
            if filing.get('business_id') == new_filing.get('business_id') and \
                    _same_vehicles(vehicle_ids, filing.get('vehicle_ids')):
                return filing
        elif filing_type == 'amendment':
            if not new_filing.get('amendment_type') or \
                    filing.get('amendment_type') != new_filing.get('amendment_type'):
                continue
            key = _amendment_key(new_filing)
            if key and key == _amendment_key(filing):
                return filing
        elif filing_type == 'refund':
            if _same_vehicles(vehicle_ids, filing.get('vehicle_ids')):
                return filing

    return None


def get_incomplete_filings(filings):
    """Incomplete filings grouped by type, action-required and tax year"""
    incomplete = [f for f in filings if is_incomplete_filing(f)]
    by_tax_year = {}
    for filing in incomplete:
        by_tax_year.setdefault(filing.get('tax_year') or 'Unknown', []).append(filing)

    return {
        'all': incomplete,
        'standard': [f for f in incomplete if f.get('filing_type') == 'standard'],
        'amendment': [f for f in incomplete if f.get('filing_type') == 'amendment'],
        'refund': [f for f in incomplete if f.get('filing_type') == 'refund'],
        'action_required': [f for f in incomplete if f.get('status') == 'action_required'],
        'by_tax_year': by_tax_year,
    }


def get_filing_progress(filing):
    """Wizard steps completed for a filing, with a percentage"""
    if not filing:
        return {'completed': 0, 'total': 4, 'steps': [], 'percentage': 0}

    pricing = filing.get('pricing') or {}
    steps = [
        {'name': 'Filing Type', 'completed': bool(filing.get('filing_type'))},
        {'name': 'Business', 'completed': bool(filing.get('business_id'))},
        {'name': 'Vehicles', 'completed': bool(filing.get('vehicle_ids'))},
        {'name': 'Review & Pay', 'completed': (pricing.get('grand_total') or 0) > 0},
    ]
    completed = sum(1 for step in steps if step['completed'])
    total = len(steps)

    return {
        'completed': completed,
        'total': total,
        'percentage': round(completed / total * 100),
        'steps': steps,
        'status': filing.get('status') or 'draft',
        'last_updated': filing.get('updated_at') or filing.get('created_at'),
    }


def _describe(filing):
    if filing.get('workflow_type') == 'upload':
        return 'Schedule 1 Upload'
    if filing.get('filing_type') == 'amendment':
        if filing.get('amendment_type') not in AMENDMENT_TYPE_CONFIG:
            return 'Amendment Filing'
        return f"{amendment_type_config(filing['amendment_type'])['label']} Amendment"
    if filing.get('filing_type') == 'refund':
        return 'Refund Claim (Form 8849)'
    return 'Standard Form 2290 Filing'


def format_incomplete_filing(filing):
    """Display data for a resumable filing"""
    if not filing:
        return None
    progress = get_filing_progress(filing)
    status = filing.get('status') or 'draft'
    amendment = amendment_type_config(filing['amendment_type']) if filing.get('amendment_type') else None
    return {
        'id': filing.get('id'),
        'description': _describe(filing),
        'amendment': amendment,
        'tax_year': filing.get('tax_year') or 'Unknown',
        'progress': progress['percentage'],
        'status': status,
        'status_label': STATUS_LABELS.get(status, status),
        'last_updated': progress['last_updated'],
        'vehicle_count': len(filing.get('vehicle_ids') or []),
        'has_business': bool(filing.get('business_id')),
    }


def format_amendment_summary(filing):
    """One-line summary of an amendment filing; empty for other filings"""
    if not filing or filing.get('filing_type') != 'amendment':
        return ''

    details = filing.get('amendment_details') or {}
    amendment_type = filing.get('amendment_type')
    if amendment_type == 'vin_correction':
        return f"VIN Correction: {details.get('original_vin')} -> {details.get('corrected_vin')}"
    if amendment_type == 'weight_increase':
        month = details.get('amended_month') or details.get('increase_month')
        return (f"Weight Increase: {details.get('original_category')} -> "
                f"{details.get('new_category')} ({month})")
    if amendment_type == 'mileage_exceeded':
        limit = mileage_limit(bool(details.get('agricultural')))
        miles = details.get('actual_mileage_used')
        used = f"{miles:,}" if isinstance(miles, (int, float)) else 'unknown'
        return f"Mileage Exceeded: {used} miles (Limit: {limit:,})"
    return 'Amendment'
