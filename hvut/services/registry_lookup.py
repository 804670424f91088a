"""Carrier lookup against the FMCSA QCMobile registry"""
import logging
import requests
from hvut.config import Config
from hvut.errors import RegistryLookupError

logger = logging.getLogger(__name__)

BASE_URL = "https://mobile.fmcsa.dot.gov/qc/services/carriers"

GENERIC_MESSAGE = "We couldn't fetch your details from FMCSA. Please enter your business information below."
STATUS_MESSAGES = {
    403: "FMCSA lookup isn't available for this request. Please enter your business details below.",
    404: "Carrier not found for this USDOT. Please enter your business details below.",
}
UNAVAILABLE_MESSAGE = "FMCSA service is temporarily unavailable. Please enter your business details below."

MOCK_CARRIERS = {
    '1234567': {
        'usdot': '1234567',
        'name': 'MOCK TRUCKING LLC',
        'dba': 'MT LOGISTICS',
        'ein': '12-3456789',
        'email': 'test@mocktrucking.com',
        'phone': '555-123-4567',
        'address': {'street': '123 Test St', 'city': 'Testville', 'state': 'CA', 'zip': '90001', 'country': 'US'},
        'type': 'Interstate',
        'status': 'Active',
        'total_units': 5,
    },
    '9999999': {
        'usdot': '9999999',
        'name': 'TEST CARRIER INC',
        'dba': '',
        'ein': '99-9999999',
        'email': 'test@testcarrier.com',
        'phone': '555-999-9999',
        'address': {'street': '999 Test Ave', 'city': 'Test City', 'state': 'TX', 'zip': '75001', 'country': 'US'},
        'type': 'Intrastate',
        'status': 'Active',
        'total_units': 42,
    },
}
# USDOT numbers the mock registry reports as unknown
MOCK_NOT_FOUND = ('0000000',)

_UNIT_FIELDS = ('busVehicle', 'limoVehicle', 'miniBusVehicle', 'motorCoachVehicle', 'vanVehicle', 'passengerVehicle')


def _text(raw, *keys, default=''):
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return str(value).strip()
    return default


def _number(value):
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


def _extract_carrier(payload):
    """The API nests the carrier under content.carrier, data, or returns it at the root"""
    if not isinstance(payload, dict):
        return None
    content = payload.get('content')
    raw = content.get('carrier') if isinstance(content, dict) else None
    if raw is None:
        raw = payload.get('data')
    if raw is None and (payload.get('legalName') is not None or payload.get('dotNumber') is not None):
        raw = payload
    if isinstance(raw, list):
        # apiElements form: [{"name": "legalName", "value": "..."}, ...]
        raw = {
            (item.get('name') or item.get('key')): item.get('value', item.get('data'))
            for item in raw
            if isinstance(item, dict) and (item.get('name') or item.get('key'))
        }
    return raw or None


def _carrier_status(raw):
    allow = raw.get('allowToOperate', raw.get('allowToOperateFlag'))
    code = str(raw.get('statusCode', raw.get('status')) or '').upper()
    if allow == 'Y' or code in ('A', 'ACTIVE'):
        return 'Active'
    if allow == 'N' or code in ('I', 'N', 'INACTIVE'):
        return 'Inactive'
    return 'Unknown'


def normalize_carrier(raw, usdot):
    """Map QCMobile field names onto a flat carrier record"""
    explicit_units = _number(raw.get('total_units', raw.get('totalUnits', raw.get('powerUnits'))))
    summed_units = sum(_number(raw.get(name)) for name in _UNIT_FIELDS)

    carrier = {
        'usdot': _text(raw, 'dot_number', 'dotNumber', default=usdot),
        'name': _text(raw, 'legal_business_name', 'legalName'),
        'dba': _text(raw, 'dba_name', 'dbaName'),
        'address': {
            'street': _text(raw, 'phyStreet'),
            'city': _text(raw, 'phyCity'),
            'state': _text(raw, 'phyState'),
            'zip': _text(raw, 'phyZip', 'phyZipcode'),
            'country': _text(raw, 'phyCountry', default='US'),
        },
        'total_units': explicit_units or summed_units,
        'type': _text(raw, 'carrier_operation', 'operationClassification', 'allowedOper', default='Unknown'),
        'status': _carrier_status(raw),
    }

    phone = _text(raw, 'telephone', 'business_phone_number', 'phone')
    if phone:
        carrier['phone'] = phone
    email = _text(raw, 'email_address', 'email')
    if email:
        carrier['email'] = email
    ein = _text(raw, 'ein', 'decrypted_ein', 'taxId', 'employerIdNumber')
    if ein:
        carrier['ein'] = ein
    mc_number = _text(raw, 'mcNumber', 'mc_number')
    if mc_number:
        carrier['mc_number'] = mc_number
    if raw.get('outOfService') is not None:
        carrier['out_of_service'] = raw.get('outOfService') in ('Y', True)
    return carrier


def _mock_lookup(usdot):
    if usdot in MOCK_NOT_FOUND:
        raise RegistryLookupError(STATUS_MESSAGES[404], status_code=404)
    return dict(MOCK_CARRIERS.get(usdot, MOCK_CARRIERS['1234567']))


def lookup_carrier(usdot):
    """
    Look up a carrier by USDOT number.

    Returns a carrier dict, or None when the registry answers without one.
    Raises RegistryLookupError with a message fit to show the filer.
    """
    if usdot is None or not str(usdot).strip():
        raise RegistryLookupError("USDOT number is required", status_code=400)
    dot = str(usdot).strip()
    if not dot.isdigit():
        raise RegistryLookupError("USDOT number must be numeric", status_code=400)

    if not Config.FMCSA_API_KEY or Config.FMCSA_USE_MOCK:
        return _mock_lookup(dot)

    try:
        response = requests.get(
            f"{BASE_URL}/{dot}",
            params={'webKey': Config.FMCSA_API_KEY},
            headers={'Accept': 'application/json'},
            timeout=Config.FMCSA_TIMEOUT,
        )
    except requests.RequestException as e:
        logger.warning("FMCSA request for USDOT %s failed: %s", dot, e)
        raise RegistryLookupError(UNAVAILABLE_MESSAGE) from e

    if not response.ok:
        status = response.status_code
        logger.info("FMCSA returned %s for USDOT %s", status, dot)
        if status >= 500:
            raise RegistryLookupError(UNAVAILABLE_MESSAGE)
        raise RegistryLookupError(STATUS_MESSAGES.get(status, GENERIC_MESSAGE),
                                  status_code=status if status in STATUS_MESSAGES else 502)

    try:
        payload = response.json()
    except ValueError as e:
        raise RegistryLookupError(GENERIC_MESSAGE) from e

    raw = _extract_carrier(payload)
    if raw is None:
        return None
    return normalize_carrier(raw, dot)
