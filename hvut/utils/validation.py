"""
Input validation for Form 2290 pricing
Based on IRS e-file business rules and Form 2290 instructions.
"""
import math
import re

from hvut.errors import ValidationError
from hvut.tax_tables import (
    WEIGHT_CATEGORIES, MONTH_NAMES, MILEAGE_LIMIT_STANDARD, MILEAGE_LIMIT_AGRICULTURAL,
    category_rank,
)

# VIN: 17 chars, alphanumeric, cannot contain I, O, or Q
VIN_REGEX = re.compile(r'^[A-HJ-NPR-Z0-9]{17}$')

_YYYYMM = re.compile(r'^(\d{4})-?(\d{2})$')
_NAME_YEAR = re.compile(r'^([A-Za-z]+)\.?(?:\s*,?\s*(\d{4}))?$')


def normalize_category(category, field="gross_weight_category") -> str:
    """Return the upper-cased weight category or raise ValidationError"""
    if not category or not isinstance(category, str):
        raise ValidationError("Weight category is required", field)
    code = category.strip().upper()
    if code not in WEIGHT_CATEGORIES:
        raise ValidationError(
            f'Invalid weight category "{category}". Please select a valid category (A-W).', field
        )
    return code


def _month_from_name(name):
    key = name.lower()
    if key in MONTH_NAMES:
        return MONTH_NAMES[key]
    if len(key) >= 3:
        matches = [number for month_name, number in MONTH_NAMES.items() if month_name.startswith(key)]
        if len(matches) == 1:
            return matches[0]
    return None


def split_month(value, field="first_used_month"):
    """
    Parse a month into (month_number, year_or_None).
    Handles 7, "7", "July", "Jul", "July 2025", "2025-07" and "202507".
    """
    if isinstance(value, bool):
        raise ValidationError(f"Invalid month '{value}'", field)
    if isinstance(value, int):
        if 1 <= value <= 12:
            return value, None
        raise ValidationError(f"Invalid month '{value}'", field)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Month is required", field)

    text = value.strip()
    month, year = None, None
    if text.isdigit() and len(text) <= 2:
        month = int(text)
    else:
        numeric = _YYYYMM.match(text)
        if numeric:
            year, month = int(numeric.group(1)), int(numeric.group(2))
        else:
            named = _NAME_YEAR.match(text)
            if named:
                month = _month_from_name(named.group(1))
                year = int(named.group(2)) if named.group(2) else None

    if month is None or not 1 <= month <= 12:
        raise ValidationError(f"Invalid month '{value}'", field)
    return month, year


def parse_month(value, field="first_used_month") -> int:
    """Calendar month number (1-12) for any accepted month format"""
    return split_month(value, field)[0]


def parse_month_and_year(value, tax_year, field="amended_month"):
    """
    Resolve a month to (month, calendar_year).
    A month without a year falls in the tax period starting July of tax_year.
    """
    month, year = split_month(value, field)
    if year is None:
        year = tax_year if month >= 7 else tax_year + 1
    return month, year


def validate_vin(vin, field="vin") -> str:
    """Return the upper-cased VIN or raise ValidationError"""
    if not vin or not isinstance(vin, str):
        raise ValidationError("VIN is required", field)
    upper_vin = vin.strip().upper()

    if len(upper_vin) != 17:
        raise ValidationError(f"VIN must be exactly 17 characters (currently {len(upper_vin)})", field)
    if re.search(r'[IOQ]', upper_vin):
        raise ValidationError("VIN cannot contain letters I, O, or Q (use 1 or 0 instead)", field)
    if not VIN_REGEX.match(upper_vin):
        raise ValidationError("VIN must contain only letters and numbers", field)
    return upper_vin


def validate_vin_correction(original_vin, corrected_vin):
    """Both VINs must be valid and different"""
    errors = []
    original = corrected = None
    try:
        original = validate_vin(original_vin, "original_vin")
    except ValidationError as e:
        errors.append(e)
    try:
        corrected = validate_vin(corrected_vin, "corrected_vin")
    except ValidationError as e:
        errors.append(e)

    if original and corrected and original == corrected:
        errors.append(ValidationError("Original and corrected VINs must be different", "corrected_vin"))

    if errors:
        if len(errors) == 1:
            raise errors[0]
        raise ValidationError("Invalid VIN correction", errors=errors)
    return original, corrected


def validate_weight_increase(original_category, new_category):
    """The new category must be strictly heavier than the original"""
    original = normalize_category(original_category, "original_category")
    new = normalize_category(new_category, "new_category")

    if category_rank(new) <= category_rank(original):
        raise ValidationError(
            f"New weight category ({new}) must be higher than original category ({original}). "
            "For a weight increase amendment, the vehicle must have moved to a heavier category.",
            "new_category",
        )
    return original, new


def mileage_limit(agricultural=False) -> int:
    return MILEAGE_LIMIT_AGRICULTURAL if agricultural else MILEAGE_LIMIT_STANDARD


def validate_mileage_exceeded(actual_mileage_used, agricultural=False) -> int:
    """Actual mileage must exceed the 5,000 (7,500 agricultural) mile limit"""
    limit = mileage_limit(agricultural)

    if isinstance(actual_mileage_used, bool) or not isinstance(actual_mileage_used, (int, float)) \
            or (isinstance(actual_mileage_used, float) and not math.isfinite(actual_mileage_used)) \
            or actual_mileage_used < 0:
        raise ValidationError("Actual mileage must be a positive number", "actual_mileage_used")

    if actual_mileage_used <= limit:
        kind = "agricultural" if agricultural else "standard"
        raise ValidationError(
            f"Actual mileage ({actual_mileage_used:,}) must exceed the {limit:,} mile limit for {kind} vehicles",
            "actual_mileage_used",
        )
    return limit
