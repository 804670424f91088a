"""Vehicle and tax calculation utilities"""
import calendar
import datetime
from decimal import Decimal, ROUND_HALF_UP

from hvut.filing import LoggingStatus, VehicleType
from hvut.tax_tables import (
    WEIGHT_RATES, LOGGING_RATES, WEIGHT_CATEGORIES, TAX_PERIOD_MONTHS, DEFAULT_TAX_YEAR,
)
from hvut.utils.validation import (
    normalize_category, parse_month, parse_month_and_year, validate_weight_increase,
)

CENTS = Decimal("0.01")


def to_money(value) -> Decimal:
    """Round half-up to cents"""
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def months_remaining(month) -> int:
    """Months from `month` through June inclusive (July=12, December=7, June=1)"""
    return 12 - TAX_PERIOD_MONTHS.index(parse_month(month))


def annual_rate(category, is_logging=None) -> float:
    """Full-year tax for a category; logging rate only for an explicit logging vehicle"""
    code = normalize_category(category)
    table = LOGGING_RATES if LoggingStatus.coerce(is_logging).is_logging else WEIGHT_RATES
    return table[code]


def prorated_tax(category, is_logging, month) -> Decimal:
    """Annual rate prorated to the months remaining in the tax period"""
    annual = Decimal(str(annual_rate(category, is_logging)))
    remaining = months_remaining(month)
    if remaining == 12:
        return to_money(annual)
    return to_money(annual * remaining / 12)


def tax_for_vehicle(category, is_logging, first_used_month, is_suspended=False) -> float:
    """Tax due for one vehicle first used in `first_used_month`"""
    amount = prorated_tax(category, is_logging, first_used_month)
    if is_suspended:
        return 0.0
    return float(amount)


def refund_for_vehicle(category, is_suspended, disposition_month, is_logging=None) -> float:
    """
    Refund (Form 8849) or credit for the unused part of the tax period.
    Same proration as the tax itself, counted from the disposition month through June.
    The disposition reason (sold, destroyed, stolen, low mileage) does not change the amount.
    """
    amount = prorated_tax(category, is_logging, disposition_month)
    if is_suspended:
        return 0.0
    return float(amount)


def weight_increase_additional_tax(original_category, new_category, amended_month, first_used_month,
                                   original_is_logging=None, new_is_logging=None) -> float:
    """
    Additional tax for a taxable gross weight increase.
    Both amounts are prorated from the original first-used month; the
    amended month only sets the due date.
    """
    original, new = validate_weight_increase(original_category, new_category)
    parse_month(amended_month, "amended_month")

    old_prorated = prorated_tax(original, original_is_logging, first_used_month)
    new_prorated = prorated_tax(new, new_is_logging, first_used_month)
    return float(max(Decimal("0.00"), new_prorated - old_prorated))


def mileage_exceeded_tax(vehicle_category, first_used_month, is_logging=None) -> float:
    """Full prorated tax for a suspended vehicle that went over its mileage limit"""
    return tax_for_vehicle(vehicle_category, is_logging, first_used_month, is_suspended=False)


def due_date_for_amendment(amended_month, tax_year=DEFAULT_TAX_YEAR) -> datetime.date:
    """Last day of the month following the amended month"""
    month, year = parse_month_and_year(amended_month, tax_year)
    if month == 12:
        due_month, due_year = 1, year + 1
    else:
        due_month, due_year = month + 1, year
    return datetime.date(due_year, due_month, calendar.monthrange(due_year, due_month)[1])


def proration_table(is_logging=False):
    """Tax per category for each first-used month, in tax period order"""
    return {
        category: {
            calendar.month_name[month]: tax_for_vehicle(category, is_logging, month)
            for month in TAX_PERIOD_MONTHS
        }
        for category in WEIGHT_CATEGORIES
    }


def calculate_vehicle_statistics(vehicles):
    """Counts of vehicles by type and logging status"""
    total_reported = len(vehicles)
    total_suspended = len([v for v in vehicles if v.vehicle_type is VehicleType.SUSPENDED])
    total_credit = len([v for v in vehicles if v.vehicle_type is VehicleType.CREDIT])
    total_prior_year_sold = len([v for v in vehicles if v.vehicle_type is VehicleType.PRIOR_YEAR_SOLD])
    total_logging = len([v for v in vehicles if v.logging.is_logging])

    return {
        "total_reported_vehicles": total_reported,
        "total_taxable_vehicles": total_reported - total_suspended - total_credit - total_prior_year_sold,
        "total_suspended_vehicles": total_suspended,
        "total_credit_vehicles": total_credit,
        "total_prior_year_sold_vehicles": total_prior_year_sold,
        "total_logging_vehicles": total_logging,
        "total_regular_vehicles": total_reported - total_logging,
    }
