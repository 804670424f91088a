"""
Pricing engine for Form 2290 filings
Combines HVUT tax, platform service fee, sales tax and coupon discounts
into a PricingBreakdown. Pure: no I/O, no clock, no shared state.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, Mapping, Optional, Tuple

from hvut.config import Config
from hvut.errors import ConfigurationError, ValidationError
from hvut.filing import (
    AmendmentType, CouponType, FilingIntent, FilingType, Locale, VehicleType, vehicles_from_dicts,
)
from hvut.tax_tables import STATE_SALES_TAX_RATES
from hvut.utils.calculations import (
    due_date_for_amendment, mileage_exceeded_tax, refund_for_vehicle, tax_for_vehicle, to_money,
    weight_increase_additional_tax,
)
from hvut.utils.validation import (
    parse_month, validate_mileage_exceeded, validate_vin_correction, validate_weight_increase,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class PricingConfig:
    """Business constants for service fees and sales tax"""
    standard_rate: float = 34.99
    bulk_tiers: Tuple[Tuple[int, float], ...] = ((2, 29.99), (10, 24.99), (25, 19.99))
    amendment_fee: float = 10.00
    refund_fee: float = 34.99
    suspended_only_fee: Optional[float] = None
    default_sales_tax_rate: float = 0.0
    sales_tax_rates: Mapping[str, float] = field(default_factory=lambda: STATE_SALES_TAX_RATES)
    # Replaces the tier lookup when set: vehicle_count -> per-vehicle fee
    service_fee_schedule: Optional[Callable[[int], float]] = None

    @classmethod
    def from_config(cls, config=Config):
        return cls(
            standard_rate=config.STANDARD_SERVICE_FEE,
            bulk_tiers=tuple(config.BULK_FEE_TIERS),
            amendment_fee=config.AMENDMENT_SERVICE_FEE,
            refund_fee=config.REFUND_SERVICE_FEE,
            suspended_only_fee=config.SUSPENDED_ONLY_SERVICE_FEE,
            default_sales_tax_rate=config.DEFAULT_SALES_TAX_RATE,
        )

    def per_vehicle_fee(self, vehicle_count) -> float:
        """Step function: fee of the highest tier reached, else the standard rate"""
        if self.service_fee_schedule is not None:
            return self.service_fee_schedule(vehicle_count)
        fee = self.standard_rate
        for min_count, tier_fee in sorted(self.bulk_tiers):
            if vehicle_count >= min_count:
                fee = tier_fee
        return fee


@dataclass(frozen=True)
class PricingBreakdown:
    total_tax: float
    service_fee: float
    sales_tax: float
    sales_tax_rate: float
    coupon_discount: float
    grand_total: float
    total_refund: float
    total_credits: float
    bulk_savings: float
    vehicle_count: int
    standard_rate: float
    amendment_due_date: Optional[str] = None
    vehicle_breakdown: Tuple[dict, ...] = ()

    def to_dict(self):
        return {
            "total_tax": self.total_tax,
            "service_fee": self.service_fee,
            "sales_tax": self.sales_tax,
            "sales_tax_rate": self.sales_tax_rate,
            "coupon_discount": self.coupon_discount,
            "grand_total": self.grand_total,
            "total_refund": self.total_refund,
            "total_credits": self.total_credits,
            "bulk_savings": self.bulk_savings,
            "vehicle_count": self.vehicle_count,
            "standard_rate": self.standard_rate,
            "amendment_due_date": self.amendment_due_date,
            "vehicle_breakdown": [dict(line) for line in self.vehicle_breakdown],
        }


def resolve_sales_tax_rate(state, config) -> float:
    """Sales tax rate for a state; ConfigurationError when none is mapped"""
    if not state:
        raise ConfigurationError("No state provided for sales tax")
    code = state.strip().upper()
    if code not in config.sales_tax_rates:
        raise ConfigurationError(f"No sales tax rate configured for state '{code}'")
    return config.sales_tax_rates[code]


def validate_business_rules(intent, vehicles) -> list:
    """
    Validate a filing before pricing it.
    Returns a list of ValidationError (empty when the filing is valid).
    """
    errors = []
    amendment_type = intent.amendment_type

    vehicles_optional = amendment_type in (AmendmentType.VIN_CORRECTION, AmendmentType.MILEAGE_EXCEEDED)
    if not vehicles and not vehicles_optional:
        errors.append(ValidationError("At least one vehicle is required", "vehicles"))

    vins = [v.vin for v in vehicles]
    if len(vins) != len(set(vins)):
        errors.append(ValidationError("Duplicate VINs not allowed", "vehicles"))

    if intent.filing_type is FilingType.AMENDMENT:
        amendment = intent.amendment
        try:
            if amendment_type is AmendmentType.VIN_CORRECTION:
                validate_vin_correction(amendment.original_vin, amendment.corrected_vin)
            elif amendment_type is AmendmentType.WEIGHT_INCREASE:
                validate_weight_increase(amendment.original_category, amendment.new_category)
                parse_month(amendment.amended_month, "amended_month")
            else:
                validate_mileage_exceeded(amendment.actual_mileage_used, amendment.agricultural)
        except ValidationError as e:
            errors.append(e)

    return errors


def _vehicle_line(vehicle, month, tax_amount=ZERO, refund_amount=ZERO, credit_amount=ZERO):
    return {
        "vin": vehicle.vin,
        "vehicle_type": vehicle.vehicle_type.value,
        "gross_weight_category": vehicle.gross_weight_category,
        "month": month,
        "tax_amount": float(tax_amount),
        "refund_amount": float(refund_amount),
        "credit_amount": float(credit_amount),
    }


def _price_standard(intent, vehicles, config):
    lines = []
    total_tax = ZERO
    total_credits = ZERO

    for vehicle in vehicles:
        category, logging_status = vehicle.gross_weight_category, vehicle.logging
        if vehicle.vehicle_type is VehicleType.CREDIT:
            month = vehicle.disposition_date.month
            credit = Decimal(str(refund_for_vehicle(category, False, month, logging_status)))
            total_credits += credit
            lines.append(_vehicle_line(vehicle, month, credit_amount=credit))
        elif vehicle.vehicle_type is VehicleType.PRIOR_YEAR_SOLD:
            lines.append(_vehicle_line(vehicle, vehicle.disposition_date.month))
        else:
            month = vehicle.first_used_month or intent.first_used_month
            tax = Decimal(str(tax_for_vehicle(category, logging_status, month, vehicle.is_suspended)))
            total_tax += tax
            lines.append(_vehicle_line(vehicle, month, tax_amount=tax))

    count = len(vehicles)
    if config.suspended_only_fee is not None and count and all(v.is_suspended for v in vehicles):
        service_fee = to_money(config.suspended_only_fee)
    else:
        service_fee = to_money(Decimal(str(config.per_vehicle_fee(count))) * count)
    bulk_savings = to_money(Decimal(str(config.standard_rate)) * count - service_fee)

    net_tax = max(ZERO, total_tax - total_credits)
    return {
        "total_tax": net_tax,
        "total_credits": total_credits,
        "service_fee": service_fee,
        "bulk_savings": bulk_savings,
        "lines": lines,
    }


def _price_refund(intent, vehicles, config):
    lines = []
    total_refund = ZERO
    for vehicle in vehicles:
        if vehicle.disposition_date is not None:
            month = vehicle.disposition_date.month
        else:
            month = vehicle.first_used_month or intent.first_used_month
        refund = Decimal(str(refund_for_vehicle(
            vehicle.gross_weight_category, vehicle.is_suspended, month, vehicle.logging
        )))
        total_refund += refund
        lines.append(_vehicle_line(vehicle, month, refund_amount=refund))

    return {
        "total_refund": total_refund,
        "service_fee": to_money(config.refund_fee),
        "lines": lines,
    }


def _price_amendment(intent, config):
    amendment = intent.amendment
    total_tax = ZERO
    due_date = None

    if intent.amendment_type is AmendmentType.WEIGHT_INCREASE:
        total_tax = Decimal(str(weight_increase_additional_tax(
            amendment.original_category,
            amendment.new_category,
            amendment.amended_month,
            amendment.first_used_month,
            amendment.original_logging,
            amendment.new_logging,
        )))
        due_date = due_date_for_amendment(amendment.amended_month, intent.tax_year).isoformat()
    elif intent.amendment_type is AmendmentType.MILEAGE_EXCEEDED:
        total_tax = Decimal(str(mileage_exceeded_tax(
            amendment.vehicle_category, amendment.first_used_month, amendment.logging
        )))

    return {
        "total_tax": total_tax,
        "service_fee": to_money(config.amendment_fee),
        "amendment_due_date": due_date,
    }


def calculate_filing_cost(intent, vehicles, locale=None, config=None) -> PricingBreakdown:
    """
    Price a filing.

    `intent` is a FilingIntent (or its dict form), `vehicles` a sequence of
    Vehicle (or dicts), `locale` a Locale or {"state": ...}. Raises
    ValidationError listing every rule the filing breaks.
    """
    if config is None:
        config = PricingConfig.from_config()
    if isinstance(intent, dict):
        intent = FilingIntent.from_dict(intent, tax_year=Config.TAX_YEAR)
    vehicles = vehicles_from_dicts(vehicles)
    locale = Locale.from_dict(locale)

    errors = validate_business_rules(intent, vehicles)
    if errors:
        if len(errors) == 1:
            raise errors[0]
        raise ValidationError("Filing failed validation", errors=errors)

    result = {
        "total_tax": ZERO,
        "total_refund": ZERO,
        "total_credits": ZERO,
        "bulk_savings": ZERO,
        "amendment_due_date": None,
        "lines": [],
    }
    if intent.filing_type is FilingType.STANDARD:
        result.update(_price_standard(intent, vehicles, config))
    elif intent.filing_type is FilingType.REFUND:
        result.update(_price_refund(intent, vehicles, config))
    else:
        result.update(_price_amendment(intent, config))

    service_fee = result["service_fee"]

    try:
        sales_tax_rate = resolve_sales_tax_rate(locale.state, config)
    except ConfigurationError as e:
        logger.warning("%s; using default rate %s", e, config.default_sales_tax_rate)
        sales_tax_rate = config.default_sales_tax_rate
    sales_tax = to_money(service_fee * Decimal(str(sales_tax_rate)))

    # Coupons discount the service fee only, never the tax
    coupon_discount = ZERO
    coupon = intent.coupon
    if coupon is not None:
        if coupon.type is CouponType.PERCENTAGE:
            coupon_discount = to_money(service_fee * Decimal(str(coupon.value)) / 100)
        else:
            coupon_discount = min(to_money(coupon.value), service_fee)

    grand_total = to_money(result["total_tax"] + service_fee + sales_tax - coupon_discount)

    return PricingBreakdown(
        total_tax=float(result["total_tax"]),
        service_fee=float(service_fee),
        sales_tax=float(sales_tax),
        sales_tax_rate=float(sales_tax_rate),
        coupon_discount=float(coupon_discount),
        grand_total=float(grand_total),
        total_refund=float(result["total_refund"]),
        total_credits=float(result["total_credits"]),
        bulk_savings=float(result["bulk_savings"]),
        vehicle_count=len(vehicles),
        standard_rate=float(config.standard_rate),
        amendment_due_date=result["amendment_due_date"],
        vehicle_breakdown=tuple(result["lines"]),
    )
