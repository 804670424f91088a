"""
Filing request records: vehicles, filing intent, amendment details and coupons.
Built from sanitized plain dicts (JSON request bodies or stored drafts).
"""
import datetime
import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

from hvut.errors import ValidationError
from hvut.tax_tables import DEFAULT_TAX_YEAR
from hvut.utils.validation import normalize_category, parse_month, validate_vin


class LoggingStatus(Enum):
    LOGGING = "logging"
    NON_LOGGING = "non_logging"
    UNSPECIFIED = "unspecified"

    @classmethod
    def coerce(cls, value):
        """Map True/False/None or a status string onto a LoggingStatus"""
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.UNSPECIFIED
        if isinstance(value, bool):
            return cls.LOGGING if value else cls.NON_LOGGING
        if isinstance(value, str):
            text = value.strip().lower()
            if text in ("logging", "true", "yes"):
                return cls.LOGGING
            if text in ("non_logging", "non-logging", "false", "no"):
                return cls.NON_LOGGING
            if text in ("", "unspecified", "unknown"):
                return cls.UNSPECIFIED
        raise ValidationError(f"Invalid logging status '{value}'", "logging")

    @property
    def is_logging(self):
        # Unspecified resolves to the standard (non-logging) rate
        return self is LoggingStatus.LOGGING


class VehicleType(Enum):
    TAXABLE = "taxable"
    SUSPENDED = "suspended"
    CREDIT = "credit"
    PRIOR_YEAR_SOLD = "prior_year_sold"


class FilingType(Enum):
    STANDARD = "standard"
    AMENDMENT = "amendment"
    REFUND = "refund"


class AmendmentType(Enum):
    VIN_CORRECTION = "vin_correction"
    WEIGHT_INCREASE = "weight_increase"
    MILEAGE_EXCEEDED = "mileage_exceeded"


class CouponType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


def _enum(enum_cls, value, field_name):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower().replace("-", "_"))
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Invalid {field_name} '{value}' (expected one of: {allowed})", field_name)


def _parse_date(value, field_name):
    if value is None or value == "":
        return None
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    try:
        return datetime.date.fromisoformat(str(value)[:10])
    except ValueError:
        raise ValidationError(f"Invalid date '{value}' (expected YYYY-MM-DD)", field_name)


@dataclass(frozen=True)
class Vehicle:
    vin: str
    gross_weight_category: str
    vehicle_type: VehicleType = VehicleType.TAXABLE
    logging: LoggingStatus = LoggingStatus.UNSPECIFIED
    agricultural: bool = False
    first_used_month: Optional[int] = None
    disposition_date: Optional[datetime.date] = None
    disposition_reason: Optional[str] = None
    vehicle_id: Optional[str] = None

    @property
    def is_suspended(self):
        return self.vehicle_type is VehicleType.SUSPENDED

    @property
    def requires_disposition_date(self):
        return self.vehicle_type in (VehicleType.CREDIT, VehicleType.PRIOR_YEAR_SOLD)

    @classmethod
    def from_dict(cls, data):
        """
        Build a Vehicle from a plain record.
        Accepts `category` as an alias of `gross_weight_category` and the legacy
        `is_suspended` / `is_agricultural` / `is_logging` flags.
        """
        if isinstance(data, cls):
            return data
        if not isinstance(data, dict):
            raise ValidationError("Vehicle must be an object", "vehicles")

        vin = validate_vin(data.get("vin"))
        category = normalize_category(data.get("gross_weight_category") or data.get("category"))

        agricultural = bool(data.get("agricultural", data.get("is_agricultural", False)))
        if data.get("vehicle_type"):
            vehicle_type = _enum(VehicleType, data["vehicle_type"], "vehicle_type")
        elif data.get("is_suspended") or agricultural:
            vehicle_type = VehicleType.SUSPENDED
        else:
            vehicle_type = VehicleType.TAXABLE

        logging_value = data.get("logging", data.get("is_logging"))
        first_used = data.get("first_used_month", data.get("used_month"))

        vehicle = cls(
            vin=vin,
            gross_weight_category=category,
            vehicle_type=vehicle_type,
            logging=LoggingStatus.coerce(logging_value),
            agricultural=agricultural and vehicle_type is VehicleType.SUSPENDED,
            first_used_month=parse_month(first_used) if first_used is not None else None,
            disposition_date=_parse_date(
                data.get("disposition_date") or data.get("disposal_date"), "disposition_date"
            ),
            disposition_reason=data.get("disposition_reason") or data.get("disposal_reason"),
            vehicle_id=str(data["id"]) if data.get("id") is not None else None,
        )
        if vehicle.requires_disposition_date and vehicle.disposition_date is None:
            raise ValidationError(
                f"Vehicle {vin} ({vehicle_type.value}) requires a disposition date", "disposition_date"
            )
        return vehicle

    def to_dict(self):
        return {
            "id": self.vehicle_id,
            "vin": self.vin,
            "gross_weight_category": self.gross_weight_category,
            "vehicle_type": self.vehicle_type.value,
            "logging": self.logging.value,
            "agricultural": self.agricultural,
            "first_used_month": self.first_used_month,
            "disposition_date": self.disposition_date.isoformat() if self.disposition_date else None,
            "disposition_reason": self.disposition_reason,
        }


@dataclass(frozen=True)
class VinCorrection:
    original_vin: str
    corrected_vin: str


@dataclass(frozen=True)
class WeightIncrease:
    original_category: str
    new_category: str
    amended_month: str
    first_used_month: int
    original_logging: LoggingStatus = LoggingStatus.UNSPECIFIED
    new_logging: LoggingStatus = LoggingStatus.UNSPECIFIED
    vehicle_id: Optional[str] = None


@dataclass(frozen=True)
class MileageExceeded:
    vehicle_category: str
    first_used_month: int
    logging: LoggingStatus = LoggingStatus.UNSPECIFIED
    actual_mileage_used: Optional[float] = None
    agricultural: bool = False
    exceeded_month: Optional[int] = None
    vehicle_id: Optional[str] = None


AmendmentData = Union[VinCorrection, WeightIncrease, MileageExceeded]


def amendment_from_dict(amendment_type, data, default_first_used_month):
    """Build the amendment record matching amendment_type"""
    data = data or {}
    if amendment_type is AmendmentType.VIN_CORRECTION:
        # VINs are checked by validate_vin_correction when pricing
        return VinCorrection(
            original_vin=(data.get("original_vin") or "").strip().upper(),
            corrected_vin=(data.get("corrected_vin") or "").strip().upper(),
        )

    first_used = data.get("first_used_month")
    first_used_month = parse_month(first_used) if first_used is not None else default_first_used_month

    if amendment_type is AmendmentType.WEIGHT_INCREASE:
        amended_month = data.get("amended_month") or data.get("increase_month")
        if not amended_month:
            raise ValidationError("Month of the weight increase is required", "amended_month")
        return WeightIncrease(
            original_category=normalize_category(data.get("original_category"), "original_category"),
            new_category=normalize_category(data.get("new_category"), "new_category"),
            amended_month=str(amended_month),
            first_used_month=first_used_month,
            original_logging=LoggingStatus.coerce(data.get("original_logging")),
            new_logging=LoggingStatus.coerce(data.get("new_logging")),
            vehicle_id=data.get("vehicle_id"),
        )

    exceeded = data.get("exceeded_month")
    return MileageExceeded(
        vehicle_category=normalize_category(data.get("vehicle_category"), "vehicle_category"),
        first_used_month=first_used_month,
        logging=LoggingStatus.coerce(data.get("logging")),
        actual_mileage_used=data.get("actual_mileage_used"),
        agricultural=bool(data.get("agricultural", False)),
        exceeded_month=parse_month(exceeded, "exceeded_month") if exceeded is not None else None,
        vehicle_id=data.get("vehicle_id"),
    )


@dataclass(frozen=True)
class Coupon:
    type: CouponType
    value: float
    code: Optional[str] = None

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise ValidationError("Coupon must be an object", "coupon")
        coupon_type = _enum(CouponType, data.get("type"), "coupon_type")
        value = data.get("value")
        if isinstance(value, bool) or not isinstance(value, (int, float)) \
                or (isinstance(value, float) and not math.isfinite(value)) or value < 0:
            raise ValidationError("Coupon value must be a non-negative number", "coupon")
        if coupon_type is CouponType.PERCENTAGE and value > 100:
            raise ValidationError("Percentage coupon cannot exceed 100", "coupon")
        return cls(type=coupon_type, value=float(value), code=data.get("code"))


@dataclass(frozen=True)
class Locale:
    state: Optional[str] = None

    @classmethod
    def from_dict(cls, data):
        if data is None:
            return cls()
        if isinstance(data, cls):
            return data
        state = (data.get("state") or "").strip().upper() or None
        return cls(state=state)


@dataclass(frozen=True)
class FilingIntent:
    filing_type: FilingType
    first_used_month: int = 7
    amendment_type: Optional[AmendmentType] = None
    amendment: Optional[AmendmentData] = None
    coupon: Optional[Coupon] = None
    tax_year: int = DEFAULT_TAX_YEAR

    @classmethod
    def from_dict(cls, data, tax_year=DEFAULT_TAX_YEAR):
        if not isinstance(data, dict):
            raise ValidationError("Filing intent must be an object", "intent")

        filing_type = _enum(FilingType, data.get("filing_type") or "standard", "filing_type")
        first_used = data.get("first_used_month")
        first_used_month = parse_month(first_used) if first_used is not None else 7
        try:
            tax_year = int(data.get("tax_year") or tax_year)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid tax year '{data.get('tax_year')}'", "tax_year")

        amendment_type = None
        amendment = None
        if filing_type is FilingType.AMENDMENT:
            if not data.get("amendment_type"):
                raise ValidationError("Amendment type is required", "amendment_type")
            amendment_type = _enum(AmendmentType, data["amendment_type"], "amendment_type")
            amendment = amendment_from_dict(amendment_type, data.get("amendment"), first_used_month)

        coupon = Coupon.from_dict(data["coupon"]) if data.get("coupon") else None

        return cls(
            filing_type=filing_type,
            first_used_month=first_used_month,
            amendment_type=amendment_type,
            amendment=amendment,
            coupon=coupon,
            tax_year=tax_year,
        )


def vehicles_from_dicts(records) -> Tuple[Vehicle, ...]:
    """Parse a vehicle list, collecting every invalid record"""
    vehicles = []
    errors = []
    for index, record in enumerate(records or []):
        try:
            vehicles.append(Vehicle.from_dict(record))
        except ValidationError as e:
            errors.append(ValidationError(f"Vehicle {index + 1}: {e.message}", e.field))
    if errors:
        raise ValidationError("Invalid vehicle list", "vehicles", errors=errors)
    return tuple(vehicles)
