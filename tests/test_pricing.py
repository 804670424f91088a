import logging

import pytest

from hvut.config import Config
from hvut.errors import ConfigurationError, ValidationError
from hvut.filing import FilingIntent, vehicles_from_dicts
from hvut.pricing import PricingConfig, calculate_filing_cost, resolve_sales_tax_rate

STANDARD = {"filing_type": "standard"}


def taxable(vin, category="A", **extra):
    return dict({"vin": vin, "category": category}, **extra)


def vin_correction_intent(vin):
    return {
        "filing_type": "amendment",
        "amendment_type": "vin_correction",
        "amendment": {"original_vin": vin(900), "corrected_vin": vin(901)},
    }


def test_single_vehicle_first_used_august(vin):
    breakdown = calculate_filing_cost({"first_used_month": "August"}, [taxable(vin(1))])
    assert breakdown.total_tax == 91.67
    assert breakdown.service_fee == 34.99
    assert breakdown.standard_rate == 34.99
    assert breakdown.bulk_savings == 0.0
    assert breakdown.sales_tax == 0.0
    assert breakdown.grand_total == 126.66
    assert breakdown.vehicle_count == 1


def test_single_vehicle_pays_standard_rate(vin):
    for category in ("A", "K", "V"):
        assert calculate_filing_cost(STANDARD, [taxable(vin(1), category)]).service_fee == 34.99


def test_vehicle_month_overrides_intent_month(vin):
    breakdown = calculate_filing_cost(
        {"first_used_month": "July"},
        [taxable(vin(1)), taxable(vin(2), first_used_month="August")],
    )
    assert breakdown.total_tax == 191.67
    assert [line["month"] for line in breakdown.vehicle_breakdown] == [7, 8]


@pytest.mark.parametrize("count, per_vehicle, savings", [
    (2, 29.99, 10.00),
    (9, 29.99, 45.00),
    (10, 24.99, 100.00),
    (24, 24.99, 240.00),
    (25, 19.99, 375.00),
])
def test_bulk_fee_tiers(vin, count, per_vehicle, savings):
    breakdown = calculate_filing_cost(STANDARD, [taxable(vin(n)) for n in range(count)])
    assert breakdown.service_fee == round(per_vehicle * count, 2)
    assert breakdown.bulk_savings == savings
    assert breakdown.bulk_savings == round(34.99 * count - breakdown.service_fee, 2)


def test_sales_tax_applies_to_service_fee_only(vin):
    breakdown = calculate_filing_cost({"first_used_month": "August"}, [taxable(vin(1))], {"state": "ca"})
    assert breakdown.sales_tax_rate == 0.0725
    assert breakdown.sales_tax == 2.54
    assert breakdown.grand_total == 129.20


def test_unknown_state_falls_back_to_default_rate(vin, caplog):
    config = PricingConfig(default_sales_tax_rate=0.05)
    with caplog.at_level(logging.WARNING, logger="hvut.pricing"):
        breakdown = calculate_filing_cost(STANDARD, [taxable(vin(1))], {"state": "ZZ"}, config)
    assert breakdown.sales_tax_rate == 0.05
    assert breakdown.sales_tax == 1.75
    assert "No sales tax rate configured for state 'ZZ'" in caplog.text


def test_resolve_sales_tax_rate():
    config = PricingConfig()
    assert resolve_sales_tax_rate(" tx", config) == 0.0625
    with pytest.raises(ConfigurationError):
        resolve_sales_tax_rate(None, config)


def test_percentage_coupon_discounts_service_fee(vin):
    intent = {"first_used_month": "August", "coupon": {"type": "percentage", "value": 50}}
    breakdown = calculate_filing_cost(intent, [taxable(vin(1))])
    assert breakdown.coupon_discount == 17.50
    assert breakdown.total_tax == 91.67
    assert breakdown.grand_total == 109.16


def test_fixed_coupon_never_discounts_tax(vin):
    intent = {"first_used_month": "August", "coupon": {"type": "fixed", "value": 500}}
    breakdown = calculate_filing_cost(intent, [taxable(vin(1))])
    assert breakdown.coupon_discount == 34.99
    assert breakdown.grand_total == breakdown.total_tax == 91.67


def test_suspended_vehicle_owes_no_tax(vin):
    breakdown = calculate_filing_cost(STANDARD, [taxable(vin(1), "W", vehicle_type="suspended")])
    assert breakdown.total_tax == 0.0
    assert breakdown.service_fee == 34.99


def test_suspended_only_fee_when_configured(vin):
    config = PricingConfig(suspended_only_fee=24.99)
    vehicles = [taxable(vin(1), "W", vehicle_type="suspended"), taxable(vin(2), "W", is_agricultural=True)]
    assert calculate_filing_cost(STANDARD, vehicles, config=config).service_fee == 24.99

    mixed = vehicles + [taxable(vin(3))]
    assert calculate_filing_cost(STANDARD, mixed, config=config).service_fee == round(29.99 * 3, 2)


def test_logging_vehicle_rate(vin):
    assert calculate_filing_cost(STANDARD, [taxable(vin(1), logging=True)]).total_tax == 75.00


def test_credit_vehicle_nets_against_tax(vin):
    vehicles = [
        taxable(vin(1)),
        taxable(vin(2), vehicle_type="credit", disposition_date="2026-01-10", disposition_reason="destroyed"),
    ]
    breakdown = calculate_filing_cost(STANDARD, vehicles)
    assert breakdown.total_credits == 50.00
    assert breakdown.total_tax == 50.00
    assert breakdown.service_fee == 59.98


def test_credits_never_make_tax_negative(vin):
    vehicles = [taxable(vin(1), "V", vehicle_type="credit", disposition_date="2025-08-01")]
    breakdown = calculate_filing_cost(STANDARD, vehicles)
    assert breakdown.total_tax == 0.0
    assert breakdown.total_credits == 504.17


def test_vin_correction_is_flat_fee(vin):
    breakdown = calculate_filing_cost(vin_correction_intent(vin), [])
    assert breakdown.total_tax == 0.0
    assert breakdown.service_fee == 10.00
    assert breakdown.grand_total == 10.00


def test_vin_correction_ignores_vehicle_count(vin):
    vehicles = [taxable(vin(n)) for n in range(5)]
    breakdown = calculate_filing_cost(vin_correction_intent(vin), vehicles)
    assert breakdown.total_tax == 0.0
    assert breakdown.service_fee == 10.00


def test_weight_increase_amendment(vin):
    intent = {
        "filing_type": "amendment",
        "amendment_type": "weight_increase",
        "amendment": {"original_category": "A", "new_category": "C", "amended_month": "October"},
    }
    breakdown = calculate_filing_cost(intent, [taxable(vin(1), "C")])
    assert breakdown.total_tax == 44.00
    assert breakdown.service_fee == 10.00
    assert breakdown.grand_total == 54.00
    assert breakdown.amendment_due_date == "2025-11-30"


def test_weight_increase_due_date_follows_configured_tax_year(vin, monkeypatch):
    monkeypatch.setattr(Config, "TAX_YEAR", 2026)
    intent = {
        "filing_type": "amendment",
        "amendment_type": "weight_increase",
        "amendment": {"original_category": "A", "new_category": "C", "amended_month": "February"},
    }
    breakdown = calculate_filing_cost(intent, [taxable(vin(1), "C")])
    assert breakdown.amendment_due_date == "2027-03-31"


def test_weight_increase_needs_a_vehicle():
    intent = {
        "filing_type": "amendment",
        "amendment_type": "weight_increase",
        "amendment": {"original_category": "A", "new_category": "C", "amended_month": "October"},
    }
    with pytest.raises(ValidationError) as excinfo:
        calculate_filing_cost(intent, [])
    assert excinfo.value.field == "vehicles"


def test_weight_increase_same_category_is_rejected(vin):
    intent = {
        "filing_type": "amendment",
        "amendment_type": "weight_increase",
        "amendment": {"original_category": "C", "new_category": "C", "amended_month": "October"},
    }
    with pytest.raises(ValidationError) as excinfo:
        calculate_filing_cost(intent, [taxable(vin(1), "C")])
    assert excinfo.value.field == "new_category"


def test_mileage_exceeded_amendment():
    intent = {
        "filing_type": "amendment",
        "amendment_type": "mileage_exceeded",
        "amendment": {"vehicle_category": "D", "first_used_month": "January", "actual_mileage_used": 6200},
    }
    breakdown = calculate_filing_cost(intent, [])
    assert breakdown.total_tax == 83.00
    assert breakdown.service_fee == 10.00


def test_mileage_under_limit_is_rejected():
    intent = {
        "filing_type": "amendment",
        "amendment_type": "mileage_exceeded",
        "amendment": {"vehicle_category": "D", "actual_mileage_used": 4000},
    }
    with pytest.raises(ValidationError) as excinfo:
        calculate_filing_cost(intent, [])
    assert excinfo.value.field == "actual_mileage_used"


@pytest.mark.parametrize("amendment", [
    {"vehicle_category": "D", "first_used_month": "January"},
    {"vehicle_category": "D", "actual_mileage_used": None},
    {"vehicle_category": "D", "actual_mileage_used": float("nan")},
])
def test_mileage_exceeded_requires_actual_mileage(amendment):
    intent = {"filing_type": "amendment", "amendment_type": "mileage_exceeded", "amendment": amendment}
    with pytest.raises(ValidationError) as excinfo:
        calculate_filing_cost(intent, [])
    assert excinfo.value.field == "actual_mileage_used"


@pytest.mark.parametrize("records", [["1HGCM82633A000001"], [None], [42]])
def test_vehicle_records_must_be_objects(records):
    with pytest.raises(ValidationError) as excinfo:
        calculate_filing_cost({}, records)
    assert excinfo.value.field == "vehicles"
    assert excinfo.value.errors[0].message == "Vehicle 1: Vehicle must be an object"


def test_refund_filing(vin):
    vehicles = [taxable(vin(1), disposition_date="2026-01-15", disposition_reason="stolen")]
    breakdown = calculate_filing_cost({"filing_type": "refund"}, vehicles)
    assert breakdown.total_refund == 50.00
    assert breakdown.total_tax == 0.0
    assert breakdown.service_fee == 34.99
    assert breakdown.grand_total == 34.99
    assert breakdown.vehicle_breakdown[0]["refund_amount"] == 50.00


def test_refund_reason_does_not_change_amount(vin):
    amounts = {
        calculate_filing_cost(
            {"filing_type": "refund"},
            [taxable(vin(1), "F", disposition_date="2025-11-02", disposition_reason=reason)],
        ).total_refund
        for reason in ("sold", "destroyed", "stolen", "low_mileage")
    }
    assert amounts == {140.00}


def test_requires_a_vehicle_for_standard_filing():
    with pytest.raises(ValidationError) as excinfo:
        calculate_filing_cost(STANDARD, [])
    assert excinfo.value.message == "At least one vehicle is required"


def test_duplicate_vins_rejected(vin):
    with pytest.raises(ValidationError) as excinfo:
        calculate_filing_cost(STANDARD, [taxable(vin(1)), taxable(vin(1).lower(), "B")])
    assert "Duplicate VINs" in excinfo.value.message


def test_multiple_rule_violations_are_reported_together(vin):
    intent = {
        "filing_type": "amendment",
        "amendment_type": "weight_increase",
        "amendment": {"original_category": "D", "new_category": "B", "amended_month": "October"},
    }
    with pytest.raises(ValidationError) as excinfo:
        calculate_filing_cost(intent, [taxable(vin(1)), taxable(vin(1))])
    assert excinfo.value.message == "Filing failed validation"
    assert len(excinfo.value.errors) == 2
    assert excinfo.value.to_dict()["errors"][1]["field"] == "new_category"


def test_pricing_is_deterministic(vin):
    intent = FilingIntent.from_dict({"first_used_month": "November", "coupon": {"type": "percentage", "value": 10}})
    vehicles = vehicles_from_dicts([taxable(vin(n), "ABCDEFG"[n]) for n in range(7)])
    first = calculate_filing_cost(intent, vehicles, {"state": "MI"})
    second = calculate_filing_cost(intent, vehicles, {"state": "MI"})
    assert first == second
    assert first.to_dict() == second.to_dict()


def test_custom_fee_schedule(vin):
    config = PricingConfig(service_fee_schedule=lambda count: 20.0 if count > 1 else 40.0)
    assert calculate_filing_cost(STANDARD, [taxable(vin(1))], config=config).service_fee == 40.0
    breakdown = calculate_filing_cost(STANDARD, [taxable(vin(1)), taxable(vin(2))], config=config)
    assert breakdown.service_fee == 40.0
    assert breakdown.bulk_savings == 29.98


def test_breakdown_to_dict_keys(vin):
    result = calculate_filing_cost(STANDARD, [taxable(vin(1))]).to_dict()
    assert set(result) == {
        "total_tax", "service_fee", "sales_tax", "sales_tax_rate", "coupon_discount", "grand_total",
        "total_refund", "total_credits", "bulk_savings", "vehicle_count", "standard_rate",
        "amendment_due_date", "vehicle_breakdown",
    }
    assert result["vehicle_breakdown"][0]["vin"] == vin(1)
