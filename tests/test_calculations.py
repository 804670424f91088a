import datetime
from decimal import Decimal

import pytest

from hvut.errors import ValidationError
from hvut.filing import Vehicle
from hvut.tax_tables import LOGGING_RATES, TAX_PERIOD_MONTHS, WEIGHT_CATEGORIES, WEIGHT_RATES
from hvut.utils.calculations import (
    annual_rate, calculate_vehicle_statistics, due_date_for_amendment, mileage_exceeded_tax,
    months_remaining, proration_table, refund_for_vehicle, tax_for_vehicle, to_money,
    weight_increase_additional_tax,
)


@pytest.mark.parametrize("category, month, is_logging, expected", [
    ("A", "202507", False, 100.00),
    ("A", "202508", False, 91.67),
    ("A", "202509", False, 83.33),
    ("A", "202508", True, 68.75),
    ("C", "202507", False, 144.00),
    ("C", "202510", False, 108.00),
    ("C", "202510", True, 81.00),
    ("V", "202512", False, 320.83),
    ("V", "202512", True, 240.63),
])
def test_tax_for_vehicle_known_values(category, month, is_logging, expected):
    assert tax_for_vehicle(category, is_logging, month) == expected


def test_category_a_first_used_august():
    assert tax_for_vehicle("A", False, "August") == 91.67


def test_suspended_vehicle_owes_nothing():
    assert tax_for_vehicle("V", False, "July", is_suspended=True) == 0.0
    assert tax_for_vehicle("A", True, "March", is_suspended=True) == 0.0


def test_suspended_vehicle_still_validates_inputs():
    with pytest.raises(ValidationError):
        tax_for_vehicle("Z", False, "July", is_suspended=True)


@pytest.mark.parametrize("category", WEIGHT_CATEGORIES)
def test_july_is_full_annual_rate(category):
    assert tax_for_vehicle(category, False, "July") == WEIGHT_RATES[category]
    assert tax_for_vehicle(category, True, "July") == LOGGING_RATES[category]


@pytest.mark.parametrize("category", WEIGHT_CATEGORIES)
def test_june_is_one_twelfth(category):
    for is_logging, table in ((False, WEIGHT_RATES), (True, LOGGING_RATES)):
        assert tax_for_vehicle(category, is_logging, "June") == float(to_money(Decimal(str(table[category])) / 12))


@pytest.mark.parametrize("category", WEIGHT_CATEGORIES)
def test_logging_rate_is_three_quarters(category):
    assert LOGGING_RATES[category] == round(WEIGHT_RATES[category] * 0.75, 2)


@pytest.mark.parametrize("category", WEIGHT_CATEGORIES)
def test_tax_never_increases_through_the_tax_year(category):
    amounts = [tax_for_vehicle(category, False, month) for month in TAX_PERIOD_MONTHS]
    assert amounts == sorted(amounts, reverse=True)


def test_unspecified_logging_uses_standard_rate():
    assert annual_rate("B", None) == WEIGHT_RATES["B"]
    assert annual_rate("B", "unspecified") == WEIGHT_RATES["B"]
    assert annual_rate("B", "logging") == LOGGING_RATES["B"]


def test_months_remaining():
    assert months_remaining("July") == 12
    assert months_remaining("December") == 7
    assert months_remaining(1) == 6
    assert months_remaining("June") == 1


@pytest.mark.parametrize("category, month", [("Z", "July"), ("", "July"), ("A", "Julember"), ("A", 13)])
def test_invalid_inputs_raise(category, month):
    with pytest.raises(ValidationError):
        tax_for_vehicle(category, False, month)


def test_to_money_rounds_half_up():
    assert to_money(2.675) == Decimal("2.68")
    assert to_money("17.495") == Decimal("17.50")


def test_refund_counts_from_disposition_month():
    assert refund_for_vehicle("A", False, "January") == 50.00
    assert refund_for_vehicle("A", False, 7) == 100.00
    assert refund_for_vehicle("A", True, "January") == 0.0


def test_weight_increase_a_to_c_july():
    assert weight_increase_additional_tax("A", "C", "October", "July") == 44.00


def test_weight_increase_prorates_from_first_used_month():
    # C (108.00) - A (75.00) for October; the amended month does not change the amount
    assert weight_increase_additional_tax("A", "C", "March", "October") == 33.00
    assert weight_increase_additional_tax("A", "C", "November", "October") == 33.00


def test_weight_increase_with_logging_change():
    # Logging C (108.00) minus regular A (100.00)
    assert weight_increase_additional_tax("A", "C", "August", "July", False, True) == 8.00


def test_weight_increase_never_negative():
    # Regular A (100.00) to logging B (91.50) is still heavier, but owes nothing more
    assert weight_increase_additional_tax("A", "B", "August", "July", False, True) == 0.0


@pytest.mark.parametrize("original, new", [("C", "C"), ("C", "A")])
def test_weight_increase_must_be_heavier(original, new):
    with pytest.raises(ValidationError) as excinfo:
        weight_increase_additional_tax(original, new, "October", "July")
    assert excinfo.value.field == "new_category"


def test_weight_increase_rejects_bad_amended_month():
    with pytest.raises(ValidationError) as excinfo:
        weight_increase_additional_tax("A", "C", "Smarch", "July")
    assert excinfo.value.field == "amended_month"


def test_mileage_exceeded_owes_full_prorated_tax():
    assert mileage_exceeded_tax("D", "January") == 83.00
    assert mileage_exceeded_tax("D", "July", True) == LOGGING_RATES["D"]


@pytest.mark.parametrize("amended_month, tax_year, expected", [
    ("October", 2025, datetime.date(2025, 11, 30)),
    ("December", 2025, datetime.date(2026, 1, 31)),
    ("January", 2025, datetime.date(2026, 2, 28)),
    ("2028-01", 2025, datetime.date(2028, 2, 29)),
    ("February", 2027, datetime.date(2028, 3, 31)),
])
def test_due_date_is_last_day_of_following_month(amended_month, tax_year, expected):
    assert due_date_for_amendment(amended_month, tax_year) == expected


def test_proration_table_layout():
    table = proration_table()
    assert list(table) == list(WEIGHT_CATEGORIES)
    assert list(table["A"])[0] == "July"
    assert list(table["A"])[-1] == "June"
    assert table["A"]["August"] == 91.67
    assert proration_table(is_logging=True)["A"]["July"] == 75.00


def test_calculate_vehicle_statistics(vin):
    vehicles = [
        Vehicle.from_dict({"vin": vin(1), "category": "A"}),
        Vehicle.from_dict({"vin": vin(2), "category": "B", "logging": True}),
        Vehicle.from_dict({"vin": vin(3), "category": "W", "vehicle_type": "suspended"}),
        Vehicle.from_dict({"vin": vin(4), "category": "C", "vehicle_type": "credit",
                           "disposition_date": "2026-01-10"}),
    ]
    stats = calculate_vehicle_statistics(vehicles)
    assert stats["total_reported_vehicles"] == 4
    assert stats["total_taxable_vehicles"] == 2
    assert stats["total_suspended_vehicles"] == 1
    assert stats["total_credit_vehicles"] == 1
    assert stats["total_logging_vehicles"] == 1
    assert stats["total_regular_vehicles"] == 3
