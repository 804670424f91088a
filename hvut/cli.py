#!/usr/bin/env python3
"""
Command line tools for the HVUT pricing engine

    hvut rates [--logging]
    hvut quote FILE [--state XX]
    hvut due-date MONTH [--tax-year N]
"""
import argparse
import json
import sys

from hvut.config import Config
from hvut.errors import ValidationError
from hvut.filing import FilingIntent
from hvut.pricing import PricingConfig, calculate_filing_cost
from hvut.utils.calculations import due_date_for_amendment, proration_table
from hvut.utils.safe_print import safe_print, safe_format_status


def cmd_rates(args):
    table = proration_table(args.logging)
    months = list(next(iter(table.values())))
    kind = "logging" if args.logging else "regular"
    safe_print(safe_format_status("report", f"HVUT {kind} rates, tax year {Config.TAX_YEAR}-{Config.TAX_YEAR + 1}"))
    safe_print("Cat " + " ".join(f"{name[:3]:>8}" for name in months))
    for category, by_month in table.items():
        safe_print(f"{category:<3} " + " ".join(f"{by_month[name]:>8.2f}" for name in months))
    return 0


def cmd_quote(args):
    try:
        with open(args.file) as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        safe_print(safe_format_status("error", f"Cannot read {args.file}: {e}"))
        return 1

    locale = data.get('locale') or {}
    if args.state:
        locale = {'state': args.state}

    try:
        intent = FilingIntent.from_dict(data.get('intent') or {}, tax_year=Config.TAX_YEAR)
        breakdown = calculate_filing_cost(intent, data.get('vehicles') or [], locale, PricingConfig.from_config())
    except ValidationError as e:
        safe_print(safe_format_status("error", e.message))
        for nested in e.errors:
            safe_print(f"  - {nested.message}")
        return 1

    result = breakdown.to_dict()
    if args.json:
        safe_print(json.dumps(result, indent=2))
        return 0

    safe_print(safe_format_status("report", f"Filing quote ({intent.filing_type.value}, {result['vehicle_count']} vehicles)"))
    for line in result['vehicle_breakdown']:
        safe_print(f"  {line['vin']}  {line['gross_weight_category']}  {line['vehicle_type']:<16}"
                   f" tax {line['tax_amount']:>8.2f}  refund {line['refund_amount']:>8.2f}"
                   f"  credit {line['credit_amount']:>8.2f}")
    for key in ('total_tax', 'total_credits', 'total_refund', 'service_fee', 'bulk_savings',
                'sales_tax', 'coupon_discount', 'grand_total'):
        safe_print(f"  {key.replace('_', ' ').title():<16} {result[key]:>10.2f}")
    if result['amendment_due_date']:
        safe_print(f"  Amendment due   {result['amendment_due_date']:>10}")
    return 0


def cmd_due_date(args):
    try:
        due = due_date_for_amendment(args.month, args.tax_year)
    except ValidationError as e:
        safe_print(safe_format_status("error", e.message))
        return 1
    safe_print(safe_format_status("success", f"Amendment for {args.month} is due {due.isoformat()}"))
    return 0


def build_parser():
    parser = argparse.ArgumentParser(prog="hvut", description="Form 2290 HVUT tax and filing cost calculator")
    subparsers = parser.add_subparsers(dest="command", required=True)

    rates = subparsers.add_parser("rates", help="Print the proration table per weight category")
    rates.add_argument("--logging", action="store_true", help="Use the logging vehicle rates")
    rates.set_defaults(func=cmd_rates)

    quote = subparsers.add_parser("quote", help="Price a filing from a JSON file {intent, vehicles, locale}")
    quote.add_argument("file", help="Path to the filing JSON")
    quote.add_argument("--state", help="Two-letter state code for sales tax")
    quote.add_argument("--json", action="store_true", help="Print the breakdown as JSON")
    quote.set_defaults(func=cmd_quote)

    due = subparsers.add_parser("due-date", help="Due date of a weight increase amendment")
    due.add_argument("month", help="Month of the increase, e.g. 'October' or '2025-10'")
    due.add_argument("--tax-year", type=int, default=Config.TAX_YEAR, help="Tax year the period starts in")
    due.set_defaults(func=cmd_due_date)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
