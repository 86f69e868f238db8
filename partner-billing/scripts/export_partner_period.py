#!/usr/bin/env python3
"""
Partner Period Export Script

Exports one partner's billing buckets for a month to CSV, one row per
assignment item.

Usage:
    python export_partner_period.py --partner 65f1c2a9e4b0a1b2c3d4e5a1 --month 3 --year 2024 --output march.csv
    python export_partner_period.py --partner 65f1... --month 3 --year 2024 --service-type moving --output moving.csv
    python export_partner_period.py --partner 65f1... --month 3 --year 2024 --from 2024-03-01 --to 2024-03-15 --output first_half.csv
"""

from __future__ import annotations

import argparse
import csv
import sys
from datetime import date
from pathlib import Path
from typing import Dict, Iterator, List

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from domain.assignment import AssignmentItem
from domain.billing_period import BillingPeriod
from domain.date_filter import DateFilter, DateFilterType, filter_buckets
from domain.lead import ServiceType
from domain.reconciliation import BillingBuckets
from services.period_service import build_partner_period_view

CSV_COLUMNS = [
    "Bucket",
    "Lead ID",
    "Lead Number",
    "Service Type",
    "Customer",
    "Assignment Status",
    "Effective Date",
    "Amount",
]


def item_to_csv_row(bucket: str, item: AssignmentItem) -> Dict[str, str]:
    return {
        "Bucket": bucket,
        "Lead ID": item.lead_id,
        "Lead Number": item.lead.lead_number,
        "Service Type": item.lead.service_type.value,
        "Customer": item.lead.customer_name or "",
        "Assignment Status": item.assignment.status.value,
        "Effective Date": item.effective_date().date().isoformat(),
        "Amount": f"{item.billable_amount():.2f}",
    }


def bucket_rows(buckets: BillingBuckets) -> Iterator[Dict[str, str]]:
    """Rows for every bucket, in bucket order: unpaid, invoiced, paid, cancellation requested."""

    groups = [
        ("unpaid", buckets.unpaid),
        ("invoiced", buckets.invoiced),
        ("paid", buckets.paid),
        ("cancellationRequested", buckets.cancellation_requested),
    ]
    for name, items in groups:
        for item in items:
            yield item_to_csv_row(name, item)


def write_csv(rows: List[Dict[str, str]], output_path: str) -> None:
    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS)
        writer.writeheader()
        writer.writerows(rows)


def main() -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Export a partner's billing buckets for one month to CSV",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Whole month
  python export_partner_period.py --partner <id> --month 3 --year 2024 --output march.csv

  # Only moving leads
  python export_partner_period.py --partner <id> --month 3 --year 2024 --service-type moving -o moving.csv

  # Unpaid and invoiced narrowed to the first half of the month (paid stays complete)
  python export_partner_period.py --partner <id> --month 3 --year 2024 --from 2024-03-01 --to 2024-03-15 -o half.csv
        """
    )

    parser.add_argument("--partner", "-p", required=True, help="Partner id")
    parser.add_argument("--month", "-m", type=int, required=True, help="Billing month (1-12)")
    parser.add_argument("--year", "-y", type=int, required=True, help="Billing year")
    parser.add_argument("--output", "-o", required=True, help="Path to output CSV file")
    parser.add_argument(
        "--service-type",
        "-s",
        choices=[s.value for s in ServiceType],
        help="Only include leads of this service type"
    )
    parser.add_argument("--from", dest="from_day", type=date.fromisoformat, help="Range start (YYYY-MM-DD)")
    parser.add_argument("--to", dest="to_day", type=date.fromisoformat, help="Range end (YYYY-MM-DD)")

    args = parser.parse_args()

    try:
        period = BillingPeriod.for_month(args.month, args.year)
        service_type = ServiceType(args.service_type) if args.service_type else None
        date_filter = DateFilter()
        if args.from_day or args.to_day:
            date_filter = DateFilter(type=DateFilterType.RANGE, from_day=args.from_day, to_day=args.to_day)
            date_filter.bounds()

        print(f"Loading partner {args.partner} for {args.month:02d}/{args.year}...")
        view = build_partner_period_view(args.partner, period, service_type)
        buckets = filter_buckets(view.buckets, date_filter)

        rows = list(bucket_rows(buckets))
        if not rows:
            print("No billable leads in this billing period")
            return 1

        write_csv(rows, args.output)

        # Print summary
        print()
        print("=" * 60)
        print(f"EXPORT SUMMARY: {view.partner.company_name}")
        print("=" * 60)
        print(f"  Unpaid:                 {len(buckets.unpaid)}")
        print(f"  Invoiced:               {len(buckets.invoiced)}")
        print(f"  Paid:                   {len(buckets.paid)}")
        print(f"  Cancellation requested: {len(buckets.cancellation_requested)}")
        print()
        print(f"Output file: {args.output}")
        print("=" * 60)

        return 0

    except KeyboardInterrupt:
        print("\n\nExport interrupted by user")
        return 130

    except Exception as e:
        print(f"\nERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
