#!/usr/bin/env python3
"""
Series Export Script
====================
Fetch and reconcile Oura data for a date range and print it as JSON, either
the full nightly series or one aggregated metric.

Usage:
    # Last 90 days, full series:
    python scripts/export_series.py

    # 7-night rolling median of HRV over 2024:
    python scripts/export_series.py --start 2024-01-01 --end 2024-12-31 --metric average_hrv --agg median --k 7

    # LOESS of bedtime start with a 20% span, body composition from a parsed export:
    python scripts/export_series.py --metric bedtime_start_hour --agg loess --span 20 --body-json weight.json

Requirements:
    - OURA_ACCESS_TOKEN env var (or --token argument)
    - WITHINGS_ACCESS_TOKEN env var (optional, for body composition)
"""

import os
import sys
import json
import asyncio
import argparse
from datetime import date, timedelta
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv

load_dotenv(project_root / '.env')

from oura_trends.catalog import validate_aggregation, validate_metric, validate_window
from oura_trends.clients import (
    EmptyBodyComposition,
    OuraAPIError,
    OuraClient,
    StaticBodyComposition,
    WithingsBodyComposition,
)
from oura_trends.config import get_settings
from oura_trends.services.pipeline import fetch_daily_series
from oura_trends.services.smoothing import aggregate, group_by_interval
from oura_trends.utils.logging_config import setup_logging


def print_error(text: str):
    """Print error message."""
    print(f"❌ {text}", file=sys.stderr)


def print_warning(text: str):
    """Print warning message."""
    print(f"⚠️  {text}", file=sys.stderr)


def body_source(args, settings):
    if args.body_json:
        with open(args.body_json, "r") as f:
            return StaticBodyComposition(json.load(f))
    if settings.WITHINGS_ACCESS_TOKEN:
        return WithingsBodyComposition(settings.WITHINGS_ACCESS_TOKEN, base_url=settings.WITHINGS_API_BASE)
    return EmptyBodyComposition()


async def main():
    """Main execution function."""
    parser = argparse.ArgumentParser(
        description="Export reconciled Oura data as JSON"
    )
    parser.add_argument("--start", type=date.fromisoformat, help="First day (YYYY-MM-DD)")
    parser.add_argument("--end", type=date.fromisoformat, help="Last day (YYYY-MM-DD), defaults to tomorrow")
    parser.add_argument("--days", type=int, default=None, help="Days back from today when --start is omitted")
    parser.add_argument("--heartrate", action="store_true", help="Also fetch all-day heart rate (slow)")
    parser.add_argument("--metric", help="Only output this metric, aggregated")
    parser.add_argument("--agg", default="mean", help="Reducer name or 'loess'")
    parser.add_argument("--k", type=int, default=7, help="Rolling window size in nights")
    parser.add_argument("--span", type=float, default=30, help="LOESS span in percent")
    parser.add_argument("--interval", choices=["day", "week", "month", "year"],
                        help="Group the metric per interval instead of a rolling line")
    parser.add_argument("--body-json", help="Parsed body composition export: {day: {weight, fat_mass, ...}}")
    parser.add_argument("--token", help="Oura access token (defaults to OURA_ACCESS_TOKEN env var)")

    args = parser.parse_args()
    settings = get_settings()
    setup_logging(os.getenv("LOG_LEVEL", "WARNING"), json_format=False)

    token = args.token or settings.OURA_ACCESS_TOKEN
    if not token:
        print_error("OURA_ACCESS_TOKEN not set (or pass --token)")
        sys.exit(1)

    if args.metric:
        try:
            validate_metric(args.metric)
            validate_aggregation(args.agg)
            validate_window(args.k, args.span)
        except ValueError as e:
            print_error(str(e))
            sys.exit(2)

    today = date.today()
    end = args.end or today + timedelta(days=1)
    start = args.start or today - timedelta(days=args.days or settings.DEFAULT_LOOKBACK_DAYS)

    try:
        async with OuraClient(
            token,
            base_url=settings.OURA_API_BASE,
            timeout=settings.REQUEST_TIMEOUT,
            max_pages=settings.OURA_MAX_PAGES,
        ) as client:
            result = await fetch_daily_series(
                client,
                start,
                end,
                include_heart_rate=args.heartrate,
                body_composition=body_source(args, settings),
                cutoff_hour=settings.DAY_CUTOFF_HOUR,
                heartrate_span_days=settings.HEARTRATE_MAX_SPAN_DAYS,
            )
    except OuraAPIError as e:
        print_error(f"Oura request failed: {e}")
        if e.is_unauthorized:
            print_warning("The access token is invalid or expired. Log in to Oura again.")
        sys.exit(1)

    for warning in result.warnings:
        print_warning(warning)

    if not args.metric:
        output = [r.model_dump(mode="json") for r in result.records]
    elif args.interval:
        output = [p.model_dump(mode="json") for p in group_by_interval(
            result.records, args.interval, args.agg, "date", args.metric)]
    else:
        output = [p.model_dump(mode="json") for p in aggregate(
            result.records, args.agg, args.k, "date", args.metric, args.span)]

    print(json.dumps(output, indent=2))


if __name__ == "__main__":
    asyncio.run(main())
