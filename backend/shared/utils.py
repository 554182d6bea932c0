from datetime import date, datetime
from typing import Any
from zoneinfo import ZoneInfo

from dateutil import parser as date_parser

from config.settings import ALERTS_TIMEZONE


def parse_date_string(date_str: Any) -> date | None:
    """Parse various date formats (2026-10-20, 2026/10/20, Oct 20 2026) into a date."""
    if date_str is None or date_str == "":
        return None
    if isinstance(date_str, datetime):
        return date_str.date()
    if isinstance(date_str, date):
        return date_str
    try:
        return date_parser.parse(str(date_str)).date()
    except (ValueError, OverflowError, TypeError):
        return None


def local_today() -> date:
    """Today's date in the alerts timezone (inventory dates are local hotel dates)."""
    return datetime.now(ZoneInfo(ALERTS_TIMEZONE)).date()


def utc_now_iso() -> str:
    return datetime.now(ZoneInfo("UTC")).isoformat()


def print_summary(title: str, stats: dict[str, int]) -> None:
    """Print run summary."""
    print(f"\n{'=' * 60}")
    print(f"[{datetime.now()}] {title}")
    print(f"{'=' * 60}")
    for key, value in stats.items():
        label = key.replace("_", " ").capitalize()
        print(f"{label + ':':<24}{value}")
    print(f"{'=' * 60}\n")
