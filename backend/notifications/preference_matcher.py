"""
Candidate matching for hotel search preferences.

Finds the inventory rows that satisfy a preference's date, price and
hotel/area constraints. All filter conditions are AND-ed together; within
the area condition, city and prefecture are OR-ed.
"""

from datetime import date, timedelta

from config.settings import (
    DEFAULT_HORIZON_DAYS,
    LAST_MINUTE_WINDOW_DAYS,
    MATCH_CANDIDATE_LIMIT,
)
from models.inventory import InventoryRow
from models.preference import Preference
from storage.inventory_store import InventoryStore


def resolve_date_window(preference: Preference, today: date) -> tuple[date, date]:
    """
    Effective check-in window for a preference.

    Missing checkin defaults to today, missing checkout to today + 30 days.
    flexibility_days widens both ends.
    """
    start = preference.checkin_date or today
    end = preference.checkout_date or today + timedelta(days=DEFAULT_HORIZON_DAYS)

    flex = timedelta(days=preference.flexibility_days)
    return start - flex, end + flex


def days_until_checkin(row: InventoryRow, today: date) -> int:
    return (row.date - today).days


def in_last_minute_window(preference: Preference, row: InventoryRow, today: date) -> bool:
    """True when the user wants last-minute alerts and the row is within 7 days."""
    if not preference.notify_last_minute:
        return False
    return 0 <= days_until_checkin(row, today) <= LAST_MINUTE_WINDOW_DAYS


def _row_matches_preference(
    preference: Preference, row: InventoryRow, window: tuple[date, date]
) -> bool:
    """
    Check if a single inventory row satisfies a preference.

    Args:
        preference: Active preference
        row: Inventory row with joined hotel
        window: Effective (start, end) date window, inclusive

    Returns:
        True if the row is a match
    """
    if row.available_rooms <= 0:
        return False

    start, end = window
    if not start <= row.date <= end:
        return False

    if preference.min_price is not None and row.price < preference.min_price:
        return False
    if preference.max_price is not None and row.price > preference.max_price:
        return False

    # Exact hotel mode ignores the area
    if preference.hotel_id:
        return row.hotel_id == preference.hotel_id

    if preference.area_name:
        hotel = row.hotel
        if hotel is None:
            return False
        return preference.area_name in (hotel.city, hotel.prefecture)

    return True


def filter_candidates(
    preference: Preference,
    rows: list[InventoryRow],
    today: date,
    limit: int = MATCH_CANDIDATE_LIMIT,
) -> list[InventoryRow]:
    """Matching rows, cheapest first (then earliest date), capped at limit."""
    window = resolve_date_window(preference, today)
    matches = [row for row in rows if _row_matches_preference(preference, row, window)]
    matches.sort(key=lambda row: (row.price, row.date))
    return matches[:limit]


def find_candidates(
    preference: Preference,
    inventory_store: InventoryStore,
    today: date,
    limit: int = MATCH_CANDIDATE_LIMIT,
) -> list[InventoryRow]:
    """
    Query inventory for one preference and return its capped candidate list.

    The database query is narrowed by window, price and hotel; the area
    check runs here on the joined hotel so it is applied before the cap.

    Raises:
        DataError: If the inventory read fails
    """
    start, end = resolve_date_window(preference, today)
    rows = inventory_store.list_available_inventory(
        start,
        end,
        min_price=preference.min_price,
        max_price=preference.max_price,
        hotel_id=preference.hotel_id,
    )
    return filter_candidates(preference, rows, today, limit=limit)
