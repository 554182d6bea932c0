"""
Match quality scoring.

Base score is 100. Price-band misses and date drift deduct, close-to-checkin
dates add a bonus. The result is clamped to 0-100.
"""

from datetime import date

from models.inventory import InventoryRow
from models.preference import Preference

BASE_SCORE = 100
PRICE_MISS_PENALTY = 20
FLEXIBLE_DATE_BONUS = 10
DATE_DRIFT_PENALTY_PER_DAY = 2
URGENT_BONUS = 15  # Check-in within 3 days
SOON_BONUS = 10  # Check-in within 7 days


def score_candidate(preference: Preference, row: InventoryRow, today: date) -> int:
    score = BASE_SCORE

    if preference.min_price is not None and row.price < preference.min_price:
        score -= PRICE_MISS_PENALTY
    if preference.max_price is not None and row.price > preference.max_price:
        score -= PRICE_MISS_PENALTY

    if preference.checkin_date is not None:
        days_diff = abs((row.date - preference.checkin_date).days)
        if days_diff <= preference.flexibility_days:
            score += FLEXIBLE_DATE_BONUS
        else:
            score -= DATE_DRIFT_PENALTY_PER_DAY * days_diff

    days_until = (row.date - today).days
    if days_until <= 3:
        score += URGENT_BONUS
    elif days_until <= 7:
        score += SOON_BONUS

    return max(0, min(100, score))


def select_best(scored: list[tuple[int, InventoryRow]]) -> tuple[int, InventoryRow] | None:
    """Highest score wins; ties go to the lowest price, then the earliest date."""
    if not scored:
        return None
    return min(scored, key=lambda item: (-item[0], item[1].price, item[1].date))
