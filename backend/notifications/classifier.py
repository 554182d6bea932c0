"""Notification type assignment and pending notification construction."""

from datetime import date

from config.settings import GOOD_DEAL_PRICE_FACTOR, LAST_MINUTE_TYPE_DAYS
from models.inventory import InventoryRow
from models.notification import MatchData, NotificationCreate
from models.preference import Preference
from models.types import NotificationType
from notifications.preference_matcher import days_until_checkin, in_last_minute_window


def classify_notification_type(
    preference: Preference, row: InventoryRow, days_until: int
) -> NotificationType:
    """First matching rule wins: last_minute, then good_deal, then match."""
    if days_until <= LAST_MINUTE_TYPE_DAYS:
        return "last_minute"

    min_price = preference.min_price or 0
    if row.price < min_price * GOOD_DEAL_PRICE_FACTOR:
        return "good_deal"

    return "match"


def build_notification(
    preference: Preference, row: InventoryRow, score: int, today: date
) -> NotificationCreate:
    """Pending notification with a snapshot of the row as it looks right now."""
    days_until = days_until_checkin(row, today)

    return NotificationCreate(
        preference_id=preference.id,
        user_id=preference.user_id,
        hotel_id=row.hotel_id,
        room_inventory_id=row.id,
        notification_type=classify_notification_type(preference, row, days_until),
        match_data=MatchData(
            hotel_name=row.hotel_name,
            date=row.date,
            price=row.price,
            available_rooms=row.available_rooms,
            days_until=days_until,
            score=score,
            last_minute_window=in_last_minute_window(preference, row, today),
        ),
    )
