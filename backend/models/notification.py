"""Pydantic models for the notification queue and match ledger."""

from datetime import date, datetime

from pydantic import BaseModel, Field

from models.types import (
    HotelID,
    InventoryRowID,
    NotificationID,
    NotificationStatus,
    NotificationType,
    PreferenceID,
    Price,
    UserID,
)


class MatchData(BaseModel):
    """Snapshot of the matched row captured at classification time."""

    hotel_name: str
    date: date
    price: Price
    available_rooms: int
    days_until: int
    score: int = Field(..., ge=0, le=100)
    last_minute_window: bool = False


class NotificationCreate(BaseModel):
    """Notification ready to be inserted as pending."""

    preference_id: PreferenceID
    user_id: UserID
    hotel_id: HotelID
    room_inventory_id: InventoryRowID
    notification_type: NotificationType
    match_data: MatchData
    status: NotificationStatus = "pending"
    retry_count: int = Field(0, ge=0)


class NotificationQueueEntry(NotificationCreate):
    """Queued notification as stored in notifications_queue."""

    id: NotificationID
    created_at: datetime
    sent_at: datetime | None = None
    error_message: str | None = None


class MatchRecord(BaseModel):
    """Dedup ledger entry: this preference was already notified about this row."""

    preference_id: PreferenceID
    room_inventory_id: InventoryRowID
    notified_at: datetime | None = None
