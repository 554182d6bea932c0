"""Pydantic models for data validation and type checking."""

from models.inventory import Hotel, InventoryRow
from models.notification import (
    MatchData,
    MatchRecord,
    NotificationCreate,
    NotificationQueueEntry,
)
from models.preference import (
    Preference,
    PreferenceCreate,
    PreferenceFields,
    UserProfile,
)

__all__ = [
    "Hotel",
    "InventoryRow",
    "MatchData",
    "MatchRecord",
    "NotificationCreate",
    "NotificationQueueEntry",
    "Preference",
    "PreferenceCreate",
    "PreferenceFields",
    "UserProfile",
]
