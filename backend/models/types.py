"""Shared type definitions for type checking.

Uses NewType for IDs to provide compile-time type safety - prevents mixing
different ID types (e.g., passing UserID where PreferenceID expected).

Uses TypeAlias for simple structural types.
"""

from typing import Literal, NewType, TypeAlias

# ID types using NewType for type safety
PreferenceID = NewType("PreferenceID", str)
UserID = NewType("UserID", str)
HotelID = NewType("HotelID", str)
InventoryRowID = NewType("InventoryRowID", str)
NotificationID = NewType("NotificationID", str)

# Structural aliases
NotificationType: TypeAlias = Literal["match", "last_minute", "good_deal"]
NotificationStatus: TypeAlias = Literal["pending", "sent", "failed"]
Price: TypeAlias = int  # JPY per night
