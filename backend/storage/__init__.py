"""
Supabase-backed stores used by the matching and dispatch runs.

Each store takes its client in the constructor so runs and tests can share
or replace it.
"""

from storage.inventory_store import InventoryStore
from storage.match_ledger import MatchLedger
from storage.notification_queue import NotificationQueue
from storage.preference_store import PreferenceStore

__all__ = [
    "InventoryStore",
    "MatchLedger",
    "NotificationQueue",
    "PreferenceStore",
]
