"""
Dedup ledger for sent match notifications.

A (preference_id, room_inventory_id) pair is recorded at most once, ever.
The table carries a unique constraint on that pair and every write is an
insert-if-absent upsert, so two overlapping runs cannot both claim the
same pair. The ledger is never pruned here.
"""

from typing import Any, Iterable

from models.inventory import InventoryRow
from models.notification import MatchRecord
from shared.db import get_supabase_client
from shared.errors import DataError
from shared.utils import utc_now_iso

LEDGER_TABLE = "match_notifications"
LEDGER_CONFLICT_KEY = "preference_id,room_inventory_id"


class MatchLedger:
    def __init__(self, client: Any = None):
        self.client = client if client is not None else get_supabase_client()

    def notified_ids(self, preference_id: str, inventory_ids: Iterable[str]) -> set[str]:
        """Subset of inventory_ids already recorded for this preference."""
        ids = list(inventory_ids)
        if not ids:
            return set()

        try:
            response = (
                self.client.table(LEDGER_TABLE)
                .select("room_inventory_id")
                .eq("preference_id", preference_id)
                .in_("room_inventory_id", ids)
                .execute()
            )
        except Exception as e:
            raise DataError(f"Ledger read failed for preference {preference_id}: {e}") from e

        return {row["room_inventory_id"] for row in response.data or []}

    def has_been_notified(self, preference_id: str, inventory_id: str) -> bool:
        return inventory_id in self.notified_ids(preference_id, [inventory_id])

    def filter_unnotified(
        self, preference_id: str, rows: list[InventoryRow]
    ) -> list[InventoryRow]:
        """Drop rows this preference was already notified about, keeping order."""
        seen = self.notified_ids(preference_id, [row.id for row in rows])
        return [row for row in rows if row.id not in seen]

    def record_notified(self, preference_id: str, inventory_ids: Iterable[str]) -> set[str]:
        """
        Record pairs as notified. Existing pairs are left untouched.

        Returns:
            The inventory ids newly recorded by this call. An id missing from
            the result was already claimed, possibly by a concurrent run.
        """
        ids = list(dict.fromkeys(inventory_ids))
        if not ids:
            return set()

        notified_at = utc_now_iso()
        records = [
            MatchRecord(
                preference_id=preference_id,
                room_inventory_id=inventory_id,
                notified_at=notified_at,
            ).model_dump(mode="json")
            for inventory_id in ids
        ]

        try:
            response = (
                self.client.table(LEDGER_TABLE)
                .upsert(
                    records,
                    on_conflict=LEDGER_CONFLICT_KEY,
                    ignore_duplicates=True,
                )
                .execute()
            )
        except Exception as e:
            raise DataError(f"Ledger write failed for preference {preference_id}: {e}") from e

        return {row["room_inventory_id"] for row in response.data or []}
