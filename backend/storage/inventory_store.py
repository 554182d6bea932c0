"""Read access to room inventory joined with hotel details."""

from datetime import date
from typing import Any

from models.inventory import InventoryRow
from shared.db import get_supabase_client
from shared.errors import DataError

INVENTORY_COLUMNS = (
    "id, hotel_id, date, available_rooms, price, "
    "hotels!inner(id, name, city, prefecture)"
)


class InventoryStore:
    """Read-only view of room_inventory."""

    def __init__(self, client: Any = None):
        self.client = client if client is not None else get_supabase_client()

    def list_available_inventory(
        self,
        start: date,
        end: date,
        min_price: int | None = None,
        max_price: int | None = None,
        hotel_id: str | None = None,
    ) -> list[InventoryRow]:
        """
        Fetch rows with free rooms dated within [start, end], cheapest first.

        Area filtering needs the joined hotel and is left to the caller.

        Raises:
            DataError: If the query fails or times out
        """
        try:
            query = (
                self.client.table("room_inventory")
                .select(INVENTORY_COLUMNS)
                .gt("available_rooms", 0)
                .gte("date", start.isoformat())
                .lte("date", end.isoformat())
            )

            if min_price is not None:
                query = query.gte("price", min_price)
            if max_price is not None:
                query = query.lte("price", max_price)
            if hotel_id:
                query = query.eq("hotel_id", hotel_id)

            response = query.order("price", desc=False).execute()
        except Exception as e:
            raise DataError(f"Inventory read failed: {e}") from e

        return [InventoryRow.model_validate(row) for row in response.data or []]
