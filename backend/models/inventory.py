"""Pydantic models for hotels and room inventory snapshots."""

from datetime import date

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from models.types import HotelID, InventoryRowID, Price


class Hotel(BaseModel):
    id: HotelID
    name: str
    city: str | None = None
    prefecture: str | None = None


class InventoryRow(BaseModel):
    """One hotel/date price and availability row from room_inventory."""

    model_config = ConfigDict(populate_by_name=True)

    id: InventoryRowID
    hotel_id: HotelID
    date: date
    available_rooms: int = Field(..., ge=0)
    price: Price = Field(..., ge=0)
    # Supabase returns the joined table under its table name
    hotel: Hotel | None = Field(None, validation_alias=AliasChoices("hotel", "hotels"))

    @property
    def hotel_name(self) -> str:
        return self.hotel.name if self.hotel else "Unknown Hotel"
