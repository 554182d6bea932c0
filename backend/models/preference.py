"""Pydantic models for user search preferences."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from models.types import HotelID, PreferenceID, Price, UserID


class PreferenceFields(BaseModel):
    """Search criteria shared by stored and incoming preferences."""

    model_config = ConfigDict(str_strip_whitespace=True)

    hotel_id: HotelID | None = None
    area_name: str | None = None
    min_price: Price | None = Field(None, ge=0)
    max_price: Price | None = Field(None, ge=0)
    checkin_date: date | None = None
    checkout_date: date | None = None
    flexibility_days: int = Field(0, ge=0)
    notify_last_minute: bool = True
    notify_price_drop: bool = True
    notify_new_availability: bool = True


class Preference(PreferenceFields):
    """Stored preference row from user_preferences."""

    id: PreferenceID
    user_id: UserID
    is_active: bool = True
    created_at: datetime | None = None


class PreferenceCreate(PreferenceFields):
    """Preference payload accepted at creation."""

    @model_validator(mode="after")
    def _check_criteria(self) -> "PreferenceCreate":
        if not self.hotel_id and not self.area_name:
            raise ValueError("Either hotel_id or area_name must be specified")
        if (
            self.min_price is not None
            and self.max_price is not None
            and self.min_price > self.max_price
        ):
            raise ValueError("min_price must not exceed max_price")
        if (
            self.checkin_date is not None
            and self.checkout_date is not None
            and self.checkout_date < self.checkin_date
        ):
            raise ValueError("checkout_date must not be before checkin_date")
        return self


class UserProfile(BaseModel):
    """Owner profile used for delivery and opt-out."""

    id: UserID
    email: str = Field(..., pattern=r"^[^@]+@[^@]+\.[^@]+$")
    full_name: str | None = None
    notification_enabled: bool = True
