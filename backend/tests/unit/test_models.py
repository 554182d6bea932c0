"""Unit tests for Pydantic models."""

import unittest
from datetime import date

from pydantic import ValidationError

from models import (
    InventoryRow,
    MatchData,
    NotificationQueueEntry,
    Preference,
    PreferenceCreate,
    UserProfile,
)


class TestPreferenceModels(unittest.TestCase):
    """Tests for preference Pydantic models."""

    def test_create_with_area_only(self):
        pref = PreferenceCreate(area_name="  東京都 ")

        self.assertEqual(pref.area_name, "東京都")
        self.assertEqual(pref.flexibility_days, 0)
        self.assertTrue(pref.notify_last_minute)
        self.assertTrue(pref.notify_price_drop)
        self.assertTrue(pref.notify_new_availability)

    def test_create_requires_hotel_or_area(self):
        with self.assertRaises(ValidationError) as ctx:
            PreferenceCreate(min_price=10000)

        self.assertIn("hotel_id or area_name", str(ctx.exception))

    def test_create_rejects_inverted_price_band(self):
        with self.assertRaises(ValidationError):
            PreferenceCreate(area_name="東京都", min_price=50000, max_price=20000)

    def test_create_rejects_checkout_before_checkin(self):
        with self.assertRaises(ValidationError):
            PreferenceCreate(
                hotel_id="hotel-1",
                checkin_date=date(2026, 11, 5),
                checkout_date=date(2026, 11, 4),
            )

    def test_negative_flexibility_rejected(self):
        with self.assertRaises(ValidationError):
            PreferenceCreate(area_name="東京都", flexibility_days=-1)

    def test_stored_preference_from_row(self):
        row = {
            "id": "pref-1",
            "user_id": "user-1",
            "hotel_id": None,
            "area_name": "大阪府",
            "min_price": None,
            "max_price": 40000,
            "checkin_date": "2026-11-01",
            "checkout_date": None,
            "flexibility_days": 2,
            "notify_last_minute": False,
            "notify_price_drop": True,
            "notify_new_availability": True,
            "is_active": True,
            "created_at": "2026-10-01T00:00:00+00:00",
        }

        pref = Preference.model_validate(row)

        self.assertEqual(pref.checkin_date, date(2026, 11, 1))
        self.assertEqual(pref.max_price, 40000)
        self.assertFalse(pref.notify_last_minute)


class TestInventoryRow(unittest.TestCase):
    def test_joined_hotel_under_table_name(self):
        row = InventoryRow.model_validate(
            {
                "id": "row-1",
                "hotel_id": "hotel-1",
                "date": "2026-10-20",
                "available_rooms": 2,
                "price": 25000,
                "hotels": {"id": "hotel-1", "name": "ホテル東京ベイ", "city": "港区", "prefecture": "東京都"},
            }
        )

        self.assertEqual(row.hotel.prefecture, "東京都")
        self.assertEqual(row.hotel_name, "ホテル東京ベイ")

    def test_missing_hotel_name_fallback(self):
        row = InventoryRow(id="row-1", hotel_id="hotel-1", date=date(2026, 10, 20), available_rooms=1, price=1)

        self.assertEqual(row.hotel_name, "Unknown Hotel")

    def test_negative_rooms_rejected(self):
        with self.assertRaises(ValidationError):
            InventoryRow(id="row-1", hotel_id="hotel-1", date=date(2026, 10, 20), available_rooms=-1, price=1)


class TestNotificationModels(unittest.TestCase):
    def _match_data(self, **overrides):
        data = {
            "hotel_name": "ホテル東京ベイ",
            "date": "2026-10-20",
            "price": 30000,
            "available_rooms": 3,
            "days_until": 2,
            "score": 100,
        }
        data.update(overrides)
        return data

    def test_score_bounds(self):
        with self.assertRaises(ValidationError):
            MatchData(**self._match_data(score=101))
        with self.assertRaises(ValidationError):
            MatchData(**self._match_data(score=-1))

    def test_queue_entry_from_row(self):
        entry = NotificationQueueEntry.model_validate(
            {
                "id": "notif-1",
                "preference_id": "pref-1",
                "user_id": "user-1",
                "hotel_id": "hotel-1",
                "room_inventory_id": "row-1",
                "notification_type": "last_minute",
                "match_data": self._match_data(),
                "status": "failed",
                "retry_count": 2,
                "created_at": "2026-10-18T01:00:00+00:00",
                "error_message": "timeout",
            }
        )

        self.assertEqual(entry.retry_count, 2)
        self.assertEqual(entry.match_data.date, date(2026, 10, 20))
        self.assertIsNone(entry.sent_at)

    def test_unknown_status_rejected(self):
        with self.assertRaises(ValidationError):
            NotificationQueueEntry(
                id="notif-1",
                preference_id="pref-1",
                user_id="user-1",
                hotel_id="hotel-1",
                room_inventory_id="row-1",
                notification_type="match",
                match_data=MatchData(**self._match_data()),
                status="queued",
                created_at="2026-10-18T01:00:00+00:00",
            )


class TestUserProfile(unittest.TestCase):
    def test_defaults_to_enabled(self):
        profile = UserProfile(id="user-1", email="taro@example.com")

        self.assertTrue(profile.notification_enabled)

    def test_invalid_email_rejected(self):
        with self.assertRaises(ValidationError):
            UserProfile(id="user-1", email="not-an-email")


if __name__ == "__main__":
    unittest.main()
