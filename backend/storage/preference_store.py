"""Access to user_preferences, user_profiles and preference_matches."""

from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from models.preference import Preference, UserProfile
from shared.db import get_supabase_client
from shared.error_logger import log_notification_error
from shared.errors import DataError

ModelT = TypeVar("ModelT", bound=BaseModel)


def _validate_rows(
    rows: list[dict[str, Any]], model: type[ModelT], table: str
) -> list[ModelT]:
    """Validate rows one at a time. Invalid rows are logged and left out."""
    valid = []
    for row in rows:
        try:
            valid.append(model.model_validate(row))
        except ValidationError as e:
            error_file = log_notification_error(
                error_type="data",
                error_message=str(e),
                context={"table": table, "row_id": row.get("id")},
            )
            print(f"  ⚠️  Skipping invalid {table} row {row.get('id')}. Details logged to: {error_file}")
    return valid


class PreferenceStore:
    def __init__(self, client: Any = None):
        self.client = client if client is not None else get_supabase_client()

    def list_active_preferences(self) -> list[Preference]:
        """
        All active preferences across users. Raises DataError on failure.

        Rows that fail validation are skipped so one bad row cannot stop a run.
        """
        try:
            response = (
                self.client.table("user_preferences")
                .select("*")
                .eq("is_active", True)
                .execute()
            )
        except Exception as e:
            raise DataError(f"Preference read failed: {e}") from e

        return _validate_rows(response.data or [], Preference, "user_preferences")

    def get_user_profiles(self, user_ids: list[str]) -> dict[str, UserProfile]:
        """Profiles keyed by user id. Users without a valid profile are absent."""
        if not user_ids:
            return {}

        try:
            response = (
                self.client.table("user_profiles")
                .select("id, email, full_name, notification_enabled")
                .in_("id", list(set(user_ids)))
                .execute()
            )
        except Exception as e:
            raise DataError(f"User profile read failed: {e}") from e

        rows = []
        for row in response.data or []:
            if row.get("notification_enabled") is None:
                row = {**row, "notification_enabled": True}
            rows.append(row)
        profiles = _validate_rows(rows, UserProfile, "user_profiles")
        return {profile.id: profile for profile in profiles}

    def list_for_user(self, user_id: str) -> list[Preference]:
        response = (
            self.client.table("user_preferences")
            .select("*")
            .eq("user_id", user_id)
            .eq("is_active", True)
            .order("created_at", desc=True)
            .execute()
        )
        return [Preference.model_validate(row) for row in response.data or []]

    def count_active(self, user_id: str) -> int:
        response = (
            self.client.table("user_preferences")
            .select("id", count="exact")
            .eq("user_id", user_id)
            .eq("is_active", True)
            .execute()
        )
        if response.count is not None:
            return int(response.count)
        return len(response.data or [])

    def insert(self, row: dict[str, Any]) -> Preference:
        response = self.client.table("user_preferences").insert(row).execute()
        if not response.data:
            raise DataError("Preference insert returned no row")
        return Preference.model_validate(response.data[0])

    def update(
        self, user_id: str, preference_id: str, updates: dict[str, Any]
    ) -> Preference | None:
        response = (
            self.client.table("user_preferences")
            .update(updates)
            .eq("id", preference_id)
            .eq("user_id", user_id)
            .execute()
        )
        if not response.data:
            return None
        return Preference.model_validate(response.data[0])

    def record_preview_match(self, row: dict[str, Any]) -> None:
        self.client.table("preference_matches").insert(
            row, returning="minimal"
        ).execute()

    def get_preference(self, user_id: str, preference_id: str) -> Preference | None:
        response = (
            self.client.table("user_preferences")
            .select("*")
            .eq("id", preference_id)
            .eq("user_id", user_id)
            .eq("is_active", True)
            .execute()
        )
        if not response.data:
            return None
        return Preference.model_validate(response.data[0])
