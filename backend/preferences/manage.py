"""
Preference management for hotel alerts.

Validation happens here, at the boundary, so the matching run only ever
sees preferences with a hotel or an area. Deletion is a soft delete: the
row stays (with is_active = false) to keep its dedup history meaningful.
"""

from datetime import date, datetime, timezone
from typing import Any

from pydantic import ValidationError

from config.settings import MAX_ACTIVE_PREFERENCES
from models.preference import Preference, PreferenceCreate, PreferenceFields
from shared.error_logger import log_notification_error
from notifications.preference_matcher import find_candidates
from notifications.scorer import score_candidate, select_best
from shared.errors import PreferenceQuotaExceeded, PreferenceValidationError
from shared.utils import local_today, parse_date_string
from storage.inventory_store import InventoryStore
from storage.preference_store import PreferenceStore

DATE_FIELDS = ("checkin_date", "checkout_date")
PRICE_FIELDS = ("min_price", "max_price")
NOTIFY_FIELDS = ("notify_last_minute", "notify_price_drop", "notify_new_availability")
EDITABLE_FIELDS = set(PreferenceFields.model_fields)


def _format_validation_error(error: ValidationError) -> str:
    messages = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"])
        message = detail["msg"].removeprefix("Value error, ")
        messages.append(f"{location}: {message}" if location else message)
    return "; ".join(messages)


def _normalize_payload(payload: dict[str, Any]) -> dict[str, Any]:
    """
    Apply creation defaults to a raw payload.

    Empty or zero prices mean "no limit", missing flexibility means 0 and
    notify flags are on unless explicitly set to False.
    """
    normalized = {key: payload.get(key) for key in EDITABLE_FIELDS if key in payload}

    for key in PRICE_FIELDS:
        if not normalized.get(key):
            normalized[key] = None

    for key in DATE_FIELDS:
        value = normalized.get(key)
        if value in (None, ""):
            normalized[key] = None
            continue
        parsed = parse_date_string(value)
        if parsed is None:
            raise PreferenceValidationError(f"{key}: invalid date '{value}'")
        normalized[key] = parsed

    for key in ("hotel_id", "area_name"):
        if not normalized.get(key):
            normalized[key] = None

    normalized["flexibility_days"] = normalized.get("flexibility_days") or 0

    for key in NOTIFY_FIELDS:
        normalized[key] = payload.get(key) is not False

    return normalized


def _validate(fields: dict[str, Any]) -> PreferenceCreate:
    try:
        return PreferenceCreate.model_validate(fields)
    except ValidationError as e:
        raise PreferenceValidationError(_format_validation_error(e)) from e


def list_preferences(user_id: str, store: PreferenceStore | None = None) -> list[Preference]:
    """Active preferences for a user, newest first."""
    store = store or PreferenceStore()
    return store.list_for_user(user_id)


def preview_first_match(
    preference: Preference,
    store: PreferenceStore,
    inventory_store: InventoryStore,
    today: date,
) -> dict[str, Any] | None:
    """
    Record the current best candidate for a freshly created preference.

    This gives the user immediate feedback; it does not touch the dedup
    ledger, so the same row can still be notified by the next matching run.
    """
    candidates = find_candidates(preference, inventory_store, today)
    best = select_best([(score_candidate(preference, row, today), row) for row in candidates])
    if best is None:
        return None

    score, row = best
    record = {
        "preference_id": preference.id,
        "user_id": preference.user_id,
        "hotel_id": row.hotel_id,
        "room_inventory_id": row.id,
        "match_date": row.date.isoformat(),
        "match_price": row.price,
        "match_score": score,
    }
    store.record_preview_match(record)
    return record


def create_preference(
    user_id: str,
    payload: dict[str, Any],
    store: PreferenceStore | None = None,
    inventory_store: InventoryStore | None = None,
    today: date | None = None,
) -> Preference:
    """
    Validate and store a new preference, then preview its best current match.

    Raises:
        PreferenceValidationError: Neither hotel_id nor area_name, bad prices or dates
        PreferenceQuotaExceeded: User already has MAX_ACTIVE_PREFERENCES active preferences
    """
    store = store or PreferenceStore()
    fields = _validate(_normalize_payload(payload))

    if store.count_active(user_id) >= MAX_ACTIVE_PREFERENCES:
        raise PreferenceQuotaExceeded(
            f"A user can have at most {MAX_ACTIVE_PREFERENCES} active preferences"
        )

    row = {"user_id": user_id, **fields.model_dump(mode="json"), "is_active": True}
    preference = store.insert(row)
    print(f"✓ Created preference {preference.id} for user {user_id}")

    try:
        inventory_store = inventory_store or InventoryStore(store.client)
        preview_first_match(preference, store, inventory_store, today or local_today())
    except Exception as e:
        error_file = log_notification_error(
            error_type="preferences",
            error_message=str(e),
            context={"preference_id": preference.id, "user_id": user_id},
        )
        print(f"  ⚠️  Could not preview matches for new preference. Details logged to: {error_file}")

    return preference


def update_preference(
    user_id: str,
    preference_id: str,
    updates: dict[str, Any],
    store: PreferenceStore | None = None,
) -> Preference:
    """
    Apply user edits to an active preference.

    Only search criteria and notify flags can change. The merged result must
    still name a hotel or an area.

    Raises:
        PreferenceValidationError: Unknown preference, non-editable field or invalid result
    """
    store = store or PreferenceStore()

    unknown = set(updates) - EDITABLE_FIELDS
    if unknown:
        raise PreferenceValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

    current = store.get_preference(user_id, preference_id)
    if current is None:
        raise PreferenceValidationError(f"Preference {preference_id} not found")

    merged = current.model_dump(include=EDITABLE_FIELDS)
    for key, value in updates.items():
        if key in PRICE_FIELDS and not value:
            value = None
        if key in DATE_FIELDS and value not in (None, ""):
            parsed = parse_date_string(value)
            if parsed is None:
                raise PreferenceValidationError(f"{key}: invalid date '{value}'")
            value = parsed
        merged[key] = value if value != "" else None

    validated = _validate(merged).model_dump(mode="json")
    changes = {key: validated[key] for key in updates}
    changes["updated_at"] = datetime.now(timezone.utc).isoformat()

    updated = store.update(user_id, preference_id, changes)
    if updated is None:
        raise PreferenceValidationError(f"Preference {preference_id} not found")
    return updated


def delete_preference(
    user_id: str, preference_id: str, store: PreferenceStore | None = None
) -> bool:
    """Soft delete. Returns False if the preference does not belong to the user."""
    store = store or PreferenceStore()
    return store.update(user_id, preference_id, {"is_active": False}) is not None
