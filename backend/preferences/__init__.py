"""User-facing preference management (list, create, update, soft delete)."""

from .manage import (
    create_preference,
    delete_preference,
    list_preferences,
    update_preference,
)

__all__ = [
    "create_preference",
    "delete_preference",
    "list_preferences",
    "update_preference",
]
