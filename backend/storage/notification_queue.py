"""Durable notification queue shared by the matching and dispatch runs."""

from collections import defaultdict
from datetime import datetime
from typing import Any

from models.notification import NotificationCreate, NotificationQueueEntry
from shared.db import get_supabase_client
from shared.errors import DataError

QUEUE_TABLE = "notifications_queue"


class NotificationQueue:
    def __init__(self, client: Any = None):
        self.client = client if client is not None else get_supabase_client()

    def enqueue(self, notification: NotificationCreate) -> None:
        try:
            self.client.table(QUEUE_TABLE).insert(
                notification.model_dump(mode="json"), returning="minimal"
            ).execute()
        except Exception as e:
            raise DataError(
                f"Could not queue notification for preference {notification.preference_id}: {e}"
            ) from e

    def fetch_pending(self, limit: int) -> list[NotificationQueueEntry]:
        """Oldest pending notifications first."""
        try:
            response = (
                self.client.table(QUEUE_TABLE)
                .select("*")
                .eq("status", "pending")
                .order("created_at", desc=False)
                .limit(limit)
                .execute()
            )
        except Exception as e:
            raise DataError(f"Pending notification read failed: {e}") from e

        return [NotificationQueueEntry.model_validate(row) for row in response.data or []]

    def mark_sent(self, notification_ids: list[str], sent_at: datetime) -> None:
        try:
            self.client.table(QUEUE_TABLE).update(
                {"status": "sent", "sent_at": sent_at.isoformat(), "error_message": None}
            ).in_("id", notification_ids).execute()
        except Exception as e:
            raise DataError(f"Could not mark notifications sent: {e}") from e

    def mark_failed(
        self, notifications: list[NotificationQueueEntry], error_message: str
    ) -> None:
        """Mark as failed and bump each row's own retry_count."""
        # PostgREST updates cannot increment in place, so rows sharing a
        # current retry_count are updated together.
        ids_by_retry_count: dict[int, list[str]] = defaultdict(list)
        for notification in notifications:
            ids_by_retry_count[notification.retry_count].append(notification.id)

        for retry_count, ids in ids_by_retry_count.items():
            try:
                self.client.table(QUEUE_TABLE).update(
                    {
                        "status": "failed",
                        "error_message": error_message,
                        "retry_count": retry_count + 1,
                    }
                ).in_("id", ids).execute()
            except Exception as e:
                raise DataError(f"Could not mark notifications failed: {e}") from e

    def requeue_failed(self, max_retries: int) -> int:
        """Move failed notifications with retry_count below max_retries back to pending."""
        try:
            response = (
                self.client.table(QUEUE_TABLE)
                .update({"status": "pending", "error_message": None})
                .eq("status", "failed")
                .lt("retry_count", max_retries)
                .execute()
            )
        except Exception as e:
            raise DataError(f"Could not requeue failed notifications: {e}") from e
        return len(response.data or [])

    def delete_sent_before(self, cutoff: datetime) -> int:
        try:
            response = (
                self.client.table(QUEUE_TABLE)
                .delete()
                .eq("status", "sent")
                .lt("sent_at", cutoff.isoformat())
                .execute()
            )
        except Exception as e:
            raise DataError(f"Sent notification cleanup failed: {e}") from e
        return len(response.data or [])
