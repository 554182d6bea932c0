"""
CLI script for processing the notification queue and sending emails.

Pending notifications are grouped per user. A user with one pending match
gets an individual alert, a user with several gets one digest. Afterwards,
sent notifications older than the retention period are deleted.

Usage:
    # Send pending notifications
    uv run python -m notifications.process_notification_queue

    # Move failed notifications below the retry limit back to pending first
    uv run python -m notifications.process_notification_queue --requeue-failed

    # Dry run (don't actually send emails or change statuses)
    uv run python -m notifications.process_notification_queue --dry-run
"""

import argparse
import sys
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from config.settings import (
    DISPATCH_BATCH_SIZE,
    MAX_DELIVERY_RETRIES,
    SEND_RATE_LIMIT_SECONDS,
    SENT_RETENTION_DAYS,
)
from models.notification import NotificationQueueEntry
from models.preference import UserProfile
from notifications.email_sender import (
    MailSender,
    send_digest,
    send_individual_notification,
)
from shared.error_logger import log_notification_error
from shared.db import get_supabase_client
from shared.errors import DataError
from shared.utils import print_summary
from storage.notification_queue import NotificationQueue
from storage.preference_store import PreferenceStore


def group_by_user(
    notifications: list[NotificationQueueEntry],
) -> dict[str, list[NotificationQueueEntry]]:
    """Group notifications by user_id, keeping queue order within and across groups."""
    notifications_by_user: dict[str, list[NotificationQueueEntry]] = {}
    for notification in notifications:
        notifications_by_user.setdefault(notification.user_id, []).append(notification)
    return notifications_by_user


def send_user_notifications(
    user: UserProfile,
    notifications: list[NotificationQueueEntry],
    mail_sender: MailSender,
) -> dict[str, Any]:
    """Individual email for exactly one notification, digest for more."""
    if len(notifications) == 1:
        return send_individual_notification(user, notifications[0], mail_sender)
    return send_digest(user, notifications, mail_sender)


def retention_cutoff(now: datetime, days: int = SENT_RETENTION_DAYS) -> datetime:
    return now - timedelta(days=days)


def cleanup_sent_notifications(queue: NotificationQueue, now: datetime) -> int:
    """Delete sent notifications older than the retention period. Ledger is untouched."""
    cutoff = retention_cutoff(now)
    deleted = queue.delete_sent_before(cutoff)
    print(f"Deleted {deleted} sent notification(s) older than {cutoff.date().isoformat()}")
    return deleted


def requeue_failed_notifications(
    queue: NotificationQueue, max_retries: int = MAX_DELIVERY_RETRIES
) -> int:
    """Move failed notifications with retry_count < max_retries back to pending."""
    requeued = queue.requeue_failed(max_retries)
    print(f"Requeued {requeued} failed notification(s) (retry limit {max_retries})")
    return requeued


def run_dispatch(
    queue: NotificationQueue | None = None,
    preference_store: PreferenceStore | None = None,
    mail_sender: MailSender | None = None,
    batch_size: int = DISPATCH_BATCH_SIZE,
    requeue_failed: bool = False,
    max_retries: int = MAX_DELIVERY_RETRIES,
    dry_run: bool = False,
    now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    rate_limit_seconds: float = SEND_RATE_LIMIT_SECONDS,
) -> dict[str, int]:
    """
    Send pending notifications and clean up old sent ones.

    Delivery failures are recorded on the notifications and never raised.
    A DataError while reading the queue aborts the run.

    Returns:
        Dictionary with stats: sent, failed, skipped (user groups),
        notifications_sent, notifications_failed, requeued, deleted
    """
    if queue is None or preference_store is None:
        client = get_supabase_client()
        queue = queue or NotificationQueue(client)
        preference_store = preference_store or PreferenceStore(client)
    mail_sender = mail_sender or MailSender()

    stats = {
        "sent": 0,
        "failed": 0,
        "skipped": 0,
        "notifications_sent": 0,
        "notifications_failed": 0,
        "requeued": 0,
        "deleted": 0,
    }

    if requeue_failed and not dry_run:
        stats["requeued"] = requeue_failed_notifications(queue, max_retries)

    pending = queue.fetch_pending(batch_size)
    notifications_by_user = group_by_user(pending)

    if not notifications_by_user:
        print("No pending notifications to process.")
    else:
        print(f"Found {len(pending)} pending notification(s) for {len(notifications_by_user)} user(s)")

    profiles = preference_store.get_user_profiles(list(notifications_by_user))

    for user_id, notifications in notifications_by_user.items():
        print(f"\nProcessing user {user_id} ({len(notifications)} notifications)...")
        notification_ids = [n.id for n in notifications]

        user = profiles.get(user_id)
        if user is None:
            print("  ⚠️  User profile not found, skipping")
            stats["skipped"] += 1
            continue

        if not user.notification_enabled:
            print("  ⚠️  Notifications disabled for user, skipping")
            stats["skipped"] += 1
            if not dry_run:
                queue.mark_failed(notifications, "User notifications disabled")
            continue

        if dry_run:
            kind = "individual alert" if len(notifications) == 1 else "digest"
            print(f"  [DRY RUN] Would send {kind} to user {user_id}")
            stats["sent"] += 1
            stats["notifications_sent"] += len(notifications)
            continue

        result = send_user_notifications(user, notifications, mail_sender)

        if result["success"]:
            queue.mark_sent(notification_ids, now())
            print(f"  ✓ Sent to user {user_id}")
            stats["sent"] += 1
            stats["notifications_sent"] += len(notifications)
        else:
            error_msg = str(result.get("error") or "Unknown error")
            queue.mark_failed(notifications, error_msg)
            print(f"  ✗ Failed to send to user {user_id}: {error_msg}")
            stats["failed"] += 1
            stats["notifications_failed"] += len(notifications)

            error_file = log_notification_error(
                error_type="sending",
                error_message=error_msg,
                context={
                    "user_id": user_id,
                    "notification_count": len(notifications),
                    "notification_ids": notification_ids,
                },
            )
            print(f"    Error details logged to: {error_file}")

        # Rate limiting
        if rate_limit_seconds:
            time.sleep(rate_limit_seconds)

    if not dry_run:
        stats["deleted"] = cleanup_sent_notifications(queue, now())

    print_summary("Notification Dispatch Complete", stats)
    return stats


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Process notification queue and send emails"
    )

    parser.add_argument(
        "--batch-size",
        type=int,
        default=DISPATCH_BATCH_SIZE,
        help=f"Maximum pending notifications per run (default: {DISPATCH_BATCH_SIZE})",
    )

    parser.add_argument(
        "--requeue-failed",
        action="store_true",
        help="Requeue failed notifications below the retry limit before sending",
    )

    parser.add_argument(
        "--max-retries",
        type=int,
        default=MAX_DELIVERY_RETRIES,
        help=f"Retry limit used with --requeue-failed (default: {MAX_DELIVERY_RETRIES})",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Dry run mode (don't actually send emails)",
    )

    args = parser.parse_args()

    try:
        run_dispatch(
            batch_size=args.batch_size,
            requeue_failed=args.requeue_failed,
            max_retries=args.max_retries,
            dry_run=args.dry_run,
        )
    except DataError as e:
        error_file = log_notification_error(error_type="sending", error_message=str(e))
        print(f"✗ Dispatch run aborted: {e}")
        print(f"  Error details logged to: {error_file}")
        sys.exit(1)


if __name__ == "__main__":
    main()
