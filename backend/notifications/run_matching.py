"""
CLI script for matching active preferences against live inventory.

Each active preference gets at most one new notification per run: its best
scoring candidate that has not been notified before.

Usage:
    # Run matching and queue notifications
    uv run python -m notifications.run_matching

    # Dry run (score and report, don't touch the ledger or queue)
    uv run python -m notifications.run_matching --dry-run

    # Use more workers
    uv run python -m notifications.run_matching --workers 8
"""

import argparse
import sys
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import date

from config.settings import MATCHING_WORKERS
from models.preference import Preference, UserProfile
from notifications.classifier import build_notification
from shared.error_logger import log_notification_error
from notifications.preference_matcher import find_candidates
from notifications.scorer import score_candidate, select_best
from shared.db import get_supabase_client
from shared.errors import DataError
from shared.utils import local_today, print_summary
from storage.inventory_store import InventoryStore
from storage.match_ledger import MatchLedger
from storage.notification_queue import NotificationQueue
from storage.preference_store import PreferenceStore

# Per-preference outcomes
NOTIFIED = "notified"
NO_MATCH = "no_match"
ALREADY_NOTIFIED = "already_notified"
CLAIMED_ELSEWHERE = "claimed_elsewhere"


def _wants_alerts(preference: Preference, profile: UserProfile | None) -> bool:
    if profile is None or not profile.notification_enabled:
        return False
    return (
        preference.notify_new_availability
        or preference.notify_last_minute
        or preference.notify_price_drop
    )


def match_preference(
    preference: Preference,
    inventory_store: InventoryStore,
    ledger: MatchLedger,
    queue: NotificationQueue,
    today: date,
    dry_run: bool = False,
) -> str:
    """
    Match one preference and queue a notification for its best new candidate.

    Every candidate seen this run is written to the ledger, not only the one
    notified, so an unchanged inventory yields nothing on the next run.
    The ledger write happens before the notification is queued.

    Returns:
        One of NOTIFIED, NO_MATCH, ALREADY_NOTIFIED, CLAIMED_ELSEWHERE

    Raises:
        DataError: If inventory, ledger or queue access fails
    """
    candidates = find_candidates(preference, inventory_store, today)
    if not candidates:
        return NO_MATCH

    fresh = ledger.filter_unnotified(preference.id, candidates)
    if not fresh:
        return ALREADY_NOTIFIED

    scored = [(score_candidate(preference, row, today), row) for row in fresh]
    best = select_best(scored)
    if best is None:
        return ALREADY_NOTIFIED
    score, row = best
    notification = build_notification(preference, row, score, today)

    if dry_run:
        print(
            f"  [DRY RUN] {preference.id}: {row.hotel_name} {row.date} "
            f"¥{row.price:,} score={score} type={notification.notification_type}"
        )
        return NOTIFIED

    newly_recorded = ledger.record_notified(preference.id, [r.id for r in fresh])
    if row.id not in newly_recorded:
        # An overlapping run recorded this pair first and owns the notification
        return CLAIMED_ELSEWHERE

    queue.enqueue(notification)
    print(
        f"  ✓ Queued {notification.notification_type} for preference {preference.id}: "
        f"{row.hotel_name} {row.date}"
    )
    return NOTIFIED


def run_matching(
    preference_store: PreferenceStore | None = None,
    inventory_store: InventoryStore | None = None,
    ledger: MatchLedger | None = None,
    queue: NotificationQueue | None = None,
    today: date | None = None,
    max_workers: int = MATCHING_WORKERS,
    dry_run: bool = False,
) -> dict[str, int]:
    """
    Run one matching pass over all active preferences.

    Preferences are independent and processed by a bounded worker pool.
    A DataError aborts the run and is re-raised; work already committed by
    finished preferences stands.

    Returns:
        Dictionary with stats per outcome plus skipped and errors
    """
    if None in (preference_store, inventory_store, ledger, queue):
        client = get_supabase_client()
        preference_store = preference_store or PreferenceStore(client)
        inventory_store = inventory_store or InventoryStore(client)
        ledger = ledger or MatchLedger(client)
        queue = queue or NotificationQueue(client)

    today = today or local_today()
    print(f"Starting preference matching for {today.isoformat()}...")

    preferences = preference_store.list_active_preferences()
    profiles = preference_store.get_user_profiles([p.user_id for p in preferences])

    stats = {
        "preferences_checked": len(preferences),
        "skipped": 0,
        NOTIFIED: 0,
        NO_MATCH: 0,
        ALREADY_NOTIFIED: 0,
        CLAIMED_ELSEWHERE: 0,
        "errors": 0,
    }

    eligible = []
    for preference in preferences:
        if _wants_alerts(preference, profiles.get(preference.user_id)):
            eligible.append(preference)
        else:
            stats["skipped"] += 1

    print(f"Found {len(preferences)} active preferences ({len(eligible)} eligible)")

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
        futures = {
            executor.submit(
                match_preference, preference, inventory_store, ledger, queue, today, dry_run
            ): preference
            for preference in eligible
        }

        for future in as_completed(futures):
            preference = futures[future]
            try:
                outcome = future.result()
            except DataError:
                executor.shutdown(wait=False, cancel_futures=True)
                raise
            except Exception as e:
                stats["errors"] += 1
                error_file = log_notification_error(
                    error_type="matching",
                    error_message=str(e),
                    context={
                        "preference_id": preference.id,
                        "user_id": preference.user_id,
                    },
                )
                print(f"  ⚠️  Error matching preference {preference.id}. Details logged to: {error_file}")
                continue

            stats[outcome] += 1

    print_summary("Preference Matching Complete", stats)
    return stats


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Match active hotel preferences against inventory"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Score and report matches without writing the ledger or queue",
    )

    parser.add_argument(
        "--workers",
        type=int,
        default=MATCHING_WORKERS,
        help=f"Number of preferences matched in parallel (default: {MATCHING_WORKERS})",
    )

    args = parser.parse_args()

    try:
        run_matching(max_workers=args.workers, dry_run=args.dry_run)
    except DataError as e:
        error_file = log_notification_error(error_type="matching", error_message=str(e))
        print(f"✗ Matching run aborted: {e}")
        print(f"  Error details logged to: {error_file}")
        sys.exit(1)


if __name__ == "__main__":
    main()
