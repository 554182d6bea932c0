"""
Unit tests for notifications/process_notification_queue.py

Covers grouping, individual vs digest choice, status transitions,
retention cleanup and explicit requeue.
"""

import os
import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock, patch

from notifications.email_sender import MailSender
from notifications.process_notification_queue import (
    group_by_user,
    retention_cutoff,
    run_dispatch,
)
from shared.errors import DataError
from shared.retry import NO_RETRY
from storage.preference_store import PreferenceStore
from tests.fixtures.alert_factory import create_test_notification, create_test_user
from tests.fixtures.fake_stores import FakeNotificationQueue, FakePreferenceStore
from tests.fixtures.mock_helpers import create_mock_supabase

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


class TestGroupByUser(unittest.TestCase):
    def test_groups_keep_queue_order(self):
        n1 = create_test_notification(notification_id="1", user_id="u1")
        n2 = create_test_notification(notification_id="2", user_id="u2")
        n3 = create_test_notification(notification_id="3", user_id="u1")

        groups = group_by_user([n1, n2, n3])

        self.assertEqual(list(groups), ["u1", "u2"])
        self.assertEqual([n.id for n in groups["u1"]], ["1", "3"])


class TestRetentionCutoff(unittest.TestCase):
    def test_thirty_days(self):
        self.assertEqual(retention_cutoff(NOW), NOW - timedelta(days=30))


@patch("builtins.print")
@patch("notifications.process_notification_queue.log_notification_error", return_value="/tmp/err.txt")
class TestRunDispatch(unittest.TestCase):
    def setUp(self):
        self.queue = FakeNotificationQueue()
        self.profiles = [create_test_user("u1"), create_test_user("u2")]

    def _dispatch(self, **kwargs):
        kwargs.setdefault("mail_sender", Mock())
        return run_dispatch(
            queue=self.queue,
            preference_store=FakePreferenceStore([], self.profiles),
            now=lambda: NOW,
            rate_limit_seconds=0,
            **kwargs,
        )

    @patch("notifications.process_notification_queue.send_individual_notification")
    @patch("notifications.process_notification_queue.send_digest")
    def test_single_notification_sent_individually(self, mock_digest, mock_individual, mock_log, mock_print):
        mock_individual.return_value = {"success": True, "email_id": "e-1"}
        self.queue.add(create_test_notification(notification_id="n1", user_id="u1"))

        stats = self._dispatch()

        mock_individual.assert_called_once()
        mock_digest.assert_not_called()
        self.assertEqual(stats["sent"], 1)
        self.assertEqual(self.queue.rows["n1"].status, "sent")
        self.assertEqual(self.queue.rows["n1"].sent_at, NOW)

    @patch("notifications.process_notification_queue.send_individual_notification")
    @patch("notifications.process_notification_queue.send_digest")
    def test_three_notifications_one_digest(self, mock_digest, mock_individual, mock_log, mock_print):
        mock_digest.return_value = {"success": True, "email_id": "d-1"}
        for i in range(3):
            self.queue.add(create_test_notification(notification_id=f"n{i}", user_id="u1"))

        stats = self._dispatch()

        mock_digest.assert_called_once()
        mock_individual.assert_not_called()
        self.assertEqual(len(mock_digest.call_args.args[1]), 3)
        self.assertEqual(stats["notifications_sent"], 3)
        self.assertEqual(self.queue.by_status("pending"), [])
        self.assertEqual(len(self.queue.by_status("sent")), 3)

    @patch("notifications.process_notification_queue.send_individual_notification")
    def test_failed_send_marks_failed_and_increments_retry(self, mock_individual, mock_log, mock_print):
        mock_individual.return_value = {"success": False, "error": "Email send timed out after 15s"}
        self.queue.add(create_test_notification(notification_id="n1", user_id="u1"))

        stats = self._dispatch()

        notification = self.queue.rows["n1"]
        self.assertEqual(notification.status, "failed")
        self.assertEqual(notification.retry_count, 1)
        self.assertEqual(notification.error_message, "Email send timed out after 15s")
        self.assertEqual(stats["failed"], 1)
        self.assertEqual(mock_log.call_args.kwargs["error_type"], "sending")

    @patch("notifications.process_notification_queue.send_individual_notification")
    def test_failed_notifications_not_picked_up_next_run(self, mock_individual, mock_log, mock_print):
        mock_individual.return_value = {"success": False, "error": "timeout"}
        self.queue.add(create_test_notification(notification_id="n1", user_id="u1"))
        self._dispatch()
        mock_individual.reset_mock()

        stats = self._dispatch()

        mock_individual.assert_not_called()
        self.assertEqual(stats["sent"] + stats["failed"], 0)

    @patch("notifications.process_notification_queue.send_individual_notification")
    def test_requeue_failed_below_retry_limit(self, mock_individual, mock_log, mock_print):
        mock_individual.return_value = {"success": True, "email_id": "e"}
        self.queue.add(create_test_notification(notification_id="retry", user_id="u1", status="failed", retry_count=1))
        self.queue.add(create_test_notification(notification_id="dead", user_id="u2", status="failed", retry_count=3))

        stats = self._dispatch(requeue_failed=True, max_retries=3)

        self.assertEqual(stats["requeued"], 1)
        self.assertEqual(self.queue.rows["retry"].status, "sent")
        self.assertEqual(self.queue.rows["dead"].status, "failed")

    @patch("notifications.process_notification_queue.send_individual_notification")
    @patch("notifications.process_notification_queue.send_digest")
    def test_one_user_failure_does_not_stop_others(self, mock_digest, mock_individual, mock_log, mock_print):
        mock_individual.side_effect = [
            {"success": False, "error": "bounce"},
            {"success": True, "email_id": "e"},
        ]
        self.queue.add(create_test_notification(notification_id="a", user_id="u1", created_at=NOW - timedelta(minutes=2)))
        self.queue.add(create_test_notification(notification_id="b", user_id="u2", created_at=NOW - timedelta(minutes=1)))

        stats = self._dispatch()

        self.assertEqual(self.queue.rows["a"].status, "failed")
        self.assertEqual(self.queue.rows["b"].status, "sent")
        self.assertEqual((stats["sent"], stats["failed"]), (1, 1))

    def test_missing_profile_left_pending(self, mock_log, mock_print):
        self.queue.add(create_test_notification(notification_id="n1", user_id="ghost"))

        stats = self._dispatch()

        self.assertEqual(stats["skipped"], 1)
        self.assertEqual(self.queue.rows["n1"].status, "pending")

    def test_disabled_user_marked_failed(self, mock_log, mock_print):
        self.profiles = [create_test_user("u1", notification_enabled=False)]
        self.queue.add(create_test_notification(notification_id="n1", user_id="u1"))

        self._dispatch()

        self.assertEqual(self.queue.rows["n1"].status, "failed")
        self.assertEqual(self.queue.rows["n1"].error_message, "User notifications disabled")

    def test_batch_size_limits_selection(self, mock_log, mock_print):
        mail_sender = Mock()
        for i in range(5):
            self.queue.add(
                create_test_notification(
                    notification_id=f"n{i}", user_id="u1", created_at=NOW - timedelta(minutes=10 - i)
                )
            )

        with patch(
            "notifications.process_notification_queue.send_digest",
            return_value={"success": True, "email_id": "d"},
        ) as mock_digest:
            self._dispatch(mail_sender=mail_sender, batch_size=2)

        sent_ids = [n.id for n in mock_digest.call_args.args[1]]
        self.assertEqual(sent_ids, ["n0", "n1"])
        self.assertEqual(len(self.queue.by_status("pending")), 3)

    def test_retention_deletes_only_old_sent(self, mock_log, mock_print):
        self.queue.add(create_test_notification(notification_id="old", status="sent", sent_at=NOW - timedelta(days=31)))
        self.queue.add(create_test_notification(notification_id="recent", status="sent", sent_at=NOW - timedelta(days=29)))
        self.queue.add(create_test_notification(notification_id="failed", status="failed", retry_count=1))

        stats = self._dispatch()

        self.assertEqual(stats["deleted"], 1)
        self.assertNotIn("old", self.queue.rows)
        self.assertIn("recent", self.queue.rows)
        self.assertIn("failed", self.queue.rows)

    @patch("notifications.process_notification_queue.send_individual_notification")
    def test_dry_run_changes_nothing(self, mock_individual, mock_log, mock_print):
        self.queue.add(create_test_notification(notification_id="n1", user_id="u1"))
        self.queue.add(create_test_notification(notification_id="old", status="sent", sent_at=NOW - timedelta(days=40)))

        stats = self._dispatch(dry_run=True)

        mock_individual.assert_not_called()
        self.assertEqual(stats["sent"], 1)
        self.assertEqual(self.queue.rows["n1"].status, "pending")
        self.assertIn("old", self.queue.rows)

    @patch("storage.preference_store.log_notification_error", return_value="/tmp/err.txt")
    @patch("notifications.process_notification_queue.send_individual_notification")
    def test_invalid_profile_row_does_not_stop_other_users(
        self, mock_individual, mock_store_log, mock_log, mock_print
    ):
        mock_individual.return_value = {"success": True, "email_id": "e-1"}
        mock_supabase = create_mock_supabase(
            [
                {"id": "good", "email": "good@example.com", "full_name": None, "notification_enabled": True},
                {"id": "bad", "email": None, "full_name": None, "notification_enabled": True},
            ]
        )
        self.queue.add(create_test_notification(notification_id="n-good", user_id="good"))
        self.queue.add(create_test_notification(notification_id="n-bad", user_id="bad"))

        stats = run_dispatch(
            queue=self.queue,
            preference_store=PreferenceStore(mock_supabase),
            mail_sender=Mock(),
            now=lambda: NOW,
            rate_limit_seconds=0,
        )

        self.assertEqual(self.queue.rows["n-good"].status, "sent")
        self.assertEqual(self.queue.rows["n-bad"].status, "pending")
        self.assertEqual((stats["sent"], stats["skipped"]), (1, 1))
        mock_store_log.assert_called_once()

    @patch("notifications.email_sender.resend")
    def test_missing_unsubscribe_secret_recorded_as_failure(self, mock_resend, mock_log, mock_print):
        self.queue.add(create_test_notification(notification_id="n1", user_id="u1"))

        with patch.dict(os.environ, {"UNSUBSCRIBE_SECRET_KEY": ""}):
            stats = self._dispatch(mail_sender=MailSender(api_key="re_test", retry_policy=NO_RETRY))

        mock_resend.Emails.send.assert_not_called()
        self.assertEqual(self.queue.rows["n1"].status, "failed")
        self.assertEqual(self.queue.rows["n1"].retry_count, 1)
        self.assertEqual(stats["failed"], 1)

    def test_queue_read_failure_propagates(self, mock_log, mock_print):
        queue = Mock()
        queue.fetch_pending.side_effect = DataError("queue unavailable")

        with self.assertRaises(DataError):
            run_dispatch(
                queue=queue,
                preference_store=FakePreferenceStore([], []),
                mail_sender=Mock(),
                rate_limit_seconds=0,
            )


if __name__ == "__main__":
    unittest.main()
