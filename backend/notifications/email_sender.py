"""
Email sending via Resend API for hotel match alerts.

Handles individual alerts (one pending match) and digests (several matches
for the same user). Every message carries a signed unsubscribe link.
"""

import hashlib
import os
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import date
from html import escape
from typing import Any

import resend

from config.settings import (
    DIGEST_FROM_EMAIL,
    EMAIL_TIMEOUT_SECONDS,
    NOTIFICATION_FROM_EMAIL,
    SENDER_NAME,
)
from models.notification import NotificationQueueEntry
from models.preference import UserProfile
from notifications.unsubscribe_tokens import generate_unsubscribe_token
from shared.errors import TransientDeliveryError
from shared.retry import RetryPolicy

DELIVERY_RETRY_POLICY = RetryPolicy(
    max_attempts=3,
    base_delay=1.0,
    backoff_factor=2.0,
    max_delay=8.0,
    retry_on=(TransientDeliveryError,),
)

TYPE_LABELS = {
    "last_minute": "直前割",
    "good_deal": "お買い得",
    "match": "新着",
}


def _frontend_base_url() -> str:
    return os.getenv("FRONTEND_BASE_URL", "https://lastminutestay.jp").rstrip("/")


class MailSender:
    """
    Thin wrapper around resend.Emails.send.

    Each attempt runs under a hard timeout; a timeout or API error becomes
    TransientDeliveryError. Attempts follow the shared retry policy.
    """

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float = EMAIL_TIMEOUT_SECONDS,
        retry_policy: RetryPolicy = DELIVERY_RETRY_POLICY,
    ):
        resend.api_key = api_key or os.getenv("RESEND_API_KEY")
        self.timeout = timeout
        self.retry_policy = retry_policy

    def send_email(
        self,
        to: str,
        subject: str,
        html: str,
        text: str,
        tags: list[dict[str, str]],
        from_address: str = NOTIFICATION_FROM_EMAIL,
        headers: dict[str, str] | None = None,
        idempotency_key: str | None = None,
    ) -> str | None:
        """
        Send one email and return the Resend email id.

        Every attempt reuses idempotency_key, so an attempt that timed out
        locally but reached Resend is not delivered twice.

        Raises:
            TransientDeliveryError: If every attempt failed or timed out
        """
        params: dict[str, Any] = {
            "from": f"{SENDER_NAME} <{from_address}>",
            "to": to,
            "subject": subject,
            "html": html,
            "text": text,
            "tags": tags,
        }
        if headers:
            params["headers"] = headers

        options = {"idempotency_key": idempotency_key} if idempotency_key else None

        return self.retry_policy.call(
            lambda: self._send_once(params, options), description=f"Email to {to}"
        )

    def _send_once(
        self, params: dict[str, Any], options: dict[str, str] | None = None
    ) -> str | None:
        executor = ThreadPoolExecutor(max_workers=1)
        if options:
            future = executor.submit(resend.Emails.send, params, options=options)
        else:
            future = executor.submit(resend.Emails.send, params)
        try:
            response = future.result(timeout=self.timeout)
        except FutureTimeoutError as e:
            raise TransientDeliveryError(
                f"Email send timed out after {self.timeout:g}s"
            ) from e
        except Exception as e:
            raise TransientDeliveryError(str(e)) from e
        finally:
            executor.shutdown(wait=False)

        return response.get("id") if response else None


def delivery_idempotency_key(notifications: list[NotificationQueueEntry]) -> str:
    """Stable key for one delivery of exactly these notifications."""
    ids = ",".join(sorted(str(n.id) for n in notifications))
    return f"hotel-alert/{hashlib.sha256(ids.encode('utf-8')).hexdigest()}"


def _build_unsubscribe_url(user_id: str) -> str:
    token = generate_unsubscribe_token(user_id)
    return f"{_frontend_base_url()}/unsubscribe?token={token}"


def _unsubscribe_headers(unsubscribe_url: str) -> dict[str, str]:
    return {
        "List-Unsubscribe": f"<{unsubscribe_url}>",
        "List-Unsubscribe-Post": "List-Unsubscribe=One-Click",
    }


def _format_date(value: date) -> str:
    weekdays = "月火水木金土日"
    return f"{value.year}年{value.month}月{value.day}日({weekdays[value.weekday()]})"


def _prepare_match_data(notifications: list[NotificationQueueEntry]) -> list[dict[str, Any]]:
    """
    Extract and format everything the templates need, once.

    Matches are listed by check-in date, then price.
    """
    base_url = _frontend_base_url()
    ordered = sorted(
        notifications, key=lambda n: (n.match_data.date, n.match_data.price)
    )

    prepared = []
    for notification in ordered:
        data = notification.match_data
        prepared.append(
            {
                "hotel_name": data.hotel_name,
                "date": data.date.isoformat(),
                "date_formatted": _format_date(data.date),
                "price_formatted": f"¥{data.price:,}",
                "available_rooms": data.available_rooms,
                "days_until": data.days_until,
                "type_label": TYPE_LABELS.get(notification.notification_type, "新着"),
                "is_last_minute": notification.notification_type == "last_minute",
                "hotel_url": f"{base_url}/hotels/{notification.hotel_id}?date={data.date.isoformat()}",
            }
        )
    return prepared


def build_individual_subject(notification: NotificationQueueEntry) -> str:
    data = notification.match_data
    return f"【空室】{data.hotel_name} - {data.date.isoformat()}"


def build_digest_subject(count: int) -> str:
    return f"【{SENDER_NAME}】新着ホテル {count}件"


def send_individual_notification(
    user: UserProfile,
    notification: NotificationQueueEntry,
    mail_sender: MailSender,
) -> dict[str, Any]:
    """
    Send a single match alert.

    Returns:
        Dictionary with 'success' (bool), 'email_id' (str if success), 'error' (str if failed)
    """
    try:
        match = _prepare_match_data([notification])[0]
        unsubscribe_url = _build_unsubscribe_url(user.id)

        email_id = mail_sender.send_email(
            to=user.email,
            subject=build_individual_subject(notification),
            html=_build_individual_html(user, match, unsubscribe_url),
            text=_build_individual_text(user, match, unsubscribe_url),
            tags=[
                {"name": "type", "value": notification.notification_type},
                {"name": "notification_id", "value": str(notification.id)},
            ],
            headers=_unsubscribe_headers(unsubscribe_url),
            idempotency_key=delivery_idempotency_key([notification]),
        )
    except (TransientDeliveryError, ValueError) as e:
        # ValueError: unsubscribe secret not configured
        return {"success": False, "error": str(e)}

    return {"success": True, "email_id": email_id}


def send_digest(
    user: UserProfile,
    notifications: list[NotificationQueueEntry],
    mail_sender: MailSender,
) -> dict[str, Any]:
    """
    Send one digest email listing all of a user's pending matches.

    Returns:
        Dictionary with 'success' (bool), 'email_id' (str if success), 'error' (str if failed)
    """
    if not notifications:
        return {"success": False, "error": "No notifications to send"}

    try:
        matches = _prepare_match_data(notifications)
        unsubscribe_url = _build_unsubscribe_url(user.id)

        email_id = mail_sender.send_email(
            to=user.email,
            subject=build_digest_subject(len(matches)),
            html=_build_digest_html(user, matches, unsubscribe_url),
            text=_build_digest_text(user, matches, unsubscribe_url),
            tags=[
                {"name": "type", "value": "digest"},
                {"name": "count", "value": str(len(matches))},
            ],
            from_address=DIGEST_FROM_EMAIL,
            headers=_unsubscribe_headers(unsubscribe_url),
            idempotency_key=delivery_idempotency_key(notifications),
        )
    except (TransientDeliveryError, ValueError) as e:
        return {"success": False, "error": str(e)}

    return {"success": True, "email_id": email_id}


_STYLE = """
    body { font-family: -apple-system, BlinkMacSystemFont, 'Hiragino Sans', sans-serif; color: #333; line-height: 1.6; }
    .container { max-width: 600px; margin: 0 auto; padding: 20px; }
    .header { background: #2196f3; color: white; padding: 20px; border-radius: 8px 8px 0 0; text-align: center; }
    .hotel-card { background: #f5f5f5; padding: 20px; border-radius: 8px; margin: 16px 0; }
    .badge { display: inline-block; background: #ff5722; color: white; padding: 2px 10px; border-radius: 12px; font-size: 12px; }
    .price { font-size: 22px; color: #d32f2f; font-weight: bold; }
    .button { display: inline-block; background: #2196f3; color: white; padding: 10px 24px; text-decoration: none; border-radius: 5px; }
    .footer { margin-top: 30px; font-size: 12px; color: #999; text-align: center; }
    .footer a { color: #2196f3; text-decoration: none; }
"""


def _greeting(user: UserProfile) -> str:
    return f"{user.full_name}様" if user.full_name else "こんにちは"


def _build_footer_html(unsubscribe_url: str) -> str:
    preferences_url = f"{_frontend_base_url()}/preferences"
    return f"""
    <div class="footer">
      <p>このメールは、あなたの希望条件に基づいて送信されています。</p>
      <p>
        <a href="{escape(preferences_url)}">通知設定を変更</a> |
        <a href="{escape(unsubscribe_url)}">配信停止</a>
      </p>
    </div>
"""


def _build_hotel_card_html(match: dict[str, Any]) -> str:
    html = f"""
    <div class="hotel-card">
      <span class="badge">{match['type_label']}</span>
      <h3>{escape(match['hotel_name'])}</h3>
      <p>📅 {match['date_formatted']}</p>
      <p>🛏️ 空室: {match['available_rooms']}室</p>
      <p class="price">{match['price_formatted']}/泊</p>
"""
    if match["is_last_minute"]:
        html += f"""
      <p style="color: #ff5722;">⚡ 直前割引！残り{match['days_until']}日</p>
"""
    html += f"""
      <a href="{escape(match['hotel_url'])}" class="button">詳細を見る</a>
    </div>
"""
    return html


def _build_individual_html(
    user: UserProfile, match: dict[str, Any], unsubscribe_url: str
) -> str:
    return f"""<!DOCTYPE html>
<html lang="ja">
<head>
  <meta charset="UTF-8">
  <style>{_STYLE}</style>
</head>
<body>
  <div class="container">
    <h2>🎉 マッチするホテルが見つかりました！</h2>
    <p>{escape(_greeting(user))}</p>
{_build_hotel_card_html(match)}
{_build_footer_html(unsubscribe_url)}
  </div>
</body>
</html>
"""


def _build_digest_html(
    user: UserProfile, matches: list[dict[str, Any]], unsubscribe_url: str
) -> str:
    cards = "".join(_build_hotel_card_html(match) for match in matches)
    search_url = f"{_frontend_base_url()}/search"

    return f"""<!DOCTYPE html>
<html lang="ja">
<head>
  <meta charset="UTF-8">
  <style>{_STYLE}</style>
</head>
<body>
  <div class="container">
    <div class="header">
      <h2 style="margin: 0;">📋 新着ホテル {len(matches)}件</h2>
    </div>
    <p>{escape(_greeting(user))}</p>
    <p>ご希望の条件に合うホテルが{len(matches)}件見つかりました。</p>
{cards}
    <div style="text-align: center; margin: 30px 0;">
      <a href="{escape(search_url)}" class="button">すべて見る</a>
    </div>
{_build_footer_html(unsubscribe_url)}
  </div>
</body>
</html>
"""


def _build_match_text(match: dict[str, Any]) -> str:
    text = f"""[{match['type_label']}] {match['hotel_name']}
日付: {match['date_formatted']}
料金: {match['price_formatted']}/泊
空室: {match['available_rooms']}室
"""
    if match["is_last_minute"]:
        text += f"直前割引！残り{match['days_until']}日\n"
    text += f"詳細: {match['hotel_url']}\n"
    return text


def _build_text_footer(unsubscribe_url: str) -> str:
    return f"""
通知設定を変更: {_frontend_base_url()}/preferences
配信停止: {unsubscribe_url}

---
{SENDER_NAME}
"""


def _build_individual_text(
    user: UserProfile, match: dict[str, Any], unsubscribe_url: str
) -> str:
    return (
        f"{_greeting(user)}\n\nマッチするホテルが見つかりました！\n\n"
        + _build_match_text(match)
        + _build_text_footer(unsubscribe_url)
    )


def _build_digest_text(
    user: UserProfile, matches: list[dict[str, Any]], unsubscribe_url: str
) -> str:
    text = f"{_greeting(user)}\n\nご希望の条件に合うホテルが{len(matches)}件見つかりました。\n\n"
    for i, match in enumerate(matches, 1):
        text += f"{i}. " + _build_match_text(match)
        text += "-" * 60 + "\n\n"
    return text + _build_text_footer(unsubscribe_url)
