"""
Signed tokens for one-click unsubscribe links in alert emails.

Tokens carry only the user id, are HMAC-signed with UNSUBSCRIBE_SECRET_KEY
and expire after UNSUBSCRIBE_MAX_AGE_DAYS. Nothing is stored server-side.
"""

import hashlib
import os

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

UNSUBSCRIBE_SALT = "hotel-alert-unsubscribe"
UNSUBSCRIBE_MAX_AGE_DAYS = 90


def _get_serializer() -> URLSafeTimedSerializer:
    """
    Raises:
        ValueError: If UNSUBSCRIBE_SECRET_KEY environment variable not set
    """
    secret_key = os.getenv("UNSUBSCRIBE_SECRET_KEY")
    if not secret_key:
        raise ValueError("UNSUBSCRIBE_SECRET_KEY environment variable must be set.")

    return URLSafeTimedSerializer(
        secret_key,
        salt=UNSUBSCRIBE_SALT,
        signer_kwargs={"digest_method": hashlib.sha256},
    )


def generate_unsubscribe_token(user_id: str) -> str:
    """URL-safe signed token (payload.timestamp.signature) for a user."""
    return _get_serializer().dumps(user_id)


def validate_unsubscribe_token(
    token: str, max_age_days: int = UNSUBSCRIBE_MAX_AGE_DAYS
) -> str | None:
    """
    Return the user id from a valid token, None for anything else.

    Never raises: bad signatures, expired tokens, malformed input and a
    missing secret all yield None.
    """
    try:
        serializer = _get_serializer()
        user_id = serializer.loads(token, max_age=max_age_days * 24 * 60 * 60)
    except (BadSignature, SignatureExpired, ValueError, TypeError):
        return None

    return user_id if isinstance(user_id, str) else None
