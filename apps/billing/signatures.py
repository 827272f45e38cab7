"""HMAC-SHA256 signatures for webhook bodies."""

import hashlib
import hmac

from .exceptions import WebhookSignatureError


def compute_signature(raw_body: bytes, secret: str) -> str:
    """Return the hex HMAC-SHA256 digest of ``raw_body`` under ``secret``."""
    return hmac.new(secret.encode('utf-8'), raw_body, hashlib.sha256).hexdigest()


def verify_signature(raw_body: bytes, signature: str, secret: str) -> None:
    """
    Check a webhook signature against the raw request body.

    The digest is computed over the exact bytes received, before any JSON
    parsing, and compared in constant time.

    Raises:
        WebhookSignatureError: If the secret is not configured, the
            signature is missing, or it does not match.
    """
    if not secret:
        raise WebhookSignatureError("Webhook secret is not configured")
    if not signature:
        raise WebhookSignatureError("Missing signature")

    expected = compute_signature(raw_body, secret)
    if not hmac.compare_digest(expected.encode('utf-8'), signature.encode('utf-8')):
        raise WebhookSignatureError("Invalid signature")
