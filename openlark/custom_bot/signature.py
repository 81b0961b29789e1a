"""
Webhook signature for custom bots.

The platform's verifier keys HMAC-SHA256 with ``"{timestamp}\\n{secret}"``
and digests an empty message. Key and message are not the usual pair, but
the output must match the verifier bit-for-bit, so it stays as is.
"""

from __future__ import annotations

import base64
import hashlib
import hmac


def sign(timestamp: int, secret: str) -> str:
    """
    Compute the webhook signature.

    Args:
        timestamp: Unix time in seconds (the value sent as "timestamp")
        secret: Signing secret from the bot's security settings

    Returns:
        Base64 (padded) HMAC-SHA256 digest
    """
    string_to_sign = f"{timestamp}\n{secret}".encode("utf-8")
    digest = hmac.new(string_to_sign, digestmod=hashlib.sha256).digest()
    return base64.b64encode(digest).decode("utf-8")
