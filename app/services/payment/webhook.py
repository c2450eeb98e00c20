"""
Webhook signature helpers.

The gateway signs ``timestamp + raw_body`` with HMAC-SHA256 using the
merchant secret and sends the base64 digest in ``x-webhook-signature``.
"""

import base64
import hashlib
import hmac
from typing import Optional, Union

BytesLike = Union[bytes, str]


def _as_bytes(value: BytesLike) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else value


def compute_signature(secret: str, timestamp: BytesLike, raw_body: BytesLike) -> str:
    digest = hmac.new(
        secret.encode("utf-8"),
        _as_bytes(timestamp) + _as_bytes(raw_body),
        hashlib.sha256,
    ).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_signature(
    secret: Optional[str],
    signature: Optional[str],
    timestamp: Optional[str],
    raw_body: BytesLike,
) -> bool:
    """Constant-time check of a webhook signature; False if anything is missing."""
    if not secret or not signature or not timestamp:
        return False
    expected = compute_signature(secret, timestamp, raw_body)
    return hmac.compare_digest(expected.encode("ascii"), _as_bytes(signature))
