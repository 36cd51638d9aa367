#!/usr/bin/env python3

"""
GitHub webhook signature verification (X-Hub-Signature-256).
"""

import hashlib
import hmac
import logging
from typing import Optional

from igloo.errors import WebhookVerificationError

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Hub-Signature-256"
SIGNATURE_PREFIX = "sha256="


def compute_signature(payload_body: bytes, secret_token: str) -> str:
    """Return the X-Hub-Signature-256 value GitHub would send for this payload."""
    hash_object = hmac.new(secret_token.encode("utf-8"), msg=payload_body, digestmod=hashlib.sha256)
    return SIGNATURE_PREFIX + hash_object.hexdigest()


def verify_signature(payload_body: bytes, secret_token: str, signature_header: Optional[str]) -> bool:
    """
    Verify that the payload was sent from GitHub by validating the SHA256 signature.

    Args:
        payload_body: raw request body bytes
        secret_token: the webhook secret
        signature_header: the X-Hub-Signature-256 header value

    Returns:
        True if the signature is valid, False otherwise.
    """
    if not signature_header:
        return False
    return hmac.compare_digest(compute_signature(payload_body, secret_token), signature_header)


def require_valid_signature(payload_body: bytes, secret_token: str, signature_header: Optional[str]) -> None:
    """Like verify_signature, but raise WebhookVerificationError on mismatch."""
    if not verify_signature(payload_body, secret_token, signature_header):
        logger.warning(f"Rejected webhook delivery with invalid {SIGNATURE_HEADER}")
        raise WebhookVerificationError(f"Invalid or missing {SIGNATURE_HEADER} header")
