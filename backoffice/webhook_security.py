"""
Webhook Security Module

Signature verification for inbound webhooks:
- Constant-time signature comparison
- Request body read once and returned for parsing
"""

import hashlib
import hmac
import logging
from typing import Optional

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-signature-hmac"


def constant_time_compare(a: str, b: str) -> bool:
    """
    Compare two strings in constant time to prevent timing attacks.
    Uses hmac.compare_digest which is designed for this purpose.
    """
    if not a or not b:
        return False
    # Bytes, so header values outside ASCII compare as unequal instead of raising
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def compute_hmac_sha256(secret: str, payload: bytes) -> str:
    """Compute HMAC-SHA256 signature of payload"""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def is_valid_signature(signature: Optional[str], payload: bytes, secret: str) -> bool:
    """Check a hex HMAC-SHA256 digest of the raw payload (hex case is ignored)"""
    if not signature:
        return False
    expected = compute_hmac_sha256(secret, payload)
    return constant_time_compare(expected, signature.strip().lower())


async def verify_signature_webhook(
    request: Request, secret: Optional[str], raise_on_failure: bool = True
) -> tuple[bool, bytes]:
    """
    Verify an e-signature provider webhook.

    The provider signs the raw body with the shared secret:
    - Header: 'x-signature-hmac' (hex HMAC-SHA256 digest)

    Args:
        request: FastAPI request object
        secret: shared webhook secret
        raise_on_failure: If True, raises HTTPException on failure

    Returns:
        Tuple of (is_valid, raw_body)
    """
    raw_body = await request.body()

    if not secret:
        logger.error("❌ Signature webhook secret is not configured, rejecting event")
        if raise_on_failure:
            raise HTTPException(status_code=401, detail="Webhook secret not configured")
        return False, raw_body

    signature_header = request.headers.get(SIGNATURE_HEADER, "")
    if not signature_header:
        logger.warning("🚫 Signature webhook missing signature header")
        if raise_on_failure:
            raise HTTPException(status_code=401, detail="Missing webhook signature")
        return False, raw_body

    if not is_valid_signature(signature_header, raw_body, secret):
        logger.warning("🚫 Signature webhook signature mismatch")
        if raise_on_failure:
            raise HTTPException(status_code=401, detail="Invalid webhook signature")
        return False, raw_body

    logger.debug("✅ Signature webhook verified")
    return True, raw_body
