"""HMAC-SHA256 verification of Plane webhook deliveries."""

import hashlib
import hmac

from plane2discord.core.logging import get_logger
from plane2discord.shared.exceptions import AuthenticationError, ConfigError

logger = get_logger(__name__)

SIGNATURE_HEADER = "X-Plane-Signature"


def compute_signature(body: bytes, secret: str) -> bytes:
    """Compute the raw HMAC-SHA256 digest of a request body.

    Args:
        body: Raw request body exactly as received
        secret: Shared webhook secret

    Returns:
        32-byte digest
    """
    return hmac.new(secret.encode(), body, hashlib.sha256).digest()


def verify_signature(body: bytes, signature: str, secret: str) -> bool:
    """Check a hex signature against the body's HMAC.

    The digest is computed over the raw bytes, never over re-serialized JSON.
    Malformed hex is a mismatch. Digests are compared with
    ``hmac.compare_digest`` so timing does not depend on where they differ.

    Args:
        body: Raw request body
        signature: Hex-encoded signature from the X-Plane-Signature header
        secret: Shared webhook secret

    Returns:
        True if the signature matches

    Raises:
        ConfigError: If no secret is configured
    """
    if not secret:
        raise ConfigError("WEBHOOK_SECRET is not configured")

    try:
        received = bytes.fromhex(signature.strip())
    except ValueError:
        return False

    return hmac.compare_digest(compute_signature(body, secret), received)


def require_valid_signature(body: bytes, signature: str | None, secret: str) -> None:
    """Reject a delivery unless it carries a valid signature.

    Args:
        body: Raw request body
        signature: Header value, or None if the header was absent
        secret: Shared webhook secret

    Raises:
        ConfigError: If no secret is configured
        AuthenticationError: If the signature is missing, malformed or wrong
    """
    if not secret:
        raise ConfigError("WEBHOOK_SECRET is not configured")

    if not signature:
        logger.warning("webhook.signature.missing")
        raise AuthenticationError("Missing signature")

    if not verify_signature(body, signature, secret):
        logger.warning("webhook.signature.invalid", body_bytes=len(body))
        raise AuthenticationError("Invalid signature")
