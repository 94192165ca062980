import hashlib
import hmac

from app.core.errors import AuthenticationFailed
from app.core.logging_config import get_logger

logger = get_logger("webhook")


def compute_signature(raw_body: bytes, secret: str) -> str:
    return hmac.new(secret.encode(), raw_body, hashlib.sha512).hexdigest()


def verify_signature(raw_body: bytes, signature: str | None, secret: str | None):
    """Accept ``raw_body`` only if ``signature`` is its HMAC-SHA512 under ``secret``.

    ``raw_body`` must be the bytes exactly as received; hashing a re-serialised
    payload gives a different digest.
    """
    if not secret:
        logger.error("Webhook rejected | no webhook secret configured")
        raise AuthenticationFailed()

    if not signature:
        logger.warning(f"Webhook rejected | missing signature | Bytes={len(raw_body)}")
        raise AuthenticationFailed()

    expected = compute_signature(raw_body, secret)
    if not hmac.compare_digest(expected.encode(), signature.strip().lower().encode()):
        logger.warning(f"Webhook rejected | signature mismatch | Bytes={len(raw_body)}")
        raise AuthenticationFailed()
