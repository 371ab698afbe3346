"""CoursePay - Signature verification for gateway callbacks and webhooks."""

import hashlib
import hmac


def generate_signature(message: str | bytes, secret_key: str) -> str:
    """Generate HMAC-SHA256 signature.

    Args:
        message: Message to sign
        secret_key: Shared secret

    Returns:
        Lowercase hex signature
    """
    if isinstance(message, str):
        message = message.encode("utf-8")
    return hmac.new(
        secret_key.encode("utf-8"),
        message,
        hashlib.sha256,
    ).hexdigest()


def verify_payment_signature(
    order_id: str,
    payment_id: str,
    signature: str,
    secret_key: str,
) -> bool:
    """Verify a checkout callback signature.

    The gateway signs ``order_id + "|" + payment_id`` with the key secret.
    Comparison is constant-time; any mismatch returns False.

    Args:
        order_id: Gateway order ID
        payment_id: Gateway payment ID
        signature: Hex signature from the callback
        secret_key: Gateway key secret

    Returns:
        True if signature is valid
    """
    if not (order_id and payment_id and signature and secret_key):
        return False
    expected = generate_signature(f"{order_id}|{payment_id}", secret_key)
    return hmac.compare_digest(expected, signature.lower())


def verify_webhook_signature(body: bytes, signature: str | None, secret_key: str) -> bool:
    """Verify a webhook signature computed over the raw request body."""
    if not (secret_key and signature):
        return False
    expected = generate_signature(body, secret_key)
    return hmac.compare_digest(expected, signature.lower())
