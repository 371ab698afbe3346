"""Tests for callback and webhook signature verification."""

from coursepay.core.security import (
    generate_signature,
    verify_payment_signature,
    verify_webhook_signature,
)

SECRET = "test_key_secret"


def test_generate_signature_is_lowercase_hex_sha256():
    signature = generate_signature("order_1|pay_1", SECRET)

    assert len(signature) == 64
    assert signature == signature.lower()
    assert signature == generate_signature(b"order_1|pay_1", SECRET)


def test_valid_payment_signature():
    signature = generate_signature("order_1|pay_1", SECRET)

    assert verify_payment_signature("order_1", "pay_1", signature, SECRET) is True


def test_uppercase_signature_accepted():
    signature = generate_signature("order_1|pay_1", SECRET).upper()

    assert verify_payment_signature("order_1", "pay_1", signature, SECRET) is True


def test_signature_from_other_secret_rejected():
    signature = generate_signature("order_1|pay_1", "another_secret")

    assert verify_payment_signature("order_1", "pay_1", signature, SECRET) is False


def test_signature_over_other_input_rejected():
    swapped = generate_signature("pay_1|order_1", SECRET)
    other_payment = generate_signature("order_1|pay_2", SECRET)

    assert verify_payment_signature("order_1", "pay_1", swapped, SECRET) is False
    assert verify_payment_signature("order_1", "pay_1", other_payment, SECRET) is False


def test_empty_inputs_rejected_without_raising():
    signature = generate_signature("order_1|pay_1", SECRET)

    assert verify_payment_signature("", "pay_1", signature, SECRET) is False
    assert verify_payment_signature("order_1", "", signature, SECRET) is False
    assert verify_payment_signature("order_1", "pay_1", "", SECRET) is False
    assert verify_payment_signature("order_1", "pay_1", signature, "") is False
    assert verify_payment_signature("order_1", "pay_1", "not-hex", SECRET) is False


def test_webhook_signature():
    body = b'{"event":"payment.captured"}'
    signature = generate_signature(body, "webhook_secret")

    assert verify_webhook_signature(body, signature, "webhook_secret") is True
    assert verify_webhook_signature(body + b" ", signature, "webhook_secret") is False
    assert verify_webhook_signature(body, None, "webhook_secret") is False


def test_webhook_rejected_when_secret_not_configured():
    body = b"{}"
    signature = generate_signature(body, "")

    assert verify_webhook_signature(body, signature, "") is False
