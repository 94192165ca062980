import secrets
import string
import time

BOOKING_PREFIX = "KND"
_ALPHABET = string.ascii_uppercase + string.digits


def _epoch_ms() -> int:
    return int(time.time() * 1000)


def generate_booking_reference() -> str:
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(6))
    return f"{BOOKING_PREFIX}{_epoch_ms()}{suffix}"


def generate_gateway_reference(booking_reference: str) -> str:
    return f"{booking_reference}_{_epoch_ms()}{secrets.token_hex(2)}"
