"""Buyer-facing payment references such as ``SOP-LZ3K9Q1A-7F2C``."""

import secrets
import time

from ticketing.conf import get_setting

BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(BASE36[remainder])
    return "".join(reversed(digits))


def generate_tx_ref(prefix: str | None = None) -> str:
    prefix = prefix or get_setting("REFERENCE_PREFIX")
    timestamp = to_base36(time.time_ns() // 1_000_000)
    suffix = "".join(secrets.choice(BASE36) for _ in range(4))
    return f"{prefix}-{timestamp}-{suffix}"
