"""Shared utilities for price watching."""
import base64
import binascii
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

PERCENT_DECIMALS = Decimal("0.01")
ADDRESS_BYTES = 20


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def encode_push_token(push_token: str) -> str:
    """Encode a raw push token the way it is stored (standard base64)."""
    return base64.b64encode(push_token.encode("utf-8")).decode("ascii")


def decode_push_token(encoded: str) -> str:
    """Reverse encode_push_token."""
    return base64.b64decode(encoded.encode("ascii")).decode("utf-8")


def round_percentage(value: Decimal) -> Decimal:
    """Round half-up to 2 decimal places."""
    return value.quantize(PERCENT_DECIMALS, rounding=ROUND_HALF_UP)


def format_price(price: Decimal) -> str:
    """Price with exactly 5 decimal places, e.g. '106.00000'."""
    return f"{price:.5f}"


def hex_to_bytes(value: str) -> bytes | None:
    """Decode a hex string with optional 0x prefix; None if not hex."""
    if value[:2] in ("0x", "0X"):
        value = value[2:]
    if len(value) % 2 == 1:
        value = "0" + value
    try:
        return binascii.unhexlify(value)
    except (binascii.Error, ValueError):
        return None


def is_valid_address(address: str) -> bool:
    """True when address decodes to exactly 20 bytes."""
    raw = hex_to_bytes(address)
    return raw is not None and len(raw) == ADDRESS_BYTES
