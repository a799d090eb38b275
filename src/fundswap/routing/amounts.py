"""Amount conversions shared by every venue.

Quotes are compared on an 8-decimal integer scale regardless of the target
asset's own decimals. This is an approximation: two assets with very
different decimals compare by magnitude only.
"""

from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import Union

RAW_DECIMALS = 8
RAW_SCALE = 10**RAW_DECIMALS

USDC_DECIMALS = 6
CENT = Decimal("0.01")


def to_raw_amount(value: Union[str, Decimal, int]) -> int:
    """Convert a decimal amount to the 8-decimal comparison scale.

    Fractional digits beyond the eighth are truncated, not rounded.

    Raises:
        ValueError: If value is not a plain decimal number
    """
    if isinstance(value, int):
        return value * RAW_SCALE
    if isinstance(value, Decimal):
        text = format(value, "f")
    else:
        text = value.strip()

    negative = text.startswith("-")
    if negative or text.startswith("+"):
        text = text[1:]

    whole, _, frac = text.partition(".")
    if not whole and not frac:
        raise ValueError(f"invalid amount {value!r}")
    if (whole and not whole.isdigit()) or (frac and not frac.isdigit()):
        raise ValueError(f"invalid amount {value!r}")

    frac = (frac + "0" * RAW_DECIMALS)[:RAW_DECIMALS]
    raw = int(whole or "0") * RAW_SCALE + int(frac)
    return -raw if negative else raw


def format_raw_amount(raw: int) -> str:
    """Render an 8-decimal raw amount as a display string."""
    return format_units(raw, RAW_DECIMALS)


def format_units(amount: int, decimals: int) -> str:
    """Render an integer amount in smallest units as a trimmed decimal string."""
    value = Decimal(amount).scaleb(-decimals)
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


def parse_units(value: Union[str, Decimal], decimals: int) -> int:
    """Convert a decimal amount to integer smallest units (truncating)."""
    try:
        amount = Decimal(value)
    except InvalidOperation as e:
        raise ValueError(f"invalid amount {value!r}") from e
    return int(amount.scaleb(decimals))


def usd_to_usdc_units(usd_amount: Union[float, Decimal]) -> int:
    """USD amount to USDC base units (6 decimals)."""
    return parse_units(Decimal(str(usd_amount)), USDC_DECIMALS)


def format_usd(usd_amount: Union[float, Decimal]) -> str:
    """USD amount truncated to cents, as a trimmed decimal string."""
    cents = Decimal(str(usd_amount)).quantize(CENT, rounding=ROUND_DOWN)
    return format_units(int(cents.scaleb(2)), 2)
