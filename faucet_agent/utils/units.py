"""Fixed-point conversion between human amounts and base units."""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation, localcontext

from faucet_agent.errors import InvalidAmount

# "0.01", "0.01 ETH", "100SHM", " 1. "
AMOUNT_PATTERN = re.compile(r"^\s*(\d+(?:\.\d*)?|\.\d+)\s*([A-Za-z]{2,}[A-Za-z0-9]*)?\s*$")

# Enough precision for any uint256 value
UINT256_DIGITS = 80


def normalize_amount(value: object) -> str:
    """Return the bare decimal string from ``value``, dropping a unit suffix.

    Raises:
        InvalidAmount: If ``value`` is not a non-negative decimal number.
    """
    if isinstance(value, bool):
        raise InvalidAmount(f"Invalid amount: {value!r}")
    if isinstance(value, (int, float, Decimal)):
        value = format(Decimal(str(value)), "f")
    if not isinstance(value, str):
        raise InvalidAmount(f"Invalid amount: {value!r}")

    match = AMOUNT_PATTERN.match(value)
    if not match:
        raise InvalidAmount(f"Invalid amount: {value!r}")
    number = match.group(1)
    if number.startswith("."):
        number = "0" + number
    return number.rstrip(".")


def to_base_units(amount: str, decimals: int) -> int:
    """Convert a decimal ``amount`` string to integer base units.

    Amounts finer than ``10 ** -decimals`` are rejected, never rounded.
    """
    try:
        value = Decimal(normalize_amount(amount))
    except InvalidOperation as exc:  # pragma: no cover - pattern guards this
        raise InvalidAmount(f"Invalid amount: {amount!r}") from exc

    if value <= 0:
        raise InvalidAmount(f"Amount must be positive: {amount!r}")

    with localcontext() as ctx:
        ctx.prec = UINT256_DIGITS
        scaled = value.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise InvalidAmount(
            f"Amount {amount} has more than {decimals} decimal places"
        )
    return int(scaled)


def format_units(value: int, decimals: int) -> str:
    """Render integer base units as a plain decimal string."""
    if value == 0:
        return "0"
    with localcontext() as ctx:
        ctx.prec = UINT256_DIGITS
        text = format(Decimal(value).scaleb(-decimals), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


__all__ = ["format_units", "normalize_amount", "to_base_units"]
