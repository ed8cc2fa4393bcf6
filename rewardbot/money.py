"""Fixed-point helpers for TON amounts.

Balances are stored as integer minor units with DECIMALS fractional digits.
Anything coming from outside (env vars, admin input, rail responses) goes
through to_units() before it touches a balance.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

DECIMALS = 6
TEN_POW = 10 ** DECIMALS


def to_units(amount) -> int:
    """
    Convert a human amount ("0.025", Decimal, int) to minor units,
    rounding half away from zero.
    """
    if isinstance(amount, float):
        # go through repr so 0.1 stays 0.1 and not 0.1000000000000000055
        amount = repr(amount)
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation:
        raise ValueError(f"not a decimal amount: {amount!r}")
    if not value.is_finite():
        raise ValueError(f"not a decimal amount: {amount!r}")
    return int((value * TEN_POW).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_units(units: int) -> Decimal:
    return (Decimal(units) / Decimal(TEN_POW)).quantize(Decimal(1).scaleb(-DECIMALS))


def format_amount(units: int) -> str:
    """Human string without trailing zeros: 180000 -> '0.18'."""
    text = f"{from_units(units):f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text
