"""
forter/ledger/units.py

Conversion between whole-token amounts and the ledger's smallest units.

The engine only ever sees integers. These helpers sit at the display and
input boundary; they use Decimal so no float rounding can leak into an
amount.

Examples:
    parse_usdc("12.5")       -> 12_500_000
    format_usdc(12_500_000)  -> "12.5"
"""

from decimal import Decimal, InvalidOperation
from typing import Union

from ..config import USDC_DECIMALS
from ..exceptions import InvariantViolation

Amount = Union[str, int, Decimal]


def parse_units(amount: Amount, decimals: int) -> int:
    """
    Whole-token amount to smallest units.

    Raises:
        InvariantViolation: negative, non-numeric, or finer than `decimals`
    """
    if isinstance(amount, float):
        amount = repr(amount)
    try:
        value = Decimal(str(amount).strip().replace("_", ""))
    except InvalidOperation:
        raise InvariantViolation(f"not a token amount: {amount!r}") from None
    if not value.is_finite():
        raise InvariantViolation(f"not a token amount: {amount!r}")
    if value < 0:
        raise InvariantViolation(f"token amount is negative: {amount!r}")

    scaled = value.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise InvariantViolation(
            f"{amount!r} has more than {decimals} decimal places"
        )
    return int(scaled)


def format_units(amount: int, decimals: int) -> str:
    """Smallest units to a plain decimal string, trailing zeros dropped."""
    sign = "-" if amount < 0 else ""
    whole, fraction = divmod(abs(int(amount)), 10 ** decimals)
    if not fraction:
        return f"{sign}{whole}"
    digits = str(fraction).rjust(decimals, "0").rstrip("0")
    return f"{sign}{whole}.{digits}"


def parse_usdc(amount: Amount) -> int:
    return parse_units(amount, USDC_DECIMALS)


def format_usdc(amount: int) -> str:
    return format_units(amount, USDC_DECIMALS)
