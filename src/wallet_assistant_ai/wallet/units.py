"""Exact conversions between human-readable amounts and smallest units.

All arithmetic goes through :class:`decimal.Decimal` digit tuples and Python
integers, never floats, so sub-unit amounts are rejected instead of being
silently rounded.
"""

from __future__ import annotations

from decimal import ROUND_DOWN, Decimal, InvalidOperation, localcontext

from wallet_assistant_ai.errors import InvalidAmountError

NATIVE_DECIMALS = 18

# A uint256 has 78 decimal digits.
MAX_UNIT_DIGITS = 78


def to_decimal(value: Decimal | str | int) -> Decimal:
    """Coerce *value* to a finite ``Decimal`` or raise ``InvalidAmountError``."""
    if isinstance(value, float):
        raise InvalidAmountError("Amounts must not be floats.")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise InvalidAmountError(f"'{value}' is not a number.") from exc
    if not amount.is_finite():
        raise InvalidAmountError(f"'{value}' is not a finite number.")
    return amount


def to_smallest_unit(value: Decimal | str | int, decimals: int) -> int:
    """Convert a decimal amount to its integer base-unit representation.

    ``to_smallest_unit("1.5", 6) == 1500000``. Raises
    :class:`InvalidAmountError` for negative amounts and for amounts with
    more fractional digits than *decimals* allows.
    """
    amount = to_decimal(value)
    if amount < 0:
        raise InvalidAmountError("Amount must not be negative.")
    if amount.is_zero():
        return 0
    if amount.adjusted() + decimals >= MAX_UNIT_DIGITS:
        raise InvalidAmountError(f"{amount} is too large.")

    _, digits, exponent = amount.as_tuple()
    coefficient = int("".join(map(str, digits)))
    shift = exponent + decimals
    if shift >= 0:
        return coefficient * 10**shift

    if -shift > len(digits):
        whole, remainder = 0, coefficient
    else:
        whole, remainder = divmod(coefficient, 10**-shift)
    if remainder:
        raise InvalidAmountError(
            f"{amount.normalize()} has more than {decimals} decimal places."
        )
    return whole


def from_smallest_unit(value: int, decimals: int) -> Decimal:
    """Convert base units back to an exact ``Decimal`` without exponent noise."""
    with localcontext() as ctx:
        ctx.prec = max(28, len(str(abs(value))) + decimals)
        amount = Decimal(value).scaleb(-decimals).normalize()
        if amount.as_tuple().exponent > 0:
            amount = amount.quantize(Decimal(1))
    return amount


def format_amount(amount: Decimal, places: int = 4) -> str:
    """Render *amount* with a fixed number of places, truncating extra digits."""
    with localcontext() as ctx:
        ctx.prec = max(28, amount.adjusted() + places + 2)
        quantum = Decimal(1).scaleb(-places)
        return str(amount.quantize(quantum, rounding=ROUND_DOWN))
