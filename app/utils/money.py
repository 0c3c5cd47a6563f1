from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

from app.core import config

CENT = Decimal("0.01")


def to_money(value):
    """Coerce a number or numeric string into a 2dp Decimal (None passes through)."""
    if value is None or value == "":
        return None
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def from_minor_units(value):
    """Gateway amounts arrive as integer cents ("5000" -> 50.00)."""
    if value is None or value == "":
        return None
    try:
        cents = int(Decimal(str(value)))
    except InvalidOperation:
        return None
    return (Decimal(cents) / 100).quantize(CENT)


def split_fee(amount, rate=None):
    """
    Split a coaching payment into (platform_fee, coach_earnings).

    The fee is rounded half-up to cents and earnings take the remainder, so
    fee + earnings always equals the charged amount exactly.
    """
    rate = config.PLATFORM_FEE_RATE if rate is None else Decimal(str(rate))
    amount = to_money(amount)
    fee = (amount * rate).quantize(CENT, rounding=ROUND_HALF_UP)
    return fee, amount - fee


def format_amount(amount) -> str:
    return f"{config.CURRENCY} {to_money(amount or 0):.2f}"
