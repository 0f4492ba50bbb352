# Overview: Cent-denominated arithmetic helpers (all money is stored as integer cents).

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

PERCENT_PLACES = Decimal("0.01")


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError("boolean is not a number")
    try:
        d = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"not a number: {value!r}")
    if not d.is_finite():
        raise ValueError(f"not a finite number: {value!r}")
    return d


def round_cents(value: Decimal) -> int:
    """Round a Decimal amount of cents half-up to a whole cent."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def percent_of(amount_cents: int, percent) -> int:
    """amount * percent / 100, rounded half-up to the cent."""
    return round_cents(Decimal(amount_cents) * to_decimal(percent) / Decimal(100))


def clamp_percent(percent) -> Decimal:
    """Clamp a percentage into [0, 100] at the stored two-decimal precision."""
    value = to_decimal(percent)
    if value < 0:
        return Decimal(0)
    if value > 100:
        return Decimal(100)
    return value.quantize(PERCENT_PLACES, rounding=ROUND_HALF_UP)


def parse_amount_to_cents(value) -> int:
    """
    Convert a decimal currency amount ("999.99", 999.99) to integer cents.
    Raises ValueError on non-numeric input.
    """
    return round_cents(to_decimal(value) * 100)


def format_cents(cents: int | None) -> str:
    cents = cents or 0
    sign = "-" if cents < 0 else ""
    cents = abs(cents)
    return f"{sign}{cents // 100}.{cents % 100:02d}"
