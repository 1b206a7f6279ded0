from __future__ import annotations

BPS_DENOMINATOR = 10_000


def div_round_half_up(numerator: int, denominator: int) -> int:
    """Integer division with nearest-cent rounding (half-up); operands must be non-negative."""
    if denominator <= 0:
        raise ValueError("denominator must be positive")
    if numerator < 0:
        raise ValueError("numerator must be non-negative")
    return (numerator + (denominator // 2)) // denominator


def apply_bps(amount_cents: int, rate_bps: int) -> int:
    """Percentage of an amount expressed in basis points, rounded to the cent."""
    return div_round_half_up(amount_cents * rate_bps, BPS_DENOMINATOR)
