"""Conversions between bet parameters and the server's integer units."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

SATOSHI_PER_BTC = 100_000_000
TARGET_SCALE = 1_000_000
DEFAULT_HOUSE_EDGE = 0.01


def _round_half_up(value: Decimal | float) -> int:
    return int(Decimal(str(value)).to_integral_value(rounding=ROUND_HALF_UP))


def target_from_multiplier(multiplier: float, edge: float = DEFAULT_HOUSE_EDGE) -> int:
    """Bet target giving the requested payout multiplier."""
    if multiplier <= 0:
        raise ValueError("multiplier must be positive")
    return _round_half_up(TARGET_SCALE * (1.0 - edge) / multiplier)


def target_from_probability(probability: float) -> int:
    """Bet target giving the requested win probability (0..1)."""
    if not 0 <= probability <= 1:
        raise ValueError("probability must be between 0 and 1")
    return _round_half_up(probability * TARGET_SCALE)


def satoshi_to_btc(value: int) -> float:
    return round(value / SATOSHI_PER_BTC, 8)


def btc_to_satoshi(value: float) -> int:
    return int((Decimal(str(value)) * SATOSHI_PER_BTC).to_integral_value(rounding=ROUND_HALF_UP))
