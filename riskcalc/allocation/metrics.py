"""Dimensionless trade metrics derived from raw prices.

Three scores describe a setup:

    reward_risk  |take_profit - entry| / |entry - stop_loss|
    danger       atr / |entry - stop_loss|
                 large when the stop sits inside ordinary noise
    closeness    |current_price - entry| / atr
                 how far the market has already left the entry, in ATRs
"""
from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class TradeMetrics:
    reward_risk: float | None
    danger: float | None
    closeness: float | None
    valid: bool


def _finite(value: float | None) -> float | None:
    if value is None or not math.isfinite(value):
        return None
    return value


def _distance(a: float | None, b: float | None) -> float | None:
    """Absolute distance, or None when an end is missing or they coincide."""
    if a is None or b is None:
        return None
    dist = abs(a - b)
    return dist if dist > 0 else None


def derive_metrics(
    entry: float | None,
    stop_loss: float | None,
    take_profit: float | None,
    current_price: float | None,
    atr: float | None,
) -> TradeMetrics:
    """Compute reward/risk, danger and closeness for one trade.

    Any metric whose inputs are missing is None, and the trade is valid
    only when all three exist, are finite, reward/risk is positive and
    the other two are non-negative.
    """
    entry = _finite(entry)
    stop_loss = _finite(stop_loss)
    take_profit = _finite(take_profit)
    current_price = _finite(current_price)
    atr = _finite(atr)
    if atr is not None and atr <= 0:
        atr = None

    risk_distance = _distance(entry, stop_loss)
    reward_distance = _distance(take_profit, entry)

    reward_risk = None
    if risk_distance is not None and reward_distance is not None:
        reward_risk = reward_distance / risk_distance

    danger = None
    if atr is not None and risk_distance is not None:
        danger = atr / risk_distance

    closeness = None
    if atr is not None and entry is not None and current_price is not None:
        closeness = abs(current_price - entry) / atr

    valid = (
        reward_risk is not None and math.isfinite(reward_risk) and reward_risk > 0
        and danger is not None and math.isfinite(danger) and danger >= 0
        and closeness is not None and math.isfinite(closeness) and closeness >= 0
    )

    return TradeMetrics(
        reward_risk=reward_risk,
        danger=danger,
        closeness=closeness,
        valid=valid,
    )
