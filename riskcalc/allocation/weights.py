from __future__ import annotations

import math


def calculate_weight(
    reward_risk: float | None,
    danger: float | None,
    closeness: float | None,
) -> float:
    """Capital-allocation priority of a trade.

    weight = reward_risk / ((1 + danger)^2 * (1 + closeness))

    Tight stops relative to volatility are penalised quadratically, entries
    the price has already moved away from linearly. Returns 0.0 for any
    non-finite input or intermediate, never a negative value.
    """
    if reward_risk is None or danger is None or closeness is None:
        return 0.0
    if not all(math.isfinite(v) for v in (reward_risk, danger, closeness)):
        return 0.0

    base = 1.0 + danger
    close_factor = 1.0 + closeness
    if base <= 0 or close_factor <= 0:
        return 0.0

    try:
        penalty = base ** 2
    except OverflowError:
        return 0.0
    if not math.isfinite(penalty) or penalty <= 0:
        return 0.0

    weight = reward_risk / (penalty * close_factor)
    if not math.isfinite(weight) or weight < 0:
        return 0.0
    return weight
