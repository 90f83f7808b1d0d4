"""Risk budget allocator.

Splits a fixed total risk budget (percent of capital) across candidate
trades under a per-trade cap, in two phases:

1. Selection. Valid trades are ranked by weight. The top of the ranking
   is taken until it covers ``usefulness_share`` of the total weight, then
   topped up to the minimum count that could absorb the budget under the cap.
2. Water-filling. The budget is split proportionally to weight, each share
   clipped at the cap, and whatever the caps block is redistributed among
   the still-uncapped trades. If budget remains once every selected trade
   is capped, the next-ranked trade joins and the split is recomputed.

Degenerate inputs (no trades, zero budget, nothing valid) are ordinary
outcomes carrying zero risk and an explanatory note; allocation never raises.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Sequence

from riskcalc.allocation import (
    EPSILON,
    MAX_ITERATIONS,
    AllocationOutcome,
    AllocationResult,
    AllocationSettings,
    AllocationStatus,
    AllocationSummary,
    CandidateTrade,
)

logger = logging.getLogger(__name__)

NOTE_NO_TRADES = "no trades"
NOTE_ZERO_BUDGET = "risk budget or per-trade cap is zero"
NOTE_NO_ENABLED = "no enabled trades"
NOTE_INSUFFICIENT_DATA = "insufficient data to compute weights"
NOTE_ZERO_WEIGHTS = "all enabled trades have zero weight"
NOTE_CAPPED = "risk budget could not be fully used due to per-trade caps"


@dataclass
class CappedAllocation:
    """Result of one capped proportional pass."""

    risk_by_id: dict[str, float]
    leftover: float


def allocate_with_caps(
    active: Sequence[CandidateTrade],
    total_risk: float,
    max_risk: float,
) -> CappedAllocation:
    """Distribute ``total_risk`` over ``active`` by weight, capped at ``max_risk``.

    Excess blocked by the cap is handed to uncapped trades in proportion to
    their weight, for at most MAX_ITERATIONS rounds. Leftover is what
    remains once everyone is capped or the rounds run out.
    """
    weight_sum = sum(c.weight for c in active)
    if weight_sum <= 0:
        return CappedAllocation(risk_by_id={}, leftover=total_risk)

    risk_by_id = {
        c.id: min(total_risk * (c.weight / weight_sum), max_risk) for c in active
    }
    leftover = total_risk - sum(risk_by_id.values())

    iterations = 0
    while leftover > EPSILON and iterations < MAX_ITERATIONS:
        uncapped = [c for c in active if risk_by_id[c.id] < max_risk - EPSILON]
        if not uncapped:
            break
        uncapped_weight = sum(c.weight for c in uncapped)
        if uncapped_weight <= 0:
            break
        for c in uncapped:
            extra = leftover * (c.weight / uncapped_weight)
            risk_by_id[c.id] = min(risk_by_id[c.id] + extra, max_risk)
        leftover = total_risk - sum(risk_by_id.values())
        iterations += 1

    return CappedAllocation(risk_by_id=risk_by_id, leftover=leftover)


def _base_status(candidate: CandidateTrade) -> AllocationStatus | None:
    if not candidate.enabled:
        return AllocationStatus.DISABLED
    if not candidate.valid:
        return AllocationStatus.INSUFFICIENT_DATA
    if candidate.weight <= 0:
        return AllocationStatus.ZERO_WEIGHT
    return None


def _result(
    candidate: CandidateTrade,
    status: AllocationStatus,
    risk: float = 0.0,
) -> AllocationResult:
    return AllocationResult(
        id=candidate.id,
        risk=risk,
        active=risk > EPSILON,
        status=status,
        weight=candidate.weight,
        enabled=candidate.enabled,
        price=candidate.current_price,
        reward_risk=candidate.reward_risk,
        danger=candidate.danger,
        closeness=candidate.closeness,
    )


class RiskBudgetAllocator:
    """Stateless allocator; every call recomputes from its arguments."""

    def allocate(
        self,
        candidates: Sequence[CandidateTrade],
        settings: AllocationSettings,
    ) -> AllocationOutcome:
        """Assign a share of ``settings.total_risk`` to each candidate.

        Args:
            candidates: Fully resolved candidates, in display order.
            settings: Budget snapshot for this run.

        Returns:
            AllocationOutcome with one result per candidate, in input order.
        """
        total_risk = settings.total_risk
        max_risk = settings.max_risk

        summary = AllocationSummary(
            total_risk=total_risk,
            leftover=total_risk if total_risk > 0 else 0.0,
            enabled_count=sum(1 for c in candidates if c.enabled),
            invalid_count=sum(1 for c in candidates if c.enabled and not c.valid),
        )

        if not candidates:
            summary.note = NOTE_NO_TRADES
            return AllocationOutcome(results=[], summary=summary)

        # NaN compares false, so it lands here too
        if not (total_risk > 0 and max_risk > 0):
            summary.note = NOTE_ZERO_BUDGET
            results = [
                _result(
                    c,
                    AllocationStatus.BUDGET_ZERO if c.enabled else AllocationStatus.DISABLED,
                )
                for c in candidates
            ]
            return AllocationOutcome(results=results, summary=summary)

        if summary.enabled_count == 0:
            summary.note = NOTE_NO_ENABLED
            results = [_result(c, AllocationStatus.DISABLED) for c in candidates]
            return AllocationOutcome(results=results, summary=summary)

        valid = [c for c in candidates if c.enabled and c.valid and c.weight > 0]
        if not valid:
            summary.note = NOTE_INSUFFICIENT_DATA if summary.invalid_count else NOTE_ZERO_WEIGHTS
            results = [
                _result(c, _base_status(c) or AllocationStatus.ZERO_WEIGHT)
                for c in candidates
            ]
            return AllocationOutcome(results=results, summary=summary)

        ranked = sorted(valid, key=lambda c: (-c.weight, c.index))
        reasons = self._select(ranked, settings)
        active = [c for c in ranked if c.id in reasons]
        allocation = self._fill(ranked, active, reasons, total_risk, max_risk)

        summary.used_risk = sum(allocation.risk_by_id.values())
        summary.leftover = max(total_risk - summary.used_risk, 0.0)
        summary.active_weight = sum(c.weight for c in active)
        summary.active_count = sum(
            1 for risk in allocation.risk_by_id.values() if risk > EPSILON
        )

        if summary.leftover > EPSILON and len(active) == len(ranked):
            summary.note = NOTE_CAPPED
        elif summary.invalid_count:
            summary.note = f"missing data for {summary.invalid_count} trades"

        results = []
        for c in candidates:
            risk = allocation.risk_by_id.get(c.id, 0.0)
            status = _base_status(c)
            if status is None:
                status = reasons.get(c.id, AllocationStatus.OUTSIDE_SHARE)
            results.append(_result(c, status, risk))

        logger.debug(
            "Allocated %.4f%% of %.4f%% across %d/%d trades (leftover %.4f%%)",
            summary.used_risk, total_risk, summary.active_count,
            summary.enabled_count, summary.leftover,
        )
        return AllocationOutcome(results=results, summary=summary)

    @staticmethod
    def _select(
        ranked: Sequence[CandidateTrade],
        settings: AllocationSettings,
    ) -> dict[str, AllocationStatus]:
        """Greedy primary set plus the minimum-count top-up.

        Returns activation reasons keyed by id, in the order trades joined.
        """
        reasons: dict[str, AllocationStatus] = {}
        total_weight = sum(c.weight for c in ranked)
        target_weight = total_weight * settings.usefulness_share

        cumulative = 0.0
        for c in ranked:
            reasons[c.id] = AllocationStatus.USEFULNESS_SHARE
            cumulative += c.weight
            if cumulative >= target_weight:
                break

        ratio = settings.total_risk / settings.max_risk
        if math.isfinite(ratio):
            min_deals = min(math.ceil(ratio), len(ranked))
        else:
            min_deals = len(ranked)
        if len(reasons) < min_deals:
            for c in ranked:
                if len(reasons) >= min_deals:
                    break
                if c.id not in reasons:
                    reasons[c.id] = AllocationStatus.CAP_LIMIT

        return reasons

    @staticmethod
    def _fill(
        ranked: Sequence[CandidateTrade],
        active: list[CandidateTrade],
        reasons: dict[str, AllocationStatus],
        total_risk: float,
        max_risk: float,
    ) -> CappedAllocation:
        """Water-fill the active set, growing it while caps leave budget unused.

        ``active`` and ``reasons`` are extended in place. Expansion walks the
        ranking with a single forward-only cursor.
        """
        allocation = CappedAllocation(risk_by_id={}, leftover=total_risk)
        cursor = 0
        for _ in range(MAX_ITERATIONS):
            allocation = allocate_with_caps(active, total_risk, max_risk)
            if allocation.leftover <= EPSILON:
                break

            while cursor < len(ranked) and ranked[cursor].id in reasons:
                cursor += 1
            if cursor >= len(ranked):
                break

            joined = ranked[cursor]
            active.append(joined)
            reasons[joined.id] = AllocationStatus.CAP_PRESSURE
            cursor += 1
            logger.debug("Added %s to absorb %.4f%% blocked by caps", joined.id, allocation.leftover)

        return allocation


def allocate(
    candidates: Sequence[CandidateTrade],
    settings: AllocationSettings,
) -> AllocationOutcome:
    """Module-level shortcut for ``RiskBudgetAllocator().allocate``."""
    return RiskBudgetAllocator().allocate(candidates, settings)
