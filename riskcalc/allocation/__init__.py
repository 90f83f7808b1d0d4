from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

EPSILON: float = 1e-9
MAX_ITERATIONS: int = 50

DEFAULT_TOTAL_RISK: float = 2.0
DEFAULT_MAX_RISK: float = 1.0
DEFAULT_USEFULNESS_SHARE: float = 0.8


class PriceMode(str, Enum):
    AUTO = "auto"
    MANUAL = "manual"


class AllocationStatus(str, Enum):
    """Why a trade did or did not receive risk."""

    DISABLED = "disabled"
    INSUFFICIENT_DATA = "insufficient data"
    ZERO_WEIGHT = "weight <= 0"
    BUDGET_ZERO = "budget is zero"
    USEFULNESS_SHARE = "covers usefulness share"
    CAP_LIMIT = "added to satisfy cap limit"
    CAP_PRESSURE = "added due to cap pressure"
    OUTSIDE_SHARE = "outside usefulness share"


def to_float(value: Any, fallback: float | None = None) -> float | None:
    """Parse a user-entered number, returning ``fallback`` unless finite."""
    if value is None or isinstance(value, bool):
        return fallback
    try:
        num = float(value)
    except (TypeError, ValueError):
        return fallback
    return num if math.isfinite(num) else fallback


@dataclass(frozen=True)
class AllocationSettings:
    """Budget parameters, in percent of capital, re-read before every run."""

    total_risk: float = DEFAULT_TOTAL_RISK
    max_risk: float = DEFAULT_MAX_RISK
    usefulness_share: float = DEFAULT_USEFULNESS_SHARE

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> AllocationSettings:
        """Build settings from untrusted input such as form fields or stored JSON.

        Unparseable values fall back to the defaults and the usefulness
        share is clamped to [0, 1].
        """
        total = to_float(raw.get("total_risk"), DEFAULT_TOTAL_RISK)
        cap = to_float(raw.get("max_risk"), DEFAULT_MAX_RISK)
        share = to_float(raw.get("usefulness_share"), DEFAULT_USEFULNESS_SHARE)
        return cls(
            total_risk=total,
            max_risk=cap,
            usefulness_share=min(max(share, 0.0), 1.0),
        )

    def to_dict(self) -> dict[str, float]:
        return {
            "total_risk": self.total_risk,
            "max_risk": self.max_risk,
            "usefulness_share": self.usefulness_share,
        }


@dataclass(frozen=True)
class CandidateTrade:
    """A trade under consideration, with metrics and weight resolved."""

    id: str
    index: int
    pair: str
    enabled: bool
    entry: float | None
    stop_loss: float | None
    take_profit: float | None
    current_price: float | None
    atr: float | None
    reward_risk: float | None
    danger: float | None
    closeness: float | None
    valid: bool
    weight: float
    price_mode: PriceMode = PriceMode.AUTO


@dataclass(frozen=True)
class AllocationResult:
    id: str
    risk: float
    active: bool
    status: AllocationStatus
    weight: float
    enabled: bool
    price: float | None = None
    reward_risk: float | None = None
    danger: float | None = None
    closeness: float | None = None


@dataclass
class AllocationSummary:
    total_risk: float
    used_risk: float = 0.0
    leftover: float = 0.0
    active_count: int = 0
    active_weight: float = 0.0
    enabled_count: int = 0
    invalid_count: int = 0
    note: str = ""


@dataclass
class AllocationOutcome:
    """Per-trade results in input order plus the run summary."""

    results: list[AllocationResult]
    summary: AllocationSummary
    _index: dict[str, AllocationResult] = field(
        default_factory=dict, init=False, repr=False, compare=False,
    )

    def __post_init__(self) -> None:
        self._index = {r.id: r for r in self.results}

    def by_id(self, trade_id: str) -> AllocationResult | None:
        return self._index.get(trade_id)

    @property
    def active(self) -> list[AllocationResult]:
        return [r for r in self.results if r.active]
