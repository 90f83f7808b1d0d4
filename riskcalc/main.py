from __future__ import annotations

import logging
from dataclasses import dataclass, field

from riskcalc.allocation import AllocationOutcome, AllocationSettings, CandidateTrade, PriceMode
from riskcalc.allocation.allocator import RiskBudgetAllocator
from riskcalc.allocation.candidates import build_candidates, ensure_params, trade_id
from riskcalc.core.config import Settings
from riskcalc.data import TradeParams, TradeRecord
from riskcalc.data.store import TradeStore
from riskcalc.pricing import PriceSnapshot
from riskcalc.pricing.fetcher import PriceFetcher
from riskcalc.pricing.instruments import normalize_pair
from riskcalc.sizing.lot_sizer import LotSizer, PositionSize

logger = logging.getLogger(__name__)


@dataclass
class CalculationReport:
    settings: AllocationSettings
    candidates: list[CandidateTrade]
    outcome: AllocationOutcome
    positions: dict[str, PositionSize] = field(default_factory=dict)
    snapshot: PriceSnapshot = field(default_factory=PriceSnapshot)


class RiskCalculator:
    """Ties the trade store, price feeds, allocator and lot sizer together.

    Holds the latest price snapshot between runs; each ``run`` rebuilds
    candidates from the store and allocates from scratch against it.
    """

    def __init__(
        self,
        settings: Settings,
        store: TradeStore | None = None,
        fetcher: PriceFetcher | None = None,
    ) -> None:
        self._settings = settings
        self._store = store or TradeStore(settings.storage.data_dir)
        self._fetcher = fetcher or PriceFetcher(timeout=settings.pricing.timeout_seconds)
        self._allocator = RiskBudgetAllocator()
        self._snapshot = PriceSnapshot()

    @property
    def snapshot(self) -> PriceSnapshot:
        return self._snapshot

    def _load(self) -> tuple[list[TradeRecord], dict[str, TradeParams]]:
        trades = self._store.load_trades()
        stored = self._store.load_params()
        params = ensure_params(trades, stored)
        if params != stored:
            self._store.save_params(params)
        return trades, params

    def refresh_prices(self, force: bool = True) -> PriceSnapshot:
        """Re-quote every auto-priced trade and keep the new snapshot."""
        trades, params = self._load()
        pairs = [
            normalize_pair(trade.pair)
            for index, trade in enumerate(trades)
            if params[trade_id(trade, index)].price_mode is PriceMode.AUTO
        ]
        if not any(pairs):
            logger.info("No auto-priced trades to refresh")
            return self._snapshot
        self._snapshot = self._fetcher.refresh(pairs, force=force)
        return self._snapshot

    def resolve_settings(self, override: AllocationSettings | None = None) -> AllocationSettings:
        """Explicit settings win, then stored ones, then the config defaults."""
        if override is not None:
            return override
        stored = self._store.load_settings()
        if stored is not None:
            return stored
        return self._settings.allocation.to_settings()

    def run(self, allocation_settings: AllocationSettings | None = None) -> CalculationReport:
        """Allocate the risk budget and size every active trade."""
        settings = self.resolve_settings(allocation_settings)
        if allocation_settings is not None:
            self._store.save_settings(allocation_settings)

        trades, params = self._load()
        candidates = build_candidates(trades, params, self._snapshot)
        outcome = self._allocator.allocate(candidates, settings)

        account = self._settings.account
        sizer = LotSizer(
            self._fetcher,
            deposit=account.deposit,
            currency=account.currency,
            lot_step=account.lot_step,
        )
        positions = sizer.size_allocation(outcome, candidates)

        summary = outcome.summary
        logger.info(
            "Risk used %.2f%% / %.2f%%, leftover %.2f%%, active %d of %d",
            summary.used_risk, summary.total_risk, summary.leftover,
            summary.active_count, summary.enabled_count,
        )
        if summary.note:
            logger.info("Note: %s", summary.note)

        return CalculationReport(
            settings=settings,
            candidates=candidates,
            outcome=outcome,
            positions=positions,
            snapshot=self._snapshot,
        )
