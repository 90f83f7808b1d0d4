"""Unit tests for the RiskCalculator orchestration."""
from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from riskcalc.allocation import AllocationSettings, AllocationStatus, PriceMode
from riskcalc.allocation.allocator import NOTE_INSUFFICIENT_DATA, NOTE_NO_TRADES
from riskcalc.core.config import AllocationConfig, Settings
from riskcalc.data import TradeParams, TradeRecord
from riskcalc.data.store import TradeStore
from riskcalc.main import CalculationReport, RiskCalculator
from riskcalc.pricing import PriceSnapshot
from riskcalc.pricing.fetcher import PriceFetcher

PRICES = {"EURUSD": 1.1000, "GBPUSD": 1.2700}


def _make_fetcher(prices: dict[str, float] | None = None) -> MagicMock:
    fetcher = MagicMock(spec=PriceFetcher)
    quotes = PRICES if prices is None else prices
    fetcher.refresh.side_effect = lambda pairs, force=False: PriceSnapshot(
        prices={p: quotes[p] for p in pairs if p in quotes},
        missing=tuple(p for p in pairs if p not in quotes),
    )
    fetcher.get_rate.return_value = 1.0
    return fetcher


@pytest.fixture
def store(tmp_path) -> TradeStore:
    store = TradeStore(tmp_path)
    store.save_trades([
        TradeRecord(id="a", pair="EURUSD", entry=1.1000, stop_loss=1.0950, take_profit=1.1100),
        TradeRecord(id="b", pair="GBPUSD", entry=1.2700, stop_loss=1.2650, take_profit=1.2850),
    ])
    store.save_params({
        "a": TradeParams(entry=1.1000, stop_loss=1.0950, take_profit=1.1100, atr=0.0025),
        "b": TradeParams(entry=1.2700, stop_loss=1.2650, take_profit=1.2850, atr=0.0025),
    })
    return store


def _make_calculator(store: TradeStore, fetcher: MagicMock | None = None, **settings) -> RiskCalculator:
    return RiskCalculator(Settings(**settings), store=store, fetcher=fetcher or _make_fetcher())


class TestResolveSettings:
    def test_override_wins(self, store):
        calc = _make_calculator(store)
        store.save_settings(AllocationSettings(5.0, 2.0, 0.5))
        override = AllocationSettings(1.0, 1.0, 1.0)
        assert calc.resolve_settings(override) is override

    def test_stored_beats_config(self, store):
        store.save_settings(AllocationSettings(5.0, 2.0, 0.5))
        calc = _make_calculator(store, allocation=AllocationConfig(total_risk=3.0))
        assert calc.resolve_settings() == AllocationSettings(5.0, 2.0, 0.5)

    def test_config_defaults_last(self, store):
        calc = _make_calculator(store, allocation=AllocationConfig(total_risk=3.0))
        assert calc.resolve_settings() == AllocationSettings(3.0, 1.0, 0.8)


class TestRefreshPrices:
    def test_refreshes_auto_priced_pairs(self, store):
        fetcher = _make_fetcher()
        calc = _make_calculator(store, fetcher)

        snapshot = calc.refresh_prices()

        fetcher.refresh.assert_called_once_with(["EURUSD", "GBPUSD"], force=True)
        assert calc.snapshot is snapshot
        assert snapshot.get("GBPUSD") == 1.2700

    def test_manual_trades_not_requested(self, store):
        params = store.load_params()
        params["b"] = TradeParams(price_mode=PriceMode.MANUAL, manual_price=1.27, atr=0.0025)
        store.save_params(params)
        fetcher = _make_fetcher()

        _make_calculator(store, fetcher).refresh_prices(force=False)

        fetcher.refresh.assert_called_once_with(["EURUSD"], force=False)

    def test_nothing_to_refresh(self, tmp_path):
        fetcher = _make_fetcher()
        calc = _make_calculator(TradeStore(tmp_path / "empty"), fetcher)
        assert len(calc.refresh_prices()) == 0
        fetcher.refresh.assert_not_called()


class TestRun:
    def test_without_prices_trades_lack_data(self, store):
        report = _make_calculator(store).run()

        assert isinstance(report, CalculationReport)
        assert report.outcome.summary.note == NOTE_INSUFFICIENT_DATA
        assert all(r.status is AllocationStatus.INSUFFICIENT_DATA for r in report.outcome.results)
        assert report.positions == {}

    def test_full_run_allocates_and_sizes(self, store):
        calc = _make_calculator(store)
        calc.refresh_prices()

        report = calc.run()

        results = report.outcome.results
        assert [r.id for r in results] == ["a", "b"]
        assert sum(r.risk for r in results) == pytest.approx(2.0)
        assert all(r.risk == pytest.approx(1.0) for r in results)
        assert set(report.positions) == {"a", "b"}
        assert report.positions["a"].lots == pytest.approx(0.2)
        assert report.snapshot is calc.snapshot

    def test_override_saved_for_next_run(self, store):
        calc = _make_calculator(store)
        calc.run(AllocationSettings(1.0, 0.5, 0.9))
        assert store.load_settings() == AllocationSettings(1.0, 0.5, 0.9)
        assert calc.run().settings == AllocationSettings(1.0, 0.5, 0.9)

    def test_new_trade_gets_params_persisted(self, tmp_path):
        store = TradeStore(tmp_path)
        store.save_trades([TradeRecord(id=None, pair="EURUSD", entry=1.1, stop_loss=1.09, take_profit=1.12)])

        _make_calculator(store).run()

        params = store.load_params()
        assert set(params) == {"trade_0"}
        assert params["trade_0"].entry == 1.1

    def test_empty_store(self, tmp_path):
        report = _make_calculator(TradeStore(tmp_path)).run()
        assert report.outcome.results == []
        assert report.outcome.summary.note == NOTE_NO_TRADES
