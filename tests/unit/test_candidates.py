from __future__ import annotations

import pytest

from riskcalc.allocation import PriceMode
from riskcalc.allocation.candidates import (
    build_candidate,
    build_candidates,
    ensure_params,
    resolve_price,
    trade_id,
)
from riskcalc.data import TradeParams, TradeRecord
from riskcalc.pricing import PriceSnapshot


def _make_trade(**overrides) -> TradeRecord:
    defaults = dict(id="t1", pair="EURUSD", entry=1.1000, stop_loss=1.0950, take_profit=1.1100)
    defaults.update(overrides)
    return TradeRecord(**defaults)


def _make_params(**overrides) -> TradeParams:
    defaults = dict(entry=1.1000, stop_loss=1.0950, take_profit=1.1100, atr=0.0025)
    defaults.update(overrides)
    return TradeParams(**defaults)


SNAPSHOT = PriceSnapshot(prices={"EURUSD": 1.1000, "XAUUSD": 2400.0})


# ─── Identity ─────────────────────────────────────────────────────────


class TestTradeId:
    def test_uses_record_id(self):
        assert trade_id(_make_trade(id="abc"), 3) == "abc"

    def test_falls_back_to_position(self):
        assert trade_id(_make_trade(id=None), 3) == "trade_3"
        assert trade_id(_make_trade(id=""), 0) == "trade_0"


# ─── Parameter defaults ───────────────────────────────────────────────


class TestEnsureParams:
    def test_new_trade_gets_defaults_from_record(self):
        trade = _make_trade()
        params = ensure_params([trade], {})

        p = params["t1"]
        assert p.enabled is True
        assert p.price_mode is PriceMode.AUTO
        assert p.manual_price is None
        assert p.entry == trade.entry
        assert p.stop_loss == trade.stop_loss
        assert p.take_profit == trade.take_profit
        assert p.atr is None

    def test_existing_overrides_kept(self):
        existing = TradeParams(
            enabled=False, price_mode=PriceMode.MANUAL, manual_price=1.2,
            entry=1.15, stop_loss=1.14, take_profit=1.18, atr=0.004,
        )
        params = ensure_params([_make_trade()], {"t1": existing})
        assert params["t1"] == existing

    def test_blank_levels_refilled_from_record(self):
        existing = TradeParams(enabled=False, entry=None, stop_loss=1.08, take_profit=None, atr=0.01)
        params = ensure_params([_make_trade()], {"t1": existing})

        p = params["t1"]
        assert p.enabled is False
        assert p.entry == 1.1000
        assert p.stop_loss == 1.08
        assert p.take_profit == 1.1100
        assert p.atr == 0.01

    def test_params_of_removed_trades_preserved(self):
        orphan = _make_params()
        params = ensure_params([_make_trade()], {"gone": orphan})
        assert params["gone"] is orphan
        assert "t1" in params

    def test_input_mapping_not_mutated(self):
        source: dict[str, TradeParams] = {}
        ensure_params([_make_trade()], source)
        assert source == {}

    def test_positional_id_for_trades_without_id(self):
        params = ensure_params([_make_trade(id=None), _make_trade(id=None)], {})
        assert set(params) == {"trade_0", "trade_1"}


# ─── Price resolution ─────────────────────────────────────────────────


class TestResolvePrice:
    def test_auto_mode_reads_snapshot_by_normalized_pair(self):
        assert resolve_price(_make_trade(pair=" eurusd "), _make_params(), SNAPSHOT) == 1.1000

    def test_manual_mode_uses_manual_price(self):
        params = _make_params(price_mode=PriceMode.MANUAL, manual_price=1.2345)
        assert resolve_price(_make_trade(), params, SNAPSHOT) == 1.2345

    def test_manual_mode_without_price_is_missing(self):
        params = _make_params(price_mode=PriceMode.MANUAL)
        assert resolve_price(_make_trade(), params, SNAPSHOT) is None

    def test_unknown_pair_is_missing(self):
        assert resolve_price(_make_trade(pair="GBPJPY"), _make_params(), SNAPSHOT) is None

    def test_no_snapshot(self):
        assert resolve_price(_make_trade(), _make_params(), None) is None


# ─── Candidate assembly ───────────────────────────────────────────────


class TestBuildCandidate:
    def test_valid_enabled_trade_has_weight(self):
        cand = build_candidate(_make_trade(), 0, _make_params(), SNAPSHOT)

        # rr = 0.01 / 0.005 = 2, danger = 0.0025 / 0.005 = 0.5, closeness = 0
        assert cand.valid is True
        assert cand.reward_risk == pytest.approx(2.0)
        assert cand.danger == pytest.approx(0.5)
        assert cand.closeness == pytest.approx(0.0)
        assert cand.weight == pytest.approx(2.0 / 2.25)
        assert cand.pair == "EURUSD"
        assert cand.current_price == 1.1000

    def test_disabled_trade_has_zero_weight(self):
        cand = build_candidate(_make_trade(), 0, _make_params(enabled=False), SNAPSHOT)
        assert cand.enabled is False
        assert cand.valid is True
        assert cand.weight == 0.0

    def test_params_override_record_levels(self):
        params = _make_params(take_profit=1.1150)
        cand = build_candidate(_make_trade(), 0, params, SNAPSHOT)
        assert cand.take_profit == 1.1150
        assert cand.reward_risk == pytest.approx(3.0)

    def test_record_levels_used_when_params_blank(self):
        params = TradeParams(atr=0.0025)
        cand = build_candidate(_make_trade(), 0, params, SNAPSHOT)
        assert cand.entry == 1.1000
        assert cand.valid is True

    def test_missing_price_is_invalid(self):
        cand = build_candidate(_make_trade(pair="GBPJPY"), 0, _make_params(), SNAPSHOT)
        assert cand.current_price is None
        assert cand.valid is False
        assert cand.weight == 0.0

    def test_non_positive_atr_dropped(self):
        cand = build_candidate(_make_trade(), 0, _make_params(atr=0.0), SNAPSHOT)
        assert cand.atr is None
        assert cand.valid is False


class TestBuildCandidates:
    def test_one_candidate_per_trade_in_order(self):
        trades = [_make_trade(id="a"), _make_trade(id="b", pair="XAUUSD",
                                                    entry=2400.0, stop_loss=2390.0, take_profit=2430.0)]
        params = {"a": _make_params(), "b": TradeParams(atr=5.0)}

        cands = build_candidates(trades, params, SNAPSHOT)

        assert [c.id for c in cands] == ["a", "b"]
        assert [c.index for c in cands] == [0, 1]
        assert cands[1].reward_risk == pytest.approx(3.0)

    def test_trade_without_params_is_enabled_but_invalid(self):
        cands = build_candidates([_make_trade()], {}, SNAPSHOT)
        assert cands[0].enabled is True
        assert cands[0].atr is None
        assert cands[0].valid is False

    def test_no_snapshot_leaves_auto_trades_invalid(self):
        cands = build_candidates([_make_trade()], {"t1": _make_params()})
        assert cands[0].valid is False

    def test_empty(self):
        assert build_candidates([], {}) == []
