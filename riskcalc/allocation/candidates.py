"""Candidate builder: joins saved trades, per-trade overrides and prices."""
from __future__ import annotations

from typing import Mapping, Sequence

from riskcalc.allocation import CandidateTrade, PriceMode
from riskcalc.allocation.metrics import derive_metrics
from riskcalc.allocation.weights import calculate_weight
from riskcalc.data import TradeParams, TradeRecord
from riskcalc.pricing import PriceSnapshot
from riskcalc.pricing.instruments import normalize_pair


def trade_id(trade: TradeRecord, index: int) -> str:
    return trade.id if trade.id else f"trade_{index}"


def _first(override: float | None, fallback: float | None) -> float | None:
    return override if override is not None else fallback


def ensure_params(
    trades: Sequence[TradeRecord],
    params_by_id: Mapping[str, TradeParams],
) -> dict[str, TradeParams]:
    """Return parameters for every trade, filling defaults for new ones.

    A trade seen for the first time starts enabled, auto-priced, with its
    entry/stop/target copied from the record and no ATR. Existing
    overrides are kept; blank price levels are refilled from the record.
    Parameters of trades no longer in the list are preserved as-is.
    """
    result = dict(params_by_id)
    for index, trade in enumerate(trades):
        tid = trade_id(trade, index)
        current = params_by_id.get(tid)
        if current is None:
            result[tid] = TradeParams(
                entry=trade.entry,
                stop_loss=trade.stop_loss,
                take_profit=trade.take_profit,
            )
            continue
        result[tid] = TradeParams(
            enabled=current.enabled,
            price_mode=current.price_mode,
            manual_price=current.manual_price,
            entry=_first(current.entry, trade.entry),
            stop_loss=_first(current.stop_loss, trade.stop_loss),
            take_profit=_first(current.take_profit, trade.take_profit),
            atr=current.atr,
        )
    return result


def resolve_price(
    trade: TradeRecord,
    params: TradeParams,
    prices: PriceSnapshot | None,
) -> float | None:
    """Manual override in manual mode, otherwise the snapshot quote."""
    if params.price_mode is PriceMode.MANUAL:
        return params.manual_price
    pair = normalize_pair(trade.pair)
    if prices is None or not pair:
        return None
    return prices.get(pair)


def build_candidate(
    trade: TradeRecord,
    index: int,
    params: TradeParams,
    prices: PriceSnapshot | None,
) -> CandidateTrade:
    entry = _first(params.entry, trade.entry)
    stop_loss = _first(params.stop_loss, trade.stop_loss)
    take_profit = _first(params.take_profit, trade.take_profit)
    current_price = resolve_price(trade, params, prices)

    metrics = derive_metrics(entry, stop_loss, take_profit, current_price, params.atr)
    weight = 0.0
    if params.enabled and metrics.valid:
        weight = calculate_weight(metrics.reward_risk, metrics.danger, metrics.closeness)

    return CandidateTrade(
        id=trade_id(trade, index),
        index=index,
        pair=normalize_pair(trade.pair),
        enabled=params.enabled,
        entry=entry,
        stop_loss=stop_loss,
        take_profit=take_profit,
        current_price=current_price,
        atr=params.atr if params.atr is not None and params.atr > 0 else None,
        reward_risk=metrics.reward_risk,
        danger=metrics.danger,
        closeness=metrics.closeness,
        valid=metrics.valid,
        weight=weight,
        price_mode=params.price_mode,
    )


def build_candidates(
    trades: Sequence[TradeRecord],
    params_by_id: Mapping[str, TradeParams],
    prices: PriceSnapshot | None = None,
) -> list[CandidateTrade]:
    """Build the allocator input list, one candidate per trade, in order.

    Trades without stored parameters are treated as enabled and
    auto-priced with no ATR, which leaves them invalid until an ATR is set.
    """
    candidates: list[CandidateTrade] = []
    for index, trade in enumerate(trades):
        params = params_by_id.get(trade_id(trade, index)) or TradeParams()
        candidates.append(build_candidate(trade, index, params, prices))
    return candidates
