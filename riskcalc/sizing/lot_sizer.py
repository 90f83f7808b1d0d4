"""Convert an allocated risk percentage into a position size in lots.

    risk_amount  = deposit * risk_pct / 100                (account currency)
    loss_per_lot = |entry - stop_loss| * contract_size     (quote currency)
    lots         = risk_amount * rate / loss_per_lot, floored to the lot step

where ``rate`` converts the account currency into the instrument's quote
currency.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Protocol, Sequence

from riskcalc.allocation import AllocationOutcome, CandidateTrade
from riskcalc.core.exceptions import InstrumentError
from riskcalc.pricing.instruments import contract_size, normalize_currency, parse_instrument

logger = logging.getLogger(__name__)


class RateProvider(Protocol):
    def get_rate(self, from_currency: str, to_currency: str) -> float | None: ...


@dataclass(frozen=True)
class PositionSize:
    pair: str
    risk_pct: float
    risk_amount: float
    currency: str
    quote_currency: str
    rate: float
    contract_size: float
    loss_per_lot: float
    lots: float


class LotSizer:
    """Sizes positions so that hitting the stop loses the allocated risk."""

    def __init__(
        self,
        rate_provider: RateProvider,
        deposit: float,
        currency: str = "USD",
        lot_step: float = 0.01,
    ) -> None:
        self._rates = rate_provider
        self._deposit = deposit
        self._currency = normalize_currency(currency)
        self._lot_step = lot_step

    def calculate(
        self,
        pair: str,
        entry: float | None,
        stop_loss: float | None,
        risk_pct: float,
    ) -> PositionSize | None:
        """Lots for one trade, or None when it cannot be sized.

        Raises:
            InstrumentError: If ``pair`` is not a recognised instrument.
        """
        instrument = parse_instrument(pair, self._currency)

        if risk_pct <= 0 or self._deposit <= 0:
            return None
        if entry is None or stop_loss is None or entry == stop_loss:
            logger.warning("Cannot size %s: stop distance undefined", pair)
            return None

        quote = normalize_currency(instrument.quote)
        rate = self._rates.get_rate(self._currency, quote)
        if rate is None or not math.isfinite(rate) or rate <= 0:
            logger.warning("Cannot size %s: no %s/%s rate", pair, self._currency, quote)
            return None

        size = contract_size(pair)
        loss_per_lot = abs(entry - stop_loss) * size
        risk_amount = self._deposit * risk_pct / 100.0
        raw_lots = risk_amount * rate / loss_per_lot
        # Small tolerance keeps exact multiples from flooring one step down.
        lots = math.floor(raw_lots / self._lot_step + 1e-9) * self._lot_step

        return PositionSize(
            pair=pair,
            risk_pct=risk_pct,
            risk_amount=risk_amount,
            currency=self._currency,
            quote_currency=quote,
            rate=rate,
            contract_size=size,
            loss_per_lot=loss_per_lot,
            lots=round(lots, 8),
        )

    def size_allocation(
        self,
        outcome: AllocationOutcome,
        candidates: Sequence[CandidateTrade],
    ) -> dict[str, PositionSize]:
        """Size every active trade of an allocation run, keyed by trade id.

        Trades with an unrecognised instrument are skipped with a warning.
        """
        by_id = {c.id: c for c in candidates}
        positions: dict[str, PositionSize] = {}
        for result in outcome.active:
            candidate = by_id.get(result.id)
            if candidate is None:
                continue
            try:
                position = self.calculate(
                    candidate.pair, candidate.entry, candidate.stop_loss, result.risk,
                )
            except InstrumentError as exc:
                logger.warning("Skipping %s: %s", result.id, exc)
                continue
            if position is not None:
                positions[result.id] = position
        return positions
