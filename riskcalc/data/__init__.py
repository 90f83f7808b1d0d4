from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from riskcalc.allocation import PriceMode, to_float


@dataclass(frozen=True)
class TradeRecord:
    """A saved trade idea as entered in the calculator."""

    id: str | None
    pair: str
    entry: float | None = None
    stop_loss: float | None = None
    take_profit: float | None = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> TradeRecord:
        trade_id = raw.get("id")
        return cls(
            id=str(trade_id) if trade_id not in (None, "") else None,
            pair=str(raw.get("pair") or ""),
            entry=to_float(raw.get("entry")),
            stop_loss=to_float(raw.get("stop_loss")),
            take_profit=to_float(raw.get("take_profit")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "pair": self.pair,
            "entry": self.entry,
            "stop_loss": self.stop_loss,
            "take_profit": self.take_profit,
        }


@dataclass(frozen=True)
class TradeParams:
    """User-editable per-trade overrides kept next to the trade list."""

    enabled: bool = True
    price_mode: PriceMode = PriceMode.AUTO
    manual_price: float | None = None
    entry: float | None = None
    stop_loss: float | None = None
    take_profit: float | None = None
    atr: float | None = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> TradeParams:
        mode = PriceMode.MANUAL if raw.get("price_mode") == "manual" else PriceMode.AUTO
        enabled = raw.get("enabled", True)
        return cls(
            enabled=enabled if isinstance(enabled, bool) else True,
            price_mode=mode,
            manual_price=to_float(raw.get("manual_price")),
            entry=to_float(raw.get("entry")),
            stop_loss=to_float(raw.get("stop_loss")),
            take_profit=to_float(raw.get("take_profit")),
            atr=to_float(raw.get("atr")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "price_mode": self.price_mode.value,
            "manual_price": self.manual_price,
            "entry": self.entry,
            "stop_loss": self.stop_loss,
            "take_profit": self.take_profit,
            "atr": self.atr,
        }
