"""JSON file persistence for trades, per-trade parameters and settings.

Layout under the data directory::

    trades.json    list of trade records
    params.json    {trade_id: params}
    settings.json  allocation settings

Reads never raise on bad content: a missing file gives an empty default,
a corrupt or wrongly shaped one is logged and treated as empty.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from riskcalc.allocation import AllocationSettings
from riskcalc.core.exceptions import DataError
from riskcalc.data import TradeParams, TradeRecord

logger = logging.getLogger(__name__)

TRADES_FILE = "trades.json"
PARAMS_FILE = "params.json"
SETTINGS_FILE = "settings.json"


class TradeStore:
    def __init__(self, data_dir: Path | str) -> None:
        self._dir = Path(data_dir)

    @property
    def data_dir(self) -> Path:
        return self._dir

    def _read(self, name: str, expected: type) -> Any:
        path = self._dir / name
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:  # includes JSON and UTF-8 decode errors
            raise DataError(f"{path}: {exc}") from exc
        if not isinstance(data, expected):
            raise DataError(f"{path}: expected {expected.__name__}, got {type(data).__name__}")
        return data

    def _write(self, name: str, payload: Any) -> None:
        self._dir.mkdir(parents=True, exist_ok=True)
        with open(self._dir / name, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)

    def load_trades(self) -> list[TradeRecord]:
        try:
            raw = self._read(TRADES_FILE, list)
        except DataError as exc:
            logger.warning("Could not load trades: %s", exc)
            return []
        if raw is None:
            return []
        return [TradeRecord.from_dict(item) for item in raw if isinstance(item, dict)]

    def save_trades(self, trades: list[TradeRecord]) -> None:
        self._write(TRADES_FILE, [t.to_dict() for t in trades])

    def load_params(self) -> dict[str, TradeParams]:
        try:
            raw = self._read(PARAMS_FILE, dict)
        except DataError as exc:
            logger.warning("Could not load trade parameters: %s", exc)
            return {}
        if raw is None:
            return {}
        return {
            str(tid): TradeParams.from_dict(item)
            for tid, item in raw.items()
            if isinstance(item, dict)
        }

    def save_params(self, params_by_id: dict[str, TradeParams]) -> None:
        self._write(PARAMS_FILE, {tid: p.to_dict() for tid, p in params_by_id.items()})

    def load_settings(self) -> AllocationSettings | None:
        """Stored allocation settings, or None if nothing usable is saved."""
        try:
            raw = self._read(SETTINGS_FILE, dict)
        except DataError as exc:
            logger.warning("Could not load settings: %s", exc)
            return None
        if raw is None:
            return None
        return AllocationSettings.from_raw(raw)

    def save_settings(self, settings: AllocationSettings) -> None:
        self._write(SETTINGS_FILE, settings.to_dict())
