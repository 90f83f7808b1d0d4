"""Live quotes from public price feeds.

Sources, by instrument family:
    FX       open.er-api.com latest rates for the base currency
    metals   goldprice.org USD spot table (XAUUSD, XAGUSD)
    crypto   Coinbase spot price (BTC/ETH against USD or a USD stablecoin)
    indices  stooq JSON quote, fetched through a CORS proxy

Each source keeps its own cache on the fetcher instance until
``reset_caches`` is called. A failed lookup is logged and reported as a
missing price; nothing here raises into the allocation path.
"""
from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Any, Iterable
from urllib.parse import quote as url_quote

import requests

from riskcalc.core.exceptions import PriceLookupError
from riskcalc.pricing import PriceSnapshot
from riskcalc.pricing.instruments import (
    INDEX_SYMBOLS,
    METAL_PRICE_FIELDS,
    normalize_currency,
    normalize_pair,
    parse_crypto_pair,
    parse_fx_pair,
)

logger = logging.getLogger(__name__)

_FX_URL = "https://open.er-api.com/v6/latest/{base}"
_METALS_URL = "https://data-asg.goldprice.org/dbXRates/USD"
_CRYPTO_URL = "https://api.coinbase.com/v2/prices/{base}-{quote}/spot"
_STOOQ_URL = "https://stooq.com/q/l/?s={symbol}&f=sd2t2ohlcv&h&e=json"
_PROXY_URL = "https://api.codetabs.com/v1/proxy/?quest={url}"
_USER_AGENT = "RiskCalc/1.0 (position-size calculator; Python/requests)"


def _as_float(value: Any) -> float | None:
    try:
        num = float(str(value).replace(",", "."))
    except (TypeError, ValueError):
        return None
    return num if math.isfinite(num) else None


class PriceFetcher:
    """Looks up current prices and exchange rates over HTTP."""

    def __init__(self, timeout: float = 10.0) -> None:
        self._timeout = timeout
        self._fx_rates: dict[str, dict[str, Any]] = {}
        self._metals: dict[str, Any] | None = None
        self._crypto: dict[str, float] = {}
        self._indices: dict[str, float] = {}

    def reset_caches(self) -> None:
        self._fx_rates = {}
        self._metals = None
        self._crypto = {}
        self._indices = {}

    # ── public API ──────────────────────────────────────────────────

    def fetch_price(self, pair: str) -> float | None:
        """Current price for ``pair``, or None if no source could supply it."""
        normalized = normalize_pair(pair)
        if not normalized:
            return None
        try:
            return self._route(normalized)
        except (requests.RequestException, ValueError, PriceLookupError) as exc:
            logger.warning("Price unavailable for %s: %s", normalized, exc)
            return None

    def refresh(self, pairs: Iterable[str], *, force: bool = False) -> PriceSnapshot:
        """Fetch every distinct pair and return an immutable snapshot.

        Args:
            pairs: Instrument symbols; duplicates and blanks are ignored.
            force: Drop cached quotes first.
        """
        if force:
            self.reset_caches()

        unique = list(dict.fromkeys(p for p in map(normalize_pair, pairs) if p))
        prices: dict[str, float] = {}
        missing: list[str] = []
        for pair in unique:
            price = self.fetch_price(pair)
            if price is None:
                missing.append(pair)
            else:
                prices[pair] = price

        logger.info("Prices updated: %d/%d", len(prices), len(unique))
        if missing:
            logger.warning("No price for: %s", ", ".join(missing))
        return PriceSnapshot(
            prices=prices,
            missing=tuple(missing),
            updated_at=datetime.now(timezone.utc),
        )

    def get_rate(self, from_currency: str, to_currency: str) -> float | None:
        """Units of ``to_currency`` per one unit of ``from_currency``."""
        base = normalize_currency(from_currency)
        quote = normalize_currency(to_currency)
        if not base or not quote:
            return None
        if base == quote:
            return 1.0
        try:
            return self._fx_price(base, quote)
        except (requests.RequestException, ValueError, PriceLookupError) as exc:
            logger.warning("Exchange rate unavailable for %s/%s: %s", base, quote, exc)
            return None

    # ── sources ─────────────────────────────────────────────────────

    def _route(self, pair: str) -> float:
        compact = pair.replace("/", "")
        if compact in METAL_PRICE_FIELDS:
            return self._metal_price(compact)
        if compact in INDEX_SYMBOLS:
            return self._index_price(compact)
        crypto = parse_crypto_pair(pair)
        if crypto is not None:
            return self._crypto_price(crypto.base, crypto.quote)
        fx = parse_fx_pair(pair)
        if fx is None:
            raise PriceLookupError(pair, "no quote source for this instrument")
        if fx.base == fx.quote:
            return 1.0
        return self._fx_price(fx.base, fx.quote)

    def _get_json(self, url: str) -> Any:
        resp = requests.get(url, headers={"User-Agent": _USER_AGENT}, timeout=self._timeout)
        resp.raise_for_status()
        return resp.json()

    def _fx_price(self, base: str, quote: str) -> float:
        rates = self._fx_rates.get(base)
        if rates is None:
            data = self._get_json(_FX_URL.format(base=base))
            ok = isinstance(data, dict) and data.get("result") == "success"
            rates = data.get("rates") if ok else None
            if not isinstance(rates, dict) or not rates:
                raise PriceLookupError(f"{base}{quote}", "FX feed returned no rates")
            self._fx_rates[base] = rates
        value = _as_float(rates.get(quote))
        if value is None:
            raise PriceLookupError(f"{base}{quote}", f"no {quote} rate for {base}")
        return value

    def _metal_price(self, pair: str) -> float:
        if self._metals is None:
            data = self._get_json(_METALS_URL)
            items = data.get("items") if isinstance(data, dict) else None
            if not isinstance(items, list) or not items or not isinstance(items[0], dict):
                raise PriceLookupError(pair, "metals feed returned no items")
            self._metals = items[0]
        value = _as_float(self._metals.get(METAL_PRICE_FIELDS[pair]))
        if value is None:
            raise PriceLookupError(pair, "metal price missing from feed")
        return value

    def _crypto_price(self, base: str, quote: str) -> float:
        quote = normalize_currency(quote)
        key = f"{base}-{quote}"
        if key in self._crypto:
            return self._crypto[key]
        data = self._get_json(_CRYPTO_URL.format(base=base, quote=quote))
        body = data.get("data") if isinstance(data, dict) else None
        amount = body.get("amount") if isinstance(body, dict) else None
        value = _as_float(amount)
        if value is None:
            raise PriceLookupError(key, "crypto feed returned no amount")
        self._crypto[key] = value
        return value

    def _index_price(self, pair: str) -> float:
        if pair in self._indices:
            return self._indices[pair]
        stooq = _STOOQ_URL.format(symbol=url_quote(INDEX_SYMBOLS[pair], safe=""))
        data = self._get_json(_PROXY_URL.format(url=url_quote(stooq, safe="")))
        rows = data.get("symbols") if isinstance(data, dict) else None
        first = rows[0] if isinstance(rows, list) and rows else None
        close = first.get("close") if isinstance(first, dict) else None
        value = _as_float(close) if close is not None else None
        if value is None:
            raise PriceLookupError(pair, "index feed returned no close")
        self._indices[pair] = value
        return value
