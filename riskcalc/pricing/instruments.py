"""Instrument symbol parsing and contract specifications.

Covers the instrument families the calculator knows how to price and size:
FX pairs (``EURUSD``, ``EUR/USD``), spot metals, BTC/ETH crypto pairs,
two cash indices and a fixed list of MOEX stock tickers.
"""
from __future__ import annotations

from dataclasses import dataclass

from riskcalc.core.exceptions import InstrumentError

STABLE_COINS: frozenset[str] = frozenset({"USDT", "USDC", "DAI", "TUSD", "USDP"})
CRYPTO_BASES: frozenset[str] = frozenset({"BTC", "ETH"})

INDEX_SYMBOLS: dict[str, str] = {
    "GER40": "^DAX",
    "SPX500": "^SPX",
}
INDEX_QUOTES: dict[str, str] = {
    "GER40": "EUR",
    "SPX500": "USD",
}

METAL_PRICE_FIELDS: dict[str, str] = {
    "XAUUSD": "xauPrice",
    "XAGUSD": "xagPrice",
}

# Top-50 MOEX tickers, quoted in the account currency, one share per lot.
STOCKS: frozenset[str] = frozenset({
    "SBER", "ROSN", "LKOH", "NVTK", "GAZP", "PLZL", "SIBN", "GMKN", "YDEX", "TATN",
    "SNGS", "VTBR", "OZON", "TRNF", "T", "PHOR", "CHMF", "X5", "NLMK", "AKRN",
    "UNAC", "RUAL", "MTSS", "PIKK", "MOEX", "SVCB", "MAGN", "MGNT", "ALRS", "IRAO",
    "VSMO", "ENPG", "IRKT", "BANE", "CBOM", "POLY", "AFLT", "RTKM", "HYDR", "FLOT",
    "LENT", "BSPB", "HEAD", "FESH", "NMTP", "ROSB", "NKNC", "AFKS", "FIXP", "LSNG",
})

CONTRACT_SIZES: dict[str, float] = {
    "XAUUSD": 100.0,
    "XAGUSD": 5000.0,
    "BTCUSDT": 1.0,
    "ETHUSDT": 1.0,
}
DEFAULT_CONTRACT_SIZE: float = 100_000.0


@dataclass(frozen=True)
class CurrencyPair:
    base: str
    quote: str


def normalize_pair(pair: str | None) -> str:
    return str(pair or "").strip().upper()


def compact_pair(pair: str | None) -> str:
    return normalize_pair(pair).replace("/", "")


def normalize_currency(currency: str | None) -> str:
    """Upper-case a currency code, mapping USD stablecoins to ``USD``."""
    upper = str(currency or "").strip().upper()
    return "USD" if upper in STABLE_COINS else upper


def parse_fx_pair(pair: str | None) -> CurrencyPair | None:
    """Split ``EUR/USD`` or ``EURUSD`` into base and quote."""
    normalized = normalize_pair(pair)
    if not normalized:
        return None
    if "/" in normalized:
        base, _, quote = normalized.partition("/")
        if base and quote and "/" not in quote:
            return CurrencyPair(base, quote)
        return None
    if len(normalized) == 6:
        return CurrencyPair(normalized[:3], normalized[3:])
    return None


def parse_crypto_pair(pair: str | None) -> CurrencyPair | None:
    """Recognise BTC/ETH quoted against USD or USDT."""
    cleaned = compact_pair(pair)
    for quote in ("USDT", "USD"):
        if cleaned.endswith(quote):
            base = cleaned[: -len(quote)]
            if base in CRYPTO_BASES:
                return CurrencyPair(base, quote)
            return None
    return None


def is_stock(pair: str | None) -> bool:
    return compact_pair(pair) in STOCKS


def is_index(pair: str | None) -> bool:
    return compact_pair(pair) in INDEX_SYMBOLS


def is_metal(pair: str | None) -> bool:
    return compact_pair(pair) in METAL_PRICE_FIELDS


def parse_instrument(pair: str | None, account_currency: str) -> CurrencyPair:
    """Resolve the base and quote currency of any supported instrument.

    Stock tickers are quoted in the account currency.

    Raises:
        InstrumentError: If the symbol matches no known format.
    """
    normalized = normalize_pair(pair)
    if not normalized:
        raise InstrumentError(str(pair), "empty symbol")
    compact = normalized.replace("/", "")

    if compact in STOCKS:
        return CurrencyPair(compact, normalize_currency(account_currency))
    if compact in INDEX_QUOTES:
        return CurrencyPair(compact, INDEX_QUOTES[compact])
    if "/" in normalized:
        parsed = parse_fx_pair(normalized)
        if parsed is None:
            raise InstrumentError(normalized, "expected BASE/QUOTE")
        return parsed
    if compact.endswith("USDT") and len(compact) > 4:
        return CurrencyPair(compact[:-4], "USDT")
    if compact.endswith("USD") and len(compact) > 3:
        return CurrencyPair(compact[:-3], "USD")
    parsed = parse_fx_pair(compact)
    if parsed is None:
        raise InstrumentError(normalized, "unrecognised instrument format")
    return parsed


def contract_size(pair: str | None) -> float:
    """Units of the base asset in one lot."""
    compact = compact_pair(pair)
    if compact in STOCKS or compact in INDEX_SYMBOLS:
        return 1.0
    return CONTRACT_SIZES.get(compact, DEFAULT_CONTRACT_SIZE)
