from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Mapping


@dataclass(frozen=True)
class PriceSnapshot:
    """Latest known prices keyed by normalized pair.

    Owned by the caller and passed into the candidate builder, so an
    allocation run always sees one consistent set of quotes.
    """

    prices: Mapping[str, float] = field(default_factory=dict)
    missing: tuple[str, ...] = ()
    updated_at: datetime | None = None

    def get(self, pair: str) -> float | None:
        return self.prices.get(pair)

    def __contains__(self, pair: str) -> bool:
        return pair in self.prices

    def __len__(self) -> int:
        return len(self.prices)
