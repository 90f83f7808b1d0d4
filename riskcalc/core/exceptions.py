"""Exception hierarchy for the risk calculator.

The allocator itself never raises: degenerate inputs come back as
zero-allocation outcomes. These exceptions belong to the collaborators
around it (configuration, price lookup, stored data, instrument parsing),
which catch them at their own boundary and degrade to missing values.
"""


class RiskCalcError(Exception):
    """Base exception class for all risk calculator errors."""


class ConfigError(RiskCalcError):
    """Configuration file or settings are unusable."""


class PriceLookupError(RiskCalcError):
    """A quote source failed to produce a price.

    Attributes:
        pair: Normalized instrument symbol that was requested.
        reason: Why the lookup failed.
    """

    def __init__(self, pair: str, reason: str):
        super().__init__(f"[{pair}] Price lookup failed: {reason}")
        self.pair = pair
        self.reason = reason


class DataError(RiskCalcError):
    """Stored trades, parameters or settings are malformed."""


class InstrumentError(RiskCalcError):
    """An instrument symbol cannot be parsed into base and quote currencies.

    Attributes:
        pair: The symbol as given.
        reason: What is wrong with it.
    """

    def __init__(self, pair: str, reason: str):
        super().__init__(f"[{pair}] Invalid instrument: {reason}")
        self.pair = pair
        self.reason = reason
