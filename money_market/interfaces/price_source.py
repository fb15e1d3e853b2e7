"""Price source protocol"""
from typing import Protocol


class PriceSource(Protocol):
    """Abstract interface for fetching an asset price.

    Prices are WAD-scaled quote units per whole token. Implementations
    enforce their own staleness bound and raise ``NoValidPriceError``
    rather than return a price they would not stand behind.
    """

    def get_price_with_timestamp(self, asset: str) -> tuple[int, int]: ...
