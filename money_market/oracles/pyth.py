"""Pyth Network price source — Hermes HTTP refresh, synchronous reads."""
import logging
import ssl

import aiohttp
import certifi

from ..config import PythConfig
from ..errors import NoValidPriceError, StalePriceError
from ..fixed_point import scale_exponent
from ..interfaces.clock import Clock, system_clock

logger = logging.getLogger(__name__)


class PythPriceSource:
    """Serve Pyth Network prices as WAD ints.

    ``refresh`` pulls the latest updates from Hermes into a local cache;
    ``get_price_with_timestamp`` answers from that cache and rejects prices
    whose publish time is older than ``max_age_seconds``.
    """

    def __init__(
        self, config: PythConfig, max_age_seconds: int = 3600, clock: Clock = system_clock
    ) -> None:
        self.hermes_url = config.hermes_url
        self.price_feeds = dict(config.feeds)
        self.max_age_seconds = max_age_seconds
        self._clock = clock
        self._cache: dict[str, tuple[int, int]] = {}

    async def refresh(self, symbols: list[str] | None = None) -> dict[str, int]:
        """Fetch current prices from Pyth Network.

        Args:
            symbols: Optional list of symbols to fetch. If None, fetches all
                     configured feeds.

        Returns the prices that were updated. On HTTP or network failure the
        cache is left as is, so reads eventually fail as stale.
        """
        prices: dict[str, int] = {}

        feeds = self.price_feeds
        if symbols is not None:
            feeds = {k: v for k, v in self.price_feeds.items() if k in symbols}

        feed_ids = list(set(feeds.values()))
        if not feed_ids:
            return prices

        query_params = "&".join([f"ids[]={fid}" for fid in feed_ids])
        url = f"{self.hermes_url}?{query_params}"

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.get(url) as response:
                    if response.status != 200:
                        logger.error(
                            "Error fetching prices from Pyth: HTTP %s", response.status
                        )
                        return prices

                    data = await response.json()
                    parsed = data.get("parsed", [])

                    # Create reverse mapping from feed ID to asset names
                    id_to_assets: dict[str, list[str]] = {}
                    for asset, feed_id in feeds.items():
                        id_to_assets.setdefault(feed_id.lower().removeprefix("0x"), []).append(asset)

                    for item in parsed:
                        feed_id = str(item.get("id", "")).lower().removeprefix("0x")
                        price_data = item.get("price", {})
                        price_raw = int(price_data.get("price", 0))
                        expo = int(price_data.get("expo", 0))
                        publish_time = int(price_data.get("publish_time", 0))

                        if price_raw <= 0:
                            logger.warning("Ignoring non-positive Pyth price for feed %s", feed_id)
                            continue

                        price = scale_exponent(price_raw, expo)
                        for asset in id_to_assets.get(feed_id, []):
                            self._cache[asset] = (price, publish_time)
                            prices[asset] = price

                    logger.info("Fetched prices from Pyth Network:")
                    for asset, price in sorted(prices.items()):
                        logger.info("  %s: %d", asset, price)

        except (aiohttp.ClientError, ConnectionError, TimeoutError) as e:
            logger.error("Error fetching prices from Pyth: %s", e)

        return prices

    def get_price_with_timestamp(self, asset: str) -> tuple[int, int]:
        try:
            price, publish_time = self._cache[asset]
        except KeyError:
            if asset not in self.price_feeds:
                raise NoValidPriceError(f"No Pyth feed configured for {asset}") from None
            raise NoValidPriceError(f"No Pyth price fetched yet for {asset}") from None
        age = self._clock() - publish_time
        if age > self.max_age_seconds:
            raise StalePriceError(
                f"Pyth price for {asset} is {age}s old (max {self.max_age_seconds}s)"
            )
        return price, publish_time

    def symbols(self) -> list[str]:
        return sorted(self.price_feeds)
