"""Pyth Network price oracle service."""
from __future__ import annotations

import logging
import ssl
import time

import aiohttp
import certifi

from ..config import PythConfig

logger = logging.getLogger(__name__)


class PythOracle:
    """Fetch collateral prices from the Pyth Hermes API.

    Prices whose ``publish_time`` is older than ``max_age_seconds`` are
    dropped, so callers fall back to the on-chain ratio for that denom.
    """

    def __init__(self, config: PythConfig) -> None:
        self.hermes_url = config.hermes_url
        self.price_feeds = dict(config.feeds)
        self.max_age_seconds = config.max_age_seconds

    def _is_stale(self, publish_time: int | None, now: float) -> bool:
        if self.max_age_seconds <= 0 or publish_time is None:
            return False
        return now - publish_time > self.max_age_seconds

    async def fetch_prices(self, symbols: list[str] | None = None) -> dict[str, float]:
        """Fetch current prices from Pyth Network.

        Args:
            symbols: Optional list of denoms to fetch. If None, fetches all
                     configured feeds.
        """
        prices: dict[str, float] = {}

        feeds = self.price_feeds
        if symbols is not None:
            feeds = {k: v for k, v in self.price_feeds.items() if k in symbols}

        # Hermes returns ids without the 0x prefix
        id_to_denoms: dict[str, list[str]] = {}
        for denom, feed_id in feeds.items():
            id_to_denoms.setdefault(feed_id.lower().removeprefix("0x"), []).append(denom)

        if not id_to_denoms:
            return prices

        query_params = "&".join(f"ids[]={fid}" for fid in sorted(id_to_denoms))
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
        except Exception as e:
            logger.error("Error fetching prices from Pyth: %s", e)
            return prices

        now = time.time()
        for item in data.get("parsed", []):
            feed_id = str(item.get("id", "")).lower().removeprefix("0x")
            denoms = id_to_denoms.get(feed_id)
            if not denoms:
                continue

            price_data = item.get("price", {})
            publish_time = price_data.get("publish_time")
            if self._is_stale(publish_time, now):
                logger.warning(
                    "Dropping stale Pyth price for %s (published %ss ago)",
                    ", ".join(denoms),
                    int(now - publish_time),
                )
                continue

            price = int(price_data.get("price", 0)) * 10 ** int(price_data.get("expo", 0))
            for denom in denoms:
                prices[denom] = price

        logger.info("Fetched prices from Pyth Network:")
        for denom, price in sorted(prices.items()):
            logger.info("  %s: $%.4f", denom, price)

        return prices
