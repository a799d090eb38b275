"""CoinGecko symbol search and contract-platform lookups."""

import logging
import math
from dataclasses import dataclass
from typing import Optional

from fundswap.errors import VenueError
from fundswap.utils.cache import TTLCache
from fundswap.utils.http import JsonApi

logger = logging.getLogger(__name__)

COINGECKO_API = "https://api.coingecko.com/api/v3"

# CoinGecko platform id -> asset-notation chain code. Unlisted platforms are dropped.
PLATFORM_TO_CHAIN = {
    "ethereum": "ETH",
    "avalanche": "AVAX",
    "base": "BASE",
    "binance-smart-chain": "BSC",
    "polygon-pos": "POLYGON",
    "solana": "SOL",
    "arbitrum-one": "ARB",
    "tron": "TRON",
    "bitcoin": "BTC",
    "litecoin": "LTC",
    "dogecoin": "DOGE",
    "bitcoin-cash": "BCH",
    "cosmos": "GAIA",
    "thorchain": "THOR",
    "sui": "SUI",
    "the-open-network": "TON",
    "xrp": "XRP",
    "polkadot": "DOT",
    "cardano": "ADA",
}


@dataclass(frozen=True)
class CoinSearchResult:
    """One entry of a /search response."""

    id: str
    name: str
    symbol: str
    market_cap_rank: Optional[int] = None

    @property
    def is_ranked(self) -> bool:
        return bool(self.market_cap_rank)


def best_match(coins: list[CoinSearchResult], symbol: str) -> Optional[CoinSearchResult]:
    """Pick the lowest market-cap rank among exact symbol matches.

    Unranked entries (null or 0) lose to any ranked one; among equals the
    earliest entry in catalog order wins.
    """
    candidates = [
        (coin.market_cap_rank if coin.is_ranked else math.inf, index, coin)
        for index, coin in enumerate(coins)
        if coin.symbol.lower() == symbol.lower()
    ]
    if not candidates:
        return None
    return min(candidates, key=lambda c: (c[0], c[1]))[2]


class CoinGeckoClient:
    """Cached access to the CoinGecko catalog."""

    def __init__(
        self,
        api_key: str = "",
        base_url: str = COINGECKO_API,
        timeout: float = 15.0,
        cache_ttl: float = 3600,
        client=None,
    ):
        self.api_key = api_key
        self.api = JsonApi("coingecko", base_url, timeout=timeout, client=client)
        self._search_cache: TTLCache[list[CoinSearchResult]] = TTLCache(cache_ttl, name="coingecko-search")
        self._platform_cache: TTLCache[dict[str, str]] = TTLCache(cache_ttl, name="coingecko-platforms")

    def _params(self, **params) -> dict:
        if self.api_key:
            params["x_cg_demo_api_key"] = self.api_key
        return params

    async def search(self, symbol: str) -> list[CoinSearchResult]:
        """Search the catalog for a symbol (cached per lowercase symbol)."""

        async def fetch() -> list[CoinSearchResult]:
            data = await self.api.get("/search", params=self._params(query=symbol))
            try:
                return [
                    CoinSearchResult(
                        id=coin["id"],
                        name=coin.get("name", ""),
                        symbol=coin.get("symbol", ""),
                        market_cap_rank=coin.get("market_cap_rank"),
                    )
                    for coin in data.get("coins", [])
                ]
            except (KeyError, TypeError, AttributeError) as e:
                raise VenueError("coingecko", f"malformed search response: {e}") from e

        return await self._search_cache.get_or_fetch(symbol.lower(), fetch)

    async def platforms(self, coin_id: str) -> dict[str, str]:
        """Chain code -> contract address for a coin (cached per coin id)."""

        async def fetch() -> dict[str, str]:
            data = await self.api.get(
                f"/coins/{coin_id}",
                params=self._params(
                    localization="false",
                    tickers="false",
                    market_data="false",
                    community_data="false",
                    developer_data="false",
                ),
            )
            if not isinstance(data, dict):
                raise VenueError("coingecko", f"malformed coin response for {coin_id}")
            platforms = data.get("platforms") or {}
            if not isinstance(platforms, dict):
                raise VenueError("coingecko", f"malformed platforms for {coin_id}")

            result = {}
            for platform, address in platforms.items():
                if not platform or not address:
                    continue
                chain = PLATFORM_TO_CHAIN.get(platform)
                if chain:
                    result[chain] = address
            return result

        return await self._platform_cache.get_or_fetch(coin_id, fetch)
