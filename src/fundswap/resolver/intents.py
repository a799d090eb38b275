"""NEAR Intents (1Click) token catalog."""

import logging
from dataclasses import dataclass
from typing import Optional

from fundswap.errors import VenueError
from fundswap.utils.cache import TTLCache
from fundswap.utils.http import JsonApi

logger = logging.getLogger(__name__)

ONECLICK_API = "https://1click.chaindefuser.com"

# Asset-notation chain code -> 1Click blockchain name
CHAIN_TO_NEAR_BLOCKCHAIN = {
    "ETH": "eth",
    "BASE": "base",
    "AVAX": "avax",
    "BSC": "bsc",
    "POLYGON": "pol",
    "ARB": "arb",
    "SOL": "sol",
    "BTC": "btc",
    "LTC": "ltc",
    "DOGE": "doge",
    "BCH": "bch",
    "TRON": "tron",
    "TON": "ton",
    "SUI": "sui",
    "GAIA": "near",
}


@dataclass(frozen=True)
class IntentToken:
    asset_id: str
    symbol: str
    blockchain: str
    contract_address: str = ""
    decimals: int = 0
    price: float = 0.0


class IntentTokenCatalog:
    """Cached 1Click token list."""

    def __init__(self, base_url: str = ONECLICK_API, timeout: float = 15.0, cache_ttl: float = 600, client=None):
        self.api = JsonApi("nearintents", base_url, timeout=timeout, client=client)
        self._cache: TTLCache[list[IntentToken]] = TTLCache(cache_ttl, name="nearintents-tokens")

    async def tokens(self) -> list[IntentToken]:
        async def fetch() -> list[IntentToken]:
            data = await self.api.get("/v0/tokens")
            if not isinstance(data, list):
                raise VenueError("nearintents", "tokens response is not a list")
            try:
                return [
                    IntentToken(
                        asset_id=t["assetId"],
                        symbol=t.get("symbol", ""),
                        blockchain=t.get("blockchain", ""),
                        contract_address=t.get("contractAddress") or "",
                        decimals=int(t.get("decimals") or 0),
                        price=float(t.get("price") or 0),
                    )
                    for t in data
                ]
            except (KeyError, TypeError, ValueError) as e:
                raise VenueError("nearintents", f"malformed token entry: {e}") from e

        return await self._cache.get_or_fetch("tokens", fetch)

    async def match(self, chain: str, symbol: str) -> Optional[IntentToken]:
        """Highest-priced token with this symbol, restricted to chain when it is mapped."""
        blockchain = CHAIN_TO_NEAR_BLOCKCHAIN.get(chain.upper(), "")
        best = None
        for token in await self.tokens():
            if token.symbol.lower() != symbol.lower():
                continue
            if blockchain and token.blockchain.lower() != blockchain:
                continue
            if best is None or token.price > best.price:
                best = token
        return best
