"""THORChain liquidity pool catalog."""

import logging
from dataclasses import dataclass
from typing import Optional

from fundswap.errors import VenueError
from fundswap.utils.cache import TTLCache
from fundswap.utils.http import JsonApi

logger = logging.getLogger(__name__)

THORNODE_MAINNET = "https://thornode.ninerealms.com"


@dataclass(frozen=True)
class Pool:
    """An available pool, parsed from its CHAIN.SYMBOL[-CONTRACT] asset string."""

    asset: str  # as reported by THORNode
    chain: str
    symbol: str
    contract: str = ""  # lowercase, empty for native assets

    @classmethod
    def parse(cls, asset: str) -> Optional["Pool"]:
        chain, sep, rest = asset.partition(".")
        if not sep or not chain:
            return None
        symbol, _, contract = rest.partition("-")
        return cls(asset=asset, chain=chain.upper(), symbol=symbol.upper(), contract=contract.lower())


class PoolCatalog:
    """Cached list of THORChain pools with status Available."""

    def __init__(self, thornode_url: str = THORNODE_MAINNET, timeout: float = 15.0, cache_ttl: float = 600, client=None):
        self.api = JsonApi("thornode", thornode_url, timeout=timeout, client=client)
        self._cache: TTLCache[list[Pool]] = TTLCache(cache_ttl, name="thorchain-pools")

    async def pools(self) -> list[Pool]:
        async def fetch() -> list[Pool]:
            data = await self.api.get("/thorchain/pools")
            if not isinstance(data, list):
                raise VenueError("thornode", "pools response is not a list")
            pools = []
            for entry in data:
                if entry.get("status") != "Available":
                    continue
                pool = Pool.parse(entry.get("asset", ""))
                if pool:
                    pools.append(pool)
            logger.debug(f"Loaded {len(pools)} available THORChain pools")
            return pools

        return await self._cache.get_or_fetch("pools", fetch)

    async def match(self, chain: str, symbol: str, contract: str = "") -> Optional[str]:
        """Find a pool asset string on chain.

        With a contract, only contract pools with the same address match.
        Without one, only contract-less pools with the same symbol match.
        """
        chain = chain.upper()
        symbol = symbol.upper()
        contract = contract.lower()

        for pool in await self.pools():
            if pool.chain != chain:
                continue
            if contract and pool.contract:
                if pool.contract == contract:
                    return pool.asset
            elif not contract and not pool.contract and pool.symbol == symbol:
                return pool.asset
        return None
