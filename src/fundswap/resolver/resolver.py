"""Resolve arbitrary CHAIN.SYMBOL[-CONTRACT] assets to per-venue identifiers.

Resolution order:
1. CoinGecko symbol search, lowest market-cap rank wins.
2. The coin's contract addresses per chain.
3. THORChain pools: caller's contract, then every catalog contract,
   then (native assets) chain + symbol.
4. NEAR Intents tokens: highest price among same-symbol tokens.
5. Custodial venue catalogs, keyed by the THORChain pool notation when a
   pool matched, else by the caller's CHAIN.SYMBOL.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from fundswap import venues
from fundswap.errors import NotFoundError
from fundswap.resolver.coingecko import CoinGeckoClient, best_match
from fundswap.resolver.currencies import VenueCatalog
from fundswap.resolver.intents import IntentTokenCatalog
from fundswap.resolver.pools import PoolCatalog
from fundswap.routing.asset import Asset, ResolvedHints

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderMatch:
    """A venue that supports the resolved asset, and its id for it."""

    provider: str
    asset_id: str


@dataclass(frozen=True)
class Resolution:
    """Result of resolving an asset. Never returned with zero matches."""

    coingecko_id: str
    name: str
    symbol: str
    contract_address: str = ""
    providers: tuple[ProviderMatch, ...] = field(default_factory=tuple)

    def match_for(self, provider: str) -> Optional[ProviderMatch]:
        for match in self.providers:
            if match.provider == provider:
                return match
        return None

    def to_hints(self) -> ResolvedHints:
        """Per-venue identifiers for the swap providers."""
        fields = {
            venues.THORCHAIN: "thorchain_asset",
            venues.SIMPLESWAP: "simpleswap_symbol",
            venues.NEARINTENTS: "nearintents_token_id",
            venues.HOUDINI: "houdini_symbol",
        }
        values = {}
        for match in self.providers:
            name = fields.get(match.provider)
            if name:
                values[name] = match.asset_id
        return ResolvedHints(**values)


def _pool_key(pool_asset: str) -> str:
    """CHAIN.SYMBOL part of a pool asset string."""
    chain, _, rest = pool_asset.partition(".")
    return f"{chain}.{rest.partition('-')[0]}".upper()


class AssetResolver:
    """Identifies an asset against the catalogs and every venue."""

    def __init__(
        self,
        coingecko: CoinGeckoClient,
        pools: Optional[PoolCatalog] = None,
        intents: Optional[IntentTokenCatalog] = None,
        catalogs: Optional[list[VenueCatalog]] = None,
    ):
        """Initialize the resolver.

        Args:
            coingecko: Symbol-search catalog client
            pools: THORChain pool catalog (skipped when None)
            intents: NEAR Intents token catalog (skipped when None)
            catalogs: Static/dynamic catalogs of custodial venues
        """
        self.coingecko = coingecko
        self.pools = pools
        self.intents = intents
        self.catalogs = catalogs or []

    async def refresh_catalogs(self) -> None:
        """Reload every venue currency index. A failing venue keeps its old index."""
        results = await asyncio.gather(*(c.refresh() for c in self.catalogs), return_exceptions=True)
        for catalog, result in zip(self.catalogs, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                logger.warning(f"Refreshing {catalog.venue} currencies failed: {result}")
            else:
                logger.debug(f"Refreshed {catalog.venue} currencies: {result}")

    async def resolve(self, chain: str, symbol: str, contract_address: str = "") -> Resolution:
        """Resolve an asset.

        Raises:
            NotFoundError: No catalog entry, or no venue supports the asset
            VenueError: CoinGecko failed
        """
        asset = Asset(chain=chain, symbol=symbol, contract_address=contract_address)

        coins = await self.coingecko.search(asset.symbol)
        best = best_match(coins, asset.symbol)
        if best is None:
            raise NotFoundError(f"no CoinGecko result for symbol {asset.symbol!r}")

        platforms = await self.coingecko.platforms(best.id)
        logger.debug(f"Resolving {asset}: coingecko id {best.id}, platforms {sorted(platforms)}")

        pool_match, intent_token = await asyncio.gather(
            self._match_pool(asset, platforms),
            self._match_intent(asset),
        )

        matches: list[ProviderMatch] = []
        contract = platforms.get(asset.chain, "")
        keys = []
        if pool_match:
            pool_asset, pool_contract = pool_match
            matches.append(ProviderMatch(venues.THORCHAIN, pool_asset))
            contract = contract or pool_contract
            keys.append(_pool_key(pool_asset))
        if intent_token:
            matches.append(ProviderMatch(venues.NEARINTENTS, intent_token))

        keys.append(asset.short)
        for catalog in self.catalogs:
            for key in keys:
                venue_id = catalog.lookup_key(key)
                if venue_id:
                    matches.append(ProviderMatch(catalog.venue, venue_id))
                    break

        name = best.name
        if not matches:
            raise NotFoundError(
                f"token {name} ({best.symbol.upper()}) found on CoinGecko but not supported by any provider"
            )

        resolution = Resolution(
            coingecko_id=best.id,
            name=name,
            symbol=best.symbol.upper(),
            contract_address=contract,
            providers=tuple(matches),
        )
        logger.info(
            f"Resolved {asset} to {resolution.coingecko_id}: "
            f"{', '.join(f'{m.provider}={m.asset_id}' for m in matches)}"
        )
        return resolution

    async def _match_pool(self, asset: Asset, platforms: dict[str, str]) -> Optional[tuple[str, str]]:
        """(pool asset, contract it matched on) or None. Lookup failures are logged."""
        if self.pools is None:
            return None
        try:
            if asset.contract_address:
                found = await self.pools.match(asset.chain, asset.symbol, asset.contract_address)
                if found:
                    return found, asset.contract_address

            for chain, address in platforms.items():
                found = await self.pools.match(chain, asset.symbol, address)
                if found:
                    return found, address

            if not platforms or not asset.contract_address:
                found = await self.pools.match(asset.chain, asset.symbol)
                if found:
                    return found, ""
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"THORChain pool match for {asset} failed: {type(e).__name__}: {e}")
        return None

    async def _match_intent(self, asset: Asset) -> Optional[str]:
        if self.intents is None:
            return None
        try:
            token = await self.intents.match(asset.chain, asset.symbol)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"NEAR Intents match for {asset} failed: {type(e).__name__}: {e}")
            return None
        return token.asset_id if token else None
