"""Currency catalogs of custodial venues (SimpleSwap, Houdini).

Each venue has a static CHAIN.SYMBOL -> venue-id map and optionally a
dynamic index built from the venue's currency list. The dynamic index is
rebuilt into fresh dicts and swapped in with one assignment, so readers
never see a half-built index.
"""

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Awaitable, Callable, Mapping, NamedTuple, Optional

logger = logging.getLogger(__name__)

# Chain code -> venue network names, tried in order
NETWORK_ALIASES: dict[str, tuple[str, ...]] = {
    "ETH": ("eth", "ethereum", "erc20"),
    "AVAX": ("avaxc", "avalanche", "avax"),
    "BASE": ("base",),
    "BSC": ("bsc", "bep20", "binance"),
    "ARB": ("arb", "arbitrum"),
    "POLYGON": ("polygon", "matic"),
    "SOL": ("sol", "solana"),
    "BTC": ("btc", "bitcoin"),
    "TRON": ("trx", "tron", "trc20"),
}


def network_aliases(chain: str) -> tuple[str, ...]:
    """Venue network names to try for a chain code."""
    return NETWORK_ALIASES.get(chain.upper(), (chain.lower(),))


@dataclass(frozen=True)
class Currency:
    """A currency listed by a custodial venue."""

    id: str  # the identifier the venue expects in API calls
    symbol: str
    network: str
    contract_address: str = ""


class _Indices(NamedTuple):
    by_contract: dict[str, str]
    by_symbol: dict[str, str]


class CurrencyIndex:
    """Lookup of venue currency ids by network + contract or network + symbol."""

    def __init__(self, currencies: Optional[list[Currency]] = None):
        self._indices = _Indices({}, {})
        if currencies:
            self.rebuild(currencies)

    def rebuild(self, currencies: list[Currency]) -> None:
        """Replace the index with one built from currencies."""
        by_contract: dict[str, str] = {}
        by_symbol: dict[str, str] = {}
        for currency in currencies:
            network = currency.network.lower()
            if currency.contract_address:
                by_contract[f"{network}:{currency.contract_address.lower()}"] = currency.id
            by_symbol[f"{network}:{currency.symbol.lower()}"] = currency.id
        self._indices = _Indices(by_contract, by_symbol)
        logger.info(f"Currency index rebuilt with {len(currencies)} currencies")

    def match(self, chain: str, symbol: str, contract: str = "") -> Optional[str]:
        """Venue id for the asset, trying every network alias of chain."""
        indices = self._indices
        for network in network_aliases(chain):
            if contract:
                found = indices.by_contract.get(f"{network}:{contract.lower()}")
                if found:
                    return found
            found = indices.by_symbol.get(f"{network}:{symbol.lower()}")
            if found:
                return found
        return None

    def __len__(self) -> int:
        return len(self._indices.by_symbol)


class VenueCatalog:
    """Static map first, dynamic currency index second."""

    def __init__(
        self,
        venue: str,
        static_map: Mapping[str, str],
        index: Optional[CurrencyIndex] = None,
        loader: Optional[Callable[[], Awaitable[list[Currency]]]] = None,
    ):
        """Initialize the catalog.

        Args:
            venue: Provider name the ids belong to
            static_map: CHAIN.SYMBOL -> venue id
            index: Dynamic index (created on first refresh when loader is set)
            loader: Fetches the venue's currency list
        """
        self.venue = venue
        self.static_map = MappingProxyType({k.upper(): v for k, v in static_map.items()})
        self.index = index
        self.loader = loader

    async def refresh(self) -> int:
        """Rebuild the dynamic index from the venue. Returns the currency count."""
        if self.loader is None:
            return 0
        currencies = await self.loader()
        if self.index is None:
            self.index = CurrencyIndex()
        self.index.rebuild(currencies)
        return len(currencies)

    def lookup(self, chain: str, symbol: str, contract: str = "") -> Optional[str]:
        """Venue id for CHAIN.SYMBOL (optionally refined by contract)."""
        found = self.static_map.get(f"{chain}.{symbol}".upper())
        if found:
            return found
        if self.index is not None:
            return self.index.match(chain, symbol, contract)
        return None

    def lookup_key(self, key: str) -> Optional[str]:
        """Venue id for a CHAIN.SYMBOL key."""
        chain, sep, symbol = key.partition(".")
        if not sep:
            return None
        return self.lookup(chain, symbol)
