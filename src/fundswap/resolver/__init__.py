"""Asset resolution across CoinGecko, THORChain pools, NEAR Intents and
custodial venue catalogs."""

from fundswap.resolver.coingecko import CoinGeckoClient, CoinSearchResult, best_match
from fundswap.resolver.currencies import Currency, CurrencyIndex, VenueCatalog, network_aliases
from fundswap.resolver.intents import IntentToken, IntentTokenCatalog
from fundswap.resolver.pools import Pool, PoolCatalog
from fundswap.resolver.resolver import AssetResolver, ProviderMatch, Resolution

__all__ = [
    "AssetResolver",
    "CoinGeckoClient",
    "CoinSearchResult",
    "Currency",
    "CurrencyIndex",
    "IntentToken",
    "IntentTokenCatalog",
    "Pool",
    "PoolCatalog",
    "ProviderMatch",
    "Resolution",
    "VenueCatalog",
    "best_match",
    "network_aliases",
]
