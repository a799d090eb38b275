"""Factory for the swap manager and asset resolver.

Builds EVM clients, venue providers and catalogs from Settings. A venue
whose credentials are not configured is left out.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fundswap import venues
from fundswap.chains import with_rpc_urls
from fundswap.config import Settings, get_settings
from fundswap.evm.balances import BalanceReader
from fundswap.evm.client import EvmClient
from fundswap.resolver.coingecko import CoinGeckoClient
from fundswap.resolver.currencies import CurrencyIndex, VenueCatalog
from fundswap.resolver.intents import IntentTokenCatalog
from fundswap.resolver.pools import PoolCatalog
from fundswap.resolver.resolver import AssetResolver
from fundswap.routing.base import SwapProvider
from fundswap.routing.cowswap import CowSwapClient, CowSwapProvider, KeyProvider
from fundswap.routing.houdini import HOUDINI_SYMBOLS, HoudiniProvider, HoudiniXMRProvider
from fundswap.routing.manager import SwapManager
from fundswap.routing.nearintents import NearIntentsProvider
from fundswap.routing.simpleswap import SIMPLESWAP_SYMBOLS, SimpleSwapProvider
from fundswap.routing.thorchain import ThorchainProvider

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything a caller needs to resolve, quote, execute and track swaps."""

    clients: dict[str, EvmClient]
    manager: SwapManager
    resolver: AssetResolver


def create_evm_clients(settings: Optional[Settings] = None) -> dict[str, EvmClient]:
    """One client per source chain with an RPC URL."""
    settings = settings or get_settings()
    chains = with_rpc_urls({"avalanche": settings.avax_rpc_url, "base": settings.base_rpc_url})
    return {
        name: EvmClient(chain, receipt_timeout=settings.receipt_timeout, rpc_timeout=settings.rpc_timeout)
        for name, chain in chains.items()
        if chain.rpc_url
    }


def create_providers(
    settings: Settings,
    clients: dict[str, EvmClient],
    key_provider: Optional[KeyProvider] = None,
    http_client=None,
) -> list[SwapProvider]:
    """Configured providers in tie-break order."""
    timeout = settings.http_timeout
    providers: list[SwapProvider] = []

    if settings.thorchain_enabled:
        providers.append(ThorchainProvider(clients, settings.thornode_url, timeout=timeout, http_client=http_client))

    if settings.nearintents_api_key:
        providers.append(
            NearIntentsProvider(
                clients,
                settings.nearintents_api_key,
                base_url=settings.nearintents_api_url,
                timeout=timeout,
                http_client=http_client,
            )
        )
    else:
        logger.info("NEARINTENTS_API_KEY not set - NEAR Intents disabled")

    if settings.simpleswap_api_key:
        providers.append(
            SimpleSwapProvider(
                clients,
                settings.simpleswap_api_key,
                base_url=settings.simpleswap_api_url,
                timeout=timeout,
                catalog=VenueCatalog(venues.SIMPLESWAP, SIMPLESWAP_SYMBOLS, CurrencyIndex()),
                http_client=http_client,
            )
        )
    else:
        logger.info("SIMPLESWAP_API_KEY not set - SimpleSwap disabled")

    if settings.houdini_configured:
        catalog = VenueCatalog(venues.HOUDINI, HOUDINI_SYMBOLS, CurrencyIndex())
        for cls in (HoudiniProvider, HoudiniXMRProvider):
            providers.append(
                cls(
                    clients,
                    settings.houdini_api_key,
                    settings.houdini_api_secret,
                    base_url=settings.houdini_api_url,
                    timeout=timeout,
                    client_ip=settings.houdini_client_ip,
                    user_agent=settings.houdini_user_agent,
                    catalog=catalog,
                    http_client=http_client,
                )
            )
    else:
        logger.info("Houdini credentials not set - Houdini disabled")

    if settings.cowswap_enabled:
        cow = CowSwapClient(settings.cowswap_api_url, timeout=timeout, http_client=http_client)
        providers.append(CowSwapProvider(clients, cow, key_provider=key_provider))

    for provider in providers:
        logger.info(f"Added {provider.name} provider ({provider.category})")
    return providers


def create_resolver(
    settings: Settings,
    providers: Optional[list[SwapProvider]] = None,
    http_client=None,
) -> AssetResolver:
    """Resolver sharing the custodial providers' currency catalogs."""
    catalogs: list[VenueCatalog] = []
    seen = set()
    for provider in providers or []:
        catalog = getattr(provider, "catalog", None)
        if catalog is None or id(catalog) in seen:
            continue
        seen.add(id(catalog))
        if catalog.loader is None:
            catalog.loader = provider.list_currencies
        catalogs.append(catalog)

    return AssetResolver(
        coingecko=CoinGeckoClient(
            api_key=settings.coingecko_api_key,
            base_url=settings.coingecko_api_url,
            timeout=settings.http_timeout,
            cache_ttl=settings.symbol_cache_ttl,
            client=http_client,
        ),
        pools=PoolCatalog(
            settings.thornode_url,
            timeout=settings.http_timeout,
            cache_ttl=settings.catalog_cache_ttl,
            client=http_client,
        ),
        intents=IntentTokenCatalog(
            settings.nearintents_api_url,
            timeout=settings.http_timeout,
            cache_ttl=settings.catalog_cache_ttl,
            client=http_client,
        ),
        catalogs=catalogs,
    )


def create_services(
    settings: Optional[Settings] = None,
    key_provider: Optional[KeyProvider] = None,
    http_client=None,
) -> Services:
    """Build clients, providers, manager and resolver from settings.

    Args:
        settings: Settings (defaults to get_settings())
        key_provider: Sender address -> private key, for CoW permits at quote time
        http_client: Shared httpx client, mainly for tests
    """
    settings = settings or get_settings()
    clients = create_evm_clients(settings)
    providers = create_providers(settings, clients, key_provider=key_provider, http_client=http_client)
    manager = SwapManager(providers, balances=BalanceReader(clients))
    resolver = create_resolver(settings, providers, http_client=http_client)
    logger.info(f"Created swap manager with {len(providers)} provider(s) on {sorted(clients)}")
    return Services(clients=clients, manager=manager, resolver=resolver)
