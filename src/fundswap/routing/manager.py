"""Swap manager: provider registry, best-quote selection and dispatch."""

import asyncio
import logging
from decimal import Decimal
from typing import Iterable, Optional

from fundswap.errors import InsufficientBalanceError, NotFoundError, RoutingHintError, UnknownProviderError
from fundswap.evm.balances import BalanceReader
from fundswap.routing.amounts import usd_to_usdc_units
from fundswap.routing.asset import Asset
from fundswap.routing.base import ExecuteResult, PrivateKey, Quote, RoutingHint, SwapProvider, SwapStatus

logger = logging.getLogger(__name__)


def _format_usdc(units: int) -> str:
    return f"{units // 10**6}.{units % 10**6:06d}"


class SwapManager:
    """Asks every eligible provider for quotes and routes execution to the winner."""

    def __init__(self, providers: Iterable[SwapProvider], balances: Optional[BalanceReader] = None):
        """Initialize the manager.

        Args:
            providers: Providers in preference order (earlier wins ties)
            balances: Reader used to explain why nothing could be quoted
        """
        self._providers: dict[str, SwapProvider] = {}
        for provider in providers:
            if provider.name in self._providers:
                raise ValueError(f"duplicate provider name {provider.name!r}")
            self._providers[provider.name] = provider
        self.balances = balances

    @property
    def providers(self) -> list[SwapProvider]:
        return list(self._providers.values())

    def provider(self, name: str) -> SwapProvider:
        """Registered provider by name.

        Raises:
            UnknownProviderError: If nothing is registered under name
        """
        try:
            return self._providers[name]
        except KeyError:
            raise UnknownProviderError(f"provider {name!r} not found") from None

    def providers_for(self, hint: Optional[RoutingHint] = None) -> list[SwapProvider]:
        """Providers eligible under a routing hint.

        Without a hint, every provider that is routable by default. With one,
        every provider whose name or category matches, including providers
        excluded from default routing.

        Raises:
            RoutingHintError: If a hint is given and matches nothing
        """
        hint = hint or RoutingHint()
        matched = [p for p in self._providers.values() if hint.matches(p)]
        if not matched and not hint.is_empty:
            raise RoutingHintError(f"no providers match routing hint {hint.value!r}")
        return matched

    def is_statically_known(self, asset: Asset) -> bool:
        """Whether any provider's static mapping covers asset."""
        return any(p.supports_asset(asset) for p in self._providers.values())

    async def get_all_quotes(
        self,
        to_asset: Asset,
        usd_amount: Decimal,
        destination: str,
        sender: str,
        hint: Optional[RoutingHint] = None,
    ) -> list[Quote]:
        """Quotes from every eligible provider, requested concurrently.

        A provider that fails is logged and left out.
        """
        providers = self.providers_for(hint)
        results = await asyncio.gather(
            *(p.get_quotes(to_asset, usd_amount, destination, sender) for p in providers),
            return_exceptions=True,
        )

        quotes: list[Quote] = []
        for provider, result in zip(providers, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                logger.warning(f"Provider {provider.name} quote error: {type(result).__name__}: {result}")
                continue
            logger.debug(f"Provider {provider.name} returned {len(result)} quote(s) for {to_asset}")
            quotes.extend(result)
        return quotes

    async def best_quote(
        self,
        to_asset: Asset,
        usd_amount: Decimal,
        destination: str,
        sender: str,
        hint: Optional[RoutingHint] = None,
    ) -> Quote:
        """Quote with the largest expected output across all eligible providers.

        Args:
            to_asset: Target asset, optionally carrying resolver hints
            usd_amount: USDC to spend
            destination: Address receiving the target asset
            sender: Address holding the USDC
            hint: Optional provider or category filter

        Returns:
            Best quote (ties go to the earlier-registered provider)

        Raises:
            RoutingHintError: If the hint matches no provider
            InsufficientBalanceError: If nothing quoted and every chain is short of USDC
            NotFoundError: If nothing quoted for any other reason
        """
        usd_amount = Decimal(usd_amount)
        quotes = await self.get_all_quotes(to_asset, usd_amount, destination, sender, hint)
        if not quotes:
            raise await self._no_quotes_error(to_asset, usd_amount, sender)

        best = max(quotes, key=lambda q: q.expected_output_raw)
        logger.info(
            f"Best quote for ${usd_amount} -> {to_asset}: {best.provider} via {best.from_chain}, "
            f"{best.expected_output} ({len(quotes)} quote(s) compared)"
        )
        return best

    async def execute_swap(self, quote: Quote, private_key: PrivateKey) -> ExecuteResult:
        """Execute a quote with the provider that produced it. Errors propagate."""
        provider = self.provider(quote.provider)
        logger.info(f"Executing {quote.provider} swap ${quote.input_amount_usd} -> {quote.to_asset} from {quote.from_chain}")
        return await provider.execute(quote, private_key)

    async def check_status(self, provider_name: str, tx_hash: str, external_id: str = "") -> SwapStatus:
        """Status of an executed swap, asked of the provider that executed it."""
        return await self.provider(provider_name).check_status(tx_hash, external_id)

    async def _no_quotes_error(self, to_asset: Asset, usd_amount: Decimal, sender: str) -> Exception:
        """Tell "no funds anywhere" apart from "nobody supports this asset"."""
        if self.balances is None:
            return NotFoundError(f"no quotes available for {to_asset}")

        required = usd_to_usdc_units(usd_amount)
        balances = await self.balances.usdc_balances(sender)
        if balances and all(units < required for units in balances.values()):
            lines = [f"  {chain.title()}: {_format_usdc(units)} USDC" for chain, units in balances.items()]
            message = (
                f"insufficient USDC balance for ${usd_amount:.2f} swap to {to_asset}\n"
                f"Current balances:\n" + "\n".join(lines)
            )
            return InsufficientBalanceError(message, required=required, balances=balances)

        return NotFoundError(f"no quotes available for {to_asset}")
