"""Balance-gated quoting across the USDC source chains.

Every venue funds swaps from USDC on one of the source chains. Each chain
is quoted independently and concurrently; a chain where the sender holds
less USDC than the swap needs is skipped, and a chain whose venue call
fails is logged and dropped. The provider fails only when no chain quotes.
"""

import asyncio
import logging
from abc import abstractmethod
from decimal import Decimal
from typing import NamedTuple, Optional

from eth_account import Account

from fundswap.errors import FundSwapError, InsufficientBalanceError, NotFoundError, VenueError
from fundswap.evm.client import EvmClient
from fundswap.routing.amounts import USDC_DECIMALS, format_units, usd_to_usdc_units
from fundswap.routing.asset import Asset
from fundswap.routing.base import PrivateKey, Quote, SwapProvider

logger = logging.getLogger(__name__)


def sender_address(private_key: PrivateKey) -> str:
    """Checksummed address of a private key."""
    return Account.from_key(private_key).address


class _ChainOutcome(NamedTuple):
    chain: str
    quote: Optional[Quote] = None
    balance: Optional[int] = None  # set when the chain was skipped for balance
    error: Optional[BaseException] = None


class SourceChainProvider(SwapProvider):
    """Base for venues that spend USDC from the EVM source chains."""

    # Smallest swap the venue accepts, checked before any network call
    min_usd: Decimal = Decimal("0")

    def __init__(self, clients: dict[str, EvmClient]):
        """Initialize the provider.

        Args:
            clients: Source chain name -> EVM client, in preference order
        """
        self.clients = clients

    def client_for(self, chain: str) -> EvmClient:
        client = self.clients.get(chain)
        if client is None:
            raise FundSwapError(f"{self.name}: source chain {chain!r} is not configured")
        return client

    def source_chains(self) -> list[str]:
        """Configured chains this venue can spend USDC from."""
        return list(self.clients)

    def source_chains_for(self, asset: Asset) -> list[str]:
        """Source chains that can fund a swap into asset."""
        return self.source_chains()

    @abstractmethod
    def target_id(self, asset: Asset) -> Optional[str]:
        """Venue identifier for the target asset, or None if unsupported."""
        pass

    def supports_asset(self, asset: Asset) -> bool:
        return self.target_id(asset) is not None

    @abstractmethod
    async def _quote_chain(
        self,
        client: EvmClient,
        to_asset: Asset,
        target: str,
        usd_amount: Decimal,
        amount: int,
        destination: str,
        sender: str,
    ) -> Optional[Quote]:
        """Quote one source chain.

        Args:
            client: Client of the source chain
            to_asset: Target asset
            target: Venue identifier from target_id()
            usd_amount: USD value of the swap
            amount: Same amount in USDC base units
            destination: Address receiving the target asset
            sender: Address spending the USDC

        Returns:
            The quote, or None when the venue has nothing for this chain
        """
        pass

    async def get_quotes(
        self,
        to_asset: Asset,
        usd_amount: Decimal,
        destination: str,
        sender: str,
    ) -> list[Quote]:
        usd_amount = Decimal(usd_amount)
        if usd_amount <= 0:
            raise FundSwapError(f"{self.name}: amount must be positive, got {usd_amount}")
        if usd_amount < self.min_usd:
            raise FundSwapError(f"{self.name}: minimum swap is ${self.min_usd}, requested ${usd_amount}")

        target = self.target_id(to_asset)
        if target is None:
            raise NotFoundError(f"{self.name}: unsupported asset {to_asset}")

        amount = usd_to_usdc_units(usd_amount)
        chains = self.source_chains_for(to_asset)
        if not chains:
            raise NotFoundError(f"{self.name}: no source chain can fund a swap into {to_asset}")
        outcomes = await asyncio.gather(
            *(self._quote_source(c, to_asset, target, usd_amount, amount, destination, sender) for c in chains)
        )

        quotes = [o.quote for o in outcomes if o.quote is not None]
        if quotes:
            return quotes

        skipped = {o.chain: o.balance for o in outcomes if o.balance is not None}
        if skipped and len(skipped) == len(outcomes):
            raise InsufficientBalanceError(
                f"{self.name}: insufficient USDC on every source chain for ${usd_amount:.2f}",
                required=amount,
                balances=skipped,
            )

        reasons = "; ".join(f"{o.chain}: {o.error}" for o in outcomes if o.error is not None)
        raise VenueError(self.name, f"no quotes for {to_asset}" + (f" ({reasons})" if reasons else ""))

    async def _quote_source(
        self,
        chain: str,
        to_asset: Asset,
        target: str,
        usd_amount: Decimal,
        amount: int,
        destination: str,
        sender: str,
    ) -> _ChainOutcome:
        client = self.clients[chain]
        try:
            balance = await client.usdc_balance(sender)
            if balance < amount:
                logger.info(
                    f"{self.name}: skipping {chain}, USDC balance "
                    f"{format_units(balance, USDC_DECIMALS)} < {usd_amount}"
                )
                return _ChainOutcome(chain, balance=balance)

            quote = await self._quote_chain(client, to_asset, target, usd_amount, amount, destination, sender)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"{self.name}: quote from {chain} failed: {type(e).__name__}: {e}")
            return _ChainOutcome(chain, error=e)

        if quote is None:
            return _ChainOutcome(chain, error=NotFoundError("no route"))
        return _ChainOutcome(chain, quote=quote)

    def _new_quote(self, client: EvmClient, to_asset: Asset, usd_amount: Decimal, amount: int, **fields) -> Quote:
        """Quote skeleton with the source-side fields filled in."""
        return Quote(
            provider=self.name,
            from_asset=Asset.parse(client.chain.usdc_asset),
            to_asset=to_asset,
            from_chain=client.chain.name,
            input_amount_usd=usd_amount,
            input_amount=amount,
            **fields,
        )
