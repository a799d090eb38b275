"""Custodial exchange flow shared by SimpleSwap and Houdini.

Execution creates an exchange record at the venue, which answers with a
deposit address, then transfers the quoted USDC there. The transfer is
waited on because the venue only starts the swap once it sees the funds.
"""

import logging
from abc import abstractmethod
from typing import NamedTuple

from fundswap.routing.base import ExecuteResult, PrivateKey, Quote
from fundswap.routing.source import SourceChainProvider, sender_address

logger = logging.getLogger(__name__)


class Exchange(NamedTuple):
    """Exchange record created at a custodial venue."""

    external_id: str
    deposit_address: str


class CustodialProvider(SourceChainProvider):
    """Base for venues that take a deposit and pay out from custody."""

    @abstractmethod
    async def create_exchange(self, quote: Quote, sender: str) -> Exchange:
        """Register the swap with the venue and get its deposit address."""
        pass

    async def execute(self, quote: Quote, private_key: PrivateKey) -> ExecuteResult:
        client = self.client_for(quote.from_chain)
        sender = sender_address(private_key)

        exchange = await self.create_exchange(quote, sender)
        logger.info(
            f"{self.name}: exchange {exchange.external_id} created, "
            f"depositing {quote.input_amount} USDC units on {quote.from_chain} to {exchange.deposit_address}"
        )

        tx_hash = await client.transfer(
            private_key, client.chain.usdc_address, exchange.deposit_address, quote.input_amount, wait=True
        )
        return ExecuteResult(tx_hash=tx_hash, external_id=exchange.external_id)
