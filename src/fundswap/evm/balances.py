"""Stablecoin balance lookups across all source chains."""

import asyncio
import logging
from typing import Optional

from fundswap.evm.client import EvmClient

logger = logging.getLogger(__name__)


class BalanceReader:
    """Reads the sender's USDC on every configured source chain."""

    def __init__(self, clients: dict[str, EvmClient]):
        self.clients = clients

    async def usdc_balance(self, chain: str, address: str) -> int:
        """USDC base units held by address on chain."""
        return await self.clients[chain].usdc_balance(address)

    async def usdc_balances(self, address: str, chains: Optional[list[str]] = None) -> dict[str, int]:
        """USDC per chain, read concurrently. Chains whose RPC fails are omitted."""
        names = chains or list(self.clients)
        results = await asyncio.gather(
            *(self.usdc_balance(name, address) for name in names),
            return_exceptions=True,
        )
        balances = {}
        for name, result in zip(names, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                logger.warning(f"USDC balance check on {name} failed: {result}")
                continue
            balances[name] = result
        return balances
