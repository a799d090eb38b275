"""EVM access for the source chains: RPC reads, calldata, transaction sending."""

from fundswap.evm.balances import BalanceReader
from fundswap.evm.client import EvmClient

__all__ = ["BalanceReader", "EvmClient"]
