"""Async EVM client for a single source chain.

Wraps AsyncWeb3 so every RPC call can be cancelled by the caller. Only
legacy (EIP-155) transactions are sent; both source chains accept them.
"""

import asyncio
import logging
from typing import Optional, Union

from eth_abi.exceptions import DecodingError
from eth_account import Account
from eth_utils import to_checksum_address, to_hex

from fundswap.chains import SourceChain
from fundswap.errors import RPCError, TransactionFailedError
from fundswap.evm import abi

logger = logging.getLogger(__name__)

PrivateKey = Union[str, bytes]

APPROVE_GAS = 100_000
TRANSFER_GAS = 100_000


class EvmClient:
    """RPC access, ERC-20 reads and transaction sending for one chain."""

    def __init__(self, chain: SourceChain, web3=None, receipt_timeout: int = 120, rpc_timeout: float = 20.0):
        """Initialize the client.

        Args:
            chain: Source chain configuration (rpc_url must be set unless web3 is given)
            web3: Pre-built AsyncWeb3 instance, mainly for tests
            receipt_timeout: Seconds to wait for a receipt
            rpc_timeout: Per-request JSON-RPC timeout
        """
        self.chain = chain
        self.receipt_timeout = receipt_timeout
        self.rpc_timeout = rpc_timeout
        self._web3 = web3
        self._nonce_lock = asyncio.Lock()

    @property
    def web3(self):
        """Lazy load AsyncWeb3 instance."""
        if self._web3 is None:
            from web3 import AsyncWeb3
            self._web3 = AsyncWeb3(
                AsyncWeb3.AsyncHTTPProvider(self.chain.rpc_url, request_kwargs={"timeout": self.rpc_timeout})
            )
        return self._web3

    # ======================
    # Reads
    # ======================

    async def call(self, to: str, data: bytes) -> bytes:
        """eth_call against the latest block."""
        result = await self.web3.eth.call({"to": to_checksum_address(to), "data": to_hex(data)})
        return bytes(result)

    async def native_balance(self, address: str) -> int:
        return await self.web3.eth.get_balance(to_checksum_address(address))

    async def token_balance(self, token: str, owner: str) -> int:
        return abi.decode_uint(await self.call(token, abi.balance_of(owner)))

    async def usdc_balance(self, owner: str) -> int:
        """USDC held by owner in base units (6 decimals)."""
        return await self.token_balance(self.chain.usdc_address, owner)

    async def allowance(self, token: str, owner: str, spender: str) -> int:
        return abi.decode_uint(await self.call(token, abi.allowance(owner, spender)))

    async def permit_nonce(self, token: str, owner: str) -> int:
        """Current EIP-2612 nonce for owner on token."""
        return abi.decode_uint(await self.call(token, abi.nonces(owner)))

    async def token_decimals(self, token: str) -> int:
        return abi.decode_uint(await self.call(token, abi.decimals()))

    async def balances(self, addresses: list[str], token: Optional[str] = None) -> dict[str, tuple[int, int]]:
        """Native and token balances for many addresses in one Multicall3 round trip.

        Args:
            addresses: Owners to read
            token: ERC-20 to read alongside the native balance (defaults to USDC)

        Returns:
            address -> (native_wei, token_units); failed sub-calls read as 0
        """
        token = token or self.chain.usdc_address
        calls = []
        for address in addresses:
            calls.append((abi.MULTICALL3_ADDRESS, True, abi.get_eth_balance(address)))
            calls.append((token, True, abi.balance_of(address)))

        try:
            results = abi.decode_aggregate3(await self.call(abi.MULTICALL3_ADDRESS, abi.aggregate3(calls)))
        except (DecodingError, ValueError, TypeError) as e:
            raise RPCError(f"{self.chain.name}: malformed multicall result: {e}") from e
        if len(results) != len(calls):
            raise RPCError(f"{self.chain.name}: multicall returned {len(results)} results for {len(calls)} calls")

        def value(ok: bool, data: bytes) -> int:
            return abi.decode_uint(data) if ok and len(data) >= 32 else 0

        balances = {}
        for i, address in enumerate(addresses):
            native = value(*results[2 * i])
            tokens = value(*results[2 * i + 1])
            balances[address] = (native, tokens)
        return balances

    # ======================
    # Writes
    # ======================

    async def send_transaction(
        self,
        private_key: PrivateKey,
        to: str,
        data: bytes = b"",
        gas: int = 200_000,
        value: int = 0,
        wait: bool = False,
    ) -> str:
        """Sign and broadcast a legacy transaction.

        Args:
            private_key: Sender key
            to: Destination contract or account
            data: Calldata
            gas: Gas limit
            value: Native value in wei
            wait: Wait for the receipt and fail on revert

        Returns:
            Transaction hash (0x-prefixed)
        """
        account = Account.from_key(private_key)

        # Serialize nonce allocation so concurrent sends from this client don't collide
        async with self._nonce_lock:
            nonce = await self.web3.eth.get_transaction_count(account.address, "pending")
            gas_price = await self.web3.eth.gas_price
            tx = {
                "nonce": nonce,
                "gasPrice": gas_price,
                "gas": gas,
                "to": to_checksum_address(to),
                "value": value,
                "data": to_hex(data),
                "chainId": self.chain.chain_id,
            }
            signed_tx = account.sign_transaction(tx)
            tx_hash = to_hex(await self.web3.eth.send_raw_transaction(signed_tx.raw_transaction))

        logger.info(f"{self.chain.name}: sent tx {tx_hash} to {to} (nonce {nonce})")

        if wait:
            await self.wait_for_receipt(tx_hash)
        return tx_hash

    async def approve(self, private_key: PrivateKey, token: str, spender: str, amount: int, wait: bool = True) -> str:
        """ERC-20 approve; waits for mining by default."""
        return await self.send_transaction(
            private_key, token, abi.approve(spender, amount), gas=APPROVE_GAS, wait=wait
        )

    async def transfer(self, private_key: PrivateKey, token: str, to: str, amount: int, wait: bool = False) -> str:
        """ERC-20 transfer."""
        return await self.send_transaction(
            private_key, token, abi.transfer(to, amount), gas=TRANSFER_GAS, wait=wait
        )

    async def wait_for_receipt(self, tx_hash: str) -> dict:
        """Wait until tx_hash is mined.

        Raises:
            TransactionFailedError: If the transaction reverted
        """
        receipt = await self.web3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
        if receipt["status"] == 0:
            raise TransactionFailedError(tx_hash)
        logger.info(f"{self.chain.name}: tx {tx_hash} mined in block {receipt['blockNumber']}")
        return dict(receipt)
