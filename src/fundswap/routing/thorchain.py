"""THORChain router-deposit provider.

Quotes come from THORNode. Execution approves the chain's THORChain router
for the USDC amount, waits for that approval, then calls the router's
depositWithExpiry with the quote memo. The swap itself settles on
THORChain and is tracked through THORNode's tx status endpoint.
"""

import logging
import time
from decimal import Decimal
from typing import Optional

from fundswap import venues
from fundswap.errors import VenueError
from fundswap.evm import abi
from fundswap.evm.client import EvmClient
from fundswap.resolver.pools import THORNODE_MAINNET
from fundswap.routing.amounts import RAW_SCALE, format_raw_amount
from fundswap.routing.asset import Asset
from fundswap.routing.base import ExecuteResult, PrivateKey, Quote, SwapStatus
from fundswap.routing.source import SourceChainProvider
from fundswap.utils.http import JsonApi, RateLimiter

logger = logging.getLogger(__name__)

# THORChain notation of USDC per source chain
SOURCE_ASSETS = {
    "avalanche": "AVAX.USDC-0XB97EF9EF8734C71904D8002F8B6BC66DD9C48A6E",
    "base": "BASE.USDC-0X833589FCD6EDB6E08F4C7C32D4F71B54BDA02913",
}

# Chains with THORChain pools
THORCHAIN_CHAINS = frozenset(
    {"AVAX", "BASE", "BCH", "BSC", "BTC", "DOGE", "ETH", "GAIA", "LTC", "THOR", "TRON", "XRP"}
)

DEPOSIT_GAS = 200_000
MIN_EXPIRY_SECONDS = 3600


class ThorchainProvider(SourceChainProvider):
    """Cross-chain swaps through THORChain liquidity pools."""

    def __init__(
        self,
        clients: dict[str, EvmClient],
        thornode_url: str = THORNODE_MAINNET,
        timeout: float = 30.0,
        rate_limiter: Optional[RateLimiter] = None,
        http_client=None,
    ):
        super().__init__(clients)
        # THORNode public endpoints allow about one request per second
        self.api = JsonApi(
            venues.THORCHAIN,
            thornode_url,
            timeout=timeout,
            client=http_client,
            rate_limiter=rate_limiter or RateLimiter(1.0),
        )

    @property
    def name(self) -> str:
        return venues.THORCHAIN

    @property
    def category(self) -> str:
        return venues.CATEGORY_ONCHAIN_DEX

    def source_chains(self) -> list[str]:
        return [c for c in self.clients if c in SOURCE_ASSETS]

    def target_id(self, asset: Asset) -> Optional[str]:
        if asset.hints and asset.hints.thorchain_asset:
            return asset.hints.thorchain_asset
        if asset.chain not in THORCHAIN_CHAINS:
            return None
        return str(asset)

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
        # THORChain represents every amount with 8 decimals
        thor_amount = int(usd_amount * RAW_SCALE)
        data = await self.api.get(
            "/thorchain/quote/swap",
            params={
                "from_asset": SOURCE_ASSETS[client.chain.name],
                "to_asset": target,
                "amount": str(thor_amount),
                "destination": destination,
                "streaming_interval": "1",
                "streaming_quantity": "0",
            },
        )
        if not isinstance(data, dict):
            raise VenueError(self.name, "quote response is not an object")
        if data.get("error"):
            raise VenueError(self.name, str(data["error"]))

        missing = [k for k in ("inbound_address", "router", "memo", "expected_amount_out") if not data.get(k)]
        if missing:
            raise VenueError(self.name, f"quote response is missing {', '.join(missing)}")

        try:
            raw = int(data["expected_amount_out"])
        except (TypeError, ValueError) as e:
            raise VenueError(self.name, f"bad expected_amount_out {data['expected_amount_out']!r}") from e

        if data.get("warning"):
            logger.debug(f"{self.name}: quote warning for {to_asset}: {data['warning']}")

        return self._new_quote(
            client,
            to_asset,
            usd_amount,
            amount,
            expected_output=format_raw_amount(raw),
            expected_output_raw=raw,
            memo=data["memo"],
            router=data["router"],
            vault_address=data["inbound_address"],
            expiry=int(data.get("expiry") or 0),
            extra_data={
                "fees": data.get("fees", {}),
                "recommended_min_amount_in": data.get("recommended_min_amount_in", ""),
                "recommended_gas_rate": data.get("recommended_gas_rate", ""),
                "outbound_delay_seconds": data.get("outbound_delay_seconds", 0),
            },
        )

    async def execute(self, quote: Quote, private_key: PrivateKey) -> ExecuteResult:
        if not quote.router or not quote.vault_address or not quote.memo:
            raise VenueError(self.name, "quote is missing router, vault or memo")
        client = self.client_for(quote.from_chain)
        usdc = client.chain.usdc_address

        await client.approve(private_key, usdc, quote.router, quote.input_amount)

        expiry = max(quote.expiry, int(time.time()) + MIN_EXPIRY_SECONDS)
        data = abi.deposit_with_expiry(quote.vault_address, usdc, quote.input_amount, quote.memo, expiry)
        tx_hash = await client.send_transaction(private_key, quote.router, data, gas=DEPOSIT_GAS)
        logger.info(f"{self.name}: deposit {tx_hash} on {quote.from_chain} with memo {quote.memo}")
        return ExecuteResult(tx_hash=tx_hash)

    async def check_status(self, tx_hash: str, external_id: str = "") -> SwapStatus:
        tx_id = tx_hash[2:] if tx_hash.lower().startswith("0x") else tx_hash
        data = await self.api.get(f"/thorchain/tx/status/{tx_id}")
        stages = (data or {}).get("stages") or {}

        outbound = stages.get("outbound_signed")
        if outbound is not None:
            return SwapStatus.COMPLETED if outbound.get("completed") else SwapStatus.PENDING
        # Swaps into THORChain-native assets have no outbound leg
        if (stages.get("swap_finalised") or {}).get("completed"):
            return SwapStatus.COMPLETED
        return SwapStatus.PENDING
