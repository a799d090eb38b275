"""NEAR Intents (1Click) deposit-address provider.

Each quote carries a one-time deposit address. Execution transfers USDC
there and returns at once; the intent network settles asynchronously and
is polled by deposit address.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

from fundswap import venues
from fundswap.errors import VenueError
from fundswap.evm.client import EvmClient
from fundswap.resolver.intents import ONECLICK_API
from fundswap.routing.amounts import to_raw_amount
from fundswap.routing.asset import Asset
from fundswap.routing.base import ExecuteResult, PrivateKey, Quote, SwapStatus
from fundswap.routing.source import SourceChainProvider
from fundswap.utils.http import JsonApi

logger = logging.getLogger(__name__)

# 1Click asset id of USDC per source chain
SOURCE_TOKEN_IDS = {
    "avalanche": "nep245:v2_1.omni.hot.tg:43114_3atVJH3r5c4GqiSYmg9fECvjc47o",
    "base": "nep141:base-0x833589fcd6edb6e08f4c7c32d4f71b54bda02913.omft.near",
}

# CHAIN.SYMBOL -> 1Click asset id
NEAR_TOKEN_IDS = {
    "BTC.BTC": "nep141:btc.omft.near",
    "ETH.ETH": "nep141:eth.omft.near",
    "SOL.SOL": "nep141:sol.omft.near",
    "AVAX.AVAX": "nep245:v2_1.omni.hot.tg:43114_11111111111111111111",
    "ADA.ADA": "nep141:cardano.omft.near",
    "TON.TON": "nep245:v2_1.omni.hot.tg:1117_",
    "TRX.TRX": "nep141:tron.omft.near",
    "SUI.SUI": "nep141:sui.omft.near",
    "XRP.XRP": "nep141:xrp.omft.near",
    "BSC.BNB": "nep245:v2_1.omni.hot.tg:56_11111111111111111111",
    "POLYGON.POL": "nep245:v2_1.omni.hot.tg:137_11111111111111111111",
    "LTC.LTC": "nep141:ltc.omft.near",
    "BCH.BCH": "nep141:bch.omft.near",
    "DOGE.DOGE": "nep141:doge.omft.near",
}

SLIPPAGE_BPS = 100
QUOTE_DEADLINE = timedelta(minutes=60)

COMPLETED_STATES = {"SUCCESS"}
FAILED_STATES = {"FAILED", "REFUNDED"}


class NearIntentsProvider(SourceChainProvider):
    """Swaps through NEAR Intents solvers via the 1Click API."""

    def __init__(
        self,
        clients: dict[str, EvmClient],
        api_key: str,
        base_url: str = ONECLICK_API,
        timeout: float = 30.0,
        token_ids: Optional[dict[str, str]] = None,
        http_client=None,
    ):
        super().__init__(clients)
        self.api = JsonApi(
            venues.NEARINTENTS,
            base_url,
            timeout=timeout,
            headers={"Authorization": f"Bearer {api_key}"},
            client=http_client,
        )
        self.token_ids = dict(token_ids if token_ids is not None else NEAR_TOKEN_IDS)

    @property
    def name(self) -> str:
        return venues.NEARINTENTS

    @property
    def category(self) -> str:
        return venues.CATEGORY_DEX

    def source_chains(self) -> list[str]:
        return [c for c in self.clients if c in SOURCE_TOKEN_IDS]

    def target_id(self, asset: Asset) -> Optional[str]:
        if asset.hints and asset.hints.nearintents_token_id:
            return asset.hints.nearintents_token_id
        return self.token_ids.get(asset.short)

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
        deadline = datetime.now(timezone.utc) + QUOTE_DEADLINE
        request = {
            "dry": False,
            "swapType": "EXACT_INPUT",
            "slippageTolerance": SLIPPAGE_BPS,
            "originAsset": SOURCE_TOKEN_IDS[client.chain.name],
            "depositType": "ORIGIN_CHAIN",
            "destinationAsset": target,
            "amount": str(amount),
            "refundTo": sender,
            "refundType": "ORIGIN_CHAIN",
            "recipient": destination,
            "recipientType": "DESTINATION_CHAIN",
            "deadline": deadline.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "depositMode": "SIMPLE",
        }
        data = await self.api.post("/v0/quote", json=request)

        quote = (data or {}).get("quote") or {}
        deposit_address = quote.get("depositAddress", "")
        if not deposit_address:
            logger.warning(f"{self.name}: no deposit address for {to_asset} via {client.chain.name}")
            return None

        formatted = quote.get("amountOutFormatted") or ""
        try:
            raw = to_raw_amount(formatted)
        except ValueError as e:
            raise VenueError(self.name, f"unparseable amountOutFormatted {formatted!r}") from e

        return self._new_quote(
            client,
            to_asset,
            usd_amount,
            amount,
            expected_output=formatted,
            expected_output_raw=raw,
            vault_address=deposit_address,
            extra_data={
                "deposit_address": deposit_address,
                "correlation_id": data.get("correlationId", ""),
                "destination": destination,
                "amount_out": quote.get("amountOut", ""),
            },
        )

    async def execute(self, quote: Quote, private_key: PrivateKey) -> ExecuteResult:
        (deposit_address,) = quote.require_extra("deposit_address")
        client = self.client_for(quote.from_chain)

        tx_hash = await client.transfer(private_key, client.chain.usdc_address, deposit_address, quote.input_amount)
        await self.notify_deposit(tx_hash, deposit_address)
        return ExecuteResult(tx_hash=tx_hash, external_id=deposit_address)

    async def notify_deposit(self, tx_hash: str, deposit_address: str) -> None:
        """Tell 1Click about the deposit to speed up processing. Failures are only logged."""
        try:
            await self.api.post("/v0/deposit/submit", json={"txHash": tx_hash, "depositAddress": deposit_address})
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"{self.name}: deposit submit for {tx_hash} failed (non-fatal): {e}")

    async def check_status(self, tx_hash: str, external_id: str = "") -> SwapStatus:
        if not external_id:
            return SwapStatus.PENDING
        data = await self.api.get("/v0/status", params={"depositAddress": external_id})
        status = str((data or {}).get("status", "")).upper()
        if status in COMPLETED_STATES:
            return SwapStatus.COMPLETED
        if status in FAILED_STATES:
            return SwapStatus.FAILED
        return SwapStatus.PENDING
