"""SimpleSwap custodial exchange provider."""

import logging
from decimal import Decimal
from typing import Optional

from fundswap import venues
from fundswap.errors import VenueError
from fundswap.evm.client import EvmClient
from fundswap.resolver.currencies import Currency, VenueCatalog
from fundswap.routing.amounts import format_units, to_raw_amount
from fundswap.routing.asset import Asset
from fundswap.routing.base import Quote, SwapStatus
from fundswap.routing.custodial import CustodialProvider, Exchange
from fundswap.utils.http import JsonApi

logger = logging.getLogger(__name__)

SIMPLESWAP_API = "https://api.simpleswap.io"

# USDC currency id per source chain
SOURCE_SYMBOLS = {
    "avalanche": "usdcavaxc",
    "base": "usdcbase",
}

# CHAIN.SYMBOL -> SimpleSwap currency id
SIMPLESWAP_SYMBOLS = {
    "BTC.BTC": "btc",
    "ETH.ETH": "eth",
    "SOL.SOL": "sol",
    "AVAX.AVAX": "avaxc",
    "DOT.DOT": "dot",
    "ADA.ADA": "ada",
    "TON.TON": "ton",
    "TRX.TRX": "trx",
    "SUI.SUI": "sui",
    "BASE.ETH": "ethbase",
    "ARB.ETH": "etharb",
    "BSC.BNB": "bnb-bsc",
    "POLYGON.POL": "pol",
    "GAIA.ATOM": "atom",
    "OSMO.OSMO": "osmo",
    "DYDX.DYDX": "dydxmain",
    "SEI.SEI": "sei",
    "AKASH.AKT": "akt",
    "NOBLE.USDC": "usdcnoble",
    "LUNA.LUNA": "luna",
    "LUNC.LUNC": "lunc",
    "THOR.RUNE": "rune",
    "LTC.LTC": "ltc",
    "BCH.BCH": "bch",
    "DOGE.DOGE": "doge",
    "DASH.DASH": "dash",
    "ZEC.ZEC": "zec",
    "HYPE.HYPE": "hype",
    "CRO.CRO": "cro",
}

COMPLETED_STATES = {"finished"}
FAILED_STATES = {"failed", "refunded", "expired"}


class SimpleSwapProvider(CustodialProvider):
    """Floating-rate swaps through SimpleSwap."""

    def __init__(
        self,
        clients: dict[str, EvmClient],
        api_key: str,
        base_url: str = SIMPLESWAP_API,
        timeout: float = 30.0,
        catalog: Optional[VenueCatalog] = None,
        http_client=None,
    ):
        super().__init__(clients)
        self.api_key = api_key
        self.api = JsonApi(venues.SIMPLESWAP, base_url, timeout=timeout, client=http_client)
        self.catalog = catalog or VenueCatalog(venues.SIMPLESWAP, SIMPLESWAP_SYMBOLS)

    @property
    def name(self) -> str:
        return venues.SIMPLESWAP

    @property
    def category(self) -> str:
        return venues.CATEGORY_CUSTODIAL_PRIVATE

    def source_chains(self) -> list[str]:
        return [c for c in self.clients if c in SOURCE_SYMBOLS]

    def target_id(self, asset: Asset) -> Optional[str]:
        if asset.hints and asset.hints.simpleswap_symbol:
            return asset.hints.simpleswap_symbol
        return self.catalog.lookup(asset.chain, asset.symbol, asset.contract_address)

    async def list_currencies(self) -> list[Currency]:
        """Every currency SimpleSwap lists, for the dynamic catalog index."""
        data = await self.api.get("/get_all_currencies", params={"api_key": self.api_key})
        if not isinstance(data, list):
            raise VenueError(self.name, "currency list is not a list")
        return [
            Currency(
                id=c["symbol"],
                symbol=c["symbol"],
                network=c.get("network") or "",
                contract_address=c.get("contract_address") or "",
            )
            for c in data
            if c.get("symbol")
        ]

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
        source = SOURCE_SYMBOLS[client.chain.name]
        estimate = await self.api.get(
            "/get_estimated",
            params={
                "api_key": self.api_key,
                "fixed": "false",
                "currency_from": source,
                "currency_to": target,
                "amount": format_units(amount, client.chain.usdc_decimals),
            },
        )
        if not isinstance(estimate, str) or not estimate:
            raise VenueError(self.name, f"unexpected estimate {estimate!r}")

        try:
            raw = to_raw_amount(estimate)
        except ValueError as e:
            raise VenueError(self.name, f"unparseable estimate {estimate!r}") from e

        return self._new_quote(
            client,
            to_asset,
            usd_amount,
            amount,
            expected_output=estimate,
            expected_output_raw=raw,
            extra_data={
                "currency_from": source,
                "currency_to": target,
                "destination": destination,
            },
        )

    async def create_exchange(self, quote: Quote, sender: str) -> Exchange:
        currency_from, currency_to, destination = quote.require_extra("currency_from", "currency_to", "destination")
        data = await self.api.post(
            "/create_exchange",
            params={"api_key": self.api_key},
            json={
                "fixed": False,
                "currency_from": currency_from,
                "currency_to": currency_to,
                "amount": format_units(quote.input_amount, 6),
                "address_to": destination,
                "extra_id_to": "",
                "user_refund_address": sender,
            },
        )
        if not isinstance(data, dict) or not data.get("id") or not data.get("address_from"):
            raise VenueError(self.name, "exchange response is missing id or address_from")
        return Exchange(external_id=str(data["id"]), deposit_address=data["address_from"])

    async def check_status(self, tx_hash: str, external_id: str = "") -> SwapStatus:
        if not external_id:
            return SwapStatus.PENDING
        data = await self.api.get("/get_exchange", params={"api_key": self.api_key, "id": external_id})
        status = str(data.get("status", "")).lower() if isinstance(data, dict) else ""
        if status in COMPLETED_STATES:
            return SwapStatus.COMPLETED
        if status in FAILED_STATES:
            return SwapStatus.FAILED
        return SwapStatus.PENDING
