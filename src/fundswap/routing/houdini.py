"""Houdini Swap custodial providers.

The standard provider prefers CEX-only routes and falls back to any route
when none is available. The XMR variant routes through Monero for privacy;
it is excluded from default routing and used only when a routing hint
names it.
"""

import logging
from decimal import Decimal
from typing import Any, Optional

from fundswap import venues
from fundswap.errors import VenueError
from fundswap.evm.client import EvmClient
from fundswap.resolver.currencies import Currency, VenueCatalog
from fundswap.routing.amounts import format_usd, to_raw_amount
from fundswap.routing.asset import Asset
from fundswap.routing.base import Quote, SwapStatus
from fundswap.routing.custodial import CustodialProvider, Exchange
from fundswap.utils.http import JsonApi

logger = logging.getLogger(__name__)

HOUDINI_API = "https://api-partner.houdiniswap.com"

MIN_SWAP_USD = Decimal("50")

# USDC currency id per source chain
SOURCE_SYMBOLS = {
    "avalanche": "USDCAVAXC",
    "base": "USDCBASE",
}

# CHAIN.SYMBOL -> Houdini currency id
HOUDINI_SYMBOLS = {
    "BTC.BTC": "BTC",
    "ETH.ETH": "ETH",
    "SOL.SOL": "SOL",
    "AVAX.AVAX": "AVAXC",
    "DOT.DOT": "DOT",
    "ADA.ADA": "ADA",
    "TON.TON": "TON",
    "TRX.TRX": "TRX",
    "SUI.SUI": "SUI",
    "BASE.ETH": "ETHBASE",
    "ARB.ETH": "ETHARB",
    "BSC.BNB": "BNB",
    "GAIA.ATOM": "ATOM",
    "THOR.RUNE": "RUNE",
    "SEI.SEI": "SEI",
    "LTC.LTC": "LTC",
    "BCH.BCH": "BCH",
    "DOGE.DOGE": "DOGE",
    "DASH.DASH": "DASH",
    "ZEC.ZEC": "ZEC",
}

# Numeric exchange status: 4 is finished, 5 and above are failure states
STATUS_COMPLETED = 4
STATUS_FIRST_FAILED = 5


class HoudiniProvider(CustodialProvider):
    """Houdini Swap with standard (non-anonymous) routing."""

    min_usd = MIN_SWAP_USD

    def __init__(
        self,
        clients: dict[str, EvmClient],
        api_key: str,
        api_secret: str,
        base_url: str = HOUDINI_API,
        timeout: float = 30.0,
        client_ip: str = "0.0.0.0",
        user_agent: str = "fundswap/0.1",
        catalog: Optional[VenueCatalog] = None,
        http_client=None,
    ):
        """Initialize the provider.

        Args:
            clients: Source chain name -> EVM client
            api_key: Partner API key
            api_secret: Partner API secret
            base_url: Partner API URL
            timeout: HTTP timeout in seconds
            client_ip: IP address reported when creating an exchange
            user_agent: User agent reported when creating an exchange
            catalog: Currency catalog (defaults to the static map)
            http_client: Shared httpx client, mainly for tests
        """
        super().__init__(clients)
        self.api = JsonApi(
            self.name,
            base_url,
            timeout=timeout,
            headers={"Authorization": f"{api_key}:{api_secret}"},
            client=http_client,
        )
        self.client_ip = client_ip
        self.user_agent = user_agent
        self.catalog = catalog or VenueCatalog(venues.HOUDINI, HOUDINI_SYMBOLS)

    @property
    def name(self) -> str:
        return venues.HOUDINI

    @property
    def category(self) -> str:
        return venues.CATEGORY_CUSTODIAL_PRIVATE

    def source_chains(self) -> list[str]:
        return [c for c in self.clients if c in SOURCE_SYMBOLS]

    def target_id(self, asset: Asset) -> Optional[str]:
        if asset.hints and asset.hints.houdini_symbol:
            return asset.hints.houdini_symbol
        return self.catalog.lookup(asset.chain, asset.symbol, asset.contract_address)

    async def list_currencies(self) -> list[Currency]:
        """Every currency Houdini lists, for the dynamic catalog index."""
        data = await self.api.get("/currencies")
        if not isinstance(data, list):
            raise VenueError(self.name, "currency list is not a list")
        currencies = []
        for c in data:
            if not c.get("id"):
                continue
            network = c.get("network") or ""
            if isinstance(network, dict):
                network = network.get("shortName") or ""
            currencies.append(
                Currency(
                    id=c["id"],
                    symbol=c.get("symbol") or "",
                    network=network,
                    contract_address=c.get("address") or c.get("contractAddress") or "",
                )
            )
        return currencies

    async def fetch_quote(self, source: str, target: str, usd_amount: Decimal) -> dict[str, Any]:
        """CEX-only quote, falling back to all routes."""
        params = {"amount": format_usd(usd_amount), "from": source, "to": target, "anonymous": "false"}
        try:
            return await self.api.get("/quote", params={**params, "cexOnly": "true"})
        except VenueError as e:
            logger.info(f"{self.name}: no CEX-only route {source} -> {target} ({e}), trying all routes")
            return await self.api.get("/quote", params={**params, "cexOnly": "false"})

    def exchange_fields(self, quote: Quote) -> dict[str, Any]:
        """Route-specific fields of the exchange request."""
        return {"inQuoteId": quote.extra_data.get("in_quote_id", "")}

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
        data = await self.fetch_quote(source, target, usd_amount)
        if not isinstance(data, dict) or data.get("amountOut") is None:
            raise VenueError(self.name, "quote response has no amountOut")

        # amountOut is a JSON float
        expected = format(Decimal(str(data["amountOut"])), "f")
        return self._new_quote(
            client,
            to_asset,
            usd_amount,
            amount,
            expected_output=expected,
            expected_output_raw=to_raw_amount(expected),
            extra_data={
                "from_symbol": source,
                "to_symbol": target,
                "destination": destination,
                "quote_id": data.get("quoteId", ""),
                "in_quote_id": data.get("inQuoteId", ""),
                "out_quote_id": data.get("outQuoteId", ""),
                "duration": data.get("duration", 0),
            },
        )

    async def create_exchange(self, quote: Quote, sender: str) -> Exchange:
        from_symbol, to_symbol, destination = quote.require_extra("from_symbol", "to_symbol", "destination")
        payload = {
            "amount": float(format_usd(quote.input_amount_usd)),
            "from": from_symbol,
            "to": to_symbol,
            "addressTo": destination,
            "anonymous": False,
            **self.exchange_fields(quote),
            "ip": self.client_ip,
            "userAgent": self.user_agent,
            "timezone": "UTC",
        }
        data = await self.api.post("/exchange", json=payload)
        if not isinstance(data, dict) or not data.get("houdiniId") or not data.get("senderAddress"):
            raise VenueError(self.name, "exchange response is missing houdiniId or senderAddress")
        return Exchange(external_id=data["houdiniId"], deposit_address=data["senderAddress"])

    async def check_status(self, tx_hash: str, external_id: str = "") -> SwapStatus:
        if not external_id:
            return SwapStatus.PENDING
        data = await self.api.get("/status", params={"id": external_id})
        try:
            status = int(data["status"])
        except (KeyError, TypeError, ValueError) as e:
            raise VenueError(self.name, f"status response has no numeric status: {data!r}") from e
        if status == STATUS_COMPLETED:
            return SwapStatus.COMPLETED
        if status >= STATUS_FIRST_FAILED:
            return SwapStatus.FAILED
        return SwapStatus.PENDING


class HoudiniXMRProvider(HoudiniProvider):
    """Houdini Swap routed through Monero. Selected only by an explicit hint."""

    @property
    def name(self) -> str:
        return venues.HOUDINI_XMR

    @property
    def category(self) -> str:
        return venues.CATEGORY_XMR_PRIVATE

    @property
    def routable_by_default(self) -> bool:
        return False

    async def fetch_quote(self, source: str, target: str, usd_amount: Decimal) -> dict[str, Any]:
        return await self.api.get(
            "/quote",
            params={
                "amount": format_usd(usd_amount),
                "from": source,
                "to": target,
                "anonymous": "true",
                "useXmr": "true",
                "cexOnly": "true",
            },
        )

    def exchange_fields(self, quote: Quote) -> dict[str, Any]:
        in_quote_id, out_quote_id = quote.require_extra("in_quote_id", "out_quote_id")
        return {"inQuoteId": in_quote_id, "outQuoteId": out_quote_id}
