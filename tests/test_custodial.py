"""Tests for the SimpleSwap and Houdini custodial providers."""

from decimal import Decimal

import httpx
import pytest

from fundswap.chains import BASE
from fundswap.errors import FundSwapError, VenueError
from fundswap.resolver.currencies import CurrencyIndex, VenueCatalog
from fundswap.routing import Asset, ResolvedHints, SwapStatus
from fundswap.routing.houdini import HOUDINI_SYMBOLS, HoudiniProvider, HoudiniXMRProvider
from fundswap.routing.simpleswap import SimpleSwapProvider

BTC = Asset.parse("BTC.BTC")
DEPOSIT = "0x" + "44" * 20


def simpleswap(clients, api, catalog=None) -> SimpleSwapProvider:
    return SimpleSwapProvider(clients, api_key="ss-key", catalog=catalog, http_client=api.client())


def houdini(clients, api, cls=HoudiniProvider):
    return cls(clients, api_key="hk", api_secret="hs", client_ip="10.0.0.1", user_agent="test-agent", http_client=api.client())


class TestSimpleSwap:
    """Tests for SimpleSwapProvider."""

    def test_target_lookup(self):
        """Test hint first, then the static map."""
        provider = SimpleSwapProvider({}, api_key="k")

        assert provider.target_id(BTC) == "btc"
        assert provider.target_id(Asset.parse("BSC.BNB")) == "bnb-bsc"
        assert provider.target_id(Asset.parse("XMR.XMR")) is None
        hinted = Asset.parse("XMR.XMR").with_hints(ResolvedHints(simpleswap_symbol="xmr"))
        assert provider.target_id(hinted) == "xmr"

    @pytest.mark.asyncio
    async def test_quote(self, funded_clients, mock_api, sender, destination):
        """Test the floating-rate estimate becomes a quote."""
        api = mock_api({("GET", "/get_estimated"): "0.00149"})
        provider = simpleswap({"base": funded_clients["base"]}, api)

        (quote,) = await provider.get_quotes(BTC, Decimal("100"), destination, sender)

        assert quote.provider == "simpleswap"
        assert quote.expected_output == "0.00149"
        assert quote.expected_output_raw == 149000
        assert quote.extra_data == {"currency_from": "usdcbase", "currency_to": "btc", "destination": destination}

        params = api.calls("/get_estimated")[0].url.params
        assert params["api_key"] == "ss-key"
        assert params["fixed"] == "false"
        assert params["amount"] == "100"

    @pytest.mark.asyncio
    async def test_non_string_estimate(self, funded_clients, mock_api, sender, destination):
        """Test an object instead of an estimate string is a venue error."""
        api = mock_api({("GET", "/get_estimated"): {"code": 422, "description": "amount too low"}})
        provider = simpleswap({"base": funded_clients["base"]}, api)

        with pytest.raises(VenueError):
            await provider.get_quotes(BTC, Decimal("100"), destination, sender)

    @pytest.mark.asyncio
    async def test_execute_creates_exchange_then_deposits(
        self, funded_clients, mock_api, private_key, sender, destination
    ):
        """Test the exchange record is created before the USDC transfer."""
        api = mock_api(
            {
                ("GET", "/get_estimated"): "0.00149",
                ("POST", "/create_exchange"): {"id": "ex123", "address_from": DEPOSIT},
            }
        )
        client = funded_clients["base"]
        provider = simpleswap({"base": client}, api)
        (quote,) = await provider.get_quotes(BTC, Decimal("100"), destination, sender)

        result = await provider.execute(quote, private_key)

        assert result.external_id == "ex123"
        assert result.tx_hash == "0x" + "bb" * 32
        client.transfer.assert_awaited_once_with(private_key, BASE.usdc_address, DEPOSIT, 100_000_000, wait=True)

        request = api.calls("/create_exchange")[0]
        assert request.url.params["api_key"] == "ss-key"
        body = api.body(request)
        assert body["currency_from"] == "usdcbase"
        assert body["currency_to"] == "btc"
        assert body["address_to"] == destination
        assert body["user_refund_address"] == sender
        assert body["amount"] == "100"
        assert body["fixed"] is False

    @pytest.mark.asyncio
    async def test_exchange_without_deposit_address(self, funded_clients, mock_api, private_key, sender, destination):
        """Test no transfer happens when the venue returns no deposit address."""
        api = mock_api(
            {
                ("GET", "/get_estimated"): "0.00149",
                ("POST", "/create_exchange"): {"id": "ex123"},
            }
        )
        client = funded_clients["base"]
        provider = simpleswap({"base": client}, api)
        (quote,) = await provider.get_quotes(BTC, Decimal("100"), destination, sender)

        with pytest.raises(VenueError):
            await provider.execute(quote, private_key)
        client.transfer.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "venue_status, expected",
        [
            ("finished", SwapStatus.COMPLETED),
            ("refunded", SwapStatus.FAILED),
            ("expired", SwapStatus.FAILED),
            ("confirming", SwapStatus.PENDING),
        ],
    )
    async def test_status(self, mock_api, venue_status, expected):
        """Test exchange states map to swap status."""
        api = mock_api({("GET", "/get_exchange"): {"id": "ex123", "status": venue_status}})

        assert await simpleswap({}, api).check_status("0xabc", "ex123") == expected

    @pytest.mark.asyncio
    async def test_status_without_exchange_id(self, mock_api):
        """Test status without an exchange id stays pending."""
        api = mock_api({})

        assert await simpleswap({}, api).check_status("0xabc") == SwapStatus.PENDING
        assert api.requests == []

    @pytest.mark.asyncio
    async def test_currency_catalog(self, mock_api):
        """Test the dynamic index is built from the venue's currency list."""
        api = mock_api(
            {
                ("GET", "/get_all_currencies"): [
                    {"symbol": "xmr", "network": "xmr"},
                    {"symbol": "usdtsol", "network": "sol", "contract_address": "Es9vMFrz"},
                    {"name": "broken"},
                ]
            }
        )
        catalog = VenueCatalog("simpleswap", {}, index=CurrencyIndex())
        provider = simpleswap({}, api, catalog=catalog)
        catalog.loader = provider.list_currencies

        assert await catalog.refresh() == 2
        assert provider.target_id(Asset.parse("XMR.XMR")) == "xmr"
        assert provider.target_id(Asset.parse("SOL.USDT-Es9vMFrz")) == "usdtsol"


class TestHoudini:
    """Tests for HoudiniProvider."""

    @pytest.mark.asyncio
    async def test_minimum_before_network(self, funded_clients, mock_api, sender, destination):
        """Test swaps under $50 fail without touching RPC or the venue."""
        api = mock_api({})
        provider = houdini(funded_clients, api)

        with pytest.raises(FundSwapError, match="minimum"):
            await provider.get_quotes(BTC, Decimal("49.99"), destination, sender)

        assert api.requests == []
        funded_clients["base"].usdc_balance.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_quote_prefers_cex_only(self, funded_clients, mock_api, sender, destination):
        """Test the CEX-only route is used when available."""
        api = mock_api(
            {("GET", "/quote"): {"amountOut": 0.00151, "quoteId": "q1", "inQuoteId": "in1", "duration": 20}}
        )
        provider = houdini({"base": funded_clients["base"]}, api)

        (quote,) = await provider.get_quotes(BTC, Decimal("100"), destination, sender)

        assert quote.expected_output == "0.00151"
        assert quote.expected_output_raw == 151000
        assert quote.extra_data["from_symbol"] == "USDCBASE"
        assert quote.extra_data["to_symbol"] == "BTC"
        assert quote.extra_data["in_quote_id"] == "in1"

        (request,) = api.calls("/quote")
        assert request.url.params["cexOnly"] == "true"
        assert request.url.params["amount"] == "100"
        assert request.headers["Authorization"] == "hk:hs"

    @pytest.mark.asyncio
    async def test_quote_amount_in_cents(self, funded_clients, mock_api, sender, destination):
        """Test a binary-float USD amount is sent as cents."""
        api = mock_api({("GET", "/quote"): {"amountOut": 0.0009, "inQuoteId": "in1"}})
        provider = houdini({"base": funded_clients["base"]}, api)

        await provider.get_quotes(BTC, Decimal(60.1), destination, sender)

        (request,) = api.calls("/quote")
        assert request.url.params["amount"] == "60.1"

    @pytest.mark.asyncio
    async def test_quote_falls_back_to_all_routes(self, funded_clients, mock_api, sender, destination):
        """Test a failed CEX-only quote is retried with every route."""

        def route(request: httpx.Request) -> httpx.Response:
            if request.url.params["cexOnly"] == "true":
                return httpx.Response(400, json={"message": "no route"})
            return httpx.Response(200, json={"amountOut": 0.0014})

        api = mock_api({("GET", "/quote"): route})
        provider = houdini({"base": funded_clients["base"]}, api)

        (quote,) = await provider.get_quotes(BTC, Decimal("100"), destination, sender)

        assert quote.expected_output_raw == 140000
        assert [r.url.params["cexOnly"] for r in api.calls("/quote")] == ["true", "false"]

    @pytest.mark.asyncio
    async def test_execute(self, funded_clients, mock_api, private_key, sender, destination):
        """Test the exchange request and the deposit transfer."""
        api = mock_api(
            {
                ("GET", "/quote"): {"amountOut": 0.00151, "inQuoteId": "in1"},
                ("POST", "/exchange"): {"houdiniId": "h-42", "senderAddress": DEPOSIT},
            }
        )
        client = funded_clients["base"]
        provider = houdini({"base": client}, api)
        (quote,) = await provider.get_quotes(BTC, Decimal("100"), destination, sender)

        result = await provider.execute(quote, private_key)

        assert result.external_id == "h-42"
        client.transfer.assert_awaited_once_with(private_key, BASE.usdc_address, DEPOSIT, 100_000_000, wait=True)
        body = api.body(api.calls("/exchange")[0])
        assert body["amount"] == 100.0
        assert body["from"] == "USDCBASE"
        assert body["to"] == "BTC"
        assert body["addressTo"] == destination
        assert body["anonymous"] is False
        assert body["inQuoteId"] == "in1"
        assert body["ip"] == "10.0.0.1"
        assert body["userAgent"] == "test-agent"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "code, expected",
        [(0, SwapStatus.PENDING), (3, SwapStatus.PENDING), (4, SwapStatus.COMPLETED), (5, SwapStatus.FAILED), (6, SwapStatus.FAILED)],
    )
    async def test_status(self, mock_api, code, expected):
        """Test numeric states map to swap status."""
        api = mock_api({("GET", "/status"): {"status": code}})

        assert await houdini({}, api).check_status("0xabc", "h-42") == expected

    @pytest.mark.asyncio
    async def test_currency_list_network_object(self, mock_api):
        """Test network given as an object is reduced to its short name."""
        api = mock_api(
            {
                ("GET", "/currencies"): [
                    {"id": "LINKBASE", "symbol": "LINK", "network": {"shortName": "base"}, "address": "0xAbC"},
                    {"id": "XMR", "symbol": "XMR", "network": "xmr"},
                ]
            }
        )

        currencies = await houdini({}, api).list_currencies()

        assert [(c.id, c.network, c.contract_address) for c in currencies] == [
            ("LINKBASE", "base", "0xAbC"),
            ("XMR", "xmr", ""),
        ]


class TestHoudiniXMR:
    """Tests for the Monero-routed variant."""

    def test_opt_in_only(self):
        """Test the XMR route is excluded from default routing."""
        provider = HoudiniXMRProvider({}, api_key="k", api_secret="s")

        assert provider.name == "houdini-xmr"
        assert provider.category == "xmr-private"
        assert not provider.routable_by_default
        assert provider.target_id(BTC) == HOUDINI_SYMBOLS["BTC.BTC"]

    @pytest.mark.asyncio
    async def test_anonymous_quote_and_exchange(self, funded_clients, mock_api, private_key, sender, destination):
        """Test the anonymous flags and both quote ids reach the venue."""
        api = mock_api(
            {
                ("GET", "/quote"): {"amountOut": 0.0013, "inQuoteId": "in9", "outQuoteId": "out9"},
                ("POST", "/exchange"): {"houdiniId": "h-x", "senderAddress": DEPOSIT},
            }
        )
        provider = houdini({"base": funded_clients["base"]}, api, cls=HoudiniXMRProvider)
        (quote,) = await provider.get_quotes(BTC, Decimal("100"), destination, sender)

        await provider.execute(quote, private_key)

        params = api.calls("/quote")[0].url.params
        assert params["anonymous"] == "true"
        assert params["useXmr"] == "true"
        body = api.body(api.calls("/exchange")[0])
        assert body["inQuoteId"] == "in9"
        assert body["outQuoteId"] == "out9"

    @pytest.mark.asyncio
    async def test_exchange_needs_both_quote_ids(self, funded_clients, mock_api, private_key, sender, destination):
        """Test a quote without the outbound leg id cannot be executed."""
        api = mock_api({("GET", "/quote"): {"amountOut": 0.0013, "inQuoteId": "in9"}})
        client = funded_clients["base"]
        provider = houdini({"base": client}, api, cls=HoudiniXMRProvider)
        (quote,) = await provider.get_quotes(BTC, Decimal("100"), destination, sender)

        with pytest.raises(FundSwapError, match="out_quote_id"):
            await provider.execute(quote, private_key)
        assert api.calls("/exchange") == []
        client.transfer.assert_not_awaited()
