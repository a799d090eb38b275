"""Tests for the THORChain provider and balance-gated quoting."""

import time
from decimal import Decimal

import pytest
from eth_abi import decode
from eth_utils import to_checksum_address

from fundswap.chains import AVALANCHE, BASE
from fundswap.errors import FundSwapError, InsufficientBalanceError, NotFoundError, VenueError
from fundswap.evm import abi
from fundswap.routing import Asset, ResolvedHints, SwapStatus
from fundswap.routing.thorchain import DEPOSIT_GAS, MIN_EXPIRY_SECONDS, ThorchainProvider
from fundswap.utils.http import RateLimiter

ROUTER = "0x" + "11" * 20
VAULT = "0x" + "22" * 20
BTC = Asset.parse("BTC.BTC")

QUOTE = {
    "inbound_address": VAULT,
    "router": ROUTER,
    "memo": "=:BTC.BTC:bc1qxy2kgdygjrsqtzq2n0yrf2493p83kkfjhx0wlh",
    "expected_amount_out": "150000",
    "expiry": 0,
    "fees": {"asset": "BTC.BTC", "total": "1200"},
    "outbound_delay_seconds": 600,
}


def make_provider(clients, api) -> ThorchainProvider:
    return ThorchainProvider(clients, rate_limiter=RateLimiter(1000.0), http_client=api.client())


class TestSupport:
    """Tests for static asset support."""

    def test_pool_chains(self):
        """Test assets on pool chains are supported without network calls."""
        provider = ThorchainProvider({})

        assert provider.supports_asset(BTC)
        assert provider.supports_asset(Asset.parse("ETH.USDT-0xdac17f958d2ee523a2206206994597c13d831ec7"))
        assert not provider.supports_asset(Asset.parse("XMR.XMR"))

    def test_resolver_hint_wins(self):
        """Test the resolver's pool asset overrides the static check."""
        provider = ThorchainProvider({})
        asset = Asset.parse("ARB.LINK").with_hints(ResolvedHints(thorchain_asset="BASE.LINK-0xabc"))

        assert provider.target_id(asset) == "BASE.LINK-0xabc"


class TestQuotes:
    """Tests for quoting across source chains."""

    @pytest.mark.asyncio
    async def test_quote_params_and_fields(self, funded_clients, mock_api, sender, destination):
        """Test the THORNode request and the resulting quote."""
        api = mock_api({("GET", "/thorchain/quote/swap"): QUOTE})
        provider = make_provider({"base": funded_clients["base"]}, api)

        quotes = await provider.get_quotes(BTC, Decimal("100"), destination, sender)

        assert len(quotes) == 1
        quote = quotes[0]
        assert quote.provider == "thorchain"
        assert quote.from_chain == "base"
        assert str(quote.from_asset) == BASE.usdc_asset
        assert quote.input_amount == 100_000_000
        assert quote.expected_output_raw == 150000
        assert quote.expected_output == "0.0015"
        assert quote.router == ROUTER
        assert quote.vault_address == VAULT
        assert quote.memo == QUOTE["memo"]
        assert quote.extra_data["outbound_delay_seconds"] == 600

        params = api.calls("/thorchain/quote/swap")[0].url.params
        assert params["amount"] == "10000000000"
        assert params["to_asset"] == "BTC.BTC"
        assert params["from_asset"].startswith("BASE.USDC-0X833589")
        assert params["destination"] == destination

    @pytest.mark.asyncio
    async def test_only_funded_chain_is_quoted(self, evm_client_factory, mock_api, sender, destination):
        """Test a chain holding too little USDC is skipped."""
        clients = {
            "avalanche": evm_client_factory(AVALANCHE, usdc_balance=5_000_000),
            "base": evm_client_factory(BASE, usdc_balance=500_000_000),
        }
        api = mock_api({("GET", "/thorchain/quote/swap"): QUOTE})
        provider = make_provider(clients, api)

        quotes = await provider.get_quotes(BTC, Decimal("100"), destination, sender)

        assert [q.from_chain for q in quotes] == ["base"]
        assert len(api.calls("/thorchain/quote/swap")) == 1

    @pytest.mark.asyncio
    async def test_both_chains_quoted(self, funded_clients, mock_api, sender, destination):
        """Test every funded chain yields its own quote."""
        api = mock_api({("GET", "/thorchain/quote/swap"): QUOTE})
        provider = make_provider(funded_clients, api)

        quotes = await provider.get_quotes(BTC, Decimal("100"), destination, sender)

        assert sorted(q.from_chain for q in quotes) == ["avalanche", "base"]

    @pytest.mark.asyncio
    async def test_all_chains_short(self, evm_client_factory, mock_api, sender, destination):
        """Test the balance error when no chain holds enough USDC."""
        clients = {
            "avalanche": evm_client_factory(AVALANCHE, usdc_balance=1_000_000),
            "base": evm_client_factory(BASE, usdc_balance=0),
        }
        api = mock_api({("GET", "/thorchain/quote/swap"): QUOTE})
        provider = make_provider(clients, api)

        with pytest.raises(InsufficientBalanceError) as exc_info:
            await provider.get_quotes(BTC, Decimal("100"), destination, sender)

        assert exc_info.value.required == 100_000_000
        assert exc_info.value.balances == {"avalanche": 1_000_000, "base": 0}
        assert api.requests == []

    @pytest.mark.asyncio
    async def test_venue_error_on_every_chain(self, funded_clients, mock_api, sender, destination):
        """Test per-chain failures are reported together."""
        api = mock_api({("GET", "/thorchain/quote/swap"): (400, {"error": "pool is not available"})})
        provider = make_provider(funded_clients, api)

        with pytest.raises(VenueError, match="no quotes for BTC.BTC"):
            await provider.get_quotes(BTC, Decimal("100"), destination, sender)

    @pytest.mark.asyncio
    async def test_incomplete_quote_rejected(self, funded_clients, mock_api, sender, destination):
        """Test a quote without a memo cannot be used."""
        body = dict(QUOTE, memo="")
        api = mock_api({("GET", "/thorchain/quote/swap"): body})
        provider = make_provider({"base": funded_clients["base"]}, api)

        with pytest.raises(VenueError, match="memo"):
            await provider.get_quotes(BTC, Decimal("100"), destination, sender)

    @pytest.mark.asyncio
    async def test_unsupported_asset(self, funded_clients, mock_api, sender, destination):
        """Test assets off THORChain fail before any network call."""
        api = mock_api({})
        provider = make_provider(funded_clients, api)

        with pytest.raises(NotFoundError):
            await provider.get_quotes(Asset.parse("XMR.XMR"), Decimal("100"), destination, sender)
        assert api.requests == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", ["0", "-5"])
    async def test_non_positive_amount(self, funded_clients, mock_api, sender, destination, amount):
        """Test zero and negative amounts are rejected."""
        provider = make_provider(funded_clients, mock_api({}))

        with pytest.raises(FundSwapError, match="positive"):
            await provider.get_quotes(BTC, Decimal(amount), destination, sender)
        funded_clients["base"].usdc_balance.assert_not_awaited()


class TestExecute:
    """Tests for router deposits."""

    @pytest.mark.asyncio
    async def test_approve_then_deposit(self, funded_clients, mock_api, private_key, sender, destination):
        """Test execution approves the router and deposits with the memo."""
        api = mock_api({("GET", "/thorchain/quote/swap"): QUOTE})
        client = funded_clients["base"]
        provider = make_provider({"base": client}, api)
        quote = (await provider.get_quotes(BTC, Decimal("100"), destination, sender))[0]

        before = int(time.time())
        result = await provider.execute(quote, private_key)

        assert result.tx_hash == "0x" + "cc" * 32
        assert result.external_id == ""
        client.approve.assert_awaited_once_with(private_key, BASE.usdc_address, ROUTER, 100_000_000)

        args, kwargs = client.send_transaction.await_args
        assert args[0] == private_key
        assert args[1] == ROUTER
        assert kwargs["gas"] == DEPOSIT_GAS
        data = args[2]
        assert data[:4] == abi.encode_call(abi.THORCHAIN_ROUTER, "depositWithExpiry", [VAULT, ROUTER, 0, "", 0])[:4]
        vault, asset, amount, memo, expiry = decode(
            ["address", "address", "uint256", "string", "uint256"], data[4:]
        )
        assert to_checksum_address(vault) == to_checksum_address(VAULT)
        assert to_checksum_address(asset) == BASE.usdc_address
        assert amount == 100_000_000
        assert memo == QUOTE["memo"]
        assert expiry >= before + MIN_EXPIRY_SECONDS

    @pytest.mark.asyncio
    async def test_quote_without_router(self, funded_clients, private_key):
        """Test execution refuses a quote missing deposit details."""
        from fundswap.routing.base import Quote

        quote = Quote(
            provider="thorchain",
            from_asset=Asset.parse(BASE.usdc_asset),
            to_asset=BTC,
            from_chain="base",
            input_amount_usd=Decimal("100"),
            input_amount=100_000_000,
            expected_output="0.0015",
            expected_output_raw=150000,
        )
        provider = ThorchainProvider(funded_clients)

        with pytest.raises(VenueError):
            await provider.execute(quote, private_key)
        funded_clients["base"].approve.assert_not_awaited()


class TestStatus:
    """Tests for THORNode tx status."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "stages, expected",
        [
            ({"outbound_signed": {"completed": True}}, SwapStatus.COMPLETED),
            ({"outbound_signed": {"completed": False}}, SwapStatus.PENDING),
            ({"swap_finalised": {"completed": True}}, SwapStatus.COMPLETED),
            ({"inbound_observed": {"completed": True}}, SwapStatus.PENDING),
        ],
    )
    async def test_stage_mapping(self, mock_api, stages, expected):
        """Test stage flags map to swap status."""
        api = mock_api({("GET", "/thorchain/tx/status/ABCDEF"): {"stages": stages}})
        provider = make_provider({}, api)

        assert await provider.check_status("0xABCDEF") == expected
