"""CoW Protocol gasless solver provider and gas refills.

Orders are signed off-chain (EIP-712) and settled by solvers, so the
sender needs no native gas. When the vault relayer's USDC allowance is too
low, an EIP-2612 permit is signed and attached to the order as a pre-hook
in its app data; the settlement executes the permit before pulling funds.

If the venue answers a quote that carries a permit hook with an
"insufficient allowance" error, the hook failed to simulate. That almost
always means a bad permit (wrong domain name or version, stale nonce), not
a real allowance problem. It is raised as PermitSimulationError and
logged with the permit context.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Optional

from eth_utils import keccak, to_checksum_address, to_hex

from fundswap import venues
from fundswap.errors import PermitSimulationError, VenueError
from fundswap.evm import abi
from fundswap.evm.client import EvmClient
from fundswap.routing.amounts import format_units, to_raw_amount
from fundswap.routing.asset import Asset
from fundswap.routing.base import ExecuteResult, PrivateKey, Quote, SwapStatus
from fundswap.routing.source import SourceChainProvider, sender_address
from fundswap.signing.permit import DEFAULT_APP_DATA, AppData, Permit, build_app_data, build_usdc_permit
from fundswap.signing.typed_data import TypedDataDomain, sign_typed_data
from fundswap.utils.http import JsonApi

logger = logging.getLogger(__name__)

COW_API = "https://api.cow.fi"

# GPv2Settlement and GPv2VaultRelayer, same address on every chain
SETTLEMENT_CONTRACT = "0x9008D19f58AAbD9eD0D60971565AA8510560ab41"
VAULT_RELAYER = "0xC92E8bdf79f0507f65a392b0ab4667716BFE0110"

# Source chain name -> API network path
COW_NETWORKS = {
    "base": "base",
    "avalanche": "avalanche",
}

ORDER_TYPES = {
    "Order": [
        {"name": "sellToken", "type": "address"},
        {"name": "buyToken", "type": "address"},
        {"name": "receiver", "type": "address"},
        {"name": "sellAmount", "type": "uint256"},
        {"name": "buyAmount", "type": "uint256"},
        {"name": "validTo", "type": "uint32"},
        {"name": "appData", "type": "bytes32"},
        {"name": "feeAmount", "type": "uint256"},
        {"name": "kind", "type": "string"},
        {"name": "partiallyFillable", "type": "bool"},
        {"name": "sellTokenBalance", "type": "string"},
        {"name": "buyTokenBalance", "type": "string"},
    ]
}

NATIVE_DECIMALS = 18

COMPLETED_STATES = {"fulfilled"}
FAILED_STATES = {"expired", "cancelled"}

KeyProvider = Callable[[str], Optional[PrivateKey]]


def order_domain(chain_id: int) -> TypedDataDomain:
    return TypedDataDomain(
        name="Gnosis Protocol",
        version="v2",
        chain_id=chain_id,
        verifying_contract=SETTLEMENT_CONTRACT,
    )


def app_data_hash(order: dict) -> str:
    """The bytes32 app-data commitment of a quoted order."""
    if order.get("appDataHash"):
        return order["appDataHash"]
    app_data = order.get("appData", "")
    if app_data.startswith("0x") and len(app_data) == 66:
        return app_data
    return to_hex(keccak(text=app_data))


def order_message(order: dict) -> dict:
    """EIP-712 Order message from a quote's order fields."""
    return {
        "sellToken": order["sellToken"],
        "buyToken": order["buyToken"],
        "receiver": order["receiver"],
        "sellAmount": int(order["sellAmount"]),
        "buyAmount": int(order["buyAmount"]),
        "validTo": int(order["validTo"]),
        "appData": app_data_hash(order),
        "feeAmount": int(order["feeAmount"]),
        "kind": order["kind"],
        "partiallyFillable": bool(order["partiallyFillable"]),
        "sellTokenBalance": order.get("sellTokenBalance", "erc20"),
        "buyTokenBalance": order.get("buyTokenBalance", "erc20"),
    }


def sign_order(private_key: PrivateKey, chain_id: int, order: dict) -> str:
    """EIP-712 signature (0x-hex, v in 27/28) over a quoted order."""
    signature = sign_typed_data(private_key, order_domain(chain_id), "Order", ORDER_TYPES, order_message(order))
    return signature.hex()


def map_order_status(status: str) -> SwapStatus:
    if status in COMPLETED_STATES:
        return SwapStatus.COMPLETED
    if status in FAILED_STATES:
        return SwapStatus.FAILED
    return SwapStatus.PENDING


class CowSwapClient:
    """Quote, order and status calls against the per-network CoW APIs."""

    def __init__(self, api_url: str = COW_API, timeout: float = 30.0, http_client=None):
        base = api_url.rstrip("/")
        self._apis = {
            chain: JsonApi(venues.COWSWAP, f"{base}/{network}/api/v1", timeout=timeout, client=http_client)
            for chain, network in COW_NETWORKS.items()
        }

    def supports_chain(self, chain: str) -> bool:
        return chain in self._apis

    def api(self, chain: str) -> JsonApi:
        api = self._apis.get(chain)
        if api is None:
            raise VenueError(venues.COWSWAP, f"chain {chain!r} is not supported")
        return api

    async def quote(
        self,
        chain: str,
        sell_token: str,
        buy_token: str,
        sell_amount: int,
        owner: str,
        receiver: str,
        app_data: AppData = DEFAULT_APP_DATA,
        permit: Optional[Permit] = None,
    ) -> dict[str, Any]:
        """Request a sell-order quote.

        Args:
            chain: Source chain name
            sell_token: Token sold
            buy_token: Token bought (NATIVE_TOKEN_PLACEHOLDER for gas)
            sell_amount: Amount sold before fees, in sell_token units
            owner: Order owner
            receiver: Address receiving buy_token
            app_data: App-data document, with a permit hook when needed
            permit: The permit inside app_data, for error context

        Returns:
            Quote response with the order fields under "quote"

        Raises:
            PermitSimulationError: The venue rejected the attached permit hook
            VenueError: Any other quote failure
        """
        request = {
            "sellToken": to_checksum_address(sell_token),
            "buyToken": to_checksum_address(buy_token),
            "receiver": to_checksum_address(receiver),
            "sellAmountBeforeFee": str(sell_amount),
            "kind": "sell",
            "from": to_checksum_address(owner),
            "appData": app_data.document,
            "appDataHash": app_data.hash,
            "signingScheme": "eip712",
        }
        try:
            data = await self.api(chain).post("/quote", json=request, expected=(200,))
        except VenueError as e:
            if app_data.has_hooks and "allowance" in str(e).lower():
                context = ""
                if permit is not None:
                    context = (
                        f" token={permit.token} spender={permit.spender} nonce={permit.nonce} "
                        f"domain=({permit.domain.name}, {permit.domain.version}) deadline={permit.deadline}"
                    )
                logger.error(f"CoW rejected permit pre-hook on {chain}:{context} ({e})")
                raise PermitSimulationError(venues.COWSWAP, f"permit hook failed to simulate: {e}", e.status_code) from e
            raise

        if not isinstance(data, dict) or not isinstance(data.get("quote"), dict):
            raise VenueError(venues.COWSWAP, "quote response has no order")
        return data

    async def submit_order(self, chain: str, order: dict, signature: str, owner: str) -> str:
        """Submit a signed order. Returns its UID."""
        submission = {
            **order,
            "signingScheme": "eip712",
            "signature": signature,
            "from": to_checksum_address(owner),
        }
        uid = await self.api(chain).post("/orders", json=submission, expected=(201,))
        if not isinstance(uid, str) or not uid:
            raise VenueError(venues.COWSWAP, f"unexpected order response {uid!r}")
        return uid

    async def order_status(self, chain: str, order_uid: str) -> str:
        """One of presignaturePending, open, fulfilled, cancelled, expired."""
        data = await self.api(chain).get(f"/orders/{order_uid}")
        return str((data or {}).get("status", ""))


async def prepare_app_data(
    client: EvmClient,
    private_key: Optional[PrivateKey],
    owner: str,
    amount: int,
    permit_value: Optional[int] = None,
) -> tuple[AppData, Optional[Permit]]:
    """App data for selling amount USDC, with a permit hook if the relayer allowance is short.

    Args:
        client: Source chain client
        private_key: Owner key, needed only when a permit must be signed
        owner: USDC owner
        amount: USDC to sell
        permit_value: Allowance to permit (defaults to amount)

    Raises:
        VenueError: A permit is needed but no key is available
    """
    allowance = await client.allowance(client.chain.usdc_address, owner, VAULT_RELAYER)
    if allowance >= amount:
        return DEFAULT_APP_DATA, None
    if private_key is None:
        raise VenueError(venues.COWSWAP, f"permit needed on {client.chain.name} but no signing key for {owner}")

    permit = await build_usdc_permit(client, private_key, VAULT_RELAYER, permit_value or amount)
    logger.info(f"Built permit pre-hook for {owner} on {client.chain.name} (nonce={permit.nonce})")
    return build_app_data([permit.as_hook()]), permit


class CowSwapProvider(SourceChainProvider):
    """Same-chain swaps from USDC through CoW Protocol solvers."""

    def __init__(
        self,
        clients: dict[str, EvmClient],
        cow: Optional[CowSwapClient] = None,
        key_provider: Optional[KeyProvider] = None,
    ):
        """Initialize the provider.

        Args:
            clients: Source chain name -> EVM client
            cow: CoW API client
            key_provider: Returns the private key for a sender address, used to
                sign a permit while quoting; without it, quotes that need a
                permit are skipped
        """
        super().__init__(clients)
        self.cow = cow or CowSwapClient()
        self.key_provider = key_provider

    @property
    def name(self) -> str:
        return venues.COWSWAP

    @property
    def category(self) -> str:
        return venues.CATEGORY_ONCHAIN_DEX

    def source_chains(self) -> list[str]:
        return [c for c in self.clients if self.cow.supports_chain(c)]

    def source_chains_for(self, asset: Asset) -> list[str]:
        # Solver settlement is same-chain only
        return [c for c in self.source_chains() if self.clients[c].chain.code == asset.chain]

    def target_id(self, asset: Asset) -> Optional[str]:
        for name in self.source_chains():
            chain = self.clients[name].chain
            if chain.code != asset.chain:
                continue
            if asset.contract_address:
                return asset.contract_address
            if asset.symbol == chain.native_symbol:
                return abi.NATIVE_TOKEN_PLACEHOLDER
        return None

    async def _buy_decimals(self, client: EvmClient, buy_token: str) -> int:
        if buy_token.lower() == abi.NATIVE_TOKEN_PLACEHOLDER.lower():
            return NATIVE_DECIMALS
        return await client.token_decimals(buy_token)

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
        key = self.key_provider(sender) if self.key_provider else None
        app_data, permit = await prepare_app_data(client, key, sender, amount)

        data = await self.cow.quote(
            client.chain.name,
            client.chain.usdc_address,
            target,
            amount,
            owner=sender,
            receiver=destination,
            app_data=app_data,
            permit=permit,
        )
        order = data["quote"]
        decimals = await self._buy_decimals(client, target)
        expected = format_units(int(order["buyAmount"]), decimals)

        return self._new_quote(
            client,
            to_asset,
            usd_amount,
            amount,
            expected_output=expected,
            expected_output_raw=to_raw_amount(expected),
            expiry=int(order.get("validTo") or 0),
            extra_data={
                "order": order,
                "quote_id": data.get("id"),
                "permit": permit is not None,
            },
        )

    async def execute(self, quote: Quote, private_key: PrivateKey) -> ExecuteResult:
        (order,) = quote.require_extra("order")
        client = self.client_for(quote.from_chain)
        owner = sender_address(private_key)

        signature = sign_order(private_key, client.chain.chain_id, order)
        uid = await self.cow.submit_order(quote.from_chain, order, signature, owner)
        logger.info(f"{self.name}: order {uid} submitted on {quote.from_chain}")
        return ExecuteResult(tx_hash=uid, external_id=f"{quote.from_chain}:{uid}")

    async def check_status(self, tx_hash: str, external_id: str = "") -> SwapStatus:
        chain, sep, uid = external_id.partition(":")
        if not sep:
            raise VenueError(self.name, f"order reference {external_id!r} has no chain")
        return map_order_status(await self.cow.order_status(chain, uid))


# ======================
# Gas Refill
# ======================


@dataclass(frozen=True)
class GasRefillResult:
    chain: str
    order_uid: str
    status: str = "open"


async def refill_gas_if_needed(
    cow: CowSwapClient,
    client: EvmClient,
    private_key: PrivateKey,
    native_balance: int,
    usdc_balance: int,
    min_native_wei: int,
    refill_usdc: int,
) -> Optional[GasRefillResult]:
    """Sell refill_usdc for native gas when the native balance is below min_native_wei.

    The permit, when needed, is for the maximum allowance so later refills
    need none.

    Returns:
        The submitted order, or None if the chain is unsupported, gas is
        sufficient, or USDC does not cover the refill
    """
    chain = client.chain
    if not cow.supports_chain(chain.name):
        return None
    if native_balance >= min_native_wei:
        return None
    if usdc_balance < refill_usdc:
        return None

    owner = sender_address(private_key)
    logger.info(
        f"Gas refill needed on {chain.name} for {owner}: native={native_balance}, threshold={min_native_wei}"
    )

    app_data, permit = await prepare_app_data(client, private_key, owner, refill_usdc, permit_value=abi.MAX_UINT256)
    data = await cow.quote(
        chain.name,
        chain.usdc_address,
        abi.NATIVE_TOKEN_PLACEHOLDER,
        refill_usdc,
        owner=owner,
        receiver=owner,
        app_data=app_data,
        permit=permit,
    )
    order = data["quote"]
    uid = await cow.submit_order(chain.name, order, sign_order(private_key, chain.chain_id, order), owner)

    logger.info(f"CoW gas refill order submitted on {chain.name} ({chain.native_symbol}): {uid}")
    return GasRefillResult(chain=chain.name, order_uid=uid)
