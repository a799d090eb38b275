"""Operator CLI.

Usage:
    python -m fundswap resolve BASE LINK [--contract 0x...]
    python -m fundswap quote BTC.BTC 100 --destination bc1... [--sender 0x...] [--provider NAME | --category NAME]
    python -m fundswap quote BTC.BTC 100 --destination bc1... --execute
    python -m fundswap status thorchain 0xTXHASH [--external-id ID]
    python -m fundswap refill
    python -m fundswap config

Every command prints JSON on stdout. Executing swaps and refills needs
SENDER_PRIVATE_KEY; without it the sender must be given explicitly.
"""

import argparse
import asyncio
import json
import logging
import sys
from decimal import Decimal, InvalidOperation
from typing import Optional

from dotenv import load_dotenv

from fundswap.config import Settings, get_settings
from fundswap.errors import FundSwapError
from fundswap.routing.amounts import USDC_DECIMALS, format_units
from fundswap.routing.asset import Asset
from fundswap.routing.base import PrivateKey, RoutingHint
from fundswap.routing.cowswap import CowSwapClient, KeyProvider, refill_gas_if_needed
from fundswap.routing.factory import Services, create_services
from fundswap.routing.source import sender_address

logger = logging.getLogger(__name__)


def _usd(value: str) -> Decimal:
    try:
        amount = Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"invalid USD amount {value!r}") from None
    if amount <= 0:
        raise argparse.ArgumentTypeError("USD amount must be positive")
    return amount


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="fundswap", description="Stablecoin-funded cross-venue swaps")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    resolve = commands.add_parser("resolve", help="Resolve an asset against every venue")
    resolve.add_argument("chain", help="Chain code, e.g. BASE")
    resolve.add_argument("symbol", help="Token symbol, e.g. LINK")
    resolve.add_argument("--contract", default="", help="Contract address on the chain")

    quote = commands.add_parser("quote", help="Best quote for spending USDC on an asset")
    quote.add_argument("asset", help="Target asset, CHAIN.SYMBOL or CHAIN.SYMBOL-0xContract")
    quote.add_argument("usd", type=_usd, help="USD amount to spend")
    quote.add_argument("--destination", required=True, help="Address receiving the asset")
    quote.add_argument("--sender", help="Address holding the USDC (defaults to the configured key)")
    hint = quote.add_mutually_exclusive_group()
    hint.add_argument("--provider", help="Only ask this provider")
    hint.add_argument("--category", help="Only ask providers of this category")
    quote.add_argument("--resolve", action="store_true", help="Resolve the asset first and pass venue hints")
    mode = quote.add_mutually_exclusive_group()
    mode.add_argument("--all", action="store_true", help="Print every quote instead of the best")
    mode.add_argument("--execute", action="store_true", help="Execute the best quote with the configured key")

    status = commands.add_parser("status", help="Status of an executed swap")
    status.add_argument("provider", help="Provider that executed the swap")
    status.add_argument("tx_hash", help="Transaction hash or order UID")
    status.add_argument("--external-id", default="", help="Venue tracking id")

    commands.add_parser("refill", help="Buy native gas with USDC on chains running low")
    commands.add_parser("config", help="Show configuration with secrets redacted")
    return parser


def routing_hint(args: argparse.Namespace) -> RoutingHint:
    if args.provider:
        return RoutingHint.for_provider(args.provider)
    if args.category:
        return RoutingHint.for_category(args.category)
    return RoutingHint()


def static_key_provider(private_key: Optional[PrivateKey]) -> Optional[KeyProvider]:
    """Key provider that knows the single configured sender key."""
    if not private_key:
        return None
    owner = sender_address(private_key).lower()

    def provide(address: str) -> Optional[PrivateKey]:
        return private_key if address.lower() == owner else None

    return provide


async def refill(
    services: Services,
    settings: Settings,
    private_key: PrivateKey,
    cow: Optional[CowSwapClient] = None,
) -> dict:
    """Check every source chain and refill native gas where it is low."""
    owner = sender_address(private_key)
    cow = cow or CowSwapClient(settings.cowswap_api_url, timeout=settings.http_timeout)
    chains = []
    for name, client in services.clients.items():
        native_balance, usdc_balance = (await client.balances([owner]))[owner]
        result = await refill_gas_if_needed(
            cow,
            client,
            private_key,
            native_balance,
            usdc_balance,
            settings.gas_refill_min_native_wei,
            settings.gas_refill_usdc_amount,
        )
        chains.append(
            {
                "chain": name,
                "native_balance": str(native_balance),
                "usdc_balance": format_units(usdc_balance, USDC_DECIMALS),
                "order_uid": result.order_uid if result else None,
            }
        )
    return {"owner": owner, "chains": chains}


async def run(
    args: argparse.Namespace,
    services: Services,
    settings: Settings,
    private_key: Optional[PrivateKey] = None,
) -> dict:
    """Execute a parsed command and return its JSON-ready result."""
    if args.command == "resolve":
        await services.resolver.refresh_catalogs()
        resolution = await services.resolver.resolve(args.chain, args.symbol, args.contract)
        return {
            "coingecko_id": resolution.coingecko_id,
            "name": resolution.name,
            "symbol": resolution.symbol,
            "contract_address": resolution.contract_address,
            "providers": [{"provider": m.provider, "asset_id": m.asset_id} for m in resolution.providers],
        }

    if args.command == "quote":
        sender = args.sender or (sender_address(private_key) if private_key else "")
        if not sender:
            raise FundSwapError("--sender is required when SENDER_PRIVATE_KEY is not set")
        if args.execute and not private_key:
            raise FundSwapError("--execute requires SENDER_PRIVATE_KEY")

        asset = Asset.parse(args.asset)
        if args.resolve:
            await services.resolver.refresh_catalogs()
            resolution = await services.resolver.resolve(asset.chain, asset.symbol, asset.contract_address)
            asset = asset.with_hints(resolution.to_hints())
        hint = routing_hint(args)
        if args.all:
            quotes = await services.manager.get_all_quotes(asset, args.usd, args.destination, sender, hint)
            return {"quotes": [q.to_dict() for q in quotes]}

        best = await services.manager.best_quote(asset, args.usd, args.destination, sender, hint)
        if not args.execute:
            return best.to_dict()
        result = await services.manager.execute_swap(best, private_key)
        return {"quote": best.to_dict(), "tx_hash": result.tx_hash, "external_id": result.external_id}

    if args.command == "status":
        status = await services.manager.check_status(args.provider, args.tx_hash, args.external_id)
        return {"provider": args.provider, "tx_hash": args.tx_hash, "status": status.value}

    if args.command == "refill":
        if not private_key:
            raise FundSwapError("refill requires SENDER_PRIVATE_KEY")
        return await refill(services, settings, private_key)

    raise ValueError(f"unknown command {args.command!r}")


def main(argv: Optional[list[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    settings = get_settings()

    log_level = logging.DEBUG if (args.verbose or settings.debug) else getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    if args.command == "config":
        print(json.dumps(settings.get_safe_dict(), indent=2))
        return 0

    private_key = settings.sender_private_key
    try:
        services = create_services(settings, key_provider=static_key_provider(private_key))
        result = asyncio.run(run(args, services, settings, private_key))
    except FundSwapError as e:
        logger.error(f"{args.command} failed: {e}")
        print(json.dumps({"error": str(e), "type": type(e).__name__}, indent=2))
        return 1

    print(json.dumps(result, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
