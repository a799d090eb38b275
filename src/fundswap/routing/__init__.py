"""Swap routing: asset notation, provider contract and best-quote selection.

Providers:
- THORChain: router deposits into cross-chain liquidity pools
- SimpleSwap / Houdini: custodial exchanges (Houdini also via XMR)
- NEAR Intents: one-time deposit addresses settled by solvers
- CoW Protocol: gasless same-chain solver orders with permit pre-hooks

Provider modules and the factory are imported directly
(fundswap.routing.factory) so the resolver can use the asset types
without loading every venue.
"""

from fundswap.routing.amounts import RAW_DECIMALS, format_raw_amount, to_raw_amount
from fundswap.routing.asset import Asset, ResolvedHints
from fundswap.routing.base import ExecuteResult, Quote, RoutingHint, SwapProvider, SwapStatus
from fundswap.routing.manager import SwapManager

__all__ = [
    # Assets and amounts
    "Asset",
    "ResolvedHints",
    "RAW_DECIMALS",
    "format_raw_amount",
    "to_raw_amount",
    # Provider contract
    "ExecuteResult",
    "Quote",
    "RoutingHint",
    "SwapProvider",
    "SwapStatus",
    # Selection
    "SwapManager",
]
