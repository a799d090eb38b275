"""Stablecoin-funded swaps routed across THORChain, custodial exchanges,
NEAR Intents and CoW Protocol."""

__version__ = "0.1.0"
