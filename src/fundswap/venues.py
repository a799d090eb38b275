"""Venue names and categories.

Names are the dispatch keys used by routing hints, stored quotes and the
resolver's provider matches.
"""

THORCHAIN = "thorchain"
SIMPLESWAP = "simpleswap"
HOUDINI = "houdini"
HOUDINI_XMR = "houdini-xmr"
NEARINTENTS = "nearintents"
COWSWAP = "cowswap"

CATEGORY_ONCHAIN_DEX = "on-chain-dex"
CATEGORY_CUSTODIAL_PRIVATE = "custodial-private"
CATEGORY_DEX = "dex"
CATEGORY_XMR_PRIVATE = "xmr-private"
