"""Source chains that hold the stablecoin funding a swap.

Only EVM chains with native USDC are funding sources. Target assets may
live on any chain a venue supports.
"""

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class SourceChain:
    """Configuration for a funding chain."""

    name: str  # lowercase, e.g. "avalanche"
    code: str  # asset-notation chain code, e.g. "AVAX"
    chain_id: int
    usdc_address: str
    native_symbol: str
    rpc_url: str = ""
    usdc_decimals: int = 6

    @property
    def usdc_asset(self) -> str:
        """USDC in CHAIN.SYMBOL-CONTRACT notation."""
        return f"{self.code}.USDC-{self.usdc_address.lower()}"


# ======================
# Chain Configurations
# ======================

AVALANCHE = SourceChain(
    name="avalanche",
    code="AVAX",
    chain_id=43114,
    usdc_address="0xB97EF9Ef8734C71904D8002F8b6Bc66Dd9c48a6E",
    native_symbol="AVAX",
)

BASE = SourceChain(
    name="base",
    code="BASE",
    chain_id=8453,
    usdc_address="0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
    native_symbol="ETH",
)

SOURCE_CHAINS: dict[str, SourceChain] = {
    AVALANCHE.name: AVALANCHE,
    BASE.name: BASE,
}


def with_rpc_urls(rpc_urls: dict[str, str]) -> dict[str, SourceChain]:
    """Return the source chain table with RPC URLs filled in by chain name."""
    return {
        name: replace(chain, rpc_url=rpc_urls.get(name, chain.rpc_url))
        for name, chain in SOURCE_CHAINS.items()
    }
