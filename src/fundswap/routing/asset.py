"""Asset notation: CHAIN.SYMBOL or CHAIN.SYMBOL-0xContract.

Input is case-insensitive. Rendering always gives an uppercase chain and
symbol and a lowercase contract address.
"""

from dataclasses import dataclass, field, replace
from typing import Optional

from fundswap.errors import InvalidAssetError


@dataclass(frozen=True)
class ResolvedHints:
    """Per-venue identifiers produced by the asset resolver.

    Providers consult these before their own static mappings so an asset
    resolved once does not need to be looked up again per venue.
    """

    thorchain_asset: str = ""
    simpleswap_symbol: str = ""
    nearintents_token_id: str = ""
    houdini_symbol: str = ""

    def __bool__(self) -> bool:
        return any(
            (self.thorchain_asset, self.simpleswap_symbol, self.nearintents_token_id, self.houdini_symbol)
        )


@dataclass(frozen=True)
class Asset:
    """A target asset identified by chain, symbol and optional contract."""

    chain: str
    symbol: str
    contract_address: str = ""
    hints: Optional[ResolvedHints] = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        chain = self.chain.strip().upper()
        symbol = self.symbol.strip().upper()
        if not chain:
            raise InvalidAssetError("asset chain is empty")
        if not symbol:
            raise InvalidAssetError("asset symbol is empty")
        object.__setattr__(self, "chain", chain)
        object.__setattr__(self, "symbol", symbol)
        object.__setattr__(self, "contract_address", self.contract_address.strip().lower())

    @classmethod
    def parse(cls, notation: str) -> "Asset":
        """Parse CHAIN.SYMBOL or CHAIN.SYMBOL-CONTRACT.

        Raises:
            InvalidAssetError: If there is no "." or chain/symbol is empty
        """
        chain, sep, rest = notation.strip().partition(".")
        if not sep:
            raise InvalidAssetError(f"invalid asset format {notation!r}: expected CHAIN.SYMBOL")
        symbol, _, contract = rest.partition("-")
        return cls(chain=chain, symbol=symbol, contract_address=contract)

    @property
    def is_native(self) -> bool:
        """True for a chain's gas token (no contract address)."""
        return not self.contract_address

    @property
    def short(self) -> str:
        """CHAIN.SYMBOL without the contract."""
        return f"{self.chain}.{self.symbol}"

    def with_hints(self, hints: Optional[ResolvedHints]) -> "Asset":
        """Copy of this asset carrying resolver hints."""
        return replace(self, hints=hints)

    def __str__(self) -> str:
        if self.contract_address:
            return f"{self.chain}.{self.symbol}-{self.contract_address}"
        return f"{self.chain}.{self.symbol}"
