"""Exception hierarchy shared by the resolver, venues and the swap manager."""

from typing import Optional


class FundSwapError(Exception):
    """Base error for the package."""


class InvalidAssetError(FundSwapError, ValueError):
    """Asset notation could not be parsed."""


class NotFoundError(FundSwapError):
    """A catalog, pool list or venue has no entry for the requested asset."""


class InsufficientBalanceError(FundSwapError):
    """The sender lacks stablecoin on every chain a venue could use.

    Attributes:
        required: Amount needed, in USDC base units (6 decimals)
        balances: Chain name -> USDC base units held
    """

    def __init__(self, message: str, required: int = 0, balances: Optional[dict[str, int]] = None):
        super().__init__(message)
        self.required = required
        self.balances = balances or {}


class VenueError(FundSwapError):
    """External venue returned an error, a non-200 status or a malformed payload."""

    def __init__(self, venue: str, message: str, status_code: Optional[int] = None):
        self.venue = venue
        self.status_code = status_code
        prefix = f"{venue} ({status_code})" if status_code is not None else venue
        super().__init__(f"{prefix}: {message}")


class PermitSimulationError(VenueError):
    """Venue rejected a quote that carried a permit pre-hook.

    The venue reports this as "insufficient allowance" even though the real
    cause is usually a bad permit signature or a wrong EIP-712 domain.
    """


class RPCError(FundSwapError):
    """EVM JSON-RPC call failed."""


class TransactionFailedError(RPCError):
    """Transaction was mined with status 0."""

    def __init__(self, tx_hash: str):
        self.tx_hash = tx_hash
        super().__init__(f"transaction {tx_hash} reverted")


class RoutingHintError(FundSwapError):
    """Routing hint matched no registered provider."""


class UnknownProviderError(FundSwapError):
    """Dispatch by a provider name nothing is registered under."""
