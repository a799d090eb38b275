"""Provider contract shared by every swap venue."""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Union

from fundswap.errors import FundSwapError
from fundswap.routing.asset import Asset

logger = logging.getLogger(__name__)

PrivateKey = Union[str, bytes]


class SwapStatus(str, Enum):
    """Lifecycle of an executed swap. COMPLETED and FAILED are terminal."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not SwapStatus.PENDING


@dataclass
class Quote:
    """A swap quote from one venue for one source chain."""

    provider: str
    from_asset: Asset
    to_asset: Asset
    from_chain: str  # source chain name, e.g. "base"
    input_amount_usd: Decimal
    input_amount: int  # USDC base units
    expected_output: str  # display amount
    expected_output_raw: int  # 8-decimal scale, comparable across venues
    memo: str = ""
    router: str = ""
    vault_address: str = ""
    expiry: int = 0
    extra_data: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        """Convert to dictionary for storage."""
        return {
            "provider": self.provider,
            "from_asset": str(self.from_asset),
            "to_asset": str(self.to_asset),
            "from_chain": self.from_chain,
            "input_amount_usd": str(self.input_amount_usd),
            "input_amount": str(self.input_amount),
            "expected_output": self.expected_output,
            "expected_output_raw": str(self.expected_output_raw),
            "memo": self.memo,
            "router": self.router,
            "vault_address": self.vault_address,
            "expiry": self.expiry,
            "extra_data": dict(self.extra_data),
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Quote":
        """Rebuild a quote stored with to_dict()."""
        return cls(
            provider=data["provider"],
            from_asset=Asset.parse(data["from_asset"]),
            to_asset=Asset.parse(data["to_asset"]),
            from_chain=data["from_chain"],
            input_amount_usd=Decimal(data["input_amount_usd"]),
            input_amount=int(data["input_amount"]),
            expected_output=data["expected_output"],
            expected_output_raw=int(data["expected_output_raw"]),
            memo=data.get("memo", ""),
            router=data.get("router", ""),
            vault_address=data.get("vault_address", ""),
            expiry=int(data.get("expiry", 0)),
            extra_data=dict(data.get("extra_data") or {}),
            timestamp=float(data.get("timestamp", time.time())),
        )

    def require_extra(self, *keys: str) -> list[Any]:
        """Values from extra_data, failing if any is missing or empty."""
        missing = [k for k in keys if not self.extra_data.get(k)]
        if missing:
            raise FundSwapError(f"{self.provider}: quote is missing {', '.join(missing)}")
        return [self.extra_data[k] for k in keys]


@dataclass(frozen=True)
class ExecuteResult:
    """Outcome of submitting a swap."""

    tx_hash: str
    external_id: str = ""  # venue tracking id, empty when the tx hash is enough


@dataclass(frozen=True)
class RoutingHint:
    """Optional filter narrowing which providers are asked for quotes."""

    type: str = ""  # "", "provider" or "category"
    value: str = ""

    TYPES = ("", "provider", "category")

    def __post_init__(self):
        if self.type not in self.TYPES:
            raise ValueError(f"invalid routing hint type {self.type!r}")

    @classmethod
    def for_provider(cls, name: str) -> "RoutingHint":
        return cls("provider", name)

    @classmethod
    def for_category(cls, category: str) -> "RoutingHint":
        return cls("category", category)

    @property
    def is_empty(self) -> bool:
        return not self.type

    def matches(self, provider: "SwapProvider") -> bool:
        if self.type == "provider":
            return provider.name == self.value
        if self.type == "category":
            return provider.category == self.value
        return provider.routable_by_default

    def __str__(self) -> str:
        return f"{self.type}:{self.value}" if self.type else "(none)"


class SwapProvider(ABC):
    """Abstract base class for swap venues."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name, the dispatch key for execution and status checks."""
        pass

    @property
    @abstractmethod
    def category(self) -> str:
        """Provider class used by category routing hints."""
        pass

    @property
    def routable_by_default(self) -> bool:
        """Whether the provider is asked for quotes when no hint is given."""
        return True

    @abstractmethod
    def supports_asset(self, asset: Asset) -> bool:
        """Cheap static check, no network calls."""
        pass

    @abstractmethod
    async def get_quotes(
        self,
        to_asset: Asset,
        usd_amount: Decimal,
        destination: str,
        sender: str,
    ) -> list[Quote]:
        """
        Get quotes for swapping usd_amount of USDC into to_asset.

        Args:
            to_asset: Target asset
            usd_amount: USDC amount to spend
            destination: Address receiving the target asset
            sender: Address holding the USDC

        Returns:
            One quote per source chain with enough USDC

        Raises:
            FundSwapError: If no source chain could be quoted
        """
        pass

    @abstractmethod
    async def execute(self, quote: Quote, private_key: PrivateKey) -> ExecuteResult:
        """
        Execute a quote. Not idempotent: calling twice starts two swaps.

        Args:
            quote: Quote previously returned by get_quotes
            private_key: Key of the quote's sender

        Returns:
            Transaction hash and venue tracking id
        """
        pass

    @abstractmethod
    async def check_status(self, tx_hash: str, external_id: str = "") -> SwapStatus:
        """Current status of an executed swap."""
        pass
