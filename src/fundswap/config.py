"""Application configuration using pydantic-settings.

Every venue and catalog endpoint is configurable so tests and staging
deployments can point the core at fakes.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=False, description="Enable debug logging")
    log_level: str = Field(default="INFO", description="Root log level")

    # ======================
    # Source Chain RPC Endpoints
    # ======================
    avax_rpc_url: str = Field(
        default="https://api.avax.network/ext/bc/C/rpc", description="Avalanche C-Chain RPC URL"
    )
    base_rpc_url: str = Field(
        default="https://mainnet.base.org", description="Base RPC URL"
    )
    receipt_timeout: int = Field(
        default=120, description="Seconds to wait for a transaction receipt"
    )
    rpc_timeout: float = Field(default=20.0, description="JSON-RPC request timeout in seconds")

    # ======================
    # Sender Wallet
    # ======================
    sender_private_key: Optional[str] = Field(
        default=None, description="Hex private key of the USDC holder, used to execute swaps and refills"
    )

    # ======================
    # Asset Catalogs
    # ======================
    coingecko_api_url: str = Field(
        default="https://api.coingecko.com/api/v3", description="CoinGecko API base URL"
    )
    coingecko_api_key: str = Field(default="", description="CoinGecko demo API key")
    thornode_url: str = Field(
        default="https://thornode.ninerealms.com", description="THORNode API URL"
    )
    nearintents_api_url: str = Field(
        default="https://1click.chaindefuser.com", description="NEAR Intents 1Click API URL"
    )

    # ======================
    # Venues
    # ======================
    thorchain_enabled: bool = Field(default=True, description="Register the THORChain router provider")
    simpleswap_api_url: str = Field(
        default="https://api.simpleswap.io", description="SimpleSwap API URL"
    )
    simpleswap_api_key: str = Field(default="", description="SimpleSwap API key")
    houdini_api_url: str = Field(
        default="https://api-partner.houdiniswap.com", description="Houdini partner API URL"
    )
    houdini_api_key: str = Field(default="", description="Houdini partner API key")
    houdini_api_secret: str = Field(default="", description="Houdini partner API secret")
    houdini_client_ip: str = Field(
        default="0.0.0.0", description="Client IP reported to Houdini on exchange creation"
    )
    houdini_user_agent: str = Field(default="fundswap/0.1", description="User agent reported to Houdini")
    nearintents_api_key: str = Field(default="", description="NEAR Intents JWT")
    cowswap_enabled: bool = Field(default=True, description="Register the CoW Protocol provider")
    cowswap_api_url: str = Field(default="https://api.cow.fi", description="CoW Protocol API URL")

    # ======================
    # HTTP / Caching
    # ======================
    http_timeout: float = Field(default=30.0, description="HTTP request timeout in seconds")
    symbol_cache_ttl: int = Field(
        default=3600, description="TTL for symbol search and contract platform lookups"
    )
    catalog_cache_ttl: int = Field(
        default=600, description="TTL for pool and token list lookups"
    )

    # ======================
    # Gas Refill
    # ======================
    gas_refill_min_native_wei: int = Field(
        default=2 * 10**15, description="Refill native gas below this balance (wei)"
    )
    gas_refill_usdc_amount: int = Field(
        default=2_000_000, description="USDC sold for gas per refill (6 decimals)"
    )

    @property
    def houdini_configured(self) -> bool:
        """Check if Houdini partner credentials are set."""
        return bool(self.houdini_api_key and self.houdini_api_secret)

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        def redact(value: str) -> str:
            return "***" if value else "(not set)"

        return {
            "environment": self.environment,
            "debug": self.debug,
            "rpc": {"avalanche": self.avax_rpc_url, "base": self.base_rpc_url},
            "coingecko": {"url": self.coingecko_api_url, "api_key": redact(self.coingecko_api_key)},
            "thorchain": {"url": self.thornode_url, "enabled": self.thorchain_enabled},
            "simpleswap": {"api_key": redact(self.simpleswap_api_key)},
            "houdini": {
                "api_key": redact(self.houdini_api_key),
                "api_secret": redact(self.houdini_api_secret),
            },
            "nearintents": {"url": self.nearintents_api_url, "api_key": redact(self.nearintents_api_key)},
            "cowswap": {"url": self.cowswap_api_url, "enabled": self.cowswap_enabled},
            "sender_private_key": redact(self.sender_private_key or ""),
            "gas_refill": {
                "min_native_wei": self.gas_refill_min_native_wei,
                "usdc_amount": self.gas_refill_usdc_amount,
            },
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
