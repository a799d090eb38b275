"""Pytest configuration and fixtures."""

import json
import os
from typing import Callable, Optional
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from eth_account import Account

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "true"
os.environ["SIMPLESWAP_API_KEY"] = ""
os.environ["HOUDINI_API_KEY"] = ""
os.environ["HOUDINI_API_SECRET"] = ""
os.environ["NEARINTENTS_API_KEY"] = ""

from fundswap.chains import AVALANCHE, BASE, SourceChain

# Well-known throwaway key from the eth-account documentation
TEST_PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"

DESTINATION = "bc1qxy2kgdygjrsqtzq2n0yrf2493p83kkfjhx0wlh"


def make_evm_client(chain: SourceChain, usdc_balance: int = 0, native_balance: int = 0) -> MagicMock:
    """EvmClient stand-in with async reads and writes."""
    client = MagicMock()
    client.chain = chain
    client.usdc_balance = AsyncMock(return_value=usdc_balance)
    client.native_balance = AsyncMock(return_value=native_balance)
    client.balances = AsyncMock(
        side_effect=lambda addresses, token=None: {a: (native_balance, usdc_balance) for a in addresses}
    )
    client.allowance = AsyncMock(return_value=0)
    client.permit_nonce = AsyncMock(return_value=0)
    client.token_decimals = AsyncMock(return_value=18)
    client.approve = AsyncMock(return_value="0x" + "aa" * 32)
    client.transfer = AsyncMock(return_value="0x" + "bb" * 32)
    client.send_transaction = AsyncMock(return_value="0x" + "cc" * 32)
    return client


class MockApi:
    """Routes httpx requests by (method, path) to canned responses and records them."""

    def __init__(self, routes: Optional[dict] = None):
        self.routes = dict(routes or {})
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"error": f"no route for {request.method} {request.url.path}"})
        if callable(route):
            return route(request)
        status, body = route if isinstance(route, tuple) else (200, route)
        return httpx.Response(status, json=body)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    @staticmethod
    def body(request: httpx.Request) -> dict:
        return json.loads(request.content)


@pytest.fixture
def private_key() -> str:
    return TEST_PRIVATE_KEY


@pytest.fixture
def sender() -> str:
    return Account.from_key(TEST_PRIVATE_KEY).address


@pytest.fixture
def destination() -> str:
    return DESTINATION


@pytest.fixture
def evm_client_factory() -> Callable[..., MagicMock]:
    return make_evm_client


@pytest.fixture
def funded_clients() -> dict[str, MagicMock]:
    """Both source chains holding 1,000 USDC."""
    return {
        "avalanche": make_evm_client(AVALANCHE, usdc_balance=1_000_000_000),
        "base": make_evm_client(BASE, usdc_balance=1_000_000_000),
    }


@pytest.fixture
def mock_api() -> Callable[[dict], MockApi]:
    return MockApi
