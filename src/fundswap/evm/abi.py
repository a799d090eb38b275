"""Calldata for the handful of contracts the venues touch.

Calls are encoded through web3 contract objects built from the ABI
fragments below; return data is decoded with eth-abi.
"""

from typing import Any, Sequence

from eth_abi import decode
from eth_utils import to_bytes, to_checksum_address
from web3 import Web3

MULTICALL3_ADDRESS = "0xcA11bde05977b3631167028862bE2a173976CA11"
NATIVE_TOKEN_PLACEHOLDER = "0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE"
MAX_UINT256 = 2**256 - 1


def _function(name: str, inputs: list[tuple[str, str]], outputs: Sequence[str] = (), mutable: bool = False) -> dict:
    return {
        "name": name,
        "type": "function",
        "inputs": [{"name": arg, "type": arg_type} for arg, arg_type in inputs],
        "outputs": [{"name": "", "type": out} for out in outputs],
        "stateMutability": "nonpayable" if mutable else "view",
    }


ERC20_ABI = [
    _function("balanceOf", [("owner", "address")], ["uint256"]),
    _function("allowance", [("owner", "address"), ("spender", "address")], ["uint256"]),
    _function("approve", [("spender", "address"), ("amount", "uint256")], ["bool"], mutable=True),
    _function("transfer", [("to", "address"), ("amount", "uint256")], ["bool"], mutable=True),
    _function("decimals", [], ["uint8"]),
    # EIP-2612
    _function("nonces", [("owner", "address")], ["uint256"]),
    _function(
        "permit",
        [
            ("owner", "address"),
            ("spender", "address"),
            ("value", "uint256"),
            ("deadline", "uint256"),
            ("v", "uint8"),
            ("r", "bytes32"),
            ("s", "bytes32"),
        ],
        mutable=True,
    ),
]

THORCHAIN_ROUTER_ABI = [
    _function(
        "depositWithExpiry",
        [
            ("vault", "address"),
            ("asset", "address"),
            ("amount", "uint256"),
            ("memo", "string"),
            ("expiration", "uint256"),
        ],
        mutable=True,
    ),
]

MULTICALL3_ABI = [
    {
        "name": "aggregate3",
        "type": "function",
        "inputs": [
            {
                "name": "calls",
                "type": "tuple[]",
                "components": [
                    {"name": "target", "type": "address"},
                    {"name": "allowFailure", "type": "bool"},
                    {"name": "callData", "type": "bytes"},
                ],
            }
        ],
        "outputs": [
            {
                "name": "returnData",
                "type": "tuple[]",
                "components": [
                    {"name": "success", "type": "bool"},
                    {"name": "returnData", "type": "bytes"},
                ],
            }
        ],
        "stateMutability": "payable",
    },
    _function("getEthBalance", [("addr", "address")], ["uint256"]),
]

# Encoding only, never connected
_w3 = Web3()
ERC20 = _w3.eth.contract(abi=ERC20_ABI)
THORCHAIN_ROUTER = _w3.eth.contract(abi=THORCHAIN_ROUTER_ABI)
MULTICALL3 = _w3.eth.contract(abi=MULTICALL3_ABI)


def encode_call(contract, fn_name: str, args: Sequence[Any] = ()) -> bytes:
    """Encode selector + ABI arguments for one of contract's functions."""
    fragment = next((f for f in contract.abi if f.get("name") == fn_name), None)
    if fragment is None:
        raise ValueError(f"unknown function {fn_name}")
    inputs = fragment["inputs"]
    if len(inputs) != len(args):
        raise ValueError(f"{fn_name} takes {len(inputs)} arguments, got {len(args)}")
    values = [to_checksum_address(v) if i["type"] == "address" else v for i, v in zip(inputs, args)]
    return to_bytes(hexstr=contract.encode_abi(fn_name, args=values))


def decode_uint(data: bytes) -> int:
    """Decode a single uint256 return value."""
    return decode(["uint256"], data)[0]


# ======================
# ERC-20 / ERC-2612
# ======================

def balance_of(owner: str) -> bytes:
    return encode_call(ERC20, "balanceOf", [owner])


def allowance(owner: str, spender: str) -> bytes:
    return encode_call(ERC20, "allowance", [owner, spender])


def approve(spender: str, amount: int) -> bytes:
    return encode_call(ERC20, "approve", [spender, amount])


def transfer(to: str, amount: int) -> bytes:
    return encode_call(ERC20, "transfer", [to, amount])


def decimals() -> bytes:
    return encode_call(ERC20, "decimals")


def nonces(owner: str) -> bytes:
    return encode_call(ERC20, "nonces", [owner])


def permit(owner: str, spender: str, value: int, deadline: int, v: int, r: bytes, s: bytes) -> bytes:
    """Encode an EIP-2612 permit(owner, spender, value, deadline, v, r, s) call."""
    return encode_call(ERC20, "permit", [owner, spender, value, deadline, v, r, s])


# ======================
# THORChain router
# ======================

def deposit_with_expiry(vault: str, asset: str, amount: int, memo: str, expiry: int) -> bytes:
    """Encode router.depositWithExpiry(vault, asset, amount, memo, expiry)."""
    return encode_call(THORCHAIN_ROUTER, "depositWithExpiry", [vault, asset, amount, memo, expiry])


# ======================
# Multicall3
# ======================

def aggregate3(calls: Sequence[tuple[str, bool, bytes]]) -> bytes:
    """Encode Multicall3.aggregate3 for (target, allowFailure, callData) triples."""
    return encode_call(
        MULTICALL3,
        "aggregate3",
        [[(to_checksum_address(target), allow_failure, data) for target, allow_failure, data in calls]],
    )


def decode_aggregate3(data: bytes) -> list[tuple[bool, bytes]]:
    """Decode the (success, returnData)[] result of aggregate3."""
    return [(bool(ok), bytes(ret)) for ok, ret in decode(["(bool,bytes)[]"], data)[0]]


def get_eth_balance(address: str) -> bytes:
    return encode_call(MULTICALL3, "getEthBalance", [address])
