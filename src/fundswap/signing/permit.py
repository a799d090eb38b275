"""EIP-2612 permits and CoW Protocol pre-hook app data.

A permit lets the CoW settlement contract pull USDC without a separate
approve transaction. The signed permit call is attached to the order as a
"pre" hook inside the order's app-data document; the hash of that
document is what the order commits to.

Known sharp edge: if the hook cannot be simulated (bad signature, wrong
domain name or version, stale nonce) the CoW API does not say so. It
answers the quote with an "insufficient allowance" error, as if no permit
were attached. Check the permit domain before anything else when that
error shows up with a hook present.
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Optional, Union

from eth_account import Account
from eth_utils import keccak, to_checksum_address, to_hex

from fundswap.evm import abi
from fundswap.evm.client import EvmClient
from fundswap.signing.typed_data import TypedDataDomain, TypedSignature, sign_typed_data

logger = logging.getLogger(__name__)

PERMIT_TYPES = {
    "Permit": [
        {"name": "owner", "type": "address"},
        {"name": "spender", "type": "address"},
        {"name": "value", "type": "uint256"},
        {"name": "nonce", "type": "uint256"},
        {"name": "deadline", "type": "uint256"},
    ]
}

PERMIT_DEADLINE_SECONDS = 1800
PERMIT_HOOK_GAS_LIMIT = "80000"

APP_DATA_VERSION = "1.3.0"

# EIP-712 domain (name, version) of native USDC on each source chain
USDC_PERMIT_DOMAINS: dict[str, tuple[str, str]] = {
    "avalanche": ("USD Coin", "2"),
    "base": ("USD Coin", "2"),
}


@dataclass(frozen=True)
class Permit:
    """A signed EIP-2612 approval."""

    token: str
    owner: str
    spender: str
    value: int
    nonce: int
    deadline: int
    domain: TypedDataDomain
    signature: TypedSignature

    @property
    def calldata(self) -> bytes:
        """permit(owner, spender, value, deadline, v, r, s) call for the token contract."""
        return abi.permit(
            self.owner,
            self.spender,
            self.value,
            self.deadline,
            self.signature.v,
            self.signature.r,
            self.signature.s,
        )

    def as_hook(self, gas_limit: str = PERMIT_HOOK_GAS_LIMIT) -> dict:
        """CoW hook entry that executes this permit before settlement."""
        return {
            "target": to_checksum_address(self.token),
            "callData": to_hex(self.calldata),
            "gasLimit": gas_limit,
        }


@dataclass(frozen=True)
class AppData:
    """App-data document and its keccak256 hash."""

    document: str
    hash: str

    @property
    def has_hooks(self) -> bool:
        return '"hooks"' in self.document


def build_app_data(pre_hooks: Optional[list[dict]] = None) -> AppData:
    """Serialize an app-data document, with optional pre hooks, compactly."""
    metadata: dict = {}
    if pre_hooks:
        metadata["hooks"] = {"pre": pre_hooks}
    document = json.dumps({"version": APP_DATA_VERSION, "metadata": metadata}, separators=(",", ":"))
    return AppData(document=document, hash=to_hex(keccak(text=document)))


DEFAULT_APP_DATA = build_app_data()


def sign_permit(
    private_key: Union[str, bytes],
    token: str,
    spender: str,
    value: int,
    nonce: int,
    deadline: int,
    chain_id: int,
    domain_name: str,
    domain_version: str,
) -> Permit:
    """Sign a permit for a known nonce."""
    owner = Account.from_key(private_key).address
    domain = TypedDataDomain(
        name=domain_name,
        version=domain_version,
        chain_id=chain_id,
        verifying_contract=to_checksum_address(token),
    )
    message = {
        "owner": owner,
        "spender": to_checksum_address(spender),
        "value": value,
        "nonce": nonce,
        "deadline": deadline,
    }
    signature = sign_typed_data(private_key, domain, "Permit", PERMIT_TYPES, message)
    return Permit(
        token=to_checksum_address(token),
        owner=owner,
        spender=to_checksum_address(spender),
        value=value,
        nonce=nonce,
        deadline=deadline,
        domain=domain,
        signature=signature,
    )


async def build_usdc_permit(
    client: EvmClient,
    private_key: Union[str, bytes],
    spender: str,
    value: int,
    now: Optional[int] = None,
) -> Permit:
    """Read the owner's nonce on-chain and sign a USDC permit for spender.

    Args:
        client: EVM client of the chain holding the USDC
        private_key: Owner key
        spender: Address allowed to pull the funds
        value: Allowance in USDC base units
        now: Unix time override for tests

    Returns:
        Permit valid for PERMIT_DEADLINE_SECONDS
    """
    chain = client.chain
    owner = Account.from_key(private_key).address
    nonce = await client.permit_nonce(chain.usdc_address, owner)
    deadline = (now if now is not None else int(time.time())) + PERMIT_DEADLINE_SECONDS
    name, version = USDC_PERMIT_DOMAINS.get(chain.name, ("USD Coin", "2"))

    logger.debug(
        f"Signing USDC permit on {chain.name}: owner={owner} spender={spender} "
        f"value={value} nonce={nonce} domain=({name}, {version})"
    )
    return sign_permit(
        private_key,
        token=chain.usdc_address,
        spender=spender,
        value=value,
        nonce=nonce,
        deadline=deadline,
        chain_id=chain.chain_id,
        domain_name=name,
        domain_version=version,
    )
