"""EIP-712 structured data hashing and signing.

One routine signs both CoW Protocol orders and EIP-2612 permits; only the
domain and type descriptors differ. Signatures use the 27/28 recovery-id
convention that both venues expect.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Union

from eth_abi import encode
from eth_keys import keys
from eth_utils import decode_hex, keccak, to_checksum_address

logger = logging.getLogger(__name__)

Types = dict[str, list[dict[str, str]]]

EIP712_DOMAIN_FIELDS = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]

_ARRAY_RE = re.compile(r"^(.*)\[(\d*)\]$")


@dataclass(frozen=True)
class TypedDataDomain:
    """EIP-712 domain with all four standard fields."""

    name: str
    version: str
    chain_id: int
    verifying_contract: str

    def as_message(self) -> dict:
        return {
            "name": self.name,
            "version": self.version,
            "chainId": self.chain_id,
            "verifyingContract": self.verifying_contract,
        }

    def separator(self) -> bytes:
        """Domain separator hash."""
        return hash_struct("EIP712Domain", {"EIP712Domain": EIP712_DOMAIN_FIELDS}, self.as_message())


@dataclass(frozen=True)
class TypedSignature:
    """Recoverable secp256k1 signature with v in {27, 28}."""

    v: int
    r: bytes
    s: bytes

    @property
    def signature(self) -> bytes:
        """65-byte r || s || v encoding."""
        return self.r + self.s + bytes([self.v])

    def hex(self) -> str:
        return "0x" + self.signature.hex()


def _dependencies(primary_type: str, types: Types, found: set[str]) -> set[str]:
    if primary_type in found or primary_type not in types:
        return found
    found.add(primary_type)
    for field in types[primary_type]:
        _dependencies(_base_type(field["type"]), types, found)
    return found


def _base_type(type_name: str) -> str:
    match = _ARRAY_RE.match(type_name)
    return _base_type(match.group(1)) if match else type_name


def encode_type(primary_type: str, types: Types) -> str:
    """Type string: primary type first, referenced struct types sorted by name."""
    deps = _dependencies(primary_type, types, set())
    deps.discard(primary_type)
    ordered = [primary_type] + sorted(deps)
    parts = []
    for name in ordered:
        fields = ",".join(f"{field['type']} {field['name']}" for field in types[name])
        parts.append(f"{name}({fields})")
    return "".join(parts)


def type_hash(primary_type: str, types: Types) -> bytes:
    return keccak(text=encode_type(primary_type, types))


def _to_bytes(value: Union[str, bytes]) -> bytes:
    if isinstance(value, str):
        return decode_hex(value)
    return bytes(value)


def _encode_value(type_name: str, value: Any, types: Types) -> bytes:
    if type_name in types:
        return hash_struct(type_name, types, value)

    match = _ARRAY_RE.match(type_name)
    if match:
        item_type = match.group(1)
        return keccak(b"".join(_encode_value(item_type, item, types) for item in value))

    if type_name == "string":
        return keccak(text=value)
    if type_name == "bytes":
        return keccak(_to_bytes(value))
    if type_name == "address":
        return encode(["address"], [to_checksum_address(value)])
    if type_name == "bool":
        return encode(["bool"], [bool(value)])
    if type_name.startswith(("uint", "int")):
        return encode([type_name], [int(value)])
    if type_name.startswith("bytes"):
        size = int(type_name[5:])
        raw = _to_bytes(value)
        if len(raw) != size:
            raise ValueError(f"{type_name} value has {len(raw)} bytes")
        return encode([type_name], [raw])
    raise ValueError(f"unsupported EIP-712 type {type_name!r}")


def encode_data(primary_type: str, types: Types, message: dict) -> bytes:
    """typeHash followed by each field's 32-byte encoding."""
    parts = [type_hash(primary_type, types)]
    for field in types[primary_type]:
        if field["name"] not in message:
            raise ValueError(f"{primary_type} message is missing field {field['name']!r}")
        parts.append(_encode_value(field["type"], message[field["name"]], types))
    return b"".join(parts)


def hash_struct(primary_type: str, types: Types, message: dict) -> bytes:
    return keccak(encode_data(primary_type, types, message))


def typed_data_digest(domain: TypedDataDomain, primary_type: str, types: Types, message: dict) -> bytes:
    """keccak256("\\x19\\x01" || domainSeparator || hashStruct(message))."""
    return keccak(b"\x19\x01" + domain.separator() + hash_struct(primary_type, types, message))


def sign_typed_data(
    private_key: Union[str, bytes],
    domain: TypedDataDomain,
    primary_type: str,
    types: Types,
    message: dict,
) -> TypedSignature:
    """Sign structured data with a raw private key.

    Args:
        private_key: 32-byte key, raw or hex encoded
        domain: Signing domain
        primary_type: Name of the message struct in types
        types: Struct definitions (EIP712Domain may be omitted)
        message: Field values for primary_type

    Returns:
        Signature with v normalized to 27/28
    """
    digest = typed_data_digest(domain, primary_type, types, message)
    signature = keys.PrivateKey(_to_bytes(private_key)).sign_msg_hash(digest)
    v = signature.v + 27 if signature.v < 27 else signature.v
    return TypedSignature(
        v=v,
        r=signature.r.to_bytes(32, "big"),
        s=signature.s.to_bytes(32, "big"),
    )


def recover_signer(
    signature: TypedSignature,
    domain: TypedDataDomain,
    primary_type: str,
    types: Types,
    message: dict,
) -> str:
    """Checksummed address that produced signature."""
    digest = typed_data_digest(domain, primary_type, types, message)
    sig = keys.Signature(vrs=(signature.v - 27, int.from_bytes(signature.r, "big"), int.from_bytes(signature.s, "big")))
    return sig.recover_public_key_from_msg_hash(digest).to_checksum_address()
