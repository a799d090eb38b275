"""Tests for EIP-712 signing, permits and app data."""

import json

import pytest
from eth_abi import decode
from eth_account import Account
from eth_account.messages import encode_typed_data
from eth_utils import keccak, to_checksum_address

from fundswap.chains import AVALANCHE, BASE
from fundswap.signing.permit import (
    APP_DATA_VERSION,
    DEFAULT_APP_DATA,
    PERMIT_DEADLINE_SECONDS,
    PERMIT_TYPES,
    build_app_data,
    build_usdc_permit,
    sign_permit,
)
from fundswap.signing.typed_data import (
    EIP712_DOMAIN_FIELDS,
    TypedDataDomain,
    encode_type,
    hash_struct,
    recover_signer,
    sign_typed_data,
    typed_data_digest,
)

SPENDER = "0xC92E8bdf79f0507f65a392b0ab4667716BFE0110"

MAIL_TYPES = {
    "Person": [{"name": "name", "type": "string"}, {"name": "wallet", "type": "address"}],
    "Mail": [
        {"name": "from", "type": "Person"},
        {"name": "to", "type": "Person"},
        {"name": "contents", "type": "string"},
    ],
}

MAIL = {
    "from": {"name": "Cow", "wallet": "0xCD2a3d9F938E13CD947Ec05AbC7FE734Df8DD826"},
    "to": {"name": "Bob", "wallet": "0xbBbBBBBbbBBBbbbBbbBbbbbBBbBbbbbBbBbbBBbB"},
    "contents": "Hello, Bob!",
}

MAIL_DOMAIN = TypedDataDomain(
    name="Ether Mail",
    version="1",
    chain_id=1,
    verifying_contract="0xCcCCccccCCCCcCCCCCCcCcCccCcCCCcCcccccccC",
)


def full_message(domain: TypedDataDomain, primary_type: str, types: dict, message: dict) -> dict:
    return {
        "types": {"EIP712Domain": EIP712_DOMAIN_FIELDS, **types},
        "primaryType": primary_type,
        "domain": domain.as_message(),
        "message": message,
    }


class TestTypedData:
    """Tests for EIP-712 hashing and signing."""

    def test_encode_type_orders_dependencies(self):
        """Test referenced structs follow the primary type alphabetically."""
        assert encode_type("Mail", MAIL_TYPES) == (
            "Mail(Person from,Person to,string contents)Person(string name,address wallet)"
        )

    def test_reference_mail_hashes(self):
        """Test the canonical EIP-712 example hashes."""
        assert MAIL_DOMAIN.separator().hex() == "f2cee375fa42b42143804025fc449deafd50cc031ca257e0b194a650a912090f"
        assert hash_struct("Mail", MAIL_TYPES, MAIL).hex() == (
            "c52c0ee5d84264471806290a3f2c4cecfc5490626bf912d01f240d7a274b371e"
        )

    def test_matches_eth_account_encoding(self):
        """Test domain and struct hashes agree with eth-account."""
        signable = encode_typed_data(full_message=full_message(MAIL_DOMAIN, "Mail", MAIL_TYPES, MAIL))

        assert MAIL_DOMAIN.separator() == signable.header
        assert hash_struct("Mail", MAIL_TYPES, MAIL) == signable.body

    def test_signature_matches_eth_account(self, private_key):
        """Test signatures are byte-identical to eth-account's."""
        signable = encode_typed_data(full_message=full_message(MAIL_DOMAIN, "Mail", MAIL_TYPES, MAIL))
        expected = Account.sign_message(signable, private_key)

        signature = sign_typed_data(private_key, MAIL_DOMAIN, "Mail", MAIL_TYPES, MAIL)

        assert signature.v in (27, 28)
        assert signature.signature == bytes(expected.signature)

    def test_recover_signer(self, private_key, sender):
        """Test the signer address is recovered from the signature."""
        signature = sign_typed_data(private_key, MAIL_DOMAIN, "Mail", MAIL_TYPES, MAIL)

        assert recover_signer(signature, MAIL_DOMAIN, "Mail", MAIL_TYPES, MAIL) == sender

    def test_digest_depends_on_domain(self):
        """Test the same message under another chain id hashes differently."""
        other = TypedDataDomain("Ether Mail", "1", 2, MAIL_DOMAIN.verifying_contract)

        assert typed_data_digest(MAIL_DOMAIN, "Mail", MAIL_TYPES, MAIL) != typed_data_digest(
            other, "Mail", MAIL_TYPES, MAIL
        )

    def test_missing_field(self):
        """Test a message missing a declared field is rejected."""
        with pytest.raises(ValueError, match="contents"):
            hash_struct("Mail", MAIL_TYPES, {"from": MAIL["from"], "to": MAIL["to"]})


class TestPermit:
    """Tests for EIP-2612 permits."""

    def test_permit_matches_eth_account(self, private_key, sender):
        """Test the permit digest agrees with eth-account for the USDC domain."""
        permit = sign_permit(
            private_key,
            token=BASE.usdc_address,
            spender=SPENDER,
            value=5_000_000,
            nonce=3,
            deadline=1_900_000_000,
            chain_id=BASE.chain_id,
            domain_name="USD Coin",
            domain_version="2",
        )
        message = {"owner": sender, "spender": SPENDER, "value": 5_000_000, "nonce": 3, "deadline": 1_900_000_000}
        signable = encode_typed_data(full_message=full_message(permit.domain, "Permit", PERMIT_TYPES, message))
        expected = Account.sign_message(signable, private_key)

        assert permit.owner == sender
        assert permit.signature.signature == bytes(expected.signature)

    def test_calldata(self, private_key, sender):
        """Test the permit call encodes every argument after the selector."""
        permit = sign_permit(
            private_key, BASE.usdc_address, SPENDER, 5_000_000, 0, 1_900_000_000, BASE.chain_id, "USD Coin", "2"
        )

        data = permit.calldata
        assert data[:4] == keccak(text="permit(address,address,uint256,uint256,uint8,bytes32,bytes32)")[:4]
        owner, spender, value, deadline, v, r, s = decode(
            ["address", "address", "uint256", "uint256", "uint8", "bytes32", "bytes32"], data[4:]
        )
        assert to_checksum_address(owner) == sender
        assert to_checksum_address(spender) == to_checksum_address(SPENDER)
        assert value == 5_000_000
        assert deadline == 1_900_000_000
        assert (v, r, s) == (permit.signature.v, permit.signature.r, permit.signature.s)

    @pytest.mark.asyncio
    async def test_build_usdc_permit_reads_nonce(self, evm_client_factory, private_key, sender):
        """Test the on-chain nonce and the chain's USDC domain are used."""
        client = evm_client_factory(AVALANCHE)
        client.permit_nonce.return_value = 7

        permit = await build_usdc_permit(client, private_key, SPENDER, 1_000_000, now=1_800_000_000)

        client.permit_nonce.assert_awaited_once_with(AVALANCHE.usdc_address, sender)
        assert permit.nonce == 7
        assert permit.deadline == 1_800_000_000 + PERMIT_DEADLINE_SECONDS
        assert permit.domain.name == "USD Coin"
        assert permit.domain.version == "2"
        assert permit.domain.chain_id == AVALANCHE.chain_id
        assert permit.domain.verifying_contract == AVALANCHE.usdc_address


class TestAppData:
    """Tests for CoW app-data documents."""

    def test_default_app_data_hash(self):
        """Test the hook-less document and its well-known hash."""
        assert DEFAULT_APP_DATA.document == '{"version":"1.3.0","metadata":{}}'
        assert DEFAULT_APP_DATA.hash == "0xa872cd1c41362821123e195e2dc6a3f19502a451e1fb2a1f861131526e98fdc7"
        assert not DEFAULT_APP_DATA.has_hooks

    def test_pre_hooks(self):
        """Test hooks are placed under metadata.hooks.pre."""
        hook = {"target": BASE.usdc_address, "callData": "0xd505accf", "gasLimit": "80000"}

        app_data = build_app_data([hook])

        assert app_data.has_hooks
        assert json.loads(app_data.document) == {"version": APP_DATA_VERSION, "metadata": {"hooks": {"pre": [hook]}}}
        assert " " not in app_data.document
        assert app_data.hash == "0x" + keccak(text=app_data.document).hex()
