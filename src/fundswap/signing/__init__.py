"""Typed-data signing and gasless permit construction."""

from fundswap.signing.permit import (
    DEFAULT_APP_DATA,
    AppData,
    Permit,
    build_app_data,
    build_usdc_permit,
    sign_permit,
)
from fundswap.signing.typed_data import (
    TypedDataDomain,
    TypedSignature,
    recover_signer,
    sign_typed_data,
    typed_data_digest,
)

__all__ = [
    # Typed data
    "TypedDataDomain",
    "TypedSignature",
    "recover_signer",
    "sign_typed_data",
    "typed_data_digest",
    # Permits
    "AppData",
    "DEFAULT_APP_DATA",
    "Permit",
    "build_app_data",
    "build_usdc_permit",
    "sign_permit",
]
