"""
Signer Interface and Configuration Types

A signer is any object exposing ``kind``, ``curve``, ``address()`` and
``sign_hash()``; callers depend on that capability only. The three
implementations (local key, GCP KMS secp256k1, GCP KMS P-256) share no base
class.

Configuration is a discriminated union on ``type``:

    {"type": "local", "private_key": "0x..."}
    {"type": "gcp-kms-secp256k1", "project_id": ..., "key_ring_id": ..., "key_id": ...}
    {"type": "gcp-kms-p256", ..., "smart_account_address": "0x..."}
"""

from dataclasses import dataclass
from typing import Annotated, Literal, Optional, Protocol, Union, runtime_checkable

from eth_utils import is_address, to_checksum_address
from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from .codec import Curve


SignerKind = Literal["local", "gcp-kms-secp256k1", "gcp-kms-p256"]

SIGNER_KINDS = ("local", "gcp-kms-secp256k1", "gcp-kms-p256")


@dataclass(frozen=True)
class HashSignature:
    """
    Signature over a 32-byte hash.

    Attributes:
        curve: Curve the signature was produced on.
        r: 32-byte big-endian ``r``.
        s: 32-byte big-endian low-S ``s``.
        v: Recovery value 27/28; only set for secp256k1.
    """
    curve: Curve
    r: bytes
    s: bytes
    v: Optional[int] = None

    @property
    def y_parity(self) -> int:
        if self.v is None:
            raise ValueError(f"{self.curve.value} signature has no recovery value")
        return self.v - 27

    def to_bytes(self) -> bytes:
        """``r || s || v`` (65 bytes) for secp256k1, ``r || s`` (64 bytes) otherwise."""
        if self.v is None:
            return self.r + self.s
        return self.r + self.s + bytes([self.v])

    def to_hex(self) -> str:
        return "0x" + self.to_bytes().hex()


@runtime_checkable
class Signer(Protocol):
    """
    Capability interface for producing an address and hash signatures.

    Both methods may perform network calls and may raise ``SignerError``.
    """

    kind: SignerKind
    curve: Curve

    async def address(self) -> str:
        """Checksummed account address of this signer."""
        ...

    async def sign_hash(self, message_hash: bytes) -> HashSignature:
        """Sign a 32-byte hash and return a canonical (low-S) signature."""
        ...


# -----------------------------
# Configuration
# -----------------------------

class LocalSignerConfig(BaseModel):
    """In-process private key. The key is never logged or serialized."""

    model_config = ConfigDict(frozen=True)

    type: Literal["local"] = "local"
    private_key: SecretStr = Field(..., description="32-byte hex private key")

    @field_validator("private_key")
    @classmethod
    def _check_private_key(cls, value: SecretStr) -> SecretStr:
        raw = value.get_secret_value()
        raw = raw[2:] if raw.startswith(("0x", "0X")) else raw
        if len(raw) != 64:
            raise ValueError("private key must be 32 bytes of hex")
        try:
            bytes.fromhex(raw)
        except ValueError:
            raise ValueError("private key is not valid hex") from None
        return value


class _GcpKmsKeyConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    project_id: str = Field(..., min_length=1)
    location_id: str = Field("global", min_length=1)
    key_ring_id: str = Field(..., min_length=1)
    key_id: str = Field(..., min_length=1)
    key_version: str = Field("1", min_length=1)


class GcpKmsSecp256k1Config(_GcpKmsKeyConfig):
    """GCP KMS key with algorithm ``EC_SIGN_SECP256K1_SHA256``."""

    type: Literal["gcp-kms-secp256k1"] = "gcp-kms-secp256k1"


class GcpKmsP256Config(_GcpKmsKeyConfig):
    """
    GCP KMS key with algorithm ``EC_SIGN_P256_SHA256``.

    ``smart_account_address`` is the on-chain account that verifies this
    key's signatures; without it the signer reports a display-only address.
    """

    type: Literal["gcp-kms-p256"] = "gcp-kms-p256"
    smart_account_address: Optional[str] = None

    @field_validator("smart_account_address")
    @classmethod
    def _check_smart_account(cls, value: Optional[str]) -> Optional[str]:
        if value is None or value == "":
            return None
        if not is_address(value):
            raise ValueError(f"invalid smart account address: {value!r}")
        return to_checksum_address(value)


SignerConfig = Annotated[
    Union[LocalSignerConfig, GcpKmsSecp256k1Config, GcpKmsP256Config],
    Field(discriminator="type"),
]
