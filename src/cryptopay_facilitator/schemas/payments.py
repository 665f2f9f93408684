"""
Payment Payload and Result Models

Wire-level models for the signed payloads accepted by ``verify`` / ``settle``
and the result objects returned to callers. Field aliases follow the
camelCase names used on the wire (``validAfter``, ``paymentId``,
``transactionHash`` ...); Python code uses the snake_case names.

Inbound payloads are frozen: once parsed they are only validated or
rejected, never mutated.
"""

from typing import Any, Dict, Literal, Optional

from pydantic import ConfigDict, Field, field_validator

from .bases import CanonicalModel, SettlementStatus


def _strip_hex(value: str) -> str:
    return value[2:] if value.startswith(("0x", "0X")) else value


class PaymentRequirement(CanonicalModel):
    """
    What must be paid, as issued by the resource server.

    Attributes:
        scheme: Payment scheme identifier.
        network: Network identifier (e.g. "base-sepolia").
        token: Token symbol (e.g. "USDC").
        amount: Decimal string in the token's smallest unit.
        recipient: Address that must receive the funds.
        payment_id: Identifier generated by the resource server for tracking.
        expires_at: Unix timestamp (seconds) after which the requirement is void.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    scheme: Literal["eip3009", "exact"] = Field(..., description="Payment scheme")
    network: str = Field(..., description="Network identifier")
    token: str = Field(..., description="Token symbol")
    amount: str = Field(..., description="Amount in smallest token unit")
    recipient: str = Field(..., description="Recipient address")
    payment_id: str = Field(..., alias="paymentId", description="Tracking identifier")
    expires_at: int = Field(..., alias="expiresAt", description="Unix expiry timestamp")
    resource: Optional[str] = Field(None, description="Resource being accessed")
    metadata: Optional[Dict[str, Any]] = Field(None, description="Additional metadata")

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_is_integer_string(cls, value):
        value = str(value)
        if not value.isdigit():
            raise ValueError("amount must be a non-negative integer string")
        return value


class TransferAuthorization(CanonicalModel):
    """
    Signed ERC-3009 ``TransferWithAuthorization`` instruction.

    ``from`` is a reserved word, so the payer is stored as ``from_`` and
    serialized back as ``from``.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    from_: str = Field(..., alias="from", description="Payer address")
    to: str = Field(..., description="Payee address")
    value: int = Field(..., ge=0, description="Amount in smallest token unit")
    valid_after: int = Field(..., ge=0, alias="validAfter")
    valid_before: int = Field(..., ge=0, alias="validBefore")
    nonce: str = Field(..., description="bytes32 hex nonce")
    v: int = Field(..., description="Recovery id (27/28 or 0/1)")
    r: str = Field(..., description="32-byte hex")
    s: str = Field(..., description="32-byte hex")

    @field_validator("nonce", "r", "s")
    @classmethod
    def _bytes32_hex(cls, value: str) -> str:
        raw = _strip_hex(value)
        if len(raw) > 64:
            raise ValueError("expected at most 32 bytes of hex")
        try:
            bytes.fromhex(raw.zfill(64))
        except ValueError as e:
            raise ValueError(f"invalid hex: {value!r}") from e
        return "0x" + raw.zfill(64).lower()

    def nonce_bytes(self) -> bytes:
        return bytes.fromhex(_strip_hex(self.nonce))

    def r_bytes(self) -> bytes:
        return bytes.fromhex(_strip_hex(self.r))

    def s_bytes(self) -> bytes:
        return bytes.fromhex(_strip_hex(self.s))


class P256Signature(CanonicalModel):
    """Raw P-256 signature pair, 32-byte hex each."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    r: str
    s: str


class PasskeyAttestation(CanonicalModel):
    """
    P-256 attestation over the authorization's EIP-712 digest.

    Token contracts cannot verify this curve, so the attestation is checked
    off-chain by the facilitator before an attested settlement.
    """

    model_config = ConfigDict(frozen=True)

    r: int
    s: int
    x: int
    y: int


class SignedPayload(CanonicalModel):
    """
    Unit crossing the boundary between client, resource server and facilitator.

    Carries the original requirement, the signed authorization and the
    payer. A passkey payment additionally carries a P-256 signature
    (``p256Signature``) and the signer's uncompressed public key
    (``publicKey``: ``0x04 || x || y`` or ``x || y``).
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    requirement: PaymentRequirement
    authorization: TransferAuthorization
    payer: str = Field(..., description="Payer address")
    created_at: int = Field(..., alias="createdAt", description="Creation timestamp")
    is_passkey_payment: bool = Field(False, alias="isPasskeyPayment")
    p256_signature: Optional[P256Signature] = Field(None, alias="p256Signature")
    public_key: Optional[str] = Field(None, alias="publicKey")

    @property
    def attestation(self) -> Optional[PasskeyAttestation]:
        """
        Decoded P-256 attestation, or None for an ordinary payload.

        Raises:
            ValueError: If the payload is marked as a passkey payment but the
                signature or public key is missing or malformed.
        """
        if not self.is_passkey_payment:
            return None
        if self.p256_signature is None or not self.public_key:
            raise ValueError("passkey payment is missing p256Signature or publicKey")
        key = bytes.fromhex(_strip_hex(self.public_key))
        if len(key) == 65 and key[0] == 0x04:
            key = key[1:]
        if len(key) != 64:
            raise ValueError("publicKey must be a 64-byte (or 0x04-prefixed) P-256 point")
        return PasskeyAttestation(
            r=int(_strip_hex(self.p256_signature.r), 16),
            s=int(_strip_hex(self.p256_signature.s), 16),
            x=int.from_bytes(key[:32], "big"),
            y=int.from_bytes(key[32:], "big"),
        )


class VerificationResult(CanonicalModel):
    """``{valid, error?}``; verification failures are values, not exceptions."""

    valid: bool
    error: Optional[str] = None

    @classmethod
    def ok(cls) -> "VerificationResult":
        return cls(valid=True)

    @classmethod
    def fail(cls, error: str) -> "VerificationResult":
        return cls(valid=False, error=error)


class SettlementResult(CanonicalModel):
    """
    ``{success, transactionHash?, error?, status}``.

    ``status`` is ``unknown`` when the transaction was submitted but not
    confirmed within the timeout; ``success`` is False in that case, yet the
    transfer may still land.
    """

    success: bool
    transaction_hash: Optional[str] = Field(None, alias="transactionHash")
    error: Optional[str] = None
    status: SettlementStatus = SettlementStatus.FAILED

    @classmethod
    def confirmed(cls, tx_hash: str) -> "SettlementResult":
        return cls(success=True, transaction_hash=tx_hash, status=SettlementStatus.SUCCESS)

    @classmethod
    def failed(cls, error: str, tx_hash: Optional[str] = None) -> "SettlementResult":
        return cls(success=False, transaction_hash=tx_hash, error=error, status=SettlementStatus.FAILED)

    @classmethod
    def unknown(cls, tx_hash: str, error: str) -> "SettlementResult":
        return cls(success=False, transaction_hash=tx_hash, error=error, status=SettlementStatus.UNKNOWN)


class FacilitatorBalance(CanonicalModel):
    """Native-currency balance of the facilitator account on one network."""

    address: str
    balance: int = Field(..., ge=0, description="Balance in wei")
    sufficient: bool
