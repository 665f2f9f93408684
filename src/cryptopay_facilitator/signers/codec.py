"""
Signature Codec

Converts the DER ``ECDSA-Sig-Value`` emitted by a key-management service
(parsed with ``cryptography``) into two fixed-width 32-byte big-endian
integers and enforces the canonical low-S form for the signing curve.
Malformed input always raises ``SignatureCodecError``; nothing is
truncated or zero-filled silently.

Example:
    r, s = decode_der_signature(der_bytes, Curve.SECP256K1)
    assert len(r) == len(s) == 32
"""

from enum import Enum
from typing import Tuple

from cryptography.hazmat.primitives.asymmetric import utils

from ..engine.exceptions import SignatureCodecError


COMPONENT_SIZE = 32


class Curve(str, Enum):
    """Supported signing curves with their group orders."""

    SECP256K1 = "secp256k1"
    P256 = "p256"

    @property
    def order(self) -> int:
        return _CURVE_ORDERS[self]

    @property
    def half_order(self) -> int:
        return self.order // 2


_CURVE_ORDERS = {
    Curve.SECP256K1: 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141,
    Curve.P256: 0xFFFFFFFF00000000FFFFFFFFFFFFFFFFBCE6FAADA7179E84F3B9CAC2FC632551,
}


def parse_der_signature(der: bytes) -> Tuple[bytes, bytes]:
    """
    Parse a DER ECDSA signature into 32-byte ``(r, s)``.

    No curve checks or low-S normalization are applied; use
    ``decode_der_signature`` for that.

    Args:
        der: DER-encoded signature bytes.

    Returns:
        Tuple[bytes, bytes]: ``r`` and ``s``, each left-padded to 32 bytes.

    Raises:
        SignatureCodecError: If the bytes are not a single DER
            ``ECDSA-Sig-Value`` with non-negative integers of at most 32 bytes.
    """
    try:
        r, s = utils.decode_dss_signature(bytes(der))
    except ValueError as e:
        raise SignatureCodecError(f"Invalid DER signature: {e}") from e
    if r < 0 or s < 0:
        raise SignatureCodecError("Invalid DER signature: negative integer")
    if max(r, s).bit_length() > COMPONENT_SIZE * 8:
        raise SignatureCodecError(f"Invalid DER signature: integer exceeds {COMPONENT_SIZE} bytes")
    return r.to_bytes(COMPONENT_SIZE, "big"), s.to_bytes(COMPONENT_SIZE, "big")


def normalize_s(s: int, curve: Curve) -> int:
    """Return ``order - s`` when ``s`` lies in the upper half of the curve order."""
    if s > curve.half_order:
        return curve.order - s
    return s


def decode_der_signature(der: bytes, curve: Curve) -> Tuple[bytes, bytes]:
    """
    Parse, range-check and canonicalize a DER signature.

    Args:
        der: DER-encoded signature from the signing backend.
        curve: Curve whose order bounds ``r`` / ``s`` and defines low-S.

    Returns:
        Tuple[bytes, bytes]: 32-byte ``r`` and low-S ``s``.

    Raises:
        SignatureCodecError: If the encoding is malformed or ``r`` / ``s``
            is zero or not below the curve order.
    """
    r_bytes, s_bytes = parse_der_signature(der)
    r = int.from_bytes(r_bytes, "big")
    s = int.from_bytes(s_bytes, "big")
    if not 0 < r < curve.order:
        raise SignatureCodecError(f"Invalid signature: r out of range for {curve.value}")
    if not 0 < s < curve.order:
        raise SignatureCodecError(f"Invalid signature: s out of range for {curve.value}")

    s = normalize_s(s, curve)
    return r_bytes, s.to_bytes(COMPONENT_SIZE, "big")
