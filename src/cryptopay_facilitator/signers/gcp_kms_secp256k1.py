import logging
from typing import Any, Optional

from eth_keys import keys
from eth_keys.exceptions import BadSignature, ValidationError
from eth_utils import keccak, to_checksum_address

from .codec import Curve, decode_der_signature
from .gcp_kms import DEFAULT_KMS_TIMEOUT, KmsKeyHandle
from .types import GcpKmsSecp256k1Config, HashSignature
from ..engine.exceptions import RecoveryParameterError

logger = logging.getLogger(__name__)


def find_recovery_value(message_hash: bytes, r: bytes, s: bytes, public_key: bytes) -> int:
    """
    Determine ``v`` for an ``(r, s)`` pair by trial recovery.

    Each candidate recovery id is used to recover a public key from
    ``(message_hash, r, s)``; the one matching ``public_key`` wins.

    Args:
        message_hash: The 32-byte hash that was signed.
        r, s: 32-byte signature components (``s`` already low-S).
        public_key: Expected signer key, 64-byte ``x || y`` or 65-byte
            ``0x04 || x || y``.

    Returns:
        int: 27 or 28.

    Raises:
        RecoveryParameterError: If neither candidate matches. The signature
            or the cached key is wrong; no value is guessed.
    """
    expected = public_key[1:] if len(public_key) == 65 else public_key
    r_int = int.from_bytes(r, "big")
    s_int = int.from_bytes(s, "big")

    for recovery_id in (0, 1):
        try:
            candidate = keys.Signature(vrs=(recovery_id, r_int, s_int))
            recovered = candidate.recover_public_key_from_msg_hash(message_hash)
        except (BadSignature, ValidationError):
            continue
        if recovered.to_bytes() == expected:
            return 27 + recovery_id

    raise RecoveryParameterError(
        "Could not determine recovery value: no candidate matches the KMS public key"
    )


class GcpKmsSecp256k1Signer:
    """
    Ethereum-native signer backed by a Cloud KMS secp256k1 key.

    KMS returns DER without a recovery value, so every signature is decoded,
    canonicalized and then completed with ``v`` found by trial recovery
    against the cached public key.
    """

    kind = "gcp-kms-secp256k1"
    curve = Curve.SECP256K1

    def __init__(
        self,
        config: GcpKmsSecp256k1Config,
        client: Optional[Any] = None,
        timeout: float = DEFAULT_KMS_TIMEOUT,
    ):
        self._key = KmsKeyHandle(
            config.project_id,
            config.location_id,
            config.key_ring_id,
            config.key_id,
            config.key_version,
            curve=self.curve,
            client=client,
            timeout=timeout,
        )

    def __repr__(self) -> str:
        return f"GcpKmsSecp256k1Signer(key={self._key.name})"

    @property
    def key_name(self) -> str:
        return self._key.name

    async def address(self) -> str:
        public_key = await self._key.public_key()
        return to_checksum_address(keccak(public_key[1:])[-20:])

    async def sign_hash(self, message_hash: bytes) -> HashSignature:
        der = await self._key.sign_digest(message_hash)
        r, s = decode_der_signature(der, self.curve)
        public_key = await self._key.public_key()
        try:
            v = find_recovery_value(message_hash, r, s, public_key)
        except RecoveryParameterError:
            logger.error("Recovery value mismatch for KMS key %s", self._key.name)
            raise
        return HashSignature(curve=self.curve, r=r, s=s, v=v)

    async def public_key(self) -> bytes:
        """Uncompressed public key ``0x04 || x || y``."""
        return await self._key.public_key()
