from dataclasses import dataclass
from typing import Any, Optional, Tuple

from eth_utils import keccak, to_checksum_address

from .codec import Curve, decode_der_signature
from .gcp_kms import DEFAULT_KMS_TIMEOUT, KmsKeyHandle
from .types import GcpKmsP256Config, HashSignature


@dataclass(frozen=True)
class UserOpSignature:
    """P-256 signature plus the key coordinates a smart account needs to verify it."""
    signature: str
    public_key_x: str
    public_key_y: str


class GcpKmsP256Signer:
    """
    Signer backed by a Cloud KMS P-256 (secp256r1) key.

    Token contracts verify secp256k1 only, so these signatures are usable by
    a P-256 capable smart account (RIP-7212 precompile) or by an explicitly
    trusted off-chain check. Signatures are ``r || s`` with no recovery value.

    ``address()`` returns the configured smart account. Without one it
    returns ``keccak(x || y)[-20:]``, an identifier for display that no key
    controls on-chain.
    """

    kind = "gcp-kms-p256"
    curve = Curve.P256

    def __init__(
        self,
        config: GcpKmsP256Config,
        client: Optional[Any] = None,
        timeout: float = DEFAULT_KMS_TIMEOUT,
    ):
        self._smart_account_address = config.smart_account_address
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
        return f"GcpKmsP256Signer(key={self._key.name})"

    @property
    def key_name(self) -> str:
        return self._key.name

    @property
    def has_smart_account(self) -> bool:
        return self._smart_account_address is not None

    async def public_key_coordinates(self) -> Tuple[bytes, bytes]:
        public_key = await self._key.public_key()
        return public_key[1:33], public_key[33:65]

    async def raw_public_key(self) -> str:
        """``x || y`` as hex, for smart account registration."""
        x, y = await self.public_key_coordinates()
        return "0x" + (x + y).hex()

    async def address(self) -> str:
        if self._smart_account_address:
            return self._smart_account_address
        x, y = await self.public_key_coordinates()
        return to_checksum_address(keccak(x + y)[-20:])

    async def sign_hash(self, message_hash: bytes) -> HashSignature:
        der = await self._key.sign_digest(message_hash)
        r, s = decode_der_signature(der, self.curve)
        return HashSignature(curve=self.curve, r=r, s=s)

    async def create_user_op_signature(self, message_hash: bytes) -> UserOpSignature:
        signature = await self.sign_hash(message_hash)
        x, y = await self.public_key_coordinates()
        return UserOpSignature(
            signature=signature.to_hex(),
            public_key_x="0x" + x.hex(),
            public_key_y="0x" + y.hex(),
        )
