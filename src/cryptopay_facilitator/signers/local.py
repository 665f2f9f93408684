from eth_account import Account
from eth_keys import keys

from .codec import Curve
from .types import HashSignature, LocalSignerConfig
from ..engine.exceptions import SignerError


class LocalSigner:
    """
    Signs with a private key held in process memory.

    Signing is a deterministic local computation (RFC 6979); the address is
    derived once at construction.

    Example:
        signer = LocalSigner(LocalSignerConfig(private_key="0x..."))
        sig = await signer.sign_hash(digest)
    """

    kind = "local"
    curve = Curve.SECP256K1

    def __init__(self, config: LocalSignerConfig):
        raw = config.private_key.get_secret_value()
        self._key = keys.PrivateKey(bytes.fromhex(raw[2:] if raw.startswith(("0x", "0X")) else raw))
        self._address = Account.from_key(self._key.to_bytes()).address

    def __repr__(self) -> str:
        return f"LocalSigner(address={self._address})"

    async def address(self) -> str:
        return self._address

    async def sign_hash(self, message_hash: bytes) -> HashSignature:
        if len(message_hash) != 32:
            raise SignerError(f"Expected a 32-byte hash, got {len(message_hash)} bytes")
        signature = self._key.sign_msg_hash(message_hash)
        return HashSignature(
            curve=self.curve,
            r=signature.r.to_bytes(32, "big"),
            s=signature.s.to_bytes(32, "big"),
            v=signature.v + 27,
        )
