"""
GCP KMS Key Handle

Shared plumbing for the two KMS-backed signers: resolving the key version
resource name, fetching and caching the public key exactly once, and
requesting raw-digest signatures.

The handle is composed into each signer rather than subclassed.
"""

import asyncio
import logging
from typing import Any, Optional

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from google.api_core import exceptions as gcp_exceptions
from google.cloud import kms

from .codec import Curve
from ..engine.exceptions import SignerError

logger = logging.getLogger(__name__)


DEFAULT_KMS_TIMEOUT: float = 10.0

_CURVE_NAMES = {
    Curve.SECP256K1: "secp256k1",
    Curve.P256: "secp256r1",
}


def parse_public_key_pem(pem: str, curve: Curve) -> bytes:
    """
    Decode a PEM SubjectPublicKeyInfo into an uncompressed SEC1 point.

    Args:
        pem: PEM text as returned by ``GetPublicKey``.
        curve: Expected curve.

    Returns:
        bytes: 65 bytes, ``0x04 || x || y``.

    Raises:
        SignerError: If the PEM cannot be parsed or the key is on another curve.
    """
    try:
        public_key = serialization.load_pem_public_key(pem.encode("ascii"))
    except ValueError as e:
        raise SignerError(f"Invalid public key PEM from KMS: {e}") from e
    if not isinstance(public_key, ec.EllipticCurvePublicKey):
        raise SignerError("KMS public key is not an elliptic-curve key")
    if public_key.curve.name != _CURVE_NAMES[curve]:
        raise SignerError(
            f"KMS key is on {public_key.curve.name}, expected {_CURVE_NAMES[curve]}"
        )
    return public_key.public_bytes(
        serialization.Encoding.X962,
        serialization.PublicFormat.UncompressedPoint,
    )


class KmsKeyHandle:
    """
    One asymmetric-sign key version in Cloud KMS.

    The public key is fetched lazily under an ``asyncio.Lock`` so concurrent
    first callers trigger a single ``GetPublicKey`` request; afterwards it is
    read without locking.

    Args:
        project_id, location_id, key_ring_id, key_id, key_version: Key version
            coordinates.
        curve: Curve the key is expected to use.
        client: Optional ``KeyManagementServiceAsyncClient`` (or a test
            double). Created on first use when omitted, so construction does
            not require an event loop.
        timeout: Per-call deadline in seconds.
    """

    def __init__(
        self,
        project_id: str,
        location_id: str,
        key_ring_id: str,
        key_id: str,
        key_version: str,
        curve: Curve,
        client: Optional[Any] = None,
        timeout: float = DEFAULT_KMS_TIMEOUT,
    ):
        self.name = kms.KeyManagementServiceAsyncClient.crypto_key_version_path(
            project_id, location_id, key_ring_id, key_id, key_version
        )
        self.curve = curve
        self._client = client
        self._timeout = timeout
        self._public_key: Optional[bytes] = None
        self._lock = asyncio.Lock()

    def _get_client(self):
        if self._client is None:
            self._client = kms.KeyManagementServiceAsyncClient()
        return self._client

    async def public_key(self) -> bytes:
        """Uncompressed public key ``0x04 || x || y``, fetched once."""
        if self._public_key is not None:
            return self._public_key
        async with self._lock:
            if self._public_key is None:
                self._public_key = await self._fetch_public_key()
                logger.debug("Cached public key for %s", self.name)
        return self._public_key

    async def _fetch_public_key(self) -> bytes:
        try:
            response = await self._get_client().get_public_key(
                request={"name": self.name}, timeout=self._timeout
            )
        except gcp_exceptions.GoogleAPIError as e:
            raise SignerError(f"Failed to get public key from KMS: {e}") from e
        except asyncio.TimeoutError as e:
            raise SignerError(f"Timed out fetching public key from KMS ({self._timeout}s)") from e

        if not response.pem:
            raise SignerError("Failed to get public key from KMS: empty PEM")
        return parse_public_key_pem(response.pem, self.curve)

    async def sign_digest(self, digest: bytes) -> bytes:
        """
        Ask KMS to sign a 32-byte digest.

        KMS signs the bytes as given; it does not hash them again, so an
        Ethereum keccak digest can be passed in the ``sha256`` slot.

        Returns:
            bytes: DER-encoded ECDSA signature.

        Raises:
            SignerError: On RPC failure, timeout or an empty signature.
        """
        if len(digest) != 32:
            raise SignerError(f"Expected a 32-byte digest, got {len(digest)} bytes")
        try:
            response = await self._get_client().asymmetric_sign(
                request={"name": self.name, "digest": {"sha256": digest}},
                timeout=self._timeout,
            )
        except gcp_exceptions.GoogleAPIError as e:
            raise SignerError(f"Failed to sign with KMS: {e}") from e
        except asyncio.TimeoutError as e:
            raise SignerError(f"Timed out signing with KMS ({self._timeout}s)") from e

        if not response.signature:
            raise SignerError("Failed to sign with KMS: empty signature")
        return bytes(response.signature)
