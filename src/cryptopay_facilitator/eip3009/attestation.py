"""
P-256 Attestation Verification

Off-chain check for passkey payments. Token contracts recover secp256k1
signatures only, so a P-256 signature over the authorization's EIP-712
digest can only be trusted by the facilitator itself. A valid attestation
proves the key holder approved the transfer; it does NOT let the token
contract move the payer's funds.
"""

import logging
import time
from typing import Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, utils
from web3 import AsyncWeb3

from ..chains.constants import get_network_config, get_token_address
from ..schemas.payments import PasskeyAttestation, SignedPayload, VerificationResult
from ..signers.codec import Curve
from .contracts import read_token_domain
from .verifies import SIGNATURE_VERIFICATION_FAILED, build_typed_data, check_payment_fields

logger = logging.getLogger(__name__)


INVALID_ATTESTATION = "Invalid passkey attestation"


def verify_p256_signature(digest: bytes, attestation: PasskeyAttestation) -> bool:
    """
    Check a P-256 ``(r, s)`` signature over a 32-byte digest.

    High-S signatures are rejected so an attestation has a single valid
    encoding.
    """
    if not (0 < attestation.r < Curve.P256.order and 0 < attestation.s <= Curve.P256.half_order):
        return False
    try:
        public_key = ec.EllipticCurvePublicNumbers(
            attestation.x, attestation.y, ec.SECP256R1()
        ).public_key()
    except ValueError:
        return False
    try:
        public_key.verify(
            utils.encode_dss_signature(attestation.r, attestation.s),
            digest,
            ec.ECDSA(utils.Prehashed(hashes.SHA256())),
        )
    except InvalidSignature:
        return False
    return True


async def verify_attested_payment(
    payload: SignedPayload,
    web3: AsyncWeb3,
    current_time: Optional[int] = None,
) -> VerificationResult:
    """
    Verify a passkey payload in place of the on-chain signature check.

    Runs the stateless checks shared with ERC-3009 verification, then
    verifies the P-256 attestation over the EIP-712 digest built from the
    live token domain.
    """
    now = int(current_time) if current_time is not None else int(time.time())
    requirement = payload.requirement

    reason = check_payment_fields(payload, now)
    if reason is not None:
        logger.info("Attested verification failed for payment %s: %s", requirement.payment_id, reason)
        return VerificationResult.fail(reason)

    try:
        attestation = payload.attestation
    except ValueError as e:
        logger.info("Malformed attestation for payment %s: %s", requirement.payment_id, e)
        return VerificationResult.fail(INVALID_ATTESTATION)
    if attestation is None:
        return VerificationResult.fail(INVALID_ATTESTATION)

    try:
        domain = await read_token_domain(
            web3,
            get_token_address(requirement.token, requirement.network),
            get_network_config(requirement.network).chain_id,
        )
        digest = build_typed_data(payload.authorization, domain).signing_hash()
    except Exception:
        logger.warning("Could not build EIP-712 digest for attestation", exc_info=True)
        return VerificationResult.fail(SIGNATURE_VERIFICATION_FAILED)

    if not verify_p256_signature(digest, attestation):
        logger.info("P-256 attestation rejected for payment %s", requirement.payment_id)
        return VerificationResult.fail(INVALID_ATTESTATION)

    return VerificationResult.ok()
