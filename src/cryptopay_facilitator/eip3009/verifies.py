"""
ERC-3009 Authorization Verification

Off-chain verification of a ``SignedPayload`` before settlement. Checks run
in a fixed order and stop at the first failure:

1. Requirement expiry        ``now > expires_at``
2. Token availability        token address on the network is not zero
3. Field match               payer, payee, exact amount
4. Validity window           ``valid_after <= now <= valid_before``
5. Nonce freshness           ``authorizationState(payer, nonce)`` on-chain
6. Signature                 EIP-712 recovery under the live token domain

Verification never raises and has no side effects: every failure is a
``VerificationResult`` with a fixed reason string.
"""

import logging
import time
from typing import Optional

from eth_account import Account
from web3 import AsyncWeb3

from ..chains.constants import ZERO_ADDRESS, get_network_config, get_token_address
from ..chains.standards import (
    EIP712Domain,
    TransferWithAuthorizationMessage,
    TransferWithAuthorizationTypedData,
)
from ..engine.exceptions import BlockchainInteractionError, FacilitatorError
from ..schemas.payments import SignedPayload, TransferAuthorization, VerificationResult
from ..signers.codec import Curve
from .contracts import is_nonce_used, read_token_domain

logger = logging.getLogger(__name__)


PAYMENT_EXPIRED = "Payment request expired"
FROM_MISMATCH = "Authorization from address mismatch"
TO_MISMATCH = "Authorization to address mismatch"
AMOUNT_MISMATCH = "Authorization amount mismatch"
NOT_YET_VALID = "Authorization not yet valid"
AUTHORIZATION_EXPIRED = "Authorization expired"
NONCE_ALREADY_USED = "Authorization nonce already used"
NONCE_CHECK_FAILED = "Authorization nonce check failed"
INVALID_SIGNATURE = "Invalid signature"
SIGNATURE_VERIFICATION_FAILED = "Signature verification failed"


def token_unavailable(token: str, network: str) -> str:
    return f"Token {token} not available on {network}"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def build_typed_data(
    authorization: TransferAuthorization,
    domain: EIP712Domain,
) -> TransferWithAuthorizationTypedData:
    """EIP-712 payload for ``authorization`` under ``domain``."""
    return TransferWithAuthorizationTypedData(
        domain=domain,
        message=TransferWithAuthorizationMessage(
            authorizer=AsyncWeb3.to_checksum_address(authorization.from_),
            recipient=AsyncWeb3.to_checksum_address(authorization.to),
            value=authorization.value,
            validAfter=authorization.valid_after,
            validBefore=authorization.valid_before,
            nonce=authorization.nonce,
        ),
    )


def recover_authorizer(typed_data: TransferWithAuthorizationTypedData, authorization: TransferAuthorization) -> str:
    """
    Recover the address that signed ``typed_data``.

    Raises:
        ValueError: If the signature is malformed or non-canonical (high S),
            which token contracts reject.
    """
    s = int.from_bytes(authorization.s_bytes(), "big")
    if s > Curve.SECP256K1.half_order:
        raise ValueError("non-canonical signature: s is in the upper half order")
    v = authorization.v + 27 if authorization.v in (0, 1) else authorization.v
    return Account.recover_message(
        typed_data.signable(),
        vrs=(v, int.from_bytes(authorization.r_bytes(), "big"), s),
    )


def check_payment_fields(payload: SignedPayload, now: int) -> Optional[str]:
    """
    Run the stateless checks (expiry, token availability, field match and
    validity window).

    Returns:
        The reason string of the first failing check, or None.
    """
    requirement = payload.requirement
    authorization = payload.authorization

    # ------------------------------------------------------------------
    # 1. Requirement expiry
    # ------------------------------------------------------------------
    if now > requirement.expires_at:
        return PAYMENT_EXPIRED

    # ------------------------------------------------------------------
    # 2. Token availability
    # ------------------------------------------------------------------
    try:
        get_network_config(requirement.network)
        token_address = get_token_address(requirement.token, requirement.network)
    except FacilitatorError:
        token_address = ZERO_ADDRESS
    if token_address.lower() == ZERO_ADDRESS:
        return token_unavailable(requirement.token, requirement.network)

    # ------------------------------------------------------------------
    # 3. Field match
    # ------------------------------------------------------------------
    if authorization.from_.lower() != payload.payer.lower():
        return FROM_MISMATCH
    if authorization.to.lower() != requirement.recipient.lower():
        return TO_MISMATCH
    if str(authorization.value) != requirement.amount:
        return AMOUNT_MISMATCH

    # ------------------------------------------------------------------
    # 4. Validity window
    # ------------------------------------------------------------------
    if now < authorization.valid_after:
        return NOT_YET_VALID
    if now > authorization.valid_before:
        return AUTHORIZATION_EXPIRED

    return None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

async def verify_erc3009_payment(
    payload: SignedPayload,
    web3: AsyncWeb3,
    current_time: Optional[int] = None,
) -> VerificationResult:
    """
    Verify an ERC-3009 payment payload against its requirement and chain state.

    Args:
        payload: The signed payload to check.
        web3: AsyncWeb3 instance connected to ``payload.requirement.network``.
        current_time: Unix timestamp used for all time checks. Defaults to
            ``int(time.time())``, read once so every check sees the same instant.

    Returns:
        ``VerificationResult(valid=True)`` when all six checks pass, otherwise
        ``valid=False`` with the reason of the first failing check.

    Example::

        result = await verify_erc3009_payment(payload, get_web3_instance("base-sepolia"))
        if not result.valid:
            print(result.error)
    """
    now = int(current_time) if current_time is not None else int(time.time())
    requirement = payload.requirement
    authorization = payload.authorization

    def _fail(reason: str) -> VerificationResult:
        logger.info(
            "Verification failed for payment %s: %s", requirement.payment_id, reason
        )
        return VerificationResult.fail(reason)

    reason = check_payment_fields(payload, now)
    if reason is not None:
        return _fail(reason)

    token_address = get_token_address(requirement.token, requirement.network)
    chain_id = get_network_config(requirement.network).chain_id

    # ------------------------------------------------------------------
    # 5. Nonce freshness
    # ------------------------------------------------------------------
    try:
        nonce_used = await is_nonce_used(
            web3, token_address, authorization.from_, authorization.nonce_bytes()
        )
    except BlockchainInteractionError as e:
        logger.warning("Nonce state unavailable for payment %s: %s", requirement.payment_id, e)
        return _fail(NONCE_CHECK_FAILED)
    if nonce_used:
        return _fail(NONCE_ALREADY_USED)

    # ------------------------------------------------------------------
    # 6. EIP-712 signature
    # ------------------------------------------------------------------
    try:
        domain = await read_token_domain(web3, token_address, chain_id)
        typed_data = build_typed_data(authorization, domain)
    except Exception:
        logger.warning(
            "Could not build EIP-712 domain for %s on %s",
            requirement.token, requirement.network, exc_info=True,
        )
        return _fail(SIGNATURE_VERIFICATION_FAILED)

    try:
        recovered = recover_authorizer(typed_data, authorization)
    except Exception as e:
        logger.debug("Signature recovery failed: %s", e)
        return _fail(INVALID_SIGNATURE)

    if recovered.lower() != authorization.from_.lower():
        logger.debug("Recovered %s, expected %s", recovered, authorization.from_)
        return _fail(INVALID_SIGNATURE)

    logger.debug("Payment %s verified", requirement.payment_id)
    return VerificationResult.ok()
