"""
cryptopay-facilitator

Verifies signed ERC-3009 payment authorizations and settles them on-chain,
paying gas on the payer's behalf. Signing keys live in process memory or
in Google Cloud KMS (secp256k1 or P-256).
"""

from .config import FacilitatorSettings, configure_logging
from .facilitator import Facilitator
from .schemas import (
    FacilitatorBalance,
    PaymentRequirement,
    SettlementResult,
    SettlementStatus,
    SignedPayload,
    TransferAuthorization,
    VerificationResult,
)
from .signers import (
    Signer,
    create_signer,
    create_signer_from_env,
    describe_signer,
    get_signer,
    init_signer,
    reset_signer,
)

__version__ = "0.1.0"

__all__ = [
    "FacilitatorSettings",
    "configure_logging",
    "Facilitator",
    "FacilitatorBalance",
    "PaymentRequirement",
    "SettlementResult",
    "SettlementStatus",
    "SignedPayload",
    "TransferAuthorization",
    "VerificationResult",
    "Signer",
    "create_signer",
    "create_signer_from_env",
    "describe_signer",
    "get_signer",
    "init_signer",
    "reset_signer",
]
