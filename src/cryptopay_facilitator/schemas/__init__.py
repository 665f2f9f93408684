from .bases import CanonicalModel, SettlementStatus
from .payments import (
    PaymentRequirement,
    TransferAuthorization,
    P256Signature,
    PasskeyAttestation,
    SignedPayload,
    VerificationResult,
    SettlementResult,
    FacilitatorBalance,
)

__all__ = [
    "CanonicalModel",
    "SettlementStatus",
    "PaymentRequirement",
    "TransferAuthorization",
    "P256Signature",
    "PasskeyAttestation",
    "SignedPayload",
    "VerificationResult",
    "SettlementResult",
    "FacilitatorBalance",
]
