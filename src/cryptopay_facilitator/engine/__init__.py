from .exceptions import (
    FacilitatorError,
    ConfigurationError,
    UnsupportedNetworkError,
    UnsupportedTokenError,
    SignerError,
    SignatureCodecError,
    RecoveryParameterError,
    BlockchainInteractionError,
    SimulationError,
    TransactionSubmissionError,
    ConfirmationTimeoutError,
)

__all__ = [
    "FacilitatorError",
    "ConfigurationError",
    "UnsupportedNetworkError",
    "UnsupportedTokenError",
    "SignerError",
    "SignatureCodecError",
    "RecoveryParameterError",
    "BlockchainInteractionError",
    "SimulationError",
    "TransactionSubmissionError",
    "ConfirmationTimeoutError",
]
