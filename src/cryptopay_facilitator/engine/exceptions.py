"""
Exception and Error Definitions Module

Defines the exception hierarchy for signer operations, signature decoding,
blockchain interaction and configuration. Verification failures are NOT
exceptions: they are ordinary ``VerificationResult`` values. The classes
below cover infrastructure problems that the Verifier and Executor catch at
their boundary and convert into structured results.

Exception Hierarchy:
    FacilitatorError (root)
    ├── ConfigurationError
    ├── UnsupportedNetworkError
    ├── UnsupportedTokenError
    ├── SignerError
    │   ├── SignatureCodecError
    │   └── RecoveryParameterError
    └── BlockchainInteractionError
        ├── SimulationError
        ├── TransactionSubmissionError
        └── ConfirmationTimeoutError
"""

from typing import Optional


class FacilitatorError(Exception):
    """
    Root exception class for all project-specific exceptions.

    All custom exceptions inherit from this class to enable unified
    exception handling at the Verifier / Executor boundary.
    """
    pass


class ConfigurationError(FacilitatorError):
    """
    Raised when configuration is missing or invalid.

    This includes scenarios such as:
    - Unknown ``SIGNER_TYPE``
    - Missing required parameter for the selected signer kind
    - Malformed private key or smart account address

    Always raised at startup, never at first request.
    """
    pass


class UnsupportedNetworkError(FacilitatorError):
    """Raised when a network identifier or chain id is not registered."""
    pass


class UnsupportedTokenError(FacilitatorError):
    """Raised when a token symbol is not registered."""
    pass


class SignerError(FacilitatorError):
    """
    Raised when a signer cannot produce an address or a signature.

    This includes scenarios such as:
    - Remote key service unreachable or timing out
    - Access denied on the key version
    - Empty signature or public key in the remote response

    Callers may retry at their discretion; a signer never silently falls
    back to a different key.
    """
    pass


class SignatureCodecError(SignerError):
    """
    Raised when a DER-encoded signature is malformed.

    Covers wrong outer or integer tags, truncated or oversized integers,
    trailing bytes and out-of-range ``r`` / ``s`` values. Never produces a
    partial result.
    """
    pass


class RecoveryParameterError(SignerError):
    """
    Raised when neither candidate recovery value reproduces the signer's
    cached public key.

    Indicates codec corruption or a key mismatch between the signing key
    and the cached public key.
    """
    pass


class BlockchainInteractionError(FacilitatorError):
    """
    Raised when a blockchain interaction (RPC call) fails.

    This includes scenarios such as:
    - RPC call timeout
    - Network connectivity issues
    - Contract call revert

    Attributes:
        tx_hash: Transaction hash when one was obtained before the failure.
    """

    def __init__(self, message: str, tx_hash: Optional[str] = None):
        super().__init__(message)
        self.tx_hash = tx_hash


class SimulationError(BlockchainInteractionError):
    """Raised when ``eth_call`` simulation of a settlement call reverts."""
    pass


class TransactionSubmissionError(BlockchainInteractionError):
    """Raised when a signed transaction is rejected by the node."""
    pass


class ConfirmationTimeoutError(BlockchainInteractionError):
    """
    Raised when no receipt arrives within the confirmation timeout.

    The transaction may still be mined later; the outcome is unknown and
    must not be resubmitted.
    """
    pass
