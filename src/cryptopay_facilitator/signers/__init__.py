from .codec import Curve, decode_der_signature, normalize_s, parse_der_signature
from .types import (
    SIGNER_KINDS,
    GcpKmsP256Config,
    GcpKmsSecp256k1Config,
    HashSignature,
    LocalSignerConfig,
    Signer,
    SignerConfig,
    SignerKind,
)
from .local import LocalSigner
from .gcp_kms import KmsKeyHandle, parse_public_key_pem
from .gcp_kms_secp256k1 import GcpKmsSecp256k1Signer, find_recovery_value
from .gcp_kms_p256 import GcpKmsP256Signer, UserOpSignature
from .operations import sign_message, sign_transaction, sign_typed_data
from .factory import (
    create_signer,
    create_signer_from_env,
    describe_signer,
    parse_signer_config,
    signer_config_from_env,
)
from .state import get_signer, init_signer, reset_signer

__all__ = [
    "Curve",
    "decode_der_signature",
    "normalize_s",
    "parse_der_signature",
    "SIGNER_KINDS",
    "GcpKmsP256Config",
    "GcpKmsSecp256k1Config",
    "HashSignature",
    "LocalSignerConfig",
    "Signer",
    "SignerConfig",
    "SignerKind",
    "LocalSigner",
    "KmsKeyHandle",
    "parse_public_key_pem",
    "GcpKmsSecp256k1Signer",
    "find_recovery_value",
    "GcpKmsP256Signer",
    "UserOpSignature",
    "sign_message",
    "sign_transaction",
    "sign_typed_data",
    "create_signer",
    "create_signer_from_env",
    "describe_signer",
    "parse_signer_config",
    "signer_config_from_env",
    "get_signer",
    "init_signer",
    "reset_signer",
]
