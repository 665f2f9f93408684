"""
Signer Factory

Builds exactly one signer from a typed config or from environment
variables. Any missing or malformed parameter raises ``ConfigurationError``
here, at startup, never on the first request.

Environment:
    SIGNER_TYPE                local | gcp-kms-secp256k1 | gcp-kms-p256 (default local)
    FACILITATOR_PRIVATE_KEY    local
    GCP_PROJECT_ID             KMS kinds
    GCP_KMS_LOCATION           KMS kinds (default global)
    GCP_KMS_KEY_RING           KMS kinds
    GCP_KMS_KEY_ID             KMS kinds
    GCP_KMS_KEY_VERSION        KMS kinds (default 1)
    SMART_ACCOUNT_ADDRESS      gcp-kms-p256, optional
"""

import os
from typing import Any, Mapping, Optional

import dotenv
from pydantic import TypeAdapter, ValidationError

from .gcp_kms import DEFAULT_KMS_TIMEOUT
from .gcp_kms_p256 import GcpKmsP256Signer
from .gcp_kms_secp256k1 import GcpKmsSecp256k1Signer
from .local import LocalSigner
from .types import (
    SIGNER_KINDS,
    GcpKmsP256Config,
    GcpKmsSecp256k1Config,
    LocalSignerConfig,
    Signer,
    SignerConfig,
)
from ..engine.exceptions import ConfigurationError

dotenv.load_dotenv()


_SIGNER_CONFIG_ADAPTER = TypeAdapter(SignerConfig)

_DESCRIPTIONS = {
    "local": "Local Private Key",
    "gcp-kms-secp256k1": "GCP KMS (secp256k1)",
    "gcp-kms-p256": "GCP KMS (P-256/secp256r1)",
}


def create_signer(
    config: SignerConfig,
    kms_client: Optional[Any] = None,
    kms_timeout: float = DEFAULT_KMS_TIMEOUT,
) -> Signer:
    """
    Instantiate the signer selected by ``config.type``.

    Args:
        config: One of the three signer configs.
        kms_client: Optional KMS async client shared by KMS signers.
        kms_timeout: Deadline in seconds for each KMS call.

    Raises:
        ConfigurationError: Unknown config type.
    """
    if isinstance(config, LocalSignerConfig):
        return LocalSigner(config)
    if isinstance(config, GcpKmsSecp256k1Config):
        return GcpKmsSecp256k1Signer(config, client=kms_client, timeout=kms_timeout)
    if isinstance(config, GcpKmsP256Config):
        return GcpKmsP256Signer(config, client=kms_client, timeout=kms_timeout)
    raise ConfigurationError(f"Unknown signer config: {type(config).__name__}")


def signer_config_from_env(environ: Optional[Mapping[str, str]] = None) -> SignerConfig:
    """
    Read and validate the signer configuration from the environment.

    Args:
        environ: Mapping to read instead of ``os.environ`` (tests).

    Raises:
        ConfigurationError: Unknown ``SIGNER_TYPE`` or a missing / invalid
            parameter for the selected kind.
    """
    env = os.environ if environ is None else environ
    signer_type = env.get("SIGNER_TYPE") or "local"

    if signer_type == "local":
        private_key = env.get("FACILITATOR_PRIVATE_KEY")
        if not private_key:
            raise ConfigurationError(
                "FACILITATOR_PRIVATE_KEY environment variable is required for local signer"
            )
        raw = {"type": "local", "private_key": private_key}

    elif signer_type in ("gcp-kms-secp256k1", "gcp-kms-p256"):
        missing = [
            name for name in ("GCP_PROJECT_ID", "GCP_KMS_KEY_RING", "GCP_KMS_KEY_ID")
            if not env.get(name)
        ]
        if missing:
            raise ConfigurationError(
                f"{', '.join(missing)} required for {describe_kind(signer_type)} signer"
            )
        raw = {
            "type": signer_type,
            "project_id": env["GCP_PROJECT_ID"],
            "location_id": env.get("GCP_KMS_LOCATION") or "global",
            "key_ring_id": env["GCP_KMS_KEY_RING"],
            "key_id": env["GCP_KMS_KEY_ID"],
            "key_version": env.get("GCP_KMS_KEY_VERSION") or "1",
        }
        if signer_type == "gcp-kms-p256":
            raw["smart_account_address"] = env.get("SMART_ACCOUNT_ADDRESS") or None

    else:
        raise ConfigurationError(
            f"Unknown SIGNER_TYPE: {signer_type}. Valid options: {', '.join(SIGNER_KINDS)}"
        )

    return parse_signer_config(raw)


def parse_signer_config(raw: Mapping[str, Any]) -> SignerConfig:
    """Validate a raw mapping into a ``SignerConfig``; errors become ``ConfigurationError``."""
    try:
        return _SIGNER_CONFIG_ADAPTER.validate_python(dict(raw))
    except ValidationError as e:
        # Never echo input values: one of them may be a private key.
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigurationError(f"Invalid signer configuration: {problems}") from None


def create_signer_from_env(
    environ: Optional[Mapping[str, str]] = None,
    kms_client: Optional[Any] = None,
    kms_timeout: float = DEFAULT_KMS_TIMEOUT,
) -> Signer:
    """Shorthand for ``create_signer(signer_config_from_env(environ))``."""
    return create_signer(signer_config_from_env(environ), kms_client=kms_client, kms_timeout=kms_timeout)


def describe_kind(kind: str) -> str:
    return _DESCRIPTIONS.get(kind, "Unknown")


def describe_signer(signer: Signer) -> str:
    """Human-readable signer kind for startup logs."""
    return describe_kind(signer.kind)
