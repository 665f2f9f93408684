"""
Process-wide signer.

Lifecycle: ``init_signer`` once at startup, ``get_signer`` (read-only)
afterwards. ``reset_signer`` exists for test harnesses; production code
never calls it, and the signer is never rotated mid-process.
"""

import logging
from typing import Any, Optional

from .factory import create_signer, create_signer_from_env, describe_signer
from .types import Signer, SignerConfig
from ..engine.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_signer: Optional[Signer] = None


def init_signer(config: Optional[SignerConfig] = None, kms_client: Optional[Any] = None) -> Signer:
    """
    Create and install the process signer.

    Args:
        config: Explicit config; the environment is read when omitted.
        kms_client: Optional KMS client for KMS-backed signers.

    Raises:
        ConfigurationError: If a signer is already installed or the
            configuration is invalid.
    """
    global _signer
    if _signer is not None:
        raise ConfigurationError("Signer already initialized; restart the process to change it")
    if config is None:
        signer = create_signer_from_env(kms_client=kms_client)
    else:
        signer = create_signer(config, kms_client=kms_client)
    _signer = signer
    logger.info("Signer initialized: %s", describe_signer(signer))
    return signer


def get_signer() -> Signer:
    """
    Return the installed signer.

    Raises:
        ConfigurationError: If ``init_signer`` has not run.
    """
    if _signer is None:
        raise ConfigurationError("Signer not initialized; call init_signer() at startup")
    return _signer


def reset_signer() -> None:
    """Drop the installed signer. Test harnesses only."""
    global _signer
    _signer = None
