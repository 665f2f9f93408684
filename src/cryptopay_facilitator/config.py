"""
Facilitator settings and logging setup.

Settings come from the environment (``.env`` files are loaded with
python-dotenv). Invalid values raise ``ConfigurationError`` when the
settings are built, i.e. at startup.

Environment:
    SIGNER_TYPE and the signer variables  see ``signers.factory``
    RPC_URL_<NETWORK>                      per-network RPC override
    FACILITATOR_RPC_TIMEOUT                seconds per RPC request (default 30)
    FACILITATOR_KMS_TIMEOUT                seconds per KMS call (default 10)
    FACILITATOR_CONFIRMATION_TIMEOUT       seconds to wait for a receipt (default 120)
    FACILITATOR_POLL_INTERVAL              seconds between receipt polls (default 2)
    FACILITATOR_ALLOW_ATTESTED_SETTLEMENT  enable the passkey path (default false)
    FACILITATOR_LOG_LEVEL                  logging level name (default INFO)
"""

import logging
import os
from typing import Dict, Mapping, Optional

import dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .chains.client import DEFAULT_RPC_TIMEOUT
from .chains.constants import SUPPORTED_NETWORKS, rpc_env_key
from .eip3009.settlement import DEFAULT_CONFIRMATION_TIMEOUT, DEFAULT_POLL_INTERVAL
from .engine.exceptions import ConfigurationError
from .signers.factory import signer_config_from_env
from .signers.gcp_kms import DEFAULT_KMS_TIMEOUT
from .signers.types import SignerConfig

dotenv.load_dotenv()

PACKAGE_LOGGER = "cryptopay_facilitator"

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off", "")


class FacilitatorSettings(BaseModel):
    """Runtime settings of one facilitator process."""

    model_config = ConfigDict(frozen=True)

    signer: SignerConfig
    rpc_urls: Dict[str, str] = Field(default_factory=dict, description="network -> RPC URL overrides")
    rpc_timeout: float = Field(DEFAULT_RPC_TIMEOUT, gt=0)
    kms_timeout: float = Field(DEFAULT_KMS_TIMEOUT, gt=0)
    confirmation_timeout: float = Field(DEFAULT_CONFIRMATION_TIMEOUT, gt=0)
    poll_interval: float = Field(DEFAULT_POLL_INTERVAL, gt=0)
    allow_attested_settlement: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "FacilitatorSettings":
        """
        Build settings from environment variables.

        Raises:
            ConfigurationError: On an invalid signer configuration or a
                malformed numeric / boolean value.
        """
        env = os.environ if environ is None else environ
        signer = signer_config_from_env(env)

        rpc_urls = {
            network: env[rpc_env_key(network)]
            for network in SUPPORTED_NETWORKS
            if env.get(rpc_env_key(network))
        }
        values = {
            "signer": signer,
            "rpc_urls": rpc_urls,
            "allow_attested_settlement": _parse_bool(env, "FACILITATOR_ALLOW_ATTESTED_SETTLEMENT"),
            "log_level": (env.get("FACILITATOR_LOG_LEVEL") or "INFO").upper(),
        }
        for field, name in (
            ("rpc_timeout", "FACILITATOR_RPC_TIMEOUT"),
            ("kms_timeout", "FACILITATOR_KMS_TIMEOUT"),
            ("confirmation_timeout", "FACILITATOR_CONFIRMATION_TIMEOUT"),
            ("poll_interval", "FACILITATOR_POLL_INTERVAL"),
        ):
            if env.get(name):
                values[field] = env[name]

        try:
            return cls(**values)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise ConfigurationError(f"Invalid facilitator settings: {problems}") from None


def _parse_bool(env: Mapping[str, str], name: str) -> bool:
    value = (env.get(name) or "").strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {value!r}")


def configure_logging(level: str = "INFO") -> logging.Logger:
    """
    Attach a single stream handler to the package logger.

    Calling it again only updates the level.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    if not any(getattr(h, "_facilitator_handler", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s [%(name)s] %(message)s"
        ))
        handler._facilitator_handler = True
        logger.addHandler(handler)
    return logger
