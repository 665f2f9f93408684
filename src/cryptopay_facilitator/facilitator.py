"""
Facilitator

Entry point for the three external operations:

- ``verify(payload)``        read-only checks, returns ``VerificationResult``
- ``settle(payload)``        verify, then execute, returns ``SettlementResult``
- ``check_balance(network)`` facilitator gas balance, returns ``FacilitatorBalance``

One ``Facilitator`` wraps one signer for the process lifetime. Web3
instances are created per network on first use and reused.

Example:
    settings = FacilitatorSettings.from_env()
    facilitator = Facilitator.from_settings(settings)
    await facilitator.startup_check("base-sepolia")

    result = await facilitator.verify(SignedPayload.model_validate(body))
"""

import logging
from typing import Callable, Dict, Optional

from web3 import AsyncWeb3

from .chains.client import DEFAULT_RPC_TIMEOUT, get_web3_instance
from .chains.constants import get_network_config
from .config import FacilitatorSettings
from .eip3009.attestation import verify_attested_payment
from .eip3009.balance import check_facilitator_balance
from .eip3009.settlement import (
    DEFAULT_CONFIRMATION_TIMEOUT,
    DEFAULT_POLL_INTERVAL,
    SettlementExecutor,
)
from .eip3009.verifies import verify_erc3009_payment
from .engine.exceptions import FacilitatorError
from .schemas.payments import (
    FacilitatorBalance,
    SettlementResult,
    SignedPayload,
    VerificationResult,
)
from .signers.factory import create_signer, describe_signer
from .signers.types import Signer

logger = logging.getLogger(__name__)


ATTESTED_SETTLEMENT_DISABLED = "Attested (passkey) settlement is disabled on this facilitator"
UNSUPPORTED_NETWORK = "Unsupported network"


Web3Factory = Callable[[str], AsyncWeb3]


class Facilitator:
    """
    Verifies and settles signed payment payloads.

    Args:
        signer: Account that pays gas and signs settlement transactions.
        web3_factory: ``network -> AsyncWeb3``; defaults to
            ``get_web3_instance`` with ``rpc_urls`` and ``rpc_timeout``.
        allow_attested_settlement: Enable the facilitator-funded passkey path.
        confirmation_timeout: Seconds to wait for a settlement receipt.
        poll_interval: Seconds between receipt polls.
    """

    def __init__(
        self,
        signer: Signer,
        web3_factory: Optional[Web3Factory] = None,
        rpc_urls: Optional[Dict[str, str]] = None,
        rpc_timeout: float = DEFAULT_RPC_TIMEOUT,
        allow_attested_settlement: bool = False,
        confirmation_timeout: float = DEFAULT_CONFIRMATION_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        self.signer = signer
        self.allow_attested_settlement = allow_attested_settlement
        self.executor = SettlementExecutor(
            signer,
            confirmation_timeout=confirmation_timeout,
            poll_interval=poll_interval,
        )
        self._web3_factory = web3_factory or (
            lambda network: get_web3_instance(network, rpc_urls, rpc_timeout)
        )
        self._web3_instances: Dict[str, AsyncWeb3] = {}

    @classmethod
    def from_settings(cls, settings: FacilitatorSettings, kms_client=None) -> "Facilitator":
        """Build the signer and facilitator described by ``settings``."""
        signer = create_signer(settings.signer, kms_client=kms_client, kms_timeout=settings.kms_timeout)
        return cls(
            signer,
            rpc_urls=settings.rpc_urls,
            rpc_timeout=settings.rpc_timeout,
            allow_attested_settlement=settings.allow_attested_settlement,
            confirmation_timeout=settings.confirmation_timeout,
            poll_interval=settings.poll_interval,
        )

    def _web3(self, network: str) -> AsyncWeb3:
        if network not in self._web3_instances:
            get_network_config(network)
            self._web3_instances[network] = self._web3_factory(network)
        return self._web3_instances[network]

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def verify(self, payload: SignedPayload) -> VerificationResult:
        """
        Verify a payload without side effects.

        Passkey payloads are checked with their P-256 attestation; all others
        with the full ERC-3009 pipeline.
        """
        try:
            web3 = self._web3(payload.requirement.network)
        except FacilitatorError:
            return VerificationResult.fail(UNSUPPORTED_NETWORK)

        if payload.is_passkey_payment:
            return await verify_attested_payment(payload, web3)
        return await verify_erc3009_payment(payload, web3)

    async def settle(self, payload: SignedPayload) -> SettlementResult:
        """
        Verify the payload and, if valid, execute the transfer.

        Passkey payloads go through the facilitator-funded path only when
        ``allow_attested_settlement`` is set; otherwise they fail without a
        transaction.
        """
        if payload.is_passkey_payment and not self.allow_attested_settlement:
            logger.info(
                "Rejected passkey payment %s: attested settlement disabled",
                payload.requirement.payment_id,
            )
            return SettlementResult.failed(ATTESTED_SETTLEMENT_DISABLED)

        verification = await self.verify(payload)
        if not verification.valid:
            return SettlementResult.failed(verification.error)

        web3 = self._web3(payload.requirement.network)
        if payload.is_passkey_payment:
            return await self.executor.settle_attested(payload, web3)
        return await self.executor.settle_authorization(payload, web3)

    async def check_balance(self, network: str) -> FacilitatorBalance:
        """
        Native balance of the facilitator account on ``network``.

        Raises:
            UnsupportedNetworkError: Unknown network.
            SignerError, BlockchainInteractionError: Address or balance unavailable.
        """
        return await check_facilitator_balance(self.signer, self._web3(network))

    async def startup_check(self, network: str) -> Optional[FacilitatorBalance]:
        """
        Log signer kind, address and balance. Failures are logged, not raised.
        """
        logger.info("Signer: %s", describe_signer(self.signer))
        try:
            balance = await self.check_balance(network)
        except FacilitatorError as e:
            logger.error("Startup balance check on %s failed: %s", network, e)
            return None

        native = get_network_config(network).native_currency
        logger.info(
            "Facilitator address: %s, balance on %s: %s wei %s",
            balance.address, network, balance.balance, native.symbol,
        )
        if not balance.sufficient:
            logger.warning("Facilitator balance on %s is low; settlements may fail", network)
        return balance
