"""
Settlement Executor

Turns a verified payload into an on-chain transfer paid for by the
facilitator. Two visibly separate paths:

``settle_authorization``
    Primary path. Calls ``transferWithAuthorization`` with the payer's
    signature; the token contract verifies it and moves the payer's funds.

``settle_attested``
    Passkey (P-256) path. The token contract cannot verify P-256, so the
    facilitator sends an ordinary ``transfer`` of the required amount from
    its OWN balance to the recipient. This stands in for a P-256 smart
    account and is a trust degradation: the payer's funds are not touched.

Both paths share one pipeline: simulate (``eth_call``), build, sign with the
configured signer, broadcast, then poll for one confirmation within a
bounded timeout. A simulation failure aborts before anything is sent. A
timeout yields status ``unknown``; the transaction is never resubmitted.
"""

import asyncio
import logging
from typing import Any, Optional

from web3 import AsyncWeb3
from web3.exceptions import TransactionNotFound

from ..chains.constants import get_token_address
from ..engine.exceptions import (
    ConfirmationTimeoutError,
    SimulationError,
    TransactionSubmissionError,
)
from ..schemas.payments import SettlementResult, SignedPayload
from ..signers.operations import sign_transaction
from ..signers.types import Signer
from .contracts import get_token_contract
from .errors import describe_settlement_error

logger = logging.getLogger(__name__)


DEFAULT_CONFIRMATION_TIMEOUT: float = 120.0
DEFAULT_POLL_INTERVAL: float = 2.0
GAS_LIMIT_MULTIPLIER: float = 1.2


class SettlementExecutor:
    """
    Executes settlements for one signer.

    Args:
        signer: Signer that owns the facilitator account and pays gas.
        confirmation_timeout: Seconds to wait for a receipt after broadcast.
        poll_interval: Seconds between receipt polls.
    """

    def __init__(
        self,
        signer: Signer,
        confirmation_timeout: float = DEFAULT_CONFIRMATION_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        self.signer = signer
        self.confirmation_timeout = confirmation_timeout
        self.poll_interval = poll_interval

    # ------------------------------------------------------------------
    # Primary path
    # ------------------------------------------------------------------

    async def settle_authorization(self, payload: SignedPayload, web3: AsyncWeb3) -> SettlementResult:
        """
        Submit ``transferWithAuthorization`` for an already verified payload.

        Returns:
            ``SettlementResult``; never raises for chain or signer failures.
        """
        requirement = payload.requirement
        authorization = payload.authorization
        token_address = get_token_address(requirement.token, requirement.network)
        contract = get_token_contract(web3, token_address)

        v = authorization.v + 27 if authorization.v in (0, 1) else authorization.v
        tx_fn = contract.functions.transferWithAuthorization(
            AsyncWeb3.to_checksum_address(authorization.from_),
            AsyncWeb3.to_checksum_address(authorization.to),
            authorization.value,
            authorization.valid_after,
            authorization.valid_before,
            authorization.nonce_bytes(),
            v,
            authorization.r_bytes(),
            authorization.s_bytes(),
        )

        result = await self._execute(tx_fn, web3, facilitator_funded=False)
        if result.success:
            logger.info(
                "Transfer successful: hash=%s from=%s to=%s value=%s network=%s",
                result.transaction_hash, authorization.from_, authorization.to,
                authorization.value, requirement.network,
            )
        return result

    # ------------------------------------------------------------------
    # Attested (facilitator-funded) path
    # ------------------------------------------------------------------

    async def settle_attested(self, payload: SignedPayload, web3: AsyncWeb3) -> SettlementResult:
        """
        Pay the requirement from the facilitator's own token balance.

        Only call this after the P-256 attestation has been verified and the
        deployment has opted in to attested settlement.
        """
        requirement = payload.requirement
        token_address = get_token_address(requirement.token, requirement.network)
        contract = get_token_contract(web3, token_address)

        logger.warning(
            "[Passkey] Facilitator-funded transfer standing in for smart account execution: "
            "payment=%s payer=%s to=%s value=%s network=%s",
            requirement.payment_id, payload.payer, requirement.recipient,
            requirement.amount, requirement.network,
        )

        tx_fn = contract.functions.transfer(
            AsyncWeb3.to_checksum_address(requirement.recipient),
            int(requirement.amount),
        )

        result = await self._execute(tx_fn, web3, facilitator_funded=True)
        if result.success:
            logger.info(
                "[Passkey] Transfer successful: hash=%s to=%s value=%s network=%s",
                result.transaction_hash, requirement.recipient, requirement.amount,
                requirement.network,
            )
        return result

    # ------------------------------------------------------------------
    # Shared pipeline
    # ------------------------------------------------------------------

    async def _execute(self, tx_fn: Any, web3: AsyncWeb3, facilitator_funded: bool) -> SettlementResult:
        tx_hash: Optional[str] = None
        try:
            sender = await self.signer.address()
            await self._simulate(tx_fn, sender)
            raw_transaction = await self._build_and_sign(tx_fn, web3, sender)
            tx_hash = await self._broadcast(raw_transaction, web3)
            receipt = await self._wait_for_receipt(tx_hash, web3)
        except ConfirmationTimeoutError as e:
            logger.warning("Confirmation timed out for %s; outcome unknown, not resubmitting", e.tx_hash)
            return SettlementResult.unknown(e.tx_hash, str(e))
        except Exception as e:
            message = str(e) or type(e).__name__
            logger.error("Transfer failed: %s", message, exc_info=True)
            return SettlementResult.failed(
                describe_settlement_error(message, facilitator_funded=facilitator_funded),
                tx_hash=tx_hash,
            )

        if receipt.get("status") != 1:
            logger.error("Transaction %s reverted on-chain", tx_hash)
            return SettlementResult.failed("Transaction reverted", tx_hash=tx_hash)
        return SettlementResult.confirmed(tx_hash)

    async def _simulate(self, tx_fn: Any, sender: str) -> None:
        """``eth_call`` the function as ``sender``; a revert aborts settlement."""
        try:
            await tx_fn.call({"from": sender})
        except Exception as e:
            raise SimulationError(str(e)) from e

    async def _build_and_sign(self, tx_fn: Any, web3: AsyncWeb3, sender: str) -> bytes:
        gas_estimate = await tx_fn.estimate_gas({"from": sender})
        tx_nonce = await web3.eth.get_transaction_count(sender, "pending")
        chain_id = await web3.eth.chain_id

        tx_dict = await tx_fn.build_transaction({
            "from": sender,
            "gas": int(gas_estimate * GAS_LIMIT_MULTIPLIER),
            "nonce": tx_nonce,
            "chainId": chain_id,
        })
        return await sign_transaction(self.signer, tx_dict)

    async def _broadcast(self, raw_transaction: bytes, web3: AsyncWeb3) -> str:
        try:
            tx_hash = await web3.eth.send_raw_transaction(raw_transaction)
        except Exception as e:
            raise TransactionSubmissionError(str(e)) from e
        return AsyncWeb3.to_hex(tx_hash)

    async def _wait_for_receipt(self, tx_hash: str, web3: AsyncWeb3) -> Any:
        """
        Wait for the receipt of ``tx_hash``.

        The deadline is wall-clock ``confirmation_timeout`` and covers slow
        receipt calls as well as the sleeps between polls.

        Raises:
            ConfirmationTimeoutError: No receipt within ``confirmation_timeout``.
        """
        try:
            return await asyncio.wait_for(
                self._poll_receipt(tx_hash, web3), timeout=self.confirmation_timeout
            )
        except asyncio.TimeoutError:
            raise ConfirmationTimeoutError(
                f"Transaction not confirmed within {self.confirmation_timeout:g}s",
                tx_hash=tx_hash,
            ) from None

    async def _poll_receipt(self, tx_hash: str, web3: AsyncWeb3) -> Any:
        """Poll ``eth_getTransactionReceipt`` until the transaction is mined."""
        attempt = 0
        while True:
            attempt += 1
            try:
                receipt = await web3.eth.get_transaction_receipt(tx_hash)
                if receipt:
                    return receipt
            except TransactionNotFound:
                pass  # still pending
            except Exception as e:
                logger.warning("Receipt poll %d for %s failed: %s", attempt, tx_hash, e)
            await self._sleep_async(self.poll_interval)

    @staticmethod
    async def _sleep_async(seconds: float):
        await asyncio.sleep(seconds)
