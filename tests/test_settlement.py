"""
Settlement Test Suite

Exercises both settlement paths against the mocked token contract and RPC
node: simulation, signing, broadcast, receipt polling and the mapping of
failures onto ``SettlementResult``.

Usage:
    pytest tests/test_settlement.py -v
"""

import asyncio
import time
from unittest.mock import AsyncMock, patch

import pytest
from eth_account import Account
from web3.exceptions import ContractLogicError, TransactionNotFound

from cryptopay_facilitator.eip3009.errors import (
    SettlementErrorCategory,
    classify_settlement_error,
    describe_settlement_error,
)
from cryptopay_facilitator.eip3009.settlement import SettlementExecutor
from cryptopay_facilitator.schemas.bases import SettlementStatus
from cryptopay_facilitator.signers import LocalSigner, LocalSignerConfig

from facilitator_mocks import (
    AMOUNT_1_USDC,
    FACILITATOR_ADDRESS,
    FACILITATOR_PRIVATE_KEY,
    MOCK_TX_HASH_HEX,
    NONCE,
    PAYER_ADDRESS,
    RECIPIENT_ADDRESS,
    MockContract,
    MockWeb3Provider,
    create_passkey_payload,
    create_signed_payload,
)


@pytest.fixture
def executor():
    signer = LocalSigner(LocalSignerConfig(private_key=FACILITATOR_PRIVATE_KEY))
    return SettlementExecutor(signer, confirmation_timeout=1.0, poll_interval=0.25)


class TestSettleAuthorization:

    @pytest.mark.asyncio
    async def test_success(self, executor):
        web3 = MockWeb3Provider()
        payload = create_signed_payload()

        result = await executor.settle_authorization(payload, web3)

        assert result.success is True
        assert result.status is SettlementStatus.SUCCESS
        assert result.transaction_hash == MOCK_TX_HASH_HEX
        assert result.error is None

    @pytest.mark.asyncio
    async def test_passes_authorization_arguments(self, executor):
        web3 = MockWeb3Provider()
        payload = create_signed_payload()

        await executor.settle_authorization(payload, web3)

        args = web3.contract.functions.transferWithAuthorization.call_args.args
        assert args[0] == PAYER_ADDRESS
        assert args[1] == RECIPIENT_ADDRESS
        assert args[2] == AMOUNT_1_USDC
        assert args[5] == bytes.fromhex(NONCE[2:])
        assert args[6] in (27, 28)
        assert len(args[7]) == len(args[8]) == 32

    @pytest.mark.asyncio
    async def test_broadcast_is_signed_by_facilitator(self, executor):
        web3 = MockWeb3Provider()

        await executor.settle_authorization(create_signed_payload(), web3)

        raw = web3.eth.send_raw_transaction.call_args.args[0]
        assert Account.recover_transaction(raw) == FACILITATOR_ADDRESS
        tx_fn = web3.contract.functions.transferWithAuthorization.return_value
        tx_fn.call.assert_awaited_once_with({"from": FACILITATOR_ADDRESS})
        built = tx_fn.build_transaction.call_args.args[0]
        assert built["nonce"] == 7
        assert built["gas"] == 96_000

    @pytest.mark.asyncio
    async def test_simulation_revert_sends_nothing(self, executor):
        error = ContractLogicError("execution reverted: FiatTokenV2: invalid signature")
        web3 = MockWeb3Provider(contract=MockContract(simulate_error=error))

        result = await executor.settle_authorization(create_signed_payload(), web3)

        assert result.success is False
        assert result.status is SettlementStatus.FAILED
        assert result.transaction_hash is None
        assert "invalid signature" in result.error
        web3.eth.send_raw_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_used_authorization_is_reported_as_nonce(self, executor):
        error = ContractLogicError("execution reverted: FiatTokenV2: authorization is used or canceled")
        web3 = MockWeb3Provider(contract=MockContract(simulate_error=error))

        result = await executor.settle_authorization(create_signed_payload(), web3)

        assert result.error == "Authorization nonce already used"

    @pytest.mark.asyncio
    async def test_facilitator_nonce_error_is_not_a_used_authorization(self, executor):
        web3 = MockWeb3Provider()
        web3.eth.send_raw_transaction = AsyncMock(side_effect=ValueError("nonce too low"))

        result = await executor.settle_authorization(create_signed_payload(), web3)

        assert result.success is False
        assert result.error == "Facilitator transaction nonce conflict; retry settlement"

    @pytest.mark.asyncio
    async def test_reverted_receipt(self, executor):
        web3 = MockWeb3Provider(receipt={"status": 0, "blockNumber": 1})

        result = await executor.settle_authorization(create_signed_payload(), web3)

        assert result.success is False
        assert result.error == "Transaction reverted"
        assert result.transaction_hash == MOCK_TX_HASH_HEX

    @pytest.mark.asyncio
    async def test_broadcast_failure(self, executor):
        web3 = MockWeb3Provider()
        web3.eth.send_raw_transaction = AsyncMock(
            side_effect=ValueError("insufficient funds for gas * price + value")
        )

        result = await executor.settle_authorization(create_signed_payload(), web3)

        assert result.success is False
        assert result.error == "Facilitator has insufficient gas funds"
        assert result.transaction_hash is None

    @pytest.mark.asyncio
    async def test_confirmation_timeout_is_unknown_and_not_resubmitted(self):
        signer = LocalSigner(LocalSignerConfig(private_key=FACILITATOR_PRIVATE_KEY))
        executor = SettlementExecutor(signer, confirmation_timeout=0.3, poll_interval=0.05)
        web3 = MockWeb3Provider()
        web3.eth.get_transaction_receipt = AsyncMock(side_effect=TransactionNotFound("pending"))

        result = await executor.settle_authorization(create_signed_payload(), web3)

        assert result.success is False
        assert result.status is SettlementStatus.UNKNOWN
        assert result.transaction_hash == MOCK_TX_HASH_HEX
        assert web3.eth.send_raw_transaction.await_count == 1
        assert web3.eth.get_transaction_receipt.await_count >= 2

    @pytest.mark.asyncio
    async def test_confirmation_timeout_bounds_slow_receipt_calls(self):
        signer = LocalSigner(LocalSignerConfig(private_key=FACILITATOR_PRIVATE_KEY))
        executor = SettlementExecutor(signer, confirmation_timeout=0.3, poll_interval=0.05)
        web3 = MockWeb3Provider()

        async def slow_receipt(tx_hash):
            await asyncio.sleep(1.0)
            return None

        web3.eth.get_transaction_receipt = AsyncMock(side_effect=slow_receipt)

        started = time.monotonic()
        result = await executor.settle_authorization(create_signed_payload(), web3)
        elapsed = time.monotonic() - started

        assert result.status is SettlementStatus.UNKNOWN
        assert result.transaction_hash == MOCK_TX_HASH_HEX
        assert elapsed < 0.9
        assert web3.eth.send_raw_transaction.await_count == 1

    @pytest.mark.asyncio
    async def test_receipt_found_after_polling(self, executor):
        web3 = MockWeb3Provider()
        web3.eth.get_transaction_receipt = AsyncMock(side_effect=[
            TransactionNotFound("pending"),
            ConnectionError("node hiccup"),
            {"status": 1, "blockNumber": 9},
        ])

        with patch.object(SettlementExecutor, "_sleep_async", new=AsyncMock()):
            result = await executor.settle_authorization(create_signed_payload(), web3)

        assert result.status is SettlementStatus.SUCCESS


class TestSettleAttested:

    @pytest.mark.asyncio
    async def test_transfers_from_facilitator_balance(self, executor, caplog):
        web3 = MockWeb3Provider()
        payload = create_passkey_payload()

        with caplog.at_level("WARNING"):
            result = await executor.settle_attested(payload, web3)

        assert result.status is SettlementStatus.SUCCESS
        web3.contract.functions.transfer.assert_called_once_with(RECIPIENT_ADDRESS, AMOUNT_1_USDC)
        web3.contract.functions.transferWithAuthorization.assert_not_called()
        assert "Facilitator-funded" in caplog.text

    @pytest.mark.asyncio
    async def test_balance_failure_is_facilitator_balance(self, executor):
        error = ContractLogicError("execution reverted: ERC20: transfer amount exceeds balance")
        web3 = MockWeb3Provider(contract=MockContract(simulate_error=error))

        result = await executor.settle_attested(create_passkey_payload(), web3)

        assert result.error == "Facilitator has insufficient token balance"
        web3.eth.send_raw_transaction.assert_not_awaited()


class TestErrorClassification:

    @pytest.mark.parametrize("message, category", [
        ("insufficient funds for gas * price + value", SettlementErrorCategory.INSUFFICIENT_GAS_FUNDS),
        ("Insufficient Funds for transfer of balance", SettlementErrorCategory.INSUFFICIENT_GAS_FUNDS),
        ("nonce too low: next nonce 7, tx nonce 5", SettlementErrorCategory.TRANSACTION_NONCE_CONFLICT),
        ("replacement transaction underpriced", SettlementErrorCategory.TRANSACTION_NONCE_CONFLICT),
        ("already known", SettlementErrorCategory.TRANSACTION_NONCE_CONFLICT),
        ("FiatTokenV2: authorization is used or canceled", SettlementErrorCategory.NONCE_ALREADY_USED),
        ("ERC20: transfer amount exceeds balance", SettlementErrorCategory.INSUFFICIENT_TOKEN_BALANCE),
        ("execution reverted", SettlementErrorCategory.UNCLASSIFIED),
        ("", SettlementErrorCategory.UNCLASSIFIED),
    ])
    def test_classify(self, message, category):
        assert classify_settlement_error(message) is category

    def test_describe_primary_path(self):
        assert (
            describe_settlement_error("execution reverted: FiatTokenV2: authorization is used or canceled")
            == "Authorization nonce already used"
        )
        assert (
            describe_settlement_error("nonce too low")
            == "Facilitator transaction nonce conflict; retry settlement"
        )
        assert describe_settlement_error("exceeds balance") == "Insufficient token balance"
        assert describe_settlement_error("execution reverted: paused") == "execution reverted: paused"
        assert describe_settlement_error("") == "Unknown error"

    def test_describe_facilitator_funded_path(self):
        assert (
            describe_settlement_error("authorization is used", facilitator_funded=True)
            == "authorization is used"
        )
        assert (
            describe_settlement_error("replacement transaction underpriced", facilitator_funded=True)
            == "Facilitator transaction nonce conflict; retry settlement"
        )
        assert (
            describe_settlement_error("exceeds balance", facilitator_funded=True)
            == "Facilitator has insufficient token balance"
        )
