"""
Facilitator Test Suite

End-to-end flows through ``Facilitator``: verify, settle, replay, the
opt-in attested path and the balance monitor. The RPC node is mocked and
the clock pinned so time checks are deterministic.

Usage:
    pytest tests/test_facilitator.py -v
"""

import logging
from unittest.mock import AsyncMock, patch

import pytest
from eth_utils import keccak

from cryptopay_facilitator import Facilitator
from cryptopay_facilitator.config import FacilitatorSettings
from cryptopay_facilitator.eip3009.attestation import INVALID_ATTESTATION
from cryptopay_facilitator.facilitator import ATTESTED_SETTLEMENT_DISABLED, UNSUPPORTED_NETWORK
from cryptopay_facilitator.schemas import SignedPayload
from cryptopay_facilitator.schemas.bases import SettlementStatus
from cryptopay_facilitator.signers import LocalSigner, LocalSignerConfig

from facilitator_mocks import (
    FACILITATOR_ADDRESS,
    FACILITATOR_PRIVATE_KEY,
    MOCK_TX_HASH_HEX,
    NETWORK,
    NOW,
    MockWeb3Provider,
    create_passkey_payload,
    create_requirement,
    create_signed_payload,
)


@pytest.fixture(autouse=True)
def frozen_clock():
    with patch("time.time", return_value=float(NOW)):
        yield


@pytest.fixture
def web3():
    return MockWeb3Provider()


def make_facilitator(web3, **kwargs):
    signer = LocalSigner(LocalSignerConfig(private_key=FACILITATOR_PRIVATE_KEY))
    kwargs.setdefault("confirmation_timeout", 1.0)
    kwargs.setdefault("poll_interval", 0.25)
    return Facilitator(signer, web3_factory=lambda network: web3, **kwargs)


class TestVerifyAndSettle:

    @pytest.mark.asyncio
    async def test_verify_then_settle(self, web3):
        facilitator = make_facilitator(web3)
        payload = create_signed_payload()

        verification = await facilitator.verify(payload)
        settlement = await facilitator.settle(payload)

        assert verification.valid is True
        assert settlement.success is True
        assert settlement.transaction_hash == MOCK_TX_HASH_HEX
        assert settlement.to_wire() == {
            "success": True,
            "transactionHash": MOCK_TX_HASH_HEX,
            "status": "success",
        }

    @pytest.mark.asyncio
    async def test_replay_is_rejected_after_settlement(self, web3):
        facilitator = make_facilitator(web3)
        payload = create_signed_payload()

        first = await facilitator.settle(payload)
        # The token contract now reports the nonce as consumed.
        web3.contract.functions.authorizationState.return_value.call.return_value = True
        second = await facilitator.settle(payload)

        assert first.success is True
        assert second.success is False
        assert second.error == "Authorization nonce already used"
        assert second.transaction_hash is None
        assert web3.eth.send_raw_transaction.await_count == 1

    @pytest.mark.asyncio
    async def test_invalid_payload_is_not_submitted(self, web3):
        facilitator = make_facilitator(web3)
        payload = create_signed_payload(requirement=create_requirement(expires_at=NOW - 1))

        result = await facilitator.settle(payload)

        assert result.error == "Payment request expired"
        assert result.status is SettlementStatus.FAILED
        web3.eth.send_raw_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unsupported_network(self, web3):
        facilitator = make_facilitator(web3)
        payload = create_signed_payload(requirement=create_requirement(network="ethereum-mainnet"))

        assert (await facilitator.verify(payload)).error == UNSUPPORTED_NETWORK
        assert (await facilitator.settle(payload)).error == UNSUPPORTED_NETWORK

    @pytest.mark.asyncio
    async def test_web3_instance_reused_per_network(self, web3):
        calls = []

        def factory(network):
            calls.append(network)
            return web3

        signer = LocalSigner(LocalSignerConfig(private_key=FACILITATOR_PRIVATE_KEY))
        facilitator = Facilitator(signer, web3_factory=factory)
        payload = create_signed_payload()

        await facilitator.verify(payload)
        await facilitator.verify(payload)

        assert calls == [NETWORK]


class TestAttestedSettlement:

    @pytest.mark.asyncio
    async def test_disabled_by_default(self, web3):
        facilitator = make_facilitator(web3)

        result = await facilitator.settle(create_passkey_payload())

        assert result.success is False
        assert result.error == ATTESTED_SETTLEMENT_DISABLED
        web3.contract.functions.transfer.assert_not_called()
        web3.eth.send_raw_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_enabled_with_valid_attestation(self, web3):
        facilitator = make_facilitator(web3, allow_attested_settlement=True)

        result = await facilitator.settle(create_passkey_payload())

        assert result.status is SettlementStatus.SUCCESS
        web3.contract.functions.transfer.assert_called_once()
        web3.contract.functions.transferWithAuthorization.assert_not_called()

    @pytest.mark.asyncio
    async def test_attestation_over_wrong_digest(self, web3):
        facilitator = make_facilitator(web3, allow_attested_settlement=True)
        payload = create_passkey_payload(digest=keccak(b"some other message"))

        assert (await facilitator.verify(payload)).error == INVALID_ATTESTATION
        result = await facilitator.settle(payload)

        assert result.error == INVALID_ATTESTATION
        web3.eth.send_raw_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_attestation_missing_public_key(self, web3):
        facilitator = make_facilitator(web3, allow_attested_settlement=True)
        body = create_passkey_payload().to_wire()
        del body["publicKey"]

        result = await facilitator.verify(SignedPayload.model_validate(body))

        assert result.error == INVALID_ATTESTATION

    @pytest.mark.asyncio
    async def test_attested_payload_still_runs_field_checks(self, web3):
        facilitator = make_facilitator(web3, allow_attested_settlement=True)
        payload = create_passkey_payload(requirement=create_requirement(expires_at=NOW - 1))

        assert (await facilitator.settle(payload)).error == "Payment request expired"


class TestBalance:

    @pytest.mark.parametrize("balance, sufficient", [
        (10**16, True),
        (10**16 - 1, False),
        (0, False),
    ])
    @pytest.mark.asyncio
    async def test_threshold(self, balance, sufficient):
        facilitator = make_facilitator(MockWeb3Provider(native_balance=balance))

        result = await facilitator.check_balance(NETWORK)

        assert result.address == FACILITATOR_ADDRESS
        assert result.balance == balance
        assert result.sufficient is sufficient

    @pytest.mark.asyncio
    async def test_startup_check_logs_balance(self, web3, caplog):
        facilitator = make_facilitator(web3)

        with caplog.at_level(logging.INFO):
            result = await facilitator.startup_check(NETWORK)

        assert result.sufficient is True
        assert "Local Private Key" in caplog.text
        assert FACILITATOR_ADDRESS in caplog.text

    @pytest.mark.asyncio
    async def test_startup_check_does_not_raise(self, web3, caplog):
        web3.eth.get_balance = AsyncMock(side_effect=ConnectionError("connection refused"))
        facilitator = make_facilitator(web3)

        with caplog.at_level(logging.ERROR):
            result = await facilitator.startup_check(NETWORK)

        assert result is None
        assert "connection refused" in caplog.text


def test_from_settings():
    settings = FacilitatorSettings(
        signer=LocalSignerConfig(private_key=FACILITATOR_PRIVATE_KEY),
        confirmation_timeout=30,
        poll_interval=1,
        allow_attested_settlement=True,
    )

    facilitator = Facilitator.from_settings(settings)

    assert isinstance(facilitator.signer, LocalSigner)
    assert facilitator.allow_attested_settlement is True
    assert facilitator.executor.confirmation_timeout == 30
    assert facilitator.executor.poll_interval == 1
