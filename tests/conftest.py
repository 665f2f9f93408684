import pytest

from cryptopay_facilitator.signers.state import reset_signer


@pytest.fixture(autouse=True)
def _clean_signer_state():
    reset_signer()
    yield
    reset_signer()
