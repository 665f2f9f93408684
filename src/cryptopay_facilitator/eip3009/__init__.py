from .contracts import get_token_contract, is_nonce_used, read_token_domain
from .verifies import (
    build_typed_data,
    check_payment_fields,
    recover_authorizer,
    verify_erc3009_payment,
)
from .attestation import verify_attested_payment, verify_p256_signature
from .errors import (
    SettlementErrorCategory,
    classify_settlement_error,
    describe_settlement_error,
)
from .settlement import SettlementExecutor
from .balance import check_facilitator_balance

__all__ = [
    "get_token_contract",
    "is_nonce_used",
    "read_token_domain",
    "build_typed_data",
    "check_payment_fields",
    "recover_authorizer",
    "verify_erc3009_payment",
    "verify_attested_payment",
    "verify_p256_signature",
    "SettlementErrorCategory",
    "classify_settlement_error",
    "describe_settlement_error",
    "SettlementExecutor",
    "check_facilitator_balance",
]
