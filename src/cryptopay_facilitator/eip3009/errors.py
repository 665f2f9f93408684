"""
Settlement error classification.

Maps an opaque provider / contract error message onto a closed set of
categories with actionable user-facing text. Anything unrecognized is
``UNCLASSIFIED`` and the raw message is surfaced unchanged.

Matching is case-insensitive and ordered: gas funds, then the
facilitator's own transaction nonce, then the payer's authorization nonce,
then token balance. A message such as "insufficient funds for gas * price +
value" therefore never reads as a token balance problem, and a node's
"nonce too low" never reads as a replayed authorization.
"""

from enum import Enum
from typing import Tuple


class SettlementErrorCategory(str, Enum):
    INSUFFICIENT_GAS_FUNDS = "insufficient_gas_funds"
    TRANSACTION_NONCE_CONFLICT = "transaction_nonce_conflict"
    NONCE_ALREADY_USED = "nonce_already_used"
    INSUFFICIENT_TOKEN_BALANCE = "insufficient_token_balance"
    UNCLASSIFIED = "unclassified"


_PATTERNS: Tuple[Tuple[SettlementErrorCategory, Tuple[str, ...]], ...] = (
    (SettlementErrorCategory.INSUFFICIENT_GAS_FUNDS, ("insufficient funds",)),
    (SettlementErrorCategory.TRANSACTION_NONCE_CONFLICT, (
        "nonce too low",
        "nonce too high",
        "replacement transaction underpriced",
        "already known",
    )),
    (SettlementErrorCategory.NONCE_ALREADY_USED, ("authorization is used", "authorization nonce")),
    (SettlementErrorCategory.INSUFFICIENT_TOKEN_BALANCE, ("balance",)),
)


def classify_settlement_error(message: str) -> SettlementErrorCategory:
    """
    Classify a settlement failure message.

    Example:
        classify_settlement_error("execution reverted: FiatTokenV2: authorization is used or canceled")
        # SettlementErrorCategory.NONCE_ALREADY_USED
    """
    lowered = (message or "").lower()
    for category, needles in _PATTERNS:
        if any(needle in lowered for needle in needles):
            return category
    return SettlementErrorCategory.UNCLASSIFIED


def describe_settlement_error(message: str, facilitator_funded: bool = False) -> str:
    """
    User-facing text for a settlement failure.

    Args:
        message: Raw error message.
        facilitator_funded: True on the attested path, where tokens come from
            the facilitator's own account and a balance failure is ours. No
            authorization nonce is consumed on that path, so authorization
            nonce messages are passed through raw.
    """
    category = classify_settlement_error(message)
    if category is SettlementErrorCategory.INSUFFICIENT_GAS_FUNDS:
        return "Facilitator has insufficient gas funds"
    if category is SettlementErrorCategory.TRANSACTION_NONCE_CONFLICT:
        return "Facilitator transaction nonce conflict; retry settlement"
    if category is SettlementErrorCategory.NONCE_ALREADY_USED and not facilitator_funded:
        return "Authorization nonce already used"
    if category is SettlementErrorCategory.INSUFFICIENT_TOKEN_BALANCE:
        if facilitator_funded:
            return "Facilitator has insufficient token balance"
        return "Insufficient token balance"
    return message or "Unknown error"
