"""
Base Schema Models for the Facilitator

Defines the canonical pydantic base class shared by every payload and
result model, plus the status enumeration carried by settlement results.

Core Classes:
    - CanonicalModel: Pydantic base model serialized by wire alias
    - SettlementStatus: Outcome label of a settlement attempt

Dependencies:
    - pydantic: For data validation and serialization
"""

from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict


class CanonicalModel(BaseModel):
    """
    Pydantic base model shared by payloads and results.

    Fields may be populated either by their Python name or by their
    camelCase wire alias (``validAfter``, ``transactionHash`` ...). Output
    of ``to_wire`` uses the aliases so results can be handed straight to an
    HTTP layer.

    Example:
        class MyModel(CanonicalModel):
            name: str
            value: int

        model = MyModel(name="test", value=123)
        model.to_wire()  # {"name": "test", "value": 123}
    """

    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        """JSON-compatible dict keyed by wire aliases, ``None`` fields dropped."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class SettlementStatus(str, Enum):
    """
    Outcome label of a settlement attempt.

    Attributes:
        SUCCESS: Transaction mined with a successful receipt.
        FAILED: Nothing was submitted, submission was rejected, or the
            receipt reports a revert.
        UNKNOWN: Transaction was submitted but no receipt arrived in time.
            It may still be mined; callers poll separately and must not
            resubmit.
    """

    SUCCESS = "success"
    FAILED = "failed"
    UNKNOWN = "unknown"
