"""
EIP-712 / EIP-3009 typed data.

The facilitator only ever hashes one structure: ERC-3009
``TransferWithAuthorization`` under the token's live EIP-712 domain. Field
order in the type tables below is part of the type hash and must match the
token contract.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Tuple

from eth_account.messages import SignableMessage, encode_typed_data
from eth_utils import keccak


DOMAIN_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("name", "string"),
    ("version", "string"),
    ("chainId", "uint256"),
    ("verifyingContract", "address"),
)

TRANSFER_WITH_AUTHORIZATION_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("from", "address"),
    ("to", "address"),
    ("value", "uint256"),
    ("validAfter", "uint256"),
    ("validBefore", "uint256"),
    ("nonce", "bytes32"),
)

TRANSFER_WITH_AUTHORIZATION = "TransferWithAuthorization"


def _type_table(fields: Tuple[Tuple[str, str], ...]) -> List[Dict[str, str]]:
    return [{"name": name, "type": type_} for name, type_ in fields]


def hash_signable_message(signable: SignableMessage) -> bytes:
    """EIP-191 digest: keccak256(0x19 || version || header || body)."""
    return keccak(b"\x19" + signable.version + signable.header + signable.body)


@dataclass(frozen=True)
class EIP712Domain:
    """Domain separator inputs; binds a signature to one token on one chain."""
    name: str
    version: str
    chainId: int
    verifyingContract: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class TransferWithAuthorizationMessage:
    """
    ERC-3009 message body.

    ``from`` is a Python keyword, so the payer is ``authorizer`` here and
    ``recipient`` mirrors it for ``to``; ``to_dict()`` restores the wire names.
    """
    authorizer: str
    recipient: str
    value: int
    validAfter: int
    validBefore: int
    nonce: str

    def to_dict(self) -> Dict[str, Any]:
        body = asdict(self)
        body["from"] = body.pop("authorizer")
        body["to"] = body.pop("recipient")
        return body


@dataclass(frozen=True)
class TransferWithAuthorizationTypedData:
    """
    Domain plus message, ready for eth_account.

    ``to_dict()`` is the ``{types, primaryType, domain, message}`` layout of
    ``eth_signTypedData_v4``; ``signing_hash()`` is the 32-byte digest a
    raw-hash signer signs and ``ecrecover`` checks.
    """
    domain: EIP712Domain
    message: TransferWithAuthorizationMessage

    def to_dict(self) -> Dict[str, Any]:
        return {
            "types": {
                "EIP712Domain": _type_table(DOMAIN_FIELDS),
                TRANSFER_WITH_AUTHORIZATION: _type_table(TRANSFER_WITH_AUTHORIZATION_FIELDS),
            },
            "primaryType": TRANSFER_WITH_AUTHORIZATION,
            "domain": self.domain.to_dict(),
            "message": self.message.to_dict(),
        }

    def signable(self) -> SignableMessage:
        return encode_typed_data(full_message=self.to_dict())

    def signing_hash(self) -> bytes:
        """keccak256(0x19 || 0x01 || domainSeparator || structHash)."""
        return hash_signable_message(self.signable())
