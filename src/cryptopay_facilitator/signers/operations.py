"""
Signing operations built on ``Signer.sign_hash``.

Every signer exposes only ``sign_hash``; EIP-191 messages, EIP-712 typed
data and EIP-1559 transactions are hashed here and handed to it, so the
three signer kinds behave identically for callers.
"""

from typing import Any, Dict

from eth_account.messages import encode_defunct, encode_typed_data
from eth_account.typed_transactions import TypedTransaction

from ..chains.standards import hash_signable_message
from ..engine.exceptions import SignerError
from .codec import Curve
from .types import HashSignature, Signer


async def sign_typed_data(signer: Signer, typed_data: Dict[str, Any]) -> HashSignature:
    """
    Sign EIP-712 typed data.

    Args:
        signer: Any signer.
        typed_data: Full ``{types, primaryType, domain, message}`` mapping.
    """
    digest = hash_signable_message(encode_typed_data(full_message=typed_data))
    return await signer.sign_hash(digest)


async def sign_message(signer: Signer, text: str) -> HashSignature:
    """Sign a UTF-8 text message with the EIP-191 personal-sign prefix."""
    digest = hash_signable_message(encode_defunct(text=text))
    return await signer.sign_hash(digest)


async def sign_transaction(signer: Signer, transaction: Dict[str, Any]) -> bytes:
    """
    Sign a typed (EIP-2718) transaction and return the raw encoded bytes.

    ``transaction`` is the dict produced by ``build_transaction``; a ``from``
    key is dropped, ``type`` defaults to 2 (EIP-1559) and ``accessList`` to
    empty. A legacy ``gasPrice`` becomes both EIP-1559 fee caps.

    Raises:
        SignerError: If the signer's curve cannot produce an Ethereum
            transaction signature.
    """
    if signer.curve is not Curve.SECP256K1:
        raise SignerError(f"{signer.kind} signer cannot sign Ethereum transactions")

    unsigned_dict = {k: v for k, v in transaction.items() if k != "from"}
    if "gasPrice" in unsigned_dict:
        gas_price = unsigned_dict.pop("gasPrice")
        unsigned_dict.setdefault("maxFeePerGas", gas_price)
        unsigned_dict.setdefault("maxPriorityFeePerGas", gas_price)
    unsigned_dict.setdefault("type", 2)
    unsigned_dict.setdefault("accessList", [])

    unsigned = TypedTransaction.from_dict(unsigned_dict)
    signature = await signer.sign_hash(unsigned.hash())

    signed = TypedTransaction.from_dict({
        **unsigned.as_dict(),
        "v": signature.y_parity,
        "r": int.from_bytes(signature.r, "big"),
        "s": int.from_bytes(signature.s, "big"),
    })
    return signed.encode()
