import logging

from web3 import AsyncWeb3

from ..chains.constants import MIN_NATIVE_BALANCE_WEI
from ..engine.exceptions import BlockchainInteractionError
from ..schemas.payments import FacilitatorBalance
from ..signers.types import Signer

logger = logging.getLogger(__name__)


async def check_facilitator_balance(
    signer: Signer,
    web3: AsyncWeb3,
    min_balance: int = MIN_NATIVE_BALANCE_WEI,
) -> FacilitatorBalance:
    """
    Report the signer account's native balance against the operating minimum.

    Informational only; settlement is gated by its own simulation.

    Raises:
        SignerError: If the signer address cannot be resolved.
        BlockchainInteractionError: If the balance cannot be read.
    """
    address = await signer.address()
    try:
        balance = await web3.eth.get_balance(AsyncWeb3.to_checksum_address(address))
    except Exception as e:
        raise BlockchainInteractionError(f"Failed to read balance of {address}: {e}") from e

    sufficient = balance >= min_balance
    if not sufficient:
        logger.warning("Facilitator %s balance %d wei is below %d wei", address, balance, min_balance)
    return FacilitatorBalance(address=address, balance=balance, sufficient=sufficient)
