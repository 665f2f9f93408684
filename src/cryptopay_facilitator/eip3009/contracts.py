"""
Token contract reads used by verification: the live EIP-712 domain and the
ERC-3009 nonce state.
"""

import asyncio
import logging

from web3 import AsyncWeb3
from web3.exceptions import BadFunctionCallOutput, ContractLogicError

from ..chains.abi import get_eip3009_abi
from ..chains.constants import DEFAULT_DOMAIN_VERSION
from ..chains.standards import EIP712Domain
from ..engine.exceptions import BlockchainInteractionError

logger = logging.getLogger(__name__)


def get_token_contract(web3: AsyncWeb3, token_address: str):
    return web3.eth.contract(
        address=AsyncWeb3.to_checksum_address(token_address),
        abi=get_eip3009_abi(),
    )


async def read_token_domain(web3: AsyncWeb3, token_address: str, chain_id: int) -> EIP712Domain:
    """
    Reconstruct the token's EIP-712 domain from live contract state.

    ``name()`` is required. ``version()`` is optional and falls back to
    ``"2"`` (the FiatToken value) when the call fails.

    Raises:
        BlockchainInteractionError: If ``name()`` cannot be read.
    """
    contract = get_token_contract(web3, token_address)
    name_result, version_result = await asyncio.gather(
        contract.functions.name().call(),
        contract.functions.version().call(),
        return_exceptions=True,
    )
    if isinstance(name_result, BaseException):
        raise BlockchainInteractionError(
            f"Failed to read token contract name(): {name_result}"
        ) from name_result

    if isinstance(version_result, BaseException):
        logger.debug(
            "version() unavailable on %s, using %r: %s",
            token_address, DEFAULT_DOMAIN_VERSION, version_result,
        )
        version = DEFAULT_DOMAIN_VERSION
    else:
        version = version_result

    return EIP712Domain(
        name=name_result,
        version=version,
        chainId=chain_id,
        verifyingContract=AsyncWeb3.to_checksum_address(token_address),
    )


async def is_nonce_used(web3: AsyncWeb3, token_address: str, authorizer: str, nonce: bytes) -> bool:
    """
    Query ``authorizationState(authorizer, nonce)`` on the token contract.

    When the contract itself rejects the call (a token without ERC-3009
    nonce state reverts or returns nothing) the nonce is reported as unused
    and a warning is logged. Such a token gets no replay check here; the
    contract's own bookkeeping at settlement is then the only guard.

    Raises:
        BlockchainInteractionError: If the node could not answer (timeout,
            connection error). Nonce state is then unknown.
    """
    contract = get_token_contract(web3, token_address)
    try:
        return bool(await contract.functions.authorizationState(
            AsyncWeb3.to_checksum_address(authorizer), nonce
        ).call())
    except (ContractLogicError, BadFunctionCallOutput) as e:
        logger.warning(
            "authorizationState query failed for token %s payer %s; treating nonce as unused: %s",
            token_address, authorizer, e,
        )
        return False
    except Exception as e:
        raise BlockchainInteractionError(
            f"authorizationState query failed for token {token_address}: {e}"
        ) from e
