"""
ERC-20 + ERC-3009 Smart Contract ABI Module

Minimal ABI definitions for the token calls the facilitator makes:
reading the EIP-712 domain fields, querying ERC-3009 nonce state, and
executing ``transferWithAuthorization`` or a plain ``transfer``.

Usage:
    from cryptopay_facilitator.chains.abi import get_eip3009_abi

    contract = w3.eth.contract(address=token_address, abi=get_eip3009_abi())
    used = await contract.functions.authorizationState(payer, nonce).call()
"""

from typing import Dict, Any, List


def get_balance_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for ERC-20 ``balanceOf(account)``.

    Returns:
        List[Dict[str, Any]]: ABI for balanceOf function
    """
    return [
        {
            "name": "balanceOf",
            "type": "function",
            "stateMutability": "view",
            "inputs": [{"name": "account", "type": "address"}],
            "outputs": [{"name": "", "type": "uint256"}],
        }
    ]


def get_transfer_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for ERC-20 ``transfer(to, value)``.

    Used by the attested settlement path, where the facilitator moves tokens
    from its own funded account.
    """
    return [
        {
            "name": "transfer",
            "type": "function",
            "stateMutability": "nonpayable",
            "inputs": [
                {"name": "to", "type": "address"},
                {"name": "value", "type": "uint256"},
            ],
            "outputs": [{"name": "", "type": "bool"}],
        }
    ]


def get_name_abi() -> List[Dict[str, Any]]:
    """Get ABI for ERC-20 ``name()``."""
    return [
        {
            "name": "name",
            "type": "function",
            "stateMutability": "view",
            "inputs": [],
            "outputs": [{"name": "", "type": "string"}],
        }
    ]


def get_version_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for the EIP-712 ``version()`` getter.

    Not part of ERC-20; absent on some tokens.
    """
    return [
        {
            "name": "version",
            "type": "function",
            "stateMutability": "view",
            "inputs": [],
            "outputs": [{"name": "", "type": "string"}],
        }
    ]


def get_authorization_state_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for ERC-3009 ``authorizationState(authorizer, nonce)``.

    Returns ``True`` once a nonce has been consumed (or cancelled) for the
    authorizer. The token contract is the source of truth for replay
    protection.
    """
    return [
        {
            "name": "authorizationState",
            "type": "function",
            "stateMutability": "view",
            "inputs": [
                {"name": "authorizer", "type": "address"},
                {"name": "nonce", "type": "bytes32"},
            ],
            "outputs": [{"name": "", "type": "bool"}],
        }
    ]


def get_transfer_with_authorization_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for ERC-3009 ``transferWithAuthorization``.

    The caller passes the signed authorization values (from, to, value,
    validAfter, validBefore, nonce, v, r, s).

    Example::

        contract = w3.eth.contract(address=token, abi=get_transfer_with_authorization_abi())
        fn = contract.functions.transferWithAuthorization(
            from_addr, to_addr, value, valid_after, valid_before,
            nonce_bytes, v, r_bytes, s_bytes,
        )
    """
    return [
        {
            "name": "transferWithAuthorization",
            "type": "function",
            "stateMutability": "nonpayable",
            "inputs": [
                {"name": "from", "type": "address"},
                {"name": "to", "type": "address"},
                {"name": "value", "type": "uint256"},
                {"name": "validAfter", "type": "uint256"},
                {"name": "validBefore", "type": "uint256"},
                {"name": "nonce", "type": "bytes32"},
                {"name": "v", "type": "uint8"},
                {"name": "r", "type": "bytes32"},
                {"name": "s", "type": "bytes32"},
            ],
            "outputs": [],
        }
    ]


def get_eip3009_abi() -> List[Dict[str, Any]]:
    """
    Combined ABI for every token call the facilitator makes.

    Returns:
        List[Dict[str, Any]]: name, version, authorizationState,
        transferWithAuthorization, transfer and balanceOf entries.
    """
    return (
        get_name_abi()
        + get_version_abi()
        + get_authorization_state_abi()
        + get_transfer_with_authorization_abi()
        + get_transfer_abi()
        + get_balance_abi()
    )
