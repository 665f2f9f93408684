from .constants import (
    NetworkId,
    TokenSymbol,
    ZERO_ADDRESS,
    MIN_NATIVE_BALANCE_WEI,
    DEFAULT_DOMAIN_VERSION,
    NativeCurrency,
    NetworkConfig,
    TokenConfig,
    SUPPORTED_NETWORKS,
    SUPPORTED_TOKENS,
    get_network_config,
    get_network_by_chain_id,
    get_token_config,
    get_token_address,
    is_token_available,
    get_available_tokens,
    get_available_networks,
    supports_gasless_transfer,
    rpc_env_key,
    get_rpc_url,
)
from .abi import get_eip3009_abi
from .client import get_web3_instance, DEFAULT_RPC_TIMEOUT
from .standards import (
    EIP712Domain,
    TransferWithAuthorizationMessage,
    TransferWithAuthorizationTypedData,
    hash_signable_message,
)

__all__ = [
    "NetworkId",
    "TokenSymbol",
    "ZERO_ADDRESS",
    "MIN_NATIVE_BALANCE_WEI",
    "DEFAULT_DOMAIN_VERSION",
    "NativeCurrency",
    "NetworkConfig",
    "TokenConfig",
    "SUPPORTED_NETWORKS",
    "SUPPORTED_TOKENS",
    "get_network_config",
    "get_network_by_chain_id",
    "get_token_config",
    "get_token_address",
    "is_token_available",
    "get_available_tokens",
    "get_available_networks",
    "supports_gasless_transfer",
    "rpc_env_key",
    "get_rpc_url",
    "get_eip3009_abi",
    "get_web3_instance",
    "DEFAULT_RPC_TIMEOUT",
    "EIP712Domain",
    "TransferWithAuthorizationMessage",
    "TransferWithAuthorizationTypedData",
    "hash_signable_message",
]
