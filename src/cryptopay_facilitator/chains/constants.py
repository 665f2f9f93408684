"""
EVM Network and Token Configuration

Provides unified access to the supported testnets and the ERC-3009 tokens
deployed on them. Includes RPC URL resolution (environment override first,
public endpoint second) and the native-currency threshold used by the
balance monitor.

A token whose address on a network is ``ZERO_ADDRESS`` is registered but
not deployed there; callers must treat it as unsupported on that network.
"""

import os
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field
import dotenv

from ..engine.exceptions import UnsupportedNetworkError, UnsupportedTokenError

dotenv.load_dotenv()


NetworkId = Literal["sepolia", "base-sepolia", "polygon-amoy", "avalanche-fuji"]
TokenSymbol = Literal["USDC", "JPYC"]

ZERO_ADDRESS: str = "0x0000000000000000000000000000000000000000"

#: Minimum native balance (wei) the facilitator needs to keep paying gas: 0.01 ETH.
MIN_NATIVE_BALANCE_WEI: int = 10_000_000_000_000_000

#: Fallback EIP-712 domain version when a token has no ``version()`` method.
DEFAULT_DOMAIN_VERSION: str = "2"


class NativeCurrency(BaseModel):
    """Native gas currency of a network."""
    name: str
    symbol: str
    decimals: int = 18


class NetworkConfig(BaseModel):
    """EVM testnet configuration."""
    network: str = Field(..., description="Network identifier (e.g. 'base-sepolia')")
    chain_id: int = Field(..., ge=1, description="EIP-155 chain id")
    name: str = Field(..., description="Human-readable network name")
    rpc_url: str = Field(..., description="Default public JSON-RPC endpoint")
    explorer_url: str = Field(..., description="Block explorer URL")
    native_currency: NativeCurrency
    is_testnet: bool = True


class TokenConfig(BaseModel):
    """ERC-20 token configuration with per-network deployment addresses."""
    symbol: str
    name: str = Field(..., description="Token display name")
    decimals: int = Field(..., ge=0)
    supports_eip3009: bool = Field(..., description="Implements transferWithAuthorization")
    addresses: Dict[str, str] = Field(default_factory=dict)


# Testnet only.
_NETWORKS_DATA: Dict[str, Dict] = {
    "sepolia": {
        "chain_id": 11155111,
        "name": "Sepolia",
        "rpc_url": "https://ethereum-sepolia-rpc.publicnode.com",
        "explorer_url": "https://sepolia.etherscan.io",
        "native_currency": {"name": "Ethereum", "symbol": "ETH", "decimals": 18},
    },
    "base-sepolia": {
        "chain_id": 84532,
        "name": "Base Sepolia",
        "rpc_url": "https://sepolia.base.org",
        "explorer_url": "https://sepolia.basescan.org",
        "native_currency": {"name": "Ethereum", "symbol": "ETH", "decimals": 18},
    },
    "polygon-amoy": {
        "chain_id": 80002,
        "name": "Polygon Amoy",
        "rpc_url": "https://rpc-amoy.polygon.technology",
        "explorer_url": "https://amoy.polygonscan.com",
        "native_currency": {"name": "POL", "symbol": "POL", "decimals": 18},
    },
    "avalanche-fuji": {
        "chain_id": 43113,
        "name": "Avalanche Fuji",
        "rpc_url": "https://api.avax-test.network/ext/bc/C/rpc",
        "explorer_url": "https://testnet.snowtrace.io",
        "native_currency": {"name": "Avalanche", "symbol": "AVAX", "decimals": 18},
    },
}

_TOKENS_DATA: Dict[str, Dict] = {
    "USDC": {
        "name": "USD Coin",
        "decimals": 6,
        "supports_eip3009": True,
        "addresses": {
            "sepolia": "0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238",
            "base-sepolia": "0x036CbD53842c5426634e7929541eC2318f3dCF7e",
            "polygon-amoy": "0x41E94Eb019C0762f9Bfcf9Fb1E58725BfB0e7582",
            "avalanche-fuji": "0x5425890298aed601595a70AB815c96711a31Bc65",
        },
    },
    "JPYC": {
        "name": "JPY Coin",
        "decimals": 18,
        "supports_eip3009": True,
        "addresses": {
            "sepolia": "0x431D5dfF03120AFA4bDf332c61A6e1766eF37BDB",
            "base-sepolia": ZERO_ADDRESS,
            "polygon-amoy": "0x431D5dfF03120AFA4bDf332c61A6e1766eF37BDB",
            "avalanche-fuji": "0x431D5dfF03120AFA4bDf332c61A6e1766eF37BDB",
        },
    },
}

SUPPORTED_NETWORKS: Dict[str, NetworkConfig] = {
    network: NetworkConfig(network=network, **data)
    for network, data in _NETWORKS_DATA.items()
}

SUPPORTED_TOKENS: Dict[str, TokenConfig] = {
    symbol: TokenConfig(symbol=symbol, **data)
    for symbol, data in _TOKENS_DATA.items()
}


def get_network_config(network: str) -> NetworkConfig:
    """
    Look up a registered network.

    Raises:
        UnsupportedNetworkError: If ``network`` is not registered.
    """
    config = SUPPORTED_NETWORKS.get(network)
    if config is None:
        raise UnsupportedNetworkError(
            f"Unsupported network: {network!r}. "
            f"Supported networks: {', '.join(SUPPORTED_NETWORKS)}"
        )
    return config


def get_network_by_chain_id(chain_id: int) -> Optional[str]:
    """Return the network identifier for ``chain_id`` or None."""
    for network, config in SUPPORTED_NETWORKS.items():
        if config.chain_id == int(chain_id):
            return network
    return None


def get_token_config(token: str) -> TokenConfig:
    """
    Look up a registered token.

    Raises:
        UnsupportedTokenError: If ``token`` is not registered.
    """
    config = SUPPORTED_TOKENS.get(token)
    if config is None:
        raise UnsupportedTokenError(
            f"Unsupported token: {token!r}. "
            f"Supported tokens: {', '.join(SUPPORTED_TOKENS)}"
        )
    return config


def get_token_address(token: str, network: str) -> str:
    """
    Resolve a token's contract address on a network.

    Returns ``ZERO_ADDRESS`` when the token is registered but not deployed
    on ``network`` (or the network is unknown to the token).

    Raises:
        UnsupportedTokenError: If ``token`` is not registered.
    """
    return get_token_config(token).addresses.get(network, ZERO_ADDRESS)


def is_token_available(token: str, network: str) -> bool:
    return get_token_address(token, network).lower() != ZERO_ADDRESS


def get_available_tokens(network: str) -> List[str]:
    return [symbol for symbol in SUPPORTED_TOKENS if is_token_available(symbol, network)]


def get_available_networks(token: str) -> List[str]:
    config = get_token_config(token)
    return [network for network in config.addresses if is_token_available(token, network)]


def supports_gasless_transfer(token: str) -> bool:
    """Whether the token implements ERC-3009 ``transferWithAuthorization``."""
    return get_token_config(token).supports_eip3009


def rpc_env_key(network: str) -> str:
    """
    Environment variable name for a network's RPC override.

    Example:
        rpc_env_key("base-sepolia")  # "RPC_URL_BASE_SEPOLIA"
    """
    return "RPC_URL_" + network.upper().replace("-", "_")


def get_rpc_url(network: str, overrides: Optional[Dict[str, str]] = None) -> str:
    """
    Resolve the JSON-RPC endpoint for ``network``.

    Resolution order: explicit ``overrides`` mapping, then the
    ``RPC_URL_<NETWORK>`` environment variable, then the public default.

    Raises:
        UnsupportedNetworkError: If ``network`` is not registered.
    """
    config = get_network_config(network)
    if overrides and overrides.get(network):
        return overrides[network]
    return os.getenv(rpc_env_key(network)) or config.rpc_url
