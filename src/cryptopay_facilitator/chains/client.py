from typing import Dict, Optional

from web3 import AsyncWeb3

from .constants import get_rpc_url


DEFAULT_RPC_TIMEOUT: float = 30.0


def get_web3_instance(
    network: str,
    rpc_overrides: Optional[Dict[str, str]] = None,
    request_timeout: float = DEFAULT_RPC_TIMEOUT,
) -> AsyncWeb3:
    """
    Create an AsyncWeb3 instance for a registered network.

    Every HTTP request made through the returned instance is bounded by
    ``request_timeout`` seconds, so a hung node surfaces as an error rather
    than stalling the caller.

    Args:
        network: Network identifier (e.g. "base-sepolia").
        rpc_overrides: Optional ``{network: url}`` mapping checked before the
            ``RPC_URL_<NETWORK>`` environment variable.
        request_timeout: Per-request timeout in seconds.

    Raises:
        UnsupportedNetworkError: If ``network`` is not registered.

    Example:
        web3 = get_web3_instance("base-sepolia")
        balance = await web3.eth.get_balance("0x...")
    """
    rpc_url = get_rpc_url(network, rpc_overrides)
    return AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(
        rpc_url,
        request_kwargs={"timeout": request_timeout}
    ))
