from json import JSONDecodeError
from pathlib import Path
from typing import TYPE_CHECKING, cast

import tenacity
from pydantic import HttpUrl, WebsocketUrl
from ujson import loads as ujson_loads
from web3 import HTTPProvider, IPCProvider, JSONBaseProvider, LegacyWebSocketProvider, Web3
from web3.types import RPCResponse

from routerswap.exceptions import RouterSwapValueError
from routerswap.logging import logger
from routerswap.types import ChainId


def _fast_decode_rpc_response(raw_response: bytes) -> RPCResponse:
    """
    Decode the JSON-RPC response using ujson.
    """

    try:
        return cast("RPCResponse", ujson_loads(raw_response))
    except ValueError:
        # Re-raise as a dummy JSONDecodeError so web3py's exception handling works as intended.
        msg = "JSON failure"
        raise JSONDecodeError(msg, "[]", 0) from None


def wait_until_connected(w3: Web3, timeout: float = 10) -> None:
    w3_connected_check_with_retry = tenacity.Retrying(
        stop=tenacity.stop_after_delay(timeout),
        wait=tenacity.wait_exponential_jitter(),
        retry=tenacity.retry_if_result(lambda result: result is False),
    )
    try:
        w3_connected_check_with_retry(fn=w3.is_connected)
    except tenacity.RetryError as exc:
        raise RouterSwapValueError(message="Web3 instance is not connected.") from exc


def connect(
    endpoint: HttpUrl | WebsocketUrl | Path | str,
    *,
    chain_id: ChainId | None = None,
    optimize: bool = True,
) -> Web3:
    """
    Build a connected `Web3` instance for an HTTP, websocket or IPC endpoint.

    If `chain_id` is given, the endpoint must report the same chain.
    """

    match endpoint:
        case HttpUrl():
            w3 = Web3(HTTPProvider(str(endpoint)))
        case WebsocketUrl():
            w3 = Web3(LegacyWebSocketProvider(str(endpoint)))
        case Path():
            w3 = Web3(IPCProvider(str(endpoint)))
        case str() if endpoint.startswith(("http://", "https://")):
            w3 = Web3(HTTPProvider(endpoint))
        case str() if endpoint.startswith(("ws://", "wss://")):
            w3 = Web3(LegacyWebSocketProvider(endpoint))
        case str():
            w3 = Web3(IPCProvider(endpoint))
        case _:
            raise RouterSwapValueError(message=f"Unsupported endpoint {endpoint!r}")

    wait_until_connected(w3)

    if chain_id is not None and w3.eth.chain_id != chain_id:
        raise RouterSwapValueError(
            message=f"The chain ID ({w3.eth.chain_id}) at endpoint {endpoint} does not match "
            f"the expected chain ID ({chain_id})."
        )

    if optimize:
        # Remove all middleware and monkey-patch the JSON decoding for RPC responses
        w3.middleware_onion.clear()
        if TYPE_CHECKING:
            assert isinstance(w3.provider, JSONBaseProvider)
        w3.provider.decode_rpc_response = _fast_decode_rpc_response  # type:ignore[method-assign]

    logger.debug(f"Connected to {endpoint}")
    return w3
