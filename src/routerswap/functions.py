from collections.abc import Sequence
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any

import eth_abi.abi
from eth_typing import ChecksumAddress
from eth_utils.crypto import keccak
from web3 import Web3
from web3.types import BlockIdentifier, TxParams

from routerswap.constants import TOKEN_DECIMALS
from routerswap.exceptions import RouterSwapValueError
from routerswap.types import Timestamp


def encode_function_calldata(
    function_prototype: str, function_arguments: Sequence[Any] | None
) -> bytes:
    """
    Encode the calldata to execute a call to the given function prototype, with ordered arguments.
    The resulting bytes array will include the 4-byte function selector, followed by the
    ABI-encoded arguments.
    """

    if function_arguments is None:
        function_arguments = ()

    return keccak(text=function_prototype)[:4] + eth_abi.abi.encode(
        types=extract_argument_types_from_function_prototype(function_prototype),
        args=function_arguments,
    )


def extract_argument_types_from_function_prototype(function_prototype: str) -> list[str]:
    """
    Extract the argument types from the function prototype.

    e.g. the argument types for the prototype 'function(address,uint256)' are ['address','uint256']
    """

    if function_args := function_prototype[
        function_prototype.find("(") + 1 : function_prototype.find(")") :
    ]:
        return function_args.split(",")

    return []


def raw_call(
    w3: Web3,
    address: ChecksumAddress,
    calldata: bytes,
    return_types: list[str],
    block_identifier: BlockIdentifier | None = None,
) -> tuple[Any, ...]:
    """
    Perform an eth_call at the given address and returns the decoded response.
    """

    return eth_abi.abi.decode(
        types=return_types,
        data=w3.eth.call(
            transaction=TxParams(
                to=address,
                data=calldata,
            ),
            block_identifier=block_identifier,
        ),
    )


def get_latest_timestamp(w3: Web3) -> Timestamp:
    """
    Get the timestamp of the latest block. Deadlines and expirations are measured against chain
    time, which can drift from the local clock.
    """

    block = w3.eth.get_block("latest")
    timestamp = block.get("timestamp")
    if TYPE_CHECKING:
        assert timestamp is not None
    return int(timestamp)


def to_base_units(amount: Decimal | str | int, decimals: int = TOKEN_DECIMALS) -> int:
    """
    Convert a human-readable token amount, e.g. "0.005", to integer base units.

    Amounts with more fractional digits than `decimals` are rejected instead of rounded.
    """

    if isinstance(amount, float):
        raise RouterSwapValueError(
            message="Floating point amounts are not accepted, use a str or Decimal."
        )

    try:
        scaled = Decimal(amount).scaleb(decimals)
    except InvalidOperation:
        raise RouterSwapValueError(message=f"Invalid amount {amount!r}") from None

    if scaled != scaled.to_integral_value():
        raise RouterSwapValueError(
            message=f"Amount {amount} has more than {decimals} decimal places."
        )
    if scaled < 0:
        raise RouterSwapValueError(message=f"Amount {amount} is negative.")

    return int(scaled)


def from_base_units(amount: int, decimals: int = TOKEN_DECIMALS) -> Decimal:
    return Decimal(amount).scaleb(-decimals)
