__all__ = (
    "ADDRESS_BYTES",
    "FEE_BYTES",
    "MAX_UINT24",
    "MAX_UINT48",
    "MAX_UINT160",
    "MAX_UINT256",
    "TOKEN_DECIMALS",
    "WAD",
    "ZERO_ADDRESS",
)

import typing

from routerswap.checksum_cache import get_checksum_address


def _max_uint(bits: int) -> int:
    return typing.cast("int", 2**bits - 1)


MAX_UINT24 = _max_uint(24)
MAX_UINT48 = _max_uint(48)
MAX_UINT160 = _max_uint(160)
MAX_UINT256 = _max_uint(256)

# Close-packed V3 path element sizes
ADDRESS_BYTES = 20
FEE_BYTES = 3

# All tokens handled by this package use 18 decimal places
TOKEN_DECIMALS = 18
WAD = 10**TOKEN_DECIMALS

ZERO_ADDRESS = get_checksum_address("0x0000000000000000000000000000000000000000")
