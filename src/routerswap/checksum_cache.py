import functools

from cchecksum import to_checksum_address
from eth_typing import ChecksumAddress, HexStr


@functools.lru_cache(maxsize=1_024)
def _checksum(address: str | bytes) -> ChecksumAddress:
    return to_checksum_address(address)


def get_checksum_address(address: HexStr | str | bytes) -> ChecksumAddress:
    """
    Return the checksummed form of a hex string or 20-byte address.

    Hex strings are lowercased first, so the same address given in different cases is checksummed
    once.
    """

    if isinstance(address, str):
        address = address.lower()
    return _checksum(address)
