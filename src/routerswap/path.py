from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from itertools import cycle

from eth_typing import ChecksumAddress
from hexbytes import HexBytes

from routerswap.checksum_cache import get_checksum_address
from routerswap.constants import ADDRESS_BYTES, FEE_BYTES, MAX_UINT24
from routerswap.exceptions import InvalidPath


def _address_to_bytes(address: str | bytes) -> bytes:
    try:
        address_bytes = bytes(HexBytes(address))
    except (TypeError, ValueError):
        raise InvalidPath(message=f"Invalid address {address!r}") from None
    if len(address_bytes) != ADDRESS_BYTES:
        raise InvalidPath(message=f"Address {address!r} is not {ADDRESS_BYTES} bytes.")
    return address_bytes


def _fee_to_bytes(fee: int) -> bytes:
    if not 0 <= fee <= MAX_UINT24:
        raise InvalidPath(message=f"Fee {fee} does not fit in a uint24.")
    return fee.to_bytes(length=FEE_BYTES, byteorder="big")


def encode_v3_path(tokens: Sequence[str | bytes], fees: Sequence[int]) -> bytes:
    """
    Encode the `path` bytes consumed by the V3 quoter and the router's V3 swap commands. `path` is a
    close-packed encoding of 20 byte token addresses, interleaved with 3 byte big-endian fees:

    [token0][fee0][token1][fee1][token2]...
    """

    if len(tokens) < 2:  # noqa: PLR2004
        raise InvalidPath(message="A path requires at least two tokens.")
    if len(fees) != len(tokens) - 1:
        raise InvalidPath(message=f"{len(tokens)} tokens require {len(tokens) - 1} fees.")

    path = _address_to_bytes(tokens[0])
    for fee, token in zip(fees, tokens[1:], strict=True):
        path += _fee_to_bytes(fee) + _address_to_bytes(token)
    return path


def encode_path(token_in: str | bytes, fee: int, token_out: str | bytes) -> bytes:
    return encode_v3_path(tokens=(token_in, token_out), fees=(fee,))


def decode_v3_path(path: bytes) -> list[ChecksumAddress | int]:
    """
    Decode the `path` bytes used by the V3 quoter and router contracts into an alternating list of
    token addresses and fees.
    """

    def _extract_address(chunk: bytes) -> ChecksumAddress:
        return get_checksum_address(chunk)

    def _extract_fee(chunk: bytes) -> int:
        return int.from_bytes(chunk, byteorder="big")

    if any(
        [
            len(path) < ADDRESS_BYTES + FEE_BYTES + ADDRESS_BYTES,
            len(path) % (ADDRESS_BYTES + FEE_BYTES) != ADDRESS_BYTES,
        ]
    ):
        raise InvalidPath(message=f"Invalid path length {len(path)}.")

    chunk_length_and_decoder_function: Iterator[
        tuple[
            int,
            Callable[
                [bytes],
                ChecksumAddress | int,
            ],
        ]
    ] = cycle(
        [
            (ADDRESS_BYTES, _extract_address),
            (FEE_BYTES, _extract_fee),
        ]
    )

    path_offset = 0
    decoded_path: list[ChecksumAddress | int] = []
    while path_offset != len(path):
        byte_length, extraction_func = next(chunk_length_and_decoder_function)
        chunk = bytes(path[path_offset : path_offset + byte_length])
        decoded_path.append(extraction_func(chunk))
        path_offset += byte_length

    return decoded_path


@dataclass(slots=True, frozen=True)
class SwapHop:
    token_in: ChecksumAddress
    fee: int
    token_out: ChecksumAddress


@dataclass(slots=True, frozen=True)
class SwapRoute:
    """
    An ordered list of hops. Each hop's output token is the next hop's input token.
    """

    hops: tuple[SwapHop, ...]

    def __post_init__(self) -> None:
        if not self.hops:
            raise InvalidPath(message="A route requires at least one hop.")
        for previous_hop, hop in zip(self.hops, self.hops[1:], strict=False):
            if previous_hop.token_out != hop.token_in:
                raise InvalidPath(
                    message=f"Hop output {previous_hop.token_out} does not match next hop input "
                    f"{hop.token_in}."
                )

    @classmethod
    def single_hop(cls, token_in: str, fee: int, token_out: str) -> "SwapRoute":
        return cls(
            hops=(
                SwapHop(
                    token_in=get_checksum_address(token_in),
                    fee=fee,
                    token_out=get_checksum_address(token_out),
                ),
            )
        )

    @classmethod
    def decode(cls, path: bytes) -> "SwapRoute":
        decoded = decode_v3_path(path)
        tokens = decoded[::2]
        fees = decoded[1::2]
        return cls(
            hops=tuple(
                SwapHop(token_in=token_in, fee=fee, token_out=token_out)  # type: ignore[arg-type]
                for token_in, fee, token_out in zip(tokens, fees, tokens[1:], strict=False)
            )
        )

    @property
    def token_in(self) -> ChecksumAddress:
        return self.hops[0].token_in

    @property
    def token_out(self) -> ChecksumAddress:
        return self.hops[-1].token_out

    @property
    def tokens(self) -> tuple[ChecksumAddress, ...]:
        return (self.hops[0].token_in, *(hop.token_out for hop in self.hops))

    @property
    def fees(self) -> tuple[int, ...]:
        return tuple(hop.fee for hop in self.hops)

    def encode(self) -> bytes:
        return encode_v3_path(tokens=self.tokens, fees=self.fees)
