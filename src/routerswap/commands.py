import enum
from dataclasses import dataclass, field
from typing import Any

import eth_abi.abi
from eth_abi.exceptions import DecodingError, EncodingError
from eth_typing import ChecksumAddress

from routerswap.exceptions import BuildError
from routerswap.logging import logger
from routerswap.permit import PERMIT_SINGLE_ABI_TYPE, SignedPermit

# ref: https://github.com/Uniswap/universal-router/blob/main/contracts/libraries/Commands.sol
COMMAND_TYPE_MASK = 0x3F
FLAG_ALLOW_REVERT = 0x80


class Opcode(enum.IntEnum):
    SWAP_EXACT_IN = 0x00  # V3_SWAP_EXACT_IN
    SWEEP = 0x04
    TRANSFER = 0x05
    PERMIT_AUTHORIZATION = 0x0A  # PERMIT2_PERMIT
    WRAP_NATIVE = 0x0B  # WRAP_ETH
    UNWRAP_NATIVE = 0x0C  # UNWRAP_WETH


# ABI layout of the input blob for each opcode
COMMAND_INPUT_TYPES: dict[Opcode, tuple[str, ...]] = {
    Opcode.SWAP_EXACT_IN: ("address", "uint256", "uint256", "bytes", "bool"),
    Opcode.SWEEP: ("address", "address", "uint256"),
    Opcode.TRANSFER: ("address", "address", "uint256"),
    Opcode.PERMIT_AUTHORIZATION: (PERMIT_SINGLE_ABI_TYPE, "bytes"),
    Opcode.WRAP_NATIVE: ("address", "uint256"),
    Opcode.UNWRAP_NATIVE: ("address", "uint256"),
}


def _encode(opcode: Opcode, args: tuple[Any, ...]) -> bytes:
    try:
        return eth_abi.abi.encode(types=COMMAND_INPUT_TYPES[opcode], args=args)
    except EncodingError as exc:
        raise BuildError(message=f"Could not encode {opcode.name} input: {exc}") from exc


def encode_wrap_native(recipient: ChecksumAddress, amount: int) -> bytes:
    """
    WRAP_ETH: wrap `amount` of the native currency sent with the transaction and credit the
    wrapped token to `recipient`.
    """
    return _encode(Opcode.WRAP_NATIVE, (recipient, amount))


def encode_unwrap_native(recipient: ChecksumAddress, amount_min: int) -> bytes:
    """
    UNWRAP_WETH: unwrap the router's entire wrapped native balance and send it to `recipient`,
    reverting if the balance is below `amount_min`.
    """
    return _encode(Opcode.UNWRAP_NATIVE, (recipient, amount_min))


def encode_swap_exact_in(
    recipient: ChecksumAddress,
    amount_in: int,
    amount_out_min: int,
    path: bytes,
    *,
    payer_is_user: bool,
) -> bytes:
    """
    V3_SWAP_EXACT_IN. If `payer_is_user` is set, the input is pulled from the sender through
    Permit2, otherwise it must already be held by the router.
    """
    return _encode(
        Opcode.SWAP_EXACT_IN,
        (recipient, amount_in, amount_out_min, path, payer_is_user),
    )


def encode_permit(signed_permit: SignedPermit) -> bytes:
    return _encode(
        Opcode.PERMIT_AUTHORIZATION,
        (signed_permit.permit.as_abi_tuple(), signed_permit.signature),
    )


def decode_command(opcode: int, inputs: bytes) -> tuple[Any, ...]:
    """
    Decode an input blob for one of the known opcodes. The allow-revert flag is ignored.
    """

    try:
        command = Opcode(opcode & COMMAND_TYPE_MASK)
    except ValueError:
        raise BuildError(message=f"Unknown opcode {opcode:#04x}") from None

    try:
        return eth_abi.abi.decode(types=COMMAND_INPUT_TYPES[command], data=inputs)
    except DecodingError as exc:
        raise BuildError(message=f"Could not decode {command.name} input: {exc}") from exc


@dataclass(slots=True, frozen=True)
class SwapCommand:
    """
    The `commands` and `inputs` arguments for the router's `execute` function. Byte `i` of
    `commands` is the opcode consuming `inputs[i]`.
    """

    commands: bytes
    inputs: tuple[bytes, ...]

    def __len__(self) -> int:
        return len(self.commands)

    @property
    def opcodes(self) -> tuple[Opcode, ...]:
        return tuple(Opcode(command & COMMAND_TYPE_MASK) for command in self.commands)


@dataclass(slots=True)
class CommandBuilder:
    """
    Accumulates router commands in execution order.

    The builder does not check that the sequence makes sense, e.g. that a wrap precedes the swap
    consuming it. The caller is responsible for ordering.
    """

    _opcodes: list[int] = field(default_factory=list)
    _inputs: list[bytes] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self._opcodes)

    def append(self, opcode: Opcode | int, params: bytes, *, allow_revert: bool = False) -> None:
        if not 0 <= opcode <= COMMAND_TYPE_MASK:
            raise BuildError(message=f"Opcode {opcode:#04x} is outside the command range.")

        command = opcode | FLAG_ALLOW_REVERT if allow_revert else opcode
        self._opcodes.append(command)
        self._inputs.append(params)
        logger.debug(f"Appended command {command:#04x} ({len(params)} byte input)")

    def wrap_native(self, recipient: ChecksumAddress, amount: int) -> None:
        self.append(Opcode.WRAP_NATIVE, encode_wrap_native(recipient, amount))

    def permit(self, signed_permit: SignedPermit) -> None:
        self.append(Opcode.PERMIT_AUTHORIZATION, encode_permit(signed_permit))

    def swap_exact_in(
        self,
        recipient: ChecksumAddress,
        amount_in: int,
        amount_out_min: int,
        path: bytes,
        *,
        payer_is_user: bool,
    ) -> None:
        self.append(
            Opcode.SWAP_EXACT_IN,
            encode_swap_exact_in(
                recipient,
                amount_in,
                amount_out_min,
                path,
                payer_is_user=payer_is_user,
            ),
        )

    def unwrap_native(self, recipient: ChecksumAddress, amount_min: int) -> None:
        self.append(Opcode.UNWRAP_NATIVE, encode_unwrap_native(recipient, amount_min))

    def build(self) -> SwapCommand:
        return SwapCommand(
            commands=bytes(self._opcodes),
            inputs=tuple(self._inputs),
        )
