from dataclasses import dataclass
from typing import Any

from eth_typing import ChecksumAddress

from routerswap.constants import MAX_UINT48, MAX_UINT160
from routerswap.exceptions import RouterSwapValueError
from routerswap.types import ChainId

# ref: https://github.com/Uniswap/permit2/blob/main/src/interfaces/IAllowanceTransfer.sol
PERMIT_SINGLE_TYPES: dict[str, list[dict[str, str]]] = {
    "EIP712Domain": [
        {"name": "name", "type": "string"},
        {"name": "chainId", "type": "uint256"},
        {"name": "verifyingContract", "type": "address"},
    ],
    "PermitSingle": [
        {"name": "details", "type": "PermitDetails"},
        {"name": "spender", "type": "address"},
        {"name": "sigDeadline", "type": "uint256"},
    ],
    "PermitDetails": [
        {"name": "token", "type": "address"},
        {"name": "amount", "type": "uint160"},
        {"name": "expiration", "type": "uint48"},
        {"name": "nonce", "type": "uint48"},
    ],
}

# ABI type of the PermitSingle struct, used by the router's PERMIT2_PERMIT command
PERMIT_SINGLE_ABI_TYPE = "((address,uint160,uint48,uint48),address,uint256)"


@dataclass(slots=True, frozen=True)
class PermitDetails:
    token: ChecksumAddress
    amount: int
    expiration: int
    nonce: int

    def __post_init__(self) -> None:
        if not 0 <= self.amount <= MAX_UINT160:
            raise RouterSwapValueError(message=f"Permit amount {self.amount} exceeds uint160.")
        if not 0 <= self.expiration <= MAX_UINT48:
            raise RouterSwapValueError(message=f"Expiration {self.expiration} exceeds uint48.")
        if not 0 <= self.nonce <= MAX_UINT48:
            raise RouterSwapValueError(message=f"Nonce {self.nonce} exceeds uint48.")


@dataclass(slots=True, frozen=True)
class PermitSingle:
    """
    A Permit2 allowance grant for one token, signed off-chain by the owner and redeemed on-chain by
    the spender.
    """

    details: PermitDetails
    spender: ChecksumAddress
    sig_deadline: int

    def as_abi_tuple(self) -> tuple[tuple[str, int, int, int], str, int]:
        return (
            (
                self.details.token,
                self.details.amount,
                self.details.expiration,
                self.details.nonce,
            ),
            self.spender,
            self.sig_deadline,
        )

    def typed_data(self, chain_id: ChainId, permit2: ChecksumAddress) -> dict[str, Any]:
        """
        Build the EIP-712 message for signing. The Permit2 domain has no version field.
        """

        return {
            "types": PERMIT_SINGLE_TYPES,
            "primaryType": "PermitSingle",
            "domain": {
                "name": "Permit2",
                "chainId": chain_id,
                "verifyingContract": permit2,
            },
            "message": {
                "details": {
                    "token": self.details.token,
                    "amount": self.details.amount,
                    "expiration": self.details.expiration,
                    "nonce": self.details.nonce,
                },
                "spender": self.spender,
                "sigDeadline": self.sig_deadline,
            },
        }


@dataclass(slots=True, frozen=True)
class SignedPermit:
    permit: PermitSingle
    signature: bytes
