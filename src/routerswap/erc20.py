from eth_typing import ChecksumAddress
from web3 import Web3
from web3.types import BlockIdentifier

from routerswap.checksum_cache import get_checksum_address
from routerswap.constants import TOKEN_DECIMALS
from routerswap.functions import encode_function_calldata, raw_call
from routerswap.logging import logger


class Erc20Token:
    """
    An ERC-20 token contract. Amounts are integers in base units, all tokens are assumed to use 18
    decimal places.
    """

    decimals = TOKEN_DECIMALS

    def __init__(self, address: str, w3: Web3) -> None:
        self.address = get_checksum_address(address)
        self.w3 = w3

    def __repr__(self) -> str:  # pragma: no cover
        return f"{self.__class__.__name__}(address={self.address})"

    def __eq__(self, other: object) -> bool:
        match other:
            case Erc20Token():
                return self.address == other.address
            case str():
                return self.address.lower() == other.lower()
            case _:
                return NotImplemented

    def __hash__(self) -> int:
        return hash(self.address)

    def get_allowance(
        self,
        owner: ChecksumAddress,
        spender: ChecksumAddress,
        block_identifier: BlockIdentifier | None = None,
    ) -> int:
        """
        Retrieve the amount that can be spent by `spender` on behalf of `owner`.
        """

        allowance: int
        (allowance,) = raw_call(
            w3=self.w3,
            address=self.address,
            calldata=encode_function_calldata(
                function_prototype="allowance(address,address)",
                function_arguments=[owner, spender],
            ),
            return_types=["uint256"],
            block_identifier=block_identifier,
        )
        logger.debug(f"{self.address} allowance for {spender} from {owner}: {allowance}")
        return allowance

    def get_balance(
        self,
        address: ChecksumAddress,
        block_identifier: BlockIdentifier | None = None,
    ) -> int:
        balance: int
        (balance,) = raw_call(
            w3=self.w3,
            address=self.address,
            calldata=encode_function_calldata(
                function_prototype="balanceOf(address)",
                function_arguments=[address],
            ),
            return_types=["uint256"],
            block_identifier=block_identifier,
        )
        return balance

    @staticmethod
    def encode_approve(spender: ChecksumAddress, amount: int) -> bytes:
        return encode_function_calldata(
            function_prototype="approve(address,uint256)",
            function_arguments=[spender, amount],
        )
