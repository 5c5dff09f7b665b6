from collections.abc import Iterable

from eth_abi.exceptions import DecodingError, EncodingError
from eth_typing import ChecksumAddress
from web3.exceptions import Web3Exception

from routerswap.checksum_cache import get_checksum_address
from routerswap.constants import ZERO_ADDRESS
from routerswap.context import SwapContext
from routerswap.exceptions import PoolNotFound, ResolutionError
from routerswap.functions import encode_function_calldata, raw_call
from routerswap.logging import logger


class PoolResolver:
    """
    Locate the V3 pool for a token pair by querying the factory at each candidate fee tier.
    """

    def __init__(self, context: SwapContext) -> None:
        self.context = context

    def get_pool_address(self, token_a: str, token_b: str, fee: int) -> ChecksumAddress:
        """
        Return the pool address registered at the factory, or the zero address if the pool has not
        been deployed.
        """

        try:
            (pool_address,) = raw_call(
                w3=self.context.w3,
                address=self.context.deployment.factory,
                calldata=encode_function_calldata(
                    function_prototype="getPool(address,address,uint24)",
                    function_arguments=[
                        get_checksum_address(token_a),
                        get_checksum_address(token_b),
                        fee,
                    ],
                ),
                return_types=["address"],
            )
        except (Web3Exception, DecodingError, EncodingError, ValueError) as exc:
            raise ResolutionError(
                message=f"Pool lookup for {token_a}/{token_b} at fee {fee} failed: {exc}"
            ) from exc

        return get_checksum_address(pool_address)

    def find(
        self,
        token_a: str,
        token_b: str,
        candidate_fees: Iterable[int] | None = None,
    ) -> int:
        """
        Return the first fee tier, in the order given, with a deployed pool for the pair.

        Later tiers are not queried once a pool is found, even if they would offer a better price.
        If `candidate_fees` is omitted, the deployment's fee tiers are used.
        """

        fees = tuple(
            candidate_fees if candidate_fees is not None else self.context.deployment.fee_tiers
        )

        for fee in fees:
            pool_address = self.get_pool_address(token_a, token_b, fee)
            logger.debug(f"Pool {token_a}/{token_b} fee {fee}: {pool_address}")
            if pool_address != ZERO_ADDRESS:
                logger.info(f"Found pool {pool_address} with fee {fee / 10_000}%")
                return fee

        raise PoolNotFound(token_a=token_a, token_b=token_b, fees=fees)
