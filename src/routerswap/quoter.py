from dataclasses import dataclass
from decimal import Decimal
from fractions import Fraction
from typing import TypeAlias

from eth_abi.exceptions import DecodingError, EncodingError
from web3.exceptions import Web3Exception

from routerswap.constants import WAD
from routerswap.context import SwapContext
from routerswap.exceptions import QuoteError, RouterSwapValueError
from routerswap.functions import encode_function_calldata, raw_call
from routerswap.logging import logger
from routerswap.path import SwapRoute

SlippageMultiplier: TypeAlias = Decimal | Fraction | str | int


@dataclass(slots=True, frozen=True)
class QuoteResult:
    amount_in: int
    amount_out: int
    sqrt_price_x96_after: tuple[int, ...]
    initialized_ticks_crossed: tuple[int, ...]
    gas_estimate: int


def slippage_to_wad(multiplier: SlippageMultiplier) -> int:
    """
    Convert a slippage multiplier (the fraction of the quoted output accepted as the minimum) to an
    18-decimal fixed point integer.

    Floats are rejected because most decimal fractions have no exact binary representation.
    """

    if isinstance(multiplier, float):
        raise RouterSwapValueError(
            message="Slippage multiplier must be a Decimal, Fraction, str or int, not float."
        )

    try:
        wad = Fraction(multiplier) * WAD
    except (TypeError, ValueError, ZeroDivisionError):
        raise RouterSwapValueError(message=f"Invalid slippage multiplier {multiplier!r}") from None

    if wad.denominator != 1:
        raise RouterSwapValueError(
            message=f"Slippage multiplier {multiplier} has more than 18 decimal places."
        )
    if not 0 <= wad <= WAD:
        raise RouterSwapValueError(
            message=f"Slippage multiplier {multiplier} must be between 0 and 1."
        )

    return wad.numerator


def apply_slippage(amount: int, multiplier: SlippageMultiplier) -> int:
    """
    Return floor(amount * multiplier), using integer arithmetic only.
    """

    return amount * slippage_to_wad(multiplier) // WAD


class PriceQuoter:
    """
    Simulates exact input swaps through the V3 QuoterV2 contract.
    """

    def __init__(self, context: SwapContext) -> None:
        self.context = context

    def quote_exact_input(self, amount_in: int, route: SwapRoute) -> QuoteResult:
        try:
            amount_out, sqrt_price_x96_after, ticks_crossed, gas_estimate = raw_call(
                w3=self.context.w3,
                address=self.context.deployment.quoter,
                calldata=encode_function_calldata(
                    function_prototype="quoteExactInput(bytes,uint256)",
                    function_arguments=[route.encode(), amount_in],
                ),
                return_types=["uint256", "uint160[]", "uint32[]", "uint256"],
            )
        except (Web3Exception, DecodingError, EncodingError, ValueError) as exc:
            raise QuoteError(
                message=f"Quote for {amount_in} {route.token_in} -> {route.token_out} "
                f"failed: {exc}"
            ) from exc

        logger.debug(
            f"Quoted {amount_in} {route.token_in} -> {amount_out} {route.token_out} "
            f"(gas estimate {gas_estimate})"
        )

        return QuoteResult(
            amount_in=amount_in,
            amount_out=amount_out,
            sqrt_price_x96_after=tuple(sqrt_price_x96_after),
            initialized_ticks_crossed=tuple(ticks_crossed),
            gas_estimate=gas_estimate,
        )

    def quote(self, amount_in: int, route: SwapRoute, slippage: SlippageMultiplier) -> int:
        """
        Return the minimum acceptable output for the route: the simulated output scaled by the
        slippage multiplier and rounded down.
        """

        quote = self.quote_exact_input(amount_in, route)
        min_amount_out = apply_slippage(quote.amount_out, slippage)
        logger.info(f"Minimum output {min_amount_out} (quoted {quote.amount_out}, x{slippage})")
        return min_amount_out
