from typing import Any

from routerswap.exceptions.base import RouterSwapError


class ResolutionError(RouterSwapError):
    """
    Exception raised while locating a liquidity pool for a token pair.
    """

    step = "resolve"


class PoolNotFound(ResolutionError):
    """
    Raised when no candidate fee tier has a deployed pool for the pair.
    """

    def __init__(self, token_a: str, token_b: str, fees: tuple[int, ...]) -> None:
        self.token_a = token_a
        self.token_b = token_b
        self.fees = fees
        super().__init__(message=f"No pool found for {token_a}/{token_b} at fee tiers {fees}.")

    def __reduce__(self) -> tuple[Any, ...]:
        return self.__class__, (self.token_a, self.token_b, self.fees)
