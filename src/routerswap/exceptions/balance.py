from typing import Any

from routerswap.exceptions.base import RouterSwapError


class BalanceError(RouterSwapError):
    """
    Exception raised by pre-swap balance checks.
    """

    step = "balance"


class InsufficientBalance(BalanceError):
    def __init__(self, asset: str, required: int, available: int) -> None:
        """
        The account holds less than the required amount of `asset`.
        """
        self.asset = asset
        self.required = required
        self.available = available
        super().__init__(
            message=f"Insufficient {asset} balance: {available} available, {required} required."
        )

    def __reduce__(self) -> tuple[Any, ...]:
        return self.__class__, (self.asset, self.required, self.available)
