from routerswap.exceptions.base import RouterSwapValueError


class InvalidSwapPlan(RouterSwapValueError):
    """
    Raised when a swap plan combines options that cannot produce a valid command sequence.
    """

    step = "plan"
