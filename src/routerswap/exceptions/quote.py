from routerswap.exceptions.base import RouterSwapError


class QuoteError(RouterSwapError):
    """
    Raised when the quoter simulation reverts or returns an undecodable result.
    """

    step = "quote"
