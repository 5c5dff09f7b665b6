from routerswap.exceptions.base import RouterSwapError


class BuildError(RouterSwapError):
    """
    Raised by the command builder when a command cannot be encoded.
    """

    step = "build"
