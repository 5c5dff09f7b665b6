from routerswap.exceptions.base import RouterSwapValueError


class PathError(RouterSwapValueError):
    """
    Exception raised by the V3 path encoder and decoder.
    """

    step = "build"


class InvalidPath(PathError): ...
