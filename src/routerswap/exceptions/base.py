class RouterSwapError(Exception):
    """
    Base exception used as the parent class for all exceptions raised by this package.

    Calling code should catch `RouterSwapError` and derived classes separately before general
    exceptions, e.g.:

    ```
    try:
        orchestrator.swap(plan)
    except SpecificRouterSwapError:
        ... # handle a specific exception
    except RouterSwapError:
        ... # handle non-specific routerswap exception
    except Exception:
        ... # handle exceptions raised by 3rd party dependencies or Python built-ins
    ```

    An optional string-formatted message may be attached to the exception and retrieved by accessing
    the `.message` attribute. The `.step` attribute names the stage of a swap request that raised
    it, so a caller retrying the request knows where it stopped.
    """

    message: str | None = None
    step: str | None = None

    def __init__(self, message: str | None = None) -> None:
        if message:
            self.message = message
            super().__init__(message)


class RouterSwapValueError(RouterSwapError): ...


class RouterSwapTypeError(RouterSwapError): ...
