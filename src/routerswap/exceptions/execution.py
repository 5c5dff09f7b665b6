from typing import Any

from routerswap.exceptions.base import RouterSwapError

"""
Exceptions defined here are raised by the `execution` module while estimating, broadcasting and
confirming transactions.
"""


class ExecutionError(RouterSwapError):
    """
    Exception raised while submitting a transaction.
    """


class EstimationFailed(ExecutionError):
    """
    Gas estimation failed and no gas ceiling was supplied to fall back on.
    """

    step = "estimate"


class SubmissionError(ExecutionError):
    """
    The node rejected the signed transaction. Nothing was executed on-chain.
    """

    step = "submit"


class ExecutionRevertedError(ExecutionError):
    """
    The transaction was mined with status 0. Gas was paid and no state changed.
    """

    step = "confirm"

    def __init__(self, tx_hash: str, receipt: dict[str, Any] | None = None) -> None:
        self.tx_hash = tx_hash
        self.receipt = receipt
        super().__init__(message=f"Transaction {tx_hash} reverted.")

    def __reduce__(self) -> tuple[Any, ...]:
        return self.__class__, (self.tx_hash, self.receipt)


class ConfirmationTimeout(ExecutionError, TimeoutError):
    """
    The transaction was broadcast but not confirmed within the wait period. It may still be mined.
    """

    step = "confirm"

    def __init__(self, tx_hash: str, timeout_seconds: float) -> None:
        self.tx_hash = tx_hash
        self.timeout_seconds = timeout_seconds
        super().__init__(
            message=f"Transaction {tx_hash} was not confirmed after {timeout_seconds} seconds."
        )

    def __reduce__(self) -> tuple[Any, ...]:
        return self.__class__, (self.tx_hash, self.timeout_seconds)


class ConfirmationError(ExecutionError):
    """
    The transaction was broadcast, but its receipt could not be retrieved. It may still be mined.
    """

    step = "confirm"

    def __init__(self, tx_hash: str, reason: str) -> None:
        self.tx_hash = tx_hash
        self.reason = reason
        super().__init__(message=f"Could not confirm transaction {tx_hash}: {reason}")

    def __reduce__(self) -> tuple[Any, ...]:
        return self.__class__, (self.tx_hash, self.reason)
