from routerswap.exceptions.authorization import (
    AllowanceVerificationError,
    ApprovalTransactionError,
    AuthorizationError,
    PermitSignatureError,
)
from routerswap.exceptions.balance import BalanceError, InsufficientBalance
from routerswap.exceptions.base import RouterSwapError, RouterSwapTypeError, RouterSwapValueError
from routerswap.exceptions.build import BuildError
from routerswap.exceptions.execution import (
    ConfirmationError,
    ConfirmationTimeout,
    EstimationFailed,
    ExecutionError,
    ExecutionRevertedError,
    SubmissionError,
)
from routerswap.exceptions.path import InvalidPath, PathError
from routerswap.exceptions.quote import QuoteError
from routerswap.exceptions.resolution import PoolNotFound, ResolutionError
from routerswap.exceptions.swap import InvalidSwapPlan

from . import authorization, balance, build, execution, path, quote, resolution, swap

__all__ = (
    "AllowanceVerificationError",
    "ApprovalTransactionError",
    "AuthorizationError",
    "BalanceError",
    "BuildError",
    "ConfirmationError",
    "ConfirmationTimeout",
    "EstimationFailed",
    "ExecutionError",
    "ExecutionRevertedError",
    "InsufficientBalance",
    "InvalidSwapPlan",
    "InvalidPath",
    "PathError",
    "PermitSignatureError",
    "PoolNotFound",
    "QuoteError",
    "ResolutionError",
    "RouterSwapError",
    "RouterSwapTypeError",
    "RouterSwapValueError",
    "SubmissionError",
    "authorization",
    "balance",
    "build",
    "execution",
    "path",
    "quote",
    "resolution",
    "swap",
)
