from typing import Any

from eth_typing import ChecksumAddress

from routerswap.exceptions.base import RouterSwapError

"""
Exceptions defined here are raised by the two-layer allowance helpers in the `allowance` module.
"""


class AuthorizationError(RouterSwapError):
    """
    Exception raised while establishing spending authorization for a swap.
    """

    step = "authorize"


class ApprovalTransactionError(AuthorizationError):
    """
    An approval transaction could not be sent, or was mined and reverted.
    """

    def __init__(self, token: str, spender: str, reason: str) -> None:
        self.token = token
        self.spender = spender
        self.reason = reason
        super().__init__(message=f"Approval of {token} for {spender} failed: {reason}")

    def __reduce__(self) -> tuple[Any, ...]:
        return self.__class__, (self.token, self.spender, self.reason)


class PermitSignatureError(AuthorizationError):
    """
    The Permit2 typed data could not be signed.
    """


class AllowanceVerificationError(AuthorizationError):
    """
    The allowance read back after a confirmed approval does not meet the requirement.
    """

    def __init__(
        self,
        token: ChecksumAddress,
        required: int,
        amount: int,
        expiration: int,
    ) -> None:
        self.token = token
        self.required = required
        self.amount = amount
        self.expiration = expiration
        super().__init__(
            message=f"Allowance for {token} after approval is {amount} expiring at {expiration}, "
            f"{required} required."
        )

    def __reduce__(self) -> tuple[Any, ...]:
        return self.__class__, (self.token, self.required, self.amount, self.expiration)
