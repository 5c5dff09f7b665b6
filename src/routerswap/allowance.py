import enum
from dataclasses import dataclass

from eth_abi.exceptions import DecodingError
from eth_account.messages import encode_typed_data
from eth_typing import ChecksumAddress
from web3.exceptions import Web3Exception

from routerswap.checksum_cache import get_checksum_address
from routerswap.constants import MAX_UINT160, MAX_UINT256
from routerswap.context import SwapContext
from routerswap.erc20 import Erc20Token
from routerswap.exceptions import (
    AllowanceVerificationError,
    ApprovalTransactionError,
    AuthorizationError,
    ExecutionError,
    PermitSignatureError,
)
from routerswap.execution import ExecutionClient
from routerswap.functions import encode_function_calldata, get_latest_timestamp, raw_call
from routerswap.logging import logger
from routerswap.permit import PermitDetails, PermitSingle, SignedPermit
from routerswap.types import Timestamp


class AuthorizationStrategy(enum.Enum):
    """
    How to raise an insufficient Permit2 allowance for the router.
    """

    # Send a Permit2 `approve` transaction and wait for it before swapping
    ON_CHAIN = "on-chain"
    # Sign a PermitSingle and bundle it into the swap's command sequence
    PERMIT = "permit"


class AuthorizationOutcome(enum.Enum):
    ALREADY_SATISFIED = "already-satisfied"
    VIA_ON_CHAIN = "via-on-chain"
    VIA_PERMIT_BUNDLE = "via-permit-bundle"


@dataclass(slots=True, frozen=True)
class Permit2Allowance:
    amount: int
    expiration: Timestamp
    nonce: int

    def is_sufficient(self, required: int, now: Timestamp) -> bool:
        """
        An allowance expiring at or before `now` is treated the same as an insufficient amount.
        """
        return self.amount >= required and self.expiration > now


@dataclass(slots=True, frozen=True)
class AuthorizationResult:
    outcome: AuthorizationOutcome
    # Set only for VIA_PERMIT_BUNDLE, must be placed before the swap it authorizes
    signed_permit: SignedPermit | None = None


class AllowanceManager:
    """
    Maintains the two approval layers needed for the router to pull tokens from the owner:

    - Layer 1: ERC-20 `approve` granting Permit2 an unlimited allowance. Set once per token.
    - Layer 2: a Permit2 allowance for the router, bounded in amount and time. Set by an on-chain
      Permit2 `approve` transaction, or by a signed permit consumed in the same swap transaction.

    There is no locking. Callers running concurrent swaps for the same owner, token and spender
    must serialize calls to `ensure_authorized`.
    """

    def __init__(
        self,
        context: SwapContext,
        executor: ExecutionClient,
        *,
        allowance_validity: int = 60 * 60 * 24 * 365,
        permit_validity: int = 3_600,
        signature_validity: int = 3_600,
        gas_limit: int | None = None,
    ) -> None:
        self.context = context
        self.executor = executor
        self.allowance_validity = allowance_validity
        self.permit_validity = permit_validity
        self.signature_validity = signature_validity
        self.gas_limit = gas_limit

    @property
    def permit2(self) -> ChecksumAddress:
        return self.context.deployment.permit2

    def _send_approval(
        self,
        to: ChecksumAddress,
        token: ChecksumAddress,
        spender: ChecksumAddress,
        data: bytes,
    ) -> None:
        try:
            self.executor.send_transaction(to=to, data=data, gas_limit=self.gas_limit)
        except ExecutionError as exc:
            raise ApprovalTransactionError(
                token=token,
                spender=spender,
                reason=exc.message or exc.__class__.__name__,
            ) from exc

    def get_chain_time(self) -> Timestamp:
        try:
            return get_latest_timestamp(self.context.w3)
        except (Web3Exception, ValueError) as exc:
            raise AuthorizationError(message=f"Could not read the latest block: {exc}") from exc

    def ensure_token_approval(self, token: str) -> bool:
        """
        Make sure Permit2 can move `token` on the owner's behalf. Returns True if an approval
        transaction was sent.

        Any ERC-20 allowance at or above the maximum uint160 is treated as unlimited, since Permit2
        amounts cannot exceed that value.
        """

        token_contract = Erc20Token(token, w3=self.context.w3)
        try:
            current_allowance = token_contract.get_allowance(
                owner=self.context.address,
                spender=self.permit2,
            )
        except (Web3Exception, DecodingError, ValueError) as exc:
            raise AuthorizationError(
                message=f"Could not read {token_contract.address} allowance for Permit2: {exc}"
            ) from exc

        if current_allowance >= MAX_UINT160:
            logger.debug(f"{token_contract.address} already approved for Permit2")
            return False

        logger.info(f"Approving {token_contract.address} for Permit2")
        self._send_approval(
            to=token_contract.address,
            token=token_contract.address,
            spender=self.permit2,
            data=Erc20Token.encode_approve(spender=self.permit2, amount=MAX_UINT256),
        )
        return True

    def get_allowance(self, token: str, spender: str) -> Permit2Allowance:
        try:
            amount, expiration, nonce = raw_call(
                w3=self.context.w3,
                address=self.permit2,
                calldata=encode_function_calldata(
                    function_prototype="allowance(address,address,address)",
                    function_arguments=[
                        self.context.address,
                        get_checksum_address(token),
                        get_checksum_address(spender),
                    ],
                ),
                return_types=["uint160", "uint48", "uint48"],
            )
        except (Web3Exception, DecodingError, ValueError) as exc:
            raise AuthorizationError(
                message=f"Could not read Permit2 allowance of {token} for {spender}: {exc}"
            ) from exc

        logger.debug(
            f"Permit2 allowance of {token} for {spender}: {amount} "
            f"(expiration {expiration}, nonce {nonce})"
        )
        return Permit2Allowance(amount=amount, expiration=expiration, nonce=nonce)

    def verify_allowance(
        self,
        token: str,
        spender: str,
        amount: int,
        valid_until: Timestamp | None = None,
    ) -> Permit2Allowance:
        """
        Read the Permit2 allowance and raise `AllowanceVerificationError` unless it covers `amount`
        and expires after both the latest block timestamp and `valid_until`.
        """

        allowance = self.get_allowance(token, spender)
        now = self.get_chain_time()
        if not allowance.is_sufficient(
            amount, max(now, valid_until) if valid_until is not None else now
        ):
            raise AllowanceVerificationError(
                token=get_checksum_address(token),
                required=amount,
                amount=allowance.amount,
                expiration=allowance.expiration,
            )
        return allowance

    def approve_on_chain(
        self,
        token: str,
        spender: str,
        amount: int,
        valid_until: Timestamp | None = None,
    ) -> Permit2Allowance:
        """
        Set the Permit2 allowance with an `approve` transaction, then read it back to confirm the
        new allowance covers `amount`.
        """

        token = get_checksum_address(token)
        spender = get_checksum_address(spender)
        expiration = self.get_chain_time() + self.allowance_validity

        logger.info(f"Approving {amount} {token} for {spender} via Permit2 until {expiration}")
        self._send_approval(
            to=self.permit2,
            token=token,
            spender=spender,
            data=encode_function_calldata(
                function_prototype="approve(address,address,uint160,uint48)",
                function_arguments=[token, spender, amount, expiration],
            ),
        )

        return self.verify_allowance(token, spender, amount, valid_until)

    def sign_permit(self, token: str, spender: str, amount: int, nonce: int) -> SignedPermit:
        now = self.get_chain_time()
        permit = PermitSingle(
            details=PermitDetails(
                token=get_checksum_address(token),
                amount=amount,
                expiration=now + self.permit_validity,
                nonce=nonce,
            ),
            spender=get_checksum_address(spender),
            sig_deadline=now + self.signature_validity,
        )

        try:
            signed_message = self.context.account.sign_message(
                encode_typed_data(
                    full_message=permit.typed_data(
                        chain_id=self.context.chain_id,
                        permit2=self.permit2,
                    )
                )
            )
        except (TypeError, ValueError) as exc:
            raise PermitSignatureError(message=f"Could not sign permit for {token}: {exc}") from exc

        logger.info(f"Signed permit for {amount} {token} to {spender} (nonce {nonce})")
        return SignedPermit(permit=permit, signature=bytes(signed_message.signature))

    def ensure_authorized(
        self,
        token: str,
        spender: str,
        amount: int,
        strategy: AuthorizationStrategy = AuthorizationStrategy.ON_CHAIN,
        *,
        min_validity: int = 0,
    ) -> AuthorizationResult:
        """
        Make sure `spender` can move `amount` of `token` from the owner through Permit2, and that
        the allowance stays valid for at least `min_validity` seconds of chain time.

        Both layers are checked before anything is sent, so repeating a request after a partial
        failure skips the steps that already succeeded.
        """

        if not 0 < amount <= MAX_UINT160:
            raise AuthorizationError(
                message=f"Permit2 amounts must be between 1 and {MAX_UINT160}, got {amount}."
            )

        self.ensure_token_approval(token)

        valid_until = self.get_chain_time() + min_validity
        allowance = self.get_allowance(token, spender)
        if allowance.is_sufficient(amount, valid_until):
            return AuthorizationResult(outcome=AuthorizationOutcome.ALREADY_SATISFIED)

        match strategy:
            case AuthorizationStrategy.ON_CHAIN:
                self.approve_on_chain(token, spender, amount, valid_until)
                return AuthorizationResult(outcome=AuthorizationOutcome.VIA_ON_CHAIN)
            case AuthorizationStrategy.PERMIT:
                return AuthorizationResult(
                    outcome=AuthorizationOutcome.VIA_PERMIT_BUNDLE,
                    signed_permit=self.sign_permit(token, spender, amount, allowance.nonce),
                )
