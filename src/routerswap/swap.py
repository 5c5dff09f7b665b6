import enum
from dataclasses import dataclass

from eth_abi.exceptions import DecodingError
from eth_typing import ChecksumAddress
from web3.exceptions import Web3Exception

from routerswap.allowance import (
    AllowanceManager,
    AuthorizationOutcome,
    AuthorizationResult,
    AuthorizationStrategy,
)
from routerswap.checksum_cache import get_checksum_address
from routerswap.commands import CommandBuilder, SwapCommand
from routerswap.config import SwapSettings
from routerswap.constants import MAX_UINT24, MAX_UINT160
from routerswap.context import SwapContext
from routerswap.erc20 import Erc20Token
from routerswap.exceptions import (
    BalanceError,
    InsufficientBalance,
    InvalidSwapPlan,
    RouterSwapValueError,
)
from routerswap.execution import ExecutionClient, SwapReceipt
from routerswap.logging import logger
from routerswap.path import SwapRoute
from routerswap.pool_resolver import PoolResolver
from routerswap.quoter import PriceQuoter, SlippageMultiplier, slippage_to_wad
from routerswap.types import Timestamp


class RecipientMode(enum.Enum):
    # Swap output goes straight to the recipient
    DIRECT = "direct"
    # Swap output is held by the router, a following command forwards it (e.g. UNWRAP_NATIVE)
    ROUTER = "router"


@dataclass(slots=True, frozen=True)
class SwapPlan:
    """
    The parameters for one exact input swap.

    `wrap_input` pays with the native currency: `token_in` must be the wrapped native token and
    `amount_in` is attached to the transaction as value. `unwrap_output` delivers the native
    currency: `token_out` must be the wrapped native token.

    `slippage` is the fraction of the quoted output accepted as the minimum, e.g. Decimal("0.99").
    """

    token_in: str
    token_out: str
    amount_in: int
    slippage: SlippageMultiplier
    wrap_input: bool = False
    unwrap_output: bool = False
    authorization: AuthorizationStrategy = AuthorizationStrategy.ON_CHAIN
    recipient: str | None = None
    recipient_mode: RecipientMode | None = None
    candidate_fees: tuple[int, ...] | None = None


@dataclass(slots=True, frozen=True)
class SwapRequest:
    amount_in: int
    min_amount_out: int
    recipient: ChecksumAddress
    deadline: Timestamp


@dataclass(slots=True, frozen=True)
class SwapResult:
    request: SwapRequest
    route: SwapRoute
    command: SwapCommand
    authorization: AuthorizationResult | None
    receipt: SwapReceipt


class SwapOrchestrator:
    """
    Runs a swap request through authorization, pool resolution, quoting, command encoding and
    submission. Any failure stops the request. Completed approvals are not rolled back, and a
    repeated request skips them.
    """

    def __init__(self, context: SwapContext, settings: SwapSettings | None = None) -> None:
        self.context = context
        self.settings = settings if settings is not None else SwapSettings()

        self.executor = ExecutionClient(
            context,
            gas_buffer_percent=self.settings.gas_buffer_percent,
            confirmation_timeout=self.settings.confirmation_timeout_seconds,
            poll_latency=self.settings.poll_latency_seconds,
        )
        self.allowances = AllowanceManager(
            context,
            self.executor,
            allowance_validity=self.settings.allowance_validity_seconds,
            permit_validity=self.settings.permit_validity_seconds,
            signature_validity=self.settings.signature_validity_seconds,
            gas_limit=self.settings.gas_limit,
        )
        self.resolver = PoolResolver(context)
        self.quoter = PriceQuoter(context)

    def _validate(self, plan: SwapPlan) -> None:
        wrapped_native_token = self.context.deployment.wrapped_native_token

        try:
            token_in = get_checksum_address(plan.token_in)
            token_out = get_checksum_address(plan.token_out)
            if plan.recipient is not None:
                get_checksum_address(plan.recipient)
        except (TypeError, ValueError) as exc:
            raise InvalidSwapPlan(message=f"Invalid address: {exc}") from None

        if not 0 < plan.amount_in <= MAX_UINT160:
            raise InvalidSwapPlan(
                message=f"Input amount must be between 1 and {MAX_UINT160}, got {plan.amount_in}."
            )
        if token_in == token_out:
            raise InvalidSwapPlan(message="Input and output tokens are the same.")
        try:
            slippage_to_wad(plan.slippage)
        except RouterSwapValueError as exc:
            raise InvalidSwapPlan(message=exc.message) from None
        if plan.wrap_input and token_in != wrapped_native_token:
            raise InvalidSwapPlan(
                message=f"Wrapping the input requires token_in to be {wrapped_native_token}."
            )
        if plan.unwrap_output and token_out != wrapped_native_token:
            raise InvalidSwapPlan(
                message=f"Unwrapping the output requires token_out to be {wrapped_native_token}."
            )
        if plan.unwrap_output and plan.recipient_mode is RecipientMode.DIRECT:
            raise InvalidSwapPlan(
                message="Unwrapping the output requires the router to hold the swap output."
            )
        if plan.recipient_mode is RecipientMode.ROUTER and not plan.unwrap_output:
            raise InvalidSwapPlan(
                message="Only an unwrapped output can be held by the router before delivery."
            )
        if plan.candidate_fees is not None:
            for fee in plan.candidate_fees:
                if not 0 <= fee <= MAX_UINT24:
                    raise InvalidSwapPlan(message=f"Fee tier {fee} is outside the uint24 range.")

    def check_balances(self, plan: SwapPlan) -> None:
        """
        Verify the account can fund the input, and holds at least the native reserve for gas.
        """

        owner = self.context.address
        try:
            native_balance = self.context.w3.eth.get_balance(owner)
            token_balance = (
                None
                if plan.wrap_input
                else Erc20Token(plan.token_in, w3=self.context.w3).get_balance(owner)
            )
        except (Web3Exception, DecodingError, ValueError) as exc:
            raise BalanceError(message=f"Could not read balances for {owner}: {exc}") from exc

        logger.debug(f"Native balance {native_balance}, token balance {token_balance}")

        if token_balance is not None and token_balance < plan.amount_in:
            raise InsufficientBalance(
                asset=get_checksum_address(plan.token_in),
                required=plan.amount_in,
                available=token_balance,
            )

        for native_required in (
            plan.amount_in if plan.wrap_input else 0,
            self.settings.native_gas_reserve,
        ):
            if native_balance < native_required:
                raise InsufficientBalance(
                    asset="native",
                    required=native_required,
                    available=native_balance,
                )

    def build_command(
        self,
        plan: SwapPlan,
        route: SwapRoute,
        min_amount_out: int,
        recipient: ChecksumAddress,
        authorization: AuthorizationResult | None,
    ) -> SwapCommand:
        router = self.context.deployment.universal_router
        recipient_mode = plan.recipient_mode or (
            RecipientMode.ROUTER if plan.unwrap_output else RecipientMode.DIRECT
        )

        builder = CommandBuilder()
        if plan.wrap_input:
            builder.wrap_native(recipient=router, amount=plan.amount_in)
        if authorization is not None and authorization.signed_permit is not None:
            builder.permit(authorization.signed_permit)
        builder.swap_exact_in(
            recipient=router if recipient_mode is RecipientMode.ROUTER else recipient,
            amount_in=plan.amount_in,
            amount_out_min=min_amount_out,
            path=route.encode(),
            payer_is_user=not plan.wrap_input,
        )
        if plan.unwrap_output:
            builder.unwrap_native(recipient=recipient, amount_min=min_amount_out)
        return builder.build()

    def swap(self, plan: SwapPlan) -> SwapResult:
        self._validate(plan)

        token_in = get_checksum_address(plan.token_in)
        token_out = get_checksum_address(plan.token_out)
        router = self.context.deployment.universal_router
        recipient = (
            get_checksum_address(plan.recipient)
            if plan.recipient is not None
            else self.context.address
        )

        logger.info(f"Swapping {plan.amount_in} {token_in} for {token_out}")

        self.check_balances(plan)

        authorization: AuthorizationResult | None = None
        if not plan.wrap_input:
            authorization = self.allowances.ensure_authorized(
                token=token_in,
                spender=router,
                amount=plan.amount_in,
                strategy=plan.authorization,
                min_validity=self.settings.deadline_seconds,
            )
            logger.info(f"Authorization: {authorization.outcome.value}")

        fee = self.resolver.find(token_in, token_out, plan.candidate_fees)
        route = SwapRoute.single_hop(token_in=token_in, fee=fee, token_out=token_out)
        min_amount_out = self.quoter.quote(plan.amount_in, route, plan.slippage)

        command = self.build_command(
            plan=plan,
            route=route,
            min_amount_out=min_amount_out,
            recipient=recipient,
            authorization=authorization,
        )
        logger.info(f"Commands: {command.commands.hex()} ({len(command.inputs)} inputs)")

        request = SwapRequest(
            amount_in=plan.amount_in,
            min_amount_out=min_amount_out,
            recipient=recipient,
            deadline=self.executor.get_deadline(self.settings.deadline_seconds),
        )
        if authorization is not None and authorization.signed_permit is None:
            # The router pulls the input through Permit2 when the swap executes
            self.allowances.verify_allowance(
                token=token_in,
                spender=router,
                amount=plan.amount_in,
                valid_until=request.deadline,
            )

        receipt = self.executor.submit(
            command,
            request.deadline,
            value=plan.amount_in if plan.wrap_input else 0,
            gas_limit=self.settings.gas_limit,
        )

        return SwapResult(
            request=request,
            route=route,
            command=command,
            authorization=authorization,
            receipt=receipt,
        )


__all__ = (
    "AuthorizationOutcome",
    "AuthorizationStrategy",
    "RecipientMode",
    "SwapOrchestrator",
    "SwapPlan",
    "SwapRequest",
    "SwapResult",
)
