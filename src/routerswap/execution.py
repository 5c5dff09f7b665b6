from dataclasses import dataclass
from typing import Any

from eth_typing import ChecksumAddress
from hexbytes import HexBytes
from web3.exceptions import TimeExhausted, Web3Exception
from web3.types import TxParams

from routerswap.commands import SwapCommand
from routerswap.context import SwapContext
from routerswap.exceptions import (
    ConfirmationError,
    ConfirmationTimeout,
    EstimationFailed,
    ExecutionRevertedError,
    SubmissionError,
)
from routerswap.functions import encode_function_calldata, get_latest_timestamp
from routerswap.logging import logger
from routerswap.types import Timestamp


@dataclass(slots=True, frozen=True)
class SwapReceipt:
    tx_hash: str
    status: int
    block_number: int | None
    gas_used: int | None


class ExecutionClient:
    """
    Signs, broadcasts and confirms transactions for the context's account.

    Responsibilities:
    - Estimate gas, falling back to a caller-supplied ceiling if estimation fails.
    - Build, sign and broadcast the transaction.
    - Wait a bounded time for the receipt and raise on revert.
    """

    def __init__(
        self,
        context: SwapContext,
        *,
        gas_buffer_percent: int = 20,
        confirmation_timeout: float = 120.0,
        poll_latency: float = 0.5,
    ) -> None:
        self.context = context
        self.gas_buffer_percent = gas_buffer_percent
        self.confirmation_timeout = confirmation_timeout
        self.poll_latency = poll_latency

    def get_deadline(self, validity_seconds: int) -> Timestamp:
        """
        Return a deadline `validity_seconds` after the latest block timestamp.
        """

        try:
            return get_latest_timestamp(self.context.w3) + validity_seconds
        except (Web3Exception, ValueError) as exc:
            raise SubmissionError(message=f"Could not read the latest block: {exc}") from exc

    def estimate_gas(self, to: ChecksumAddress, data: bytes, value: int = 0) -> int:
        try:
            return int(
                self.context.w3.eth.estimate_gas(
                    TxParams(
                        {
                            "from": self.context.address,
                            "to": to,
                            "data": data,
                            "value": value,
                        }
                    )
                )
            )
        except (Web3Exception, ValueError) as exc:
            raise EstimationFailed(message=f"Gas estimation failed: {exc}") from exc

    def _select_gas_limit(
        self,
        to: ChecksumAddress,
        data: bytes,
        value: int,
        gas_limit: int | None,
    ) -> int:
        """
        Pad the node's estimate by the buffer, capped at `gas_limit` if given. If the estimate
        fails, continue with `gas_limit` as the limit or re-raise when there is no ceiling.
        """

        try:
            estimate = self.estimate_gas(to=to, data=data, value=value)
        except EstimationFailed as exc:
            if gas_limit is None:
                raise
            logger.warning(f"{exc.message} Continuing with gas limit {gas_limit}.")
            return gas_limit

        padded_estimate = estimate * (100 + self.gas_buffer_percent) // 100
        logger.debug(f"Estimated gas: {estimate} (padded {padded_estimate})")
        return min(padded_estimate, gas_limit) if gas_limit is not None else padded_estimate

    def _build_transaction(
        self,
        to: ChecksumAddress,
        data: bytes,
        value: int,
        gas: int,
    ) -> TxParams:
        w3 = self.context.w3
        return TxParams(
            {
                "chainId": self.context.chain_id,
                "from": self.context.address,
                "to": to,
                "data": data,
                "value": value,
                "gas": gas,
                "gasPrice": w3.eth.gas_price,
                "nonce": w3.eth.get_transaction_count(self.context.address, "pending"),
            }
        )

    def _wait_for_receipt(self, tx_hash: str) -> dict[str, Any]:
        try:
            receipt = self.context.w3.eth.wait_for_transaction_receipt(
                HexBytes(tx_hash),
                timeout=self.confirmation_timeout,
                poll_latency=self.poll_latency,
            )
        except TimeExhausted:
            raise ConfirmationTimeout(
                tx_hash=tx_hash,
                timeout_seconds=self.confirmation_timeout,
            ) from None
        except (Web3Exception, ValueError) as exc:
            raise ConfirmationError(tx_hash=tx_hash, reason=str(exc)) from exc
        return dict(receipt)

    def send_transaction(
        self,
        to: ChecksumAddress,
        data: bytes,
        *,
        value: int = 0,
        gas_limit: int | None = None,
    ) -> SwapReceipt:
        """
        Send a state-changing transaction and block until it is confirmed.

        Raises:
            EstimationFailed:
                Estimation failed and no `gas_limit` was given. Nothing was sent.
            SubmissionError:
                The node rejected the transaction. Nothing was sent.
            ConfirmationTimeout:
                The transaction was broadcast but not mined in time. It may still be mined.
            ConfirmationError:
                The transaction was broadcast but the node failed while returning the receipt.
            ExecutionRevertedError:
                The transaction was mined with status 0.
        """

        gas = self._select_gas_limit(to=to, data=data, value=value, gas_limit=gas_limit)

        try:
            tx = self._build_transaction(to=to, data=data, value=value, gas=gas)
            signed = self.context.account.sign_transaction(tx)  # type: ignore[arg-type]
            tx_hash = self.context.w3.eth.send_raw_transaction(signed.raw_transaction).to_0x_hex()
        except (Web3Exception, ValueError, TypeError) as exc:
            raise SubmissionError(message=f"Transaction to {to} was not accepted: {exc}") from exc

        logger.info(f"Sent transaction {tx_hash}")

        receipt = self._wait_for_receipt(tx_hash)
        status = int(receipt.get("status", 0))
        if status == 0:
            logger.info(f"Transaction {tx_hash} reverted")
            raise ExecutionRevertedError(tx_hash=tx_hash, receipt=receipt)

        logger.info(f"Transaction {tx_hash} confirmed in block {receipt.get('blockNumber')}")
        return SwapReceipt(
            tx_hash=tx_hash,
            status=status,
            block_number=receipt.get("blockNumber"),
            gas_used=receipt.get("gasUsed"),
        )

    def submit(
        self,
        command: SwapCommand,
        deadline: Timestamp,
        *,
        value: int = 0,
        gas_limit: int | None = None,
    ) -> SwapReceipt:
        """
        Execute the command sequence atomically through the router's
        `execute(bytes,bytes[],uint256)` function, attaching `value` wei of native currency.
        """

        return self.send_transaction(
            to=self.context.deployment.universal_router,
            data=encode_function_calldata(
                function_prototype="execute(bytes,bytes[],uint256)",
                function_arguments=[command.commands, list(command.inputs), deadline],
            ),
            value=value,
            gas_limit=gas_limit,
        )
