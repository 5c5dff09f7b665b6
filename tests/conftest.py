import copy
import logging
from dataclasses import dataclass, field
from typing import Any

import dotenv
import eth_abi.abi
import pytest
from eth_account import Account
from eth_account.messages import encode_typed_data
from eth_account.signers.local import LocalAccount
from eth_utils.crypto import keccak
from hexbytes import HexBytes
from web3.exceptions import TimeExhausted, Web3Exception

from routerswap.checksum_cache import get_checksum_address
from routerswap.commands import Opcode, decode_command
from routerswap.constants import MAX_UINT160, ZERO_ADDRESS
from routerswap.context import SwapContext
from routerswap.deployments import BnbChainPancakeswapV3
from routerswap.logging import set_log_level
from routerswap.path import SwapRoute
from routerswap.permit import PermitDetails, PermitSingle

env_file = dotenv.find_dotenv("tests.env")
env_values = dotenv.dotenv_values(env_file)

# Default anvil account #0
TEST_PRIVATE_KEY = env_values.get(
    "TEST_PRIVATE_KEY",
    "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80",
)

CAKE_ADDRESS = get_checksum_address("0x0E09FaBB73Bd3Ade0a17ECC321fD13a19e81cE82")
USDT_ADDRESS = get_checksum_address("0x55d398326f99059fF775485246999027B3197955")
WBNB_ADDRESS = BnbChainPancakeswapV3.wrapped_native_token
CAKE_WBNB_POOL_ADDRESS = get_checksum_address("0x133B3D95bAD5405d14d53473671200e9342896BF")

CHAIN_START_TIMESTAMP = 1_750_000_000
DEFAULT_GAS_ESTIMATE = 150_000


def _selector(function_prototype: str) -> bytes:
    return keccak(text=function_prototype)[:4]


ERC20_ALLOWANCE = _selector("allowance(address,address)")
ERC20_APPROVE = _selector("approve(address,uint256)")
ERC20_BALANCE_OF = _selector("balanceOf(address)")
FACTORY_GET_POOL = _selector("getPool(address,address,uint24)")
PERMIT2_ALLOWANCE = _selector("allowance(address,address,address)")
PERMIT2_APPROVE = _selector("approve(address,address,uint160,uint48)")
QUOTER_QUOTE_EXACT_INPUT = _selector("quoteExactInput(bytes,uint256)")
ROUTER_EXECUTE = _selector("execute(bytes,bytes[],uint256)")


class TransactionReverted(Exception):
    """
    Raised inside the fake chain to discard the state changes of a reverted transaction.
    """


@dataclass
class ChainState:
    native_balances: dict[str, int] = field(default_factory=dict)
    token_balances: dict[tuple[str, str], int] = field(default_factory=dict)
    # (token, owner, spender) -> amount
    token_allowances: dict[tuple[str, str, str], int] = field(default_factory=dict)
    # (owner, token, spender) -> (amount, expiration, nonce)
    permit2_allowances: dict[tuple[str, str, str], tuple[int, int, int]] = field(
        default_factory=dict
    )
    # Tokens held by the router between commands
    router_balances: dict[str, int] = field(default_factory=dict)


@dataclass
class SentTransaction:
    sender: str
    to: str
    data: bytes
    value: int
    gas: int
    status: int

    @property
    def selector(self) -> bytes:
        return self.data[:4]


class FakeChain:
    """
    An in-memory stand-in for the `w3.eth` namespace, implementing the reads and writes made against
    the token, factory, quoter, Permit2 and router contracts of one deployment.
    """

    def __init__(self) -> None:
        self.deployment = BnbChainPancakeswapV3
        self.chain_id = self.deployment.chain_id
        self.gas_price = 3 * 10**9
        self.timestamp = CHAIN_START_TIMESTAMP
        self.block_number = 50_000_000

        self.state = ChainState()
        self.pools: dict[tuple[frozenset[str], int], str] = {}
        self.nonces: dict[str, int] = {}
        self.receipts: dict[bytes, dict[str, Any]] = {}
        self.signed_transactions: dict[bytes, dict[str, Any]] = {}
        self.transactions: list[SentTransaction] = []

        self.quoted_amount_out = 0
        # Output delivered by an executed swap, defaults to the quoted amount
        self.executed_amount_out: int | None = None
        self.gas_estimate = DEFAULT_GAS_ESTIMATE
        self.estimate_gas_fails = False
        self.reject_submission = False
        self.receipt_timeout = False
        self.receipt_lookup_fails = False
        self.block_read_fails = False
        self.failing_selectors: set[bytes] = set()

    # Test setup helpers

    def add_pool(self, token_a: str, token_b: str, fee: int, pool_address: str) -> None:
        key = (frozenset({get_checksum_address(token_a), get_checksum_address(token_b)}), fee)
        self.pools[key] = get_checksum_address(pool_address)

    def set_native_balance(self, owner: str, amount: int) -> None:
        self.state.native_balances[get_checksum_address(owner)] = amount

    def set_token_balance(self, token: str, owner: str, amount: int) -> None:
        self.state.token_balances[get_checksum_address(token), get_checksum_address(owner)] = amount

    def set_token_allowance(self, token: str, owner: str, spender: str, amount: int) -> None:
        self.state.token_allowances[
            get_checksum_address(token), get_checksum_address(owner), get_checksum_address(spender)
        ] = amount

    def set_permit2_allowance(
        self,
        owner: str,
        token: str,
        spender: str,
        amount: int,
        expiration: int,
        nonce: int = 0,
    ) -> None:
        self.state.permit2_allowances[
            get_checksum_address(owner), get_checksum_address(token), get_checksum_address(spender)
        ] = (amount, expiration, nonce)

    def native_balance(self, owner: str) -> int:
        return self.state.native_balances.get(get_checksum_address(owner), 0)

    def token_balance(self, token: str, owner: str) -> int:
        return self.state.token_balances.get(
            (get_checksum_address(token), get_checksum_address(owner)), 0
        )

    def token_allowance(self, token: str, owner: str, spender: str) -> int:
        return self.state.token_allowances.get(
            (
                get_checksum_address(token),
                get_checksum_address(owner),
                get_checksum_address(spender),
            ),
            0,
        )

    def permit2_allowance(self, owner: str, token: str, spender: str) -> tuple[int, int, int]:
        return self.state.permit2_allowances.get(
            (
                get_checksum_address(owner),
                get_checksum_address(token),
                get_checksum_address(spender),
            ),
            (0, 0, 0),
        )

    def advance_time(self, seconds: int) -> None:
        self.timestamp += seconds

    # w3.eth interface

    def get_block(self, block_identifier: Any) -> dict[str, Any]:
        if self.block_read_fails:
            msg = "block not found"
            raise Web3Exception(msg)
        return {"number": self.block_number, "timestamp": self.timestamp}

    def get_balance(self, account: str, block_identifier: Any = None) -> int:
        return self.native_balance(account)

    def get_transaction_count(self, account: str, block_identifier: Any = None) -> int:
        return self.nonces.get(get_checksum_address(account), 0)

    def estimate_gas(self, transaction: dict[str, Any], block_identifier: Any = None) -> int:
        if self.estimate_gas_fails:
            msg = "execution reverted"
            raise Web3Exception(msg)
        return self.gas_estimate

    def call(self, transaction: dict[str, Any], block_identifier: Any = None) -> bytes:
        to = get_checksum_address(transaction["to"])
        data = bytes(transaction["data"])
        selector, arguments = data[:4], data[4:]

        if selector in self.failing_selectors:
            msg = "execution reverted"
            raise Web3Exception(msg)

        match selector:
            case _ if selector == FACTORY_GET_POOL and to == self.deployment.factory:
                token_a, token_b, fee = eth_abi.abi.decode(
                    types=["address", "address", "uint24"], data=arguments
                )
                pool_address = self.pools.get(
                    (
                        frozenset({get_checksum_address(token_a), get_checksum_address(token_b)}),
                        fee,
                    ),
                    ZERO_ADDRESS,
                )
                return eth_abi.abi.encode(types=["address"], args=[pool_address])
            case _ if selector == QUOTER_QUOTE_EXACT_INPUT and to == self.deployment.quoter:
                path, _ = eth_abi.abi.decode(types=["bytes", "uint256"], data=arguments)
                route = SwapRoute.decode(path)
                for hop in route.hops:
                    if (frozenset({hop.token_in, hop.token_out}), hop.fee) not in self.pools:
                        msg = "execution reverted"
                        raise Web3Exception(msg)
                return eth_abi.abi.encode(
                    types=["uint256", "uint160[]", "uint32[]", "uint256"],
                    args=[
                        self.quoted_amount_out,
                        [2**96] * len(route.hops),
                        [1] * len(route.hops),
                        80_000,
                    ],
                )
            case _ if selector == PERMIT2_ALLOWANCE and to == self.deployment.permit2:
                owner, token, spender = eth_abi.abi.decode(
                    types=["address", "address", "address"], data=arguments
                )
                return eth_abi.abi.encode(
                    types=["uint160", "uint48", "uint48"],
                    args=list(self.permit2_allowance(owner, token, spender)),
                )
            case _ if selector == ERC20_ALLOWANCE:
                owner, spender = eth_abi.abi.decode(types=["address", "address"], data=arguments)
                return eth_abi.abi.encode(
                    types=["uint256"], args=[self.token_allowance(to, owner, spender)]
                )
            case _ if selector == ERC20_BALANCE_OF:
                (owner,) = eth_abi.abi.decode(types=["address"], data=arguments)
                return eth_abi.abi.encode(types=["uint256"], args=[self.token_balance(to, owner)])
            case _:
                msg = f"Unexpected call to {to} with selector {selector.hex()}"
                raise AssertionError(msg)

    def send_raw_transaction(self, raw_transaction: bytes) -> HexBytes:
        if self.reject_submission:
            msg = "insufficient funds for gas * price + value"
            raise Web3Exception(msg)

        tx = self.signed_transactions.pop(bytes(raw_transaction))
        sender = get_checksum_address(tx["from"])
        tx_hash = keccak(bytes(raw_transaction))

        assert tx["chainId"] == self.chain_id
        assert tx["nonce"] == self.nonces.get(sender, 0)
        self.nonces[sender] = tx["nonce"] + 1
        self.block_number += 1

        pending_state = copy.deepcopy(self.state)
        try:
            self._apply(pending_state, sender, tx)
        except TransactionReverted:
            status = 0
        else:
            status = 1
            self.state = pending_state

        self.transactions.append(
            SentTransaction(
                sender=sender,
                to=get_checksum_address(tx["to"]),
                data=bytes(tx["data"]),
                value=tx["value"],
                gas=tx["gas"],
                status=status,
            )
        )
        self.receipts[tx_hash] = {
            "transactionHash": HexBytes(tx_hash),
            "status": status,
            "blockNumber": self.block_number,
            "gasUsed": min(self.gas_estimate, tx["gas"]),
        }
        return HexBytes(tx_hash)

    def wait_for_transaction_receipt(
        self,
        transaction_hash: bytes,
        timeout: float = 120,
        poll_latency: float = 0.1,
    ) -> dict[str, Any]:
        if self.receipt_timeout:
            msg = f"Transaction {HexBytes(transaction_hash).to_0x_hex()} is not in the chain"
            raise TimeExhausted(msg)
        if self.receipt_lookup_fails:
            msg = "connection reset by peer"
            raise Web3Exception(msg)
        return self.receipts[bytes(transaction_hash)]

    # Transaction effects

    def _apply(self, state: ChainState, sender: str, tx: dict[str, Any]) -> None:
        to = get_checksum_address(tx["to"])
        data = bytes(tx["data"])
        selector, arguments = data[:4], data[4:]

        if state.native_balances.get(sender, 0) < tx["value"]:
            raise TransactionReverted
        state.native_balances[sender] = state.native_balances.get(sender, 0) - tx["value"]

        if selector == ERC20_APPROVE:
            spender, amount = eth_abi.abi.decode(types=["address", "uint256"], data=arguments)
            state.token_allowances[to, sender, get_checksum_address(spender)] = amount
        elif selector == PERMIT2_APPROVE and to == self.deployment.permit2:
            token, spender, amount, expiration = eth_abi.abi.decode(
                types=["address", "address", "uint160", "uint48"], data=arguments
            )
            key = (sender, get_checksum_address(token), get_checksum_address(spender))
            _, _, nonce = state.permit2_allowances.get(key, (0, 0, 0))
            state.permit2_allowances[key] = (amount, expiration, nonce)
        elif selector == ROUTER_EXECUTE and to == self.deployment.universal_router:
            self._execute(state, sender, tx["value"], arguments)
        else:
            raise TransactionReverted

    def _execute(self, state: ChainState, sender: str, value: int, arguments: bytes) -> None:
        commands, inputs, deadline = eth_abi.abi.decode(
            types=["bytes", "bytes[]", "uint256"], data=arguments
        )
        if deadline < self.timestamp:
            raise TransactionReverted

        wrapped_native_token = self.deployment.wrapped_native_token

        for command, command_input in zip(commands, inputs, strict=True):
            decoded = decode_command(command, command_input)
            match Opcode(command & 0x3F):
                case Opcode.WRAP_NATIVE:
                    _, amount = decoded
                    if amount > value:
                        raise TransactionReverted
                    state.router_balances[wrapped_native_token] = (
                        state.router_balances.get(wrapped_native_token, 0) + amount
                    )
                case Opcode.PERMIT_AUTHORIZATION:
                    self._permit(state, sender, *decoded)
                case Opcode.SWAP_EXACT_IN:
                    self._swap(state, sender, *decoded)
                case Opcode.UNWRAP_NATIVE:
                    recipient, amount_min = decoded
                    held = state.router_balances.get(wrapped_native_token, 0)
                    if held < amount_min:
                        raise TransactionReverted
                    state.router_balances[wrapped_native_token] = 0
                    recipient = get_checksum_address(recipient)
                    state.native_balances[recipient] = (
                        state.native_balances.get(recipient, 0) + held
                    )
                case _:
                    raise TransactionReverted

    def _permit(
        self,
        state: ChainState,
        sender: str,
        permit_tuple: tuple[tuple[str, int, int, int], str, int],
        signature: bytes,
    ) -> None:
        (token, amount, expiration, nonce), spender, sig_deadline = permit_tuple
        permit = PermitSingle(
            details=PermitDetails(
                token=get_checksum_address(token),
                amount=amount,
                expiration=expiration,
                nonce=nonce,
            ),
            spender=get_checksum_address(spender),
            sig_deadline=sig_deadline,
        )

        signer = Account.recover_message(
            encode_typed_data(
                full_message=permit.typed_data(
                    chain_id=self.chain_id,
                    permit2=self.deployment.permit2,
                )
            ),
            signature=signature,
        )
        if signer != sender or sig_deadline < self.timestamp:
            raise TransactionReverted

        key = (sender, permit.details.token, permit.spender)
        _, _, current_nonce = state.permit2_allowances.get(key, (0, 0, 0))
        if nonce != current_nonce:
            raise TransactionReverted
        state.permit2_allowances[key] = (amount, expiration, current_nonce + 1)

    def _swap(
        self,
        state: ChainState,
        sender: str,
        recipient: str,
        amount_in: int,
        amount_out_min: int,
        path: bytes,
        payer_is_user: bool,  # noqa: FBT001
    ) -> None:
        router = self.deployment.universal_router
        route = SwapRoute.decode(path)

        if payer_is_user:
            permit2_key = (sender, route.token_in, router)
            allowed, expiration, nonce = state.permit2_allowances.get(permit2_key, (0, 0, 0))
            if allowed < amount_in or expiration < self.timestamp:
                raise TransactionReverted
            if allowed != MAX_UINT160:
                state.permit2_allowances[permit2_key] = (allowed - amount_in, expiration, nonce)
            if state.token_allowances.get(
                (route.token_in, sender, self.deployment.permit2), 0
            ) < amount_in or state.token_balances.get((route.token_in, sender), 0) < amount_in:
                raise TransactionReverted
            state.token_balances[route.token_in, sender] -= amount_in
        else:
            if state.router_balances.get(route.token_in, 0) < amount_in:
                raise TransactionReverted
            state.router_balances[route.token_in] -= amount_in

        amount_out = (
            self.executed_amount_out
            if self.executed_amount_out is not None
            else self.quoted_amount_out
        )
        if amount_out < amount_out_min:
            raise TransactionReverted

        recipient = get_checksum_address(recipient)
        if recipient == router:
            state.router_balances[route.token_out] = (
                state.router_balances.get(route.token_out, 0) + amount_out
            )
        else:
            state.token_balances[route.token_out, recipient] = (
                state.token_balances.get((route.token_out, recipient), 0) + amount_out
            )


class FakeWeb3:
    def __init__(self, chain: FakeChain) -> None:
        self.eth = chain


class RecordingAccount:
    """
    Wraps a local account, recording each signed transaction so the fake chain can execute it when
    the raw bytes are broadcast.
    """

    def __init__(self, account: LocalAccount, chain: FakeChain) -> None:
        self._account = account
        self._chain = chain

    @property
    def address(self) -> str:
        return self._account.address

    def sign_transaction(self, transaction_dict: dict[str, Any]) -> Any:
        signed = self._account.sign_transaction(transaction_dict)
        self._chain.signed_transactions[bytes(signed.raw_transaction)] = dict(transaction_dict)
        return signed

    def sign_message(self, signable_message: Any) -> Any:
        return self._account.sign_message(signable_message)


@pytest.fixture(scope="session", autouse=True)
def _set_routerswap_logging():
    """
    Set the logging level to DEBUG for the test run
    """
    set_log_level(logging.DEBUG)


@pytest.fixture
def chain() -> FakeChain:
    """
    A fake BNB Chain with a CAKE/WBNB pool at the 0.25% tier. The test account holds 1 BNB and 10
    CAKE, with no approvals.
    """

    fake_chain = FakeChain()
    owner = Account.from_key(TEST_PRIVATE_KEY).address

    fake_chain.add_pool(CAKE_ADDRESS, WBNB_ADDRESS, 2500, CAKE_WBNB_POOL_ADDRESS)
    fake_chain.set_native_balance(owner, 10**18)
    fake_chain.set_token_balance(CAKE_ADDRESS, owner, 10 * 10**18)
    fake_chain.quoted_amount_out = 10**16
    return fake_chain


@pytest.fixture
def context(chain: FakeChain) -> SwapContext:
    account = RecordingAccount(Account.from_key(TEST_PRIVATE_KEY), chain)
    return SwapContext(
        w3=FakeWeb3(chain),  # type: ignore[arg-type]
        account=account,  # type: ignore[arg-type]
        deployment=chain.deployment,
    )
