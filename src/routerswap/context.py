from dataclasses import dataclass, field

from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_typing import ChecksumAddress
from web3 import Web3

from routerswap.deployments import RouterDeployment, get_deployment
from routerswap.types import ChainId


@dataclass(slots=True, frozen=True)
class SwapContext:
    """
    The connection, signing account and contract deployment shared by the components of a swap.

    Each component receives the context explicitly, so several accounts or chains can be used from
    one process and tests can substitute any of the three.
    """

    w3: Web3
    account: LocalAccount
    deployment: RouterDeployment
    chain_id: ChainId = field(default=0)

    def __post_init__(self) -> None:
        if self.chain_id == 0:
            object.__setattr__(self, "chain_id", self.deployment.chain_id)

    @classmethod
    def from_private_key(
        cls,
        w3: Web3,
        private_key: str,
        deployment: RouterDeployment | None = None,
    ) -> "SwapContext":
        chain_id = w3.eth.chain_id
        return cls(
            w3=w3,
            account=Account.from_key(private_key),
            deployment=deployment if deployment is not None else get_deployment(chain_id),
            chain_id=chain_id,
        )

    @property
    def address(self) -> ChecksumAddress:
        return self.account.address
