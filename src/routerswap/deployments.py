from dataclasses import dataclass

from eth_typing import ChecksumAddress

from routerswap.checksum_cache import get_checksum_address
from routerswap.exceptions import RouterSwapValueError
from routerswap.types import ChainId


@dataclass(slots=True, frozen=True)
class RouterDeployment:
    """
    The set of contracts used to quote and execute a V3 swap through a Universal Router.

    `fee_tiers` must be sorted ascending, pool resolution returns the first tier with a deployed
    pool.
    """

    name: str
    chain_id: ChainId
    factory: ChecksumAddress
    quoter: ChecksumAddress
    permit2: ChecksumAddress
    universal_router: ChecksumAddress
    wrapped_native_token: ChecksumAddress
    fee_tiers: tuple[int, ...]

    def __post_init__(self) -> None:
        if list(self.fee_tiers) != sorted(self.fee_tiers):
            raise RouterSwapValueError(message="Fee tiers must be sorted in ascending order.")


ROUTER_DEPLOYMENTS: dict[ChainId, RouterDeployment] = {}


def register_deployment(deployment: RouterDeployment) -> None:
    if deployment.chain_id in ROUTER_DEPLOYMENTS:
        raise RouterSwapValueError(
            message=f"A deployment is already registered for chain ID {deployment.chain_id}."
        )
    ROUTER_DEPLOYMENTS[deployment.chain_id] = deployment


def get_deployment(chain_id: ChainId) -> RouterDeployment:
    try:
        return ROUTER_DEPLOYMENTS[chain_id]
    except KeyError:
        raise RouterSwapValueError(
            message=f"Chain ID {chain_id} does not have a registered router deployment."
        ) from None


# BNB Chain DEX --------------- START
BnbChainPancakeswapV3 = RouterDeployment(
    name="BNB Chain Pancakeswap V3",
    chain_id=56,
    factory=get_checksum_address("0x0BFbCF9fa4f9C56B0F40a671Ad40E0805A091865"),
    quoter=get_checksum_address("0xB048Bbc1Ee6b733FFfCFb9e9CeF7375518e25997"),
    permit2=get_checksum_address("0x31c2F6fcFf4F8759b3Bd5Bf0e1084A055615c768"),
    universal_router=get_checksum_address("0x1A0A18AC4BECDDbd6389559687d1A73d8927E416"),
    wrapped_native_token=get_checksum_address("0xbb4CdB9CBd36B01bD1cBaEBF2De08d9173bc095c"),
    fee_tiers=(100, 500, 2500, 10000),
)
# BNB Chain DEX --------------- END

# Mainnet DEX --------------- START
EthereumMainnetUniswapV3 = RouterDeployment(
    name="Ethereum Mainnet Uniswap V3",
    chain_id=1,
    factory=get_checksum_address("0x1F98431c8aD98523631AE4a59f267346ea31F984"),
    quoter=get_checksum_address("0x61fFE014bA17989E743c5F6cB21bF9697530B21e"),
    permit2=get_checksum_address("0x000000000022D473030F116dDEE9F6B43aC78BA3"),
    universal_router=get_checksum_address("0x3fC91A3afd70395Cd496C647d5a6CC9D4B2b7FAD"),
    wrapped_native_token=get_checksum_address("0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"),
    fee_tiers=(100, 500, 3000, 10000),
)
# Mainnet DEX --------------- END


for deployment in (
    BnbChainPancakeswapV3,
    EthereumMainnetUniswapV3,
):
    register_deployment(deployment)
