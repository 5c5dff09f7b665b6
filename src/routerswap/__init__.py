from .checksum_cache import get_checksum_address
from .config import Settings, SwapSettings, load_settings
from .connection import connect
from .version import __version__

# isort: split

from .allowance import (
    AllowanceManager,
    AuthorizationOutcome,
    AuthorizationResult,
    AuthorizationStrategy,
    Permit2Allowance,
)
from .commands import CommandBuilder, Opcode, SwapCommand
from .context import SwapContext
from .deployments import (
    BnbChainPancakeswapV3,
    EthereumMainnetUniswapV3,
    RouterDeployment,
    get_deployment,
    register_deployment,
)
from .erc20 import Erc20Token
from .execution import ExecutionClient, SwapReceipt
from .functions import from_base_units, to_base_units
from .logging import logger, set_log_level
from .path import SwapHop, SwapRoute, decode_v3_path, encode_path, encode_v3_path
from .permit import PermitDetails, PermitSingle, SignedPermit
from .pool_resolver import PoolResolver
from .quoter import PriceQuoter, QuoteResult, apply_slippage
from .swap import RecipientMode, SwapOrchestrator, SwapPlan, SwapRequest, SwapResult

__all__ = (
    "AllowanceManager",
    "AuthorizationOutcome",
    "AuthorizationResult",
    "AuthorizationStrategy",
    "BnbChainPancakeswapV3",
    "CommandBuilder",
    "Erc20Token",
    "EthereumMainnetUniswapV3",
    "ExecutionClient",
    "Opcode",
    "Permit2Allowance",
    "PermitDetails",
    "PermitSingle",
    "PoolResolver",
    "PriceQuoter",
    "QuoteResult",
    "RecipientMode",
    "RouterDeployment",
    "Settings",
    "SignedPermit",
    "SwapCommand",
    "SwapContext",
    "SwapHop",
    "SwapOrchestrator",
    "SwapPlan",
    "SwapReceipt",
    "SwapRequest",
    "SwapResult",
    "SwapRoute",
    "SwapSettings",
    "__version__",
    "apply_slippage",
    "connect",
    "decode_v3_path",
    "encode_path",
    "encode_v3_path",
    "from_base_units",
    "get_checksum_address",
    "get_deployment",
    "load_settings",
    "logger",
    "register_deployment",
    "set_log_level",
    "to_base_units",
)
