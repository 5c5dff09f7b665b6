import tomllib
from pathlib import Path

import tomlkit
from pydantic import BaseModel, Field, HttpUrl, SecretStr, WebsocketUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from routerswap.logging import logger
from routerswap.types import ChainId

CONFIG_DIR = Path.home() / ".config" / "routerswap"
CONFIG_FILE = CONFIG_DIR / "config.toml"


class SwapSettings(BaseModel):
    """
    Defaults applied by the swap orchestrator. Slippage is deliberately absent, every swap plan
    supplies its own multiplier.
    """

    # Gas ceiling used when estimation fails, and cap applied to padded estimates
    gas_limit: int = Field(default=3_000_000, gt=0)
    gas_buffer_percent: int = Field(default=20, ge=0)
    deadline_seconds: int = Field(default=3_600, gt=0)
    confirmation_timeout_seconds: float = Field(default=120.0, gt=0)
    poll_latency_seconds: float = Field(default=0.5, gt=0)
    permit_validity_seconds: int = Field(default=3_600, gt=0)
    signature_validity_seconds: int = Field(default=3_600, gt=0)
    allowance_validity_seconds: int = Field(default=60 * 60 * 24 * 365, gt=0)
    # Native balance (wei) kept back to pay for gas
    native_gas_reserve: int = Field(default=10**16, ge=0)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="ROUTERSWAP_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    rpc: dict[
        ChainId,
        HttpUrl | WebsocketUrl | Path,
    ] = Field(default_factory=dict)
    private_key: SecretStr | None = None
    swap: SwapSettings = Field(default_factory=SwapSettings)

    @field_validator("rpc", mode="after")
    def validate_paths(
        cls,  # noqa: N805
        rpc_dict: dict[ChainId, HttpUrl | WebsocketUrl | Path],
    ) -> dict[ChainId, HttpUrl | WebsocketUrl | Path]:
        """
        Validate the endpoints.

        This will convert all file paths to an absolute reference, leaving HTTP and WS URLs as-is.
        """

        return {
            chain_id: endpoint.expanduser().absolute() if isinstance(endpoint, Path) else endpoint
            for chain_id, endpoint in rpc_dict.items()
        }


def load_config_from_file(config_path: Path) -> Settings:
    # Values from the file take priority, unset fields still come from the environment
    return Settings(
        **tomllib.loads(
            config_path.read_text(),
        ),
    )


def save_config_to_file(config: Settings, config_path: Path = CONFIG_FILE) -> None:
    """
    Write the settings as TOML. The private key is never written to disk.
    """

    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(
        tomlkit.dumps(
            {
                "rpc": {
                    str(chain_id): str(endpoint) for chain_id, endpoint in config.rpc.items()
                },
                "swap": config.swap.model_dump(),
            }
        ),
    )
    logger.info(f"Saved configuration to {config_path}.")


def load_settings(config_path: Path = CONFIG_FILE) -> Settings:
    if config_path.exists():
        logger.debug(f"Loading configuration from {config_path}")
        return load_config_from_file(config_path)
    return Settings()
