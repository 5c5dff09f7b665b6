from pathlib import Path
from typing import Literal

import click
import tomlkit
from pydantic import TypeAdapter

from routerswap.cli import cli
from routerswap.config import CONFIG_FILE, Settings, load_settings, save_config_to_file


@cli.group()
def config() -> None:
    """
    Configuration commands
    """


@config.command("show")
@click.option(
    "--json",
    "output_format",
    flag_value="json",
    type=str,
    help="Show configuration in JSON format",
)
@click.option(
    "--toml",
    "output_format",
    flag_value="toml",
    type=str,
    help="Show configuration in TOML format (default)",
    default=True,
)
def config_show(output_format: Literal["json", "toml"]) -> None:
    """
    Show the active configuration. The private key is never displayed.
    """

    settings = load_settings()
    config_dump = settings.model_dump(mode="json", exclude={"private_key"})

    match output_format:
        case "json":
            click.echo(
                TypeAdapter(dict).dump_json(
                    config_dump,
                    indent=2,
                ),
            )
        case "toml":
            click.echo(
                tomlkit.dumps(
                    config_dump,
                ),
            )


@config.command("init")
@click.option(
    "--path",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=CONFIG_FILE,
    show_default=True,
    help="Location of the configuration file",
)
def config_init(config_path: Path) -> None:
    """
    Write a configuration file with the default swap settings.
    """

    if config_path.exists() and not click.confirm(
        f"{config_path} already exists. Overwrite it with default values?",
        default=False,
    ):
        raise click.Abort

    save_config_to_file(Settings(), config_path=config_path)
    click.echo(f"Configuration written to {config_path}")
