import logging

import click

from routerswap.logging import set_log_level
from routerswap.version import __version__


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, help="Log RPC reads and encoded commands.")
def cli(verbose: bool) -> None:  # noqa: FBT001
    if verbose:
        set_log_level(logging.DEBUG)


from . import config, swap  # noqa: F401, E402
