import click

from routerswap.allowance import AuthorizationStrategy
from routerswap.cli import cli
from routerswap.config import CONFIG_FILE, load_settings
from routerswap.connection import connect
from routerswap.context import SwapContext
from routerswap.exceptions import RouterSwapError
from routerswap.functions import from_base_units, to_base_units
from routerswap.swap import SwapOrchestrator, SwapPlan


@cli.command("swap")
@click.option("--chain-id", type=int, required=True, help="Chain ID of the RPC endpoint to use")
@click.option("--token-in", required=True, help="Address of the token to sell")
@click.option("--token-out", required=True, help="Address of the token to buy")
@click.option("--amount", required=True, help='Input amount in whole tokens, e.g. "0.005"')
@click.option(
    "--slippage",
    required=True,
    help='Fraction of the quoted output accepted as the minimum, e.g. "0.99"',
)
@click.option(
    "--wrap-input",
    is_flag=True,
    help="Pay with the native currency. --token-in must be the wrapped native token.",
)
@click.option(
    "--unwrap-output",
    is_flag=True,
    help="Receive the native currency. --token-out must be the wrapped native token.",
)
@click.option(
    "--auth",
    "authorization",
    type=click.Choice([strategy.value for strategy in AuthorizationStrategy]),
    default=AuthorizationStrategy.ON_CHAIN.value,
    show_default=True,
    help="How to authorize the router when the Permit2 allowance is insufficient",
)
@click.option("--recipient", default=None, help="Output recipient, defaults to the sender")
@click.option(
    "--fee",
    "fees",
    type=int,
    multiple=True,
    help="Candidate fee tier, may be repeated. Defaults to the deployment's fee tiers.",
)
def swap(
    chain_id: int,
    token_in: str,
    token_out: str,
    amount: str,
    slippage: str,
    wrap_input: bool,  # noqa: FBT001
    unwrap_output: bool,  # noqa: FBT001
    authorization: str,
    recipient: str | None,
    fees: tuple[int, ...],
) -> None:
    """
    Swap an exact input amount through the chain's Universal Router.
    """

    settings = load_settings()

    if (endpoint := settings.rpc.get(chain_id)) is None:
        msg = f"Chain ID {chain_id} does not have an RPC defined in config file {CONFIG_FILE}"
        raise click.ClickException(msg)
    if settings.private_key is None:
        msg = "No private key configured. Set the ROUTERSWAP_PRIVATE_KEY environment variable."
        raise click.ClickException(msg)

    try:
        context = SwapContext.from_private_key(
            w3=connect(endpoint, chain_id=chain_id),
            private_key=settings.private_key.get_secret_value(),
        )
        result = SwapOrchestrator(context, settings.swap).swap(
            SwapPlan(
                token_in=token_in,
                token_out=token_out,
                amount_in=to_base_units(amount),
                slippage=slippage,
                wrap_input=wrap_input,
                unwrap_output=unwrap_output,
                authorization=AuthorizationStrategy(authorization),
                recipient=recipient,
                candidate_fees=fees or None,
            )
        )
    except RouterSwapError as exc:
        step = f"[{exc.step}] " if exc.step is not None else ""
        raise click.ClickException(f"{step}{exc.message}") from exc

    click.echo(f"Transaction: {result.receipt.tx_hash}")
    click.echo(f"Block: {result.receipt.block_number}")
    click.echo(f"Fee tier: {result.route.fees[0]}")
    click.echo(f"Minimum output: {from_base_units(result.request.min_amount_out)}")
