import click

from treelight import __version__
from treelight.cli.highlight import highlight
from treelight.cli.lsp import lsp
from treelight.cli.validate import validate


@click.group(invoke_without_command=True)
@click.version_option(__version__, prog_name="treelight")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Treelight CLI"""
    if ctx.invoked_subcommand is None:
        # Show help when no subcommand is provided
        click.echo(ctx.get_help())


cli.add_command(highlight)
cli.add_command(validate)
cli.add_command(lsp)


if __name__ == "__main__":
    cli()
