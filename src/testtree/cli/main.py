"""testtree CLI."""

import click

from testtree import __version__
from testtree.cli.discover import discover_command
from testtree.cli.replay import replay_command
from testtree.core.logging import configure_logging


@click.group()
@click.version_option(version=__version__, prog_name="testtree")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """testtree - live test tree for JavaScript test runners."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(level="DEBUG" if verbose else "WARNING")


cli.add_command(discover_command, name="discover")
cli.add_command(replay_command, name="replay")


if __name__ == "__main__":
    cli()
