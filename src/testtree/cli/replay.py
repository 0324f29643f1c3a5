"""testtree replay command - apply a recorded transport stream."""

import asyncio
import json
from pathlib import Path

import click
from rich.console import Console

from testtree.cli.utils import load_workspace_config, node_to_dict, open_workspace, render_tree
from testtree.core.errors import TransportError
from testtree.core.progress import status
from testtree.reconcile.session import ReconciliationSession
from testtree.runtime.transport import iter_frames


@click.command()
@click.argument("events", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--root",
    default=".",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Workspace root (default: current directory)",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def replay_command(events: Path, root: Path, as_json: bool) -> None:
    """Replay EVENTS, a JSON-lines transport recording, against the tree.

    Prints the final state of every test and a pass/fail summary.
    """
    root = root.resolve()
    config = load_workspace_config(root)
    tree, discoverer = open_workspace(root, config)
    session = ReconciliationSession.from_config(tree, discoverer, config)

    lines = events.read_text(encoding="utf-8").splitlines()
    try:
        asyncio.run(session.consume(iter_frames(lines)))
    except TransportError as e:
        raise click.ClickException(str(e)) from e
    finally:
        session.dispose()

    summary = session.status()
    errors = [e.to_dict() for e in session.state.get_unhandled_errors()]

    if as_json:
        click.echo(
            json.dumps(
                {
                    "files": [node_to_dict(f) for f in tree.files()],
                    "summary": {
                        "passed": summary.passed,
                        "failed": summary.failed,
                        "skipped": summary.skipped,
                        "text": summary.summary_text(),
                    },
                    "errors": errors,
                },
                indent=2,
            )
        )
        return

    Console().print(render_tree(tree, str(root)))
    style = "error" if summary.failed else "success"
    status(summary.summary_text(), style=style)
    for error in errors:
        status(f"{error['kind']}: {error['message']}", style="warning", indent=2)
