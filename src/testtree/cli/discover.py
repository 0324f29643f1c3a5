"""testtree discover command - parse test files and print the tree."""

import json
from pathlib import Path

import click
from rich.console import Console

from testtree.cli.utils import load_workspace_config, node_to_dict, open_workspace, render_tree
from testtree.core.progress import pluralize, spinner, status


@click.command()
@click.argument("path", default=".", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def discover_command(path: Path, as_json: bool) -> None:
    """Discover test files and print their suites and cases.

    PATH is the workspace root (default: current directory).
    """
    root = path.resolve()
    config = load_workspace_config(root)

    with spinner("Discovering test files"):
        tree, discoverer = open_workspace(root, config)

    if as_json:
        click.echo(
            json.dumps(
                {
                    "root": str(root),
                    "files": [node_to_dict(f) for f in tree.files()],
                    "errors": [e.to_dict() for e in discoverer.parse_errors.values()],
                },
                indent=2,
            )
        )
        return

    Console().print(render_tree(tree, str(root)))
    cases = sum(1 for _ in tree.iter_cases())
    status(
        f"{pluralize(len(tree.files()), 'file')}, {pluralize(cases, 'test')}",
        style="success",
    )
    for error in discoverer.parse_errors.values():
        status(str(error), style="error", indent=2)
