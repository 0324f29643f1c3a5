"""CLI utilities."""

from pathlib import Path
from typing import Any

import click
from rich.tree import Tree

from testtree.config.loader import load_config
from testtree.config.models import TestTreeConfig
from testtree.core.errors import ConfigError
from testtree.discovery.discoverer import TestFileDiscoverer
from testtree.tree.model import TestTree
from testtree.tree.nodes import CaseNode, FileNode, RunState, SuiteNode, TreeNode

_STATE_MARKUP = {
    RunState.WAITING: "[dim]○[/dim]",
    RunState.RUNNING: "[cyan]…[/cyan]",
    RunState.PASSED: "[green]✓[/green]",
    RunState.FAILED: "[red]✗[/red]",
    RunState.SKIPPED: "[yellow]-[/yellow]",
}


def load_workspace_config(root: Path) -> TestTreeConfig:
    try:
        return load_config(root)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e


def open_workspace(root: Path, config: TestTreeConfig) -> tuple[TestTree, TestFileDiscoverer]:
    """Discover and parse every test file under root."""
    tree = TestTree(workspace_roots=[root])
    discoverer = TestFileDiscoverer.for_workspace(root, tree, config.discovery)
    for file_node in discoverer.discover_all():
        discoverer.resolve(file_node.path)
    return tree, discoverer


def node_to_dict(node: TreeNode) -> dict[str, Any]:
    data: dict[str, Any] = {"id": node.id, "name": node.name, "kind": node.kind.value}
    if node.range is not None:
        r = node.range
        data["range"] = [r.start_line, r.start_column, r.end_line, r.end_column]
    if isinstance(node, FileNode):
        data["path"] = str(node.path)
        data["resolved"] = node.resolved
    if isinstance(node, SuiteNode | CaseNode):
        data["parameterized"] = node.is_parameterized
        if node.modifiers:
            data["modifiers"] = list(node.modifiers)
    if isinstance(node, CaseNode):
        data["state"] = node.run_state.value
        if node.message:
            data["message"] = node.message
    else:
        data["children"] = [node_to_dict(child) for child in node.children]
    return data


def render_tree(tree: TestTree, title: str) -> Tree:
    """Build a rich Tree of files, suites, and cases with their states."""
    root = Tree(f"[bold]{title}[/bold]")

    def add(branch: Tree, node: TreeNode) -> None:
        if isinstance(node, CaseNode):
            line = f"{_STATE_MARKUP[node.run_state]} {node.name}"
            if node.message:
                line += f" [red]{node.message}[/red]"
            branch.add(line)
            return
        label = f"[blue]{node.name}[/blue]" if isinstance(node, FileNode) else node.name
        child_branch = branch.add(label)
        for child in node.children:
            add(child_branch, child)

    for file_node in tree.files():
        add(root, file_node)
    return root
