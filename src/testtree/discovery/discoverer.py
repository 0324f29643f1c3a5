"""Keeps the tree in step with test files on disk and in editors."""

from __future__ import annotations

from pathlib import Path

from testtree.collaborators import FileChange, FileChangeKind
from testtree.config.models import DiscoveryConfig
from testtree.core.errors import ParseError
from testtree.core.logging import get_logger
from testtree.discovery.filters import FileFilter
from testtree.parsing.extractor import BlockExtractor
from testtree.tree.model import TestTree
from testtree.tree.nodes import FileNode

log = get_logger("discovery.discoverer")


class TestFileDiscoverer:
    """Creates, re-parses, and removes file nodes.

    A file that fails to parse keeps its last good subtree; the error is
    kept in ``parse_errors`` until the next successful parse.
    """

    __test__ = False

    def __init__(
        self,
        tree: TestTree,
        extractor: BlockExtractor,
        file_filter: FileFilter,
    ) -> None:
        self.tree = tree
        self.extractor = extractor
        self.filter = file_filter
        self.parse_errors: dict[Path, ParseError] = {}

    @classmethod
    def for_workspace(
        cls, root: Path, tree: TestTree, config: DiscoveryConfig
    ) -> TestFileDiscoverer:
        return cls(
            tree=tree,
            extractor=BlockExtractor.from_config(config),
            file_filter=FileFilter(root, config.include, config.exclude),
        )

    def discover_all(self) -> list[FileNode]:
        """Create an unresolved node for every test file under the root."""
        nodes = [self.tree.get_or_create_file(path) for path in self.filter.iter_files()]
        log.info("test_files_discovered", root=str(self.filter.root), count=len(nodes))
        return nodes

    def resolve(self, path: str | Path) -> FileNode:
        """Return the file node, parsing it from disk on first use."""
        node = self.tree.get_or_create_file(path)
        if not node.resolved:
            self.update_from_disk(node)
        return node

    def update_from_disk(self, node: FileNode) -> FileNode:
        try:
            text = node.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            self._record_failure(node, ParseError.unreadable(str(node.path), str(e)))
            return node
        return self._apply_text(node, text)

    def discover_from_content(self, path: str | Path, text: str, *, is_open: bool = True) -> FileNode:
        """Parse an editor buffer, which may differ from the file on disk."""
        node = self.tree.get_or_create_file(path)
        self.tree.set_open(node.path, is_open)
        return self._apply_text(node, text)

    def handle_change(self, change: FileChange) -> FileNode | None:
        """Apply one file-system notification. Non-test paths are ignored."""
        if not self.filter.matches(change.path):
            return None
        match change.kind:
            case FileChangeKind.CREATED:
                return self.tree.get_or_create_file(change.path)
            case FileChangeKind.MODIFIED:
                node = self.tree.get_or_create_file(change.path)
                # Files nobody has expanded yet are parsed lazily
                if node.resolved:
                    self.update_from_disk(node)
                return node
            case FileChangeKind.DELETED:
                self.tree.remove_file(change.path)
                self.parse_errors.pop(change.path.expanduser().absolute(), None)
                return None

    def _apply_text(self, node: FileNode, text: str) -> FileNode:
        try:
            blocks = self.extractor.extract(node.path, text)
        except ParseError as e:
            self._record_failure(node, e)
            return node
        self.parse_errors.pop(node.path, None)
        return self.tree.apply(node, blocks)

    def _record_failure(self, node: FileNode, error: ParseError) -> None:
        self.parse_errors[node.path] = error
        log.warning("file_parse_failed", path=str(node.path), error=str(error))
