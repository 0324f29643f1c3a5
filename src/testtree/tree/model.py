"""Identity-stable test tree built from extracted blocks.

Node ids follow ``{file_uri}/{full_name}@{index}`` where ``full_name`` is
the space-joined ancestor suite names plus the block name and ``index``
counts blocks in file order. Re-applying an unchanged block list yields the
same ids and reuses the same node objects, which keeps run state and lets
renderers update in place.

Parent links live in an explicit id -> parent-id table owned by the tree.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path, PurePath

from testtree.collaborators import NullListener, TreeListener
from testtree.core.errors import InvariantViolation
from testtree.core.logging import get_logger
from testtree.parsing.models import Block, BlockKind
from testtree.tree.nodes import (
    OPEN_TAG,
    CaseNode,
    FileNode,
    SourceRange,
    SuiteNode,
    TreeNode,
)

log = get_logger("tree.model")


@dataclass
class _Frame:
    """An open suite while nesting blocks."""

    node: FileNode | SuiteNode
    block: Block | None
    children: list[TreeNode] = field(default_factory=list)


def _absolute(path: str | PurePath) -> Path:
    return Path(path).expanduser().absolute()


class TestTree:
    """Owns every node of a workspace's test tree."""

    __test__ = False

    def __init__(
        self,
        listener: TreeListener | None = None,
        workspace_roots: Iterable[str | PurePath] = (),
    ) -> None:
        self._listener: TreeListener = listener or NullListener()
        self._roots = [_absolute(r) for r in workspace_roots]
        self._files: dict[Path, FileNode] = {}
        self._index: dict[str, TreeNode] = {}
        self._parents: dict[str, str] = {}
        self._open: set[Path] = set()
        self._prefixes: dict[Path, tuple[str, ...]] = {}
        self._root_files: dict[Path, set[Path]] = {}

    @property
    def listener(self) -> TreeListener:
        return self._listener

    # -- Lookup --

    def get(self, node_id: str) -> TreeNode | None:
        return self._index.get(node_id)

    def parent_of(self, node_id: str) -> TreeNode | None:
        parent_id = self._parents.get(node_id)
        return self._index.get(parent_id) if parent_id is not None else None

    def file_of(self, node_id: str) -> FileNode | None:
        """Walk parent links up to the owning file."""
        node = self._index.get(node_id)
        while node is not None and not isinstance(node, FileNode):
            node = self.parent_of(node.id)
        return node

    def file_for(self, path: str | PurePath) -> FileNode | None:
        return self._files.get(_absolute(path))

    def files(self) -> list[FileNode]:
        return list(self._files.values())

    def iter_cases(self, node: TreeNode | None = None) -> Iterator[CaseNode]:
        """Depth-first CaseNodes under node, or under every file."""
        stack: list[TreeNode] = [node] if node is not None else list(reversed(self.files()))
        while stack:
            current = stack.pop()
            if isinstance(current, CaseNode):
                yield current
            else:
                stack.extend(reversed(current.children))

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._index

    def __len__(self) -> int:
        return len(self._index)

    # -- Files --

    def get_or_create_file(self, path: str | PurePath) -> FileNode:
        """Return the file node for path, creating an unresolved one if needed."""
        abs_path = _absolute(path)
        existing = self._files.get(abs_path)
        if existing is not None:
            return existing

        uri = abs_path.as_uri()
        node = FileNode(id=uri, name=self._label_for(abs_path), path=abs_path, uri=uri)
        if abs_path in self._open:
            node.tags.add(OPEN_TAG)
        self._files[abs_path] = node
        self._index[node.id] = node
        log.debug("file_created", path=str(abs_path), label=node.name)
        self._listener.node_created(node)
        return node

    def remove_file(self, path: str | PurePath) -> bool:
        """Dispose a file and its subtree. Returns False if it was unknown."""
        abs_path = _absolute(path)
        node = self._files.pop(abs_path, None)
        if node is None:
            return False
        for ids in self._root_files.values():
            ids.discard(abs_path)
        for child in node.children:
            self._dispose_subtree(child)
        self._dispose(node)
        log.debug("file_removed", path=str(abs_path))
        return True

    def set_open(self, path: str | PurePath, is_open: bool) -> None:
        """Mark a file as open in an editor. Presentation hint only."""
        abs_path = _absolute(path)
        if is_open:
            self._open.add(abs_path)
        else:
            self._open.discard(abs_path)
        node = self._files.get(abs_path)
        if node is None:
            return
        for member in self._walk(node):
            if is_open:
                member.tags.add(OPEN_TAG)
            else:
                member.tags.discard(OPEN_TAG)
            self._listener.node_updated(member)

    def _label_for(self, path: Path) -> str:
        root = next((r for r in self._roots if path.is_relative_to(r)), None)
        if root is None:
            return path.name

        parts = path.parts
        prefix = self._prefixes.get(root)
        if prefix is None:
            prefix = parts[:-1]
        elif parts[: len(prefix)] != prefix:
            common = 0
            for a, b in zip(prefix, parts[:-1], strict=False):
                if a != b:
                    break
                common += 1
            prefix = prefix[:common]
            for other in self._root_files.get(root, ()):
                other_node = self._files.get(other)
                if other_node is not None:
                    other_node.name = PurePath(*other.parts[len(prefix) :]).as_posix()
                    self._listener.node_updated(other_node)
        self._prefixes[root] = prefix
        self._root_files.setdefault(root, set()).add(path)
        return PurePath(*parts[len(prefix) :]).as_posix()

    # -- Apply --

    def apply(self, file_node: FileNode, blocks: Sequence[Block]) -> FileNode:
        """Rebuild file_node's subtree from a sorted block list.

        Raises:
            InvariantViolation: A block has an unknown kind. The tree is
                left exactly as it was.
        """
        for block in blocks:
            if not isinstance(block.kind, BlockKind):
                raise InvariantViolation.invalid_block(str(file_node.path), block.kind, block.name)

        previous = {node.id: node for node in self._walk(file_node) if node is not file_node}
        is_open = file_node.path in self._open

        root = _Frame(node=file_node, block=None)
        stack = [root]
        reused: list[TreeNode] = []
        created: list[TreeNode] = []
        parents: dict[str, str] = {}

        for index, block in enumerate(blocks):
            # Pop suites whose range ends at or before this block starts
            while stack[-1].block is not None and block.start >= stack[-1].block.end:
                self._close(stack.pop())
            parent = stack[-1]

            ancestors = [frame.block.name for frame in stack[1:] if frame.block is not None]
            full_name = " ".join([*ancestors, block.name]).strip()
            node_id = f"{file_node.uri}/{full_name}@{index}"

            wanted = SuiteNode if block.kind is BlockKind.SUITE else CaseNode
            node = previous.get(node_id)
            if isinstance(node, wanted):
                reused.append(node)
            else:
                node = wanted(id=node_id, name=block.name)
                created.append(node)

            node.name = block.name
            node.full_name = full_name
            node.range = SourceRange(
                block.start_line, block.start_column, block.end_line, block.end_column
            )
            node.is_parameterized = block.is_parameterized
            node.modifiers = block.modifiers
            if is_open:
                node.tags.add(OPEN_TAG)
            else:
                node.tags.discard(OPEN_TAG)

            parent.children.append(node)
            parents[node_id] = parent.node.id
            if isinstance(node, SuiteNode):
                stack.append(_Frame(node=node, block=block))

        while stack:
            self._close(stack.pop())

        keep = {id(n) for n in reused}
        for node in previous.values():
            if id(node) not in keep:
                self._dispose(node)
        self._parents.update(parents)

        for node in created:
            self._index[node.id] = node
            self._listener.node_created(node)
        for node in reused:
            self._listener.node_updated(node)

        file_node.resolved = True
        log.debug(
            "file_applied",
            path=str(file_node.path),
            blocks=len(blocks),
            created=len(created),
            reused=len(reused),
            disposed=len(previous) - len(reused),
        )
        return file_node

    @staticmethod
    def _close(frame: _Frame) -> None:
        frame.node.children = frame.children

    # -- Disposal --

    def _walk(self, node: TreeNode) -> Iterator[TreeNode]:
        stack = [node]
        while stack:
            current = stack.pop()
            yield current
            stack.extend(reversed(current.children))

    def _dispose_subtree(self, node: TreeNode) -> None:
        for member in list(self._walk(node)):
            self._dispose(member)

    def _dispose(self, node: TreeNode) -> None:
        if self._index.get(node.id) is node:
            del self._index[node.id]
            self._parents.pop(node.id, None)
        self._listener.node_disposed(node.id)
