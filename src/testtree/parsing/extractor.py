"""Block extraction from test sources via tree-sitter.

Walks every call expression in a file and keeps the ones whose callee
resolves to a recognized test or suite name. The output is a flat list
sorted by start position; nesting is left to the tree model.

Recognized shapes::

    it("adds", fn)                      # plain call
    describe.skip("math", fn)           # modifier chain
    vitest.test("x", fn)                # namespaced
    test.each([[1, 2]])("sum %i", fn)   # curried, one block for the outer call
    test.each`a | b`("row $a", fn)      # tagged template table
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import PurePath
from typing import Any

from testtree.config.models import DiscoveryConfig
from testtree.core.errors import ParseError
from testtree.core.logging import get_logger
from testtree.parsing.grammars import GrammarLoader
from testtree.parsing.models import (
    MODIFIERS,
    PARAMETERIZED_MODIFIERS,
    UNKNOWN_NAME,
    Block,
    BlockKind,
)

log = get_logger("parsing.extractor")

# Objects whose properties may be test functions (`vitest.test(...)`)
NAMESPACES = frozenset({"vitest"})

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\", "'": "'", '"': '"', "`": "`"}


class BlockExtractor:
    """Turns one source file into an ordered list of Blocks.

    Stateless apart from the grammar cache, so one instance can serve every
    file in a workspace.
    """

    def __init__(
        self,
        test_names: Iterable[str] = ("it", "test"),
        suite_names: Iterable[str] = ("describe", "suite"),
        loader: GrammarLoader | None = None,
    ) -> None:
        self._kinds: dict[str, BlockKind] = {name: BlockKind.CASE for name in test_names}
        self._kinds.update({name: BlockKind.SUITE for name in suite_names})
        self._loader = loader or GrammarLoader()

    @classmethod
    def from_config(cls, config: DiscoveryConfig) -> BlockExtractor:
        return cls(test_names=config.test_names, suite_names=config.suite_names)

    def extract(self, file_path: str | PurePath, source_text: str) -> list[Block]:
        """Parse source_text and return its blocks sorted by start position.

        Raises:
            ParseError: The grammar is missing or the source has syntax errors.
        """
        path = str(file_path)
        source = source_text.encode("utf-8")
        parser = self._loader.parser_for(path)
        tree = parser.parse(source)
        root = tree.root_node
        if root.has_error:
            raise ParseError.syntax(path, _count_errors(root))

        blocks: list[Block] = []
        stack: list[Any] = [root]
        while stack:
            node = stack.pop()
            if node.type == "call_expression" and not _is_curried_callee(node):
                block = self._block_for_call(node, source)
                if block is not None:
                    blocks.append(block)
            stack.extend(reversed(node.children))

        blocks.sort(key=lambda b: b.start)
        log.debug("blocks_extracted", path=path, count=len(blocks))
        return blocks

    def _block_for_call(self, node: Any, source: bytes) -> Block | None:
        callee = node.child_by_field_name("function")
        if callee is None:
            return None
        resolved = self._resolve_callee(callee)
        if resolved is None:
            return None
        name, modifiers = resolved

        # Curried form: the range begins where the table call ends
        if callee.type == "call_expression":
            start_point = callee.end_point
        else:
            start_point = node.start_point
        end_point = node.end_point

        title, unknown = _render_name(_first_argument(node), source)
        return Block(
            kind=self._kinds[name],
            name=title,
            start_line=start_point[0] + 1,
            start_column=start_point[1],
            end_line=end_point[0] + 1,
            end_column=end_point[1],
            is_parameterized=any(m in PARAMETERIZED_MODIFIERS for m in modifiers),
            modifiers=tuple(modifiers),
            unknown=unknown,
        )

    def _resolve_callee(self, node: Any) -> tuple[str, list[str]] | None:
        """Unwrap call/member wrappers down to a recognized name.

        Returns the name plus the modifier chain that followed it.
        """
        if node.type == "identifier":
            text = _text(node)
            return (text, []) if text in self._kinds else None
        if node.type == "call_expression":
            inner = node.child_by_field_name("function")
            return self._resolve_callee(inner) if inner is not None else None
        if node.type == "parenthesized_expression" and node.named_child_count == 1:
            return self._resolve_callee(node.named_children[0])
        if node.type == "member_expression":
            obj = node.child_by_field_name("object")
            prop = node.child_by_field_name("property")
            if obj is None or prop is None:
                return None
            prop_name = _text(prop)
            resolved = self._resolve_callee(obj)
            if resolved is not None:
                if prop_name not in MODIFIERS:
                    return None
                name, modifiers = resolved
                return name, [*modifiers, prop_name]
            if (
                obj.type == "identifier"
                and _text(obj) in NAMESPACES
                and prop_name in self._kinds
            ):
                return prop_name, []
        return None


def _is_curried_callee(node: Any) -> bool:
    """True for `test.each(table)` inside `test.each(table)(name, fn)`."""
    parent = node.parent
    if parent is None or parent.type != "call_expression":
        return False
    function = parent.child_by_field_name("function")
    return function is not None and function.id == node.id


def _first_argument(node: Any) -> Any | None:
    args = node.child_by_field_name("arguments")
    if args is None or args.type != "arguments":
        return None
    for child in args.named_children:
        if child.type != "comment":
            return child
    return None


def _render_name(node: Any | None, source: bytes) -> tuple[str, bool]:
    if node is None:
        return UNKNOWN_NAME, True
    if node.type == "string":
        return _unescape(_text(node)[1:-1]), False
    if node.type == "identifier":
        return _text(node), False
    if node.type == "template_string":
        return _merge_template(node, source), False
    return UNKNOWN_NAME, True


def _merge_template(node: Any, source: bytes) -> str:
    """Render a template literal with `${expr}` replaced by `{expr}`."""
    parts: list[str] = []
    pos = node.start_byte + 1
    for child in node.children:
        if child.type != "template_substitution":
            continue
        parts.append(source[pos : child.start_byte].decode("utf-8"))
        inner = child.named_children[0] if child.named_children else None
        expr = source[inner.start_byte : inner.end_byte].decode("utf-8") if inner else ""
        parts.append("{" + expr + "}")
        pos = child.end_byte
    parts.append(source[pos : node.end_byte - 1].decode("utf-8"))
    return _unescape("".join(parts))


def _unescape(text: str) -> str:
    if "\\" not in text:
        return text
    out: list[str] = []
    chars = iter(text)
    for ch in chars:
        if ch != "\\":
            out.append(ch)
            continue
        nxt = next(chars, "")
        out.append(_ESCAPES.get(nxt, "\\" + nxt))
    return "".join(out)


def _text(node: Any) -> str:
    text = node.text
    return text.decode("utf-8") if text is not None else ""


def _count_errors(root: Any) -> int:
    count = 0
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            count += 1
        stack.extend(node.children)
    return count
