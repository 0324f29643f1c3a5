"""Tree-sitter grammar registry for the JavaScript family.

Each grammar is described once (module, loader function, extensions) and
loaded lazily on first use.
"""

from __future__ import annotations

import importlib
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Any

import tree_sitter

from testtree.core.errors import ParseError


@dataclass(frozen=True)
class Grammar:
    """Where a tree-sitter grammar lives and which files it parses."""

    name: str  # "javascript", "typescript", "tsx"
    grammar_module: str  # Python import ("tree_sitter_typescript")
    language_func: str = "language"
    extensions: frozenset[str] = field(default_factory=frozenset)


JAVASCRIPT = Grammar(
    name="javascript",
    grammar_module="tree_sitter_javascript",
    extensions=frozenset({"js", "jsx", "mjs", "cjs"}),
)

TYPESCRIPT = Grammar(
    name="typescript",
    grammar_module="tree_sitter_typescript",
    language_func="language_typescript",
    extensions=frozenset({"ts", "mts", "cts"}),
)

TSX = Grammar(
    name="tsx",
    grammar_module="tree_sitter_typescript",
    language_func="language_tsx",
    extensions=frozenset({"tsx"}),
)

GRAMMARS: dict[str, Grammar] = {g.name: g for g in (JAVASCRIPT, TYPESCRIPT, TSX)}

_BY_EXTENSION: dict[str, Grammar] = {
    ext: grammar for grammar in GRAMMARS.values() for ext in grammar.extensions
}

TEST_FILE_EXTENSIONS: frozenset[str] = frozenset(_BY_EXTENSION)


def grammar_for_path(path: str | PurePath) -> Grammar:
    """Pick the grammar by extension. Unknown extensions parse as JavaScript."""
    ext = PurePath(path).suffix.lower().lstrip(".")
    return _BY_EXTENSION.get(ext, JAVASCRIPT)


class GrammarLoader:
    """Caches one tree_sitter.Language per grammar."""

    def __init__(self) -> None:
        self._languages: dict[str, Any] = {}

    def language(self, grammar: Grammar, path: str = "") -> Any:
        if grammar.name in self._languages:
            return self._languages[grammar.name]
        try:
            mod = importlib.import_module(grammar.grammar_module)
            lang_fn = getattr(mod, grammar.language_func)
        except (ImportError, AttributeError) as err:
            raise ParseError.no_grammar(path, grammar.name) from err
        lang = tree_sitter.Language(lang_fn())
        self._languages[grammar.name] = lang
        return lang

    def parser_for(self, path: str) -> tree_sitter.Parser:
        """Return a parser configured for the file's grammar."""
        return tree_sitter.Parser(self.language(grammar_for_path(path), path))
