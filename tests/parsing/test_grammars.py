"""Tests for grammar selection."""

import pytest

from testtree.core.errors import ErrorCode, ParseError
from testtree.parsing.grammars import (
    JAVASCRIPT,
    TEST_FILE_EXTENSIONS,
    TSX,
    TYPESCRIPT,
    Grammar,
    GrammarLoader,
    grammar_for_path,
)


class TestGrammarForPath:
    @pytest.mark.parametrize(
        ("path", "grammar"),
        [
            ("a.test.js", JAVASCRIPT),
            ("a.test.cjs", JAVASCRIPT),
            ("a.spec.jsx", JAVASCRIPT),
            ("a.test.ts", TYPESCRIPT),
            ("a.test.MTS", TYPESCRIPT),
            ("a.test.tsx", TSX),
            ("a.test.txt", JAVASCRIPT),
        ],
    )
    def test_extension_mapping(self, path: str, grammar: Grammar) -> None:
        assert grammar_for_path(path) is grammar

    def test_extension_set(self) -> None:
        assert TEST_FILE_EXTENSIONS == {"js", "jsx", "mjs", "cjs", "ts", "mts", "cts", "tsx"}


class TestGrammarLoader:
    def test_language_is_cached(self) -> None:
        loader = GrammarLoader()

        assert loader.language(TYPESCRIPT) is loader.language(TYPESCRIPT)

    def test_missing_module_raises_parse_error(self) -> None:
        bogus = Grammar(name="bogus", grammar_module="tree_sitter_does_not_exist")

        with pytest.raises(ParseError) as exc_info:
            GrammarLoader().language(bogus, "x.test.js")

        assert exc_info.value.code is ErrorCode.PARSE_NO_GRAMMAR
