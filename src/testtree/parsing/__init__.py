"""Static extraction of test blocks from JavaScript-family sources."""

from testtree.parsing.extractor import BlockExtractor
from testtree.parsing.grammars import TEST_FILE_EXTENSIONS, Grammar, grammar_for_path
from testtree.parsing.models import UNKNOWN_NAME, Block, BlockKind

__all__ = [
    "TEST_FILE_EXTENSIONS",
    "UNKNOWN_NAME",
    "Block",
    "BlockExtractor",
    "BlockKind",
    "Grammar",
    "grammar_for_path",
]
