"""Static block model produced by the extractor."""

from dataclasses import dataclass
from enum import Enum

UNKNOWN_NAME = "<unknown>"

PARAMETERIZED_MODIFIERS = frozenset({"each", "for"})

# Properties allowed between a test function name and its call
MODIFIERS = frozenset(
    {
        "skip",
        "only",
        "todo",
        "skipIf",
        "runIf",
        "concurrent",
        "sequential",
        "fails",
        "shuffle",
    }
) | PARAMETERIZED_MODIFIERS


class BlockKind(str, Enum):
    SUITE = "suite"
    CASE = "case"


@dataclass(frozen=True, slots=True)
class Block:
    """One test or suite declaration found in a source file.

    Lines are 1-based, columns 0-based. The range starts just after the
    callee for curried calls and at the call itself otherwise.
    """

    kind: BlockKind
    name: str
    start_line: int
    start_column: int
    end_line: int
    end_column: int
    is_parameterized: bool = False
    modifiers: tuple[str, ...] = ()
    unknown: bool = False

    @property
    def start(self) -> tuple[int, int]:
        return (self.start_line, self.start_column)

    @property
    def end(self) -> tuple[int, int]:
        return (self.end_line, self.end_column)
