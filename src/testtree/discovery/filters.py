"""Include/exclude glob policy for test files.

Patterns are matched against the path relative to the workspace root,
using fnmatch semantics plus:

- ``**/`` at the start matches at any depth, including the root,
- ``{a,b}`` alternation, expanded before matching.
"""

from __future__ import annotations

import fnmatch
import re
from collections.abc import Iterable, Iterator
from pathlib import Path

# Never traversed while discovering
PRUNABLE_DIRS: frozenset[str] = frozenset(
    (
        ".git",
        ".svn",
        ".hg",
        ".testtree",
        "node_modules",
        ".npm",
        ".yarn",
        ".pnpm-store",
        "bower_components",
        ".next",
        ".nuxt",
        ".turbo",
        "coverage",
        "__pycache__",
        ".venv",
    )
)

_BRACE = re.compile(r"\{([^{}]*)\}")


def expand_braces(pattern: str) -> list[str]:
    """Expand ``{a,b}`` alternations, innermost first.

    >>> expand_braces("*.{test,spec}.ts")
    ['*.test.ts', '*.spec.ts']
    """
    m = _BRACE.search(pattern)
    if m is None:
        return [pattern]
    head, tail = pattern[: m.start()], pattern[m.end() :]
    out: list[str] = []
    for option in m.group(1).split(","):
        out.extend(expand_braces(head + option + tail))
    return out


def matches_glob(rel_path: str, pattern: str) -> bool:
    """Check if a path matches a glob pattern, with ** support."""
    if fnmatch.fnmatch(rel_path, pattern):
        return True
    # Handle **/pattern for any-depth matching
    if pattern.startswith("**/"):
        return matches_glob(rel_path, pattern[3:])
    return False


class FileFilter:
    """Decides which files under a root are test files."""

    def __init__(self, root: Path, include: Iterable[str], exclude: Iterable[str] = ()) -> None:
        self.root = root.expanduser().absolute()
        self._include = [p for pattern in include for p in expand_braces(pattern)]
        self._exclude = [p for pattern in exclude for p in expand_braces(pattern)]

    def relative(self, path: Path) -> str | None:
        """Posix path relative to root, or None if path lies outside it."""
        path = path.expanduser().absolute()
        if not path.is_relative_to(self.root):
            return None
        return path.relative_to(self.root).as_posix()

    def watches(self, path: Path) -> bool:
        """True for any file under root outside the pruned directories."""
        rel = self.relative(path)
        return rel is not None and not any(
            part in PRUNABLE_DIRS for part in Path(rel).parts[:-1]
        )

    def matches(self, path: Path) -> bool:
        """True for test files: watched, included, and not excluded."""
        if not self.watches(path):
            return False
        rel = self.relative(path)
        assert rel is not None
        if not any(matches_glob(rel, pattern) for pattern in self._include):
            return False
        return not any(matches_glob(rel, pattern) for pattern in self._exclude)

    def iter_files(self) -> Iterator[Path]:
        """Every matching file under root, in sorted walk order."""
        for dirpath, dirnames, filenames in self.root.walk():
            dirnames[:] = sorted(d for d in dirnames if d not in PRUNABLE_DIRS)
            for name in sorted(filenames):
                path = dirpath / name
                if self.matches(path):
                    yield path
