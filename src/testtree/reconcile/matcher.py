"""Static-to-runtime task matching.

Two phases per runtime task:

1. Exact: the first candidate of the right kind with the same name wins and
   is consumed, so two static tests can never collapse onto one node.
2. Fuzzy: candidates are ranked by name similarity and the best one at or
   above ``min_similarity`` wins. It stays in the pool, since one
   parameterized block stands for many runtime tasks.

Ties resolve to the earliest candidate in pool order. A runtime name that
equals an already-consumed node, with no unconsumed exact candidate left,
goes to the most recently consumed node of that name. That match is not
exact, so it never overwrites a failure recorded in the same pass.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from difflib import SequenceMatcher
from functools import lru_cache

from testtree.config.models import MatcherConfig
from testtree.core.errors import UnmatchedRuntimeTask
from testtree.core.logging import get_logger
from testtree.runtime.models import RuntimeTask, TaskType
from testtree.tree.nodes import NodeKind, TreeNode

log = get_logger("reconcile.matcher")

# {expr} from template literals, printf-style tokens, and $var / $obj.path
_PLACEHOLDER = re.compile(r"\{[^{}]*\}|%[sdifjo#$]|\$[A-Za-z_][\w.]*")
_TOKEN = re.compile(r"\w+")


def kind_for(task_type: TaskType) -> NodeKind:
    return NodeKind.SUITE if task_type is TaskType.SUITE else NodeKind.CASE


@lru_cache(maxsize=1024)
def name_to_regex(name: str) -> str:
    """Regex source matching every rendering of a (possibly templated) name."""
    parts: list[str] = []
    pos = 0
    for m in _PLACEHOLDER.finditer(name):
        parts.append(re.escape(name[pos : m.start()].replace("%%", "%")))
        parts.append(".*?")
        pos = m.end()
    parts.append(re.escape(name[pos:].replace("%%", "%")))
    return "".join(parts)


@lru_cache(maxsize=1024)
def _template(name: str) -> re.Pattern[str] | None:
    if not _PLACEHOLDER.search(name):
        return None
    return re.compile(name_to_regex(name), re.DOTALL)


class CandidatePool:
    """Insertion-ordered candidates for one level of one sync pass."""

    def __init__(self, nodes: Iterable[TreeNode] = ()) -> None:
        self._nodes: dict[str, TreeNode] = {node.id: node for node in nodes}
        self._consumed: dict[tuple[NodeKind, str], list[TreeNode]] = {}

    def __iter__(self) -> Iterator[TreeNode]:
        return iter(list(self._nodes.values()))

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def of_kind(self, kind: NodeKind) -> list[TreeNode]:
        return [node for node in self._nodes.values() if node.kind is kind]

    def consume(self, node: TreeNode) -> None:
        """Remove node from the pool and remember it as consumed."""
        self._nodes.pop(node.id, None)
        self._consumed.setdefault((node.kind, node.name), []).append(node)

    def last_consumed(self, kind: NodeKind, name: str) -> TreeNode | None:
        consumed = self._consumed.get((kind, name))
        return consumed[-1] if consumed else None


@dataclass(frozen=True, slots=True)
class MatchRecord:
    """One runtime task paired with at most one node for one pass."""

    task: RuntimeTask
    node: TreeNode | None
    exact: bool = False
    score: float = 0.0


class TaskMatcher:
    def __init__(self, min_similarity: float = 0.4, token_weight: float = 0.5) -> None:
        self.min_similarity = min_similarity
        self.token_weight = token_weight

    @classmethod
    def from_config(cls, config: MatcherConfig) -> TaskMatcher:
        return cls(min_similarity=config.min_similarity, token_weight=config.token_weight)

    def match(self, task: RuntimeTask, pool: CandidatePool, kind: NodeKind) -> TreeNode | None:
        return self.match_record(task, pool, kind).node

    def match_record(self, task: RuntimeTask, pool: CandidatePool, kind: NodeKind) -> MatchRecord:
        candidates = pool.of_kind(kind)

        for node in candidates:
            if node.name == task.name:
                pool.consume(node)
                log.debug("task_matched_exact", task_id=task.id, node_id=node.id)
                return MatchRecord(task=task, node=node, exact=True, score=1.0)

        previous = pool.last_consumed(kind, task.name)
        if previous is not None:
            log.debug("task_matched_consumed", task_id=task.id, node_id=previous.id)
            return MatchRecord(task=task, node=previous, exact=False, score=1.0)

        best: TreeNode | None = None
        best_score = 0.0
        for node in candidates:
            score = self.similarity(node.name, task.name)
            if score > best_score:
                best, best_score = node, score

        if best is not None and best_score >= self.min_similarity:
            log.debug(
                "task_matched_fuzzy",
                task_id=task.id,
                node_id=best.id,
                score=round(best_score, 3),
            )
            return MatchRecord(task=task, node=best, exact=False, score=best_score)

        unmatched = UnmatchedRuntimeTask.for_task(task.id, task.name, kind.value)
        log.info(
            "runtime_task_unmatched",
            task_id=task.id,
            name=task.name,
            candidates=len(candidates),
            best_score=round(best_score, 3),
            code=unmatched.code.value,
        )
        return MatchRecord(task=task, node=None, score=best_score)

    def similarity(self, static_name: str, runtime_name: str) -> float:
        """Score in [0, 1]. A template that fully matches scores 1.0."""
        template = _template(static_name)
        if template is not None and template.fullmatch(runtime_name):
            return 1.0

        a, b = static_name.lower(), runtime_name.lower()
        chars = SequenceMatcher(None, a, b).ratio()
        tokens_a, tokens_b = set(_TOKEN.findall(a)), set(_TOKEN.findall(b))
        union = tokens_a | tokens_b
        tokens = len(tokens_a & tokens_b) / len(union) if union else 0.0
        return (1.0 - self.token_weight) * chars + self.token_weight * tokens
