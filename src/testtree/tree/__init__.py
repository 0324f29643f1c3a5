"""Persistent test tree."""

from testtree.tree.model import TestTree
from testtree.tree.nodes import (
    OPEN_TAG,
    CaseNode,
    FileNode,
    NodeKind,
    RunState,
    SourceRange,
    SuiteNode,
    TreeNode,
)

__all__ = [
    "OPEN_TAG",
    "CaseNode",
    "FileNode",
    "NodeKind",
    "RunState",
    "SourceRange",
    "SuiteNode",
    "TestTree",
    "TreeNode",
]
