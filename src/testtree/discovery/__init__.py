"""Test file discovery and file-system watching."""

from testtree.discovery.discoverer import TestFileDiscoverer
from testtree.discovery.filters import FileFilter, expand_braces, matches_glob
from testtree.discovery.watcher import WorkspaceWatcher, to_file_changes

__all__ = [
    "FileFilter",
    "TestFileDiscoverer",
    "WorkspaceWatcher",
    "expand_braces",
    "matches_glob",
    "to_file_changes",
]
