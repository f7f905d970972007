"""Git integration for gitmodel.

This package builds git command lines, runs them, and parses their output
into branches, tags, commits and trees.
"""

from gitmodel.git.executor import ProcessResult, execute
from gitmodel.git.objects import (
    Branch,
    Commit,
    DetachedHead,
    DiffEntry,
    Node,
    NodeType,
    Status,
    Tag,
    Tree,
    Treeish,
)
from gitmodel.git.parsers import (
    parse_branch_line,
    parse_log_entry,
    parse_tag_line,
    parse_tree_line,
)
from gitmodel.git.repository import Repository

__all__ = [
    # Main class
    "Repository",
    # Value objects
    "Branch",
    "Commit",
    "DetachedHead",
    "DiffEntry",
    "Node",
    "NodeType",
    "Status",
    "Tag",
    "Tree",
    "Treeish",
    # Execution
    "ProcessResult",
    "execute",
    # Parsers
    "parse_branch_line",
    "parse_log_entry",
    "parse_tag_line",
    "parse_tree_line",
]
