"""gitmodel - a typed object model over the git command line."""

__version__ = "0.1.0"

from gitmodel import utils  # noqa: F401  (installs the library NullHandler)
from gitmodel.errors import (
    AlreadyExistsError,
    GitModelError,
    InvalidArgumentError,
    NotAGitRepositoryError,
    NotFoundError,
    ParseError,
    ProcessExecutionError,
    ProcessTimeoutError,
)
from gitmodel.git import (
    Branch,
    Commit,
    DetachedHead,
    DiffEntry,
    Node,
    NodeType,
    Repository,
    Status,
    Tag,
    Tree,
    Treeish,
)

__all__ = [
    "__version__",
    "AlreadyExistsError",
    "Branch",
    "Commit",
    "DetachedHead",
    "DiffEntry",
    "GitModelError",
    "InvalidArgumentError",
    "Node",
    "NodeType",
    "NotAGitRepositoryError",
    "NotFoundError",
    "ParseError",
    "ProcessExecutionError",
    "ProcessTimeoutError",
    "Repository",
    "Status",
    "Tag",
    "Tree",
    "Treeish",
]
