"""Value objects for branches, tags, commits and trees.

Objects are immutable and are only ever built from parsed git output. To see
a newer state, ask the repository again (``branch.refresh()``), which
returns a new instance. Each object keeps a reference to its Repository so
related objects (parent commits, trees) can be resolved on demand.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, ClassVar, Iterator, Optional, Protocol, Union, runtime_checkable

from gitmodel.errors import InvalidArgumentError, NotFoundError
from gitmodel.git import commands
from gitmodel.git.parsers import BranchEntry, DetachedEntry, LogEntry, TagEntry, TreeEntry, is_valid_sha

if TYPE_CHECKING:
    from gitmodel.git.repository import Repository

logger = logging.getLogger(__name__)


@runtime_checkable
class Treeish(Protocol):
    """Anything git can resolve to a commit: branches, tags, commits."""

    @property
    def sha(self) -> str:
        ...

    @property
    def full_ref(self) -> str:
        ...


def _check_sha(repository: "Repository", sha: str) -> None:
    if not isinstance(sha, str) or not is_valid_sha(sha, repository.sha_length):
        raise InvalidArgumentError(
            "sha", sha, f"expected {repository.sha_length} lowercase hexadecimal characters"
        )


def ref_of(target: Union[str, Treeish]) -> str:
    """The string git should receive for a name or Treeish."""
    if isinstance(target, str):
        return target
    return target.full_ref


# =============================================================================
# Refs
# =============================================================================

@dataclass(frozen=True)
class Branch:
    """A local branch as reported by the branch listing."""

    REF_PREFIX: ClassVar[str] = "refs/heads/"

    repository: "Repository" = field(repr=False, compare=False)
    name: str
    sha: str
    comment: str = ""
    current: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", commands.validate_name("name", self.name))
        _check_sha(self.repository, self.sha)

    def __str__(self) -> str:
        return self.sha

    @property
    def full_ref(self) -> str:
        return f"{self.REF_PREFIX}{self.name}"

    @classmethod
    def from_entry(cls, repository: "Repository", entry: BranchEntry) -> "Branch":
        return cls(
            repository=repository,
            name=entry.name,
            sha=entry.sha,
            comment=entry.comment,
            current=entry.current,
        )

    @classmethod
    def get(cls, repository: "Repository", name: str) -> "Branch":
        """Look up an existing branch by name.

        Scans the listing in emitted order and stops at the first match.

        Raises:
            NotFoundError: If no listed branch has that name.
        """
        name = commands.validate_name("name", name)
        for entry in repository.iter_branch_entries():
            if isinstance(entry, BranchEntry) and entry.name == name:
                return cls.from_entry(repository, entry)
        raise NotFoundError("branch", name)

    @classmethod
    def create(
        cls,
        repository: "Repository",
        name: str,
        start_point: Union[str, Treeish, None] = None,
    ) -> "Branch":
        """Create a branch, then read it back from the listing.

        Raises:
            AlreadyExistsError: If the name is taken.
            NotFoundError: If start_point does not exist.
        """
        start = ref_of(start_point) if start_point is not None else None
        repository.run(commands.branch_create(name, start))
        logger.debug(f"Created branch '{name}' at {start or 'HEAD'}")
        return cls.get(repository, name)

    @classmethod
    def checkout(cls, repository: "Repository", name: str, create: bool = False) -> "Branch":
        """Check out a branch, creating it first when asked to."""
        branch = cls.create(repository, name) if create else cls.get(repository, name)
        repository.checkout(branch)
        return branch.refresh()

    def refresh(self) -> "Branch":
        """Read this branch again; returns a new instance."""
        return type(self).get(self.repository, self.name)

    def delete(self, force: bool = False) -> None:
        self.repository.delete_branch(self.name, force=force)

    def get_commit(self) -> "Commit":
        return self.repository.get_commit(self.sha)

    def get_tree(self) -> "Tree":
        return self.repository.get_tree(self.sha)


@dataclass(frozen=True)
class DetachedHead:
    """The branch listing entry for a HEAD that points directly at a commit."""

    repository: "Repository" = field(repr=False, compare=False)
    description: str
    sha: str
    comment: str = ""
    current: bool = False

    def __post_init__(self) -> None:
        _check_sha(self.repository, self.sha)

    def __str__(self) -> str:
        return self.sha

    @property
    def full_ref(self) -> str:
        return self.sha

    @classmethod
    def from_entry(cls, repository: "Repository", entry: DetachedEntry) -> "DetachedHead":
        return cls(
            repository=repository,
            description=entry.description,
            sha=entry.sha,
            comment=entry.comment,
            current=entry.current,
        )


@dataclass(frozen=True)
class Tag:
    """A tag, peeled to the commit it points at."""

    REF_PREFIX: ClassVar[str] = "refs/tags/"

    repository: "Repository" = field(repr=False, compare=False)
    name: str
    sha: str
    comment: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", commands.validate_name("name", self.name))
        _check_sha(self.repository, self.sha)

    def __str__(self) -> str:
        return self.sha

    @property
    def full_ref(self) -> str:
        return f"{self.REF_PREFIX}{self.name}"

    @classmethod
    def from_entry(cls, repository: "Repository", entry: TagEntry) -> "Tag":
        return cls(repository=repository, name=entry.name, sha=entry.sha, comment=entry.comment)

    @classmethod
    def get(cls, repository: "Repository", name: str) -> "Tag":
        """Look up an existing tag by name.

        Raises:
            NotFoundError: If no listed tag has that name.
        """
        name = commands.validate_name("name", name)
        for entry in repository.iter_tag_entries():
            if entry.name == name:
                return cls.from_entry(repository, entry)
        raise NotFoundError("tag", name)

    @classmethod
    def create(
        cls,
        repository: "Repository",
        name: str,
        start_point: Union[str, Treeish, None] = None,
        message: Optional[str] = None,
    ) -> "Tag":
        """Create a tag (annotated when a message is given) and read it back."""
        start = ref_of(start_point) if start_point is not None else None
        repository.run(commands.tag_create(name, start, message))
        logger.debug(f"Created tag '{name}' at {start or 'HEAD'}")
        return cls.get(repository, name)

    def refresh(self) -> "Tag":
        return type(self).get(self.repository, self.name)

    def delete(self) -> None:
        self.repository.delete_tag(self.name)

    def get_commit(self) -> "Commit":
        return self.repository.get_commit(self.sha)


# =============================================================================
# Commits
# =============================================================================

@dataclass(frozen=True)
class Commit:
    """A commit parsed from ``git log``.

    Parents and the root tree are held as shas and resolved on demand.
    """

    repository: "Repository" = field(repr=False, compare=False)
    sha: str
    tree: str
    parents: tuple[str, ...] = ()
    author: str = ""
    author_date: str = ""
    committer: str = ""
    committer_date: str = ""
    message: str = ""

    def __post_init__(self) -> None:
        _check_sha(self.repository, self.sha)
        _check_sha(self.repository, self.tree)
        object.__setattr__(self, "parents", tuple(self.parents))
        for parent in self.parents:
            _check_sha(self.repository, parent)

    def __str__(self) -> str:
        return self.sha

    @property
    def full_ref(self) -> str:
        return self.sha

    @property
    def short_sha(self) -> str:
        return self.sha[:7]

    @property
    def subject(self) -> str:
        """First line of the message."""
        return self.message.split("\n", 1)[0].strip()

    @property
    def is_root(self) -> bool:
        return not self.parents

    @property
    def is_merge(self) -> bool:
        return len(self.parents) > 1

    @classmethod
    def from_entry(cls, repository: "Repository", entry: LogEntry) -> "Commit":
        return cls(
            repository=repository,
            sha=entry.sha,
            tree=entry.tree,
            parents=entry.parents,
            author=entry.author,
            author_date=entry.author_date,
            committer=entry.committer,
            committer_date=entry.committer_date,
            message=entry.message,
        )

    @classmethod
    def get(cls, repository: "Repository", ref: Union[str, Treeish] = "HEAD") -> "Commit":
        """Read a single commit.

        Raises:
            NotFoundError: If ref does not name a commit.
        """
        target = ref_of(ref)
        commits = repository.get_log(target, limit=1)
        if not commits:
            raise NotFoundError("commit", target)
        return commits[0]

    def parent_commits(self) -> tuple["Commit", ...]:
        return tuple(type(self).get(self.repository, parent) for parent in self.parents)

    def get_tree(self) -> "Tree":
        return self.repository.get_tree(self.tree)

    def one_line(self) -> str:
        """Get a one-line representation."""
        return f"{self.short_sha} {self.subject[:60]}{'...' if len(self.subject) > 60 else ''}"


# =============================================================================
# Trees
# =============================================================================

class NodeType(str, Enum):
    """Kinds of tree entries."""

    TREE = "tree"
    BLOB = "blob"
    SUBMODULE = "submodule"

    @classmethod
    def from_git(cls, obj_type: str) -> "NodeType":
        # Submodules appear as gitlinks, i.e. "commit" entries
        if obj_type == "commit":
            return cls.SUBMODULE
        return cls(obj_type)


@dataclass(frozen=True)
class Node:
    """One entry of a tree listing."""

    mode: str
    type: NodeType
    sha: str
    path: str

    @property
    def filename(self) -> str:
        return self.path.rstrip("/").rsplit("/", 1)[-1]

    @property
    def is_tree(self) -> bool:
        return self.type is NodeType.TREE

    @property
    def is_blob(self) -> bool:
        return self.type is NodeType.BLOB

    @classmethod
    def from_entry(cls, entry: TreeEntry) -> "Node":
        return cls(mode=entry.mode, type=NodeType.from_git(entry.type), sha=entry.sha, path=entry.path)


@dataclass(frozen=True)
class Tree:
    """Ordered tree entries, exactly as ``git ls-tree`` emitted them.

    Subtrees are not expanded: pass a tree node to
    ``Repository.get_tree`` to descend.
    """

    treeish: str
    nodes: tuple[Node, ...] = ()

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[Node]:
        return iter(self.nodes)

    def __getitem__(self, index: int) -> Node:
        return self.nodes[index]

    def find(self, filename: str) -> Optional[Node]:
        """First node with the given filename, or None."""
        for node in self.nodes:
            if node.filename == filename:
                return node
        return None


# =============================================================================
# Working tree
# =============================================================================

@dataclass
class Status:
    """Represents the current repository status."""

    branch: Optional[str] = None
    has_commits: bool = True
    upstream: Optional[str] = None
    ahead: int = 0
    behind: int = 0
    staged: list[tuple[str, str]] = field(default_factory=list)  # (status, filename)
    modified: list[str] = field(default_factory=list)
    untracked: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    conflicted: list[str] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not any([self.staged, self.modified, self.untracked, self.deleted, self.conflicted])

    @property
    def is_detached(self) -> bool:
        return self.branch is None

    def summary(self) -> str:
        """Get a summary string of the status."""
        if self.branch is None:
            parts = ["HEAD detached"]
        elif not self.has_commits:
            parts = [f"On branch {self.branch}", "No commits yet"]
        else:
            parts = [f"On branch {self.branch}"]

        if self.upstream:
            if self.ahead > 0 or self.behind > 0:
                tracking = []
                if self.ahead > 0:
                    tracking.append(f"ahead {self.ahead}")
                if self.behind > 0:
                    tracking.append(f"behind {self.behind}")
                parts.append(f"Your branch is {' and '.join(tracking)} of '{self.upstream}'")

        if self.is_clean:
            parts.append("Nothing to commit, working tree clean")
        else:
            if self.staged:
                parts.append(f"Staged: {len(self.staged)} file(s)")
            if self.modified:
                parts.append(f"Modified: {len(self.modified)} file(s)")
            if self.deleted:
                parts.append(f"Deleted: {len(self.deleted)} file(s)")
            if self.untracked:
                parts.append(f"Untracked: {len(self.untracked)} file(s)")
            if self.conflicted:
                parts.append(f"Conflicts: {len(self.conflicted)} file(s)")

        return "\n".join(parts)


@dataclass(frozen=True)
class DiffEntry:
    """One path changed between two treeishes."""

    status: str
    path: str
    old_path: Optional[str] = None
