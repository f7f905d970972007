"""Repository facade over the git command line."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import Optional, Union

from gitmodel.config import Settings, get_settings
from gitmodel.errors import (
    InvalidArgumentError,
    NotAGitRepositoryError,
    ParseError,
    ProcessExecutionError,
    ProcessTimeoutError,
)
from gitmodel.git import commands
from gitmodel.git.commands import Command
from gitmodel.git.executor import ProcessResult, execute
from gitmodel.git.objects import (
    Branch,
    Commit,
    DetachedHead,
    DiffEntry,
    Node,
    Status,
    Tag,
    Tree,
    Treeish,
    ref_of,
)
from gitmodel.git.parsers import (
    BranchEntry,
    BranchLine,
    TagEntry,
    is_valid_sha,
    parse_branch_line,
    parse_log_entry,
    parse_name_status,
    parse_status,
    parse_tag_line,
    parse_tree_line,
)

logger = logging.getLogger(__name__)

__all__ = ["Repository"]


class Repository:
    """A git working tree driven through the git executable.

    The repository holds no state besides its path and settings: every read
    runs git again, so instances are cheap and safe to recreate. Calls are
    blocking and one instance never runs two commands at once; coordinating
    several writers on the same working tree is the caller's job.
    """

    def __init__(
        self,
        path: Path | str,
        settings: Optional[Settings] = None,
        timeout: Optional[float] = None,
    ):
        """Initialize a Repository.

        Args:
            path: Path to the working tree. It must exist; whether it is a git
                repository is only checked when a command runs.
            settings: Settings to use instead of the global ones.
            timeout: Per-command timeout overriding the configured one.

        Raises:
            InvalidArgumentError: If path is not an existing directory.
        """
        self.path = Path(path).expanduser().resolve()
        if not self.path.is_dir():
            raise InvalidArgumentError("path", path, "is not an existing directory")

        self.settings = settings or get_settings()
        self.timeout = timeout if timeout is not None else self.settings.git.timeout

    def __repr__(self) -> str:
        return f"Repository({str(self.path)!r})"

    @classmethod
    def find(cls, start_path: Path | str, settings: Optional[Settings] = None) -> Optional["Repository"]:
        """Find the repository containing a path.

        Args:
            start_path: Path to start searching from.
            settings: Settings for the returned repository.

        Returns:
            Repository rooted at the top of the working tree, or None if the
            path is not inside one.
        """
        candidate = cls(start_path, settings)
        try:
            result = candidate.run(commands.show_toplevel())
        except NotAGitRepositoryError:
            return None
        return cls(result.stdout.strip(), candidate.settings, candidate.timeout)

    @property
    def sha_length(self) -> int:
        return self.settings.git.sha_length

    @property
    def log_delimiter(self) -> str:
        return self.settings.git.log_delimiter

    def run(self, command: Command) -> ProcessResult:
        """Execute a built command in this working tree.

        Failures are classified once, in :func:`commands.classify_failure`.

        Returns:
            The process result (empty for benign "nothing to report" failures).
        """
        args = [self.settings.git.binary, *command.args]
        try:
            return execute(
                args,
                cwd=self.path,
                ok_codes=command.ok_codes,
                timeout=self.timeout,
                env=self.settings.git.environment,
            )
        except ProcessTimeoutError:
            raise
        except ProcessExecutionError as e:
            return commands.classify_failure(command, e, self.path)

    def is_repository(self) -> bool:
        """Check whether git recognizes the path as a repository."""
        try:
            self.run(commands.status())
        except NotAGitRepositoryError:
            return False
        return True

    # -------------------------------------------------------------------------
    # Working tree
    # -------------------------------------------------------------------------

    def init(self, initial_branch: Optional[str] = None) -> "Repository":
        """Create an empty repository in the working tree."""
        self.run(commands.init(initial_branch or self.settings.git.initial_branch))
        logger.debug(f"Initialized repository at {self.path}")
        return self

    def stage(self, paths: Optional[Sequence[str]] = None) -> None:
        """Stage the given paths, or every change when paths is omitted."""
        self.run(commands.stage(paths))

    def commit(self, message: str, stage_all: bool = False, allow_empty: bool = False) -> Commit:
        """Create a commit and return it as recorded by git."""
        self.run(commands.commit(message, stage_all=stage_all, allow_empty=allow_empty))
        commit = self.get_commit("HEAD")
        logger.debug(f"Committed {commit.short_sha}: {commit.subject}")
        return commit

    def checkout(self, target: Union[str, Treeish], create: bool = False) -> None:
        """Switch to a branch or detach HEAD at any other treeish.

        Args:
            target: Branch name, Branch, Tag, Commit or any revision string.
            create: Create the branch first (``checkout -b``).
        """
        if isinstance(target, Branch):
            ref = target.name
        elif isinstance(target, str):
            ref = target
        else:
            ref = target.sha
        self.run(commands.checkout(ref, create=create))
        logger.debug(f"Checked out '{ref}'")

    def get_status(self) -> Status:
        """Get the current repository status."""
        result = self.run(commands.status())
        return Status(**parse_status(result.stdout))

    # -------------------------------------------------------------------------
    # Branches
    # -------------------------------------------------------------------------

    def iter_branch_entries(self) -> Iterator[BranchLine]:
        """Parsed branch listing lines, lazily, in emitted order."""
        result = self.run(commands.branch_list())
        for line in result.lines:
            yield parse_branch_line(line, self.sha_length)

    def iter_branches(self) -> Iterator[Union[Branch, DetachedHead]]:
        for entry in self.iter_branch_entries():
            if isinstance(entry, BranchEntry):
                yield Branch.from_entry(self, entry)
            else:
                yield DetachedHead.from_entry(self, entry)

    def get_branches(self, include_detached: bool = False) -> list[Union[Branch, DetachedHead]]:
        """List branches; the detached HEAD entry is only included on request."""
        return [
            branch for branch in self.iter_branches()
            if include_detached or isinstance(branch, Branch)
        ]

    def get_branch(self, name: str) -> Branch:
        return Branch.get(self, name)

    def get_current_branch(self) -> Optional[Union[Branch, DetachedHead]]:
        """The checked-out branch, the detached HEAD, or None before the first commit."""
        for branch in self.iter_branches():
            if branch.current:
                return branch
        return None

    def create_branch(self, name: str, start_point: Union[str, Treeish, None] = None) -> Branch:
        return Branch.create(self, name, start_point)

    def delete_branch(self, name: str, force: bool = False) -> None:
        self.run(commands.branch_delete(name, force=force))
        logger.debug(f"Deleted branch '{name}'")

    # -------------------------------------------------------------------------
    # Tags
    # -------------------------------------------------------------------------

    def iter_tag_entries(self) -> Iterator[TagEntry]:
        result = self.run(commands.tag_list())
        for line in result.lines:
            yield parse_tag_line(line, self.sha_length)

    def iter_tags(self) -> Iterator[Tag]:
        for entry in self.iter_tag_entries():
            yield Tag.from_entry(self, entry)

    def get_tags(self) -> list[Tag]:
        return list(self.iter_tags())

    def get_tag(self, name: str) -> Tag:
        return Tag.get(self, name)

    def create_tag(
        self,
        name: str,
        start_point: Union[str, Treeish, None] = None,
        message: Optional[str] = None,
    ) -> Tag:
        return Tag.create(self, name, start_point, message)

    def delete_tag(self, name: str) -> None:
        self.run(commands.tag_delete(name))
        logger.debug(f"Deleted tag '{name}'")

    # -------------------------------------------------------------------------
    # History
    # -------------------------------------------------------------------------

    def get_log(
        self,
        revision_range: Union[str, Treeish, None] = None,
        limit: Optional[int] = None,
        paths: Optional[Sequence[str]] = None,
    ) -> list[Commit]:
        """Get commit history, newest first.

        Args:
            revision_range: Revision or range (``main..feature``); HEAD if omitted.
            limit: Maximum number of commits.
            paths: Only commits touching these paths.

        Returns:
            List of Commit objects; empty before the first commit.
        """
        target = ref_of(revision_range) if revision_range is not None else None
        result = self.run(
            commands.log(target, limit=limit, paths=paths, delimiter=self.log_delimiter)
        )
        return [
            Commit.from_entry(self, parse_log_entry(record, self.log_delimiter, self.sha_length))
            for record in result.records("\0")
            if record.strip()
        ]

    def get_commit(self, ref: Union[str, Treeish] = "HEAD") -> Commit:
        return Commit.get(self, ref)

    def resolve(self, ref: Union[str, Treeish]) -> str:
        """Resolve a revision to the sha of the commit it names.

        Raises:
            NotFoundError: If ref does not name a commit.
        """
        result = self.run(commands.rev_parse(ref_of(ref)))
        sha = result.stdout.strip()
        if not is_valid_sha(sha, self.sha_length):
            raise ParseError("revision", result.stdout, f"expected a {self.sha_length}-character hash")
        return sha

    def get_diff(
        self,
        from_ref: Union[str, Treeish],
        to_ref: Union[str, Treeish, None] = None,
        paths: Optional[Sequence[str]] = None,
    ) -> list[DiffEntry]:
        """Paths changed between two treeishes, or between one and the working tree."""
        result = self.run(
            commands.diff(
                ref_of(from_ref),
                ref_of(to_ref) if to_ref is not None else None,
                paths,
            )
        )
        return [
            DiffEntry(status=status, path=path, old_path=old_path)
            for status, path, old_path in parse_name_status(result.stdout)
        ]

    # -------------------------------------------------------------------------
    # Trees
    # -------------------------------------------------------------------------

    def get_tree(self, treeish: Union[str, Treeish, Node, None] = None) -> Tree:
        """List one level of a tree.

        Args:
            treeish: Tree sha, revision, Treeish or tree Node; the root tree
                of HEAD when omitted.

        Returns:
            Tree whose nodes keep git's order. Descend by calling get_tree
            again with a tree node.
        """
        if isinstance(treeish, Node):
            if not treeish.is_tree:
                raise InvalidArgumentError("treeish", treeish.path, f"is a {treeish.type.value}, not a tree")
            target: Optional[str] = treeish.sha
        elif treeish is None:
            target = None
        else:
            target = ref_of(treeish)

        command = commands.tree_list(target)
        result = self.run(command)
        nodes = tuple(
            Node.from_entry(parse_tree_line(record, self.sha_length))
            for record in result.records("\0")
        )
        return Tree(treeish=command.subject or commands.HEAD, nodes=nodes)
