"""Git command builders.

Every builder is a pure function returning a :class:`Command`: the argument
vector (without the git executable) plus the metadata the facade needs to
run it, i.e. which exit codes are success, which stderr messages mean "empty
result" rather than failure, and what the command is about.

The output flags chosen here are part of each parser's contract:

- ``branch --list -v --no-abbrev --no-color --no-column`` gives one
  ``[* ]<name> <full sha> <subject>`` line per branch.
- ``tag --list --format=...`` gives ``<name> <peeled sha> <subject>`` lines.
- ``ls-tree -z`` gives NUL-terminated ``<mode> <type> <sha>\\t<path>``
  records with unquoted paths.
- ``log -z --format=...`` gives NUL-terminated records whose fields are
  joined by a configurable delimiter.
- ``status --porcelain=v1 --branch -z`` and ``diff --name-status -z`` give
  NUL-separated machine records.

:func:`classify_failure` is the only place that inspects git's error text.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from gitmodel.errors import (
    AlreadyExistsError,
    GitModelError,
    InvalidArgumentError,
    NotAGitRepositoryError,
    NotFoundError,
    ProcessExecutionError,
)
from gitmodel.git.executor import ProcessResult

logger = logging.getLogger(__name__)

HEAD = "HEAD"


class CommandFamily(str, Enum):
    """Operation families sharing output shapes and error messages."""

    BRANCH = "branch"
    TAG = "tag"
    CHECKOUT = "checkout"
    INIT = "init"
    STAGE = "stage"
    COMMIT = "commit"
    STATUS = "status"
    TREE = "tree"
    LOG = "log"
    REV_PARSE = "rev-parse"
    DIFF = "diff"


@dataclass(frozen=True)
class Command:
    """A git invocation ready to be executed."""

    family: CommandFamily
    args: tuple[str, ...]
    ok_codes: frozenset[int] = frozenset({0})
    # Exit codes meaning "the subject does not exist"
    missing_codes: frozenset[int] = frozenset()
    # stderr messages meaning "nothing to report"
    benign_patterns: tuple[re.Pattern[str], ...] = ()
    subject: Optional[str] = None

    @property
    def name(self) -> str:
        """The git subcommand."""
        return self.args[0]


# =============================================================================
# Validation
# =============================================================================

def validate_name(argument: str, value: Optional[str]) -> str:
    """Trim a ref name and reject values git would misread.

    Raises:
        InvalidArgumentError: For empty names, whitespace, or a leading dash.
    """
    if value is None or not value.strip():
        raise InvalidArgumentError(argument, value, "cannot be empty")
    name = value.strip()
    if any(ch.isspace() for ch in name):
        raise InvalidArgumentError(argument, value, "cannot contain whitespace")
    if name.startswith("-"):
        raise InvalidArgumentError(argument, value, "cannot start with '-'")
    return name


def _validate_revision(argument: str, value: str) -> str:
    if not value or not value.strip():
        raise InvalidArgumentError(argument, value, "cannot be empty")
    if value.strip().startswith("-"):
        raise InvalidArgumentError(argument, value, "cannot start with '-'")
    return value.strip()


def _validate_paths(paths: Optional[Sequence[str]]) -> list[str]:
    if paths is None:
        return []
    if isinstance(paths, str):
        paths = [paths]
    result = [str(p) for p in paths]
    if any(not p for p in result):
        raise InvalidArgumentError("paths", paths, "paths cannot be empty strings")
    return result


def _validate_delimiter(delimiter: str) -> str:
    if not delimiter or "\0" in delimiter or "\n" in delimiter:
        raise InvalidArgumentError(
            "delimiter", delimiter, "must be non-empty and free of NUL and newline"
        )
    return delimiter


# =============================================================================
# Branches and tags
# =============================================================================

def branch_create(name: str, start_point: Optional[str] = None) -> Command:
    """``git branch <name> [<start_point>]``."""
    name = validate_name("name", name)
    args = ["branch", name]
    if start_point:
        args.append(_validate_revision("start_point", start_point))
    return Command(CommandFamily.BRANCH, tuple(args), subject=name)


def branch_delete(name: str, force: bool = False) -> Command:
    """``git branch -d|-D <name>``."""
    name = validate_name("name", name)
    return Command(
        CommandFamily.BRANCH,
        ("branch", "-D" if force else "-d", name),
        subject=name,
    )


def branch_list() -> Command:
    """``git branch --list -v --no-abbrev --no-color --no-column``.

    ``--no-abbrev`` is required: the line parser only accepts full hashes.
    """
    return Command(
        CommandFamily.BRANCH,
        ("branch", "--list", "-v", "--no-abbrev", "--no-color", "--no-column"),
    )


TAG_LIST_FORMAT = (
    "%(refname:strip=2) "
    "%(if)%(*objectname)%(then)%(*objectname)%(else)%(objectname)%(end) "
    "%(contents:subject)"
)


def tag_create(
    name: str,
    start_point: Optional[str] = None,
    message: Optional[str] = None,
) -> Command:
    """``git tag [-a -m <message>] <name> [<start_point>]``."""
    name = validate_name("name", name)
    args = ["tag"]
    if message:
        args.extend(["-a", "-m", message])
    args.append(name)
    if start_point:
        args.append(_validate_revision("start_point", start_point))
    return Command(CommandFamily.TAG, tuple(args), subject=name)


def tag_delete(name: str) -> Command:
    """``git tag -d <name>``."""
    name = validate_name("name", name)
    return Command(CommandFamily.TAG, ("tag", "-d", name), subject=name)


def tag_list() -> Command:
    """``git tag --list --no-column --format=<name> <peeled sha> <subject>``.

    Annotated tags are peeled so the sha is always the tagged commit.
    """
    return Command(
        CommandFamily.TAG,
        ("tag", "--list", "--no-column", f"--format={TAG_LIST_FORMAT}"),
    )


# =============================================================================
# Working tree
# =============================================================================

def checkout(target: str, create: bool = False) -> Command:
    """``git checkout [-b] <target>``."""
    if create:
        target = validate_name("target", target)
        args = ("checkout", "-b", target)
    else:
        target = _validate_revision("target", target)
        args = ("checkout", target)
    return Command(CommandFamily.CHECKOUT, args, subject=target)


def init(initial_branch: Optional[str] = None) -> Command:
    """``git init [--initial-branch=<name>]``."""
    args = ["init"]
    if initial_branch:
        args.append(f"--initial-branch={validate_name('initial_branch', initial_branch)}")
    return Command(CommandFamily.INIT, tuple(args))


def stage(paths: Optional[Sequence[str]] = None) -> Command:
    """``git add --all`` or ``git add -- <paths>``."""
    path_list = _validate_paths(paths)
    if path_list:
        args = ("add", "--", *path_list)
    else:
        args = ("add", "--all")
    return Command(CommandFamily.STAGE, args)


def commit(message: str, stage_all: bool = False, allow_empty: bool = False) -> Command:
    """``git commit [-a] [--allow-empty] -m <message>``."""
    if message is None or not message.strip():
        raise InvalidArgumentError("message", message, "cannot be empty")
    args = ["commit"]
    if stage_all:
        args.append("-a")
    if allow_empty:
        args.append("--allow-empty")
    args.extend(["-m", message])
    return Command(CommandFamily.COMMIT, tuple(args))


def status() -> Command:
    """``git status --porcelain=v1 --branch -z``."""
    return Command(CommandFamily.STATUS, ("status", "--porcelain=v1", "--branch", "-z"))


# =============================================================================
# Objects and history
# =============================================================================

def tree_list(treeish: Optional[str] = None) -> Command:
    """``git ls-tree -z <treeish>``, defaulting to ``HEAD``.

    Listing ``HEAD`` before the first commit is an empty tree, not an error.
    """
    target = _validate_revision("treeish", treeish) if treeish else HEAD
    benign: tuple[re.Pattern[str], ...] = ()
    if target == HEAD:
        benign = (re.compile(r"not a valid object name:? '?HEAD'?\s*$", re.I | re.M),)
    return Command(
        CommandFamily.TREE,
        ("ls-tree", "-z", target),
        benign_patterns=benign,
        subject=target,
    )


LOG_FIELDS = ("%H", "%T", "%P", "%an <%ae>", "%aI", "%cn <%ce>", "%cI", "%B")


def log_format(delimiter: str) -> str:
    """The ``--format`` value matching :func:`parsers.parse_log_entry`."""
    return _validate_delimiter(delimiter).join(LOG_FIELDS)


def log(
    revision_range: Optional[str] = None,
    limit: Optional[int] = None,
    paths: Optional[Sequence[str]] = None,
    delimiter: str = "\x1f",
) -> Command:
    """``git log -z --format=<fields> [-n <limit>] [<range>] -- [<paths>]``.

    A repository without commits yields an empty log.
    """
    args = ["log", "-z", "--no-color", f"--format={log_format(delimiter)}"]
    if limit is not None:
        if limit < 1:
            raise InvalidArgumentError("limit", limit, "must be a positive integer")
        args.append(f"-n{limit}")
    subject = None
    if revision_range:
        subject = _validate_revision("revision_range", revision_range)
        args.append(subject)
    args.append("--")
    args.extend(_validate_paths(paths))
    return Command(
        CommandFamily.LOG,
        tuple(args),
        benign_patterns=(
            re.compile(r"does not have any commits yet", re.I),
            re.compile(r"bad default revision 'HEAD'", re.I),
        ),
        subject=subject or HEAD,
    )


def rev_parse(ref: str) -> Command:
    """``git rev-parse --verify --quiet <ref>^{commit}``; exit 1 means unknown."""
    ref = _validate_revision("ref", ref)
    return Command(
        CommandFamily.REV_PARSE,
        ("rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"),
        missing_codes=frozenset({1}),
        subject=ref,
    )


def show_toplevel() -> Command:
    """``git rev-parse --show-toplevel``."""
    return Command(CommandFamily.REV_PARSE, ("rev-parse", "--show-toplevel"))


def diff(
    from_ref: str,
    to_ref: Optional[str] = None,
    paths: Optional[Sequence[str]] = None,
) -> Command:
    """``git diff --name-status -z <from> [<to>] -- [<paths>]``."""
    args = ["diff", "--name-status", "-z", "--no-color", _validate_revision("from_ref", from_ref)]
    if to_ref:
        args.append(_validate_revision("to_ref", to_ref))
    args.append("--")
    args.extend(_validate_paths(paths))
    return Command(CommandFamily.DIFF, tuple(args), subject=from_ref)


# =============================================================================
# Failure classification
# =============================================================================

NOT_A_REPOSITORY = re.compile(r"not a git repository", re.I)

ErrorFactory = Callable[[Command, re.Match[str], ProcessExecutionError], GitModelError]


def _quoted(match: re.Match[str], command: Command) -> str:
    return match.groupdict().get("name") or command.subject or ""


def _exists(kind: str) -> ErrorFactory:
    def build(command: Command, match: re.Match[str], error: ProcessExecutionError) -> GitModelError:
        return AlreadyExistsError(kind, _quoted(match, command), error.stderr)
    return build


def _missing(kind: str) -> ErrorFactory:
    def build(command: Command, match: re.Match[str], error: ProcessExecutionError) -> GitModelError:
        return NotFoundError(kind, _quoted(match, command), error.stderr)
    return build


def _invalid(argument: str) -> ErrorFactory:
    def build(command: Command, match: re.Match[str], error: ProcessExecutionError) -> GitModelError:
        return InvalidArgumentError(argument, _quoted(match, command), error.stderr.strip())
    return build


_UNKNOWN_REVISION = (
    re.compile(r"ambiguous argument '(?P<name>[^']+)': unknown revision", re.I),
    _missing("revision"),
)
_BAD_REVISION = (re.compile(r"bad revision '(?P<name>[^']+)'", re.I), _missing("revision"))
_BAD_OBJECT = (
    re.compile(r"not a valid object name:? '?(?P<name>[^'\s]+)'?", re.I),
    _missing("revision"),
)
# A well-formed hash naming no object
_MISSING_OBJECT = (re.compile(r"bad object (?P<name>\S+)", re.I), _missing("revision"))

_FAILURE_RULES: dict[CommandFamily, tuple[tuple[re.Pattern[str], ErrorFactory], ...]] = {
    CommandFamily.BRANCH: (
        (re.compile(r"branch named '(?P<name>[^']+)' already exists", re.I), _exists("branch")),
        (re.compile(r"branch '(?P<name>[^']+)' not found", re.I), _missing("branch")),
        (re.compile(r"'(?P<name>[^']+)' is not a valid branch name", re.I), _invalid("name")),
        (re.compile(r"not a valid branch point: '(?P<name>[^']+)'", re.I), _missing("revision")),
        _BAD_OBJECT,
    ),
    CommandFamily.TAG: (
        (re.compile(r"tag '(?P<name>[^']+)' already exists", re.I), _exists("tag")),
        (re.compile(r"tag '(?P<name>[^']+)' not found", re.I), _missing("tag")),
        (re.compile(r"'(?P<name>[^']+)' is not a valid tag name", re.I), _invalid("name")),
        (re.compile(r"failed to resolve '(?P<name>[^']+)' as a valid ref", re.I), _missing("revision")),
        _BAD_OBJECT,
    ),
    CommandFamily.CHECKOUT: (
        (re.compile(r"branch named '(?P<name>[^']+)' already exists", re.I), _exists("branch")),
        (re.compile(r"pathspec '(?P<name>[^']+)' did not match", re.I), _missing("revision")),
        (re.compile(r"invalid reference: (?P<name>\S+)", re.I), _missing("revision")),
    ),
    CommandFamily.STAGE: (
        (re.compile(r"pathspec '(?P<name>[^']+)' did not match", re.I), _missing("path")),
    ),
    CommandFamily.TREE: (
        (re.compile(r"not a tree object", re.I), _missing("tree")),
        (re.compile(r"not a valid object name:? '?(?P<name>[^'\s]+)'?", re.I), _missing("tree")),
    ),
    CommandFamily.LOG: (_UNKNOWN_REVISION, _BAD_REVISION, _BAD_OBJECT, _MISSING_OBJECT),
    CommandFamily.DIFF: (_UNKNOWN_REVISION, _BAD_REVISION, _BAD_OBJECT, _MISSING_OBJECT),
}


def classify_failure(
    command: Command,
    error: ProcessExecutionError,
    path: Path | str,
) -> ProcessResult:
    """Turn a failed git invocation into a result or a specific error.

    Returns an empty ProcessResult when git's message only means there is
    nothing to report (for example ``git log`` before the first commit).

    Raises:
        NotAGitRepositoryError: If git says the path is not a repository.
        NotFoundError: If the command's subject does not exist.
        AlreadyExistsError: If the command would overwrite an existing ref.
        InvalidArgumentError: If git rejects a name as malformed.
        ProcessExecutionError: The original error, for anything unrecognized.
    """
    text = error.stderr

    if command.family is not CommandFamily.INIT and NOT_A_REPOSITORY.search(text):
        raise NotAGitRepositoryError(str(path), error.stderr) from error

    for pattern in command.benign_patterns:
        if pattern.search(text):
            logger.debug(f"git {command.name}: treating '{text.strip()}' as an empty result")
            return ProcessResult(
                args=tuple(error.command_args),
                exit_code=error.returncode if error.returncode is not None else 0,
                stdout="",
                stderr=error.stderr,
            )

    if error.returncode in command.missing_codes:
        raise NotFoundError("revision", command.subject or "", error.stderr) from error

    for pattern, build in _FAILURE_RULES.get(command.family, ()):
        match = pattern.search(text)
        if match:
            classified = build(command, match, error)
            logger.debug(f"git {command.name} failed: {classified}")
            raise classified from error

    raise error
