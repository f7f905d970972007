"""Parsers for git's textual output.

Each parser handles one output shape (see :mod:`gitmodel.git.commands` for
the flags that produce it) and raises :class:`~gitmodel.errors.ParseError`
carrying the raw text when the input does not conform. Hash length is a
parameter so SHA-256 repositories only need a configuration change.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Union

from gitmodel.errors import ParseError

DEFAULT_SHA_LENGTH = 40

CURRENT_MARKER = "* "
# Branch checked out in another worktree (git >= 2.36)
WORKTREE_MARKER = "+ "

_DETACHED_DESCRIPTOR = re.compile(r"^\([^)]*\b(?:detached|no branch)\b", re.I)
_MODE = re.compile(r"^[0-7]{6}$")
_AHEAD = re.compile(r"ahead (\d+)")
_BEHIND = re.compile(r"behind (\d+)")

TREE_TYPES = frozenset({"blob", "tree", "commit"})


@dataclass(frozen=True)
class BranchEntry:
    """One named branch from ``git branch -v``."""

    name: str
    sha: str
    comment: str
    current: bool = False


@dataclass(frozen=True)
class DetachedEntry:
    """The ``(HEAD detached at ...)`` line of a branch listing."""

    description: str
    sha: str
    comment: str
    current: bool = False


@dataclass(frozen=True)
class TagEntry:
    """One tag from the formatted tag listing."""

    name: str
    sha: str
    comment: str


@dataclass(frozen=True)
class TreeEntry:
    """One ``ls-tree`` record."""

    mode: str
    type: str
    sha: str
    path: str


@dataclass(frozen=True)
class LogEntry:
    """One commit from the delimited ``git log`` format."""

    sha: str
    tree: str
    parents: tuple[str, ...]
    author: str
    author_date: str
    committer: str
    committer_date: str
    message: str


BranchLine = Union[BranchEntry, DetachedEntry]


@lru_cache(maxsize=None)
def _hex(sha_length: int) -> re.Pattern[str]:
    return re.compile(rf"^[0-9a-fA-F]{{{sha_length}}}$")


@lru_cache(maxsize=None)
def _ref_line_patterns(sha_length: int) -> tuple[re.Pattern[str], re.Pattern[str]]:
    sha = rf"[0-9a-fA-F]{{{sha_length}}}"
    detached = re.compile(
        rf"^\((?P<description>.*?)\)\s+(?P<sha>{sha})(?:\s+(?P<comment>.*))?$"
    )
    named = re.compile(rf"^(?P<name>\S+)\s+(?P<sha>{sha})(?:\s+(?P<comment>.*))?$")
    return detached, named


def is_valid_sha(value: str, sha_length: int = DEFAULT_SHA_LENGTH) -> bool:
    """Check that value is a full lowercase object id."""
    return bool(_hex(sha_length).match(value)) and value == value.lower()


def _normalize_sha(kind: str, raw: str, value: str, sha_length: int) -> str:
    value = value.strip()
    if not _hex(sha_length).match(value):
        raise ParseError(kind, raw, f"expected a {sha_length}-character hash, got {value!r}")
    return value.lower()


# =============================================================================
# Refs
# =============================================================================

def parse_branch_line(line: str, sha_length: int = DEFAULT_SHA_LENGTH) -> BranchLine:
    """Parse one line of ``git branch -v --no-abbrev``.

    The detached-HEAD descriptor is recognized before the general
    ``<name> <sha> <comment>`` pattern, so ``(HEAD detached at ...)`` can
    never be read as a branch called ``(HEAD``.

    Args:
        line: Raw output line.
        sha_length: Expected object id length.

    Returns:
        BranchEntry for named branches, DetachedEntry for a detached HEAD.

    Raises:
        ParseError: If the line matches neither shape.
    """
    text = line.strip()
    current = False
    if text.startswith(CURRENT_MARKER):
        current = True
        text = text[len(CURRENT_MARKER):].strip()
    elif text.startswith(WORKTREE_MARKER):
        text = text[len(WORKTREE_MARKER):].strip()

    detached, named = _ref_line_patterns(sha_length)

    if _DETACHED_DESCRIPTOR.match(text):
        match = detached.match(text)
        if not match:
            raise ParseError("branch line", line, "unrecognized detached HEAD descriptor")
        return DetachedEntry(
            description=match.group("description").strip(),
            sha=match.group("sha").lower(),
            comment=(match.group("comment") or "").strip(),
            current=current,
        )

    match = named.match(text)
    if not match:
        raise ParseError("branch line", line)
    return BranchEntry(
        name=match.group("name").strip(),
        sha=match.group("sha").lower(),
        comment=(match.group("comment") or "").strip(),
        current=current,
    )


def parse_tag_line(line: str, sha_length: int = DEFAULT_SHA_LENGTH) -> TagEntry:
    """Parse one ``<name> <sha> <subject>`` line of the tag listing."""
    _, named = _ref_line_patterns(sha_length)
    match = named.match(line.strip())
    if not match:
        raise ParseError("tag line", line)
    return TagEntry(
        name=match.group("name").strip(),
        sha=match.group("sha").lower(),
        comment=(match.group("comment") or "").strip(),
    )


# =============================================================================
# Trees
# =============================================================================

def parse_tree_line(record: str, sha_length: int = DEFAULT_SHA_LENGTH) -> TreeEntry:
    """Parse one ``<mode> <type> <sha>\\t<path>`` record of ``git ls-tree``.

    Raises:
        ParseError: On a wrong field count, unknown mode or type, or a hash
            of the wrong length.
    """
    meta, sep, path = record.partition("\t")
    if not sep or not path:
        raise ParseError("tree entry", record, "missing path")

    fields = meta.strip().split(" ")
    if len(fields) != 3:
        raise ParseError("tree entry", record, f"expected 3 fields before the path, got {len(fields)}")

    mode, obj_type, sha = fields
    if not _MODE.match(mode):
        raise ParseError("tree entry", record, f"invalid mode {mode!r}")
    if obj_type not in TREE_TYPES:
        raise ParseError("tree entry", record, f"unknown object type {obj_type!r}")

    return TreeEntry(
        mode=mode,
        type=obj_type,
        sha=_normalize_sha("tree entry", record, sha, sha_length),
        path=path,
    )


# =============================================================================
# History
# =============================================================================

LOG_FIELD_COUNT = 8


def parse_log_entry(
    record: str,
    delimiter: str = "\x1f",
    sha_length: int = DEFAULT_SHA_LENGTH,
) -> LogEntry:
    """Parse one delimited ``git log`` record.

    Fields are sha, tree, parents, author, author date, committer,
    committer date and message. The message is last so it may itself
    contain the delimiter.

    Raises:
        ParseError: If a field is missing or any hash is malformed.
    """
    text = record.lstrip("\n")
    fields = text.split(delimiter, LOG_FIELD_COUNT - 1)
    if len(fields) != LOG_FIELD_COUNT:
        raise ParseError(
            "log entry", record, f"expected {LOG_FIELD_COUNT} fields, got {len(fields)}"
        )

    sha, tree, parents, author, author_date, committer, committer_date, message = fields

    return LogEntry(
        sha=_normalize_sha("log entry", record, sha, sha_length),
        tree=_normalize_sha("log entry", record, tree, sha_length),
        parents=tuple(
            _normalize_sha("log entry", record, parent, sha_length)
            for parent in parents.split()
        ),
        author=author.strip(),
        author_date=author_date.strip(),
        committer=committer.strip(),
        committer_date=committer_date.strip(),
        message=message.rstrip("\n"),
    )


# =============================================================================
# Working tree
# =============================================================================

def _parse_branch_header(header: str) -> dict:
    """Parse the ``## ...`` header of ``git status --branch``."""
    info: dict = {"branch": None, "upstream": None, "ahead": 0, "behind": 0, "has_commits": True}
    text = header[3:].strip()

    for prefix in ("No commits yet on ", "Initial commit on "):
        if text.startswith(prefix):
            info["branch"] = text[len(prefix):].strip()
            info["has_commits"] = False
            return info

    if text.startswith("HEAD (no branch)"):
        return info

    tracking = ""
    if " [" in text and text.endswith("]"):
        text, _, tracking = text.partition(" [")
    if "..." in text:
        branch, _, upstream = text.partition("...")
        info["branch"] = branch
        info["upstream"] = upstream
    else:
        info["branch"] = text

    ahead = _AHEAD.search(tracking)
    behind = _BEHIND.search(tracking)
    if ahead:
        info["ahead"] = int(ahead.group(1))
    if behind:
        info["behind"] = int(behind.group(1))
    return info


def parse_status(porcelain_output: str) -> dict:
    """Parse ``git status --porcelain=v1 --branch -z`` output.

    Args:
        porcelain_output: NUL-separated porcelain records.

    Returns:
        Dictionary with branch information and categorized file lists.

    Raises:
        ParseError: If a record is shorter than the ``XY path`` layout.
    """
    staged = []
    modified = []
    untracked = []
    deleted = []
    conflicted = []
    info = {"branch": None, "upstream": None, "ahead": 0, "behind": 0, "has_commits": True}

    records = iter(porcelain_output.split("\0"))
    for record in records:
        if not record:
            continue

        if record.startswith("## "):
            info = _parse_branch_header(record)
            continue

        # Porcelain format: XY filename
        # X = staged status, Y = working tree status
        if len(record) < 4 or record[2] != " ":
            raise ParseError("status entry", record)

        x, y = record[0], record[1]
        filename = record[3:]

        # Renames and copies are followed by the original path
        if x in "RC":
            next(records, None)

        # Conflicts
        if x == "U" or y == "U" or (x == "A" and y == "A") or (x == "D" and y == "D"):
            conflicted.append(filename)
            continue

        # Staged changes (X column)
        if x == "A":
            staged.append(("added", filename))
        elif x == "M":
            staged.append(("modified", filename))
        elif x == "D":
            staged.append(("deleted", filename))
        elif x == "R":
            staged.append(("renamed", filename))
        elif x == "C":
            staged.append(("copied", filename))
        elif x == "T":
            staged.append(("typechange", filename))

        # Working tree changes (Y column)
        if y == "M" or y == "T":
            modified.append(filename)
        elif y == "D":
            deleted.append(filename)
        elif y == "?":
            untracked.append(filename)

    return {
        **info,
        "staged": staged,
        "modified": modified,
        "untracked": untracked,
        "deleted": deleted,
        "conflicted": conflicted,
    }


def parse_name_status(output: str) -> list[tuple[str, str, Optional[str]]]:
    """Parse ``git diff --name-status -z`` output.

    Returns:
        (status letter, path, old path) tuples; old path is set for renames
        and copies only.

    Raises:
        ParseError: If a status is not followed by its path(s).
    """
    tokens = output.split("\0")
    if tokens and tokens[-1] == "":
        tokens.pop()

    entries = []
    index = 0
    while index < len(tokens):
        status = tokens[index]
        if not status or not status[0].isalpha():
            raise ParseError("diff entry", status, "expected a status letter")
        letter = status[0]
        if letter in "RC":
            if index + 2 >= len(tokens):
                raise ParseError("diff entry", "\0".join(tokens[index:]), "missing rename paths")
            entries.append((letter, tokens[index + 2], tokens[index + 1]))
            index += 3
        else:
            if index + 1 >= len(tokens):
                raise ParseError("diff entry", status, "missing path")
            entries.append((letter, tokens[index + 1], None))
            index += 2
    return entries
