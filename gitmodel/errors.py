"""Centralized exception hierarchy for gitmodel.

Every failure raised by the package derives from GitModelError, so callers
can catch the whole family at once or pick the specific condition they care
about (a missing branch, a name collision, a directory that is not a
repository).
"""

from __future__ import annotations

from typing import Any, Optional, Sequence


class GitModelError(Exception):
    """Base exception for all gitmodel errors.

    Attributes:
        message: Human-readable error message.
        code: Optional error code for programmatic handling.
        details: Optional dictionary with additional error context.
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "details": self.details,
        }


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(GitModelError):
    """Raised when there's a configuration problem."""
    pass


class InvalidConfigError(ConfigurationError):
    """Raised when configuration values are invalid."""

    def __init__(self, field: str, value: Any, reason: str):
        super().__init__(
            message=f"Invalid configuration for '{field}': {reason}",
            code="INVALID_CONFIG",
            details={"field": field, "value": str(value)[:100], "reason": reason},
        )


# =============================================================================
# Argument Errors
# =============================================================================

class InvalidArgumentError(GitModelError):
    """Raised when a name or parameter is malformed, before anything runs."""

    def __init__(self, argument: str, value: Any, reason: str):
        super().__init__(
            message=f"Invalid value for '{argument}': {reason}",
            code="INVALID_ARGUMENT",
            details={"argument": argument, "value": str(value)[:100], "reason": reason},
        )


# =============================================================================
# Process Errors
# =============================================================================

class ProcessExecutionError(GitModelError):
    """Raised when git is missing or exits with an unexpected code."""

    def __init__(
        self,
        message: str,
        args: Sequence[str] = (),
        returncode: Optional[int] = None,
        stderr: Optional[str] = None,
        stdout: Optional[str] = None,
        code: str = "PROCESS_ERROR",
    ):
        details: dict[str, Any] = {"args": list(args)}
        if returncode is not None:
            details["returncode"] = returncode
        if stderr:
            details["stderr"] = stderr[:500]  # Truncate for safety
        super().__init__(message, code, details)
        self.command_args = list(args)
        self.returncode = returncode
        self.stderr = stderr or ""
        self.stdout = stdout or ""


class ProcessTimeoutError(ProcessExecutionError):
    """Raised when a git command exceeds its time budget."""

    def __init__(self, args: Sequence[str], timeout: float):
        super().__init__(
            message=f"Command timed out after {timeout}s: {' '.join(args)}",
            args=args,
            code="PROCESS_TIMEOUT",
        )
        self.details["timeout_seconds"] = timeout
        self.timeout = timeout


# =============================================================================
# Output Errors
# =============================================================================

class ParseError(GitModelError):
    """Raised when command output matches none of the recognized formats."""

    def __init__(self, kind: str, raw: str, reason: Optional[str] = None):
        message = f"Cannot parse {kind}: {raw!r}"
        if reason:
            message += f" ({reason})"
        super().__init__(
            message=message,
            code="PARSE_ERROR",
            details={"kind": kind, "raw": raw},
        )
        self.kind = kind
        self.raw = raw


# =============================================================================
# Repository Errors
# =============================================================================

class NotFoundError(GitModelError):
    """Raised when a named entity is absent after a full lookup."""

    def __init__(self, kind: str, name: str, stderr: Optional[str] = None):
        details = {"kind": kind, "name": name}
        if stderr:
            details["stderr"] = stderr[:500]
        super().__init__(
            message=f"The {kind} '{name}' doesn't exist",
            code="NOT_FOUND",
            details=details,
        )
        self.kind = kind
        self.name = name


class AlreadyExistsError(GitModelError):
    """Raised when creating an entity whose name is already taken."""

    def __init__(self, kind: str, name: str, stderr: Optional[str] = None):
        details = {"kind": kind, "name": name}
        if stderr:
            details["stderr"] = stderr[:500]
        super().__init__(
            message=f"The {kind} '{name}' already exists",
            code="ALREADY_EXISTS",
            details=details,
        )
        self.kind = kind
        self.name = name


class NotAGitRepositoryError(GitModelError):
    """Raised when the working directory is not a git repository."""

    def __init__(self, path: str, stderr: Optional[str] = None):
        details = {"path": path}
        if stderr:
            details["stderr"] = stderr[:500]
        super().__init__(
            message=f"Not a git repository: {path}",
            code="NOT_A_REPOSITORY",
            details=details,
        )
        self.path = path
