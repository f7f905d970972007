"""Blocking process execution for git commands."""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Collection, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from gitmodel.errors import InvalidArgumentError, ProcessExecutionError, ProcessTimeoutError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessResult:
    """Captured outcome of one finished process."""

    args: tuple[str, ...]
    exit_code: int
    stdout: str
    stderr: str

    @property
    def lines(self) -> list[str]:
        """Non-empty stdout lines, in emission order."""
        return [line for line in self.stdout.splitlines() if line.strip()]

    def records(self, separator: str = "\0") -> list[str]:
        """Split stdout on a record separator, dropping empty records."""
        return [record for record in self.stdout.split(separator) if record]


def execute(
    args: Sequence[str],
    cwd: Path | str | None = None,
    ok_codes: Collection[int] = (0,),
    timeout: Optional[float] = None,
    env: Optional[Mapping[str, str]] = None,
) -> ProcessResult:
    """Run a command and wait for it to finish.

    Args:
        args: Executable followed by its arguments. Never passed to a shell.
        cwd: Working directory for the command.
        ok_codes: Exit codes that count as success for this command.
        timeout: Seconds before the process is killed, or None to wait forever.
        env: Extra environment variables layered over the current environment.

    Returns:
        ProcessResult with the exit code and decoded output.

    Raises:
        InvalidArgumentError: If args is empty or passed as a single string.
        ProcessExecutionError: If the executable is missing or exits with an
            unexpected code.
        ProcessTimeoutError: If the command runs longer than timeout.
    """
    if isinstance(args, str) or not args:
        raise InvalidArgumentError("args", args, "expected a non-empty argument vector")

    cmd = [str(arg) for arg in args]
    environment = None
    if env:
        environment = {**os.environ, **env}

    logger.debug(f"Running command: {' '.join(cmd)} (cwd={cwd})")

    try:
        # run() kills the child before re-raising TimeoutExpired
        completed = subprocess.run(
            cmd,
            cwd=str(cwd) if cwd else None,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            env=environment,
        )
    except subprocess.TimeoutExpired as e:
        logger.debug(f"Command timed out after {timeout}s: {' '.join(cmd)}")
        raise ProcessTimeoutError(cmd, timeout) from e
    except FileNotFoundError as e:
        raise ProcessExecutionError(
            f"Executable not found: {cmd[0]}",
            args=cmd,
            code="EXECUTABLE_NOT_FOUND",
        ) from e

    logger.debug(f"Command exited with {completed.returncode}: {' '.join(cmd)}")

    if completed.returncode not in ok_codes:
        # Some failures (e.g. "nothing to commit") are only reported on stdout
        error_msg = (
            (completed.stderr or "").strip()
            or (completed.stdout or "").strip()
            or f"Command failed with exit code {completed.returncode}"
        )
        raise ProcessExecutionError(
            error_msg,
            args=cmd,
            returncode=completed.returncode,
            stderr=completed.stderr,
            stdout=completed.stdout,
        )

    return ProcessResult(
        args=tuple(cmd),
        exit_code=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
    )
