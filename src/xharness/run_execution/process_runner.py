"""Process execution boundary used by platform backends."""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Protocol

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessResult:
    """Exit status and captured output of a finished process."""

    args: tuple[str, ...]
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    def output_lines(self) -> list[str]:
        return self.stdout.splitlines() + self.stderr.splitlines()


class ProcessLaunchError(Exception):
    """Raised when the executable cannot be started at all."""


class ProcessTimedOut(Exception):
    """Raised when a process outlives its timeout; holds the output seen so far."""

    def __init__(self, args: Sequence[str], timeout: timedelta, stdout: str = "") -> None:
        super().__init__(f"'{shlex.join(args)}' timed out after {timeout}")
        self.args_run = tuple(args)
        self.timeout = timeout
        self.stdout = stdout


class ProcessRunner(Protocol):
    def run(
        self,
        args: Sequence[str],
        *,
        timeout: timedelta | None = None,
        env: Mapping[str, str] | None = None,
        cwd: Path | None = None,
    ) -> ProcessResult: ...


class SubprocessRunner:
    """Runs one blocking child process with captured text output."""

    def run(
        self,
        args: Sequence[str],
        *,
        timeout: timedelta | None = None,
        env: Mapping[str, str] | None = None,
        cwd: Path | None = None,
    ) -> ProcessResult:
        command = [str(arg) for arg in args]
        LOGGER.debug("Running %s", shlex.join(command))
        merged_env = None if env is None else {**os.environ, **env}
        try:
            completed = subprocess.run(
                command,
                capture_output=True,
                text=True,
                errors="replace",
                env=merged_env,
                cwd=cwd,
                timeout=None if timeout is None else timeout.total_seconds(),
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise ProcessTimedOut(command, timeout or timedelta(), _decode(exc.stdout)) from exc
        except OSError as exc:
            raise ProcessLaunchError(f"Failed to start '{command[0]}': {exc}") from exc
        LOGGER.debug("'%s' exited with %d", command[0], completed.returncode)
        return ProcessResult(
            args=tuple(command),
            exit_code=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )


def _decode(output: bytes | str | None) -> str:
    if output is None:
        return ""
    if isinstance(output, bytes):
        return output.decode("utf-8", errors="replace")
    return output
