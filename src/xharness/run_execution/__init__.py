"""Run execution domain exports."""

from .process_runner import (
    ProcessLaunchError,
    ProcessResult,
    ProcessRunner,
    ProcessTimedOut,
    SubprocessRunner,
)
from .run_contracts import (
    Backend,
    BackendFailure,
    BackendOutcome,
    BackendTimeout,
    RunOutcome,
    RunRequest,
    resolve_exit_code,
)
from .run_use_case import execute_test_run, flush_results

__all__ = [
    "Backend",
    "BackendFailure",
    "BackendOutcome",
    "BackendTimeout",
    "ProcessLaunchError",
    "ProcessResult",
    "ProcessRunner",
    "ProcessTimedOut",
    "RunOutcome",
    "RunRequest",
    "SubprocessRunner",
    "execute_test_run",
    "flush_results",
    "resolve_exit_code",
]
