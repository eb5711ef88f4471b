"""Base runner interface for VASP execution.

This module defines the abstract Runner interface that the execution
backends implement, and the job state shared with the calculator.
"""

from __future__ import annotations

import os
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..readers import find_outcar_errors, outcar_complete


class JobState(Enum):
    """Possible states of a VASP calculation."""

    NOT_STARTED = "not_started"  # No job started, no results
    RUNNING = "running"  # Currently executing
    COMPLETE = "complete"  # Finished successfully
    FAILED = "failed"  # Finished with error
    UNKNOWN = "unknown"  # Cannot determine state


@dataclass
class JobStatus:
    """Status information for a VASP calculation.

    Attributes:
        state: Current state of the job.
        jobid: Process identifier (if applicable).
        message: Additional status message or error description.
        metadata: Additional runner-specific data.
    """

    state: JobState
    jobid: str | None = None
    message: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_done(self) -> bool:
        """Check if calculation has finished (success or failure)."""
        return self.state in (JobState.COMPLETE, JobState.FAILED)

    @property
    def is_active(self) -> bool:
        """Check if calculation is running."""
        return self.state == JobState.RUNNING

    @property
    def is_success(self) -> bool:
        """Check if calculation completed successfully."""
        return self.state == JobState.COMPLETE


class Runner(ABC):
    """Abstract base class for VASP execution backends.

    Subclasses must implement:
    - run(): Start a calculation
    - status(): Check current job status

    Example:
        >>> runner = LocalRunner(nprocs=16)
        >>> status = runner.run('/path/to/calc')
        >>> if status.state == JobState.COMPLETE:
        ...     print("Done!")
    """

    @abstractmethod
    def run(self, directory: str) -> JobStatus:
        """Start a VASP calculation.

        Args:
            directory: Path to calculation directory containing input files.

        Returns:
            JobStatus with current state after starting.

        Raises:
            VaspRunning: Job is currently running.
            VaspSetupError: Input files missing or invalid.
        """
        pass

    @abstractmethod
    def status(self, directory: str) -> JobStatus:
        """Check status of a calculation without blocking.

        This method never starts a new calculation.

        Args:
            directory: Path to calculation directory.

        Returns:
            JobStatus with current state.
        """
        pass

    def cancel(self, directory: str) -> bool:
        """Cancel a running job.

        Returns:
            True if cancellation was successful or job wasn't running.
        """
        return False

    def wait(
        self, directory: str, timeout: float | None = None, poll_interval: float = 30.0
    ) -> JobStatus:
        """Block until calculation completes.

        Args:
            directory: Path to calculation directory.
            timeout: Maximum seconds to wait (None = forever).
            poll_interval: Seconds between status checks.

        Returns:
            Final JobStatus.

        Raises:
            TimeoutError: If timeout is reached before completion.
        """
        start = time.time()
        while True:
            s = self.status(directory)
            if s.is_done:
                return s
            if timeout is not None and (time.time() - start) > timeout:
                raise TimeoutError(f"Calculation not complete after {timeout}s")
            time.sleep(poll_interval)

    def get_logs(self, directory: str, tail_lines: int = 100) -> str:
        """Last lines of the OUTCAR."""
        outcar = os.path.join(directory, "OUTCAR")
        if os.path.exists(outcar):
            with open(outcar) as f:
                lines = f.readlines()
                return "".join(lines[-tail_lines:])
        return "No OUTCAR found"

    def _check_outcar_complete(self, directory: str) -> bool:
        return outcar_complete(os.path.join(directory, "OUTCAR"))

    def _check_outcar_error(self, directory: str) -> str | None:
        """First fatal error message in the OUTCAR, if any."""
        errors = find_outcar_errors(os.path.join(directory, "OUTCAR"))
        return errors[0] if errors else None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"
