"""Exceptions for vanadox.

The calculator signals the state of a VASP run by raising these
exceptions, so that scripts can start a calculation, come back later
and pick up the results without blocking.

Example:
    >>> from vanadox import Vasp
    >>> from vanadox.exceptions import VaspRunning, VaspNotConverged
    >>>
    >>> calc = Vasp('vo2/relax', atoms=atoms, runner=runner)
    >>> try:
    ...     energy = calc.potential_energy
    ... except VaspRunning as e:
    ...     print(f"Still running ({e.jobid})")
    ... except VaspNotConverged:
    ...     print("Run vanadox diagnose --fix")
"""

from __future__ import annotations


class VaspException(Exception):
    """Base exception for all VASP-related errors."""
    pass


class VaspRunning(VaspException):
    """Raised when a job is currently executing.

    Attributes:
        jobid: Process identifier of the running job.
        message: Additional status message.
    """

    def __init__(self, message: str = "Running", jobid: str | None = None):
        self.message = message
        self.jobid = jobid
        super().__init__(message)

    def __str__(self) -> str:
        if self.jobid:
            return f"{self.message} ({self.jobid})"
        return self.message


class VaspNotFinished(VaspException):
    """Raised when a calculation started but is not complete."""

    def __init__(self, message: str = "Calculation not finished"):
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return self.message


class VaspNotConverged(VaspException):
    """Raised when a calculation did not converge.

    For vanadium oxides this is usually the electronic loop hitting
    NELM; see :mod:`vanadox.troubleshoot`.
    """

    def __init__(self, message: str = "Calculation did not converge"):
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return self.message


class VaspError(VaspException):
    """Raised when VASP stops with a fatal error."""

    def __init__(self, message: str = "VASP error"):
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return self.message


class VaspEmptyOutput(VaspException):
    """Raised when expected output files are empty or missing."""

    def __init__(self, message: str = "Empty or missing output"):
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return self.message


class VaspSetupError(VaspException):
    """Raised when there's an error in calculation setup.

    This includes missing POTCAR files, missing input files and
    executables that cannot be found.
    """

    def __init__(self, message: str = "Setup error"):
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return self.message


class VaspkitError(VaspException):
    """Raised when a vaspkit task exits with an error.

    Attributes:
        task: The vaspkit task number.
        returncode: Exit code of the vaspkit process.
        output: Captured stdout/stderr.
    """

    def __init__(
        self,
        message: str = "vaspkit error",
        task: int | None = None,
        returncode: int | None = None,
        output: str = "",
    ):
        self.message = message
        self.task = task
        self.returncode = returncode
        self.output = output
        super().__init__(message)

    def __str__(self) -> str:
        if self.task is not None:
            return f"{self.message} (task {self.task}, exit code {self.returncode})"
        return self.message


class VaspWarning(UserWarning):
    """Warning for non-fatal issues that may affect results."""
    pass
