"""Runners for executing VASP calculations.

Runners start VASP jobs and report their status through a uniform
interface.

Example:
    >>> from vanadox.runners import LocalRunner, MockRunner
    >>>
    >>> # mpirun -np 16 vasp_std
    >>> runner = LocalRunner(nprocs=16)
    >>>
    >>> # No VASP needed
    >>> runner = MockRunner(energy=-52.4)
"""

from .base import JobState, JobStatus, Runner
from .local import (
    LocalRunner,
    clean_output_files,
    get_optimal_nprocs,
    restart_files,
)
from .mock import MockResults, MockRunner

__all__ = [
    "Runner",
    "JobState",
    "JobStatus",
    "LocalRunner",
    "clean_output_files",
    "get_optimal_nprocs",
    "restart_files",
    "MockRunner",
    "MockResults",
]
