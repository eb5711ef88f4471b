"""Run vaspkit tasks.

vaspkit is a separate pre/post-processing program for VASP. Its tasks
are selected by number, e.g. ``vaspkit -task 303`` writes the
high-symmetry path for a bulk band structure. Tasks that ask follow-up
questions get their answers on stdin.

Example:
    >>> from vanadox.vaspkit import run_vaspkit
    >>> run_vaspkit(102, 'vo2/static', inputs=['2', '0.04'])  # KPOINTS mesh
"""

from __future__ import annotations

import logging
import os
import subprocess

from .config import get_setting
from .exceptions import VaspkitError, VaspSetupError

log = logging.getLogger('vanadox')

VASPKIT_TASKS = {
    102: 'Generate KPOINTS file for SCF calculation',
    103: 'Generate POTCAR file with default setting',
    113: 'Total density of states',
    211: 'Band structure',
    251: 'Generate k-path for hybrid band structure',
    303: 'K-path for bulk band structure',
    402: 'Supercell',
    601: 'Optimize structure symmetry',
}


def build_vaspkit_command(task: int, executable: str | None = None) -> list[str]:
    """Argument list for a vaspkit task."""
    task = int(task)
    if task <= 0:
        raise ValueError(f'vaspkit task numbers are positive, got {task}')
    executable = executable or get_setting('vaspkit.executable', 'vaspkit')
    return [executable, '-task', str(task)]


def run_vaspkit(task: int,
                directory: str = '.',
                inputs: list[str] | None = None,
                executable: str | None = None,
                timeout: float | None = 600) -> str:
    """Run a vaspkit task in directory.

    Args:
        task: vaspkit task number (see VASPKIT_TASKS).
        directory: Working directory with the VASP files.
        inputs: Answers to vaspkit's follow-up prompts, one per line.
        executable: vaspkit binary (default from configuration).
        timeout: Seconds before giving up.

    Returns:
        vaspkit's standard output.

    Raises:
        VaspSetupError: If vaspkit cannot be started.
        VaspkitError: If vaspkit exits with a non-zero code.
    """
    cmd = build_vaspkit_command(task, executable)
    stdin = '\n'.join(inputs) + '\n' if inputs else None
    description = VASPKIT_TASKS.get(int(task), 'unknown task')
    log.info(f"Running '{' '.join(cmd)}' ({description}) in {directory}")

    try:
        result = subprocess.run(
            cmd,
            cwd=os.path.abspath(directory),
            input=stdin,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise VaspSetupError(
            f'vaspkit executable {cmd[0]!r} not found. '
            f'Set VASPKIT_EXECUTABLE or vaspkit.executable in .vanadoxrc.'
        ) from e

    if result.returncode != 0:
        raise VaspkitError(
            f'vaspkit failed in {directory}',
            task=int(task),
            returncode=result.returncode,
            output=result.stdout + result.stderr,
        )
    return result.stdout
