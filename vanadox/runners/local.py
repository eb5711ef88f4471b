"""Local runner for VASP execution.

Runs VASP directly on the local machine through ``mpirun -np X vasp_std``,
either blocking (default) or in background mode.
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess

from ..config import load_config
from ..exceptions import VaspRunning, VaspSetupError
from .base import JobState, JobStatus, Runner

log = logging.getLogger('vanadox')

# vasp_std: collinear, vasp_gam: Gamma-only, vasp_ncl: non-collinear/SOC
VASP_BINARIES = ("vasp_std", "vasp_gam", "vasp_ncl")

OUTPUT_FILES = [
    "OUTCAR",
    "OSZICAR",
    "vasprun.xml",
    "CONTCAR",
    "CHG",
    "CHGCAR",
    "WAVECAR",
    "PROCAR",
    "EIGENVAL",
    "DOSCAR",
    "PCDAT",
    "XDATCAR",
    "REPORT",
    "IBZKPT",
    "vasp.out",
    ".vasp_pid",
]


def get_optimal_nprocs(directory: str | None = None) -> int:
    """Determine a reasonable number of MPI processes.

    Uses half of the available CPUs, no more than one process per
    ~10 atoms in the POSCAR, and a multiple of NCORE when the INCAR
    sets it.

    Args:
        directory: Calculation directory (optional, for reading INCAR/POSCAR)

    Returns:
        Recommended number of MPI processes
    """
    cpu_count = os.cpu_count() or 1
    nprocs = max(1, min(cpu_count // 2, 32))

    if directory:
        incar_path = os.path.join(directory, "INCAR")
        poscar_path = os.path.join(directory, "POSCAR")

        natoms = 1
        if os.path.exists(poscar_path):
            with open(poscar_path) as f:
                lines = f.readlines()
            # Line 6 (VASP4) or 7 (VASP5) has atom counts
            for i in [5, 6]:
                if i < len(lines):
                    parts = lines[i].split()
                    if parts and all(p.isdigit() for p in parts):
                        natoms = sum(int(x) for x in parts)
                        break

        max_efficient = max(1, natoms // 10)
        nprocs = min(nprocs, max_efficient)

        if os.path.exists(incar_path):
            from ..readers import read_incar

            ncore = read_incar(incar_path).get("ncore")
            if isinstance(ncore, int) and ncore > 1:
                nprocs = max(ncore, (nprocs // ncore) * ncore)

    return max(1, nprocs)


class LocalRunner(Runner):
    """Run VASP on the local machine.

    Unset arguments fall back to the configuration (see
    :mod:`vanadox.config`): vasp.executable, mpi.nprocs, mpi.command
    and mpi.extra_args.

    Args:
        vasp_executable: VASP binary, e.g. 'vasp_std', 'vasp_gam' or a
            full path.
        nprocs: Number of MPI processes, or 'auto'. With 1 the binary
            runs serially without the MPI launcher.
        mpi_command: MPI launcher ('mpirun', 'srun', ...). Empty
            disables MPI.
        mpi_extra_args: Extra arguments for the MPI launcher.
        background: If True, run in background and return immediately.

    Example:
        >>> runner = LocalRunner(nprocs=16)
        >>> runner.build_command('vo2')
        'mpirun -np 16 vasp_std'

        >>> # Gamma-only binary for a large supercell
        >>> runner = LocalRunner(vasp_executable='vasp_gam', nprocs=32)
    """

    def __init__(
        self,
        vasp_executable: str | None = None,
        nprocs: int | str | None = None,
        mpi_command: str | None = None,
        mpi_extra_args: str | None = None,
        background: bool = False,
    ):
        config = load_config()

        self.vasp_executable = vasp_executable or config["vasp.executable"] or "vasp_std"
        self.nprocs = nprocs if nprocs is not None else (config["mpi.nprocs"] or 1)
        self.mpi_command = mpi_command if mpi_command is not None else config["mpi.command"]
        self.mpi_extra_args = mpi_extra_args or config["mpi.extra_args"]
        self.background = background
        # background processes started here, by directory
        self._processes: dict[str, subprocess.Popen] = {}

        if os.path.basename(self.vasp_executable) not in VASP_BINARIES:
            log.debug(f"Using non-standard VASP binary {self.vasp_executable}")

    def run(self, directory: str) -> JobStatus:
        """Run VASP in the specified directory.

        Args:
            directory: Path to calculation directory with input files.

        Returns:
            JobStatus indicating outcome.

        Raises:
            VaspRunning: If background=True and job is still running.
            VaspSetupError: If required input files are missing.
        """
        current = self.status(directory)
        if current.state == JobState.COMPLETE:
            return current

        if current.state == JobState.RUNNING:
            raise VaspRunning(jobid=current.jobid)

        # If previously failed, clean up old output files so we can re-run
        if current.state == JobState.FAILED:
            clean_output_files(directory, keep=restart_files(directory))

        self._verify_inputs(directory)
        cmd = self.build_command(directory)
        log.info(f"Running '{cmd}' in {directory}")

        if self.background:
            pid = self._run_background(directory, cmd)
            raise VaspRunning(message="Started background process", jobid=str(pid))
        return self._run_blocking(directory, cmd)

    def status(self, directory: str) -> JobStatus:
        """Check status of calculation."""
        if self._check_outcar_complete(directory):
            self._processes.pop(os.path.abspath(directory), None)
            return JobStatus(JobState.COMPLETE)

        pid = self._read_pid(directory)
        if pid:
            if self._is_process_running(pid, directory):
                return JobStatus(JobState.RUNNING, jobid=str(pid))
            if not os.path.exists(os.path.join(directory, "OUTCAR")):
                return JobStatus(JobState.FAILED, jobid=str(pid),
                                 message=f"Process {pid} exited without writing an OUTCAR")

        error = self._check_outcar_error(directory)
        if error:
            return JobStatus(JobState.FAILED, message=error)

        outcar = os.path.join(directory, "OUTCAR")
        if os.path.exists(outcar):
            return JobStatus(JobState.FAILED, message="OUTCAR incomplete and no running process")

        return JobStatus(JobState.NOT_STARTED)

    def cancel(self, directory: str) -> bool:
        """Kill running VASP process."""
        pid = self._read_pid(directory)
        if pid and self._is_process_running(pid, directory):
            try:
                os.kill(pid, signal.SIGTERM)
                return True
            except OSError:
                return False
        return True

    def build_command(self, directory: str | None = None) -> str:
        """Build the full command string.

        Args:
            directory: Calculation directory (used for auto nprocs detection)
        """
        if self.nprocs == "auto":
            nprocs = get_optimal_nprocs(directory)
        else:
            nprocs = int(self.nprocs)

        if self.mpi_command and nprocs > 1:
            parts = [self.mpi_command, "-np", str(nprocs)]
            if self.mpi_extra_args:
                parts.append(self.mpi_extra_args)
            parts.append(self.vasp_executable)
            return " ".join(parts)

        # Serial execution
        return self.vasp_executable

    def _run_blocking(self, directory: str, cmd: str) -> JobStatus:
        """Run VASP and wait for completion."""
        try:
            result = subprocess.run(
                cmd,
                shell=True,
                cwd=directory,
                capture_output=True,
                text=True,
            )
        except OSError as e:
            return JobStatus(JobState.FAILED, message=str(e))

        with open(os.path.join(directory, "vasp.out"), "w") as f:
            f.write(result.stdout)
            f.write(result.stderr)

        if result.returncode == 0 and self._check_outcar_complete(directory):
            return JobStatus(JobState.COMPLETE)

        error = self._check_outcar_error(directory)
        return JobStatus(JobState.FAILED, message=error or f"Exit code {result.returncode}")

    def _run_background(self, directory: str, cmd: str) -> int:
        """Start VASP in background and return PID."""
        pid_file = os.path.join(directory, ".vasp_pid")
        log_file = os.path.join(directory, "vasp.out")

        with open(log_file, "w") as out:
            process = subprocess.Popen(
                cmd,
                shell=True,
                cwd=directory,
                stdout=out,
                stderr=subprocess.STDOUT,
                start_new_session=True,
            )

        with open(pid_file, "w") as f:
            f.write(str(process.pid))
        self._processes[os.path.abspath(directory)] = process

        return process.pid

    def _read_pid(self, directory: str) -> int | None:
        """Read PID from tracking file."""
        pid_file = os.path.join(directory, ".vasp_pid")
        if os.path.exists(pid_file):
            try:
                with open(pid_file) as f:
                    return int(f.read().strip())
            except (OSError, ValueError):
                return None
        return None

    def _is_process_running(self, pid: int, directory: str | None = None) -> bool:
        """Check if process with given PID is running; finished children are reaped."""
        process = self._processes.get(os.path.abspath(directory)) if directory else None
        if process is not None and process.pid == pid:
            return process.poll() is None

        try:
            finished, _ = os.waitpid(pid, os.WNOHANG)
        except ChildProcessError:
            # started by another process
            return _pid_exists(pid)
        return finished == 0

    def _verify_inputs(self, directory: str) -> None:
        """Verify required input files exist."""
        required = ["INCAR", "POSCAR", "POTCAR", "KPOINTS"]
        missing = []

        incar = os.path.join(directory, "INCAR")
        for fname in required:
            if not os.path.exists(os.path.join(directory, fname)):
                # KPOINTS not required if KSPACING is set
                if fname == "KPOINTS" and os.path.exists(incar):
                    with open(incar) as f:
                        if "KSPACING" in f.read().upper():
                            continue
                missing.append(fname)

        if missing:
            raise VaspSetupError(f"Missing input files in {directory}: {', '.join(missing)}")

    def __repr__(self) -> str:
        return (
            f"LocalRunner(vasp_executable={self.vasp_executable!r}, "
            f"nprocs={self.nprocs!r}, mpi_command={self.mpi_command!r})"
        )


def _pid_exists(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except OSError:
        return False
    return True


def restart_files(directory: str) -> list[str]:
    """Output files the INCAR reads back in (CHGCAR for ICHARG=1/11, WAVECAR for ISTART>0)."""
    incar = os.path.join(directory, "INCAR")
    if not os.path.exists(incar):
        return []

    from ..readers import read_incar

    params = read_incar(incar)
    keep = []
    if params.get("icharg") in (1, 11):
        keep.append("CHGCAR")
    if params.get("istart") in (1, 2, 3):
        keep.append("WAVECAR")
    return keep


def clean_output_files(directory: str, keep: list[str] | None = None) -> list[str]:
    """Remove output files of a previous run to allow re-running.

    Files named in keep are left in place.
    """
    keep = keep or []
    removed = []
    for fname in OUTPUT_FILES:
        if fname in keep:
            continue
        fpath = os.path.join(directory, fname)
        if os.path.exists(fpath):
            os.remove(fpath)
            removed.append(fname)
    if removed:
        log.debug(f"Removed {', '.join(removed)} from {directory}")
    return removed
