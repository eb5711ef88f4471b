"""Mock runner for testing VASP calculations.

This runner simulates VASP execution by writing fake output files
(OUTCAR, OSZICAR, CONTCAR, CHGCAR and optionally EIGENVAL). It's designed for:
- Unit testing calculator logic without running VASP
- Testing the troubleshooting path with unconverged output
- Development when VASP is not available

Example:
    >>> from vanadox.runners import MockRunner
    >>>
    >>> runner = MockRunner(energy=-52.4, magmoms=[1.1, 1.1, -0.02, -0.02, -0.02, -0.02])
    >>> calc = Vasp('vo2', runner=runner, atoms=atoms)
    >>> energy = calc.potential_energy  # Returns -52.4
    >>>
    >>> # A run whose electronic loop never converged
    >>> runner = MockRunner(converged=False)
"""

from __future__ import annotations

import os
import time
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from ..exceptions import VaspRunning
from ..readers import read_incar
from .base import JobState, JobStatus, Runner


@dataclass
class MockResults:
    """Container for mock calculation results.

    Attributes:
        energy: Total energy in eV.
        magmom: Total magnetic moment in Bohr magnetons.
        magmoms: Per-atom magnetic moments (POSCAR order).
        fermi_level: Fermi energy in eV.
        eigenvalues: Eigenvalue array (nspin, nkpts, nbands) for EIGENVAL.
        kpoints: Scaled k-points (nkpts, 3) for EIGENVAL.
        converged: Whether the electronic loop converged.
        ionic_steps: Number of ionic steps written to OSZICAR.
        error: Fatal error message written into the OUTCAR.
        metadata: Additional data.
    """
    energy: float = -10.0
    magmom: float = 0.0
    magmoms: list[float] | np.ndarray | None = None
    fermi_level: float = -5.0
    eigenvalues: np.ndarray | None = None
    kpoints: np.ndarray | None = None
    converged: bool = True
    ionic_steps: int = 1
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class MockRunner(Runner):
    """Mock runner for testing without VASP.

    Args:
        results: MockResults object with calculation outputs.
        energy: Shortcut to set results.energy.
        magmoms: Shortcut to set results.magmoms.
        converged: Shortcut to set results.converged.
        state_sequence: List of JobStates to step through on each
            status() call.
        fail_on_run: If True, write an OUTCAR with results.error (or
            error_message) and report FAILED.
        error_message: Error message if fail_on_run is True.
        delay: Seconds to sleep in run().
        write_outputs: If True, write mock output files.
    """

    def __init__(
        self,
        results: MockResults | None = None,
        energy: float | None = None,
        magmoms: list | np.ndarray | None = None,
        converged: bool | None = None,
        state_sequence: list[JobState] | None = None,
        fail_on_run: bool = False,
        error_message: str = "ZBRENT: fatal error in bracketing",
        delay: float = 0,
        write_outputs: bool = True,
    ):
        if results is None:
            results = MockResults()
        if energy is not None:
            results.energy = energy
        if magmoms is not None:
            results.magmoms = magmoms
            results.magmom = float(np.sum(magmoms))
        if converged is not None:
            results.converged = converged

        self.results = results
        self.state_sequence = state_sequence
        self.fail_on_run = fail_on_run
        self.error_message = error_message
        self.delay = delay
        self.write_outputs = write_outputs

        self.run_count = 0
        self._call_counts: dict[str, int] = {}
        self._states: dict[str, JobState] = {}

    def run(self, directory: str) -> JobStatus:
        """Simulate running VASP."""
        self.run_count += 1

        if self.fail_on_run:
            self._states[directory] = JobState.FAILED
            if self.write_outputs:
                self._write_failed_outcar(directory)
            return JobStatus(JobState.FAILED, message=self.error_message)

        if self.delay > 0:
            time.sleep(self.delay)

        # start at 1 so status() returns the next state in the sequence
        self._call_counts[directory] = 1

        if self.state_sequence:
            state = self.state_sequence[0]
            self._states[directory] = state
            if state == JobState.RUNNING:
                raise VaspRunning(jobid=f"mock-{os.getpid()}")
            if state == JobState.COMPLETE and self.write_outputs:
                self._write_mock_outputs(directory)
            return JobStatus(state)

        self._states[directory] = JobState.COMPLETE
        if self.write_outputs:
            self._write_mock_outputs(directory)
        return JobStatus(JobState.COMPLETE)

    def status(self, directory: str) -> JobStatus:
        """Report the simulated state of a directory."""
        if directory not in self._states:
            # Outputs left from an earlier runner instance
            if self._check_outcar_complete(directory):
                return JobStatus(JobState.COMPLETE)
            return JobStatus(JobState.NOT_STARTED)

        count = self._call_counts.get(directory, 0)
        self._call_counts[directory] = count + 1

        if self.state_sequence:
            idx = min(count, len(self.state_sequence) - 1)
            state = self.state_sequence[idx]
            self._states[directory] = state
            if state == JobState.COMPLETE and self.write_outputs:
                self._write_mock_outputs(directory)
            return JobStatus(state)

        state = self._states[directory]
        if state == JobState.FAILED:
            return JobStatus(state, message=self.error_message)
        return JobStatus(state)

    def cancel(self, directory: str) -> bool:
        """Cancel mock job."""
        if directory in self._states:
            self._states[directory] = JobState.FAILED
        return True

    def reset(self) -> None:
        """Reset all state tracking."""
        self._call_counts.clear()
        self._states.clear()
        self.run_count = 0

    def _write_mock_outputs(self, directory: str) -> None:
        """Write mock VASP output files."""
        os.makedirs(directory, exist_ok=True)

        self._write_mock_outcar(directory)
        self._write_mock_oszicar(directory)
        if self.results.eigenvalues is not None:
            self._write_mock_eigenval(directory)

        # CONTCAR is a copy of POSCAR
        poscar = os.path.join(directory, 'POSCAR')
        if os.path.exists(poscar):
            with open(poscar) as f:
                content = f.read()
            with open(os.path.join(directory, 'CONTCAR'), 'w') as f:
                f.write(content)

        chgcar = os.path.join(directory, 'CHGCAR')
        if not os.path.exists(chgcar):
            with open(chgcar, 'w') as f:
                f.write('mock charge density\n')

    def _nelm(self, directory: str) -> int:
        incar = os.path.join(directory, 'INCAR')
        if os.path.exists(incar):
            return int(read_incar(incar).get('nelm', 60))
        return 60

    def _write_mock_outcar(self, directory: str) -> None:
        """Write mock OUTCAR file."""
        r = self.results

        magmoms_str = ""
        if r.magmoms is not None:
            magmoms_str = " magnetization (x)\n\n# of ion       s       p       d       tot\n"
            magmoms_str += "------------------------------------------\n"
            for i, m in enumerate(np.asarray(r.magmoms)):
                magmoms_str += f"    {i + 1}        0.000   0.000   {m:.3f}   {m:.3f}\n"
            magmoms_str += "--------------------------------------------------\n"

        content = f"""
 vasp.6.3.0 (mock output for testing)
 executed on             LinuxIFC date 2024.01.01  00:00:00

 POTCAR:    PAW_PBE V_pv 07Sep2000
 POTCAR:    PAW_PBE O 08Apr2002

 E-fermi :   {r.fermi_level:.4f}     XC(G=0):  -0.0000     alpha+bet : -0.0000

  free  energy   TOTEN  =      {r.energy:.8f} eV

  energy  without entropy=      {r.energy:.8f}  energy(sigma->0) =      {r.energy:.8f}

 number of electron      40.0000000 magnetization       {r.magmom:.7f}

{magmoms_str}

 General timing and accounting informations for this job:

       LOOP:  cpu time  123.45: real time  123.45
"""
        with open(os.path.join(directory, 'OUTCAR'), 'w') as f:
            f.write(content)

    def _write_mock_oszicar(self, directory: str) -> None:
        """Write mock OSZICAR; unconverged runs use all NELM steps."""
        r = self.results
        nelm = self._nelm(directory) if not r.converged else 12

        lines = []
        for step in range(1, r.ionic_steps + 1):
            lines.append("       N       E                     dE             d eps       ncg     rms          rms(c)")
            for n in range(1, nelm + 1):
                lines.append(f"DAV: {n:3d}    {r.energy:.8E}   -0.1E-03   -0.1E-03   960   0.1E-01")
            lines.append(
                f"   {step} F= {r.energy:.8E} E0= {r.energy:.8E}  d E =-0.1E-05  mag=   {r.magmom:.4f}"
            )

        with open(os.path.join(directory, 'OSZICAR'), 'w') as f:
            f.write("\n".join(lines) + "\n")

    def _write_mock_eigenval(self, directory: str) -> None:
        """Write mock EIGENVAL file."""
        r = self.results
        eigenvalues = np.asarray(r.eigenvalues)
        nspin, nkpts, nbands = eigenvalues.shape
        kpoints = np.asarray(r.kpoints) if r.kpoints is not None else np.zeros((nkpts, 3))

        lines = [
            f"    6    6    1    {nspin}",
            "  0.1E+02  0.4E-09  0.4E-09  0.3E-08  0.5E-15",
            "  1.0E-004",
            "  CAR",
            " mock",
            f"     40    {nkpts}    {nbands}",
        ]
        for k in range(nkpts):
            lines.append("")
            lines.append("  {0:.7E}  {1:.7E}  {2:.7E}  {3:.7E}".format(*kpoints[k], 1.0 / nkpts))
            for b in range(nbands):
                energies = "  ".join(f"{eigenvalues[s, k, b]:.6f}" for s in range(nspin))
                lines.append(f"  {b + 1:4d}  {energies}  1.000000")

        with open(os.path.join(directory, 'EIGENVAL'), 'w') as f:
            f.write("\n".join(lines) + "\n")

    def _write_failed_outcar(self, directory: str) -> None:
        os.makedirs(directory, exist_ok=True)
        message = self.results.error or self.error_message
        with open(os.path.join(directory, 'OUTCAR'), 'w') as f:
            f.write(f"\n vasp.6.3.0 (mock output for testing)\n\n {message}\n")

    def __repr__(self) -> str:
        return (
            f"MockRunner(energy={self.results.energy}, "
            f"fail_on_run={self.fail_on_run})"
        )
