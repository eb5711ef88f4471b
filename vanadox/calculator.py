"""Main VASP calculator class.

This module provides the Vasp class, the ASE calculator that writes the
VASP inputs for a structure, runs VASP through a pluggable runner and
reads the results back.
"""

from __future__ import annotations

import logging
import os
import shutil
import warnings
from typing import TYPE_CHECKING, Any

import numpy as np
from ase.calculators.calculator import Calculator
from ase.io import read

from .exceptions import (
    VaspEmptyOutput,
    VaspNotConverged,
    VaspNotFinished,
    VaspRunning,
    VaspSetupError,
    VaspWarning,
)
from .parameters import unique_symbols
from .readers import read_incar, read_oszicar, read_outcar
from .runners import JobState, JobStatus, LocalRunner, Runner
from .writers import (
    SPECIAL_KEYS,
    kpoints_from_density,
    sort_indices,
    write_incar,
    write_kpoints,
    write_line_kpoints,
    write_poscar,
    write_potcar,
)

if TYPE_CHECKING:
    from ase import Atoms

log = logging.getLogger('vanadox')


# Exchange-correlation functional settings
XC_DEFAULTS: dict[str, dict[str, Any]] = {
    'lda': {'pp': 'LDA'},
    'pbe': {'gga': 'PE'},
    'pbesol': {'gga': 'PS'},
    'rpbe': {'gga': 'RP'},
    'scan': {'metagga': 'SCAN'},
    'r2scan': {'metagga': 'R2SCAN'},
    'hse06': {'gga': 'PE', 'lhfcalc': True, 'hfscreen': 0.2},
}

# Tags given per species, in POTCAR order
SPECIES_KEYS = ('ldauu', 'ldaul', 'ldauj')

# Files a follow-up calculation starts from
CLONE_FILES = ['INCAR', 'KPOINTS', 'POSCAR', 'POTCAR', 'CHGCAR', 'WAVECAR']


class Vasp(Calculator):
    """ASE calculator interface for VASP.

    Args:
        label: Calculation directory path (default: 'vasp').
        atoms: ASE Atoms object for the calculation.
        runner: Execution backend (default: LocalRunner).
        xc: Exchange-correlation functional (e.g., 'PBE', 'SCAN').
        pp: Pseudopotential family (e.g., 'PBE', 'LDA').
        kpts: K-point grid as (nx, ny, nz) tuple.
        gamma: Use Gamma-centered k-point grid.
        kpts_density: K-point divisions per inverse Angstrom, instead of kpts.
        kpts_path: High-symmetry path (e.g. 'GXMGZRAZ') for line-mode KPOINTS.
        kpts_nintersections: Points per line segment in line mode.
        setups: Dict of special POTCAR setups per element.
        **kwargs: Any VASP INCAR parameters.

    Example:
        >>> from vanadox import Vasp
        >>> from vanadox.parameters import vanadium_oxide_parameters
        >>> from vanadox.structures import get_structure
        >>>
        >>> vo2 = get_structure('VO2')
        >>> calc = Vasp('vo2/relax', atoms=vo2, kpts=(6, 6, 10),
        ...             **vanadium_oxide_parameters(vo2, 'relax-cell'))
        >>> energy = calc.potential_energy
    """

    name = 'vasp'
    implemented_properties = ['energy', 'free_energy', 'magmom', 'magmoms']
    default_parameters: dict[str, Any] = {
        'xc': 'PBE',
        'pp': 'PBE',
        'kpts': (1, 1, 1),
        'gamma': False,
    }

    def __init__(
        self,
        label: str = 'vasp',
        atoms: Atoms | None = None,
        runner: Runner | None = None,
        **kwargs
    ):
        Calculator.__init__(self, atoms=atoms)

        if runner is None:
            runner = LocalRunner()
        self.runner = runner

        # after parent init to avoid being overwritten
        self.directory = os.path.abspath(label)

        self.parameters: dict[str, Any] = dict(self.default_parameters)
        kwargs = {k.lower(): v for k, v in kwargs.items()}
        kwargs.setdefault('xc', self.default_parameters['xc'])
        self._process_parameters(kwargs)

        if atoms is not None:
            self.atoms = atoms
            self._setup_sorting(atoms)
        else:
            self.sort = []
            self.resort = []

        self.results: dict[str, Any] = {}

    @classmethod
    def from_directory(cls, label: str, runner: Runner | None = None, **kwargs) -> Vasp:
        """Calculator for an existing directory.

        Parameters are read from the INCAR and the structure from
        CONTCAR (or POSCAR). kwargs override what is read.
        """
        directory = os.path.abspath(label)
        incar = os.path.join(directory, 'INCAR')
        if not os.path.exists(incar):
            raise VaspSetupError(f'No INCAR in {directory}')

        params = read_incar(incar)
        params.update(kwargs)
        calc = cls(label, runner=runner, **params)

        try:
            atoms = calc.load_atoms()
        except VaspEmptyOutput:
            atoms = None
        if atoms is not None:
            calc.atoms = atoms
            calc._setup_sorting(atoms)
        return calc

    def _process_parameters(self, kwargs: dict) -> None:
        """Lowercase keys and expand the xc shortcut."""
        for key, val in kwargs.items():
            key_lower = key.lower()
            if key_lower == 'xc':
                self.parameters['xc'] = val
                for xc_key, xc_val in XC_DEFAULTS.get(val.lower(), {}).items():
                    if xc_key not in kwargs:
                        self.parameters[xc_key] = xc_val
            else:
                self.parameters[key_lower] = val

    def _setup_sorting(self, atoms: Atoms) -> None:
        """Set up atom sorting by chemical symbol."""
        self.sort, self.resort = sort_indices(atoms.get_chemical_symbols())

    def set(self, **kwargs) -> dict:
        """Set calculator parameters.

        Returns:
            Dict of changed parameters.
        """
        changed = {}

        for key, val in kwargs.items():
            key_lower = key.lower()
            old_val = self.parameters.get(key_lower)

            if old_val != val:
                changed[key_lower] = val
                self.parameters[key_lower] = val

                if key_lower == 'xc':
                    for xc_key, xc_val in XC_DEFAULTS.get(val.lower(), {}).items():
                        self.parameters[xc_key] = xc_val

        if changed:
            self.results = {}

        return changed

    # =========================================================================
    # Input
    # =========================================================================

    def incar_parameters(self, atoms: Atoms | None = None) -> dict[str, Any]:
        """INCAR tags for atoms, with per-atom and per-species lists ordered like the POSCAR."""
        atoms = atoms if atoms is not None else self.atoms
        symbols = atoms.get_chemical_symbols()
        sort, _ = sort_indices(symbols)
        species = unique_symbols(symbols)

        params = {}
        for key, val in self.parameters.items():
            if key in SPECIAL_KEYS or val is None:
                continue

            if key == 'magmom':
                if isinstance(val, dict):
                    val = [val.get(s, 0.0) for s in symbols]
                elif np.isscalar(val):
                    val = [val] * len(symbols)
                if len(val) != len(symbols):
                    raise VaspSetupError(
                        f'MAGMOM has {len(val)} entries for {len(symbols)} atoms'
                    )
                val = [val[i] for i in sort]
            elif key in SPECIES_KEYS and isinstance(val, dict):
                default = -1 if key == 'ldaul' else 0.0
                val = [val.get(s, default) for s in species]

            params[key] = val
        return params

    def write_input(self, atoms: Atoms | None = None, properties=None, system_changes=None) -> None:
        """Write INCAR, KPOINTS, POSCAR and POTCAR."""
        atoms = atoms if atoms is not None else self.atoms
        if atoms is None:
            raise VaspSetupError('No atoms to write input for')

        os.makedirs(self.directory, exist_ok=True)
        self._setup_sorting(atoms)
        species = unique_symbols(atoms.get_chemical_symbols())
        p = self.parameters

        write_poscar(self.directory, atoms, self.sort)
        write_incar(
            self.directory,
            self.incar_parameters(atoms),
            comment=f'{atoms.get_chemical_formula()} {p.get("xc", "PBE")} created by vanadox',
        )

        if 'kspacing' not in p:
            if p.get('kpts_path') is not None:
                path = p['kpts_path'] if isinstance(p['kpts_path'], str) else None
                write_line_kpoints(self.directory, atoms, path=path,
                                   npoints=p.get('kpts_nintersections', 20))
            elif p.get('kpts_density') is not None:
                write_kpoints(self.directory, kpoints_from_density(atoms, p['kpts_density']),
                              gamma=p.get('gamma', False))
            else:
                write_kpoints(self.directory, p.get('kpts', (1, 1, 1)),
                              gamma=p.get('gamma', False))

        write_potcar(self.directory, species, pp=p.get('pp', 'PBE'), setups=p.get('setups'))
        log.info(f'Wrote VASP input for {atoms.get_chemical_formula()} in {self.directory}')

    # =========================================================================
    # Running
    # =========================================================================

    def calculate(
        self,
        atoms: Atoms | None = None,
        properties: list[str] | None = None,
        system_changes: list[str] | None = None,
    ) -> None:
        """Run VASP calculation.

        Raises:
            VaspRunning: Job is currently running.
            VaspNotConverged: Calculation failed.
        """
        if properties is None:
            properties = self.implemented_properties

        if atoms is not None:
            self.atoms = atoms
            self._setup_sorting(atoms)

        status = self.runner.status(self.directory)
        log.debug(f"Current status: {status.state}")

        if status.state == JobState.COMPLETE:
            self.read_results()
            return

        self._raise_for_state(status)

        # Not started - need to run
        Calculator.calculate(self, atoms, properties, system_changes)
        self.write_input(self.atoms)
        result = self.runner.run(self.directory)

        if result.state == JobState.COMPLETE:
            self.read_results()
        else:
            self._raise_for_state(result)

    def _raise_for_state(self, status: JobStatus) -> None:
        if status.state == JobState.RUNNING:
            raise VaspRunning(message=status.message or "Running", jobid=status.jobid)
        if status.state == JobState.FAILED:
            raise VaspNotConverged(status.message or "Calculation failed")

    def update(self) -> None:
        """Ensure calculation results are current.

        Starts the calculation if it has not been run yet.
        """
        status = self.runner.status(self.directory)

        if status.state == JobState.COMPLETE:
            if not self.results:
                self.read_results()
            return

        self._raise_for_state(status)

        if status.state == JobState.NOT_STARTED:
            if self.atoms is None:
                raise VaspNotFinished("Calculation not started")
            self.calculate(self.atoms)

    def poll(self) -> JobStatus:
        """Check calculation status without triggering anything."""
        return self.runner.status(self.directory)

    def is_complete(self) -> bool:
        return self.poll().state == JobState.COMPLETE

    def cancel(self) -> bool:
        """Cancel running calculation."""
        return self.runner.cancel(self.directory)

    # =========================================================================
    # Output
    # =========================================================================

    def read_results(self) -> None:
        """Read energies, Fermi level and moments from the output files."""
        outcar = read_outcar(os.path.join(self.directory, 'OUTCAR'))
        if 'energy' not in outcar:
            raise VaspEmptyOutput(f'No energy in OUTCAR of {self.directory}')

        self.results = {
            'free_energy': outcar['energy'],
            'energy': outcar.get('energy_sigma0', outcar['energy']),
        }
        if 'fermi_level' in outcar:
            self.results['fermi_level'] = outcar['fermi_level']
        if 'magmom' in outcar:
            self.results['magmom'] = outcar['magmom']
        if 'magmoms' in outcar:
            magmoms = outcar['magmoms']
            if self.resort and len(magmoms) == len(self.resort):
                magmoms = magmoms[self.resort]
            self.results['magmoms'] = magmoms

        oszicar = os.path.join(self.directory, 'OSZICAR')
        if os.path.exists(oszicar):
            self.results['converged'] = self.electronic_converged()
            if not self.results['converged']:
                msg = (f'Electronic loop reached NELM in {self.directory}; '
                       f'run "vanadox diagnose --fix {self.directory}"')
                log.warning(msg)
                warnings.warn(msg, VaspWarning)

    def electronic_converged(self) -> bool:
        """True if the last ionic step converged before NELM."""
        steps = read_oszicar(os.path.join(self.directory, 'OSZICAR'))
        if not steps:
            return False
        nelm = int(self.parameters.get('nelm', 60))
        return steps[-1]['nelm'] < nelm

    def load_atoms(self) -> Atoms:
        """Structure from CONTCAR (or POSCAR) in the original atom order."""
        for fname in ('CONTCAR', 'POSCAR'):
            path = os.path.join(self.directory, fname)
            if os.path.exists(path) and os.path.getsize(path) > 0:
                atoms = read(path, format='vasp')
                if self.resort and len(self.resort) == len(atoms):
                    atoms = atoms[self.resort]
                return atoms
        raise VaspEmptyOutput(f'No CONTCAR or POSCAR in {self.directory}')

    @property
    def potential_energy(self) -> float:
        """Get potential energy in eV."""
        self.update()
        return self.results['energy']

    def get_potential_energy(self, atoms: Atoms | None = None, force_consistent: bool = False) -> float:
        """Get potential energy.

        Args:
            atoms: Atoms object (triggers calculation if different).
            force_consistent: If True, return the free energy (TOTEN).

        Returns:
            Total energy in eV.
        """
        if atoms is not None:
            self.calculate(atoms=atoms, properties=['energy'])
        else:
            self.update()

        if force_consistent and 'free_energy' in self.results:
            return self.results['free_energy']
        return self.results['energy']

    def get_fermi_level(self) -> float:
        """Get the Fermi level in eV."""
        self.update()
        if 'fermi_level' not in self.results:
            raise VaspEmptyOutput(f'No Fermi level in OUTCAR of {self.directory}')
        return self.results['fermi_level']

    def get_magnetic_moment(self, atoms: Atoms | None = None) -> float:
        """Total magnetic moment in Bohr magnetons."""
        self.update()
        return self.results.get('magmom', 0.0)

    def get_magnetic_moments(self, atoms: Atoms | None = None) -> np.ndarray:
        """Per-atom magnetic moments in the original atom order."""
        self.update()
        if 'magmoms' not in self.results:
            n = len(self.atoms) if self.atoms is not None else 0
            return np.zeros(n)
        return self.results['magmoms']

    # =========================================================================
    # Follow-up calculations
    # =========================================================================

    def clone(self, newdir: str, **kwargs) -> Vasp:
        """Copy this calculation's inputs to newdir and return a calculator for it.

        CHGCAR and WAVECAR are copied when present so that non-self-consistent
        runs (ICHARG=11) can start from the converged density. kwargs update
        the new calculator's parameters.
        """
        newdir = os.path.abspath(newdir)
        os.makedirs(newdir, exist_ok=True)

        for fname in CLONE_FILES:
            src = os.path.join(self.directory, fname)
            if os.path.exists(src):
                shutil.copy(src, os.path.join(newdir, fname))

        try:
            atoms = self.load_atoms()
        except VaspEmptyOutput:
            atoms = self.atoms.copy() if self.atoms is not None else None

        params = {k: v for k, v in self.parameters.items()}
        calc = Vasp(newdir, atoms=atoms, runner=self.runner, **params)
        calc.set(**kwargs)
        log.info(f'Cloned {self.directory} to {newdir}')
        return calc

    def __repr__(self) -> str:
        return f"Vasp('{self.directory}', xc='{self.parameters.get('xc', 'PBE')}')"
