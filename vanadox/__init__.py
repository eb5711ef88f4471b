"""DFT+U calculations of vanadium oxides with VASP through ASE.

This package sets up, runs and analyses VASP calculations on the
vanadium oxides VO, VO2, V2O3 and V2O5.

Features:
- Prototype structures of the common vanadium oxides
- Dudarev DFT+U parameters (U = 3.25 eV on V d) and magnetic moments
- INCAR, KPOINTS, POSCAR and POTCAR generation
- Pluggable execution backends (local MPI, mock)
- Formation energies relative to bcc V and O2
- Band structures through pymatgen
- Diagnosis of unconverged runs, with INCAR remedies
- vaspkit task wrapper

Example:
    >>> from vanadox import Vasp
    >>> from vanadox.parameters import vanadium_oxide_parameters
    >>> from vanadox.structures import get_structure
    >>>
    >>> vo2 = get_structure('VO2')
    >>> calc = Vasp(
    ...     'vo2/relax',
    ...     atoms=vo2,
    ...     kpts=(6, 6, 10),
    ...     **vanadium_oxide_parameters(vo2, 'relax-cell'),
    ... )
    >>>
    >>> energy = calc.potential_energy
    >>> print(f"Energy: {energy:.3f} eV")

Formation energy:
    >>> from vanadox.energetics import formation_energy_per_atom
    >>> formation_energy_per_atom(-50.0, 2, 4, -9.0, -5.0)
    -2.0

Testing without VASP:
    >>> from vanadox.runners import MockRunner
    >>> calc = Vasp('vo2', atoms=vo2, runner=MockRunner(energy=-52.4))
"""

__version__ = '0.1.0'
__author__ = 'John Kitchin'

# Main calculator class
from .calculator import Vasp

# Exceptions
from .exceptions import (
    VaspEmptyOutput,
    VaspError,
    VaspException,
    VaspkitError,
    VaspNotConverged,
    VaspNotFinished,
    VaspRunning,
    VaspSetupError,
    VaspWarning,
)

# Runners
from .runners import JobState, JobStatus, LocalRunner, MockResults, MockRunner, Runner

# Structures and parameters
from .parameters import HubbardU, get_ldau_params, vanadium_oxide_parameters
from .structures import VANADIUM_OXIDES, get_structure

# Analysis
from .energetics import formation_energy, formation_energy_per_atom

__all__ = [
    'Vasp',
    'VaspException',
    'VaspRunning',
    'VaspNotFinished',
    'VaspNotConverged',
    'VaspError',
    'VaspEmptyOutput',
    'VaspSetupError',
    'VaspkitError',
    'VaspWarning',
    'Runner',
    'JobState',
    'JobStatus',
    'LocalRunner',
    'MockRunner',
    'MockResults',
    'HubbardU',
    'get_ldau_params',
    'vanadium_oxide_parameters',
    'VANADIUM_OXIDES',
    'get_structure',
    'formation_energy',
    'formation_energy_per_atom',
]
