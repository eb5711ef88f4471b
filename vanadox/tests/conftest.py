"""Pytest configuration and shared fixtures."""

import os
import shutil
import tempfile

import numpy as np
import pytest

from vanadox import MockRunner, Vasp
from vanadox.parameters import vanadium_oxide_parameters
from vanadox.runners import MockResults
from vanadox.structures import get_structure
from vanadox.tests.fixtures import (
    MOCK_INCAR,
    MOCK_KPOINTS,
    MOCK_OSZICAR,
    MOCK_OUTCAR,
    MOCK_POSCAR,
    MOCK_POTCAR_O,
    MOCK_POTCAR_V,
    write_files,
)


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Keep user rc files and VASP environment variables out of the tests."""
    for var in ('VASP_EXECUTABLE', 'VASP_NPROCS', 'VASP_MPI_COMMAND',
                'VASP_MPI_EXTRA_ARGS', 'VASP_PP_PATH', 'VASPKIT_EXECUTABLE'):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv('HOME', str(tmp_path / 'home'))
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    d = tempfile.mkdtemp()
    yield d
    shutil.rmtree(d)


@pytest.fixture
def pp_path(temp_dir, monkeypatch):
    """A minimal potpaw_PBE library with V_pv and O, exported as VASP_PP_PATH."""
    root = os.path.join(temp_dir, 'potentials')
    write_files(os.path.join(root, 'potpaw_PBE', 'V_pv'), POTCAR=MOCK_POTCAR_V)
    write_files(os.path.join(root, 'potpaw_PBE', 'O'), POTCAR=MOCK_POTCAR_O)
    monkeypatch.setenv('VASP_PP_PATH', root)
    return root


@pytest.fixture
def calc_dir(temp_dir):
    """Create a calculation directory with mock input files."""
    d = os.path.join(temp_dir, 'vo2')
    return write_files(d, INCAR=MOCK_INCAR, POSCAR=MOCK_POSCAR,
                       KPOINTS=MOCK_KPOINTS, POTCAR=MOCK_POTCAR_V + MOCK_POTCAR_O)


@pytest.fixture
def complete_calc_dir(calc_dir):
    """Create a calculation directory with completed outputs."""
    return write_files(calc_dir, OUTCAR=MOCK_OUTCAR, OSZICAR=MOCK_OSZICAR,
                       CONTCAR=MOCK_POSCAR)


@pytest.fixture
def vo2_atoms():
    """Rutile VO2."""
    return get_structure('VO2')


@pytest.fixture
def mock_results():
    """Standard mock results for rutile VO2 (V first, then O)."""
    return MockResults(
        energy=-52.41078688,
        magmom=2.0,
        magmoms=np.array([1.1, 1.1, -0.025, -0.025, -0.025, -0.025]),
        fermi_level=4.1873,
    )


@pytest.fixture
def mock_runner(mock_results):
    """Create a mock runner with standard results."""
    return MockRunner(results=mock_results)


@pytest.fixture
def vasp_calc_fresh(temp_dir, vo2_atoms, mock_runner, pp_path):
    """Create a Vasp calculator with mock runner (not yet calculated)."""
    return Vasp(
        label=os.path.join(temp_dir, 'vo2'),
        atoms=vo2_atoms,
        runner=mock_runner,
        kpts=(6, 6, 10),
        **vanadium_oxide_parameters(vo2_atoms, 'static'),
    )


@pytest.fixture
def vasp_calc(vasp_calc_fresh):
    """Create a Vasp calculator with mock runner that has completed calculation."""
    vasp_calc_fresh.calculate()
    return vasp_calc_fresh
