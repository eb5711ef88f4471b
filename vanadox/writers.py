"""Writer functions for VASP input files.

Functions that write files: INCAR, POSCAR, POTCAR, KPOINTS

They take a calculation directory plus plain data so they can be used on
their own, and :class:`vanadox.calculator.Vasp` calls them from
``write_input``.
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Any

import numpy as np
from ase.io import write

from .exceptions import VaspSetupError
from .parameters import unique_symbols

if TYPE_CHECKING:
    from ase import Atoms

log = logging.getLogger('vanadox')

# Keys that configure this package and never go into the INCAR
SPECIAL_KEYS = {
    'xc',
    'pp',
    'kpts',
    'gamma',
    'setups',
    'kpts_path',
    'kpts_density',
    'kpts_nintersections',
}

# POTCAR directory suffix per element. Semicore p states for V.
DEFAULT_SETUPS = {
    'V': '_pv',
    'Ti': '_pv',
    'Cr': '_pv',
    'Mn': '_pv',
}

POTCAR_DIRECTORIES = {
    'PBE': 'potpaw_PBE',
    'LDA': 'potpaw_LDA',
    'PW91': 'potpaw_GGA',
}


def sort_indices(symbols: list[str]) -> tuple[list[int], list[int]]:
    """Indices grouping atoms by species.

    VASP requires atoms to be grouped by species. Returns (sort, resort)
    where ``atoms[sort]`` is grouped and ``grouped[resort]`` restores the
    original order.
    """
    sort = []
    for symbol in unique_symbols(symbols):
        for i, s in enumerate(symbols):
            if s == symbol:
                sort.append(i)

    resort = [0] * len(sort)
    for i, j in enumerate(sort):
        resort[j] = i
    return sort, resort


def format_incar_value(key: str, value: Any) -> str:
    """Format a Python value the way VASP reads it in the INCAR."""
    if isinstance(value, (bool, np.bool_)):
        return '.TRUE.' if value else '.FALSE.'
    if isinstance(value, (list, tuple, np.ndarray)):
        return ' '.join(format_incar_value(key, v) for v in value)
    if isinstance(value, (float, np.floating)):
        if value != 0 and (abs(value) < 1e-3 or abs(value) >= 1e6):
            return f'{value:.2E}'.replace('.00E', 'E')
        return f'{value:g}'
    if isinstance(value, (int, np.integer)):
        return str(int(value))
    return str(value)


def write_incar(directory: str,
                parameters: dict[str, Any],
                comment: str | None = None) -> str:
    """Write the INCAR.

    Args:
        directory: Calculation directory.
        parameters: Lowercase INCAR tags to values. Keys in SPECIAL_KEYS
            and values of None are skipped.
        comment: First (comment) line.

    Returns:
        Path of the written file.
    """
    os.makedirs(directory, exist_ok=True)
    fname = os.path.join(directory, 'INCAR')

    lines = [comment or 'INCAR created by vanadox']
    for key, value in parameters.items():
        if key.lower() in SPECIAL_KEYS or value is None:
            continue
        lines.append(f'{key.upper()} = {format_incar_value(key, value)}')

    with open(fname, 'w') as f:
        f.write('\n'.join(lines) + '\n')
    log.debug(f'Wrote {fname}')
    return fname


def write_kpoints(directory: str,
                  kpts: tuple[int, int, int] = (1, 1, 1),
                  gamma: bool = False) -> str:
    """Write an automatic Monkhorst-Pack or Gamma-centred KPOINTS mesh."""
    os.makedirs(directory, exist_ok=True)
    fname = os.path.join(directory, 'KPOINTS')

    if len(kpts) != 3:
        raise ValueError(f'kpts must have three entries, got {kpts!r}')

    mode = 'Gamma' if gamma else 'Monkhorst-Pack'
    with open(fname, 'w') as f:
        f.write('Automatic mesh\n')
        f.write('0\n')
        f.write(f'{mode}\n')
        f.write('{0} {1} {2}\n'.format(*[int(k) for k in kpts]))
        f.write('0 0 0\n')
    log.debug(f'Wrote {fname}')
    return fname


def kpoints_from_density(atoms: Atoms, density: float) -> tuple[int, int, int]:
    """Mesh with about ``density`` divisions per inverse Angstrom."""
    lengths = np.linalg.norm(atoms.cell.reciprocal(), axis=1)
    return tuple(max(1, int(np.ceil(density * length))) for length in lengths)


def bandpath_segments(atoms: Atoms, path: str | None = None) -> list[list[tuple[str, np.ndarray]]]:
    """High-symmetry path split into continuous segments.

    Args:
        atoms: Structure whose Bravais lattice defines the path.
        path: ASE path string such as 'GXMGZRAZ,XR,MA'. Defaults to
            the standard path of the lattice.

    Returns:
        List of segments, each a list of (label, scaled k-point).
    """
    bandpath = atoms.cell.bandpath(path, npoints=0)
    special = bandpath.special_points

    segments = []
    for chunk in bandpath.path.split(','):
        labels = []
        i = 0
        # labels can carry a digit, e.g. 'Z1'
        while i < len(chunk):
            label = chunk[i]
            i += 1
            while i < len(chunk) and chunk[i].isdigit():
                label += chunk[i]
                i += 1
            labels.append(label)
        segments.append([(label, np.asarray(special[label])) for label in labels])
    return segments


def write_line_kpoints(directory: str,
                       atoms: Atoms,
                       path: str | None = None,
                       npoints: int = 20) -> str:
    """Write a line-mode KPOINTS file for a band-structure calculation.

    Each pair of consecutive special points in a segment becomes one
    line with ``npoints`` k-points.
    """
    os.makedirs(directory, exist_ok=True)
    fname = os.path.join(directory, 'KPOINTS')

    lines = ['Line-mode KPOINTS', str(int(npoints)), 'Line-mode', 'Reciprocal']
    for segment in bandpath_segments(atoms, path):
        for (l1, k1), (l2, k2) in zip(segment[:-1], segment[1:]):
            lines.append('{0:.6f} {1:.6f} {2:.6f} ! {3}'.format(*k1, _vasp_label(l1)))
            lines.append('{0:.6f} {1:.6f} {2:.6f} ! {3}'.format(*k2, _vasp_label(l2)))
            lines.append('')

    with open(fname, 'w') as f:
        f.write('\n'.join(lines))
    log.debug(f'Wrote {fname}')
    return fname


def _vasp_label(label: str) -> str:
    return '\\Gamma' if label == 'G' else label


def write_poscar(directory: str, atoms: Atoms, sort: list[int] | None = None) -> str:
    """Write a VASP5 POSCAR in direct coordinates grouped by species."""
    os.makedirs(directory, exist_ok=True)
    fname = os.path.join(directory, 'POSCAR')

    if sort is None:
        sort, _ = sort_indices(atoms.get_chemical_symbols())

    write(fname, atoms[sort], format='vasp', direct=True)
    log.debug(f'Wrote {fname}')
    return fname


def potcar_paths(symbols: list[str],
                 pp: str = 'PBE',
                 setups: dict[str, str] | None = None,
                 pp_path: str | None = None) -> list[str]:
    """Locate the POTCAR file of each species.

    Args:
        symbols: Unique species in POSCAR order.
        pp: Functional family of the potentials ('PBE', 'LDA', 'PW91').
        setups: Per-element suffix ('_pv', '_sv', ...) or full name.
        pp_path: Root of the potential library ($VASP_PP_PATH).

    Raises:
        VaspSetupError: If the library or a POTCAR cannot be found.
    """
    if pp_path is None:
        from .config import get_setting
        pp_path = get_setting('pp.path')
    if not pp_path:
        raise VaspSetupError(
            'No pseudopotential library configured. '
            'Set VASP_PP_PATH or pp.path in .vanadoxrc.'
        )

    pp_dir = os.path.join(pp_path, POTCAR_DIRECTORIES.get(pp.upper(), f'potpaw_{pp}'))
    if not os.path.isdir(pp_dir):
        raise VaspSetupError(f'POTCAR directory not found: {pp_dir}')

    merged = dict(DEFAULT_SETUPS)
    merged.update(setups or {})

    paths = []
    for symbol in symbols:
        setup = merged.get(symbol, '')
        name = setup if setup.startswith(symbol) else symbol + setup
        path = os.path.join(pp_dir, name, 'POTCAR')
        if not os.path.exists(path):
            raise VaspSetupError(f'POTCAR for {symbol} not found: {path}')
        paths.append(path)
    return paths


def write_potcar(directory: str,
                 symbols: list[str],
                 pp: str = 'PBE',
                 setups: dict[str, str] | None = None,
                 pp_path: str | None = None) -> str:
    """Concatenate the species POTCARs into directory/POTCAR."""
    os.makedirs(directory, exist_ok=True)
    fname = os.path.join(directory, 'POTCAR')

    paths = potcar_paths(symbols, pp=pp, setups=setups, pp_path=pp_path)
    with open(fname, 'w') as out:
        for path in paths:
            with open(path) as f:
                out.write(f.read())
    log.debug(f'Wrote {fname} from {", ".join(paths)}')
    return fname
