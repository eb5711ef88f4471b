"""Prototype structures of the common vanadium oxides.

Each entry in VANADIUM_OXIDES holds the space group, lattice parameters
and Wyckoff basis of an experimentally known phase. Structures are built
with :func:`ase.spacegroup.crystal`.

Example:
    >>> from vanadox.structures import get_structure
    >>> vo2 = get_structure('VO2')
    >>> vo2.get_chemical_formula()
    'O4V2'
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ase import Atoms
from ase.build import bulk
from ase.io import read
from ase.spacegroup import crystal

log = logging.getLogger('vanadox')


@dataclass
class OxidePrototype:
    """Crystallographic description of a vanadium oxide phase.

    Attributes:
        name: Formula used as registry key.
        description: Phase name.
        spacegroup: International space group number.
        cellpar: a, b, c (Angstrom), alpha, beta, gamma (degrees).
        symbols: Element of each Wyckoff site.
        basis: Scaled coordinates of each Wyckoff site.
        setting: Space group setting passed to ASE.
    """
    name: str
    description: str
    spacegroup: int
    cellpar: list[float]
    symbols: list[str] = field(default_factory=list)
    basis: list[tuple[float, float, float]] = field(default_factory=list)
    setting: int = 1


VANADIUM_OXIDES: dict[str, OxidePrototype] = {
    "VO": OxidePrototype(
        name="VO",
        description="rocksalt vanadium monoxide",
        spacegroup=225,
        cellpar=[4.08, 4.08, 4.08, 90, 90, 90],
        symbols=["V", "O"],
        basis=[(0.0, 0.0, 0.0), (0.5, 0.5, 0.5)],
    ),
    "VO2": OxidePrototype(
        name="VO2",
        description="rutile vanadium dioxide (high-temperature metal)",
        spacegroup=136,
        cellpar=[4.554, 4.554, 2.857, 90, 90, 90],
        symbols=["V", "O"],
        basis=[(0.0, 0.0, 0.0), (0.3001, 0.3001, 0.0)],
    ),
    "V2O3": OxidePrototype(
        name="V2O3",
        description="corundum vanadium sesquioxide",
        spacegroup=167,
        cellpar=[4.952, 4.952, 14.002, 90, 90, 120],
        symbols=["V", "O"],
        basis=[(0.0, 0.0, 0.3463), (0.3121, 0.0, 0.25)],
    ),
    "V2O5": OxidePrototype(
        name="V2O5",
        description="orthorhombic vanadium pentoxide",
        spacegroup=59,
        cellpar=[11.512, 3.564, 4.368, 90, 90, 90],
        symbols=["V", "O", "O", "O"],
        basis=[
            (0.10118, 0.25, 0.89131),
            (0.10430, 0.25, 0.53130),
            (-0.06910, 0.25, 0.00290),
            (0.25, 0.25, 0.00100),
        ],
        setting=2,
    ),
}


def get_structure(name: str, **cellpar) -> Atoms:
    """Build a vanadium oxide prototype.

    Args:
        name: Registry key ('VO', 'VO2', 'V2O3', 'V2O5').
        **cellpar: Override lattice parameters by name
            (a, b, c, alpha, beta, gamma).

    Returns:
        ASE Atoms of the conventional cell.

    Raises:
        ValueError: If name is not a known prototype.
    """
    if name not in VANADIUM_OXIDES:
        available = ", ".join(sorted(VANADIUM_OXIDES))
        raise ValueError(
            f"Unknown vanadium oxide '{name}'.\n"
            f"Available prototypes: {available}\n\n"
            f"Use read_structure() for anything else, e.g. a CIF from\n"
            f"the Materials Project or ICSD."
        )

    proto = VANADIUM_OXIDES[name]
    values = list(proto.cellpar)
    for i, key in enumerate(("a", "b", "c", "alpha", "beta", "gamma")):
        if key in cellpar:
            values[i] = float(cellpar.pop(key))
    if cellpar:
        raise ValueError(f"Unknown lattice parameters: {', '.join(cellpar)}")

    if proto.spacegroup == 225:
        atoms = bulk(proto.name, "rocksalt", a=values[0], cubic=True)
    else:
        atoms = crystal(
            proto.symbols,
            basis=proto.basis,
            spacegroup=proto.spacegroup,
            cellpar=values,
            setting=proto.setting,
        )
    atoms.info["prototype"] = proto.name
    log.debug(f"Built {proto.description}: {atoms.get_chemical_formula()}")
    return atoms


def read_structure(path: str) -> Atoms:
    """Read a structure file (POSCAR, CONTCAR, CIF, ...)."""
    return read(path)


def vanadium_oxygen_counts(atoms: Atoms) -> tuple[int, int]:
    """Number of V and O atoms in a structure."""
    symbols = atoms.get_chemical_symbols()
    return symbols.count("V"), symbols.count("O")
