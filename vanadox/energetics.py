"""Formation energies of vanadium oxides.

The formation energy per atom of V_xO_y relative to bulk vanadium and
molecular oxygen is

    E_f = (E_total - n_V * E_V - n_O * E_O) / (n_V + n_O)

with E_V the energy per atom of bcc V and E_O half the energy of an O2
molecule (optionally corrected for the GGA overbinding of O2).
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ase import Atoms

    from .calculator import Vasp

log = logging.getLogger('vanadox')


def formation_energy_per_atom(e_total: float,
                              n_v: int,
                              n_o: int,
                              e_v: float,
                              e_o: float) -> float:
    """Formation energy per atom of a V-O compound in eV/atom.

    Args:
        e_total: Total energy of the compound cell (eV).
        n_v: Number of V atoms in the cell.
        n_o: Number of O atoms in the cell.
        e_v: Reference energy per V atom (eV).
        e_o: Reference energy per O atom (eV).

    Example:
        >>> formation_energy_per_atom(-50.0, 2, 4, -9.0, -5.0)
        -2.0
    """
    if n_v < 0 or n_o < 0:
        raise ValueError(f'Atom counts must not be negative (n_V={n_v}, n_O={n_o})')
    natoms = n_v + n_o
    if natoms <= 0:
        raise ValueError('The compound must contain at least one atom')
    return (e_total - n_v * e_v - n_o * e_o) / natoms


def oxygen_chemical_potential(e_o2: float, correction: float = 0.0) -> float:
    """Energy per O atom from the energy of an O2 molecule.

    Args:
        e_o2: Total energy of the isolated O2 molecule (eV).
        correction: Per-atom correction added to E(O2)/2, e.g. a fitted
            O2 binding correction (eV).
    """
    return e_o2 / 2.0 + correction


def composition(atoms_or_counts: Atoms | Mapping[str, int]) -> dict[str, int]:
    """Element counts from an Atoms object or a mapping."""
    if isinstance(atoms_or_counts, Mapping):
        return {k: int(v) for k, v in atoms_or_counts.items()}
    counts: dict[str, int] = {}
    for s in atoms_or_counts.get_chemical_symbols():
        counts[s] = counts.get(s, 0) + 1
    return counts


def formation_energy(energy: float,
                     atoms_or_counts: Atoms | Mapping[str, int],
                     references: Mapping[str, float]) -> float:
    """Formation energy per atom for any composition.

    Args:
        energy: Total energy of the compound cell (eV).
        atoms_or_counts: The compound structure or its element counts.
        references: Energy per atom of each element's reference state.

    Raises:
        ValueError: If an element has no reference energy.
    """
    counts = composition(atoms_or_counts)
    missing = sorted(set(counts) - set(references))
    if missing:
        raise ValueError(
            f"No reference energy for {', '.join(missing)}.\n"
            f"Provide one per element, e.g.\n"
            f"  references={{'V': e_bcc_v, 'O': oxygen_chemical_potential(e_o2)}}"
        )

    natoms = sum(counts.values())
    if natoms <= 0:
        raise ValueError('The compound must contain at least one atom')

    reference = sum(n * references[el] for el, n in counts.items())
    return (energy - reference) / natoms


def formation_energy_from_calculations(compound: Vasp,
                                       metal: Vasp,
                                       oxygen_molecule: Vasp,
                                       o2_correction: float = 0.0) -> float:
    """Formation energy per atom from three finished calculations.

    Args:
        compound: Calculator of the oxide.
        metal: Calculator of elemental vanadium.
        oxygen_molecule: Calculator of an O2 molecule in a box.
        o2_correction: Per-atom correction for the O reference.
    """
    e_total = compound.potential_energy
    e_v = metal.potential_energy / len(metal.atoms)
    e_o = oxygen_chemical_potential(oxygen_molecule.potential_energy, o2_correction)

    counts = composition(compound.atoms)
    ef = formation_energy(e_total, counts, {'V': e_v, 'O': e_o})
    log.info(f'Formation energy of {compound.atoms.get_chemical_formula()}: {ef:.4f} eV/atom')
    return ef
