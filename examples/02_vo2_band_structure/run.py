#!/usr/bin/env python
"""
02 - Band structure of VO2

Self-consistent DFT+U run on rutile VO2 followed by a non-self-consistent
run along the tetragonal high-symmetry path. The bands are plotted with
pymatgen and the gap is printed.

Usage:
    python run.py
"""

from vanadox import Vasp
from vanadox.bandstructure import (
    band_structure_calculation,
    get_band_gap,
    plot_band_structure,
)
from vanadox.parameters import vanadium_oxide_parameters
from vanadox.structures import get_structure

print("=" * 60)
print("VO2 band structure")
print("=" * 60)
print()

# =============================================================================
# Step 1: Self-consistent calculation
# =============================================================================

vo2 = get_structure('VO2')

calc = Vasp(
    label='vo2-bands/scf',
    atoms=vo2,
    kpts=(8, 8, 12),
    gamma=True,
    **vanadium_oxide_parameters(vo2, 'static', lcharg=True),
)

print(f"  E(VO2) = {calc.potential_energy:.4f} eV")
print(f"  Fermi level = {calc.get_fermi_level():.3f} eV")
print()

# =============================================================================
# Step 2: Non-self-consistent run along G-X-M-G-Z-R-A-Z
# =============================================================================

nscf = band_structure_calculation(calc, npoints=40)
vasprun = f'{nscf.directory}/vasprun.xml'

# =============================================================================
# Step 3: Plot
# =============================================================================

gap = get_band_gap(vasprun, efermi=calc.get_fermi_level())
kind = 'direct' if gap['direct'] else 'indirect'
print(f"  Band gap: {gap['energy']:.3f} eV ({kind})")

plot_band_structure(vasprun, ylim=(-3, 3), efermi=calc.get_fermi_level(),
                    output='vo2-bands.png')
print("  Saved vo2-bands.png")
