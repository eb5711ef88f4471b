#!/usr/bin/env python
"""
01 - DFT+U formation energy of VO2

This script relaxes rutile VO2 with DFT+U (U = 3.25 eV on V d), computes
the references (bcc V and an O2 molecule in a box) and reports the
formation energy per atom.

If the electronic loop fails to converge, the troubleshooting helpers
raise NELM and switch the mixing before the run is repeated.

Usage:
    python run.py
"""

from ase import Atoms
from ase.build import bulk

from vanadox import Vasp
from vanadox.energetics import formation_energy_from_calculations
from vanadox.exceptions import VaspNotConverged
from vanadox.parameters import vanadium_oxide_parameters
from vanadox.structures import get_structure
from vanadox.troubleshoot import apply_remedies, diagnose, suggest_remedies

print("=" * 60)
print("VO2 formation energy with DFT+U")
print("=" * 60)
print()

# =============================================================================
# Step 1: Relax VO2
# =============================================================================

vo2 = get_structure('VO2')
print(f"Structure: rutile {vo2.get_chemical_formula()}, {len(vo2)} atoms")

calc = Vasp(
    label='vo2/relax',
    atoms=vo2,
    kpts=(6, 6, 10),
    gamma=True,
    **vanadium_oxide_parameters(vo2, 'relax-cell'),
)

# Up to three reruns with the troubleshooting remedies
for attempt in range(4):
    try:
        e_vo2 = calc.potential_energy
        if calc.results.get('converged', True):
            break
    except VaspNotConverged as e:
        print(f"  Attempt {attempt + 1} failed: {e}")
    d = diagnose(calc.directory)
    print(d)
    remedies = suggest_remedies(d, calc.parameters)
    if not remedies:
        raise SystemExit("Nothing left to try; inspect the OUTCAR by hand.")
    for r in remedies:
        print(f"  {r}")
    apply_remedies(calc, remedies)
else:
    raise SystemExit("VO2 did not converge; inspect the OUTCAR by hand.")

print(f"  E(VO2) = {e_vo2:.4f} eV")
print(f"  Total moment = {calc.get_magnetic_moment():.3f} muB")
print()

# =============================================================================
# Step 2: References
# =============================================================================

v_metal = bulk('V', 'bcc', a=2.99)
calc_v = Vasp(
    label='vo2/v-bcc',
    atoms=v_metal,
    kpts=(12, 12, 12),
    **vanadium_oxide_parameters(v_metal, 'relax-cell', ismear=1, sigma=0.1),
)

o2 = Atoms('O2', positions=[(5, 5, 5), (5, 5, 6.22)], cell=(10, 10.5, 11), pbc=True)
calc_o2 = Vasp(
    label='vo2/o2',
    atoms=o2,
    kpts=(1, 1, 1),
    **vanadium_oxide_parameters(o2, 'relax', magmoms={'O': 1.0}),
)

# =============================================================================
# Step 3: Formation energy
# =============================================================================

ef = formation_energy_from_calculations(calc, calc_v, calc_o2)
print(f"Formation energy of VO2: {ef:.3f} eV/atom")
