"""VASP parameter presets for vanadium oxides.

Provides convenient parameter sets for:
- The baseline INCAR used for V-O compounds
- DFT+U on the vanadium d states (Dudarev)
- Initial magnetic moments
- Calculation types (static, relax, band structure, DOS)
- Charge-density mixing settings for hard-to-converge cases
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ase import Atoms

# =============================================================================
# Baseline
# =============================================================================

BASE_PARAMETERS: dict[str, Any] = {
    "prec": "Accurate",
    "encut": 520,
    "ediff": 1e-5,
    "ismear": 0,
    "sigma": 0.05,
    "ispin": 2,
    "lorbit": 11,
    "lreal": "Auto",
    "nelm": 100,
    "lwave": False,
    "lcharg": True,
}


# =============================================================================
# DFT+U Parameters
# =============================================================================


@dataclass
class HubbardU:
    """Hubbard U parameters for DFT+U calculations.

    Attributes:
        u: Coulomb U parameter in eV.
        j: Exchange J parameter in eV.
        l_angular: Angular momentum (0=s, 1=p, 2=d, 3=f, -1=none).
    """

    u: float
    j: float = 0.0
    l_angular: int = 2  # Default to d-orbitals (l_angular=2)


# U values on the 3d states (Dudarev method: U_eff = U - J).
COMMON_U_VALUES = {
    "V": HubbardU(u=3.25, j=0.0, l_angular=2),
    "Ti": HubbardU(u=3.0, j=0.0, l_angular=2),
    "Cr": HubbardU(u=3.7, j=0.0, l_angular=2),
    "Mn": HubbardU(u=3.9, j=0.0, l_angular=2),
    "Fe": HubbardU(u=5.3, j=0.0, l_angular=2),
    "Co": HubbardU(u=3.32, j=0.0, l_angular=2),
    "Ni": HubbardU(u=6.2, j=0.0, l_angular=2),
    "Cu": HubbardU(u=4.0, j=0.0, l_angular=2),
    # No correction on the anion
    "O": HubbardU(u=0.0, j=0.0, l_angular=-1),
}


def get_ldau_params(
    symbols: list[str],
    u_values: dict[str, float | HubbardU] | None = None,
    ldautype: int = 2,
    ldauprint: int = 1,
    lmaxmix: int = 4,
) -> dict[str, Any]:
    """Generate DFT+U parameters for given atomic symbols.

    Uses the Dudarev (rotationally invariant) approach by default.

    Args:
        symbols: List of unique atomic symbols in POTCAR order.
        u_values: Dict mapping symbol to U value or HubbardU object.
            If None, uses COMMON_U_VALUES for known elements.
        ldautype: 1 = Liechtenstein, 2 = Dudarev (simplified).
        ldauprint: Verbosity (0, 1, or 2).
        lmaxmix: Max l for on-site density matrix mixing.

    Returns:
        Dict of VASP parameters for DFT+U.

    Example:
        >>> params = get_ldau_params(['V', 'O'])
        >>> params['ldauu']
        [3.25, 0.0]
    """
    if u_values is None:
        u_values = {}

    ldauu = []
    ldauj = []
    ldaul = []

    for symbol in symbols:
        if symbol in u_values:
            val = u_values[symbol]
            if isinstance(val, HubbardU):
                hub = val
            else:
                # Simple float U value, keep the element's l and J
                default = COMMON_U_VALUES.get(symbol, HubbardU(u=0.0))
                l_angular = default.l_angular if default.l_angular >= 0 else 2
                hub = HubbardU(u=float(val), j=default.j, l_angular=l_angular)
        elif symbol in COMMON_U_VALUES:
            hub = COMMON_U_VALUES[symbol]
        else:
            hub = HubbardU(u=0.0, j=0.0, l_angular=-1)

        ldauu.append(hub.u)
        ldauj.append(hub.j)
        ldaul.append(hub.l_angular)

    return {
        "ldau": True,
        "ldautype": ldautype,
        "ldaul": ldaul,
        "ldauu": ldauu,
        "ldauj": ldauj,
        "ldauprint": ldauprint,
        "lmaxmix": lmaxmix,
        "lasph": True,  # Non-spherical contributions important for +U
    }


# =============================================================================
# Magnetic moments
# =============================================================================

# High-spin starting guesses; VASP relaxes them during the SCF.
DEFAULT_MAGMOMS = {
    "V": 5.0,
    "Ti": 5.0,
    "Cr": 5.0,
    "Mn": 5.0,
    "Fe": 5.0,
    "Co": 5.0,
    "Ni": 5.0,
    "Cu": 5.0,
}
DEFAULT_MAGMOM = 0.6


def get_magmoms(symbols: list[str],
                overrides: dict[str, float] | None = None) -> list[float]:
    """Initial magnetic moment for every atom.

    Args:
        symbols: Chemical symbol of each atom (not unique species).
        overrides: Per-element values replacing the defaults.

    Returns:
        List with one moment per atom.
    """
    overrides = overrides or {}
    return [float(overrides.get(s, DEFAULT_MAGMOMS.get(s, DEFAULT_MAGMOM)))
            for s in symbols]


# =============================================================================
# Calculation Presets
# =============================================================================

CALCULATION_PRESETS: dict[str, dict[str, Any]] = {
    "static": {
        "nsw": 0,
        "ibrion": -1,
    },
    "relax": {
        "nsw": 100,
        "ibrion": 2,
        "isif": 2,
        "ediffg": -0.02,
    },
    "relax-cell": {
        "nsw": 100,
        "ibrion": 2,
        "isif": 3,
        "ediffg": -0.02,
    },
    "band-structure": {
        "nsw": 0,
        "ibrion": -1,
        "icharg": 11,
        "lorbit": 11,
    },
    "dos": {
        "nsw": 0,
        "ibrion": -1,
        "icharg": 11,
        "lorbit": 11,
        "nedos": 2001,
        "ismear": -5,
    },
}


def get_preset(name: str) -> dict[str, Any]:
    """Get parameter preset for common calculation types.

    Args:
        name: Preset name ('static', 'relax', 'relax-cell', 'band-structure', 'dos').

    Returns:
        Dict of VASP parameters.
    """
    if name not in CALCULATION_PRESETS:
        available = ", ".join(sorted(CALCULATION_PRESETS.keys()))
        raise ValueError(
            f"Unknown preset '{name}'.\n"
            f"Available presets: {available}\n\n"
            f"Examples:\n"
            f"  get_preset('static')         # Single-point energy\n"
            f"  get_preset('relax')          # Geometry optimization (ions only)\n"
            f"  get_preset('relax-cell')     # Full relaxation (ions + cell)\n"
            f"  get_preset('dos')            # Density of states\n"
            f"  get_preset('band-structure') # Band structure calculation\n"
        )
    return CALCULATION_PRESETS[name].copy()


# =============================================================================
# Mixing
# =============================================================================

MIXING_PRESETS: dict[str, dict[str, Any]] = {
    # Nearly linear mixing, slow but robust for oscillating charge
    "linear": {
        "amix": 0.1,
        "bmix": 0.01,
    },
    "magnetic": {
        "amix": 0.1,
        "bmix": 0.01,
        "amix_mag": 0.4,
        "bmix_mag": 0.0001,
    },
    "damped": {
        "algo": "All",
        "time": 0.4,
    },
}


def get_mixing_params(name: str) -> dict[str, Any]:
    """Get charge-density mixing parameters.

    Args:
        name: 'linear', 'magnetic' or 'damped'.

    Returns:
        Dict of VASP parameters.
    """
    key = name.lower()
    if key not in MIXING_PRESETS:
        available = ", ".join(sorted(MIXING_PRESETS.keys()))
        raise ValueError(
            f"Unknown mixing scheme '{name}'.\n"
            f"Available schemes: {available}\n\n"
            f"Examples:\n"
            f"  get_mixing_params('linear')   # AMIX=0.1, BMIX=0.01\n"
            f"  get_mixing_params('magnetic') # also mixes the magnetization\n"
            f"  get_mixing_params('damped')   # ALGO=All\n\n"
            f"See: https://www.vasp.at/wiki/index.php/AMIX"
        )
    return MIXING_PRESETS[key].copy()


def unique_symbols(symbols: list[str]) -> list[str]:
    """Species in order of first appearance (the POSCAR/POTCAR order)."""
    order = []
    for s in symbols:
        if s not in order:
            order.append(s)
    return order


def vanadium_oxide_parameters(
    atoms: Atoms,
    preset: str = "relax-cell",
    u_values: dict[str, float | HubbardU] | None = None,
    magmoms: dict[str, float] | None = None,
    **overrides,
) -> dict[str, Any]:
    """Full parameter set for a DFT+U calculation on a V-O structure.

    Args:
        atoms: The structure.
        preset: Calculation preset name.
        u_values: Per-element U values (defaults to COMMON_U_VALUES).
            Pass ``{'V': 0.0}`` for plain GGA on vanadium.
        magmoms: Per-element initial moments.
        **overrides: Any INCAR parameters, applied last.

    Returns:
        Dict of parameters ready for :class:`vanadox.Vasp`.

    Example:
        >>> from vanadox.structures import get_structure
        >>> vo2 = get_structure('VO2')
        >>> params = vanadium_oxide_parameters(vo2, 'static', encut=600)
    """
    symbols = atoms.get_chemical_symbols()

    params = dict(BASE_PARAMETERS)
    params.update(get_preset(preset))
    params.update(get_ldau_params(unique_symbols(symbols), u_values))
    params["magmom"] = get_magmoms(symbols, magmoms)
    params.update({k.lower(): v for k, v in overrides.items()})
    return params
