"""Band structures of vanadium oxides.

The usual route is a self-consistent run followed by a
non-self-consistent one along a high-symmetry path:

    >>> from vanadox.bandstructure import band_structure_calculation, plot_band_structure
    >>> nscf = band_structure_calculation(calc)
    >>> ax = plot_band_structure(f'{nscf.directory}/vasprun.xml', output='bands.png')

Plotting goes through pymatgen's Vasprun and BSPlotter.
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

import numpy as np

# turn off the display if in the queue.
if 'PBS_O_WORKDIR' in os.environ or 'SLURM_JOB_ID' in os.environ:
    import matplotlib  # noqa
    matplotlib.use('Agg')

import matplotlib.pyplot as plt  # noqa
from pymatgen.electronic_structure.plotter import BSPlotter  # noqa
from pymatgen.io.vasp.outputs import Vasprun  # noqa

from .exceptions import VaspEmptyOutput  # noqa
from .readers import read_eigenval  # noqa

if TYPE_CHECKING:
    from .calculator import Vasp

log = logging.getLogger('vanadox')


def _load_band_structure(vasprun: str, kpoints: str | None = None, efermi: float | None = None):
    if not os.path.exists(vasprun):
        raise VaspEmptyOutput(f'{vasprun} not found')

    if kpoints is None:
        candidate = os.path.join(os.path.dirname(os.path.abspath(vasprun)), 'KPOINTS')
        kpoints = candidate if os.path.exists(candidate) else None

    run = Vasprun(vasprun, parse_projected_eigen=False, parse_potcar_file=False)
    return run.get_band_structure(kpoints_filename=kpoints, efermi=efermi, line_mode=True)


def plot_band_structure(vasprun: str = 'vasprun.xml',
                        kpoints: str | None = None,
                        ylim: tuple[float, float] = (-4, 4),
                        efermi: float | None = None,
                        output: str | None = None):
    """Plot a line-mode band structure with pymatgen.

    Args:
        vasprun: Path to vasprun.xml of the band-structure run.
        kpoints: Line-mode KPOINTS with the labels (default: the one
            next to vasprun.xml).
        ylim: Energy window relative to the Fermi level (eV).
        efermi: Fermi level to use, e.g. from the self-consistent run.
        output: Save the figure to this file when given.

    Returns:
        The matplotlib axes.
    """
    bs = _load_band_structure(vasprun, kpoints, efermi)
    plotter = BSPlotter(bs)
    ax = plotter.get_plot(ylim=ylim)

    if output:
        fig = ax.get_figure() if hasattr(ax, 'get_figure') else plt.gcf()
        fig.savefig(output, bbox_inches='tight')
        log.info(f'Saved band structure to {output}')
    return ax


def get_band_gap(vasprun: str = 'vasprun.xml',
                 kpoints: str | None = None,
                 efermi: float | None = None) -> dict:
    """Band gap of a line-mode calculation.

    Returns:
        Dict with 'energy' (eV), 'direct' (bool) and 'transition' (str).
    """
    bs = _load_band_structure(vasprun, kpoints, efermi)
    return bs.get_band_gap()


def band_structure_calculation(calc: Vasp,
                               label: str | None = None,
                               npoints: int = 20,
                               path: str | None = None) -> Vasp:
    """Run the non-self-consistent band-structure step after calc.

    The charge density of calc is copied to ``label`` (default:
    ``<calc.directory>/bandstructure``) and VASP is run with ICHARG=11
    along the high-symmetry path.

    Args:
        calc: Finished self-consistent calculation.
        label: Directory of the band-structure run.
        npoints: Points per line segment.
        path: ASE path string; default is the standard path of the lattice.

    Returns:
        Calculator of the band-structure run.
    """
    calc.update()

    if not os.path.exists(os.path.join(calc.directory, 'CHGCAR')):
        raise VaspEmptyOutput(
            f'No CHGCAR in {calc.directory}; rerun it with lcharg=True'
        )

    wd = label or os.path.join(calc.directory, 'bandstructure')
    nscf = calc.clone(
        wd,
        icharg=11,
        nsw=0,  # no ionic updates required
        ibrion=-1,
        isif=None,
        ediffg=None,
        lorbit=11,
        lcharg=False,
        kpts_path=path or True,
        kpts_nintersections=npoints,
    )
    nscf.update()
    return nscf


def plot_eigenval(eigenval: str = 'EIGENVAL',
                  fermi_level: float = 0.0,
                  ax=None):
    """Plot bands straight from an EIGENVAL file.

    Energies are shifted by fermi_level. Spin-down bands are dashed.
    """
    kpoints, energies = read_eigenval(eigenval)

    # cumulative distance along the path in scaled coordinates
    steps = np.linalg.norm(np.diff(kpoints, axis=0), axis=1)
    x = np.concatenate([[0.0], np.cumsum(steps)])

    if ax is None:
        _, ax = plt.subplots()

    styles = ['-', '--']
    for spin in range(energies.shape[0]):
        for band in energies[spin].T:
            ax.plot(x, band - fermi_level, styles[spin % 2], color='k', lw=1)

    ax.axhline(0, c='r', lw=0.5)
    ax.set_xlim(x[0], x[-1])
    ax.set_xticks([])
    ax.set_xlabel('k-vector')
    ax.set_ylabel('Energy (eV)')
    return ax
