"""Diagnose and fix failed VASP runs.

Vanadium oxides are magnetic and often metallic near their transitions,
and their electronic loop regularly fails to converge within NELM steps.
The usual remedies are more electronic steps, gentler charge mixing and
a more robust algorithm. This module reads a finished run, decides what
went wrong and proposes INCAR changes.

Errors are detected with the custodian VASP handlers, so they carry
custodian's names ('zbrent', 'edddav', 'subspacematrix', ...).

Example:
    >>> from vanadox.readers import read_incar
    >>> from vanadox.troubleshoot import diagnose, suggest_remedies
    >>> d = diagnose('vo2/relax')
    >>> for remedy in suggest_remedies(d, read_incar('vo2/relax/INCAR')):
    ...     print(remedy)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from custodian.utils import backup
from custodian.vasp.handlers import UnconvergedErrorHandler, VaspErrorHandler

from .config import get_setting
from .exceptions import VaspEmptyOutput
from .parameters import get_mixing_params
from .readers import outcar_complete, read_incar, read_oszicar
from .runners import clean_output_files, restart_files
from .writers import write_incar

if TYPE_CHECKING:
    from .calculator import Vasp

log = logging.getLogger('vanadox')

DEFAULT_NELM = 60

# custodian error name -> (INCAR tag, value, reason)
ERROR_REMEDIES = {
    'zbrent': ('ibrion', 1, 'line minimiser failed; use quasi-Newton ionic steps'),
    'edddav': ('algo', 'Normal', 'subspace diagonalisation failed'),
    'eddrmm': ('algo', 'Normal', 'RMM-DIIS diagonalisation failed'),
    'zheev': ('algo', 'Normal', 'subspace diagonalisation failed'),
    'eddiag': ('algo', 'Normal', 'subspace diagonalisation failed'),
    'subspacematrix': ('algo', 'Normal', 'subspace matrix is not hermitian'),
}

# Files kept in error.N.tar.gz before a failed run is cleared
BACKUP_FILES = ['INCAR', 'KPOINTS', 'POSCAR', 'OUTCAR', 'OSZICAR', 'CONTCAR',
                'vasprun.xml', 'vasp.out']


@dataclass
class Diagnosis:
    """What happened in a VASP run.

    Attributes:
        directory: Calculation directory.
        converged: True when the run finished and the last electronic
            loop converged.
        complete: OUTCAR has the timing summary.
        electronic_failures: Ionic steps whose electronic loop hit NELM.
        ionic_steps: Number of ionic steps in OSZICAR.
        nelm: NELM used for the run.
        errors: custodian error names found in vasp.out or OUTCAR.
        magnetic: Spin-polarised run (ISPIN=2).
        unconverged: vasprun.xml reports an unconverged run.
    """
    directory: str
    converged: bool = False
    complete: bool = False
    electronic_failures: int = 0
    ionic_steps: int = 0
    nelm: int = DEFAULT_NELM
    errors: list[str] = field(default_factory=list)
    magnetic: bool = False
    unconverged: bool = False

    def __str__(self) -> str:
        if self.converged:
            return f'{self.directory}: converged in {self.ionic_steps} ionic step(s)'
        problems = []
        if self.electronic_failures:
            problems.append(
                f'{self.electronic_failures} of {self.ionic_steps} ionic step(s) '
                f'reached NELM={self.nelm}'
            )
        problems.extend(self.errors)
        if self.unconverged and not self.electronic_failures:
            problems.append('vasprun.xml reports an unconverged run')
        if not self.complete:
            problems.append('run did not finish')
        return f'{self.directory}: ' + '; '.join(problems)


@dataclass
class Remedy:
    """One INCAR change.

    Attributes:
        parameter: Lowercase INCAR tag.
        value: New value.
        reason: Why the change helps.
    """
    parameter: str
    value: Any
    reason: str

    def __str__(self) -> str:
        return f'{self.parameter.upper()} = {self.value}  ({self.reason})'


def find_errors(directory: str) -> list[str]:
    """custodian error names in the vasp.out and OUTCAR of a run.

    VaspErrorHandler reads the INCAR as well, so a directory without one
    has no errors to report.
    """
    if not os.path.exists(os.path.join(directory, 'INCAR')):
        return []
    errors: set[str] = set()
    for output in ('vasp.out', 'OUTCAR'):
        if not os.path.exists(os.path.join(directory, output)):
            continue
        handler = VaspErrorHandler(output_filename=output)
        if handler.check(directory=directory):
            errors.update(handler.errors)
    return sorted(errors)


def diagnose(directory: str) -> Diagnosis:
    """Inspect INCAR, OSZICAR, OUTCAR, vasp.out and vasprun.xml of a run."""
    directory = os.path.abspath(directory)
    incar = os.path.join(directory, 'INCAR')
    params = read_incar(incar) if os.path.exists(incar) else {}

    d = Diagnosis(directory=directory,
                  nelm=int(params.get('nelm', DEFAULT_NELM)),
                  magnetic=params.get('ispin', 1) == 2)

    d.complete = outcar_complete(os.path.join(directory, 'OUTCAR'))
    d.errors = find_errors(directory)

    if os.path.exists(os.path.join(directory, 'vasprun.xml')):
        d.unconverged = UnconvergedErrorHandler().check(directory=directory)

    try:
        steps = read_oszicar(os.path.join(directory, 'OSZICAR'))
    except VaspEmptyOutput:
        steps = []
    d.ionic_steps = len(steps)
    d.electronic_failures = sum(1 for s in steps if s['nelm'] >= d.nelm)

    last_ok = bool(steps) and steps[-1]['nelm'] < d.nelm
    d.converged = d.complete and not d.errors and not d.unconverged and last_ok
    log.debug(str(d))
    return d


def suggest_remedies(diagnosis: Diagnosis, parameters: dict[str, Any]) -> list[Remedy]:
    """INCAR changes for a failed run.

    Remedies escalate with what the INCAR already contains: first more
    steps and linear mixing, then ALGO=All once the mixing was already
    reduced.

    Args:
        diagnosis: Result of diagnose().
        parameters: Current lowercase INCAR parameters.

    Returns:
        List of remedies, empty for a converged run.
    """
    if diagnosis.converged:
        return []

    remedies: list[Remedy] = []
    params = {k.lower(): v for k, v in parameters.items()}

    for error in diagnosis.errors:
        if error not in ERROR_REMEDIES:
            continue
        key, value, reason = ERROR_REMEDIES[error]
        if str(params.get(key, '')).lower() != str(value).lower():
            remedies.append(Remedy(key, value, reason))

    if diagnosis.electronic_failures or 'brmix' in diagnosis.errors:
        max_nelm = int(get_setting('troubleshoot.max_nelm', 500))
        nelm = int(params.get('nelm', diagnosis.nelm))
        if diagnosis.electronic_failures and nelm < max_nelm:
            remedies.append(Remedy('nelm', min(2 * nelm, max_nelm),
                                   f'electronic loop stopped at NELM={nelm}'))

        scheme = 'magnetic' if diagnosis.magnetic else 'linear'
        mixing = get_mixing_params(scheme)
        already_mixed = all(params.get(k) == v for k, v in mixing.items())
        if not already_mixed:
            for key, value in mixing.items():
                remedies.append(Remedy(key, value, f'{scheme} charge mixing damps charge sloshing'))
        elif str(params.get('algo', 'Normal')).lower() != 'all':
            for key, value in get_mixing_params('damped').items():
                remedies.append(Remedy(key, value, 'mixing already reduced; switch to ALGO=All'))

    if not remedies and not diagnosis.complete and not diagnosis.errors:
        log.warning(f'{diagnosis.directory}: run did not finish and no known cause was found')

    # last one wins for repeated tags
    unique: dict[str, Remedy] = {}
    for remedy in remedies:
        unique[remedy.parameter] = remedy
    return list(unique.values())


def apply_remedies(calc: Vasp, remedies: list[Remedy]) -> dict:
    """Update the calculator and clear the failed outputs so it can be rerun.

    The failed inputs and outputs are archived first with custodian's
    backup, as error.1.tar.gz, error.2.tar.gz, ... in the directory. The
    INCAR is rewritten when the calculator has a structure, so the
    directory can also be rerun with a runner directly.

    Returns:
        Dict of changed parameters.
    """
    changed = calc.set(**{r.parameter: r.value for r in remedies})
    if changed:
        for remedy in remedies:
            log.info(f'{calc.directory}: {remedy}')
        present = [f for f in BACKUP_FILES if os.path.exists(os.path.join(calc.directory, f))]
        if present:
            backup(present, directory=calc.directory)
        clean_output_files(calc.directory, keep=restart_files(calc.directory))
        if calc.atoms is not None:
            write_incar(calc.directory, calc.incar_parameters(),
                        comment=f"{calc.atoms.get_chemical_formula()} remedied by vanadox")
    return changed
