"""Reader functions for VASP input and output files."""

from __future__ import annotations

import logging
import os
import re

import numpy as np

from .exceptions import VaspEmptyOutput

log = logging.getLogger('vanadox')

INT_RE = re.compile(r'^[-+]?\d+$')

# Messages VASP prints before it gives up
ERROR_PATTERNS = [
    'ZBRENT: fatal error',
    'VERY BAD NEWS!',
    'internal error',
    'EDDDAV: Call to ZHEGV failed',
    'Sub-Space-Matrix is not hermitian',
]

COMPLETION_MARKER = 'General timing and accounting'


def isfloat(s: str) -> bool:
    """Return if s is a float.

    We check if it is not an integer first, then try to make it a float.
    """
    if INT_RE.match(s):
        return False
    try:
        float(s)
        return True
    except ValueError:
        return False


def _convert(val: str):
    """Convert an INCAR value string to a Python value."""
    upper = val.upper()
    if upper in ('.TRUE.', 'T', '.T.'):
        return True
    if upper in ('.FALSE.', 'F', '.F.'):
        return False
    if INT_RE.match(val):
        return int(val)
    if isfloat(val):
        return float(val)

    parts = val.split()
    if len(parts) > 1:
        values = []
        for x in parts:
            # expand VASP repeat notation, e.g. 4*5.0
            if '*' in x:
                count, item = x.split('*', 1)
                values.extend([_convert(item)] * int(count))
            else:
                values.append(_convert(x))
        return values
    if '*' in val:
        count, item = val.split('*', 1)
        if INT_RE.match(count):
            return [_convert(item)] * int(count)
    # I guess we have a string here.
    return val


def read_incar(fname: str) -> dict:
    """Read an INCAR into a dict with lowercase keys.

    The first line is a comment. ``#`` and ``!`` start comments, and
    several tags may share a line when separated by ``;``.
    """
    params = {}

    with open(fname) as f:
        lines = f.readlines()

    for line in lines[1:]:
        line = re.split('[#!]', line, maxsplit=1)[0].strip()
        if line == '':
            continue
        for statement in line.split(';'):
            if '=' not in statement:
                continue
            key, val = statement.split('=', 1)
            params[key.strip().lower()] = _convert(val.strip())

    return params


def outcar_complete(fname: str) -> bool:
    """True if the OUTCAR ends with the timing summary."""
    if not os.path.exists(fname):
        return False
    # Check last 10KB for completion marker
    with open(fname, 'rb') as f:
        f.seek(0, 2)
        size = f.tell()
        f.seek(max(0, size - 10240))
        content = f.read().decode('utf-8', errors='ignore')
    return COMPLETION_MARKER in content


def find_outcar_errors(fname: str) -> list[str]:
    """Fatal error messages found in an OUTCAR."""
    if not os.path.exists(fname):
        return []
    with open(fname, 'rb') as f:
        content = f.read().decode('utf-8', errors='ignore')
    return [pattern for pattern in ERROR_PATTERNS if pattern in content]


def read_outcar(fname: str) -> dict:
    """Read final results from an OUTCAR.

    Returns:
        Dict with energy (free energy TOTEN), energy_sigma0, fermi_level,
        magmom (total), magmoms (per atom, file order) and complete.
        Missing quantities are absent from the dict.

    Raises:
        VaspEmptyOutput: If the file is missing or empty.
    """
    if not os.path.exists(fname) or os.path.getsize(fname) == 0:
        raise VaspEmptyOutput(f'No OUTCAR output in {fname}')

    with open(fname) as f:
        lines = f.readlines()

    results = {}
    for i, line in enumerate(lines):
        if 'free  energy   TOTEN' in line:
            results['energy'] = float(line.split('=')[1].split()[0])
        elif 'energy(sigma->0)' in line:
            results['energy_sigma0'] = float(line.split('=')[-1].split()[0])
        elif 'E-fermi' in line:
            results['fermi_level'] = float(line.split(':')[1].split()[0])
        elif 'number of electron' in line and 'magnetization' in line:
            results['magmom'] = float(line.split('magnetization')[-1].split()[0])
        elif line.strip() == 'magnetization (x)':
            magmoms = []
            # header, blank, column labels, dashes, then one row per atom
            for row in lines[i + 1:]:
                fields = row.split()
                if not fields:
                    if magmoms:
                        break
                    continue
                if fields[0].isdigit():
                    magmoms.append(float(fields[-1]))
                elif magmoms:
                    break
            results['magmoms'] = np.array(magmoms)

    results['complete'] = any(COMPLETION_MARKER in line for line in lines[-200:])
    return results


def read_oszicar(fname: str) -> list[dict]:
    """Read the ionic steps of an OSZICAR.

    Returns:
        One dict per ionic step with ``nelm`` (electronic steps taken),
        ``F``, ``E0`` and ``mag`` (None when not spin polarised).
    """
    if not os.path.exists(fname):
        raise VaspEmptyOutput(f'No OSZICAR in {os.path.dirname(fname) or "."}')

    steps = []
    electronic = 0
    with open(fname) as f:
        for line in f:
            fields = line.split()
            if not fields:
                continue
            if fields[0] in ('DAV:', 'RMM:', 'CG:', 'SDA:', 'ORT:', 'EDWAV:'):
                electronic = int(fields[1])
            elif 'F=' in line:
                step = {'nelm': electronic, 'F': None, 'E0': None, 'mag': None}
                m = re.search(r'F=\s*([-+.\dEe]+)', line)
                if m:
                    step['F'] = float(m.group(1))
                m = re.search(r'E0=\s*([-+.\dEe]+)', line)
                if m:
                    step['E0'] = float(m.group(1))
                m = re.search(r'mag=\s*([-+.\dEe]+)', line)
                if m:
                    step['mag'] = float(m.group(1))
                steps.append(step)
                electronic = 0
    return steps


def read_eigenval(fname: str) -> tuple[np.ndarray, np.ndarray]:
    """Read k-points and band energies from an EIGENVAL file.

    Returns:
        (kpoints, energies) with kpoints of shape (nkpts, 3) and
        energies of shape (nspin, nkpts, nbands).
    """
    with open(fname) as f:
        header = [f.readline() for _ in range(5)]
        nspin = int(header[0].split()[3])
        _, nkpts, nbands = [int(x) for x in f.readline().split()]

        kpoints = np.zeros((nkpts, 3))
        energies = np.zeros((nspin, nkpts, nbands))

        for k in range(nkpts):
            line = f.readline()
            while not line.strip():
                line = f.readline()
            kpoints[k] = [float(x) for x in line.split()[:3]]
            for b in range(nbands):
                fields = f.readline().split()
                for s in range(nspin):
                    energies[s, k, b] = float(fields[1 + s])

    return kpoints, energies
