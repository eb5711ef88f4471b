"""Configuration for running VASP.

Settings are read in order of increasing priority:

1. the defaults in VANADOXRC below
2. $HOME/.vanadoxrc
3. ./.vanadoxrc
4. environment variables

An rc file has one ``key = value`` per line, and ``#`` starts a comment::

    vasp.executable = vasp_std
    mpi.command = mpirun
    mpi.nprocs = 16       # cores on one node
    pp.path = /opt/vasp/potentials

The environment variables VASP_PP_PATH, VASP_EXECUTABLE, VASP_NPROCS,
VASP_MPI_COMMAND, VASP_MPI_EXTRA_ARGS and VASPKIT_EXECUTABLE override the
corresponding keys.
"""

from __future__ import annotations

import logging
import os

log = logging.getLogger('vanadox')

# default settings
VANADOXRC: dict[str, object] = {
    'vasp.executable': 'vasp_std',
    'mpi.command': 'mpirun',
    'mpi.nprocs': 1,
    'mpi.extra_args': None,
    'pp.path': None,
    'pp.functional': 'PBE',
    'vaspkit.executable': 'vaspkit',
    'troubleshoot.max_nelm': 500,
}

ENVIRONMENT_KEYS = {
    'VASP_EXECUTABLE': 'vasp.executable',
    'VASP_NPROCS': 'mpi.nprocs',
    'VASP_MPI_COMMAND': 'mpi.command',
    'VASP_MPI_EXTRA_ARGS': 'mpi.extra_args',
    'VASP_PP_PATH': 'pp.path',
    'VASPKIT_EXECUTABLE': 'vaspkit.executable',
}


def _convert(value: str):
    """Turn an rc-file string into None, an int or leave it a string."""
    if value in ('None', ''):
        return None
    try:
        return int(value)
    except ValueError:
        return value


def read_configuration(fname: str = '.vanadoxrc') -> dict:
    """Read key = value settings from fname."""
    settings = {}
    with open(fname) as f:
        for line in f:
            line = line.strip()

            if '#' in line:
                # take the part before the first #
                line = line.split('#')[0].strip()
            if line == '':
                continue

            if '=' not in line:
                raise ValueError(f'Cannot parse line in {fname}: {line!r}')
            key, value = line.split('=', 1)
            settings[key.strip()] = _convert(value.strip())
    return settings


def config_files() -> list[str]:
    """Possible config files, in order of increasing priority."""
    return [os.path.join(os.path.expanduser('~'), '.vanadoxrc'),
            os.path.join(os.getcwd(), '.vanadoxrc')]


def load_config(files: list[str] | None = None,
                environ: dict | None = None) -> dict:
    """Build the effective configuration.

    Args:
        files: rc files to read (default: config_files()).
        environ: Environment mapping (default: os.environ).

    Returns:
        A new dict with all settings.
    """
    config = dict(VANADOXRC)

    if files is None:
        files = config_files()
    for cf in files:
        if os.path.exists(cf):
            log.debug(f'Reading configuration from {cf}')
            config.update(read_configuration(cf))

    if environ is None:
        environ = os.environ
    for var, key in ENVIRONMENT_KEYS.items():
        if environ.get(var):
            config[key] = _convert(environ[var])

    return config


def get_setting(key: str, default=None):
    """Return a single setting from the effective configuration."""
    value = load_config().get(key)
    return default if value is None else value
