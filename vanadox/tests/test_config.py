"""Tests for the rc-file and environment configuration."""

import os

import pytest

from vanadox.config import (
    VANADOXRC,
    config_files,
    get_setting,
    load_config,
    read_configuration,
)


def write_rc(path, text):
    with open(path, 'w') as f:
        f.write(text)
    return path


def test_defaults():
    config = load_config(files=[], environ={})
    assert config == VANADOXRC
    assert config is not VANADOXRC


def test_read_configuration(temp_dir):
    rc = write_rc(os.path.join(temp_dir, 'rc'),
                  '# comment\n'
                  'vasp.executable = vasp_gam\n'
                  'mpi.nprocs = 16   # one node\n'
                  '\n'
                  'mpi.extra_args = None\n')
    assert read_configuration(rc) == {
        'vasp.executable': 'vasp_gam',
        'mpi.nprocs': 16,
        'mpi.extra_args': None,
    }


def test_read_configuration_bad_line(temp_dir):
    rc = write_rc(os.path.join(temp_dir, 'rc'), 'mpi.nprocs 16\n')
    with pytest.raises(ValueError, match='Cannot parse'):
        read_configuration(rc)


def test_later_files_win(temp_dir):
    first = write_rc(os.path.join(temp_dir, 'a'), 'mpi.nprocs = 4\nmpi.command = srun\n')
    second = write_rc(os.path.join(temp_dir, 'b'), 'mpi.nprocs = 8\n')
    config = load_config(files=[first, second, os.path.join(temp_dir, 'missing')], environ={})
    assert config['mpi.nprocs'] == 8
    assert config['mpi.command'] == 'srun'


def test_environment_wins(temp_dir):
    rc = write_rc(os.path.join(temp_dir, 'rc'), 'pp.path = /from/rc\n')
    config = load_config(files=[rc], environ={'VASP_PP_PATH': '/from/env', 'VASP_NPROCS': '32'})
    assert config['pp.path'] == '/from/env'
    assert config['mpi.nprocs'] == 32


def test_empty_environment_variable_ignored():
    config = load_config(files=[], environ={'VASP_EXECUTABLE': ''})
    assert config['vasp.executable'] == 'vasp_std'


def test_config_files_order():
    home, local = config_files()
    assert home == os.path.join(os.path.expanduser('~'), '.vanadoxrc')
    assert local == os.path.join(os.getcwd(), '.vanadoxrc')


def test_get_setting_reads_local_rc():
    write_rc('.vanadoxrc', 'vaspkit.executable = /opt/vaspkit/bin/vaspkit\n')
    assert get_setting('vaspkit.executable') == '/opt/vaspkit/bin/vaspkit'


def test_get_setting_default():
    assert get_setting('pp.path', 'fallback') == 'fallback'
    assert get_setting('no.such.key') is None


def test_get_setting_environment(monkeypatch):
    monkeypatch.setenv('VASP_PP_PATH', '/opt/potentials')
    assert get_setting('pp.path') == '/opt/potentials'
