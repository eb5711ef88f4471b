"""Command-line interface for vanadox.

Provides utilities for:
- Setting up DFT+U calculations of vanadium oxides
- Running VASP and checking job status
- Summarizing results and formation energies
- Plotting band structures
- Diagnosing and fixing unconverged runs
- Running vaspkit tasks
"""

import argparse
import json
import logging
import os
import sys

from .exceptions import VaspException, VaspRunning

__all__ = ['main']

log = logging.getLogger('vanadox')


def setup_command(args):
    """Write the inputs of a vanadium-oxide calculation."""
    from .calculator import Vasp
    from .parameters import vanadium_oxide_parameters
    from .structures import get_structure, read_structure

    if os.path.exists(args.structure):
        atoms = read_structure(args.structure)
    else:
        atoms = get_structure(args.structure)

    u_values = {'V': args.u} if args.u is not None else None
    params = vanadium_oxide_parameters(atoms, preset=args.preset, u_values=u_values)
    if args.encut:
        params['encut'] = args.encut

    kpts = {}
    if args.kpts:
        kpts['kpts'] = tuple(args.kpts)
        kpts['gamma'] = args.gamma
    elif args.kpts_density:
        kpts['kpts_density'] = args.kpts_density

    directory = args.directory or f'{atoms.get_chemical_formula()}-{args.preset}'
    calc = Vasp(directory, atoms=atoms, **kpts, **params)
    calc.write_input(atoms)
    print(f'Wrote inputs for {atoms.get_chemical_formula()} ({args.preset}) to {calc.directory}')
    return 0


def run_command(args):
    """Run VASP in existing directories."""
    from .runners import LocalRunner

    runner = LocalRunner(vasp_executable=args.executable, nprocs=args.nprocs,
                         background=args.background)
    code = 0
    for directory in args.dirs:
        try:
            status = runner.run(directory)
        except VaspRunning as e:
            print(f'{directory}: running (pid {e.jobid})')
            continue
        except VaspException as e:
            print(f'{directory}: {e}', file=sys.stderr)
            code = 1
            continue
        print(f'{directory}: {status.state.value}'
              + (f' ({status.message})' if status.message else ''))
        if status.state.value == 'failed':
            code = 1
    return code


def status_command(args):
    """Show the state of calculation directories."""
    from .runners import LocalRunner

    runner = LocalRunner()
    for directory in args.dirs:
        status = runner.status(directory)
        line = f'{directory}: {status.state.value}'
        if status.message:
            line += f' ({status.message})'
        print(line)
    return 0


def summary_command(args):
    """Summarize finished calculations, like vaspsum."""
    from .calculator import Vasp

    def format_energy(energy, natoms):
        if energy is None:
            return 'Energy: Not available'
        return f'Energy: {energy:.6f} eV ({energy / natoms:.6f} eV/atom)'

    code = 0
    for directory in args.dirs:
        if not os.path.isdir(directory):
            print(f'Error: {directory} does not exist!', file=sys.stderr)
            code = 1
            continue

        try:
            calc = Vasp.from_directory(directory)
            calc.read_results()
        except VaspException as e:
            print(f'{directory}: results not available: {e}', file=sys.stderr)
            code = 1
            continue

        atoms = calc.atoms
        if args.json:
            data = {
                'directory': calc.directory,
                'formula': atoms.get_chemical_formula() if atoms is not None else None,
                'natoms': len(atoms) if atoms is not None else None,
                'parameters': calc.parameters,
                'results': calc.results,
            }
            print(json.dumps(data, indent=2, default=str))
            continue

        print(f'\n{directory}')
        print('=' * 60)
        if atoms is not None:
            print(f'  Formula: {atoms.get_chemical_formula()}')
            print(f'  Atoms: {len(atoms)}')
            print(f'  {format_energy(calc.results.get("energy"), len(atoms))}')
        if 'fermi_level' in calc.results:
            print(f'  Fermi level: {calc.results["fermi_level"]:.4f} eV')
        if 'magmom' in calc.results:
            print(f'  Magnetic moment: {calc.results["magmom"]:.3f} muB')
        converged = calc.results.get('converged')
        if converged is not None:
            print(f'  Status: {"Converged" if converged else "NOT CONVERGED"}')
        if args.verbose:
            print('\nParameters:')
            for key, value in sorted(calc.parameters.items()):
                print(f'  {key}: {value}')
    return code


def formation_command(args):
    """Formation energy per atom from five numbers."""
    from .energetics import formation_energy_per_atom

    ef = formation_energy_per_atom(args.e_total, args.n_v, args.n_o, args.e_v, args.e_o)
    print(f'{ef:.6f}')
    return 0


def bands_command(args):
    """Plot a band structure and print the gap."""
    from .bandstructure import get_band_gap, plot_band_structure

    plot_band_structure(args.vasprun, kpoints=args.kpoints, ylim=tuple(args.ylim),
                        efermi=args.efermi, output=args.output)
    gap = get_band_gap(args.vasprun, kpoints=args.kpoints, efermi=args.efermi)
    kind = 'direct' if gap.get('direct') else 'indirect'
    print(f'Band gap: {gap["energy"]:.3f} eV ({kind}, {gap.get("transition")})')
    return 0


def diagnose_command(args):
    """Diagnose calculations and optionally apply the remedies."""
    from .calculator import Vasp
    from .readers import read_incar
    from .troubleshoot import apply_remedies, diagnose, suggest_remedies

    code = 0
    for directory in args.dirs:
        d = diagnose(directory)
        print(d)
        if d.converged:
            continue

        incar = os.path.join(directory, 'INCAR')
        params = read_incar(incar) if os.path.exists(incar) else {}
        remedies = suggest_remedies(d, params)
        if not remedies:
            print('  No automatic remedy; check the OUTCAR by hand.')
            code = 1
            continue

        for remedy in remedies:
            print(f'  {remedy}')

        if args.fix:
            calc = Vasp.from_directory(directory)
            changed = apply_remedies(calc, remedies)
            if not changed:
                print('  Nothing changed; the INCAR already has these settings.')
                code = 1
                continue
            print(f'  Updated {", ".join(k.upper() for k in changed)}; '
                  f'rerun with "vanadox run {directory}"')
    return code


def vaspkit_command(args):
    """Run a vaspkit task."""
    from .vaspkit import run_vaspkit

    output = run_vaspkit(args.task, directory=args.directory, inputs=args.input)
    print(output, end='')
    return 0


def build_parser():
    """Argument parser with one subcommand per task."""
    from .parameters import CALCULATION_PRESETS

    parser = argparse.ArgumentParser(
        prog='vanadox',
        description='DFT+U calculations of vanadium oxides with VASP',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  vanadox setup VO2 -d vo2/relax --kpts 6 6 10
  vanadox run vo2/relax --nprocs 16
  vanadox summary vo2/relax
  vanadox formation -52.5 2 4 -8.9 -4.9
  vanadox diagnose --fix vo2/relax
        """
    )
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Debug logging')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Setup command
    p = subparsers.add_parser('setup', help='Write VASP inputs for a vanadium oxide')
    p.add_argument('structure',
                   help='Prototype name (VO, VO2, V2O3, V2O5) or a structure file')
    p.add_argument('-d', '--directory', help='Calculation directory')
    p.add_argument('--preset', default='relax-cell', choices=sorted(CALCULATION_PRESETS),
                   help='Calculation type (default: relax-cell)')
    p.add_argument('-U', '--u', type=float, help='Hubbard U on V in eV (default: 3.25)')
    p.add_argument('--encut', type=float, help='Plane-wave cutoff in eV')
    p.add_argument('--kpts', type=int, nargs=3, metavar='N', help='k-point mesh')
    p.add_argument('--gamma', action='store_true', help='Gamma-centred mesh')
    p.add_argument('--kpts-density', type=float,
                   help='k-point divisions per inverse Angstrom, instead of --kpts')
    p.set_defaults(func=setup_command)

    # Run command
    p = subparsers.add_parser('run', help='Run VASP in calculation directories')
    p.add_argument('dirs', nargs='+', help='Calculation directories')
    p.add_argument('-n', '--nprocs', type=int, help='Number of MPI processes')
    p.add_argument('-x', '--executable', help='VASP binary')
    p.add_argument('--background', action='store_true', help='Do not wait for VASP')
    p.set_defaults(func=run_command)

    # Status command
    p = subparsers.add_parser('status', help='Show calculation status')
    p.add_argument('dirs', nargs='*', default=['.'], help='Calculation directories')
    p.set_defaults(func=status_command)

    # Summary command
    p = subparsers.add_parser('summary', help='Summarize finished calculations')
    p.add_argument('dirs', nargs='*', default=['.'], help='Calculation directories')
    p.add_argument('--json', action='store_true', help='Output in JSON format')
    p.set_defaults(func=summary_command)

    # Formation energy command
    p = subparsers.add_parser('formation', help='Formation energy per atom')
    p.add_argument('e_total', type=float, help='Total energy of the oxide cell (eV)')
    p.add_argument('n_v', type=int, help='Number of V atoms')
    p.add_argument('n_o', type=int, help='Number of O atoms')
    p.add_argument('e_v', type=float, help='Energy per V atom of the metal (eV)')
    p.add_argument('e_o', type=float, help='Energy per O atom, E(O2)/2 (eV)')
    p.set_defaults(func=formation_command)

    # Band structure command
    p = subparsers.add_parser('bands', help='Plot a band structure')
    p.add_argument('vasprun', nargs='?', default='vasprun.xml', help='vasprun.xml of the band run')
    p.add_argument('-k', '--kpoints', help='Line-mode KPOINTS file')
    p.add_argument('-o', '--output', default='bands.png', help='Figure file (default: bands.png)')
    p.add_argument('--ylim', type=float, nargs=2, default=[-4, 4], metavar=('EMIN', 'EMAX'),
                   help='Energy window around the Fermi level')
    p.add_argument('--efermi', type=float, help='Fermi level of the self-consistent run')
    p.set_defaults(func=bands_command)

    # Diagnose command
    p = subparsers.add_parser('diagnose', help='Find out why a run failed')
    p.add_argument('dirs', nargs='*', default=['.'], help='Calculation directories')
    p.add_argument('--fix', action='store_true', help='Apply the suggested INCAR changes')
    p.set_defaults(func=diagnose_command)

    # vaspkit command
    p = subparsers.add_parser('vaspkit', help='Run a vaspkit task')
    p.add_argument('task', type=int, help='vaspkit task number, e.g. 303')
    p.add_argument('-d', '--directory', default='.', help='Working directory')
    p.add_argument('-i', '--input', action='append',
                   help='Answer to a vaspkit prompt (repeatable)')
    p.set_defaults(func=vaspkit_command)

    return parser


def main(argv=None):
    """Main CLI entry point."""
    from .logger import configure_logging

    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(logging.DEBUG if args.verbose else logging.INFO)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        return args.func(args)
    except (VaspException, ValueError) as e:
        print(f'Error: {e}', file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == '__main__':
    sys.exit(main())
