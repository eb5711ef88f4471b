"""Test fixtures for vanadium oxide calculations."""

import os

FIXTURES_DIR = os.path.dirname(__file__)


def get_fixture_path(filename: str) -> str:
    """Get absolute path to a fixture file."""
    return os.path.join(FIXTURES_DIR, filename)


def write_files(directory: str, **files) -> str:
    """Write fixture strings into directory, e.g. write_files(d, INCAR=MOCK_INCAR)."""
    os.makedirs(directory, exist_ok=True)
    for name, content in files.items():
        with open(os.path.join(directory, name), 'w') as f:
            f.write(content)
    return directory


def write_fake_vasp(directory: str, delay: float = 0.0) -> str:
    """Executable that sleeps, then writes a finished OUTCAR like VASP."""
    os.makedirs(directory, exist_ok=True)
    path = os.path.join(directory, 'fake_vasp')
    with open(path, 'w') as f:
        f.write('#!/bin/sh\n')
        if delay:
            f.write(f'sleep {delay}\n')
        f.write("echo ' General timing and accounting' > OUTCAR\n")
    os.chmod(path, 0o755)
    return path


# INCAR of a DFT+U relaxation of rutile VO2
MOCK_INCAR = """VO2 PBE+U relaxation
PREC = Accurate
ENCUT = 520
EDIFF = 1E-05   # electronic convergence
ISMEAR = 0 ; SIGMA = 0.05
ISPIN = 2
MAGMOM = 2*5.0 4*0.6
NELM = 60
IBRION = 2
ISIF = 3
NSW = 100
LDAU = .TRUE.
LDAUTYPE = 2
LDAUL = 2 -1
LDAUU = 3.25 0.0
LDAUJ = 0.0 0.0
LASPH = .TRUE.
LCHARG = .TRUE.
! SYSTEM = ignored
"""

MOCK_POSCAR = """O4V2
 1.0000000000000000
     4.5540000000000003    0.0000000000000000    0.0000000000000000
     0.0000000000000000    4.5540000000000003    0.0000000000000000
     0.0000000000000000    0.0000000000000000    2.8570000000000002
 V    O
   2   4
Direct
  0.0000000000000000  0.0000000000000000  0.0000000000000000
  0.5000000000000000  0.5000000000000000  0.5000000000000000
  0.3001000000000000  0.3001000000000000  0.0000000000000000
  0.6999000000000000  0.6999000000000000  0.0000000000000000
  0.8001000000000000  0.1999000000000000  0.5000000000000000
  0.1999000000000000  0.8001000000000000  0.5000000000000000
"""

MOCK_KPOINTS = """Automatic mesh
0
Gamma
6 6 10
0 0 0
"""

MOCK_POTCAR_V = """  PAW_PBE V_pv 07Sep2000
 13.0000000000000000
 parameters from PSCTR are:
   VRHFIN =V: 3p4s3d
   TITEL  = PAW_PBE V_pv 07Sep2000
 End of Dataset
"""

MOCK_POTCAR_O = """  PAW_PBE O 08Apr2002
 6.00000000000000000
 parameters from PSCTR are:
   VRHFIN =O: s2p4
   TITEL  = PAW_PBE O 08Apr2002
 End of Dataset
"""

# Finished spin-polarised VO2 run
MOCK_OUTCAR = """
 vasp.6.3.0 18Jan22 (build Apr 01 2022 16:49:06) complex

 POTCAR:    PAW_PBE V_pv 07Sep2000
 POTCAR:    PAW_PBE O 08Apr2002

   ISPIN  =      2    spin polarized calculation
   LDAUTYPE =      2

 E-fermi :   4.1873     XC(G=0):  -9.2245     alpha+bet : -7.1893

  free  energy   TOTEN  =       -52.41180271 eV

  energy  without entropy=      -52.40977104  energy(sigma->0) =      -52.41078688

 number of electron      42.0000000 magnetization       2.0012000

 magnetization (x)

# of ion       s       p       d       tot
------------------------------------------
    1        0.012   0.021   1.061   1.094
    2        0.012   0.021   1.061   1.094
    3       -0.001  -0.022   0.000  -0.023
    4       -0.001  -0.022   0.000  -0.023
    5       -0.001  -0.022   0.000  -0.023
    6       -0.001  -0.022   0.000  -0.023
--------------------------------------------------
tot          0.020  -0.046   2.122   2.096

 General timing and accounting informations for this job:
 ========================================================

                  Total CPU time used (sec):      812.322
"""

# OUTCAR of a run killed by the ionic line minimiser
MOCK_OUTCAR_ZBRENT = """
 vasp.6.3.0 18Jan22 (build Apr 01 2022 16:49:06) complex

  free  energy   TOTEN  =       -52.10000000 eV

 ZBRENT: fatal error in bracketing
     please rerun with smaller EDIFF, or copy CONTCAR
     to POSCAR and continue
"""

MOCK_OSZICAR = """       N       E                     dE             d eps       ncg     rms          rms(c)
DAV:   1     0.109658323465E+03    0.10966E+03   -0.55423E+03  1440   0.969E+02
DAV:   2    -0.398217632170E+02   -0.14948E+03   -0.13790E+03  1752   0.266E+02
RMM:   3    -0.521830128745E+02   -0.12361E+02   -0.11263E+02  1784   0.486E+01    0.418E+01
RMM:   4    -0.524118027100E+02   -0.22879E+00   -0.58631E-01  1812   0.252E+00    0.103E+01
   1 F= -.52411803E+02 E0= -.52410787E+02  d E =-.524118E+02  mag=     2.0012
"""

# Two ionic steps, the second one stopped at NELM = 5
MOCK_OSZICAR_UNCONVERGED = """       N       E                     dE             d eps       ncg     rms          rms(c)
DAV:   1     0.109658323465E+03    0.10966E+03   -0.55423E+03  1440   0.969E+02
DAV:   2    -0.521830128745E+02   -0.12361E+02   -0.11263E+02  1784   0.486E+01
   1 F= -.52183013E+02 E0= -.52182000E+02  d E =-.521830E+02  mag=     1.9870
DAV:   1    -0.521000000000E+02    0.10000E+00   -0.10000E+00  1440   0.969E+00
DAV:   2    -0.522000000000E+02   -0.10000E+00   -0.10000E+00  1440   0.969E+00
DAV:   3    -0.521500000000E+02    0.50000E-01   -0.10000E+00  1440   0.969E+00
DAV:   4    -0.522100000000E+02   -0.60000E-01   -0.10000E+00  1440   0.969E+00
DAV:   5    -0.521600000000E+02    0.50000E-01   -0.10000E+00  1440   0.969E+00
   2 F= -.52160000E+02 E0= -.52159000E+02  d E =0.230000E-01  mag=     1.4000
"""

# Spin-polarised EIGENVAL with 3 k-points and 4 bands
MOCK_EIGENVAL = """    6    6    1    2
  0.1154088E+02  0.4554000E-09  0.4554000E-09  0.2857000E-09  0.5000000E-15
  1.000000000000000E-004
  CAR
 VO2
     42     3     4

  0.0000000E+00  0.0000000E+00  0.0000000E+00  0.3333333E+00
    1       -5.1000   -5.0000   1.000000   1.000000
    2        1.2000    1.3000   1.000000   1.000000
    3        4.0000    4.1000   1.000000   0.000000
    4        6.5000    6.6000   0.000000   0.000000

  0.2500000E+00  0.0000000E+00  0.0000000E+00  0.3333333E+00
    1       -4.9000   -4.8000   1.000000   1.000000
    2        1.5000    1.6000   1.000000   1.000000
    3        4.3000    4.4000   0.000000   0.000000
    4        6.8000    6.9000   0.000000   0.000000

  0.5000000E+00  0.0000000E+00  0.0000000E+00  0.3333333E+00
    1       -4.7000   -4.6000   1.000000   1.000000
    2        1.8000    1.9000   1.000000   1.000000
    3        4.6000    4.7000   0.000000   0.000000
    4        7.1000    7.2000   0.000000   0.000000
"""


# vasprun.xml of a line-mode run on a cubic VO cell, Gamma to X.
# Two bands: the valence band tops out at X (-0.5 eV) and the conduction
# band bottoms out at X (0.9 eV), a direct gap of 1.4 eV.
MOCK_VASPRUN_BANDS = """<?xml version="1.0" encoding="ISO-8859-1"?>
<modeling>
 <generator>
  <i name="program" type="string">vasp </i>
  <i name="version" type="string">6.3.0  </i>
  <i name="subversion" type="string">18Jan22 (build Apr 01 2022 16:49:06) complex  serial </i>
  <i name="platform" type="string">LinuxIFC </i>
  <i name="date" type="string">2024 05 02 </i>
  <i name="time" type="string">10:12:41 </i>
 </generator>
 <incar>
  <i type="string" name="SYSTEM">VO bands</i>
  <i type="string" name="PREC">accurate</i>
  <i type="string" name="ALGO">Normal</i>
  <i name="ENCUT">    520.00000000</i>
  <i type="int" name="ICHARG">    11</i>
  <i type="int" name="ISPIN">     1</i>
  <i type="int" name="IBRION">    -1</i>
  <i type="int" name="NSW">     0</i>
  <i type="int" name="ISMEAR">     0</i>
  <i name="SIGMA">      0.05000000</i>
 </incar>
 <kpoints>
  <generation param="listgenerated">
   <i name="divisions" type="int">       4 </i>
   <v>       0.00000000       0.00000000       0.00000000 </v>
   <v>       0.50000000       0.00000000       0.00000000 </v>
  </generation>
  <varray name="kpointlist" >
   <v>       0.00000000       0.00000000       0.00000000 </v>
   <v>       0.16666667       0.00000000       0.00000000 </v>
   <v>       0.33333333       0.00000000       0.00000000 </v>
   <v>       0.50000000       0.00000000       0.00000000 </v>
  </varray>
  <varray name="weights" >
   <v>       0.25000000 </v>
   <v>       0.25000000 </v>
   <v>       0.25000000 </v>
   <v>       0.25000000 </v>
  </varray>
 </kpoints>
 <parameters>
  <separator name="general" >
   <i type="string" name="SYSTEM">VO bands</i>
   <i type="logical" name="LCOMPAT"> F  </i>
  </separator>
  <separator name="electronic" >
   <i type="string" name="PREC">accurate</i>
   <i name="ENMAX">    520.00000000</i>
   <i type="int" name="ISPIN">     1</i>
   <i type="int" name="NBANDS">     2</i>
   <i name="NELECT">      2.00000000</i>
   <separator name="electronic convergence" >
    <i type="int" name="NELM">    60</i>
    <i type="int" name="NELMIN">     2</i>
    <i name="EDIFF">      0.00001000</i>
   </separator>
  </separator>
  <separator name="ionic" >
   <i type="int" name="NSW">     0</i>
   <i type="int" name="IBRION">    -1</i>
   <i type="int" name="ISIF">     2</i>
  </separator>
  <separator name="electronic exchange-correlation" >
   <i type="logical" name="LASPH"> F  </i>
  </separator>
  <separator name="exchange correlation treatment" >
   <i type="string" name="GGA">--</i>
   <i type="logical" name="LHFCALC"> F  </i>
  </separator>
 </parameters>
 <atominfo>
  <atoms>       2 </atoms>
  <types>       2 </types>
  <array name="atoms" >
   <dimension dim="1">ion</dimension>
   <field type="string">element</field>
   <field type="int">atomtype</field>
   <set>
    <rc><c>V </c><c>   1</c></rc>
    <rc><c>O </c><c>   2</c></rc>
   </set>
  </array>
  <array name="atomtypes" >
   <dimension dim="1">type</dimension>
   <field type="int">atomspertype</field>
   <field type="string">element</field>
   <field>mass</field>
   <field>valence</field>
   <field type="string">pseudopotential</field>
   <set>
    <rc><c>   1</c><c>V </c><c>     50.94150000</c><c>     13.00000000</c><c>  PAW_PBE V_pv 07Sep2000                 </c></rc>
    <rc><c>   1</c><c>O </c><c>     16.00000000</c><c>      6.00000000</c><c>  PAW_PBE O 08Apr2002                    </c></rc>
   </set>
  </array>
 </atominfo>
 <structure name="initialpos" >
  <crystal>
   <varray name="basis" >
    <v>       3.00000000       0.00000000       0.00000000 </v>
    <v>       0.00000000       3.00000000       0.00000000 </v>
    <v>       0.00000000       0.00000000       3.00000000 </v>
   </varray>
   <i name="volume">     27.00000000 </i>
   <varray name="rec_basis" >
    <v>       0.33333333       0.00000000       0.00000000 </v>
    <v>       0.00000000       0.33333333       0.00000000 </v>
    <v>       0.00000000       0.00000000       0.33333333 </v>
   </varray>
  </crystal>
  <varray name="positions" >
   <v>       0.00000000       0.00000000       0.00000000 </v>
   <v>       0.50000000       0.50000000       0.50000000 </v>
  </varray>
 </structure>
 <calculation>
  <scstep>
   <energy>
    <i name="e_fr_energy">    -10.10000000 </i>
    <i name="e_wo_entrp">    -10.10000000 </i>
    <i name="e_0_energy">    -10.10000000 </i>
   </energy>
  </scstep>
  <scstep>
   <energy>
    <i name="e_fr_energy">    -10.00000000 </i>
    <i name="e_wo_entrp">    -10.00000000 </i>
    <i name="e_0_energy">    -10.00000000 </i>
   </energy>
  </scstep>
  <structure>
   <crystal>
    <varray name="basis" >
     <v>       3.00000000       0.00000000       0.00000000 </v>
     <v>       0.00000000       3.00000000       0.00000000 </v>
     <v>       0.00000000       0.00000000       3.00000000 </v>
    </varray>
    <i name="volume">     27.00000000 </i>
   </crystal>
   <varray name="positions" >
    <v>       0.00000000       0.00000000       0.00000000 </v>
    <v>       0.50000000       0.50000000       0.50000000 </v>
   </varray>
  </structure>
  <varray name="forces" >
   <v>       0.00000000       0.00000000       0.00000000 </v>
   <v>       0.00000000       0.00000000       0.00000000 </v>
  </varray>
  <varray name="stress" >
   <v>       0.00000000       0.00000000       0.00000000 </v>
   <v>       0.00000000       0.00000000       0.00000000 </v>
   <v>       0.00000000       0.00000000       0.00000000 </v>
  </varray>
  <energy>
   <i name="e_fr_energy">    -10.00000000 </i>
   <i name="e_wo_entrp">    -10.00000000 </i>
   <i name="e_0_energy">    -10.00000000 </i>
  </energy>
  <eigenvalues>
   <array>
    <dimension dim="1">band</dimension>
    <dimension dim="2">kpoint</dimension>
    <dimension dim="3">spin</dimension>
    <field>eigene</field>
    <field>occ</field>
    <set>
     <set comment="spin 1">
      <set comment="kpoint 1">
       <r>   -1.0000    1.0000 </r>
       <r>    1.5000    0.0000 </r>
      </set>
      <set comment="kpoint 2">
       <r>   -0.8000    1.0000 </r>
       <r>    1.2000    0.0000 </r>
      </set>
      <set comment="kpoint 3">
       <r>   -0.6000    1.0000 </r>
       <r>    1.0000    0.0000 </r>
      </set>
      <set comment="kpoint 4">
       <r>   -0.5000    1.0000 </r>
       <r>    0.9000    0.0000 </r>
      </set>
     </set>
    </set>
   </array>
  </eigenvalues>
  <dos>
   <i name="efermi">      0.20000000 </i>
   <total>
    <array>
     <dimension dim="1">gridpoints</dimension>
     <dimension dim="2">spin</dimension>
     <field>energy</field>
     <field>total</field>
     <field>integrated</field>
     <set>
      <set comment="spin 1">
       <r>    -1.0000     0.5000     0.0000 </r>
       <r>     0.2000     0.0000     2.0000 </r>
       <r>     1.5000     0.5000     2.0000 </r>
      </set>
     </set>
    </array>
   </total>
  </dos>
 </calculation>
 <structure name="finalpos" >
  <crystal>
   <varray name="basis" >
    <v>       3.00000000       0.00000000       0.00000000 </v>
    <v>       0.00000000       3.00000000       0.00000000 </v>
    <v>       0.00000000       0.00000000       3.00000000 </v>
   </varray>
   <i name="volume">     27.00000000 </i>
  </crystal>
  <varray name="positions" >
   <v>       0.00000000       0.00000000       0.00000000 </v>
   <v>       0.50000000       0.50000000       0.50000000 </v>
  </varray>
 </structure>
</modeling>
"""

# The same run stopped after two electronic steps with NELM = 2
MOCK_VASPRUN_UNCONVERGED = MOCK_VASPRUN_BANDS.replace(
    '<i type="int" name="NELM">    60</i>', '<i type="int" name="NELM">     2</i>')

MOCK_KPOINTS_LINE = """Line-mode KPOINTS
4
Line-mode
Reciprocal
   0.00000000   0.00000000   0.00000000 ! \\Gamma
   0.50000000   0.00000000   0.00000000 ! X
"""
