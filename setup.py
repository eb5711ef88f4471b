from setuptools import setup

setup(name = 'vanadox',
      version='0.1.0',
      description='ase-compliant VASP DFT+U workflows for vanadium oxides',
      author='John Kitchin',
      author_email='jkitchin@andrew.cmu.edu',
      license='GPL',
      platforms=['linux'],
      packages=['vanadox', 'vanadox.runners', 'vanadox.tests', 'vanadox.tests.fixtures'],
      entry_points={'console_scripts': ['vanadox=vanadox.cli:main']},
      python_requires='>=3.9',
      long_description='''Python module for setting up, running, troubleshooting and analysing
DFT+U calculations of vanadium oxides with VASP.''',
      install_requires=[
          "ase",
          "numpy",
          "matplotlib",
          "pymatgen",
          "custodian>=2024.3.12",
          ],
      extras_require={'test': ['pytest']},)
