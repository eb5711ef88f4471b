"""Tests for the VASP input writers."""

import os

import numpy as np
import pytest

from vanadox.exceptions import VaspSetupError
from vanadox.readers import read_incar
from vanadox.structures import get_structure
from vanadox.writers import (
    bandpath_segments,
    format_incar_value,
    kpoints_from_density,
    potcar_paths,
    sort_indices,
    write_incar,
    write_kpoints,
    write_line_kpoints,
    write_poscar,
    write_potcar,
)


def read_lines(path):
    with open(path) as f:
        return f.read().splitlines()


class TestFormatting:
    """Test INCAR value formatting."""

    @pytest.mark.parametrize("value,expected", [
        (True, ".TRUE."),
        (False, ".FALSE."),
        (520, "520"),
        (0.05, "0.05"),
        (-0.02, "-0.02"),
        (1e-5, "1E-05"),
        (1e-4, "1E-04"),
        (0.0, "0"),
        ("Accurate", "Accurate"),
        ([3.25, 0.0], "3.25 0"),
        ([2, -1], "2 -1"),
    ])
    def test_format_incar_value(self, value, expected):
        assert format_incar_value("tag", value) == expected


class TestIncar:
    """Test INCAR writing."""

    def test_write_incar(self, temp_dir):
        fname = write_incar(temp_dir, {
            "encut": 520,
            "ldauu": [3.25, 0.0],
            "lasph": True,
            "xc": "PBE",
            "kpts": (6, 6, 10),
            "isif": None,
        })
        lines = read_lines(fname)
        assert lines[0] == "INCAR created by vanadox"
        assert "ENCUT = 520" in lines
        assert "LDAUU = 3.25 0" in lines
        assert "LASPH = .TRUE." in lines
        assert not any(line.startswith(("XC", "KPTS", "ISIF")) for line in lines)

    def test_comment_line(self, temp_dir):
        fname = write_incar(temp_dir, {"nsw": 0}, comment="O4V2 PBE")
        assert read_lines(fname)[0] == "O4V2 PBE"

    def test_read_back(self, temp_dir):
        params = {"ediff": 1e-5, "ispin": 2, "magmom": [5.0, 5.0, 0.6], "lwave": False}
        write_incar(temp_dir, params)
        assert read_incar(os.path.join(temp_dir, "INCAR")) == params


class TestKpoints:
    """Test KPOINTS writing."""

    def test_monkhorst_pack(self, temp_dir):
        lines = read_lines(write_kpoints(temp_dir, (6, 6, 10)))
        assert lines == ["Automatic mesh", "0", "Monkhorst-Pack", "6 6 10", "0 0 0"]

    def test_gamma(self, temp_dir):
        lines = read_lines(write_kpoints(temp_dir, (4, 4, 4), gamma=True))
        assert lines[2] == "Gamma"

    def test_wrong_length(self, temp_dir):
        with pytest.raises(ValueError, match="three entries"):
            write_kpoints(temp_dir, (4, 4))

    def test_density(self):
        vo2 = get_structure("VO2")
        kpts = kpoints_from_density(vo2, 20.0)
        # shorter c axis needs more divisions
        assert kpts[0] == kpts[1]
        assert kpts[2] > kpts[0]

    def test_bandpath_segments(self):
        vo2 = get_structure("VO2")
        segments = bandpath_segments(vo2, "GXM,ZR")
        assert [[label for label, _ in seg] for seg in segments] == [["G", "X", "M"], ["Z", "R"]]
        assert np.allclose(segments[0][0][1], [0, 0, 0])

    def test_line_mode(self, temp_dir):
        vo2 = get_structure("VO2")
        lines = read_lines(write_line_kpoints(temp_dir, vo2, path="GXM", npoints=30))
        assert lines[:4] == ["Line-mode KPOINTS", "30", "Line-mode", "Reciprocal"]
        points = [line for line in lines[4:] if line.strip()]
        assert len(points) == 4
        assert points[0].endswith("! \\Gamma")
        assert points[1].endswith("! X")
        assert points[2].endswith("! X")
        assert points[3].endswith("! M")


class TestPoscar:
    """Test POSCAR writing and species sorting."""

    def test_sort_indices(self):
        sort, resort = sort_indices(["O", "V", "O", "V"])
        assert sort == [0, 2, 1, 3]
        assert [sort[i] for i in resort] == [0, 1, 2, 3]

    def test_species_grouped(self, temp_dir):
        from ase import Atoms

        atoms = Atoms("VOVO", positions=np.eye(4, 3) * 1.5, cell=[5, 5, 5], pbc=True)
        lines = read_lines(write_poscar(temp_dir, atoms))
        assert lines[5].split() == ["V", "O"]
        assert lines[6].split() == ["2", "2"]
        assert lines[7].strip().lower().startswith("direct")


class TestPotcar:
    """Test POTCAR lookup."""

    def test_vanadium_uses_pv(self, pp_path):
        paths = potcar_paths(["V", "O"])
        assert paths == [
            os.path.join(pp_path, "potpaw_PBE", "V_pv", "POTCAR"),
            os.path.join(pp_path, "potpaw_PBE", "O", "POTCAR"),
        ]

    def test_write_potcar_concatenates(self, pp_path, temp_dir):
        d = os.path.join(temp_dir, "calc")
        write_potcar(d, ["V", "O"])
        titles = [line for line in read_lines(os.path.join(d, "POTCAR")) if "TITEL" in line]
        assert len(titles) == 2
        assert "V_pv" in titles[0]

    def test_full_setup_name(self, pp_path):
        paths = potcar_paths(["O"], setups={"O": "O"})
        assert paths[0].endswith(os.path.join("O", "POTCAR"))

    def test_missing_setup(self, pp_path):
        with pytest.raises(VaspSetupError, match="POTCAR for V not found"):
            potcar_paths(["V"], setups={"V": "_sv"})

    def test_no_library(self):
        with pytest.raises(VaspSetupError, match="VASP_PP_PATH"):
            potcar_paths(["V", "O"])

    def test_missing_functional(self, pp_path):
        with pytest.raises(VaspSetupError, match="potpaw_LDA"):
            potcar_paths(["V"], pp="LDA")
