import json

import numpy as np
import pytest

from coffee.core import DimensionMismatch, InvalidInput
from coffee.utils.io_utils import (
    detect_delimiter,
    is_nupack_table,
    parse_cfe,
    parse_con,
    read_inputs,
    read_table,
    save_json,
)

# two monomers, three polymers (A, B, AB)
EXPECTED_COMPOSITION = np.array([[1.0, 0.0, 1.0], [0.0, 1.0, 1.0]])
EXPECTED_ENERGIES = np.array([-1.5, -2.0, -10.0])


@pytest.mark.parametrize(
    "text, sep",
    [
        ("1\t0\t-1.5\n", "\t"),
        ("1,0,-1.5\n", ","),
        ("1;0;-1.5\n", ";"),
        ("\n  1   0  -1.5\n", r"\s+"),
    ],
)
def test_detect_delimiter(text, sep):
    assert detect_delimiter(text) == sep


def test_empty_text_is_invalid():
    with pytest.raises(InvalidInput):
        detect_delimiter("\n \n")


@pytest.mark.parametrize(
    "text",
    [
        "1,0,-1.5\n0,1,-2.0\n1,1,-10\n",
        "1 0 -1.5\n0  1 -2.0\n1 1   -10\n",
        "1\t0\t-1.5\n0\t1\t-2.0\n1\t1\t-10\n",
        "1,0,-1.5,\n0,1,-2.0,\n1,1,-10,\n",  # trailing delimiter
    ],
)
def test_parse_cfe_plain(text):
    composition, energies = parse_cfe(text)
    np.testing.assert_array_equal(composition, EXPECTED_COMPOSITION)
    np.testing.assert_array_equal(energies, EXPECTED_ENERGIES)


def test_parse_cfe_drops_nupack_prefix():
    text = "1\t1\t1\t0\t-1.5\n2\t1\t0\t1\t-2.0\n3\t1\t1\t1\t-10.0\n"
    assert is_nupack_table(read_table(text))
    composition, energies = parse_cfe(text)
    np.testing.assert_array_equal(composition, EXPECTED_COMPOSITION)
    np.testing.assert_array_equal(energies, EXPECTED_ENERGIES)


def test_plain_table_is_not_nupack():
    assert not is_nupack_table(read_table("1,0,-1.5\n0,1,-2.0\n1,1,-10\n"))
    assert not is_nupack_table(read_table("2,1,1,0,-1.5\n3,1,0,1,-2.0\n"))


def test_parse_cfe_needs_energy_column():
    with pytest.raises(DimensionMismatch):
        parse_cfe("1\n2\n")


def test_non_numeric_cells_rejected():
    with pytest.raises(InvalidInput):
        parse_cfe("1,x,-1.5\n0,1,-2.0\n")


def test_parse_con():
    np.testing.assert_array_equal(parse_con("1e-6\n2e-6\n"), [1e-6, 2e-6])


def test_con_with_several_columns_is_invalid():
    with pytest.raises(InvalidInput, match="one column"):
        parse_con("1e-6 2e-6\n3e-6 4e-6\n")


def test_read_inputs(tmp_path):
    cfe = tmp_path / "input.cfe"
    con = tmp_path / "input.con"
    cfe.write_text("1 0 -1.5\n0 1 -2.0\n1 1 -10\n")
    con.write_text("1e-6\n2e-6\n")
    composition, energies, x0 = read_inputs(cfe, con)
    np.testing.assert_array_equal(composition, EXPECTED_COMPOSITION)
    np.testing.assert_array_equal(energies, EXPECTED_ENERGIES)
    np.testing.assert_array_equal(x0, [1e-6, 2e-6])


def test_save_json_creates_parent_dirs(tmp_path):
    path = tmp_path / "nested" / "out.json"
    save_json({"status": "converged"}, path)
    assert json.loads(path.read_text()) == {"status": "converged"}
