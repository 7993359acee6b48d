import numpy as np
import pytest

from coffee.core import DimensionMismatch, EquilibriumProblem, InvalidInput, OptimizerConfig, water_molarity
from coffee.core.problem import SMALLEST_EXP_VALUE, thermal_scale


def test_water_molarity_reference_points():
    assert water_molarity(37.0) == pytest.approx(55.138, abs=0.01)
    assert water_molarity(4.0) == pytest.approx(55.507, abs=0.01)


def test_free_energies_become_log_weights_with_scalarity():
    cfg = OptimizerConfig(temp_celsius=37.0, scalarity=True)
    A = np.array([[1.0, 0.0, 1.0], [0.0, 1.0, 1.0]])
    energies = np.array([0.0, -1.0, 2.5])
    x0 = np.array([1e-6, 2e-6])
    problem = EquilibriumProblem.from_free_energies(A, energies, x0, cfg)

    kT = 0.00198717 * (37.0 + 273.15)
    assert thermal_scale(cfg) == pytest.approx(kT)
    np.testing.assert_allclose(problem.log_omega, -energies / kT)
    assert problem.concentration_scale == pytest.approx(water_molarity(37.0))
    np.testing.assert_allclose(problem.scaled_x0, x0 / water_molarity(37.0))
    np.testing.assert_array_equal(problem.x0, x0)


def test_free_energies_without_scalarity_are_clipped_in_kt_units():
    cfg = OptimizerConfig(scalarity=False)
    A = np.eye(2)
    problem = EquilibriumProblem.from_free_energies(A, [-500.0, 3.0], [1.0, 1.0], cfg)
    np.testing.assert_allclose(problem.log_omega, [-SMALLEST_EXP_VALUE, -3.0])
    assert problem.concentration_scale == 1.0


@pytest.mark.parametrize("energies", [[0.0, np.nan], [np.inf, 0.0]])
def test_non_finite_free_energy_is_invalid(energies):
    with pytest.raises(InvalidInput):
        EquilibriumProblem.from_free_energies(np.eye(2), energies, [1.0, 1.0])


@pytest.mark.parametrize(
    "A, omega, x0",
    [
        (np.eye(2), [1.0, 1.0, 1.0], [1.0, 1.0]),           # omega too long
        (np.eye(2), [1.0, 1.0], [1.0]),                      # x0 too short
        (np.ones((3, 2)), [1.0, 1.0], [1.0, 1.0, 1.0]),      # fewer polymers than monomers
        (np.zeros((0, 2)), [1.0, 1.0], []),                  # no monomers
        ([1.0, 2.0], [1.0, 1.0], [1.0]),                     # composition not 2-D
    ],
)
def test_shape_violations_raise_dimension_mismatch(A, omega, x0):
    with pytest.raises(DimensionMismatch):
        EquilibriumProblem(A, omega, x0)


@pytest.mark.parametrize(
    "A, omega, x0",
    [
        (np.eye(2), [1.0, 0.0], [1.0, 1.0]),
        (np.eye(2), [1.0, -2.0], [1.0, 1.0]),
        (np.eye(2), [1.0, np.inf], [1.0, 1.0]),
        (np.eye(2), [np.nan, 1.0], [1.0, 1.0]),
        (np.eye(2), [1.0, 1.0], [-1.0, 1.0]),
        (-np.eye(2), [1.0, 1.0], [1.0, 1.0]),
        (np.array([[1.0, 1.0], [0.0, 0.0]]), [1.0, 1.0], [1.0, 1.0]),  # monomer in no polymer
    ],
)
def test_domain_violations_raise_invalid_input(A, omega, x0):
    with pytest.raises(InvalidInput):
        EquilibriumProblem(A, omega, x0)


def test_problem_arrays_are_frozen_copies():
    A = np.eye(2)
    x0 = np.array([1.0, 2.0])
    problem = EquilibriumProblem(A, [1.0, 1.0], x0)
    assert not problem.composition.flags.writeable
    assert not problem.scaled_x0.flags.writeable
    assert A.flags.writeable and x0.flags.writeable
    assert problem.n_monomers == 2 and problem.n_polymers == 2
    np.testing.assert_allclose(problem.omega, [1.0, 1.0])
