import numpy as np
import pytest

from coffee.core import DualObjective, EquilibriumProblem, NumericalFailure


def _make_problem(seed: int = 0, m: int = 3, n: int = 7) -> EquilibriumProblem:
    rng = np.random.default_rng(seed)
    A = rng.integers(0, 3, size=(m, n)).astype(float)
    A[:, :m] = np.eye(m)  # free monomers
    omega = rng.uniform(0.5, 2.0, size=n)
    x0 = rng.uniform(0.1, 1.0, size=m)
    return EquilibriumProblem(A, omega, x0)


def test_concentrations_strictly_positive():
    obj = DualObjective(_make_problem())
    ws = obj.allocate()
    rng = np.random.default_rng(1)
    for _ in range(20):
        lam = rng.normal(scale=5.0, size=obj.m)
        x = obj.concentrations(lam, ws)
        assert np.all(x > 0.0)
        assert np.all(np.isfinite(x))


def test_extreme_multipliers_stay_finite_and_positive():
    obj = DualObjective(_make_problem())
    ws = obj.allocate()
    for lam in (np.full(obj.m, 1e4), np.full(obj.m, -1e4)):
        obj.evaluate(lam, ws)
        assert np.all(ws.x > 0.0)
        assert np.isfinite(ws.value)


def test_dual_is_concave_along_random_chords():
    obj = DualObjective(_make_problem(seed=2))
    ws = obj.allocate()
    rng = np.random.default_rng(3)
    for _ in range(25):
        l1 = rng.normal(size=obj.m)
        l2 = rng.normal(size=obj.m)
        g1 = obj.value(l1, ws)
        g2 = obj.value(l2, ws)
        gm = obj.value(0.5 * (l1 + l2), ws)
        assert gm >= 0.5 * (g1 + g2) - 1e-12 * (1.0 + abs(g1) + abs(g2))


def test_gradient_matches_finite_differences():
    obj = DualObjective(_make_problem(seed=4))
    ws = obj.allocate()
    lam = np.random.default_rng(5).normal(scale=0.5, size=obj.m)
    grad = obj.evaluate(lam, ws).gradient.copy()

    h = 1e-6
    fd = np.zeros(obj.m)
    for i in range(obj.m):
        e = np.zeros(obj.m)
        e[i] = h
        fd[i] = (obj.value(lam + e, ws) - obj.value(lam - e, ws)) / (2 * h)
    np.testing.assert_allclose(fd, grad, rtol=1e-5, atol=1e-6)


def test_curvature_matches_gradient_differences_and_is_negative_semidefinite():
    obj = DualObjective(_make_problem(seed=6))
    ws = obj.allocate()
    lam = np.random.default_rng(7).normal(scale=0.5, size=obj.m)
    hess = obj.evaluate(lam, ws).hessian.copy()

    h = 1e-6
    fd = np.zeros((obj.m, obj.m))
    for i in range(obj.m):
        e = np.zeros(obj.m)
        e[i] = h
        g_plus = obj.evaluate(lam + e, ws, with_curvature=False).gradient.copy()
        g_minus = obj.evaluate(lam - e, ws, with_curvature=False).gradient.copy()
        fd[:, i] = (g_plus - g_minus) / (2 * h)
    np.testing.assert_allclose(fd, hess, rtol=1e-5, atol=1e-6)
    np.testing.assert_allclose(hess, hess.T)
    assert np.max(np.linalg.eigvalsh(hess)) <= 1e-10


def test_improvement_agrees_with_value_difference():
    obj = DualObjective(_make_problem(seed=8))
    cur, trial = obj.allocate(), obj.allocate()
    lam = np.array([0.1, -0.2, 0.3])
    step = np.array([0.05, 0.02, -0.04])
    obj.evaluate(lam, cur)
    obj.evaluate(lam + step, trial, with_curvature=False)
    assert obj.improvement(cur, trial) == pytest.approx(trial.value - cur.value, rel=1e-9, abs=1e-12)


def test_workspace_is_reused_in_place():
    obj = DualObjective(_make_problem())
    ws = obj.allocate()
    grad_buffer, hess_buffer = ws.gradient, ws.hessian
    obj.evaluate(np.zeros(obj.m), ws)
    obj.evaluate(np.ones(obj.m), ws)
    assert ws.gradient is grad_buffer
    assert ws.hessian is hess_buffer
    np.testing.assert_array_equal(ws.lam, np.ones(obj.m))


def test_lazy_curvature_flag():
    obj = DualObjective(_make_problem())
    ws = obj.allocate()
    obj.evaluate(np.zeros(obj.m), ws, with_curvature=False)
    assert not ws.has_curvature
    obj.curvature(ws)
    assert ws.has_curvature


def test_non_finite_multipliers_raise():
    obj = DualObjective(_make_problem())
    ws = obj.allocate()
    lam = np.zeros(obj.m)
    lam[0] = np.nan
    with pytest.raises(NumericalFailure):
        obj.evaluate(lam, ws)


def test_gradient_floor_is_rounding_sized():
    problem = _make_problem(seed=9)
    obj = DualObjective(problem)
    ws = obj.allocate()
    obj.evaluate(np.array([0.5, -1.0, 2.0]), ws)
    floor = obj.gradient_floor(ws)
    assert 0.0 < floor < 1e-10 * np.max(problem.composition @ ws.x)
