"""
Concave dual of the polymer equilibrium problem.

For multipliers lambda (one per monomer) the polymer concentrations are

    x_j(lambda) = Omega_j * exp((A^T lambda)_j)           (always > 0)

and the dual function, its gradient and its curvature are

    g(lambda)   = lambda^T x0 - sum_j x_j(lambda)
    grad g      = x0 - A x(lambda)
    H(lambda)   = -A diag(x(lambda)) A^T                  (negative semidefinite)

Maximizing g is unconstrained; at the maximizer A x = x0 holds and the
positivity of x is guaranteed by the closed form.

Notes
-----
- Exponents log Omega_j + (A^T lambda)_j are clamped to ``EXPONENT_BOUNDS``
  before exponentiation. Anything still non-finite raises NumericalFailure.
- All arrays live in a ``DualWorkspace`` that the optimizer allocates once and
  reuses; ``evaluate`` overwrites it in place.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .errors import DimensionMismatch, NumericalFailure
from .problem import EquilibriumProblem

# exp(+-700) stays well inside float64 (limit ~709.78) and keeps x_j > 0.
EXPONENT_BOUNDS = (-700.0, 700.0)


@dataclass
class DualWorkspace:
    """Per-run buffers for one evaluation point.

    Attributes
    ----------
    lam : (m,) float
        Multipliers the buffers were evaluated at.
    exponent : (n,) float
        Clamped log x_j.
    x : (n,) float
        Polymer concentrations x(lambda) in internal units.
    weighted : (m, n) float
        Scratch for A * x (column scaling) used in the curvature product.
    gradient : (m,) float
    hessian : (m, m) float
    value : float
    has_curvature : bool
        False until ``DualObjective.curvature`` filled ``hessian`` for ``x``.
    """
    lam: np.ndarray
    exponent: np.ndarray
    x: np.ndarray
    weighted: np.ndarray
    gradient: np.ndarray
    hessian: np.ndarray
    value: float = float("nan")
    has_curvature: bool = False

    @classmethod
    def allocate(cls, n_monomers: int, n_polymers: int) -> "DualWorkspace":
        return cls(
            lam=np.zeros(n_monomers),
            exponent=np.zeros(n_polymers),
            x=np.zeros(n_polymers),
            weighted=np.zeros((n_monomers, n_polymers)),
            gradient=np.zeros(n_monomers),
            hessian=np.zeros((n_monomers, n_monomers)),
        )


class DualObjective:
    """Evaluates g, grad g and H for an ``EquilibriumProblem``.

    The object itself holds only immutable problem data, so one instance may be
    shared by several optimizer runs as long as each run brings its own
    workspaces.
    """

    def __init__(self, problem: EquilibriumProblem) -> None:
        self.problem = problem
        self.A = problem.composition
        self.A_T = np.ascontiguousarray(problem.composition.T)
        self.log_omega = problem.log_omega
        self.x0 = problem.scaled_x0
        self.m, self.n = self.A.shape

    def allocate(self) -> DualWorkspace:
        return DualWorkspace.allocate(self.m, self.n)

    def concentrations(self, lam: np.ndarray, ws: DualWorkspace) -> np.ndarray:
        """Fill ``ws.exponent`` and ``ws.x`` for ``lam`` and return ``ws.x``."""
        lam = np.asarray(lam, dtype=float)
        if lam.shape != (self.m,):
            raise DimensionMismatch(f"Multipliers must have shape ({self.m},), got {lam.shape}.")
        if not np.all(np.isfinite(lam)):
            raise NumericalFailure("Lagrange multipliers are not finite.")
        ws.lam[:] = lam
        np.dot(self.A_T, lam, out=ws.exponent)
        ws.exponent += self.log_omega
        np.clip(ws.exponent, EXPONENT_BOUNDS[0], EXPONENT_BOUNDS[1], out=ws.exponent)
        np.exp(ws.exponent, out=ws.x)
        ws.has_curvature = False
        return ws.x

    def evaluate(self, lam: np.ndarray, ws: DualWorkspace, with_curvature: bool = True) -> DualWorkspace:
        """Evaluate value and gradient (and curvature unless disabled) into ``ws``.

        Returns the same workspace for convenience.
        """
        x = self.concentrations(lam, ws)
        with np.errstate(over="ignore", invalid="ignore"):
            ws.value = float(np.dot(ws.lam, self.x0) - np.sum(x))
            np.dot(self.A, x, out=ws.gradient)
            np.subtract(self.x0, ws.gradient, out=ws.gradient)
        if not np.isfinite(ws.value):
            raise NumericalFailure("Dual objective is not finite.")
        if not np.all(np.isfinite(ws.gradient)):
            raise NumericalFailure("Dual gradient is not finite.")
        if with_curvature:
            self.curvature(ws)
        return ws

    def curvature(self, ws: DualWorkspace) -> np.ndarray:
        """Fill ``ws.hessian`` with -A diag(x) A^T using the x already in ``ws``."""
        np.multiply(self.A, ws.x, out=ws.weighted)
        with np.errstate(over="ignore", invalid="ignore"):
            np.matmul(ws.weighted, self.A_T, out=ws.hessian)
        np.negative(ws.hessian, out=ws.hessian)
        if not np.all(np.isfinite(ws.hessian)):
            raise NumericalFailure("Dual curvature is not finite.")
        ws.has_curvature = True
        return ws.hessian

    def value(self, lam: np.ndarray, ws: DualWorkspace) -> float:
        """Dual objective only."""
        return self.evaluate(lam, ws, with_curvature=False).value

    def improvement(self, current: DualWorkspace, trial: DualWorkspace) -> float:
        """g(trial) - g(current) without cancellation between the two values.

        Uses x_trial - x_current = x_current * expm1(exponent_trial - exponent_current),
        which stays accurate when the step is tiny and both values are large.
        Returns -inf when the trial point is hopelessly worse.
        """
        dlam = trial.lam - current.lam
        with np.errstate(over="ignore", invalid="ignore"):
            dx = current.x * np.expm1(trial.exponent - current.exponent)
            gain = float(dlam @ self.x0 - np.sum(dx))
        if np.isnan(gain):
            return float("-inf")
        return gain

    def gradient_floor(self, ws: DualWorkspace) -> float:
        """Rounding-error scale of ``ws.gradient``.

        eps * max_i sum_j A_ij x_j (1 + |log Omega_j| + (A^T |lambda|)_j): the
        residual x0 - A x cannot be resolved more finely than this, because each
        x_j carries the relative error of its own exponent sum.
        """
        magnitude = 1.0 + np.abs(self.log_omega) + self.A_T @ np.abs(ws.lam)
        with np.errstate(over="ignore", invalid="ignore"):
            scale = float(np.max(self.A @ (ws.x * magnitude)))
        if not np.isfinite(scale):
            return float("inf")
        return float(np.finfo(float).eps) * scale
