"""
Trust-region subproblem solvers.

Given the dual gradient g and curvature H at the current multipliers and a
radius delta, find a step p that approximately maximizes the quadratic model

    m(p) = g^T p + 1/2 p^T H p      subject to ||p|| <= delta.

Internally the problem is flipped into the usual minimization form with
B = -H (positive semidefinite) and c = -g, i.e. minimize c^T p + 1/2 p^T B p.
The predicted improvement reported to the caller is m(p) >= 0.

Two methods are provided:

- ``dogleg``: Newton step from a Cholesky factorization of B (with diagonal
  shifts, then least squares, when B is singular), Cauchy step along the
  gradient, and the piecewise-linear path between them.
- ``steihaug``: truncated conjugate gradients, stopping at the boundary or on
  non-positive curvature. Needs only products with B.

``"auto"`` uses dogleg while B admits a plain Cholesky factorization and the
system is small enough, and falls back to Steihaug otherwise.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
from scipy import linalg as la

from .errors import NumericalFailure

# Relative diagonal shifts tried when B is not positive definite.
_SHIFTS = (1e-12, 1e-10, 1e-8, 1e-6)


@dataclass
class SubproblemResult:
    """Step proposed for the current trust region.

    Attributes
    ----------
    step : (m,) float
        Ascent step p with ||p|| <= delta (up to rounding).
    predicted : float
        Model improvement g^T p + 1/2 p^T H p, never negative.
    step_norm : float
    on_boundary : bool
        True when the step was cut at the trust-region boundary.
    method : str
        Which construction produced the step ("newton", "cauchy", "dogleg",
        "cg", "cg-boundary", "cg-negative-curvature", "zero").
    """
    step: np.ndarray
    predicted: float
    step_norm: float
    on_boundary: bool
    method: str


def model_improvement(gradient: np.ndarray, hessian: np.ndarray, step: np.ndarray) -> float:
    """g^T p + 1/2 p^T H p for the (maximization) dual model."""
    return float(gradient @ step + 0.5 * step @ (hessian @ step))


def boundary_tau(p: np.ndarray, d: np.ndarray, delta: float) -> Optional[float]:
    """Largest tau >= 0 with ||p + tau d|| = delta, or None if it is not finite."""
    a = float(d @ d)
    b = 2.0 * float(p @ d)
    c = float(p @ p) - delta * delta
    if a <= 0.0:
        return None
    disc = max(0.0, b * b - 4.0 * a * c)
    tau = (-b + np.sqrt(disc)) / (2.0 * a)
    if not np.isfinite(tau):
        return None
    return max(tau, 0.0)


class TrustRegionSubproblemSolver:
    """Computes a constrained ascent step for the dual model.

    Parameters
    ----------
    method : str
        "auto", "dogleg" or "steihaug".
    direct_solve_limit : int
        In "auto" mode, systems with more monomers than this use Steihaug.
    """

    def __init__(self, method: str = "auto", direct_solve_limit: int = 500) -> None:
        if method not in ("auto", "dogleg", "steihaug"):
            raise ValueError(f"Unknown subproblem method {method!r}")
        self.method = method
        self.direct_solve_limit = int(direct_solve_limit)

    def solve(self, gradient: np.ndarray, hessian: np.ndarray, delta: float) -> SubproblemResult:
        """Return the step for radius ``delta``.

        Raises
        ------
        NumericalFailure
            When no finite step can be produced.
        """
        c = -np.asarray(gradient, dtype=float)
        B = -np.asarray(hessian, dtype=float)
        if not (np.all(np.isfinite(c)) and np.all(np.isfinite(B))):
            raise NumericalFailure("Subproblem received non-finite gradient or curvature.")
        if not np.isfinite(delta) or delta <= 0.0:
            raise NumericalFailure(f"Trust-region radius is not usable: {delta!r}")

        if not np.any(c):
            p = np.zeros_like(c)
            return SubproblemResult(p, 0.0, 0.0, False, "zero")

        if self.method == "steihaug":
            p, how = self._steihaug(c, B, delta)
        elif self.method == "dogleg":
            p, how = self._dogleg(c, B, delta, self._newton_step(c, B))
        else:
            factor = None
            if c.size <= self.direct_solve_limit:
                factor = _try_cholesky(B)
            p_newton = None
            if factor is not None:
                p_newton = la.cho_solve(factor, -c, check_finite=False)
            if p_newton is None or not np.all(np.isfinite(p_newton)):
                p, how = self._steihaug(c, B, delta)
            else:
                p, how = self._dogleg(c, B, delta, p_newton)

        if not np.all(np.isfinite(p)):
            raise NumericalFailure(f"Subproblem step is not finite ({how}).")
        pred = -float(c @ p + 0.5 * p @ (B @ p))
        norm = float(np.linalg.norm(p))
        on_boundary = how not in ("newton", "cg")
        return SubproblemResult(p, max(pred, 0.0), norm, on_boundary, how)

    # ------------------------------------------------------------------
    # Dogleg
    # ------------------------------------------------------------------
    def _newton_step(self, c: np.ndarray, B: np.ndarray) -> np.ndarray:
        """Solve B p = -c, regularizing when B is singular."""
        factor = _try_cholesky(B)
        if factor is not None:
            return la.cho_solve(factor, -c, check_finite=False)
        scale = max(float(np.max(np.abs(np.diag(B)))), np.finfo(float).tiny)
        eye = np.eye(B.shape[0])
        for shift in _SHIFTS:
            factor = _try_cholesky(B + (shift * scale) * eye)
            if factor is not None:
                return la.cho_solve(factor, -c, check_finite=False)
        try:
            p = la.lstsq(B, -c)[0]
        except (la.LinAlgError, ValueError) as exc:
            raise NumericalFailure(f"Newton system could not be solved: {exc}") from exc
        if not np.all(np.isfinite(p)):
            raise NumericalFailure("Newton step is not finite after regularization.")
        return p

    def _dogleg(self, c: np.ndarray, B: np.ndarray, delta: float, p_newton: np.ndarray) -> Tuple[np.ndarray, str]:
        if not np.all(np.isfinite(p_newton)):
            raise NumericalFailure("Newton step is not finite.")
        if np.linalg.norm(p_newton) <= delta:
            return p_newton, "newton"

        c_norm = float(np.linalg.norm(c))
        curv = float(c @ (B @ c))
        if curv <= 0.0:
            # flat along the gradient: go all the way to the boundary
            return (-delta / c_norm) * c, "cauchy"
        p_cauchy = -(c_norm * c_norm / curv) * c
        cauchy_norm = float(np.linalg.norm(p_cauchy))
        if cauchy_norm >= delta:
            return (delta / cauchy_norm) * p_cauchy, "cauchy"

        tau = boundary_tau(p_cauchy, p_newton - p_cauchy, delta)
        if tau is None:
            raise NumericalFailure("Dogleg boundary intersection is not finite.")
        tau = min(tau, 1.0)
        return p_cauchy + tau * (p_newton - p_cauchy), "dogleg"

    # ------------------------------------------------------------------
    # Steihaug truncated CG
    # ------------------------------------------------------------------
    def _steihaug(self, c: np.ndarray, B: np.ndarray, delta: float) -> Tuple[np.ndarray, str]:
        z = np.zeros_like(c)
        r = c.copy()
        d = -r
        r_norm = float(np.linalg.norm(r))
        eps = min(0.5, np.sqrt(r_norm)) * r_norm
        rr = r_norm * r_norm

        for _ in range(c.size + 1):
            Bd = B @ d
            curvature = float(d @ Bd)
            if curvature <= 0.0:
                tau = boundary_tau(z, d, delta)
                if tau is None:
                    raise NumericalFailure("Steihaug boundary intersection is not finite.")
                return z + tau * d, "cg-negative-curvature"

            alpha = rr / curvature
            z_next = z + alpha * d
            if np.linalg.norm(z_next) >= delta:
                tau = boundary_tau(z, d, delta)
                if tau is None:
                    raise NumericalFailure("Steihaug boundary intersection is not finite.")
                return z + tau * d, "cg-boundary"

            r = r + alpha * Bd
            rr_next = float(r @ r)
            z = z_next
            if np.sqrt(rr_next) < eps:
                break
            d = -r + (rr_next / rr) * d
            rr = rr_next

        return z, "cg"


def _try_cholesky(B: np.ndarray):
    try:
        return la.cho_factor(B, lower=True, check_finite=False)
    except la.LinAlgError:
        return None
