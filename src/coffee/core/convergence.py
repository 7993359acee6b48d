"""Termination logic for the trust-region iteration."""

from __future__ import annotations

from enum import Enum
from typing import Optional

import numpy as np

from .config import OptimizerConfig

# Multiple of the gradient's rounding-error scale still treated as zero.
ROUNDOFF_FACTOR = 1e3


class SolverStatus(str, Enum):
    RUNNING = "running"
    CONVERGED = "converged"
    MAX_ITERATIONS_REACHED = "max_iterations_reached"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self is not SolverStatus.RUNNING


class ConvergenceMonitor:
    """Tracks the run state; every state but RUNNING is terminal.

    Parameters
    ----------
    config : OptimizerConfig
    x0_scale : float
        Magnitude of the target concentrations (max |x0| in solver units);
        the gradient tolerance is relative to it.
    """

    def __init__(self, config: OptimizerConfig, x0_scale: float) -> None:
        self.max_iterations = int(config.max_iterations)
        self.min_delta = float(config.min_delta)
        self.tolerance = float(config.gradient_tol) * max(float(x0_scale), np.finfo(float).tiny)
        self.status = SolverStatus.RUNNING
        self.reason: Optional[str] = None

    @property
    def running(self) -> bool:
        return self.status is SolverStatus.RUNNING

    def _finish(self, status: SolverStatus, reason: str) -> SolverStatus:
        if self.running:
            self.status = status
            self.reason = reason
        return self.status

    def check(self, iteration: int, gradient_norm: float) -> SolverStatus:
        """Called before each iteration with the current max |grad g|."""
        if not self.running:
            return self.status
        if not np.isfinite(gradient_norm):
            return self._finish(SolverStatus.FAILED, "gradient is not finite")
        if gradient_norm <= self.tolerance:
            return self._finish(
                SolverStatus.CONVERGED,
                f"gradient norm {gradient_norm:.3e} within tolerance {self.tolerance:.3e}",
            )
        if iteration >= self.max_iterations:
            return self._finish(
                SolverStatus.MAX_ITERATIONS_REACHED,
                f"iteration budget of {self.max_iterations} exhausted",
            )
        return self.status

    def check_radius(
        self,
        delta: float,
        gradient_norm: float = float("inf"),
        noise_floor: float = 0.0,
    ) -> SolverStatus:
        """Called after each radius update.

        A collapsed radius means no step can make further progress. That is a
        converged run when the gradient already sits within
        ``ROUNDOFF_FACTOR * noise_floor`` (its rounding-error scale), and a
        failure otherwise.
        """
        if not self.running or delta >= self.min_delta:
            return self.status
        if gradient_norm <= max(self.tolerance, ROUNDOFF_FACTOR * noise_floor):
            return self._finish(
                SolverStatus.CONVERGED,
                f"objective stationary at machine precision (gradient norm {gradient_norm:.3e}, "
                f"radius {delta:.3e})",
            )
        return self._finish(
            SolverStatus.FAILED,
            f"trust-region radius collapsed to {delta:.3e} with gradient norm {gradient_norm:.3e}",
        )

    def mark_stationary(self) -> SolverStatus:
        """The last step changed neither the multipliers nor the objective."""
        return self._finish(SolverStatus.CONVERGED, "objective stationary at machine precision")

    def fail(self, reason: str) -> SolverStatus:
        return self._finish(SolverStatus.FAILED, reason)
