"""Primal recovery: polymer concentrations and conservation error from lambda."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

import numpy as np

from .convergence import SolverStatus
from .dual import DualWorkspace
from .problem import EquilibriumProblem


@dataclass
class OptimizerResults:
    """Output record of one optimizer run.

    Attributes
    ----------
    optimal_x : (n,) float
        Polymer concentrations in caller units.
    optimal_lagrangian : float
        Dual objective at termination (equals the primal optimum under strong
        duality), in solver units.
    optimal_lambda : (m,) float
        Final Lagrange multipliers.
    concentration_error : float
        max_i |(A x)_i - x0_i| in caller units. Below 1e-15 is excellent.
    log_messages : list of str
        Formatted start, per-iteration and closing messages.
    elapsed_time : int
        Wall-clock duration of the run in microseconds.
    status : SolverStatus
        Terminal state of the run.
    iterations : int
        Number of completed iterations.
    """
    optimal_x: np.ndarray
    optimal_lagrangian: float
    optimal_lambda: np.ndarray
    concentration_error: float
    log_messages: List[str] = field(default_factory=list)
    elapsed_time: int = 0
    status: SolverStatus = SolverStatus.RUNNING
    iterations: int = 0

    @property
    def converged(self) -> bool:
        return self.status is SolverStatus.CONVERGED

    def to_dict(self) -> dict:
        return {
            "optimal_x": [float(v) for v in self.optimal_x],
            "optimal_lagrangian": float(self.optimal_lagrangian),
            "optimal_lambda": [float(v) for v in self.optimal_lambda],
            "concentration_error": float(self.concentration_error),
            "log_messages": list(self.log_messages),
            "elapsed_time": int(self.elapsed_time),
            "status": self.status.value,
            "iterations": int(self.iterations),
        }


class PrimalRecovery:
    """Maps a dual workspace back to caller units."""

    def __init__(self, problem: EquilibriumProblem) -> None:
        self.A = problem.composition
        self.x0 = problem.x0
        self.scale = problem.concentration_scale

    def concentrations(self, ws: DualWorkspace) -> np.ndarray:
        return ws.x * self.scale

    def concentration_error(self, ws: DualWorkspace) -> float:
        backtrack = self.x0 - self.A @ self.concentrations(ws)
        return float(np.max(np.abs(backtrack)))

    def assemble(
        self,
        ws: DualWorkspace,
        status: SolverStatus,
        iterations: int,
        log_messages: List[str],
        elapsed_time: int,
    ) -> OptimizerResults:
        return OptimizerResults(
            optimal_x=self.concentrations(ws),
            optimal_lagrangian=float(ws.value),
            optimal_lambda=ws.lam.copy(),
            concentration_error=self.concentration_error(ws),
            log_messages=list(log_messages),
            elapsed_time=int(elapsed_time),
            status=status,
            iterations=int(iterations),
        )
