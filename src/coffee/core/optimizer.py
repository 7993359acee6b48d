"""
Trust-region Newton optimizer for the equilibrium dual.

Each iteration:

1. evaluate (g, grad g, H) at the current multipliers (kept in a workspace);
2. ask the subproblem solver for a step inside the radius;
3. evaluate g at the trial point in a second workspace;
4. let the step controller accept/reject and resize the radius;
5. let the convergence monitor decide whether to stop.

The two workspaces are swapped on acceptance, so the loop never reallocates.
All per-run state lives in a ``TrustRegionState`` created by ``optimize``;
the optimizer object only holds immutable problem data and configuration.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional

import numpy as np

from coffee.utils.logging_utils import get_logger

from .config import OptimizerConfig
from .convergence import ConvergenceMonitor, SolverStatus
from .dual import DualObjective, DualWorkspace
from .errors import DimensionMismatch, InvalidInput, NumericalFailure
from .events import EventSink, IterationEvent, MessageSink, MultiSink, RunFinished, RunStarted, default_sink
from .problem import EquilibriumProblem
from .recovery import OptimizerResults, PrimalRecovery
from .step_control import StepController
from .subproblem import TrustRegionSubproblemSolver

logger = get_logger(__name__)


@dataclass
class TrustRegionState:
    """Mutable state of a single run."""
    delta: float
    current: DualWorkspace
    trial: DualWorkspace
    iteration: int = 0

    def swap(self) -> None:
        self.current, self.trial = self.trial, self.current


class TrustRegionOptimizer:
    """Solves one ``EquilibriumProblem``.

    Parameters
    ----------
    problem : EquilibriumProblem
    config : OptimizerConfig, optional
        Defaults to ``OptimizerConfig()``.
    sink : EventSink, optional
        Receives structured events. Defaults to ``default_sink(config)``.
        The formatted messages are always collected into the results as well.

    Notes
    -----
    ``optimize`` may be called repeatedly; every call starts from scratch.
    Separate optimizer instances share nothing and may run concurrently.
    """

    def __init__(
        self,
        problem: EquilibriumProblem,
        config: Optional[OptimizerConfig] = None,
        sink: Optional[EventSink] = None,
    ) -> None:
        self.problem = problem
        self.config = config or OptimizerConfig()
        self.sink = sink if sink is not None else default_sink(self.config)
        self.objective = DualObjective(problem)
        self.subproblem = TrustRegionSubproblemSolver(self.config.subproblem, self.config.direct_solve_limit)
        self.controller = StepController(self.config)
        self.recovery = PrimalRecovery(problem)

    def optimize(self, initial_lambda=None) -> OptimizerResults:
        """Run the iteration and return the results record.

        Parameters
        ----------
        initial_lambda : (m,) array_like, optional
            Starting multipliers; zeros when omitted.

        Returns
        -------
        OptimizerResults
            Status CONVERGED or MAX_ITERATIONS_REACHED.

        Raises
        ------
        NumericalFailure
            On a non-finite evaluation, an unsolvable subproblem or a collapsed
            radius. ``exc.results`` holds the state at the point of failure.
        """
        cfg = self.config
        m = self.problem.n_monomers
        lam = np.zeros(m) if initial_lambda is None else np.array(initial_lambda, dtype=float)
        if lam.shape != (m,):
            raise DimensionMismatch(f"initial_lambda must have shape ({m},), got {lam.shape}.")
        if not np.all(np.isfinite(lam)):
            raise InvalidInput("initial_lambda must be finite.")

        messages = MessageSink()
        sink = MultiSink([messages, self.sink])
        monitor = ConvergenceMonitor(cfg, float(np.max(np.abs(self.problem.scaled_x0))))
        state = TrustRegionState(
            delta=min(cfg.initial_delta, cfg.max_delta),
            current=self.objective.allocate(),
            trial=self.objective.allocate(),
        )
        start = time.perf_counter()
        sink.emit(RunStarted(m, self.problem.n_polymers, state.delta))

        try:
            self.objective.evaluate(lam, state.current)
            self._iterate(state, monitor, sink)
        except NumericalFailure as exc:
            monitor.fail(str(exc))
            results = self._finish(state, monitor, sink, messages, start)
            raise NumericalFailure(str(exc), results=results) from exc

        results = self._finish(state, monitor, sink, messages, start)
        if monitor.status is SolverStatus.FAILED:
            raise NumericalFailure(f"Optimization failed: {monitor.reason}", results=results)
        return results

    def _iterate(self, state: TrustRegionState, monitor: ConvergenceMonitor, sink: EventSink) -> None:
        while True:
            cur = state.current
            grad_norm = float(np.max(np.abs(cur.gradient)))
            if monitor.check(state.iteration, grad_norm).terminal:
                return

            if not cur.has_curvature:
                self.objective.curvature(cur)
            step = self.subproblem.solve(cur.gradient, cur.hessian, state.delta)
            trial_lam = cur.lam + step.step
            if np.array_equal(trial_lam, cur.lam):
                monitor.mark_stationary()
                return

            trial = self.objective.evaluate(trial_lam, state.trial, with_curvature=False)
            actual = self.objective.improvement(cur, trial)
            decision = self.controller.update(actual, step.predicted, step.step_norm, state.delta)
            state.delta = decision.delta
            if decision.accepted:
                state.swap()

            sink.emit(IterationEvent(
                iteration=state.iteration,
                objective=state.current.value,
                error=self.recovery.concentration_error(state.current),
                gradient_norm=grad_norm,
                delta=state.delta,
                rho=decision.rho,
                accepted=decision.accepted,
                method=step.method,
            ))
            state.iteration += 1

            if actual == 0.0:
                monitor.mark_stationary()
                return
            if state.delta < self.config.min_delta:
                cur = state.current
                residual = float(np.max(np.abs(cur.gradient)))
                if monitor.check_radius(state.delta, residual, self.objective.gradient_floor(cur)).terminal:
                    return

    def _finish(
        self,
        state: TrustRegionState,
        monitor: ConvergenceMonitor,
        sink: EventSink,
        messages: MessageSink,
        start: float,
    ) -> OptimizerResults:
        elapsed = int(round((time.perf_counter() - start) * 1e6))
        status = monitor.status
        results = self.recovery.assemble(state.current, status, state.iteration, messages.messages, elapsed)
        if status is SolverStatus.MAX_ITERATIONS_REACHED:
            logger.debug("No convergence after %d iterations (error %.3e)", state.iteration, results.concentration_error)
        sink.emit(RunFinished(
            status=status,
            iterations=state.iteration,
            elapsed_time=elapsed,
            reason=monitor.reason,
            results=results,
            display_time=self.config.verbose,
        ))
        results.log_messages = list(messages.messages)
        return results


def solve_equilibrium(
    composition,
    omega,
    x0,
    config: Optional[OptimizerConfig] = None,
    sink: Optional[EventSink] = None,
    initial_lambda=None,
) -> OptimizerResults:
    """Validate the inputs and run the optimizer once (Omega given directly)."""
    problem = EquilibriumProblem(composition, omega, x0)
    return TrustRegionOptimizer(problem, config, sink).optimize(initial_lambda)


def solve_from_free_energies(
    composition,
    free_energies,
    x0,
    config: Optional[OptimizerConfig] = None,
    sink: Optional[EventSink] = None,
) -> OptimizerResults:
    """Convert raw free energies per ``config`` and run the optimizer once."""
    config = config or OptimizerConfig()
    problem = EquilibriumProblem.from_free_energies(composition, free_energies, x0, config)
    return TrustRegionOptimizer(problem, config, sink).optimize()
