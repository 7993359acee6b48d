"""Human-readable messages for optimizer runs."""

from __future__ import annotations

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from coffee.core.convergence import SolverStatus
    from coffee.core.recovery import OptimizerResults

_CONCLUSION = {
    "converged": "complete",
    "max_iterations_reached": "stopped without converging",
    "failed": "failed",
    "running": "interrupted",
}


def start_message() -> str:
    return "Starting COFFEE optimization...\n"


def process_message(iteration: int, objective: float, error: float) -> str:
    return f"Iteration {iteration}: f = {objective:.12f}, error = {error:.6e}\n"


def format_elapsed(time_us: int) -> str:
    ms = time_us / 1000.0
    if ms < 1000.0:
        return f"{ms:.2f} ms"
    return f"{ms / 1000.0:.2f} s"


def conclude_message(
    iterations: int,
    status: "SolverStatus",
    time_us: int,
    display_time: bool,
    results: Optional["OptimizerResults"] = None,
    reason: Optional[str] = None,
) -> str:
    lines = [f"Optimization {_CONCLUSION.get(status.value, status.value)} after {iterations} iterations."]
    if reason:
        lines.append(f"Reason: {reason}.")
    lines.append("")

    if results is not None:
        lines.append(f"Number of monomers: {len(results.optimal_lambda)}")
        lines.append(f"Number of polymers: {len(results.optimal_x)}")
        lines.append("")
        lines.append(f"Optimal Lagrangian: {results.optimal_lagrangian:.6e}")
        lines.append("")
        lines.append("Optimal Lambdas:")
        lines.append(" ".join(f"{v:.6e}" for v in results.optimal_lambda))
        lines.append("")
        lines.append(f"Concentration Constraint Error: {results.concentration_error:.6e}")

    if display_time:
        lines.append("")
        lines.append(f"Elapsed time: {format_elapsed(time_us)}")
    return "\n".join(lines) + "\n"


def results_message(results: "OptimizerResults") -> str:
    """Polymer concentrations on one line, as written to output files."""
    return " ".join(f"{v:.2e}" for v in results.optimal_x)
