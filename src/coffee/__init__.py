"""
COFFEE - Computing Optimal Free-energy Functional Equilibria
=============================================================

Equilibrium concentrations of polymers assembled from monomers, computed by a
trust-region Newton method on the concave dual of the mass-conserving
free-energy minimization.

Quick use:

    from coffee import solve_equilibrium
    results = solve_equilibrium(A, omega, x0)
"""

__version__ = "1.0.0"
__author__ = "COFFEE developers"

from .core import (
    EquilibriumProblem,
    OptimizerConfig,
    OptimizerResults,
    SolverStatus,
    TrustRegionOptimizer,
    solve_equilibrium,
    solve_from_free_energies,
)
from .core.errors import CoffeeError, DimensionMismatch, InvalidInput, NumericalFailure

__all__ = [
    "EquilibriumProblem",
    "OptimizerConfig",
    "OptimizerResults",
    "SolverStatus",
    "TrustRegionOptimizer",
    "solve_equilibrium",
    "solve_from_free_energies",
    "CoffeeError",
    "DimensionMismatch",
    "InvalidInput",
    "NumericalFailure",
]
