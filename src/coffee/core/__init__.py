"""Core algorithms and data structures for the COFFEE equilibrium solver."""

from .config import OptimizerConfig
from .errors import CoffeeError, DimensionMismatch, InvalidInput, NumericalFailure
from .problem import EquilibriumProblem, water_molarity
from .dual import DualObjective, DualWorkspace
from .subproblem import SubproblemResult, TrustRegionSubproblemSolver
from .step_control import StepController, StepDecision
from .convergence import ConvergenceMonitor, SolverStatus
from .recovery import OptimizerResults, PrimalRecovery
from .events import IterationEvent, LoggerSink, MessageSink, MultiSink, NullSink, RunFinished, RunStarted
from .optimizer import TrustRegionOptimizer, solve_equilibrium, solve_from_free_energies

__all__ = [
    'OptimizerConfig',
    'CoffeeError',
    'DimensionMismatch',
    'InvalidInput',
    'NumericalFailure',
    'EquilibriumProblem',
    'water_molarity',
    'DualObjective',
    'DualWorkspace',
    'SubproblemResult',
    'TrustRegionSubproblemSolver',
    'StepController',
    'StepDecision',
    'ConvergenceMonitor',
    'SolverStatus',
    'OptimizerResults',
    'PrimalRecovery',
    'IterationEvent',
    'LoggerSink',
    'MessageSink',
    'MultiSink',
    'NullSink',
    'RunFinished',
    'RunStarted',
    'TrustRegionOptimizer',
    'solve_equilibrium',
    'solve_from_free_energies',
]
