"""Exception hierarchy for the equilibrium solver."""

from __future__ import annotations

from typing import Any, Optional


class CoffeeError(Exception):
    """Base class for every error raised by the solver."""


class DimensionMismatch(CoffeeError, ValueError):
    """Composition, free energies and concentrations have inconsistent shapes."""


class InvalidInput(CoffeeError, ValueError):
    """A value is non-finite or outside its domain (also used for bad configuration)."""


class NumericalFailure(CoffeeError, ArithmeticError):
    """An evaluation or linear solve produced a non-finite result.

    The run is aborted. ``results`` holds whatever the optimizer had assembled
    when it stopped (log messages, last multipliers) so callers can inspect it.
    """

    def __init__(self, message: str, results: Optional[Any] = None) -> None:
        super().__init__(message)
        self.results = results
