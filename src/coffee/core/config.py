"""
Configuration dataclasses for the COFFEE equilibrium solver.

This module contains the optimizer settings for the trust-region Newton
iteration on the dual problem, together with the unit-convention switches used
when raw free energies are converted into log-domain weights.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Tuple

from .errors import InvalidInput

SUBPROBLEM_METHODS = ("auto", "dogleg", "steihaug")
_FLOAT_FIELDS = (
    "initial_delta",
    "max_delta",
    "min_delta",
    "eta",
    "norm_ratio_threshold",
    "gradient_tol",
    "temp_celsius",
)


@dataclass(frozen=True)
class OptimizerConfig:
    """Trust-region optimizer defaults.

    Attributes
    ----------
    max_iterations : int
        Iteration budget. 0 returns the starting point untouched.
    initial_delta : float
        Starting trust-region radius (capped at ``max_delta``).
    max_delta : float
        Upper bound on the radius.
    min_delta : float
        The run stops once the radius shrinks below this value: converged when
        the gradient is down to rounding error, failed otherwise.
    eta : float
        Minimum gain ratio for a step to be accepted.
    norm_ratio_threshold : float
        A step with ||p|| >= norm_ratio_threshold * delta counts as reaching
        the boundary (required before the radius may grow).
    rho_thresholds : tuple of float
        (shrink, grow) gain-ratio cutoffs for the radius update.
    scale_factors : tuple of float
        (shrink, grow) multipliers applied to the radius.
    gradient_tol : float
        Converged when max|grad| <= gradient_tol * max|x0|.
    subproblem : str
        "dogleg", "steihaug" or "auto" (dogleg with a Cholesky-factorizable
        curvature and at most ``direct_solve_limit`` monomers, Steihaug CG
        otherwise).
    direct_solve_limit : int
        Largest number of monomers handled by direct factorization in "auto".
    temp_celsius : float
        Temperature used for the thermal scale R*T and the water molarity.
    scalarity : bool
        Free energies in kcal/mol and concentrations in mol/L (True), or
        free energies already divided by kT and concentrations dimensionless
        (False).
    verbose : bool
        Report elapsed time in the closing message.
    use_terminal : bool
        Route iteration events to the terminal when the caller builds the
        default sink (see ``coffee.core.events.default_sink``).
    """
    max_iterations: int = 250
    initial_delta: float = 1.0
    max_delta: float = 1000.0
    min_delta: float = 1e-14
    eta: float = 0.15
    norm_ratio_threshold: float = 0.95
    rho_thresholds: Tuple[float, float] = (0.25, 0.75)
    scale_factors: Tuple[float, float] = (0.25, 2.0)
    gradient_tol: float = 1e-12
    subproblem: str = "auto"
    direct_solve_limit: int = 500
    temp_celsius: float = 37.0
    scalarity: bool = True
    verbose: bool = False
    use_terminal: bool = True

    def __post_init__(self) -> None:
        # YAML 1.1 reads "1e-14" (no dot) as a string
        for name in _FLOAT_FIELDS:
            object.__setattr__(self, name, _number(getattr(self, name), name))
        # YAML and JSON hand us lists; keep the pairs hashable and immutable.
        object.__setattr__(self, "rho_thresholds", _pair(self.rho_thresholds, "rho_thresholds"))
        object.__setattr__(self, "scale_factors", _pair(self.scale_factors, "scale_factors"))
        self.validate()

    def validate(self) -> None:
        """Raise InvalidInput when a setting is outside its domain."""
        if (
            not isinstance(self.max_iterations, int)
            or isinstance(self.max_iterations, bool)
            or self.max_iterations < 0
        ):
            raise InvalidInput(f"max_iterations must be a non-negative integer, got {self.max_iterations!r}")
        for name in ("initial_delta", "max_delta", "min_delta", "gradient_tol", "temp_celsius"):
            if not math.isfinite(getattr(self, name)):
                raise InvalidInput(f"{name} must be finite")
        if self.initial_delta <= 0.0 or self.max_delta <= 0.0:
            raise InvalidInput("initial_delta and max_delta must be positive")
        if self.min_delta < 0.0 or self.min_delta >= self.max_delta:
            raise InvalidInput("min_delta must lie in [0, max_delta)")
        if not 0.0 < self.norm_ratio_threshold <= 1.0:
            raise InvalidInput("norm_ratio_threshold must lie in (0, 1]")
        lo, hi = self.rho_thresholds
        if lo > hi:
            raise InvalidInput(f"rho_thresholds must be ordered, got {self.rho_thresholds}")
        if not math.isfinite(self.eta):
            raise InvalidInput("eta must be finite")
        shrink, grow = self.scale_factors
        if not 0.0 < shrink < 1.0 or grow < 1.0:
            raise InvalidInput(f"scale_factors must satisfy 0 < shrink < 1 <= grow, got {self.scale_factors}")
        if self.gradient_tol < 0.0:
            raise InvalidInput("gradient_tol must be non-negative")
        if self.subproblem not in SUBPROBLEM_METHODS:
            raise InvalidInput(f"subproblem must be one of {SUBPROBLEM_METHODS}, got {self.subproblem!r}")
        if not isinstance(self.direct_solve_limit, int) or self.direct_solve_limit < 1:
            raise InvalidInput("direct_solve_limit must be at least 1")
        if self.scalarity and self.temp_celsius <= -273.15:
            raise InvalidInput("temp_celsius must be above absolute zero")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "OptimizerConfig":
        """Build a config from a mapping; unknown keys are rejected."""
        data = dict(data or {})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise InvalidInput(f"Unknown optimizer settings: {', '.join(unknown)}")
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "OptimizerConfig":
        """Load settings from a YAML file, optionally nested under an ``optimizer`` key."""
        from coffee.utils.io_utils import load_yaml

        data = load_yaml(path) or {}
        if "optimizer" in data:
            data = data["optimizer"] or {}
        return cls.from_dict(data)

    def to_dict(self) -> dict:
        out = asdict(self)
        out["rho_thresholds"] = list(self.rho_thresholds)
        out["scale_factors"] = list(self.scale_factors)
        return out


def _pair(value: Any, name: str) -> Tuple[float, float]:
    try:
        lo, hi = (float(v) for v in value)
    except (TypeError, ValueError) as exc:
        raise InvalidInput(f"{name} must hold exactly two numbers, got {value!r}") from exc
    if not (math.isfinite(lo) and math.isfinite(hi)):
        raise InvalidInput(f"{name} must be finite")
    return lo, hi


def _number(value: Any, name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidInput(f"{name} must be a number, got {value!r}") from exc
