"""
Validated equilibrium problem definition.

An ``EquilibriumProblem`` records the composition matrix A (monomers x
polymers), the per-polymer weights Omega (held as log Omega) and the initial
monomer concentrations x0. All shape and domain checks happen here, before
an optimizer is ever built, so the iteration itself never sees bad input.

Unit handling
-------------
``from_free_energies`` converts raw free energies G_j into log-weights

    log Omega_j = -max(G_j, SMALLEST_EXP_VALUE) / kT

with kT = R * (temp_celsius + 273.15) in kcal/mol when ``scalarity`` is on,
and kT = 1 otherwise. With ``scalarity`` on the concentrations are molar and
the solver works on mole fractions: x0 is divided by the molarity of water at
the given temperature and the recovered polymer concentrations are multiplied
back by it.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from .config import OptimizerConfig
from .errors import DimensionMismatch, InvalidInput

# Free energies below this value (kcal/mol, or kT units) are clipped.
SMALLEST_EXP_VALUE = -230.0
# Gas constant in kcal / (mol K).
GAS_CONSTANT_KCAL = 0.00198717
KELVIN_OFFSET = 273.15


def water_molarity(temp_celsius: float) -> float:
    """Molar concentration of liquid water (mol/L) at ``temp_celsius``.

    Uses the rational density fit rho(t) = a5 * (1 - (t+a1)^2 (t+a2) / (a3 (t+a4)))
    in kg/m^3, divided by the molar mass of water (18.0152 g/mol).
    """
    t = float(temp_celsius)
    a1, a2, a3, a4, a5 = -3.983035, 301.797, 522528.9, 69.34881, 999.974950
    return a5 * (1.0 - (t + a1) * (t + a1) * (t + a2) / a3 / (t + a4)) / 18.0152


def thermal_scale(config: OptimizerConfig) -> float:
    """kT used to bring free energies into the log domain."""
    if not config.scalarity:
        return 1.0
    return GAS_CONSTANT_KCAL * (config.temp_celsius + KELVIN_OFFSET)


def concentration_scale(config: OptimizerConfig) -> float:
    """Factor between caller concentrations and the solver's internal units."""
    if not config.scalarity:
        return 1.0
    return water_molarity(config.temp_celsius)


class EquilibriumProblem:
    """Shaped container for one equilibrium computation.

    Parameters
    ----------
    composition : (m, n) array_like
        Count of monomer i in polymer j. Non-negative and finite.
    omega : (n,) array_like
        Polymer weights, x_j = omega_j * exp((A^T lambda)_j). Finite and > 0.
    x0 : (m,) array_like
        Initial monomer concentrations. Finite and >= 0.
    concentration_scale : float
        Caller units per internal unit (1.0 unless built from free energies
        with scalarity enabled).

    Raises
    ------
    DimensionMismatch
        Empty inputs, inconsistent shapes, or fewer polymers than monomers.
    InvalidInput
        Non-finite or out-of-domain values.
    """

    def __init__(
        self,
        composition,
        omega,
        x0,
        concentration_scale: float = 1.0,
    ) -> None:
        A, x0_arr = _check_shapes(composition, omega, x0)
        omega_arr = np.asarray(omega, dtype=float)
        if not np.all(np.isfinite(omega_arr)):
            raise InvalidInput("Polymer weights must be finite.")
        if np.any(omega_arr <= 0.0):
            bad = int(np.flatnonzero(omega_arr <= 0.0)[0])
            raise InvalidInput(f"Polymer weights must be positive (polymer {bad} has {omega_arr[bad]!r}).")
        self._init(A, np.log(omega_arr), x0_arr, concentration_scale)

    @classmethod
    def from_log_weights(
        cls,
        composition,
        log_omega,
        x0,
        concentration_scale: float = 1.0,
    ) -> "EquilibriumProblem":
        """Build a problem directly from log Omega (no exponentiation needed)."""
        A, x0_arr = _check_shapes(composition, log_omega, x0)
        log_arr = np.array(log_omega, dtype=float)
        if not np.all(np.isfinite(log_arr)):
            raise InvalidInput("Log polymer weights must be finite.")
        inst = cls.__new__(cls)
        inst._init(A, log_arr, x0_arr, concentration_scale)
        return inst

    @classmethod
    def from_free_energies(
        cls,
        composition,
        free_energies,
        x0,
        config: Optional[OptimizerConfig] = None,
    ) -> "EquilibriumProblem":
        """Convert raw free energies (see module docstring) and build the problem."""
        config = config or OptimizerConfig()
        A, x0_arr = _check_shapes(composition, free_energies, x0)
        energies = np.asarray(free_energies, dtype=float)
        if not np.all(np.isfinite(energies)):
            bad = int(np.flatnonzero(~np.isfinite(energies))[0])
            raise InvalidInput(f"Free energy of polymer {bad} is not finite.")
        log_omega = -np.maximum(energies, SMALLEST_EXP_VALUE) / thermal_scale(config)
        return cls.from_log_weights(A, log_omega, x0_arr, concentration_scale(config))

    def _init(self, A: np.ndarray, log_omega: np.ndarray, x0: np.ndarray, scale: float) -> None:
        if not np.all(np.isfinite(A)) or np.any(A < 0.0):
            raise InvalidInput("Composition matrix must hold finite, non-negative counts.")
        if not np.all(np.isfinite(x0)) or np.any(x0 < 0.0):
            raise InvalidInput("Initial concentrations must be finite and non-negative.")
        unused = np.flatnonzero(~np.any(A > 0.0, axis=1))
        if unused.size:
            raise InvalidInput(f"Monomer {int(unused[0])} does not appear in any polymer.")
        scale = float(scale)
        if not np.isfinite(scale) or scale <= 0.0:
            raise InvalidInput("Concentration scale must be finite and positive.")

        self.composition = A
        self.log_omega = log_omega
        self.x0 = x0
        self.concentration_scale = scale
        self.scaled_x0 = x0 / scale
        for arr in (self.composition, self.log_omega, self.x0, self.scaled_x0):
            arr.flags.writeable = False

    @property
    def n_monomers(self) -> int:
        return self.composition.shape[0]

    @property
    def n_polymers(self) -> int:
        return self.composition.shape[1]

    @property
    def omega(self) -> np.ndarray:
        return np.exp(self.log_omega)

    def __repr__(self) -> str:
        return (
            f"EquilibriumProblem(n_monomers={self.n_monomers}, n_polymers={self.n_polymers}, "
            f"concentration_scale={self.concentration_scale:.6g})"
        )


def _check_shapes(composition, weights, x0):
    A = np.array(composition, dtype=float)
    w = np.asarray(weights, dtype=float)
    x0_arr = np.array(x0, dtype=float)
    if A.ndim != 2:
        raise DimensionMismatch(f"Composition matrix must be 2-D, got shape {A.shape}.")
    if w.ndim != 1 or x0_arr.ndim != 1:
        raise DimensionMismatch("Polymer weights and initial concentrations must be 1-D.")
    m, n = A.shape
    if m == 0 or x0_arr.size == 0:
        raise DimensionMismatch("Monomers array is empty.")
    if n == 0 or w.size == 0:
        raise DimensionMismatch("Polymers array is empty.")
    if w.size != n:
        raise DimensionMismatch(
            f"Composition has {n} polymer columns but {w.size} polymer weights were given."
        )
    if x0_arr.size != m:
        raise DimensionMismatch(
            f"Composition has {m} monomer rows but {x0_arr.size} initial concentrations were given."
        )
    if n < m:
        raise DimensionMismatch("Number of polymers is less than number of monomers.")
    return A, x0_arr
