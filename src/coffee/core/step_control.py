"""Step acceptance and trust-region radius update."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .config import OptimizerConfig


@dataclass
class StepDecision:
    """Outcome of one gain-ratio test.

    ``action`` is "shrink", "grow" or "keep" and describes the radius update,
    which is independent of ``accepted``.
    """
    accepted: bool
    rho: float
    delta: float
    action: str


class StepController:
    """Accepts or rejects a step and resizes the radius.

    Acceptance is gated by ``eta`` alone; the radius by ``rho_thresholds``:

    - rho < rho_thresholds[0]: delta *= scale_factors[0]
    - rho > rho_thresholds[1] and ||p|| >= norm_ratio_threshold * delta:
      delta = min(delta * scale_factors[1], max_delta)
    - otherwise delta is kept.
    """

    def __init__(self, config: OptimizerConfig) -> None:
        self.eta = float(config.eta)
        self.rho_shrink, self.rho_grow = config.rho_thresholds
        self.shrink, self.grow = config.scale_factors
        self.norm_ratio_threshold = float(config.norm_ratio_threshold)
        self.max_delta = float(config.max_delta)

    @staticmethod
    def gain_ratio(actual: float, predicted: float) -> float:
        # a zero (or negative) prediction can never justify a step
        if predicted <= 0.0 or not np.isfinite(actual) or not np.isfinite(predicted):
            return 0.0
        return actual / predicted

    def update(self, actual: float, predicted: float, step_norm: float, delta: float) -> StepDecision:
        rho = self.gain_ratio(actual, predicted)
        accepted = rho > self.eta

        if rho < self.rho_shrink:
            new_delta, action = delta * self.shrink, "shrink"
        elif rho > self.rho_grow and step_norm >= self.norm_ratio_threshold * delta:
            new_delta, action = min(delta * self.grow, self.max_delta), "grow"
        else:
            new_delta, action = delta, "keep"
        new_delta = min(new_delta, self.max_delta)
        return StepDecision(accepted=accepted, rho=rho, delta=new_delta, action=action)
