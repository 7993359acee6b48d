"""
Structured optimizer events and the sinks that consume them.

The optimizer always emits the same three kinds of event (``RunStarted``,
``IterationEvent``, ``RunFinished``) to whatever sink the caller injects. A
sink decides where they go: nowhere (``NullSink``), a logger
(``LoggerSink``), a list of formatted messages (``MessageSink``) or several
of those at once (``MultiSink``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, Union, TYPE_CHECKING

from coffee.evaluation.reporter import conclude_message, process_message, start_message
from coffee.utils.logging_utils import get_logger

from .config import OptimizerConfig
from .convergence import SolverStatus

if TYPE_CHECKING:
    from .recovery import OptimizerResults


@dataclass(frozen=True)
class RunStarted:
    n_monomers: int
    n_polymers: int
    delta: float


@dataclass(frozen=True)
class IterationEvent:
    """One completed trust-region iteration.

    ``objective`` and ``error`` are taken after the accept/reject decision,
    i.e. at the multipliers the next iteration starts from.
    """
    iteration: int
    objective: float
    error: float
    gradient_norm: float
    delta: float
    rho: float
    accepted: bool
    method: str


@dataclass(frozen=True)
class RunFinished:
    status: SolverStatus
    iterations: int
    elapsed_time: int
    reason: Optional[str] = None
    results: Optional["OptimizerResults"] = None
    display_time: bool = False


Event = Union[RunStarted, IterationEvent, RunFinished]


class EventSink(Protocol):
    def emit(self, event: Event) -> None:
        ...


def format_event(event: Event) -> str:
    """Human-readable log line(s) for ``event``."""
    if isinstance(event, RunStarted):
        return start_message()
    if isinstance(event, IterationEvent):
        return process_message(event.iteration, event.objective, event.error)
    return conclude_message(
        event.iterations,
        event.status,
        event.elapsed_time,
        event.display_time,
        event.results,
        event.reason,
    )


class NullSink:
    """Discards everything."""

    def emit(self, event: Event) -> None:
        return None


class MessageSink:
    """Collects formatted messages in order."""

    def __init__(self) -> None:
        self.messages: List[str] = []

    def emit(self, event: Event) -> None:
        self.messages.append(format_event(event))


class LoggerSink:
    """Writes events to a ``logging.Logger``.

    Iteration lines go out at ``iteration_level`` (INFO by default); pass
    ``logging.DEBUG`` to show only the start and the conclusion at INFO.
    """

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        iteration_level: int = logging.INFO,
    ) -> None:
        self.logger = logger or get_logger("coffee.optimizer")
        self.iteration_level = iteration_level

    def emit(self, event: Event) -> None:
        text = format_event(event).rstrip("\n")
        if isinstance(event, IterationEvent):
            self.logger.log(self.iteration_level, text)
        elif isinstance(event, RunFinished) and event.status is SolverStatus.FAILED:
            self.logger.error(text)
        elif isinstance(event, RunFinished) and event.status is SolverStatus.MAX_ITERATIONS_REACHED:
            self.logger.warning(text)
        else:
            self.logger.info(text)


class MultiSink:
    """Fans every event out to several sinks."""

    def __init__(self, sinks: Sequence[EventSink]) -> None:
        self.sinks = list(sinks)

    def emit(self, event: Event) -> None:
        for sink in self.sinks:
            sink.emit(event)


def default_sink(config: OptimizerConfig) -> EventSink:
    """Terminal logging when ``use_terminal`` is set, nothing otherwise."""
    if config.use_terminal:
        return LoggerSink()
    return NullSink()
