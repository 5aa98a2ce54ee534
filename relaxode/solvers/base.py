"""Relaxation root-solver interface and registry."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Union

from ..core.config import RelaxationConfig, SolverKind
from ..core.residual import ResidualEvaluator
from ..core.state import RelaxationState
from ..utils.logging import IterationLogger
from ..utils.registry import Registry


solver_registry = Registry("relaxation solver")


def register_solver(name: str):
    return solver_registry.register(name)


def make_solver(
    kind: Union[str, SolverKind],
    config: RelaxationConfig,
    state: RelaxationState,
    logger: Optional[IterationLogger] = None,
) -> "RelaxationSolver":
    key = SolverKind.parse(kind).value
    return solver_registry.create(key, config, state, logger)


@dataclass(frozen=True)
class SolveResult:
    relax_param: float
    residual: float
    iterations: int


class RelaxationSolver(ABC):
    """Finds r with F(r) = 0 starting from a warm-start seed."""

    name = "generic"

    def __init__(
        self,
        config: RelaxationConfig,
        state: RelaxationState,
        logger: Optional[IterationLogger] = None,
    ) -> None:
        self.config = config
        self.state = state
        self.logger = logger

    def _log(self, iteration: int, relax_param: float, residual: float, event: str = "") -> None:
        if self.logger is not None:
            self.logger.log(
                iteration,
                {"relax_param": relax_param, "residual": residual},
                event=event or self.name,
            )

    @abstractmethod
    def solve(self, evaluator: ResidualEvaluator, seed: float) -> SolveResult:
        """Return the root or raise a recoverable solver/oracle error."""
