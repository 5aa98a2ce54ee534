"""Relaxation driver called by the time stepper after every step attempt.

One :class:`Relaxation` object belongs to one integration session. For each
step attempt it

1. asks the stepper for ``delta_e``, forms ``delta_y = y_cur - y_n`` and
   evaluates ``e_old = e(y_n)``,
2. solves ``F(r) = 0`` with the configured solver, seeded with the last
   accepted ``r``,
3. checks ``lower_bound <= r <= upper_bound``,
4. on success scales ``h`` by ``r`` and the error estimate by ``r**order``
   and overwrites ``y_cur`` with ``r * y_cur + (1 - r) * y_n``.

Failures come back as :class:`Retry` (shrink the step and try again) or
:class:`Fatal` (stop the integration). Only :class:`OracleFatal`,
:class:`ConfigInvalid` and :class:`RelaxationClosed` escape as exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, TextIO, Union

import numpy as np

from ..core import vecops
from ..core.config import RelaxationConfig, SolverKind
from ..core.errors import (
    BoundViolation,
    ConfigInvalid,
    OracleFatal,
    RecoverableRelaxationError,
    RelaxationClosed,
)
from ..core.oracle import CallableOracle, FunctionalOracle, StepDeltaProvider
from ..core.residual import ResidualEvaluator
from ..core.state import RelaxationState, RelaxationStats
from ..solvers import RelaxationSolver, SolveResult, make_solver
from ..utils.logging import IterationLogger

# |h| at or below h_min times this factor counts as "already at the floor"
H_MIN_SLACK = 1.000001


@dataclass(frozen=True)
class Accepted:
    relax_param: float
    h: float
    dsm: float


@dataclass(frozen=True)
class Retry:
    eta: float
    reason: str


@dataclass(frozen=True)
class Fatal:
    reason: str
    stats: RelaxationStats


Outcome = Union[Accepted, Retry, Fatal]


class Relaxation:
    def __init__(
        self,
        oracle: Optional[FunctionalOracle],
        delta_provider: Optional[StepDeltaProvider],
        config: Optional[RelaxationConfig] = None,
        logger: Optional[IterationLogger] = None,
    ) -> None:
        self.oracle = oracle
        self.delta_provider = delta_provider
        self.enabled = oracle is not None
        if self.enabled and delta_provider is None:
            raise ConfigInvalid("Relaxation needs a stepper that can estimate delta_e")
        self.config = config or RelaxationConfig()
        self.state = RelaxationState(self.config)
        self.logger = logger or IterationLogger("relaxation")
        self.evaluator = ResidualEvaluator(oracle, self.state) if self.enabled else None
        self._solvers: Dict[SolverKind, RelaxationSolver] = {}
        self._attempts = 0
        self._closed = False

    @classmethod
    def from_callables(
        cls,
        functional: Optional[Callable[[np.ndarray], Any]],
        gradient: Optional[Callable[[np.ndarray], Any]],
        delta_provider: Optional[StepDeltaProvider],
        config: Optional[RelaxationConfig] = None,
        logger: Optional[IterationLogger] = None,
    ) -> "Relaxation":
        """Build from plain callables; passing neither disables relaxation."""

        if functional is None and gradient is None:
            return cls(None, delta_provider, config, logger)
        if functional is None:
            raise ConfigInvalid("The relaxation function is None.")
        if gradient is None:
            raise ConfigInvalid("The relaxation Jacobian function is None.")
        return cls(CallableOracle(functional, gradient), delta_provider, config, logger)

    # -- session lifecycle ---------------------------------------------------
    def __enter__(self) -> "Relaxation":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        if self.evaluator is not None:
            self.evaluator.release()
        self._solvers.clear()
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise RelaxationClosed("Relaxation session is closed.")

    # -- configuration and statistics ----------------------------------------
    def configure(self, **settings: Any) -> "Relaxation":
        self._check_open()
        self.config.configure(**settings)
        return self

    def get_stats(self) -> Dict[str, int]:
        return self.state.stats.as_dict()

    def print_stats(self, stream: Optional[TextIO] = None, fmt: str = "table") -> None:
        self.state.stats.write(stream, fmt)

    def start_step(self) -> None:
        """Forget the failures counted for the previous step."""

        self.state.step_fails = 0

    def _solver(self) -> RelaxationSolver:
        kind = self.config.solver_kind
        if kind not in self._solvers:
            self._solvers[kind] = make_solver(kind, self.config, self.state, self.logger)
        return self._solvers[kind]

    # -- per-step entry point ------------------------------------------------
    def relax(
        self,
        y_n: np.ndarray,
        y_cur: np.ndarray,
        h: float,
        dsm: float = 0.0,
        *,
        order: Optional[int] = None,
        fixed_step: bool = False,
        h_min: float = 0.0,
    ) -> Outcome:
        """Relax the step ``y_n -> y_cur`` of size ``h``.

        ``y_cur`` is an in/out argument: on :class:`Accepted` it holds the
        relaxed solution afterwards, otherwise it is left unchanged. ``dsm``
        is the caller's local error estimate; ``order`` defaults to the
        stepper's method order.
        """

        self._check_open()
        if not self.enabled:
            return Accepted(1.0, h, dsm)
        if not isinstance(y_cur, np.ndarray) or not np.issubdtype(y_cur.dtype, np.inexact):
            raise TypeError("y_cur must be a floating point numpy array (it is updated in place)")
        y_n = np.asarray(y_n, dtype=y_cur.dtype)
        self._attempts += 1

        try:
            result = self._compute(y_n, y_cur)
        except OracleFatal:
            self.logger.log(self._attempts, {"h": h}, event="oracle-fatal")
            raise
        except RecoverableRelaxationError as exc:
            return self._failed(exc, h, fixed_step, h_min)

        relax_param = result.relax_param
        if order is None:
            order = self.delta_provider.get_method_order()
        new_h = h * relax_param
        new_dsm = dsm * relax_param ** int(order)
        vecops.linear_sum(relax_param, y_cur, 1.0 - relax_param, y_n, out=y_cur)

        self.state.relax_param_prev = relax_param
        self.state.step_fails = 0
        self.logger.log(
            self._attempts,
            {"relax_param": relax_param, "h": new_h, "dsm": new_dsm},
            event="accepted",
        )
        return Accepted(relax_param, new_h, new_dsm)

    def _compute(self, y_n: np.ndarray, y_cur: np.ndarray) -> SolveResult:
        state = self.state
        stats = state.stats
        cfg = self.config

        delta_e, evals, kind = self.delta_provider.estimate_delta_e(self.oracle)
        stats.jac_evals += int(evals)
        kind.raise_for("delta_e estimate")
        state.delta_e = float(delta_e)

        self.evaluator.bind(y_n, y_cur)
        state.e_old = self.evaluator.functional(y_n)

        seed = state.relax_param_prev
        state.relax_param = seed
        try:
            result = self._solver().solve(self.evaluator, seed)
        except RecoverableRelaxationError:
            stats.nls_fails += 1
            raise
        state.relax_param = result.relax_param

        if not cfg.lower_bound <= result.relax_param <= cfg.upper_bound:
            stats.bound_fails += 1
            raise BoundViolation(result.relax_param, cfg.lower_bound, cfg.upper_bound)
        return result

    def _failed(
        self, exc: RecoverableRelaxationError, h: float, fixed_step: bool, h_min: float
    ) -> Outcome:
        state = self.state
        state.stats.total_fails += 1
        state.step_fails += 1
        reason = f"{type(exc).__name__}: {exc}"
        self.logger.log(
            self._attempts,
            {"h": h, "step_fails": state.step_fails},
            event="failed",
        )

        if state.step_fails >= self.config.max_fails_per_step:
            return self._fatal(
                f"{state.step_fails} relaxation failures in one step (last: {reason})"
            )
        if abs(h) <= h_min * H_MIN_SLACK:
            return self._fatal(f"relaxation failed at the minimum step size (last: {reason})")
        if fixed_step:
            return self._fatal(f"relaxation failed with fixed step sizes (last: {reason})")
        return Retry(self.config.step_shrink_on_fail, reason)

    def _fatal(self, reason: str) -> Fatal:
        stats = self.state.stats
        summary = ", ".join(f"{key}={value}" for key, value in stats.as_dict().items())
        return Fatal(f"{reason} [{summary}]", stats.copy())
