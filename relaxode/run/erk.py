"""Explicit Runge-Kutta stepper that supplies the relaxation inputs.

The stepper keeps the stages of its last step attempt so it can estimate the
change of the functional over the step,

    delta_e = h * sum_i b_i <grad e(z_i), f(t_n + c_i h, z_i)>,

and report its order. :meth:`ExplicitRKStepper.integrate` is a small
fixed-step loop that retries with a smaller step when relaxation asks for it.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple, Union

import numpy as np

from ..core import vecops
from ..core.errors import RelaxationError
from ..core.oracle import ErrorKind, FunctionalOracle, StepDeltaProvider
from ..utils.registry import Registry
from .relaxation import Accepted, Fatal, Relaxation

RhsFn = Callable[[float, np.ndarray], np.ndarray]


@dataclass(frozen=True)
class ButcherTable:
    name: str
    A: np.ndarray
    b: np.ndarray
    c: np.ndarray
    order: int
    d: Optional[np.ndarray] = None
    embedded_order: int = 0

    @property
    def stages(self) -> int:
        return len(self.b)

    def is_explicit(self) -> bool:
        return bool(np.allclose(np.triu(self.A), 0.0))


table_registry = Registry("butcher table")


def make_table(name: str) -> ButcherTable:
    return table_registry.create(name)


@table_registry.register("heun-euler")
def heun_euler() -> ButcherTable:
    return ButcherTable(
        name="Heun-Euler",
        A=np.array([[0.0, 0.0], [1.0, 0.0]]),
        b=np.array([0.5, 0.5]),
        c=np.array([0.0, 1.0]),
        order=2,
        d=np.array([1.0, 0.0]),
        embedded_order=1,
    )


@table_registry.register("bogacki-shampine")
def bogacki_shampine() -> ButcherTable:
    return ButcherTable(
        name="Bogacki-Shampine",
        A=np.array(
            [
                [0.0, 0.0, 0.0, 0.0],
                [0.5, 0.0, 0.0, 0.0],
                [0.0, 0.75, 0.0, 0.0],
                [2.0 / 9.0, 1.0 / 3.0, 4.0 / 9.0, 0.0],
            ]
        ),
        b=np.array([2.0 / 9.0, 1.0 / 3.0, 4.0 / 9.0, 0.0]),
        c=np.array([0.0, 0.5, 0.75, 1.0]),
        order=3,
        d=np.array([7.0 / 24.0, 0.25, 1.0 / 3.0, 0.125]),
        embedded_order=2,
    )


@table_registry.register("rk4")
def classic_rk4() -> ButcherTable:
    return ButcherTable(
        name="RK4",
        A=np.array(
            [
                [0.0, 0.0, 0.0, 0.0],
                [0.5, 0.0, 0.0, 0.0],
                [0.0, 0.5, 0.0, 0.0],
                [0.0, 0.0, 1.0, 0.0],
            ]
        ),
        b=np.array([1.0 / 6.0, 1.0 / 3.0, 1.0 / 3.0, 1.0 / 6.0]),
        c=np.array([0.0, 0.5, 0.5, 1.0]),
        order=4,
    )


class IntegrationFailed(RelaxationError):
    def __init__(self, t: float, reason: str) -> None:
        super().__init__(f"integration stopped at t = {t:.6g}: {reason}")
        self.t = t
        self.reason = reason


@dataclass
class IntegrationResult:
    t: np.ndarray
    y: np.ndarray
    steps: int = 0
    retries: int = 0
    relax_params: List[float] = field(default_factory=list)


class ExplicitRKStepper(StepDeltaProvider):
    def __init__(
        self,
        rhs: RhsFn,
        table: Union[str, ButcherTable] = "rk4",
        rtol: float = 1.0e-6,
        atol: float = 1.0e-9,
    ) -> None:
        self.rhs = rhs
        self.table = make_table(table) if isinstance(table, str) else table
        if not self.table.is_explicit():
            raise ValueError(f"Butcher table {self.table.name} is not explicit")
        self.rtol = rtol
        self.atol = atol
        self.rhs_evals = 0
        self._h = 0.0
        self._stages: List[np.ndarray] = []
        self._slopes: List[np.ndarray] = []

    def attempt_step(self, t: float, y: np.ndarray, h: float) -> Tuple[np.ndarray, float]:
        """Return the candidate ``y_cur`` and a weighted RMS error estimate.

        The error estimate is 0.0 for tables without an embedding.
        """

        tab = self.table
        self._h = h
        self._stages = []
        self._slopes = []
        for i in range(tab.stages):
            z = y.copy()
            for j in range(i):
                if tab.A[i, j] != 0.0:
                    z += h * tab.A[i, j] * self._slopes[j]
            self._stages.append(z)
            self._slopes.append(np.asarray(self.rhs(t + tab.c[i] * h, z), dtype=y.dtype))
            self.rhs_evals += 1

        y_cur = y.copy()
        for b_i, k_i in zip(tab.b, self._slopes):
            if b_i != 0.0:
                y_cur += h * b_i * k_i

        if tab.d is None:
            return y_cur, 0.0
        err = np.zeros_like(y)
        for b_i, d_i, k_i in zip(tab.b, tab.d, self._slopes):
            err += h * (b_i - d_i) * k_i
        weights = self.rtol * np.maximum(np.abs(y), np.abs(y_cur)) + self.atol
        dsm = float(np.sqrt(np.mean((err / weights) ** 2)))
        return y_cur, dsm

    # -- StepDeltaProvider ---------------------------------------------------
    def estimate_delta_e(self, oracle: FunctionalOracle) -> Tuple[float, int, ErrorKind]:
        if not self._stages:
            raise RuntimeError("attempt_step must run before estimating delta_e")
        delta_e = 0.0
        evals = 0
        for b_i, z_i, k_i in zip(self.table.b, self._stages, self._slopes):
            if b_i == 0.0:
                continue
            grad, kind = oracle.evaluate_gradient(z_i)
            evals += 1
            if kind is not ErrorKind.SUCCESS:
                return math.nan, evals, kind
            delta_e += b_i * vecops.dot(np.asarray(grad), k_i)
        return self._h * delta_e, evals, ErrorKind.SUCCESS

    def get_method_order(self) -> int:
        return self.table.order

    # -- driver --------------------------------------------------------------
    def integrate(
        self,
        t0: float,
        tf: float,
        y0: np.ndarray,
        h: float,
        relaxation: Optional[Relaxation] = None,
        fixed_step: bool = False,
        h_min: float = 0.0,
    ) -> IntegrationResult:
        """March from ``t0`` to ``tf`` with nominal step ``h``.

        Steps are not clipped at ``tf``, so the last one may overshoot it.
        With relaxation the time actually advanced per step is ``r * h``; a
        Retry shrinks the current step by its factor, a Fatal outcome raises
        :class:`IntegrationFailed`.
        """

        if h <= 0.0 or tf <= t0:
            raise ValueError("integrate expects h > 0 and tf > t0")
        t = float(t0)
        y = np.array(y0, dtype=float)
        times = [t]
        states = [y.copy()]
        result = IntegrationResult(t=np.empty(0), y=np.empty(0))
        t_eps = 1.0e-12 * max(1.0, abs(tf))

        while t < tf - t_eps:
            h_step = h
            if relaxation is not None:
                relaxation.start_step()
            while True:
                y_cur, dsm = self.attempt_step(t, y, h_step)
                if relaxation is None:
                    h_used = h_step
                    break
                outcome = relaxation.relax(
                    y, y_cur, h_step, dsm, fixed_step=fixed_step, h_min=h_min
                )
                if isinstance(outcome, Accepted):
                    h_used = outcome.h
                    result.relax_params.append(outcome.relax_param)
                    break
                if isinstance(outcome, Fatal):
                    raise IntegrationFailed(t, outcome.reason)
                result.retries += 1
                h_step *= outcome.eta
            t += h_used
            y = y_cur
            result.steps += 1
            times.append(t)
            states.append(y.copy())

        result.t = np.asarray(times)
        result.y = np.asarray(states)
        return result
