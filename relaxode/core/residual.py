"""Relaxation residual and its derivative with respect to r.

With ``delta_y = y_cur - y_n`` and ``y_relax = y_n + r * delta_y``::

    F(r)  = e(y_relax) - e_old - r * delta_e
    F'(r) = <delta_y, grad e(y_relax)> - delta_e

Both go through the user's oracle; a recoverable oracle failure raises
:class:`OracleRecoverable`, an unrecoverable one :class:`OracleFatal`.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from . import vecops
from .oracle import FunctionalOracle
from .state import RelaxationState


class ResidualEvaluator:
    def __init__(self, oracle: FunctionalOracle, state: RelaxationState) -> None:
        self.oracle = oracle
        self.state = state
        self.y_n: Optional[np.ndarray] = None
        # scratch, reused from step to step while the state shape is unchanged
        self.delta_y: Optional[np.ndarray] = None
        self.y_relax: Optional[np.ndarray] = None

    def bind(self, y_n: np.ndarray, y_cur: np.ndarray) -> np.ndarray:
        """Borrow ``y_n`` for this step and form ``delta_y = y_cur - y_n``."""

        if y_n.shape != y_cur.shape:
            raise ValueError(f"y_n has shape {y_n.shape} but y_cur has {y_cur.shape}")
        self.y_n = y_n
        self.delta_y = vecops.ensure_buffer(self.delta_y, y_cur)
        self.y_relax = vecops.ensure_buffer(self.y_relax, y_cur)
        vecops.linear_sum(1.0, y_cur, -1.0, y_n, out=self.delta_y)
        return self.delta_y

    def release(self) -> None:
        self.y_n = None
        self.delta_y = None
        self.y_relax = None

    def _trial_point(self, relax_param: float) -> np.ndarray:
        if self.y_n is None or self.delta_y is None:
            raise RuntimeError("ResidualEvaluator.bind must be called before evaluating")
        return vecops.linear_sum(1.0, self.y_n, relax_param, self.delta_y, out=self.y_relax)

    def functional(self, y: np.ndarray) -> float:
        value, kind = self.oracle.evaluate_functional(y)
        self.state.stats.fn_evals += 1
        kind.raise_for("relaxation function")
        return float(value)

    def residual(self, relax_param: float) -> float:
        y_relax = self._trial_point(relax_param)
        value = self.functional(y_relax)
        res = value - self.state.e_old - relax_param * self.state.delta_e
        self.state.residual = res
        return res

    def jacobian(self, relax_param: float) -> float:
        y_relax = self._trial_point(relax_param)
        grad, kind = self.oracle.evaluate_gradient(y_relax)
        self.state.stats.jac_evals += 1
        kind.raise_for("relaxation Jacobian")
        jac = vecops.dot(self.delta_y, np.asarray(grad)) - self.state.delta_e
        self.state.jacobian = jac
        return jac
