"""Newton iteration for the relaxation residual."""

from __future__ import annotations

import math

from ..core.errors import SolverDiverged, SolverIterationLimit
from ..core.residual import ResidualEvaluator
from .base import RelaxationSolver, SolveResult, register_solver


@register_solver("newton")
class NewtonSolver(RelaxationSolver):
    """Plain Newton-Raphson: one residual and one Jacobian per iteration.

    Stops when ``|F(r)| < residual_tol`` or when the update satisfies
    ``|delta| < relative_tol * |r| + absolute_tol`` (r taken before the
    update). No line search and no Jacobian reuse.
    """

    name = "newton"

    def solve(self, evaluator: ResidualEvaluator, seed: float) -> SolveResult:
        cfg = self.config
        stats = self.state.stats
        relax_param = float(seed)

        for iteration in range(cfg.max_nonlinear_iters):
            res = evaluator.residual(relax_param)
            self._log(iteration, relax_param, res)

            if abs(res) < cfg.residual_tol:
                return SolveResult(relax_param, res, iteration + 1)

            jac = evaluator.jacobian(relax_param)
            if jac == 0.0:
                raise SolverDiverged(
                    f"relaxation Jacobian vanished at r = {relax_param:.6g}"
                )

            tol = cfg.relative_tol * abs(relax_param) + cfg.absolute_tol
            delta = res / jac
            if not math.isfinite(delta):
                raise SolverDiverged(f"non-finite Newton update at r = {relax_param:.6g}")
            relax_param -= delta
            self.state.relax_param = relax_param
            stats.nls_iters += 1

            if abs(delta) < tol:
                return SolveResult(relax_param, res, iteration + 1)

        raise SolverIterationLimit(cfg.max_nonlinear_iters, relax_param)
