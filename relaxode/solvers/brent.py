"""Bracketing root finder for the relaxation residual.

A geometric search first brackets the root around the warm-start seed, then
Brent's method (bisection safeguarding secant and inverse quadratic
interpolation) refines it. Sign comparisons between bracket ends are exact:
a residual of exactly zero has no sign.
"""

from __future__ import annotations

import math

from ..core.errors import SolverDiverged, SolverIterationLimit
from ..core.residual import ResidualEvaluator
from .base import RelaxationSolver, SolveResult, register_solver

BRACKET_TRIES = 10
SHRINK = 0.9
GROW = 1.1


def _same_sign(a: float, b: float) -> bool:
    return (a > 0.0 and b > 0.0) or (a < 0.0 and b < 0.0)


def _check_finite(x: float, fx: float) -> None:
    if not math.isfinite(fx):
        raise SolverDiverged(f"non-finite relaxation residual at r = {x:.6g}")


@register_solver("brent")
class BrentSolver(RelaxationSolver):
    name = "brent"

    def _bracket(self, evaluator: ResidualEvaluator, seed: float):
        """Return ``(xa, fa, xb, fb)`` with ``fa < 0 < fb``, or a lucky root.

        A lucky root (``|F| < residual_tol`` at a probe point) comes back as a
        :class:`SolveResult` instead of a bracket.
        """

        res_tol = self.config.residual_tol
        xa = SHRINK * seed
        xb = GROW * seed
        fa = fb = float("nan")
        have_fb = False

        for attempt in range(BRACKET_TRIES):
            fa = evaluator.residual(xa)
            self._log(attempt, xa, fa, event="bracket-low")
            _check_finite(xa, fa)
            if abs(fa) < res_tol:
                return SolveResult(xa, fa, 0)
            if fa < 0.0:
                break
            # xa overshoots the root from above, so it is a valid upper end
            xb, fb, have_fb = xa, fa, True
            xa *= SHRINK
        if not fa < 0.0:
            raise SolverDiverged(
                f"no sign change of the relaxation residual below r = {xa / SHRINK:.6g}"
            )

        if not have_fb:
            for attempt in range(BRACKET_TRIES):
                fb = evaluator.residual(xb)
                self._log(attempt, xb, fb, event="bracket-high")
                _check_finite(xb, fb)
                if abs(fb) < res_tol:
                    return SolveResult(xb, fb, 0)
                if fb > 0.0:
                    break
                xa, fa = xb, fb
                xb *= GROW
            if not fb > 0.0:
                raise SolverDiverged(
                    f"no sign change of the relaxation residual above r = {xb / GROW:.6g}"
                )

        return xa, fa, xb, fb

    def solve(self, evaluator: ResidualEvaluator, seed: float) -> SolveResult:
        cfg = self.config
        stats = self.state.stats

        bracket = self._bracket(evaluator, float(seed))
        if isinstance(bracket, SolveResult):
            self.state.relax_param = bracket.relax_param
            return bracket
        xa, fa, xb, fb = bracket

        # xc holds the end of the bracket opposite to xb
        xc, fc = xa, fa
        old_update = 0.0
        new_update = 0.0

        for iteration in range(cfg.max_nonlinear_iters):
            if _same_sign(fc, fb):
                xc, fc = xa, fa
                old_update = new_update = xb - xa

            # keep xb as the best estimate
            if abs(fb) > abs(fc):
                xa, xb, xc = xb, xc, xb
                fa, fb, fc = fb, fc, fb

            tol = cfg.relative_tol * abs(xb) + 0.5 * cfg.absolute_tol
            xm = 0.5 * (xc - xb)

            if abs(xm) < tol or abs(fb) < cfg.residual_tol:
                self.state.relax_param = xb
                self.state.residual = fb
                return SolveResult(xb, fb, iteration)

            if abs(old_update) >= tol and abs(fb) < abs(fa):
                st = fb / fa
                if xa == xc:
                    # secant
                    pt = 2.0 * xm * st
                    qt = 1.0 - st
                else:
                    # inverse quadratic interpolation
                    qt = fa / fc
                    rt = fb / fc
                    pt = st * (2.0 * xm * qt * (qt - rt) - (xb - xa) * (rt - 1.0))
                    qt = (qt - 1.0) * (rt - 1.0) * (st - 1.0)

                if pt > 0.0:
                    qt = -qt
                else:
                    pt = -pt

                # interpolated step must stay inside the bracket and shrink fast enough
                if 2.0 * pt < min(3.0 * xm * qt - abs(tol * qt), abs(old_update * qt)):
                    old_update = new_update
                    new_update = pt / qt
                else:
                    new_update = xm
                    old_update = xm
            else:
                new_update = xm
                old_update = xm

            xa, fa = xb, fb
            if abs(new_update) > tol:
                xb += new_update
            elif xm > 0.0:
                xb += tol
            else:
                xb -= tol

            fb = evaluator.residual(xb)
            stats.nls_iters += 1
            self.state.relax_param = xb
            self._log(iteration, xb, fb)

        raise SolverIterationLimit(cfg.max_nonlinear_iters, xb)
