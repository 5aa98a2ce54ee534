import pathlib
import sys

import numpy as np
import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from relaxode.core.config import RelaxationConfig, SolverKind
from relaxode.core.errors import OracleRecoverable, SolverDiverged, SolverIterationLimit
from relaxode.core.oracle import CallableOracle
from relaxode.core.residual import ResidualEvaluator
from relaxode.core.state import RelaxationState
from relaxode.solvers import BrentSolver, NewtonSolver, make_solver, solver_registry
from relaxode.utils.logging import IterationLogger

optimize = pytest.importorskip("scipy.optimize")

# e(y) = |y|^2 / 2 with y_n = (1, 0) and delta_y = (0, 1/2) gives
# F(r) = r * (r / 8 - delta_e), whose nonzero root is r* = 8 * delta_e.
Y_N = np.array([1.0, 0.0])
Y_CUR = np.array([1.0, 0.5])


def _energy(y):
    return 0.5 * float(np.dot(y, y))


def _setup(delta_e, config=None, functional=_energy, gradient=lambda y: y.copy()):
    config = config or RelaxationConfig()
    state = RelaxationState(config)
    evaluator = ResidualEvaluator(CallableOracle(functional, gradient), state)
    evaluator.bind(Y_N, Y_CUR)
    state.delta_e = delta_e
    state.e_old = evaluator.functional(Y_N)
    return config, state, evaluator


def test_registry_knows_both_solvers():
    assert "newton" in solver_registry
    assert "BRENT" in solver_registry
    config = RelaxationConfig()
    state = RelaxationState(config)
    assert isinstance(make_solver(SolverKind.NEWTON, config, state), NewtonSolver)
    assert isinstance(make_solver("brent", config, state), BrentSolver)


@pytest.mark.parametrize("kind", ["newton", "brent"])
@pytest.mark.parametrize("r_star", [0.85, 0.95, 1.0, 1.05, 1.15])
def test_solvers_find_the_root(kind, r_star):
    config, state, evaluator = _setup(r_star / 8.0)
    solver = make_solver(kind, config, state)

    result = solver.solve(evaluator, 1.0)

    reference = optimize.brentq(evaluator.residual, 0.5, 1.5, xtol=1e-15)
    assert result.relax_param == pytest.approx(r_star, abs=1e-12)
    assert result.relax_param == pytest.approx(reference, abs=1e-12)
    assert abs(evaluator.residual(result.relax_param)) < 1e-14


@pytest.mark.parametrize("kind", ["newton", "brent"])
def test_solvers_are_deterministic(kind):
    results = []
    for _ in range(2):
        config, state, evaluator = _setup(0.13)
        results.append(make_solver(kind, config, state).solve(evaluator, 1.0).relax_param)
    assert results[0] == results[1]


def test_newton_stops_on_small_residual_without_jacobian():
    config, state, evaluator = _setup(1.0 / 8.0)
    result = NewtonSolver(config, state).solve(evaluator, 1.0)
    assert result.relax_param == 1.0
    assert result.iterations == 1
    assert state.stats.jac_evals == 0
    assert state.stats.nls_iters == 0


def test_newton_counts_one_residual_and_jacobian_per_update():
    config, state, evaluator = _setup(1.1 / 8.0)
    fn_before = state.stats.fn_evals
    result = NewtonSolver(config, state).solve(evaluator, 1.0)
    updates = state.stats.nls_iters
    assert updates >= 1
    assert state.stats.jac_evals == updates
    assert state.stats.fn_evals - fn_before in (updates, updates + 1)
    assert result.relax_param == pytest.approx(1.1, abs=1e-12)


def test_newton_zero_jacobian_diverges():
    # F'(r) = r - delta_e vanishes at the seed r = 1 while F(1) = -1/2
    def functional(y):
        return _energy(np.array([y[0], 2.0 * y[1]]))

    def gradient(y):
        return np.array([y[0], 4.0 * y[1]])

    config, state, evaluator = _setup(1.0, functional=functional, gradient=gradient)
    with pytest.raises(SolverDiverged):
        NewtonSolver(config, state).solve(evaluator, 1.0)


def test_newton_iteration_limit():
    config, state, evaluator = _setup(1.15 / 8.0, RelaxationConfig(max_nonlinear_iters=1))
    with pytest.raises(SolverIterationLimit) as info:
        NewtonSolver(config, state).solve(evaluator, 1.0)
    assert info.value.iterations == 1
    assert state.stats.nls_iters == 1


def test_brent_accepts_lucky_bracket_point():
    # F vanishes identically, so the first probe 0.9 * seed is accepted
    config, state, evaluator = _setup(0.0, functional=lambda y: 0.5, gradient=lambda y: 0.0 * y)
    result = BrentSolver(config, state).solve(evaluator, 1.0)
    assert result.relax_param == pytest.approx(0.9)
    assert result.iterations == 0
    assert state.stats.fn_evals == 2


def test_brent_expands_the_bracket_downwards():
    config, state, evaluator = _setup(0.7 / 8.0)
    result = BrentSolver(config, state).solve(evaluator, 1.0)
    assert result.relax_param == pytest.approx(0.7, abs=1e-12)


def test_brent_without_bracket_diverges():
    config, state, evaluator = _setup(10.0)
    with pytest.raises(SolverDiverged):
        BrentSolver(config, state).solve(evaluator, 1.0)
    # one probe below the seed, ten above it, plus e_old
    assert state.stats.fn_evals == 12


def test_brent_iteration_limit():
    config, state, evaluator = _setup(1.05 / 8.0, RelaxationConfig(max_nonlinear_iters=1))
    with pytest.raises(SolverIterationLimit):
        BrentSolver(config, state).solve(evaluator, 1.0)


def test_solver_lets_recoverable_oracle_failure_through():
    calls = {"n": 0}

    def functional(y):
        calls["n"] += 1
        if calls["n"] >= 3:
            raise OracleRecoverable("state left the admissible set")
        return _energy(y)

    config, state, evaluator = _setup(1.05 / 8.0, functional=functional)
    with pytest.raises(OracleRecoverable):
        BrentSolver(config, state).solve(evaluator, 1.0)


def test_solvers_log_iterates():
    logger = IterationLogger("relax-test")
    config, state, evaluator = _setup(1.05 / 8.0)
    BrentSolver(config, state, logger).solve(evaluator, 1.0)
    assert logger.history
    assert {"iter", "relax_param", "residual"} <= set(logger.history[-1])
