import pathlib
import sys

import numpy as np
import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from relaxode.core.config import RelaxationConfig
from relaxode.core.errors import OracleFatal, OracleRecoverable
from relaxode.core.oracle import CallableOracle, ErrorKind
from relaxode.core.residual import ResidualEvaluator
from relaxode.core.state import RelaxationState


def _energy(y):
    return 0.5 * float(np.dot(y, y))


def _energy_grad(y):
    return y.copy()


def _bound_evaluator(functional=_energy, gradient=_energy_grad, delta_e=0.0):
    state = RelaxationState(RelaxationConfig())
    evaluator = ResidualEvaluator(CallableOracle(functional, gradient), state)
    y_n = np.array([1.0, 2.0, -1.0])
    y_cur = np.array([1.5, 1.0, 0.0])
    evaluator.bind(y_n, y_cur)
    state.delta_e = delta_e
    state.e_old = evaluator.functional(y_n)
    return state, evaluator, y_n, y_cur


def test_bind_forms_step_direction():
    _, evaluator, y_n, y_cur = _bound_evaluator()
    assert np.allclose(evaluator.delta_y, y_cur - y_n)


def test_residual_and_jacobian_match_closed_form():
    state, evaluator, y_n, y_cur = _bound_evaluator(delta_e=0.3)
    dy = y_cur - y_n
    r = 1.07

    expected_res = _energy(y_n + r * dy) - _energy(y_n) - r * 0.3
    expected_jac = float(np.dot(dy, y_n + r * dy)) - 0.3

    assert evaluator.residual(r) == pytest.approx(expected_res, rel=1e-14, abs=1e-15)
    assert evaluator.jacobian(r) == pytest.approx(expected_jac, rel=1e-14)
    assert state.residual == pytest.approx(expected_res, rel=1e-14, abs=1e-15)
    assert state.jacobian == pytest.approx(expected_jac, rel=1e-14)


def test_jacobian_matches_finite_difference():
    _, evaluator, _, _ = _bound_evaluator(delta_e=-0.2)
    r, eps = 0.95, 1.0e-6
    fd = (evaluator.residual(r + eps) - evaluator.residual(r - eps)) / (2.0 * eps)
    assert evaluator.jacobian(r) == pytest.approx(fd, rel=1e-6)


def test_each_oracle_call_is_counted():
    state, evaluator, _, _ = _bound_evaluator()
    assert state.stats.fn_evals == 1
    evaluator.residual(1.0)
    evaluator.residual(0.9)
    evaluator.jacobian(1.0)
    assert state.stats.fn_evals == 3
    assert state.stats.jac_evals == 1


def test_scratch_buffers_are_reused():
    _, evaluator, y_n, y_cur = _bound_evaluator()
    delta_y = evaluator.delta_y
    y_relax = evaluator.y_relax
    evaluator.bind(y_n + 1.0, y_cur - 1.0)
    assert evaluator.delta_y is delta_y
    assert evaluator.y_relax is y_relax

    evaluator.bind(np.zeros(5), np.ones(5))
    assert evaluator.delta_y is not delta_y
    assert evaluator.delta_y.shape == (5,)


def test_mismatched_shapes_are_rejected():
    _, evaluator, _, _ = _bound_evaluator()
    with pytest.raises(ValueError):
        evaluator.bind(np.zeros(3), np.zeros(4))


def test_recoverable_and_fatal_failures_are_distinguishable():
    def flaky(y):
        return float("nan"), 1

    def broken(y):
        raise OracleFatal("entropy undefined for negative density")

    state, evaluator, _, _ = _bound_evaluator()
    evaluator.oracle = CallableOracle(flaky, _energy_grad)
    with pytest.raises(OracleRecoverable):
        evaluator.residual(1.0)

    evaluator.oracle = CallableOracle(broken, _energy_grad)
    with pytest.raises(OracleFatal):
        evaluator.residual(1.0)

    evaluator.oracle = CallableOracle(_energy, lambda y: (y, ErrorKind.UNRECOVERABLE))
    with pytest.raises(OracleFatal):
        evaluator.jacobian(1.0)

    # failed calls still count as evaluations
    assert state.stats.fn_evals == 3
    assert state.stats.jac_evals == 1


def test_two_component_gradient_tuple_is_not_a_status():
    oracle = CallableOracle(lambda y: 0.0, lambda y: (1, 0))
    grad, kind = oracle.evaluate_gradient(np.zeros(2))
    assert kind is ErrorKind.SUCCESS
    assert np.array_equal(grad, [1, 0])


@pytest.mark.parametrize(
    "status, expected",
    [(0, ErrorKind.SUCCESS), (3, ErrorKind.RECOVERABLE), (-1, ErrorKind.UNRECOVERABLE)],
)
def test_integer_status_mapping(status, expected):
    assert ErrorKind.from_status(status) is expected
