"""Exception types raised by the relaxation machinery."""

from __future__ import annotations


class RelaxationError(RuntimeError):
    """Base class for every relaxation failure."""


class RecoverableRelaxationError(RelaxationError):
    """Failure that only aborts the current solve attempt."""


class OracleRecoverable(RecoverableRelaxationError):
    """The functional or its gradient asked for a different r or a smaller step."""


class OracleFatal(RelaxationError):
    """The functional or its gradient failed in a way the session cannot survive."""


class SolverDiverged(RecoverableRelaxationError):
    """Vanishing Newton Jacobian, non-finite update, or no Brent bracket."""


class SolverIterationLimit(RecoverableRelaxationError):
    def __init__(self, iterations: int, last_value: float = float("nan")) -> None:
        super().__init__(
            f"relaxation solve did not converge in {iterations} iterations "
            f"(last r = {last_value:.6g})"
        )
        self.iterations = iterations
        self.last_value = last_value


class BoundViolation(RecoverableRelaxationError):
    def __init__(self, relax_param: float, lower: float, upper: float) -> None:
        super().__init__(
            f"relaxation parameter {relax_param:.6g} outside [{lower:g}, {upper:g}]"
        )
        self.relax_param = relax_param
        self.lower = lower
        self.upper = upper


class ConfigInvalid(RelaxationError, ValueError):
    """Rejected configuration input."""


class RelaxationClosed(RelaxationError):
    """The relaxation session was already closed."""
