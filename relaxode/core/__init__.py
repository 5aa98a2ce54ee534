"""Core relaxation data structures: configuration, state, oracles and residual."""

from .config import RelaxationConfig, SolverKind
from .errors import (
    BoundViolation,
    ConfigInvalid,
    OracleFatal,
    OracleRecoverable,
    RecoverableRelaxationError,
    RelaxationClosed,
    RelaxationError,
    SolverDiverged,
    SolverIterationLimit,
)
from .oracle import CallableOracle, ErrorKind, FunctionalOracle, StepDeltaProvider
from .residual import ResidualEvaluator
from .state import RelaxationState, RelaxationStats

__all__ = [
    "BoundViolation",
    "CallableOracle",
    "ConfigInvalid",
    "ErrorKind",
    "FunctionalOracle",
    "OracleFatal",
    "OracleRecoverable",
    "RecoverableRelaxationError",
    "RelaxationClosed",
    "RelaxationConfig",
    "RelaxationError",
    "RelaxationState",
    "RelaxationStats",
    "ResidualEvaluator",
    "SolverDiverged",
    "SolverIterationLimit",
    "SolverKind",
    "StepDeltaProvider",
]
