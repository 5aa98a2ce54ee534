"""Relaxation of Runge-Kutta steps onto an exact functional balance."""

from .core import (
    CallableOracle,
    ConfigInvalid,
    ErrorKind,
    FunctionalOracle,
    OracleFatal,
    OracleRecoverable,
    RelaxationClosed,
    RelaxationConfig,
    RelaxationError,
    RelaxationStats,
    SolverKind,
    StepDeltaProvider,
)
from .run import Accepted, ExplicitRKStepper, Fatal, Relaxation, Retry

__version__ = "0.1.0"

__all__ = [
    "Accepted",
    "CallableOracle",
    "ConfigInvalid",
    "ErrorKind",
    "ExplicitRKStepper",
    "Fatal",
    "FunctionalOracle",
    "OracleFatal",
    "OracleRecoverable",
    "Relaxation",
    "RelaxationClosed",
    "RelaxationConfig",
    "RelaxationError",
    "RelaxationStats",
    "Retry",
    "SolverKind",
    "StepDeltaProvider",
]
