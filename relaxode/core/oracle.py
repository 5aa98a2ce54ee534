"""Interfaces to the user's scalar functional and to the stepper."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Tuple

import numpy as np

from .errors import OracleFatal, OracleRecoverable


class ErrorKind(Enum):
    SUCCESS = 0
    RECOVERABLE = 1
    UNRECOVERABLE = -1

    @classmethod
    def from_status(cls, status: "int | ErrorKind") -> "ErrorKind":
        if isinstance(status, ErrorKind):
            return status
        status = int(status)
        if status == 0:
            return cls.SUCCESS
        return cls.RECOVERABLE if status > 0 else cls.UNRECOVERABLE

    def raise_for(self, what: str) -> None:
        if self is ErrorKind.RECOVERABLE:
            raise OracleRecoverable(f"{what} reported a recoverable failure")
        if self is ErrorKind.UNRECOVERABLE:
            raise OracleFatal(f"{what} reported an unrecoverable failure")


class FunctionalOracle(ABC):
    """Evaluates the conserved or dissipated functional e(y) and its gradient."""

    @abstractmethod
    def evaluate_functional(self, y: np.ndarray) -> Tuple[float, ErrorKind]:
        """Return ``(e(y), status)``."""

    @abstractmethod
    def evaluate_gradient(self, y: np.ndarray) -> Tuple[np.ndarray, ErrorKind]:
        """Return ``(grad e(y), status)``."""


def _call(
    func: Callable[[np.ndarray], Any], y: np.ndarray, int_status: bool
) -> Tuple[Any, ErrorKind]:
    try:
        result = func(y)
    except OracleRecoverable:
        return None, ErrorKind.RECOVERABLE
    except OracleFatal:
        return None, ErrorKind.UNRECOVERABLE
    if isinstance(result, tuple) and len(result) == 2:
        value, status = result
        if isinstance(status, ErrorKind):
            return value, status
        # a bare pair of ints is a valid two-component gradient
        if int_status and isinstance(status, int) and not isinstance(status, bool):
            return value, ErrorKind.from_status(status)
    return result, ErrorKind.SUCCESS


class CallableOracle(FunctionalOracle):
    """Wraps plain ``functional(y)`` and ``gradient(y)`` callables.

    Either callable may return the bare value or a ``(value, ErrorKind)``
    pair. The functional may also report an int status (0 success, >0
    recoverable, <0 unrecoverable). Raising :class:`OracleRecoverable` or
    :class:`OracleFatal` works too.
    """

    def __init__(
        self,
        functional: Callable[[np.ndarray], Any],
        gradient: Callable[[np.ndarray], Any],
    ) -> None:
        self.functional = functional
        self.gradient = gradient

    def evaluate_functional(self, y: np.ndarray) -> Tuple[float, ErrorKind]:
        value, kind = _call(self.functional, y, int_status=True)
        if kind is not ErrorKind.SUCCESS:
            return float("nan"), kind
        return float(value), kind

    def evaluate_gradient(self, y: np.ndarray) -> Tuple[np.ndarray, ErrorKind]:
        value, kind = _call(self.gradient, y, int_status=False)
        if kind is not ErrorKind.SUCCESS:
            return np.full_like(y, np.nan), kind
        return np.asarray(value), kind


class StepDeltaProvider(ABC):
    """Stepper-side collaborator: predicted change of e over the step."""

    @abstractmethod
    def estimate_delta_e(self, oracle: FunctionalOracle) -> Tuple[float, int, ErrorKind]:
        """Return ``(delta_e, gradient evaluations used, status)``."""

    @abstractmethod
    def get_method_order(self) -> int:
        """Order of the method that produced the candidate solution."""
