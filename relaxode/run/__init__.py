"""Relaxation driver and the explicit Runge-Kutta stepper that feeds it."""

from .erk import (
    ButcherTable,
    ExplicitRKStepper,
    IntegrationFailed,
    IntegrationResult,
    make_table,
    table_registry,
)
from .relaxation import Accepted, Fatal, Outcome, Relaxation, Retry

__all__ = [
    "Accepted",
    "ButcherTable",
    "ExplicitRKStepper",
    "Fatal",
    "IntegrationFailed",
    "IntegrationResult",
    "Outcome",
    "Relaxation",
    "Retry",
    "make_table",
    "table_registry",
]
