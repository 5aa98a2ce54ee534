"""Root solvers for the relaxation residual."""

from .base import (
    RelaxationSolver,
    SolveResult,
    make_solver,
    register_solver,
    solver_registry,
)
from .brent import BrentSolver
from .newton import NewtonSolver

__all__ = [
    "BrentSolver",
    "NewtonSolver",
    "RelaxationSolver",
    "SolveResult",
    "make_solver",
    "register_solver",
    "solver_registry",
]
