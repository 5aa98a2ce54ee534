"""Relaxation tunables.

Numeric settings that fall outside their valid range are replaced by the
documented default instead of being rejected; only an unknown solver kind or
an unknown key is an error.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

import numpy as np

from ..utils.io import read_yaml_file
from .errors import ConfigInvalid

UNIT_ROUNDOFF = float(np.finfo(float).eps)

DEFAULT_MAX_FAILS = 10
DEFAULT_RES_TOL = 10.0 * UNIT_ROUNDOFF
DEFAULT_REL_TOL = 4.0 * UNIT_ROUNDOFF
DEFAULT_ABS_TOL = 1.0e-14
DEFAULT_MAX_ITERS = 10
DEFAULT_LOWER_BOUND = 0.8
DEFAULT_UPPER_BOUND = 1.2
DEFAULT_ETA_FAIL = 0.25


class SolverKind(str, Enum):
    NEWTON = "newton"
    BRENT = "brent"

    @classmethod
    def parse(cls, value: Union[str, "SolverKind"]) -> "SolverKind":
        if isinstance(value, SolverKind):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise ConfigInvalid(
                f"An invalid relaxation solver option was provided: {value!r}"
            ) from exc


# camelCase file keys -> dataclass fields
_FILE_KEYS = {
    "solver": "solver_kind",
    "maxIters": "max_nonlinear_iters",
    "resTol": "residual_tol",
    "relTol": "relative_tol",
    "absTol": "absolute_tol",
    "lowerBound": "lower_bound",
    "upperBound": "upper_bound",
    "maxFails": "max_fails_per_step",
    "etaFail": "step_shrink_on_fail",
}


@dataclass
class RelaxationConfig:
    solver_kind: SolverKind = SolverKind.NEWTON
    max_nonlinear_iters: int = DEFAULT_MAX_ITERS
    residual_tol: float = DEFAULT_RES_TOL
    relative_tol: float = DEFAULT_REL_TOL
    absolute_tol: float = DEFAULT_ABS_TOL
    lower_bound: float = DEFAULT_LOWER_BOUND
    upper_bound: float = DEFAULT_UPPER_BOUND
    max_fails_per_step: int = DEFAULT_MAX_FAILS
    step_shrink_on_fail: float = DEFAULT_ETA_FAIL

    def __post_init__(self) -> None:
        self.set_solver(self.solver_kind)
        self.set_max_iters(self.max_nonlinear_iters)
        self.set_residual_tol(self.residual_tol)
        self.set_tolerances(self.relative_tol, self.absolute_tol)
        self.set_lower_bound(self.lower_bound)
        self.set_upper_bound(self.upper_bound)
        self.set_max_fails(self.max_fails_per_step)
        self.set_eta_fail(self.step_shrink_on_fail)

    # -- setters -------------------------------------------------------------
    def set_solver(self, kind: Union[str, SolverKind]) -> None:
        self.solver_kind = SolverKind.parse(kind)

    def set_max_iters(self, max_iters: int) -> None:
        max_iters = int(max_iters)
        self.max_nonlinear_iters = max_iters if max_iters > 0 else DEFAULT_MAX_ITERS

    def set_residual_tol(self, res_tol: float) -> None:
        res_tol = float(res_tol)
        self.residual_tol = res_tol if res_tol > 0.0 else DEFAULT_RES_TOL

    def set_tolerances(self, rel_tol: float, abs_tol: float) -> None:
        rel_tol, abs_tol = float(rel_tol), float(abs_tol)
        self.relative_tol = rel_tol if rel_tol > 0.0 else DEFAULT_REL_TOL
        self.absolute_tol = abs_tol if abs_tol > 0.0 else DEFAULT_ABS_TOL

    def set_lower_bound(self, lower: float) -> None:
        lower = float(lower)
        self.lower_bound = lower if 0.0 < lower < 1.0 else DEFAULT_LOWER_BOUND

    def set_upper_bound(self, upper: float) -> None:
        upper = float(upper)
        self.upper_bound = upper if upper > 1.0 else DEFAULT_UPPER_BOUND

    def set_max_fails(self, max_fails: int) -> None:
        max_fails = int(max_fails)
        self.max_fails_per_step = max_fails if max_fails > 0 else DEFAULT_MAX_FAILS

    def set_eta_fail(self, eta_fail: float) -> None:
        eta_fail = float(eta_fail)
        self.step_shrink_on_fail = eta_fail if 0.0 < eta_fail < 1.0 else DEFAULT_ETA_FAIL

    def configure(self, **settings: Any) -> "RelaxationConfig":
        """Apply several settings at once, each through its setter."""

        known = {f.name for f in fields(self)}
        unknown = sorted(set(settings) - known)
        if unknown:
            raise ConfigInvalid(f"Unknown relaxation settings: {', '.join(unknown)}")
        if "solver_kind" in settings:
            self.set_solver(settings["solver_kind"])
        if "max_nonlinear_iters" in settings:
            self.set_max_iters(settings["max_nonlinear_iters"])
        if "residual_tol" in settings:
            self.set_residual_tol(settings["residual_tol"])
        if "relative_tol" in settings or "absolute_tol" in settings:
            self.set_tolerances(
                settings.get("relative_tol", self.relative_tol),
                settings.get("absolute_tol", self.absolute_tol),
            )
        if "lower_bound" in settings:
            self.set_lower_bound(settings["lower_bound"])
        if "upper_bound" in settings:
            self.set_upper_bound(settings["upper_bound"])
        if "max_fails_per_step" in settings:
            self.set_max_fails(settings["max_fails_per_step"])
        if "step_shrink_on_fail" in settings:
            self.set_eta_fail(settings["step_shrink_on_fail"])
        return self

    # -- file input/output ---------------------------------------------------
    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "RelaxationConfig":
        data = dict(data or {})
        unknown = sorted(set(data) - set(_FILE_KEYS))
        if unknown:
            raise ConfigInvalid(f"Unknown relaxation keys: {', '.join(unknown)}")
        try:
            return cls(**{_FILE_KEYS[key]: value for key, value in data.items()})
        except ConfigInvalid:
            raise
        except (TypeError, ValueError) as exc:
            raise ConfigInvalid(f"Malformed relaxation settings: {exc}") from exc

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "RelaxationConfig":
        data = read_yaml_file(path)
        if "relaxation" in data:
            data = data["relaxation"] or {}
        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for key, attr in _FILE_KEYS.items():
            value = getattr(self, attr)
            out[key] = value.value if isinstance(value, SolverKind) else value
        return out
