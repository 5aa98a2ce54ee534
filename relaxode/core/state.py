"""Per-session relaxation working state and counters."""

from __future__ import annotations

import sys
from dataclasses import asdict, dataclass, field, replace
from typing import Dict, Optional, TextIO

from .config import RelaxationConfig

_STAT_LABELS = (
    ("fn_evals", "Relax fn evals"),
    ("jac_evals", "Relax Jac evals"),
    ("total_fails", "Relax fails"),
    ("bound_fails", "Relax bound fails"),
    ("nls_iters", "Relax NLS iters"),
    ("nls_fails", "Relax NLS fails"),
)


@dataclass
class RelaxationStats:
    fn_evals: int = 0
    jac_evals: int = 0
    total_fails: int = 0
    nls_iters: int = 0
    nls_fails: int = 0
    bound_fails: int = 0

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)

    def copy(self) -> "RelaxationStats":
        return replace(self)

    def write(self, stream: Optional[TextIO] = None, fmt: str = "table") -> None:
        """Print the counters as an aligned table or as one CSV line."""

        stream = sys.stdout if stream is None else stream
        fmt = fmt.lower()
        if fmt == "table":
            for key, label in _STAT_LABELS:
                stream.write(f"{label:<29} = {getattr(self, key)}\n")
        elif fmt == "csv":
            pieces = [f"{label},{getattr(self, key)}" for key, label in _STAT_LABELS]
            stream.write(",".join(pieces) + "\n")
        else:
            raise ValueError(f"Unknown statistics format '{fmt}'")


@dataclass
class RelaxationState:
    config: RelaxationConfig
    e_old: float = 0.0
    delta_e: float = 0.0
    relax_param: float = 1.0
    relax_param_prev: float = 1.0
    residual: float = 0.0
    jacobian: float = 0.0
    step_fails: int = 0
    stats: RelaxationStats = field(default_factory=RelaxationStats)
