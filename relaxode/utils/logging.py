"""Iteration history logging for the relaxation solvers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

Number = Union[int, float]


@dataclass
class IterationLogger:
    """Records one entry per logged iteration and optionally echoes it.

    ``history`` keeps at most ``max_history`` entries (oldest dropped first);
    ``max_history=None`` keeps everything.
    """

    name: str
    verbose: bool = False
    max_history: Optional[int] = 10000
    history: List[Dict[str, Number]] = field(default_factory=list)

    def log(self, iteration: int, values: Dict[str, Number], event: str = "") -> None:
        entry: Dict[str, Number] = {"iter": iteration, **values}
        self.history.append(entry)
        if self.max_history is not None and len(self.history) > self.max_history:
            del self.history[: len(self.history) - self.max_history]
        if not self.verbose:
            return
        head = f"{self.name} iter {iteration:3d}"
        if event:
            head = f"{head} [{event}]"
        pieces = [head]
        for key, value in values.items():
            if isinstance(value, float):
                pieces.append(f"{key} = {value:.6e}")
            else:
                pieces.append(f"{key} = {value}")
        print(" | ".join(pieces), flush=True)

    def clear(self) -> None:
        self.history.clear()

    def last(self) -> Optional[Dict[str, Number]]:
        return self.history[-1] if self.history else None
