"""Vector primitives consumed by the residual evaluator and the orchestrator."""

from __future__ import annotations

from typing import Optional

import numpy as np


def linear_sum(a: float, x: np.ndarray, b: float, y: np.ndarray, out: np.ndarray) -> np.ndarray:
    """out = a*x + b*y, safe when ``out`` aliases ``x`` or ``y``."""

    if out is y and out is not x:
        np.multiply(y, b, out=out)
        out += a * x
        return out
    np.multiply(x, a, out=out)
    out += b * y
    return out


def dot(x: np.ndarray, y: np.ndarray) -> float:
    return float(np.vdot(x, y).real)


def ensure_buffer(buffer: Optional[np.ndarray], like: np.ndarray) -> np.ndarray:
    if buffer is not None and buffer.shape == like.shape and buffer.dtype == like.dtype:
        return buffer
    return np.empty_like(like)
