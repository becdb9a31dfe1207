"""Chained (composite) transform accumulator.

A ChainedTransform accumulates a sequence of 4x4 concatenations into a
single matrix. In post-multiply mode (the default) every concatenated matrix
is applied after the existing accumulation:

    chain.concatenate(A); chain.concatenate(B)   ->   matrix == B @ A

In pre-multiply mode it is applied before it:

    chain.concatenate(A); chain.concatenate(B)   ->   matrix == A @ B
"""

from __future__ import annotations

from typing import List, Optional, Tuple

import numpy as np
from numpy.typing import NDArray

from iec_transform.common.transforms import apply_transform, from_row_major, invert


class ChainedTransform:
    """Composite transform built from successive concatenations.

    Attributes:
        name: Diagnostic name, e.g. "RasToCollimatorTransform".
    """

    def __init__(self, name: str = "", post_multiply: bool = True):
        self.name = name
        self._post_multiply = post_multiply
        self._matrix = np.eye(4, dtype=np.float64)
        self._steps: List[Tuple[str, NDArray[np.float64]]] = []

    def __repr__(self) -> str:
        mode = "post" if self._post_multiply else "pre"
        return f"ChainedTransform(name={self.name!r}, steps={len(self._steps)}, mode={mode})"

    def __len__(self) -> int:
        return len(self._steps)

    @property
    def is_post_multiply(self) -> bool:
        return self._post_multiply

    def post_multiply(self) -> "ChainedTransform":
        """Apply subsequent concatenations after the accumulation."""
        self._post_multiply = True
        return self

    def pre_multiply(self) -> "ChainedTransform":
        """Apply subsequent concatenations before the accumulation."""
        self._post_multiply = False
        return self

    def identity(self) -> "ChainedTransform":
        """Reset to identity and forget all concatenation steps."""
        self._matrix = np.eye(4, dtype=np.float64)
        self._steps = []
        return self

    def concatenate(self, matrix: NDArray[np.float64], label: Optional[str] = None) -> "ChainedTransform":
        """Concatenate a 4x4 matrix (or 16 row-major values).

        Args:
            matrix: Matrix to concatenate.
            label: Optional step label kept for diagnostics.

        Returns:
            self, so calls can be chained.
        """
        M = from_row_major(matrix)
        if self._post_multiply:
            self._matrix = M @ self._matrix
        else:
            self._matrix = self._matrix @ M
        self._steps.append((label or f"step{len(self._steps)}", M))
        return self

    def set_from(self, other: "ChainedTransform") -> "ChainedTransform":
        """Copy the accumulated state (not the multiply mode) of another chain."""
        if not isinstance(other, ChainedTransform):
            raise TypeError(f"Expected ChainedTransform, got {type(other).__name__}")
        self.name = other.name
        self._matrix = other._matrix.copy()
        self._steps = [(label, M.copy()) for label, M in other._steps]
        return self

    @property
    def matrix(self) -> NDArray[np.float64]:
        """Copy of the accumulated 4x4 matrix."""
        return self._matrix.copy()

    @property
    def step_labels(self) -> List[str]:
        return [label for label, _ in self._steps]

    def inverse(self) -> NDArray[np.float64]:
        """Inverse of the accumulated matrix."""
        return invert(self._matrix)

    def transform_points(self, points: NDArray[np.float64]) -> NDArray[np.float64]:
        """Map Nx3 points through the accumulated matrix."""
        return apply_transform(self._matrix, points)
