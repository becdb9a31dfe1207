"""Index conversion for regular 3D voxel grids.

DICOM image series stacked by slice position form a regular grid indexed
(slice, row, column), all starting at zero. PixelData is stored in row-major
(C) order, so the column index is contiguous in memory and the slice index
is the most distant.
"""

from __future__ import annotations

import operator
from typing import Sequence, Tuple


def _check_shape(shape: Sequence[int]) -> Tuple[int, int, int]:
    if len(shape) != 3:
        raise ValueError(f"Expected a 3D grid shape, got {tuple(shape)}")
    n0, n1, n2 = (operator.index(n) for n in shape)
    if min(n0, n1, n2) <= 0:
        raise ValueError(f"Grid dimensions must be positive, got {(n0, n1, n2)}")
    return n0, n1, n2


def vectorized_to_linearized_index(index: Sequence[int], shape: Sequence[int]) -> int:
    """Convert a (e0, e1, e2) grid index to a flat C-order index.

    Args:
        index: Index along each dimension, e.g. (slice, row, column).
        shape: Number of elements along each dimension.

    Returns:
        Linear index starting at zero.

    Raises:
        IndexError: If any component is out of range.
        TypeError: If a component is not an integer.
    """
    n0, n1, n2 = _check_shape(shape)
    if len(index) != 3:
        raise ValueError(f"Expected a 3-component index, got {tuple(index)}")
    e0, e1, e2 = (operator.index(e) for e in index)

    if not (0 <= e0 < n0 and 0 <= e1 < n1 and 0 <= e2 < n2):
        raise IndexError(f"Indices ({e0},{e1},{e2}) out of range ({n0},{n1},{n2})")

    return e0 * n1 * n2 + e1 * n2 + e2


def linearized_to_vectorized_index(linear_index: int, shape: Sequence[int]) -> Tuple[int, int, int]:
    """Convert a flat C-order index back to a (e0, e1, e2) grid index.

    Raises:
        IndexError: If the index is negative or beyond the grid size.
        TypeError: If the index is not an integer.
    """
    n0, n1, n2 = _check_shape(shape)
    total = n0 * n1 * n2
    linear_index = operator.index(linear_index)

    if not 0 <= linear_index < total:
        raise IndexError(f"Index ({linear_index}) out of range (total elements = {total})")

    return (linear_index // n2) // n1, (linear_index // n2) % n1, linear_index % n2
