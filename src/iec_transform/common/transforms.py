"""Affine transformation utilities.

This module provides functions for working with 3D affine transformations
represented as 4x4 homogeneous matrices.

Coordinate Convention:
    All transforms are represented as 4x4 homogeneous matrices in row-major order:

    T = [[A, t],
         [0, 1]]

    where A is a 3x3 linear part (a rotation for rigid transforms) and t is a
    3x1 translation vector.

    The transform T_A_B represents the transformation from frame B to frame A,
    such that a point p_B in frame B is transformed to frame A as:

        p_A = T_A_B @ p_B

    Rotation angles are in degrees, counter-clockwise about the named axis
    when viewed from the positive end of that axis.

Example:
    >>> import numpy as np
    >>> from iec_transform.common.transforms import compose_all, rotation_z, translation
    >>>
    >>> # Displace along Z, then rotate about the displaced Z axis
    >>> T = compose_all(translation(0, 0, 100), rotation_z(30))
    >>> transformed = apply_transform(T, np.array([[1, 0, 0]]))
"""

from __future__ import annotations

from functools import reduce
from typing import Sequence, Tuple

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy.spatial.transform import Rotation


def identity() -> NDArray[np.float64]:
    """Return a 4x4 identity transform."""
    return np.eye(4, dtype=np.float64)


def translation(x: float = 0.0, y: float = 0.0, z: float = 0.0) -> NDArray[np.float64]:
    """Create a pure translation transform.

    Args:
        x: Displacement along X.
        y: Displacement along Y.
        z: Displacement along Z.

    Returns:
        4x4 transformation matrix.
    """
    T = np.eye(4, dtype=np.float64)
    T[:3, 3] = (x, y, z)
    return T


def _axis_rotation(axis: str, angle_deg: float) -> NDArray[np.float64]:
    T = np.eye(4, dtype=np.float64)
    T[:3, :3] = Rotation.from_euler(axis, angle_deg, degrees=True).as_matrix()
    return T


def rotation_x(angle_deg: float) -> NDArray[np.float64]:
    """Rotation about the X axis by angle_deg degrees (counter-clockwise)."""
    return _axis_rotation("x", angle_deg)


def rotation_y(angle_deg: float) -> NDArray[np.float64]:
    """Rotation about the Y axis by angle_deg degrees (counter-clockwise)."""
    return _axis_rotation("y", angle_deg)


def rotation_z(angle_deg: float) -> NDArray[np.float64]:
    """Rotation about the Z axis by angle_deg degrees (counter-clockwise)."""
    return _axis_rotation("z", angle_deg)


def from_row_major(values: Sequence[float] | ArrayLike) -> NDArray[np.float64]:
    """Create a 4x4 matrix from 16 values in row-major order (or a 4x4 array).

    Raises:
        ValueError: If the input does not hold exactly 16 values.
    """
    M = np.asarray(values, dtype=np.float64)

    if M.size != 16:
        raise ValueError(f"Expected 16 values for a 4x4 matrix, got {M.size}")

    return M.reshape(4, 4).copy()


def compose(T1: NDArray[np.float64], T2: NDArray[np.float64]) -> NDArray[np.float64]:
    """Compose two affine transformations.

    Computes T1 @ T2, representing first applying T2, then T1.

    Args:
        T1: First 4x4 transformation matrix (applied second).
        T2: Second 4x4 transformation matrix (applied first).

    Returns:
        Composed 4x4 transformation matrix T1 @ T2.

    Raises:
        ValueError: If inputs are not 4x4 matrices.

    Example:
        >>> T_fixed_collimator = compose(T_fixed_gantry, T_gantry_collimator)
    """
    T1 = np.asarray(T1, dtype=np.float64)
    T2 = np.asarray(T2, dtype=np.float64)

    if T1.shape != (4, 4) or T2.shape != (4, 4):
        raise ValueError(f"Expected 4x4 matrices, got {T1.shape} and {T2.shape}")

    return T1 @ T2


def compose_all(*transforms: NDArray[np.float64]) -> NDArray[np.float64]:
    """Compose a sequence of transforms left to right.

    compose_all(A, B, C) == A @ B @ C. This is the result of starting from
    identity and successively pre-multiplying A, B and C, the way a joint's
    kinematic chain is written down (translate, then rotate about the
    translated axes). An empty sequence yields identity.
    """
    return reduce(compose, transforms, identity())


def invert(T: NDArray[np.float64]) -> NDArray[np.float64]:
    """Invert an affine transformation.

    For a rigid transformation T = [R, t; 0, 1], the closed form
    T^{-1} = [R^T, -R^T @ t; 0, 1] is used. Any other affine matrix
    (e.g. one carrying voxel spacing) is inverted with np.linalg.inv.

    Args:
        T: 4x4 transformation matrix.

    Returns:
        Inverted 4x4 transformation matrix.

    Raises:
        ValueError: If input is not a 4x4 matrix or is singular.
    """
    T = np.asarray(T, dtype=np.float64)

    if T.shape != (4, 4):
        raise ValueError(f"Expected 4x4 matrix, got {T.shape}")

    if is_valid_transform(T, tol=1e-12):
        R = T[:3, :3]
        t = T[:3, 3]

        T_inv = np.eye(4, dtype=np.float64)
        T_inv[:3, :3] = R.T
        T_inv[:3, 3] = -R.T @ t
        return T_inv

    try:
        return np.linalg.inv(T)
    except np.linalg.LinAlgError as e:
        raise ValueError(f"Matrix is singular and cannot be inverted: {e}") from e


def apply_transform(
    T: NDArray[np.float64],
    points: NDArray[np.float64]
) -> NDArray[np.float64]:
    """Apply an affine transformation to a set of 3D points.

    Args:
        T: 4x4 transformation matrix.
        points: Nx3 array of 3D points.

    Returns:
        Nx3 array of transformed 3D points.

    Raises:
        ValueError: If inputs have incorrect shapes.
    """
    T = np.asarray(T, dtype=np.float64)
    points = np.asarray(points, dtype=np.float64)

    if T.shape != (4, 4):
        raise ValueError(f"Expected 4x4 matrix, got {T.shape}")

    if points.ndim == 1:
        points = points.reshape(1, -1)

    if points.shape[1] != 3:
        raise ValueError(f"Expected Nx3 points, got {points.shape}")

    A = T[:3, :3]
    t = T[:3, 3]

    return (A @ points.T).T + t


def make_transform(
    R: NDArray[np.float64],
    t: NDArray[np.float64]
) -> NDArray[np.float64]:
    """Create a 4x4 homogeneous transformation matrix from R and t.

    Args:
        R: 3x3 linear part (rotation, possibly scaled).
        t: 3-element translation vector.

    Returns:
        4x4 transformation matrix.
    """
    R = np.asarray(R, dtype=np.float64)
    t = np.asarray(t, dtype=np.float64).flatten()

    if R.shape != (3, 3):
        raise ValueError(f"Expected 3x3 matrix, got {R.shape}")
    if t.shape != (3,):
        raise ValueError(f"Expected 3-element translation, got {t.shape}")

    T = np.eye(4, dtype=np.float64)
    T[:3, :3] = R
    T[:3, 3] = t

    return T


def decompose_transform(
    T: NDArray[np.float64]
) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Decompose a 4x4 transformation matrix into its linear part and t.

    Args:
        T: 4x4 transformation matrix.

    Returns:
        Tuple of (R, t) where R is 3x3 and t is (3,).
    """
    T = np.asarray(T, dtype=np.float64)

    if T.shape != (4, 4):
        raise ValueError(f"Expected 4x4 matrix, got {T.shape}")

    R = T[:3, :3].copy()
    t = T[:3, 3].copy()

    return R, t


def is_valid_rotation_matrix(
    R: NDArray[np.float64],
    tol: float = 1e-6
) -> bool:
    """Check if a matrix is a valid rotation matrix.

    A valid rotation matrix satisfies:
    - R @ R.T = I (orthogonality)
    - det(R) = 1 (proper rotation, not reflection)

    Args:
        R: Matrix to check.
        tol: Tolerance for numerical checks.

    Returns:
        True if R is a valid rotation matrix.
    """
    R = np.asarray(R, dtype=np.float64)

    if R.shape != (3, 3):
        return False

    # Check orthogonality
    should_be_identity = R @ R.T
    if not np.allclose(should_be_identity, np.eye(3), atol=tol):
        return False

    # Check determinant
    if not np.isclose(np.linalg.det(R), 1.0, atol=tol):
        return False

    return True


def is_valid_transform(
    T: NDArray[np.float64],
    tol: float = 1e-6
) -> bool:
    """Check if a matrix is a valid rigid (rotation + translation) transform.

    Args:
        T: Matrix to check.
        tol: Tolerance for numerical checks.

    Returns:
        True if T is a valid rigid transformation.
    """
    T = np.asarray(T, dtype=np.float64)

    if T.shape != (4, 4):
        return False

    # Check bottom row
    if not np.allclose(T[3, :], [0, 0, 0, 1], atol=tol):
        return False

    # Check rotation part
    return is_valid_rotation_matrix(T[:3, :3], tol)
