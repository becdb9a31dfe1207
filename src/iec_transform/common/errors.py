"""Exception types for the IEC transform toolkit."""


class IECTransformError(Exception):
    """Base exception for all IEC transform errors."""

    pass


class HierarchyError(IECTransformError):
    """Malformed frame hierarchy or missing elementary transform.

    These indicate a programming or configuration error, not a recoverable
    runtime condition.
    """

    pass


class InvalidParameterError(IECTransformError, ValueError):
    """Invalid input supplied by the caller (kinematic or grid parameters)."""

    pass


__all__ = [
    "IECTransformError",
    "HierarchyError",
    "InvalidParameterError",
]
