"""Input validation utilities."""

from typing import Any, Optional

import numpy as np

from ..exceptions import DimensionError, InvalidInputError


def as_vector(values: Any, size: Optional[int], name: str) -> np.ndarray:
    """
    Convert ``values`` to a finite 1-D float array.

    Args:
        values: Array-like input
        size: Required length (None accepts any non-zero length)
        name: Name used in error messages

    Raises:
        DimensionError: If the input is not 1-D or has the wrong length
        InvalidInputError: If the input contains NaN or inf
    """
    try:
        array = np.asarray(values, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"{name} is not numeric: {e}") from e

    if array.ndim != 1:
        raise DimensionError(f"{name} must be 1-D, got shape {array.shape}")
    if size is not None and len(array) != size:
        raise DimensionError(f"{name} must have {size} elements, got {len(array)}")
    if size is None and len(array) == 0:
        raise DimensionError(f"{name} must not be empty")
    if not np.all(np.isfinite(array)):
        raise InvalidInputError(f"{name} contains non-finite values")
    return array


def check_positive(value: float, name: str) -> None:
    """Raise InvalidInputError unless ``value`` is finite and > 0."""
    if not np.isfinite(value) or value <= 0:
        raise InvalidInputError(f"{name} must be positive, got {value}")


def check_non_negative(value: float, name: str) -> None:
    """Raise InvalidInputError unless ``value`` is finite and >= 0."""
    if not np.isfinite(value) or value < 0:
        raise InvalidInputError(f"{name} must be non-negative, got {value}")
