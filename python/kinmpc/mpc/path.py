"""
Reference Path
==============

Polynomial reference path y = f(x), coefficients ordered low-to-high
degree, in the same frame as the vehicle state.
"""

from __future__ import annotations

from typing import Sequence, Tuple, Union
import numpy as np
from numpy.polynomial import polynomial as P

from ..utils.validation import as_vector


class PathPolynomial:
    """
    Reference path described by polynomial coefficients.

    Args:
        coeffs: Coefficients c_0, c_1, ... so that f(x) = sum c_i x^i

    Example:
        >>> path = PathPolynomial([0.0, 0.1, 0.0, 0.0])
        >>> path(10.0)
        1.0
    """

    def __init__(self, coeffs: Union[Sequence[float], np.ndarray]) -> None:
        self.coeffs = as_vector(coeffs, None, "path coefficients").copy()
        self.coeffs.setflags(write=False)
        self._deriv = P.polyder(self.coeffs) if len(self.coeffs) > 1 else np.zeros(1)
        self._deriv2 = P.polyder(self._deriv) if len(self._deriv) > 1 else np.zeros(1)

    @property
    def degree(self) -> int:
        """Polynomial degree."""
        return len(self.coeffs) - 1

    def __call__(self, x):
        """f(x); works elementwise on arrays."""
        return P.polyval(x, self.coeffs)

    def slope(self, x):
        """f'(x)."""
        return P.polyval(x, self._deriv)

    def curvature_term(self, x):
        """f''(x), used for the derivative of the desired heading."""
        return P.polyval(x, self._deriv2)

    def heading(self, x):
        """Desired heading atan(f'(x)) implied by the local slope."""
        return np.arctan(self.slope(x))

    def heading_derivative(self, x):
        """d/dx atan(f'(x)) = f''(x) / (1 + f'(x)^2)."""
        slope = self.slope(x)
        return self.curvature_term(x) / (1.0 + slope ** 2)

    def errors(self, x: float, y: float, psi: float) -> Tuple[float, float]:
        """
        Cross-track and heading error of a pose relative to the path.

        Returns:
            (cte, epsi) with cte = f(x) - y and epsi = psi - atan(f'(x))
        """
        cte = float(self(x) - y)
        epsi = float(psi - self.heading(x))
        return cte, epsi

    def sample(
        self,
        x_min: float = 0.0,
        x_max: float = 50.0,
        n_points: int = 25,
    ) -> np.ndarray:
        """
        Evaluate the path over a display range.

        Returns:
            Points (n_points, 2) of (x, f(x))
        """
        xs = np.linspace(x_min, x_max, n_points)
        return np.column_stack([xs, self(xs)])

    def __repr__(self) -> str:
        return f"PathPolynomial(coeffs={self.coeffs.tolist()})"
