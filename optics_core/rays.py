"""Ray container and reflection helpers.

Example:
    >>> import numpy as np
    >>> from optics_core.rays import Ray, reflect
    >>> d = np.array([1.0, -1.0]) / np.sqrt(2)
    >>> n = np.array([0.0, 1.0])
    >>> np.allclose(reflect(d, n), np.array([1.0, 1.0]) / np.sqrt(2))
    True
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from optics_core.geometry import as_vec, normalize

Vector = NDArray[np.float64]

DEFAULT_WAVELENGTH_NM = 532.0


@dataclass
class Ray:
    """Directed half-line p + t*l, t >= 0.

    The direction is normalized on construction; intensity starts at 1.0.
    """

    p: Vector
    l: Vector
    intensity: float = 1.0
    wavelength: float = DEFAULT_WAVELENGTH_NM
    medium_index: float = 1.0

    def __post_init__(self) -> None:
        self.p = as_vec(self.p)
        self.l = normalize(as_vec(self.l))
        if not self.medium_index > 0.0:
            raise ValueError(f"medium_index must be > 0, got {self.medium_index}")
        if self.intensity < 0.0:
            raise ValueError(f"intensity must be >= 0, got {self.intensity}")

    def at(self, t: float) -> Vector:
        return self.p + t * self.l

    def spawn(self, origin: Vector, direction: Vector, medium_index: float, intensity: float) -> "Ray":
        """Child ray carrying this ray's wavelength."""

        return Ray(origin, direction, intensity=intensity, wavelength=self.wavelength, medium_index=medium_index)


def reflect(direction: Vector, normal: Vector) -> Vector:
    """Specular reflection direction with unit normal."""

    d = normalize(direction)
    n = normalize(normal)
    r = d - 2.0 * np.dot(d, n) * n
    return r / np.linalg.norm(r)
