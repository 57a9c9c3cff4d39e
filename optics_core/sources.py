"""Beam sources and transverse waist sampling.

Example:
    >>> import numpy as np
    >>> from optics_core.sources import BeamSource, sample_offsets
    >>> sample_offsets(10.0, 0.2)
    array([-5.,  5.])
    >>> src = BeamSource("b0", position=np.array([0.0, 0.0]), direction=np.array([1.0, 0.0]), waist=10.0)
    >>> len(src.emit(0.2))
    2
"""

from __future__ import annotations

from dataclasses import dataclass, replace
import math
from typing import Any, List

import numpy as np
from numpy.typing import NDArray

from optics_core.geometry import as_vec, frozen_vec, normalize, perp
from optics_core.rays import DEFAULT_WAVELENGTH_NM, Ray

Vector = NDArray[np.float64]


def sample_count(waist: float, rays_per_unit: float) -> int:
    """Number of root rays across a waist; never below one and monotone in density."""

    if rays_per_unit <= 0.0:
        raise ValueError(f"rays_per_unit must be > 0, got {rays_per_unit}")
    # round away float noise such as 10 * 0.2 = 2.0000000000000004
    return max(1, math.ceil(round(waist * rays_per_unit, 9)))


def sample_offsets(waist: float, rays_per_unit: float) -> NDArray[np.float64]:
    """Ordered transverse offsets spanning [-waist/2, +waist/2]."""

    n = sample_count(waist, rays_per_unit)
    if n == 1:
        return np.zeros(1)
    return np.linspace(-waist / 2.0, waist / 2.0, n)


@dataclass(frozen=True, eq=False)
class BeamSource:
    source_id: str
    position: Vector
    direction: Vector
    waist: float = 1.0
    wavelength: float = DEFAULT_WAVELENGTH_NM
    index: float = 1.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "position", frozen_vec(self.position))
        object.__setattr__(self, "direction", frozen_vec(normalize(as_vec(self.direction))))
        if not self.waist > 0.0:
            raise ValueError(f"Source '{self.source_id}' waist must be > 0, got {self.waist}")
        if not self.index > 0.0:
            raise ValueError(f"Source '{self.source_id}' index must be > 0, got {self.index}")

    def replace(self, **changes: Any) -> "BeamSource":
        return replace(self, **changes)

    def emit(self, rays_per_unit: float) -> List[Ray]:
        """Parallel root rays sampled across the waist, ordered by offset."""

        side = perp(self.direction)
        return [
            Ray(self.position + off * side, self.direction, wavelength=self.wavelength, medium_index=self.index)
            for off in sample_offsets(self.waist, rays_per_unit)
        ]
