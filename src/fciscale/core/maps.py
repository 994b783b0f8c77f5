"""FCI field-line maps.

A map records, for every grid point (x, y, z), the fractional x and z
indices where the field line through that point crosses the next y-plane
(forward) or the previous one (backward).
"""

import logging
from dataclasses import dataclass
from typing import Mapping, Optional

import numpy as np
from tqdm import tqdm

from ..errors import InvalidParameterError, ShapeMismatchError
from ..physics.field import MagneticField
from ..physics.fieldtracer import FieldTracer
from .grid import StructuredGrid

logger = logging.getLogger(__name__)

MAP_KEYS = ("forward_xt_prime", "forward_zt_prime",
            "backward_xt_prime", "backward_zt_prime")


@dataclass
class FieldLineMap:
    """Forward (and optionally backward) field-line maps in index space.

    Destination y-index of the forward map from (x, y, z) is (y + 1) % ny,
    of the backward map (y - 1) % ny.
    """
    xt_prime: np.ndarray  # (nx, ny, nz) forward x-index
    zt_prime: np.ndarray  # (nx, ny, nz) forward z-index
    backward_xt_prime: Optional[np.ndarray] = None
    backward_zt_prime: Optional[np.ndarray] = None

    def __post_init__(self):
        self.xt_prime = np.asarray(self.xt_prime, dtype=float)
        self.zt_prime = np.asarray(self.zt_prime, dtype=float)

        if self.xt_prime.ndim != 3:
            raise InvalidParameterError(f"Maps must be 3D, got shape {self.xt_prime.shape}")
        if self.zt_prime.shape != self.xt_prime.shape:
            raise ShapeMismatchError(self.zt_prime.shape, self.xt_prime.shape)

        if (self.backward_xt_prime is None) != (self.backward_zt_prime is None):
            raise InvalidParameterError("Backward maps need both xt_prime and zt_prime")
        if self.backward_xt_prime is not None:
            self.backward_xt_prime = np.asarray(self.backward_xt_prime, dtype=float)
            self.backward_zt_prime = np.asarray(self.backward_zt_prime, dtype=float)
            for array in (self.backward_xt_prime, self.backward_zt_prime):
                if array.shape != self.xt_prime.shape:
                    raise ShapeMismatchError(array.shape, self.xt_prime.shape)

    @property
    def shape(self) -> tuple:
        return self.xt_prime.shape

    @property
    def has_backward(self) -> bool:
        return self.backward_xt_prime is not None

    @classmethod
    def from_dict(cls, maps: Mapping) -> 'FieldLineMap':
        """Build from a grid-file style dict ('forward_xt_prime', ...)."""
        missing = [key for key in MAP_KEYS[:2] if key not in maps]
        if missing:
            raise InvalidParameterError(f"Maps are missing {missing}")
        return cls(xt_prime=maps["forward_xt_prime"],
                   zt_prime=maps["forward_zt_prime"],
                   backward_xt_prime=maps.get("backward_xt_prime"),
                   backward_zt_prime=maps.get("backward_zt_prime"))

    @classmethod
    def straight(cls, shape: tuple) -> 'FieldLineMap':
        """Maps for field lines parallel to y: every point maps to its own (x, z)."""
        nx, ny, nz = shape
        index = np.mgrid[0:nx, 0:ny, 0:nz].astype(float)
        return cls(xt_prime=index[0], zt_prime=index[2],
                   backward_xt_prime=index[0].copy(),
                   backward_zt_prime=index[2].copy())

    def to_dict(self) -> dict:
        maps = {"forward_xt_prime": self.xt_prime,
                "forward_zt_prime": self.zt_prime}
        if self.has_backward:
            maps["backward_xt_prime"] = self.backward_xt_prime
            maps["backward_zt_prime"] = self.backward_zt_prime
        return maps


def as_field_line_map(maps) -> FieldLineMap:
    """Accept a FieldLineMap or a grid-file style dict."""
    if isinstance(maps, FieldLineMap):
        return maps
    if isinstance(maps, Mapping):
        return FieldLineMap.from_dict(maps)
    raise InvalidParameterError(f"Expected FieldLineMap or mapping, got {type(maps).__name__}")


def make_maps(grid: StructuredGrid, magnetic_field: Optional[MagneticField] = None,
              quiet: bool = False, rtol: Optional[float] = None,
              tracer=None) -> FieldLineMap:
    """Make the forward and backward FCI maps.

    Every (x, z) point of each y-slice is traced one delta_y forwards and
    backwards; the end points are converted to index space. z is not
    wrapped, so zt_prime may fall outside [0, nz).

    Args:
        grid: Grid to build maps for
        magnetic_field: Field to trace through (unused if tracer is given)
        quiet: Don't display progress bar
        rtol: Relative tolerance for field-line tracing
        tracer: Object with follow_field_lines(x, z, y, rtol=...);
            defaults to FieldTracer(magnetic_field)

    Returns:
        FieldLineMap with forward and backward maps
    """
    if tracer is None:
        if magnetic_field is None:
            raise InvalidParameterError("make_maps needs a magnetic_field or a tracer")
        tracer = FieldTracer(magnetic_field)

    nx, ny, nz = grid.shape
    logger.info("Making FCI maps for %s", grid)

    forward_xt_prime = np.zeros((nx, ny, nz))
    forward_zt_prime = np.zeros((nx, ny, nz))
    backward_xt_prime = np.zeros((nx, ny, nz))
    backward_zt_prime = np.zeros((nx, ny, nz))

    x2d, z2d = np.meshgrid(grid.xarray, grid.zarray, indexing='ij')

    for j in tqdm(range(ny), desc="FCI maps", disable=quiet):
        for step, xt_prime, zt_prime in ((grid.delta_y, forward_xt_prime, forward_zt_prime),
                                         (-grid.delta_y, backward_xt_prime, backward_zt_prime)):
            y_coords = [grid.yarray[j], grid.yarray[j] + step]
            # Only the end point; [0, ...] is the starting position
            coord = tracer.follow_field_lines(x2d, z2d, y_coords, rtol=rtol)[1, ...]
            xt_prime[:, j, :], _, zt_prime[:, j, :] = grid.physical_to_index(
                coord[..., 0], 0.0, coord[..., 1])

    return FieldLineMap(xt_prime=forward_xt_prime, zt_prime=forward_zt_prime,
                        backward_xt_prime=backward_xt_prime,
                        backward_zt_prime=backward_zt_prime)
