"""Pseudo flux surfaces from Poincaré plots."""

import logging
from typing import Optional

import numpy as np

from ..core.grid import StructuredGrid
from ..errors import InvalidParameterError
from ..numerics.scattered import griddata
from ..physics.field import MagneticField
from ..physics.fieldtracer import FieldTracer

logger = logging.getLogger(__name__)


def make_surfaces(grid: StructuredGrid, magnetic_field: Optional[MagneticField] = None,
                  nsurfaces: int = 10, revs: int = 100, fill_value: float = 1.0,
                  tracer=None) -> np.ndarray:
    """Essentially interpolate a Poincaré plot onto the grid mesh.

    Field lines are started at z = zcentre and x from xcentre outwards,
    followed for revs turns in y, and labelled 0 to 1 by starting
    position. The labels are interpolated onto the (x, z) mesh of each
    y-slice.

    Args:
        grid: Grid to interpolate onto
        magnetic_field: Field to trace through (unused if tracer is given)
        nsurfaces: Number of surfaces to interpolate to
        revs: Number of turns traced along each surface
        fill_value: Value outside the traced surfaces
        tracer: Object with follow_field_lines(x, z, y); defaults to
            FieldTracer(magnetic_field)

    Returns:
        Array of pseudo-psi on the grid mesh (nx, ny, nz)
    """
    if nsurfaces < 2:
        raise InvalidParameterError(f"nsurfaces must be >= 2, got {nsurfaces}")
    if revs < 1:
        raise InvalidParameterError(f"revs must be >= 1, got {revs}")
    if tracer is None:
        if magnetic_field is None:
            raise InvalidParameterError("make_surfaces needs a magnetic_field or a tracer")
        tracer = FieldTracer(magnetic_field)

    logger.info("Tracing %d surfaces for %d turns", nsurfaces, revs)

    # Initial x, z points in surface
    xpos = grid.xcentre + np.linspace(0, 0.5 * np.max(grid.xarray), nsurfaces)
    zpos = np.full_like(xpos, grid.zcentre)

    # Extend the domain from [0, Ly) to [0, revs*Ly)
    phi_values = (grid.yarray[np.newaxis, :]
                  + grid.Ly * np.arange(revs)[:, np.newaxis]).ravel()

    points = tracer.follow_field_lines(xpos, zpos, phi_values)
    points = points.reshape((revs, grid.ny, nsurfaces, 2))

    # Arbitrarily number the surfaces from 0 to 1
    psi_points = np.broadcast_to(np.linspace(0.0, 1.0, nsurfaces),
                                 (revs, grid.ny, nsurfaces))

    x_2d, z_2d = np.meshgrid(grid.xarray, grid.zarray, indexing='ij')

    psi = np.zeros(grid.shape)
    for y_slice in range(grid.ny):
        x_points = points[:, y_slice, :, 0].ravel()
        _, z_points = grid.wrap_coordinates(0.0, points[:, y_slice, :, 1].ravel())
        psi[:, y_slice, :] = griddata(np.column_stack((x_points, z_points)),
                                      psi_points[:, y_slice, :].ravel(),
                                      (x_2d, z_2d), method='linear',
                                      fill_value=fill_value)

    return psi
