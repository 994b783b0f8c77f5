"""Increase the y-resolution of a field along FCI field-line maps.

First, interpolate onto the (forward) field-line end points, as in the
normal FCI technique. Then interpolate between start and end points,
along with the x and z indices of the field line. This gives a cloud of
points along the field lines, unstructured only in (x, z), which is
finally interpolated back onto the regular (x, z) grid one y-slice at a
time.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Optional

import numpy as np
from tqdm import tqdm

from ..errors import InterpolationError, InvalidParameterError, ShapeMismatchError
from ..numerics.coordinates import Mode, check_order, map_coordinates, resolve_modes
from ..numerics.scattered import griddata
from .maps import FieldLineMap, as_field_line_map

logger = logging.getLogger(__name__)


def _check_upscale_factor(upscale_factor) -> int:
    if isinstance(upscale_factor, (bool, np.bool_)) or not isinstance(upscale_factor, (int, np.integer)):
        raise InvalidParameterError(
            f"upscale_factor must be an integer, got {upscale_factor!r}")
    if upscale_factor < 1:
        raise InvalidParameterError(f"upscale_factor must be >= 1, got {upscale_factor}")
    return int(upscale_factor)


def _check_workers(workers: Optional[int]) -> int:
    """Thread count, with None meaning one per CPU."""
    if workers is None:
        return os.cpu_count() or 1
    if isinstance(workers, (bool, np.bool_)) or not isinstance(workers, (int, np.integer)) \
            or workers < 1:
        raise InvalidParameterError(f"workers must be an integer >= 1 or None, got {workers!r}")
    return int(workers)


def conform_field(field: np.ndarray, shape: tuple) -> np.ndarray:
    """Bring field into the grid shape (nx, ny, nz).

    A field of the right size but different shape is reinterpreted by
    reshaping to the reversed shape and transposing.

    Raises:
        ShapeMismatchError: if the sizes are incompatible
    """
    field = np.asarray(field, dtype=float)
    if field.shape == tuple(shape):
        return field
    try:
        return field.reshape(tuple(shape)[::-1]).T
    except ValueError:
        raise ShapeMismatchError(field.shape, shape) from None


def sample_field_lines(field: np.ndarray, maps: FieldLineMap, upscale_factor: int,
                       order: int = 1, mode: Mode = "constant",
                       cval: float = 0.0) -> tuple:
    """Sample field value, x-index and z-index along every forward field line.

    Samples are at t = k / upscale_factor for k = 0 .. upscale_factor - 1;
    t = 1 is left to the next y-slice's t = 0.

    Args:
        field: Field already in the maps' shape (nx, ny, nz)
        maps: Field-line maps
        upscale_factor: Number of samples per field-line segment
        order: Interpolation order onto the end points
        mode: Boundary mode for end points outside the grid
        cval: Value for end points outside the grid in 'constant' mode

    Returns:
        (values, x, z), each (upscale_factor, nx, ny, nz)
    """
    nx, ny, nz = maps.shape
    index = np.mgrid[0:nx, 0:ny, 0:nz].astype(float)

    # Forward maps end on the *next* y-slice, wrapping at the last one
    y_next = (index[1] + 1) % ny
    end_points = np.array([maps.xt_prime, y_next, maps.zt_prime])
    field_prime = map_coordinates(field, end_points, order=order, mode=mode, cval=cval)

    t = (np.arange(upscale_factor) / upscale_factor)[:, np.newaxis, np.newaxis, np.newaxis]

    values = field + t * (field_prime - field)
    x = index[0] + t * (maps.xt_prime - index[0])
    z = index[2] + t * (maps.zt_prime - index[2])

    return values, x, z


def twizzle(array: np.ndarray) -> np.ndarray:
    """Interleave samples [k, x, y, z] into [x, y * upscale_factor + k, z]."""
    upscale_factor, nx, ny, nz = array.shape
    return array.transpose((1, 2, 0, 3)).reshape((nx, upscale_factor * ny, nz))


def regrid_slices(hires_x: np.ndarray, hires_z: np.ndarray, hires_field: np.ndarray,
                  fill_value: float = 0.0, workers: Optional[int] = None,
                  progress: bool = False) -> np.ndarray:
    """Interpolate each y-slice of a field-line point cloud onto the (x, z) grid.

    Args:
        hires_x, hires_z: x and z indices of the samples (nx, nslices, nz)
        hires_field: Field value of the samples (nx, nslices, nz)
        fill_value: Value outside the convex hull of a slice's points
        workers: Number of threads; 1 regrids serially in this thread
        progress: Show tqdm progress bar

    Returns:
        Regridded field (nx, nslices, nz)

    Raises:
        InterpolationError: with slice_index set, for the first failed slice
    """
    nx, nslices, nz = hires_field.shape
    workers = _check_workers(workers)

    x_grid, z_grid = np.meshgrid(np.arange(nx), np.arange(nz), indexing='ij')
    grid_points = (x_grid, z_grid)

    def regrid(k: int) -> np.ndarray:
        points = np.column_stack((hires_x[:, k, :].ravel(), hires_z[:, k, :].ravel()))
        try:
            return griddata(points, hires_field[:, k, :].ravel(), grid_points,
                            method='linear', fill_value=fill_value)
        except InterpolationError as err:
            raise InterpolationError(str(err), slice_index=k) from err

    hires_grid_field = np.zeros((nx, nslices, nz))
    workers = min(workers, nslices)
    logger.debug("Regridding %d y-slices on %d worker(s)", nslices, workers)

    if workers <= 1:
        for k in tqdm(range(nslices), desc="Upscaling", disable=not progress):
            hires_grid_field[:, k, :] = regrid(k)
        return hires_grid_field

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {executor.submit(regrid, k): k for k in range(nslices)}
        try:
            for future in tqdm(as_completed(futures), total=nslices,
                               desc="Upscaling", disable=not progress):
                # Each slice owns a disjoint region of the output
                hires_grid_field[:, futures[future], :] = future.result()
        except BaseException:
            for future in futures:
                future.cancel()
            raise

    return hires_grid_field


def upscale(field: np.ndarray, maps, upscale_factor: int = 4, *,
            order: int = 1, mode: Mode = "constant", cval: float = 0.0,
            fill_value: float = 0.0, workers: Optional[int] = None,
            progress: bool = False) -> np.ndarray:
    """Increase the resolution in y of field along the FCI maps.

    Args:
        field: 3D field to be upscaled, shape of the maps (nx, ny, nz)
        maps: FieldLineMap, or dict with 'forward_xt_prime' and
            'forward_zt_prime'
        upscale_factor: Factor to increase resolution by
        order: Interpolation order onto field-line end points (1-5)
        mode: Boundary mode for end points outside the grid
        cval: End-point value outside the grid in 'constant' mode
        fill_value: Value outside the convex hull of each slice's points
        workers: Threads for per-slice regridding (None: one per CPU)
        progress: Show progress bar

    Returns:
        Field with y-resolution increased upscale_factor times. Shape is
        (nx, upscale_factor*ny, nz).
    """
    upscale_factor = _check_upscale_factor(upscale_factor)
    order = check_order(order)
    resolve_modes(mode, 3)
    workers = _check_workers(workers)

    maps = as_field_line_map(maps)
    field = conform_field(field, maps.shape)
    nx, ny, nz = maps.shape

    if not np.all(np.isfinite(field)):
        logger.warning("Field contains non-finite values; they will spread along field lines")

    logger.info("Upscaling field of shape %s by %d in y", maps.shape, upscale_factor)

    hires_field, hires_x, hires_z = sample_field_lines(
        field, maps, upscale_factor, order=order, mode=mode, cval=cval)

    # Rearrange arrays to be 3D: y is now on the final regular grid
    hires_field = twizzle(hires_field)
    hires_x = twizzle(hires_x)
    hires_z = twizzle(hires_z)

    result = regrid_slices(hires_x, hires_z, hires_field, fill_value=fill_value,
                           workers=workers, progress=progress)

    logger.info("Upscaled to shape %s", result.shape)
    return result
