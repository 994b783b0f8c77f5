"""Scattered-data interpolation of 2D point clouds onto target points.

Linear interpolation is done explicitly: the cloud is triangulated with
scipy.spatial.Delaunay, each target point is located in a triangle and
the value is the barycentric average of the triangle's vertices. Target
points outside the convex hull of the cloud get fill_value.

A cloud whose points all lie on one line (e.g. a grid with a single x or
z point) has no triangulation; it is interpolated along the line instead,
and targets off the line get fill_value.
"""

import logging

import numpy as np
from scipy import interpolate
from scipy.spatial import Delaunay, QhullError

from ..errors import InterpolationError, InvalidParameterError

logger = logging.getLogger(__name__)

METHODS = ("linear", "nearest", "cubic")

# Relative tolerance for treating a cloud as lying on a line
FLAT_TOL = 1e-10


def _target_points(xi) -> tuple:
    """Flatten target points to (M, 2), remembering the output shape.

    xi is either a tuple of two equally shaped coordinate arrays (as from
    np.meshgrid) or an array whose last dimension is 2.
    """
    if isinstance(xi, tuple):
        if len(xi) != 2:
            raise InvalidParameterError(f"Expected 2 coordinate arrays, got {len(xi)}")
        xs, zs = np.broadcast_arrays(np.asarray(xi[0], dtype=float),
                                     np.asarray(xi[1], dtype=float))
        return np.column_stack((xs.ravel(), zs.ravel())), xs.shape

    xi = np.asarray(xi, dtype=float)
    if xi.shape[-1] != 2:
        raise InvalidParameterError(f"Target points must have last dimension 2, got {xi.shape}")
    return xi.reshape(-1, 2), xi.shape[:-1]


def _flat_tolerance(points: np.ndarray) -> float:
    return FLAT_TOL * max(float(np.ptp(points, axis=0).max()), 1.0)


def is_colinear(points: np.ndarray) -> bool:
    """True if a finite, non-empty cloud has all its points on one line."""
    if points.shape[0] == 0 or not np.all(np.isfinite(points)):
        return False
    offsets = points - points.mean(axis=0)
    return np.linalg.matrix_rank(offsets, tol=_flat_tolerance(points)) < 2


def line_interpolate(points: np.ndarray, values: np.ndarray, xi: np.ndarray,
                     fill_value: float = np.nan) -> np.ndarray:
    """Linear interpolation of a colinear cloud along its line.

    Args:
        points: Colinear source points (N, 2)
        values: Value at each source point (N,)
        xi: Target points (M, 2)
        fill_value: Value for targets off the line or beyond its ends

    Returns:
        Interpolated values (M,)
    """
    centre = points.mean(axis=0)
    offsets = points - centre
    _, _, vt = np.linalg.svd(offsets, full_matrices=False)
    direction = vt[0]
    normal = np.array([-direction[1], direction[0]])

    position = offsets @ direction
    order = np.argsort(position, kind='stable')
    position = position[order]

    target_offsets = xi - centre
    target_position = target_offsets @ direction
    tol = _flat_tolerance(points)
    on_line = ((np.abs(target_offsets @ normal) <= tol)
               & (target_position >= position[0] - tol)
               & (target_position <= position[-1] + tol))

    out = np.full(xi.shape[0], fill_value, dtype=float)
    out[on_line] = np.interp(target_position[on_line], position, values[order])
    return out


def triangulate(points: np.ndarray) -> Delaunay:
    """Delaunay triangulation of a 2D point cloud.

    Raises:
        InterpolationError: if the cloud cannot be triangulated (too few
            points, all points colinear, non-finite coordinates)
    """
    try:
        return Delaunay(points)
    except (QhullError, ValueError) as err:
        raise InterpolationError(
            f"Triangulation of {len(points)} points failed: {err}") from err


def barycentric_interpolate(tri: Delaunay, values: np.ndarray, xi: np.ndarray,
                            fill_value: float = np.nan) -> np.ndarray:
    """Linear interpolation of vertex values over a triangulation.

    Args:
        tri: Triangulation of the source points
        values: Value at each source point (N,)
        xi: Target points (M, 2)
        fill_value: Value for targets outside the convex hull

    Returns:
        Interpolated values (M,)
    """
    simplex = tri.find_simplex(xi)
    inside = simplex >= 0

    out = np.full(xi.shape[0], fill_value, dtype=float)
    if not np.any(inside):
        return out

    found = simplex[inside]
    # transform[s] maps (x - r_n) to the first two barycentric coordinates
    transform = tri.transform[found]
    delta = xi[inside] - transform[:, 2, :]
    bary = np.einsum("ijk,ik->ij", transform[:, :2, :], delta)
    weights = np.column_stack((bary, 1.0 - bary.sum(axis=1)))

    vertex_values = values[tri.simplices[found]]
    out[inside] = np.einsum("ij,ij->i", vertex_values, weights)
    return out


def griddata(points: np.ndarray, values: np.ndarray, xi, method: str = "linear",
             fill_value: float = np.nan) -> np.ndarray:
    """Interpolate unstructured 2D data onto target points.

    Args:
        points: Source point coordinates (N, 2)
        values: Source values (N,)
        xi: Target points, (M, 2) array or tuple of two coordinate arrays
        method: 'linear' (barycentric), 'nearest' or 'cubic'
        fill_value: Value outside the convex hull (ignored by 'nearest')

    Returns:
        Interpolated values shaped like the target coordinate arrays
    """
    if method not in METHODS:
        raise InvalidParameterError(f"Unknown method {method!r}; expected one of {METHODS}")

    points = np.asarray(points, dtype=float)
    values = np.asarray(values, dtype=float).ravel()
    if points.ndim != 2 or points.shape[1] != 2:
        raise InvalidParameterError(f"Points must have shape (N, 2), got {points.shape}")
    if values.shape[0] != points.shape[0]:
        raise InvalidParameterError(
            f"Got {values.shape[0]} values for {points.shape[0]} points")

    targets, out_shape = _target_points(xi)

    if method == "linear" and is_colinear(points):
        logger.debug("%d colinear points; interpolating along the line", len(points))
        result = line_interpolate(points, values, targets, fill_value)
    elif method == "linear":
        tri = triangulate(points)
        result = barycentric_interpolate(tri, values, targets, fill_value)
    else:
        try:
            result = interpolate.griddata(points, values, targets, method=method,
                                          fill_value=fill_value)
        except (QhullError, ValueError) as err:
            raise InterpolationError(f"{method} interpolation failed: {err}") from err

    return result.reshape(out_shape)
