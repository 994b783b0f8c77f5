"""Interpolation of structured arrays at fractional index coordinates.

Order 1 (multilinear) is written out here:
- a Numba kernel for the 3D case, which is what field-line maps need
- a vectorised NumPy version for arrays of any rank

Orders 2-5 are B-spline interpolation from scipy.ndimage.

Boundary modes, per axis:
- 'constant': coordinates outside [0, n-1] give cval
- 'nearest': coordinates are clamped into [0, n-1]
- 'wrap': periodic with period n (index n is index 0)
"""

import itertools
import logging
from typing import Sequence, Tuple, Union

import numpy as np
from numba import njit, prange
from scipy import ndimage

from ..errors import InterpolationError, InvalidParameterError

logger = logging.getLogger(__name__)

MODE_CONSTANT = 0
MODE_NEAREST = 1
MODE_WRAP = 2

_MODES = {"constant": MODE_CONSTANT, "nearest": MODE_NEAREST, "wrap": MODE_WRAP}
_SCIPY_MODES = {MODE_CONSTANT: "constant", MODE_NEAREST: "nearest", MODE_WRAP: "grid-wrap"}

# Coordinates this far outside [0, n-1] still count as on the edge
EDGE_TOL = 1e-9

Mode = Union[str, Sequence[str]]


# =============================================================================
# Numba kernels
# =============================================================================

@njit(cache=True)
def _locate(c: float, n: int, mode: int) -> Tuple[int, float, bool]:
    """Lower neighbour, weight of the upper neighbour and validity on one axis."""
    if not np.isfinite(c):
        return 0, 0.0, False

    if mode == MODE_WRAP:
        c = c - n * np.floor(c / n)
        i0 = int(np.floor(c))
        if i0 >= n:
            return 0, 0.0, True
        return i0, c - i0, True

    if mode == MODE_CONSTANT and (c < -EDGE_TOL or c > n - 1 + EDGE_TOL):
        return 0, 0.0, False

    if c < 0.0:
        c = 0.0
    elif c > n - 1:
        c = n - 1.0

    if n == 1:
        return 0, 0.0, True

    i0 = int(np.floor(c))
    if i0 > n - 2:
        i0 = n - 2
    return i0, c - i0, True


@njit(cache=True)
def _upper(i0: int, n: int, mode: int) -> int:
    """Upper neighbour index on one axis."""
    if mode == MODE_WRAP:
        return (i0 + 1) % n
    return min(i0 + 1, n - 1)


@njit(parallel=True, cache=True)
def _trilinear_3d(array: np.ndarray, cx: np.ndarray, cy: np.ndarray, cz: np.ndarray,
                  modes: np.ndarray, cval: float) -> np.ndarray:
    """Trilinear interpolation of a 3D array at n fractional index points.

    Args:
        array: Structured data (nx, ny, nz)
        cx, cy, cz: Index-space coordinates (n,)
        modes: Boundary mode code per axis (3,)
        cval: Value for points outside a 'constant' axis

    Returns:
        Interpolated values (n,)
    """
    nx, ny, nz = array.shape
    n = cx.shape[0]
    out = np.empty(n)

    for p in prange(n):
        i0, fx, okx = _locate(cx[p], nx, modes[0])
        j0, fy, oky = _locate(cy[p], ny, modes[1])
        k0, fz, okz = _locate(cz[p], nz, modes[2])

        if not (okx and oky and okz):
            out[p] = cval
            continue

        i1 = _upper(i0, nx, modes[0])
        j1 = _upper(j0, ny, modes[1])
        k1 = _upper(k0, nz, modes[2])

        gx = 1.0 - fx
        gy = 1.0 - fy
        gz = 1.0 - fz

        out[p] = (gx * gy * gz * array[i0, j0, k0]
                  + fx * gy * gz * array[i1, j0, k0]
                  + gx * fy * gz * array[i0, j1, k0]
                  + fx * fy * gz * array[i1, j1, k0]
                  + gx * gy * fz * array[i0, j0, k1]
                  + fx * gy * fz * array[i1, j0, k1]
                  + gx * fy * fz * array[i0, j1, k1]
                  + fx * fy * fz * array[i1, j1, k1])

    return out


# =============================================================================
# Vectorised NumPy version (any rank)
# =============================================================================

def _locate_axis(c: np.ndarray, n: int, mode: int) -> tuple:
    """Vectorised counterpart of _locate.

    Returns:
        (lower, upper, frac, valid) arrays shaped like c
    """
    finite = np.isfinite(c)
    c = np.where(finite, c, 0.0)

    if mode == MODE_WRAP:
        c = np.mod(c, n)
        floor_c = np.floor(c)
        frac = c - floor_c
        lower = floor_c.astype(np.intp) % n
        # np.mod can round tiny negatives up to n
        frac = np.where(floor_c >= n, 0.0, frac)
        return lower, (lower + 1) % n, frac, finite

    valid = finite
    if mode == MODE_CONSTANT:
        valid = finite & (c >= -EDGE_TOL) & (c <= n - 1 + EDGE_TOL)
    c = np.clip(c, 0.0, n - 1)

    if n == 1:
        zeros = np.zeros(c.shape, dtype=np.intp)
        return zeros, zeros, np.zeros(c.shape), valid

    lower = np.minimum(np.floor(c).astype(np.intp), n - 2)
    return lower, lower + 1, c - lower, valid


def _multilinear(array: np.ndarray, coords: np.ndarray, modes: np.ndarray,
                 cval: float) -> np.ndarray:
    """Multilinear interpolation at coords (ndim, n) using 2**ndim corners."""
    located = [_locate_axis(coords[axis], array.shape[axis], modes[axis])
               for axis in range(array.ndim)]

    out = np.zeros(coords.shape[1])
    for corner in itertools.product((0, 1), repeat=array.ndim):
        index = []
        weight = np.ones(coords.shape[1])
        for bit, (lower, upper, frac, _) in zip(corner, located):
            if bit:
                index.append(upper)
                weight = weight * frac
            else:
                index.append(lower)
                weight = weight * (1.0 - frac)
        out += weight * array[tuple(index)]

    valid = np.logical_and.reduce([loc[3] for loc in located])
    out[~valid] = cval
    return out


# =============================================================================
# Public interface
# =============================================================================

def check_order(order) -> int:
    """Interpolation order as an int in 1-5; bools and floats are rejected."""
    if isinstance(order, (bool, np.bool_)) or not isinstance(order, (int, np.integer)) \
            or not 1 <= order <= 5:
        raise InvalidParameterError(f"Interpolation order must be an integer 1-5, got {order!r}")
    return int(order)


def resolve_modes(mode: Mode, ndim: int) -> np.ndarray:
    """Turn a mode name, or one name per axis, into an array of mode codes."""
    names = [mode] * ndim if isinstance(mode, str) else list(mode)
    if len(names) != ndim:
        raise InvalidParameterError(
            f"Expected 1 or {ndim} boundary modes, got {len(names)}")
    try:
        return np.array([_MODES[name] for name in names], dtype=np.int64)
    except KeyError as err:
        raise InvalidParameterError(
            f"Unknown boundary mode {err.args[0]!r}; expected one of {sorted(_MODES)}"
        ) from None


def map_coordinates(array: np.ndarray, coordinates: np.ndarray, order: int = 1,
                    mode: Mode = "constant", cval: float = 0.0) -> np.ndarray:
    """Sample a structured array at fractional index coordinates.

    Args:
        array: Structured data of any rank
        coordinates: Index-space coordinates, shape (array.ndim, ...)
        order: 1 for multilinear, 2-5 for B-spline interpolation
        mode: Boundary mode name, or one name per axis (order 1 only)
        cval: Value used outside 'constant' axes

    Returns:
        Interpolated values, shape coordinates.shape[1:]
    """
    array = np.asarray(array, dtype=np.float64)
    coordinates = np.asarray(coordinates, dtype=np.float64)

    if coordinates.ndim < 1 or coordinates.shape[0] != array.ndim:
        raise InvalidParameterError(
            f"Coordinates for a {array.ndim}D array must have leading dimension "
            f"{array.ndim}, got shape {coordinates.shape}")
    if array.size == 0:
        raise InvalidParameterError("Cannot interpolate an empty array")

    order = check_order(order)
    modes = resolve_modes(mode, array.ndim)
    out_shape = coordinates.shape[1:]
    flat = coordinates.reshape(array.ndim, -1)

    if order == 1:
        if array.ndim == 3:
            values = _trilinear_3d(np.ascontiguousarray(array),
                                   np.ascontiguousarray(flat[0]),
                                   np.ascontiguousarray(flat[1]),
                                   np.ascontiguousarray(flat[2]),
                                   modes, float(cval))
        else:
            values = _multilinear(array, flat, modes, float(cval))
    else:
        if len(set(modes.tolist())) != 1:
            raise InvalidParameterError("Per-axis boundary modes require order=1")
        try:
            values = ndimage.map_coordinates(array, flat, order=order,
                                             mode=_SCIPY_MODES[int(modes[0])],
                                             cval=cval)
        except (RuntimeError, ValueError) as err:
            raise InterpolationError(f"Spline interpolation failed: {err}") from err

    return values.reshape(out_shape)
