"""Exceptions raised by fciscale."""

from typing import Optional, Tuple


class FCIError(Exception):
    """Base class for all fciscale errors."""


class InvalidParameterError(FCIError, ValueError):
    """A parameter is outside its allowed range or set of values."""


class ShapeMismatchError(FCIError, ValueError):
    """A field cannot be brought into the shape of the grid/maps."""

    def __init__(self, field_shape: Tuple[int, ...], grid_shape: Tuple[int, ...]):
        self.field_shape = tuple(field_shape)
        self.grid_shape = tuple(grid_shape)
        super().__init__(
            f"Field, {self.field_shape}, must be same shape as grid, {self.grid_shape}"
        )


class InterpolationError(FCIError, RuntimeError):
    """Structured or scattered interpolation failed.

    Attributes:
        slice_index: Output y-slice being regridded when the failure
            occurred, or None if the failure is not tied to a slice.
    """

    def __init__(self, message: str, slice_index: Optional[int] = None):
        self.slice_index = slice_index
        if slice_index is not None:
            message = f"y-slice {slice_index}: {message}"
        super().__init__(message)
