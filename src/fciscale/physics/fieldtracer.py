"""Field-line tracing through an analytic magnetic field."""

import numpy as np
from scipy.integrate import odeint

from ..errors import InvalidParameterError
from .field import MagneticField


class FieldTracer:
    """Follow magnetic field lines in y.

    Field lines are integrated as dx/dy = Bx/By, dz/dy = Bz/By.
    """

    def __init__(self, field: MagneticField):
        self.field = field

    def field_direction(self, pos: np.ndarray, ycoord: float) -> np.ndarray:
        """Right-hand side for odeint.

        Args:
            pos: Interleaved positions [x0, z0, x1, z1, ...]
            ycoord: Current y value

        Returns:
            Interleaved [dx/dy, dz/dy] for every field line
        """
        x = pos[0::2]
        z = pos[1::2]
        by = self.field.Byfunc(x, z, ycoord)

        direction = np.empty_like(pos)
        direction[0::2] = self.field.Bxfunc(x, z, ycoord) / by
        direction[1::2] = self.field.Bzfunc(x, z, ycoord) / by
        return direction

    def follow_field_lines(self, x_values, z_values, y_values, rtol=None) -> np.ndarray:
        """Trace field lines from seed points through a sequence of y values.

        Args:
            x_values: Starting x coordinates (scalar or array)
            z_values: Starting z coordinates, broadcastable with x_values
            y_values: y values to record positions at; the first is the
                starting plane. Must be monotonic.
            rtol: Relative tolerance for the integrator (None for default)

        Returns:
            Array (len(y_values), *seed_shape, 2) of (x, z) positions
        """
        x_values, z_values = np.broadcast_arrays(np.asarray(x_values, dtype=float),
                                                 np.asarray(z_values, dtype=float))
        seed_shape = x_values.shape

        y_values = np.atleast_1d(np.asarray(y_values, dtype=float))
        if y_values.ndim != 1 or y_values.size == 0:
            raise InvalidParameterError(f"y_values must be a non-empty 1D sequence, got {y_values.shape}")

        position = np.column_stack((x_values.ravel(), z_values.ravel())).ravel()
        result = odeint(self.field_direction, position, y_values, rtol=rtol)

        return result.reshape((y_values.size,) + seed_shape + (2,))
