"""Structured and scattered interpolation."""

from .coordinates import map_coordinates
from .scattered import griddata

__all__ = ["map_coordinates", "griddata"]
