"""fciscale: field-line upscaling of FCI simulation output."""

from .core.grid import StructuredGrid
from .core.maps import FieldLineMap, make_maps
from .core.upscale import upscale, sample_field_lines, twizzle, regrid_slices
from .numerics.coordinates import map_coordinates
from .numerics.scattered import griddata
from .physics.field import MagneticField, Slab
from .physics.fieldtracer import FieldTracer
from .diagnostics.surfaces import make_surfaces
from .config import UpscaleConfig, PRESETS, get_preset
from .errors import (
    FCIError,
    InvalidParameterError,
    ShapeMismatchError,
    InterpolationError,
)

__version__ = "0.1.0"
__all__ = [
    # Grid and maps
    "StructuredGrid",
    "FieldLineMap",
    "make_maps",
    # Upscaling
    "upscale",
    "sample_field_lines",
    "twizzle",
    "regrid_slices",
    # Interpolation
    "map_coordinates",
    "griddata",
    # Fields and tracing
    "MagneticField",
    "Slab",
    "FieldTracer",
    # Diagnostics
    "make_surfaces",
    # Configuration
    "UpscaleConfig",
    "PRESETS",
    "get_preset",
    # Errors
    "FCIError",
    "InvalidParameterError",
    "ShapeMismatchError",
    "InterpolationError",
]
