"""Run options for field-line upscaling."""

from dataclasses import asdict, dataclass, replace
from typing import Optional

from .errors import InvalidParameterError
from .numerics.coordinates import Mode, check_order, resolve_modes


@dataclass
class UpscaleConfig:
    """Options for upscale().

    Attributes:
        upscale_factor: Number of output y-slices per input y-slice
        order: Interpolation order onto field-line end points (1-5)
        mode: Boundary mode for end points outside the grid
        cval: End-point value outside the grid in 'constant' mode
        fill_value: Regridded value outside the convex hull of a slice
        workers: Threads for per-slice regridding (None: one per CPU)
        progress: Show tqdm progress bar over slices
    """
    upscale_factor: int = 4
    order: int = 1
    mode: Mode = "constant"
    cval: float = 0.0
    fill_value: float = 0.0
    workers: Optional[int] = None
    progress: bool = False

    def validate(self) -> 'UpscaleConfig':
        if isinstance(self.upscale_factor, bool) or not isinstance(self.upscale_factor, int) \
                or self.upscale_factor < 1:
            raise InvalidParameterError(
                f"upscale_factor must be an integer >= 1, got {self.upscale_factor!r}")
        check_order(self.order)
        # One mode for all axes, or one per (x, y, z) axis
        resolve_modes(self.mode, 3)
        if self.workers is not None and (isinstance(self.workers, bool)
                                         or not isinstance(self.workers, int) or self.workers < 1):
            raise InvalidParameterError(f"workers must be >= 1 or None, got {self.workers!r}")
        return self

    def as_kwargs(self) -> dict:
        """Keyword arguments for upscale(field, maps, **kwargs)."""
        return asdict(self.validate())

    def with_options(self, **changes) -> 'UpscaleConfig':
        return replace(self, **changes).validate()


PRESETS = {
    "default": UpscaleConfig(),
    # Cubic spline onto end points, as map_coordinates does by default
    "spline": UpscaleConfig(order=3),
    "serial": UpscaleConfig(workers=1),
}


def get_preset(name: str) -> UpscaleConfig:
    try:
        return replace(PRESETS[name])
    except KeyError:
        raise InvalidParameterError(
            f"Unknown preset {name!r}; expected one of {sorted(PRESETS)}") from None
