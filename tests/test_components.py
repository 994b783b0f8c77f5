"""Unit tests for fciscale components."""

import numpy as np
import pytest

from fciscale import (
    FieldLineMap,
    FieldTracer,
    MagneticField,
    PRESETS,
    Slab,
    StructuredGrid,
    UpscaleConfig,
    get_preset,
    make_maps,
    upscale,
)
from fciscale.errors import FCIError, InvalidParameterError, ShapeMismatchError


class TestGrid:
    """Tests for StructuredGrid class."""

    def test_grid_spacing(self):
        """Test grid spacing excludes x guard cells."""
        grid = StructuredGrid(12, 8, 6, Lx=2.0, Ly=4.0, Lz=3.0, MXG=2)

        assert grid.shape == (12, 8, 6)
        assert np.isclose(grid.delta_x, 2.0 / 8)
        assert np.isclose(grid.delta_y, 0.5)
        assert np.isclose(grid.delta_z, 0.5)

    def test_coordinate_arrays(self):
        """Test x is cell-centred with guard cells; y and z start at 0."""
        grid = StructuredGrid(8, 4, 5, Lx=1.0, Ly=1.0, Lz=1.0, MXG=2)

        assert np.allclose(grid.xarray, (np.arange(8) - 1.5) / 4)
        assert np.allclose(grid.yarray, np.arange(4) / 4)
        assert np.allclose(grid.zarray, np.arange(5) / 5)
        assert np.isclose(grid.xcentre, 0.5)
        assert np.isclose(grid.zcentre, 0.5)

    def test_index_round_trip(self):
        """Test physical_to_index inverts index_to_physical."""
        grid = StructuredGrid(10, 6, 7, Lx=3.0, Ly=2.0, Lz=5.0, MXG=1)
        i = np.array([0.0, 2.5, 9.0])
        j = np.array([0.0, 1.25, 5.0])
        k = np.array([0.5, 3.0, 6.75])

        i2, j2, k2 = grid.physical_to_index(*grid.index_to_physical(i, j, k))

        assert np.allclose(i2, i)
        assert np.allclose(j2, j)
        assert np.allclose(k2, k)

    def test_mesh(self):
        grid = StructuredGrid(6, 3, 4)

        assert grid.x_3d.shape == (6, 3, 4)
        assert np.allclose(grid.y_3d[0, :, 0], grid.yarray)
        assert np.allclose(grid.z_3d[0, 0, :], grid.zarray)

    def test_wrap_coordinates(self):
        """Test periodic wrapping in y and z."""
        grid = StructuredGrid(6, 4, 4, Ly=2.0, Lz=1.0)

        y_w, z_w = grid.wrap_coordinates(np.array([-0.5, 2.5]), np.array([1.25, -0.25]))

        assert np.allclose(y_w, [1.5, 0.5])
        assert np.allclose(z_w, [0.25, 0.75])

    @pytest.mark.parametrize("args", [(4, 4, 4), (6, 0, 4), (6, 4, 0)])
    def test_invalid_sizes(self, args):
        with pytest.raises(InvalidParameterError):
            StructuredGrid(*args, MXG=2)

    def test_invalid_length(self):
        with pytest.raises(InvalidParameterError):
            StructuredGrid(8, 4, 4, Lz=0.0)


class TestFieldLineMap:
    """Tests for FieldLineMap class."""

    def test_straight_maps(self):
        """Test straight maps send every point to its own (x, z)."""
        maps = FieldLineMap.straight((3, 4, 5))
        x, _, z = np.mgrid[0:3, 0:4, 0:5]

        assert maps.shape == (3, 4, 5)
        assert maps.has_backward
        assert np.array_equal(maps.xt_prime, x)
        assert np.array_equal(maps.zt_prime, z)
        assert np.array_equal(maps.backward_zt_prime, z)

    def test_dict_round_trip(self):
        maps = FieldLineMap.straight((3, 4, 5))

        rebuilt = FieldLineMap.from_dict(maps.to_dict())

        assert rebuilt.has_backward
        assert np.array_equal(rebuilt.xt_prime, maps.xt_prime)
        assert np.array_equal(rebuilt.backward_xt_prime, maps.backward_xt_prime)

    def test_forward_only_dict(self):
        shape = (3, 4, 5)
        maps = FieldLineMap.from_dict({"forward_xt_prime": np.zeros(shape),
                                       "forward_zt_prime": np.ones(shape)})

        assert not maps.has_backward
        assert set(maps.to_dict()) == {"forward_xt_prime", "forward_zt_prime"}

    def test_missing_key(self):
        with pytest.raises(InvalidParameterError):
            FieldLineMap.from_dict({"forward_xt_prime": np.zeros((2, 2, 2))})

    def test_mismatched_maps(self):
        with pytest.raises(ShapeMismatchError):
            FieldLineMap(np.zeros((2, 3, 4)), np.zeros((2, 3, 5)))

    def test_maps_must_be_3d(self):
        with pytest.raises(InvalidParameterError):
            FieldLineMap(np.zeros((2, 3)), np.zeros((2, 3)))

    def test_backward_needs_both(self):
        shape = (2, 3, 4)
        with pytest.raises(InvalidParameterError):
            FieldLineMap(np.zeros(shape), np.zeros(shape), backward_xt_prime=np.zeros(shape))


class TestFieldTracer:
    """Tests for field-line tracing."""

    def test_default_field_is_straight(self):
        tracer = FieldTracer(MagneticField())

        result = tracer.follow_field_lines(0.3, 0.7, [0.0, 1.0, 2.0])

        assert result.shape == (3, 2)
        assert np.allclose(result[:, 0], 0.3)
        assert np.allclose(result[:, 1], 0.7)

    def test_slab_matches_analytic(self):
        """Test traced slab field lines drift linearly in z."""
        field = Slab(By=2.0, Bz=0.1, xcentre=0.5, Bzprime=0.4)
        tracer = FieldTracer(field)
        x0, z0 = np.meshgrid(np.linspace(0, 1, 3), np.linspace(0, 1, 4), indexing='ij')
        y = np.array([0.0, 0.5, 1.5])

        result = tracer.follow_field_lines(x0, z0, y)

        assert result.shape == (3, 3, 4, 2)
        slope = (0.1 + (x0 - 0.5) * 0.4) / 2.0
        for n, y_n in enumerate(y):
            assert np.allclose(result[n, ..., 0], x0)
            assert np.allclose(result[n, ..., 1], z0 + slope * y_n, atol=1e-6)

    def test_backwards_tracing(self):
        tracer = FieldTracer(Slab(By=1.0, Bz=0.2, Bzprime=0.0))

        result = tracer.follow_field_lines(0.0, 0.0, [1.0, 0.0])

        assert np.isclose(result[1, 1], -0.2, atol=1e-6)

    def test_field_direction(self):
        tracer = FieldTracer(Slab(By=2.0, Bz=1.0, xcentre=0.0, Bzprime=1.0))

        direction = tracer.field_direction(np.array([0.0, 5.0, 1.0, 5.0]), 0.0)

        assert np.allclose(direction, [0.0, 0.5, 0.0, 1.0])

    def test_empty_y_values(self):
        with pytest.raises(InvalidParameterError):
            FieldTracer(MagneticField()).follow_field_lines(0.0, 0.0, [])


class TestMakeMaps:
    """Tests for FCI map generation."""

    def test_slab_maps(self):
        """Test slab maps shift z by the field-line drift over delta_y."""
        grid = StructuredGrid(8, 4, 6, Lx=1.0, Ly=1.0, Lz=1.0, MXG=2)
        field = Slab(By=1.0, Bz=0.1, xcentre=grid.xcentre, Bzprime=0.5)

        maps = make_maps(grid, field, quiet=True)

        x_index, _, z_index = np.mgrid[0:8, 0:4, 0:6].astype(float)
        x_phys = grid.index_to_physical(x_index, 0, 0)[0]
        shift = (0.1 + (x_phys - grid.xcentre) * 0.5) * grid.delta_y / grid.delta_z

        assert maps.shape == grid.shape
        assert np.allclose(maps.xt_prime, x_index)
        assert np.allclose(maps.zt_prime, z_index + shift, atol=1e-5)
        assert np.allclose(maps.backward_xt_prime, x_index)
        assert np.allclose(maps.backward_zt_prime, z_index - shift, atol=1e-5)

    def test_custom_tracer(self):
        """Test any object with follow_field_lines can stand in for FieldTracer."""

        class StraightTracer:
            def follow_field_lines(self, x_values, z_values, y_values, rtol=None):
                start = np.stack((x_values, z_values), axis=-1)
                return np.broadcast_to(start, (len(y_values),) + start.shape)

        grid = StructuredGrid(6, 3, 4)

        maps = make_maps(grid, quiet=True, tracer=StraightTracer())
        straight = FieldLineMap.straight(grid.shape)

        assert np.allclose(maps.xt_prime, straight.xt_prime)
        assert np.allclose(maps.zt_prime, straight.zt_prime)

    def test_needs_field_or_tracer(self):
        with pytest.raises(InvalidParameterError):
            make_maps(StructuredGrid(6, 3, 4), quiet=True)


class TestConfig:
    """Tests for UpscaleConfig and presets."""

    def test_defaults(self):
        kwargs = UpscaleConfig().as_kwargs()

        assert kwargs["upscale_factor"] == 4
        assert kwargs["order"] == 1
        assert kwargs["mode"] == "constant"
        assert kwargs["fill_value"] == 0.0

    @pytest.mark.parametrize("changes", [
        {"upscale_factor": 0},
        {"upscale_factor": 2.0},
        {"order": 7},
        {"order": True},
        {"order": 1.0},
        {"mode": "mirror"},
        {"mode": ("constant", "wrap")},
        {"workers": 0},
        {"workers": 1.5},
    ])
    def test_invalid_options(self, changes):
        with pytest.raises(InvalidParameterError):
            UpscaleConfig().with_options(**changes)

    def test_per_axis_mode(self):
        """Test a config can carry one boundary mode per axis into upscale."""
        shape = (4, 3, 5)
        cfg = UpscaleConfig(upscale_factor=2, mode=("constant", "wrap", "wrap"), workers=1)

        kwargs = cfg.as_kwargs()
        result = upscale(np.ones(shape), FieldLineMap.straight(shape), **kwargs)

        assert kwargs["mode"] == ("constant", "wrap", "wrap")
        assert result.shape == (4, 6, 5)

    def test_presets(self):
        assert get_preset("spline").order == 3
        assert get_preset("serial").workers == 1
        assert set(PRESETS) >= {"default", "spline", "serial"}

    def test_preset_is_a_copy(self):
        preset = get_preset("default")
        preset.upscale_factor = 8

        assert PRESETS["default"].upscale_factor == 4

    def test_unknown_preset(self):
        with pytest.raises(InvalidParameterError):
            get_preset("fastest")

    def test_errors_share_base(self):
        """Test all errors can be caught as FCIError or ValueError."""
        with pytest.raises(FCIError):
            get_preset("fastest")
        with pytest.raises(ValueError):
            UpscaleConfig(order=9).validate()
