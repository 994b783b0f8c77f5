"""Structured grid for FCI field-line maps."""

import numpy as np

from ..errors import InvalidParameterError


class StructuredGrid:
    """Rectangular (x, y, z) grid with y the periodic field-line direction.

    x is cell-centred with MXG guard cells on each side; y and z are
    periodic and start at 0 (no endpoint).

    Attributes:
        nx, ny, nz: Number of points in x, y and z (nx includes guard cells)
        Lx, Ly, Lz: Domain lengths (Lx excludes guard cells)
        MXG: Number of x guard cells on each side
        delta_x, delta_y, delta_z: Grid spacing
        xarray, yarray, zarray: 1D physical coordinates
        xcentre, zcentre: Middle of the x and z domains
    """

    def __init__(self, nx: int, ny: int, nz: int,
                 Lx: float = 1.0, Ly: float = 2 * np.pi, Lz: float = 1.0,
                 MXG: int = 2):
        """Initialize grid.

        Args:
            nx: Number of x points, including 2*MXG guard cells
            ny: Number of y points
            nz: Number of z points
            Lx: Domain length in x, excluding guard cells
            Ly: Domain length in y (one period)
            Lz: Domain length in z (one period)
            MXG: Number of guard cells on each x boundary
        """
        if min(ny, nz) < 1 or MXG < 0 or nx - 2 * MXG < 1:
            raise InvalidParameterError(
                f"Grid needs ny, nz >= 1 and nx > 2*MXG, got "
                f"nx={nx}, ny={ny}, nz={nz}, MXG={MXG}")
        if min(Lx, Ly, Lz) <= 0:
            raise InvalidParameterError(f"Domain lengths must be positive, got {(Lx, Ly, Lz)}")

        self.nx = nx
        self.ny = ny
        self.nz = nz
        self.Lx = Lx
        self.Ly = Ly
        self.Lz = Lz
        self.MXG = MXG

        self.delta_x = Lx / (nx - 2 * MXG)
        self.delta_y = Ly / ny
        self.delta_z = Lz / nz

        self.xarray, self.yarray, self.zarray = self.index_to_physical(
            np.arange(nx), np.arange(ny), np.arange(nz))

        self.xcentre = 0.5 * Lx
        self.zcentre = 0.5 * Lz

    @property
    def shape(self) -> tuple:
        return (self.nx, self.ny, self.nz)

    @property
    def x_3d(self) -> np.ndarray:
        return self.mesh()[0]

    @property
    def y_3d(self) -> np.ndarray:
        return self.mesh()[1]

    @property
    def z_3d(self) -> np.ndarray:
        return self.mesh()[2]

    def mesh(self) -> tuple:
        """3D physical coordinate arrays (nx, ny, nz), 'ij' indexing."""
        return np.meshgrid(self.xarray, self.yarray, self.zarray, indexing='ij')

    def index_to_physical(self, i, j, k) -> tuple:
        """Convert (possibly fractional) logical indices to physical coordinates.

        Args:
            i, j, k: x, y and z indices

        Returns:
            (x, y, z) physical coordinates
        """
        x = (np.asarray(i, dtype=float) - self.MXG + 0.5) * self.delta_x
        y = np.asarray(j, dtype=float) * self.delta_y
        z = np.asarray(k, dtype=float) * self.delta_z
        return x, y, z

    def physical_to_index(self, x, y, z) -> tuple:
        """Convert physical coordinates to fractional logical indices.

        No wrapping is applied; y and z outside one period give indices
        outside [0, ny) and [0, nz).
        """
        i = (self.MXG - 0.5) + np.asarray(x, dtype=float) / self.delta_x
        j = np.asarray(y, dtype=float) / self.delta_y
        k = np.asarray(z, dtype=float) / self.delta_z
        return i, j, k

    def wrap_coordinates(self, y, z) -> tuple:
        """Apply periodic boundary conditions in y and z."""
        return np.mod(y, self.Ly), np.mod(z, self.Lz)

    def __repr__(self):
        return (f"StructuredGrid(nx={self.nx}, ny={self.ny}, nz={self.nz}, "
                f"Lx={self.Lx}, Ly={self.Ly}, Lz={self.Lz}, MXG={self.MXG})")
