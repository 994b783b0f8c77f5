"""Diagnostics on FCI grids."""

from .surfaces import make_surfaces

__all__ = ["make_surfaces"]
