"""Analytic magnetic fields for tracing field lines.

Fields are evaluated at (x, z, phi), where phi is the y (toroidal)
coordinate along which field lines are followed.
"""

import numpy as np


class MagneticField:
    """Base class: a magnetic field with components Bx, By, Bz.

    Subclasses override Bxfunc, Byfunc and Bzfunc. By must not vanish
    anywhere field lines are traced.
    """

    def Bxfunc(self, x, z, phi):
        return np.zeros_like(np.asarray(x, dtype=float))

    def Byfunc(self, x, z, phi):
        return np.ones_like(np.asarray(x, dtype=float))

    def Bzfunc(self, x, z, phi):
        return np.zeros_like(np.asarray(x, dtype=float))

    def Bmag(self, x, z, phi):
        """Field strength |B|."""
        return np.sqrt(self.Bxfunc(x, z, phi)**2
                       + self.Byfunc(x, z, phi)**2
                       + self.Bzfunc(x, z, phi)**2)


class Slab(MagneticField):
    """Sheared slab field.

    Bx = 0, By = By, Bz = Bz + (x - xcentre) * Bzprime, so field lines
    stay at constant x and drift in z at a rate set by their x position.
    """

    def __init__(self, By: float = 1.0, Bz: float = 0.1, xcentre: float = 0.0,
                 Bzprime: float = 1.0):
        """Initialize slab.

        Args:
            By: Field along y
            Bz: Field along z at x = xcentre
            xcentre: Reference x position for the shear
            Bzprime: dBz/dx
        """
        self.By = float(By)
        self.Bz = float(Bz)
        self.xcentre = float(xcentre)
        self.Bzprime = float(Bzprime)

    def Byfunc(self, x, z, phi):
        return np.full_like(np.asarray(x, dtype=float), self.By)

    def Bzfunc(self, x, z, phi):
        return self.Bz + (np.asarray(x, dtype=float) - self.xcentre) * self.Bzprime
