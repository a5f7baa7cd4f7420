#
# Copyright 2026 Hannes Holey
#
# ### MIT License
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all
# copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.
#
"""Storage for all data needed at quadrature points."""
import numpy as np
import numpy.typing as npt

NDArray = npt.NDArray[np.floating]

# Recomputed on every update
TIME_DEPENDENT_FIELDS = ('stress', 'jac', 'stress_jinv_t')

# Computed once from the initial mesh and density
REFERENCE_FIELDS = ('jac0inv', 'rho0_detj0', 'rho0_detj0_w')


class QuadratureData:
    """Per quadrature point arrays of the locally owned zones.

    Entries are addressed by the flat index ``zone * nqp + point``, where
    ``zone`` is the position of the zone in ``mesh.zones``.

    Parameters
    ----------
    dim : int
        Spatial dimension.
    nb_zones : int
        Number of locally owned zones.
    nqp : int
        Quadrature points per zone.

    Attributes
    ----------
    stress : NDArray
        Cauchy stress, shape (n, dim, dim).
    jac : NDArray
        Current reference to physical Jacobian, shape (n, dim, dim).
    jac0inv : NDArray
        Inverse Jacobian of the initial mesh, shape (n, dim, dim).
    stress_jinv_t : NDArray
        Force coefficients ``stress . J^{-T} * w * det(J)``, shape (n, dim, dim).
    rho0_detj0 : NDArray
        Initial density times initial ``det(J)``, shape (n,).
    rho0_detj0_w : NDArray
        ``rho0_detj0`` times the quadrature weight, shape (n,). Pointwise mass
        conservation gives ``rho = rho0_detj0_w / det(J) / w``.
    h0 : float
        Initial length scale, shared by all points.
    dt_est : float
        Running minimum of the stable time step over all points.
    """

    def __init__(self, dim: int, nb_zones: int, nqp: int):
        self.dim = dim
        self.nb_zones = nb_zones
        self.nqp = nqp

        n = nb_zones * nqp
        self.stress = np.zeros((n, dim, dim))
        self.jac = np.zeros((n, dim, dim))
        self.jac0inv = np.zeros((n, dim, dim))
        self.stress_jinv_t = np.zeros((n, dim, dim))
        self.rho0_detj0 = np.zeros(n)
        self.rho0_detj0_w = np.zeros(n)

        self.h0 = 0.
        self.dt_est = np.inf

        self._is_current = False
        self._snapshot: NDArray | None = None

    @property
    def size(self) -> int:
        return self.nb_zones * self.nqp

    def index(self, zone: int, point: int) -> int:
        return zone * self.nqp + point

    def _field(self, name: str) -> NDArray:
        if name not in TIME_DEPENDENT_FIELDS + REFERENCE_FIELDS:
            raise KeyError(f"Unknown quadrature field '{name}'")
        return getattr(self, name)

    def get(self, name: str, zone: int, point: int):
        return self._field(name)[self.index(zone, point)]

    def set(self, name: str, zone: int, point: int, value) -> None:
        self._field(name)[self.index(zone, point)] = value

    def by_zone(self, name: str) -> NDArray:
        """View of a field with leading shape (nb_zones, nqp)."""
        arr = self._field(name)
        return arr.reshape((self.nb_zones, self.nqp) + arr.shape[1:])

    # ---------------------------
    # Freshness
    # ---------------------------

    @property
    def is_current(self) -> bool:
        return self._is_current

    def is_current_for(self, S: NDArray) -> bool:
        """True if the time dependent fields were computed from state ``S``."""
        return (self._is_current
                and self._snapshot is not None
                and self._snapshot.shape == S.shape
                and np.array_equal(self._snapshot, S))

    def mark_current(self, S: NDArray) -> None:
        self._snapshot = np.array(S, copy=True)
        self._is_current = True

    def invalidate(self) -> None:
        self._is_current = False
        self._snapshot = None

    def reset_time_step_estimate(self) -> None:
        self.dt_est = np.inf
