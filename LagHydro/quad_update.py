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
"""Update of stress, length scale and time step estimate at quadrature points."""
import numpy as np
import numpy.typing as npt
from typing import TYPE_CHECKING

from .exceptions import GeometryFault
from .state import HydroState, StateLayout

if TYPE_CHECKING:
    from .fem import H1Space, L2Space, IntegrationRule
    from .models import IdealGas
    from .quad_data import QuadratureData

NDArray = npt.NDArray[np.floating]


def symmetrize(A: NDArray) -> NDArray:
    return 0.5 * (A + np.swapaxes(A, -1, -2))


def compression_direction(sgrad_v: NDArray) -> tuple[NDArray, NDArray]:
    """Eigenpair of the most negative eigenvalue of a symmetric velocity gradient.

    Eigenvalues come in ascending order, so the first pair describes the
    direction of maximal compression. For repeated eigenvalues any vector of
    the eigenspace is returned; it only enters a length ratio.

    Returns
    -------
    mu : NDArray
        Smallest eigenvalue, shape (...).
    direction : NDArray
        Unit eigenvector, shape (..., dim).
    """
    eig_val, eig_vec = np.linalg.eigh(sgrad_v)
    return eig_val[..., 0], eig_vec[..., :, 0]


class QuadratureUpdate:
    """
    Recomputes all time dependent quadrature data from a state vector.

    Every call rebuilds the data of all owned zones from scratch; the result
    is memoized against the state it was computed from.

    Parameters
    ----------
    quad_data : QuadratureData
        Store to write into.
    h1, l2 : H1Space, L2Space
        Velocity/position and energy spaces.
    rule : IntegrationRule
        Quadrature rule shared by all zones.
    material : IdealGas
        Material with ``pressure(rho, e)`` and ``sound_speed(e)``.
    cfl : float
        CFL number of the time step estimate.
    use_viscosity : bool
        Add the tensor artificial viscosity to the stress.
    """

    def __init__(self,
                 quad_data: "QuadratureData",
                 h1: "H1Space",
                 l2: "L2Space",
                 rule: "IntegrationRule",
                 material: "IdealGas",
                 cfl: float,
                 use_viscosity: bool):
        self.quad_data = quad_data
        self.h1 = h1
        self.l2 = l2
        self.rule = rule
        self.material = material
        self.cfl = cfl
        self.use_viscosity = use_viscosity
        self.layout = StateLayout(h1.vsize, l2.nb_dofs)

        self.nb_updates = 0

    def update(self, S: NDArray) -> None:
        qd = self.quad_data
        if qd.is_current_for(S):
            return

        state = HydroState.from_vector(S, self.layout)
        dim = self.h1.dim
        nz, nqp = qd.nb_zones, qd.nqp
        w = self.rule.weights

        if nz == 0:
            qd.mark_current(S)
            return

        # Geometry of the current configuration
        Jpr = self.h1.jacobians(state.x, self.rule)
        detJ = np.linalg.det(Jpr)
        self._check_jacobians(detJ)
        Jinv = np.linalg.inv(Jpr)

        # Pointwise mass conservation
        rho = qd.by_zone('rho0_detj0_w') / detJ / w
        e = np.maximum(self.l2.values(state.e, self.rule), 0.)

        stress = -self.material.pressure(rho, e)[..., None, None] * np.eye(dim)

        # Physical velocity gradient: dv/dx = dv/dxi . dxi/dx
        grad_v = self.h1.reference_gradients(state.v, self.rule) @ Jinv
        sgrad_v = symmetrize(grad_v)
        mu, compr_dir = compression_direction(sgrad_v)

        # Change of the initial length scale along the compression direction
        Jpi = Jpr @ qd.by_zone('jac0inv')
        ph_dir = np.einsum('zqab,zqb->zqa', Jpi, compr_dir)
        h = qd.h0 * np.linalg.norm(ph_dir, axis=-1) / np.linalg.norm(compr_dir, axis=-1)

        cs = self.material.sound_speed(e)
        dt = np.full_like(h, np.inf)
        np.divide(self.cfl * h, cs, out=dt, where=cs > 0.)
        qd.dt_est = min(qd.dt_est, float(dt.min()))

        if self.use_viscosity:
            visc_coeff = 2. * rho * h * h * np.abs(mu)
            visc_coeff += np.where(mu < 0., 0.5 * rho * h * cs, 0.)
            stress += visc_coeff[..., None, None] * sgrad_v

        stress_jinv_t = stress @ np.swapaxes(Jinv, -1, -2)
        stress_jinv_t *= (w[None, :] * detJ)[..., None, None]

        qd.stress[:] = stress.reshape(nz * nqp, dim, dim)
        qd.jac[:] = Jpr.reshape(nz * nqp, dim, dim)
        qd.stress_jinv_t[:] = stress_jinv_t.reshape(nz * nqp, dim, dim)

        qd.mark_current(S)
        self.nb_updates += 1

    def _check_jacobians(self, detJ: NDArray) -> None:
        if not np.all(detJ > 0.):
            z, q = np.unravel_index(np.argmin(detJ), detJ.shape)
            raise GeometryFault(float(detJ[z, q]), zone=int(self.h1.zones[z]), point=int(q))
