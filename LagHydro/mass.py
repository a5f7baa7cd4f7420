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
"""Mass operators of the velocity (one component at a time) and energy spaces.

Mass conservation makes ``rho * det(J)`` constant in time at every
quadrature point, so both mass matrices only depend on the initial data
``rho0_detj0_w`` and never change during a run.
"""
import numpy as np
import numpy.typing as npt
from scipy.sparse import csr_matrix
from scipy.sparse.linalg import LinearOperator
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .fem.spaces import _Space
    from .fem import IntegrationRule
    from .quad_data import QuadratureData

NDArray = npt.NDArray[np.floating]
IntArray = npt.NDArray[np.signedinteger]


class MassPAOperator:
    """Partially assembled scalar mass operator.

    With essential DOFs set through ``eliminate_rhs`` the operator acts as
    the identity on those DOFs and ignores their input in all other rows.

    Parameters
    ----------
    quad_data : QuadratureData
        Provides ``rho0_detj0_w``.
    space : H1Space or L2Space
        Scalar DOF layout (for the velocity: a single component).
    rule : IntegrationRule
        Rule the quadrature data was computed with.
    """

    def __init__(self, quad_data: "QuadratureData", space: "_Space", rule: "IntegrationRule"):
        self.space = space
        self.B, _ = space.tabulate(rule)
        self.W = quad_data.by_zone('rho0_detj0_w')
        self.size = space.nb_dofs
        self.ess_dofs: IntArray | None = None

    @property
    def shape(self) -> tuple[int, int]:
        return (self.size, self.size)

    def mult(self, x: NDArray) -> NDArray:
        x = np.asarray(x, dtype=float).ravel()
        if self.ess_dofs is not None:
            x_free = x.copy()
            x_free[self.ess_dofs] = 0.
        else:
            x_free = x

        y = self._apply(x_free)

        if self.ess_dofs is not None:
            y[self.ess_dofs] = x[self.ess_dofs]
        return y

    def _apply(self, x: NDArray) -> NDArray:
        x_q = self.space.gather_scalar(x) @ self.B.T
        return self.space.scatter_scalar((x_q * self.W) @ self.B)

    def eliminate_rhs(self, dofs: IntArray, b: NDArray) -> None:
        """Fix ``dofs`` to zero: zero their right-hand side entries."""
        self.ess_dofs = np.asarray(dofs, dtype=int)
        b[self.ess_dofs] = 0.

    def as_linear_operator(self) -> LinearOperator:
        return LinearOperator(self.shape, matvec=self.mult, dtype=float)

    def local_matrices(self) -> NDArray:
        """Zone mass matrices, shape (nz, nd, nd)."""
        return np.einsum('zq,qi,qj->zij', self.W, self.B, self.B)

    def local_inverses(self) -> NDArray:
        return np.linalg.inv(self.local_matrices())

    def assemble(self) -> csr_matrix:
        """Sparse mass matrix of the owned zones (sum-reduce its products)."""
        loc = self.local_matrices()
        dofs = self.space.local_dofs
        rows = np.broadcast_to(dofs[:, :, None], loc.shape)
        cols = np.broadcast_to(dofs[:, None, :], loc.shape)
        return csr_matrix((loc.ravel(), (rows.ravel(), cols.ravel())), shape=self.shape)


class AssembledMassOperator(MassPAOperator):
    """Same operator, applied through the assembled sparse matrix."""

    def __init__(self, quad_data: "QuadratureData", space: "_Space", rule: "IntegrationRule"):
        super().__init__(quad_data, space, rule)
        self.mat = self.assemble()

    def _apply(self, x: NDArray) -> NDArray:
        return self.space.mesh.partition.sum_inplace(self.mat @ x)
