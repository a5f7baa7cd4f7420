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
"""Force operator of the momentum and energy equations.

The force bilinear form couples the velocity (H1, vector) and energy (L2)
spaces::

    F[(c, i), j] = sum_q sum_g C[q, c, g] dN_i/dxi_g(q) phi_j(q)

with the force coefficients ``C = stress . J^{-T} * w * det(J)`` from the
quadrature data. ``ForcePAOperator`` applies F and F^T without forming the
matrix; ``assemble_force_matrix`` builds it as a sparse matrix.
"""
import numpy as np
import numpy.typing as npt
from scipy.sparse import csr_matrix
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .fem import H1Space, L2Space, IntegrationRule
    from .quad_data import QuadratureData

NDArray = npt.NDArray[np.floating]


def tensor_contract(arr: NDArray, mats: list[NDArray]) -> NDArray:
    """Apply one 1D matrix per direction to a tensor product array.

    ``arr`` has the axes (zone, t_{d-1}, ..., t_0, *rest), i.e. the x axis
    is the last tensor axis. ``mats[k]`` of shape (m, n) maps the n entries
    along direction k to m entries.
    """
    dim = len(mats)
    for k, M in enumerate(mats):
        axis = dim - k
        arr = np.moveaxis(np.tensordot(M, arr, axes=([1], [axis])), 0, axis)
    return arr


class ForcePAOperator:
    """
    Partially assembled force operator.

    Tensor product zones (quadrilaterals, hexahedra) use sum factorization
    with the 1D basis tables; all other zones use the full basis tables.
    The path is chosen once at construction.

    Parameters
    ----------
    quad_data : QuadratureData
        Provides the force coefficients ``stress_jinv_t``.
    h1 : H1Space
        Velocity space (range of ``mult``).
    l2 : L2Space
        Energy space (domain of ``mult``).
    rule : IntegrationRule
        Rule the quadrature data was computed with.
    tensor : bool, optional
        Force (True) or forbid (False) the factored path. By default it is
        used whenever the elements and the rule are tensor products.
    """

    def __init__(self,
                 quad_data: "QuadratureData",
                 h1: "H1Space",
                 l2: "L2Space",
                 rule: "IntegrationRule",
                 tensor: bool | None = None):

        self.quad_data = quad_data
        self.h1 = h1
        self.l2 = l2
        self.rule = rule
        self.dim = h1.dim

        # Reference element tables; independent of the state
        self.B_l2, _ = l2.tabulate(rule)
        _, self.G_h1 = h1.tabulate(rule)

        can_factor = h1.element.is_tensor and l2.element.is_tensor and rule.is_tensor
        if tensor and not can_factor:
            raise ValueError("Sum factorization needs tensor product elements and rule")
        self.is_tensor = can_factor if tensor is None else bool(tensor)

        if self.is_tensor:
            self.H, self.Hg = h1.element.tables_1d(rule.points1d)
            self.L, _ = l2.element.tables_1d(rule.points1d)
            self._mult = self._mult_tensor
            self._mult_transpose = self._mult_transpose_tensor
        else:
            self._mult = self._mult_general
            self._mult_transpose = self._mult_transpose_general

    @property
    def shape(self) -> tuple[int, int]:
        return (self.h1.vsize, self.l2.nb_dofs)

    def mult(self, vec_l2: NDArray) -> NDArray:
        """Apply F to an energy space vector, return a velocity space vector."""
        vec_l2 = np.asarray(vec_l2, dtype=float)
        if vec_l2.shape != (self.l2.nb_dofs,):
            raise ValueError(f"Expected an L2 vector of size {self.l2.nb_dofs}, got shape {vec_l2.shape}")
        return self.h1.scatter(self._mult(self.l2.gather_scalar(vec_l2)))

    def mult_transpose(self, vec_h1: NDArray) -> NDArray:
        """Apply F^T to a velocity space vector, return an energy space vector."""
        vec_h1 = np.asarray(vec_h1, dtype=float)
        if vec_h1.shape != (self.h1.vsize,):
            raise ValueError(f"Expected an H1 vector of size {self.h1.vsize}, got shape {vec_h1.shape}")
        return self.l2.scatter_scalar(self._mult_transpose(self.h1.gather(vec_h1)))

    def _coefficients(self) -> NDArray:
        return self.quad_data.by_zone('stress_jinv_t')

    # ---------------------------
    # General zones
    # ---------------------------

    def _mult_general(self, e_loc: NDArray) -> NDArray:
        e_q = e_loc @ self.B_l2.T
        return np.einsum('zqvg,qig,zq->zvi', self._coefficients(), self.G_h1, e_q)

    def _mult_transpose_general(self, v_loc: NDArray) -> NDArray:
        grad_v = np.einsum('zvi,qig->zqvg', v_loc, self.G_h1)
        s = np.einsum('zqvg,zqvg->zq', self._coefficients(), grad_v)
        return s @ self.B_l2

    # ---------------------------
    # Tensor product zones
    # ---------------------------

    def _tensor_shape(self, n: int) -> tuple[int, ...]:
        return (n,) * self.dim

    def _mult_tensor(self, e_loc: NDArray) -> NDArray:
        dim = self.dim
        nz = e_loc.shape[0]
        nq1 = len(self.rule.points1d)
        nd1 = self.H.shape[1]

        e_loc = e_loc.reshape((nz,) + self._tensor_shape(self.L.shape[1]))
        e_q = tensor_contract(e_loc, [self.L] * dim)

        C = self._coefficients().reshape((nz,) + self._tensor_shape(nq1) + (dim, dim))
        out = np.zeros((nz,) + self._tensor_shape(nd1) + (dim,))
        for g in range(dim):
            A = C[..., g] * e_q[..., None]
            mats = [(self.Hg if k == g else self.H).T for k in range(dim)]
            out += tensor_contract(A, mats)

        return np.moveaxis(out, -1, 1).reshape(nz, dim, nd1**dim)

    def _mult_transpose_tensor(self, v_loc: NDArray) -> NDArray:
        dim = self.dim
        nz = v_loc.shape[0]
        nq1 = len(self.rule.points1d)
        nd1 = self.H.shape[1]

        v_loc = np.moveaxis(v_loc.reshape((nz, dim) + self._tensor_shape(nd1)), 1, -1)
        C = self._coefficients().reshape((nz,) + self._tensor_shape(nq1) + (dim, dim))

        s = np.zeros((nz,) + self._tensor_shape(nq1))
        for g in range(dim):
            mats = [self.Hg if k == g else self.H for k in range(dim)]
            dv_g = tensor_contract(v_loc, mats)
            s += np.einsum('...v,...v->...', C[..., g], dv_g)

        return tensor_contract(s, [self.L.T] * dim).reshape(nz, -1)


def assemble_force_matrix(quad_data: "QuadratureData",
                          h1: "H1Space",
                          l2: "L2Space",
                          rule: "IntegrationRule") -> csr_matrix:
    """Sparse force matrix of the owned zones, shape (h1.vsize, l2.nb_dofs).

    On a distributed mesh every process holds only the contributions of its
    own zones; products with it must be sum-reduced.
    """
    B, _ = l2.tabulate(rule)
    _, G = h1.tabulate(rule)
    C = quad_data.by_zone('stress_jinv_t')

    loc = np.einsum('zqvg,qig,qj->zvij', C, G, B)

    h1_dofs = h1.local_dofs
    l2_dofs = l2.local_dofs
    nz, dim, nd, nl = loc.shape

    rows = np.arange(dim)[None, :, None, None] * h1.nb_dofs + h1_dofs[:, None, :, None]
    cols = l2_dofs[:, None, None, :]
    rows, cols = np.broadcast_arrays(rows, cols)

    return csr_matrix((loc.ravel(), (rows.ravel(), cols.ravel())),
                      shape=(h1.vsize, l2.nb_dofs))
