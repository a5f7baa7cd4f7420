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
"""Continuous vector (H1) and discontinuous scalar (L2) field spaces.

Vector fields are stored component-major: ``vec.reshape(dim, nb_dofs)``.
All per-zone arrays are restricted to the zones owned by this process, in
the order of ``mesh.zones``.
"""

import numpy as np
import numpy.typing as npt

from .basis import get_element, FiniteElement
from .mesh import Mesh
from .quadrature import IntegrationRule

NDArray = npt.NDArray[np.floating]
IntArray = npt.NDArray[np.signedinteger]


class _Space:

    mesh: Mesh
    element: FiniteElement
    elem_dofs: IntArray
    nb_dofs: int

    @property
    def zones(self) -> IntArray:
        return self.mesh.zones

    @property
    def local_dofs(self) -> IntArray:
        """DOF map of the owned zones, shape (nb_local_zones, nb_dofs_per_zone)."""
        return self.elem_dofs[self.mesh.zones]

    def tabulate(self, rule: IntegrationRule) -> tuple[NDArray, NDArray]:
        """Basis values (nqp, nd) and reference gradients (nqp, nd, dim) at ``rule``.

        Tables depend only on the reference element and are cached per rule.
        """
        cache = self.__dict__.setdefault("_tables", {})
        entry = cache.get(id(rule))
        if entry is None or entry[0] is not rule:
            entry = (rule, self.element.shape(rule.points), self.element.grad(rule.points))
            cache[id(rule)] = entry
        return entry[1], entry[2]

    def gather_scalar(self, vec: NDArray) -> NDArray:
        """Zone-local values of a scalar field, shape (nz, nd)."""
        return vec[self.local_dofs]

    def scatter_scalar(self, loc: NDArray, size: int | None = None) -> NDArray:
        """Sum zone-local contributions into a global scalar vector."""
        out = np.zeros(self.nb_dofs if size is None else size)
        np.add.at(out, self.local_dofs, loc)
        return self.mesh.partition.sum_inplace(out)


class H1Space(_Space):
    """Continuous vector space on the mesh nodes (positions and velocity)."""

    def __init__(self, mesh: Mesh):
        self.mesh = mesh
        self.element = mesh.element
        self.elem_dofs = mesh.elem_dofs
        self.nb_dofs = mesh.nb_nodes
        self.dim = mesh.dim
        self.order = mesh.order

    @property
    def vsize(self) -> int:
        return self.dim * self.nb_dofs

    def gather(self, vec: NDArray) -> NDArray:
        """Zone-local values of a vector field, shape (nz, dim, nd)."""
        return np.swapaxes(vec.reshape(self.dim, self.nb_dofs)[:, self.local_dofs], 0, 1)

    def scatter(self, loc: NDArray) -> NDArray:
        """Sum zone-local vector contributions (nz, dim, nd) into a flat vector."""
        out = np.zeros((self.dim, self.nb_dofs))
        for c in range(self.dim):
            np.add.at(out[c], self.local_dofs, loc[:, c])
        return self.mesh.partition.sum_inplace(out.ravel())

    def jacobians(self, x: NDArray, rule: IntegrationRule) -> NDArray:
        """Reference to physical Jacobians at ``rule``, shape (nz, nqp, dim, dim).

        ``J[z, q, a, b] = d x_a / d xi_b`` for the node positions ``x``.
        """
        _, G = self.tabulate(rule)
        return np.einsum('zai,qib->zqab', self.gather(x), G)

    def values(self, vec: NDArray, rule: IntegrationRule) -> NDArray:
        """Field values at ``rule``, shape (nz, nqp, dim)."""
        B, _ = self.tabulate(rule)
        return np.einsum('zai,qi->zqa', self.gather(vec), B)

    def reference_gradients(self, vec: NDArray, rule: IntegrationRule) -> NDArray:
        """``d v_a / d xi_b`` at ``rule``, shape (nz, nqp, dim, dim)."""
        return self.jacobians(vec, rule)

    def essential_dofs(self, component: int) -> IntArray:
        """Scalar DOFs on which velocity component ``component`` is fixed."""
        return np.flatnonzero(self.mesh.attributes[:, component])


class L2Space(_Space):
    """Discontinuous scalar space (specific internal energy)."""

    def __init__(self, mesh: Mesh, order: int):
        self.mesh = mesh
        self.order = order
        self.element = get_element(mesh.geometry, order, continuous=False)
        nd = self.element.nb_dofs
        self.elem_dofs = np.arange(mesh.nb_zones * nd).reshape(mesh.nb_zones, nd)
        self.nb_dofs = mesh.nb_zones * nd

    def values(self, vec: NDArray, rule: IntegrationRule) -> NDArray:
        """Field values at ``rule``, shape (nz, nqp)."""
        B, _ = self.tabulate(rule)
        return self.gather_scalar(vec) @ B.T
