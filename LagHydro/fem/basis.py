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
"""Reference finite elements.

Tensor product elements (squares, cubes) are built from 1D Lagrange bases:
Gauss-Lobatto nodes for the continuous (H1) space, Gauss-Legendre nodes for
the discontinuous (L2) space. Their DOFs are numbered lexicographically with
the x index running fastest. Simplex elements are linear (H1) or
constant/linear (L2).
"""
import numpy as np
import numpy.typing as npt
from numpy.polynomial.legendre import Legendre

from ..exceptions import ConfigurationFault
from .quadrature import get_norm_quad_pts, TENSOR_GEOMETRIES, SIMPLEX_GEOMETRIES

NDArray = npt.NDArray[np.floating]


def gauss_lobatto_nodes(order: int) -> NDArray:
    """Gauss-Lobatto nodes on [0, 1], including both end points."""
    if order < 1:
        raise ConfigurationFault("Continuous elements need order >= 1")
    inner = np.sort(Legendre.basis(order).deriv().roots().real)
    return 0.5 * (np.concatenate([[-1.], inner, [1.]]) + 1.)


def gauss_legendre_nodes(order: int) -> NDArray:
    """Gauss-Legendre nodes on [0, 1]; the cell midpoint for order 0."""
    return get_norm_quad_pts(order + 1)


def lagrange_1d(nodes: NDArray, x: NDArray) -> tuple[NDArray, NDArray]:
    """Lagrange basis on ``nodes`` and its derivative, evaluated at ``x``.

    Returns
    -------
    shape, grad : NDArray
        Arrays of shape (len(x), len(nodes)).
    """
    x = np.asarray(x, dtype=float)
    n = len(nodes)
    shape = np.ones((len(x), n))
    grad = np.zeros((len(x), n))

    for j in range(n):
        others = [m for m in range(n) if m != j]
        denom = np.prod([nodes[j] - nodes[m] for m in others])
        for m in others:
            shape[:, j] *= (x - nodes[m])
            # product rule: drop one factor at a time
            term = np.ones_like(x)
            for k in others:
                if k != m:
                    term *= (x - nodes[k])
            grad[:, j] += term
        shape[:, j] /= denom
        grad[:, j] /= denom

    return shape, grad


class FiniteElement:
    """Common interface of the reference elements.

    Attributes
    ----------
    geometry : str
    dim : int
    order : int
    nb_dofs : int
    nodes : NDArray
        Reference coordinates of the nodal DOFs, shape (nb_dofs, dim).
    """

    is_tensor = False

    def shape(self, points: NDArray) -> NDArray:
        """Basis values, shape (npts, nb_dofs)."""
        raise NotImplementedError

    def grad(self, points: NDArray) -> NDArray:
        """Reference gradients, shape (npts, nb_dofs, dim)."""
        raise NotImplementedError


class TensorElement(FiniteElement):
    """Lagrange element on the unit square or cube."""

    is_tensor = True

    def __init__(self, dim: int, order: int, continuous: bool = True):
        if dim not in (2, 3):
            raise ConfigurationFault(f"Unsupported dimension {dim}")

        self.geometry = TENSOR_GEOMETRIES[dim - 1]
        self.dim = dim
        self.order = order
        self.continuous = continuous
        self.nodes1d = gauss_lobatto_nodes(order) if continuous else gauss_legendre_nodes(order)
        self.nb_dofs_1d = len(self.nodes1d)
        self.nb_dofs = self.nb_dofs_1d**dim

        grids = np.meshgrid(*([self.nodes1d] * dim), indexing='ij')
        self.nodes = np.stack([grids[dim - 1 - k].ravel() for k in range(dim)], axis=-1)

    def tables_1d(self, x: NDArray) -> tuple[NDArray, NDArray]:
        """1D shape and derivative tables at the 1D points ``x``."""
        return lagrange_1d(self.nodes1d, x)

    def _product(self, points: NDArray, deriv: int | None) -> NDArray:
        points = np.atleast_2d(points)
        npts = len(points)
        vals = np.ones((npts, 1))
        for k in reversed(range(self.dim)):
            s, g = lagrange_1d(self.nodes1d, points[:, k])
            factor = g if k == deriv else s
            vals = (vals[:, :, None] * factor[:, None, :]).reshape(npts, -1)
        return vals

    def shape(self, points: NDArray) -> NDArray:
        return self._product(points, None)

    def grad(self, points: NDArray) -> NDArray:
        return np.stack([self._product(points, k) for k in range(self.dim)], axis=-1)


class SimplexElement(FiniteElement):
    """Constant or linear element on the unit triangle or tetrahedron."""

    def __init__(self, dim: int, order: int):
        if dim not in (2, 3):
            raise ConfigurationFault(f"Unsupported dimension {dim}")
        if order not in (0, 1):
            raise ConfigurationFault(f"Simplex elements of order {order} are not supported")

        self.geometry = SIMPLEX_GEOMETRIES[dim - 2]
        self.dim = dim
        self.order = order

        if order == 0:
            self.nb_dofs = 1
            self.nodes = np.full((1, dim), 1. / (dim + 1))
        else:
            self.nb_dofs = dim + 1
            self.nodes = np.vstack([np.zeros(dim), np.eye(dim)])

    def shape(self, points: NDArray) -> NDArray:
        points = np.atleast_2d(points)
        if self.order == 0:
            return np.ones((len(points), 1))
        # barycentric coordinates
        return np.column_stack([1. - points.sum(axis=1), points])

    def grad(self, points: NDArray) -> NDArray:
        points = np.atleast_2d(points)
        if self.order == 0:
            return np.zeros((len(points), 1, self.dim))
        g = np.vstack([-np.ones(self.dim), np.eye(self.dim)])
        return np.broadcast_to(g, (len(points),) + g.shape).copy()


def get_element(geometry: str, order: int, continuous: bool) -> FiniteElement:
    if geometry in TENSOR_GEOMETRIES[1:]:
        return TensorElement(TENSOR_GEOMETRIES.index(geometry) + 1, order, continuous)
    elif geometry in SIMPLEX_GEOMETRIES:
        if continuous and order != 1:
            raise ConfigurationFault("Simplex meshes only support velocity order 1")
        return SimplexElement(SIMPLEX_GEOMETRIES.index(geometry) + 2, order)
    raise ConfigurationFault(f"Unknown zone geometry '{geometry}'")
