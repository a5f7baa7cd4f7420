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
"""Quadrature rules on the reference square, cube, triangle and tetrahedron.

Reference cells are [0, 1]^d and the unit simplices. Tensor rules list
their points lexicographically with the x index running fastest.
"""
from dataclasses import dataclass
from typing import Optional

import numpy as np
import numpy.typing as npt
from numpy.polynomial.legendre import leggauss

from ..exceptions import ConfigurationFault

NDArray = npt.NDArray[np.floating]

TENSOR_GEOMETRIES = ('segment', 'square', 'cube')
SIMPLEX_GEOMETRIES = ('triangle', 'tetrahedron')


def get_norm_quad_pts(nb_quad_pts: int) -> NDArray:
    xi, _ = leggauss(nb_quad_pts)
    return 0.5 * (xi + 1)


def get_norm_quad_wts(nb_quad_pts: int) -> NDArray:
    _, wi = leggauss(nb_quad_pts)
    return 0.5 * wi


@dataclass
class IntegrationRule:
    """Points and weights of a quadrature rule on a reference cell.

    Attributes
    ----------
    geometry : str
        Reference cell name.
    points : NDArray
        Quadrature points, shape (nqp, dim).
    weights : NDArray
        Weights, shape (nqp,). They sum to the reference cell volume.
    points1d, weights1d : NDArray or None
        Underlying 1D Gauss rule of a tensor rule, None for simplices.
    """
    geometry: str
    points: NDArray
    weights: NDArray
    points1d: Optional[NDArray] = None
    weights1d: Optional[NDArray] = None

    @property
    def nb_points(self) -> int:
        return len(self.weights)

    @property
    def dim(self) -> int:
        return self.points.shape[1]

    @property
    def is_tensor(self) -> bool:
        return self.points1d is not None


def _lexicographic(values1d: NDArray, dim: int) -> list[NDArray]:
    # grids[k] holds the coordinate along direction k, x fastest in C order
    grids = np.meshgrid(*([values1d] * dim), indexing='ij')
    return [grids[dim - 1 - k].ravel() for k in range(dim)]


def tensor_rule(nb_pts_1d: int, dim: int) -> IntegrationRule:
    """Tensor product Gauss-Legendre rule with ``nb_pts_1d`` points per direction."""
    x1 = get_norm_quad_pts(nb_pts_1d)
    w1 = get_norm_quad_wts(nb_pts_1d)

    points = np.stack(_lexicographic(x1, dim), axis=-1)
    weights = np.prod(np.stack(_lexicographic(w1, dim), axis=-1), axis=-1)

    geometry = TENSOR_GEOMETRIES[dim - 1]
    return IntegrationRule(geometry, points, weights, x1, w1)


def simplex_rule(nb_pts_1d: int, dim: int) -> IntegrationRule:
    """Collapsed (Duffy) Gauss rule on the unit triangle or tetrahedron."""
    cube = tensor_rule(nb_pts_1d, dim)
    u = cube.points

    if dim == 2:
        x = u[:, 0] * (1. - u[:, 1])
        y = u[:, 1]
        points = np.stack([x, y], axis=-1)
        weights = cube.weights * (1. - u[:, 1])
    elif dim == 3:
        x = u[:, 0] * (1. - u[:, 1]) * (1. - u[:, 2])
        y = u[:, 1] * (1. - u[:, 2])
        z = u[:, 2]
        points = np.stack([x, y, z], axis=-1)
        weights = cube.weights * (1. - u[:, 1]) * (1. - u[:, 2])**2
    else:
        raise ConfigurationFault(f"No simplex rule in {dim} dimensions")

    return IntegrationRule(SIMPLEX_GEOMETRIES[dim - 2], points, weights)


def get_integration_rule(geometry: str, order: int) -> IntegrationRule:
    """Rule that integrates polynomials of degree ``order`` exactly.

    Simplex rules use one more point per direction, since the collapsed
    coordinates raise the polynomial degree of the integrand.
    """
    order = max(order, 0)
    if geometry in TENSOR_GEOMETRIES:
        nb_pts_1d = order // 2 + 1
        return tensor_rule(nb_pts_1d, TENSOR_GEOMETRIES.index(geometry) + 1)
    elif geometry in SIMPLEX_GEOMETRIES:
        dim = SIMPLEX_GEOMETRIES.index(geometry) + 2
        nb_pts_1d = (order + dim - 1) // 2 + 1
        return simplex_rule(nb_pts_1d, dim)
    raise ConfigurationFault(f"Unknown zone geometry '{geometry}'")
