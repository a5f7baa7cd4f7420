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
"""High-order meshes whose nodes are the continuous (H1) DOFs.

Boundary attributes follow the usual convention for Lagrangian hydro test
problems: attribute 1 marks nodes on faces normal to x, 2 on faces normal
to y and 3 on faces normal to z. The velocity component c is fixed to zero
on nodes carrying attribute c + 1.
"""
from copy import copy
from itertools import permutations

import numpy as np
import numpy.typing as npt
from mpi4py import MPI

from ..exceptions import ConfigurationFault
from ..parallel import ZonePartition
from .basis import get_element, FiniteElement

NDArray = npt.NDArray[np.floating]
IntArray = npt.NDArray[np.signedinteger]


class Mesh:
    """
    Mesh with an H1 node layout.

    Parameters
    ----------
    geometry : str
        'square', 'cube', 'triangle' or 'tetrahedron'.
    order : int
        Polynomial order of the node (and velocity) space.
    elem_dofs : IntArray
        Zone to node connectivity, shape (nb_zones, nb_dofs_per_zone), in the
        local DOF order of the reference element.
    nodes : NDArray
        Initial node coordinates, shape (nb_nodes, dim).
    attributes : np.ndarray
        Boundary attribute flags, shape (nb_nodes, dim), bool.
    """

    def __init__(self, geometry: str, order: int,
                 elem_dofs: IntArray, nodes: NDArray, attributes: np.ndarray):

        self.element: FiniteElement = get_element(geometry, order, continuous=True)
        self.geometry = geometry
        self.order = order
        self.dim = self.element.dim

        if nodes.ndim != 2 or nodes.shape[1] != self.dim:
            raise ConfigurationFault(f"Node array of shape {nodes.shape} does not match a {self.dim}D mesh")
        if elem_dofs.shape[1] != self.element.nb_dofs:
            raise ConfigurationFault(f"{geometry} zones of order {order} need {self.element.nb_dofs} "
                                     f"nodes, got {elem_dofs.shape[1]}")

        self.elem_dofs = np.asarray(elem_dofs, dtype=int)
        self.nodes = np.asarray(nodes, dtype=float)
        self.attributes = np.asarray(attributes, dtype=bool)
        self.partition = ZonePartition(self.nb_zones)

    # ---------------------------
    # Sizes
    # ---------------------------

    @property
    def nb_zones(self) -> int:
        """Global number of zones."""
        return self.elem_dofs.shape[0]

    @property
    def nb_nodes(self) -> int:
        return self.nodes.shape[0]

    @property
    def zones(self) -> IntArray:
        """Locally owned zones."""
        return self.partition.zones

    @property
    def is_tensor(self) -> bool:
        return self.element.is_tensor

    def node_vector(self) -> NDArray:
        """Initial positions as a component-major flat vector."""
        return self.nodes.T.ravel().copy()

    # ---------------------------
    # Distribution
    # ---------------------------

    def partitioned(self,
                    comm: MPI.Comm | None = None,
                    part: int | None = None,
                    nb_parts: int | None = None) -> "Mesh":
        """Shallow copy owning only one part of the zones."""
        other = copy(self)
        other.partition = ZonePartition(self.nb_zones, comm=comm, part=part, nb_parts=nb_parts)
        return other

    # ---------------------------
    # Constructors
    # ---------------------------

    @classmethod
    def cartesian(cls, nb_zones: list[int], lengths: list[float] | None = None, order: int = 1) -> "Mesh":
        """Structured quadrilateral (2D) or hexahedral (3D) mesh of a box.

        Parameters
        ----------
        nb_zones : list of int
            Zones per direction.
        lengths : list of float, optional
            Box edge lengths (default: unit box).
        order : int
            Node order; nodes sit at the Gauss-Lobatto points of each zone.
        """
        dim = len(nb_zones)
        if dim not in (2, 3):
            raise ConfigurationFault(f"Cartesian meshes must be 2D or 3D, got {dim} directions")
        lengths = [1.] * dim if lengths is None else [float(L) for L in lengths]
        if len(lengths) != dim:
            raise ConfigurationFault("Need one length per direction")
        if order < 1:
            raise ConfigurationFault("Mesh order must be >= 1")

        geometry = 'square' if dim == 2 else 'cube'
        element = get_element(geometry, order, continuous=True)
        n1 = element.nb_dofs_1d

        nb_pts = [order * n + 1 for n in nb_zones]
        strides = np.cumprod([1] + nb_pts[:-1])

        # lattice index of each local DOF, x fastest
        local = np.stack(np.meshgrid(*([np.arange(n1)] * dim), indexing='ij'), axis=-1).reshape(-1, dim)[:, ::-1]
        zone_idx = np.stack(np.meshgrid(*[np.arange(n) for n in reversed(nb_zones)], indexing='ij'),
                            axis=-1).reshape(-1, dim)[:, ::-1]

        lattice = order * zone_idx[:, None, :] + local[None, :, :]
        elem_dofs = (lattice * strides).sum(axis=-1)

        nodes = np.zeros((int(np.prod(nb_pts)), dim))
        h = np.array(lengths) / np.array(nb_zones)
        coords = h * (zone_idx[:, None, :] + element.nodes1d[local])
        nodes[elem_dofs.ravel()] = coords.reshape(-1, dim)

        attributes = np.zeros((len(nodes), dim), dtype=bool)
        attributes[elem_dofs.ravel()] = ((lattice == 0) | (lattice == np.array(nb_pts) - 1)).reshape(-1, dim)

        return cls(geometry, order, elem_dofs, nodes, attributes)

    @classmethod
    def cartesian_simplex(cls, nb_zones: list[int], lengths: list[float] | None = None) -> "Mesh":
        """Box split into triangles (2 per square) or tetrahedra (6 per cube)."""
        box = cls.cartesian(nb_zones, lengths, order=1)
        dim = box.dim

        # corner index of the Q1 lexicographic numbering: x fastest
        def corner(offset):
            return sum(int(o) << k for k, o in enumerate(offset))

        if dim == 2:
            splits = [[(0, 0), (1, 0), (1, 1)],
                      [(0, 0), (1, 1), (0, 1)]]
        else:
            # Kuhn subdivision along the main diagonal
            splits = []
            for perm in permutations(range(3)):
                path = [np.zeros(3, dtype=int)]
                for k in perm:
                    step = path[-1].copy()
                    step[k] = 1
                    path.append(step)
                splits.append([tuple(p) for p in path])

        local = np.array([[corner(v) for v in s] for s in splits])
        elem_dofs = box.elem_dofs[:, local].reshape(-1, dim + 1)

        # orient all simplices positively
        x = box.nodes[elem_dofs]
        det = np.linalg.det(np.swapaxes(x[:, 1:] - x[:, :1], 1, 2))
        flip = det < 0
        elem_dofs[flip, -2:] = elem_dofs[flip, -1:-3:-1]

        geometry = 'triangle' if dim == 2 else 'tetrahedron'
        return cls(geometry, 1, elem_dofs, box.nodes, box.attributes)
