#
# Copyright 2025 Christoph Huber
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
# The above copyright notice and this permission notice shall be included in
# all copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.
#
import pytest
import numpy as np

from LagHydro.exceptions import ConfigurationFault
from LagHydro.fem import (Mesh, H1Space, L2Space, get_integration_rule, tensor_rule, simplex_rule,
                          get_element, gauss_lobatto_nodes)


@pytest.mark.parametrize('geometry,volume', [('square', 1.), ('cube', 1.),
                                             ('triangle', 0.5), ('tetrahedron', 1. / 6.)])
def test_rule_weights_sum_to_volume(geometry, volume):
    rule = get_integration_rule(geometry, 4)
    np.testing.assert_allclose(rule.weights.sum(), volume)
    assert np.all(rule.weights > 0.)


@pytest.mark.parametrize('order', [0, 1, 2, 3, 4, 5])
def test_tensor_rule_exactness(order):
    rule = get_integration_rule('square', order)
    x, y = rule.points.T
    # int_0^1 x^a y^b = 1 / ((a + 1) (b + 1))
    for a in range(order + 1):
        b = order - a
        np.testing.assert_allclose(np.sum(rule.weights * x**a * y**b), 1. / ((a + 1) * (b + 1)))


@pytest.mark.parametrize('order', [1, 2, 3, 4])
def test_triangle_rule_exactness(order):
    rule = get_integration_rule('triangle', order)
    x, y = rule.points.T
    # int over the unit triangle of x^order = 1 / ((order + 1) (order + 2))
    np.testing.assert_allclose(np.sum(rule.weights * x**order), 1. / ((order + 1) * (order + 2)))


def test_tetrahedron_rule_exactness():
    rule = get_integration_rule('tetrahedron', 3)
    x, y, z = rule.points.T
    # int x y z over the unit tetrahedron = 1 / 720
    np.testing.assert_allclose(np.sum(rule.weights * x * y * z), 1. / 720.)


def test_tensor_rule_is_lexicographic():
    rule = tensor_rule(3, 2)
    np.testing.assert_allclose(rule.points[:3, 1], rule.points[0, 1])
    assert np.all(np.diff(rule.points[:3, 0]) > 0.)
    assert rule.is_tensor
    assert not simplex_rule(2, 2).is_tensor


def test_unknown_geometry():
    with pytest.raises(ConfigurationFault):
        get_integration_rule('prism', 2)


def test_gauss_lobatto_nodes():
    np.testing.assert_allclose(gauss_lobatto_nodes(1), [0., 1.])
    np.testing.assert_allclose(gauss_lobatto_nodes(2), [0., 0.5, 1.])
    np.testing.assert_allclose(gauss_lobatto_nodes(4), 1. - gauss_lobatto_nodes(4)[::-1])


@pytest.mark.parametrize('geometry,order,continuous', [('square', 1, True), ('square', 3, True),
                                                       ('square', 0, False), ('square', 2, False),
                                                       ('cube', 2, True), ('cube', 1, False),
                                                       ('triangle', 1, True), ('triangle', 0, False),
                                                       ('tetrahedron', 1, True), ('tetrahedron', 1, False)])
def test_partition_of_unity(geometry, order, continuous):
    elem = get_element(geometry, order, continuous)
    rule = get_integration_rule(geometry, 3)

    np.testing.assert_allclose(elem.shape(rule.points).sum(axis=1), 1.)
    np.testing.assert_allclose(elem.grad(rule.points).sum(axis=1), 0., atol=1e-12)


@pytest.mark.parametrize('geometry,order', [('square', 2), ('cube', 2)])
def test_nodal_basis(geometry, order):
    elem = get_element(geometry, order, True)
    np.testing.assert_allclose(elem.shape(elem.nodes), np.eye(elem.nb_dofs), atol=1e-12)


def test_simplex_velocity_order():
    with pytest.raises(ConfigurationFault):
        get_element('triangle', 2, True)


@pytest.mark.parametrize('order', [1, 2, 3])
def test_cartesian_mesh(order):
    mesh = Mesh.cartesian([3, 2], [3., 1.], order=order)

    assert mesh.nb_zones == 6
    assert mesh.nb_nodes == (3 * order + 1) * (2 * order + 1)
    np.testing.assert_allclose(mesh.nodes.min(axis=0), [0., 0.])
    np.testing.assert_allclose(mesh.nodes.max(axis=0), [3., 1.])

    # attribute 1: faces normal to x
    on_x_faces = np.isclose(mesh.nodes[:, 0], 0.) | np.isclose(mesh.nodes[:, 0], 3.)
    np.testing.assert_array_equal(mesh.attributes[:, 0], on_x_faces)


@pytest.mark.parametrize('mesh', [Mesh.cartesian([2, 3], [2., 1.5], order=2),
                                  Mesh.cartesian([2, 1, 2], order=1),
                                  Mesh.cartesian_simplex([2, 2], [2., 1.5]),
                                  Mesh.cartesian_simplex([1, 2, 1])])
def test_initial_jacobians(mesh):
    h1 = H1Space(mesh)
    rule = get_integration_rule(mesh.geometry, 3)
    detJ = np.linalg.det(h1.jacobians(mesh.node_vector(), rule))

    assert np.all(detJ > 0.)
    volume = np.prod(mesh.nodes.max(axis=0) - mesh.nodes.min(axis=0))
    np.testing.assert_allclose(np.sum(detJ * rule.weights), volume)


def test_affine_jacobian():
    mesh = Mesh.cartesian([2, 2], order=2)
    h1 = H1Space(mesh)
    rule = get_integration_rule('square', 2)

    A = np.array([[2., 0.5], [0., 1.5]])
    x = (mesh.nodes @ A.T).T.ravel()
    J = h1.jacobians(x, rule)

    # reference cell [0, 1]^2 maps to a zone of size 1/2
    np.testing.assert_allclose(J, np.broadcast_to(0.5 * A, J.shape), atol=1e-14)


def test_l2_values():
    mesh = Mesh.cartesian([2, 2], order=1)
    l2 = L2Space(mesh, 1)
    rule = get_integration_rule('square', 3)

    assert l2.nb_dofs == 16
    np.testing.assert_allclose(l2.values(np.full(16, 3.), rule), 3.)


def test_partitioned_mesh():
    mesh = Mesh.cartesian([3, 3], order=1)
    parts = [mesh.partitioned(part=i, nb_parts=2) for i in range(2)]

    zones = np.concatenate([p.zones for p in parts])
    np.testing.assert_array_equal(zones, np.arange(9))
    assert mesh.nb_zones == parts[0].nb_zones == 9

    p = parts[1].partition
    assert (p.part, p.nb_parts, p.rank, p.size) == (1, 2, 0, 1)
    assert p.nb_global_zones == 9
    assert p.nb_local_zones == 4
    assert p.allreduce_min(3.) == 3.

    with pytest.raises(ValueError):
        mesh.partitioned(part=2, nb_parts=2)
