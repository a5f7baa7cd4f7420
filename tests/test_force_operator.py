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
import pytest
import numpy as np

from LagHydro import LagrangianHydroOperator
from LagHydro.fem import Mesh
from LagHydro.force import ForcePAOperator, assemble_force_matrix, tensor_contract
from LagHydro.state import HydroState


MESHES = {'quad_q1': lambda: Mesh.cartesian([3, 2], [1.5, 1.], order=1),
          'quad_q2': lambda: Mesh.cartesian([2, 2], order=2),
          'quad_q3': lambda: Mesh.cartesian([2, 1], order=3),
          'hex_q1': lambda: Mesh.cartesian([2, 2, 1], order=1),
          'hex_q2': lambda: Mesh.cartesian([1, 1, 2], order=2),
          'tri': lambda: Mesh.cartesian_simplex([2, 2]),
          'tet': lambda: Mesh.cartesian_simplex([1, 1, 1])}


def perturbed_state(op, seed=0):
    """Moving, slightly distorted mesh with non-uniform energy."""
    rng = np.random.default_rng(seed)
    state = op.initial_state(e0=1.)

    h = op.quad_data.h0
    state.x += 0.05 * h * rng.uniform(-1., 1., state.x.shape)
    state.v[:] = rng.uniform(-1., 1., state.v.shape)
    state.e[:] = rng.uniform(0.5, 2., state.e.shape)

    return state.to_vector()


@pytest.fixture(scope="module", params=[(k, oe) for k in MESHES for oe in (0, 1)],
                ids=lambda p: f"{p[0]}-e{p[1]}")
def operator(request):
    name, order_e = request.param
    op = LagrangianHydroOperator(MESHES[name](), order_e, rho0=1., material=None)
    op.update_quadrature_data(perturbed_state(op))
    return op


def test_adjoint(operator):
    rng = np.random.default_rng(1)
    F = operator.force

    u = rng.standard_normal(F.shape[1])
    w = rng.standard_normal(F.shape[0])

    lhs = w @ F.mult(u)
    rhs = u @ F.mult_transpose(w)

    np.testing.assert_allclose(lhs, rhs, rtol=1e-12, atol=1e-12 * np.abs(lhs).max())


def test_partial_equals_assembled(operator):
    rng = np.random.default_rng(2)
    F = operator.force
    mat = assemble_force_matrix(operator.quad_data, operator.h1, operator.l2, operator.rule)

    u = rng.standard_normal(F.shape[1])
    w = rng.standard_normal(F.shape[0])

    np.testing.assert_allclose(F.mult(u), mat @ u, atol=1e-12)
    np.testing.assert_allclose(F.mult_transpose(w), mat.T @ w, atol=1e-12)


def test_tensor_path_matches_general(operator):
    if not operator.mesh.is_tensor:
        pytest.skip("Sum factorization needs tensor product zones")

    rng = np.random.default_rng(3)
    args = (operator.quad_data, operator.h1, operator.l2, operator.rule)
    F_tensor = ForcePAOperator(*args, tensor=True)
    F_general = ForcePAOperator(*args, tensor=False)

    assert F_tensor.is_tensor and not F_general.is_tensor

    u = rng.standard_normal(F_tensor.shape[1])
    w = rng.standard_normal(F_tensor.shape[0])

    np.testing.assert_allclose(F_tensor.mult(u), F_general.mult(u), atol=1e-12)
    np.testing.assert_allclose(F_tensor.mult_transpose(w), F_general.mult_transpose(w), atol=1e-12)


def test_simplex_rejects_tensor_path():
    op = LagrangianHydroOperator(MESHES['tri'](), 0, rho0=1.)
    assert not op.force.is_tensor
    with pytest.raises(ValueError):
        ForcePAOperator(op.quad_data, op.h1, op.l2, op.rule, tensor=True)


def test_bad_shapes(operator):
    F = operator.force
    with pytest.raises(ValueError):
        F.mult(np.ones(F.shape[1] + 1))
    with pytest.raises(ValueError):
        F.mult_transpose(np.ones(F.shape[0] - 1))


def test_uniform_pressure_has_no_interior_force():
    # int p dN_i/dx over the domain vanishes for nodes off the boundary
    mesh = Mesh.cartesian([3, 3], order=2)
    op = LagrangianHydroOperator(mesh, 1, rho0=1., use_viscosity=False)
    S = op.initial_state(e0=2.).to_vector()
    op.update_quadrature_data(S)

    f = op.force.mult(np.ones(op.l2.nb_dofs)).reshape(2, -1)
    interior = ~mesh.attributes.any(axis=1)

    assert interior.sum() > 0
    np.testing.assert_allclose(f[:, interior], 0., atol=1e-12)


def test_partitioned_force_sums_to_global():
    mesh = Mesh.cartesian([3, 2], order=2)
    full = LagrangianHydroOperator(mesh, 1, rho0=1.)
    parts = [LagrangianHydroOperator(mesh.partitioned(part=i, nb_parts=2), 1, rho0=1.) for i in range(2)]

    S = perturbed_state(full)
    u = np.random.default_rng(4).standard_normal(full.l2.nb_dofs)
    v = HydroState.from_vector(S, full.layout).v

    full.update_quadrature_data(S)
    for p in parts:
        p.update_quadrature_data(S)

    np.testing.assert_allclose(sum(p.force.mult(u) for p in parts), full.force.mult(u), atol=1e-12)
    np.testing.assert_allclose(sum(p.force.mult_transpose(v) for p in parts),
                               full.force.mult_transpose(v), atol=1e-12)


def test_tensor_contract():
    rng = np.random.default_rng(5)
    arr = rng.standard_normal((2, 3, 4))
    A = rng.standard_normal((5, 4))
    B = rng.standard_normal((6, 3))

    # mats[0] acts on x (last tensor axis), mats[1] on y
    expected = np.einsum('ai,byi,cy->bca', A, arr, B)
    np.testing.assert_allclose(tensor_contract(arr, [A, B]), expected)
