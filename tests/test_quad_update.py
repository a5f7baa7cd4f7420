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

from LagHydro import LagrangianHydroOperator, GeometryFault
from LagHydro.fem import Mesh
from LagHydro.hydro import Phase
from LagHydro.quad_data import QuadratureData
from LagHydro.quad_update import compression_direction, symmetrize


@pytest.fixture(scope="module")
def mesh():
    return Mesh.cartesian([2, 2], order=2)


def expanded_state(op, factor, e0=1.):
    state = op.initial_state(e0=e0)
    state.x *= factor
    return state.to_vector()


def test_quadrature_data_layout():
    qd = QuadratureData(2, 3, 4)

    assert qd.size == 12
    assert qd.index(2, 1) == 9

    qd.set('rho0_detj0', 2, 1, 5.)
    assert qd.get('rho0_detj0', 2, 1) == 5.
    assert qd.by_zone('rho0_detj0')[2, 1] == 5.
    assert qd.by_zone('stress').shape == (3, 4, 2, 2)

    with pytest.raises(KeyError):
        qd.by_zone('dt_est')


def test_stress_of_resting_gas(mesh):
    gamma = 1.4
    op = LagrangianHydroOperator(mesh, 1, rho0=1., use_viscosity=False)
    op.update_quadrature_data(expanded_state(op, 2., e0=3.))

    # density drops by det(J) = 4
    p = (gamma - 1.) * 0.25 * 3.
    expected = -p * np.eye(2)
    np.testing.assert_allclose(op.quad_data.stress, np.broadcast_to(expected, op.quad_data.stress.shape),
                               atol=1e-12)


def test_length_scale_follows_expansion(mesh):
    gamma, cfl, e0 = 1.4, 0.5, 3.
    op = LagrangianHydroOperator(mesh, 1, rho0=1., cfl=cfl)

    dt = op.estimate_stable_time_step(expanded_state(op, 2., e0=e0))

    h0 = np.sqrt(1. / 4.) / 2.
    np.testing.assert_allclose(dt, cfl * 2. * h0 / np.sqrt(gamma * (gamma - 1.) * e0))


def test_force_coefficients(mesh):
    op = LagrangianHydroOperator(mesh, 1, rho0=1.)
    rng = np.random.default_rng(0)
    state = op.initial_state()
    state.v[:] = rng.uniform(-1., 1., state.v.shape)
    op.update_quadrature_data(state.to_vector())

    qd = op.quad_data
    J = qd.jac
    w = np.tile(op.rule.weights, qd.nb_zones)
    expected = qd.stress @ np.linalg.inv(J).transpose(0, 2, 1) * (w * np.linalg.det(J))[:, None, None]

    np.testing.assert_allclose(qd.stress_jinv_t, expected, atol=1e-12)
    # the total stress stays symmetric
    np.testing.assert_allclose(qd.stress, qd.stress.transpose(0, 2, 1), atol=1e-12)


def test_tensor_viscosity(mesh):
    gamma = 1.4
    op = LagrangianHydroOperator(mesh, 1, rho0=1., use_viscosity=True)
    state = op.initial_state(e0=1.)

    h0 = 0.25
    p = gamma - 1.
    c = np.sqrt(gamma * (gamma - 1.))
    identity = np.broadcast_to(np.eye(2), op.quad_data.stress.shape)

    # uniform expansion: sym(grad v) = I, only the quadratic term
    state.v[:] = state.x
    op.update_quadrature_data(state.to_vector())
    np.testing.assert_allclose(op.quad_data.stress, (-p + 2. * h0**2) * identity, atol=1e-12)

    # uniform compression: sym(grad v) = -I, quadratic and linear terms
    state.v[:] = -state.x
    op.update_quadrature_data(state.to_vector())
    np.testing.assert_allclose(op.quad_data.stress, (-p - 2. * h0**2 - 0.5 * h0 * c) * identity, atol=1e-12)


def test_no_viscous_stress_when_disabled(mesh):
    gamma = 1.4
    op = LagrangianHydroOperator(mesh, 1, rho0=1., use_viscosity=False)
    state = op.initial_state(e0=1.)
    expected = np.broadcast_to(-(gamma - 1.) * np.eye(2), op.quad_data.stress.shape)

    for sign in (1., -1.):
        state.v[:] = sign * state.x
        op.update_quadrature_data(state.to_vector())
        np.testing.assert_allclose(op.quad_data.stress, expected, atol=1e-12)


def test_memoization(mesh):
    op = LagrangianHydroOperator(mesh, 1, rho0=1.)
    S = op.initial_state(e0=1.).to_vector()

    op.update_quadrature_data(S)
    op.update_quadrature_data(S)
    assert op.quad_update.nb_updates == 1
    assert op.quad_data.is_current_for(S)

    S2 = S.copy()
    S2[-1] = 2.
    assert not op.quad_data.is_current_for(S2)

    op.update_quadrature_data(S2)
    assert op.quad_update.nb_updates == 2


def test_cold_gas_has_unbounded_time_step(mesh):
    op = LagrangianHydroOperator(mesh, 1, rho0=1.)
    S = op.initial_state(e0=0.).to_vector()

    assert op.estimate_stable_time_step(S) == np.inf


def test_inverted_zone(mesh):
    op = LagrangianHydroOperator(mesh, 1, rho0=1.)
    state = op.initial_state()
    # mirror the mesh in x
    state.x[:op.h1.nb_dofs] *= -1.

    with pytest.raises(GeometryFault) as excinfo:
        op.update_quadrature_data(state.to_vector())

    assert excinfo.value.detJ < 0.
    assert not op.quad_data.is_current


def test_degenerate_initial_mesh():
    mesh = Mesh.cartesian([1, 1], order=1)
    mesh.nodes[:, 1] = 0.

    with pytest.raises(GeometryFault):
        LagrangianHydroOperator(mesh, 0, rho0=1.)


def test_compression_direction():
    A = np.array([[[1., 0.], [0., -2.]],
                  [[0., 1.], [1., 0.]]])
    mu, d = compression_direction(symmetrize(A))

    np.testing.assert_allclose(mu, [-2., -1.])
    np.testing.assert_allclose(np.abs(d[0]), [0., 1.], atol=1e-14)
    np.testing.assert_allclose(np.abs(d[1]), [np.sqrt(0.5), np.sqrt(0.5)])


def test_collapsed_zone():
    op = LagrangianHydroOperator(Mesh.cartesian([1, 1], order=1), 0, rho0=1.)
    state = op.initial_state()
    # flatten the zone onto the x axis
    state.x[op.h1.nb_dofs:] = 0.
    S = state.to_vector()

    with pytest.raises(GeometryFault) as excinfo:
        op.estimate_stable_time_step(S)

    assert excinfo.value.detJ == 0.
    assert op.phase is Phase.IDLE

    with pytest.raises(GeometryFault):
        op.compute_density(S)

    assert op.phase is Phase.IDLE
    assert not op.quad_data.is_current
