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
"""Right-hand side of the Lagrangian hydrodynamics equations.

For a state ``S = [x, v, e]`` the operator returns ``dS/dt = [v, dv/dt, de/dt]``
with::

    Mv dv/dt = -F . 1             (momentum)
    Me de/dt =  F^T . v + s       (energy, optional source s)

where F is the force operator and Mv, Me are the velocity and energy mass
matrices. Both mass systems are solved with conjugate gradients.
"""
import enum
import logging
import io

import numpy as np
import numpy.typing as npt
from mpi4py import MPI
from typing import Callable

try:
    # Py>=3.11
    from typing import Self
except ImportError:
    # Py<=3.10
    from typing_extensions import Self

from .exceptions import ConfigurationFault, GeometryFault
from .fem import Mesh, H1Space, L2Space, get_integration_rule
from .force import ForcePAOperator, assemble_force_matrix
from .io import read_yaml_input
from .logging import get_logger
from .mass import MassPAOperator, AssembledMassOperator
from .models import IdealGas, get_material, get_energy_source
from .models.sources import taylor_green_velocity
from .quad_data import QuadratureData
from .quad_update import QuadratureUpdate
from .solvers import get_cg_system
from .state import HydroState, StateLayout

NDArray = npt.NDArray[np.floating]

ASSEMBLY_TYPES = ('partial', 'full')


class Phase(enum.Enum):
    IDLE = 'idle'
    QUADRATURE_STALE = 'quadrature_stale'
    QUADRATURE_FRESH = 'quadrature_fresh'
    SOLVING = 'solving'


def initial_length_scale(geometry: str, volume: float, nb_zones: int, order: int) -> float:
    """Mean zone size of a mesh with zones of similar size, divided by the order."""
    if geometry == 'square':
        h0 = np.sqrt(volume / nb_zones)
    elif geometry == 'triangle':
        h0 = np.sqrt(2. * volume / nb_zones)
    elif geometry == 'cube':
        h0 = (volume / nb_zones)**(1. / 3.)
    elif geometry == 'tetrahedron':
        h0 = (6. * volume / nb_zones)**(1. / 3.)
    else:
        raise ConfigurationFault(f"Unknown zone type '{geometry}'")
    return h0 / order


class LagrangianHydroOperator:
    """
    Time derivative of the Lagrangian hydro state, for an external ODE integrator.

    Parameters
    ----------
    mesh : Mesh
        Initial mesh; its node order is the velocity order.
    order_e : int
        Order of the discontinuous energy space.
    rho0 : float or NDArray
        Initial density, constant or as coefficients on the energy space.
    material : IdealGas, optional
        Equation of state (default: ideal gas with gamma = 1.4).
    cfl : float, optional
        CFL number of the time step estimate (default 0.5).
    use_viscosity : bool, optional
        Enable the tensor artificial viscosity (default True).
    assembly : str, optional
        'partial' (matrix-free, default) or 'full' (sparse matrices).
    tensor : bool, optional
        Use sum factorization for the force operator; default: whenever
        the zones are tensor products.
    energy_source : callable, optional
        ``f(points) -> values`` added to the energy equation.
    solver : ScipyCGSystem or PETScCGSystem, optional
        CG solver (default: SciPy, rtol 1e-8, atol 0, 200 iterations).
    """

    def __init__(self,
                 mesh: Mesh,
                 order_e: int,
                 rho0: float | NDArray,
                 material: IdealGas | None = None,
                 cfl: float = 0.5,
                 use_viscosity: bool = True,
                 assembly: str = 'partial',
                 tensor: bool | None = None,
                 energy_source: Callable | None = None,
                 solver=None,
                 logger=None) -> None:

        if assembly not in ASSEMBLY_TYPES:
            raise ConfigurationFault(f"Assembly type must be one of {ASSEMBLY_TYPES}, got '{assembly}'")
        if cfl <= 0.:
            raise ConfigurationFault(f"CFL number must be positive, got {cfl}")
        if order_e < 0:
            raise ConfigurationFault(f"Energy order must be >= 0, got {order_e}")

        self.logger = get_logger('laghydro.hydro') if logger is None else logger

        self.mesh = mesh
        self.dim = mesh.dim
        self.h1 = H1Space(mesh)
        self.l2 = L2Space(mesh, order_e)
        self.layout = StateLayout(self.h1.vsize, self.l2.nb_dofs)
        self.partition = mesh.partition

        self.material = IdealGas() if material is None else material
        self.cfl = cfl
        self.use_viscosity = use_viscosity
        self.assembly = assembly
        self.energy_source = energy_source
        self.cg = get_cg_system('scipy', rtol=1e-8, atol=0., maxiter=200) if solver is None else solver

        self.rule = get_integration_rule(mesh.geometry, 3 * mesh.order + order_e - 1)
        self.quad_data = QuadratureData(self.dim, self.partition.nb_local_zones, self.rule.nb_points)

        self._init_reference_data(rho0)

        self.quad_update = QuadratureUpdate(self.quad_data, self.h1, self.l2, self.rule,
                                            self.material, cfl, use_viscosity)
        self.force = ForcePAOperator(self.quad_data, self.h1, self.l2, self.rule, tensor=tensor)

        if assembly == 'partial':
            self.velocity_mass = [MassPAOperator(self.quad_data, self.h1, self.rule) for _ in range(self.dim)]
            self.energy_mass = MassPAOperator(self.quad_data, self.l2, self.rule)
        else:
            self.velocity_mass = [AssembledMassOperator(self.quad_data, self.h1, self.rule) for _ in range(self.dim)]
            self.energy_mass_inv = MassPAOperator(self.quad_data, self.l2, self.rule).local_inverses()

        self.phase = Phase.IDLE
        self.initial: dict = {}
        self._F = None

        self.logger.info(f"Lagrangian hydro operator: {mesh.nb_zones} {mesh.geometry} zones "
                         f"({self.partition.nb_local_zones} local), "
                         f"H1 order {mesh.order} ({self.h1.vsize} dofs), "
                         f"L2 order {order_e} ({self.l2.nb_dofs} dofs), "
                         f"{self.rule.nb_points} quadrature points per zone, "
                         f"{assembly} assembly{' (sum factorization)' if self.force.is_tensor else ''}, "
                         f"h0 = {self.quad_data.h0:.4e}")

    # ---------------------------
    # Constructors
    # ---------------------------

    @classmethod
    def from_input(cls, input_dict: dict) -> Self:
        """Create the operator from a sanitized input dictionary (see ``read_yaml_input``)."""
        options = input_dict['options']
        mesh_spec = input_dict['mesh']
        disc = input_dict['discretization']
        prop = input_dict['properties']
        solver_spec = input_dict['solver']

        if mesh_spec['type'] in ('quad', 'hex'):
            mesh = Mesh.cartesian(mesh_spec['nb_zones'], mesh_spec['lengths'], order=disc['order_v'])
        else:
            if disc['order_v'] != 1:
                raise ConfigurationFault("Simplex meshes only support velocity order 1")
            mesh = Mesh.cartesian_simplex(mesh_spec['nb_zones'], mesh_spec['lengths'])

        if mesh_spec['partition']:
            mesh = mesh.partitioned(MPI.COMM_WORLD)

        logger = get_logger('laghydro.hydro', outdir=options['logdir'], force=True,
                            level=logging.WARNING if options['silent'] else logging.INFO)

        solver = get_cg_system(solver_spec['backend'],
                               rtol=solver_spec['rtol'],
                               atol=solver_spec['atol'],
                               maxiter=solver_spec['max_it'])

        op = cls(mesh,
                 order_e=disc['order_e'],
                 rho0=prop['rho0'],
                 material=get_material(prop),
                 cfl=solver_spec['CFL'],
                 use_viscosity=prop['viscosity'],
                 assembly=disc['assembly'],
                 tensor=disc['tensor'],
                 energy_source=get_energy_source(prop['source']),
                 solver=solver,
                 logger=logger)
        op.initial = dict(input_dict.get('initial', {}))

        return op

    @classmethod
    def from_yaml(cls, fname: str) -> Self:
        with open(fname, 'r') as ymlfile:
            input_dict = read_yaml_input(ymlfile)
        return cls.from_input(input_dict)

    @classmethod
    def from_string(cls, ymlstring: str) -> Self:
        with io.StringIO(ymlstring) as ymlfile:
            input_dict = read_yaml_input(ymlfile)
        return cls.from_input(input_dict)

    # ---------------------------
    # Setup
    # ---------------------------

    def _init_reference_data(self, rho0: float | NDArray) -> None:
        """Reference quantities of the initial mesh, written once."""
        qd = self.quad_data
        w = self.rule.weights

        rho0 = np.asarray(rho0, dtype=float)
        if rho0.ndim == 0:
            rho0 = np.full(self.l2.nb_dofs, float(rho0))
        elif rho0.shape != (self.l2.nb_dofs,):
            raise ConfigurationFault(f"Initial density must be a scalar or have {self.l2.nb_dofs} "
                                     f"L2 coefficients, got shape {rho0.shape}")

        J0 = self.h1.jacobians(self.mesh.node_vector(), self.rule)
        detJ0 = np.linalg.det(J0)
        if not np.all(detJ0 > 0.):
            z, q = np.unravel_index(np.argmin(detJ0), detJ0.shape)
            raise GeometryFault(float(detJ0[z, q]), zone=int(self.partition.zones[z]), point=int(q))

        rho_vals = self.l2.values(rho0, self.rule)
        n = qd.size

        qd.jac0inv[:] = np.linalg.inv(J0).reshape(n, self.dim, self.dim)
        qd.jac[:] = J0.reshape(n, self.dim, self.dim)
        qd.rho0_detj0[:] = (detJ0 * rho_vals).ravel()
        qd.rho0_detj0_w[:] = (detJ0 * rho_vals * w).ravel()

        volume = self.partition.allreduce_sum(float(np.sum(detJ0 * w)))
        nb_zones = self.partition.allreduce_sum(self.partition.nb_local_zones)
        qd.h0 = initial_length_scale(self.mesh.geometry, volume, nb_zones, self.mesh.order)

    def initial_state(self, e0: float | None = None, v0: float | str | None = None) -> HydroState:
        """State on the initial mesh with constant energy and velocity.

        ``v0`` may be a constant or ``'taylor_green'``; missing values are
        taken from the ``initial`` input section, then default to e0 = 1, v0 = 0.
        """
        e0 = self.initial.get('e0', 1.) if e0 is None else e0
        v0 = self.initial.get('v0', 0.) if v0 is None else v0

        x = self.mesh.node_vector()
        if isinstance(v0, str):
            if v0 != 'taylor_green' or self.dim != 2:
                raise ConfigurationFault(f"Unknown initial velocity '{v0}' for a {self.dim}D mesh")
            v = taylor_green_velocity(self.mesh.nodes).T.ravel().copy()
        else:
            v = np.full(self.h1.vsize, float(v0))
        e = np.full(self.l2.nb_dofs, float(e0))

        return HydroState(x, v, e)

    # ---------------------------
    # Interface of the time integrator
    # ---------------------------

    def update_quadrature_data(self, S: NDArray) -> None:
        if not self.quad_data.is_current_for(S):
            self.phase = Phase.QUADRATURE_STALE
        self.quad_update.update(S)
        self.phase = Phase.QUADRATURE_FRESH

    def evaluate_derivative(self, S: NDArray) -> NDArray:
        """Return ``dS/dt`` for the flat state vector ``S``."""
        state = HydroState.from_vector(S, self.layout)

        try:
            self.update_quadrature_data(S)
            self.phase = Phase.SOLVING

            dx = state.v.copy()
            dv = self._solve_velocity()
            de = self._solve_energy(state)
        finally:
            self.quad_data.invalidate()
            self.phase = Phase.IDLE

        return HydroState(dx, dv, de).to_vector()

    def estimate_stable_time_step(self, S: NDArray) -> float:
        """Global minimum of the time step estimate after updating for ``S``."""
        try:
            self.update_quadrature_data(S)
        finally:
            self.phase = Phase.IDLE
        return self.partition.allreduce_min(self.quad_data.dt_est)

    def reset_time_step_estimate(self) -> None:
        """Forget the running minimum; the next estimate recomputes from its state."""
        self.quad_data.reset_time_step_estimate()
        self.quad_data.invalidate()

    # ---------------------------
    # Solves
    # ---------------------------

    def _force_matrix(self):
        return assemble_force_matrix(self.quad_data, self.h1, self.l2, self.rule)

    def _solve_velocity(self) -> NDArray:
        one = np.ones(self.l2.nb_dofs)
        if self.assembly == 'partial':
            rhs = -self.force.mult(one)
        else:
            self._F = self._force_matrix()
            rhs = -self.partition.sum_inplace(self._F @ one)

        rhs = rhs.reshape(self.dim, self.h1.nb_dofs)
        dv = np.zeros_like(rhs)

        # components are decoupled, each with its own fixed boundary
        for c in range(self.dim):
            b = rhs[c].copy()
            mass = self.velocity_mass[c]
            mass.eliminate_rhs(self.h1.essential_dofs(c), b)
            dv[c] = self.cg.solve(mass, b, name=f'velocity_{c}')
            self.logger.debug(f"velocity[{c}] CG: {self.cg.get_convergence_info()}")

        return dv.ravel()

    def _solve_energy(self, state: HydroState) -> NDArray:
        if self.assembly == 'partial':
            rhs = self.force.mult_transpose(state.v)
        else:
            rhs = self.partition.sum_inplace(self._F.T @ state.v)

        if self.energy_source is not None:
            rhs += self.energy_source_vector(state.x)

        if self.assembly == 'partial':
            de = self.cg.solve(self.energy_mass, rhs, name='energy')
            self.logger.debug(f"energy CG: {self.cg.get_convergence_info()}")
            return de

        # zone-local inversion of the block diagonal energy mass matrix
        dofs = self.l2.local_dofs
        de = np.zeros(self.l2.nb_dofs)
        de[dofs] = np.einsum('zij,zj->zi', self.energy_mass_inv, rhs[dofs])
        return self.partition.sum_inplace(de)

    def energy_source_vector(self, x: NDArray) -> NDArray:
        """Integrate the energy source against the L2 basis on the mesh ``x``."""
        B, _ = self.l2.tabulate(self.rule)
        J = self.h1.jacobians(x, self.rule)
        x_q = self.h1.values(x, self.rule)
        nz, nqp = J.shape[:2]

        f = np.asarray(self.energy_source(x_q.reshape(-1, self.dim))).reshape(nz, nqp)
        loc = (f * self.rule.weights * np.linalg.det(J)) @ B
        return self.l2.scatter_scalar(loc)

    # ---------------------------
    # Diagnostics
    # ---------------------------

    def compute_density(self, S: NDArray | None = None) -> NDArray:
        """L2 projection of the density onto the energy space.

        Uses the mesh of ``S`` if given, else the Jacobians of the last
        quadrature update (the initial mesh before any update).
        """
        if S is not None:
            try:
                self.update_quadrature_data(S)
            finally:
                self.phase = Phase.IDLE

        qd = self.quad_data
        B, _ = self.l2.tabulate(self.rule)
        detJ = np.linalg.det(qd.by_zone('jac'))

        M = np.einsum('zq,qi,qj->zij', self.rule.weights * detJ, B, B)
        # rho * det(J) * w = rho0 * det(J0) * w at every point
        rhs = qd.by_zone('rho0_detj0_w') @ B
        rho_loc = np.linalg.solve(M, rhs[..., None])[..., 0]

        rho = np.zeros(self.l2.nb_dofs)
        rho[self.l2.local_dofs] = rho_loc
        return self.partition.sum_inplace(rho)
