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
"""PETSc conjugate gradient solver for the mass systems."""
import numpy as np
import numpy.typing as npt
from scipy.sparse import issparse

from .. import HAS_PETSC
from ..exceptions import SolverNonconvergence
from ..logging import get_logger

if not HAS_PETSC:
    raise ImportError(
        "petsc4py is required for the PETSc solver backend but is not installed.\n"
        "Install it or use the 'scipy' backend."
    )

from petsc4py import PETSc

NDArray = npt.NDArray[np.floating]

logger = get_logger('laghydro.solvers')


class _ShellContext:
    """Python context of a PETSc shell matrix applying ``operator.mult``."""

    def __init__(self, operator):
        self.operator = operator

    def mult(self, mat, x, y):
        y.array[:] = self.operator.mult(x.array_r)


class PETScCGSystem:
    """Conjugate gradient solves through a PETSc KSP.

    Global vectors are replicated on every process, so the PETSc objects live
    on ``PETSc.COMM_SELF`` and the operators handle the zone reductions.

    Parameters
    ----------
    rtol : float, optional
        Relative tolerance. Default: 1e-8.
    atol : float, optional
        Absolute tolerance. Default: 0.
    maxiter : int, optional
        Iteration cap. Default: 200.
    """

    def __init__(self, rtol: float = 1e-8, atol: float = 0., maxiter: int = 200):
        self.rtol = rtol
        self.atol = atol
        self.maxiter = maxiter
        self.comm = PETSc.COMM_SELF
        self.ksp = None

    def _create_matrix(self, operator) -> "PETSc.Mat":
        if issparse(operator):
            A = operator.tocsr()
            return PETSc.Mat().createAIJ(size=A.shape,
                                         csr=(A.indptr.astype(PETSc.IntType),
                                              A.indices.astype(PETSc.IntType),
                                              A.data),
                                         comm=self.comm)
        mat = PETSc.Mat().createPython(operator.shape, context=_ShellContext(operator), comm=self.comm)
        mat.setUp()
        return mat

    def solve(self, operator, rhs: NDArray, name: str = 'cg') -> NDArray:
        """Solve ``operator @ x = rhs`` starting from zero.

        Raises
        ------
        SolverNonconvergence
            If the tolerance is not met within ``maxiter`` iterations.
        """
        mat = self._create_matrix(operator)
        b = mat.createVecLeft()
        b.array[:] = rhs
        x = mat.createVecRight()
        x.zeroEntries()

        self.ksp = PETSc.KSP().create(self.comm)
        self.ksp.setOperators(mat)
        self.ksp.setType('cg')
        self.ksp.getPC().setType('none')
        self.ksp.setTolerances(rtol=self.rtol, atol=self.atol, max_it=self.maxiter)
        self.ksp.setInitialGuessNonzero(False)
        self.ksp.solve(b, x)

        info = self.get_convergence_info()
        if not info['converged']:
            logger.warning(f"CG solve '{name}' stopped after {info['iterations']} iterations "
                           f"(reason {info['reason']}), residual norm {info['residual_norm']:.4e}")
            raise SolverNonconvergence(name, info['iterations'], info['residual_norm'])

        return x.array.copy()

    def get_convergence_info(self) -> dict:
        """
        Get information about the last solve.

        Returns
        -------
        dict
            Dictionary with convergence info:
            - converged: bool
            - iterations: int
            - residual_norm: float
            - reason: int (PETSc convergence reason code)
        """
        reason = self.ksp.getConvergedReason()
        return {
            'converged': reason > 0,
            'iterations': self.ksp.getIterationNumber(),
            'residual_norm': self.ksp.getResidualNorm(),
            'reason': reason,
        }
