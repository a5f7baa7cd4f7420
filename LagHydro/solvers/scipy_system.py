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
"""SciPy conjugate gradient solver for the symmetric positive definite mass systems."""

import numpy as np
import numpy.typing as npt

from scipy.sparse.linalg import cg, aslinearoperator

from ..exceptions import SolverNonconvergence
from ..logging import get_logger

NDArray = npt.NDArray[np.floating]

logger = get_logger('laghydro.solvers')


class ScipyCGSystem:
    """Conjugate gradient solves through SciPy.

    Works with anything ``aslinearoperator`` accepts: sparse matrices,
    ``LinearOperator`` objects, or operators exposing ``shape`` and ``mult``.
    Global vectors are replicated on every process, so every process runs
    the same iteration.

    Parameters
    ----------
    rtol : float, optional
        Relative tolerance with respect to the right-hand side norm. Default: 1e-8.
    atol : float, optional
        Absolute tolerance. Default: 0.
    maxiter : int, optional
        Iteration cap. Default: 200.
    """

    def __init__(self, rtol: float = 1e-8, atol: float = 0., maxiter: int = 200):
        self.rtol = rtol
        self.atol = atol
        self.maxiter = maxiter

        # Convergence info of the last solve
        self._iterations = 0
        self._converged = True
        self._residual_norm = 0.

    def solve(self, operator, rhs: NDArray, name: str = 'cg') -> NDArray:
        """Solve ``operator @ x = rhs`` starting from zero.

        Raises
        ------
        SolverNonconvergence
            If the tolerance is not met within ``maxiter`` iterations.
        """
        if hasattr(operator, 'mult') and hasattr(operator, 'as_linear_operator'):
            A = operator.as_linear_operator()
        else:
            A = aslinearoperator(operator)

        self._iterations = 0

        def count(xk):
            self._iterations += 1

        x, info = cg(A, rhs, rtol=self.rtol, atol=self.atol, maxiter=self.maxiter, callback=count)

        self._residual_norm = float(np.linalg.norm(rhs - A.matvec(x)))
        self._converged = (info == 0)

        if info < 0:
            raise ValueError(f"Illegal input or breakdown in CG solve '{name}' (info={info})")
        if info > 0:
            logger.warning(f"CG solve '{name}' stopped after {self._iterations} iterations, "
                           f"residual norm {self._residual_norm:.4e}")
            raise SolverNonconvergence(name, self._iterations, self._residual_norm)

        return x

    def get_convergence_info(self) -> dict:
        """Get information about the last solve.

        Returns
        -------
        dict
            Dictionary with convergence info:
            - converged: bool
            - iterations: int
            - residual_norm: float (true residual of the returned solution)
            - reason: int (1 if converged, -1 if not)
        """
        return {
            'converged': self._converged,
            'iterations': self._iterations,
            'residual_norm': self._residual_norm,
            'reason': 1 if self._converged else -1,
        }
