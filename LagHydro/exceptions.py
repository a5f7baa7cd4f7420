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
"""Fatal error categories of the hydrodynamics evaluator.

None of these are recovered locally. Shrinking the time step and retrying
is up to the driver that owns the time loop.
"""


class GeometryFault(RuntimeError):
    """Non-positive Jacobian determinant at a quadrature point."""

    def __init__(self, detJ: float, zone: int | None = None, point: int | None = None):
        self.detJ = detJ
        self.zone = zone
        self.point = point
        where = '' if zone is None else f" (zone {zone}, point {point})"
        super().__init__(f"Bad Jacobian determinant: {detJ:.6e}{where}")


class SolverNonconvergence(RuntimeError):
    """Conjugate gradient did not reach the requested tolerance."""

    def __init__(self, name: str, iterations: int, residual_norm: float):
        self.name = name
        self.iterations = iterations
        self.residual_norm = residual_norm
        super().__init__(f"CG solve '{name}' did not converge after {iterations} "
                         f"iterations (residual norm {residual_norm:.6e})")


class ConfigurationFault(IOError):
    """Unsupported geometry, orders or input values, detected at setup."""
