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
"""Matrix-free Lagrangian hydrodynamics right-hand-side evaluator."""

__version__ = "0.1.0"

try:
    import petsc4py  # noqa: F401
    HAS_PETSC = True
except ImportError:
    HAS_PETSC = False

from .exceptions import GeometryFault, SolverNonconvergence, ConfigurationFault  # noqa: E402
from .hydro import LagrangianHydroOperator, HydroState  # noqa: E402

__all__ = ["LagrangianHydroOperator",
           "HydroState",
           "GeometryFault",
           "SolverNonconvergence",
           "ConfigurationFault",
           "HAS_PETSC",
           "__version__"]
