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
from .. import HAS_PETSC
from ..exceptions import ConfigurationFault
from .scipy_system import ScipyCGSystem


def get_cg_system(backend: str = 'scipy', **kwargs):
    """CG solver for ``backend`` ('scipy' or 'petsc') with tolerance keyword arguments."""
    if backend == 'scipy':
        return ScipyCGSystem(**kwargs)
    elif backend == 'petsc':
        if not HAS_PETSC:
            raise ConfigurationFault("Solver backend 'petsc' requested but petsc4py is not installed")
        from .petsc_system import PETScCGSystem
        return PETScCGSystem(**kwargs)
    raise ConfigurationFault(f"Unknown solver backend '{backend}'")
