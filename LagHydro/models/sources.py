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
"""Energy source terms for manufactured-solution test problems.

A source is any callable mapping physical points of shape (npts, dim) to
values of shape (npts,).
"""
from typing import Callable

import numpy as np
import numpy.typing as npt

from ..exceptions import ConfigurationFault

NDArray = npt.NDArray[np.floating]


def taylor_green_source(x: NDArray) -> NDArray:
    """Energy source of the 2D Taylor-Green vortex with gamma = 5/3.

    .. math::
        s(x, y) = \\frac{3\\pi}{8} \\left(\\cos 3\\pi x \\cos \\pi y - \\cos \\pi x \\cos 3\\pi y\\right)
    """
    px, py = np.pi * x[:, 0], np.pi * x[:, 1]
    return 3. * np.pi / 8. * (np.cos(3. * px) * np.cos(py) - np.cos(px) * np.cos(3. * py))


def taylor_green_velocity(x: NDArray) -> NDArray:
    """Initial velocity of the 2D Taylor-Green vortex, shape (npts, 2)."""
    px, py = np.pi * x[:, 0], np.pi * x[:, 1]
    return np.stack([np.sin(px) * np.cos(py), -np.cos(px) * np.sin(py)], axis=-1)


def get_energy_source(name: str | None) -> Callable | None:
    if name is None or name == 'none':
        return None
    elif name == 'taylor_green':
        return taylor_green_source
    raise ConfigurationFault(f"Unknown energy source '{name}'")
