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
"""Block layout of the monolithic state vector.

The time integrator owns one flat vector ``S = [x, v, e]``: positions and
velocities component-major on the H1 space, then the specific internal
energy on the L2 space. Inside the operator the three blocks live in
independent buffers; the conversions below are the only place where the
flat layout is known.
"""
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

NDArray = npt.NDArray[np.floating]


@dataclass(frozen=True)
class StateLayout:
    """Sizes of the position/velocity (``h1_vsize``) and energy (``l2_size``) blocks."""
    h1_vsize: int
    l2_size: int

    @property
    def size(self) -> int:
        return 2 * self.h1_vsize + self.l2_size

    def offsets(self) -> tuple[int, int, int, int]:
        h = self.h1_vsize
        return 0, h, 2 * h, 2 * h + self.l2_size


@dataclass
class HydroState:
    """Position, velocity and specific internal energy as separate arrays."""
    x: NDArray
    v: NDArray
    e: NDArray

    @classmethod
    def from_vector(cls, S: NDArray, layout: StateLayout) -> "HydroState":
        S = np.asarray(S, dtype=float)
        if S.shape != (layout.size,):
            raise ValueError(f"State vector of shape {S.shape} does not match layout size {layout.size}")
        o0, o1, o2, o3 = layout.offsets()
        return cls(S[o0:o1].copy(), S[o1:o2].copy(), S[o2:o3].copy())

    def to_vector(self) -> NDArray:
        return np.concatenate([self.x, self.v, self.e])

    def copy(self) -> "HydroState":
        return HydroState(self.x.copy(), self.v.copy(), self.e.copy())
