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
import matplotlib.pyplot as plt
import numpy as np
import numpy.typing as npt
from matplotlib.collections import PolyCollection

from .state import HydroState

NDArray = npt.NDArray[np.floating]


def zone_outlines(mesh, x: NDArray) -> NDArray:
    """Corner coordinates of all 2D zones on the mesh ``x``, shape (nb_zones, nb_corners, 2)."""
    if mesh.dim != 2:
        raise ValueError(f"Zone outlines are only available in 2D, got dim = {mesh.dim}")

    nodes = x.reshape(2, -1).T
    if mesh.geometry == 'triangle':
        corners = [0, 1, 2]
    else:
        p = mesh.order
        n = (p + 1)**2
        # lexicographic numbering, counterclockwise corners
        corners = [0, p, n - 1, n - 1 - p]

    return nodes[mesh.elem_dofs[:, corners]]


def plot_zone_field(op, S: NDArray, field: NDArray | None = None, ax=None, cmap='viridis',
                    label=None, show=False):
    """Plot an energy-space field as zone averages on the deformed mesh.

    Parameters
    ----------
    op : LagrangianHydroOperator
        Operator owning the mesh and spaces.
    S : np.ndarray
        Flat state vector; positions and (by default) energy are taken from it.
    field : np.ndarray, optional
        L2 coefficients to plot (the default is None, which plots the energy).
    ax : matplotlib.axes.Axes, optional
        Target axes (the default is None, which creates a new figure).
    cmap : str, optional
        Colormap name (the default is 'viridis').
    label : str, optional
        Colorbar label.
    show : bool, optional
        Flag for plt.show() (the default is False)

    Returns
    -------
    tuple
        Figure and axes.
    """
    state = HydroState.from_vector(S, op.layout)
    values = state.e if field is None else np.asarray(field)

    zone_avg = values[op.l2.elem_dofs].mean(axis=1)

    if ax is None:
        fig, ax = plt.subplots(1, figsize=(5, 5))
    else:
        fig = ax.figure

    coll = PolyCollection(zone_outlines(op.mesh, state.x), array=zone_avg, cmap=cmap, edgecolors='k',
                          linewidths=0.3)
    ax.add_collection(coll)
    ax.autoscale_view()
    ax.set_aspect('equal')
    ax.set_xlabel(r"$x$")
    ax.set_ylabel(r"$y$")
    fig.colorbar(coll, ax=ax, label=label if label is not None else r"Specific internal energy $e$")

    if show:
        plt.show()

    return fig, ax
