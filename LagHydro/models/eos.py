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
"""Equations of state for the Lagrangian hydro operator.

Negative specific internal energies, which come from discretization and
round-off, are clamped to zero before any evaluation.
"""
import numpy as np
import numpy.typing as npt

from ..exceptions import ConfigurationFault

NDArray = npt.NDArray[np.floating]


def ideal_gas(density, energy, gamma=1.4):
    """
    Ideal gas pressure.

    .. math::
        p(\\rho, e) = (\\gamma - 1) \\rho \\max(e, 0)

    Parameters
    ----------
    density : float or np.ndarray
        Current density.
    energy : float or np.ndarray
        Specific internal energy.
    gamma : float
        Adiabatic index.

    Returns
    -------
    float or np.ndarray
        Computed pressure.
    """
    return (gamma - 1.) * density * np.maximum(energy, 0.)


def sound_speed(gamma, energy):
    """
    Adiabatic sound speed of an ideal gas.

    .. math::
        c = \\sqrt{\\gamma (\\gamma - 1) \\max(e, 0)}

    Parameters
    ----------
    gamma : float
        Adiabatic index.
    energy : float or np.ndarray
        Specific internal energy.

    Returns
    -------
    float or np.ndarray
        Speed of sound.
    """
    return np.sqrt(gamma * (gamma - 1.) * np.maximum(energy, 0.))


class IdealGas:
    """Stateless ideal gas material with a fixed adiabatic index."""

    def __init__(self, gamma: float = 1.4):
        if gamma <= 1.:
            raise ConfigurationFault(f"Adiabatic index must be > 1, got {gamma}")
        self.gamma = gamma

    def pressure(self, density, energy):
        return ideal_gas(density, energy, self.gamma)

    def sound_speed(self, energy):
        return sound_speed(self.gamma, energy)

    def __repr__(self) -> str:
        return f"IdealGas(gamma={self.gamma})"


def get_material(prop):
    """Dispatch the equation of state on ``prop['EOS']``.

    Parameters
    ----------
    prop : dict
        Material properties (sanitized input).

    Returns
    -------
    IdealGas
        Material with ``pressure(rho, e)`` and ``sound_speed(e)``.
    """
    if prop['EOS'] == 'ideal':
        return IdealGas(prop['gamma'])
    raise ConfigurationFault(f"Unknown equation of state '{prop['EOS']}'")
