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
import io
import pytest
import yaml
import numpy as np

from LagHydro import LagrangianHydroOperator, ConfigurationFault, HydroState
from LagHydro.io import read_yaml_input, write_yaml
from LagHydro.logging import get_logger
from LagHydro.models import taylor_green_source
from LagHydro.solvers import ScipyCGSystem

sim = """
options:
    silent: True
mesh:
    type: quad
    nb_zones: [4, 4]
    lengths: [1., 1.]
discretization:
    order_v: 2
    order_e: 1
    assembly: partial
properties:
    EOS: ideal
    gamma: 1.6666666666666667
    rho0: 1.
    viscosity: False
    source: taylor_green
solver:
    CFL: 0.5
    rtol: 1.e-10
    max_it: 300
initial:
    e0: 1.5
    v0: taylor_green
"""


def test_read_input():
    input_dict = read_yaml_input(io.StringIO(sim))

    assert input_dict['mesh']['nb_zones'] == [4, 4]
    assert input_dict['mesh']['partition'] is False
    assert input_dict['discretization']['tensor'] is None
    assert input_dict['properties']['gamma'] == pytest.approx(5. / 3.)
    assert input_dict['solver']['atol'] == 0.
    assert input_dict['solver']['backend'] == 'scipy'
    assert input_dict['initial']['v0'] == 'taylor_green'


def test_defaults():
    input_dict = read_yaml_input(io.StringIO("mesh:\n    nb_zones: [2, 2]\n"))

    assert input_dict['discretization']['order_v'] == 2
    assert input_dict['discretization']['order_e'] == 1
    assert input_dict['properties']['EOS'] == 'ideal'
    assert input_dict['properties']['gamma'] == 1.4
    assert input_dict['solver']['rtol'] == 1e-8
    assert input_dict['solver']['max_it'] == 200
    assert input_dict['initial']['e0'] == 1.
    assert set(input_dict['options']) == {'logdir', 'silent'}


def test_operator_from_string():
    op = LagrangianHydroOperator.from_string(sim)

    assert op.mesh.geometry == 'square'
    assert op.mesh.nb_zones == 16
    assert op.material.gamma == pytest.approx(5. / 3.)
    assert op.energy_source is taylor_green_source
    assert not op.use_viscosity
    assert isinstance(op.cg, ScipyCGSystem)
    assert op.cg.rtol == 1e-10

    state = op.initial_state()
    np.testing.assert_allclose(state.e, 1.5)
    assert np.abs(state.v).max() > 0.

    deriv = HydroState.from_vector(op.evaluate_derivative(state.to_vector()), op.layout)
    np.testing.assert_allclose(deriv.x, state.v)


def test_operator_from_yaml(tmp_path):
    fname = tmp_path / 'input.yaml'
    fname.write_text(sim.replace('type: quad', 'type: tri').replace('order_v: 2', 'order_v: 1'))

    op = LagrangianHydroOperator.from_yaml(str(fname))

    assert op.mesh.geometry == 'triangle'
    assert op.mesh.nb_zones == 32


@pytest.mark.parametrize('snippet', ["mesh:\n    type: hexagon\n    nb_zones: [2, 2]\n",
                                     "mesh:\n    type: quad\n    nb_zones: [2, 2, 2]\n",
                                     "mesh:\n    type: hex\n    nb_zones: [2, 2, 0]\n",
                                     "mesh:\n    type: quad\n",
                                     "mesh:\n    nb_zones: [2, 2]\nproperties:\n    EOS: tabulated\n",
                                     "mesh:\n    nb_zones: [2, 2]\nproperties:\n    gamma: 0.9\n",
                                     "mesh:\n    nb_zones: [2, 2]\ndiscretization:\n    assembly: element\n",
                                     "mesh:\n    nb_zones: [2, 2]\nsolver:\n    CFL: -1.\n",
                                     "mesh:\n    nb_zones: [2, 2]\nsolver:\n    backend: amgx\n",
                                     "mesh:\n    type: tet\n    nb_zones: [1, 1, 1]\n",
                                     "properties:\n    gamma: 1.4\n",
                                     "- 1\n- 2\n"])
def test_invalid_input(snippet):
    with pytest.raises(ConfigurationFault):
        read_yaml_input(io.StringIO(snippet))


def test_write_yaml(tmp_path):
    fname = tmp_path / 'out.yaml'
    write_yaml({'dt_estimate': 0.1, 'nb_zones': 4}, fname)

    with open(fname) as f:
        assert yaml.full_load(f) == {'dt_estimate': 0.1, 'nb_zones': 4}


def test_logfile(tmp_path):
    logger = get_logger('laghydro.test', outdir=str(tmp_path), filename='test.log', force=True)
    logger.info("setup done")

    for h in logger.handlers:
        h.flush()

    assert "setup done" in (tmp_path / 'test.log').read_text()
    assert not logger.propagate
