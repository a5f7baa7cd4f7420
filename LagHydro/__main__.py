from argparse import ArgumentParser

import numpy as np

from LagHydro.hydro import LagrangianHydroOperator
from LagHydro.io import print_header, write_yaml


def get_parser():

    parser = ArgumentParser(description="Evaluate the Lagrangian hydro right-hand side for a YAML input.")
    required = parser.add_argument_group('required arguments')
    required.add_argument('-i', '--input',
                          dest="filename",
                          help="YAML input file",
                          required=True)
    parser.add_argument('-o', '--output',
                        dest="output",
                        default=None,
                        help="YAML file for a summary of the evaluation")

    return parser


if __name__ == "__main__":

    parser = get_parser()
    args = parser.parse_args()

    op = LagrangianHydroOperator.from_yaml(args.filename)
    S = op.initial_state().to_vector()

    dt = op.estimate_stable_time_step(S)
    dS = op.evaluate_derivative(S)

    dx, dv, de = np.split(dS, op.layout.offsets()[1:-1])
    rho = op.compute_density()

    summary = {'nb_zones': int(op.mesh.nb_zones),
               'h0': float(op.quad_data.h0),
               'dt_estimate': float(dt),
               'max_abs_dvdt': float(np.abs(dv).max()),
               'max_abs_dedt': float(np.abs(de).max()),
               'mass': float(op.partition.allreduce_sum(op.quad_data.rho0_detj0_w.sum())),
               'min_density': float(rho.min())}

    print_header("RHS EVALUATION")
    for k, val in summary.items():
        print(f'  - {k:<25s}: {val}')

    if args.output is not None:
        write_yaml(summary, args.output)
