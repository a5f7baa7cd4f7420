import yaml

from .exceptions import ConfigurationFault


def print_header(s, n=60, f0='*', f1=' '):

    if len(s) > n:
        n = len(s) + 4

    w = n + len(s) % 2
    b = (w - len(s)) // 2 - 1
    print(w * f0)
    print(f0 + b * f1 + s + b * f1 + f0)
    print(w * f0)


def print_dict(d):
    for k, v in d.items():
        if not isinstance(v, dict):
            print(f'  - {k:<25s}: {v}')
        else:
            print(f'  - {k}:')
            for kk, vv in v.items():
                print(f'    - {kk:<23s}: {vv}')


def write_yaml(output_dict, fname):

    with open(fname, 'w') as FILE:
        yaml.dump(output_dict, FILE)


def read_yaml_input(file):

    print_header("PROBLEM SETUP")

    sanitizing_functions = {'options': sanitize_options,
                            'mesh': sanitize_mesh,
                            'discretization': sanitize_discretization,
                            'properties': sanitize_properties,
                            'solver': sanitize_solver,
                            'initial': sanitize_initial}

    raw_dict = yaml.full_load(file)

    if not isinstance(raw_dict, dict):
        raise ConfigurationFault("Input must be a YAML mapping")

    if 'mesh' not in raw_dict.keys():
        raise ConfigurationFault("Input requires a 'mesh' section")

    sanitized_dict = {}

    # missing sections fall back to their defaults
    for key, func in sanitizing_functions.items():
        print(f'- {key}:')
        sanitized_dict[key] = func(raw_dict.get(key) or {})

    if sanitized_dict['mesh']['type'] in ['tri', 'tet'] and sanitized_dict['discretization']['order_v'] != 1:
        raise ConfigurationFault("Simplex meshes only support velocity order 1")

    print_header("PROBLEM SETUP COMPLETED")

    return sanitized_dict


def sanitize_options(d):
    out = {}
    out['logdir'] = d.get('logdir', None)
    out['silent'] = bool(d.get('silent', False))

    print_dict(out)

    return out


def sanitize_mesh(d):

    available = {'quad': 2, 'tri': 2, 'hex': 3, 'tet': 3}

    out = {}

    out['type'] = str(d.get('type', 'quad'))
    if out['type'] not in available.keys():
        raise ConfigurationFault(f"Specify a valid mesh type {list(available.keys())}")

    dim = available[out['type']]

    if 'nb_zones' not in d.keys():
        raise ConfigurationFault("Must specify the number of zones per direction (nb_zones)")

    out['nb_zones'] = [int(n) for n in d['nb_zones']]
    out['lengths'] = [float(le) for le in d.get('lengths', [1.] * dim)]

    if len(out['nb_zones']) != dim or len(out['lengths']) != dim:
        raise ConfigurationFault(f"Mesh type '{out['type']}' needs {dim} entries in nb_zones and lengths")
    if any(n < 1 for n in out['nb_zones']):
        raise ConfigurationFault("Number of zones must be positive")
    if any(le <= 0. for le in out['lengths']):
        raise ConfigurationFault("Domain lengths must be positive")

    out['partition'] = bool(d.get('partition', False))

    print_dict(out)

    return out


def sanitize_discretization(d):

    out = {}

    out['order_v'] = int(d.get('order_v', 2))
    out['order_e'] = int(d.get('order_e', out['order_v'] - 1))

    if out['order_v'] < 1:
        raise ConfigurationFault("Velocity order must be >= 1")
    if out['order_e'] < 0:
        raise ConfigurationFault("Energy order must be >= 0")

    out['assembly'] = str(d.get('assembly', 'partial'))
    if out['assembly'] not in ['partial', 'full']:
        raise ConfigurationFault("Assembly must be 'partial' or 'full'")

    tensor = d.get('tensor', None)
    out['tensor'] = None if tensor is None else bool(tensor)

    print_dict(out)

    return out


def sanitize_properties(d):

    out = {}

    # EOS
    available_eos = ['ideal']
    out['EOS'] = str(d.get('EOS', 'ideal'))

    if out['EOS'] not in available_eos:
        raise ConfigurationFault("Specify a valid equation of state")

    out['gamma'] = float(d.get('gamma', 1.4))
    if out['gamma'] <= 1.:
        raise ConfigurationFault("Adiabatic index must be > 1")

    out['rho0'] = float(d.get('rho0', 1.))
    if out['rho0'] <= 0.:
        raise ConfigurationFault("Initial density must be positive")

    out['viscosity'] = bool(d.get('viscosity', True))
    out['source'] = str(d.get('source', 'none'))

    if out['source'] not in ['none', 'taylor_green']:
        raise ConfigurationFault("Specify a valid energy source")

    print_dict(out)

    return out


def sanitize_solver(d):

    out = {}

    out['CFL'] = float(d.get('CFL', 0.5))
    out['rtol'] = float(d.get('rtol', 1e-8))
    out['atol'] = float(d.get('atol', 0.))
    out['max_it'] = int(d.get('max_it', 200))
    out['backend'] = str(d.get('backend', 'scipy'))

    if out['CFL'] <= 0.:
        raise ConfigurationFault("CFL number must be positive")
    if out['backend'] not in ['scipy', 'petsc']:
        raise ConfigurationFault("Solver backend must be 'scipy' or 'petsc'")

    print_dict(out)

    return out


def sanitize_initial(d):

    out = {}

    out['e0'] = float(d.get('e0', 1.))
    if out['e0'] < 0.:
        raise ConfigurationFault("Initial energy must be non-negative")

    v0 = d.get('v0', 0.)
    out['v0'] = v0 if isinstance(v0, str) else float(v0)

    print_dict(out)

    return out
