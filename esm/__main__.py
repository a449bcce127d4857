import argparse
import logging

from esm.main import run_instance, run_batch
from esm.modules.capacity_expansion.utils import Specs


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Build and solve the energy system capacity expansion model.")
    parser.add_argument("instance", help="Instance directory (or directory of instances with --batch)")
    parser.add_argument("output", help="Output directory")
    parser.add_argument("--batch", action="store_true", help="Run every sub-directory of INSTANCE")
    parser.add_argument("--solver", default="appsi_highs", help="Pyomo solver name")
    for name in Specs._fields:
        parser.add_argument(f"--no-{name.replace('_', '-')}", dest=name, action="store_false",
                            help=f"Exclude the {name.replace('_', ' ')} constraints")
    return parser.parse_args(argv)


def main(argv=None):
    logging.basicConfig(level=logging.INFO, format='%(message)s')
    args = parse_args(argv)
    specs = Specs(**{name: getattr(args, name) for name in Specs._fields})
    solver_settings = {"solver_name": args.solver}

    if args.batch:
        outcomes = run_batch(args.instance, args.output, specs=specs, solver_settings=solver_settings)
        failed = [name for name, outcome in outcomes.items() if isinstance(outcome, Exception)]
        return 1 if failed else 0

    outcome = run_instance(args.instance, args.output, specs=specs, solver_settings=solver_settings)
    return 0 if outcome.optimal else 2


if __name__ == "__main__":
    raise SystemExit(main())
