import argparse
import logging
import sys

import numpy as np

from orsteps.assignment import SolutionStep
from orsteps.balance import balance
from orsteps.hungarian_graph import computeHungarianGraphSteps
from orsteps.hungarian_marks import computeHungarianSteps
from orsteps.northwest import computeNorthWestSteps
from orsteps.potentials import computePotentialsSteps
from orsteps.readers import readAssignmentCSV, readTransportCSV
from orsteps.report import describeStep, formatMatrix, traceToFrame
from orsteps.vam import computeVamSteps

INITIAL_METHODS = {
    "vam": computeVamSteps,
    "northwest": computeNorthWestSteps,
}

HUNGARIAN_VARIANTS = {
    "graph": computeHungarianGraphSteps,
    "marks": computeHungarianSteps,
}


def buildParser():
    parser = argparse.ArgumentParser(
        prog="orsteps",
        description="Step-by-step transportation (VAM, north-west corner, potentials) "
                    "and assignment (Hungarian) solvers",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="log every step at DEBUG level")
    sub = parser.add_subparsers(dest="command", required=True)

    for name in INITIAL_METHODS:
        p = sub.add_parser(name, help=f"initial plan by the {name} method")
        p.add_argument("file", help="CSV: supplies, demands, then cost rows")
        p.add_argument("--csv", default=None, help="write the step trace to CSV")

    p = sub.add_parser("potentials", help="optimize a plan with the method of potentials")
    p.add_argument("file", help="CSV: supplies, demands, then cost rows")
    p.add_argument("--start", choices=sorted(INITIAL_METHODS), default="vam", help="initial plan method")
    p.add_argument("--csv", default=None, help="write the step trace to CSV")

    p = sub.add_parser("hungarian", help="solve a square assignment problem")
    p.add_argument("file", help="CSV: square cost matrix, no header")
    p.add_argument("--variant", choices=sorted(HUNGARIAN_VARIANTS), default="graph")
    p.add_argument("--csv", default=None, help="write the step trace to CSV")
    return parser


def _initialPlan(method, costs, supplies, demands):
    steps = INITIAL_METHODS[method](costs, supplies, demands)
    if steps:
        return steps, np.array(steps[-1].alloc)
    problem = balance(costs, supplies, demands)
    return steps, np.zeros(problem.shape)


def _run(args):
    """Returns the step trace and the final table to print."""
    if args.command in INITIAL_METHODS:
        costs, supplies, demands = readTransportCSV(args.file)
        steps, alloc = _initialPlan(args.command, costs, supplies, demands)
        return steps, formatMatrix(alloc)

    if args.command == "potentials":
        costs, supplies, demands = readTransportCSV(args.file)
        problem = balance(costs, supplies, demands)
        _, alloc = _initialPlan(args.start, costs, supplies, demands)
        snapshots = computePotentialsSteps(problem.costs, alloc)
        last = snapshots[-1]
        final = last.allocAfter if last.allocAfter is not None else last.allocBefore
        return snapshots, formatMatrix(final)

    costs = readAssignmentCSV(args.file)
    steps = HUNGARIAN_VARIANTS[args.variant](costs)
    table = None
    if steps and isinstance(steps[-1], SolutionStep):
        chosen = np.zeros(costs.shape, dtype=int)
        for i, j in steps[-1].pairs:
            chosen[i, j] = 1
        table = formatMatrix(chosen)
    return steps, table


def main(argv=None):
    args = buildParser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        steps, table = _run(args)
    except (ValueError, OSError) as e:
        print(f"orsteps: {e}", file=sys.stderr)
        return 1

    for k, step in enumerate(steps, start=1):
        print(f"{k:>3}. {describeStep(step)}")
    if table is not None:
        print()
        print(table)

    if args.csv:
        traceToFrame(steps).to_csv(args.csv, index=False)
        print(f"Wrote trace to {args.csv}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
