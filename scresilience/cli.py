"""
Command line driver.

    scresilience deterministic            reference scenario, unified MIP
    scresilience discrete -n 20           one L-shaped solve on one batch
    scresilience full -m 2 -n 20 --n2 50  SAA bounds and selected policy
"""

import argparse
import logging

from .data import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_BATCHES,
    DEFAULT_CONFIDENCE,
    DEFAULT_EVALUATION_SIZE,
)
from .deterministic import UnifiedModel
from .lshaped import MulticutLShaped
from .risk import RISK_MEASURES
from .saa import SampledAverageApproximation, batch_shape
from .sampling import SAMPLERS, single_scenario

log = logging.getLogger(__name__)


def parse_args(argv=None):
    ap = argparse.ArgumentParser(
        prog="scresilience",
        description="Supply chain backup policy design under disruption risk",
    )
    ap.add_argument("model", choices=["deterministic", "discrete", "full"])
    ap.add_argument("--risk", choices=sorted(RISK_MEASURES), default="neutral")
    ap.add_argument("-m", type=int, default=DEFAULT_BATCHES, help="SAA batches")
    ap.add_argument("-n", type=int, default=DEFAULT_BATCH_SIZE, help="scenarios per batch")
    ap.add_argument("--n2", type=int, default=DEFAULT_EVALUATION_SIZE,
                    help="out-of-sample scenarios per candidate")
    ap.add_argument("--sampler", choices=sorted(SAMPLERS), default="lhs")
    ap.add_argument("--seed", type=int, default=None)
    ap.add_argument("--confidence", type=float, default=DEFAULT_CONFIDENCE)
    ap.add_argument("--time-limit", type=float, default=None)
    ap.add_argument("--strict-fill-rate", action="store_true",
                    help="make the item fill ratio a hard constraint")
    ap.add_argument("--plot", default=None, help="save the solution plot to this file")
    ap.add_argument("--table", action="store_true", help="print the weekly table")
    ap.add_argument("-v", "--verbose", action="store_true")
    return ap.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.model == "deterministic":
        solution = UnifiedModel(
            single_scenario(), strict_fill_rate=args.strict_fill_rate, time_limit=args.time_limit
        ).solve()
    elif args.model == "discrete":
        sampler = SAMPLERS[args.sampler](args.seed)
        engine = MulticutLShaped(
            sampler.generate(*batch_shape(args.n)),
            risk_measure=args.risk,
            strict_fill_rate=args.strict_fill_rate,
            time_limit=args.time_limit,
        )
        try:
            solution = engine.solve()
        finally:
            engine.release()
    else:
        saa = SampledAverageApproximation(
            SAMPLERS[args.sampler](args.seed),
            confidence=args.confidence,
            risk_measure=args.risk,
            strict_fill_rate=args.strict_fill_rate,
            time_limit=args.time_limit,
        )
        result = saa.run(args.m, args.n, args.n2)
        print(result.summary())
        solution = result.solution
        if solution is None:
            return 1

    print(solution.summary())
    if args.table:
        print(solution.table())
    if args.plot:
        from .plotting import plot_solution

        plot_solution(solution, args.plot)
        log.info("plot written to %s", args.plot)
    return 0 if solution.converged else 1
