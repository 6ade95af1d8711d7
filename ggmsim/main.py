import argparse
import logging
import sys

import numpy as np
import pandas as pd

from .cross_validation import cross_validate
from .errors import GGMError, InvalidParameter
from .experiment import run_repeats, summarize_repeats
from .synthetic import DEFAULT_MAX_ATTEMPTS, generate_nonempty, make_rng

logger = logging.getLogger('ggmsim')


def build_parser():
    parser = argparse.ArgumentParser(description='Simulate sparse Gaussian graphical models and score structure recovery.')
    parser.add_argument('--p', type=int, default=10, help='Number of variables (nodes)')
    parser.add_argument('--n', type=int, default=200, help='Number of samples')
    parser.add_argument('--dens', type=float, default=0.3, help='Probability that a pair of variables is an edge')
    parser.add_argument('--seed', type=int, default=42, help='Seed for the experiment random generator')
    parser.add_argument('--llo', type=float, default=0.01, help='Lower bound for lambda range')
    parser.add_argument('--lhi', type=float, default=0.5, help='Upper bound for lambda range')
    parser.add_argument('--lamlen', type=int, default=20, help='Number of points in lambda range')
    parser.add_argument('--repeats', type=int, default=10, help='Number of simulated graphs')
    parser.add_argument('--folds', type=int, default=5, help='Cross-validation folds on one extra graph (0 to skip)')
    parser.add_argument('--n-jobs', type=int, default=1, help='Worker processes (-1 for all cores)')
    parser.add_argument('--max-attempts', type=int, default=DEFAULT_MAX_ATTEMPTS,
                        help='Resampling attempts for a non-empty true graph')
    parser.add_argument('--verbose', action='store_true', help='Log debug output')
    return parser


def lambda_grid(llo, lhi, lamlen):
    """Decreasing geometric grid from lhi down to llo."""
    if lamlen < 1:
        raise InvalidParameter(f'lamlen must be >= 1, got {lamlen}')
    if not (0 < llo <= lhi < np.inf):
        raise InvalidParameter(f'lambda range needs 0 < llo <= lhi, got llo={llo}, lhi={lhi}')
    if lamlen == 1:
        return np.array([lhi])
    return np.geomspace(lhi, llo, lamlen)


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='%(asctime)s %(name)s %(levelname)s %(message)s')

    rng = make_rng(args.seed)
    try:
        grid = lambda_grid(args.llo, args.lhi, args.lamlen)
        results = run_repeats(args.p, args.n, args.dens, grid, args.repeats, rng,
                              max_attempts=args.max_attempts, n_jobs=args.n_jobs, progress=True)
        with pd.option_context('display.width', 120):
            logger.info(f'Summary over {args.repeats} repeats (p={args.p}, n={args.n}, dens={args.dens}):\n'
                        f'{summarize_repeats(results)}')

        if args.folds:
            simulated = generate_nonempty(args.p, args.n, args.dens, rng, max_attempts=args.max_attempts)
            tables = cross_validate(simulated.X, simulated.true_edges, grid, args.folds, rng,
                                    n_jobs=args.n_jobs, progress=True)
            for method, table in tables.items():
                logger.info(f'{method}: min-error lambda = {table.best_lambda():.4g}, '
                            f'one-SE lambda = {table.select_lambda():.4g}')
    except GGMError as e:
        logger.error(f'{type(e).__name__}: {e}')
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
