import logging

import numpy as np
import pandas as pd

from .errors import DegenerateInput
from .evaluation import ESTIMATORS, evaluate_grid
from .synthetic import DEFAULT_MAX_ATTEMPTS, generate_nonempty, make_rng

logger = logging.getLogger(__name__)


def run_repeats(p, n, edge_prob, grid, repeats, rng=None, max_attempts=DEFAULT_MAX_ATTEMPTS, n_jobs=1,
                progress=False, estimators=ESTIMATORS, **kwargs):
    """
    Repeats the simulate-and-sweep experiment on fresh graphs drawn from one generator.

    Returns
    -------
    results : pandas.DataFrame
        One row per (repeat, method) with columns repeat, method, auc (NaN when
        undefined), min_error, best_lambda, n_true_edges and n_failed.
    """
    rng = make_rng(rng)
    rows = []
    for repeat in range(repeats):
        simulated = generate_nonempty(p, n, edge_prob, rng, max_attempts=max_attempts)
        truth = simulated.true_edges
        for estimator in estimators:
            curves = evaluate_grid(simulated.X, truth, grid, estimator, n_jobs=n_jobs, progress=progress, **kwargs)
            for method, curve in curves.items():
                try:
                    min_error, best_lambda = curve.min_error()
                except DegenerateInput:
                    min_error, best_lambda = np.nan, np.nan
                rows.append({
                    'repeat': repeat,
                    'method': method,
                    'auc': curve.auc if curve.auc_defined else np.nan,
                    'min_error': min_error,
                    'best_lambda': best_lambda,
                    'n_true_edges': truth.n_edges,
                    'n_failed': curve.n_failed,
                })
        logger.debug(f'repeat {repeat}: {truth.n_edges} true edges')
    return pd.DataFrame(rows, columns=['repeat', 'method', 'auc', 'min_error', 'best_lambda', 'n_true_edges', 'n_failed'])


def summarize_repeats(results):
    """Mean and standard deviation of AUC and minimum error per method."""
    summary = results.groupby('method', sort=False)[['auc', 'min_error']].agg(['mean', 'std'])
    summary.columns = [f'{stat}_{name}' for name, stat in summary.columns]
    return summary
