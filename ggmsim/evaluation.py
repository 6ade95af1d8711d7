import logging
from collections import namedtuple
from concurrent.futures import ProcessPoolExecutor

import numpy as np
from scipy.integrate import trapezoid
from tqdm import tqdm

from .errors import AUCUndefined, DegenerateInput, EstimationFailure, InvalidParameter
from .glasso import estimate_graphical
from .nodewise import RULES, DEFAULT_ZERO_TOL, check_samples, fit_nodewise

logger = logging.getLogger(__name__)

NODEWISE = 'nodewise'
GRAPHICAL = 'graphical'
ESTIMATORS = (NODEWISE, GRAPHICAL)

PerformancePoint = namedtuple('PerformancePoint', ['lambda_', 'tpr', 'fpr', 'error', 'n_edges'])


def check_grid(grid):
    """Validates a penalty grid: non-empty, finite, non-negative and strictly monotone."""
    grid = np.asarray(grid, dtype=float)
    if grid.ndim != 1 or grid.size == 0:
        raise InvalidParameter(f'penalty grid must be a non-empty 1-d sequence, got shape {grid.shape}')
    if not np.all(np.isfinite(grid)) or np.any(grid < 0):
        raise InvalidParameter('penalty grid values must be finite and non-negative')
    if grid.size > 1:
        steps = np.diff(grid)
        if not (np.all(steps > 0) or np.all(steps < 0)):
            raise InvalidParameter('penalty grid must be strictly increasing or strictly decreasing')
    grid = grid.copy()
    grid.setflags(write=False)
    return grid


def check_estimator(estimator):
    if estimator not in ESTIMATORS:
        raise InvalidParameter(f'unknown estimator {estimator!r}, expected one of {ESTIMATORS}')
    return estimator


def method_names(estimator, rules=RULES):
    if estimator == NODEWISE:
        return [rule.name for rule in rules]
    return [GRAPHICAL]


def compare_edges(estimated, truth, lambda_=np.nan):
    """
    Scores an estimated edge set against the true one over all p(p-1)/2 pairs.

    Returns
    -------
    point : PerformancePoint
        tpr = TP / #true edges, fpr = FP / #non-edges, error = (FP + FN) / #pairs.
    """
    truth.universe.check_same(estimated.universe)
    true_mask = truth.present
    est_mask = estimated.present
    n_true = int(np.count_nonzero(true_mask))
    n_pairs = truth.universe.n_pairs
    n_false = n_pairs - n_true
    if n_true == 0:
        raise DegenerateInput('true edge set is empty; TPR is undefined')

    tp = int(np.count_nonzero(est_mask & true_mask))
    fp = int(np.count_nonzero(est_mask & ~true_mask))
    fn = n_true - tp

    tpr = tp / n_true
    # A complete true graph has no non-edges to misclassify
    fpr = fp / n_false if n_false > 0 else 0.0
    error = (fp + fn) / n_pairs
    return PerformancePoint(float(lambda_), tpr, fpr, error, int(np.count_nonzero(est_mask)))


def roc_auc(fpr, tpr, lambdas=None):
    """
    Area under the (FPR, TPR) polyline by the trapezoidal rule.

    Points are sorted by FPR, ties by decreasing lambda. (0, 0) and (1, 1) are
    added when missing. NaN points (failed fits) are skipped.
    """
    fpr = np.asarray(fpr, dtype=float)
    tpr = np.asarray(tpr, dtype=float)
    if lambdas is None:
        lambdas = np.zeros_like(fpr)
    lambdas = np.asarray(lambdas, dtype=float)
    if not (fpr.shape == tpr.shape == lambdas.shape):
        raise InvalidParameter('fpr, tpr and lambdas must have the same shape')

    valid = ~(np.isnan(fpr) | np.isnan(tpr))
    fpr, tpr, lambdas = fpr[valid], tpr[valid], lambdas[valid]
    if np.unique(fpr).size < 2:
        raise AUCUndefined(f'ROC curve is degenerate: {fpr.size} valid points at {np.unique(fpr).size} distinct FPR value(s)')

    order = np.lexsort((-lambdas, fpr))
    fpr, tpr = fpr[order], tpr[order]
    if not (fpr[0] == 0 and tpr[0] == 0):
        fpr = np.concatenate([[0.0], fpr])
        tpr = np.concatenate([[0.0], tpr])
    if not (fpr[-1] == 1 and tpr[-1] == 1):
        fpr = np.concatenate([fpr, [1.0]])
        tpr = np.concatenate([tpr, [1.0]])
    return float(np.clip(trapezoid(tpr, fpr), 0.0, 1.0))


class PerformanceCurve:
    """
    Performance of one method along a penalty grid.

    Attributes
    ----------
    method : str
        'and', 'or' or 'graphical'.
    lambdas : array-like, shape (J)
        The penalty grid.
    points : list of PerformancePoint or None
        One entry per grid value. None marks a failed fit.
    failures : dict
        Grid index -> failure message for the failed fits.
    """
    def __init__(self, method, lambdas, points, failures=None):
        if len(points) != len(lambdas):
            raise InvalidParameter('one point per grid value is required')
        self.method = method
        self.lambdas = np.asarray(lambdas, dtype=float)
        self.points = list(points)
        self.failures = dict(failures or {})
        self._auc = None
        self._auc_error = None
        try:
            self._auc = roc_auc(self.fpr, self.tpr, self.lambdas)
        except AUCUndefined as e:
            self._auc_error = e

    def _column(self, field):
        return np.array([np.nan if point is None else getattr(point, field) for point in self.points], dtype=float)

    @property
    def tpr(self):
        return self._column('tpr')

    @property
    def fpr(self):
        return self._column('fpr')

    @property
    def error(self):
        return self._column('error')

    @property
    def n_edges(self):
        return np.array([-1 if point is None else point.n_edges for point in self.points], dtype=int)

    @property
    def auc_defined(self):
        return self._auc_error is None

    @property
    def auc(self):
        if self._auc_error is not None:
            raise AUCUndefined(f'{self.method}: {self._auc_error}')
        return self._auc

    @property
    def n_failed(self):
        return len(self.failures)

    def min_error(self):
        """Smallest error along the grid and the lambda where it occurs (gaps ignored)."""
        error = self.error
        if np.all(np.isnan(error)):
            raise DegenerateInput(f'{self.method}: every grid point failed')
        best = int(np.nanargmin(error))
        return float(error[best]), float(self.lambdas[best])

    def as_dict(self):
        return {
            'method': self.method,
            'lambdas': self.lambdas.copy(),
            'tpr': self.tpr,
            'fpr': self.fpr,
            'error': self.error,
            'n_edges': self.n_edges,
            'auc': self._auc,
            'failures': dict(self.failures),
        }

    def __repr__(self):
        auc = f'{self._auc:.3f}' if self.auc_defined else 'undefined'
        return f'PerformanceCurve({self.method!r}, {len(self.lambdas)} points, auc={auc}, failed={self.n_failed})'


def estimate_edges(estimator, X, lambda_, zero_tol=DEFAULT_ZERO_TOL, rules=RULES, **solver_kwargs):
    """Runs one estimator at one penalty value. Returns {method name: EdgeSet}."""
    if estimator == NODEWISE:
        return fit_nodewise(X, lambda_, zero_tol=zero_tol, **solver_kwargs).edge_sets(rules)
    return {GRAPHICAL: estimate_graphical(X, lambda_, zero_tol=zero_tol, **solver_kwargs)}


def evaluate_unit(args):
    """
    Scores one (estimator, lambda) unit. Estimation failures are returned, not raised,
    so that one failed fit leaves a gap instead of aborting the sweep.
    """
    X, truth, lambda_, estimator, options = args
    try:
        edge_sets = estimate_edges(estimator, X, lambda_, **options)
    except EstimationFailure as e:
        return e
    return {name: compare_edges(edges, truth, lambda_) for name, edges in edge_sets.items()}


def run_units(func, units, n_jobs=1, progress=False, desc=None):
    """Maps func over units, serially or on a process pool. Results keep the order of units."""
    units = list(units)
    if n_jobs is not None and (int(n_jobs) != n_jobs or n_jobs == 0):
        raise InvalidParameter(f'n_jobs must be a non-zero integer (negative for all cores), got {n_jobs}')
    if n_jobs is None or n_jobs == 1 or len(units) <= 1:
        return [func(unit) for unit in tqdm(units, desc=desc, disable=not progress)]
    max_workers = None if n_jobs < 0 else n_jobs
    with ProcessPoolExecutor(max_workers=max_workers) as executor:
        return list(tqdm(executor.map(func, units), total=len(units), desc=desc, disable=not progress))


def collect_curves(results, grid, names, fold=None):
    """Reduces per-lambda unit results (in grid order) into one PerformanceCurve per method."""
    points = {name: [] for name in names}
    failures = {name: {} for name in names}
    for idx, (lambda_, result) in enumerate(zip(grid, results)):
        if isinstance(result, EstimationFailure):
            failure = result.with_context(lambda_=float(lambda_), fold=fold)
            logger.warning(f'fit failed, recording a gap: {failure}')
            for name in names:
                points[name].append(None)
                failures[name][idx] = str(failure)
            continue
        for name in names:
            points[name].append(result[name])
    return {name: PerformanceCurve(name, grid, points[name], failures[name]) for name in names}


def evaluate_grid(X, truth, grid, estimator, n_jobs=1, progress=False, zero_tol=DEFAULT_ZERO_TOL, rules=RULES, **solver_kwargs):
    """
    Sweeps a penalty grid through one estimator and scores every fit against truth.

    Parameters
    ----------
    X : array-like, shape (n, p)
        The data matrix.
    truth : EdgeSet
        The true edge set. Must be non-empty.
    grid : array-like, shape (J)
        Strictly monotone penalty values.
    estimator : str
        'nodewise' or 'graphical'.
    n_jobs : int
        Worker processes for the lambda units. 1 runs serially, -1 uses all cores.

    Returns
    -------
    curves : dict
        Method name -> PerformanceCurve. 'and' and 'or' for nodewise, 'graphical' otherwise.
    """
    check_estimator(estimator)
    grid = check_grid(grid)
    X = check_samples(X)
    if X.shape[1] != truth.p:
        raise InvalidParameter(f'sample matrix has {X.shape[1]} variables, true edge set has {truth.p}')
    if truth.n_edges == 0:
        raise DegenerateInput('true edge set is empty; resample before evaluating')

    options = dict(solver_kwargs, zero_tol=zero_tol)
    if estimator == NODEWISE:
        options['rules'] = rules
    units = [(X, truth, lambda_, estimator, options) for lambda_ in grid]
    results = run_units(evaluate_unit, units, n_jobs=n_jobs, progress=progress, desc=estimator)
    return collect_curves(results, grid, method_names(estimator, rules))


def evaluate_nodewise_grid(X, truth, grid, **kwargs):
    """Returns {'and': PerformanceCurve, 'or': PerformanceCurve}, both from the same regressions."""
    return evaluate_grid(X, truth, grid, NODEWISE, **kwargs)


def evaluate_graphical_grid(X, truth, grid, **kwargs):
    return evaluate_grid(X, truth, grid, GRAPHICAL, **kwargs)[GRAPHICAL]
