import logging

import numpy as np
import pandas as pd

from .errors import DegenerateInput, InvalidParameter
from .evaluation import (ESTIMATORS, NODEWISE, check_estimator, check_grid, collect_curves, evaluate_unit,
                         method_names, run_units)
from .nodewise import RULES, DEFAULT_ZERO_TOL, check_samples
from .synthetic import make_rng

logger = logging.getLogger(__name__)


class FoldAssignment:
    """Maps every sample row to one of k folds. Shared by all methods and lambdas of a CV run."""
    def __init__(self, labels, k):
        labels = np.array(labels, dtype=int)
        if labels.ndim != 1 or np.any(labels < 0) or np.any(labels >= k):
            raise InvalidParameter(f'fold labels must be a 1-d array with values in [0, {k})')
        labels.setflags(write=False)
        self.labels = labels
        self.k = int(k)

    @property
    def n(self):
        return self.labels.size

    def test_index(self, fold):
        return np.flatnonzero(self.labels == fold)

    def train_index(self, fold):
        return np.flatnonzero(self.labels != fold)

    def sizes(self):
        return np.bincount(self.labels, minlength=self.k)

    def __eq__(self, other):
        return isinstance(other, FoldAssignment) and other.k == self.k and np.array_equal(other.labels, self.labels)

    __hash__ = None

    def __repr__(self):
        return f'FoldAssignment(n={self.n}, k={self.k})'


def assign_folds(n, k, rng=None):
    """Near-equal random partition of n rows into k folds (sizes differ by at most one)."""
    if int(k) != k or not 2 <= k <= n:
        raise InvalidParameter(f'number of folds must satisfy 2 <= k <= n, got k={k}, n={n}')
    rng = make_rng(rng)
    labels = rng.permutation(np.arange(n) % k)
    return FoldAssignment(labels, k)


class CVErrorTable:
    """
    Per-fold error rates of one method along the grid.

    Attributes
    ----------
    method : str
        The method name.
    lambdas : array-like, shape (J)
        The penalty grid.
    errors : array-like, shape (K, J)
        Error rate of fold k at lambda j. NaN marks a failed fit.
    folds : FoldAssignment
        The fold assignment the rows were computed with.
    """
    def __init__(self, method, lambdas, errors, folds, failures=None):
        errors = np.asarray(errors, dtype=float)
        lambdas = np.asarray(lambdas, dtype=float)
        if errors.shape != (folds.k, lambdas.size):
            raise InvalidParameter(f'error table must have shape ({folds.k}, {lambdas.size}), got {errors.shape}')
        self.method = method
        self.lambdas = lambdas
        self.errors = errors
        self.folds = folds
        self.failures = dict(failures or {})

    def valid_counts(self):
        return np.sum(~np.isnan(self.errors), axis=0)

    def mean(self):
        counts = self.valid_counts()
        sums = np.nansum(self.errors, axis=0)
        return np.where(counts > 0, sums / np.maximum(counts, 1), np.nan)

    def standard_error(self):
        counts = self.valid_counts()
        se = np.full(self.lambdas.size, np.nan)
        for j in np.flatnonzero(counts > 1):
            column = self.errors[:, j]
            column = column[~np.isnan(column)]
            se[j] = np.std(column, ddof=1) / np.sqrt(column.size)
        se[counts == 1] = 0.0
        return se

    def best_index(self):
        mean = self.mean()
        if np.all(np.isnan(mean)):
            raise DegenerateInput(f'{self.method}: no lambda has a valid cross-validated error')
        return int(np.nanargmin(mean))

    def select_index(self):
        """
        One-standard-error rule: among lambdas whose mean error is within one
        standard error of the minimum, pick the largest (sparsest) one.
        """
        mean = self.mean()
        best = self.best_index()
        threshold = mean[best] + self.standard_error()[best]
        candidates = np.flatnonzero(~np.isnan(mean) & (mean <= threshold))
        return int(candidates[np.argmax(self.lambdas[candidates])])

    def best_lambda(self):
        return float(self.lambdas[self.best_index()])

    def select_lambda(self):
        return float(self.lambdas[self.select_index()])

    def to_frame(self):
        return pd.DataFrame(self.errors, index=pd.Index(range(self.folds.k), name='fold'),
                            columns=pd.Index(self.lambdas, name='lambda'))

    def summary(self):
        return pd.DataFrame({'lambda': self.lambdas, 'mean': self.mean(), 'se': self.standard_error()})

    def __repr__(self):
        return f'CVErrorTable({self.method!r}, k={self.folds.k}, lambdas={self.lambdas.size})'


def cross_validate(X, truth, grid, k, rng=None, estimators=ESTIMATORS, folds=None, n_jobs=1, progress=False,
                   zero_tol=DEFAULT_ZERO_TOL, rules=RULES, **solver_kwargs):
    """
    K-fold cross-validation of the error rate along a penalty grid.

    For every fold, the held-out rows are dropped and each estimator is run on
    the remaining rows at every lambda. All (fold, lambda) units are independent
    and are reduced back in fold and grid order.

    Parameters
    ----------
    X : array-like, shape (n, p)
        The data matrix.
    truth : EdgeSet
        The true edge set. Must be non-empty.
    grid : array-like, shape (J)
        Strictly monotone penalty values.
    k : int
        Number of folds, 2 <= k <= n.
    rng : numpy.random.Generator, int or None
        Random state for the fold assignment. Ignored when folds is given.
    folds : FoldAssignment, optional
        A precomputed assignment, e.g. to match another CV run.

    Returns
    -------
    tables : dict
        Method name -> CVErrorTable, by default for 'and', 'or' and 'graphical'.
        All tables share one FoldAssignment.
    """
    X = check_samples(X)
    grid = check_grid(grid)
    for estimator in estimators:
        check_estimator(estimator)
    n, p = X.shape
    if p != truth.p:
        raise InvalidParameter(f'sample matrix has {p} variables, true edge set has {truth.p}')
    if truth.n_edges == 0:
        raise DegenerateInput('true edge set is empty; resample before cross-validating')
    if folds is None:
        folds = assign_folds(n, k, rng)
    elif folds.k != k or folds.n != n:
        raise InvalidParameter(f'fold assignment {folds} does not match k={k}, n={n}')
    if n - folds.sizes().max() < 2:
        raise DegenerateInput(f'every training split needs at least 2 rows; n={n} is too small for k={k}')

    units = []
    keys = []
    for estimator in estimators:
        options = dict(solver_kwargs, zero_tol=zero_tol)
        if estimator == NODEWISE:
            options['rules'] = rules
        for fold in range(folds.k):
            X_train = X[folds.train_index(fold)]
            for lambda_ in grid:
                units.append((X_train, truth, lambda_, estimator, options))
                keys.append((estimator, fold))

    results = run_units(evaluate_unit, units, n_jobs=n_jobs, progress=progress, desc='cross-validation')

    tables = {}
    J = grid.size
    for estimator in estimators:
        names = method_names(estimator, rules)
        errors = {name: np.full((folds.k, J), np.nan) for name in names}
        failures = {name: {} for name in names}
        for fold in range(folds.k):
            start = keys.index((estimator, fold))
            curves = collect_curves(results[start:start + J], grid, names, fold=fold)
            for name, curve in curves.items():
                errors[name][fold] = curve.error
                failures[name].update({(fold, idx): message for idx, message in curve.failures.items()})
        for name in names:
            tables[name] = CVErrorTable(name, grid, errors[name], folds, failures[name])
            logger.debug(f'{name}: cross-validated mean error {np.round(tables[name].mean(), 4)}')
    return tables
