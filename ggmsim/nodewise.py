import logging
import warnings

import numpy as np
from sklearn.exceptions import ConvergenceWarning
from sklearn.linear_model import Lasso, LinearRegression

from .edges import EdgeSet, PairUniverse
from .errors import DegenerateInput, EstimationFailure, InvalidParameter

logger = logging.getLogger(__name__)

DEFAULT_ZERO_TOL = 1e-5
DEFAULT_MAX_ITER = 1000
DEFAULT_TOL = 1e-4


class EdgeDecisionRule:
    """
    Turns the directed neighbourhood links of a nodewise fit into undirected edges.

    `combine` receives links and links.T (p x p boolean arrays, links[i, j] meaning
    variable i was selected in the regression of j) and returns a p x p boolean array.
    """
    def __init__(self, name, combine):
        self.name = name
        self.combine = combine

    def __call__(self, links, universe):
        combined = self.combine(links, links.T)
        return EdgeSet(universe, universe.to_vector(combined))

    def __repr__(self):
        return f'EdgeDecisionRule({self.name!r})'


AND_RULE = EdgeDecisionRule('and', np.logical_and)
OR_RULE = EdgeDecisionRule('or', np.logical_or)
RULES = (AND_RULE, OR_RULE)


def check_samples(X):
    X = np.array(X, dtype=float)
    if X.ndim != 2:
        raise InvalidParameter(f'sample matrix must be 2-dimensional, got shape {X.shape}')
    n, p = X.shape
    if p < 2:
        raise InvalidParameter(f'need at least 2 variables, got {p}')
    if n < 2:
        raise DegenerateInput(f'need at least 2 samples, got {n}')
    if not np.all(np.isfinite(X)):
        raise InvalidParameter('sample matrix contains non-finite values')
    return X


def check_lambda(lambda_):
    if not np.isfinite(lambda_) or lambda_ < 0:
        raise InvalidParameter(f'lambda must be a finite non-negative number, got {lambda_}')
    return float(lambda_)


def nodewise_coefficients(X, lambda_, max_iter=DEFAULT_MAX_ITER, tol=DEFAULT_TOL):
    """
    Regresses each variable on all others with an l1 penalty.

    Parameters
    ----------
    X : array-like, shape (n, p)
        The data matrix.
    lambda_ : float
        The penalty strength (sklearn's `alpha`). Zero falls back to least squares.

    Returns
    -------
    coefs : array-like, shape (p, p)
        coefs[i, j] is the coefficient of variable i in the regression of variable j.
        The diagonal is zero.
    """
    X = check_samples(X)
    lambda_ = check_lambda(lambda_)
    n, p = X.shape
    if lambda_ == 0 and n <= p - 1:
        raise DegenerateInput(f'unpenalized nodewise regression needs n > p - 1, got n={n}, p={p}')

    coefs = np.zeros((p, p))
    indices = np.arange(p)
    for j in range(p):
        others = indices != j
        if lambda_ == 0:
            model = LinearRegression()
        else:
            model = Lasso(alpha=lambda_, max_iter=max_iter, tol=tol)
        with warnings.catch_warnings():
            warnings.simplefilter('error', ConvergenceWarning)
            try:
                model.fit(X[:, others], X[:, j])
            except ConvergenceWarning as e:
                raise EstimationFailure(f'lasso did not converge: {e}', lambda_=lambda_, column=j) from e
        coefs[others, j] = model.coef_
    return coefs


class NodewiseEstimate:
    """The p regressions of one nodewise fit. Edge sets for any rule are derived from the same links."""
    def __init__(self, coefs, lambda_, zero_tol=DEFAULT_ZERO_TOL):
        self.coefs = coefs
        self.lambda_ = lambda_
        self.zero_tol = zero_tol
        self.universe = PairUniverse(coefs.shape[0])
        self.links = np.abs(coefs) > zero_tol
        np.fill_diagonal(self.links, False)

    def edges(self, rule):
        return rule(self.links, self.universe)

    def edge_sets(self, rules=RULES):
        return {rule.name: self.edges(rule) for rule in rules}


def fit_nodewise(X, lambda_, zero_tol=DEFAULT_ZERO_TOL, max_iter=DEFAULT_MAX_ITER, tol=DEFAULT_TOL):
    coefs = nodewise_coefficients(X, lambda_, max_iter=max_iter, tol=tol)
    logger.debug(f'nodewise fit at lambda={lambda_}: {int(np.count_nonzero(np.abs(coefs) > zero_tol))} links')
    return NodewiseEstimate(coefs, lambda_, zero_tol=zero_tol)


def estimate_nodewise(X, lambda_, zero_tol=DEFAULT_ZERO_TOL, max_iter=DEFAULT_MAX_ITER, tol=DEFAULT_TOL, rules=RULES):
    """Returns {rule name: EdgeSet}, by default {'and': ..., 'or': ...}."""
    return fit_nodewise(X, lambda_, zero_tol=zero_tol, max_iter=max_iter, tol=tol).edge_sets(rules)
