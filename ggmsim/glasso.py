import logging
import warnings

import numpy as np
from sklearn.covariance import empirical_covariance, graphical_lasso
from sklearn.exceptions import ConvergenceWarning

from .edges import EdgeSet, PairUniverse
from .errors import DegenerateInput, EstimationFailure
from .nodewise import DEFAULT_MAX_ITER, DEFAULT_TOL, DEFAULT_ZERO_TOL, check_lambda, check_samples

logger = logging.getLogger(__name__)


def fit_precision(X, lambda_, max_iter=DEFAULT_MAX_ITER, tol=DEFAULT_TOL, enet_tol=None):
    """
    Optimizes the graphical lasso objective for the sample matrix X.

    Parameters
    ----------
    X : array-like, shape (n, p)
        The data matrix.
    lambda_ : float
        The l1 penalty on the off-diagonal entries. The diagonal is not penalized.
    tol : float
        Tolerance on the dual gap of the outer block updates.
    enet_tol : float, optional
        Tolerance of the inner lasso solves. Must sit well below tol, or the outer
        dual gap stalls above it; defaults to tol / 100.

    Returns
    -------
    precision_matrix : array-like, shape (p, p)
        The symmetrized precision matrix estimate.
    """
    X = check_samples(X)
    lambda_ = check_lambda(lambda_)
    S = empirical_covariance(X)
    p = S.shape[0]
    if enet_tol is None:
        enet_tol = tol / 100
    if lambda_ == 0 and np.linalg.matrix_rank(S) < p:
        raise DegenerateInput(
            f'sample covariance is rank deficient ({np.linalg.matrix_rank(S)} < {p}); '
            'an unpenalized fit needs a full-rank sample matrix')

    with warnings.catch_warnings():
        warnings.simplefilter('error', ConvergenceWarning)
        try:
            _, precision_matrix = graphical_lasso(S, alpha=lambda_, mode='cd', tol=tol, enet_tol=enet_tol,
                                                  max_iter=max_iter)
        except ConvergenceWarning as e:
            raise EstimationFailure(f'graphical lasso did not converge: {e}', lambda_=lambda_) from e
        except FloatingPointError as e:
            raise EstimationFailure(f'graphical lasso is ill-conditioned: {e}', lambda_=lambda_) from e

    return (precision_matrix + precision_matrix.T) / 2


def estimate_graphical(X, lambda_, zero_tol=DEFAULT_ZERO_TOL, max_iter=DEFAULT_MAX_ITER, tol=DEFAULT_TOL, enet_tol=None):
    """Edge set of the graphical lasso estimate: (i, j) is present iff |Theta_hat[i, j]| > zero_tol."""
    precision_matrix = fit_precision(X, lambda_, max_iter=max_iter, tol=tol, enet_tol=enet_tol)
    universe = PairUniverse(precision_matrix.shape[0])
    edges = EdgeSet(universe, np.abs(universe.to_vector(precision_matrix)) > zero_tol)
    logger.debug(f'graphical lasso at lambda={lambda_}: {edges.n_edges} edges')
    return edges
