import logging
from collections import namedtuple

import numpy as np
from scipy.linalg import eigh, inv

from .edges import EdgeSet, PairUniverse
from .errors import DegenerateInput, InvalidParameter

logger = logging.getLogger(__name__)

DEFAULT_SIGNAL = 0.5
DEFAULT_MIN_EIGENVALUE = 0.1
DEFAULT_MAX_ATTEMPTS = 100

SimulatedGraph = namedtuple('SimulatedGraph', ['X', 'true_edges', 'precision', 'covariance'])


def make_rng(seed=None):
    """Return a numpy Generator. Generators are passed through unchanged so callers can thread one instance."""
    return np.random.default_rng(seed)


def _check_params(p, n, edge_prob):
    if int(p) != p or p < 2:
        raise InvalidParameter(f'p must be an integer >= 2, got {p}')
    if int(n) != n or n < 1:
        raise InvalidParameter(f'n must be an integer >= 1, got {n}')
    if not 0 < edge_prob < 1:
        raise InvalidParameter(f'edge_prob must lie in (0, 1), got {edge_prob}')


def sample_precision(p, edge_prob, rng=None, signal=DEFAULT_SIGNAL, min_eigenvalue=DEFAULT_MIN_EIGENVALUE):
    """
    Draws a random sparse precision matrix.

    Parameters
    ----------
    p : int
        The number of variables (nodes).
    edge_prob : float
        The probability that a pair (i, j) is an edge.
    rng : numpy.random.Generator, int or None
        Random state.
    signal : float
        Magnitude of the nonzero off-diagonal entries.
    min_eigenvalue : float
        The smallest eigenvalue of the matrix before it is rescaled to unit diagonal.

    Returns
    -------
    precision_matrix : array-like, shape (p, p)
        Symmetric positive definite matrix with unit diagonal.
    edges : EdgeSet
        The pairs selected during construction.
    """
    _check_params(p, 1, edge_prob)
    if signal == 0:
        raise InvalidParameter('signal must be nonzero')
    if min_eigenvalue <= 0:
        raise InvalidParameter(f'min_eigenvalue must be positive, got {min_eigenvalue}')
    rng = make_rng(rng)
    universe = PairUniverse(p)

    mask = rng.random(universe.n_pairs) < edge_prob
    adj_matrix = universe.to_matrix(mask.astype(float) * signal, dtype=float)

    # Shift the diagonal until the smallest eigenvalue reaches min_eigenvalue
    smallest = eigh(adj_matrix, eigvals_only=True)[0]
    shift = max(0.0, -smallest) + min_eigenvalue
    precision_matrix = adj_matrix + shift * np.eye(p)

    scaling_factors = np.sqrt(np.diag(precision_matrix))
    precision_matrix = np.outer(1 / scaling_factors, 1 / scaling_factors) * precision_matrix

    return precision_matrix, EdgeSet(universe, mask)


def generate(p, n, edge_prob, rng=None, signal=DEFAULT_SIGNAL, min_eigenvalue=DEFAULT_MIN_EIGENVALUE):
    """
    Generates n i.i.d. samples from N(0, Theta^-1) for a random sparse Theta.

    The returned true edge set is the construction mask of Theta, so any fill-in
    of the covariance is never counted as an edge.
    """
    _check_params(p, n, edge_prob)
    rng = make_rng(rng)
    precision_matrix, edges = sample_precision(p, edge_prob, rng, signal=signal, min_eigenvalue=min_eigenvalue)
    covariance_mat = inv(precision_matrix)
    covariance_mat = (covariance_mat + covariance_mat.T) / 2
    data = rng.multivariate_normal(mean=np.zeros(p), cov=covariance_mat, size=int(n))
    for array in (data, precision_matrix, covariance_mat):
        array.setflags(write=False)
    return SimulatedGraph(data, edges, precision_matrix, covariance_mat)


def generate_nonempty(p, n, edge_prob, rng=None, max_attempts=DEFAULT_MAX_ATTEMPTS, **kwargs):
    """
    Calls generate until the true graph has at least one edge.

    All attempts draw from the same generator, so the accepted instance is
    reproducible for a fixed seed. Raises DegenerateInput after max_attempts.
    """
    if max_attempts < 1:
        raise InvalidParameter(f'max_attempts must be >= 1, got {max_attempts}')
    rng = make_rng(rng)
    for attempt in range(1, max_attempts + 1):
        simulated = generate(p, n, edge_prob, rng, **kwargs)
        if simulated.true_edges.n_edges > 0:
            return simulated
        logger.info(f'attempt {attempt}: empty true graph (p={p}, edge_prob={edge_prob}), resampling')
    raise DegenerateInput(
        f'no non-empty graph after {max_attempts} attempts with p={p}, edge_prob={edge_prob}')
