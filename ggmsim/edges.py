import numpy as np
import networkx as nx

from .errors import InvalidParameter


class PairUniverse:
    """
    The fixed set of unordered variable pairs (i, j), i < j, for p variables.

    Every EdgeSet carries one, so that two edge sets can only be compared when
    they index the same pairs in the same order.

    Attributes
    ----------
    p : int
        The number of variables.
    rows, cols : array-like, shape (p * (p - 1) / 2)
        Read-only upper triangle indices, in np.triu_indices(p, 1) order.
    """
    def __init__(self, p):
        p = int(p)
        if p < 2:
            raise InvalidParameter(f'p must be at least 2, got {p}')
        self._p = p
        rows, cols = np.triu_indices(p, k=1)
        rows.setflags(write=False)
        cols.setflags(write=False)
        self._rows = rows
        self._cols = cols

    @property
    def p(self):
        return self._p

    @property
    def rows(self):
        return self._rows

    @property
    def cols(self):
        return self._cols

    @property
    def n_pairs(self):
        return self._p * (self._p - 1) // 2

    def __len__(self):
        return self.n_pairs

    def __eq__(self, other):
        return isinstance(other, PairUniverse) and other.p == self.p

    def __hash__(self):
        return hash(('PairUniverse', self._p))

    def __repr__(self):
        return f'PairUniverse(p={self._p})'

    def check_same(self, other):
        if self != other:
            raise InvalidParameter(f'edge sets index different pair universes: {self} vs {other}')

    def to_vector(self, matrix):
        """Read the upper triangle of a p x p matrix in universe order."""
        matrix = np.asarray(matrix)
        if matrix.shape != (self._p, self._p):
            raise InvalidParameter(f'expected a {self._p} x {self._p} matrix, got shape {matrix.shape}')
        return matrix[self._rows, self._cols]

    def to_matrix(self, vector, dtype=int):
        """Scatter a pair vector back into a symmetric p x p matrix with zero diagonal."""
        matrix = np.zeros((self._p, self._p), dtype=dtype)
        matrix[self._rows, self._cols] = vector
        matrix[self._cols, self._rows] = vector
        return matrix


class EdgeSet:
    """
    A set of undirected edges over a PairUniverse.

    Stored as a read-only boolean vector with one flag per pair, which keeps the
    set symmetric and free of self-edges by construction.
    """
    def __init__(self, universe, present):
        present = np.array(present, dtype=bool).ravel()
        if present.shape != (universe.n_pairs,):
            raise InvalidParameter(
                f'expected {universe.n_pairs} pair flags for p={universe.p}, got {present.shape[0]}')
        present.setflags(write=False)
        self._universe = universe
        self._present = present

    @classmethod
    def from_adjacency(cls, adjacency, universe=None):
        """
        Build an edge set from a square matrix, reading (i, j) as present when
        either adjacency[i, j] or adjacency[j, i] is nonzero. The diagonal is ignored.
        """
        adjacency = np.asarray(adjacency)
        if adjacency.ndim != 2 or adjacency.shape[0] != adjacency.shape[1]:
            raise InvalidParameter(f'adjacency must be square, got shape {adjacency.shape}')
        if universe is None:
            universe = PairUniverse(adjacency.shape[0])
        upper = universe.to_vector(adjacency) != 0
        lower = universe.to_vector(adjacency.T) != 0
        return cls(universe, upper | lower)

    @classmethod
    def empty(cls, universe):
        return cls(universe, np.zeros(universe.n_pairs, dtype=bool))

    @property
    def universe(self):
        return self._universe

    @property
    def p(self):
        return self._universe.p

    @property
    def present(self):
        return self._present

    @property
    def n_edges(self):
        return int(np.count_nonzero(self._present))

    def adjacency(self):
        return self._universe.to_matrix(self._present.astype(int))

    def pairs(self):
        idx = np.flatnonzero(self._present)
        return [(int(self._universe.rows[k]), int(self._universe.cols[k])) for k in idx]

    def issubset(self, other):
        self._universe.check_same(other.universe)
        return bool(np.all(other.present[self._present]))

    def to_graph(self):
        G = nx.Graph()
        G.add_nodes_from(range(self.p))
        G.add_edges_from(self.pairs())
        return G

    def as_dict(self):
        return {'p': self.p, 'n_edges': self.n_edges, 'adjacency': self.adjacency()}

    def __len__(self):
        return self.n_edges

    def __eq__(self, other):
        if not isinstance(other, EdgeSet):
            return NotImplemented
        return self._universe == other.universe and np.array_equal(self._present, other.present)

    __hash__ = None

    def __repr__(self):
        return f'EdgeSet(p={self.p}, n_edges={self.n_edges})'


def true_edges(precision, universe=None):
    """
    The true edge set of a precision matrix: (i, j) is present iff Theta[i, j] != 0.

    Exact comparison with zero is intended here. The sampler builds Theta from an
    explicit pair mask, so absent pairs hold exact zeros.
    """
    precision = np.asarray(precision)
    if precision.ndim != 2 or precision.shape[0] != precision.shape[1]:
        raise InvalidParameter(f'precision matrix must be square, got shape {precision.shape}')
    if universe is None:
        universe = PairUniverse(precision.shape[0])
    return EdgeSet(universe, universe.to_vector(precision) != 0)
