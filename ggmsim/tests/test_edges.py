import numpy as np
import pytest

from ggmsim.edges import EdgeSet, PairUniverse, true_edges
from ggmsim.errors import InvalidParameter


def test_universe_pairs():
    universe = PairUniverse(4)
    assert universe.n_pairs == len(universe) == 6
    assert list(zip(universe.rows, universe.cols)) == [(0, 1), (0, 2), (0, 3), (1, 2), (1, 3), (2, 3)]
    assert universe == PairUniverse(4)
    assert universe != PairUniverse(5)
    with pytest.raises(ValueError):
        universe.rows[0] = 3


def test_universe_rejects_single_variable():
    with pytest.raises(InvalidParameter):
        PairUniverse(1)


def test_from_adjacency_is_symmetric_without_self_edges():
    adjacency = np.array([
        [1, 1, 0],
        [0, 1, 0],
        [1, 0, 1],
    ])
    edges = EdgeSet.from_adjacency(adjacency)
    assert edges.pairs() == [(0, 1), (0, 2)]
    result = edges.adjacency()
    assert np.array_equal(result, result.T)
    assert np.all(np.diag(result) == 0)


def test_subset_and_equality():
    universe = PairUniverse(4)
    small = EdgeSet(universe, [1, 0, 0, 0, 0, 0])
    large = EdgeSet(universe, [1, 0, 0, 1, 0, 0])
    assert small.issubset(large)
    assert not large.issubset(small)
    assert small != large
    assert EdgeSet.empty(universe).n_edges == 0


def test_mismatched_universes_are_rejected():
    small = EdgeSet.empty(PairUniverse(3))
    large = EdgeSet.empty(PairUniverse(4))
    with pytest.raises(InvalidParameter):
        small.issubset(large)
    with pytest.raises(InvalidParameter):
        EdgeSet(PairUniverse(3), [True, False])


def test_to_graph():
    edges = EdgeSet(PairUniverse(4), [0, 0, 1, 1, 0, 0])
    G = edges.to_graph()
    assert G.number_of_nodes() == 4
    assert sorted(G.edges()) == [(0, 3), (1, 2)]


def test_true_edges_uses_exact_zeros():
    precision = np.array([
        [1.0, 1e-12, 0.0],
        [1e-12, 1.0, 0.0],
        [0.0, 0.0, 1.0],
    ])
    assert true_edges(precision).pairs() == [(0, 1)]


def test_as_dict_record():
    record = EdgeSet(PairUniverse(3), [1, 0, 1]).as_dict()
    assert record['p'] == 3
    assert record['n_edges'] == 2
    assert record['adjacency'].shape == (3, 3)
