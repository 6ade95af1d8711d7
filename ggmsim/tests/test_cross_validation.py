import numpy as np
import pytest

from ggmsim.cross_validation import CVErrorTable, FoldAssignment, assign_folds, cross_validate
from ggmsim.edges import EdgeSet
from ggmsim.errors import DegenerateInput, InvalidParameter


def test_folds_are_balanced():
    folds = assign_folds(23, 5, rng=0)
    sizes = folds.sizes()
    assert sizes.sum() == 23
    assert sizes.max() - sizes.min() <= 1
    for fold in range(5):
        train, test = folds.train_index(fold), folds.test_index(fold)
        assert np.intersect1d(train, test).size == 0
        assert train.size + test.size == 23


def test_folds_are_reproducible():
    assert assign_folds(40, 4, rng=3) == assign_folds(40, 4, rng=3)
    assert assign_folds(40, 4, rng=3) != assign_folds(40, 4, rng=4)


@pytest.mark.parametrize('n, k', [(10, 1), (10, 11), (10, 2.5)])
def test_invalid_fold_count(n, k):
    with pytest.raises(InvalidParameter):
        assign_folds(n, k)


def test_one_standard_error_rule():
    lambdas = [0.5, 0.2, 0.1, 0.05]
    errors = np.array([
        [0.30, 0.20, 0.15, 0.25],
        [0.32, 0.22, 0.25, 0.26],
        [0.28, 0.18, 0.17, 0.24],
    ])
    table = CVErrorTable('and', lambdas, errors, FoldAssignment([0, 1, 2], 3))
    assert np.allclose(table.mean(), [0.30, 0.20, 0.19, 0.25])
    assert table.standard_error()[2] == pytest.approx(np.std([0.15, 0.25, 0.17], ddof=1) / np.sqrt(3))
    assert table.best_lambda() == 0.1
    assert table.select_lambda() == 0.2


def test_selection_ignores_failed_cells():
    errors = np.array([
        [np.nan, 0.20, 0.30],
        [np.nan, 0.22, 0.10],
    ])
    table = CVErrorTable('or', [0.3, 0.2, 0.1], errors, FoldAssignment([0, 1], 2))
    assert np.isnan(table.mean()[0])
    assert table.best_lambda() == 0.1
    # one standard error above the 0.1 column reaches 0.2
    assert table.select_lambda() == 0.2


def test_all_failed_table_cannot_select():
    table = CVErrorTable('or', [0.3, 0.1], np.full((2, 2), np.nan), FoldAssignment([0, 1], 2))
    with pytest.raises(DegenerateInput):
        table.select_lambda()


def test_table_shape_is_checked():
    with pytest.raises(InvalidParameter):
        CVErrorTable('or', [0.3, 0.1], np.zeros((3, 2)), FoldAssignment([0, 1], 2))


def test_cross_validate_tables(simulated, grid):
    tables = cross_validate(simulated.X, simulated.true_edges, grid, 3, rng=0)
    assert set(tables) == {'and', 'or', 'graphical'}
    folds = tables['and'].folds
    for table in tables.values():
        assert table.errors.shape == (3, len(grid))
        assert table.folds is folds
        assert np.all((table.errors >= 0) & (table.errors <= 1))
        assert table.select_lambda() in grid
        assert table.to_frame().shape == (3, len(grid))
    assert folds == assign_folds(simulated.X.shape[0], 3, rng=0)


def test_cross_validate_is_reproducible(simulated, grid):
    first = cross_validate(simulated.X, simulated.true_edges, grid, 3, rng=11, estimators=('graphical',))
    second = cross_validate(simulated.X, simulated.true_edges, grid, 3, rng=11, estimators=('graphical',))
    assert np.array_equal(first['graphical'].errors, second['graphical'].errors)


def test_fold_matching_across_runs(simulated, grid):
    folds = assign_folds(simulated.X.shape[0], 4, rng=2)
    nodewise = cross_validate(simulated.X, simulated.true_edges, grid, 4, folds=folds, estimators=('nodewise',))
    graphical = cross_validate(simulated.X, simulated.true_edges, grid, 4, folds=folds, estimators=('graphical',))
    assert nodewise['and'].folds is graphical['graphical'].folds


def test_cross_validate_rejects_bad_input(simulated, grid):
    with pytest.raises(InvalidParameter):
        cross_validate(simulated.X, simulated.true_edges, grid, 1)
    with pytest.raises(InvalidParameter):
        cross_validate(simulated.X, simulated.true_edges, grid, 3, folds=assign_folds(10, 3))
    with pytest.raises(DegenerateInput):
        cross_validate(simulated.X, EdgeSet.empty(simulated.true_edges.universe), grid, 3)
    with pytest.raises(DegenerateInput):
        cross_validate(simulated.X[:2], simulated.true_edges, grid, 2)
