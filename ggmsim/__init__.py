from .cross_validation import CVErrorTable, FoldAssignment, assign_folds, cross_validate
from .edges import EdgeSet, PairUniverse, true_edges
from .errors import AUCUndefined, DegenerateInput, EstimationFailure, GGMError, InvalidParameter
from .evaluation import (PerformanceCurve, PerformancePoint, check_grid, compare_edges, evaluate_graphical_grid,
                         evaluate_grid, evaluate_nodewise_grid, roc_auc)
from .glasso import estimate_graphical, fit_precision
from .nodewise import AND_RULE, OR_RULE, EdgeDecisionRule, NodewiseEstimate, estimate_nodewise, fit_nodewise
from .synthetic import SimulatedGraph, generate, generate_nonempty, make_rng, sample_precision

__version__ = '0.1.0'
