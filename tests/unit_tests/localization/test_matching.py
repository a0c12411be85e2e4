from itertools import permutations

import numpy as np
import pytest

from alphasite.exceptions import InconsistentGraphError, InvalidInputError
from alphasite.localization.graph import (
    BipartiteGraph,
    ModificationInstance,
    build_graph,
)
from alphasite.localization.matching import (
    MatchedEdge,
    Matching,
    _comparison_slack,
    _lexicographic_assignment,
    _linear_assignment,
    _optimal_score,
    solve,
)


@pytest.mark.parametrize("seed", range(10))
def test_linear_assignment_matches_brute_force(seed):
    rng = np.random.default_rng(seed)
    n_rows = rng.integers(1, 5)
    n_cols = rng.integers(n_rows, 7)
    cost = rng.uniform(-10, 10, size=(n_rows, n_cols))

    row_to_col = _linear_assignment(cost)

    best = min(
        sum(cost[row, col] for row, col in enumerate(cols))
        for cols in permutations(range(n_cols), int(n_rows))
    )
    assert len(set(row_to_col)) == n_rows
    assert cost[np.arange(n_rows), row_to_col].sum() == pytest.approx(best)


def test_linear_assignment_square():
    cost = np.array([[4.0, 1.0, 3.0], [2.0, 0.0, 5.0], [3.0, 2.0, 2.0]])

    row_to_col = _linear_assignment(cost)

    np.testing.assert_array_equal(row_to_col, [1, 0, 2])


def test_optimal_score_empty():
    assert _optimal_score(np.zeros((0, 3))) == 0.0
    assert _optimal_score(np.zeros((3, 0))) == 0.0


def test_optimal_score_more_rows_than_columns():
    weights = np.array([[10.0], [5.0], [7.0]])

    assert _optimal_score(weights) == 10.0


def test_lexicographic_assignment_prefers_lowest_site_for_lowest_instance():
    weights = np.ones((2, 3))
    usable = np.ones((2, 3), dtype=bool)

    row_to_col = _lexicographic_assignment(weights, usable)

    np.testing.assert_array_equal(row_to_col, [0, 1])


def test_lexicographic_assignment_leaves_row_without_usable_column():
    weights = np.array([[0.0, 0.0], [3.0, 1.0]])
    usable = np.array([[False, False], [True, True]])

    row_to_col = _lexicographic_assignment(weights, usable)

    np.testing.assert_array_equal(row_to_col, [-1, 0])


def test_solve_example(example_input):
    matching = solve(build_graph(*example_input))

    assert matching.edges == (
        MatchedEdge(ModificationInstance(1.0, 0), 1, 123.5),
        MatchedEdge(ModificationInstance(2.0, 0), 3, 95.3),
        MatchedEdge(ModificationInstance(2.0, 1), 17, 51.7),
    )
    assert matching.total_score == pytest.approx(270.5)


def test_solve_conflict_goes_to_higher_score():
    graph = build_graph({1.0: [4], 2.0: [4]}, {1.0: 1, 2.0: 1}, {1.0: {4: 10.0}, 2.0: {4: 5.0}})

    matching = solve(graph)

    assert [(edge.instance, edge.site) for edge in matching] == [
        (ModificationInstance(1.0, 0), 4)
    ]


def test_solve_tied_conflict_goes_to_lower_modification():
    graph = build_graph({1.0: [4], 2.0: [4]}, {1.0: 1, 2.0: 1}, {1.0: {4: 5.0}, 2.0: {4: 5.0}})

    matching = solve(graph)

    assert [edge.instance.modification for edge in matching] == [1.0]


def test_solve_tie_between_placements_prefers_lowest_site_for_first_modification():
    graph = build_graph(
        {1.0: [2, 4], 2.0: [2, 4]},
        {1.0: 1, 2.0: 1},
        {1.0: {2: 5.0, 4: 5.0}, 2.0: {2: 5.0, 4: 5.0}},
    )

    matching = solve(graph)

    assert [(edge.instance.modification, edge.site) for edge in matching] == [
        (1.0, 2),
        (2.0, 4),
    ]


def test_solve_prefers_global_optimum_over_greedy_choice():
    # greedy would place 1.0 on site 1 (score 10) and leave 2.0 without a site
    graph = build_graph(
        {1.0: [1, 2], 2.0: [1]},
        {1.0: 1, 2.0: 1},
        {1.0: {1: 10.0, 2: 9.0}, 2.0: {1: 8.0}},
    )

    matching = solve(graph)

    assert [(edge.instance.modification, edge.site) for edge in matching] == [
        (1.0, 2),
        (2.0, 1),
    ]
    assert matching.total_score == 17.0


@pytest.mark.parametrize("score", [0.0, -3.0])
def test_solve_excludes_edges_without_evidence(score):
    graph = build_graph({1.0: [1]}, {1.0: 1}, {1.0: {1: score}})

    assert len(solve(graph)) == 0


def test_solve_min_score_threshold():
    graph = build_graph({1.0: [1, 2]}, {1.0: 2}, {1.0: {1: 0.5, 2: 3.0}})

    assert [edge.site for edge in solve(graph)] == [1, 2]
    assert [edge.site for edge in solve(graph, min_score=1.0)] == [2]


def test_solve_empty_graph():
    matching = solve(BipartiteGraph((), (), {}))

    assert matching == Matching()
    assert matching.total_score == 0.0


def test_solve_inconsistent_graph_raises():
    instance = ModificationInstance(1.0, 0)
    graph = BipartiteGraph((instance,), (1,), {(instance, 2): 1.0})

    with pytest.raises(InconsistentGraphError):
        solve(graph)


@pytest.mark.parametrize(
    "kwargs",
    [{"min_score": -1.0}, {"tolerance": -1.0}, {"tolerance": -1e-9}],
)
def test_solve_invalid_parameters_raise(example_input, kwargs):
    with pytest.raises(InvalidInputError):
        solve(build_graph(*example_input), **kwargs)


def test_matching_rejects_repeated_site():
    with pytest.raises(InconsistentGraphError):
        Matching(
            (
                MatchedEdge(ModificationInstance(1.0, 0), 3, 1.0),
                MatchedEdge(ModificationInstance(2.0, 0), 3, 1.0),
            )
        )


def test_matching_rejects_repeated_instance():
    with pytest.raises(InconsistentGraphError):
        Matching(
            (
                MatchedEdge(ModificationInstance(1.0, 0), 3, 1.0),
                MatchedEdge(ModificationInstance(1.0, 0), 4, 1.0),
            )
        )


@pytest.mark.parametrize(
    "lower_score, higher_score",
    [
        (50000.0, 50000.00004),
        (1e8, 1e8 + 0.05),
        (1e-3, 1e-3 + 1e-12),
    ],
)
def test_solve_near_equal_scores_are_not_tied(lower_score, higher_score):
    graph = build_graph(
        {1.0: [1, 2, 3]}, {1.0: 1}, {1.0: {1: lower_score, 2: higher_score, 3: 1.0}}
    )

    matching = solve(graph)

    assert [edge.site for edge in matching] == [2]
    assert matching.total_score == higher_score


def test_solve_tie_up_to_rounding_prefers_lowest_site():
    # 0.1 + 0.2 != 0.3 in floating point, both matchings are optimal
    graph = build_graph(
        {1.0: [1, 2], 2.0: [2]},
        {1.0: 1, 2.0: 1},
        {1.0: {1: 0.1, 2: 0.3}, 2.0: {2: 0.2}},
    )

    matching = solve(graph)

    assert [(edge.instance.modification, edge.site) for edge in matching] == [
        (1.0, 1),
        (2.0, 2),
    ]


def test_solve_positive_tolerance_treats_near_equal_scores_as_tied():
    graph = build_graph({1.0: [1, 2]}, {1.0: 1}, {1.0: {1: 50000.0, 2: 50000.5}})

    assert [edge.site for edge in solve(graph)] == [2]
    assert [edge.site for edge in solve(graph, tolerance=1.0)] == [1]


def test_comparison_slack():
    weights = np.array([[1e8, 3.0], [2.0, 1e-3]])

    slack = _comparison_slack(weights, 0.0)

    assert 0.0 < slack < 1e-3
    assert _comparison_slack(weights, 0.5) == pytest.approx(0.5 + slack)
    assert _comparison_slack(np.zeros((2, 0)), 0.5) == 0.5
