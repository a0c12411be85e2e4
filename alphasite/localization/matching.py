"""Maximum weight bipartite matching of modification instances to sites.

The assignment is solved exactly with the Kuhn-Munkres algorithm on the instance x site weight matrix.
Every instance is padded with one zero weight dummy column so that "no assignment" is always possible and the
matrix is never higher than it is wide.

Several matchings can reach the same total score. The returned matching is the unique lexicographically
smallest optimum: instances are visited in (modification, instance index) order and every instance takes the
lowest numbered free site that still allows an optimal completion of the remaining instances.
Totals are compared up to the floating point rounding error of summing the weights, so distinct scores are
never treated as tied unless a positive `tolerance` is requested.
"""

import logging
from dataclasses import dataclass

import numba as nb
import numpy as np

from alphasite.exceptions import InconsistentGraphError, InvalidInputError
from alphasite.localization.graph import BipartiteGraph, ModificationInstance
from alphasite.utils import USE_NUMBA_CACHING

logger = logging.getLogger()

DEFAULT_TOLERANCE = 0.0

# rounding error bound in units of machine epsilon per summed weight
ROUNDING_SLACK_FACTOR = 64


@dataclass(frozen=True, order=True)
class MatchedEdge:
    """A modification instance placed on a site."""

    instance: ModificationInstance
    site: int
    score: float


@dataclass(frozen=True)
class Matching:
    """Conflict free set of matched edges, ordered by (modification, instance index, site)."""

    edges: tuple[MatchedEdge, ...] = ()

    def __post_init__(self):
        instances = [edge.instance for edge in self.edges]
        sites = [edge.site for edge in self.edges]

        if len(set(instances)) != len(instances):
            raise InconsistentGraphError("Matching assigns an instance twice.")
        if len(set(sites)) != len(sites):
            raise InconsistentGraphError("Matching assigns a site twice.")

    def __len__(self):
        return len(self.edges)

    def __iter__(self):
        return iter(self.edges)

    @property
    def total_score(self) -> float:
        return float(sum(edge.score for edge in self.edges))


@nb.njit(nogil=True, cache=USE_NUMBA_CACHING)
def _linear_assignment(cost: np.ndarray) -> np.ndarray:
    """Solve the rectangular linear assignment problem with minimal total cost.

    Shortest augmenting path variant of the Hungarian algorithm with row and column potentials,
    O(n_rows^2 * n_cols).

    Parameters
    ----------

    cost : np.ndarray
        Finite cost matrix of shape (n_rows, n_cols) with n_rows <= n_cols.

    Returns
    -------

    np.ndarray
        Column assigned to every row, shape (n_rows,).

    """
    n_rows, n_cols = cost.shape

    # potentials and assignment are 1-based, index 0 is the virtual start column
    u = np.zeros(n_rows + 1, dtype=np.float64)
    v = np.zeros(n_cols + 1, dtype=np.float64)
    col_owner = np.zeros(n_cols + 1, dtype=np.int64)
    way = np.zeros(n_cols + 1, dtype=np.int64)

    for row in range(1, n_rows + 1):
        col_owner[0] = row
        current_col = 0
        min_slack = np.full(n_cols + 1, np.inf)
        used = np.zeros(n_cols + 1, dtype=np.bool_)

        while True:
            used[current_col] = True
            current_row = col_owner[current_col]
            delta = np.inf
            next_col = 0

            for col in range(1, n_cols + 1):
                if not used[col]:
                    slack = cost[current_row - 1, col - 1] - u[current_row] - v[col]
                    if slack < min_slack[col]:
                        min_slack[col] = slack
                        way[col] = current_col
                    if min_slack[col] < delta:
                        delta = min_slack[col]
                        next_col = col

            for col in range(n_cols + 1):
                if used[col]:
                    u[col_owner[col]] += delta
                    v[col] -= delta
                else:
                    min_slack[col] -= delta

            current_col = next_col
            if col_owner[current_col] == 0:
                break

        # augment along the alternating path
        while True:
            previous_col = way[current_col]
            col_owner[current_col] = col_owner[previous_col]
            current_col = previous_col
            if current_col == 0:
                break

    row_to_col = np.full(n_rows, -1, dtype=np.int64)
    for col in range(1, n_cols + 1):
        if col_owner[col] != 0:
            row_to_col[col_owner[col] - 1] = col - 1

    return row_to_col


def _optimal_score(weights: np.ndarray) -> float:
    """Maximum total weight of any matching in a non-negative weight matrix."""
    n_rows, n_cols = weights.shape
    if n_rows == 0 or n_cols == 0:
        return 0.0

    # one dummy column per row, zero weight means unassigned
    cost = np.zeros((n_rows, n_cols + n_rows), dtype=np.float64)
    cost[:, :n_cols] = -weights

    row_to_col = _linear_assignment(cost)
    assigned = row_to_col < n_cols

    return float(weights[np.arange(n_rows)[assigned], row_to_col[assigned]].sum())


def _comparison_slack(weights: np.ndarray, tolerance: float) -> float:
    """Largest difference between two totals which is still treated as a tie.

    The rounding error of a sum of at most n_rows weights is bounded by a small multiple of
    n_rows * eps * (upper bound of any total), so only rounding noise is absorbed unless `tolerance` is positive.
    """
    n_rows = weights.shape[0]
    if weights.size == 0:
        return tolerance

    upper_bound = float(weights.max(axis=1).sum())
    return (
        tolerance
        + ROUNDING_SLACK_FACTOR * (n_rows + 1) * np.finfo(np.float64).eps * upper_bound
    )


def _is_close(value: float, reference: float, slack: float) -> bool:
    return abs(value - reference) <= slack


def _lexicographic_assignment(
    weights: np.ndarray,
    usable: np.ndarray,
    tolerance: float = DEFAULT_TOLERANCE,
) -> np.ndarray:
    """Find the lexicographically smallest optimal assignment.

    Parameters
    ----------

    weights : np.ndarray
        Non-negative weights of shape (n_instances, n_sites), rows and columns in tie-break order.

    usable : np.ndarray
        Boolean mask of the same shape, True where an instance may be placed on a site.

    tolerance : float
        Absolute score difference up to which totals are treated as tied, on top of the rounding error.

    Returns
    -------

    np.ndarray
        Column index for every row, -1 for unassigned rows.

    """
    n_rows, n_cols = weights.shape
    optimum = _optimal_score(weights)
    slack = _comparison_slack(weights, tolerance)

    row_to_col = np.full(n_rows, -1, dtype=np.int64)
    free_cols = np.ones(n_cols, dtype=bool)
    fixed_score = 0.0

    for row in range(n_rows):
        remaining = weights[row + 1 :]

        for col in np.flatnonzero(usable[row] & free_cols):
            free_cols[col] = False
            total = (
                fixed_score
                + weights[row, col]
                + _optimal_score(remaining[:, free_cols])
            )
            if _is_close(total, optimum, slack):
                row_to_col[row] = col
                fixed_score += weights[row, col]
                break
            free_cols[col] = True

    return row_to_col


def _weight_matrix(
    graph: BipartiteGraph, min_score: float
) -> tuple[np.ndarray, np.ndarray]:
    """Dense weight matrix and mask of usable edges, edges with score <= min_score are not usable."""
    row_index = {instance: i for i, instance in enumerate(graph.instances)}
    col_index = {site: j for j, site in enumerate(graph.sites)}

    weights = np.zeros((len(graph.instances), len(graph.sites)), dtype=np.float64)
    usable = np.zeros_like(weights, dtype=bool)

    for (instance, site), score in graph.edges.items():
        if score > min_score:
            row, col = row_index[instance], col_index[site]
            weights[row, col] = score
            usable[row, col] = True

    return weights, usable


def solve(
    graph: BipartiteGraph,
    min_score: float = 0.0,
    tolerance: float = DEFAULT_TOLERANCE,
) -> Matching:
    """Compute the maximum weight matching of a candidate graph.

    Parameters
    ----------

    graph : BipartiteGraph
        Candidate graph as created by `build_graph`.

    min_score : float, default 0.0
        Edges with a score at or below this value are never part of the matching. Must not be negative.

    tolerance : float, default 0.0
        Absolute score difference up to which two matchings are treated as tied. With the default only
        floating point rounding noise is absorbed and the matching is exactly optimal. Must not be negative.

    Returns
    -------

    Matching
        The optimal matching. Instances without a usable edge, or which lose their site to a better
        alternative, are not part of it.

    Raises
    ------

    InconsistentGraphError
        If the graph references nodes it does not contain.

    InvalidInputError
        If `min_score` or `tolerance` is negative.

    """
    if min_score < 0:
        raise InvalidInputError(f"min_score must not be negative, got {min_score}.")
    if not tolerance >= 0:
        raise InvalidInputError(f"tolerance must not be negative, got {tolerance}.")

    graph.validate()

    weights, usable = _weight_matrix(graph, min_score)
    row_to_col = _lexicographic_assignment(weights, usable, tolerance)

    edges = tuple(
        MatchedEdge(
            graph.instances[row],
            graph.sites[col],
            graph.edges[(graph.instances[row], graph.sites[col])],
        )
        for row, col in enumerate(row_to_col)
        if col >= 0
    )
    matching = Matching(edges)

    logger.debug(
        f"Matched {len(matching)} of {len(graph.instances)} instances, total score {matching.total_score}"
    )

    return matching
