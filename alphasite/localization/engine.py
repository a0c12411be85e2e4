"""Modification to site assignment.

Places every modification instance of a peptide on a distinct residue such that the summed localization score is
maximal. The assignment is a pure function of its inputs: a candidate graph is built, solved and projected back onto
the modifications, nothing is shared between calls.

Instances which cannot be placed, because all their candidate sites have no positive evidence or are claimed by
better scoring alternatives, are not part of the result. This is an expected outcome meaning that the localization
is ambiguous, not an error.
"""

import logging
from collections.abc import Hashable, Iterable, Mapping

from alphasite.localization.aggregation import aggregate
from alphasite.localization.alignment import align_all
from alphasite.localization.graph import build_graph
from alphasite.localization.matching import DEFAULT_TOLERANCE, Matching, solve

logger = logging.getLogger()


def localize(
    modification_sites: Mapping[Hashable, Iterable[int]],
    modification_counts: Mapping[Hashable, int],
    modification_site_scores: Mapping[Hashable, Mapping[int, float]],
    min_score: float = 0.0,
    tolerance: float = DEFAULT_TOLERANCE,
) -> Matching:
    """Build and solve the candidate graph, returning the matched edges with their scores.

    See `assign_sites` for the parameters.
    """
    graph = build_graph(modification_sites, modification_counts, modification_site_scores)
    return solve(graph, min_score=min_score, tolerance=tolerance)


def assign_sites(
    modification_sites: Mapping[Hashable, Iterable[int]],
    modification_counts: Mapping[Hashable, int],
    modification_site_scores: Mapping[Hashable, Mapping[int, float]],
    min_score: float = 0.0,
    tolerance: float = DEFAULT_TOLERANCE,
) -> dict[Hashable, list[int]]:
    """Assign modification instances to peptide sites.

    Parameters
    ----------
    modification_sites : Mapping
        Candidate site positions for every modification. Keys are masses or `ModificationType` records.

    modification_counts : Mapping
        Number of instances of every modification.

    modification_site_scores : Mapping
        Localization score for every modification at each of its candidate sites.

    min_score : float, default 0.0
        Scores at or below this value are treated as no evidence.

    tolerance : float, default 0.0
        Absolute score difference up to which two assignments are treated as tied. With the default only rounding
        noise is absorbed, so the assignment is exactly optimal.

    Returns
    -------
    dict
        Ascending site positions for every modification with at least one placed instance.

    Raises
    ------
    ConfigurationError
        If a modification has no occurrence count, a candidate site has no score or an input value is invalid.

    Examples
    --------
    >>> assign_sites({1.0: [1, 3]}, {1.0: 1}, {1.0: {1: 10.0, 3: 2.0}})
    {1.0: [1]}

    """
    return aggregate(
        localize(
            modification_sites,
            modification_counts,
            modification_site_scores,
            min_score=min_score,
            tolerance=tolerance,
        )
    )


def realign_sites(
    previous_sites: Mapping[Hashable, Iterable[int]],
    assigned_sites: Mapping[Hashable, Iterable[int]],
) -> dict[Hashable, dict[int, int | None]]:
    """Map previously reported sites to the newly assigned sites of the same modification.

    Parameters
    ----------
    previous_sites : Mapping
        Sites reported before the assignment, e.g. by a search engine, for every modification.

    assigned_sites : Mapping
        Output of `assign_sites`.

    Returns
    -------
    dict
        For every modification in `previous_sites`, the closest newly assigned site of each previous site,
        or None if the previous site could not be carried over.
    """
    realigned = {}
    for modification, sites in previous_sites.items():
        realigned[modification] = align_all(
            sites, assigned_sites.get(modification, [])
        )

        n_unmapped = sum(site is None for site in realigned[modification].values())
        if n_unmapped:
            logger.debug(
                f"{n_unmapped} previous site(s) of modification {modification} without new localization"
            )

    return realigned
