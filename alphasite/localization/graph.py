"""Candidate graph builder.

Converts the per-modification candidate sites, occurrence counts and localization scores into an explicit
bipartite graph with one node per modification instance and one node per peptide site.
Every instance of a modification is connected to every candidate site of that modification, weighted with the
localization score of the (modification, site) pair.
"""

import logging
import math
import numbers
from collections.abc import Hashable, Iterable, Mapping
from dataclasses import dataclass

from alphasite.exceptions import (
    InconsistentGraphError,
    InvalidInputError,
    MissingOccurrenceCountError,
    MissingScoreError,
)

logger = logging.getLogger()


@dataclass(frozen=True, order=True)
class ModificationType:
    """Explicit modification identity for isobaric modifications.

    Plain masses can be used as modification keys, but two chemically different modifications with the same
    nominal mass would collide. Keying by `ModificationType` keeps them apart while preserving the mass order
    used for tie-breaking.

    Parameters
    ----------
    mass : float
        Mass delta of the modification in Da.

    name : str
        Unique name of the modification, e.g. 'Phospho@S'.
    """

    mass: float
    name: str

    def __str__(self):
        return f"{self.name} ({self.mass})"


@dataclass(frozen=True, order=True)
class ModificationInstance:
    """One physical copy of a modification which needs to be placed on the peptide."""

    modification: Hashable
    instance_index: int


@dataclass(frozen=True)
class BipartiteGraph:
    """Instance to site matching problem.

    Parameters
    ----------
    instances : tuple[ModificationInstance, ...]
        Instance nodes ordered by modification and instance index.

    sites : tuple[int, ...]
        Site nodes in ascending order.

    edges : Mapping[tuple[ModificationInstance, int], float]
        Edge weights keyed by (instance, site).
    """

    instances: tuple[ModificationInstance, ...]
    sites: tuple[int, ...]
    edges: Mapping[tuple[ModificationInstance, int], float]

    @property
    def modifications(self) -> list:
        """Modification keys in instance order, without duplicates."""
        return list(dict.fromkeys(instance.modification for instance in self.instances))

    def validate(self) -> None:
        """Check that node sets are duplicate free and every edge connects known nodes.

        Raises
        ------
        InconsistentGraphError
            If the graph is structurally inconsistent.
        """
        instance_set = set(self.instances)
        site_set = set(self.sites)

        if len(instance_set) != len(self.instances):
            raise InconsistentGraphError("Duplicate instance nodes in graph.")
        if len(site_set) != len(self.sites):
            raise InconsistentGraphError("Duplicate site nodes in graph.")

        for instance, site in self.edges:
            if instance not in instance_set:
                raise InconsistentGraphError(
                    f"Edge references unknown instance {instance}."
                )
            if site not in site_set:
                raise InconsistentGraphError(f"Edge references unknown site {site}.")


def build_graph(
    modification_sites: Mapping[Hashable, Iterable[int]],
    modification_counts: Mapping[Hashable, int],
    modification_site_scores: Mapping[Hashable, Mapping[int, float]],
) -> BipartiteGraph:
    """Build the bipartite candidate graph.

    Parameters
    ----------
    modification_sites : Mapping
        Candidate site positions for every modification key. A modification with an empty site list yields
        instances without edges.

    modification_counts : Mapping
        Number of instances of every modification key.

    modification_site_scores : Mapping
        Localization score for every modification key and candidate site.

    Returns
    -------
    BipartiteGraph
        The candidate graph. Modifications only present in `modification_counts` are not part of the graph.

    Raises
    ------
    MissingOccurrenceCountError
        If a modification with candidate sites has no occurrence count.

    MissingScoreError
        If a candidate site has no score.

    InvalidInputError
        If keys are not orderable, masses are NaN, isobaric types share a name, counts or sites are not
        non-negative integers or scores are not finite.
    """

    modifications = _sort_modifications(modification_sites.keys())

    instances = []
    sites = set()
    edges = {}

    for modification in modifications:
        if modification not in modification_counts:
            raise MissingOccurrenceCountError(modification)
        n_instances = _validate_count(modification, modification_counts[modification])

        candidate_sites = sorted(
            {_validate_site(modification, site) for site in modification_sites[modification]}
        )
        site_scores = modification_site_scores.get(modification, {})

        scores = {}
        for site in candidate_sites:
            if site not in site_scores:
                raise MissingScoreError(modification, site)
            scores[site] = _validate_score(modification, site, site_scores[site])

        sites.update(candidate_sites)

        for instance_index in range(n_instances):
            instance = ModificationInstance(modification, instance_index)
            instances.append(instance)
            for site, score in scores.items():
                edges[(instance, site)] = score

    logger.debug(
        f"Built candidate graph with {len(instances)} instances, {len(sites)} sites and {len(edges)} edges"
    )

    return BipartiteGraph(tuple(instances), tuple(sorted(sites)), edges)


def _sort_modifications(modifications: Iterable[Hashable]) -> list:
    """Validate modification keys and return them in tie-break order."""
    modifications = list(modifications)

    names = {}
    for modification in modifications:
        mass = (
            modification.mass
            if isinstance(modification, ModificationType)
            else modification
        )
        if isinstance(mass, numbers.Real) and math.isnan(mass):
            raise InvalidInputError("Modification mass must not be NaN.")

        if isinstance(modification, ModificationType):
            if names.setdefault(modification.name, modification) != modification:
                raise InvalidInputError(
                    f"Modification name '{modification.name}' is used for different masses: "
                    f"{names[modification.name].mass} and {modification.mass}."
                )

    try:
        return sorted(modifications)
    except TypeError as e:
        raise InvalidInputError(
            f"Modification keys must be mutually orderable: {e}"
        ) from e


def _is_integral(value) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, numbers.Integral):
        return True
    return isinstance(value, numbers.Real) and float(value).is_integer()


def _validate_count(modification, count) -> int:
    if not _is_integral(count) or count < 0:
        raise InvalidInputError(
            f"Occurrence count of modification '{modification}' must be a non-negative integer, got {count!r}."
        )
    return int(count)


def _validate_site(modification, site) -> int:
    if not _is_integral(site):
        raise InvalidInputError(
            f"Candidate site of modification '{modification}' must be an integer position, got {site!r}."
        )
    return int(site)


def _validate_score(modification, site, score) -> float:
    try:
        score = float(score)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(
            f"Score of modification '{modification}' at site {site} is not a number: {score!r}."
        ) from e

    if not math.isfinite(score):
        raise InvalidInputError(
            f"Score of modification '{modification}' at site {site} must be finite, got {score}."
        )
    return score
