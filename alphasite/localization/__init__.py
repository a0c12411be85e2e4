"""Assign modification instances to peptide sites."""

from alphasite.localization.alignment import align, align_all, align_all_constrained
from alphasite.localization.engine import assign_sites, localize, realign_sites
from alphasite.localization.graph import (
    BipartiteGraph,
    ModificationInstance,
    ModificationType,
    build_graph,
)
from alphasite.localization.matching import MatchedEdge, Matching, solve

__all__ = [
    "BipartiteGraph",
    "MatchedEdge",
    "Matching",
    "ModificationInstance",
    "ModificationType",
    "align",
    "align_all",
    "align_all_constrained",
    "assign_sites",
    "build_graph",
    "localize",
    "realign_sites",
    "solve",
]
