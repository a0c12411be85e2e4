from collections.abc import Hashable

from alphasite.localization.matching import Matching


def aggregate(matching: Matching) -> dict[Hashable, list[int]]:
    """Group the matched sites by modification.

    Parameters
    ----------
    matching : Matching
        Output of the solver.

    Returns
    -------
    dict
        Ascending, duplicate free site positions for every modification with at least one placed instance.
        Modifications without placed instances are absent, which is equivalent to an empty site list.
        Keys are in ascending order.
    """
    sites_by_modification = {}
    for edge in matching:
        sites_by_modification.setdefault(edge.instance.modification, set()).add(
            edge.site
        )

    return {
        modification: sorted(sites_by_modification[modification])
        for modification in sorted(sites_by_modification)
    }
