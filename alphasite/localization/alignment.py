"""Nearest position alignment of two sets of sites.

Used to carry previously reported modification sites over to a new set of localized sites: every old site is
mapped to the closest new site, and every new site is used at most once.

In a round, every old site proposes its closest available new site (ties go to the smaller position), and every
proposed new site is granted to its closest proposer (ties go to the smaller proposer).
"""

from collections.abc import Iterable, Mapping


def _closest(position: int, candidates: Iterable[int]) -> int:
    return min(candidates, key=lambda candidate: (abs(candidate - position), candidate))


def _align_round(candidates: Mapping[int, list[int]]) -> dict[int, int]:
    """Run one proposal round and return the granted pairs."""
    proposals = {}
    for key, positions in candidates.items():
        if positions:
            proposals.setdefault(_closest(key, positions), []).append(key)

    return {_closest(target, keys): target for target, keys in proposals.items()}


def _align_iteratively(
    candidates: Mapping[int, list[int]], taken: set[int]
) -> dict[int, int | None]:
    """Repeat proposal rounds on the unmatched keys until no further pair can be granted.

    `taken` is updated in place with the granted positions.
    """
    result = {key: None for key in candidates}

    while True:
        open_candidates = {
            key: [position for position in positions if position not in taken]
            for key, positions in candidates.items()
            if result[key] is None
        }
        granted = _align_round(open_candidates)
        if not granted:
            break

        result.update(granted)
        taken.update(granted.values())

    return result


def align(series_1: Iterable[int], series_2: Iterable[int]) -> dict[int, int | None]:
    """Map every position of `series_1` to the closest position of `series_2` in a single round.

    Positions losing their closest counterpart to a closer competitor are mapped to None.

    Parameters
    ----------
    series_1 : Iterable[int]
        Positions to map.

    series_2 : Iterable[int]
        Positions to map to.

    Returns
    -------
    dict
        Mapping of every position in `series_1` to a position of `series_2` or None.
    """
    keys = sorted(set(series_1))
    positions = sorted(set(series_2))

    granted = _align_round({key: positions for key in keys})

    return {key: granted.get(key) for key in keys}


def align_all(series_1: Iterable[int], series_2: Iterable[int]) -> dict[int, int | None]:
    """Map positions of `series_1` to positions of `series_2` until one of them is exhausted.

    Like `align`, but positions which lost in a round compete again for the remaining positions.
    """
    positions = sorted(set(series_2))
    candidates = {key: positions for key in sorted(set(series_1))}

    return _align_iteratively(candidates, set())


def align_all_constrained(
    candidates: Mapping[int, Iterable[int]],
) -> dict[int, int | None]:
    """Map every key to one of its own allowed positions.

    Keys with fewer allowed positions are aligned first, so that constrained keys are not starved by keys
    which could go anywhere.

    Parameters
    ----------
    candidates : Mapping[int, Iterable[int]]
        Allowed positions for every key.

    Returns
    -------
    dict
        Mapping of every key to one of its positions or None, sorted by key.
    """
    allowed = {key: sorted(set(positions)) for key, positions in candidates.items()}

    groups = {}
    for key in sorted(allowed):
        groups.setdefault(len(allowed[key]), {})[key] = allowed[key]

    taken = set()
    result = {}
    for size in sorted(groups):
        result.update(_align_iteratively(groups[size], taken))

    return dict(sorted(result.items()))
