import numpy as np
import pandas as pd
import pytest

PHOSPHO = 79.966331
OXIDATION = 15.994915
ACETYL = 42.010565


def random_site_input(
    rng: np.random.Generator,
    max_modifications: int = 3,
    max_instances: int = 6,
    n_sites: int = 6,
    wide_scores: bool = False,
) -> tuple[dict, dict, dict]:
    """Create a random engine input with at most `max_instances` instances and `n_sites` sites.

    Parameters
    ----------

    rng : np.random.Generator
        Seeded random generator.

    max_modifications : int
        Maximum number of modification types.

    max_instances : int
        Maximum number of modification instances summed over all types.

    n_sites : int
        Size of the pool of site positions the candidates are drawn from.

    wide_scores : bool
        Draw unrounded scores log-uniformly between 1e-3 and 1e8 instead of rounded scores below 100.

    Returns
    -------

    tuple
        Modification sites, modification counts and modification site scores.
        By default scores are rounded to one decimal and include zero and negative values to create ties and
        edges without evidence.
    """

    masses = [PHOSPHO, OXIDATION, ACETYL][:max_modifications]
    n_modifications = rng.integers(1, len(masses) + 1)

    sites, counts, scores = {}, {}, {}
    n_instances_left = max_instances
    for mass in rng.choice(masses, size=n_modifications, replace=False):
        mass = float(mass)
        counts[mass] = int(rng.integers(0, min(3, n_instances_left) + 1))
        n_instances_left -= counts[mass]

        n_candidates = int(rng.integers(0, n_sites + 1))
        candidate_sites = sorted(
            int(site)
            for site in rng.choice(
                np.arange(1, n_sites + 1), size=n_candidates, replace=False
            )
        )
        sites[mass] = candidate_sites
        if wide_scores:
            scores[mass] = {
                site: float(rng.choice([0.0, 10 ** rng.uniform(-3, 8)]))
                for site in candidate_sites
            }
        else:
            scores[mass] = {
                site: float(np.round(rng.choice([0.0, rng.uniform(-5, 100)]), 1))
                for site in candidate_sites
            }

    return sites, counts, scores


def mock_score_df() -> pd.DataFrame:
    """Create a score table for three psms.

    psm 0 is the two phospho example with an oxidation competing for site 3,
    psm 1 has a single acetylation without positive evidence,
    psm 2 has an oxidation without any candidate site, only present in the count table.
    """
    return pd.DataFrame(
        {
            "psm_id": [0, 0, 0, 0, 0, 0, 1, 1],
            "modification": [
                OXIDATION,
                OXIDATION,
                OXIDATION,
                PHOSPHO,
                PHOSPHO,
                PHOSPHO,
                ACETYL,
                ACETYL,
            ],
            "site": [1, 3, 5, 3, 10, 17, 0, 1],
            "score": [123.5, 10.4, 0.0, 95.3, 4.9, 51.7, 0.0, -1.0],
        }
    )


def mock_count_df() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "psm_id": [0, 0, 1, 2],
            "modification": [OXIDATION, PHOSPHO, ACETYL, OXIDATION],
            "n_modifications": [1, 2, 1, 1],
        }
    )


@pytest.fixture
def example_input():
    """Two modification types competing for site 3."""
    sites = {1.0: [1, 3, 5], 2.0: [3, 10, 17]}
    counts = {1.0: 1, 2.0: 2}
    scores = {
        1.0: {1: 123.5, 3: 10.4, 5: 0.0},
        2.0: {3: 95.3, 10: 4.9, 17: 51.7},
    }
    return sites, counts, scores
