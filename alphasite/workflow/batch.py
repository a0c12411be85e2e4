"""Site assignment for a table of peptide spectrum matches.

Scores and occurrence counts are read from long-form tables, one row per (psm, modification, site) and
(psm, modification) respectively. Every peptide spectrum match is an independent call of the assignment engine,
so the calls are distributed over a thread pool without any shared state.
"""

import logging
import multiprocessing.pool
from functools import partial

import pandas as pd
from tqdm import tqdm

from alphasite.constants.keys import ConfigKeys, SiteCols
from alphasite.exceptions import ConfigurationError, InvalidInputError
from alphasite.localization.engine import localize
from alphasite.reporting import reporting  # noqa: F401 registers logger.progress
from alphasite.workflow.config import Config, load_default_config

logger = logging.getLogger()

SCORE_COLUMNS = [SiteCols.PSM_ID, SiteCols.MODIFICATION, SiteCols.SITE, SiteCols.SCORE]
COUNT_COLUMNS = [SiteCols.PSM_ID, SiteCols.MODIFICATION, SiteCols.N_MODIFICATIONS]
ASSIGNMENT_COLUMNS = [
    SiteCols.PSM_ID,
    SiteCols.MODIFICATION,
    SiteCols.INSTANCE_IDX,
    SiteCols.SITE,
    SiteCols.SCORE,
]

# psm ids left out by `localization.skip_invalid`, stored in `DataFrame.attrs` of the assignment table
SKIPPED_PSM_IDS_ATTR = "skipped_psm_ids"


def _check_columns(df: pd.DataFrame, columns: list[str], table_name: str) -> None:
    if missing := [column for column in columns if column not in df.columns]:
        raise InvalidInputError(f"The {table_name} table is missing columns {missing}.")


def _check_duplicates(df: pd.DataFrame, subset: list[str], table_name: str) -> None:
    if (n_duplicated := df.duplicated(subset=subset).sum()) > 0:
        raise InvalidInputError(
            f"The {table_name} table contains {n_duplicated} duplicated rows for {subset}."
        )


def collect_psm_inputs(score_df: pd.DataFrame, count_df: pd.DataFrame) -> dict:
    """Reshape the long-form tables into the engine input of every psm.

    Parameters
    ----------

    score_df : pd.DataFrame
        Columns `psm_id`, `modification`, `site`, `score`.

    count_df : pd.DataFrame
        Columns `psm_id`, `modification`, `n_modifications`.

    Returns
    -------

    dict
        Maps every psm id to a tuple of (modification sites, modification counts, modification site scores).
        Modifications only found in `count_df` have an empty candidate site list.

    """
    _check_columns(score_df, SCORE_COLUMNS, "score")
    _check_columns(count_df, COUNT_COLUMNS, "count")
    _check_duplicates(
        score_df, [SiteCols.PSM_ID, SiteCols.MODIFICATION, SiteCols.SITE], "score"
    )
    _check_duplicates(count_df, [SiteCols.PSM_ID, SiteCols.MODIFICATION], "count")

    psm_inputs = {}

    # NaN modifications are passed on so that the engine rejects them
    for (psm_id, modification), group_df in score_df.groupby(
        [SiteCols.PSM_ID, SiteCols.MODIFICATION], sort=True, dropna=False
    ):
        sites, _, scores = psm_inputs.setdefault(psm_id, ({}, {}, {}))
        sites[modification] = group_df[SiteCols.SITE].tolist()
        scores[modification] = dict(
            zip(
                group_df[SiteCols.SITE].tolist(),
                group_df[SiteCols.SCORE].tolist(),
                strict=True,
            )
        )

    for psm_id, modification, n_modifications in zip(
        count_df[SiteCols.PSM_ID],
        count_df[SiteCols.MODIFICATION],
        count_df[SiteCols.N_MODIFICATIONS],
        strict=True,
    ):
        sites, counts, _ = psm_inputs.setdefault(psm_id, ({}, {}, {}))
        counts[modification] = n_modifications
        sites.setdefault(modification, [])

    return {psm_id: psm_inputs[psm_id] for psm_id in sorted(psm_inputs)}


def _localize_psm(
    psm_item: tuple,
    min_score: float,
    tolerance: float,
    skip_invalid: bool,
) -> list[tuple] | None:
    """Localize one psm, returns None if the psm is invalid and skipped."""
    psm_id, (sites, counts, scores) = psm_item

    try:
        matching = localize(
            sites, counts, scores, min_score=min_score, tolerance=tolerance
        )
    except ConfigurationError as e:
        if not skip_invalid:
            raise
        logger.warning(f"Skipping psm {psm_id}: {e.detail_msg}")
        return None

    return [
        (
            psm_id,
            edge.instance.modification,
            edge.instance.instance_index,
            edge.site,
            edge.score,
        )
        for edge in matching
    ]


def localize_psm_df(
    score_df: pd.DataFrame,
    count_df: pd.DataFrame,
    config: Config | None = None,
) -> pd.DataFrame:
    """Assign modification instances to sites for every peptide spectrum match.

    Parameters
    ----------

    score_df : pd.DataFrame
        Localization scores, columns `psm_id`, `modification`, `site`, `score`.

    count_df : pd.DataFrame
        Occurrence counts, columns `psm_id`, `modification`, `n_modifications`.

    config : Config, optional
        Configuration, the default configuration is used if not provided.

    Returns
    -------

    pd.DataFrame
        One row per placed instance with columns `psm_id`, `modification`, `instance_idx`, `site`, `score`,
        ordered by psm, modification and instance index. Instances which could not be placed have no row.
        Ids of psms skipped as invalid are stored in `attrs["skipped_psm_ids"]`.

    Raises
    ------

    ConfigurationError
        If the tables are malformed, or a psm violates the input contract and `localization.skip_invalid` is false.

    """
    if config is None:
        config = load_default_config()

    localization_config = config[ConfigKeys.LOCALIZATION]
    general_config = config[ConfigKeys.GENERAL]

    psm_inputs = collect_psm_inputs(score_df, count_df)
    logger.progress(f"Assigning modification sites for {len(psm_inputs):,} psms")

    worker = partial(
        _localize_psm,
        min_score=localization_config[ConfigKeys.MIN_SCORE],
        tolerance=localization_config[ConfigKeys.TOLERANCE],
        skip_invalid=localization_config[ConfigKeys.SKIP_INVALID],
    )

    rows = []
    skipped_psm_ids = []
    with multiprocessing.pool.ThreadPool(general_config[ConfigKeys.THREAD_COUNT]) as pool:
        for psm_id, psm_rows in zip(
            psm_inputs,
            tqdm(
                pool.imap(worker, psm_inputs.items()),
                total=len(psm_inputs),
                disable=not general_config[ConfigKeys.PROGRESS_BAR],
            ),
            strict=True,
        ):
            if psm_rows is None:
                skipped_psm_ids.append(psm_id)
            else:
                rows.extend(psm_rows)

    assignment_df = pd.DataFrame(rows, columns=ASSIGNMENT_COLUMNS)
    assignment_df[SiteCols.INSTANCE_IDX] = assignment_df[SiteCols.INSTANCE_IDX].astype(
        int
    )
    assignment_df[SiteCols.SITE] = assignment_df[SiteCols.SITE].astype(int)
    assignment_df[SiteCols.SCORE] = assignment_df[SiteCols.SCORE].astype(float)
    assignment_df.attrs[SKIPPED_PSM_IDS_ATTR] = skipped_psm_ids

    logger.info(f"Placed {len(assignment_df):,} modification instances")
    if skipped_psm_ids:
        logger.warning(f"Skipped {len(skipped_psm_ids):,} invalid psms")

    return assignment_df


def summarize_assignments(
    assignment_df: pd.DataFrame,
    count_df: pd.DataFrame,
    skipped_psm_ids: list | None = None,
) -> pd.DataFrame:
    """Compare the number of placed instances with the requested occurrence count.

    A modification which is not fully localized has ambiguous or insufficient localization evidence,
    it is not an error. Modifications of psms skipped as invalid are flagged as `skipped` instead, they were
    never localized.

    Parameters
    ----------

    assignment_df : pd.DataFrame
        Output of `localize_psm_df`.

    count_df : pd.DataFrame
        Occurrence counts, columns `psm_id`, `modification`, `n_modifications`.

    skipped_psm_ids : list, optional
        Psms left out by `localization.skip_invalid`, read from the attrs of `assignment_df` if not provided.

    Returns
    -------

    pd.DataFrame
        `count_df` columns extended by `n_assigned`, `fully_localized` and `skipped`.

    """
    if skipped_psm_ids is None:
        skipped_psm_ids = assignment_df.attrs.get(SKIPPED_PSM_IDS_ATTR, [])

    _check_columns(count_df, COUNT_COLUMNS, "count")

    n_assigned = (
        assignment_df.groupby([SiteCols.PSM_ID, SiteCols.MODIFICATION]).size().to_dict()
    )

    summary_df = count_df[COUNT_COLUMNS].copy().reset_index(drop=True)
    summary_df[SiteCols.N_ASSIGNED] = [
        n_assigned.get(key, 0)
        for key in zip(
            summary_df[SiteCols.PSM_ID], summary_df[SiteCols.MODIFICATION], strict=True
        )
    ]
    summary_df[SiteCols.N_ASSIGNED] = summary_df[SiteCols.N_ASSIGNED].astype(int)
    skipped = summary_df[SiteCols.PSM_ID].isin(skipped_psm_ids)
    summary_df[SiteCols.FULLY_LOCALIZED] = (
        summary_df[SiteCols.N_ASSIGNED] >= summary_df[SiteCols.N_MODIFICATIONS]
    ) & ~skipped
    summary_df[SiteCols.SKIPPED] = skipped

    n_ambiguous = (
        ~summary_df[SiteCols.FULLY_LOCALIZED] & ~summary_df[SiteCols.SKIPPED]
    ).sum()
    if n_ambiguous:
        logger.info(
            f"{n_ambiguous:,} of {len(summary_df):,} modifications are not fully localized"
        )

    return summary_df
