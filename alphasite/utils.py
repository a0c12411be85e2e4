import logging
import os

import pandas as pd

from alphasite.exceptions import GenericUserError

logger = logging.getLogger()


USE_NUMBA_CACHING = os.environ.get("USE_NUMBA_CACHING", "0") == "1"

SUPPORTED_FILE_FORMATS = ["tsv", "csv", "parquet"]


def get_file_format(path: str) -> str:
    """Infer the table format from the file extension.

    Parameters
    ----------

    path : str
        Path to the table.

    Returns
    -------
    str
        One of 'tsv', 'csv' or 'parquet'.

    """
    extension = os.path.splitext(path)[1].lower().lstrip(".")
    if extension == "txt":
        extension = "tsv"

    if extension not in SUPPORTED_FILE_FORMATS:
        raise GenericUserError(
            f"Unsupported file format '{extension}'",
            f"Tables must be one of {SUPPORTED_FILE_FORMATS}, got {path}.",
        )
    return extension


def read_df(path: str) -> pd.DataFrame:
    """Read a tsv, csv or parquet table."""
    file_format = get_file_format(path)
    logger.info(f"Reading {file_format} table from {path}")

    if file_format == "parquet":
        return pd.read_parquet(path)
    return pd.read_csv(path, sep="\t" if file_format == "tsv" else ",")


def write_df(df: pd.DataFrame, path_without_extension: str, file_format: str = "tsv"):
    """Write a table, appending the extension matching `file_format`.

    Returns
    -------
    str
        Path of the written file.

    """
    if file_format not in SUPPORTED_FILE_FORMATS:
        raise GenericUserError(
            f"Unsupported file format '{file_format}'",
            f"Output format must be one of {SUPPORTED_FILE_FORMATS}.",
        )

    path = f"{path_without_extension}.{file_format}"
    logger.info(f"Writing {len(df)} rows to {path}")

    if file_format == "parquet":
        df.to_parquet(path, index=False)
    else:
        df.to_csv(path, sep="\t" if file_format == "tsv" else ",", index=False)

    return path
