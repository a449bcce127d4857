# -------------
# Import python packages
# --------------
import json
import os
import logging
import numpy as np
import polars as pl

# -------------
# Import esm code
# --------------
from esm.utils.errors import SchemaError, DimensionError

logger = logging.getLogger(__name__)


def require_file(file_path: str) -> str:
    """Return `file_path` if it exists, otherwise log and raise FileNotFoundError."""
    if not os.path.isfile(file_path):
        logger.error(f"Missing input file: '{file_path}'")
        raise FileNotFoundError(f"Missing input file: '{file_path}'")
    return file_path


def read_json_document(file_path: str, fields: list[str]) -> dict:
    """
    Reads a JSON document and checks that it defines all the given fields.

    Args:
        file_path (str): The path to the JSON file.
        fields (list[str]): Names of the fields that must be present.

    Returns:
        dict: The parsed document.
    """
    require_file(file_path)
    with open(file_path, "r") as f:
        try:
            document = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Malformed JSON in '{file_path}': {e}")
            raise SchemaError(f"Malformed JSON in '{file_path}': {e}") from e

    if not isinstance(document, dict):
        raise SchemaError(f"Expected a JSON object in '{file_path}'")

    missing = [key for key in fields if key not in document]
    if missing:
        logger.error(f"Fields {missing} are missing in '{file_path}'")
        raise SchemaError(f"Fields {missing} are missing in '{file_path}'")

    return document


def read_csv_table(file_path: str, columns: list[str], n_rows: int = None) -> pl.DataFrame:
    """
    Reads a CSV table and checks its columns and (optionally) its number of rows.

    Columns are cast to Float64 so that integer-looking columns can be mixed
    with real ones in the arithmetic of the loader.
    """
    require_file(file_path)
    try:
        df = pl.read_csv(file_path)
    except (pl.exceptions.ComputeError, pl.exceptions.NoDataError) as e:
        logger.error(f"Could not parse CSV file '{file_path}': {e}")
        raise SchemaError(f"Could not parse CSV file '{file_path}': {e}") from e

    df = df.rename({c: c.strip() for c in df.columns})
    missing = [c for c in columns if c not in df.columns]
    if missing:
        logger.error(f"Columns {missing} are missing in '{file_path}'")
        raise SchemaError(f"Columns {missing} are missing in '{file_path}'")

    try:
        df = df.select([pl.col(c).cast(pl.Float64, strict=True) for c in columns])
    except (pl.exceptions.InvalidOperationError, pl.exceptions.ComputeError) as e:
        logger.error(f"Non-numeric entries in '{file_path}': {e}")
        raise SchemaError(f"Non-numeric entries in '{file_path}': {e}") from e

    if df.null_count().sum_horizontal().item() > 0:
        logger.error(f"Empty entries in '{file_path}'")
        raise SchemaError(f"Empty entries in '{file_path}'")

    if n_rows is not None and df.height != n_rows:
        logger.error(f"'{file_path}' has {df.height} rows but {n_rows} were expected")
        raise DimensionError(f"'{file_path}' has {df.height} rows but {n_rows} were expected")

    return df


def column(df: pl.DataFrame, name: str) -> np.ndarray:
    """Column of a table as a float NumPy array."""
    return df.get_column(name).to_numpy().astype(float)


def to_int_list(values, field: str, file_path: str) -> list[int]:
    """Convert a JSON sequence of numbers into a list of integers."""
    if not isinstance(values, list):
        raise SchemaError(f"Field '{field}' in '{file_path}' must be a list")
    try:
        return [int(v) for v in values]
    except (TypeError, ValueError) as e:
        logger.error(f"Field '{field}' in '{file_path}' must contain integers")
        raise SchemaError(f"Field '{field}' in '{file_path}' must contain integers") from e
