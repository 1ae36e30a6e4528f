"""
Data loading and validation functions for wide-format survey count tables
and the species-trait and site-state reference tables.
"""

import re
import pandas as pd
import numpy as np
from pathlib import Path
from typing import List

from ..constants import (
    SITE_COL,
    SPECIES_COL,
    YEAR_COL,
    RAW_COUNT_COL,
    LAT_COL,
    LON_COL,
    WIDE_ID_COLS,
    SPECIES_TRAIT_COLS,
    SITE_STATE_COLS,
)


class MalformedInputError(ValueError):
    """Raised when an input table does not have the structure the pipeline requires."""

    def __init__(self, table: str, problem: str):
        self.table = table
        self.problem = problem
        super().__init__(f"{table}: {problem}")


YEAR_COLUMN_PATTERN = re.compile(r'^\d{4}$')


def _read_csv(path: str, what: str) -> pd.DataFrame:
    csv_path = Path(path)
    if not csv_path.exists():
        raise FileNotFoundError(f"No {what} file found at {csv_path}")
    return pd.read_csv(csv_path)


def load_wide_counts(path: str) -> pd.DataFrame:
    """
    Load the wide-format count table.

    Parameters
    ----------
    path : str
        Path to a CSV with one row per (site, species) and one column per year

    Returns
    -------
    pd.DataFrame
        The table as read, with year columns renamed to integers
    """
    df = _read_csv(path, 'count table')
    return df.rename(columns={c: int(c) for c in df.columns if YEAR_COLUMN_PATTERN.match(str(c))})


def load_species_traits(path: str) -> pd.DataFrame:
    """Load the species -> biogeography reference table."""
    df = _read_csv(path, 'species trait table')
    validate_reference_table(df, 'species_traits', SPECIES_TRAIT_COLS, SPECIES_COL)
    return df[SPECIES_TRAIT_COLS].copy()


def load_site_states(path: str) -> pd.DataFrame:
    """Load the site -> state reference table."""
    df = _read_csv(path, 'site state table')
    validate_reference_table(df, 'site_states', SITE_STATE_COLS, SITE_COL)
    return df[SITE_STATE_COLS].copy()


def _is_year_column(col) -> bool:
    return isinstance(col, (int, np.integer)) or bool(YEAR_COLUMN_PATTERN.match(str(col)))


def get_year_columns(wide_df: pd.DataFrame) -> List[int]:
    """
    Get the year columns of a wide count table, sorted.

    Year columns may be integers or four-digit strings.
    """
    return sorted(int(col) for col in wide_df.columns if _is_year_column(col))


def validate_reference_table(
    df: pd.DataFrame,
    table: str,
    required_cols: List[str],
    key_col: str
) -> None:
    """
    Check that a reference table has its required columns and a unique key.

    Raises
    ------
    MalformedInputError
        If a column is missing or the key column has duplicates
    """
    missing = [c for c in required_cols if c not in df.columns]
    if missing:
        raise MalformedInputError(table, f"missing required column(s) {missing}")

    duplicated = df[key_col][df[key_col].duplicated()].unique()
    if len(duplicated) > 0:
        raise MalformedInputError(
            table, f"duplicate {key_col} value(s) {list(duplicated[:5])}"
        )


def validate_wide_counts(wide_df: pd.DataFrame, table: str = 'counts') -> List[int]:
    """
    Validate a wide count table before any pipeline stage runs.

    Checks:
    - all identifier/attribute columns are present
    - at least one year column exists and the year columns are contiguous
    - counts are numeric and non-negative (absent values are allowed)
    - there is at least one row and every row has a site and species
    - each (site, species) pair appears at most once

    Parameters
    ----------
    wide_df : pd.DataFrame
        Wide-format count table
    table : str
        Table name used in error messages

    Returns
    -------
    List[int]
        The sorted year columns

    Raises
    ------
    MalformedInputError
        If any check fails
    """
    missing = [c for c in WIDE_ID_COLS if c not in wide_df.columns]
    if missing:
        raise MalformedInputError(table, f"missing required column(s) {missing}")

    years = get_year_columns(wide_df)
    if not years:
        raise MalformedInputError(table, "no year columns found")

    expected = list(range(years[0], years[-1] + 1))
    if years != expected:
        gaps = sorted(set(expected) - set(years))
        raise MalformedInputError(
            table, f"year columns are not contiguous, missing {gaps}"
        )

    year_cols = [c for c in wide_df.columns if _is_year_column(c)]
    for col in year_cols:
        values = wide_df[col]
        numeric = pd.to_numeric(values, errors='coerce')
        bad = values.notna() & numeric.isna()
        if bad.any():
            raise MalformedInputError(
                table, f"non-numeric count(s) in year column {col}"
            )
        if (numeric < 0).any():
            raise MalformedInputError(
                table, f"negative count(s) in year column {col}"
            )

    if wide_df.empty:
        raise MalformedInputError(table, f"no ({SITE_COL}, {SPECIES_COL}) rows")

    if wide_df[[SITE_COL, SPECIES_COL]].isna().any().any():
        raise MalformedInputError(table, f"missing {SITE_COL}/{SPECIES_COL}")

    for col in [LAT_COL, LON_COL]:
        if pd.to_numeric(wide_df[col], errors='coerce').isna().any():
            raise MalformedInputError(table, f"missing or non-numeric {col}")

    dup_mask = wide_df.duplicated(subset=[SITE_COL, SPECIES_COL])
    if dup_mask.any():
        n_dup = int(dup_mask.sum())
        raise MalformedInputError(
            table, f"{n_dup} duplicate ({SITE_COL}, {SPECIES_COL}) row(s)"
        )

    return years


def round_coordinates(df: pd.DataFrame) -> pd.DataFrame:
    """
    Round latitude and longitude to whole degrees to define grid cells.

    The unrounded coordinates are replaced, not kept alongside.
    """
    df = df.copy()
    for col in [LAT_COL, LON_COL]:
        df[col] = np.round(pd.to_numeric(df[col])).astype(int)
    return df


def wide_to_long(wide_df: pd.DataFrame, table: str = 'counts') -> pd.DataFrame:
    """
    Convert a wide count table to the long-format Observation table.

    The table is validated first, so malformed input fails here before any
    transformation stage runs.

    Parameters
    ----------
    wide_df : pd.DataFrame
        Wide-format table with WIDE_ID_COLS plus one column per year

    Returns
    -------
    pd.DataFrame
        One row per (site, species, year) with columns WIDE_ID_COLS,
        'year' and 'raw_count', coordinates rounded to whole degrees,
        sorted by site, species and year
    """
    validate_wide_counts(wide_df, table)

    year_cols = [c for c in wide_df.columns if _is_year_column(c)]
    long_df = wide_df.melt(
        id_vars=WIDE_ID_COLS,
        value_vars=year_cols,
        var_name=YEAR_COL,
        value_name=RAW_COUNT_COL,
    )
    long_df[YEAR_COL] = long_df[YEAR_COL].astype(int)
    long_df[RAW_COUNT_COL] = pd.to_numeric(long_df[RAW_COUNT_COL]).astype(float)

    long_df = round_coordinates(long_df)
    long_df = long_df.sort_values([SITE_COL, SPECIES_COL, YEAR_COL])

    return long_df[[SITE_COL, SPECIES_COL, YEAR_COL, RAW_COUNT_COL] + WIDE_ID_COLS[2:]].reset_index(drop=True)


def get_unique_site_latitudes(observations: pd.DataFrame) -> pd.DataFrame:
    """
    Get the distinct (site, rounded latitude) pairs of an Observation table.
    """
    sites = observations[[SITE_COL, LAT_COL]].drop_duplicates().sort_values(SITE_COL)
    return sites.reset_index(drop=True)
