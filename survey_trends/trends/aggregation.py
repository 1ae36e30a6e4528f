"""
Mean aggregation of count and trend values at grid-cell, species and
reporting-group level.
"""

import numpy as np
import pandas as pd
from typing import List, Optional, Sequence

from ..constants import (
    SPECIES_COL,
    YEAR_COL,
    GRID_COLS,
)


def aggregate_mean(
    df: pd.DataFrame,
    group_cols: Sequence[str],
    value_col: str,
    out_col: Optional[str] = None
) -> pd.DataFrame:
    """
    Mean of a value column for each distinct combination of group columns.

    Missing values are ignored. A group whose values are all missing gets
    a missing mean rather than 0. Rows with a missing key are dropped.

    Parameters
    ----------
    df : pd.DataFrame
        Input table
    group_cols : Sequence[str]
        Key columns
    value_col : str
        Column to average
    out_col : str, optional
        Name of the mean column in the result, defaults to value_col

    Returns
    -------
    pd.DataFrame
        One row per key combination, sorted by key, with columns
        group_cols + [out_col]
    """
    group_cols = list(group_cols)
    out_col = out_col or value_col

    if df.empty:
        return pd.DataFrame(columns=group_cols + [out_col])

    values = df[group_cols].copy()
    values[out_col] = pd.to_numeric(df[value_col]).astype(float)
    # inf would otherwise dominate the mean
    values[out_col] = values[out_col].replace([np.inf, -np.inf], np.nan)

    means = (
        values.groupby(group_cols, sort=True, dropna=True)[out_col]
        .mean()
        .reset_index()
    )

    return means.sort_values(group_cols).reset_index(drop=True)


def grid_cell_means(
    df: pd.DataFrame,
    value_col: str,
    extra_keys: Sequence[str] = (),
    out_col: Optional[str] = None
) -> pd.DataFrame:
    """
    Average sites sharing a grid cell, per species and year.

    Parameters
    ----------
    df : pd.DataFrame
        Site-level table with species, year, latitude and longitude columns
    value_col : str
        Column to average
    extra_keys : Sequence[str]
        Additional key columns kept through the aggregation (e.g. 'state')

    Returns
    -------
    pd.DataFrame
        One row per (extra_keys, species, latitude, longitude, year)
    """
    keys = list(extra_keys) + [SPECIES_COL] + GRID_COLS + [YEAR_COL]
    return aggregate_mean(df, keys, value_col, out_col)


def species_year_means(
    df: pd.DataFrame,
    value_col: str,
    extra_keys: Sequence[str] = (),
    out_col: Optional[str] = None
) -> pd.DataFrame:
    """
    Average grid cells per species and year.

    Returns
    -------
    pd.DataFrame
        One row per (extra_keys, species, year)
    """
    keys = list(extra_keys) + [SPECIES_COL, YEAR_COL]
    return aggregate_mean(df, keys, value_col, out_col)


def hierarchical_mean(
    df: pd.DataFrame,
    value_col: str,
    group_cols: List[str],
    out_col: str = 'value'
) -> pd.DataFrame:
    """
    Aggregate site-level values up to a reporting group.

    The chain is sites -> grid cell -> species -> reporting group, each
    step a plain mean of the step below, so every species carries equal
    weight within its group regardless of how many sites recorded it.

    Parameters
    ----------
    df : pd.DataFrame
        Site-level table holding group_cols, species, grid and year columns
    value_col : str
        Column to average
    group_cols : List[str]
        Reporting group key columns, e.g. ['state', 'biogeography']
    out_col : str
        Name of the value column in the result

    Returns
    -------
    pd.DataFrame
        One row per (group_cols, year)
    """
    cells = grid_cell_means(df, value_col, extra_keys=group_cols)
    species = species_year_means(cells, value_col, extra_keys=group_cols)
    return aggregate_mean(species, list(group_cols) + [YEAR_COL], value_col, out_col)
