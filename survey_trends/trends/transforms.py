"""
Zero-safe log transform and standardization of logged counts.
"""

import numpy as np
import pandas as pd
from typing import Optional, Sequence

from ..constants import (
    SITE_COL,
    SPECIES_COL,
    YEAR_COL,
    TREND_START_YEAR,
    BASELINE_YEAR,
)
from .aggregation import grid_cell_means, species_year_means


def coerce_non_finite(df: pd.DataFrame, cols: Sequence[str]) -> pd.DataFrame:
    """
    Replace +/-inf with NA in the given columns.
    """
    df = df.copy()
    for col in cols:
        df[col] = df[col].astype(float).replace([np.inf, -np.inf], np.nan)
    return df


def zero_floor(
    df: pd.DataFrame,
    value_col: str,
    group_cols: Sequence[str]
) -> pd.Series:
    """
    Smallest non-zero value of each group, aligned to the rows of df.

    Groups without any non-zero value get NA.
    """
    values = pd.to_numeric(df[value_col]).astype(float)
    nonzero = values.where(values > 0)
    return nonzero.groupby([df[c] for c in group_cols]).transform('min')


def zero_safe_log(
    df: pd.DataFrame,
    value_col: str,
    group_cols: Sequence[str],
    out_col: Optional[str] = None
) -> pd.DataFrame:
    """
    Natural log of a non-negative column that stays finite at zero.

    Zeros are replaced by half the smallest non-zero value of their
    reference group before taking the log. The floor is computed only from
    rows of the same group.

    Parameters
    ----------
    df : pd.DataFrame
        Input table
    value_col : str
        Column of counts or mean counts
    group_cols : Sequence[str]
        Reference group, e.g. ['species_id'] or ['species_id', 'site_id']
    out_col : str, optional
        Output column, defaults to 'log_' + value_col

    Returns
    -------
    pd.DataFrame
        Copy of df with the logged column added. The result is NA where the
        value is NA, where the value is 0 and its group has no non-zero value,
        and where the value is negative.
    """
    out_col = out_col or f'log_{value_col}'
    df = df.copy()

    values = pd.to_numeric(df[value_col]).astype(float)
    floor = zero_floor(df, value_col, group_cols)

    substituted = values.where(values != 0, floor / 2)
    substituted = substituted.where(substituted > 0)

    with np.errstate(divide='ignore', invalid='ignore'):
        df[out_col] = np.log(substituted)

    return coerce_non_finite(df, [out_col])


def standardize_to_site_mean(
    df: pd.DataFrame,
    value_col: str = 'count',
    start_year: int = TREND_START_YEAR,
    end_year: Optional[int] = None
) -> dict:
    """
    Centre each site's logged series on its own mean and average upwards.

    Steps:
    1. Zero-safe log of value_col, floor per (species, site)
    2. Subtract the (site, species) mean over all years
    3. Average to grid cells, then to species, within the reporting window

    Parameters
    ----------
    df : pd.DataFrame
        Gap-filled observation table
    value_col : str
        Column to log, normally the extrapolated 'count'
    start_year : int
        First year of the reporting window
    end_year : int, optional
        Last year of the reporting window, defaults to the last year in df

    Returns
    -------
    dict
        - 'site': site-level table with 'log_count' and 'std_site_mean'
        - 'grid': grid-cell means of 'std_site_mean'
        - 'species': species-year means of 'std_site_mean'
    """
    logged = zero_safe_log(df, value_col, [SPECIES_COL, SITE_COL], out_col='log_count')

    pair_mean = logged.groupby([SITE_COL, SPECIES_COL])['log_count'].transform('mean')
    logged['std_site_mean'] = logged['log_count'] - pair_mean
    logged = coerce_non_finite(logged, ['std_site_mean'])

    window = restrict_to_window(logged, start_year, end_year)
    grid = grid_cell_means(window, 'std_site_mean')
    species = species_year_means(grid, 'std_site_mean')

    return {'site': logged, 'grid': grid, 'species': species}


def standardize_to_baseline(
    df: pd.DataFrame,
    value_col: str = 'count',
    baseline_year: int = BASELINE_YEAR
) -> pd.DataFrame:
    """
    Anchor each site's logged series at zero in the baseline year.

    The log uses its own floor per (species, site), computed independently
    of any other standardization.

    Parameters
    ----------
    df : pd.DataFrame
        Gap-filled observation table
    value_col : str
        Column to log, normally the extrapolated 'count'
    baseline_year : int
        Year whose value is subtracted from every year of the pair

    Returns
    -------
    pd.DataFrame
        Copy of df with 'log_count' and 'std_baseline'. Pairs with no value
        in the baseline year are NA in every year.
    """
    logged = zero_safe_log(df, value_col, [SPECIES_COL, SITE_COL], out_col='log_count')

    baseline = logged.loc[logged[YEAR_COL] == baseline_year,
                          [SITE_COL, SPECIES_COL, 'log_count']]
    baseline = baseline.rename(columns={'log_count': 'baseline_log_count'})
    logged = logged.merge(baseline, on=[SITE_COL, SPECIES_COL], how='left')

    logged['std_baseline'] = logged['log_count'] - logged['baseline_log_count']
    logged = logged.drop(columns=['baseline_log_count'])

    return coerce_non_finite(logged, ['std_baseline'])


def restrict_to_window(
    df: pd.DataFrame,
    start_year: int,
    end_year: Optional[int] = None
) -> pd.DataFrame:
    """Rows whose year lies within [start_year, end_year]."""
    mask = df[YEAR_COL] >= start_year
    if end_year is not None:
        mask &= df[YEAR_COL] <= end_year
    return df[mask].copy()
