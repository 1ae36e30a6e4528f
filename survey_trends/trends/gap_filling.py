"""
Gap filling functions for missing counts in per-site, per-species survey
time series.

Interior gaps are filled by linear interpolation, then leading and trailing
gaps are filled by holding the nearest known value.
"""

import numpy as np
import pandas as pd
from typing import List

from ..constants import (
    SITE_COL,
    SPECIES_COL,
    YEAR_COL,
    RAW_COUNT_COL,
    ORIGINAL,
    INTERPOLATED,
    EXTRAPOLATED,
    MISSING,
)


def interpolate_series(values: pd.Series) -> pd.Series:
    """
    Linearly interpolate interior missing values of a yearly series.

    A run of consecutive missing values between two known values is filled
    along the straight line joining them. Missing values before the first or
    after the last known value are left as NA.

    Parameters
    ----------
    values : pd.Series
        Values ordered by year, one per year of a contiguous range

    Returns
    -------
    pd.Series
        Series with interior gaps filled
    """
    values = values.astype(float)
    if values.notna().sum() < 2:
        return values.copy()
    return values.interpolate(method='linear', limit_area='inside')


def extrapolate_series(values: pd.Series) -> pd.Series:
    """
    Fill leading and trailing missing values by holding the nearest value.

    Trailing gaps take the last known value (forward fill) and leading gaps
    take the first known value (backward fill). A series with a single known
    value becomes constant; an all-NA series stays all NA.

    Parameters
    ----------
    values : pd.Series
        Values ordered by year, usually already interpolated

    Returns
    -------
    pd.Series
        Series with boundary gaps filled
    """
    return values.astype(float).ffill().bfill()


def create_complete_site_species_year_grid(
    df: pd.DataFrame,
    years: List[int]
) -> pd.DataFrame:
    """
    Create a complete grid of site-species-year combinations.

    This ensures that each (site, species) pair that ever appears has a row
    for every year in the range, even if the pair was absent from the input
    for that year. Site and species attributes are carried onto added rows.

    Parameters
    ----------
    df : pd.DataFrame
        Observation table with 'site_id', 'species_id', 'year', 'raw_count'
    years : List[int]
        Full contiguous year range

    Returns
    -------
    pd.DataFrame
        Observation table with exactly one row per (site, species, year),
        sorted by site, species and year. Added rows have NA raw_count.
    """
    if df.empty:
        return df.copy()

    pairs = df[[SITE_COL, SPECIES_COL]].drop_duplicates()
    grid = pairs.merge(pd.DataFrame({YEAR_COL: list(years)}), how='cross')

    attribute_cols = [
        c for c in df.columns
        if c not in [SITE_COL, SPECIES_COL, YEAR_COL, RAW_COUNT_COL]
    ]
    attributes = df[[SITE_COL, SPECIES_COL] + attribute_cols].drop_duplicates(
        subset=[SITE_COL, SPECIES_COL]
    )

    merged = grid.merge(
        df[[SITE_COL, SPECIES_COL, YEAR_COL, RAW_COUNT_COL]],
        on=[SITE_COL, SPECIES_COL, YEAR_COL],
        how='left'
    )
    merged = merged.merge(attributes, on=[SITE_COL, SPECIES_COL], how='left')
    merged = merged.sort_values([SITE_COL, SPECIES_COL, YEAR_COL])

    return merged.reset_index(drop=True)


def _fill_pair(pair_df: pd.DataFrame) -> pd.DataFrame:
    pair_df = pair_df.sort_values(YEAR_COL).copy()
    raw = pair_df[RAW_COUNT_COL]
    interpolated = interpolate_series(raw)
    extrapolated = extrapolate_series(interpolated)

    flags = np.where(raw.notna(), ORIGINAL,
            np.where(interpolated.notna(), INTERPOLATED,
            np.where(extrapolated.notna(), EXTRAPOLATED, MISSING)))

    pair_df['interpolated_count'] = interpolated.values
    pair_df['count'] = extrapolated.values
    pair_df['gapFilling'] = flags
    return pair_df


def gap_fill_site_species_data(df: pd.DataFrame) -> pd.DataFrame:
    """
    Gap fill counts for every (site, species) time series.

    This function processes each (site, species) pair separately:
    1. Interior gaps are linearly interpolated ('interpolated_count')
    2. Remaining boundary gaps take the nearest value ('count')

    Parameters
    ----------
    df : pd.DataFrame
        Complete site-species-year grid (see
        create_complete_site_species_year_grid)

    Returns
    -------
    pd.DataFrame
        Input columns plus:
        - interpolated_count: raw_count with interior gaps filled
        - count: interpolated_count with boundary gaps filled
        - gapFilling: 'ORIGINAL', 'INTERPOLATED', 'EXTRAPOLATED', or
          'MISSING' when the whole series has no known value
    """
    if df.empty:
        out = df.copy()
        for col in ['interpolated_count', 'count', 'gapFilling']:
            out[col] = pd.Series(dtype=object if col == 'gapFilling' else float)
        return out

    result_dfs = [
        _fill_pair(pair_df)
        for _, pair_df in df.groupby([SITE_COL, SPECIES_COL], sort=True)
    ]

    return pd.concat(result_dfs, ignore_index=True)
