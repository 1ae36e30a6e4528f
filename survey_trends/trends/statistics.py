"""
Per-species trend estimation and rank-correlation significance testing.
"""

import numpy as np
import pandas as pd
from typing import Dict, Optional, Tuple
from scipy import stats

from ..constants import (
    SPECIES_COL,
    YEAR_COL,
    RAW_COUNT_COL,
    TREND_START_YEAR,
    CHANGE_PERIOD_LENGTH,
    FIRST_PERIOD,
    SECOND_PERIOD,
    MIN_SPEARMAN_OBSERVATIONS,
    SIGNIFICANCE_LEVELS,
)
from .transforms import restrict_to_window


def fit_linear_trend(years: np.ndarray, values: np.ndarray) -> Dict[str, float]:
    """
    Fit an ordinary least-squares line of value against year.

    Parameters
    ----------
    years : np.ndarray
        Array of years (x values)
    values : np.ndarray
        Array of values (y values), may contain NaN or inf

    Returns
    -------
    Dict[str, float]
        slope, intercept, r_squared and n (number of finite points used).
        slope, intercept and r_squared are NaN with fewer than 2 finite
        values or when all finite values fall in the same year.
    """
    years = np.asarray(years, dtype=float)
    values = np.asarray(values, dtype=float)

    valid_mask = np.isfinite(values) & np.isfinite(years)
    years_valid = years[valid_mask]
    values_valid = values[valid_mask]

    result = {
        'slope': np.nan,
        'intercept': np.nan,
        'r_squared': np.nan,
        'n': int(valid_mask.sum()),
    }

    if len(years_valid) < 2:
        return result

    # Check if we have variation in years
    if len(np.unique(years_valid)) < 2:
        return result

    slope, intercept, r_value, _, _ = stats.linregress(years_valid, values_valid)
    result['slope'] = slope
    result['intercept'] = intercept
    result['r_squared'] = r_value ** 2
    return result


def label_change_periods(
    years: pd.Series,
    start_year: int,
    end_year: int,
    period_length: int = CHANGE_PERIOD_LENGTH
) -> pd.Series:
    """
    Label years as the first or second period of a window.

    The first period is the first period_length years of the window and the
    second period its last period_length years. Other years are NA.
    """
    labels = pd.Series(np.nan, index=years.index, dtype=object)
    labels[(years >= start_year) & (years < start_year + period_length)] = FIRST_PERIOD
    labels[(years <= end_year) & (years > end_year - period_length)] = SECOND_PERIOD
    return labels


def calculate_change_ratios(
    species_df: pd.DataFrame,
    value_col: str,
    start_year: int,
    end_year: int,
    period_length: int = CHANGE_PERIOD_LENGTH
) -> pd.DataFrame:
    """
    Ratio of the second-period mean to the first-period mean per species.

    Parameters
    ----------
    species_df : pd.DataFrame
        Species-year table with unlogged values in value_col
    value_col : str
        Column holding the unlogged species mean
    start_year, end_year : int
        Trend window
    period_length : int
        Years in each period

    Returns
    -------
    pd.DataFrame
        Columns species_id, first_mean, second_mean, change_ratio. The
        ratio is NA when either period mean is missing or the first is 0.
    """
    df = species_df[[SPECIES_COL, YEAR_COL, value_col]].copy()
    df['period'] = label_change_periods(df[YEAR_COL], start_year, end_year, period_length)
    df = df[df['period'].notna()]

    species = sorted(species_df[SPECIES_COL].unique())
    if df.empty:
        return pd.DataFrame({
            SPECIES_COL: species,
            'first_mean': np.nan,
            'second_mean': np.nan,
            'change_ratio': np.nan,
        })

    means = df.groupby([SPECIES_COL, 'period'])[value_col].mean().unstack('period')
    means = means.reindex(index=species, columns=[FIRST_PERIOD, SECOND_PERIOD])
    means.index.name = SPECIES_COL
    means.columns = ['first_mean', 'second_mean']

    with np.errstate(divide='ignore', invalid='ignore'):
        means['change_ratio'] = means['second_mean'] / means['first_mean']
    means['change_ratio'] = means['change_ratio'].replace([np.inf, -np.inf], np.nan)

    return means.reset_index()


def count_nonzero_observations(observations: pd.DataFrame) -> pd.DataFrame:
    """
    Number of raw non-zero counts per species over the whole dataset.

    Gap-filled values are not counted.
    """
    nonzero = observations[RAW_COUNT_COL] > 0
    counts = nonzero.groupby(observations[SPECIES_COL]).sum().astype(int)
    return counts.rename('total_nonzero_observations').reset_index()


def estimate_species_trends(
    species_df: pd.DataFrame,
    observations: pd.DataFrame,
    log_col: str = 'log_mean_count',
    value_col: str = 'mean_count',
    start_year: int = TREND_START_YEAR,
    end_year: Optional[int] = None,
    period_length: int = CHANGE_PERIOD_LENGTH
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Fit per-species trends over the reporting window.

    Parameters
    ----------
    species_df : pd.DataFrame
        Species-year table with the logged (log_col) and unlogged
        (value_col) species mean counts
    observations : pd.DataFrame
        Raw Observation table, used for the non-zero observation count
    log_col : str
        Column regressed against year
    value_col : str
        Unlogged column used for the change ratio
    start_year : int
        First year of the window
    end_year : int, optional
        Last year of the window, defaults to the last year in species_df
    period_length : int
        Years in each change-ratio period

    Returns
    -------
    Tuple[pd.DataFrame, pd.DataFrame]
        - trends: species_id, slope, change_ratio, total_nonzero_observations
        - fits: species_id, slope, intercept, r_squared, n
    """
    if end_year is None:
        end_year = int(species_df[YEAR_COL].max())

    window = restrict_to_window(species_df, start_year, end_year)

    fit_rows = []
    for species_id in sorted(species_df[SPECIES_COL].unique()):
        species_window = window[window[SPECIES_COL] == species_id]
        fit = fit_linear_trend(species_window[YEAR_COL].values, species_window[log_col].values)
        fit_rows.append({SPECIES_COL: species_id, **fit})

    fits = pd.DataFrame(fit_rows, columns=[SPECIES_COL, 'slope', 'intercept', 'r_squared', 'n'])

    ratios = calculate_change_ratios(window, value_col, start_year, end_year, period_length)
    nonzero = count_nonzero_observations(observations)

    trends = fits[[SPECIES_COL, 'slope']].merge(
        ratios[[SPECIES_COL, 'change_ratio']], on=SPECIES_COL, how='left'
    )
    trends = trends.merge(nonzero, on=SPECIES_COL, how='left')
    trends['total_nonzero_observations'] = (
        trends['total_nonzero_observations'].fillna(0).astype(int)
    )

    return trends, fits


def spearman_test(years: np.ndarray, values: np.ndarray) -> Tuple[float, float]:
    """
    Spearman rank correlation between year and value.

    Tied values receive their average rank. Constant input has no defined
    correlation and returns (NaN, NaN).

    Returns
    -------
    Tuple[float, float]
        rho and two-sided p-value
    """
    years = np.asarray(years, dtype=float)
    values = np.asarray(values, dtype=float)

    if len(years) < 2 or np.all(values == values[0]) or np.all(years == years[0]):
        return np.nan, np.nan

    rho, p_value = stats.spearmanr(years, values)
    return float(rho), float(p_value)


def classify_significance(p_value: float) -> str:
    """
    Significance marker of a p-value: '***', '**', '*' or '' (none).
    """
    if pd.isna(p_value):
        return ''
    for threshold, marker in SIGNIFICANCE_LEVELS:
        if p_value <= threshold:
            return marker
    return ''


def classify_direction(rho: float, significance: str) -> str:
    """
    'up' or 'down' for a significant correlation, '' otherwise.
    """
    if not significance or pd.isna(rho):
        return ''
    if rho > 0:
        return 'up'
    if rho < 0:
        return 'down'
    return ''


def compute_species_significance(
    species_df: pd.DataFrame,
    value_col: str = 'std_site_mean',
    min_observations: int = MIN_SPEARMAN_OBSERVATIONS
) -> pd.DataFrame:
    """
    Spearman test of standardized value against year for each species.

    Rows with a missing value are removed first. Species with
    min_observations rows or fewer are left out of the result.

    Parameters
    ----------
    species_df : pd.DataFrame
        Species-year table of standardized values, already restricted to
        the reporting window
    value_col : str
        Standardized value column
    min_observations : int
        A species needs strictly more rows than this to be tested

    Returns
    -------
    pd.DataFrame
        Columns species_id, rho, p_value, significance, direction
    """
    columns = [SPECIES_COL, 'rho', 'p_value', 'significance', 'direction']
    df = species_df[[SPECIES_COL, YEAR_COL, value_col]].copy()
    df[value_col] = df[value_col].astype(float).replace([np.inf, -np.inf], np.nan)
    df = df.dropna(subset=[value_col])

    results = []
    for species_id, group in df.groupby(SPECIES_COL, sort=True):
        if len(group) <= min_observations:
            continue
        group = group.sort_values(YEAR_COL)
        rho, p_value = spearman_test(group[YEAR_COL].values, group[value_col].values)
        significance = classify_significance(p_value)
        results.append({
            SPECIES_COL: species_id,
            'rho': rho,
            'p_value': p_value,
            'significance': significance,
            'direction': classify_direction(rho, significance),
        })

    return pd.DataFrame(results, columns=columns)
