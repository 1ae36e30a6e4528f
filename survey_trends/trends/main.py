"""
Main workflow orchestration for computing population trends and
standardized trend curves from survey count data.
"""

import warnings
import pandas as pd
from pathlib import Path
from typing import Any, Dict, List, Optional

from .data_loader import (
    load_wide_counts,
    load_species_traits,
    load_site_states,
    wide_to_long,
    validate_reference_table,
    validate_wide_counts,
    get_unique_site_latitudes,
)
from .gap_filling import (
    create_complete_site_species_year_grid,
    gap_fill_site_species_data,
)
from .aggregation import (
    grid_cell_means,
    species_year_means,
    hierarchical_mean,
)
from .transforms import (
    zero_safe_log,
    standardize_to_site_mean,
    standardize_to_baseline,
    restrict_to_window,
)
from .statistics import (
    estimate_species_trends,
    compute_species_significance,
)
from .spatial import assign_latitude_bins
from ..constants import (
    SITE_COL,
    SPECIES_COL,
    STATE_COL,
    TAXON_COL,
    BIOGEOGRAPHY_COL,
    LAT_BIN_COL,
    SPECIES_TRAIT_COLS,
    SITE_STATE_COLS,
    TREND_START_YEAR,
    BASELINE_YEAR,
    CHANGE_PERIOD_LENGTH,
    MIN_SPEARMAN_OBSERVATIONS,
    LAT_BIN_LOWER,
    LAT_BIN_UPPER,
    LAT_BIN_WIDTH,
    COUNTS_FILE,
    SPECIES_TRAITS_FILE,
    SITE_STATES_FILE,
    OUTPUT_TABLES,
)


def join_species_traits(df: pd.DataFrame, species_traits: pd.DataFrame) -> pd.DataFrame:
    """
    Add the biogeography of each row's species.

    Rows whose species is not in the trait table are dropped, with a warning.
    """
    joined = df.merge(species_traits[SPECIES_TRAIT_COLS], on=SPECIES_COL, how='inner')

    missing = sorted(set(df[SPECIES_COL]) - set(species_traits[SPECIES_COL]))
    if missing:
        warnings.warn(f"{len(missing)} species not found in species traits and excluded "
                      f"from biogeography summaries: {missing[:10]}")
    return joined


def join_site_states(df: pd.DataFrame, site_states: pd.DataFrame) -> pd.DataFrame:
    """
    Replace each row's state with the cleaned state of its site.

    Rows whose site is not in the site-state table are dropped, with a warning.
    """
    joined = df.drop(columns=[STATE_COL], errors='ignore').merge(
        site_states[SITE_STATE_COLS], on=SITE_COL, how='inner'
    )

    missing = sorted(set(df[SITE_COL]) - set(site_states[SITE_COL]))
    if missing:
        warnings.warn(f"{len(missing)} sites not found in site states and excluded "
                      f"from state summaries: {missing[:10]}")
    return joined


def compute_population_trend_chain(
    gap_filled: pd.DataFrame,
    observations: pd.DataFrame,
    start_year: int = TREND_START_YEAR,
    end_year: Optional[int] = None,
    period_length: int = CHANGE_PERIOD_LENGTH
) -> Dict[str, pd.DataFrame]:
    """
    Species mean counts, their zero-safe log, and the per-species trends.

    Returns
    -------
    Dict[str, pd.DataFrame]
        'species_means', 'population_trends' and 'trend_fits'
    """
    cells = grid_cell_means(gap_filled, 'count', out_col='mean_count')
    species = species_year_means(cells, 'mean_count')
    species = zero_safe_log(species, 'mean_count', [SPECIES_COL], out_col='log_mean_count')

    trends, fits = estimate_species_trends(
        species,
        observations,
        log_col='log_mean_count',
        value_col='mean_count',
        start_year=start_year,
        end_year=end_year,
        period_length=period_length,
    )

    n_unfit = int(trends['slope'].isna().sum())
    if n_unfit:
        warnings.warn(f"{n_unfit} species have too few yearly values for a trend fit")

    return {'species_means': species, 'population_trends': trends, 'trend_fits': fits}


def compute_banded_summaries(
    baseline: pd.DataFrame,
    species_traits: pd.DataFrame,
    site_states: pd.DataFrame,
    latitude_bins: pd.DataFrame
) -> Dict[str, pd.DataFrame]:
    """
    Plotting tables of baseline-standardized values by state, taxon and band.

    Returns
    -------
    Dict[str, pd.DataFrame]
        - 'state_biogeography': state, biogeography, year, value
        - 'state_taxon': state, taxon, year, value
        - 'latitude_biogeography': lat_bin, biogeography, year, value
    """
    with_traits = join_species_traits(baseline, species_traits)
    with_states = join_site_states(baseline, site_states)
    with_both = with_states.merge(
        species_traits[SPECIES_TRAIT_COLS], on=SPECIES_COL, how='inner'
    )

    banded = with_traits.merge(
        latitude_bins[[SITE_COL, LAT_BIN_COL]], on=SITE_COL, how='inner'
    )
    banded = banded[banded[LAT_BIN_COL].notna()]

    return {
        'state_biogeography': hierarchical_mean(
            with_both, 'std_baseline', [STATE_COL, BIOGEOGRAPHY_COL]),
        'state_taxon': hierarchical_mean(
            with_states, 'std_baseline', [STATE_COL, TAXON_COL]),
        'latitude_biogeography': hierarchical_mean(
            banded, 'std_baseline', [LAT_BIN_COL, BIOGEOGRAPHY_COL]),
    }


def compute_population_trends_full(
    counts: pd.DataFrame,
    species_traits: pd.DataFrame,
    site_states: pd.DataFrame,
    start_year: int = TREND_START_YEAR,
    end_year: Optional[int] = None,
    baseline_year: int = BASELINE_YEAR,
    period_length: int = CHANGE_PERIOD_LENGTH,
    min_spearman_observations: int = MIN_SPEARMAN_OBSERVATIONS,
    lat_bin_lower: float = LAT_BIN_LOWER,
    lat_bin_upper: float = LAT_BIN_UPPER,
    lat_bin_width: float = LAT_BIN_WIDTH,
    verbose: bool = True
) -> Dict[str, Any]:
    """
    Compute all trend outputs for a survey dataset.

    This function returns a dictionary containing the five result tables:
    - population_trends: species_id, slope, change_ratio, total_nonzero_observations
    - significance: species_id, rho, p_value, significance, direction
    - state_biogeography: state, biogeography, year, value
    - state_taxon: state, taxon, year, value
    - latitude_biogeography: lat_bin, biogeography, year, value

    Parameters
    ----------
    counts : pd.DataFrame
        Wide-format count table, one row per (site, species), one column per year
    species_traits : pd.DataFrame
        species_id -> biogeography reference table
    site_states : pd.DataFrame
        site_id -> state reference table
    start_year : int
        First year of the reporting window
    end_year : int, optional
        Last year of the reporting window, defaults to the last surveyed year
    baseline_year : int
        Year that baseline-standardized curves are anchored at
    period_length : int
        Years at each end of the window used for the change ratio
    min_spearman_observations : int
        Species need more yearly values than this to be tested
    lat_bin_lower, lat_bin_upper, lat_bin_width : float
        Latitude banding
    verbose : bool
        Whether to print progress messages

    Returns
    -------
    Dict[str, Any]
        The five result tables, plus:
        - 'observations': validated long-format input
        - 'gap_filled': gap-filled site-species-year table
        - 'species_means': species-year mean counts and their log
        - 'trend_fits': slope, intercept, r_squared and n per species
        - 'site_mean_standardized': species-year site-mean-relative values
        - 'baseline_standardized': site-level baseline-relative values
        - 'latitude_bins': site latitude bands
        - 'metadata': Dictionary with processing information

    Raises
    ------
    MalformedInputError
        If any input table fails validation; nothing is computed in that case
    """
    # Step 1: Validate and reshape inputs
    if verbose:
        print("  Validating input tables...")
    validate_reference_table(species_traits, 'species_traits', SPECIES_TRAIT_COLS, SPECIES_COL)
    validate_reference_table(site_states, 'site_states', SITE_STATE_COLS, SITE_COL)
    years = validate_wide_counts(counts)
    observations = wide_to_long(counts)

    if end_year is None:
        end_year = int(years[-1])

    # Step 2: Gap fill every site-species series
    if verbose:
        print(f"  Gap filling {observations.groupby([SITE_COL, SPECIES_COL]).ngroups} "
              f"site-species series over {years[0]}-{years[-1]}...")
    grid = create_complete_site_species_year_grid(observations, years)
    gap_filled = gap_fill_site_species_data(grid)

    # Step 3: Population trends from logged species means
    if verbose:
        print("  Estimating species trends...")
    trend_chain = compute_population_trend_chain(
        gap_filled, observations, start_year, end_year, period_length
    )

    # Step 4: Site-mean standardization and significance
    if verbose:
        print("  Testing trend significance...")
    site_mean = standardize_to_site_mean(gap_filled, 'count', start_year, end_year)
    significance = compute_species_significance(
        site_mean['species'], 'std_site_mean', min_spearman_observations
    )

    # Step 5: Baseline standardization and banded summaries
    if verbose:
        print(f"  Standardizing to baseline year {baseline_year}...")
    baseline = standardize_to_baseline(gap_filled, 'count', baseline_year)
    baseline_window = restrict_to_window(baseline, start_year, end_year)

    latitude_bins = assign_latitude_bins(
        get_unique_site_latitudes(observations), lat_bin_lower, lat_bin_upper, lat_bin_width
    )
    summaries = compute_banded_summaries(
        baseline_window, species_traits, site_states, latitude_bins
    )

    if verbose:
        print(f"  Done! Trends for {len(trend_chain['population_trends'])} species, "
              f"{len(significance)} tested for significance.")

    output = {
        'population_trends': trend_chain['population_trends'],
        'significance': significance,
        **summaries,
        'observations': observations,
        'gap_filled': gap_filled,
        'species_means': trend_chain['species_means'],
        'trend_fits': trend_chain['trend_fits'],
        'site_mean_standardized': site_mean['species'],
        'baseline_standardized': baseline,
        'latitude_bins': latitude_bins,
    }
    output['metadata'] = {
        'first_year': int(years[0]),
        'last_year': int(years[-1]),
        'start_year': start_year,
        'end_year': end_year,
        'baseline_year': baseline_year,
        'n_sites': int(observations[SITE_COL].nunique()),
        'n_species': int(observations[SPECIES_COL].nunique()),
        'n_site_species': int(observations.groupby([SITE_COL, SPECIES_COL]).ngroups),
        'n_species_with_slope': int(trend_chain['population_trends']['slope'].notna().sum()),
        'n_species_tested': len(significance),
        'n_sites_unbanded': int(latitude_bins[LAT_BIN_COL].isna().sum()),
    }

    return output


def compute_population_trends(
    counts: pd.DataFrame,
    species_traits: pd.DataFrame,
    site_states: pd.DataFrame,
    verbose: bool = True,
    **kwargs
) -> pd.DataFrame:
    """
    Compute the per-species population trend table only.

    Takes the same arguments as compute_population_trends_full.

    Returns
    -------
    pd.DataFrame
        species_id, slope, change_ratio, total_nonzero_observations
    """
    output = compute_population_trends_full(
        counts, species_traits, site_states, verbose=verbose, **kwargs
    )
    return output['population_trends']


def compute_dataset_trends(
    data_dir: str,
    counts_file: str = COUNTS_FILE,
    species_traits_file: str = SPECIES_TRAITS_FILE,
    site_states_file: str = SITE_STATES_FILE,
    verbose: bool = True,
    **kwargs
) -> Dict[str, Any]:
    """
    Load the three input tables from a directory and compute all outputs.

    Parameters
    ----------
    data_dir : str
        Directory holding the count table and both reference tables
    counts_file, species_traits_file, site_states_file : str
        File names within data_dir
    verbose : bool
        Whether to print progress messages
    **kwargs
        Passed to compute_population_trends_full

    Returns
    -------
    Dict[str, Any]
        See compute_population_trends_full
    """
    data_path = Path(data_dir)

    if verbose:
        print(f"Processing dataset: {data_path}")
        print("  Loading input tables...")
    counts = load_wide_counts(data_path / counts_file)
    species_traits = load_species_traits(data_path / species_traits_file)
    site_states = load_site_states(data_path / site_states_file)

    return compute_population_trends_full(
        counts, species_traits, site_states, verbose=verbose, **kwargs
    )


def save_output_tables(
    output: Dict[str, Any],
    output_dir: str,
    prefix: str = '',
    tables: List[str] = OUTPUT_TABLES
) -> List[Path]:
    """
    Write result tables to CSV, one file per table.

    Returns
    -------
    List[Path]
        Paths of the written files
    """
    out_path = Path(output_dir)
    out_path.mkdir(parents=True, exist_ok=True)

    written = []
    for name in tables:
        filepath = out_path / f"{prefix}{name}.csv"
        output[name].to_csv(filepath, index=False)
        written.append(filepath)
    return written
