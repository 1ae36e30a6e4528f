"""
Survey population-trend computation package.

This package provides functions to turn longitudinal per-site, per-species
survey counts into per-species population trends, trend significance, and
standardized trend curves aggregated by state, taxon and latitude band.
"""

# Re-export constants
from .constants import (
    TREND_START_YEAR,
    BASELINE_YEAR,
    CHANGE_PERIOD_LENGTH,
    MIN_SPEARMAN_OBSERVATIONS,
    SIGNIFICANCE_LEVELS,
    LAT_BIN_LOWER,
    LAT_BIN_UPPER,
    LAT_BIN_WIDTH,
    OUTPUT_TABLES,
)

# Re-export trend module functions for convenience
from .trends import (
    # Data loading
    MalformedInputError,
    load_wide_counts,
    load_species_traits,
    load_site_states,
    validate_wide_counts,
    validate_reference_table,
    wide_to_long,
    # Gap filling
    interpolate_series,
    extrapolate_series,
    create_complete_site_species_year_grid,
    gap_fill_site_species_data,
    # Aggregation and transforms
    aggregate_mean,
    grid_cell_means,
    species_year_means,
    hierarchical_mean,
    zero_safe_log,
    coerce_non_finite,
    standardize_to_site_mean,
    standardize_to_baseline,
    # Statistics
    fit_linear_trend,
    calculate_change_ratios,
    estimate_species_trends,
    spearman_test,
    compute_species_significance,
    # Spatial
    assign_latitude_bins,
    # Main workflow
    compute_population_trends_full,
    compute_population_trends,
    compute_dataset_trends,
    save_output_tables,
)

__version__ = "0.1.0"
