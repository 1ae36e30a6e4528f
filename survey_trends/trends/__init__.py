"""
Population trend estimation from longitudinal site-by-species survey counts.
"""

from .data_loader import (
    MalformedInputError,
    load_wide_counts,
    load_species_traits,
    load_site_states,
    validate_wide_counts,
    validate_reference_table,
    wide_to_long,
    round_coordinates,
    get_year_columns,
    get_unique_site_latitudes,
)

from .gap_filling import (
    interpolate_series,
    extrapolate_series,
    create_complete_site_species_year_grid,
    gap_fill_site_species_data,
)

from .aggregation import (
    aggregate_mean,
    grid_cell_means,
    species_year_means,
    hierarchical_mean,
)

from .transforms import (
    coerce_non_finite,
    zero_floor,
    zero_safe_log,
    standardize_to_site_mean,
    standardize_to_baseline,
    restrict_to_window,
)

from .statistics import (
    fit_linear_trend,
    label_change_periods,
    calculate_change_ratios,
    count_nonzero_observations,
    estimate_species_trends,
    spearman_test,
    classify_significance,
    classify_direction,
    compute_species_significance,
)

from .spatial import (
    latitude_bin_edges,
    assign_latitude_bins,
)

from .main import (
    join_species_traits,
    join_site_states,
    compute_population_trend_chain,
    compute_banded_summaries,
    compute_population_trends_full,
    compute_population_trends,
    compute_dataset_trends,
    save_output_tables,
)
